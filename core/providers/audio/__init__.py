"""Speech generation providers"""

from .gemini_tts import GeminiTTSProvider

__all__ = ["GeminiTTSProvider"]
