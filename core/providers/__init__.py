"""Provider interfaces for generative services (images, speech, music)"""

from .base import (
    ProviderType,
    ProviderConfig,
    AudioProvider,
    AudioGenerationResult,
    MusicProvider,
    MusicGenerationResult,
    ImageProvider,
    ImageGenerationResult,
)
from .mock import MockImageProvider, MockAudioProvider, MockMusicProvider
from .image import GeminiImageProvider
from .audio import GeminiTTSProvider
from .music import LyriaMusicProvider

# Registry of all providers with metadata
PROVIDER_REGISTRY = {
    "image": {
        "gemini": {"class": GeminiImageProvider, "env_key": "GEMINI_API_KEY"},
        "mock": {"class": MockImageProvider, "env_key": None},
    },
    "audio": {
        "gemini_tts": {"class": GeminiTTSProvider, "env_key": "GEMINI_API_KEY"},
        "mock": {"class": MockAudioProvider, "env_key": None},
    },
    "music": {
        "lyria": {"class": LyriaMusicProvider, "env_key": "GEMINI_API_KEY"},
        "mock": {"class": MockMusicProvider, "env_key": None},
    },
}

__all__ = [
    "ProviderType",
    "ProviderConfig",
    "AudioProvider",
    "AudioGenerationResult",
    "MusicProvider",
    "MusicGenerationResult",
    "ImageProvider",
    "ImageGenerationResult",
    "MockImageProvider",
    "MockAudioProvider",
    "MockMusicProvider",
    "GeminiImageProvider",
    "GeminiTTSProvider",
    "LyriaMusicProvider",
    "PROVIDER_REGISTRY",
]
