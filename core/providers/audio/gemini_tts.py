"""
Gemini Text-to-Speech Provider

The TTS model returns raw 16-bit PCM (``audio/L16;codec=pcm;rate=24000``),
which is wrapped in a WAV container before it is handed to the caller.

API Docs: https://ai.google.dev/gemini-api/docs/speech-generation
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from core.audio_utils import pcm_to_wav
from core.models.generation import TTS_MODEL
from core.models.project import Voice
from ..base import AudioProvider, ProviderConfig, AudioGenerationResult
from ..gemini import (
    extract_inline_data,
    generate_content_url,
    request_headers,
    resolve_api_key,
    sample_rate_from_mime,
)

logger = logging.getLogger(__name__)


class GeminiTTSProvider(AudioProvider):
    """
    Gemini speech generation provider.

    Voices are Gemini prebuilt voices (Kore, Puck, Charon, Aoede, ...).
    """

    DEFAULT_VOICE = "Kore"
    SAMPLE_WIDTH = 2

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.model = self.config.model or TTS_MODEL

    @property
    def name(self) -> str:
        return "gemini_tts"

    def _build_speech_config(self, voice: Voice) -> Dict[str, Any]:
        speech_config: Dict[str, Any] = {
            "voiceConfig": {
                "prebuiltVoiceConfig": {"voiceName": voice.name or self.DEFAULT_VOICE}
            }
        }
        if voice.language_code:
            speech_config["languageCode"] = voice.language_code
        return speech_config

    async def generate_speech(self, text: str, voice: Voice) -> AudioGenerationResult:
        """
        Generate speech with Gemini TTS.

        Args:
            text: Text to speak
            voice: Merged voice settings; only name and language code are
                   sent, rate and gain are applied at mix time

        Returns:
            AudioGenerationResult with WAV bytes
        """
        api_key = resolve_api_key(self.config.api_key)

        request_body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": self._build_speech_config(voice),
            },
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    generate_content_url(self.model, self.config.base_url),
                    headers=request_headers(api_key),
                    json=request_body
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        return AudioGenerationResult(
                            success=False,
                            error_message=f"Gemini TTS error ({response.status}): {error_text}"
                        )

                    result = await response.json()

        except aiohttp.ClientError as e:
            return AudioGenerationResult(
                success=False,
                error_message=f"Gemini TTS request failed: {str(e)}"
            )
        except asyncio.TimeoutError:
            return AudioGenerationResult(
                success=False,
                error_message=f"Gemini TTS request timed out after {self.config.timeout}s"
            )

        inline = extract_inline_data(result)
        if inline is None:
            return AudioGenerationResult(
                success=False,
                error_message="Gemini TTS returned no audio data"
            )

        pcm, mime_type = inline
        sample_rate = sample_rate_from_mime(mime_type)
        duration = len(pcm) / (sample_rate * self.SAMPLE_WIDTH)
        logger.info(f"Generated {duration:.1f}s of speech with voice {voice.name}")

        return AudioGenerationResult(
            success=True,
            audio_data=pcm_to_wav(pcm, sample_rate=sample_rate, channels=1),
            duration=duration,
            format="wav",
            sample_rate=sample_rate,
            channels=1,
            provider_metadata={
                "model": self.model,
                "voice": voice.name,
                "mime_type": mime_type,
            }
        )
