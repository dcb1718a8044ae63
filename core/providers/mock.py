"""Mock generation providers for rendering without API keys"""

import asyncio
import hashlib
import struct
import zlib
from typing import List, Optional

from core.audio_utils import silent_wav
from core.models.generation import MusicConfig, WeightedPrompt
from core.models.project import Voice
from .base import (
    AudioGenerationResult,
    AudioProvider,
    ImageGenerationResult,
    ImageProvider,
    MusicGenerationResult,
    MusicProvider,
    ProviderConfig,
)

# Simulated API latency
MOCK_DELAY = 0.05

# Rough speaking pace used to size mock narration
SECONDS_PER_WORD = 0.4


def solid_png(width: int, height: int, rgb: tuple) -> bytes:
    """Encode a single-color RGB PNG."""
    def chunk(tag: bytes, data: bytes) -> bytes:
        body = tag + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    row = b"\x00" + bytes(rgb) * width
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(row * height))
        + chunk(b"IEND", b"")
    )


class MockImageProvider(ImageProvider):
    """
    Mock image provider that returns a solid-color PNG.

    The color is derived from the prompt so different prompts are
    distinguishable in rendered output.
    """

    ASPECT_SIZES = {
        "16:9": (320, 180),
        "9:16": (180, 320),
        "1:1": (240, 240),
        "4:3": (320, 240),
    }

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.generation_count = 0
        self.prompts: List[str] = []

    @property
    def name(self) -> str:
        return "mock"

    async def generate_image(
        self,
        prompt: str,
        style: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        seed: Optional[int] = None
    ) -> ImageGenerationResult:
        await asyncio.sleep(MOCK_DELAY)
        self.generation_count += 1
        self.prompts.append(prompt)

        digest = hashlib.md5(f"{prompt}|{style}|{seed}".encode()).digest()
        width, height = self.ASPECT_SIZES.get(aspect_ratio or "16:9", (320, 180))

        return ImageGenerationResult(
            success=True,
            image_data=solid_png(width, height, tuple(digest[:3])),
            provider_metadata={"provider": "mock", "prompt": prompt},
        )


class MockAudioProvider(AudioProvider):
    """Mock speech provider that returns silence sized to the text."""

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.generation_count = 0

    @property
    def name(self) -> str:
        return "mock"

    async def generate_speech(self, text: str, voice: Voice) -> AudioGenerationResult:
        await asyncio.sleep(MOCK_DELAY)
        self.generation_count += 1

        duration = max(1.0, len(text.split()) * SECONDS_PER_WORD)
        return AudioGenerationResult(
            success=True,
            audio_data=silent_wav(duration, sample_rate=24000),
            duration=duration,
            provider_metadata={"provider": "mock", "voice": voice.name},
        )


class MockMusicProvider(MusicProvider):
    """Mock music provider that returns stereo silence of the requested length."""

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.generation_count = 0

    @property
    def name(self) -> str:
        return "mock"

    async def generate_music(
        self,
        prompts: List[WeightedPrompt],
        duration: float,
        config: Optional[MusicConfig] = None,
        seed: Optional[int] = None
    ) -> MusicGenerationResult:
        await asyncio.sleep(MOCK_DELAY)
        self.generation_count += 1

        return MusicGenerationResult(
            success=True,
            audio_data=silent_wav(duration, sample_rate=48000, channels=2),
            duration=duration,
            provider_metadata={"provider": "mock", "prompts": [p.text for p in prompts]},
        )
