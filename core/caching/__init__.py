"""Generation caches for images, music and narration"""

from pathlib import Path

from core.ffmpeg import FFmpegService
from core.models.generation import IMAGE_MODEL, TTS_MODEL

from .base import GenerationCache, MANIFEST_NAME
from .keys import (
    DEFAULT_VOICE,
    cache_key,
    image_cache_key,
    merge_voice,
    music_cache_key,
    narration_cache_key,
    narration_params,
)
from .music import MusicCache


def create_image_cache(cache_dir: Path) -> GenerationCache:
    return GenerationCache(cache_dir, extension=".png", model=IMAGE_MODEL, name="image")


def create_narration_cache(cache_dir: Path) -> GenerationCache:
    return GenerationCache(cache_dir, extension=".wav", model=TTS_MODEL, name="narration")


def create_music_cache(cache_dir: Path, ffmpeg: FFmpegService) -> MusicCache:
    return MusicCache(cache_dir, ffmpeg)
