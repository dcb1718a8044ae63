"""
Cache-or-generate resolution of deferred sources.

Identical requests issued concurrently (two scenes with the same prompt in
one batch) are not deduplicated; each misses the cache and generates.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Optional

from core.caching import GenerationCache, image_cache_key, music_cache_key
from core.errors import GenerationError, RenderError
from core.models.generation import (
    FileSource,
    GenerateImageParams,
    GenerateMusicParams,
    ImageSource,
    MusicSource,
)
from core.providers import ImageProvider, MusicProvider

logger = logging.getLogger(__name__)


class GenerationResolver:
    """
    Turns image and music sources into local file paths.

    Args:
        image_cache: Cache for generated images
        music_cache: Cache for generated music
        image_provider: Image generator used on a cache miss
        music_provider: Music generator used on a cache miss
        base_dir: Directory literal paths are relative to
        project_name: Recorded in cache usage metadata
    """

    def __init__(
        self,
        image_cache: GenerationCache,
        music_cache: GenerationCache,
        image_provider: ImageProvider,
        music_provider: MusicProvider,
        base_dir: Path,
        project_name: Optional[str] = None
    ):
        self.image_cache = image_cache
        self.music_cache = music_cache
        self.image_provider = image_provider
        self.music_provider = music_provider
        self.base_dir = Path(base_dir)
        self.project_name = project_name

    def resolve_file(self, source: FileSource, error_code: str) -> Path:
        path = Path(source.path).expanduser()
        if not path.is_absolute():
            path = (self.base_dir / path).resolve()
        if not path.exists():
            raise RenderError(f"File not found: {source.path}", error_code, {"path": str(path)})
        return path

    async def resolve_image(self, source: ImageSource) -> Path:
        """
        Resolve an image source to a local file.

        Raises:
            RenderError: If a literal file is missing
            GenerationError: If generation fails
        """
        if isinstance(source, FileSource):
            return self.resolve_file(source, "IMAGE_NOT_FOUND")
        return await self._generate_image(source)

    async def _generate_image(self, params: GenerateImageParams) -> Path:
        key = image_cache_key(params)
        cached = await self.image_cache.get(key, self.project_name)
        if cached:
            return cached

        normalized = params.normalized()
        logger.info(f"Generating image {key}: {params.prompt[:60]}")
        result = await self.image_provider.generate_image(
            prompt=normalized["prompt"],
            style=normalized["style"],
            aspect_ratio=normalized["aspectRatio"],
            seed=normalized["seed"],
        )
        if not result.success or not result.image_data:
            raise GenerationError(
                f"Image generation failed: {result.error_message}",
                details={"key": key, "prompt": params.prompt, "provider": self.image_provider.name},
            )

        return await self.image_cache.save(
            key,
            result.image_data,
            normalized,
            project=self.project_name,
            metadata={"provider": self.image_provider.name},
        )

    async def resolve_music(self, source: MusicSource, default_duration: float) -> Path:
        """
        Resolve a music source to a local file.

        Args:
            source: Literal path or generation request
            default_duration: Length requested when the source gives none
        """
        if isinstance(source, FileSource):
            return self.resolve_file(source, "MUSIC_NOT_FOUND")

        if source.duration is None:
            source = dataclasses.replace(source, duration=default_duration)
        return await self._generate_music(source)

    async def _generate_music(self, params: GenerateMusicParams) -> Path:
        key = music_cache_key(params)
        cached = await self.music_cache.get(key, self.project_name)
        if cached:
            return cached

        logger.info(f"Generating {params.duration:.1f}s of music {key}")
        result = await self.music_provider.generate_music(
            prompts=params.weighted_prompts(),
            duration=params.duration,
            config=params.config,
            seed=params.seed,
        )
        if not result.success or not result.audio_data:
            raise GenerationError(
                f"Music generation failed: {result.error_message}",
                details={"key": key, "provider": self.music_provider.name},
            )

        return await self.music_cache.save(
            key,
            result.audio_data,
            params.normalized(),
            project=self.project_name,
            metadata={
                "provider": self.music_provider.name,
                "sampleRate": result.sample_rate,
                "channels": result.channels,
                "actualDuration": result.duration,
            },
        )
