"""
Narration resolution.

Each narrated scene's text is turned into a WAV file, through the narration
cache and the speech provider on a miss. Scenes are processed one at a
time; a failure for one scene is logged and leaves that scene silent.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from core.audio_utils import estimate_wav_duration, get_audio_duration
from core.caching import GenerationCache, merge_voice, narration_cache_key, narration_params
from core.caching.keys import DEFAULT_VOICE
from core.errors import NarrationError
from core.ffmpeg import FFmpegService
from core.models.project import NarrationDefaults, Scene, Voice
from core.models.render import NarrationResult
from core.providers import AudioProvider

logger = logging.getLogger(__name__)


class NarrationProcessor:
    """
    Resolves scene narration into audio files.

    Args:
        cache: Narration cache
        provider: Speech provider used on a cache miss
        ffmpeg: Used to measure audio when mutagen cannot
        project_name: Recorded in cache usage metadata
    """

    def __init__(
        self,
        cache: GenerationCache,
        provider: AudioProvider,
        ffmpeg: Optional[FFmpegService] = None,
        project_name: Optional[str] = None
    ):
        self.cache = cache
        self.provider = provider
        self.ffmpeg = ffmpeg
        self.project_name = project_name

    def resolve_voice(self, scene: Scene, defaults: Optional[NarrationDefaults] = None) -> Voice:
        """Built-in defaults, then project defaults, then the scene's own voice."""
        return merge_voice(
            DEFAULT_VOICE,
            defaults.voice if defaults else None,
            scene.narration.voice if scene.narration else None,
        )

    async def _measure(self, path: Path) -> Optional[float]:
        duration = await get_audio_duration(path, self.ffmpeg)
        if duration is None:
            duration = estimate_wav_duration(path.stat().st_size)
        return duration

    async def process_scene(
        self,
        scene: Scene,
        defaults: Optional[NarrationDefaults] = None
    ) -> Optional[NarrationResult]:
        """
        Resolve one scene's narration.

        Returns:
            NarrationResult, or None if the scene has no narration

        Raises:
            NarrationError: If the audio cannot be produced
        """
        if scene.narration is None or not scene.narration.text.strip():
            return None

        text = scene.narration.text.strip()
        voice = self.resolve_voice(scene, defaults)
        key = narration_cache_key(text, voice)

        try:
            cached = await self.cache.get(key, self.project_name)
            if cached:
                return NarrationResult(
                    scene_id=scene.id,
                    audio_path=cached,
                    duration=await self._measure(cached),
                    cached=True,
                )

            logger.info(f"Generating narration for scene {scene.id} ({len(text)} chars)")
            result = await self.provider.generate_speech(text, voice)
            if not result.success or not result.audio_data:
                raise NarrationError(
                    f"Speech generation failed for scene {scene.id}: {result.error_message}",
                    scene_id=scene.id,
                    details={"provider": self.provider.name},
                )

            path = await self.cache.save(
                key,
                result.audio_data,
                narration_params(text, voice),
                project=self.project_name,
                metadata={"provider": self.provider.name, "duration": result.duration},
            )
        except NarrationError:
            raise
        except Exception as e:
            raise NarrationError(
                f"Narration failed for scene {scene.id}: {e}",
                scene_id=scene.id,
            ) from e

        return NarrationResult(
            scene_id=scene.id,
            audio_path=path,
            duration=result.duration or await self._measure(path),
        )

    async def process_all(
        self,
        scenes: List[Scene],
        defaults: Optional[NarrationDefaults] = None
    ) -> Dict[str, NarrationResult]:
        """
        Resolve narration for every scene, in order.

        A scene whose narration fails is logged and left out of the result.
        """
        results: Dict[str, NarrationResult] = {}
        for scene in scenes:
            if scene.narration is None:
                continue
            try:
                result = await self.process_scene(scene, defaults)
            except NarrationError as e:
                logger.info(f"Scene {scene.id} continues without narration: {e}")
                continue
            if result is not None:
                results[scene.id] = result
        return results
