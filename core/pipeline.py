"""
Render pipeline orchestrator.

One render is a single pass over a project file:

    load -> narrate -> render scenes (bounded concurrency) -> align audio
         -> transitions -> concatenate -> background music -> output

The output clip order always matches the scene order, whatever order the
scene renders finish in. Nothing is retried; the first scene failure
cancels the scenes still in flight and propagates.
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from core.browser import HtmlRenderer
from core.caching import (
    GenerationCache,
    create_image_cache,
    create_music_cache,
    create_narration_cache,
)
from core.config import get_cache_dir
from core.errors import ProcessError
from core.ffmpeg import FFmpegService
from core.generation import GenerationResolver
from core.models.project import Project, Scene, SceneType
from core.models.render import NarrationResult, RenderOptions, RenderResult
from core.narration import NarrationProcessor
from core.parser import ensure_unique_scene_ids, load_project
from core.provider_config import ProviderFactory, ProviderSet
from core.scenes import SceneContext, SceneFactory, create_default_factory, parse_resolution
from core.transitions import TransitionEngine

logger = logging.getLogger(__name__)

# Extra seconds of generated music beyond the summed scene durations
MUSIC_LEAD_OUT = 2.0
DEFAULT_MUSIC_VOLUME = 0.3
DEFAULT_NARRATION_MIX_VOLUME = 1.0

# Progress ranges: scenes take 0-80, concatenation 80-95, music 95-100
SCENES_PROGRESS = 80.0
CONCAT_PROGRESS_START = 80.0
CONCAT_PROGRESS_SPAN = 0.15


@dataclass
class RenderServices:
    """
    Long-lived collaborators shared by renders.

    Build with RenderServices.create() for the user's caches and configured
    providers, or construct directly to inject fakes.
    """
    ffmpeg: FFmpegService
    html_renderer: HtmlRenderer
    image_cache: GenerationCache
    music_cache: GenerationCache
    narration_cache: GenerationCache
    providers: ProviderSet
    scene_factory: SceneFactory = field(default_factory=create_default_factory)
    transitions: Optional[TransitionEngine] = None

    def __post_init__(self):
        if self.transitions is None:
            self.transitions = TransitionEngine(self.ffmpeg)

    @classmethod
    def create(
        cls,
        mock: bool = False,
        api_key: Optional[str] = None,
        cache_root: Optional[Path] = None,
        ffmpeg: Optional[FFmpegService] = None
    ) -> "RenderServices":
        """
        Wire up the default services.

        Args:
            mock: Use offline mock providers instead of Gemini
            api_key: Explicit Gemini API key
            cache_root: Directory holding images/, music/ and narration/
                (default: ~/.reelsmith/cache)
            ffmpeg: Encoder wrapper (default: found on PATH)
        """
        ffmpeg = ffmpeg or FFmpegService()

        def cache_dir(kind: str) -> Path:
            return Path(cache_root) / kind if cache_root else get_cache_dir(kind)

        providers = ProviderFactory.create_mock() if mock else ProviderFactory.create_from_env(api_key=api_key)
        return cls(
            ffmpeg=ffmpeg,
            html_renderer=HtmlRenderer(),
            image_cache=create_image_cache(cache_dir("images")),
            music_cache=create_music_cache(cache_dir("music"), ffmpeg),
            narration_cache=create_narration_cache(cache_dir("narration")),
            providers=providers,
        )


class RenderPipeline:
    """
    Renders project files to a single MP4.

    Usage:
        pipeline = RenderPipeline(RenderServices.create())
        result = await pipeline.render("project.json", RenderOptions(Path("out.mp4")))
    """

    def __init__(self, services: RenderServices):
        self.services = services

    @staticmethod
    def _report(options: RenderOptions, percent: float, message: str) -> None:
        logger.debug(f"[{percent:5.1f}%] {message}")
        if options.on_progress:
            options.on_progress(min(100.0, percent), message)

    async def render(self, project_path: Union[str, Path], options: RenderOptions) -> RenderResult:
        """
        Load a project file and render it.

        Raises:
            ParseError, ValidationError: If the project cannot be loaded or reuses a scene id
            ProcessError: FFMPEG_NOT_FOUND if the encoder is unavailable
            RenderError: If a scene, transition or mix step fails
        """
        project = load_project(project_path)
        return await self.render_project(project, options)

    async def render_project(self, project: Project, options: RenderOptions) -> RenderResult:
        """Render an already parsed project."""
        started = time.monotonic()
        ffmpeg = self.services.ffmpeg

        ensure_unique_scene_ids(project)
        if not await ffmpeg.is_available():
            raise ProcessError(
                "FFmpeg not found. Install it and make sure it is on PATH.",
                "FFMPEG_NOT_FOUND",
            )
        width, height = parse_resolution(project.settings.resolution)

        output_path = Path(options.output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        temp_dir = options.resolved_temp_dir
        temp_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"Rendering {project.name!r}: {len(project.scenes)} scenes, "
            f"{width}x{height}@{project.settings.fps}fps, concurrency {options.concurrency}"
        )

        try:
            self._report(options, 0, "Resolving narration")
            defaults = project.settings.narration_defaults
            narrator = NarrationProcessor(
                self.services.narration_cache,
                self.services.providers.audio,
                ffmpeg,
                project_name=project.name,
            )
            narrations = await narrator.process_all(project.scenes, defaults)

            resolver = self._resolver(project)
            context = self._scene_context(project, resolver, temp_dir)

            clips = await self.render_scenes(project.scenes, context, narrations, options)
            scene_clips = list(clips)

            clips = await self.align_audio(clips, temp_dir)
            clips = await self.services.transitions.apply_transitions(project.scenes, clips, temp_dir)

            self._report(options, CONCAT_PROGRESS_START, "Concatenating clips")
            combined = await ffmpeg.concatenate(
                clips,
                temp_dir / "combined.mp4",
                on_progress=lambda p: self._report(
                    options, CONCAT_PROGRESS_START + p * CONCAT_PROGRESS_SPAN, "Concatenating clips"
                ),
                expected_duration=project.total_duration,
            )

            await self.finish_audio(project, resolver, combined, output_path)
            self._report(options, 100, "Done")

            result = RenderResult(
                output_path=output_path,
                duration=await ffmpeg.media_duration(output_path),
                scene_count=len(project.scenes),
                narrated_scenes=[s.id for s in project.scenes if s.id in narrations],
                render_time=round(time.monotonic() - started, 2),
                clip_paths=scene_clips if options.keep_temp else [],
            )
            logger.info(f"Rendered {output_path} in {result.render_time}s")
            return result
        finally:
            await self.services.html_renderer.close()
            if options.keep_temp:
                logger.info(f"Keeping temp files in {temp_dir}")
            else:
                shutil.rmtree(temp_dir, ignore_errors=True)

    def _resolver(self, project: Project) -> GenerationResolver:
        return GenerationResolver(
            self.services.image_cache,
            self.services.music_cache,
            self.services.providers.image,
            self.services.providers.music,
            base_dir=project.base_dir,
            project_name=project.name,
        )

    def _scene_context(self, project: Project, resolver: GenerationResolver, work_dir: Path) -> SceneContext:
        width, height = parse_resolution(project.settings.resolution)
        return SceneContext(
            temp_dir=work_dir,
            width=width,
            height=height,
            fps=project.settings.fps,
            ffmpeg=self.services.ffmpeg,
            html_renderer=self.services.html_renderer,
            resolver=resolver,
            narration_defaults=project.settings.narration_defaults,
        )

    async def preview_project(self, project: Project, output_dir: Union[str, Path]) -> List[Tuple[str, Path]]:
        """
        Write one still frame per scene into ``output_dir``.

        Scenes are rendered in order; deferred images are resolved through
        the caches as for a full render. The first failure propagates.

        Returns:
            (scene id, image path) pairs in scene order
        """
        ensure_unique_scene_ids(project)
        needs_ffmpeg = any(scene.type == SceneType.VIDEO for scene in project.scenes)
        if needs_ffmpeg and not await self.services.ffmpeg.is_available():
            raise ProcessError(
                "FFmpeg not found. Video scene previews need it on PATH.",
                "FFMPEG_NOT_FOUND",
            )

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        context = self._scene_context(project, self._resolver(project), output_dir)

        previews = []
        try:
            for index, scene in enumerate(project.scenes):
                logger.info(f"Previewing scene {index + 1}/{len(project.scenes)} ({scene.id}, {scene.type.value})")
                renderer = self.services.scene_factory.create(scene, context)
                renderer.validate()
                previews.append((scene.id, await renderer.render_static()))
        finally:
            await self.services.html_renderer.close()
        return previews

    async def render_scenes(
        self,
        scenes: Sequence[Scene],
        context: SceneContext,
        narrations: Dict[str, NarrationResult],
        options: RenderOptions
    ) -> List[Path]:
        """
        Render every scene to a clip, at most ``options.concurrency`` at once.

        Returns:
            Clip paths in scene order
        """
        total = len(scenes)
        results: List[Optional[Path]] = [None] * total
        semaphore = asyncio.Semaphore(max(1, options.concurrency))
        completed = 0

        async def render_one(index: int, scene: Scene) -> None:
            nonlocal completed
            async with semaphore:
                renderer = self.services.scene_factory.create(scene, context)
                narration = narrations.get(scene.id)
                renderer.set_narration_path(narration.audio_path if narration else None)
                renderer.validate()
                logger.info(f"Rendering scene {index + 1}/{total} ({scene.id}, {scene.type.value})")
                results[index] = await renderer.render_video()
            completed += 1
            self._report(options, completed / total * SCENES_PROGRESS, f"Rendered scene {completed}/{total}")

        tasks = [asyncio.create_task(render_one(i, scene)) for i, scene in enumerate(scenes)]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return results

    async def align_audio(self, clips: List[Path], temp_dir: Path) -> List[Path]:
        """
        Give silent clips a silent track when other clips carry audio.

        Clips must share one stream layout for crossfades and stream-copy
        concatenation.
        """
        ffmpeg = self.services.ffmpeg
        has_audio = [await ffmpeg.has_audio_stream(clip) for clip in clips]
        if all(has_audio) or not any(has_audio):
            return clips

        aligned = []
        for index, (clip, audio) in enumerate(zip(clips, has_audio)):
            if audio:
                aligned.append(clip)
            else:
                aligned.append(await ffmpeg.add_silent_audio(clip, temp_dir / f"aligned_{index}.mp4"))
        return aligned

    async def finish_audio(
        self,
        project: Project,
        resolver: GenerationResolver,
        combined: Path,
        output_path: Path
    ) -> Path:
        """Mix in background music, or move the combined video into place."""
        music = project.background_music
        if music is None:
            shutil.move(str(combined), str(output_path))
            return output_path

        ffmpeg = self.services.ffmpeg
        music_path = await resolver.resolve_music(music.src, project.total_duration + MUSIC_LEAD_OUT)

        defaults = project.settings.narration_defaults
        volume_mix = defaults.volume_mix if defaults else None
        if music.volume is not None:
            music_volume = music.volume
        elif volume_mix is not None:
            music_volume = volume_mix.bgm
        else:
            music_volume = DEFAULT_MUSIC_VOLUME

        if await ffmpeg.has_audio_stream(combined):
            logger.info("Mixing background music under scene audio")
            return await ffmpeg.mix_audio(
                combined,
                music_path,
                output_path,
                narration_volume=volume_mix.narration if volume_mix else DEFAULT_NARRATION_MIX_VOLUME,
                music_volume=music_volume,
                fade_in=music.fade_in,
                fade_out=music.fade_out,
            )

        logger.info("Adding background music as the only audio track")
        return await ffmpeg.add_audio(
            combined,
            music_path,
            output_path,
            volume=music_volume,
            fade_in=music.fade_in,
            fade_out=music.fade_out,
        )
