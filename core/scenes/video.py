"""Video clip scenes: a trimmed segment of a source video."""

from pathlib import Path
from typing import Optional, Tuple

from core.errors import RenderError
from core.models.generation import FileSource
from core.models.project import Scene, VideoContent
from .base import SceneContext, mux_narration


class VideoSceneRenderer:
    """
    Renders a video scene by trimming the source with ffmpeg.

    The segment is ``trim.start`` to ``trim.end`` capped at the scene
    duration; a shorter segment holds its last frame to fill the scene.
    """

    def __init__(self, scene: Scene, context: SceneContext):
        self.scene = scene
        self.context = context
        self.narration_path: Optional[Path] = None

    @property
    def content(self) -> VideoContent:
        return self.scene.content

    def set_narration_path(self, path: Optional[Path]) -> None:
        self.narration_path = Path(path) if path else None

    def source_path(self) -> Path:
        return self.context.resolver.resolve_file(FileSource(self.content.src), "VIDEO_NOT_FOUND")

    def trim_window(self) -> Tuple[float, float]:
        """(start, length) of the segment taken from the source."""
        trim = self.content.trim
        if trim is None:
            return 0.0, self.scene.duration
        if trim.end is None:
            return trim.start, self.scene.duration
        return trim.start, min(trim.end - trim.start, self.scene.duration)

    def validate(self) -> None:
        if not isinstance(self.content, VideoContent) or not self.content.src:
            raise RenderError(
                f"Video scene {self.scene.id} has no source",
                "MISSING_VIDEO_SOURCE",
                {"sceneId": self.scene.id},
            )
        self.source_path()

        trim = self.content.trim
        if trim is not None and (trim.start < 0 or (trim.end is not None and trim.end <= trim.start)):
            raise RenderError(
                f"Invalid trim for scene {self.scene.id}: start={trim.start}, end={trim.end}",
                "INVALID_TRIM",
                {"sceneId": self.scene.id, "start": trim.start, "end": trim.end},
            )

    async def render_static(self) -> Path:
        self.validate()
        start, _ = self.trim_window()
        return await self.context.ffmpeg.extract_frame(
            self.source_path(),
            self.context.static_path(self.scene),
            at=start,
        )

    async def render_video(self) -> Path:
        self.validate()
        start, length = self.trim_window()
        clip = await self.context.ffmpeg.trim_video(
            self.source_path(),
            self.context.video_path(self.scene),
            start=start,
            duration=length,
            width=self.context.width,
            height=self.context.height,
            fps=self.context.fps,
            target_duration=self.scene.duration,
        )
        return await mux_narration(self.context, self.scene, clip, self.narration_path)
