"""Image scenes: a single literal or generated image."""

import shutil
from pathlib import Path
from typing import Optional

from core.errors import RenderError
from core.models.generation import FileSource
from core.models.project import ImageContent, ImageFit, Scene
from .base import SceneContext, still_to_clip
from .markup import background_css, build_page, image_data_uri, image_element


class ImageSceneRenderer:
    """
    Renders an image scene.

    A ``fill`` image with no background needs no compositing, so the source
    file is used as the still directly; ffmpeg scales it to the frame.
    """

    def __init__(self, scene: Scene, context: SceneContext):
        self.scene = scene
        self.context = context
        self.narration_path: Optional[Path] = None

    @property
    def content(self) -> ImageContent:
        return self.scene.content

    def set_narration_path(self, path: Optional[Path]) -> None:
        self.narration_path = Path(path) if path else None

    def validate(self) -> None:
        if not isinstance(self.content, ImageContent) or self.content.src is None:
            raise RenderError(
                f"Image scene {self.scene.id} has no source",
                "MISSING_IMAGE_SOURCE",
                {"sceneId": self.scene.id},
            )
        # Generated sources are exempt from existence checks
        if isinstance(self.content.src, FileSource):
            self._resolve_file(self.content.src.path)
        if self.scene.background and self.scene.background.type == "image":
            self._resolve_file(self.scene.background.value)

    def _resolve_file(self, path: str) -> Path:
        return self.context.resolver.resolve_file(FileSource(path), "IMAGE_NOT_FOUND")

    def build_html(self, image_path: Path) -> str:
        return build_page(
            image_element(self.content, image_data_uri(image_path)),
            self.context.width,
            self.context.height,
            background_css(self.scene.background, self._resolve_file),
        )

    async def render_static(self) -> Path:
        self.validate()
        image_path = await self.context.resolver.resolve_image(self.content.src)

        if self.content.fit == ImageFit.FILL and self.scene.background is None:
            target = self.context.static_path(self.scene).with_suffix(image_path.suffix or ".png")
            shutil.copyfile(image_path, target)
            return target

        return await self.context.html_renderer.screenshot(
            self.build_html(image_path),
            self.context.width,
            self.context.height,
            self.context.static_path(self.scene),
        )

    async def render_video(self) -> Path:
        still = await self.render_static()
        return await still_to_clip(self.context, self.scene, still, self.narration_path)
