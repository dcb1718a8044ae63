"""Text card scenes."""

from pathlib import Path
from typing import Optional

from core.errors import RenderError
from core.models.project import Scene, TextContent
from core.models.generation import FileSource
from .base import SceneContext, still_to_clip
from .markup import background_css, build_page, text_element


class TextSceneRenderer:
    """Renders a text element over a background."""

    def __init__(self, scene: Scene, context: SceneContext):
        self.scene = scene
        self.context = context
        self.narration_path: Optional[Path] = None

    @property
    def content(self) -> TextContent:
        return self.scene.content

    def set_narration_path(self, path: Optional[Path]) -> None:
        self.narration_path = Path(path) if path else None

    def validate(self) -> None:
        if not isinstance(self.content, TextContent) or not self.content.text:
            raise RenderError(
                f"Text scene {self.scene.id} has no text",
                "MISSING_TEXT",
                {"sceneId": self.scene.id},
            )

    def _resolve_background(self, path: str) -> Path:
        return self.context.resolver.resolve_file(FileSource(path), "IMAGE_NOT_FOUND")

    def build_html(self) -> str:
        return build_page(
            text_element(self.content),
            self.context.width,
            self.context.height,
            background_css(self.scene.background, self._resolve_background),
        )

    async def render_static(self) -> Path:
        self.validate()
        return await self.context.html_renderer.screenshot(
            self.build_html(),
            self.context.width,
            self.context.height,
            self.context.static_path(self.scene),
        )

    async def render_video(self) -> Path:
        still = await self.render_static()
        return await still_to_clip(self.context, self.scene, still, self.narration_path)
