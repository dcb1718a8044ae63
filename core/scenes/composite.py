"""Composite scenes: stacked text and image layers."""

from pathlib import Path
from typing import List, Optional

from core.errors import RenderError
from core.models.generation import FileSource
from core.models.project import CompositeContent, ImageContent, Layer, Scene, SceneType, TextContent
from .base import SceneContext, still_to_clip
from .markup import (
    background_css,
    build_page,
    image_data_uri,
    image_element,
    layer_element,
    text_element,
)


def sort_layers(layers: List[Layer]) -> List[Layer]:
    """Ascending z-order; equal z keeps declaration order, so later layers paint on top."""
    return sorted(layers, key=lambda layer: layer.z_index or 0)


class CompositeSceneRenderer:
    """Renders layers into one frame using the text and image element builders."""

    def __init__(self, scene: Scene, context: SceneContext):
        self.scene = scene
        self.context = context
        self.narration_path: Optional[Path] = None

    @property
    def layers(self) -> List[Layer]:
        content = self.scene.content
        return content.layers if isinstance(content, CompositeContent) else []

    def set_narration_path(self, path: Optional[Path]) -> None:
        self.narration_path = Path(path) if path else None

    def _resolve_file(self, path: str) -> Path:
        return self.context.resolver.resolve_file(FileSource(path), "IMAGE_NOT_FOUND")

    def validate(self) -> None:
        if not self.layers:
            raise RenderError(
                f"Composite scene {self.scene.id} has no layers",
                "MISSING_LAYERS",
                {"sceneId": self.scene.id},
            )

        for index, layer in enumerate(self.layers):
            content = layer.content
            if layer.type == SceneType.TEXT:
                if not isinstance(content, TextContent) or not content.text:
                    raise RenderError(
                        f"Text layer {index} of scene {self.scene.id} has no text",
                        "MISSING_TEXT",
                        {"sceneId": self.scene.id, "layer": index},
                    )
            elif layer.type == SceneType.IMAGE:
                if not isinstance(content, ImageContent) or content.src is None:
                    raise RenderError(
                        f"Image layer {index} of scene {self.scene.id} has no source",
                        "MISSING_IMAGE_SOURCE",
                        {"sceneId": self.scene.id, "layer": index},
                    )
                if isinstance(content.src, FileSource):
                    self._resolve_file(content.src.path)
            else:
                raise RenderError(
                    f"Unsupported layer type {layer.type} in scene {self.scene.id}",
                    "INVALID_LAYER",
                    {"sceneId": self.scene.id, "layer": index},
                )

    async def _layer_markup(self, layer: Layer) -> str:
        if layer.type == SceneType.IMAGE:
            image_path = await self.context.resolver.resolve_image(layer.content.src)
            return image_element(layer.content, image_data_uri(image_path))
        return text_element(layer.content)

    async def build_html(self) -> str:
        body = []
        for layer in sort_layers(self.layers):
            inner = await self._layer_markup(layer)
            body.append(layer_element(inner, layer.z_index or 0, layer.opacity))

        return build_page(
            "".join(body),
            self.context.width,
            self.context.height,
            background_css(self.scene.background, self._resolve_file),
        )

    async def render_static(self) -> Path:
        self.validate()
        return await self.context.html_renderer.screenshot(
            await self.build_html(),
            self.context.width,
            self.context.height,
            self.context.static_path(self.scene),
        )

    async def render_video(self) -> Path:
        still = await self.render_static()
        return await still_to_clip(self.context, self.scene, still, self.narration_path)
