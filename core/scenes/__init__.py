"""Scene renderers and the factory that selects them"""

from core.models.project import SceneType

from .base import SceneContext, SceneRenderer, parse_resolution
from .composite import CompositeSceneRenderer
from .factory import SceneFactory
from .image import ImageSceneRenderer
from .text import TextSceneRenderer
from .video import VideoSceneRenderer


def create_default_factory() -> SceneFactory:
    """Factory with renderers for every built-in scene type."""
    factory = SceneFactory()
    factory.register(SceneType.TEXT, TextSceneRenderer)
    factory.register(SceneType.IMAGE, ImageSceneRenderer)
    factory.register(SceneType.VIDEO, VideoSceneRenderer)
    factory.register(SceneType.COMPOSITE, CompositeSceneRenderer)
    return factory


__all__ = [
    "SceneContext",
    "SceneRenderer",
    "SceneFactory",
    "TextSceneRenderer",
    "ImageSceneRenderer",
    "VideoSceneRenderer",
    "CompositeSceneRenderer",
    "create_default_factory",
    "parse_resolution",
]
