"""Scene type to renderer dispatch."""

import logging
from typing import Callable, Dict, List, Union

from core.errors import UnknownSceneTypeError
from core.models.project import Scene, SceneType
from .base import SceneContext, SceneRenderer

logger = logging.getLogger(__name__)

RendererConstructor = Callable[[Scene, SceneContext], SceneRenderer]


def _type_key(scene_type: Union[SceneType, str]) -> str:
    return scene_type.value if isinstance(scene_type, SceneType) else str(scene_type)


class SceneFactory:
    """
    Registry mapping scene type tags to renderer constructors.

    Every create() call returns a new renderer; renderers are never shared
    between scenes.
    """

    def __init__(self):
        self._registry: Dict[str, RendererConstructor] = {}

    def register(self, scene_type: Union[SceneType, str], constructor: RendererConstructor) -> None:
        key = _type_key(scene_type)
        if key in self._registry:
            logger.debug(f"Replacing renderer for scene type {key}")
        self._registry[key] = constructor

    def create(self, scene: Scene, context: SceneContext) -> SceneRenderer:
        """
        Instantiate the renderer for a scene.

        Raises:
            UnknownSceneTypeError: If no renderer is registered for the scene's type
        """
        constructor = self._registry.get(_type_key(scene.type))
        if constructor is None:
            raise UnknownSceneTypeError(_type_key(scene.type), self.registered_types())
        return constructor(scene, context)

    def registered_types(self) -> List[str]:
        return sorted(self._registry)

    def is_registered(self, scene_type: Union[SceneType, str]) -> bool:
        return _type_key(scene_type) in self._registry
