"""
Project models

A project is an ordered list of scenes plus global settings and optional
background music. Scenes are a tagged variant: ``Scene.type`` selects which
content class ``Scene.content`` holds.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
from enum import Enum

from .generation import ImageSource, MusicSource


class SceneType(Enum):
    """Scene variants"""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    COMPOSITE = "composite"


class TransitionType(Enum):
    """Transitions between adjacent scenes"""
    FADE = "fade"
    WIPE = "wipe"
    DISSOLVE = "dissolve"


class AnimationType(Enum):
    """Per-scene animation filters"""
    FADE_IN = "fade-in"
    FADE_OUT = "fade-out"
    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"


class ImageFit(Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"


@dataclass
class Position:
    """Element position; numbers are pixels, "center" centers on that axis"""
    x: Union[float, str] = "center"
    y: Union[float, str] = "center"


@dataclass
class TextStyle:
    font_size: float = 48
    color: str = "#ffffff"
    font_family: str = "sans-serif"
    font_weight: Optional[str] = None
    text_align: Optional[str] = None


@dataclass
class TextContent:
    text: str
    style: TextStyle = field(default_factory=TextStyle)
    position: Position = field(default_factory=Position)


@dataclass
class ImageContent:
    src: ImageSource
    fit: ImageFit = ImageFit.COVER
    position: Position = field(default_factory=Position)


@dataclass
class VideoTrim:
    start: float = 0.0
    end: Optional[float] = None


@dataclass
class VideoContent:
    src: str
    trim: Optional[VideoTrim] = None


@dataclass
class Layer:
    """A text or image element inside a composite scene"""
    type: SceneType
    content: Union[TextContent, ImageContent]
    z_index: Optional[int] = None
    opacity: Optional[float] = None


@dataclass
class CompositeContent:
    layers: List[Layer] = field(default_factory=list)


@dataclass
class Background:
    """Scene background: a color, a gradient expression or an image path"""
    type: str = "color"
    value: str = "#000000"


@dataclass
class Transition:
    """Blend from this scene into the next one"""
    type: TransitionType = TransitionType.FADE
    duration: float = 0.5
    direction: Optional[str] = None


@dataclass
class Animation:
    type: AnimationType
    duration: float = 1.0


@dataclass
class Voice:
    language_code: Optional[str] = None
    name: Optional[str] = None
    speaking_rate: Optional[float] = None
    pitch: Optional[float] = None
    volume_gain_db: Optional[float] = None

    def to_dict(self) -> dict:
        """Non-empty fields, camel-cased"""
        data = {
            "languageCode": self.language_code,
            "name": self.name,
            "speakingRate": self.speaking_rate,
            "pitch": self.pitch,
            "volumeGainDb": self.volume_gain_db,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class NarrationTiming:
    delay: float = 0.0
    fade_in: float = 0.0
    fade_out: float = 0.0


@dataclass
class Narration:
    text: str
    voice: Optional[Voice] = None
    timing: Optional[NarrationTiming] = None


SceneContent = Union[TextContent, ImageContent, VideoContent, CompositeContent]


@dataclass
class Scene:
    """
    One timeline entry.

    Attributes:
        id: Unique scene identifier
        type: Variant tag selecting the renderer
        duration: Length of the rendered clip in seconds
        content: Variant payload matching ``type``
        background: Optional background behind the content
        transition: Optional blend into the next scene
        narration: Optional spoken text
        animation: Optional animation filter applied to the clip
    """
    id: str
    type: SceneType
    duration: float
    content: SceneContent
    background: Optional[Background] = None
    transition: Optional[Transition] = None
    narration: Optional[Narration] = None
    animation: Optional[Animation] = None


@dataclass
class VolumeMix:
    narration: float = 1.0
    bgm: float = 0.3


@dataclass
class NarrationDefaults:
    voice: Optional[Voice] = None
    volume_mix: Optional[VolumeMix] = None


@dataclass
class ProjectSettings:
    resolution: str = "1920x1080"
    fps: int = 30
    duration: Optional[float] = None
    narration_defaults: Optional[NarrationDefaults] = None


@dataclass
class BackgroundMusic:
    src: MusicSource
    volume: Optional[float] = None
    fade_in: Optional[float] = None
    fade_out: Optional[float] = None


@dataclass
class AudioSettings:
    background_music: Optional[BackgroundMusic] = None


@dataclass
class Project:
    """
    A parsed project.

    Relative asset paths resolve against ``base_dir`` (the directory holding
    the project file).
    """
    name: str
    settings: ProjectSettings
    scenes: List[Scene]
    version: str = "1.0"
    audio: Optional[AudioSettings] = None
    base_dir: Path = field(default_factory=Path.cwd)

    @property
    def total_duration(self) -> float:
        return sum(scene.duration for scene in self.scenes)

    @property
    def background_music(self) -> Optional[BackgroundMusic]:
        return self.audio.background_music if self.audio else None

    def resolve_path(self, path: str) -> Path:
        """Resolve an asset path against the project directory."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return (self.base_dir / candidate).resolve()
