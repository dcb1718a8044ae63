"""
Project file loading and validation.

load_project() turns a JSON file into a Project, raising on anything that
prevents building the model. validate_project() then reports content
problems (duplicate IDs, missing files, bad colors) as a list of issues so
all of them can be shown at once.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.errors import ParseError, ValidationError
from core.models.generation import FileSource, parse_image_source, parse_music_source
from core.models.project import (
    Animation,
    AnimationType,
    AudioSettings,
    Background,
    BackgroundMusic,
    CompositeContent,
    ImageContent,
    ImageFit,
    Layer,
    Narration,
    NarrationDefaults,
    NarrationTiming,
    Position,
    Project,
    ProjectSettings,
    Scene,
    SceneType,
    TextContent,
    TextStyle,
    Transition,
    TransitionType,
    VideoContent,
    VideoTrim,
    Voice,
    VolumeMix,
)

logger = logging.getLogger(__name__)

RESOLUTION_RE = re.compile(r"^\d+x\d+$")
COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
MAX_FPS = 120


@dataclass
class ValidationIssue:
    code: str
    message: str
    path: str


# ============================================================
# Parsing
# ============================================================

def _require(data: Dict[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise ValidationError(f"Missing required field: {path}.{key}", "MISSING_FIELD", {"path": f"{path}.{key}"})
    return data[key]


def _object(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f"{path} must be an object", "INVALID_TYPE", {"path": path})
    return value


def _number(value: Any, path: str, positive: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{path} must be a number", "INVALID_TYPE", {"path": path})
    if positive and value <= 0:
        raise ValidationError(f"{path} must be greater than 0", "INVALID_VALUE", {"path": path})
    return float(value)


def _enum(enum_cls, value: Any, path: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [e.value for e in enum_cls]
        raise ValidationError(
            f"{path} must be one of {', '.join(allowed)} (got {value!r})",
            "INVALID_VALUE",
            {"path": path, "allowed": allowed},
        )


def _position(raw: Optional[Dict[str, Any]]) -> Position:
    if not raw:
        return Position()
    return Position(x=raw.get("x", "center"), y=raw.get("y", "center"))


def _text_content(raw: Dict[str, Any], path: str) -> TextContent:
    style_raw = raw.get("style") or {}
    defaults = TextStyle()
    return TextContent(
        text=str(_require(raw, "text", path)),
        style=TextStyle(
            font_size=style_raw.get("fontSize", defaults.font_size),
            color=style_raw.get("color", defaults.color),
            font_family=style_raw.get("fontFamily", defaults.font_family),
            font_weight=style_raw.get("fontWeight"),
            text_align=style_raw.get("textAlign"),
        ),
        position=_position(raw.get("position")),
    )


def _image_content(raw: Dict[str, Any], path: str) -> ImageContent:
    return ImageContent(
        src=parse_image_source(_require(raw, "src", path), f"{path}.src"),
        fit=_enum(ImageFit, raw.get("fit", "cover"), f"{path}.fit"),
        position=_position(raw.get("position")),
    )


def _video_content(raw: Dict[str, Any], path: str) -> VideoContent:
    trim = None
    if raw.get("trim") is not None:
        trim_raw = _object(raw["trim"], f"{path}.trim")
        end = trim_raw.get("end")
        trim = VideoTrim(
            start=_number(trim_raw.get("start", 0), f"{path}.trim.start"),
            end=_number(end, f"{path}.trim.end") if end is not None else None,
        )
    return VideoContent(src=str(_require(raw, "src", path)), trim=trim)


def _layer(raw: Any, path: str) -> Layer:
    raw = _object(raw, path)
    layer_type = _enum(SceneType, _require(raw, "type", path), f"{path}.type")
    content_raw = _object(_require(raw, "content", path), f"{path}.content")

    if layer_type == SceneType.TEXT:
        content = _text_content(content_raw, f"{path}.content")
    elif layer_type == SceneType.IMAGE:
        content = _image_content(content_raw, f"{path}.content")
    else:
        raise ValidationError(
            f"{path}.type must be text or image",
            "INVALID_VALUE",
            {"path": f"{path}.type"},
        )

    opacity = raw.get("opacity")
    return Layer(
        type=layer_type,
        content=content,
        z_index=raw.get("zIndex"),
        opacity=_number(opacity, f"{path}.opacity") if opacity is not None else None,
    )


def _voice(raw: Any, path: str) -> Optional[Voice]:
    if not raw:
        return None
    raw = _object(raw, path)

    def optional(key: str) -> Optional[float]:
        value = raw.get(key)
        return _number(value, f"{path}.{key}") if value is not None else None

    return Voice(
        language_code=raw.get("languageCode"),
        name=raw.get("name"),
        speaking_rate=optional("speakingRate"),
        pitch=optional("pitch"),
        volume_gain_db=optional("volumeGainDb"),
    )


def _narration(raw: Any, path: str) -> Narration:
    raw = _object(raw, path)
    timing_raw = raw.get("timing")
    timing = None
    if timing_raw:
        timing = NarrationTiming(
            delay=float(timing_raw.get("delay", 0)),
            fade_in=float(timing_raw.get("fadeIn", 0)),
            fade_out=float(timing_raw.get("fadeOut", 0)),
        )
    return Narration(
        text=str(_require(raw, "text", path)),
        voice=_voice(raw.get("voice"), f"{path}.voice"),
        timing=timing,
    )


def _transition(raw: Any, path: str) -> Transition:
    raw = _object(raw, path)
    return Transition(
        type=_enum(TransitionType, _require(raw, "type", path), f"{path}.type"),
        duration=_number(raw.get("duration", 0.5), f"{path}.duration"),
        direction=raw.get("direction"),
    )


def _animation(raw: Any, path: str) -> Animation:
    raw = _object(raw, path)
    return Animation(
        type=_enum(AnimationType, _require(raw, "type", path), f"{path}.type"),
        duration=_number(raw.get("duration", 1.0), f"{path}.duration", positive=True),
    )


def _scene(raw: Any, index: int) -> Scene:
    path = f"scenes[{index}]"
    raw = _object(raw, path)
    scene_type = _enum(SceneType, _require(raw, "type", path), f"{path}.type")
    content_path = f"{path}.content"

    if scene_type == SceneType.COMPOSITE:
        layers = raw.get("layers")
        if layers is None:
            layers = (raw.get("content") or {}).get("layers", [])
        content = CompositeContent(layers=[_layer(l, f"{path}.layers[{i}]") for i, l in enumerate(layers)])
    else:
        content_raw = _object(_require(raw, "content", path), content_path)
        if scene_type == SceneType.TEXT:
            content = _text_content(content_raw, content_path)
        elif scene_type == SceneType.IMAGE:
            content = _image_content(content_raw, content_path)
        else:
            content = _video_content(content_raw, content_path)

    background = None
    if raw.get("background") is not None:
        bg = _object(raw["background"], f"{path}.background")
        background = Background(type=bg.get("type", "color"), value=str(_require(bg, "value", f"{path}.background")))

    return Scene(
        id=str(_require(raw, "id", path)),
        type=scene_type,
        duration=_number(_require(raw, "duration", path), f"{path}.duration", positive=True),
        content=content,
        background=background,
        transition=_transition(raw["transition"], f"{path}.transition") if raw.get("transition") else None,
        narration=_narration(raw["narration"], f"{path}.narration") if raw.get("narration") else None,
        animation=_animation(raw["animation"], f"{path}.animation") if raw.get("animation") else None,
    )


def _settings(raw: Dict[str, Any]) -> ProjectSettings:
    defaults_raw = raw.get("narrationDefaults")
    narration_defaults = None
    if defaults_raw:
        mix_raw = defaults_raw.get("volumeMix")
        narration_defaults = NarrationDefaults(
            voice=_voice(defaults_raw.get("voice"), "settings.narrationDefaults.voice"),
            volume_mix=VolumeMix(
                narration=float(mix_raw.get("narration", 1.0)),
                bgm=float(mix_raw.get("bgm", 0.3)),
            ) if mix_raw else None,
        )

    fps = _number(_require(raw, "fps", "settings"), "settings.fps", positive=True)
    if not fps.is_integer():
        raise ValidationError(f"settings.fps must be a whole number (got {fps})", "INVALID_FPS", {"path": "settings.fps"})

    duration = raw.get("duration")
    return ProjectSettings(
        resolution=str(_require(raw, "resolution", "settings")),
        fps=int(fps),
        duration=float(duration) if duration is not None else None,
        narration_defaults=narration_defaults,
    )


def _audio(raw: Any) -> Optional[AudioSettings]:
    if not raw:
        return None
    raw = _object(raw, "audio")
    music_raw = raw.get("backgroundMusic")
    if not music_raw:
        return AudioSettings()

    music_raw = _object(music_raw, "audio.backgroundMusic")

    def optional(key: str) -> Optional[float]:
        value = music_raw.get(key)
        return _number(value, f"audio.backgroundMusic.{key}") if value is not None else None

    return AudioSettings(background_music=BackgroundMusic(
        src=parse_music_source(_require(music_raw, "src", "audio.backgroundMusic"), "audio.backgroundMusic.src"),
        volume=optional("volume"),
        fade_in=optional("fadeIn"),
        fade_out=optional("fadeOut"),
    ))


def parse_project(data: Any, base_dir: Union[str, Path] = ".") -> Project:
    """
    Build a Project from decoded JSON.

    Raises:
        ValidationError: If a required field is missing or has the wrong shape
    """
    data = _object(data, "project")
    scenes_raw = _require(data, "scenes", "project")
    if not isinstance(scenes_raw, list) or not scenes_raw:
        raise ValidationError("Project must contain at least one scene", "NO_SCENES", {"path": "scenes"})

    return Project(
        version=str(data.get("version", "1.0")),
        name=str(data.get("name", "untitled")),
        settings=_settings(_object(_require(data, "settings", "project"), "settings")),
        scenes=[_scene(s, i) for i, s in enumerate(scenes_raw)],
        audio=_audio(data.get("audio")),
        base_dir=Path(base_dir).resolve(),
    )


def load_project(path: Union[str, Path]) -> Project:
    """
    Load a project file.

    Raises:
        ParseError: FILE_NOT_FOUND, INVALID_JSON or PARSE_ERROR
        ValidationError: If the content does not describe a project
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ParseError(f"Project file not found: {path}", "FILE_NOT_FOUND", {"path": str(path)})
    except OSError as e:
        raise ParseError(f"Cannot read project file {path}: {e}", "PARSE_ERROR", {"path": str(path)})

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Invalid JSON in {path}: {e.msg} (line {e.lineno}, column {e.colno})",
            "INVALID_JSON",
            {"path": str(path), "line": e.lineno, "column": e.colno},
        )

    project = parse_project(data, base_dir=path.parent)
    logger.info(f"Loaded project {project.name!r} with {len(project.scenes)} scenes")
    return project


# ============================================================
# Validation
# ============================================================

def ensure_unique_scene_ids(project: Project) -> None:
    """
    Reject projects that reuse a scene id.

    Scene ids name the temp clips and key the narration results, so a
    duplicate would render one scene twice.

    Raises:
        ValidationError: DUPLICATE_ID for the first repeated id
    """
    seen = set()
    for i, scene in enumerate(project.scenes):
        if scene.id in seen:
            raise ValidationError(
                f"Duplicate scene id: {scene.id}",
                "DUPLICATE_ID",
                {"path": f"scenes[{i}].id", "sceneId": scene.id},
            )
        seen.add(scene.id)


def _check_file(project: Project, source: Any, path: str, issues: List[ValidationIssue]) -> None:
    if isinstance(source, FileSource):
        source = source.path
    if isinstance(source, str) and not project.resolve_path(source).exists():
        issues.append(ValidationIssue("FILE_NOT_FOUND", f"File not found: {source}", path))


def _check_color(value: Optional[str], path: str, issues: List[ValidationIssue]) -> None:
    if value is not None and not COLOR_RE.match(value):
        issues.append(ValidationIssue("INVALID_COLOR", f"Invalid color {value!r} (expected #RRGGBB)", path))


def _check_volume(value: Optional[float], path: str, issues: List[ValidationIssue]) -> None:
    if value is not None and not 0 <= value <= 1:
        issues.append(ValidationIssue("INVALID_VOLUME", f"Volume must be between 0 and 1 (got {value})", path))


def validate_project(project: Project) -> List[ValidationIssue]:
    """
    Check a parsed project for content problems.

    Returns:
        Issues found; an empty list means the project is renderable
    """
    issues: List[ValidationIssue] = []
    settings = project.settings

    if not RESOLUTION_RE.match(settings.resolution):
        issues.append(ValidationIssue(
            "INVALID_RESOLUTION",
            f"Invalid resolution {settings.resolution!r} (expected WIDTHxHEIGHT)",
            "settings.resolution",
        ))
    if not 1 <= settings.fps <= MAX_FPS:
        issues.append(ValidationIssue("INVALID_FPS", f"fps must be between 1 and {MAX_FPS}", "settings.fps"))

    mix = settings.narration_defaults.volume_mix if settings.narration_defaults else None
    if mix:
        _check_volume(mix.narration, "settings.narrationDefaults.volumeMix.narration", issues)
        _check_volume(mix.bgm, "settings.narrationDefaults.volumeMix.bgm", issues)

    seen = set()
    for i, scene in enumerate(project.scenes):
        path = f"scenes[{i}]"
        if scene.id in seen:
            issues.append(ValidationIssue("DUPLICATE_ID", f"Duplicate scene id: {scene.id}", f"{path}.id"))
        seen.add(scene.id)

        if scene.background:
            if scene.background.type == "color":
                _check_color(scene.background.value, f"{path}.background.value", issues)
            elif scene.background.type == "image":
                _check_file(project, scene.background.value, f"{path}.background.value", issues)

        content = scene.content
        if isinstance(content, TextContent):
            _check_color(content.style.color, f"{path}.content.style.color", issues)
        elif isinstance(content, ImageContent):
            _check_file(project, content.src, f"{path}.content.src", issues)
        elif isinstance(content, VideoContent):
            _check_file(project, content.src, f"{path}.content.src", issues)
            trim = content.trim
            if trim and trim.end is not None and trim.start >= trim.end:
                issues.append(ValidationIssue(
                    "INVALID_TRIM",
                    f"Trim start ({trim.start}) must be before end ({trim.end})",
                    f"{path}.content.trim",
                ))
        elif isinstance(content, CompositeContent):
            if not content.layers:
                issues.append(ValidationIssue("MISSING_LAYERS", "Composite scene has no layers", f"{path}.layers"))
            for j, layer in enumerate(content.layers):
                layer_path = f"{path}.layers[{j}]"
                if isinstance(layer.content, ImageContent):
                    _check_file(project, layer.content.src, f"{layer_path}.content.src", issues)
                else:
                    _check_color(layer.content.style.color, f"{layer_path}.content.style.color", issues)
                _check_volume(layer.opacity, f"{layer_path}.opacity", issues)

    music = project.background_music
    if music:
        _check_file(project, music.src, "audio.backgroundMusic.src", issues)
        _check_volume(music.volume, "audio.backgroundMusic.volume", issues)

    return issues
