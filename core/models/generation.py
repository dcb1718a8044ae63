"""
Generation source models

An image or music source in a project is either a literal file path or a
deferred generation request. Both the ``generate://<prompt>`` string form and
the ``{"type": "generate", ...}`` object form are parsed here into one
discriminated union so nothing downstream looks at the raw JSON shape again.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union
from enum import Enum

from core.errors import ValidationError


GENERATE_SCHEME = "generate://"

IMAGE_MODEL = "gemini-2.0-flash-preview-image-generation"
MUSIC_MODEL = "models/lyria-realtime-exp"
TTS_MODEL = "gemini-2.5-flash-preview-tts"


class ImageStyle(Enum):
    """Styles understood by the image generator"""
    PHOTOREALISTIC = "photorealistic"
    ILLUSTRATION = "illustration"
    ANIME = "anime"
    SKETCH = "sketch"


class MusicScale(Enum):
    """Musical scale presets for realtime music generation"""
    C_MAJOR_A_MINOR = "C_MAJOR_A_MINOR"
    D_FLAT_MAJOR_B_FLAT_MINOR = "D_FLAT_MAJOR_B_FLAT_MINOR"
    D_MAJOR_B_MINOR = "D_MAJOR_B_MINOR"
    E_FLAT_MAJOR_C_MINOR = "E_FLAT_MAJOR_C_MINOR"
    E_MAJOR_D_FLAT_MINOR = "E_MAJOR_D_FLAT_MINOR"
    F_MAJOR_D_MINOR = "F_MAJOR_D_MINOR"
    G_FLAT_MAJOR_E_FLAT_MINOR = "G_FLAT_MAJOR_E_FLAT_MINOR"
    G_MAJOR_E_MINOR = "G_MAJOR_E_MINOR"
    A_FLAT_MAJOR_F_MINOR = "A_FLAT_MAJOR_F_MINOR"
    A_MAJOR_G_FLAT_MINOR = "A_MAJOR_G_FLAT_MINOR"
    B_FLAT_MAJOR_G_MINOR = "B_FLAT_MAJOR_G_MINOR"
    B_MAJOR_A_FLAT_MINOR = "B_MAJOR_A_FLAT_MINOR"
    SCALE_UNSPECIFIED = "SCALE_UNSPECIFIED"


DEFAULT_IMAGE_STYLE = ImageStyle.PHOTOREALISTIC.value
DEFAULT_ASPECT_RATIO = "16:9"


@dataclass(frozen=True)
class FileSource:
    """A literal asset path, relative to the project directory"""
    path: str


@dataclass(frozen=True)
class GenerateImageParams:
    """Deferred image generation request"""
    prompt: str
    style: Optional[str] = None
    aspect_ratio: Optional[str] = None
    seed: Optional[int] = None

    def normalized(self) -> Dict[str, Any]:
        """Parameters with defaults filled in, as used for cache keys."""
        return {
            "prompt": self.prompt,
            "style": self.style or DEFAULT_IMAGE_STYLE,
            "aspectRatio": self.aspect_ratio or DEFAULT_ASPECT_RATIO,
            "seed": self.seed,
        }


@dataclass(frozen=True)
class WeightedPrompt:
    """One entry of a multi-prompt music request"""
    text: str
    weight: float = 1.0


@dataclass(frozen=True)
class MusicConfig:
    """Realtime music generation controls"""
    bpm: int = 120
    temperature: float = 1.0
    guidance: float = 4.0
    density: float = 0.7
    brightness: float = 0.6
    scale: Optional[str] = None
    mute_bass: bool = False
    mute_drums: bool = False
    only_bass_and_drums: bool = False

    def to_api(self) -> Dict[str, Any]:
        """Camel-cased form sent to the music API and used in cache keys."""
        config = {
            "bpm": self.bpm,
            "temperature": self.temperature,
            "guidance": self.guidance,
            "density": self.density,
            "brightness": self.brightness,
            "muteBass": self.mute_bass,
            "muteDrums": self.mute_drums,
            "onlyBassAndDrums": self.only_bass_and_drums,
        }
        if self.scale:
            config["scale"] = self.scale
        return config


@dataclass(frozen=True)
class GenerateMusicParams:
    """Deferred music generation request"""
    prompt: Optional[str] = None
    prompts: Tuple[WeightedPrompt, ...] = ()
    config: MusicConfig = field(default_factory=MusicConfig)
    duration: Optional[float] = None
    seed: Optional[int] = None

    def weighted_prompts(self) -> List[WeightedPrompt]:
        """A single prompt becomes one prompt of weight 1.0."""
        if self.prompts:
            return list(self.prompts)
        return [WeightedPrompt(text=self.prompt or "")]

    def normalized(self) -> Dict[str, Any]:
        return {
            "prompt": self.prompt,
            "prompts": [asdict(p) for p in self.prompts],
            "config": self.config.to_api(),
            "duration": self.duration,
            "seed": self.seed,
            "model": MUSIC_MODEL,
        }


ImageSource = Union[FileSource, GenerateImageParams]
MusicSource = Union[FileSource, GenerateMusicParams]


def is_generate_source(raw: Any) -> bool:
    """Check whether a raw source field requests generation."""
    if isinstance(raw, str):
        return raw.startswith(GENERATE_SCHEME)
    return isinstance(raw, dict) and raw.get("type") == "generate"


def _prompt_from_url(raw: str, path: str) -> str:
    prompt = raw[len(GENERATE_SCHEME):].strip()
    if not prompt:
        raise ValidationError(
            "Generate URL must contain a prompt",
            "EMPTY_PROMPT",
            {"path": path, "value": raw},
        )
    return prompt


def _optional_int(value: Any, path: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        raise ValidationError(f"{path} must be an integer", "INVALID_TYPE", {"path": path})
    return int(value)


def _float(value: Any, path: str) -> float:
    # JSON 1 and 1.0 must normalize to the same cache key
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{path} must be a number", "INVALID_TYPE", {"path": path})
    return float(value)


def parse_image_source(raw: Any, path: str = "src") -> ImageSource:
    """
    Parse an image ``src`` field.

    Args:
        raw: A file path, a ``generate://`` URL or a generate object
        path: Field path used in error details

    Returns:
        FileSource or GenerateImageParams
    """
    if isinstance(raw, str):
        if raw.startswith(GENERATE_SCHEME):
            return GenerateImageParams(prompt=_prompt_from_url(raw, path))
        if not raw:
            raise ValidationError("Image source is empty", "MISSING_IMAGE_SOURCE", {"path": path})
        return FileSource(raw)

    if not isinstance(raw, dict) or raw.get("type") != "generate":
        raise ValidationError(
            "Image source must be a path or a generate request",
            "INVALID_SOURCE",
            {"path": path},
        )

    prompt = raw.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Generate request requires a prompt", "EMPTY_PROMPT", {"path": path})

    style = raw.get("style")
    if style is not None and style not in {s.value for s in ImageStyle}:
        raise ValidationError(
            f"Unsupported image style: {style}",
            "INVALID_STYLE",
            {"path": f"{path}.style", "allowed": [s.value for s in ImageStyle]},
        )

    return GenerateImageParams(
        prompt=prompt.strip(),
        style=style,
        aspect_ratio=raw.get("aspectRatio"),
        seed=_optional_int(raw.get("seed"), f"{path}.seed"),
    )


def _parse_music_config(raw: Any, path: str) -> MusicConfig:
    if raw is None:
        return MusicConfig()
    if not isinstance(raw, dict):
        raise ValidationError("Music config must be an object", "INVALID_TYPE", {"path": path})

    scale = raw.get("scale")
    if scale is not None and scale not in {s.value for s in MusicScale}:
        raise ValidationError(f"Unsupported scale: {scale}", "INVALID_SCALE", {"path": f"{path}.scale"})

    defaults = MusicConfig()

    def number(key: str) -> float:
        value = raw.get(key)
        return getattr(defaults, key) if value is None else _float(value, f"{path}.{key}")

    bpm = _optional_int(raw.get("bpm"), f"{path}.bpm")
    return MusicConfig(
        bpm=defaults.bpm if bpm is None else bpm,
        temperature=number("temperature"),
        guidance=number("guidance"),
        density=number("density"),
        brightness=number("brightness"),
        scale=scale,
        mute_bass=bool(raw.get("muteBass", defaults.mute_bass)),
        mute_drums=bool(raw.get("muteDrums", defaults.mute_drums)),
        only_bass_and_drums=bool(raw.get("onlyBassAndDrums", defaults.only_bass_and_drums)),
    )


def parse_music_source(raw: Any, path: str = "src") -> MusicSource:
    """
    Parse a background music ``src`` field.

    A music request needs either ``prompt`` or a non-empty ``prompts`` list.
    """
    if isinstance(raw, str):
        if raw.startswith(GENERATE_SCHEME):
            return GenerateMusicParams(prompt=_prompt_from_url(raw, path))
        if not raw:
            raise ValidationError("Music source is empty", "MISSING_MUSIC_SOURCE", {"path": path})
        return FileSource(raw)

    if not isinstance(raw, dict) or raw.get("type") != "generate":
        raise ValidationError(
            "Music source must be a path or a generate request",
            "INVALID_SOURCE",
            {"path": path},
        )

    prompt = raw.get("prompt")
    if isinstance(prompt, str):
        prompt = prompt.strip() or None

    prompts = []
    for i, item in enumerate(raw.get("prompts") or []):
        if not isinstance(item, dict) or not item.get("text"):
            raise ValidationError(
                "Weighted prompt requires text",
                "INVALID_PROMPT",
                {"path": f"{path}.prompts[{i}]"},
            )
        prompts.append(WeightedPrompt(
            text=item["text"],
            weight=_float(item.get("weight", 1.0), f"{path}.prompts[{i}].weight"),
        ))

    if not prompt and not prompts:
        raise ValidationError(
            "Music generate request requires prompt or prompts",
            "EMPTY_PROMPT",
            {"path": path},
        )

    duration = raw.get("duration")
    if duration is not None and (not isinstance(duration, (int, float)) or duration <= 0):
        raise ValidationError("Music duration must be positive", "INVALID_DURATION", {"path": f"{path}.duration"})

    return GenerateMusicParams(
        prompt=prompt,
        prompts=tuple(prompts),
        config=_parse_music_config(raw.get("config"), f"{path}.config"),
        duration=float(duration) if duration is not None else None,
        seed=_optional_int(raw.get("seed"), f"{path}.seed"),
    )
