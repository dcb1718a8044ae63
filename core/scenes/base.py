"""
Scene renderer contract and shared clip helpers.

Each scene variant has one concrete renderer class. They share no base
class; instead they satisfy the SceneRenderer protocol and reuse the
helpers below.
"""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Tuple

from core.animation import build_animation_filter
from core.browser import HtmlRenderer
from core.caching.keys import DEFAULT_VOICE, merge_voice
from core.errors import RenderError
from core.ffmpeg import FFmpegService
from core.generation import GenerationResolver
from core.models.project import NarrationDefaults, NarrationTiming, Scene
from core.models.render import NarrationMix

_RESOLUTION_RE = re.compile(r"^(\d+)x(\d+)$")
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]")

# Narration gain when the voice sets no volumeGainDb
DEFAULT_NARRATION_VOLUME = 0.8


def parse_resolution(resolution: str) -> Tuple[int, int]:
    """
    Parse a ``WIDTHxHEIGHT`` string.

    Raises:
        RenderError: INVALID_RESOLUTION if the string is malformed
    """
    match = _RESOLUTION_RE.match(resolution or "")
    if not match or int(match.group(1)) == 0 or int(match.group(2)) == 0:
        raise RenderError(
            f"Invalid resolution: {resolution!r} (expected WIDTHxHEIGHT)",
            "INVALID_RESOLUTION",
            {"resolution": resolution},
        )
    return int(match.group(1)), int(match.group(2))


def scene_file_stem(scene_id: str) -> str:
    """
    Filesystem-safe stem for a scene's temp files.

    Unsafe characters become underscores; a rewritten id gets a short digest
    suffix so two ids never share a stem.
    """
    safe = _UNSAFE_NAME_RE.sub("_", scene_id)
    if safe != scene_id:
        safe = f"{safe}_{hashlib.sha1(scene_id.encode('utf-8')).hexdigest()[:8]}"
    return f"scene_{safe}"


@dataclass
class SceneContext:
    """
    Everything a renderer needs besides its scene.

    Attributes:
        temp_dir: Scratch directory for this render
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Output frame rate
        ffmpeg: Encoder wrapper
        html_renderer: HTML to PNG renderer
        resolver: Cache-or-generate source resolver
        narration_defaults: Project-wide narration voice and mix settings
    """
    temp_dir: Path
    width: int
    height: int
    fps: int
    ffmpeg: FFmpegService
    html_renderer: HtmlRenderer
    resolver: GenerationResolver
    narration_defaults: Optional[NarrationDefaults] = None

    def static_path(self, scene: Scene) -> Path:
        return self.temp_dir / f"{scene_file_stem(scene.id)}.png"

    def video_path(self, scene: Scene) -> Path:
        return self.temp_dir / f"{scene_file_stem(scene.id)}.mp4"

    def narrated_path(self, scene: Scene) -> Path:
        return self.temp_dir / f"{scene_file_stem(scene.id)}_narrated.mp4"


class SceneRenderer(Protocol):
    """Capabilities every scene renderer provides."""

    scene: Scene

    def validate(self) -> None:
        """Raise a RenderError if the scene cannot be rendered."""
        ...

    async def render_static(self) -> Path:
        """Render a single still frame and return its path."""
        ...

    async def render_video(self) -> Path:
        """Render a clip of exactly the scene's duration and return its path."""
        ...

    def set_narration_path(self, path: Optional[Path]) -> None:
        """Attach narration audio to be muxed by render_video()."""
        ...


def narration_mix(scene: Scene, defaults: Optional[NarrationDefaults]) -> NarrationMix:
    """Volume and timing used when muxing a scene's narration."""
    narration = scene.narration
    voice = merge_voice(
        DEFAULT_VOICE,
        defaults.voice if defaults else None,
        narration.voice if narration else None,
    )
    gain_db = voice.volume_gain_db
    timing = (narration.timing if narration else None) or NarrationTiming()

    return NarrationMix(
        volume=10 ** (gain_db / 20) if gain_db else DEFAULT_NARRATION_VOLUME,
        delay=timing.delay,
        fade_in=timing.fade_in,
        fade_out=timing.fade_out,
    )


async def mux_narration(
    context: SceneContext,
    scene: Scene,
    clip: Path,
    narration_path: Optional[Path]
) -> Path:
    """Lay narration over a clip; returns the clip unchanged without narration."""
    if narration_path is None:
        return clip
    return await context.ffmpeg.add_narration(
        clip,
        narration_path,
        context.narrated_path(scene),
        narration_mix(scene, context.narration_defaults),
        scene.duration,
    )


async def still_to_clip(
    context: SceneContext,
    scene: Scene,
    still_path: Path,
    narration_path: Optional[Path] = None
) -> Path:
    """Loop a still into the scene's clip, animating and narrating it."""
    clip = await context.ffmpeg.image_to_video(
        still_path,
        context.video_path(scene),
        duration=scene.duration,
        fps=context.fps,
        width=context.width,
        height=context.height,
        video_filter=build_animation_filter(
            scene.animation, scene.duration, context.fps, context.width, context.height
        ),
    )
    return await mux_narration(context, scene, clip, narration_path)
