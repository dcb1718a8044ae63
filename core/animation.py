"""FFmpeg filter expressions for per-scene animations."""

from typing import Optional

from core.models.project import Animation, AnimationType

# Peak zoom factor reached at the end of a zoom animation
ZOOM_FACTOR = 1.2


def _zoom_filter(zoom_in: bool, duration: float, fps: int, width: int, height: int) -> str:
    frames = max(1, int(round(duration * fps)))
    step = (ZOOM_FACTOR - 1.0) / frames
    if zoom_in:
        zoom = f"min(1+on*{step:.6f},{ZOOM_FACTOR})"
    else:
        zoom = f"max({ZOOM_FACTOR}-on*{step:.6f},1)"
    return (
        f"zoompan=z='{zoom}':d=1"
        f":x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
        f":s={width}x{height}:fps={fps}"
    )


def build_animation_filter(
    animation: Optional[Animation],
    scene_duration: float,
    fps: int,
    width: int,
    height: int
) -> Optional[str]:
    """
    Filter chain for a scene's animation, or None when it has none.

    The animation never runs longer than the scene.
    """
    if animation is None:
        return None

    duration = min(animation.duration, scene_duration)

    if animation.type == AnimationType.FADE_IN:
        return f"fade=t=in:st=0:d={duration}"
    if animation.type == AnimationType.FADE_OUT:
        return f"fade=t=out:st={max(0.0, scene_duration - duration)}:d={duration}"
    if animation.type == AnimationType.ZOOM_IN:
        return _zoom_filter(True, duration, fps, width, height)
    if animation.type == AnimationType.ZOOM_OUT:
        return _zoom_filter(False, duration, fps, width, height)
    return None
