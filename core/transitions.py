"""
Scene-to-scene transitions.

A transition is declared on the earlier scene of a pair and merges that
scene's clip with the next one using ffmpeg's xfade filter.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from core.errors import RenderError
from core.ffmpeg import FFmpegService
from core.models.project import Scene, Transition, TransitionType

logger = logging.getLogger(__name__)

WIPE_DIRECTIONS = ("left", "right", "up", "down")
DEFAULT_WIPE_DIRECTION = "left"


def xfade_name(transition: Transition) -> str:
    """Map a transition to the xfade transition name."""
    if transition.type == TransitionType.FADE:
        return "fade"
    if transition.type == TransitionType.DISSOLVE:
        return "dissolve"
    if transition.type == TransitionType.WIPE:
        direction = transition.direction or DEFAULT_WIPE_DIRECTION
        if direction not in WIPE_DIRECTIONS:
            raise RenderError(
                f"Invalid wipe direction: {direction}",
                "INVALID_TRANSITION",
                {"direction": direction},
            )
        return f"wipe{direction}"
    raise RenderError(
        f"Unsupported transition: {transition.type}",
        "INVALID_TRANSITION",
        {"type": str(transition.type)},
    )


class TransitionEngine:
    """Applies declared transitions to an ordered list of scene clips."""

    def __init__(self, ffmpeg: FFmpegService):
        self.ffmpeg = ffmpeg

    async def apply_transition(
        self,
        transition: Transition,
        first: Path,
        second: Path,
        output_path: Path
    ) -> Path:
        """
        Merge two clips with one transition.

        The blend starts ``transition.duration`` seconds before the end of
        the first clip, using its measured length.
        """
        first_duration = await self.ffmpeg.media_duration(first)
        if first_duration is None:
            raise RenderError(
                f"Cannot measure clip duration: {first}",
                "INVALID_CLIP",
                {"path": str(first)},
            )

        offset = max(0.0, first_duration - transition.duration)
        with_audio = (
            await self.ffmpeg.has_audio_stream(first)
            and await self.ffmpeg.has_audio_stream(second)
        )

        return await self.ffmpeg.xfade(
            first,
            second,
            output_path,
            transition=xfade_name(transition),
            duration=transition.duration,
            offset=round(offset, 3),
            with_audio=with_audio,
        )

    async def apply_transitions(
        self,
        scenes: Sequence[Scene],
        clip_paths: Sequence[Path],
        work_dir: Path
    ) -> List[Path]:
        """
        Apply every declared transition.

        Transitions are processed from the second-to-last scene down to the
        first. Each merge replaces clips[i] and clips[i + 1] with one clip;
        walking downwards means clips[i] is always the scene's own clip and
        clips[i + 1] is the next scene's clip or a clip already merged from it.

        Returns:
            New clip list, shorter by one per applied transition
        """
        if len(scenes) != len(clip_paths):
            raise RenderError(
                "Scene and clip counts differ",
                "INVALID_CLIP",
                {"scenes": len(scenes), "clips": len(clip_paths)},
            )

        clips = list(clip_paths)
        for i in range(len(scenes) - 2, -1, -1):
            transition: Optional[Transition] = scenes[i].transition
            if transition is None or transition.duration <= 0:
                continue

            output = work_dir / f"transition_{i}.mp4"
            logger.info(
                f"Applying {transition.type.value} transition {scenes[i].id} -> {scenes[i + 1].id}"
            )
            merged = await self.apply_transition(transition, clips[i], clips[i + 1], output)
            clips[i:i + 2] = [merged]

        return clips
