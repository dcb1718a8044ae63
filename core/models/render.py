"""
Render models for FFmpeg video assembly

These models carry the encoding configuration, the per-invocation render
options and the results produced by the render pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional


ProgressCallback = Callable[[float, str], None]


@dataclass
class RenderConfig:
    """
    Encoding configuration shared by every FFmpeg step.

    Attributes:
        video_codec: Video codec (libx264 for compatibility)
        audio_codec: Audio codec (aac)
        audio_bitrate: Audio bitrate for aac tracks (e.g., "192k")
        audio_sample_rate: Sample rate every clip's audio is normalized to
        audio_channels: Channel count every clip's audio is normalized to
        pixel_format: Pixel format (yuv420p for compatibility)
        music_bitrate: Bitrate for cached MP3 music
    """
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    audio_sample_rate: int = 48000
    audio_channels: int = 2
    pixel_format: str = "yuv420p"
    music_codec: str = "libmp3lame"
    music_bitrate: str = "192k"

    # Quality preset (ultrafast, fast, medium, slow, veryslow)
    preset: str = "fast"

    # CRF for quality-based encoding (0-51, lower = better, 23 is default)
    crf: int = 23


@dataclass(frozen=True)
class RenderOptions:
    """
    Options for one render invocation.

    Attributes:
        output_path: Final video path
        temp_dir: Scratch directory (default: ``<output dir>/.reelsmith-temp``)
        concurrency: Maximum scenes rendered at once
        keep_temp: Keep the scratch directory after the render
        on_progress: Called with (percent, message) as phases advance
    """
    output_path: Path
    temp_dir: Optional[Path] = None
    concurrency: int = 2
    keep_temp: bool = False
    on_progress: Optional[ProgressCallback] = None

    @property
    def resolved_temp_dir(self) -> Path:
        if self.temp_dir is not None:
            return Path(self.temp_dir)
        return Path(self.output_path).parent / ".reelsmith-temp"


@dataclass
class NarrationResult:
    """Narration audio resolved for one scene"""
    scene_id: str
    audio_path: Path
    duration: Optional[float] = None
    cached: bool = False


@dataclass
class NarrationMix:
    """
    How narration is laid over a scene clip.

    Attributes:
        volume: Linear gain applied to the narration
        delay: Seconds of silence before narration starts
        fade_in: Narration fade-in length in seconds
        fade_out: Narration fade-out length in seconds
        source_volume: Gain for audio already in the clip (video scenes)
    """
    volume: float = 0.8
    delay: float = 0.0
    fade_in: float = 0.0
    fade_out: float = 0.0
    source_volume: float = 0.3


@dataclass
class RenderResult:
    """
    Result from a completed render.

    Attributes:
        output_path: Path to the rendered video file
        duration: Measured duration of the output in seconds
        scene_count: Number of scenes rendered
        narrated_scenes: IDs of scenes that received narration audio
        render_time: Wall-clock seconds spent rendering
    """
    output_path: Path
    duration: Optional[float] = None
    scene_count: int = 0
    narrated_scenes: List[str] = field(default_factory=list)
    render_time: Optional[float] = None
    clip_paths: List[Path] = field(default_factory=list)

    def summary(self) -> Dict[str, object]:
        return {
            "output": str(self.output_path),
            "duration": self.duration,
            "scenes": self.scene_count,
            "narrated": len(self.narrated_scenes),
            "render_time": self.render_time,
        }
