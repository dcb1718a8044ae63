"""
FFmpeg wrapper for clip encoding, sequencing and audio mixing.

Every encoder call in the project goes through FFmpegService.execute(), which
streams stderr to parse progress and converts non-zero exits into FFmpegError.
"""

import asyncio
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from core.errors import FFmpegError, ProcessError
from core.models.render import NarrationMix, RenderConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ProgressHandler = Callable[[float], None]

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_TIME_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

# Keep only the tail of stderr in error details
_STDERR_TAIL = 4000


def parse_timestamp(hours: str, minutes: str, seconds: str) -> float:
    """Convert HH:MM:SS(.ff) components to seconds."""
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class ProgressParser:
    """
    Incremental parser for FFmpeg's diagnostic stream.

    FFmpeg prints ``Duration: HH:MM:SS.ff`` once per input and then rewrites
    a ``time=HH:MM:SS.ff`` status line (terminated by ``\\r``) as it encodes.
    When the caller knows the output duration (looped stills, concat lists)
    it takes precedence over the measured input duration.
    """

    def __init__(self, expected_duration: Optional[float] = None):
        self.total = expected_duration
        self._buffer = ""

    def feed(self, text: str) -> Optional[float]:
        """Consume a chunk of stderr; return the latest percent, if any."""
        self._buffer += text
        *lines, self._buffer = re.split(r"[\r\n]", self._buffer)

        percent = None
        for line in lines:
            if self.total is None:
                match = _DURATION_RE.search(line)
                if match:
                    self.total = parse_timestamp(*match.groups())
                    continue

            match = _TIME_RE.search(line)
            if match and self.total:
                elapsed = parse_timestamp(*match.groups())
                percent = max(0.0, min(100.0, elapsed / self.total * 100))

        return percent


class FFmpegService:
    """
    Thin async wrapper around the ffmpeg and ffprobe executables.

    Handles:
    - Still image to clip conversion
    - Trimming and frame extraction
    - Concatenation and xfade transitions
    - Narration muxing and background music mixing
    - Stream probing
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None
    ):
        """
        Initialize the service.

        Args:
            config: Encoding configuration (uses defaults if not provided)
            ffmpeg_path: Explicit ffmpeg executable (default: search PATH)
            ffprobe_path: Explicit ffprobe executable (default: next to ffmpeg)
        """
        self.config = config or RenderConfig()
        self._ffmpeg_path = ffmpeg_path or self._find_ffmpeg()
        self._ffprobe_path = ffprobe_path or self._find_ffprobe()

    def _find_ffmpeg(self) -> str:
        """Find FFmpeg executable."""
        ffmpeg = shutil.which("ffmpeg")
        if ffmpeg:
            return ffmpeg

        common_paths = [
            "/usr/local/bin/ffmpeg",
            "/opt/homebrew/bin/ffmpeg",
            r"C:\ffmpeg\bin\ffmpeg.exe",
            r"C:\Program Files\ffmpeg\bin\ffmpeg.exe",
        ]
        for path in common_paths:
            if os.path.exists(path):
                return path

        # Not found - check_installed() reports it, execute() raises
        return "ffmpeg"

    def _find_ffprobe(self) -> str:
        """Find FFprobe, preferring the one installed next to ffmpeg."""
        ffprobe = shutil.which("ffprobe")
        if ffprobe:
            return ffprobe

        ffmpeg_dir = os.path.dirname(self._ffmpeg_path)
        for name in ("ffprobe", "ffprobe.exe"):
            candidate = os.path.join(ffmpeg_dir, name)
            if ffmpeg_dir and os.path.exists(candidate):
                return candidate
        return "ffprobe"

    async def check_installed(self) -> Dict[str, Any]:
        """
        Check if FFmpeg is properly installed.

        Returns:
            Dict with installation status and version info
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffmpeg_path, "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            stdout, _ = await process.communicate()

            if process.returncode == 0:
                version_line = stdout.decode(errors="replace").split("\n")[0]
                return {
                    "installed": True,
                    "path": self._ffmpeg_path,
                    "version": version_line
                }
        except (FileNotFoundError, PermissionError):
            pass

        return {
            "installed": False,
            "path": None,
            "version": None,
            "error": "FFmpeg not found. Please install FFmpeg and add it to your PATH."
        }

    async def is_available(self) -> bool:
        info = await self.check_installed()
        return info["installed"]

    async def execute(
        self,
        args: Sequence[PathLike],
        on_progress: Optional[ProgressHandler] = None,
        expected_duration: Optional[float] = None
    ) -> str:
        """
        Run ffmpeg with the given arguments.

        Args:
            args: Arguments after the executable name
            on_progress: Called with a 0-100 percentage as encoding advances
            expected_duration: Output duration used as the progress denominator

        Returns:
            The full stderr text

        Raises:
            ProcessError: If the executable cannot be started
            FFmpegError: If ffmpeg exits with a non-zero status
        """
        cmd = [self._ffmpeg_path, "-hide_banner", *[str(a) for a in args]]
        logger.debug(f"ffmpeg: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ProcessError(
                f"Failed to start FFmpeg: {e}",
                "FFMPEG_EXECUTION_ERROR",
                {"executable": self._ffmpeg_path},
            ) from e

        parser = ProgressParser(expected_duration)
        chunks: List[str] = []
        while True:
            chunk = await process.stderr.read(4096)
            if not chunk:
                break
            text = chunk.decode(errors="replace")
            chunks.append(text)
            if on_progress:
                percent = parser.feed(text)
                if percent is not None:
                    on_progress(percent)

        returncode = await process.wait()
        stderr = "".join(chunks)

        if returncode != 0:
            raise FFmpegError(
                f"FFmpeg exited with code {returncode}",
                "FFMPEG_ERROR",
                {
                    "returncode": returncode,
                    "args": [str(a) for a in args],
                    "stderr": stderr[-_STDERR_TAIL:],
                },
            )

        if on_progress:
            on_progress(100.0)
        return stderr

    async def _run_ffprobe(self, args: Sequence[PathLike]) -> Optional[str]:
        """Run ffprobe and return stdout, or None if it fails."""
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path, "-v", "error", *[str(a) for a in args],
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.warning(f"ffprobe unavailable: {e}")
            return None

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            logger.debug(f"ffprobe failed: {stderr.decode(errors='replace').strip()}")
            return None
        return stdout.decode(errors="replace").strip()

    async def media_duration(self, path: PathLike) -> Optional[float]:
        """Get duration of a media file using FFprobe."""
        if not os.path.exists(path):
            return None

        output = await self._run_ffprobe([
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            path
        ])
        try:
            return float(output) if output else None
        except ValueError:
            return None

    async def has_audio_stream(self, path: PathLike) -> bool:
        """Check whether a media file carries at least one audio stream."""
        output = await self._run_ffprobe([
            "-select_streams", "a",
            "-show_entries", "stream=index",
            "-of", "csv=p=0",
            path
        ])
        return bool(output)

    def _require_inputs(self, *paths: PathLike) -> None:
        for path in paths:
            if not os.path.exists(path):
                raise FFmpegError(
                    f"Input file not found: {path}",
                    "INPUT_NOT_FOUND",
                    {"path": str(path)},
                )

    def _video_encode_args(self) -> List[str]:
        return [
            "-c:v", self.config.video_codec,
            "-preset", self.config.preset,
            "-crf", str(self.config.crf),
            "-pix_fmt", self.config.pixel_format,
        ]

    def _audio_encode_args(self) -> List[str]:
        return [
            "-c:a", self.config.audio_codec,
            "-b:a", self.config.audio_bitrate,
            "-ar", str(self.config.audio_sample_rate),
            "-ac", str(self.config.audio_channels),
        ]

    async def image_to_video(
        self,
        image_path: PathLike,
        output_path: PathLike,
        duration: float,
        fps: int,
        width: int,
        height: int,
        video_filter: Optional[str] = None,
        on_progress: Optional[ProgressHandler] = None
    ) -> Path:
        """
        Loop a still image into a silent clip of fixed duration.

        Args:
            image_path: Source still
            output_path: Destination clip
            duration: Clip length in seconds
            fps: Output frame rate
            width: Output width in pixels
            height: Output height in pixels
            video_filter: Extra filter chain appended after scaling
            on_progress: Optional progress handler

        Returns:
            The output path
        """
        self._require_inputs(image_path)

        filters = [f"scale={width}:{height}", "setsar=1"]
        if video_filter:
            filters.append(video_filter)

        await self.execute(
            [
                "-y",
                "-loop", "1",
                "-i", image_path,
                "-t", f"{duration}",
                "-r", str(fps),
                "-vf", ",".join(filters),
                *self._video_encode_args(),
                output_path,
            ],
            on_progress=on_progress,
            expected_duration=duration,
        )
        return Path(output_path)

    async def trim_video(
        self,
        input_path: PathLike,
        output_path: PathLike,
        start: float,
        duration: float,
        width: int,
        height: int,
        fps: int,
        target_duration: Optional[float] = None
    ) -> Path:
        """
        Cut a segment from a video, letterboxed to the output resolution.

        When ``target_duration`` is longer than the cut, the last frame is
        held (and audio padded with silence) so the clip has exactly that
        length.
        """
        self._require_inputs(input_path)
        target = target_duration or duration
        has_audio = await self.has_audio_stream(input_path)

        filters = [
            f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black",
            "setsar=1",
            f"fps={fps}",
        ]
        if target > duration:
            filters.append(f"tpad=stop_mode=clone:stop_duration={target - duration}")

        args: List[PathLike] = [
            "-y",
            "-ss", f"{start}",
            "-t", f"{duration}",
            "-i", input_path,
            "-vf", ",".join(filters),
            *self._video_encode_args(),
        ]
        if has_audio:
            args += ["-af", "apad", *self._audio_encode_args()]
        else:
            args += ["-an"]
        args += ["-t", f"{target}", output_path]

        await self.execute(args, expected_duration=target)
        return Path(output_path)

    async def extract_frame(
        self,
        input_path: PathLike,
        output_path: PathLike,
        at: float = 0.0
    ) -> Path:
        """Write the frame at ``at`` seconds as a still image."""
        self._require_inputs(input_path)
        await self.execute([
            "-y",
            "-ss", f"{at}",
            "-i", input_path,
            "-frames:v", "1",
            output_path,
        ])
        return Path(output_path)

    def _generate_concat_file(self, video_paths: Sequence[PathLike], directory: Path) -> Path:
        """Generate FFmpeg concat demuxer file."""
        fd, concat_path = tempfile.mkstemp(suffix=".txt", prefix="concat-list-", dir=directory)
        with os.fdopen(fd, "w") as f:
            for path in video_paths:
                abs_path = str(Path(path).resolve()).replace("\\", "/")
                # Escape single quotes and write in concat format
                escaped_path = abs_path.replace("'", "'\\''")
                f.write(f"file '{escaped_path}'\n")
        return Path(concat_path)

    async def concatenate(
        self,
        video_paths: Sequence[PathLike],
        output_path: PathLike,
        on_progress: Optional[ProgressHandler] = None,
        expected_duration: Optional[float] = None
    ) -> Path:
        """
        Join clips in order with the concat demuxer.

        Stream copy is tried first; if the clips' streams do not line up the
        join is retried with a re-encode.
        """
        if not video_paths:
            raise FFmpegError("No clips provided for concatenation", "INPUT_NOT_FOUND")
        self._require_inputs(*video_paths)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        concat_file = self._generate_concat_file(video_paths, output_path.parent)

        try:
            base_args: List[PathLike] = ["-y", "-f", "concat", "-safe", "0", "-i", concat_file]
            try:
                await self.execute(
                    [*base_args, "-c", "copy", output_path],
                    on_progress=on_progress,
                    expected_duration=expected_duration,
                )
            except FFmpegError as e:
                logger.warning(f"Stream-copy concat failed, re-encoding: {e.details.get('returncode')}")
                await self.execute(
                    [*base_args, *self._video_encode_args(), *self._audio_encode_args(), output_path],
                    on_progress=on_progress,
                    expected_duration=expected_duration,
                )
        finally:
            concat_file.unlink(missing_ok=True)

        return output_path

    async def xfade(
        self,
        first: PathLike,
        second: PathLike,
        output_path: PathLike,
        transition: str,
        duration: float,
        offset: float,
        with_audio: bool = False
    ) -> Path:
        """
        Blend two clips with an xfade transition.

        Args:
            first: Outgoing clip
            second: Incoming clip
            output_path: Merged clip
            transition: xfade transition name (fade, dissolve, wipeleft, ...)
            duration: Overlap length in seconds
            offset: Time in the first clip where the blend starts
            with_audio: Also crossfade the audio streams
        """
        self._require_inputs(first, second)

        filter_parts = [
            f"[0:v][1:v]xfade=transition={transition}:duration={duration}:offset={offset}[v]"
        ]
        maps = ["-map", "[v]"]
        if with_audio:
            filter_parts.append(f"[0:a][1:a]acrossfade=d={duration}[a]")
            maps += ["-map", "[a]"]

        args: List[PathLike] = [
            "-y",
            "-i", first,
            "-i", second,
            "-filter_complex", ";".join(filter_parts),
            *maps,
            *self._video_encode_args(),
        ]
        if with_audio:
            args += self._audio_encode_args()
        args.append(output_path)

        await self.execute(args)
        return Path(output_path)

    def _narration_chain(self, mix: NarrationMix, duration: float) -> List[str]:
        """Filters applied to a narration track laid over a clip."""
        chain = [f"volume={mix.volume:.4f}"]
        if mix.delay > 0:
            delay_ms = int(mix.delay * 1000)
            chain.append(f"adelay={delay_ms}|{delay_ms}")
        if mix.fade_in > 0:
            chain.append(f"afade=t=in:st={mix.delay}:d={mix.fade_in}")
        if mix.fade_out > 0:
            chain.append(f"afade=t=out:st={max(0.0, duration - mix.fade_out)}:d={mix.fade_out}")
        return chain

    async def add_narration(
        self,
        video_path: PathLike,
        narration_path: PathLike,
        output_path: PathLike,
        mix: NarrationMix,
        duration: float
    ) -> Path:
        """
        Mux narration into a clip, keeping the clip's length.

        If the clip already has audio (trimmed source video) it is kept
        underneath the narration at ``mix.source_volume``.
        """
        self._require_inputs(video_path, narration_path)
        video_has_audio = await self.has_audio_stream(video_path)

        narration = self._narration_chain(mix, duration)
        if video_has_audio:
            filter_complex = (
                f"[0:a]volume={mix.source_volume:.4f}[src];"
                f"[1:a]{','.join(narration)}[nar];"
                f"[src][nar]amix=inputs=2:duration=first:normalize=0,apad[a]"
            )
        else:
            filter_complex = f"[1:a]{','.join(narration)},apad[a]"

        await self.execute([
            "-y",
            "-i", video_path,
            "-i", narration_path,
            "-filter_complex", filter_complex,
            "-map", "0:v",
            "-map", "[a]",
            "-c:v", "copy",
            *self._audio_encode_args(),
            "-t", f"{duration}",
            output_path,
        ])
        return Path(output_path)

    async def add_silent_audio(self, video_path: PathLike, output_path: PathLike) -> Path:
        """Attach a silent audio track matching the clip length."""
        self._require_inputs(video_path)
        layout = "stereo" if self.config.audio_channels == 2 else "mono"
        await self.execute([
            "-y",
            "-i", video_path,
            "-f", "lavfi",
            "-i", f"anullsrc=channel_layout={layout}:sample_rate={self.config.audio_sample_rate}",
            "-map", "0:v",
            "-map", "1:a",
            "-c:v", "copy",
            *self._audio_encode_args(),
            "-shortest",
            output_path,
        ])
        return Path(output_path)

    @staticmethod
    def _music_chain(
        volume: float,
        fade_in: Optional[float],
        fade_out: Optional[float],
        total: Optional[float]
    ) -> List[str]:
        chain = [f"volume={volume:.4f}"]
        if fade_in:
            chain.append(f"afade=t=in:st=0:d={fade_in}")
        if fade_out:
            if total:
                chain.append(f"afade=t=out:st={max(0.0, total - fade_out)}:d={fade_out}")
            else:
                logger.warning("Unknown video length; skipping music fade-out")
        return chain

    async def add_audio(
        self,
        video_path: PathLike,
        audio_path: PathLike,
        output_path: PathLike,
        volume: float = 1.0,
        fade_in: Optional[float] = None,
        fade_out: Optional[float] = None
    ) -> Path:
        """
        Attach an audio file as the clip's only audio track.

        Music shorter than the clip is padded with silence; longer music is
        cut at the clip's end.
        """
        self._require_inputs(video_path, audio_path)
        total = await self.media_duration(video_path)
        chain = self._music_chain(volume, fade_in, fade_out, total)

        if total:
            length_args = ["-t", f"{total}"]
        else:
            logger.warning(f"Cannot read the length of {video_path}; cutting output at the shorter stream")
            length_args = ["-shortest"]

        await self.execute([
            "-y",
            "-i", video_path,
            "-i", audio_path,
            "-map", "0:v",
            "-map", "1:a",
            "-c:v", "copy",
            "-filter:a", ",".join(chain + ["apad"]),
            *self._audio_encode_args(),
            *length_args,
            output_path,
        ])
        return Path(output_path)

    async def mix_audio(
        self,
        video_path: PathLike,
        music_path: PathLike,
        output_path: PathLike,
        narration_volume: float = 1.0,
        music_volume: float = 0.3,
        fade_in: Optional[float] = None,
        fade_out: Optional[float] = None
    ) -> Path:
        """Mix background music under the clip's existing audio."""
        self._require_inputs(video_path, music_path)
        chain = self._music_chain(music_volume, fade_in, fade_out, await self.media_duration(video_path))

        filter_complex = (
            f"[0:a]volume={narration_volume:.4f}[nar];"
            f"[1:a]{','.join(chain)}[bgm];"
            f"[nar][bgm]amix=inputs=2:duration=first:normalize=0[a]"
        )
        await self.execute([
            "-y",
            "-i", video_path,
            "-i", music_path,
            "-filter_complex", filter_complex,
            "-map", "0:v",
            "-map", "[a]",
            "-c:v", "copy",
            *self._audio_encode_args(),
            output_path,
        ])
        return Path(output_path)

    async def transcode_audio(self, input_path: PathLike, output_path: PathLike) -> Path:
        """Re-encode audio to the compact music format (MP3)."""
        self._require_inputs(input_path)
        await self.execute([
            "-y",
            "-i", input_path,
            "-codec:a", self.config.music_codec,
            "-b:a", self.config.music_bitrate,
            output_path,
        ])
        return Path(output_path)
