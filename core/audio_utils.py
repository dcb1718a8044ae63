"""
Shared audio utilities.

Used by the speech and music providers to wrap raw PCM as WAV, and by the
narration processor to measure generated audio.
"""

import io
import logging
import wave
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 24000,
    channels: int = 1,
    sample_width: int = 2
) -> bytes:
    """
    Wrap raw little-endian PCM samples in a WAV container.

    Args:
        pcm: Raw sample data
        sample_rate: Samples per second
        channels: Channel count
        sample_width: Bytes per sample (2 = 16-bit)

    Returns:
        Complete WAV file bytes
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def silent_wav(duration: float, sample_rate: int = 24000, channels: int = 1) -> bytes:
    """WAV bytes containing ``duration`` seconds of silence."""
    frames = int(duration * sample_rate)
    return pcm_to_wav(b"\x00\x00" * frames * channels, sample_rate, channels)


def estimate_wav_duration(
    size_bytes: int,
    sample_rate: int = 24000,
    channels: int = 1,
    sample_width: int = 2
) -> float:
    """Estimate a PCM WAV's duration from its file size."""
    bytes_per_second = sample_rate * channels * sample_width
    return max(0, size_bytes - WAV_HEADER_SIZE) / bytes_per_second


async def get_audio_duration(audio_path: Path, ffmpeg=None) -> Optional[float]:
    """
    Get duration of an audio file in seconds.

    Tries mutagen first (fast, pure-Python), falls back to ffprobe when an
    FFmpegService is given. Returns None if neither works.
    """
    try:
        import mutagen
        audio_info = mutagen.File(str(audio_path))
        if audio_info is not None and audio_info.info is not None:
            return audio_info.info.length
    except Exception as e:
        logger.debug(f"mutagen could not read {audio_path}: {e}")

    if ffmpeg is not None:
        return await ffmpeg.media_duration(audio_path)
    return None
