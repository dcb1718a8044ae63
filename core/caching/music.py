"""Music cache: generated WAV is transcoded to MP3 before it is committed."""

import logging
from pathlib import Path

from core.caching.base import GenerationCache
from core.ffmpeg import FFmpegService
from core.models.generation import MUSIC_MODEL

logger = logging.getLogger(__name__)


class MusicCache(GenerationCache):
    """Generation cache that stores music as MP3."""

    def __init__(self, cache_dir: Path, ffmpeg: FFmpegService):
        super().__init__(cache_dir, extension=".mp3", model=MUSIC_MODEL, name="music")
        self.ffmpeg = ffmpeg

    async def _store_artifact(self, key: str, data: bytes) -> Path:
        temp_path = self.cache_dir / f"{key}_temp.wav"
        temp_path.write_bytes(data)
        try:
            return await self.ffmpeg.transcode_audio(temp_path, self.path_for(key))
        finally:
            temp_path.unlink(missing_ok=True)
