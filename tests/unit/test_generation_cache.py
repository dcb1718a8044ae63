"""Unit tests for the generation caches and key derivation"""

import json
from datetime import datetime, timedelta

import pytest

from core.caching import (
    GenerationCache,
    MANIFEST_NAME,
    cache_key,
    create_image_cache,
    create_music_cache,
    create_narration_cache,
    image_cache_key,
    music_cache_key,
    narration_cache_key,
)
from core.errors import FFmpegError
from core.models.generation import (
    GenerateImageParams,
    GenerateMusicParams,
    MusicConfig,
    WeightedPrompt,
    parse_music_source,
)
from core.models.project import Voice
from core.parser import parse_project
from tests.mocks.fixtures import make_project_dict, make_text_scene
from tests.mocks.render_fakes import FakeFFmpegService


@pytest.fixture
def cache(tmp_path):
    return create_image_cache(tmp_path / "images")


class TestCacheKeys:
    """Keys are pure functions of the normalized parameters"""

    def test_key_is_16_hex_chars(self):
        key = cache_key({"prompt": "sunset"})
        assert len(key) == 16
        int(key, 16)

    def test_key_ignores_dict_order(self):
        assert cache_key({"a": 1, "b": 2}) == cache_key({"b": 2, "a": 1})

    def test_image_defaults_are_filled_before_hashing(self):
        implicit = GenerateImageParams(prompt="a lighthouse")
        explicit = GenerateImageParams(prompt="a lighthouse", style="photorealistic", aspect_ratio="16:9")
        assert image_cache_key(implicit) == image_cache_key(explicit)

    def test_image_parameters_change_key(self):
        base = image_cache_key(GenerateImageParams(prompt="a lighthouse"))
        assert image_cache_key(GenerateImageParams(prompt="a lighthouse", seed=7)) != base
        assert image_cache_key(GenerateImageParams(prompt="a lighthouse", style="anime")) != base
        assert image_cache_key(GenerateImageParams(prompt="a lighthouses")) != base

    def test_music_key_depends_on_duration_and_config(self):
        base = GenerateMusicParams(prompt="lofi", duration=20.0)
        assert music_cache_key(base) == music_cache_key(GenerateMusicParams(prompt="lofi", duration=20.0))
        assert music_cache_key(base) != music_cache_key(GenerateMusicParams(prompt="lofi", duration=21.0))
        assert music_cache_key(base) != music_cache_key(
            GenerateMusicParams(prompt="lofi", duration=20.0, config=MusicConfig(bpm=90))
        )

    def test_music_weighted_prompts(self):
        one = GenerateMusicParams(prompts=(WeightedPrompt("piano", 1.0), WeightedPrompt("rain", 0.5)))
        other = GenerateMusicParams(prompts=(WeightedPrompt("piano", 1.0), WeightedPrompt("rain", 0.6)))
        assert music_cache_key(one) != music_cache_key(other)

    def test_narration_voice_defaults_are_merged(self):
        assert narration_cache_key("Hello") == narration_cache_key("Hello", Voice(name="Kore"))
        assert narration_cache_key("Hello") != narration_cache_key("Hello", Voice(name="Puck"))
        assert narration_cache_key("Hello") != narration_cache_key("Hello.")

    def test_whole_numbers_in_music_config_match_defaults(self):
        implicit = parse_music_source({"type": "generate", "prompt": "calm"})
        explicit = parse_music_source({
            "type": "generate",
            "prompt": "calm",
            "config": {"bpm": 120.0, "temperature": 1, "guidance": 4, "density": 0.7, "brightness": 0.6},
        })
        assert explicit.config.temperature == 1.0 and isinstance(explicit.config.temperature, float)
        assert isinstance(explicit.config.bpm, int)
        assert music_cache_key(explicit) == music_cache_key(implicit)

    def test_whole_numbers_in_voice_match_defaults(self):
        scene = make_text_scene(
            "a",
            narration={"text": "hello", "voice": {"speakingRate": 1, "pitch": 0, "volumeGainDb": 0}},
        )
        voice = parse_project(make_project_dict([scene])).scenes[0].narration.voice

        assert narration_cache_key("hello", voice) == narration_cache_key("hello")


class TestGenerationCache:
    """Manifest-backed artifact storage"""

    @pytest.mark.asyncio
    async def test_initialize_creates_manifest(self, cache):
        await cache.initialize()
        await cache.initialize()

        manifest = json.loads((cache.cache_dir / MANIFEST_NAME).read_text())
        assert manifest == {"version": "1.0", "entries": []}

    @pytest.mark.asyncio
    async def test_corrupt_manifest_is_replaced(self, tmp_path):
        cache_dir = tmp_path / "images"
        cache_dir.mkdir()
        (cache_dir / MANIFEST_NAME).write_text("{not json")

        cache = create_image_cache(cache_dir)
        await cache.initialize()

        assert await cache.entries() == []
        assert json.loads((cache_dir / MANIFEST_NAME).read_text())["entries"] == []

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.get("0123456789abcdef") is None

    @pytest.mark.asyncio
    async def test_save_then_get(self, cache):
        path = await cache.save("abc123", b"png-bytes", {"prompt": "x"}, project="demo")

        assert path == cache.cache_dir / "abc123.png"
        assert path.read_bytes() == b"png-bytes"
        assert await cache.get("abc123", project="other") == path

        entry = (await cache.entries())[0]
        assert entry.params == {"prompt": "x"}
        assert entry.metadata["fileSize"] == len(b"png-bytes")
        assert entry.metadata["mimeType"] == "image/png"
        assert entry.usage.use_count == 2
        assert entry.usage.projects == ["demo", "other"]

    @pytest.mark.asyncio
    async def test_manifest_persists_across_instances(self, cache):
        await cache.save("abc123", b"data", {"prompt": "x"})

        reopened = GenerationCache(cache.cache_dir, extension=".png", model="m")
        assert await reopened.get("abc123") == cache.path_for("abc123")

    @pytest.mark.asyncio
    async def test_save_replaces_existing_entry(self, cache):
        await cache.save("abc123", b"old", {"prompt": "x"})
        await cache.save("abc123", b"new", {"prompt": "x"})

        entries = await cache.entries()
        assert len(entries) == 1
        assert cache.path_for("abc123").read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_missing_file_self_heals(self, cache):
        path = await cache.save("abc123", b"data", {"prompt": "x"})
        path.unlink()

        assert await cache.get("abc123") is None
        assert await cache.entries() == []
        manifest = json.loads((cache.cache_dir / MANIFEST_NAME).read_text())
        assert manifest["entries"] == []

    @pytest.mark.asyncio
    async def test_clear_all_removes_files_and_orphans(self, cache):
        await cache.save("one", b"1", {})
        await cache.save("two", b"2", {})
        (cache.cache_dir / "orphan.png").write_bytes(b"stray")

        removed = await cache.clear()

        assert removed == 2
        assert await cache.entries() == []
        assert list(cache.cache_dir.glob("*.png")) == []

    @pytest.mark.asyncio
    async def test_clear_older_than_keeps_recent(self, cache):
        await cache.save("old", b"1", {})
        await cache.save("recent", b"2", {})
        old_entry = (await cache.entries())[0]
        old_entry.usage.last_used = datetime.now() - timedelta(days=40)

        removed = await cache.clear(older_than=timedelta(days=30))

        assert removed == 1
        assert [e.key for e in await cache.entries()] == ["recent"]
        assert not cache.path_for("old").exists()
        assert cache.path_for("recent").exists()

    @pytest.mark.asyncio
    async def test_status_and_size(self, cache):
        empty = await cache.get_status()
        assert empty.total_files == 0
        assert empty.oldest_entry is None

        await cache.save("one", b"12345", {})
        await cache.save("two", b"678", {})

        status = await cache.get_status()
        size = await cache.get_size()
        assert status.total_files == 2
        assert status.total_size == 8
        assert status.oldest_entry <= status.newest_entry
        assert (size.bytes, size.files) == (8, 2)

    @pytest.mark.asyncio
    async def test_narration_cache_uses_wav(self, tmp_path):
        cache = create_narration_cache(tmp_path / "narration")
        path = await cache.save("abc", b"RIFF", {"text": "hi"})
        assert path.suffix == ".wav"


class TestMusicCache:
    """Music is transcoded to MP3 before it is stored"""

    @pytest.mark.asyncio
    async def test_transcodes_and_removes_temp_wav(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        cache = create_music_cache(tmp_path / "music", ffmpeg)

        path = await cache.save("tune", b"RIFFwav", {"prompt": "lofi"})

        assert path == cache.cache_dir / "tune.mp3"
        assert ("transcode_audio", "tune.mp3") in ffmpeg.calls
        assert not (cache.cache_dir / "tune_temp.wav").exists()
        assert (await cache.entries())[0].metadata["model"] == "models/lyria-realtime-exp"

    @pytest.mark.asyncio
    async def test_temp_wav_removed_when_transcode_fails(self, tmp_path):
        ffmpeg = FakeFFmpegService()

        async def broken(input_path, output_path):
            raise FFmpegError("encode failed", "FFMPEG_ERROR")

        ffmpeg.transcode_audio = broken
        cache = create_music_cache(tmp_path / "music", ffmpeg)

        with pytest.raises(FFmpegError):
            await cache.save("tune", b"RIFFwav", {"prompt": "lofi"})

        assert not (cache.cache_dir / "tune_temp.wav").exists()
        assert await cache.entries() == []
