"""Unit tests for FFmpegService with the subprocess layer patched out"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from core.errors import FFmpegError, ProcessError
from core.ffmpeg import FFmpegService, ProgressParser, parse_timestamp


class FakeStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    async def read(self, n=-1):
        return self._chunks.pop(0) if self._chunks else b""


class FakeProcess:
    def __init__(self, returncode=0, stderr_chunks=(), stdout=b""):
        self.returncode = returncode
        self.stderr = FakeStream(stderr_chunks)
        self._stdout = stdout

    async def wait(self):
        return self.returncode

    async def communicate(self):
        return self._stdout, b""


class ProcessLauncher:
    """Replacement for asyncio.create_subprocess_exec"""

    def __init__(self, *processes):
        self.processes = list(processes)
        self.commands = []
        self.concat_lists = []

    async def __call__(self, *cmd, **kwargs):
        self.commands.append(list(cmd))
        if "concat" in cmd:
            list_path = Path(cmd[cmd.index("-i") + 1])
            self.concat_lists.append(list_path.read_text())
        return self.processes.pop(0)


@pytest.fixture
def service():
    return FFmpegService(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe")


class TestProgressParser:

    def test_parse_timestamp(self):
        assert parse_timestamp("01", "02", "03.5") == 3723.5

    def test_uses_input_duration(self):
        parser = ProgressParser()
        assert parser.feed("  Duration: 00:00:10.00, start: 0\n") is None
        assert parser.feed("frame=1 time=00:00:05.00 bitrate=1k\r") == 50.0

    def test_expected_duration_wins(self):
        parser = ProgressParser(expected_duration=4.0)
        parser.feed("Duration: 00:01:00.00\n")
        assert parser.feed("time=00:00:01.00\r") == 25.0

    def test_partial_lines_are_buffered(self):
        parser = ProgressParser(expected_duration=10.0)
        assert parser.feed("time=00:00:0") is None
        assert parser.feed("2.00 speed=1x\r") == 20.0

    def test_clamped_to_100(self):
        parser = ProgressParser(expected_duration=1.0)
        assert parser.feed("time=00:00:03.00\r") == 100.0

    def test_no_duration_no_progress(self):
        assert ProgressParser().feed("time=00:00:03.00\r") is None


class TestExecute:

    @pytest.mark.asyncio
    async def test_reports_progress_and_returns_stderr(self, service):
        launcher = ProcessLauncher(FakeProcess(0, [b"time=00:00:01.00\r", b"time=00:00:02.00\r"]))
        seen = []

        with patch("asyncio.create_subprocess_exec", launcher):
            stderr = await service.execute(["-i", "in.png"], on_progress=seen.append, expected_duration=2.0)

        assert launcher.commands[0] == ["ffmpeg", "-hide_banner", "-i", "in.png"]
        assert seen == [50.0, 100.0, 100.0]
        assert "time=00:00:02.00" in stderr

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_stderr(self, service):
        launcher = ProcessLauncher(FakeProcess(1, [b"Invalid data found\n"]))

        with patch("asyncio.create_subprocess_exec", launcher):
            with pytest.raises(FFmpegError) as exc_info:
                await service.execute(["-i", "bad.mp4"])

        error = exc_info.value
        assert error.code == "FFMPEG_ERROR"
        assert error.details["returncode"] == 1
        assert "Invalid data found" in error.details["stderr"]

    @pytest.mark.asyncio
    async def test_missing_executable(self, service):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("ffmpeg"))):
            with pytest.raises(ProcessError) as exc_info:
                await service.execute(["-version"])

        assert exc_info.value.code == "FFMPEG_EXECUTION_ERROR"
        assert not isinstance(exc_info.value, FFmpegError)

    @pytest.mark.asyncio
    async def test_is_available_false_without_executable(self, service):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("ffmpeg"))):
            assert await service.is_available() is False

    @pytest.mark.asyncio
    async def test_media_duration_reads_ffprobe(self, service, tmp_path):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"x")
        launcher = ProcessLauncher(FakeProcess(0, stdout=b"12.480000\n"))

        with patch("asyncio.create_subprocess_exec", launcher):
            assert await service.media_duration(clip) == 12.48

        assert launcher.commands[0][0] == "ffprobe"

    @pytest.mark.asyncio
    async def test_duration_of_missing_file(self, service, tmp_path):
        assert await service.media_duration(tmp_path / "none.mp4") is None


class TestConcatenate:

    @pytest.fixture
    def clips(self, tmp_path):
        paths = []
        for name in ("a.mp4", "it's.mp4"):
            path = tmp_path / name
            path.write_bytes(b"x")
            paths.append(path)
        return paths

    @pytest.mark.asyncio
    async def test_stream_copy_and_list_file(self, service, clips, tmp_path):
        launcher = ProcessLauncher(FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            output = await service.concatenate(clips, tmp_path / "out" / "combined.mp4")

        assert output == tmp_path / "out" / "combined.mp4"
        assert launcher.commands[0][-3:] == ["-c", "copy", str(output)]
        lines = launcher.concat_lists[0].splitlines()
        assert lines[0] == f"file '{clips[0].resolve()}'"
        assert lines[1].endswith("it'\\''s.mp4'")
        assert list((tmp_path / "out").glob("concat-list-*")) == []

    @pytest.mark.asyncio
    async def test_falls_back_to_reencode(self, service, clips, tmp_path):
        launcher = ProcessLauncher(FakeProcess(1, [b"Non-monotonous DTS\n"]), FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            await service.concatenate(clips, tmp_path / "combined.mp4")

        assert len(launcher.commands) == 2
        assert "copy" not in launcher.commands[1]
        assert "libx264" in launcher.commands[1]
        assert list(tmp_path.glob("concat-list-*")) == []

    @pytest.mark.asyncio
    async def test_requires_clips(self, service, tmp_path):
        with pytest.raises(FFmpegError):
            await service.concatenate([], tmp_path / "combined.mp4")

    @pytest.mark.asyncio
    async def test_missing_input(self, service, tmp_path):
        with pytest.raises(FFmpegError) as exc_info:
            await service.concatenate([tmp_path / "ghost.mp4"], tmp_path / "combined.mp4")
        assert exc_info.value.code == "INPUT_NOT_FOUND"


class TestXfade:

    @pytest.mark.asyncio
    async def test_filter_graph(self, service, tmp_path):
        first, second = tmp_path / "a.mp4", tmp_path / "b.mp4"
        first.write_bytes(b"x")
        second.write_bytes(b"x")
        launcher = ProcessLauncher(FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            await service.xfade(first, second, tmp_path / "out.mp4", "dissolve", 1.0, 4.0, with_audio=True)

        cmd = launcher.commands[0]
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert "xfade=transition=dissolve:duration=1.0:offset=4.0" in graph
        assert "acrossfade=d=1.0" in graph


class TestMusicTrack:

    @pytest.fixture
    def inputs(self, tmp_path):
        video, music = tmp_path / "combined.mp4", tmp_path / "music.mp3"
        video.write_bytes(b"x")
        music.write_bytes(b"x")
        return video, music

    @pytest.mark.asyncio
    async def test_add_audio_keeps_video_length(self, service, inputs, tmp_path):
        video, music = inputs
        launcher = ProcessLauncher(FakeProcess(0, stdout=b"20.000000\n"), FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            await service.add_audio(video, music, tmp_path / "out.mp4", volume=0.5, fade_out=2.0)

        cmd = launcher.commands[1]
        assert cmd[cmd.index("-t") + 1] == "20.0"
        assert "-shortest" not in cmd
        chain = cmd[cmd.index("-filter:a") + 1]
        assert chain == "volume=0.5000,afade=t=out:st=18.0:d=2.0,apad"

    @pytest.mark.asyncio
    async def test_add_audio_unknown_length(self, service, inputs, tmp_path):
        video, music = inputs
        launcher = ProcessLauncher(FakeProcess(1), FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            await service.add_audio(video, music, tmp_path / "out.mp4", fade_out=2.0)

        cmd = launcher.commands[1]
        assert "-shortest" in cmd
        assert "-t" not in cmd
        assert cmd[cmd.index("-filter:a") + 1] == "volume=1.0000,apad"

    @pytest.mark.asyncio
    async def test_mix_audio_follows_scene_audio(self, service, inputs, tmp_path):
        video, music = inputs
        launcher = ProcessLauncher(FakeProcess(0, stdout=b"12.0\n"), FakeProcess(0))

        with patch("asyncio.create_subprocess_exec", launcher):
            await service.mix_audio(video, music, tmp_path / "out.mp4", narration_volume=0.9, music_volume=0.2)

        cmd = launcher.commands[1]
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert "[0:a]volume=0.9000[nar]" in graph
        assert "[1:a]volume=0.2000[bgm]" in graph
        assert "amix=inputs=2:duration=first" in graph
