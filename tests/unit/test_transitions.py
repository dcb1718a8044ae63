"""Unit tests for the transition engine"""

import pytest

from core.errors import RenderError
from core.models.project import Scene, SceneType, TextContent, Transition, TransitionType
from core.transitions import TransitionEngine, xfade_name
from tests.mocks.render_fakes import FakeFFmpegService


def scene(scene_id, transition=None):
    return Scene(
        id=scene_id,
        type=SceneType.TEXT,
        duration=3.0,
        content=TextContent(text=scene_id),
        transition=transition,
    )


def make_clips(ffmpeg, tmp_path, ids, audio=False):
    clips = []
    for scene_id in ids:
        path = tmp_path / f"scene_{scene_id}.mp4"
        path.write_text(scene_id)
        ffmpeg.register(path, 3.0, audio=audio)
        clips.append(path)
    return clips


class TestXfadeName:

    @pytest.mark.parametrize("transition, expected", [
        (Transition(type=TransitionType.FADE), "fade"),
        (Transition(type=TransitionType.DISSOLVE), "dissolve"),
        (Transition(type=TransitionType.WIPE), "wipeleft"),
        (Transition(type=TransitionType.WIPE, direction="up"), "wipeup"),
    ])
    def test_mapping(self, transition, expected):
        assert xfade_name(transition) == expected

    def test_bad_wipe_direction(self):
        with pytest.raises(RenderError) as exc_info:
            xfade_name(Transition(type=TransitionType.WIPE, direction="diagonal"))
        assert exc_info.value.code == "INVALID_TRANSITION"


class TestApplyTransitions:
    """Merges walk from the end so earlier indexes stay valid"""

    @pytest.mark.asyncio
    async def test_no_transitions_returns_clips_unchanged(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        clips = make_clips(ffmpeg, tmp_path, "abc")

        result = await TransitionEngine(ffmpeg).apply_transitions(
            [scene("a"), scene("b"), scene("c")], clips, tmp_path
        )

        assert result == clips
        assert ffmpeg.calls == []

    @pytest.mark.asyncio
    async def test_non_adjacent_transitions(self, tmp_path):
        """Transitions on scenes 0 and 2 of 4 leave two clips"""
        ffmpeg = FakeFFmpegService()
        clips = make_clips(ffmpeg, tmp_path, "abcd")
        scenes = [
            scene("a", Transition(type=TransitionType.FADE, duration=1.0)),
            scene("b"),
            scene("c", Transition(type=TransitionType.DISSOLVE, duration=0.5)),
            scene("d"),
        ]

        result = await TransitionEngine(ffmpeg).apply_transitions(scenes, clips, tmp_path)

        assert [p.name for p in result] == ["transition_0.mp4", "transition_2.mp4"]
        assert FakeFFmpegService.labels(result[0]) == ["a", "b"]
        assert FakeFFmpegService.labels(result[1]) == ["c", "d"]

    @pytest.mark.asyncio
    async def test_chained_transitions_merge_into_one_clip(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        clips = make_clips(ffmpeg, tmp_path, "abc")
        fade = Transition(type=TransitionType.FADE, duration=1.0)
        scenes = [scene("a", fade), scene("b", fade), scene("c", fade)]

        result = await TransitionEngine(ffmpeg).apply_transitions(scenes, clips, tmp_path)

        assert len(result) == 1
        assert FakeFFmpegService.labels(result[0]) == ["a", "b", "c"]
        first_merge, second_merge = [call for call in ffmpeg.calls if call[0] == "xfade"]
        assert first_merge[1:3] == ("scene_b.mp4", "scene_c.mp4")
        assert second_merge[1:3] == ("scene_a.mp4", "transition_1.mp4")

    @pytest.mark.asyncio
    async def test_transition_on_last_scene_is_ignored(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        clips = make_clips(ffmpeg, tmp_path, "ab")
        scenes = [scene("a"), scene("b", Transition(type=TransitionType.FADE))]

        result = await TransitionEngine(ffmpeg).apply_transitions(scenes, clips, tmp_path)

        assert result == clips

    @pytest.mark.asyncio
    async def test_count_mismatch(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        clips = make_clips(ffmpeg, tmp_path, "ab")

        with pytest.raises(RenderError):
            await TransitionEngine(ffmpeg).apply_transitions([scene("a")], clips, tmp_path)


class TestApplyTransition:

    @pytest.mark.asyncio
    async def test_offset_from_measured_duration(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        first, second = make_clips(ffmpeg, tmp_path, "ab")

        await TransitionEngine(ffmpeg).apply_transition(
            Transition(type=TransitionType.WIPE, duration=0.75, direction="right"),
            first, second, tmp_path / "out.mp4",
        )

        assert ffmpeg.calls == [("xfade", "scene_a.mp4", "scene_b.mp4", "wiperight", 0.75, 2.25, False)]

    @pytest.mark.asyncio
    async def test_offset_never_negative(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        first, second = make_clips(ffmpeg, tmp_path, "ab")

        await TransitionEngine(ffmpeg).apply_transition(
            Transition(type=TransitionType.FADE, duration=5.0), first, second, tmp_path / "out.mp4",
        )

        assert ffmpeg.calls[0][5] == 0.0

    @pytest.mark.asyncio
    async def test_audio_crossfaded_when_both_clips_have_audio(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        first, second = make_clips(ffmpeg, tmp_path, "ab", audio=True)

        await TransitionEngine(ffmpeg).apply_transition(
            Transition(type=TransitionType.FADE), first, second, tmp_path / "out.mp4",
        )

        assert ffmpeg.calls[0][6] is True

    @pytest.mark.asyncio
    async def test_clip_with_unknown_length(self, tmp_path):
        ffmpeg = FakeFFmpegService()
        first = tmp_path / "mystery.mp4"
        first.write_text("?")
        (second,) = make_clips(ffmpeg, tmp_path, "b")

        with pytest.raises(RenderError) as exc_info:
            await TransitionEngine(ffmpeg).apply_transition(
                Transition(type=TransitionType.FADE), first, second, tmp_path / "out.mp4",
            )

        assert exc_info.value.code == "INVALID_CLIP"
