"""Unit tests for NarrationProcessor"""

from unittest.mock import AsyncMock

import pytest

from core.audio_utils import silent_wav
from core.caching import create_narration_cache, narration_cache_key
from core.errors import NarrationError
from core.models.project import Narration, NarrationDefaults, Scene, SceneType, TextContent, Voice
from core.narration import NarrationProcessor
from core.providers.base import AudioGenerationResult
from core.providers.mock import MockAudioProvider


def scene(scene_id, text=None, voice=None):
    return Scene(
        id=scene_id,
        type=SceneType.TEXT,
        duration=3.0,
        content=TextContent(text=scene_id),
        narration=Narration(text=text, voice=voice) if text is not None else None,
    )


@pytest.fixture
def cache(tmp_path):
    return create_narration_cache(tmp_path / "narration")


@pytest.fixture
def provider():
    return MockAudioProvider()


class TestResolveVoice:

    def test_layers_defaults_project_and_scene(self, cache, provider):
        processor = NarrationProcessor(cache, provider)
        defaults = NarrationDefaults(voice=Voice(language_code="en-GB", speaking_rate=1.2))

        voice = processor.resolve_voice(scene("a", "hi", Voice(speaking_rate=0.9)), defaults)

        assert voice.language_code == "en-GB"
        assert voice.name == "Kore"
        assert voice.speaking_rate == 0.9


class TestProcessScene:

    @pytest.mark.asyncio
    async def test_scene_without_narration(self, cache, provider):
        assert await NarrationProcessor(cache, provider).process_scene(scene("a")) is None

    @pytest.mark.asyncio
    async def test_generates_then_hits_cache(self, cache, provider):
        processor = NarrationProcessor(cache, provider, project_name="demo")

        first = await processor.process_scene(scene("a", "Hello world"))
        second = await processor.process_scene(scene("b", "Hello world"))

        assert provider.generation_count == 1
        assert first.cached is False
        assert second.cached is True
        assert first.audio_path == second.audio_path
        assert first.audio_path.name == f"{narration_cache_key('Hello world')}.wav"
        assert second.duration == pytest.approx(1.0, abs=0.01)

    @pytest.mark.asyncio
    async def test_different_voice_is_different_entry(self, cache, provider):
        processor = NarrationProcessor(cache, provider)

        await processor.process_scene(scene("a", "Hello"))
        await processor.process_scene(scene("b", "Hello", Voice(name="Puck")))

        assert provider.generation_count == 2

    @pytest.mark.asyncio
    async def test_unsuccessful_result_raises(self, cache, provider):
        provider.generate_speech = AsyncMock(return_value=AudioGenerationResult(
            success=False, error_message="quota exceeded",
        ))

        with pytest.raises(NarrationError) as exc_info:
            await NarrationProcessor(cache, provider).process_scene(scene("a", "Hello"))

        assert exc_info.value.code == "NARRATION_ERROR"
        assert "quota exceeded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_provider_exception_wrapped(self, cache, provider):
        provider.generate_speech = AsyncMock(side_effect=ConnectionError("offline"))

        with pytest.raises(NarrationError):
            await NarrationProcessor(cache, provider).process_scene(scene("a", "Hello"))


class TestProcessAll:
    """One scene's failure never stops the others"""

    @pytest.mark.asyncio
    async def test_partial_failure(self, cache, provider):
        async def speak(text, voice):
            if text == "fail":
                raise RuntimeError("TTS down")
            return AudioGenerationResult(success=True, audio_data=silent_wav(0.5), duration=0.5)

        provider.generate_speech = AsyncMock(side_effect=speak)
        scenes = [scene("a", "one"), scene("b", "fail"), scene("c"), scene("d", "two")]

        results = await NarrationProcessor(cache, provider).process_all(scenes)

        assert list(results) == ["a", "d"]
        assert results["a"].duration == 0.5
        assert provider.generate_speech.await_count == 3

    @pytest.mark.asyncio
    async def test_blank_text_skipped(self, cache, provider):
        results = await NarrationProcessor(cache, provider).process_all([scene("a", "   ")])

        assert results == {}
        assert provider.generation_count == 0
