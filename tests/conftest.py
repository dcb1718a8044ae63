"""Shared pytest fixtures"""

import pytest

from core.caching import create_image_cache, create_music_cache, create_narration_cache
from core.pipeline import RenderServices
from core.provider_config import ProviderFactory
from tests.mocks.render_fakes import FakeFFmpegService, FakeHtmlRenderer


# ============================================================
# Environment isolation
# ============================================================

@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point ~/.reelsmith at a temp dir and hide real API keys"""
    home = tmp_path / "reelsmith-home"
    monkeypatch.setenv("REELSMITH_HOME", str(home))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("REELSMITH_PROVIDER", raising=False)
    return home


# ============================================================
# Render fakes
# ============================================================

@pytest.fixture
def fake_ffmpeg():
    """Fresh fake encoder for each test"""
    return FakeFFmpegService()


@pytest.fixture
def fake_html():
    return FakeHtmlRenderer()


@pytest.fixture
def render_services(tmp_path, fake_ffmpeg, fake_html):
    """Pipeline services wired to fakes, mock providers and temp caches"""
    cache_root = tmp_path / "cache"
    return RenderServices(
        ffmpeg=fake_ffmpeg,
        html_renderer=fake_html,
        image_cache=create_image_cache(cache_root / "images"),
        music_cache=create_music_cache(cache_root / "music", fake_ffmpeg),
        narration_cache=create_narration_cache(cache_root / "narration"),
        providers=ProviderFactory.create_mock(),
    )


# ============================================================
# Markers Configuration
# ============================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks integration tests"
    )
    config.addinivalue_line(
        "markers", "live_api: marks tests that hit real APIs (requires keys)"
    )
