"""Unit tests for HtmlRenderer with Playwright patched out"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from core.browser import HtmlRenderer
from core.errors import RenderError


@pytest.fixture
def playwright_mocks():
    page = AsyncMock()
    browser = AsyncMock()
    browser.new_page = AsyncMock(return_value=page)
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)

    with patch("core.browser.async_playwright", return_value=starter):
        yield playwright, browser, page


class TestHtmlRenderer:

    @pytest.mark.asyncio
    async def test_browser_launched_once(self, playwright_mocks, tmp_path):
        playwright, browser, page = playwright_mocks
        renderer = HtmlRenderer()

        await renderer.screenshot("<html></html>", 640, 360, tmp_path / "a.png")
        await renderer.screenshot("<html></html>", 640, 360, tmp_path / "b.png")

        playwright.chromium.launch.assert_awaited_once_with(headless=True)
        browser.new_page.assert_awaited_with(viewport={"width": 640, "height": 360})
        page.screenshot.assert_awaited_with(path=str(tmp_path / "b.png"), type="png", full_page=False)
        assert page.close.await_count == 2

    @pytest.mark.asyncio
    async def test_close_releases_browser(self, playwright_mocks, tmp_path):
        playwright, browser, _ = playwright_mocks

        async with HtmlRenderer() as renderer:
            await renderer.screenshot("<p>x</p>", 100, 100, tmp_path / "x.png")

        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()
        await renderer.close()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_error_becomes_render_error(self, playwright_mocks, tmp_path):
        _, _, page = playwright_mocks
        page.set_content.side_effect = PlaywrightError("net::ERR_FAILED")

        with pytest.raises(RenderError) as exc_info:
            await HtmlRenderer().screenshot("<p>x</p>", 100, 100, tmp_path / "x.png")

        assert exc_info.value.code == "BROWSER_ERROR"
        page.close.assert_awaited_once()
