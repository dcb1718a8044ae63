"""
HTML to PNG rendering with a headless Chromium page.

One HtmlRenderer is shared by all scene renders of a single pipeline run.
The browser is launched on first use and must be closed by the owner.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright

from core.errors import RenderError

logger = logging.getLogger(__name__)


class HtmlRenderer:
    """
    Screenshots HTML documents at a fixed viewport size.

    Usage:
        async with HtmlRenderer() as renderer:
            await renderer.screenshot(html, 1920, 1080, "frame.png")
    """

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()

    async def __aenter__(self) -> "HtmlRenderer":
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def launch(self) -> Browser:
        """Start Chromium if it is not already running."""
        async with self._launch_lock:
            if self._browser is None:
                logger.debug("Launching headless Chromium")
                try:
                    self._playwright = await async_playwright().start()
                    self._browser = await self._playwright.chromium.launch(headless=self.headless)
                except PlaywrightError as e:
                    raise RenderError(
                        f"Failed to launch browser: {e}. Run `playwright install chromium`.",
                        "BROWSER_ERROR",
                    ) from e
        return self._browser

    async def screenshot(
        self,
        html: str,
        width: int,
        height: int,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Render an HTML document to a PNG.

        Args:
            html: Complete HTML document
            width: Viewport width in pixels
            height: Viewport height in pixels
            output_path: Destination PNG path

        Returns:
            The output path
        """
        browser = await self.launch()
        page = await browser.new_page(viewport={"width": width, "height": height})
        try:
            await page.set_content(html, wait_until="networkidle")
            await page.screenshot(path=str(output_path), type="png", full_page=False)
        except PlaywrightError as e:
            raise RenderError(f"Browser render failed: {e}", "BROWSER_ERROR", {"output": str(output_path)}) from e
        finally:
            await page.close()
        return Path(output_path)

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
