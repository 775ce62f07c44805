"""
Document Renderer
=================

Playwright-based PNG rendering of an HTMLDocument. Scripts are disabled:
script execution is a separate pipeline stage that has already run when it
was requested.
"""

from typing import Any, Dict, Optional

from playwright.async_api import Page

from rasterizer.browser.document import HTMLDocument
from rasterizer.browser.pool import BrowserPool
from rasterizer.browser.scripting import FORM_CONTROLS_SELECTOR, RESTORE_FORM_STATE_JS
from rasterizer.config.logging import get_logger
from rasterizer.config.settings import get_settings
from rasterizer.core.errors import RenderingError
from rasterizer.core.interfaces import Canvas
from rasterizer.models.schemas import RenderedImage

logger = get_logger(__name__)


class PlaywrightRenderer:
    """Renders documents to PNG screenshots."""

    def __init__(self, browser_pool: BrowserPool):
        self.browser_pool = browser_pool
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="renderer")  # structlog.BoundLoggerBase

    def _size(self, canvas: Optional[Canvas], options: Dict[str, Any]) -> Dict[str, int]:
        canvas_width, canvas_height = canvas.size if canvas is not None else (None, None)
        width = int(options.get("width") or canvas_width or self.settings.default_width)
        height = int(options.get("height") or canvas_height or self.settings.default_height)

        if width > self.settings.max_width or height > self.settings.max_height:
            raise RenderingError(
                f"Requested size {width}x{height} exceeds the maximum "
                f"{self.settings.max_width}x{self.settings.max_height}"
            )
        return {"width": width, "height": height}

    async def render_document_image(
        self, document: HTMLDocument, canvas: Optional[Canvas], options: Dict[str, Any]
    ) -> RenderedImage:
        """
        Render ``document`` to a PNG image.

        Args:
            document: Self-contained document to render
            canvas: Target canvas, its size is the default render size
            options: width, height, hover, active and zoom

        Returns:
            RenderedImage with the PNG data

        Raises:
            RenderingError: If rendering fails
        """
        size = self._size(canvas, options)
        zoom = float(options.get("zoom") or 1.0)

        self.logger.info("Rendering document", width=size["width"], height=size["height"], zoom=zoom)

        try:
            async with self.browser_pool.new_page(
                viewport=size, device_scale_factor=zoom, java_script_enabled=False
            ) as page:
                # The document is self-contained; leftovers must not be fetched live
                await page.route("**/*", lambda route: route.abort())
                await page.set_content(document.html, wait_until="load")

                if document.form_state:
                    await page.evaluate(RESTORE_FORM_STATE_JS, [FORM_CONTROLS_SELECTOR, document.form_state])

                await self._force_pseudo_states(page, options)

                png_data = await page.screenshot(
                    type="png",
                    clip={"x": 0, "y": 0, "width": size["width"], "height": size["height"]},
                )
        except RenderingError:
            raise
        except Exception as e:
            self.logger.error("Rendering failed", error=str(e))
            raise RenderingError(f"Rendering failed: {e}") from e

        image = RenderedImage(
            png_data=png_data,
            width=size["width"],
            height=size["height"],
            metadata={"generator": "playwright", "zoom": zoom},
        )
        self.logger.info("Rendering completed", file_size=image.file_size)
        return image

    async def _force_pseudo_states(self, page: Page, options: Dict[str, Any]) -> None:
        """Put the first matches of the hover/active selectors into that state."""
        hover = options.get("hover")
        active = options.get("active")

        if hover:
            matches = page.locator(hover)
            if await matches.count():
                await matches.first.hover()
            else:
                self.logger.warning("Hover selector matched nothing", selector=hover)

        if active:
            matches = page.locator(active)
            if await matches.count():
                await matches.first.hover()
                await page.mouse.down()
            else:
                self.logger.warning("Active selector matched nothing", selector=active)
