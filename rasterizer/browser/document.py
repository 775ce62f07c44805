"""
HTML Document
=============

The document model handed between pipeline stages, and the markup parser
that produces it.
"""

from typing import Any, Dict, List, Optional

from rasterizer.config.logging import get_logger

logger = get_logger(__name__)


class HTMLDocument:
    """
    Mutable HTML document owned by one pipeline run.

    Stages update ``html`` in place. ``live_form_state`` holds form control
    values captured after script execution; ``form_state`` holds the values
    the renderer restores before taking the screenshot.
    """

    def __init__(self, html: str, base_url: Optional[str] = None):
        self.html = html
        self.base_url = base_url
        self.live_form_state: List[Dict[str, Any]] = []
        self.form_state: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"HTMLDocument(base_url={self.base_url!r}, length={len(self.html)})"


class MarkupParser:
    """Turns HTML markup into an HTMLDocument."""

    def parse_html(self, html: str, base_url: Optional[str] = None) -> HTMLDocument:
        if not isinstance(html, str):
            raise TypeError(f"Expected HTML markup as str, got {type(html).__name__}")

        # Drop a leading byte order mark, the browser would render it as text
        markup = html.lstrip("\ufeff")
        logger.debug("Parsed HTML markup", html_length=len(markup))
        return HTMLDocument(markup, base_url=base_url)
