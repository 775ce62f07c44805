"""
Rasterizer
==========

Render HTML documents, markup strings and remote pages into self-contained
PNG images, optionally painted onto a Pillow canvas.

This package provides:
- The rendering orchestration pipeline (draw_document, draw_html, draw_url)
- Default Playwright/aiohttp/Pillow collaborators for loading, script
  execution, reference inlining, rendering and painting
- A FastAPI REST endpoint for HTTP access
"""

__version__ = "1.0.0"
__author__ = "Rasterizer Team"

from rasterizer.core.pipeline import (  # noqa: E402
    Rasterizer,
    draw_document,
    draw_html,
    draw_url,
    close_default_collaborators,
)
from rasterizer.models.schemas import ErrorRecord, RenderedImage, RenderResult  # noqa: E402

__all__ = [
    "Rasterizer",
    "draw_document",
    "draw_html",
    "draw_url",
    "close_default_collaborators",
    "ErrorRecord",
    "RenderedImage",
    "RenderResult",
]
