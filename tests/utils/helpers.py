"""
Test Helpers
============

Helper functions for common testing operations.
"""

import asyncio
import io
from typing import Any, List, Optional, Tuple
from unittest.mock import Mock

from PIL import Image  # type: ignore

from rasterizer.models.schemas import RenderResult

__all__ = ["fulfilled", "capture_callback", "png_bytes", "result_of"]


def fulfilled(value: Any) -> "asyncio.Future[Any]":
    """An already resolved future on the running loop."""
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def capture_callback() -> Tuple[Mock, "asyncio.Future[Tuple[Any, List[Any]]]"]:
    """
    A legacy callback spy and a future resolving to its first call's arguments.
    """
    future = asyncio.get_running_loop().create_future()

    def record(image: Any, errors: List[Any]) -> None:
        if not future.done():
            future.set_result((image, errors))

    return Mock(side_effect=record), future


def png_bytes(size: Tuple[int, int] = (4, 3), color: Tuple[int, ...] = (255, 0, 0, 255)) -> bytes:
    """Encode a solid color PNG."""
    output = io.BytesIO()
    Image.new("RGBA", size, color).save(output, format="PNG")
    return output.getvalue()


def result_of(image: Any, errors: Optional[List[Any]] = None) -> RenderResult:
    """A RenderResult for stubbing draw_document."""
    return RenderResult(image=image, errors=errors or [])
