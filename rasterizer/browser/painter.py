"""
Canvas Painter
==============

Paints rendered PNG images onto Pillow canvases.
"""

import io
from typing import Any

from PIL import Image  # type: ignore

from rasterizer.config.logging import get_logger
from rasterizer.core.errors import PaintingError
from rasterizer.models.schemas import RenderedImage

logger = get_logger(__name__)


class PillowPainter:
    """Draws an image onto the top left corner of a ``PIL.Image.Image`` canvas."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="painter")  # structlog.BoundLoggerBase

    def paint(self, image: RenderedImage, canvas: Image.Image) -> None:
        try:
            with Image.open(io.BytesIO(image.png_data)) as picture:
                picture = picture.convert("RGBA")
                # Alpha channel as mask, transparent areas keep the canvas content
                canvas.paste(picture, (0, 0), picture)
        except Exception as e:
            self.logger.error("Painting failed", error=str(e))
            raise PaintingError(f"Painting failed: {e}") from e

        self.logger.debug("Image painted", canvas_size=canvas.size, canvas_mode=canvas.mode)
