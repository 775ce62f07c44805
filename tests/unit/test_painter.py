"""
Unit Tests for the Canvas Painter
=================================
"""

import pytest
from PIL import Image  # type: ignore

from rasterizer.browser.painter import PillowPainter
from rasterizer.core.errors import PaintingError
from rasterizer.models.schemas import RenderedImage

from tests.utils.helpers import png_bytes


class TestPillowPainter:
    """Test painting rendered images onto Pillow canvases."""

    def test_paints_top_left_corner(self):
        """Test the image covers the top left of a larger canvas."""
        canvas = Image.new("RGBA", (8, 8), (0, 0, 255, 255))
        image = RenderedImage(png_data=png_bytes((4, 3), (255, 0, 0, 255)), width=4, height=3)

        PillowPainter().paint(image, canvas)

        assert canvas.getpixel((0, 0)) == (255, 0, 0, 255)
        assert canvas.getpixel((3, 2)) == (255, 0, 0, 255)
        assert canvas.getpixel((4, 0)) == (0, 0, 255, 255)
        assert canvas.getpixel((0, 3)) == (0, 0, 255, 255)

    def test_transparent_pixels_keep_canvas(self):
        """Test fully transparent image areas leave the canvas untouched."""
        canvas = Image.new("RGBA", (2, 2), (0, 255, 0, 255))
        image = RenderedImage(png_data=png_bytes((2, 2), (255, 0, 0, 0)), width=2, height=2)

        PillowPainter().paint(image, canvas)

        assert canvas.getpixel((1, 1)) == (0, 255, 0, 255)

    def test_rgb_canvas(self):
        """Test painting onto a canvas without alpha."""
        canvas = Image.new("RGB", (4, 4))
        image = RenderedImage(png_data=png_bytes((2, 2), (255, 255, 255, 255)), width=2, height=2)

        PillowPainter().paint(image, canvas)

        assert canvas.getpixel((1, 1)) == (255, 255, 255)

    def test_invalid_image_data(self):
        """Test undecodable image data."""
        canvas = Image.new("RGBA", (2, 2))
        image = RenderedImage(png_data=b"not a png", width=2, height=2)

        with pytest.raises(PaintingError, match="Painting failed"):
            PillowPainter().paint(image, canvas)
