"""
Test Configuration
==================

Pytest configuration with fixtures shared by all test types.
"""

import os

# Settings are read once; select the testing environment before importing the package
os.environ.setdefault("RASTERIZER_ENVIRONMENT", "testing")
os.environ.setdefault("RASTERIZER_LOG_LEVEL", "DEBUG")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from PIL import Image  # type: ignore  # noqa: E402

from rasterizer.browser.document import HTMLDocument  # noqa: E402
from rasterizer.config.settings import Settings  # noqa: E402
from rasterizer.core.pipeline import Rasterizer  # noqa: E402
from tests.utils.mocks import create_mock_collaborators, create_mock_rasterizer  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """Test settings fixture."""
    return Settings(
        environment="testing",
        log_level="DEBUG",
        default_width=320,
        default_height=240,
        max_width=1000,
        max_height=1000,
        browser_pool_size=1,
        playwright_timeout=5000,
    )


@pytest.fixture
def doc() -> HTMLDocument:
    """An empty HTML document."""
    return HTMLDocument("<html><head><title></title></head><body></body></html>")


@pytest.fixture
def canvas() -> Image.Image:
    """A 123x456 Pillow canvas."""
    return Image.new("RGBA", (123, 456))


@pytest.fixture
def collaborators(doc: HTMLDocument) -> SimpleNamespace:
    """Mock collaborators that succeed without errors."""
    return create_mock_collaborators(doc)


@pytest.fixture
def rasterizer(collaborators: SimpleNamespace) -> Rasterizer:
    """Rasterizer wired to the mock collaborators."""
    return create_mock_rasterizer(collaborators)
