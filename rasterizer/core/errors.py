"""
Exceptions
==========

Exception hierarchy shared by the pipeline and the default collaborators.
"""

from typing import Optional


class RasterizerError(Exception):
    """Base class for rasterizer errors."""

    pass


class InvalidOptionsError(RasterizerError, ValueError):
    """Raised when draw options fail validation."""

    pass


class DocumentLoadError(RasterizerError):
    """Raised when a remote document cannot be loaded."""

    def __init__(self, message: str, url: Optional[str] = None, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.original_error = original_error


class ScriptExecutionError(RasterizerError):
    """Raised when the script sandbox cannot be set up."""

    pass


class RenderingError(RasterizerError):
    """Raised when a document cannot be rendered to an image."""

    pass


class PaintingError(RasterizerError):
    """Raised when an image cannot be painted onto a canvas."""

    pass
