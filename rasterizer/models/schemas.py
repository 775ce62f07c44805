"""
Pydantic Models and Schemas
===========================

Core data models for pipeline results, draw options and API requests/responses.
"""

from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Enums
class ResourceType(str, Enum):
    """Resource types reported in error records.

    The set is open: collaborators may report other values, the pipeline itself
    only produces PAGE and DOCUMENT.
    """

    PAGE = "page"
    DOCUMENT = "document"
    IMAGE = "image"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    SCRIPT_EXECUTION = "scriptExecution"
    BACKGROUND_IMAGE = "backgroundImage"
    FONT_FACE = "fontFace"


class CacheMode(str, Enum):
    """Cache modes understood by the default resource fetcher."""

    NONE = "none"
    REPEATED = "repeated"


# Pipeline Models
class ErrorRecord(BaseModel):
    """A single soft error, or the synthetic record of a hard failure."""

    resource_type: str = Field(..., description="Kind of resource that failed")
    url: Optional[str] = Field(None, description="URL of the failed resource")
    msg: str = Field(..., description="Human readable message")


class RenderedImage(BaseModel):
    """Image produced by the rendering stage."""

    model_config = ConfigDict(frozen=True)

    png_data: bytes = Field(..., description="PNG binary data", exclude=True)
    width: int = Field(..., description="Image width in CSS pixels")
    height: int = Field(..., description="Image height in CSS pixels")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Generation metadata")

    @property
    def file_size(self) -> int:
        return len(self.png_data)


class RenderResult(BaseModel):
    """Outcome of a successful pipeline run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: Optional[Any] = Field(None, description="Rendered image")
    errors: List[ErrorRecord] = Field(default_factory=list, description="Soft errors in stage order")


class ScriptExecutionResult(BaseModel):
    """Outcome of running the page scripts."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    document: Any = Field(..., description="Document after script execution")
    errors: List[ErrorRecord] = Field(default_factory=list, description="Script errors")


class DrawOptions(BaseModel):
    """Recognized draw options.

    Unrecognized keys are allowed and passed through untouched. camelCase
    spellings are accepted for every recognized key.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, arbitrary_types_allowed=True)

    base_url: Optional[str] = Field(None, alias="baseUrl", description="Base URL for relative references")
    cache: Optional[str] = Field(None, description="Cache mode, 'none' disables caching")
    cache_bucket: Optional[Any] = Field(None, alias="cacheBucket", description="Opaque cache store")
    width: Optional[int] = Field(None, gt=0, description="Render width in pixels")
    height: Optional[int] = Field(None, gt=0, description="Render height in pixels")
    hover: Optional[str] = Field(None, description="Selector to render in :hover state")
    active: Optional[str] = Field(None, description="Selector to render in :active state")
    zoom: Optional[float] = Field(None, gt=0, description="Zoom factor")
    execute_js: bool = Field(False, alias="executeJs", description="Execute page scripts")
    execute_js_timeout: int = Field(
        0, ge=0, alias="executeJsTimeout", description="Script execution time in milliseconds"
    )


# API Request/Response Models
class RenderRequest(BaseModel):
    """Request model for the render endpoint."""

    html: Optional[str] = Field(None, description="HTML markup to render")
    url: Optional[str] = Field(None, description="URL of the page to render")
    options: Dict[str, Any] = Field(default_factory=dict, description="Draw options")

    @model_validator(mode="after")
    def validate_source(self) -> "RenderRequest":
        """Exactly one of html and url must be given."""
        if (self.html is None) == (self.url is None):
            raise ValueError("Exactly one of 'html' or 'url' must be provided")
        return self


class ImagePayload(BaseModel):
    """Serialized rendered image."""

    base64_data: str = Field(..., description="Base64 encoded PNG data")
    width: int = Field(..., description="Image width")
    height: int = Field(..., description="Image height")
    file_size: int = Field(..., description="File size in bytes")


class RenderResponse(BaseModel):
    """Response model for the render endpoint."""

    success: bool = Field(..., description="Whether rendering succeeded")
    image: Optional[ImagePayload] = Field(None, description="Rendered image")
    errors: List[ErrorRecord] = Field(default_factory=list, description="Reported errors")
    processing_time: float = Field(..., description="Total processing time in seconds")


class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: Any = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
