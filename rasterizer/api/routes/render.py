"""
Render Routes
=============

FastAPI routes for rendering HTML markup or remote pages to PNG.
"""

import asyncio
import base64
import time
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request

from rasterizer.config.logging import get_logger
from rasterizer.core.errors import InvalidOptionsError
from rasterizer.core.pipeline import Rasterizer
from rasterizer.models.schemas import ErrorRecord, ImagePayload, RenderRequest, RenderResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Rendering"])


def get_pipeline(request: Request) -> Rasterizer:
    """The application's rasterizer."""
    return request.app.state.rasterizer


def image_payload(image: Any) -> Optional[ImagePayload]:
    if image is None:
        return None
    return ImagePayload(
        base64_data=base64.b64encode(image.png_data).decode("utf-8"),
        width=image.width,
        height=image.height,
        file_size=image.file_size,
    )


@router.post("/render")
async def render(request: RenderRequest, rasterizer: Rasterizer = Depends(get_pipeline)) -> RenderResponse:
    """
    Render HTML markup or a URL.

    Hard failures are reported the way legacy callbacks see them: no image
    and a single error record.
    """
    start_time = time.perf_counter()
    settled: "asyncio.Future[Tuple[Any, List[ErrorRecord]]]" = asyncio.get_running_loop().create_future()

    def on_settled(image: Any, errors: List[ErrorRecord]) -> None:
        settled.set_result((image, errors))

    try:
        if request.html is not None:
            task = rasterizer.draw_html(request.html, options=request.options, callback=on_settled)
        else:
            task = rasterizer.draw_url(request.url, options=request.options, callback=on_settled)
    except InvalidOptionsError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        await task
    except Exception as e:
        logger.warning("Render request failed", error=str(e), source="html" if request.html is not None else "url")

    image, errors = await settled
    return RenderResponse(
        success=image is not None,
        image=image_payload(image),
        errors=errors,
        processing_time=time.perf_counter() - start_time,
    )
