"""
Image optimization endpoint.

POST /optimize/ takes the S3 URL of an image, replaces that image with an
optimized WebP copy in the optimized bucket, and returns the public URL of
the copy.

Pipeline failures are OptimizationErrors. They are not caught here; the
handler registered in main.create_app turns them into stage-tagged JSON
errors, so every route reports failures the same way.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..dependencies import ImageOptimizerDep, verify_api_token

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class OptimizeRequest(BaseModel):
    """Request to optimize one stored image."""
    model_config = ConfigDict(populate_by_name=True)

    s3_url: str = Field(
        alias="S3_URL",
        min_length=1,
        description="Location of the image: s3://bucket/key or an https S3 URL",
    )


class OptimizeResponse(BaseModel):
    """Response after a successful optimization."""
    message: str = Field(description="Status message")
    url: str = Field(description="Public URL of the optimized image")


class ErrorResponse(BaseModel):
    """Error envelope shared by every failing response."""
    error: str = Field(description="What went wrong")
    stage: str | None = Field(default=None, description="Pipeline stage that failed, if any")


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------

async def read_optimize_request(request: Request) -> OptimizeRequest:
    """
    Parse the JSON body into an OptimizeRequest.

    The body is read here rather than declared on the endpoint, so FastAPI
    does not parse it before verify_api_token runs. Bad bodies surface as
    RequestValidationError like any other validation failure.
    """
    try:
        payload = await request.json()
    except ValueError as e:
        # JSONDecodeError, or UnicodeDecodeError for non-UTF-8 bodies
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
        ) from e

    try:
        return OptimizeRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(
            [{**error, "loc": ("body", *error["loc"])} for error in e.errors()]
        ) from e


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/",
    response_model=OptimizeResponse,
    status_code=status.HTTP_200_OK,
    summary="Optimize a stored image",
    description="Replace an image in S3 with a WebP copy in the optimized bucket",
    dependencies=[Depends(verify_api_token)],
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": OptimizeRequest.model_json_schema()}},
        },
    },
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or pipeline failure"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        404: {"model": ErrorResponse, "description": "Source image not found"},
        422: {"model": ErrorResponse, "description": "Source is not a decodable image"},
    },
)
async def optimize_image(
    body: Annotated[OptimizeRequest, Depends(read_optimize_request)],
    optimizer: ImageOptimizerDep,
) -> OptimizeResponse:
    """
    Optimize the image at `S3_URL`.

    The original object is deleted before the optimized copy is uploaded.
    A failed upload therefore leaves neither image behind.
    """
    result = await optimizer.optimize(body.s3_url)

    return OptimizeResponse(
        message="Image optimized successfully",
        url=result.public_url,
    )
