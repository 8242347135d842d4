"""Enrollment API endpoints.

Frames are posted as raw JPEG or PNG bodies, the way the kiosk page grabs
them from its video element.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.api.models.enrollment import (
    CaptureResponse,
    EnrollmentCompleteRequest,
    EnrollmentProgressResponse,
    EnrollmentStartRequest,
)
from app.api.models.people import IdentityResponse
from app.core.exceptions import (
    EmbeddingSourceError,
    EnrollmentError,
    GalleryStoreError,
    IdentityNotFoundError,
    InvalidInputError,
    MediaStoreError,
    ModelLoadError,
)
from app.core.logging import get_logger
from app.core.utils.image import bytes_to_numpy_array
from app.infrastructure.dependencies import get_enrollment_service
from app.services.enrollment.service import EnrollmentService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        400: {"description": "Invalid frame or request"},
        409: {"description": "No enrollment session, or session in the wrong state"},
        503: {"description": "Embedding model or gallery store unavailable"}
    }
)


def _to_http_error(e: Exception) -> HTTPException:
    """Map service errors to HTTP errors."""
    if isinstance(e, IdentityNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, EnrollmentError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (InvalidInputError, ValueError)):
        return HTTPException(status_code=400, detail=str(e))
    logger.error("Enrollment request failed", error=str(e), error_type=type(e).__name__)
    return HTTPException(status_code=503, detail=str(e))


_handled = (
    EnrollmentError,
    InvalidInputError,
    ValueError,
    IdentityNotFoundError,
    GalleryStoreError,
    MediaStoreError,
    ModelLoadError,
    EmbeddingSourceError,
)


@router.post(
    "",
    status_code=201,
    response_model=EnrollmentProgressResponse,
    summary="Start an enrollment session",
)
async def start_enrollment(
    request: EnrollmentStartRequest,
    service: EnrollmentService = Depends(get_enrollment_service)
) -> EnrollmentProgressResponse:
    """Start a session for a new person, replacing any session in progress."""
    try:
        progress = await service.start(request.name)
    except _handled as e:
        raise _to_http_error(e)
    return EnrollmentProgressResponse.from_progress(progress)


@router.get(
    "",
    response_model=EnrollmentProgressResponse,
    summary="Get enrollment progress",
)
async def get_enrollment(
    service: EnrollmentService = Depends(get_enrollment_service)
) -> EnrollmentProgressResponse:
    try:
        return EnrollmentProgressResponse.from_progress(service.progress)
    except _handled as e:
        raise _to_http_error(e)


@router.post(
    "/frames",
    response_model=EnrollmentProgressResponse,
    summary="Feed a camera frame to the session",
)
async def process_enrollment_frame(
    request: Request,
    service: EnrollmentService = Depends(get_enrollment_service)
) -> EnrollmentProgressResponse:
    """Advance the session with one frame; samples are captured automatically
    once the face has stayed centered for the dwell time."""
    try:
        frame = bytes_to_numpy_array(await request.body())
        progress = await service.process_frame(frame)
    except _handled as e:
        raise _to_http_error(e)
    return EnrollmentProgressResponse.from_progress(progress)


@router.post(
    "/capture",
    response_model=CaptureResponse,
    summary="Capture a sample from a frame",
)
async def capture_enrollment_sample(
    request: Request,
    service: EnrollmentService = Depends(get_enrollment_service)
) -> CaptureResponse:
    """Manual capture: take a sample now, without waiting for alignment.

    A frame without a face returns outcome `no_face`; the caller should ask
    the person to face the camera and try again.
    """
    try:
        frame = bytes_to_numpy_array(await request.body())
        outcome = await service.capture(frame)
        progress = service.progress
    except _handled as e:
        raise _to_http_error(e)
    return CaptureResponse(
        outcome=outcome,
        progress=EnrollmentProgressResponse.from_progress(progress)
    )


@router.post(
    "/complete",
    status_code=201,
    response_model=IdentityResponse,
    summary="Register the enrolled person",
)
async def complete_enrollment(
    request: EnrollmentCompleteRequest,
    service: EnrollmentService = Depends(get_enrollment_service)
) -> IdentityResponse:
    """Publish the completed session. With `identity_id`, re-captures that person."""
    try:
        identity = await service.complete(
            audio_ref=request.audio_ref,
            video_ref=request.video_ref,
            identity_id=request.identity_id,
        )
    except _handled as e:
        raise _to_http_error(e)
    return IdentityResponse.from_identity(identity)


@router.delete(
    "",
    status_code=204,
    summary="Cancel the enrollment session",
)
async def cancel_enrollment(
    service: EnrollmentService = Depends(get_enrollment_service)
) -> Response:
    try:
        await service.cancel()
    except _handled as e:
        raise _to_http_error(e)
    return Response(status_code=204)
