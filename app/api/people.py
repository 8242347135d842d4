"""Registered people API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.models.people import GallerySyncResponse, IdentityResponse, IdentityUpdateRequest
from app.core.exceptions import GalleryStoreError, IdentityNotFoundError, InvalidInputError
from app.core.logging import get_logger
from app.infrastructure.dependencies import get_gallery_service
from app.services.gallery import GalleryService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        404: {"description": "Person not found"},
        503: {"description": "Gallery store unavailable"}
    }
)


@router.get(
    "",
    response_model=List[IdentityResponse],
    summary="List registered people",
)
async def list_people(
    gallery: GalleryService = Depends(get_gallery_service)
) -> List[IdentityResponse]:
    """List every registered person in id order."""
    return [IdentityResponse.from_identity(identity) for identity in gallery.list()]


@router.post(
    "/sync",
    response_model=GallerySyncResponse,
    summary="Reload the gallery from the store",
)
async def sync_people(
    gallery: GalleryService = Depends(get_gallery_service)
) -> GallerySyncResponse:
    """Reload the gallery from the store, discarding any in-memory divergence."""
    try:
        snapshot = await gallery.refresh()
    except GalleryStoreError as e:
        logger.error("Gallery sync failed", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return GallerySyncResponse(identities=len(snapshot), matchable=len(snapshot.matchable()))


@router.get(
    "/{identity_id}",
    response_model=IdentityResponse,
    summary="Get a registered person",
)
async def get_person(
    identity_id: str,
    gallery: GalleryService = Depends(get_gallery_service)
) -> IdentityResponse:
    try:
        return IdentityResponse.from_identity(gallery.get(identity_id))
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{identity_id}",
    response_model=IdentityResponse,
    summary="Rename a person or change their greeting media",
)
async def update_person(
    identity_id: str,
    request: IdentityUpdateRequest,
    gallery: GalleryService = Depends(get_gallery_service)
) -> IdentityResponse:
    """Update name and media references. Embeddings are changed by re-enrolling.

    Raises:
        HTTPException: 404 for an unknown id, 400 for a blank name,
            503 if the store rejects the write
    """
    try:
        identity = await gallery.update(
            identity_id,
            name=request.name,
            audio_ref=request.audio_ref,
            video_ref=request.video_ref,
        )
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GalleryStoreError as e:
        logger.error("Failed to update person", identity_id=identity_id, error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return IdentityResponse.from_identity(identity)


@router.delete(
    "/{identity_id}",
    status_code=204,
    summary="Delete a registered person",
)
async def delete_person(
    identity_id: str,
    gallery: GalleryService = Depends(get_gallery_service)
) -> Response:
    try:
        await gallery.remove(identity_id)
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GalleryStoreError as e:
        logger.error("Failed to delete person", identity_id=identity_id, error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)
