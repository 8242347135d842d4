"""Kiosk endpoints: detection status, recent detections and greeting playback."""
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.api.models.kiosk import DetectionLogResponse, KioskStatusResponse
from app.core.container import ServiceContainer
from app.core.exceptions import InvalidFrameError, ModelLoadError
from app.core.logging import get_logger
from app.core.utils.image import bytes_to_numpy_array
from app.domain.value_objects.playback import PlaybackEvent
from app.infrastructure.capture.frame_sources import PushedFrameSource
from app.infrastructure.dependencies import (
    get_container,
    get_detection_log,
    get_detection_loop,
    get_notifier,
    get_player,
)
from app.infrastructure.playback.queue_player import QueueMediaPlayer
from app.services.detection_log import DetectionLog
from app.services.detection_loop import DetectionLoop
from app.services.notification.notifier import PlaybackNotifier

logger = get_logger(__name__)
router = APIRouter()


@router.get(
    "/status",
    response_model=KioskStatusResponse,
    summary="Detection loop and gallery status",
)
async def get_status(
    container: ServiceContainer = Depends(get_container)
) -> KioskStatusResponse:
    loop = container.detection_loop
    snapshot = container.gallery_service.snapshot
    last_error = loop.last_error or container.model_handle.last_error
    return KioskStatusResponse(
        running=loop.is_running,
        model_state=container.model_handle.state.value,
        last_error=str(last_error) if last_error else None,
        cooldown_policy=container.scheduler.policy.value,
        cooldown_window_ms=container.scheduler.cooldown_ms,
        greeting_mode="any_face" if container.notifier.greets_any_face else "recognized",
        identities=len(snapshot),
        matchable=len(snapshot.matchable()),
        frames_processed=container.detection_log.frames_processed,
        total_detections=container.detection_log.total_detections,
        pending_playbacks=container.player.pending,
    )


@router.get(
    "/detections",
    response_model=DetectionLogResponse,
    summary="Recently recognised faces",
)
async def get_detections(
    log: DetectionLog = Depends(get_detection_log)
) -> DetectionLogResponse:
    return DetectionLogResponse(entries=log.entries, total_detections=log.total_detections)


@router.post(
    "/frames",
    status_code=202,
    summary="Upload the current camera frame",
    responses={409: {"description": "The kiosk reads frames from a local camera"}},
)
async def push_frame(
    request: Request,
    container: ServiceContainer = Depends(get_container)
) -> Response:
    """Replace the frame the detection loop reads on its next tick."""
    source = container.frame_source
    if not isinstance(source, PushedFrameSource):
        raise HTTPException(status_code=409, detail="Frames are read from a local camera")
    try:
        source.push(bytes_to_numpy_array(await request.body()))
    except InvalidFrameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(status_code=202)


@router.post(
    "/start",
    status_code=204,
    summary="Start the detection loop",
)
async def start_detection(
    loop: DetectionLoop = Depends(get_detection_loop)
) -> Response:
    try:
        await loop.start()
    except ModelLoadError as e:
        logger.error("Failed to start detection loop", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)


@router.post(
    "/stop",
    status_code=204,
    summary="Stop the detection loop",
)
async def stop_detection(
    loop: DetectionLoop = Depends(get_detection_loop)
) -> Response:
    await loop.stop()
    return Response(status_code=204)


@router.get(
    "/playback/next",
    response_model=PlaybackEvent,
    summary="Next greeting to play",
    responses={204: {"description": "Nothing to play"}},
)
async def next_playback(
    player: QueueMediaPlayer = Depends(get_player)
):
    event = player.next_event()
    if event is None:
        return Response(status_code=204)
    return event


@router.post(
    "/playback/finished",
    status_code=204,
    summary="Report that the greeting finished playing",
)
async def playback_finished(
    notifier: PlaybackNotifier = Depends(get_notifier)
) -> Response:
    notifier.playback_finished()
    return Response(status_code=204)


@router.post(
    "/playback/error",
    status_code=204,
    summary="Report that the greeting could not be played",
)
async def playback_error(
    notifier: PlaybackNotifier = Depends(get_notifier)
) -> Response:
    notifier.playback_failed()
    return Response(status_code=204)
