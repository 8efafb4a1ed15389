"""Block watch router: subscribe, list, inspect, cancel, calendar export."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blocktime.auth.dependencies import get_current_owner
from blocktime.config import get_settings
from blocktime.dependencies import get_db, get_estimation_service
from blocktime.estimation.service import EstimationService
from blocktime.notifications.calendar import event_description, event_title, ics_content
from blocktime.watches.schemas import DeleteWatchResponse, SubscribeRequest, WatchResponse
from blocktime.watches.service import create_watch, delete_watch, get_watch, list_watches

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Watches"])

_NOT_FOUND = "Block watch not found"


@router.post("/subscribe", response_model=WatchResponse, status_code=201)
async def subscribe(
    body: SubscribeRequest,
    owner_id: str = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
    service: EstimationService = Depends(get_estimation_service),
) -> WatchResponse:
    """Watch a target block and schedule tier alerts ahead of its estimated time."""
    settings = get_settings()
    estimate = await service.estimate_time_for_block_within(
        body.network, body.target_block, timeout=settings.subscribe_timeout_seconds
    )
    watch = await create_watch(
        db,
        owner_id=owner_id,
        network=body.network,
        estimate=estimate,
        now=service.clock(),
        timezone=body.timezone,
        title=body.title,
        webhook_url=body.slack_webhook_url,
        email=body.email,
    )
    await db.commit()
    return WatchResponse.from_watch(watch)


@router.get("/watches", response_model=list[WatchResponse])
async def get_my_watches(
    owner_id: str = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> list[WatchResponse]:
    """List the caller's watches, newest first."""
    return [WatchResponse.from_watch(w) for w in await list_watches(db, owner_id)]


@router.get("/watches/{watch_id}", response_model=WatchResponse)
async def get_one_watch(
    watch_id: str,
    owner_id: str = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> WatchResponse:
    watch = await get_watch(db, owner_id, watch_id)
    if watch is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return WatchResponse.from_watch(watch)


@router.delete("/watches/{watch_id}", response_model=DeleteWatchResponse)
async def cancel_watch(
    watch_id: str,
    owner_id: str = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> DeleteWatchResponse:
    """Cancel a watch together with its pending alerts."""
    if not await delete_watch(db, owner_id, watch_id):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    await db.commit()
    return DeleteWatchResponse(deleted=True)


@router.get("/calendar/{watch_id}", response_class=Response)
async def download_calendar(
    watch_id: str,
    owner_id: str = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """iCalendar file for the watch's current estimated time."""
    watch = await get_watch(db, owner_id, watch_id)
    if watch is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)

    body = ics_content(
        title=event_title(watch.target_height, watch.network),
        description=event_description(watch.target_height, watch.network),
        start=watch.estimated_time,
        uid=watch.id,
    )
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="block-{watch.target_height}.ics"'},
    )
