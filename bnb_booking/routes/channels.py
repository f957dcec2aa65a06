"""
Channel manager operations for the property owner: manual sync and date blocks.
"""

from typing import Any, Optional

import requests
import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.config import DRY_RUN, ROOMS
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import get_booking_store, get_channel_manager
from bnb_booking.errors import BookingError, InvalidDateRange, RoomNotFound, UpstreamFailure
from bnb_booking.routes._booking_helpers import raise_http_error
from bnb_booking.schemas.bookings import BlockDatesRequest, BlockedDateRange, SyncRequest
from bnb_booking.services.sync import sync_channel

logger = structlog.get_logger(__name__)
router = APIRouter()


def validate_channel_or_404(channel: str) -> None:
    if channel.lower() not in {c.value for c in ChannelType}:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Channel manager {channel} not found",
        )


@router.post("/channels/{channel}/sync")
def trigger_channel_sync(
    channel: str,
    payload: Optional[SyncRequest] = Body(default=None),
    dry_run: Optional[bool] = Query(None, description="Override DRY_RUN setting"),
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """
    Import the channel manager's bookings now.

    Args:
        channel: 'beds24' or 'smoobu'
        payload: Optional arrival window, defaults to today + SYNC_LOOKAHEAD_DAYS
        dry_run: Override DRY_RUN setting (optional)

    Returns:
        dict: Reconcile counts (synced, skipped, unrecognized, total, breakdown)
    """
    validate_channel_or_404(channel)
    use_dry_run = DRY_RUN if dry_run is None else dry_run
    window = payload or SyncRequest()

    try:
        result = sync_channel(
            channel.lower(),
            date_from=window.date_from,
            date_to=window.date_to,
            dry_run=use_dry_run,
            store=store,
        )
        logger.info("sync_triggered", channel=channel, dry_run=use_dry_run, synced=result.synced)
        return {"channel": channel.lower(), "dry_run": use_dry_run, **result.model_dump()}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except requests.RequestException as e:
        logger.error("sync_upstream_failed", channel=channel, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Channel manager {channel} is not reachable",
        )
    except Exception as e:
        logger.exception("sync_trigger_failed", channel=channel, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/channels/{channel}/blocked-dates", status_code=status.HTTP_201_CREATED)
def block_dates(
    payload: BlockDatesRequest,
    manager: ChannelManager = Depends(get_channel_manager),
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """
    Close a room for a date range on the channel manager.

    The block is created upstream first; it is recorded locally only once the
    channel manager accepted it.
    """
    channel = manager.channel_type.value
    try:
        if payload.room_id not in ROOMS:
            raise RoomNotFound(room_id=payload.room_id)
        if payload.date_to <= payload.date_from:
            raise InvalidDateRange("La data di fine deve essere successiva alla data di inizio")

        try:
            block_id = manager.block_date_range(
                payload.room_id, payload.date_from, payload.date_to, payload.reason
            )
        except requests.RequestException as e:
            raise UpstreamFailure("block_dates", channel=channel, error=str(e))

        blocked_id = store.insert_blocked_range(
            BlockedDateRange(
                room_id=payload.room_id,
                date_from=payload.date_from,
                date_to=payload.date_to,
                reason=payload.reason,
                channel_block_id=block_id,
            )
        )
        logger.info(
            "dates_blocked",
            channel=channel,
            room_id=payload.room_id,
            date_from=payload.date_from.isoformat(),
            date_to=payload.date_to.isoformat(),
            channel_block_id=block_id,
        )
        return {"id": blocked_id, "channel_block_id": block_id}
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("block_dates_failed", channel=channel, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
