"""
Event endpoints: catalog CRUD with Redis caching on list operations,
plus the per-event analytics projection.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.enums import EventStatus
from ticketing.schemas.analytics import EventAnalytics
from ticketing.schemas.event import (
    EventCreate,
    EventDeleteResponse,
    EventListResponse,
    EventResponse,
    EventUpdate,
)
from ticketing.services.analytics_service import get_event_analytics
from ticketing.services.event_service import (
    create_event,
    delete_event,
    get_event,
    list_events,
    list_user_events,
    update_event,
)
from ticketing.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from ticketing.core.clock import Clock, get_clock
from ticketing.core.config import get_settings
from ticketing.core.security import CurrentUser, get_current_user
from ticketing.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event with its ticket tiers. The caller becomes the creator."""
    event = await create_event(db, event_data, user, clock)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    category: Optional[str] = Query(None, max_length=50),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    List active events with pagination.
    Cached in Redis; invalidated by every event write and by registration changes.
    """
    cached = await get_cached_events(page, page_size, upcoming_only, category)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, clock, page, page_size, upcoming_only, category)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }

    await set_cached_events(page, page_size, upcoming_only, category, response_data)

    return EventListResponse(**response_data)


@router.get("/user/my-events", response_model=EventListResponse)
async def my_events_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status_filter: Optional[EventStatus] = Query(None, alias="status"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Events created by the caller, newest first. Not cached."""
    events, total = await list_user_events(db, user, status_filter, page, limit)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=limit,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID. Not cached (needs real-time counters)."""
    return await get_event(db, event_id)


@router.get("/{event_id}/analytics", response_model=EventAnalytics)
async def get_event_analytics_endpoint(
    event_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Registration counts, revenue and breakdowns. Creator or admin only."""
    limit = get_settings().RECENT_REGISTRATIONS_LIMIT
    return await get_event_analytics(db, event_id, user, recent_limit=limit)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    changes: EventUpdate,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Partially update an event. Creator or admin only.
    Capacity and tier inventory cannot drop below what is already booked/sold.
    """
    event = await update_event(db, event_id, changes, user, clock)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", response_model=EventDeleteResponse)
async def delete_event_endpoint(
    event_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event together with its ticket tiers and registrations. Creator or admin only."""
    removed = await delete_event(db, event_id, user)
    await invalidate_event_cache()
    return EventDeleteResponse(
        message="Event deleted successfully",
        event_id=event_id,
        registrations_deleted=removed,
    )
