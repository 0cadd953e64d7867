from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from alumni_api.api.deps import get_pagination, get_public_service
from alumni_api.core.response_helpers import success_response
from alumni_api.models.common import ContentFilters, ContentKind, Pagination
from alumni_api.services.public_query import PublicQueryService

router = APIRouter()


@router.get("")
async def list_events(
    search: Optional[str] = Query(None, max_length=200),
    event_type: Optional[str] = Query(None),
    event_status: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    past: bool = Query(False),
    featured: Optional[bool] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    service: PublicQueryService = Depends(get_public_service),
):
    """List published events"""
    filters = ContentFilters(
        search=search,
        event_type=event_type,
        event_status=event_status,
        upcoming=upcoming,
        past=past,
        featured=featured,
        date_from=date_from,
        date_to=date_to,
    )
    page = await run_in_threadpool(service.list, ContentKind.EVENT, filters, pagination)
    return success_response(page)


@router.get("/upcoming")
async def list_upcoming_events(
    search: Optional[str] = Query(None, max_length=200),
    event_type: Optional[str] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    service: PublicQueryService = Depends(get_public_service),
):
    """Published events starting from now, soonest first"""
    filters = ContentFilters(search=search, event_type=event_type, upcoming=True)
    page = await run_in_threadpool(service.list, ContentKind.EVENT, filters, pagination)
    return success_response(page)


@router.get("/featured")
async def list_featured_events(
    limit: int = Query(3, ge=1, le=20),
    service: PublicQueryService = Depends(get_public_service),
):
    """Upcoming events featured on the homepage"""
    events = await run_in_threadpool(service.list_featured_events, limit)
    return success_response(events)


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    service: PublicQueryService = Depends(get_public_service),
):
    """Get a published event"""
    event = await run_in_threadpool(service.get, ContentKind.EVENT, event_id)
    return success_response(event)
