from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from alumni_api.api.deps import get_pagination, get_public_service
from alumni_api.core.response_helpers import success_response
from alumni_api.models.common import ContentFilters, ContentKind, Pagination
from alumni_api.services.public_query import PublicQueryService

router = APIRouter()


@router.get("")
async def list_announcements(
    search: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    pinned: Optional[bool] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    service: PublicQueryService = Depends(get_public_service),
):
    """List announcements that are published and currently active, pinned first"""
    filters = ContentFilters(search=search, category=category, pinned=pinned)
    page = await run_in_threadpool(service.list, ContentKind.ANNOUNCEMENT, filters, pagination)
    return success_response(page)


@router.get("/{announcement_id}")
async def get_announcement(
    announcement_id: str,
    service: PublicQueryService = Depends(get_public_service),
):
    announcement = await run_in_threadpool(service.get, ContentKind.ANNOUNCEMENT, announcement_id)
    return success_response(announcement)
