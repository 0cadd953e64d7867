from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from alumni_api.api.deps import get_pagination, get_public_service
from alumni_api.core.response_helpers import success_response
from alumni_api.models.common import ContentFilters, ContentKind, Pagination
from alumni_api.services.public_query import PublicQueryService

router = APIRouter()


@router.get("")
async def list_class_groups(
    search: Optional[str] = Query(None, max_length=200),
    graduation_year: Optional[int] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    service: PublicQueryService = Depends(get_public_service),
):
    """List public class groups, most recent graduation year first"""
    filters = ContentFilters(search=search, graduation_year=graduation_year)
    page = await run_in_threadpool(service.list, ContentKind.CLASS_GROUP, filters, pagination)
    return success_response(page)


@router.get("/{group_id}")
async def get_class_group(
    group_id: str,
    service: PublicQueryService = Depends(get_public_service),
):
    group = await run_in_threadpool(service.get, ContentKind.CLASS_GROUP, group_id)
    return success_response(group)
