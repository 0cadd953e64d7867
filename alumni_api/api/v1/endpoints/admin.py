"""Admin content management.

Create and update take a multipart form: a ``payload`` field holding the record
fields as a JSON object, and an optional ``image`` file.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from starlette.concurrency import run_in_threadpool

from alumni_api.api.deps import get_admin_service, get_pagination, parse_payload, read_upload
from alumni_api.core.response_helpers import success_response
from alumni_api.core.security import RequestContext, require_admin
from alumni_api.models.common import ContentFilters, ContentKind, Pagination
from alumni_api.models.event import EventStatusUpdate
from alumni_api.services.admin_service import AdminContentService

router = APIRouter()


class KindSlug(str, Enum):
    EVENTS = "events"
    ANNOUNCEMENTS = "announcements"
    CLASS_GROUPS = "class-groups"

    @property
    def kind(self) -> ContentKind:
        return {
            KindSlug.EVENTS: ContentKind.EVENT,
            KindSlug.ANNOUNCEMENTS: ContentKind.ANNOUNCEMENT,
            KindSlug.CLASS_GROUPS: ContentKind.CLASS_GROUP,
        }[self]


@router.get("/{kind}")
async def list_content(
    kind: KindSlug,
    search: Optional[str] = Query(None, max_length=200),
    published: Optional[bool] = Query(None),
    category: Optional[str] = Query(None),
    pinned: Optional[bool] = Query(None),
    event_type: Optional[str] = Query(None),
    event_status: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    past: bool = Query(False),
    featured: Optional[bool] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    graduation_year: Optional[int] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    """List every record of a kind, including unpublished and expired ones"""
    filters = ContentFilters(
        search=search,
        published=published,
        category=category,
        pinned=pinned,
        event_type=event_type,
        event_status=event_status,
        upcoming=upcoming,
        past=past,
        featured=featured,
        date_from=date_from,
        date_to=date_to,
        graduation_year=graduation_year,
    )
    page = await run_in_threadpool(service.list_all, ctx, kind.kind, filters, pagination)
    return success_response(page)


@router.get("/{kind}/{entity_id}")
async def get_content(
    kind: KindSlug,
    entity_id: str,
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    record = await run_in_threadpool(service.get_all, ctx, kind.kind, entity_id)
    return success_response(record)


@router.post("/{kind}", status_code=status.HTTP_201_CREATED)
async def create_content(
    kind: KindSlug,
    payload: str = Form(...),
    image: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    """Create a record, optionally with an image"""
    fields = parse_payload(payload)
    upload = await read_upload(image)
    record = await run_in_threadpool(service.create, ctx, kind.kind, fields, upload)
    return success_response(record)


@router.put("/events/{entity_id}/status")
async def set_event_status(
    entity_id: str,
    status_update: EventStatusUpdate,
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    record = await run_in_threadpool(service.set_event_status, ctx, entity_id, status_update.status)
    return success_response(record)


@router.put("/{kind}/{entity_id}")
async def update_content(
    kind: KindSlug,
    entity_id: str,
    payload: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    """Update fields and/or replace the image. The old image is removed once replaced."""
    fields = parse_payload(payload)
    upload = await read_upload(image)
    record = await run_in_threadpool(service.update, ctx, kind.kind, entity_id, fields, upload)
    return success_response(record)


@router.patch("/{kind}/{entity_id}/toggle/{flag}")
async def toggle_flag(
    kind: KindSlug,
    entity_id: str,
    flag: str,
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    record = await run_in_threadpool(service.toggle, ctx, kind.kind, entity_id, flag)
    return success_response(record)


@router.delete("/{kind}/{entity_id}")
async def delete_content(
    kind: KindSlug,
    entity_id: str,
    ctx: RequestContext = Depends(require_admin),
    service: AdminContentService = Depends(get_admin_service),
):
    await run_in_threadpool(service.delete, ctx, kind.kind, entity_id)
    return success_response({"id": entity_id, "deleted": True})
