"""Shared FastAPI dependencies for the v1 endpoints."""
import json
from typing import Any, Dict, Optional

from fastapi import Depends, Query, UploadFile

from alumni_api.core import config
from alumni_api.core.exceptions import ValidationError
from alumni_api.models.common import MAX_PAGE_LIMIT, AttachmentUpload, Pagination
from alumni_api.services.admin_service import AdminContentService
from alumni_api.services.container import ServiceContainer, get_container
from alumni_api.services.public_query import PublicQueryService


def get_services() -> ServiceContainer:
    return get_container()


def get_public_service(services: ServiceContainer = Depends(get_services)) -> PublicQueryService:
    return services.public


def get_admin_service(services: ServiceContainer = Depends(get_services)) -> AdminContentService:
    return services.admin


def get_pagination(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_LIMIT),
) -> Pagination:
    """Page parameters, defaulting and capping the page size from settings."""
    settings = config.settings
    default_size = settings.DEFAULT_PAGE_SIZE if settings else 10
    max_size = settings.MAX_PAGE_SIZE if settings else MAX_PAGE_LIMIT
    return Pagination(page=page, limit=min(limit or default_size, max_size))


def parse_payload(payload: Optional[str]) -> Dict[str, Any]:
    """Decode the JSON ``payload`` form field sent alongside an upload."""
    if payload is None or not payload.strip():
        return {}
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        raise ValidationError("payload", "must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("payload", "must be a JSON object")
    return data


async def read_upload(image: Optional[UploadFile]) -> Optional[AttachmentUpload]:
    if image is None or not image.filename:
        return None
    content = await image.read()
    return AttachmentUpload(
        content=content,
        mime_type=image.content_type or "application/octet-stream",
        filename=image.filename,
    )
