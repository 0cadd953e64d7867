"""Wiring of stores and services from settings.

One container is built per process. Tests build their own with in-memory
backends and install it through the API dependency overrides.
"""
from dataclasses import dataclass
from typing import Optional

from alumni_api.core import config
from alumni_api.core.config import Settings
from alumni_api.core.exceptions import ConfigurationError
from alumni_api.core.logging_config import get_logger
from alumni_api.core.storage_calls import configure_storage_pool
from alumni_api.core.supabase import ensure_supabase_service_client
from alumni_api.services.admin_service import AdminContentService
from alumni_api.services.attachment_store import (
    AttachmentStore,
    InMemoryAttachmentStore,
    LocalDiskAttachmentStore,
    SupabaseAttachmentStore,
)
from alumni_api.services.attachment_validator import AttachmentPolicyTable
from alumni_api.services.content_store import (
    ContentBackend,
    ContentStore,
    InMemoryContentBackend,
    SupabaseContentBackend,
)
from alumni_api.services.mutation_gateway import MutationGateway
from alumni_api.services.public_query import PublicQueryService

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    attachment_store: AttachmentStore
    content_store: ContentStore
    gateway: MutationGateway
    public: PublicQueryService
    admin: AdminContentService


def _attachment_store(settings: Settings) -> AttachmentStore:
    if settings.ATTACHMENT_BACKEND == "supabase":
        return SupabaseAttachmentStore(ensure_supabase_service_client(), settings.SUPABASE_STORAGE_BUCKET)
    if settings.ATTACHMENT_BACKEND == "local":
        return LocalDiskAttachmentStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return InMemoryAttachmentStore()


def _content_backend(settings: Settings) -> ContentBackend:
    if settings.CONTENT_BACKEND == "supabase":
        return SupabaseContentBackend(ensure_supabase_service_client())
    return InMemoryContentBackend()


def assemble(
    backend: ContentBackend,
    attachment_store: AttachmentStore,
    policies: Optional[AttachmentPolicyTable] = None,
    timeout_seconds: float = 10.0,
) -> ServiceContainer:
    content_store = ContentStore(backend, attachment_store)
    gateway = MutationGateway(content_store, attachment_store, policies, timeout_seconds)
    return ServiceContainer(
        attachment_store=attachment_store,
        content_store=content_store,
        gateway=gateway,
        public=PublicQueryService(content_store, timeout_seconds),
        admin=AdminContentService(content_store, gateway, timeout_seconds),
    )


def build_container(settings: Settings) -> ServiceContainer:
    configure_storage_pool(settings.STORAGE_WORKERS)
    container = assemble(
        _content_backend(settings),
        _attachment_store(settings),
        AttachmentPolicyTable.uniform(settings.ALLOWED_ATTACHMENT_TYPES, settings.MAX_ATTACHMENT_BYTES),
        settings.STORAGE_TIMEOUT_SECONDS,
    )
    logger.info(
        f"Content services ready (content={settings.CONTENT_BACKEND}, "
        f"attachments={settings.ATTACHMENT_BACKEND}, timeout={settings.STORAGE_TIMEOUT_SECONDS}s)"
    )
    return container


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Lazily build the process-wide container from the current settings."""
    global _container
    if _container is None:
        if config.settings is None:
            raise ConfigurationError(
                "Settings not initialized. Ensure environment variables are set.",
                error_code="SETTINGS_NOT_INITIALIZED"
            )
        _container = build_container(config.settings)
    return _container


def reset_container() -> None:
    global _container
    _container = None
