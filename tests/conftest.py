import os

# Settings are read at import time, so the environment must be ready first
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-alumni-content-service-0123456789"
os.environ["CONTENT_BACKEND"] = "memory"
os.environ["ATTACHMENT_BACKEND"] = "memory"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from alumni_api.api.deps import get_services  # noqa: E402
from alumni_api.core.security import ANONYMOUS, RequestContext, create_access_token  # noqa: E402
from alumni_api.models.common import AttachmentUpload, utc_now  # noqa: E402
from alumni_api.services.attachment_store import InMemoryAttachmentStore  # noqa: E402
from alumni_api.services.attachment_validator import AttachmentPolicyTable  # noqa: E402
from alumni_api.services.container import assemble  # noqa: E402
from alumni_api.services.content_store import InMemoryContentBackend  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 128


@pytest.fixture
def attachment_store():
    return InMemoryAttachmentStore()


@pytest.fixture
def backend():
    return InMemoryContentBackend()


@pytest.fixture
def services(backend, attachment_store):
    return assemble(backend, attachment_store, AttachmentPolicyTable(), timeout_seconds=2.0)


@pytest.fixture
def admin_ctx():
    return RequestContext(is_admin=True, user_id="admin-1")


@pytest.fixture
def public_ctx():
    return ANONYMOUS


@pytest.fixture
def png_upload():
    return AttachmentUpload(content=PNG_BYTES, mime_type="image/png", filename="photo.png")


@pytest.fixture
def event_fields():
    def build(**overrides):
        start = utc_now() + timedelta(days=30)
        fields = {
            "title": "Class of 2010 Reunion",
            "description": "Ten years on. Dinner and campus tour.",
            "location": "Main Hall",
            "event_type": "reunion",
            "start_date": start,
            "end_date": start + timedelta(hours=4),
        }
        fields.update(overrides)
        return fields
    return build


@pytest.fixture
def announcement_fields():
    def build(**overrides):
        fields = {
            "title": "New alumni portal",
            "description": "The portal is live.",
            "category": "updates",
            "is_published": True,
            "start_date": utc_now() - timedelta(days=1),
        }
        fields.update(overrides)
        return fields
    return build


@pytest.fixture
def class_group_fields():
    def build(**overrides):
        fields = {
            "name": "Class of 2015",
            "description": "Graduates of 2015",
            "motto": "Onward",
            "graduation_year": 2015,
        }
        fields.update(overrides)
        return fields
    return build


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def member_headers():
    token = create_access_token({"sub": "member-7", "role": "alumni"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(services):
    from main import app

    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
