import os
import sys
from pathlib import Path
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SMTP_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest
from fastapi.testclient import TestClient
from minio.error import MinioException

from ats.config import Settings
from ats.db import build_engine, build_session_factory, init_db
from ats.main import create_app
from ats.services import EmailService
from ats.storage import ObjectStorage

PDF_BYTES = b"%PDF-1.4\n% test document\n"
PDF_MIME = "application/pdf"


class FakeResponse:
    def __init__(self, data):
        self.data = data

    def read(self):
        return self.data

    def close(self):
        pass

    def release_conn(self):
        pass


class FakeMinio:
    """In-memory stand-in for ``minio.Minio``.

    Method names listed in ``failing`` raise ``ConnectionError``, which is
    what the SDK surfaces when the server is unreachable.
    """

    def __init__(self):
        self.buckets = set()
        self.objects = {}
        self.calls = []
        self.failing = set()

    def _call(self, name, **kwargs):
        self.calls.append((name, kwargs))
        if name in self.failing:
            raise ConnectionError(f"{name}: connection refused")

    def bucket_exists(self, bucket_name):
        self._call("bucket_exists", bucket_name=bucket_name)
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name, location=None):
        self._call("make_bucket", bucket_name=bucket_name)
        self.buckets.add(bucket_name)

    def put_object(self, bucket_name, object_name, data, length, content_type=None, metadata=None):
        self._call("put_object", bucket_name=bucket_name, object_name=object_name)
        self.objects[(bucket_name, object_name)] = {
            "data": data.read(length),
            "content_type": content_type,
            "metadata": metadata or {},
        }
        return SimpleNamespace(etag=f"etag-{len(self.objects)}", object_name=object_name)

    def get_object(self, bucket_name, object_name):
        self._call("get_object", bucket_name=bucket_name, object_name=object_name)
        if (bucket_name, object_name) not in self.objects:
            raise MinioException(f"NoSuchKey: {object_name}")
        return FakeResponse(self.objects[(bucket_name, object_name)]["data"])

    def remove_object(self, bucket_name, object_name):
        self._call("remove_object", bucket_name=bucket_name, object_name=object_name)
        self.objects.pop((bucket_name, object_name), None)

    def presigned_get_object(self, bucket_name, object_name, expires):
        self._call("presigned_get_object", bucket_name=bucket_name, object_name=object_name)
        return f"http://minio.local/{bucket_name}/{object_name}?X-Amz-Expires={int(expires.total_seconds())}"

    def presigned_put_object(self, bucket_name, object_name, expires):
        self._call("presigned_put_object", bucket_name=bucket_name, object_name=object_name)
        return f"http://minio.local/{bucket_name}/{object_name}?upload=1&X-Amz-Expires={int(expires.total_seconds())}"

    def list_objects(self, bucket_name, prefix=None, recursive=False):
        self._call("list_objects", bucket_name=bucket_name, prefix=prefix)
        return [
            SimpleNamespace(object_name=name)
            for (bucket, name) in sorted(self.objects)
            if bucket == bucket_name and name.startswith(prefix or "")
        ]

    def stat_object(self, bucket_name, object_name):
        self._call("stat_object", bucket_name=bucket_name, object_name=object_name)
        stored = self.objects.get((bucket_name, object_name))
        if stored is None:
            raise MinioException(f"NoSuchKey: {object_name}")
        return SimpleNamespace(
            size=len(stored["data"]),
            etag="stat-etag",
            content_type=stored["content_type"],
        )

    def called(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]


class RecordingEmailService(EmailService):
    def __init__(self):
        super().__init__(host="localhost", port=1025, from_address="ATS <ats@test.local>")
        self.sent = []
        self.fail = False

    def send_email(self, to, template):
        if self.fail:
            raise ConnectionRefusedError("SMTP server unavailable")
        self.sent.append((to, template))


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", environment="test", smtp_enabled=False)


@pytest.fixture
def minio_client():
    return FakeMinio()


@pytest.fixture
def storage(minio_client):
    return ObjectStorage(minio_client, "test-bucket")


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def db_session(settings):
    engine = build_engine(settings.database_url)
    init_db(engine, settings.default_recruiter_id)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def app(settings, storage, email_service):
    return create_app(settings, storage=storage, email_service=email_service)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def candidate_payload():
    return {
        "firstName": "Juan",
        "lastName": "Pérez",
        "email": "juan@example.com",
        "phone": "+34 123 456 789",
        "address": "Calle Test 123",
    }


@pytest.fixture
def create_candidate(client, candidate_payload):
    def _create(**overrides):
        response = client.post("/api/v1/candidates", json={**candidate_payload, **overrides})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def upload_document(client):
    def _upload(candidate_id, name="cv.pdf", content=PDF_BYTES, mime=PDF_MIME, document_type=None):
        data = {"documentType": document_type} if document_type else None
        return client.post(
            f"/api/v1/candidates/{candidate_id}/documents",
            files={"file": (name, content, mime)},
            data=data,
        )

    return _upload
