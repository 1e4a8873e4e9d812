import os

# Settings refuse to load without a real signing secret
os.environ.setdefault("JWT_SECRET_KEY", "pytest-signing-key-0f3c9a")
os.environ["BREVO_API_KEY"] = ""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from gridfs.errors import NoFile

from app.core.auth import create_access_token, hash_password
from app.db import mongodb
from app.db.mongodb import get_resume_bucket
from app.services.mongo_service import RecordStore
from app.services.password_reset_service import PasswordResetService, get_password_reset_service
from app.services.referral_service import ReferralCodeService, get_referral_code_service
from app.services.user_record_service import UserRecordService, get_user_record_service


HIERARCHY = {"milan": "Milan A", "valaya": "Valaya B", "khanda": "Khanda C"}


class RecordingEmailService:
    """Stands in for EmailService; remembers every attempt."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.sent = []

    def _record(self, kind, to, **kwargs):
        self.sent.append({"kind": kind, "to": to, **kwargs})
        if self.error:
            raise self.error
        return self.result

    def send_welcome_email(self, to, temp_password):
        return self._record("welcome", to, temp_password=temp_password)

    def send_access_code_email(self, to, code, duration_text, expires_at, temp_password=None):
        return self._record("access_code", to, code=code, temp_password=temp_password)

    def send_password_reset_email(self, to, name, token, valid_minutes):
        return self._record("password_reset", to, token=token)


class StoredResume:
    def __init__(self, filename, content, metadata):
        self.filename = filename
        self.metadata = metadata
        self._chunks = [content]

    def readchunk(self):
        return self._chunks.pop() if self._chunks else b""


class MemoryResumeBucket:
    """The slice of GridFSBucket the resume code uses, kept in a dict."""

    def __init__(self):
        self.files = {}

    def upload_from_stream(self, filename, source, metadata=None):
        file_id = ObjectId()
        self.files[file_id] = (filename, bytes(source), metadata)
        return file_id

    def delete(self, file_id):
        if self.files.pop(file_id, None) is None:
            raise NoFile(f"no file {file_id}")

    def open_download_stream(self, file_id):
        if file_id not in self.files:
            raise NoFile(f"no file {file_id}")
        return StoredResume(*self.files[file_id])


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    client = mongomock.MongoClient()
    db = client["udyog_jagat_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", db)
    mongodb.init_mongo_indexes()
    return db


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def user_service(email_service):
    return UserRecordService(email_service=email_service)


@pytest.fixture
def resume_bucket():
    return MemoryResumeBucket()


@pytest.fixture
def client(email_service, resume_bucket):
    from app.main import app

    app.dependency_overrides[get_user_record_service] = lambda: UserRecordService(email_service=email_service)
    app.dependency_overrides[get_referral_code_service] = lambda: ReferralCodeService(email_service=email_service)
    app.dependency_overrides[get_password_reset_service] = lambda: PasswordResetService(email_service=email_service)
    app.dependency_overrides[get_resume_bucket] = lambda: resume_bucket
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_record(email, role="job_seeker", password="Password123", **extra):
    store = RecordStore("referrers" if role == "job_referrer" else "users")
    doc = {
        "username": email.split("@")[0],
        "email": email,
        "password": hash_password(password),
        "role": role,
        "status": "active",
        "isSuperAdmin": False,
        "firstLogin": False,
        "onboardingStatus": "not_started" if role == "job_seeker" else "completed",
        **extra,
    }
    if role in ("admin", "job_referrer"):
        doc = {**HIERARCHY, **doc}
    return store.insert(doc)


def auth_header(record):
    return {"Authorization": f"Bearer {create_access_token(record)}"}


@pytest.fixture
def admin():
    return make_record("admin@example.com", role="admin")


@pytest.fixture
def super_admin():
    return make_record("root@example.com", role="admin", isSuperAdmin=True)
