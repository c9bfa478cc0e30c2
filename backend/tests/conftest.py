"""Pytest fixtures for the seller onboarding backend.

Provides reusable test fixtures for:
- In-memory SQLite database session (tables created per test)
- User and seller factories
- Supabase storage adapter backed by moto's S3 mock and a fake bucket API
- Clerk-style RS256 session tokens
- FastAPI test client with database/storage overrides

Usage:
    def test_admin_listing(client, admin_headers):
        response = client.get("/api/v1/sellers", headers=admin_headers)
        assert response.status_code == 200
"""

import json
import os
import sys
import time
from pathlib import Path
from typing import Generator

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# RSA key pair used to sign test session tokens
_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
TEST_PRIVATE_KEY_PEM = _PRIVATE_KEY.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption(),
).decode()
TEST_PUBLIC_KEY_PEM = _PRIVATE_KEY.public_key().public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

# Set environment variables BEFORE any application imports so the cached
# settings pick them up
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CLERK_JWT_KEY"] = TEST_PUBLIC_KEY_PEM
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_S3_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("SUPABASE_S3_SECRET_ACCESS_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_S3_REGION", "us-east-1")

# moto intercepts the calls, but botocore still wants credentials
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from config import get_settings
from domain.documents.validation import SUPPORTED_MIME_TYPES
from infrastructure.repositories.seller_repository import set_categories
from infrastructure.storage.legacy_filesystem import LegacyFileLocator
from infrastructure.storage.supabase_bucket_api import SupabaseBucketApi
from infrastructure.storage.supabase_storage_adapter import SupabaseStorageAdapter
from models.base import Base
from models.seller import Seller
from models.user import User
from sellers.service import RoleSynchronizer

get_settings.cache_clear()

TEST_BUCKET = "seller-documents"
TEST_SUPABASE_URL = "https://test-project.supabase.co"

# One shared connection so every thread (TestClient runs sync endpoints in a
# worker thread) sees the same in-memory database
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def make_user(db_session: Session):
    """Factory for users rows."""

    def _make_user(clerk_id: str, email: str, role: str = "customer", name: str = None) -> User:
        user = User(clerk_id=clerk_id, email=email, role=role, name=name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_seller(db_session: Session):
    """Factory for sellers rows. Extra keyword arguments become columns."""

    def _make_seller(
        email: str = "owner@acme-supplies.com",
        status: str = "pending",
        documents=None,
        categories=("electronics",),
        **fields,
    ) -> Seller:
        values = {
            "business_name": "Acme Supplies",
            "contact_name": "Sam Lee",
            "clerk_id": None,
        }
        values.update(fields)
        seller = Seller(email=email, status=status, documents=list(documents or []), **values)
        set_categories(seller, categories)
        db_session.add(seller)
        db_session.commit()
        db_session.refresh(seller)
        return seller

    return _make_seller


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("user_admin", "admin@marketplace.test", role="admin")


@pytest.fixture
def applicant_user(make_user) -> User:
    return make_user("user_applicant", "owner@acme-supplies.com", role="customer")


class FakeBucketEndpoint:
    """In-memory stand-in for the Storage bucket endpoints.

    Mirrors Supabase's habit of reporting a missing bucket as HTTP 400 with
    `statusCode: "404"` in the body. `created` keeps every POST payload.
    """

    def __init__(self, existing=()):
        self.buckets = {name: {"id": name, "name": name, "public": True} for name in existing}
        self.created = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path.startswith("/storage/v1/bucket/"):
            name = path.rsplit("/", 1)[-1]
            if name not in self.buckets:
                body = {"statusCode": "404", "error": "Bucket not found", "message": "Bucket not found"}
                return httpx.Response(400, json=body)
            return httpx.Response(200, json=self.buckets[name])

        if request.method == "POST" and path == "/storage/v1/bucket":
            payload = json.loads(request.content)
            if payload["name"] in self.buckets:
                body = {"statusCode": "409", "error": "Duplicate", "message": "The resource already exists"}
                return httpx.Response(400, json=body)
            self.buckets[payload["name"]] = payload
            self.created.append(payload)
            return httpx.Response(200, json={"name": payload["name"]})

        return httpx.Response(404, json={"message": "Not found"})

    def api(self) -> SupabaseBucketApi:
        transport = httpx.MockTransport(self.handler)
        return SupabaseBucketApi(TEST_SUPABASE_URL, "test-service-key", transport=transport)


@pytest.fixture
def make_bucket_endpoint():
    """Factory for bucket APIs with a chosen set of existing buckets."""
    return FakeBucketEndpoint


@pytest.fixture
def bucket_endpoint() -> FakeBucketEndpoint:
    """Bucket API with the documents bucket already present."""
    return FakeBucketEndpoint(existing=[TEST_BUCKET])


@pytest.fixture
def storage(bucket_endpoint: FakeBucketEndpoint) -> Generator[SupabaseStorageAdapter, None, None]:
    """SupabaseStorageAdapter against moto's S3, bucket already created."""
    with mock_aws():
        adapter = SupabaseStorageAdapter(
            supabase_url=TEST_SUPABASE_URL,
            endpoint_url=None,  # AWS S3 (moto mocks this)
            access_key="test-access-key",
            secret_key="test-secret-key",
            bucket_name=TEST_BUCKET,
            region="us-east-1",
            max_file_size=10 * 1024 * 1024,
            allowed_mime_types=SUPPORTED_MIME_TYPES,
            bucket_api=bucket_endpoint.api(),
        )
        adapter.s3_client.create_bucket(Bucket=TEST_BUCKET)
        yield adapter


@pytest.fixture
def uploads_root(tmp_path: Path) -> Path:
    """Legacy uploads tree with the conventional seller_documents folder."""
    root = tmp_path / "uploads"
    (root / "seller_documents").mkdir(parents=True)
    return root


@pytest.fixture
def locator(uploads_root: Path) -> LegacyFileLocator:
    return LegacyFileLocator(str(uploads_root))


@pytest.fixture
def role_sync(db_session: Session) -> RoleSynchronizer:
    """Role writer that never sleeps between retries."""
    return RoleSynchronizer(db_session, sleep=lambda seconds: None)


def make_token(
    clerk_id: str,
    email: str = None,
    expires_in: int = 3600,
    private_key: str = TEST_PRIVATE_KEY_PEM,
    **claims,
) -> str:
    """Mint a Clerk-style RS256 session token."""
    now = int(time.time())
    payload = {"sub": clerk_id, "iat": now, "nbf": now, "exp": now + expires_in}
    if email:
        payload["email"] = email
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256")


def auth_headers(clerk_id: str, email: str = None, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(clerk_id, email, **claims)}"}


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user.clerk_id, admin_user.email)


@pytest.fixture
def applicant_headers(applicant_user: User) -> dict:
    return auth_headers(applicant_user.clerk_id, applicant_user.email)


@pytest.fixture(scope="function")
def client(db_session: Session, storage: SupabaseStorageAdapter, locator: LegacyFileLocator):
    """Create a test client bound to the test database, moto storage and a
    temporary legacy uploads directory.

    Not used as a context manager, so the startup bucket check does not run.
    """
    from database import get_db as database_get_db
    from main import app
    from sellers.router import get_legacy_locator, get_storage

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_legacy_locator] = lambda: locator

    yield TestClient(app)

    app.dependency_overrides.clear()
