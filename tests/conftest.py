"""
Pytest configuration and fixtures for Headshots API tests.
"""
import os
import tempfile

# Keep the app's import-time setup away from the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="headshots-media-"))

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from headshots.auth import create_access_token, get_password_hash
from headshots.database import Base, get_db
from headshots.deps import get_artifact_store, get_provider
from headshots.limiter import limiter
from headshots.main import app
from headshots.models import Prediction, PredictionStatus, Studio, User
from headshots.worker.artifacts import ArtifactStore
from headshots.worker.exceptions import ArtifactUploadError, ProviderError
from headshots.worker.provider import PredictionProvider, ProviderPrediction

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    global _test_session
    try:
        yield _test_session
    finally:
        pass


# ============================================================
# FAKES
# ============================================================

class FakeProvider(PredictionProvider):
    """In-memory provider: records submissions, serves configured states."""

    def __init__(self):
        self.created = []
        self.get_calls = []
        self.predictions = {}
        self.fail_create = False
        self.fail_get = False

    def create(self, version, input, webhook=None, webhook_events_filter=None):
        if self.fail_create:
            raise ProviderError("Replicate returned 422: invalid version", status_code=422)
        external_id = f"ext-{len(self.created) + 1}"
        self.created.append({
            "version": version,
            "input": input,
            "webhook": webhook,
            "webhook_events_filter": webhook_events_filter,
        })
        self.predictions[external_id] = ProviderPrediction(id=external_id, status="starting")
        return ProviderPrediction(id=external_id, status="starting")

    def get(self, external_id):
        self.get_calls.append(external_id)
        if self.fail_get:
            raise ProviderError("Replicate request failed: connection reset")
        if external_id not in self.predictions:
            raise ProviderError("Replicate returned 404: not found", status_code=404)
        return self.predictions[external_id]

    def finish(self, external_id, output="https://replicate.delivery/out/image.jpg"):
        self.predictions[external_id] = ProviderPrediction(id=external_id, status="succeeded", output=[output])

    def fail(self, external_id, status="failed", error="NSFW content detected"):
        self.predictions[external_id] = ProviderPrediction(id=external_id, status=status, error=error)


class FakeArtifactStore(ArtifactStore):
    """Records uploads instead of copying files."""

    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload(self, source_url, filename):
        if self.fail:
            raise ArtifactUploadError(f"Could not store {source_url}")
        self.uploads.append((source_url, filename))
        return f"http://testserver/media/{filename}"


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create a session
    _test_session = TestingSessionLocal()

    # Override the get_db dependency
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    # Cleanup
    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None

    # Drop all tables
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def provider(db):
    """Fake image provider wired into the app."""
    fake = FakeProvider()
    app.dependency_overrides[get_provider] = lambda: fake
    return fake


@pytest.fixture(scope="function")
def artifact_store(db):
    """Fake artifact store wired into the app."""
    fake = FakeArtifactStore()
    app.dependency_overrides[get_artifact_store] = lambda: fake
    return fake


@pytest.fixture(scope="function")
def client(db, provider, artifact_store):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


def _make_user(db, email, display_name):
    user = User(
        email=email,
        hashed_password=get_password_hash("testpassword123"),
        display_name=display_name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return _make_user(db, "test@example.com", "Test User")


@pytest.fixture(scope="function")
def other_user(db):
    """Create a second user who owns nothing of test_user's."""
    return _make_user(db, "other@example.com", "Other User")


@pytest.fixture(scope="function")
def auth_token(test_user):
    """Get an auth token for the test user."""
    return create_access_token({"sub": str(test_user.id)})


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def other_headers(other_user):
    """Get auth headers for the other user."""
    return {"Authorization": f"Bearer {create_access_token({'sub': str(other_user.id)})}"}


def _make_studio(db, user, **fields):
    values = {
        "user_id": user.id,
        "name": "Office Headshots",
        "type": "man",
        "model_user": "TOK",
        "model_version": "acme/tok-headshots",
        "hf_lora": "acme/tok-lora",
        "default_hair_style": "short",
        "default_user_height": 180,
        "images": ["https://example.com/ref-1.jpg"],
    }
    values.update(fields)
    studio = Studio(**values)
    db.add(studio)
    db.commit()
    db.refresh(studio)
    return studio


@pytest.fixture(scope="function")
def studio(db, test_user):
    """A studio owned by test_user."""
    return _make_studio(db, test_user)


@pytest.fixture(scope="function")
def other_studio(db, other_user):
    """A studio owned by other_user."""
    return _make_studio(db, other_user, name="Other Studio")


@pytest.fixture(scope="function")
def make_prediction(db, studio):
    """Factory for predictions; defaults to a processing one in `studio`."""
    def _make(target_studio=None, **fields):
        values = {
            "studio_id": (target_studio or studio).id,
            "external_id": f"ext-{uuid.uuid4().hex[:8]}",
            "status": PredictionStatus.PROCESSING.value,
            "prompt": "professional headshot of TOK a man",
            "style": "corporate",
        }
        values.update(fields)
        prediction = Prediction(**values)
        db.add(prediction)
        db.commit()
        db.refresh(prediction)
        return prediction
    return _make


@pytest.fixture(scope="function")
def completed_prediction(make_prediction):
    """A finished prediction with a stored image, not yet shared."""
    return make_prediction(
        status=PredictionStatus.COMPLETED.value,
        result_url="http://testserver/media/done.png",
    )
