"""
Pytest configuration and fixtures for the Case & Report Tracker tests.
"""

from datetime import datetime

import pytest

from casetrack import create_app, get_services
from casetrack.config.settings import TestingConfig
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.services.persistence import LocalCollectionStore, FallbackCollectionStore, PersistenceWriter

# Fixed "now" for deadline arithmetic: 1 May 2024, mid-morning
NOW = datetime(2024, 5, 1, 9, 30)

TEST_EMAIL = "clerk@example.org"
TEST_PASSWORD = "correct-horse"


@pytest.fixture
def app(tmp_path):
    """Create application for testing."""

    class IsolatedTestingConfig(TestingConfig):
        STORAGE_DIR = str(tmp_path / "storage")

    app = create_app(IsolatedTestingConfig)
    app.config.update({"TESTING": True})

    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def registered_user(app):
    result = get_services(app).auth.register(TEST_EMAIL, TEST_PASSWORD, "Court Clerk")
    assert result.success
    return result.user


@pytest.fixture
def auth_client(client, registered_user):
    """Test client with a signed-in user."""
    response = client.post("/api/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def evaluator(now):
    return DeadlineEvaluator(clock=lambda: now)


@pytest.fixture
def local_store(tmp_path):
    return LocalCollectionStore(str(tmp_path / "collections"))


@pytest.fixture
def writer(local_store):
    """Synchronous writer over a single local backend."""
    return PersistenceWriter(FallbackCollectionStore([local_store]), async_mode=False)
