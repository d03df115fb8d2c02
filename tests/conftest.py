import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from httpx import ASGITransport, AsyncClient

from app.main import app
from app.dependencies import get_firestore_service, get_image_service
from app.services.firestore_service import FirestoreService
from app.services.image_service import ImageService


def make_snapshot(doc_id, data, exists=True):
    """A stand-in for a Firestore DocumentSnapshot."""
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.side_effect = lambda: dict(data) if exists else None
    return snapshot


async def aiter_of(items):
    for item in items:
        yield item


@pytest.fixture
def game_data():
    return {
        "name": "Portal 2",
        "genre": "Puzzle",
        "releaseYear": 2011,
        "photo": "https://storage.googleapis.com/bucket/images/g1/portal.png",
        "numRatings": 2,
        "sumRating": 9,
        "avgRating": 4.5,
    }


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def mock_listener_db():
    return MagicMock()


@pytest.fixture
def firestore_service(mock_db, mock_listener_db):
    return FirestoreService(db=mock_db, listener_db=mock_listener_db)


@pytest.fixture
def mock_firestore_service():
    return AsyncMock(spec=FirestoreService)


@pytest.fixture
def mock_image_service():
    return AsyncMock(spec=ImageService)


@pytest.fixture
def app_with_services(mock_firestore_service, mock_image_service):
    """Override the dependencies to use mocked services."""
    app.dependency_overrides[get_firestore_service] = lambda: mock_firestore_service
    app.dependency_overrides[get_image_service] = lambda: mock_image_service
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app_with_services):
    transport = ASGITransport(app=app_with_services)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
