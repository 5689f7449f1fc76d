import mongomock
import pytest
from fastapi.testclient import TestClient

from reviewhub.domain.models import ReviewItem, utcnow
from reviewhub.infrastructure.config.settings import AuthSettings, ScraperSettings, Settings
from reviewhub.infrastructure.persistence import Database
from reviewhub.infrastructure.scraper import ReviewProvider, ScraperError
from reviewhub.web.app import create_app

APP_URL = "https://reviews.example.com"
PASSWORD = "correct-horse"


class FakeProvider(ReviewProvider):
    """In-memory scraper: returns ``reviews`` or raises when ``error`` is set."""

    def __init__(self):
        self.reviews = []
        self.error = None
        self.calls = []

    def scrape(self, business_url, max_reviews):
        self.calls.append((business_url.id, max_reviews))
        if self.error:
            raise ScraperError(self.error)
        return list(self.reviews[:max_reviews])


def make_review(author, rating=None, **extra):
    return ReviewItem(author=author, rating=rating, content=f"Review by {author}", scraped_at=utcnow(), **extra)


@pytest.fixture
def settings():
    return Settings(
        auth=AuthSettings(session_secret="test-secret", session_days=1, cookie_secure=False),
        scraper=ScraperSettings(api_token=""),
        app_url=APP_URL,
        cors_origins=("*",),
        log_level="INFO",
    )


@pytest.fixture
def db():
    client = mongomock.MongoClient(tz_aware=True)
    database = Database(client["reviewhub_test"])
    database.init()
    return database


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def app(settings, db, provider):
    return create_app(settings=settings, database=db, scraper=provider)


@pytest.fixture
def anon(app):
    return TestClient(app)


def _signed_up_client(app, email, full_name):
    client = TestClient(app)
    response = client.post("/auth/signup", json={
        "email": email,
        "password": PASSWORD,
        "fullName": full_name,
    })
    assert response.status_code == 201, response.text
    return client


@pytest.fixture
def client(app):
    return _signed_up_client(app, "owner@example.com", "Olive Owner")


@pytest.fixture
def other_client(app):
    return _signed_up_client(app, "rival@example.com", "Riley Rival")


@pytest.fixture
def business_url(client):
    response = client.post("/business-urls", json={
        "name": "Corner Cafe",
        "url": "https://maps.google.com/?cid=123",
        "source": "google",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def widget_payload(business_url):
    return {
        "name": "Homepage reviews",
        "businessUrlId": business_url["id"],
        "themeColor": "#3182CE",
        "layout": "grid",
        "minRating": 0,
    }
