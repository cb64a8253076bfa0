"""Shared test fixtures for ProspectFlow tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL, and
in-process fakes for the email and AI providers.
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import uuid
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from prospectflow.core import deps
from prospectflow.core.database import Base, get_db
from prospectflow.core.seed import seed_default_templates
from prospectflow.main import app
from prospectflow.models import Lead, LeadSource, LeadStatus
from prospectflow.services.email_sender import EmailSendResult
from prospectflow.services.events import InMemoryEventQueue
from prospectflow.services.site_classifier import SiteFetcher

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

GOOD_HTML = """<html><head>
<title>Padaria Central</title>
<meta name="description" content="Pães artesanais em Curitiba">
<meta name="viewport" content="width=device-width, initial-scale=1">
</head><body><h1>Padaria Central</h1></body></html>"""


class FakeEmailSender:
    """Records messages instead of calling SendGrid."""

    def __init__(self, enabled: bool = True, fail: Optional[str] = None):
        self.enabled = enabled
        self.fail = fail
        self.sent = []

    async def send(self, to: str, subject: str, body: str) -> EmailSendResult:
        if self.fail:
            return EmailSendResult(sent=False, error=self.fail)
        self.sent.append({"to": to, "subject": subject, "body": body})
        return EmailSendResult(sent=True, message_id=f"msg-{len(self.sent)}")


class FakeAIClient:
    def __init__(self, answer: Optional[str] = None, error: Optional[Exception] = None, enabled: bool = True):
        self.answer = answer
        self.error = error
        self._enabled = enabled
        self.prompts = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.answer or ""


def site_fetcher(pages: dict) -> SiteFetcher:
    """SiteFetcher answering from ``{url: (status, html)}``; unknown URLs fail like a dead host."""
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url).rstrip("/")
        if url not in pages:
            raise httpx.ConnectError("connection refused", request=request)
        status, body = pages[url]
        return httpx.Response(status, text=body)

    return SiteFetcher(timeout=5.0, user_agent="test-agent", transport=httpx.MockTransport(handler))


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def templates(db):
    """Global default templates, as seeded on app startup."""
    return await seed_default_templates(db)


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def events():
    return InMemoryEventQueue()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def ai_client():
    return FakeAIClient(enabled=False)


@pytest.fixture
def fetcher():
    return site_fetcher({
        "https://padaria.com.br": (200, GOOD_HTML),
        "http://oficina.com.br": (200, "<html><body>Oficina</body></html>"),
        "https://fora-do-ar.com.br": (503, "Service Unavailable"),
    })


@pytest.fixture
def make_lead(db):
    """Insert a lead directly; keyword arguments override the defaults."""
    async def _make(tenant_id, **fields):
        values = {
            "company_name": "Padaria Central",
            "status": LeadStatus.NEW,
            "source": LeadSource.MANUAL,
            "position": 1.0,
        }
        values.update(fields)
        lead = Lead(tenant_id=tenant_id, **values)
        db.add(lead)
        await db.commit()
        await db.refresh(lead)
        return lead

    return _make


@pytest_asyncio.fixture
async def client(session_factory, events, email_sender, ai_client, fetcher):
    """Async HTTP test client with the database and providers swapped for fakes."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_event_queue] = lambda: events
    app.dependency_overrides[deps.get_email_sender] = lambda: email_sender
    app.dependency_overrides[deps.get_ai_client] = lambda: ai_client
    app.dependency_overrides[deps.get_site_fetcher] = lambda: fetcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_user(client):
    """Register and log in a user; returns their token, tenant id and auth headers."""
    await client.post("/api/v1/auth/register", json={
        "email": "sdr@example.com",
        "password": "testpass123",
        "full_name": "SDR Tester",
    })
    resp = await client.post("/api/v1/auth/login", json={
        "email": "sdr@example.com",
        "password": "testpass123",
    })
    data = resp.json()
    return {
        "token": data["access_token"],
        "tenant_id": uuid.UUID(data["user_id"]),
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }
