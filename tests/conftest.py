"""Shared test fixtures for PairPlus."""

import json
from typing import Any, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pairplus.common.config import PairPlusSettings
from pairplus.common.database import DatabaseManager
from pairplus.identity.verifier import TokenVerifier
from pairplus.store.sql import SqlDocumentStore


SERVICE_TOKEN = "test-service-token"
SHARED_SECRET = "test-shared-secret"
PACKAGE_NAME = "com.example.pairs"
GOOD_TOKEN = "good-id-token"
UID = "user-alice"

APPLE_PRODUCTION = "https://apple.test/production/verifyReceipt"
APPLE_SANDBOX = "https://apple.test/sandbox/verifyReceipt"
PUBLISHER = "https://publisher.test/androidpublisher/v3"


def make_settings(**overrides) -> PairPlusSettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "service_token": SERVICE_TOKEN,
        "apple_shared_secret": SHARED_SECRET,
        "apple_production_url": APPLE_PRODUCTION,
        "apple_sandbox_url": APPLE_SANDBOX,
        "android_package_name": PACKAGE_NAME,
        "google_service_account_json": "{}",
        "android_publisher_url": PUBLISHER,
    }
    defaults.update(overrides)
    return PairPlusSettings(**defaults)


class StaticTokenVerifier(TokenVerifier):
    """Accepts a fixed set of tokens."""

    def __init__(self, tokens: dict[str, str]):
        self.tokens = tokens

    async def verify(self, token: str) -> Optional[str]:
        return self.tokens.get(token)


class FakeCredentials:
    """Stands in for google-auth service-account credentials."""

    def __init__(self, token: str = "fake-access-token", valid: bool = True):
        self.token = token
        self.valid = valid
        self.refreshed = 0

    def refresh(self, request) -> None:
        self.refreshed += 1
        self.valid = True


class FakeAuthority:
    """Scripted HTTP responder for the storefront verification authorities."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[str, list[httpx.Response]] = {}

    def respond(self, url_prefix: str, payload: Any, status_code: int = 200) -> None:
        self._routes.setdefault(url_prefix, []).append(
            httpx.Response(status_code, json=payload)
        )

    def fail(self, url_prefix: str, exc: Exception) -> None:
        self._routes.setdefault(url_prefix, []).append(exc)

    def calls_to(self, url_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, queue in self._routes.items():
            if str(request.url).startswith(prefix) and queue:
                result = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(result, Exception):
                    raise result
                return result
        return httpx.Response(404, json={"error": "unscripted"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


class CountingStore(SqlDocumentStore):
    """SQL store that records every merge, for write-count assertions."""

    def __init__(self, db: DatabaseManager):
        super().__init__(db)
        self.merges: list[tuple[str, str, dict]] = []

    async def merge(self, collection, doc_id, fields, must_exist=False):
        self.merges.append((collection, doc_id, dict(fields)))
        return await super().merge(collection, doc_id, fields, must_exist=must_exist)

    def writes_to(self, collection: str) -> list[tuple[str, str, dict]]:
        return [m for m in self.merges if m[0] == collection]


def receipt_payload(*transactions: dict, status: int = 0) -> dict:
    return {"status": status, "latest_receipt_info": list(transactions)}


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def db(settings):
    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def store(db):
    return CountingStore(db)


@pytest.fixture
async def file_db(tmp_path):
    """A file-backed SQLite database, where separate connections really contend."""
    manager = DatabaseManager(make_settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'pairplus.db'}"))
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def file_store(file_db):
    return CountingStore(file_db)


@pytest.fixture
def authority():
    return FakeAuthority()


@pytest.fixture
def fake_credentials():
    return FakeCredentials()


@pytest.fixture
def app(monkeypatch, authority, fake_credentials):
    """Create a test app with in-memory DB and scripted storefronts."""
    monkeypatch.setenv("PAIRPLUS_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("PAIRPLUS_SERVICE_TOKEN", SERVICE_TOKEN)
    monkeypatch.setenv("PAIRPLUS_APPLE_SHARED_SECRET", SHARED_SECRET)
    monkeypatch.setenv("PAIRPLUS_APPLE_PRODUCTION_URL", APPLE_PRODUCTION)
    monkeypatch.setenv("PAIRPLUS_APPLE_SANDBOX_URL", APPLE_SANDBOX)
    monkeypatch.setenv("PAIRPLUS_ANDROID_PACKAGE_NAME", PACKAGE_NAME)
    monkeypatch.setenv("PAIRPLUS_GOOGLE_SERVICE_ACCOUNT_JSON", json.dumps({"type": "service_account"}))
    monkeypatch.setenv("PAIRPLUS_ANDROID_PUBLISHER_URL", PUBLISHER)

    # Clear caches and singletons so new env vars take effect
    from pairplus.common.config import get_settings
    get_settings.cache_clear()

    from pairplus import deps
    deps.reset_singletons()

    from pairplus.storefronts.app_store import AppStoreStorefront
    from pairplus.storefronts.google_play import GooglePlayStorefront

    settings = get_settings()
    deps._token_verifier = StaticTokenVerifier({GOOD_TOKEN: UID})
    deps._storefronts = {
        "ios": AppStoreStorefront(settings, transport=authority.transport),
        "android": GooglePlayStorefront(
            settings, credentials=fake_credentials, transport=authority.transport,
        ),
    }

    from pairplus.app import create_app
    yield create_app()

    get_settings.cache_clear()
    deps.reset_singletons()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from pairplus.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def app_store(app):
    """The document store the running app writes to."""
    from pairplus.deps import get_store
    return get_store()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {GOOD_TOKEN}"}


@pytest.fixture
def service_headers():
    return {"X-PairPlus-Service-Token": SERVICE_TOKEN}
