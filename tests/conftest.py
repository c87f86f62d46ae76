"""Pytest configuration and fixtures for the Dissonant API test suite.

Provides:
- An in-memory document store with the same atomicity guarantees as Firestore
- Services wired to the in-memory store with mocked external clients
- Disabled rate limiting
- An async HTTP client with the services dependency overridden
- Order document factories
"""

import copy
import uuid
from collections.abc import AsyncGenerator, Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dissonant.core.config import Settings, get_settings
from dissonant.core.deps import get_services, get_store
from dissonant.core.document_store import Condition, StoredDocument
from dissonant.core.rate_limit import limiter
from dissonant.integrations.labels.client import LabelServiceClient
from dissonant.integrations.shippo.client import ShippoClient
from dissonant.main import app
from dissonant.models.order import ORDERS_COLLECTION, USERS_COLLECTION, get_path
from dissonant.services.curator_stats import CuratorStatsService
from dissonant.services.customer_service import CustomerResolver
from dissonant.services.email_service import EmailService
from dissonant.services.factory import Services
from dissonant.services.label_service import ShippingLabelService
from dissonant.services.notification_service import CuratorNotificationService
from dissonant.services.order_reconciler import OrderReconciler
from dissonant.services.tracking_service import TrackingService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
TEST_USER_ID = "user-1"
TEST_CUSTOMER_EMAIL = "listener@example.com"
TEST_CURATOR_ID = "curator-1"
TEST_ADDRESS = "Jane Doe\n123 Vinyl Ave\nAustin, TX 78701"
LABEL_SERVICE_URL = "https://labels.test/createShippingLabels"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# In-memory document store
# ---------------------------------------------------------------------------


def _set_path(data: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = copy.deepcopy(value)


class InMemoryDocumentStore:
    """Dict-backed DocumentStore.

    Reads return copies, updates to missing documents raise ``KeyError``
    like Firestore's NotFound, and ``batch_update`` validates every target
    before writing any of them.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.batches: list[dict[str, dict[str, Any]]] = []
        self.fail_next_batch: Exception | None = None

    def seed(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(dict(data))

    def raw(self, collection: str, doc_id: str) -> dict[str, Any]:
        return self.collections[collection][doc_id]

    def all(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.get(collection, {})

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self.all(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def query(self, collection: str, field_path: str, value: Any) -> list[StoredDocument]:
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.all(collection).items()
            if get_path(data, field_path) == value
        ]

    async def query_in(
        self, collection: str, field_path: str, values: Sequence[Any]
    ) -> list[StoredDocument]:
        wanted = list(values)
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.all(collection).items()
            if get_path(data, field_path) in wanted
        ]

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.seed(collection, doc_id, data)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        if doc_id not in self.all(collection):
            raise KeyError(f"{collection}/{doc_id}")
        for path, value in fields.items():
            _set_path(self.collections[collection][doc_id], path, value)

    async def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        if self.fail_next_batch is not None:
            error, self.fail_next_batch = self.fail_next_batch, None
            raise error
        missing = [doc_id for doc_id in updates if doc_id not in self.all(collection)]
        if missing:
            raise KeyError(f"{collection}/{missing[0]}")
        self.batches.append({doc_id: dict(fields) for doc_id, fields in updates.items()})
        for doc_id, fields in updates.items():
            await self.update(collection, doc_id, fields)

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        condition: Condition,
        fields: Mapping[str, Any],
    ) -> bool:
        if not condition(await self.get(collection, doc_id)):
            return False
        await self.update(collection, doc_id, fields)
        return True


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings with every external endpoint configured."""
    return Settings(
        _env_file=None,
        courier_api_key="shippo_test_key",
        email_api_key="SG.test",
        label_service_url=LABEL_SERVICE_URL,
        shippo_webhook_token="",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Provide a fresh in-memory store per test."""
    return InMemoryDocumentStore()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep that records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def mock_email_service() -> AsyncMock:
    """EmailService whose sends always succeed."""
    service = AsyncMock(spec=EmailService)
    service.send_templated_email.return_value = True
    return service


@pytest.fixture
def mock_auth_lookup() -> AsyncMock:
    """Auth lookup that finds nobody unless a test configures it."""
    lookup = AsyncMock()
    lookup.get_user.return_value = None
    return lookup


@pytest.fixture
def mock_label_client() -> AsyncMock:
    return AsyncMock(spec=LabelServiceClient)


@pytest.fixture
def mock_shippo() -> AsyncMock:
    return AsyncMock(spec=ShippoClient)


@pytest.fixture
def mock_push() -> AsyncMock:
    push = AsyncMock()
    push.send_to_device.return_value = "projects/test/messages/1"
    push.send_to_topic.return_value = "projects/test/messages/2"
    return push


@pytest.fixture
def customer_resolver(
    store: InMemoryDocumentStore, mock_auth_lookup: AsyncMock
) -> CustomerResolver:
    return CustomerResolver(store, mock_auth_lookup)


@pytest.fixture
def reconciler(
    store: InMemoryDocumentStore,
    mock_email_service: AsyncMock,
    customer_resolver: CustomerResolver,
    clock: Callable[[], datetime],
) -> OrderReconciler:
    return OrderReconciler(
        store,
        mock_email_service,
        customer_resolver,
        curator_stats=CuratorStatsService(store),
        clock=clock,
    )


@pytest.fixture
def label_service(
    settings: Settings,
    store: InMemoryDocumentStore,
    mock_label_client: AsyncMock,
    customer_resolver: CustomerResolver,
    no_sleep: AsyncMock,
    clock: Callable[[], datetime],
) -> ShippingLabelService:
    return ShippingLabelService(
        settings,
        store,
        mock_label_client,
        customer_resolver,
        sleep=no_sleep,
        clock=clock,
    )


@pytest.fixture
def tracking_service(
    settings: Settings,
    store: InMemoryDocumentStore,
    mock_shippo: AsyncMock,
    reconciler: OrderReconciler,
    customer_resolver: CustomerResolver,
    no_sleep: AsyncMock,
) -> TrackingService:
    return TrackingService(
        settings, store, mock_shippo, reconciler, customer_resolver, sleep=no_sleep
    )


@pytest.fixture
def services(
    store: InMemoryDocumentStore,
    reconciler: OrderReconciler,
    tracking_service: TrackingService,
    label_service: ShippingLabelService,
    mock_push: AsyncMock,
) -> Services:
    """Every service wired to the in-memory store and mocked externals."""
    return Services(
        store=store,
        reconciler=reconciler,
        tracking=tracking_service,
        labels=label_service,
        notifications=CuratorNotificationService(store, mock_push),
        curator_stats=CuratorStatsService(store),
    )


# ---------------------------------------------------------------------------
# HTTP client (overrides settings, store and services)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    store: InMemoryDocumentStore,
    services: Services,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with all dependencies overridden."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------


@pytest.fixture
def order_factory(store: InMemoryDocumentStore) -> Callable[..., dict[str, Any]]:
    """Factory that seeds an order document and returns its data."""

    def _create(order_id: str, **fields: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "userId": TEST_USER_ID,
            "status": "new",
            "address": TEST_ADDRESS,
            "timestamp": FIXED_NOW,
        }
        data.update(fields)
        store.seed(ORDERS_COLLECTION, order_id, data)
        return data

    return _create


@pytest.fixture
def customer(store: InMemoryDocumentStore) -> dict[str, Any]:
    """Seed the default customer's user profile."""
    data = {"email": TEST_CUSTOMER_EMAIL, "displayName": "Jane Doe"}
    store.seed(USERS_COLLECTION, TEST_USER_ID, data)
    return data


@pytest.fixture
def curator(store: InMemoryDocumentStore) -> dict[str, Any]:
    """Seed a curator profile with a device token."""
    data = {"displayName": "DJ Curator", "fcmToken": "fcm-token-1", "isCurator": True}
    store.seed(USERS_COLLECTION, TEST_CURATOR_ID, data)
    return data
