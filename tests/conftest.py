"""Pytest configuration and fixtures."""

import asyncio
import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient

from confirmation_service.config import Settings, get_settings
from confirmation_service.errors import LabInterfaceUnavailable, StoreWriteFailed
from confirmation_service.infrastructure.database.models import (
    ConfirmationRecord,
    LabOrder,
)
from confirmation_service.infrastructure.lab_interface.client import PendingConfirmations
from confirmation_service.infrastructure.redis import CacheService, get_cache
from confirmation_service.main import create_app
from confirmation_service.services.confirmation_store import ConfirmationStore


def make_payload(accession: str | None = "12345", received: str | None = "20260114093012") -> str:
    """Build a raw confirmation payload the way the lab interface returns it."""
    lines = []
    if received is not None:
        lines.append(f"Received Time:{received}")
    if accession is not None:
        lines.append(f"Accession:{accession}")
    lines.append("MSH|^~\\&|LIS|NOVAGEN|TRACKER|FAC|20260114093012||ORR^O02|MSG0001|P|2.5.1")
    lines.append("ORC|OK|ORD-1|" + (accession or "") + "||CM")
    return "\n".join(lines)


class InMemoryConfirmationStore(ConfirmationStore):
    """ConfirmationStore keeping rows in a dict keyed by correlation id.

    Only the database access methods are replaced; the lifecycle transitions
    (mark_retrieved, mark_acknowledged, mark_error) run unchanged.
    """

    def __init__(self) -> None:
        super().__init__(session_factory=None)  # type: ignore[arg-type]
        self.records: dict[str, ConfirmationRecord] = {}
        self.orders: list[LabOrder] = []
        self.upserts: list[tuple[str, dict[str, Any]]] = []
        self.fail_writes: dict[str, int] = {}

    def add_order(
        self,
        accession_number: str,
        organization_id: uuid.UUID | None = None,
        facility_id: uuid.UUID | None = None,
    ) -> LabOrder:
        order = LabOrder(
            id=uuid.uuid4(),
            accession_number=accession_number,
            organization_id=organization_id or uuid.uuid4(),
            facility_id=facility_id or uuid.uuid4(),
        )
        self.orders.append(order)
        return order

    async def get(self, correlation_id: str) -> ConfirmationRecord | None:
        return self.records.get(correlation_id)

    async def find_order_by_accession(self, accession_number: str) -> LabOrder | None:
        return next(
            (o for o in self.orders if o.accession_number == accession_number), None
        )

    async def list_records(
        self, sync_status: str | None = None, limit: int = 50
    ) -> list[ConfirmationRecord]:
        records = [
            r for r in self.records.values() if not sync_status or r.sync_status == sync_status
        ]
        return records[:limit]

    async def upsert(self, correlation_id: str, values: dict[str, Any]) -> None:
        if self.fail_writes.get(correlation_id, 0) > 0:
            self.fail_writes[correlation_id] -= 1
            raise StoreWriteFailed(
                f"Failed to upsert confirmation {correlation_id}: connection reset",
                correlation_id=correlation_id,
            )
        self.upserts.append((correlation_id, dict(values)))
        record = self.records.get(correlation_id)
        if record is None:
            record = ConfirmationRecord(correlation_id=correlation_id)
            self.records[correlation_id] = record
        for key, value in values.items():
            setattr(record, key, value)


class StubLabInterface:
    """Scriptable stand-in for LabInterfaceClient that records every call."""

    def __init__(self, latency: float = 0.0) -> None:
        self.pages: list[PendingConfirmations] = []
        self.payloads: dict[str, str] = {}
        self.fail_detail: dict[str, int] = {}
        self.fail_ack: dict[str, int] = {}
        self.latency = latency
        self.list_calls = 0
        self.detail_calls: list[str] = []
        self.ack_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def queue_page(self, ids: list[str], total_count: int | None = None) -> None:
        self.pages.append(
            PendingConfirmations(
                total_count=len(ids) if total_count is None else total_count,
                returned_count=len(ids),
                ids=list(ids),
            )
        )

    async def list_pending(self) -> PendingConfirmations:
        self.list_calls += 1
        if not self.pages:
            return PendingConfirmations(total_count=0, returned_count=0, ids=[])
        return self.pages.pop(0)

    async def fetch_detail(self, correlation_id: str) -> str:
        self.detail_calls.append(correlation_id)
        async with self._tracked():
            if self.fail_detail.get(correlation_id, 0) > 0:
                self.fail_detail[correlation_id] -= 1
                raise LabInterfaceUnavailable(
                    f"GET /order/received/{correlation_id} returned 503 Service Unavailable",
                    correlation_id=correlation_id,
                    status_code=503,
                )
            return self.payloads.get(correlation_id, make_payload())

    async def acknowledge(self, correlation_id: str) -> None:
        self.ack_calls.append(correlation_id)
        async with self._tracked():
            if self.fail_ack.get(correlation_id, 0) > 0:
                self.fail_ack[correlation_id] -= 1
                raise LabInterfaceUnavailable(
                    f"POST /order/received/{correlation_id}/ack returned 502 Bad Gateway",
                    correlation_id=correlation_id,
                    status_code=502,
                )

    async def close(self) -> None:
        pass

    def _tracked(self) -> "_InFlight":
        return _InFlight(self)


class _InFlight:
    def __init__(self, stub: StubLabInterface) -> None:
        self.stub = stub

    async def __aenter__(self) -> None:
        self.stub.in_flight += 1
        self.stub.max_in_flight = max(self.stub.max_in_flight, self.stub.in_flight)
        await asyncio.sleep(self.stub.latency)

    async def __aexit__(self, *exc_info: Any) -> None:
        self.stub.in_flight -= 1


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def test_settings() -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        lab_interface_base_url="https://lab.example.test/interface",
        lab_interface_username="tracker",
        lab_interface_password="secret",
        postgres_host="localhost",
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        confirmation_sync_retry_delay_seconds=0,
        confirmation_sync_chunk_delay_seconds=0,
        confirmation_sync_batch_delay_seconds=0,
    )


@pytest.fixture
def store() -> InMemoryConfirmationStore:
    return InMemoryConfirmationStore()


@pytest.fixture
def lab_interface() -> StubLabInterface:
    return StubLabInterface()


@pytest.fixture
def payload_factory() -> Any:
    return make_payload


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def app(test_settings: Settings) -> Any:
    """Create test application."""
    # Override settings
    def get_test_settings() -> Settings:
        return test_settings

    async def get_test_cache() -> CacheService:
        return CacheService(None)

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    app.dependency_overrides[get_cache] = get_test_cache
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)
