"""Persistence of lab order confirmations.

Every write to ``lab_order_confirmations`` is an upsert keyed on the upstream
correlation id, so re-delivered or concurrently processed confirmations
converge on a single row.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import Insert, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from confirmation_service.errors import StoreReadFailed, StoreWriteFailed
from confirmation_service.infrastructure.database.models import (
    ConfirmationRecord,
    ConfirmationSyncStatus,
    LabOrder,
)
from confirmation_service.services.confirmation_parser import ParsedConfirmation

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrderLinkage:
    """Lab order, organization and facility a confirmation is attributed to."""

    lab_order_id: Any = None
    organization_id: Any = None
    facility_id: Any = None


def build_upsert_statement(correlation_id: str, values: dict[str, Any]) -> Insert:
    """INSERT ... ON CONFLICT (correlation_id) DO UPDATE for one confirmation."""
    stmt = pg_insert(ConfirmationRecord).values(correlation_id=correlation_id, **values)
    return stmt.on_conflict_do_update(
        index_elements=[ConfirmationRecord.correlation_id],
        set_={**values, "updated_at": func.now()},
    )


class ConfirmationStore:
    """Reads and upserts confirmation records.

    Each call opens its own session so that concurrently processed items
    never share one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, correlation_id: str) -> ConfirmationRecord | None:
        """Fetch the record for a correlation id, if one exists."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ConfirmationRecord).where(
                        ConfirmationRecord.correlation_id == correlation_id
                    )
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreReadFailed(
                f"Failed to read confirmation {correlation_id}: {e}",
                correlation_id=correlation_id,
            ) from e

    async def find_order_by_accession(self, accession_number: str) -> LabOrder | None:
        """Look up a local lab order by accession number."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(LabOrder)
                    .where(LabOrder.accession_number == accession_number)
                    .limit(1)
                )
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise StoreReadFailed(
                f"Failed to look up lab order for accession {accession_number}: {e}"
            ) from e

    async def list_records(
        self, sync_status: str | None = None, limit: int = 50
    ) -> list[ConfirmationRecord]:
        """Most recently updated records, optionally filtered by sync status."""
        query = select(ConfirmationRecord).order_by(ConfirmationRecord.updated_at.desc())
        if sync_status:
            query = query.where(ConfirmationRecord.sync_status == sync_status)
        try:
            async with self.session_factory() as session:
                result = await session.execute(query.limit(limit))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreReadFailed(f"Failed to list confirmations: {e}") from e

    async def upsert(self, correlation_id: str, values: dict[str, Any]) -> None:
        """Insert or update the record keyed on ``correlation_id``."""
        try:
            async with self.session_factory() as session:
                await session.execute(build_upsert_statement(correlation_id, values))
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreWriteFailed(
                f"Failed to upsert confirmation {correlation_id}: {e}",
                correlation_id=correlation_id,
            ) from e

    # -------------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------------

    async def mark_retrieved(
        self,
        correlation_id: str,
        parsed: ParsedConfirmation,
        raw_payload: str,
        linkage: OrderLinkage,
    ) -> None:
        await self.upsert(
            correlation_id,
            {
                "lab_order_id": linkage.lab_order_id,
                "organization_id": linkage.organization_id,
                "facility_id": linkage.facility_id,
                "accession_number": parsed.accession_number,
                "received_time": parsed.received_time,
                "hl7_message": parsed.hl7_message,
                "raw_payload": {"raw": raw_payload},
                "sync_status": ConfirmationSyncStatus.RETRIEVED.value,
                "sync_error": None,
                "retrieved_at": _utcnow(),
            },
        )
        logger.debug("Confirmation retrieved", correlation_id=correlation_id)

    async def mark_acknowledged(self, correlation_id: str) -> None:
        await self.upsert(
            correlation_id,
            {
                "sync_status": ConfirmationSyncStatus.ACKNOWLEDGED.value,
                "sync_error": None,
                "acknowledged_at": _utcnow(),
            },
        )
        logger.debug("Confirmation acknowledged", correlation_id=correlation_id)

    async def mark_error(self, correlation_id: str, message: str) -> None:
        await self.upsert(
            correlation_id,
            {
                "sync_status": ConfirmationSyncStatus.ERROR.value,
                "sync_error": message,
            },
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
