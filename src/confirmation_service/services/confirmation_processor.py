"""Per-confirmation processing: fetch, parse, link, persist, acknowledge.

Each attempt returns a tagged outcome instead of raising, and the retry loop
in ``ConfirmationProcessor.process`` decides what to do by matching on it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Protocol

import structlog

from confirmation_service.errors import ConfirmationSyncError
from confirmation_service.infrastructure.database.models import ConfirmationSyncStatus
from confirmation_service.services.confirmation_parser import parse_confirmation
from confirmation_service.services.confirmation_store import ConfirmationStore, OrderLinkage

logger = structlog.get_logger()


class LabInterface(Protocol):
    """Upstream operations the processor depends on."""

    async def fetch_detail(self, correlation_id: str) -> str: ...

    async def acknowledge(self, correlation_id: str) -> None: ...


class ResultStatus(str, Enum):
    """Final outcome of one confirmation within a sync run."""

    SUCCESS = "success"
    REACKNOWLEDGED = "re-acknowledged"
    ERROR = "error"


@dataclass
class ConfirmationResult:
    """Itemized result reported back to the caller of a sync run."""

    correlation_id: str
    status: ResultStatus
    accession_number: str | None = None
    error: str | None = None
    attempts: int = 1
    batch: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not ResultStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


# =============================================================================
# Attempt outcomes
# =============================================================================


@dataclass(frozen=True)
class Ok:
    status: ResultStatus
    accession_number: str | None = None


@dataclass(frozen=True)
class Retryable:
    reason: str


@dataclass(frozen=True)
class Terminal:
    reason: str


AttemptOutcome = Ok | Retryable | Terminal


class ConfirmationProcessor:
    """Brings one correlation id to ``acknowledged`` or a recorded ``error``."""

    def __init__(
        self,
        client: LabInterface,
        store: ConfirmationStore,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def process(self, correlation_id: str) -> ConfirmationResult:
        """Process one queued confirmation. Never raises."""
        attempt = 0
        while True:
            attempt += 1
            match await self._attempt(correlation_id):
                case Ok(status=status, accession_number=accession_number):
                    logger.info(
                        "Confirmation processed",
                        correlation_id=correlation_id,
                        status=status.value,
                        accession_number=accession_number,
                        attempt=attempt,
                    )
                    return ConfirmationResult(
                        correlation_id=correlation_id,
                        status=status,
                        accession_number=accession_number,
                        attempts=attempt,
                    )
                case Retryable(reason=reason) if attempt < self.max_attempts:
                    delay = self.retry_delay * attempt
                    logger.warning(
                        "Confirmation attempt failed, retrying",
                        correlation_id=correlation_id,
                        attempt=attempt,
                        delay_seconds=delay,
                        error=reason,
                    )
                    await self._sleep(delay)
                case Retryable(reason=reason):
                    return await self._record_failure(correlation_id, Terminal(reason), attempt)
                case Terminal() as terminal:
                    return await self._record_failure(correlation_id, terminal, attempt)

    async def _attempt(self, correlation_id: str) -> AttemptOutcome:
        try:
            existing = await self.store.get(correlation_id)

            if existing is not None and existing.sync_status == ConfirmationSyncStatus.ACKNOWLEDGED.value:
                # Local state is ahead of the upstream queue; clear it there.
                await self.client.acknowledge(correlation_id)
                return Ok(ResultStatus.REACKNOWLEDGED)

            raw = await self.client.fetch_detail(correlation_id)
            parsed = parse_confirmation(raw, correlation_id=correlation_id)

            linkage = OrderLinkage(
                lab_order_id=existing.lab_order_id if existing else None,
                organization_id=existing.organization_id if existing else None,
                facility_id=existing.facility_id if existing else None,
            )
            if parsed.accession_number:
                order = await self.store.find_order_by_accession(parsed.accession_number)
                if order is not None:
                    linkage = OrderLinkage(
                        lab_order_id=linkage.lab_order_id or order.id,
                        organization_id=linkage.organization_id or order.organization_id,
                        facility_id=linkage.facility_id or order.facility_id,
                    )
                else:
                    logger.info(
                        "No lab order for accession number",
                        correlation_id=correlation_id,
                        accession_number=parsed.accession_number,
                    )

            await self.store.mark_retrieved(correlation_id, parsed, raw, linkage)
            await self.client.acknowledge(correlation_id)
            await self.store.mark_acknowledged(correlation_id)
            return Ok(ResultStatus.SUCCESS, parsed.accession_number)

        except ConfirmationSyncError as e:
            return Retryable(e.message)
        except Exception as e:
            logger.exception("Unexpected error processing confirmation", correlation_id=correlation_id)
            return Retryable(str(e) or type(e).__name__)

    async def _record_failure(
        self, correlation_id: str, failure: Terminal, attempts: int
    ) -> ConfirmationResult:
        logger.error(
            "Confirmation failed after retries",
            correlation_id=correlation_id,
            attempts=attempts,
            error=failure.reason,
        )
        try:
            await self.store.mark_error(correlation_id, failure.reason)
        except Exception as e:
            logger.error(
                "Failed to record confirmation error state",
                correlation_id=correlation_id,
                error=str(e),
            )
        return ConfirmationResult(
            correlation_id=correlation_id,
            status=ResultStatus.ERROR,
            error=failure.reason,
            attempts=attempts,
        )
