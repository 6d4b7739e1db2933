"""Confirmation sync orchestration.

Drains the lab interface's pending-confirmation queue in listing batches,
processing at most ``concurrency_limit`` confirmations at a time, until the
queue is empty, the upstream reports it fully returned, or the batch ceiling
is reached.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from confirmation_service.config import Settings
from confirmation_service.infrastructure.database.connection import get_session_factory
from confirmation_service.infrastructure.lab_interface.client import (
    LabInterfaceClient,
    PendingConfirmations,
)
from confirmation_service.infrastructure.redis import CacheService
from confirmation_service.services.confirmation_processor import (
    ConfirmationProcessor,
    ConfirmationResult,
    ResultStatus,
)
from confirmation_service.services.confirmation_store import ConfirmationStore

logger = structlog.get_logger()


class PendingQueue(Protocol):
    async def list_pending(self) -> PendingConfirmations: ...


@dataclass
class SyncRunResult:
    """Accumulated outcome of one orchestration pass."""

    batches: int = 0
    results: list[ConfirmationResult] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status is ResultStatus.ERROR)

    def summary(self) -> dict[str, int]:
        return {
            "batches": self.batches,
            "total_processed": len(self.results),
            "successful": self.successful,
            "errors": self.errors,
        }


class ConfirmationSyncOrchestrator:
    """Runs listing batches until the upstream queue is drained."""

    def __init__(
        self,
        client: PendingQueue,
        processor: ConfirmationProcessor,
        concurrency_limit: int = 3,
        max_batches: int = 10,
        chunk_delay: float = 0.5,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.processor = processor
        self.concurrency_limit = concurrency_limit
        self.max_batches = max_batches
        self.chunk_delay = chunk_delay
        self.batch_delay = batch_delay
        self._sleep = sleep

    async def run(self) -> SyncRunResult:
        """Drain the queue. Listing failures propagate; item failures do not."""
        run = SyncRunResult()
        failed: set[str] = set()

        while run.batches < self.max_batches:
            if run.batches:
                await self._sleep(self.batch_delay)
            run.batches += 1

            page = await self.client.list_pending()
            log = logger.bind(batch=run.batches)
            log.info(
                "Listing batch",
                returned_count=page.returned_count,
                total_count=page.total_count,
            )

            if not page.ids:
                log.info("Pending queue empty")
                break

            # Ids that already ended in error this run stay queued upstream
            # until the next run.
            ids = [g for g in dict.fromkeys(page.ids) if g not in failed]
            if ids:
                await self._process_batch(ids, run)
                failed.update(
                    r.correlation_id
                    for r in run.results
                    if r.status is ResultStatus.ERROR
                )
            else:
                log.info("Only failed confirmations listed", failed_count=len(page.ids))

            if page.drained:
                log.info("Pending queue fully returned")
                break
        else:
            logger.warning(
                "Batch ceiling reached, stopping sync",
                max_batches=self.max_batches,
            )

        logger.info("Confirmation sync finished", **run.summary())
        return run

    async def _process_batch(self, ids: list[str], run: SyncRunResult) -> None:
        chunks = [
            ids[i : i + self.concurrency_limit]
            for i in range(0, len(ids), self.concurrency_limit)
        ]
        for index, chunk in enumerate(chunks):
            results = await asyncio.gather(*(self.processor.process(g) for g in chunk))
            for result in results:
                result.batch = run.batches
            run.results.extend(results)

            if index < len(chunks) - 1:
                await self._sleep(self.chunk_delay)


# =============================================================================
# Entry point
# =============================================================================


def build_orchestrator(
    settings: Settings,
    client: LabInterfaceClient,
    store: ConfirmationStore,
) -> ConfirmationSyncOrchestrator:
    processor = ConfirmationProcessor(
        client,
        store,
        max_attempts=settings.confirmation_sync_max_attempts,
        retry_delay=settings.confirmation_sync_retry_delay_seconds,
    )
    return ConfirmationSyncOrchestrator(
        client,
        processor,
        concurrency_limit=settings.confirmation_sync_concurrency,
        max_batches=settings.confirmation_sync_max_batches,
        chunk_delay=settings.confirmation_sync_chunk_delay_seconds,
        batch_delay=settings.confirmation_sync_batch_delay_seconds,
    )


async def execute_confirmation_sync(
    settings: Settings,
    client: LabInterfaceClient | None = None,
    store: ConfirmationStore | None = None,
    cache: CacheService | None = None,
) -> tuple[int, dict[str, Any]]:
    """
    Run one full sync pass and build the response body.

    Returns:
        (200, {success, message, summary, results}) when the run completes, or
        (500, {success: False, error, details}) when anything escapes the
        orchestrator, including missing lab interface credentials.
    """
    started_at = datetime.now(timezone.utc)
    owns_client = client is None
    try:
        if client is None:
            client = LabInterfaceClient.from_settings(settings)
        if store is None:
            store = ConfirmationStore(get_session_factory())

        try:
            run = await build_orchestrator(settings, client, store).run()
        finally:
            if owns_client:
                await client.close()

    except Exception as e:
        logger.exception("Error syncing confirmations", error=str(e))
        return 500, {
            "success": False,
            "error": "Failed to sync confirmations",
            "details": str(e),
        }

    summary = run.summary()
    if cache is not None:
        await cache.store_last_sync_run(
            {
                "started_at": started_at.isoformat(),
                "finished_at": datetime.now(timezone.utc).isoformat(),
                "summary": summary,
            },
            ttl_seconds=settings.last_sync_run_ttl_seconds,
        )

    return 200, {
        "success": True,
        "message": "Confirmation sync completed",
        "summary": summary,
        "results": [r.to_dict() for r in run.results],
    }
