"""Read-only endpoints over synced lab order confirmations."""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from confirmation_service.errors import StoreReadFailed
from confirmation_service.infrastructure.database.connection import get_session_factory
from confirmation_service.infrastructure.database.models import ConfirmationSyncStatus
from confirmation_service.services.confirmation_store import ConfirmationStore

router = APIRouter()


class ConfirmationResponse(BaseModel):
    """A synced confirmation as stored locally."""

    model_config = ConfigDict(from_attributes=True)

    correlation_id: str
    lab_order_id: UUID | None = None
    organization_id: UUID | None = None
    facility_id: UUID | None = None
    accession_number: str | None = None
    received_time: str | None = None
    hl7_message: str | None = None
    sync_status: str
    sync_error: str | None = None
    retrieved_at: datetime | None = None
    acknowledged_at: datetime | None = None


class ConfirmationListResponse(BaseModel):
    confirmations: list[ConfirmationResponse]
    count: int


def get_confirmation_store() -> ConfirmationStore:
    """Dependency providing a store on the global session factory."""
    return ConfirmationStore(get_session_factory())


@router.get("", response_model=ConfirmationListResponse)
async def list_confirmations(
    sync_status: Annotated[ConfirmationSyncStatus | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    store: ConfirmationStore = Depends(get_confirmation_store),
) -> Any:
    """List recently updated confirmations, e.g. `?sync_status=error` to review failures."""
    try:
        records = await store.list_records(
            sync_status=sync_status.value if sync_status else None, limit=limit
        )
    except StoreReadFailed as e:
        raise HTTPException(status_code=503, detail=e.message) from e

    return ConfirmationListResponse(
        confirmations=[ConfirmationResponse.model_validate(r) for r in records],
        count=len(records),
    )


@router.get("/{correlation_id}", response_model=ConfirmationResponse)
async def get_confirmation(
    correlation_id: str,
    store: ConfirmationStore = Depends(get_confirmation_store),
) -> Any:
    """Fetch one confirmation by its lab interface correlation id."""
    try:
        record = await store.get(correlation_id)
    except StoreReadFailed as e:
        raise HTTPException(status_code=503, detail=e.message) from e

    if record is None:
        raise HTTPException(status_code=404, detail="Confirmation not found")
    return ConfirmationResponse.model_validate(record)
