"""SQLAlchemy models for the confirmation sync.

``lab_orders`` is owned by the deployment tracker and only read here;
``lab_order_confirmations`` is written exclusively by the confirmation store.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


# =============================================================================
# Enums
# =============================================================================


class ConfirmationSyncStatus(str, PyEnum):
    """Lifecycle of a confirmation pulled from the lab interface."""

    RETRIEVED = "retrieved"
    ACKNOWLEDGED = "acknowledged"
    ERROR = "error"


# =============================================================================
# Lab Orders
# =============================================================================


class LabOrder(Base):
    """Locally known lab order, matched to confirmations by accession number."""

    __tablename__ = "lab_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    accession_number: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    facility_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# =============================================================================
# Lab Order Confirmations
# =============================================================================


class ConfirmationRecord(Base):
    """One confirmation per upstream correlation id.

    All writes are upserts on ``correlation_id``.
    """

    __tablename__ = "lab_order_confirmations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    correlation_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    lab_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("lab_orders.id", ondelete="SET NULL")
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    facility_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    accession_number: Mapped[Optional[str]] = mapped_column(String(64))
    received_time: Mapped[Optional[str]] = mapped_column(String(64))
    hl7_message: Mapped[Optional[str]] = mapped_column(Text)
    raw_payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)

    sync_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ConfirmationSyncStatus.RETRIEVED.value
    )
    sync_error: Mapped[Optional[str]] = mapped_column(Text)
    retrieved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "sync_status IN ('retrieved', 'acknowledged', 'error')",
            name="ck_lab_order_confirmations_sync_status",
        ),
        CheckConstraint(
            "sync_status <> 'acknowledged' OR acknowledged_at IS NOT NULL",
            name="ck_lab_order_confirmations_acknowledged_at",
        ),
        CheckConstraint(
            "sync_status <> 'error' OR sync_error IS NOT NULL",
            name="ck_lab_order_confirmations_sync_error",
        ),
        Index("ix_lab_order_confirmations_sync_status", "sync_status"),
        Index("ix_lab_order_confirmations_accession_number", "accession_number"),
    )
