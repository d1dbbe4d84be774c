"""
MeetingProvision model - the local ledger of conference-link provisioning.

One row per appointment. The row records the latest attempt so that:
- concurrent invocations for the same appointment are serialized
  (claiming the row is the compare-and-swap),
- a call that created a calendar event but failed to update the
  appointment can be resumed without creating a second event,
- orphaned calendar events stay discoverable for reconciliation.

Lifecycle:
    in_progress ──► event_created ──► completed
         │                │
         └──► failed      └──► (resume) completed
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vetclinic.db.base import Base


class ProvisionStatus(str, Enum):
    """Ledger row states."""

    IN_PROGRESS = "in_progress"
    # Calendar event exists externally; appointment not yet updated
    EVENT_CREATED = "event_created"
    COMPLETED = "completed"
    # Failed before any external side effect
    FAILED = "failed"


class MeetingProvision(Base):
    """SQLAlchemy ORM model for the 'meeting_provisions' table."""

    __tablename__ = "meeting_provisions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # The unique constraint is what makes claiming an appointment atomic
    appointment_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, index=True, default=ProvisionStatus.IN_PROGRESS.value
    )

    # Conference createRequest id of the latest attempt
    request_id: Mapped[str] = mapped_column(String(64), nullable=False)

    calendar_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meeting_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<MeetingProvision appointment={self.appointment_id} "
            f"status={self.status} event={self.event_id}>"
        )
