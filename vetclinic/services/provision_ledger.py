"""
Provision Ledger Service - bookkeeping for meeting provisioning attempts.

The ledger is what keeps a retry from creating a second calendar event:

- claim() serializes invocations per appointment. Taking a row is a
  compare-and-swap on its attempt counter, and the first row for an
  appointment is protected by the unique constraint.
- record_event() runs as soon as Google has created the event, before the
  appointment is touched. A crash after that point still leaves the
  event discoverable.
- list_unreconciled() returns events that exist on the calendar but are
  not referenced by their appointment.

Usage:
======
    claim = ledger.claim(db, "apt-123", start, ReprovisionPolicy.NEW_EVENT, lock_ttl_seconds=120)
    if claim.action is ClaimAction.CREATE:
        ...create event...
        ledger.record_event(db, claim.record, event_id, meeting_url, calendar_id)
    ...persist...
    ledger.mark_completed(db, claim.record)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vetclinic.core.config import ReprovisionPolicy
from vetclinic.core.errors import ProvisioningInProgress, ReconciliationRequired
from vetclinic.models.meeting_provision import MeetingProvision, ProvisionStatus


logger = logging.getLogger("vetclinic.services.provision_ledger")


class ClaimAction(str, Enum):
    """What the provisioner should do with a claimed appointment."""

    # Run the full flow: token, event, persist
    CREATE = "create"
    # An event already exists with a captured URL: persist only
    RESUME = "resume"
    # A completed link may be returned as is (reuse policy)
    REUSE = "reuse"


@dataclass
class Claim:
    """Result of claiming an appointment in the ledger."""
    action: ClaimAction
    record: MeetingProvision


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize datetimes read back from backends that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProvisionLedger:
    """Reads and writes MeetingProvision rows."""

    def get(self, db: Session, appointment_id: str) -> Optional[MeetingProvision]:
        """Return the ledger row for an appointment, if any."""
        return db.execute(
            select(MeetingProvision).where(MeetingProvision.appointment_id == appointment_id)
        ).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # CLAIM
    # -------------------------------------------------------------------------

    def claim(
        self,
        db: Session,
        appointment_id: str,
        start_time: datetime,
        policy: ReprovisionPolicy,
        lock_ttl_seconds: int,
    ) -> Claim:
        """
        Take ownership of an appointment for one provisioning invocation.

        Raises:
            ProvisioningInProgress: Another invocation holds the appointment
            ReconciliationRequired: A previous event must be cleaned up first
        """
        start_time = _as_utc(start_time)
        record = self.get(db, appointment_id)

        if record is None:
            return Claim(ClaimAction.CREATE, self._insert(db, appointment_id, start_time))

        status = ProvisionStatus(record.status)
        now = datetime.now(timezone.utc)

        if status is ProvisionStatus.IN_PROGRESS:
            updated_at = _as_utc(record.updated_at) or now
            if now - updated_at < timedelta(seconds=lock_ttl_seconds):
                raise ProvisioningInProgress(
                    "A meeting is already being provisioned for this appointment",
                    details={"appointmentId": appointment_id},
                )
            logger.warning(
                "Taking over stale provisioning lock",
                extra={"appointment_id": appointment_id, "event_id": record.event_id},
            )

        # An event may already exist: from an orphaned attempt, or from a
        # stale in_progress row that was itself a resume.
        has_event = status is ProvisionStatus.EVENT_CREATED or (
            status is ProvisionStatus.IN_PROGRESS and bool(record.event_id or record.meeting_url)
        )
        if has_event:
            if not record.meeting_url:
                raise ReconciliationRequired(
                    "A previous attempt created a calendar event without a meeting link; "
                    "reconcile it before provisioning again",
                    details=self._orphan_details(record),
                )
            if _as_utc(record.start_time) != start_time:
                raise ReconciliationRequired(
                    "A previous attempt created a calendar event for a different start time; "
                    "reconcile it before provisioning again",
                    details=self._orphan_details(record),
                )
            self._take(db, record, reset_event=False)
            return Claim(ClaimAction.RESUME, record)

        if (
            status is ProvisionStatus.COMPLETED
            and policy is ReprovisionPolicy.REUSE
            and record.meeting_url
            and _as_utc(record.start_time) == start_time
        ):
            return Claim(ClaimAction.REUSE, record)

        self._take(db, record, reset_event=True, start_time=start_time)
        return Claim(ClaimAction.CREATE, record)

    def _insert(self, db: Session, appointment_id: str, start_time: datetime) -> MeetingProvision:
        record = MeetingProvision(
            appointment_id=appointment_id,
            status=ProvisionStatus.IN_PROGRESS.value,
            request_id=uuid.uuid4().hex,
            start_time=start_time,
            attempts=1,
        )
        db.add(record)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ProvisioningInProgress(
                "A meeting is already being provisioned for this appointment",
                details={"appointmentId": appointment_id},
            ) from e
        db.refresh(record)
        return record

    def _take(
        self,
        db: Session,
        record: MeetingProvision,
        reset_event: bool,
        start_time: Optional[datetime] = None,
    ) -> None:
        """Compare-and-swap the row into in_progress using attempts as the version."""
        values = {
            "status": ProvisionStatus.IN_PROGRESS.value,
            "attempts": record.attempts + 1,
            "last_error": None,
            "updated_at": datetime.now(timezone.utc),
        }
        if reset_event:
            values.update(
                request_id=uuid.uuid4().hex,
                event_id=None,
                calendar_id=None,
                meeting_url=None,
                start_time=start_time,
            )

        result = db.execute(
            update(MeetingProvision)
            .where(
                MeetingProvision.id == record.id,
                MeetingProvision.attempts == record.attempts,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ProvisioningInProgress(
                "A meeting is already being provisioned for this appointment",
                details={"appointmentId": record.appointment_id},
            )
        db.commit()
        db.refresh(record)

    # -------------------------------------------------------------------------
    # TRANSITIONS
    # -------------------------------------------------------------------------

    def record_event(
        self,
        db: Session,
        record: MeetingProvision,
        event_id: Optional[str],
        meeting_url: Optional[str],
        calendar_id: str,
    ) -> None:
        """Note that an external event now exists for this attempt."""
        record.status = ProvisionStatus.EVENT_CREATED.value
        record.event_id = event_id
        record.meeting_url = meeting_url
        record.calendar_id = calendar_id
        db.commit()

    def mark_completed(self, db: Session, record: MeetingProvision) -> None:
        """The appointment now references the event."""
        record.status = ProvisionStatus.COMPLETED.value
        record.last_error = None
        db.commit()

    def mark_failed(self, db: Session, record: MeetingProvision, error: str) -> None:
        """
        Record a failure.

        Rows that already have an event keep event_created so the next
        call resumes instead of creating a duplicate.
        """
        # calendar_id is only set by record_event
        if record.calendar_id:
            record.status = ProvisionStatus.EVENT_CREATED.value
        else:
            record.status = ProvisionStatus.FAILED.value
        record.last_error = error
        db.commit()

    # -------------------------------------------------------------------------
    # RECONCILIATION
    # -------------------------------------------------------------------------

    def list_unreconciled(self, db: Session) -> List[MeetingProvision]:
        """Events that exist on the calendar but not on their appointment."""
        return list(
            db.execute(
                select(MeetingProvision)
                .where(MeetingProvision.status == ProvisionStatus.EVENT_CREATED.value)
                .order_by(MeetingProvision.updated_at)
            ).scalars()
        )

    @staticmethod
    def _orphan_details(record: MeetingProvision) -> dict:
        return {
            "appointmentId": record.appointment_id,
            "eventId": record.event_id,
            "calendarId": record.calendar_id,
            "meetingUrl": record.meeting_url,
        }


provision_ledger = ProvisionLedger()
