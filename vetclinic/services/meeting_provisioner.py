"""
Meeting Provisioner - give an appointment a Google Meet link.

Flow:
=====
1. Validate input and compute the 30-minute event window
2. Claim the appointment in the provisioning ledger
3. Refresh-token grant → short-lived access token
4. Create a calendar event with a Meet conference
5. Extract the link (hangoutLink, else the video entry point)
6. Write the link and start time onto the appointment
7. Return the link

Failure semantics:
==================
Failures up to step 4 leave nothing behind and are safe to retry as a
whole. Once the event exists (step 4 succeeded), every failure is logged
as an orphaned event with its ids, and the ledger keeps the row in
event_created. The next call for the same appointment then resumes at
step 6 with the captured link instead of creating another event.

Usage:
======
    provisioner = MeetingProvisioner(settings.meeting_config())
    result = await provisioner.provision_meeting(db, "apt-123", "2025-03-01T15:00:00Z")
    result.meeting_url
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from vetclinic.core.config import MeetingConfig
from vetclinic.core.errors import (
    ClinicFunctionError,
    InvalidRequest,
    PartialFailure,
    UpstreamAuthFailure,
    UpstreamEventCreationFailure,
    UpstreamResponseShape,
)
from vetclinic.environments.base import (
    APIError,
    AuthenticationError,
    DataStoreError,
    MalformedResponseError,
)
from vetclinic.environments.google import (
    GoogleAuthClient,
    GoogleCalendarClient,
    MeetEventRequest,
)
from vetclinic.environments.supabase import SupabaseGateway
from vetclinic.models.meeting_provision import MeetingProvision
from vetclinic.services.provision_ledger import ClaimAction, ProvisionLedger, provision_ledger


logger = logging.getLogger("vetclinic.services.meeting_provisioner")


# Fixed policy: every appointment call lasts 30 minutes
MEETING_DURATION = timedelta(minutes=30)


@dataclass
class ProvisionResult:
    """Outcome of a successful provisioning call."""
    meeting_url: str
    event_id: Optional[str] = None
    # True when an earlier orphaned event was persisted instead of a new one
    resumed: bool = False
    # True when a completed link was returned without calling Google
    reused: bool = False


def parse_start_time(value: Any) -> datetime:
    """
    Parse the caller's ISO-8601 start time into an aware UTC datetime.

    Accepts "Z" or an explicit offset; naive values are taken as UTC.

    Raises:
        InvalidRequest: If the value is missing, unparsable or out of range
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidRequest("datetime is not a valid ISO-8601 timestamp")
    else:
        raise InvalidRequest("Missing appointmentId or datetime in the request body")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        raise InvalidRequest("datetime is out of range")


def compute_event_window(start: datetime) -> tuple[datetime, datetime]:
    """
    Return (start, end) for the event; end is always start + 30 minutes.

    Raises:
        InvalidRequest: If the end falls past the last representable datetime
    """
    try:
        return start, start + MEETING_DURATION
    except OverflowError:
        raise InvalidRequest("datetime is out of range")


class MeetingProvisioner:
    """
    Provisions conference links for appointments.

    Collaborators are injectable so tests can replace each external call.
    """

    def __init__(
        self,
        config: MeetingConfig,
        auth_client: Optional[GoogleAuthClient] = None,
        supabase: Optional[SupabaseGateway] = None,
        calendar_client_factory: Optional[Callable[[str], GoogleCalendarClient]] = None,
        ledger: Optional[ProvisionLedger] = None,
    ):
        self.config = config
        self.auth_client = auth_client or GoogleAuthClient(
            client_id=config.google_client_id,
            client_secret=config.google_client_secret,
            timeout=config.http_timeout,
        )
        self.supabase = supabase or SupabaseGateway(
            url=config.supabase_url,
            key=config.supabase_service_role_key,
            timeout=config.http_timeout,
        )
        self.calendar_client_factory = calendar_client_factory or (
            lambda token: GoogleCalendarClient(access_token=token, timeout=config.http_timeout)
        )
        self.ledger = ledger or provision_ledger

    async def provision_meeting(
        self,
        db: Session,
        appointment_id: Any,
        start_time: Any,
    ) -> ProvisionResult:
        """
        Create (or resume) the Meet link for an appointment.

        Args:
            db: Ledger database session
            appointment_id: Appointment identifier (non-empty string)
            start_time: ISO-8601 string or datetime

        Returns:
            ProvisionResult with the meeting URL

        Raises:
            InvalidRequest, UpstreamAuthFailure, UpstreamEventCreationFailure,
            UpstreamResponseShape, PartialFailure, ReconciliationRequired,
            ProvisioningInProgress
        """
        if not isinstance(appointment_id, str) or not appointment_id.strip():
            raise InvalidRequest("Missing appointmentId or datetime in the request body")
        appointment_id = appointment_id.strip()

        start, end = compute_event_window(parse_start_time(start_time))

        claim = self.ledger.claim(
            db,
            appointment_id,
            start,
            policy=self.config.reprovision_policy,
            lock_ttl_seconds=self.config.lock_ttl_seconds,
        )
        record = claim.record

        if claim.action is ClaimAction.REUSE:
            logger.info(
                "Reusing completed meeting link",
                extra={"appointment_id": appointment_id, "event_id": record.event_id},
            )
            return ProvisionResult(meeting_url=record.meeting_url, event_id=record.event_id, reused=True)

        try:
            if claim.action is ClaimAction.RESUME:
                logger.info(
                    "Resuming provisioning at persistence step",
                    extra={"appointment_id": appointment_id, "event_id": record.event_id},
                )
                meeting_url, event_id = record.meeting_url, record.event_id
            else:
                meeting_url, event_id = await self._create_event(db, record, start, end)

            await self._persist(db, record, meeting_url, event_id, start)
        except ClinicFunctionError:
            raise
        except Exception as e:
            db.rollback()
            try:
                self.ledger.mark_failed(db, record, f"Unexpected error: {e}")
            except Exception:
                logger.exception(
                    "Could not record provisioning failure",
                    extra={"appointment_id": appointment_id},
                )
            raise

        self.ledger.mark_completed(db, record)

        logger.info(
            "Meeting provisioned",
            extra={"appointment_id": appointment_id, "event_id": event_id},
        )
        return ProvisionResult(
            meeting_url=meeting_url,
            event_id=event_id,
            resumed=claim.action is ClaimAction.RESUME,
        )

    # -------------------------------------------------------------------------
    # STEPS
    # -------------------------------------------------------------------------

    async def _create_event(
        self,
        db: Session,
        record: MeetingProvision,
        start: datetime,
        end: datetime,
    ) -> tuple[str, Optional[str]]:
        """Token exchange, event creation and link extraction."""
        calendar_id = self.config.calendar_id
        appointment_id = record.appointment_id

        try:
            tokens = await self.auth_client.refresh_access_token(self.config.google_refresh_token)
        except AuthenticationError as e:
            self.ledger.mark_failed(db, record, str(e))
            raise UpstreamAuthFailure("Could not obtain a Google access token") from e

        request = MeetEventRequest(
            summary=self.config.title_template.format(appointment_id=appointment_id),
            start_datetime=start,
            end_datetime=end,
            timezone=self.config.calendar_timezone,
            request_id=record.request_id,
        )

        calendar = self.calendar_client_factory(tokens.access_token)
        try:
            event = await calendar.create_meet_event(request, calendar_id=calendar_id)
        except MalformedResponseError as e:
            # 2xx: the event probably exists but we can't tell which one
            self._log_orphan(appointment_id, calendar_id, None, None, reason=str(e))
            self.ledger.record_event(db, record, None, None, calendar_id)
            self.ledger.mark_failed(db, record, str(e))
            raise UpstreamResponseShape(
                "Calendar event response could not be read; the event may exist",
                details={"calendarId": calendar_id},
            ) from e
        except APIError as e:
            self.ledger.mark_failed(db, record, str(e))
            raise UpstreamEventCreationFailure("Error creating the Google Calendar event") from e

        meeting_url = event.get_meet_link()
        try:
            self.ledger.record_event(db, record, event.id, meeting_url, calendar_id)
        except Exception as e:
            self._log_orphan(
                appointment_id, calendar_id, event.id, meeting_url,
                reason=f"ledger write failed: {e}",
            )
            raise

        if not meeting_url:
            self.ledger.mark_failed(db, record, "Event has no conference link")
            self._log_orphan(appointment_id, calendar_id, event.id, None, reason="no conference link in event")
            raise UpstreamResponseShape(
                "Could not get the Google Meet link from the created event",
                details={"eventId": event.id, "calendarId": calendar_id},
            )

        return meeting_url, event.id

    async def _persist(
        self,
        db: Session,
        record: MeetingProvision,
        meeting_url: str,
        event_id: Optional[str],
        start: datetime,
    ) -> None:
        """Write the link onto the appointment; failures leave the event orphaned."""
        try:
            await asyncio.to_thread(
                self.supabase.update_appointment_meeting,
                record.appointment_id,
                meeting_url,
                start,
            )
        except DataStoreError as e:
            self.ledger.mark_failed(db, record, str(e))
            self._log_orphan(record.appointment_id, record.calendar_id, event_id, meeting_url, reason=str(e))
            raise PartialFailure(
                "The event was created, but updating the appointment failed; "
                "retry to resume saving the link",
                details={
                    "eventId": event_id,
                    "meetingUrl": meeting_url,
                    "calendarId": record.calendar_id,
                },
            ) from e

    @staticmethod
    def _log_orphan(
        appointment_id: str,
        calendar_id: Optional[str],
        event_id: Optional[str],
        meeting_url: Optional[str],
        reason: str,
    ) -> None:
        logger.error(
            f"Orphaned calendar event for appointment {appointment_id}: {reason}",
            extra={
                "appointment_id": appointment_id,
                "event_id": event_id,
                "calendar_id": calendar_id,
                "meeting_url": meeting_url,
            },
        )
