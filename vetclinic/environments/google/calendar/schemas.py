"""
Google Calendar Schemas - Data structures for calendar operations.

Reference: https://developers.google.com/calendar/api/v3/reference
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def to_rfc3339(value: datetime) -> str:
    """
    Format a datetime as a UTC RFC 3339 string ("2025-03-01T15:00:00Z").

    Naive datetimes are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class EventTime(BaseModel):
    """
    Event start or end time.

    Timed events carry dateTime; all-day events carry date (YYYY-MM-DD).
    """
    model_config = ConfigDict(populate_by_name=True)

    date_time: Optional[datetime] = Field(None, alias="dateTime")
    date: Optional[str] = Field(None)
    time_zone: Optional[str] = Field(None, alias="timeZone")


class ConferenceEntryPoint(BaseModel):
    """A way to join a conference (video, phone, sip, more)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entry_point_type: Optional[str] = Field(None, alias="entryPointType")
    uri: Optional[str] = Field(None)
    label: Optional[str] = Field(None)


class ConferenceData(BaseModel):
    """Conference details attached to an event (Meet link, dial-ins)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    conference_id: Optional[str] = Field(None, alias="conferenceId")
    entry_points: List[ConferenceEntryPoint] = Field(default_factory=list, alias="entryPoints")
    create_request: Optional[Dict[str, Any]] = Field(None, alias="createRequest")


class CalendarEvent(BaseModel):
    """
    A Google Calendar event, limited to the fields the clinic uses.

    Reference: https://developers.google.com/calendar/api/v3/reference/events
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Unique event identifier")
    summary: Optional[str] = Field(None, description="Event title")
    status: Optional[str] = Field(None, description="confirmed, tentative, cancelled")

    start: Optional[EventTime] = Field(None, description="Event start time")
    end: Optional[EventTime] = Field(None, description="Event end time")

    # Meeting info
    hangout_link: Optional[str] = Field(None, alias="hangoutLink")
    conference_data: Optional[ConferenceData] = Field(None, alias="conferenceData")

    def get_meet_link(self) -> Optional[str]:
        """
        Get the video-conference link for this event.

        hangoutLink wins; otherwise the first video entry point with a URI.

        Returns:
            Meet URL if available, None otherwise
        """
        if self.hangout_link:
            return self.hangout_link

        if self.conference_data:
            for entry in self.conference_data.entry_points:
                if entry.entry_point_type == "video" and entry.uri:
                    return entry.uri

        return None


# ---------------------------------------------------------------------------
# EVENT CREATION SCHEMAS
# ---------------------------------------------------------------------------

class MeetEventRequest(BaseModel):
    """
    Request schema for creating a timed event with a Google Meet conference.

    request_id is the conference createRequest idempotency key. Google
    only de-duplicates conference creation per event, so a new key with a
    new POST always yields a new event.

    Example:
        MeetEventRequest(
            summary="Cita #apt-123",
            start_datetime=datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc),
            end_datetime=datetime(2025, 3, 1, 15, 30, tzinfo=timezone.utc),
            timezone="America/Bogota",
            request_id="9f0c...",
        )
    """
    summary: str = Field(..., description="Event title/summary")
    start_datetime: datetime = Field(..., description="Event start")
    end_datetime: datetime = Field(..., description="Event end")
    timezone: str = Field(default="UTC", description="IANA timezone for the event")
    request_id: str = Field(..., description="Conference createRequest id")

    def to_api_body(self) -> Dict[str, Any]:
        """Build the events.insert request body."""
        return {
            "summary": self.summary,
            "start": {
                "dateTime": to_rfc3339(self.start_datetime),
                "timeZone": self.timezone,
            },
            "end": {
                "dateTime": to_rfc3339(self.end_datetime),
                "timeZone": self.timezone,
            },
            "conferenceData": {
                "createRequest": {
                    "requestId": self.request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
        }
