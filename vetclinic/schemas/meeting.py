"""
Meeting schemas - request/response formats for the create-meet function.

Field names follow the JSON the clinic web app already sends (camelCase).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# REQUEST SCHEMAS
# ---------------------------------------------------------------------------

class CreateMeetRequest(BaseModel):
    """
    Body of POST /functions/create-meet.

    Example request body:
    {
        "appointmentId": "apt-123",
        "datetime": "2025-03-01T15:00:00Z"
    }

    Both fields are optional at the schema level so a missing value
    surfaces as InvalidRequest from the provisioner with its own message.
    """
    model_config = ConfigDict(populate_by_name=True)

    appointment_id: Optional[str] = Field(None, alias="appointmentId")
    start: Optional[str] = Field(None, alias="datetime", description="ISO-8601 start time")


# ---------------------------------------------------------------------------
# RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class CreateMeetResponse(BaseModel):
    """Successful provisioning result."""
    meetingUrl: str
    eventId: Optional[str] = None


class MeetingProvisionOut(BaseModel):
    """A ledger row as returned by the reconciliation listing."""
    model_config = ConfigDict(from_attributes=True)

    appointment_id: str
    status: str
    calendar_id: Optional[str] = None
    event_id: Optional[str] = None
    meeting_url: Optional[str] = None
    start_time: Optional[datetime] = None
    last_error: Optional[str] = None
    attempts: int
    updated_at: Optional[datetime] = None
