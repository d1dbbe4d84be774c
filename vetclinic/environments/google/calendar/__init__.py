"""
Google Calendar Module - Calendar API Integration

Creates the calendar events that carry an appointment's Google Meet link.
"""

from vetclinic.environments.google.calendar.client import GoogleCalendarClient
from vetclinic.environments.google.calendar.schemas import (
    CalendarEvent,
    ConferenceData,
    ConferenceEntryPoint,
    EventTime,
    MeetEventRequest,
    to_rfc3339,
)

__all__ = [
    "GoogleCalendarClient",
    "CalendarEvent",
    "ConferenceData",
    "ConferenceEntryPoint",
    "EventTime",
    "MeetEventRequest",
    "to_rfc3339",
]
