"""
Google Environment Module - Google Workspace Integration

google/
├── auth/       # OAuth token endpoint (code exchange, refresh)
└── calendar/   # Calendar API (events with Meet conferences)

Usage:
======
    from vetclinic.environments.google import GoogleAuthClient, GoogleCalendarClient

    auth_client = GoogleAuthClient(client_id, client_secret)
    tokens = await auth_client.refresh_access_token(refresh_token)

    calendar = GoogleCalendarClient(access_token=tokens.access_token)
    event = await calendar.create_meet_event(request, calendar_id)
"""

from vetclinic.environments.google.auth import GoogleAuthClient
from vetclinic.environments.google.calendar import (
    CalendarEvent,
    GoogleCalendarClient,
    MeetEventRequest,
)

__all__ = [
    "GoogleAuthClient",
    "GoogleCalendarClient",
    "CalendarEvent",
    "MeetEventRequest",
]
