"""
Google Calendar API Client - create events with Google Meet conferences.

API Reference:
==============
- Events insert: https://developers.google.com/calendar/api/v3/reference/events/insert
- Conferences: https://developers.google.com/calendar/api/guides/create-events#conferencing

Usage Example:
==============
    client = GoogleCalendarClient(access_token="ya29.xxx")
    event = await client.create_meet_event(request, calendar_id="clinic@group.calendar.google.com")
    print(event.get_meet_link())
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from vetclinic.environments.base import APIError, MalformedResponseError
from vetclinic.environments.google.calendar.schemas import CalendarEvent, MeetEventRequest


logger = logging.getLogger("vetclinic.environments.google.calendar")


class GoogleCalendarClient:
    """
    Google Calendar API client.

    Requires an access token with the calendar.events scope.

    Attributes:
        access_token: Google OAuth access token
        timeout: Seconds before a request is abandoned
    """

    service_name = "calendar"

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(
        self,
        access_token: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Calendar client.

        Args:
            access_token: Valid Google OAuth access token with calendar scope
            timeout: Seconds before a request is abandoned
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    # -------------------------------------------------------------------------
    # EVENT CREATION
    # -------------------------------------------------------------------------

    async def create_meet_event(
        self,
        request: MeetEventRequest,
        calendar_id: str = "primary",
    ) -> CalendarEvent:
        """
        Create a timed event with an auto-generated Google Meet conference.

        Every call creates a new event. Callers that must not duplicate
        events have to track what they already created.

        Args:
            request: MeetEventRequest with event details
            calendar_id: Calendar identifier (default: "primary")

        Returns:
            The created CalendarEvent as returned by Google

        Raises:
            APIError: If event creation fails (no event was created)
            MalformedResponseError: If Google answered 2xx with an unreadable body
        """
        logger.info(
            "Creating calendar event with conference",
            extra={
                "summary": request.summary,
                "calendar_id": calendar_id,
                "conference_request_id": request.request_id,
            },
        )

        response_data = await self._make_post_request(
            endpoint=f"/calendars/{quote(calendar_id, safe='')}/events",
            json_body=request.to_api_body(),
            params={"conferenceDataVersion": 1},
        )

        try:
            event = CalendarEvent.model_validate(response_data)
        except ValidationError as e:
            logger.error(f"Calendar API returned an unexpected event shape: {e}")
            raise MalformedResponseError(
                "Calendar API returned an unexpected event shape",
                response=response_data,
            ) from e

        logger.info(f"Created event: {event.id}")
        return event

    async def _make_post_request(
        self,
        endpoint: str,
        json_body: dict,
        params: Optional[dict] = None,
    ) -> dict:
        """
        Make an authenticated POST request to the Calendar API.

        Raises:
            APIError: If the request fails or times out
            MalformedResponseError: If a 2xx body is not a JSON object
        """
        url = f"{self.BASE_URL}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url=url,
                    headers=self._get_headers(),
                    json=json_body,
                    params=params,
                )
            except httpx.TimeoutException as e:
                logger.error(f"Calendar API request timed out: {e}")
                raise APIError(f"Request timed out: {e}") from e
            except httpx.RequestError as e:
                logger.error(f"Network error in Calendar API: {e}")
                raise APIError(f"Network error: {e}") from e

        if response.status_code == 401:
            logger.error("Calendar API: Unauthorized (token may be expired)")
            raise APIError(
                "Unauthorized - access token may be expired",
                status_code=401,
                response=response.text,
            )

        if response.status_code == 403:
            logger.error("Calendar API: Forbidden (write scope may be missing)")
            raise APIError(
                "Forbidden - calendar write scope may not be granted",
                status_code=403,
                response=response.text,
            )

        if response.status_code not in (200, 201):
            error_detail = response.text
            logger.error(f"Calendar API error: {response.status_code} - {error_detail}")
            raise APIError(
                f"API request failed: {error_detail}",
                status_code=response.status_code,
                response=error_detail,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Calendar API returned a non-JSON body",
                status_code=response.status_code,
                response=response.text,
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Calendar API returned a non-object body",
                status_code=response.status_code,
                response=response.text,
            )

        return data
