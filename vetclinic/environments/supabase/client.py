"""
Supabase Gateway - the hosted backend as seen by the clinic functions.

Wraps the `supabase` client library for the handful of operations the
functions need:
- update an appointment with its conference link (PostgREST)
- store a staff member's Google refresh token on their profile (PostgREST)
- resolve the user behind a caller JWT (Auth)
- delete an auth user (Auth admin API)

The supabase client is synchronous; services call these methods through
asyncio.to_thread so the event loop isn't blocked.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from supabase import AuthError, Client, ClientOptions, PostgrestAPIError, create_client

from vetclinic.environments.base import DataStoreError, RecordNotFoundError
from vetclinic.environments.google.calendar.schemas import to_rfc3339
from vetclinic.environments.supabase.schemas import AuthUser


logger = logging.getLogger("vetclinic.environments.supabase")


APPOINTMENTS_TABLE = "appointments"
PROFILES_TABLE = "profiles"


class SupabaseGateway:
    """
    Thin wrapper around a Supabase client.

    Example:
        gateway = SupabaseGateway(url=settings.SUPABASE_URL, key=settings.SUPABASE_SERVICE_ROLE_KEY)
        gateway.update_appointment_meeting("apt-123", "https://meet.google.com/abc", start)
    """

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 15.0,
        client: Optional[Client] = None,
    ):
        """
        Args:
            url: Supabase project URL
            key: API key (service-role for writes, anon for user lookups)
            timeout: Seconds before a PostgREST request is abandoned
            client: Pre-built client (tests inject a MagicMock)
        """
        self.url = url
        self.key = key
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> Client:
        """Create the underlying client on first use."""
        if self._client is None:
            # Server-side: no session persistence, no background refresh
            options = ClientOptions(
                auto_refresh_token=False,
                persist_session=False,
                postgrest_client_timeout=self.timeout,
            )
            self._client = create_client(self.url, self.key, options=options)
        return self._client

    # -------------------------------------------------------------------------
    # APPOINTMENTS
    # -------------------------------------------------------------------------

    def update_appointment_meeting(
        self,
        appointment_id: str,
        meeting_url: str,
        scheduled_for: datetime,
    ) -> Dict[str, Any]:
        """
        Write the conference link and confirmed start time onto an appointment.

        Returns:
            The updated appointment row

        Raises:
            RecordNotFoundError: If no appointment has that id
            DataStoreError: If the update is rejected or the request fails
        """
        payload = {
            "teleconference_url": meeting_url,
            "scheduled_for": to_rfc3339(scheduled_for),
        }

        try:
            result = (
                self.client.table(APPOINTMENTS_TABLE)
                .update(payload)
                .eq("id", appointment_id)
                .execute()
            )
        except PostgrestAPIError as e:
            logger.error(
                f"Appointment update rejected: {e.message}",
                extra={"appointment_id": appointment_id, "code": e.code},
            )
            raise DataStoreError(f"Appointment update rejected: {e.message}") from e
        except Exception as e:
            logger.error(
                f"Appointment update failed: {e}",
                extra={"appointment_id": appointment_id},
            )
            raise DataStoreError(f"Appointment update failed: {e}") from e

        if not result.data:
            raise RecordNotFoundError(f"Appointment not found: {appointment_id}")

        logger.info("Appointment updated with meeting link", extra={"appointment_id": appointment_id})
        return result.data[0]

    # -------------------------------------------------------------------------
    # PROFILES
    # -------------------------------------------------------------------------

    def set_profile_refresh_token(self, user_id: str, refresh_token: str) -> None:
        """
        Store a Google refresh token on the user's profile.

        Raises:
            DataStoreError: If the update fails
        """
        try:
            (
                self.client.table(PROFILES_TABLE)
                .update({"google_refresh_token": refresh_token})
                .eq("id", user_id)
                .execute()
            )
        except PostgrestAPIError as e:
            logger.error(f"Profile update rejected: {e.message}", extra={"user_id": user_id})
            raise DataStoreError(f"Failed to save token: {e.message}") from e
        except Exception as e:
            logger.error(f"Profile update failed: {e}", extra={"user_id": user_id})
            raise DataStoreError(f"Failed to save token: {e}") from e

        logger.info("Google refresh token stored", extra={"user_id": user_id})

    # -------------------------------------------------------------------------
    # AUTH
    # -------------------------------------------------------------------------

    def get_user(self, jwt: str) -> AuthUser:
        """
        Resolve the user that owns an access token.

        Raises:
            DataStoreError: If the token is invalid or the lookup fails
        """
        try:
            response = self.client.auth.get_user(jwt)
        except AuthError as e:
            logger.warning(f"Auth lookup rejected: {e}")
            raise DataStoreError(f"User not authenticated: {e}") from e
        except Exception as e:
            logger.error(f"Auth lookup failed: {e}")
            raise DataStoreError(f"User lookup failed: {e}") from e

        if response is None or response.user is None:
            raise DataStoreError("User not authenticated")

        return AuthUser(id=response.user.id, email=response.user.email)

    def delete_user(self, user_id: str) -> None:
        """
        Delete an auth user through the admin API (service-role key required).

        Raises:
            DataStoreError: If the deletion fails
        """
        try:
            self.client.auth.admin.delete_user(user_id)
        except AuthError as e:
            logger.error(f"User deletion failed: {e}", extra={"user_id": user_id})
            raise DataStoreError(str(e)) from e
        except Exception as e:
            logger.error(f"User deletion failed: {e}", extra={"user_id": user_id})
            raise DataStoreError(f"User deletion failed: {e}") from e

        logger.info("Auth user deleted", extra={"user_id": user_id})
