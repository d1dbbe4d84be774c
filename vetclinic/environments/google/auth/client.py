"""
Google OAuth Client - token endpoint calls for Google APIs.

Two grants are used by the clinic functions:
1. exchange_code_for_tokens() → authorization-code grant, used when a staff
   member links their Google account (oauth-google function)
2. refresh_access_token() → refresh-token grant, used by the meeting
   provisioner with the clinic's long-lived credential

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2
- Token endpoint: https://oauth2.googleapis.com/token
"""

import logging
from typing import Optional

import httpx

from vetclinic.environments.base import (
    AuthenticationError,
    EnvironmentProvider,
    OAuthTokens,
    TokenExpiredError,
)
from vetclinic.environments.google.auth.schemas import GoogleTokenResponse


logger = logging.getLogger("vetclinic.environments.google.auth")


class GoogleAuthClient(EnvironmentProvider):
    """
    Google OAuth 2.0 token client.

    Example Usage:
        client = GoogleAuthClient(client_id="...", client_secret="...")
        tokens = await client.refresh_access_token(refresh_token="1//0e...")
        calendar = GoogleCalendarClient(access_token=tokens.access_token)
    """

    provider_name = "google"

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Google OAuth client.

        Args:
            client_id: Google OAuth Client ID
            client_secret: Google OAuth Client Secret
            timeout: Seconds before a token request is abandoned
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._transport = transport

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access and refresh tokens.

        Google only returns a refresh token when the consent screen was
        shown (prompt=consent); callers must handle its absence.

        Args:
            code: Authorization code from the Google consent redirect
            redirect_uri: Must match the redirect_uri used in authorization

        Returns:
            OAuthTokens with access_token and, usually, refresh_token

        Raises:
            AuthenticationError: If token exchange fails
        """
        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
        }
        if redirect_uri:
            token_data["redirect_uri"] = redirect_uri

        logger.info("Exchanging authorization code for tokens")

        token_response = await self._request_token(token_data, AuthenticationError)

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "has_refresh_token": token_response.refresh_token is not None,
                "expires_in": token_response.expires_in,
            },
        )

        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
            extra_data={"id_token": token_response.id_token} if token_response.id_token else None,
        )

    # -------------------------------------------------------------------------
    # TOKEN REFRESH
    # -------------------------------------------------------------------------

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Args:
            refresh_token: The long-lived refresh token

        Returns:
            OAuthTokens with new access_token (refresh_token usually unchanged)

        Raises:
            TokenExpiredError: If the refresh is rejected, times out, or the
                response carries no access token
        """
        refresh_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        logger.info("Refreshing access token")

        token_response = await self._request_token(refresh_data, TokenExpiredError)

        logger.info(
            "Successfully refreshed access token",
            extra={"expires_in": token_response.expires_in},
        )

        # Google may or may not rotate the refresh token
        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token or refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _request_token(
        self,
        form_data: dict,
        error_cls: type[AuthenticationError],
    ) -> GoogleTokenResponse:
        """POST a form-encoded grant to the token endpoint and parse the reply."""
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.post(self.TOKEN_URL, data=form_data)
            except httpx.TimeoutException as e:
                logger.error(f"Token request timed out: {e}")
                raise error_cls(f"Token request timed out: {e}") from e
            except httpx.RequestError as e:
                logger.error(f"Network error during token request: {e}")
                raise error_cls(f"Network error: {e}") from e

        if response.status_code != 200:
            error_msg = _error_description(response)
            logger.error(
                f"Token request failed: {error_msg}",
                extra={"status_code": response.status_code},
            )
            raise error_cls(f"Token request failed: {error_msg}")

        try:
            token_response = GoogleTokenResponse(**response.json())
        except (TypeError, ValueError) as e:
            logger.error(f"Unreadable token response: {e}")
            raise error_cls("Token endpoint returned an unreadable body") from e

        if not token_response.access_token:
            logger.error("Token response did not include an access_token")
            raise error_cls("Token endpoint response has no access_token")

        return token_response


def _error_description(response: httpx.Response) -> str:
    """Pull Google's error_description out of an error body, if it has one."""
    try:
        error_data = response.json() if response.content else {}
    except ValueError:
        return response.text
    if isinstance(error_data, dict):
        return error_data.get("error_description") or error_data.get("error") or response.text
    return response.text
