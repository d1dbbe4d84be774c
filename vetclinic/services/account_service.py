"""
Account Service - Google account linking and user deletion.

link_google_account():
    authorization code → Google tokens → caller's profile
    Every failure is reported as InvalidRequest (400) with a readable
    message; the web app shows it as is.

delete_user():
    Admin deletion of an auth user. Backend failures are InternalError (500).
"""

import asyncio
import logging
from typing import Optional

from vetclinic.core.errors import InternalError, InvalidRequest
from vetclinic.environments.base import AuthenticationError, DataStoreError
from vetclinic.environments.google import GoogleAuthClient
from vetclinic.environments.supabase import SupabaseGateway


logger = logging.getLogger("vetclinic.services.account")


async def link_google_account(
    auth_client: GoogleAuthClient,
    anon_gateway: SupabaseGateway,
    service_gateway: SupabaseGateway,
    code: Optional[str],
    redirect_uri: Optional[str],
    caller_token: Optional[str],
) -> str:
    """
    Store the caller's Google refresh token on their profile.

    Args:
        auth_client: Google token client
        anon_gateway: Supabase client used to resolve the caller
        service_gateway: Supabase client allowed to write profiles
        code: Authorization code from the consent redirect
        redirect_uri: Redirect URI used for the consent request
        caller_token: The caller's Supabase access token

    Returns:
        Success message

    Raises:
        InvalidRequest: For any failure along the way
    """
    if not code or not redirect_uri:
        raise InvalidRequest("Missing code or redirect_uri")

    try:
        tokens = await auth_client.exchange_code_for_tokens(code, redirect_uri=redirect_uri)
    except AuthenticationError as e:
        raise InvalidRequest(str(e)) from e

    if not caller_token:
        raise InvalidRequest("No authorization header")

    try:
        user = await asyncio.to_thread(anon_gateway.get_user, caller_token)
    except DataStoreError as e:
        raise InvalidRequest("User not authenticated") from e

    if not tokens.refresh_token:
        # Google only sends one on first consent or with prompt=consent
        logger.warning(
            "Google did not return a refresh token; profile left unchanged",
            extra={"user_id": user.id},
        )
        return "Google Calendar connected, but no refresh token was issued; reconnect with consent"

    try:
        await asyncio.to_thread(service_gateway.set_profile_refresh_token, user.id, tokens.refresh_token)
    except DataStoreError as e:
        raise InvalidRequest(str(e)) from e

    logger.info("Google account linked", extra={"user_id": user.id})
    return "Google Calendar connected successfully"


async def delete_user(service_gateway: SupabaseGateway, user_id: Optional[str]) -> None:
    """
    Delete an auth user.

    Raises:
        InvalidRequest: If user_id is missing
        InternalError: If the backend refuses the deletion
    """
    if not user_id:
        raise InvalidRequest("User ID is required")

    try:
        await asyncio.to_thread(service_gateway.delete_user, user_id)
    except DataStoreError as e:
        raise InternalError(str(e)) from e
