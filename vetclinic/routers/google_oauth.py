"""
Google OAuth Router - link a staff member's Google account.

Endpoints:
==========
- POST /functions/oauth-google → Exchange an authorization code, store the refresh token

Flow:
=====
1. The web app sends the user through Google's consent screen itself
2. Google redirects back to the app with ?code=...
3. The app posts {code, redirect_uri} here with the user's access token
4. We exchange the code and write the refresh token on the user's profile

Failures answer 400 {"error": message}.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials

from vetclinic.core.errors import InvalidRequest
from vetclinic.deps import get_anon_gateway, get_google_auth_client, get_service_gateway, security
from vetclinic.environments.google import GoogleAuthClient
from vetclinic.environments.supabase import SupabaseGateway
from vetclinic.schemas.account import OAuthCodeRequest, OAuthLinkResponse
from vetclinic.services.account_service import link_google_account


logger = logging.getLogger("vetclinic.routers.google_oauth")


router = APIRouter(prefix="/functions/oauth-google", tags=["google-oauth"])


@router.post("", response_model=OAuthLinkResponse)
async def oauth_google(
    body: OAuthCodeRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_client: GoogleAuthClient = Depends(get_google_auth_client),
    anon_gateway: SupabaseGateway = Depends(get_anon_gateway),
    service_gateway: SupabaseGateway = Depends(get_service_gateway),
):
    """Link the caller's Google account."""
    try:
        message = await link_google_account(
            auth_client,
            anon_gateway,
            service_gateway,
            code=body.code,
            redirect_uri=body.redirect_uri,
            caller_token=credentials.credentials if credentials else None,
        )
    except InvalidRequest as e:
        logger.warning(f"Google linking failed: {e.message}")
        return JSONResponse(status_code=400, content={"error": e.message})

    return OAuthLinkResponse(success=True, message=message)
