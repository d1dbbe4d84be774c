"""
Dependencies module - reusable FastAPI dependencies for the function routes.

- get_current_caller validates the Supabase-issued JWT on protected routes
- require_service_role restricts a route to the backend's service role
- require_anon_key checks the shared anon-key bearer used by delete-user
- get_provisioner / get_*_gateway build the collaborators per request,
  and are what tests override
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from vetclinic.core.config import Settings, settings
from vetclinic.core.errors import Misconfigured, Unauthorized
from vetclinic.environments.google import GoogleAuthClient
from vetclinic.environments.supabase import SupabaseGateway
from vetclinic.services.meeting_provisioner import MeetingProvisioner


logger = logging.getLogger("vetclinic.deps")


# ---------------------------------------------------------------------------
# SECURITY SCHEME
# ---------------------------------------------------------------------------
# auto_error=False: a missing header is reported through our own error
# taxonomy instead of FastAPI's default 403
security = HTTPBearer(auto_error=False)

# Supabase signs its access tokens with HS256 and the project JWT secret
JWT_ALGORITHM = "HS256"


@dataclass
class Caller:
    """The authenticated principal behind a request."""
    sub: Optional[str]
    role: Optional[str]
    token: Optional[str] = None


def get_settings() -> Settings:
    """Settings provider (overridden in tests)."""
    return settings


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    app_settings: Settings = Depends(get_settings),
) -> Caller:
    """
    Validate the caller's JWT and return who they are.

    When VERIFY_CALLER_JWT is off the token is passed through unchecked.

    Raises:
        Unauthorized: If the token is missing, malformed, expired or badly signed
        Misconfigured: If verification is on but SUPABASE_JWT_SECRET is empty
    """
    token = credentials.credentials if credentials else None

    if not app_settings.VERIFY_CALLER_JWT:
        return Caller(sub=None, role=None, token=token)

    if not token:
        raise Unauthorized("Missing authorization header")

    if not app_settings.SUPABASE_JWT_SECRET:
        raise Misconfigured(
            "Missing required configuration: SUPABASE_JWT_SECRET",
            details={"missing": ["SUPABASE_JWT_SECRET"]},
        )

    try:
        # Supabase tokens carry aud="authenticated"; the role claim is what matters
        payload = jwt.decode(
            token,
            app_settings.SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.info(f"Rejected caller token: {e}")
        raise Unauthorized("Could not validate credentials")

    return Caller(sub=payload.get("sub"), role=payload.get("role"), token=token)


def require_service_role(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Only the backend's service role may list unreconciled events."""
    if caller.role != "service_role":
        raise Unauthorized("This operation requires the service_role key")
    return caller


def require_anon_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    app_settings: Settings = Depends(get_settings),
) -> None:
    """
    Require `Authorization: Bearer <SUPABASE_ANON_KEY>`.

    Raises:
        Misconfigured: If SUPABASE_ANON_KEY is empty
        Unauthorized: If the header is missing or the key does not match
    """
    if not app_settings.SUPABASE_ANON_KEY:
        raise Misconfigured(
            "Missing required configuration: SUPABASE_ANON_KEY",
            details={"missing": ["SUPABASE_ANON_KEY"]},
        )
    presented = credentials.credentials if credentials else ""
    if not hmac.compare_digest(presented.encode(), app_settings.SUPABASE_ANON_KEY.encode()):
        raise Unauthorized("Unauthorized")


def _require(app_settings: Settings, *names: str) -> None:
    missing = [name for name in names if not getattr(app_settings, name)]
    if missing:
        raise Misconfigured(
            f"Missing required configuration: {', '.join(missing)}",
            details={"missing": missing},
        )


# ---------------------------------------------------------------------------
# COLLABORATORS
# ---------------------------------------------------------------------------

def get_provisioner(app_settings: Settings = Depends(get_settings)) -> MeetingProvisioner:
    """Build a provisioner; raises Misconfigured before any external call."""
    return MeetingProvisioner(app_settings.meeting_config())


def get_google_auth_client(app_settings: Settings = Depends(get_settings)) -> GoogleAuthClient:
    _require(app_settings, "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET")
    return GoogleAuthClient(
        client_id=app_settings.GOOGLE_CLIENT_ID,
        client_secret=app_settings.GOOGLE_CLIENT_SECRET,
        timeout=app_settings.HTTP_TIMEOUT_SECONDS,
    )


def get_anon_gateway(app_settings: Settings = Depends(get_settings)) -> SupabaseGateway:
    """Gateway using the anon key (user lookups)."""
    _require(app_settings, "SUPABASE_URL", "SUPABASE_ANON_KEY")
    return SupabaseGateway(
        url=app_settings.SUPABASE_URL,
        key=app_settings.SUPABASE_ANON_KEY,
        timeout=app_settings.HTTP_TIMEOUT_SECONDS,
    )


def get_service_gateway(app_settings: Settings = Depends(get_settings)) -> SupabaseGateway:
    """Gateway using the service-role key (writes and admin calls)."""
    _require(app_settings, "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")
    return SupabaseGateway(
        url=app_settings.SUPABASE_URL,
        key=app_settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=app_settings.HTTP_TIMEOUT_SECONDS,
    )
