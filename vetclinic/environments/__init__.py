"""
Environments Module - External Service Integrations

environments/
├── base.py      # Shared exceptions and token dataclass
├── google/      # Google OAuth + Calendar
└── supabase/    # Hosted backend: appointments, profiles, auth admin

Clients here only speak their provider's protocol; the services decide
what a failure means for the caller.
"""

from vetclinic.environments.base import (
    APIError,
    AuthenticationError,
    DataStoreError,
    EnvironmentError,
    EnvironmentProvider,
    MalformedResponseError,
    OAuthTokens,
    RecordNotFoundError,
    TokenExpiredError,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "DataStoreError",
    "EnvironmentError",
    "EnvironmentProvider",
    "MalformedResponseError",
    "OAuthTokens",
    "RecordNotFoundError",
    "TokenExpiredError",
]
