"""
Google Auth Module - OAuth 2.0 token handling for Google services.
"""

from vetclinic.environments.google.auth.client import GoogleAuthClient
from vetclinic.environments.google.auth.schemas import GoogleTokenResponse

__all__ = [
    "GoogleAuthClient",
    "GoogleTokenResponse",
]
