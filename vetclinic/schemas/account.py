"""
Account schemas - bodies for the Google linking and user deletion functions.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OAuthCodeRequest(BaseModel):
    """
    Body of POST /functions/oauth-google.

    Example request body:
    {
        "code": "4/0AX4XfWh...",
        "redirect_uri": "https://clinic.example/oauth/callback"
    }
    """
    code: Optional[str] = Field(None, description="Authorization code from Google")
    redirect_uri: Optional[str] = Field(None, description="Redirect URI used in the consent request; required")


class OAuthLinkResponse(BaseModel):
    success: bool = True
    message: str


class DeleteUserRequest(BaseModel):
    """Body of POST /functions/delete-user."""
    userId: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
