"""
Supabase Schemas - the slices of backend records the functions read.
"""

from typing import Optional

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """An authenticated Supabase user."""
    id: str = Field(..., description="Auth user id (also the profile id)")
    email: Optional[str] = Field(None)
