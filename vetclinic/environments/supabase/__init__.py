"""
Supabase Module - hosted backend access (PostgREST tables and Auth).
"""

from vetclinic.environments.supabase.client import (
    APPOINTMENTS_TABLE,
    PROFILES_TABLE,
    SupabaseGateway,
)
from vetclinic.environments.supabase.schemas import AuthUser

__all__ = [
    "APPOINTMENTS_TABLE",
    "PROFILES_TABLE",
    "AuthUser",
    "SupabaseGateway",
]
