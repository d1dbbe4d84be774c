"""
Users Router - administrative user deletion.

Endpoints:
==========
- POST /functions/delete-user → Delete an auth user (anon-key bearer required)
"""

import logging

from fastapi import APIRouter, Depends

from vetclinic.deps import get_service_gateway, require_anon_key
from vetclinic.environments.supabase import SupabaseGateway
from vetclinic.schemas.account import DeleteUserRequest, MessageResponse
from vetclinic.services import account_service


logger = logging.getLogger("vetclinic.routers.users")


router = APIRouter(prefix="/functions/delete-user", tags=["users"])


@router.post("", response_model=MessageResponse, dependencies=[Depends(require_anon_key)])
async def delete_user(
    body: DeleteUserRequest,
    gateway: SupabaseGateway = Depends(get_service_gateway),
):
    """
    Delete the auth user named in the body.

    Returns:
        {"message": "User deleted successfully"}
    """
    await account_service.delete_user(gateway, body.userId)
    logger.info("User deleted", extra={"user_id": body.userId})
    return MessageResponse(message="User deleted successfully")
