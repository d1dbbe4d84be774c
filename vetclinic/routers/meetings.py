"""
Meetings Router - the create-meet function.

Endpoints:
==========
- POST /functions/create-meet              → Provision a Meet link for an appointment
- GET  /functions/create-meet/unreconciled → Events created but never saved on their appointment
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vetclinic.db.session import get_db
from vetclinic.deps import Caller, get_current_caller, get_provisioner, require_service_role
from vetclinic.schemas.meeting import CreateMeetRequest, CreateMeetResponse, MeetingProvisionOut
from vetclinic.services.meeting_provisioner import MeetingProvisioner
from vetclinic.services.provision_ledger import provision_ledger


logger = logging.getLogger("vetclinic.routers.meetings")


router = APIRouter(prefix="/functions/create-meet", tags=["meetings"])


@router.post("", response_model=CreateMeetResponse)
async def create_meet(
    body: CreateMeetRequest,
    caller: Caller = Depends(get_current_caller),
    provisioner: MeetingProvisioner = Depends(get_provisioner),
    db: Session = Depends(get_db),
):
    """
    Create a Google Calendar event with a Meet conference for an appointment
    and save the link on the appointment.

    Errors are rendered by the app's exception handlers as
    {"error": ..., "kind": ..., ...details}.
    """
    logger.info(
        "create-meet requested",
        extra={"appointment_id": body.appointment_id, "caller": caller.sub},
    )
    result = await provisioner.provision_meeting(db, body.appointment_id, body.start)
    return CreateMeetResponse(meetingUrl=result.meeting_url, eventId=result.event_id)


@router.get("/unreconciled", response_model=list[MeetingProvisionOut])
def list_unreconciled(
    caller: Caller = Depends(require_service_role),
    db: Session = Depends(get_db),
):
    """List orphaned events so an operator can clean them up."""
    return provision_ledger.list_unreconciled(db)
