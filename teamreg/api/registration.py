"""Team registration endpoints"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, UploadFile

from teamreg.errors import RegistrationError
from teamreg.models import RegistrationSubmission, TeamRegistration, VerifyTokenRequest
from teamreg.services.registration import RegistrationService
from teamreg.services.uploads import read_upload
from teamreg.state import get_registration_service


router = APIRouter(prefix="/api", tags=["registration"])
logger = logging.getLogger(__name__)


def public_data(record: TeamRegistration) -> dict:
    return record.to_public().model_dump(by_alias=True, mode="json")


@router.post("/register", status_code=201)
async def register(
    request: Request,
    background_tasks: BackgroundTasks,
    team_name: Optional[str] = Form(None, alias="teamName"),
    team_leader_name: Optional[str] = Form(None, alias="teamLeaderName"),
    team_leader_email: Optional[str] = Form(None, alias="teamLeaderEmail"),
    team_members: Optional[str] = Form(None, alias="teamMembers"),
    recaptcha_token: Optional[str] = Form(None, alias="recaptchaToken"),
    id_card: Optional[UploadFile] = File(None, alias="idCard"),
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a team (multipart/form-data)

    Response (201):
        {
            "success": true,
            "data": {"teamId": "TEAM-3F9A-01BC", "teamName": ..., "createdAt": ...},
            "message": "..."
        }
    """
    submission = RegistrationSubmission(
        team_name=team_name,
        team_leader_name=team_leader_name,
        team_leader_email=team_leader_email,
        team_members=team_members,
        recaptcha_token=recaptcha_token,
    )
    try:
        upload = await read_upload(id_card, request.app.state.services.settings.max_upload_bytes)
        record = await service.register(submission, upload, defer=background_tasks.add_task)
    except RegistrationError as e:
        logger.info(f"❌ Registration rejected: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except Exception as e:
        logger.error(f"❌ Registration error: {type(e).__name__}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to register team. Please try again.") from e

    return {
        "success": True,
        "data": public_data(record),
        "message": "Team registered successfully! A confirmation email has been sent.",
    }


@router.post("/verify-recaptcha")
async def verify_recaptcha(
    payload: VerifyTokenRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    try:
        verified = await service.verify_token(payload.token)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return {"success": True, "data": {"verified": verified}}


@router.get("/team/{team_id}")
async def get_team(team_id: str, service: RegistrationService = Depends(get_registration_service)):
    try:
        record = await service.get_by_id(team_id)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except Exception as e:
        logger.error(f"❌ Error fetching team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch team data") from e
    return {"success": True, "data": public_data(record)}
