"""
Four-step registration wizard

Verification -> Team info -> Members -> Upload, strictly linear. Moving
forward runs the current step's validator; moving back is always allowed.
Submitting from the last step re-checks the upload and calls the API.
"""
import logging
from enum import Enum, IntEnum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from teamreg.models import TeamMember, UploadedDocument
from teamreg.services.uploads import ALLOWED_CONTENT_TYPES
from teamreg.utils import is_valid_email


logger = logging.getLogger(__name__)

MAX_MEMBERS = 10
MAX_FILE_BYTES = 10 * 1024 * 1024


class WizardStep(IntEnum):
    VERIFICATION = 1
    TEAM_INFO = 2
    MEMBERS = 3
    UPLOAD = 4


class Direction(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"


class AppView(str, Enum):
    REGISTERING = "registering"
    COMPLETE = "complete"


class MemberRow(BaseModel):
    name: str = ""
    email: str = ""
    role: str = ""

    def is_complete(self) -> bool:
        return bool(self.name.strip() and self.email.strip())


class RegistrationForm(BaseModel):
    recaptcha_token: str = ""
    team_name: str = ""
    team_leader_name: str = ""
    team_leader_email: str = ""
    team_members: List[MemberRow] = Field(default_factory=lambda: [MemberRow()])
    id_card: Optional[UploadedDocument] = None

    def add_member(self) -> bool:
        """Append a blank row; False once the cap is reached"""
        if len(self.team_members) >= MAX_MEMBERS:
            return False
        self.team_members.append(MemberRow())
        return True

    def remove_member(self, index: int) -> bool:
        """Remove a row, always keeping at least one"""
        if len(self.team_members) <= 1 or not 0 <= index < len(self.team_members):
            return False
        del self.team_members[index]
        return True

    def valid_members(self) -> List[TeamMember]:
        return [
            TeamMember(name=m.name.strip(), email=m.email.strip(), role=m.role.strip())
            for m in self.team_members
            if m.is_complete()
        ]


def check_file(content_type: str, size: int) -> Optional[str]:
    if content_type not in ALLOWED_CONTENT_TYPES:
        return "Please upload an image (JPEG, PNG, WebP) or PDF file"
    if size > MAX_FILE_BYTES:
        return "File size must be less than 10MB"
    return None


# ==================== STEP VALIDATORS ====================
# Each returns an error message, or None when the step is complete.

def validate_verification(form: RegistrationForm) -> Optional[str]:
    if not form.recaptcha_token:
        return "Please complete the reCAPTCHA verification"
    return None


def validate_team_info(form: RegistrationForm) -> Optional[str]:
    if not form.team_name.strip():
        return "Please enter your team name"
    if not form.team_leader_name.strip():
        return "Please enter the team leader name"
    if not form.team_leader_email.strip() or not is_valid_email(form.team_leader_email.strip()):
        return "Please enter a valid email address"
    return None


def validate_members(form: RegistrationForm) -> Optional[str]:
    members = form.valid_members()
    if not members:
        return "Please add at least one team member"
    for member in members:
        if not is_valid_email(member.email):
            return f"Invalid email for {member.name}"
    return None


def validate_upload(form: RegistrationForm) -> Optional[str]:
    if form.id_card is None:
        return "Please upload an ID card for verification"
    return None


VALIDATORS: Dict[WizardStep, Callable[[RegistrationForm], Optional[str]]] = {
    WizardStep.VERIFICATION: validate_verification,
    WizardStep.TEAM_INFO: validate_team_info,
    WizardStep.MEMBERS: validate_members,
    WizardStep.UPLOAD: validate_upload,
}


def transition(step: WizardStep, valid: bool, direction: Direction) -> WizardStep:
    """Next step for a move in the given direction"""
    if direction == Direction.PREVIOUS:
        return WizardStep(max(step - 1, WizardStep.VERIFICATION))
    if not valid:
        return step
    return WizardStep(min(step + 1, WizardStep.UPLOAD))


class RegistrationWizard:
    """Client-side state of one registration attempt"""

    def __init__(self, form: Optional[RegistrationForm] = None):
        self.form = form or RegistrationForm()
        self.step = WizardStep.VERIFICATION
        self.view = AppView.REGISTERING
        self.error: Optional[str] = None
        self.result: Optional[dict] = None
        self.submitting = False

    def validate(self, step: Optional[WizardStep] = None) -> Optional[str]:
        return VALIDATORS[step or self.step](self.form)

    def next(self) -> WizardStep:
        self.error = self.validate()
        self.step = transition(self.step, self.error is None, Direction.NEXT)
        return self.step

    def previous(self) -> WizardStep:
        self.error = None
        self.step = transition(self.step, True, Direction.PREVIOUS)
        return self.step

    def attach_file(self, filename: str, content_type: str, content: bytes) -> bool:
        self.error = check_file(content_type, len(content))
        if self.error:
            return False
        self.form.id_card = UploadedDocument(filename=filename, content_type=content_type, content=content)
        return True

    async def submit(self, api) -> bool:
        """
        Send the registration from the upload step

        Args:
            api: Object with an async register_team(form) returning an ApiResponse

        Returns:
            True when the host application moved to the completion view
        """
        if self.step != WizardStep.UPLOAD:
            self.error = "Complete all steps before submitting"
            return False
        self.error = self.validate(WizardStep.UPLOAD)
        if self.error:
            return False

        self.submitting = True
        try:
            response = await api.register_team(self.form)
        except Exception as e:
            logger.error(f"❌ Registration request failed: {type(e).__name__}: {e}")
            response = None
        finally:
            self.submitting = False

        if response is None:
            self.error = "An unexpected error occurred. Please try again."
            return False
        if not response.success or not response.data:
            self.error = response.error or "Registration failed. Please try again."
            return False

        self.result = response.data
        self.view = AppView.COMPLETE
        return True
