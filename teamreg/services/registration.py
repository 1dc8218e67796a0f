"""
Team registration workflow

register() runs validation, bot verification, persistence and the
confirmation mail in that order. Validation and verification failures happen
before any side effect. The mail is best effort: its failure is logged and
never changes the outcome of the registration.
"""
import json
import logging
from typing import Any, Callable, List, Optional

from teamreg.errors import DuplicateTeamIdError, NotFoundError, ValidationError, VerificationFailure
from teamreg.models import RegistrationSubmission, TeamMember, TeamRegistration, UploadedDocument, utcnow
from teamreg.utils import generate_team_id, is_valid_email


logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 3

# Signature of BackgroundTasks.add_task
Defer = Callable[..., Any]


def parse_members(payload: Optional[str]) -> List[TeamMember]:
    """
    Parse the JSON-encoded member list

    Malformed JSON or a non-list payload yields an empty list; entries that
    are not objects or lack a name/email are dropped.
    """
    try:
        raw = json.loads(payload or "[]")
    except (TypeError, ValueError):
        return []
    if not isinstance(raw, list):
        return []

    members = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or "").strip()
        email = str(item.get("email") or "").strip()
        if not name or not email:
            continue
        members.append(TeamMember(name=name, email=email, role=str(item.get("role") or "").strip()))
    return members


class RegistrationService:
    """Orchestrates verification, storage and notification per submission"""

    def __init__(self, verifier, store, dispatcher, uploads=None):
        self.verifier = verifier
        self.store = store
        self.dispatcher = dispatcher
        self.uploads = uploads

    async def register(
        self,
        submission: RegistrationSubmission,
        upload: Optional[UploadedDocument] = None,
        defer: Optional[Defer] = None,
    ) -> TeamRegistration:
        """
        Register a team

        Args:
            submission: Raw form fields
            upload: Accepted ID document, if any
            defer: Scheduler for the confirmation mail (BackgroundTasks.add_task);
                   when None the mail is sent inline

        Returns:
            The persisted TeamRegistration

        Raises:
            ValidationError: Required field missing or email malformed
            VerificationFailure: Bot verification failed
            DependencyFailure: The store failed while writing
        """
        team_name = (submission.team_name or "").strip()
        leader_name = (submission.team_leader_name or "").strip()
        leader_email = (submission.team_leader_email or "").strip().lower()

        if not team_name or not leader_name or not leader_email:
            raise ValidationError("Missing required fields: teamName, teamLeaderName, teamLeaderEmail")
        if not is_valid_email(leader_email):
            raise ValidationError("Invalid teamLeaderEmail")

        if not await self.verifier.verify(submission.recaptcha_token):
            raise VerificationFailure("reCAPTCHA verification failed. Please try again.")

        members = parse_members(submission.team_members)

        id_card_path = None
        if upload is not None and self.uploads is not None:
            id_card_path = await self.uploads.save(upload)

        created_at = utcnow()
        record = None
        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            candidate = TeamRegistration(
                team_id=generate_team_id(),
                team_name=team_name,
                team_leader_name=leader_name,
                team_leader_email=leader_email,
                team_members=members,
                id_card_path=id_card_path,
                id_card_verified=upload is not None,
                recaptcha_verified=True,
                status="pending",
                created_at=created_at,
                updated_at=created_at,
            )
            try:
                record = await self.store.save(candidate)
                break
            except DuplicateTeamIdError:
                logger.warning(f"⚠️ Team ID collision on {candidate.team_id} (attempt {attempt})")
                if attempt == MAX_ID_ATTEMPTS:
                    raise

        logger.info(f"✅ Team registered: {record.team_id} | {record.team_name} | {len(members)} members")

        if defer is not None:
            defer(self.notify, record)
        else:
            await self.notify(record)
        return record

    async def notify(self, record: TeamRegistration) -> None:
        """Send the confirmation mail; any failure is logged and swallowed"""
        try:
            await self.dispatcher.send_confirmation(record)
        except Exception as e:
            logger.error(f"❌ Failed to send confirmation email for {record.team_id}: {e}")

    async def get_by_id(self, team_id: str) -> TeamRegistration:
        record = await self.store.find_by_id(team_id)
        if record is None:
            raise NotFoundError("Team not found")
        return record

    async def verify_token(self, token: Optional[str]) -> bool:
        if not token:
            raise ValidationError("Missing reCAPTCHA token")
        return await self.verifier.verify(token)
