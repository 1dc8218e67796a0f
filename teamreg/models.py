"""
Data models for the registration platform
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


RegistrationStatus = Literal["pending", "verified", "rejected"]
ChatRole = Literal["user", "model"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Models serialized with camelCase keys (teamId, teamName, ...)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TeamMember(CamelModel):
    name: str
    email: str
    role: str = ""


class TeamPublic(CamelModel):
    """Public projection returned by the API"""
    team_id: str
    team_name: str
    team_leader_name: str
    team_leader_email: str
    team_members: List[TeamMember] = []
    created_at: datetime


class TeamRegistration(CamelModel):
    """One submitted team, as persisted in either backend"""
    team_id: str
    team_name: str
    team_leader_name: str
    team_leader_email: str
    team_members: List[TeamMember] = []
    id_card_path: Optional[str] = None
    id_card_verified: bool = False
    recaptcha_verified: bool = False
    status: RegistrationStatus = "pending"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> TeamPublic:
        return TeamPublic(
            team_id=self.team_id,
            team_name=self.team_name,
            team_leader_name=self.team_leader_name,
            team_leader_email=self.team_leader_email,
            team_members=self.team_members,
            created_at=self.created_at,
        )

    def to_document(self) -> dict:
        """Plain dict with camelCase keys for the document store"""
        return self.model_dump(by_alias=True)


class RegistrationSubmission(BaseModel):
    """Raw form fields of POST /api/register"""
    team_name: Optional[str] = None
    team_leader_name: Optional[str] = None
    team_leader_email: Optional[str] = None
    team_members: Optional[str] = None  # JSON-encoded array
    recaptcha_token: Optional[str] = None


class UploadedDocument(BaseModel):
    """ID document accepted from the multipart upload"""
    filename: str
    content_type: str
    content: bytes


class ChatTurn(BaseModel):
    role: ChatRole
    text: str


class ChatRequest(BaseModel):
    message: Optional[str] = None
    history: List[ChatTurn] = []


class VerifyTokenRequest(BaseModel):
    token: Optional[str] = None
