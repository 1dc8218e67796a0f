"""HTTP client for the registration API"""
import json
import logging
from typing import Any, List, Optional, Sequence

import httpx
from pydantic import BaseModel

from teamreg.models import ChatTurn


logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please check your connection and try again."


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None


class RegistrationApiClient:
    """
    Thin wrapper over the /api endpoints

    HTTP error bodies are returned as ApiResponse(success=False, ...) rather
    than raised; connection problems produce a generic network error.
    """

    def __init__(self, base_url: str = "/api", client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        try:
            response = await self.client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"❌ {method} {path} failed: {e}")
            return ApiResponse(success=False, error=NETWORK_ERROR)

        try:
            return ApiResponse.model_validate(response.json())
        except ValueError:
            return ApiResponse(success=False, error=f"Unexpected response ({response.status_code})")

    async def register_team(self, form) -> ApiResponse:
        """Submit a RegistrationForm as multipart/form-data"""
        members = [m.model_dump() for m in form.valid_members()]
        data = {
            "teamName": form.team_name,
            "teamLeaderName": form.team_leader_name,
            "teamLeaderEmail": form.team_leader_email,
            "teamMembers": json.dumps(members),
            "recaptchaToken": form.recaptcha_token,
        }
        files = None
        if form.id_card is not None:
            files = {"idCard": (form.id_card.filename, form.id_card.content, form.id_card.content_type)}
        return await self._request("POST", "/register", data=data, files=files)

    async def verify_recaptcha(self, token: str) -> ApiResponse:
        return await self._request("POST", "/verify-recaptcha", json={"token": token})

    async def get_team(self, team_id: str) -> ApiResponse:
        return await self._request("GET", f"/team/{team_id}")

    async def chat(self, message: str, history: Sequence[ChatTurn] = ()) -> ApiResponse:
        payload: List[dict] = [turn.model_dump() for turn in history]
        return await self._request("POST", "/chat", json={"message": message, "history": payload})

    async def close(self) -> None:
        await self.client.aclose()
