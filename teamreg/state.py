"""
Application state
Services built once at startup and shared by all routers
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from fastapi import Request

from teamreg.config import Settings
from teamreg.services.chat import ChatRelay
from teamreg.services.mailer import NotificationDispatcher, relay_factory
from teamreg.services.recaptcha import RecaptchaVerifier
from teamreg.services.registration import RegistrationService
from teamreg.services.store import MongoRegistrationBackend, RegistrationStore
from teamreg.services.uploads import UploadStorage


logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    registration: RegistrationService
    chat: ChatRelay
    store: RegistrationStore
    uploads: UploadStorage
    http_clients: List[httpx.AsyncClient] = field(default_factory=list)

    async def startup(self) -> None:
        self.uploads.ensure_directory()
        if self.store.durable is not None:
            await self.store.durable.connect()

    async def shutdown(self) -> None:
        await self.store.close()
        await self.chat.close()
        for client in self.http_clients:
            await client.aclose()


def build_services(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> ServiceContainer:
    """
    Wire the production services from settings

    Args:
        settings: Loaded settings
        http_client: Shared client for reCAPTCHA and Ethereal calls
    """
    client = http_client or httpx.AsyncClient(timeout=10.0)

    durable = None
    if settings.mongodb_uri:
        durable = MongoRegistrationBackend.from_uri(settings.mongodb_uri, settings.mongodb_database)
    else:
        logger.warning("⚠️ MONGODB_URI not set, registrations are kept in memory")
    store = RegistrationStore(durable=durable)

    uploads = UploadStorage(settings.uploads_dir)
    registration = RegistrationService(
        verifier=RecaptchaVerifier(settings.recaptcha_secret_key, settings.recaptcha_verify_url, client=client),
        store=store,
        dispatcher=NotificationDispatcher(relay_factory(settings, client), settings.smtp_from),
        uploads=uploads,
    )
    chat = ChatRelay(settings.gemini_api_key, settings.gemini_model, settings.gemini_base_url)

    return ServiceContainer(
        settings=settings,
        registration=registration,
        chat=chat,
        store=store,
        uploads=uploads,
        http_clients=[client] if http_client is None else [],
    )


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.services.registration


def get_chat_relay(request: Request) -> ChatRelay:
    return request.app.state.services.chat
