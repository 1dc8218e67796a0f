"""
Shared fixtures: in-process services with fake collaborators
"""
import copy
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from teamreg.config import RECAPTCHA_TEST_SECRET, load_settings
from teamreg.main import create_app
from teamreg.services.chat import ChatRelay
from teamreg.services.mailer import NotificationDispatcher
from teamreg.services.recaptcha import RecaptchaVerifier
from teamreg.services.registration import RegistrationService
from teamreg.services.store import MongoRegistrationBackend, RegistrationStore
from teamreg.services.uploads import UploadStorage
from teamreg.state import ServiceContainer


class FakeCollection:
    """Subset of the async collection API used by MongoRegistrationBackend"""

    def __init__(self):
        self.documents: Dict[str, dict] = {}
        self.indexes: List[tuple] = []
        self.fail_writes = False
        self.fail_reads = False

    async def create_index(self, keys, unique=False):
        self.indexes.append((tuple(keys), unique))

    async def insert_one(self, document):
        if self.fail_writes:
            raise ServerSelectionTimeoutError("no servers available")
        if document["teamId"] in self.documents:
            raise DuplicateKeyError("E11000 duplicate key error", code=11000)
        self.documents[document["teamId"]] = {"_id": object(), **copy.deepcopy(document)}

    async def find_one(self, query, projection=None):
        if self.fail_reads:
            raise ServerSelectionTimeoutError("no servers available")
        document = self.documents.get(query["teamId"])
        if document is None:
            return None
        result = copy.deepcopy({k: v for k, v in document.items() if k != "_id"})
        return result


class FakeRelay:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, message):
        if self.fail:
            raise ConnectionRefusedError("relay down")
        self.sent.append(message)


class Switch:
    """Mutable connectivity flag used as a probe"""

    def __init__(self, on: bool = True):
        self.on = on

    def __call__(self) -> bool:
        return self.on


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        environment="test",
        frontend_url="http://localhost:3000",
        mongodb_uri=None,
        recaptcha_secret_key=RECAPTCHA_TEST_SECRET,
        gemini_api_key=None,
        smtp_user=None,
        smtp_pass=None,
        uploads_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def dispatcher(relay):
    async def create_relay():
        return relay

    return NotificationDispatcher(create_relay, "noreply@teamreg.com")


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def connectivity():
    return Switch(on=False)


@pytest.fixture
def store(collection, connectivity):
    return RegistrationStore(durable=MongoRegistrationBackend(collection, probe=connectivity))


@pytest.fixture
def uploads(settings):
    return UploadStorage(settings.uploads_dir)


@pytest.fixture
def service(settings, store, dispatcher, uploads):
    return RegistrationService(
        verifier=RecaptchaVerifier(settings.recaptcha_secret_key),
        store=store,
        dispatcher=dispatcher,
        uploads=uploads,
    )


@pytest.fixture
def services(settings, service, store, uploads):
    return ServiceContainer(
        settings=settings,
        registration=service,
        chat=ChatRelay(api_key=None),
        store=store,
        uploads=uploads,
    )


@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
