"""
Registration persistence with a durable backend and an in-memory fallback

The durable backend (MongoDB) is used whenever its connectivity probe says a
writable server is reachable; otherwise writes land in process memory.
The probe is evaluated on every call, so records written while the database
was down are only visible through the fallback. Reads therefore consult both
backends. Duplicate team ids are rejected by both backends.
"""
import asyncio
import logging
from typing import Callable, Dict, Optional, Protocol

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from teamreg.errors import DependencyFailure, DuplicateTeamIdError
from teamreg.models import TeamRegistration


logger = logging.getLogger(__name__)

COLLECTION_NAME = "teams"


class RegistrationBackend(Protocol):
    async def insert(self, record: TeamRegistration) -> TeamRegistration: ...

    async def find_by_id(self, team_id: str) -> Optional[TeamRegistration]: ...


class MemoryRegistrationBackend:
    """Process-local mapping teamId -> record; lost on restart"""

    def __init__(self):
        self._records: Dict[str, TeamRegistration] = {}
        self._lock = asyncio.Lock()

    async def insert(self, record: TeamRegistration) -> TeamRegistration:
        async with self._lock:
            if record.team_id in self._records:
                raise DuplicateTeamIdError(record.team_id)
            self._records[record.team_id] = record.model_copy(deep=True)
        return record

    async def find_by_id(self, team_id: str) -> Optional[TeamRegistration]:
        record = self._records.get(team_id)
        return record.model_copy(deep=True) if record else None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, team_id: str) -> bool:
        return team_id in self._records


class MongoRegistrationBackend:
    """
    MongoDB-backed storage for team registrations

    Args:
        collection: Async collection holding one document per team
        probe: Returns True while a writable server is reachable
        client: Owning client, closed by close()
    """

    def __init__(self, collection, probe: Callable[[], bool], client: Optional[AsyncMongoClient] = None):
        self.collection = collection
        self.probe = probe
        self.client = client

    @classmethod
    def from_uri(cls, uri: str, database: str) -> "MongoRegistrationBackend":
        client = AsyncMongoClient(uri, serverSelectionTimeoutMS=3000, tz_aware=True)
        collection = client[database][COLLECTION_NAME]
        return cls(
            collection,
            probe=lambda: client.topology_description.has_writable_server(),
            client=client,
        )

    async def connect(self) -> bool:
        """Ping the server and ensure indexes; False when unreachable"""
        try:
            if self.client is not None:
                await self.client.admin.command("ping")
            await self.ensure_indexes()
        except PyMongoError as e:
            logger.warning(f"⚠️ MongoDB connection failed, using in-memory storage: {e}")
            return False
        logger.info("✅ Connected to MongoDB successfully")
        return True

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("teamId", ASCENDING)], unique=True)
        await self.collection.create_index([("teamLeaderEmail", ASCENDING)])
        await self.collection.create_index([("createdAt", DESCENDING)])

    def is_available(self) -> bool:
        try:
            return bool(self.probe())
        except Exception as e:
            logger.warning(f"⚠️ MongoDB probe failed: {e}")
            return False

    async def insert(self, record: TeamRegistration) -> TeamRegistration:
        try:
            await self.collection.insert_one(record.to_document())
        except DuplicateKeyError as e:
            raise DuplicateTeamIdError(record.team_id) from e
        return record

    async def find_by_id(self, team_id: str) -> Optional[TeamRegistration]:
        document = await self.collection.find_one({"teamId": team_id}, {"_id": False})
        if document is None:
            return None
        return TeamRegistration.model_validate(document)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


class RegistrationStore:
    """Facade choosing a backend per call"""

    def __init__(
        self,
        durable: Optional[MongoRegistrationBackend] = None,
        fallback: Optional[RegistrationBackend] = None,
    ):
        self.durable = durable
        self.fallback = fallback if fallback is not None else MemoryRegistrationBackend()

    def durable_available(self) -> bool:
        return self.durable is not None and self.durable.is_available()

    async def save(self, record: TeamRegistration) -> TeamRegistration:
        """
        Persist a new registration

        Raises:
            DuplicateTeamIdError: The team id already exists in the chosen backend
            DependencyFailure: The durable backend failed mid-write
        """
        if not self.durable_available():
            saved = await self.fallback.insert(record)
            logger.warning(f"⚠️ Team saved to memory (MongoDB not connected): {record.team_id}")
            return saved

        try:
            saved = await self.durable.insert(record)
        except DuplicateTeamIdError:
            raise
        except PyMongoError as e:
            logger.error(f"❌ MongoDB write failed for {record.team_id}: {e}", exc_info=True)
            raise DependencyFailure("Failed to register team. Please try again.") from e
        logger.info(f"✅ Team saved to MongoDB: {record.team_id}")
        return saved

    async def find_by_id(self, team_id: str) -> Optional[TeamRegistration]:
        durable_error: Optional[PyMongoError] = None
        if self.durable_available():
            try:
                record = await self.durable.find_by_id(team_id)
            except PyMongoError as e:
                logger.warning(f"⚠️ MongoDB read failed for {team_id}: {e}")
                durable_error = e
            else:
                if record is not None:
                    return record

        record = await self.fallback.find_by_id(team_id)
        if record is None and durable_error is not None:
            raise DependencyFailure("Failed to fetch team data") from durable_error
        return record

    async def close(self) -> None:
        if self.durable is not None:
            await self.durable.close()
