# kmrl_induction/utils/database.py
import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument

from kmrl_induction.config import settings
from kmrl_induction.models.audit import AuditLog, AuditLogFilter
from kmrl_induction.models.trainset import Decision, TrainsetSnapshot, parse_snapshot

logger = logging.getLogger(__name__)

DEMO_FLEET_PATH = Path(__file__).resolve().parents[1] / "data" / "trainsets.json"
SCORING_CONFIG_KEY = "default"


class TrainsetRepository:
    """Storage boundary for trainsets, the persisted scoring table and audit logs.

    Documents are stored in their wire (camelCase) shape and validated into
    snapshots on every read.
    """

    async def list_trainsets(self) -> List[TrainsetSnapshot]:
        raise NotImplementedError

    async def get_trainset(self, trainset_id: str) -> Optional[TrainsetSnapshot]:
        raise NotImplementedError

    async def count_trainsets(self) -> int:
        raise NotImplementedError

    async def insert_trainsets(self, documents: List[Dict[str, Any]]) -> int:
        raise NotImplementedError

    async def update_decision(
        self,
        trainset_id: str,
        recommendation: Decision,
        manual_override: bool,
        updated_by: Optional[str] = None,
    ) -> Optional[TrainsetSnapshot]:
        raise NotImplementedError

    async def get_scoring_weights(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def save_scoring_weights(self, weights: Dict[str, int], updated_by: Optional[str] = None) -> None:
        raise NotImplementedError

    async def delete_scoring_weights(self) -> None:
        raise NotImplementedError

    async def insert_audit_log(self, log: AuditLog) -> None:
        raise NotImplementedError

    async def list_audit_logs(self, log_filter: AuditLogFilter, skip: int = 0, limit: int = 50) -> List[AuditLog]:
        raise NotImplementedError


def _decision_update(recommendation: Decision, manual_override: bool, updated_by: Optional[str]) -> Dict[str, Any]:
    return {
        "recommendation": recommendation.value,
        "manualOverride": bool(manual_override),
        "updatedBy": updated_by,
        "lastUpdated": datetime.utcnow(),
    }


class InMemoryTrainsetRepository(TrainsetRepository):
    """Process-local store for development and tests"""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self._trainsets: Dict[str, Dict[str, Any]] = {}
        self._scoring: Optional[Dict[str, Any]] = None
        self._audit_logs: List[AuditLog] = []
        for doc in documents or []:
            self._trainsets[doc["id"]] = copy.deepcopy(doc)

    async def list_trainsets(self) -> List[TrainsetSnapshot]:
        return [parse_snapshot(self._trainsets[key]) for key in sorted(self._trainsets)]

    async def get_trainset(self, trainset_id: str) -> Optional[TrainsetSnapshot]:
        doc = self._trainsets.get(trainset_id)
        return parse_snapshot(doc) if doc is not None else None

    async def count_trainsets(self) -> int:
        return len(self._trainsets)

    async def insert_trainsets(self, documents: List[Dict[str, Any]]) -> int:
        inserted = 0
        for doc in documents:
            if doc["id"] in self._trainsets:
                continue
            self._trainsets[doc["id"]] = copy.deepcopy(doc)
            inserted += 1
        return inserted

    async def update_decision(self, trainset_id, recommendation, manual_override, updated_by=None):
        doc = self._trainsets.get(trainset_id)
        if doc is None:
            return None
        doc.update(_decision_update(recommendation, manual_override, updated_by))
        return parse_snapshot(doc)

    async def get_scoring_weights(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._scoring)

    async def save_scoring_weights(self, weights, updated_by=None) -> None:
        self._scoring = {
            "key": SCORING_CONFIG_KEY,
            "weights": dict(weights),
            "updatedBy": updated_by,
            "updatedAt": datetime.utcnow(),
        }

    async def delete_scoring_weights(self) -> None:
        self._scoring = None

    async def insert_audit_log(self, log: AuditLog) -> None:
        self._audit_logs.append(log)

    async def list_audit_logs(self, log_filter, skip=0, limit=50) -> List[AuditLog]:
        matching = [log for log in reversed(self._audit_logs) if log_filter.matches(log)]
        return matching[skip:skip + limit]


class MongoTrainsetRepository(TrainsetRepository):
    """MongoDB-backed store (collections: trainsets, scoring_configs, audit_logs)"""

    def __init__(self, database):
        self.db = database

    @classmethod
    def from_settings(cls) -> "MongoTrainsetRepository":
        logger.info("Connecting to MongoDB...")
        client = AsyncIOMotorClient(settings.mongodb_url)
        return cls(client[settings.database_name])

    @property
    def trainsets(self):
        return self.db["trainsets"]

    @property
    def scoring_configs(self):
        return self.db["scoring_configs"]

    @property
    def audit_logs(self):
        return self.db["audit_logs"]

    async def list_trainsets(self) -> List[TrainsetSnapshot]:
        snapshots = []
        async for doc in self.trainsets.find({}).sort("id", 1):
            doc.pop("_id", None)
            snapshots.append(parse_snapshot(doc))
        return snapshots

    async def get_trainset(self, trainset_id: str) -> Optional[TrainsetSnapshot]:
        doc = await self.trainsets.find_one({"id": trainset_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return parse_snapshot(doc)

    async def count_trainsets(self) -> int:
        return await self.trainsets.count_documents({})

    async def insert_trainsets(self, documents: List[Dict[str, Any]]) -> int:
        if not documents:
            return 0
        result = await self.trainsets.insert_many([copy.deepcopy(d) for d in documents])
        return len(result.inserted_ids)

    async def update_decision(self, trainset_id, recommendation, manual_override, updated_by=None):
        doc = await self.trainsets.find_one_and_update(
            {"id": trainset_id},
            {"$set": _decision_update(recommendation, manual_override, updated_by)},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        doc.pop("_id", None)
        return parse_snapshot(doc)

    async def get_scoring_weights(self) -> Optional[Dict[str, Any]]:
        doc = await self.scoring_configs.find_one({"key": SCORING_CONFIG_KEY})
        if doc:
            doc.pop("_id", None)
        return doc

    async def save_scoring_weights(self, weights, updated_by=None) -> None:
        await self.scoring_configs.update_one(
            {"key": SCORING_CONFIG_KEY},
            {"$set": {
                "key": SCORING_CONFIG_KEY,
                "weights": dict(weights),
                "updatedBy": updated_by,
                "updatedAt": datetime.utcnow(),
            }},
            upsert=True,
        )

    async def delete_scoring_weights(self) -> None:
        await self.scoring_configs.delete_one({"key": SCORING_CONFIG_KEY})

    async def insert_audit_log(self, log: AuditLog) -> None:
        await self.audit_logs.insert_one(log.model_dump(by_alias=True))

    async def list_audit_logs(self, log_filter, skip=0, limit=50) -> List[AuditLog]:
        cursor = self.audit_logs.find(log_filter.to_query()).sort("createdAt", -1).skip(skip).limit(limit)
        logs = []
        async for doc in cursor:
            doc.pop("_id", None)
            logs.append(AuditLog.model_validate(doc))
        return logs


def create_repository() -> TrainsetRepository:
    """Build the repository selected by settings.storage_backend"""
    backend = settings.storage_backend.lower()
    if backend == "mongo":
        return MongoTrainsetRepository.from_settings()
    if backend != "memory":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    logger.info("Using in-memory trainset store")
    return InMemoryTrainsetRepository()


def load_demo_fleet(path: Path = DEMO_FLEET_PATH) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


async def seed_demo_fleet(repository: TrainsetRepository, path: Path = DEMO_FLEET_PATH) -> int:
    """Insert the bundled demo fleet into an empty store"""
    existing = await repository.count_trainsets()
    if existing > 0:
        logger.info(f"Trainsets already seeded ({existing})")
        return 0
    inserted = await repository.insert_trainsets(load_demo_fleet(path))
    logger.info(f"Seeded {inserted} demo trainsets")
    return inserted
