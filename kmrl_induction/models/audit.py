from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AuditAction(str, Enum):
    UPDATE_DECISION = "UPDATE_DECISION"
    SCORING_CONFIG_UPDATED = "SCORING_CONFIG_UPDATED"
    SCORING_CONFIG_RESET = "SCORING_CONFIG_RESET"


class AuditLog(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique audit log ID")
    action: AuditAction = Field(..., description="Action performed")
    actor: Optional[str] = Field(None, description="Who performed the action")
    trainset_id: Optional[str] = Field(None, description="Trainset affected, if any")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Action timestamp")

    before: Optional[Dict[str, Any]] = Field(None, description="State before the action")
    after: Optional[Dict[str, Any]] = Field(None, description="State after the action")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional action details")


class AuditLogFilter(BaseModel):
    trainset_id: Optional[str] = None
    action: Optional[str] = None

    def matches(self, log: AuditLog) -> bool:
        if self.trainset_id and log.trainset_id != self.trainset_id:
            return False
        if self.action and log.action.value != self.action:
            return False
        return True

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if self.trainset_id:
            query["trainsetId"] = self.trainset_id
        if self.action:
            query["action"] = self.action
        return query
