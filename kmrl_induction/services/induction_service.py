# kmrl_induction/services/induction_service.py
"""
Induction service - binds the decision engine to the storage layer.

Every call site (live listing, ranked list, decision update, what-if run, ML
suggestions) goes through the same conflict detector, explanation builder and
scorer so the results agree with each other.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from kmrl_induction.core.scoring_config import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    resolve_weights,
    weights_from_document,
)
from kmrl_induction.models.audit import AuditAction, AuditLog, AuditLogFilter
from kmrl_induction.models.trainset import (
    Decision,
    EvaluatedTrainset,
    InductionFilters,
    MLSuggestionReport,
    RankedPage,
    RuleOverrides,
    SimulationResult,
    TrainsetConflicts,
)
from kmrl_induction.services.ml_suggestions import generate_suggestions
from kmrl_induction.services.scoring import evaluate_trainset, rank_and_paginate
from kmrl_induction.services.whatif_simulator import simulate
from kmrl_induction.utils.database import TrainsetRepository

logger = logging.getLogger(__name__)


class TrainsetNotFoundError(LookupError):
    def __init__(self, trainset_id: str):
        self.trainset_id = trainset_id
        super().__init__(f"Trainset not found: {trainset_id}")


class InductionService:
    """Stateless facade over a repository; safe to share between requests."""

    def __init__(self, repository: TrainsetRepository):
        self.repository = repository

    async def get_weights(self) -> ScoringWeights:
        """Persisted weight table, or the baseline when none is stored."""
        doc = await self.repository.get_scoring_weights()
        return weights_from_document(doc.get("weights") if doc else None)

    async def list_with_diagnostics(self) -> List[EvaluatedTrainset]:
        checked_at = datetime.utcnow()
        snapshots = await self.repository.list_trainsets()
        return [evaluate_trainset(s, checked_at=checked_at) for s in snapshots]

    async def get_with_diagnostics(self, trainset_id: str) -> EvaluatedTrainset:
        snapshot = await self.repository.get_trainset(trainset_id)
        if snapshot is None:
            raise TrainsetNotFoundError(trainset_id)
        return evaluate_trainset(snapshot, checked_at=datetime.utcnow())

    async def list_conflicts(self) -> List[TrainsetConflicts]:
        evaluated = await self.list_with_diagnostics()
        return [
            TrainsetConflicts(
                trainset_id=t.id,
                conflicts=t.conflicts,
                last_conflict_check=t.last_conflict_check,
            )
            for t in evaluated
            if t.conflicts
        ]

    async def get_conflicts(self, trainset_id: str) -> TrainsetConflicts:
        """Conflicts of one trainset, empty list included"""
        evaluated = await self.get_with_diagnostics(trainset_id)
        return TrainsetConflicts(
            trainset_id=evaluated.id,
            conflicts=evaluated.conflicts,
            last_conflict_check=evaluated.last_conflict_check,
        )

    async def scored_induction(
        self,
        weight_overrides: Optional[Mapping[str, Any]] = None,
        filters: Optional[InductionFilters] = None,
        skip: int = 0,
        limit: int = 25,
    ) -> RankedPage:
        weights = resolve_weights(await self.get_weights(), weight_overrides)
        if weight_overrides:
            logger.info(f"Scored induction with weight overrides: {dict(weight_overrides)}")
        evaluated = await self.list_with_diagnostics()
        return rank_and_paginate(evaluated, weights, filters, skip, limit)

    async def update_decision(
        self,
        trainset_id: str,
        recommendation: Optional[Decision],
        manual_override: bool = False,
        actor: Optional[str] = None,
    ) -> EvaluatedTrainset:
        before = await self.repository.get_trainset(trainset_id)
        if before is None:
            raise TrainsetNotFoundError(trainset_id)

        # No recommendation means nothing to change
        if recommendation is None:
            return evaluate_trainset(before, checked_at=datetime.utcnow())

        after = await self.repository.update_decision(trainset_id, recommendation, manual_override, actor)
        if after is None:
            raise TrainsetNotFoundError(trainset_id)

        await self.repository.insert_audit_log(
            AuditLog(
                action=AuditAction.UPDATE_DECISION,
                actor=actor,
                trainset_id=trainset_id,
                before=before.to_wire(),
                after=after.to_wire(),
                metadata={"manualOverride": after.manual_override},
            )
        )
        logger.info(
            f"Decision for {trainset_id} changed {before.recommendation.value} -> "
            f"{after.recommendation.value} (manual_override={after.manual_override})"
        )
        return evaluate_trainset(after, checked_at=datetime.utcnow())

    async def simulate(self, rules: Optional[RuleOverrides] = None) -> SimulationResult:
        snapshots = await self.repository.list_trainsets()
        weights = await self.get_weights()
        return simulate(snapshots, rules or RuleOverrides(), weights, checked_at=datetime.utcnow())

    async def ml_suggestions(self, limit: int = 10, only_changed: bool = False) -> MLSuggestionReport:
        snapshots = await self.repository.list_trainsets()
        weights = await self.get_weights()
        return generate_suggestions(snapshots, weights, limit=limit, only_changed=only_changed)

    async def get_scoring_config(self) -> Dict[str, Any]:
        doc = await self.repository.get_scoring_weights()
        if not doc:
            return {"key": "default", "weights": DEFAULT_WEIGHTS.to_wire()}
        return {
            "key": doc.get("key", "default"),
            "weights": weights_from_document(doc.get("weights")).to_wire(),
            "updatedBy": doc.get("updatedBy"),
            "updatedAt": doc.get("updatedAt"),
        }

    async def update_scoring_config(self, weights: Mapping[str, Any], actor: Optional[str] = None) -> Dict[str, Any]:
        """Persist a weight table. Keys not given (or invalid) keep their baseline value."""
        previous = await self.get_weights()
        resolved = resolve_weights(DEFAULT_WEIGHTS, weights)
        await self.repository.save_scoring_weights(resolved.to_wire(), updated_by=actor)
        await self.repository.insert_audit_log(
            AuditLog(
                action=AuditAction.SCORING_CONFIG_UPDATED,
                actor=actor,
                before=previous.to_wire(),
                after=resolved.to_wire(),
            )
        )
        logger.info(f"Scoring config updated by {actor or 'unknown'}")
        return await self.get_scoring_config()

    async def reset_scoring_config(self, actor: Optional[str] = None) -> Dict[str, Any]:
        previous = await self.get_weights()
        await self.repository.delete_scoring_weights()
        await self.repository.insert_audit_log(
            AuditLog(
                action=AuditAction.SCORING_CONFIG_RESET,
                actor=actor,
                before=previous.to_wire(),
                after=DEFAULT_WEIGHTS.to_wire(),
            )
        )
        logger.info("Scoring config reset to default weights")
        return {"key": "default", "weights": DEFAULT_WEIGHTS.to_wire(), "message": "Reset to default weights"}

    async def list_audit_logs(
        self,
        skip: int = 0,
        limit: int = 50,
        trainset_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> List[AuditLog]:
        log_filter = AuditLogFilter(trainset_id=trainset_id, action=action)
        return await self.repository.list_audit_logs(log_filter, skip=max(skip, 0), limit=max(limit, 0))
