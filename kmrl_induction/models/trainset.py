from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from kmrl_induction.core.scoring_config import ScoringWeights


class Decision(str, Enum):
    REVENUE = "REVENUE"
    STANDBY = "STANDBY"
    IBL = "IBL"


class BrandingPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CleaningStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class FitnessStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class ConflictType(str, Enum):
    MISSING_CERTIFICATE = "MISSING_CERTIFICATE"
    BRANDING_SLA_RISK = "BRANDING_SLA_RISK"
    MILEAGE_IMBALANCE = "MILEAGE_IMBALANCE"
    CLEANING_CLASH = "CLEANING_CLASH"
    STABLING_CLASH = "STABLING_CLASH"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class EngineModel(BaseModel):
    """Base for engine value types: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SubsystemFitness(EngineModel):
    status: FitnessStatus
    details: str


class FitnessReport(EngineModel):
    rolling_stock: SubsystemFitness
    signalling: SubsystemFitness
    telecom: SubsystemFitness

    def statuses(self) -> Tuple[FitnessStatus, FitnessStatus, FitnessStatus]:
        return (self.rolling_stock.status, self.signalling.status, self.telecom.status)

    def has_failure(self) -> bool:
        return FitnessStatus.FAIL in self.statuses()

    def has_warning(self) -> bool:
        return FitnessStatus.WARN in self.statuses()


class TrainsetSnapshot(EngineModel):
    """One trainset as read from storage. Read-only input to the engine."""

    id: str = Field(..., min_length=1)
    recommendation: Decision
    reason: str
    mileage_km: int = Field(..., ge=0, strict=True)
    branding_priority: BrandingPriority
    job_card_open: bool = Field(..., strict=True)
    cleaning_status: CleaningStatus
    fitness: FitnessReport
    manual_override: bool = Field(False, strict=True)

    # Bookkeeping carried through untouched
    depot_id: Optional[str] = None
    last_updated: Optional[datetime] = None
    updated_by: Optional[str] = None

    def with_decision(self, decision: Decision, reason: str) -> "TrainsetSnapshot":
        """Copy of this snapshot carrying a candidate decision."""
        return self.model_copy(update={"recommendation": decision, "reason": reason})

    def snapshot_fields(self) -> Dict[str, Any]:
        """Attribute dict of the snapshot part only, for building derived models."""
        return {name: getattr(self, name) for name in TrainsetSnapshot.model_fields}


class RuleOverrides(EngineModel):
    """What-if toggles. All false is the baseline policy."""

    force_high_branding: bool = False
    ignore_job_cards: bool = False
    ignore_cleaning: bool = False
    prioritize_low_mileage: bool = False


class Conflict(EngineModel):
    type: ConflictType
    severity: Severity
    message: str
    detected_at: Optional[datetime] = None


class ExplanationItem(EngineModel):
    code: str
    message: str


class DecisionExplanation(EngineModel):
    blockers: List[ExplanationItem] = Field(default_factory=list)
    warnings: List[ExplanationItem] = Field(default_factory=list)
    promoters: List[ExplanationItem] = Field(default_factory=list)
    overrides: List[ExplanationItem] = Field(default_factory=list)
    final_reason: str = ""


class ScoreBreakdown(EngineModel):
    fitness: int = 0
    mileage: int = 0
    branding: int = 0
    cleaning: int = 0
    job_card: int = 0
    penalties: int = 0

    def total(self) -> int:
        return self.fitness + self.mileage + self.branding + self.cleaning + self.job_card + self.penalties


class EvaluatedTrainset(TrainsetSnapshot):
    """Snapshot plus the diagnostics derived from it."""

    conflicts: List[Conflict] = Field(default_factory=list)
    explanation: Optional[DecisionExplanation] = None
    last_conflict_check: Optional[datetime] = None


class ScoredTrainset(EvaluatedTrainset):
    score: int
    breakdown: ScoreBreakdown


class InductionFilters(EngineModel):
    """Post-score filters. Values are kept raw so unknown values can match nothing."""

    decision: Optional[str] = None
    branding_priority: Optional[str] = None
    cleaning_status: Optional[str] = None
    job_card_open: Optional[Any] = None
    min_score: Optional[Any] = None


class RankedPage(EngineModel):
    ranked: List[ScoredTrainset] = Field(default_factory=list)
    skip: int = 0
    limit: int = 0
    total: int = 0
    weights: ScoringWeights


class DecisionCounts(BaseModel):
    # Keyed by decision value, no camelCase aliasing
    model_config = ConfigDict(frozen=True)

    REVENUE: int = 0
    STANDBY: int = 0
    IBL: int = 0


class DecisionChange(EngineModel):
    id: str
    before: Decision
    after: Decision
    reason: str


class SimulationResult(EngineModel):
    rules: RuleOverrides
    results: List[ScoredTrainset] = Field(default_factory=list)
    counts: DecisionCounts = Field(default_factory=DecisionCounts)
    changes: List[DecisionChange] = Field(default_factory=list)
    weights: ScoringWeights


class TrainsetConflicts(EngineModel):
    trainset_id: str
    conflicts: List[Conflict]
    last_conflict_check: Optional[datetime] = None


class MLSuggestion(EngineModel):
    trainset_id: str
    current_decision: Decision
    suggested_decision: Decision
    confidence: int
    reasons: List[str] = Field(default_factory=list)
    score: int


class MLSuggestionReport(EngineModel):
    generated_at: datetime
    limit: int
    only_changed: bool
    suggestions: List[MLSuggestion] = Field(default_factory=list)


class DecisionUpdate(EngineModel):
    """Body of a manual decision update."""

    recommendation: Optional[Decision] = None
    manual_override: bool = False


class SnapshotValidationError(ValueError):
    """A stored trainset document does not form a valid snapshot."""

    def __init__(self, trainset_id: Optional[str], fields: List[str], detail: str):
        self.trainset_id = trainset_id
        self.fields = fields
        super().__init__(f"Invalid trainset {trainset_id or '<unknown>'}: {detail}")


def parse_snapshot(document: Mapping[str, Any]) -> TrainsetSnapshot:
    """Validate a stored document into a snapshot, failing fast on any bad field."""
    try:
        return TrainsetSnapshot.model_validate(document)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise SnapshotValidationError(document.get("id"), fields, detail) from e
