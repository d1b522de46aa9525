# kmrl_induction/services/scoring.py
"""Weighted induction scoring and the ranked, filtered, paginated induction list."""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Union

from kmrl_induction.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from kmrl_induction.models.trainset import (
    BrandingPriority,
    CleaningStatus,
    Conflict,
    DecisionExplanation,
    EvaluatedTrainset,
    FitnessStatus,
    InductionFilters,
    RankedPage,
    RuleOverrides,
    ScoreBreakdown,
    ScoredTrainset,
    Severity,
    TrainsetSnapshot,
)
from kmrl_induction.services.conflict_detector import detect_conflicts
from kmrl_induction.services.rule_engine import BASELINE_RULES, HIGH_MILEAGE_KM, LOW_MILEAGE_KM
from kmrl_induction.utils.explainability import build_explanation

logger = logging.getLogger(__name__)

ScoringInput = Union[TrainsetSnapshot, EvaluatedTrainset]


def evaluate_trainset(
    snapshot: TrainsetSnapshot,
    rules: RuleOverrides = BASELINE_RULES,
    checked_at: Optional[datetime] = None,
) -> EvaluatedTrainset:
    """Attach conflicts and explanation for the decision the snapshot currently carries."""
    conflicts = detect_conflicts(snapshot, detected_at=checked_at)
    explanation = build_explanation(snapshot, rules, snapshot.recommendation, snapshot.reason)
    return EvaluatedTrainset(
        **snapshot.snapshot_fields(),
        conflicts=conflicts,
        explanation=explanation,
        last_conflict_check=checked_at,
    )


def _score_fitness(t: TrainsetSnapshot, w: ScoringWeights) -> int:
    score = 0
    for status in t.fitness.statuses():
        if status == FitnessStatus.PASS:
            score += w.fitness_pass
        elif status == FitnessStatus.WARN:
            score += w.fitness_warn
        else:
            score += w.fitness_fail
    return score


def _score_mileage(t: TrainsetSnapshot, w: ScoringWeights) -> int:
    if t.mileage_km < LOW_MILEAGE_KM:
        return w.low_mileage
    if t.mileage_km > HIGH_MILEAGE_KM:
        return w.high_mileage
    return 0


def _score_branding(t: TrainsetSnapshot, w: ScoringWeights) -> int:
    if t.branding_priority == BrandingPriority.HIGH:
        return w.branding_high
    if t.branding_priority == BrandingPriority.MEDIUM:
        return w.branding_medium
    return w.branding_low


def _score_cleaning(t: TrainsetSnapshot, w: ScoringWeights) -> int:
    if t.cleaning_status == CleaningStatus.COMPLETED:
        return w.cleaning_completed
    if t.cleaning_status == CleaningStatus.PENDING:
        return w.cleaning_pending
    return w.cleaning_overdue


def _score_job_card(t: TrainsetSnapshot, w: ScoringWeights) -> int:
    return w.job_card_open if t.job_card_open else w.job_card_clear


def _score_penalties(
    t: TrainsetSnapshot,
    w: ScoringWeights,
    conflicts: Sequence[Conflict],
    explanation: Optional[DecisionExplanation],
) -> int:
    penalties = 0

    for conflict in conflicts:
        if conflict.severity == Severity.HIGH:
            penalties += w.conflict_high_penalty
        elif conflict.severity == Severity.MEDIUM:
            penalties += w.conflict_medium_penalty
        else:
            penalties += w.conflict_low_penalty

    if explanation is not None:
        penalties += len(explanation.blockers) * w.explanation_blocker_penalty
        penalties += len(explanation.warnings) * w.explanation_warning_penalty

    if t.manual_override:
        penalties += w.manual_override_penalty

    return penalties


def score_trainset(
    trainset: ScoringInput,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    conflicts: Optional[Sequence[Conflict]] = None,
    explanation: Optional[DecisionExplanation] = None,
) -> ScoredTrainset:
    """Score one trainset. Diagnostics default to those carried by an EvaluatedTrainset."""
    last_check = None
    if isinstance(trainset, EvaluatedTrainset):
        if conflicts is None:
            conflicts = trainset.conflicts
        if explanation is None:
            explanation = trainset.explanation
        last_check = trainset.last_conflict_check
    conflicts = list(conflicts or [])

    breakdown = ScoreBreakdown(
        fitness=_score_fitness(trainset, weights),
        mileage=_score_mileage(trainset, weights),
        branding=_score_branding(trainset, weights),
        cleaning=_score_cleaning(trainset, weights),
        job_card=_score_job_card(trainset, weights),
        penalties=_score_penalties(trainset, weights, conflicts, explanation),
    )

    return ScoredTrainset(
        **trainset.snapshot_fields(),
        conflicts=conflicts,
        explanation=explanation,
        last_conflict_check=last_check,
        score=breakdown.total(),
        breakdown=breakdown,
    )


def rank_trainsets(trainsets: Iterable[ScoringInput], weights: ScoringWeights = DEFAULT_WEIGHTS) -> List[ScoredTrainset]:
    """Score every trainset and sort by score, highest first. Ties keep input order."""
    scored = [score_trainset(t, weights) for t in trainsets]
    # sorted() is stable
    return sorted(scored, key=lambda t: -t.score)


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def _parse_min_score(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _enum_value(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


def filter_ranked(ranked: Sequence[ScoredTrainset], filters: Optional[InductionFilters]) -> List[ScoredTrainset]:
    """AND-combine the optional filters. A value that cannot match anything yields an empty list."""
    result = list(ranked)
    if filters is None:
        return result

    if filters.decision is not None:
        wanted = _enum_value(filters.decision)
        result = [t for t in result if t.recommendation.value == wanted]
    if filters.branding_priority is not None:
        wanted = _enum_value(filters.branding_priority)
        result = [t for t in result if t.branding_priority.value == wanted]
    if filters.cleaning_status is not None:
        wanted = _enum_value(filters.cleaning_status)
        result = [t for t in result if t.cleaning_status.value == wanted]
    if filters.job_card_open is not None:
        wanted_flag = _parse_bool(filters.job_card_open)
        if wanted_flag is None:
            return []
        result = [t for t in result if t.job_card_open == wanted_flag]
    if filters.min_score is not None:
        minimum = _parse_min_score(filters.min_score)
        if minimum is None:
            return []
        result = [t for t in result if t.score >= minimum]

    return result


def rank_and_paginate(
    trainsets: Iterable[ScoringInput],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    filters: Optional[InductionFilters] = None,
    skip: int = 0,
    limit: int = 25,
) -> RankedPage:
    """Score, sort, filter, then slice [skip, skip + limit). total is the filtered count."""
    skip = max(int(skip), 0)
    limit = max(int(limit), 0)

    ranked_all = rank_trainsets(trainsets, weights)
    filtered = filter_ranked(ranked_all, filters)
    page = filtered[skip:skip + limit]

    logger.debug(f"Ranked {len(ranked_all)} trainsets, {len(filtered)} after filters, page of {len(page)}")
    return RankedPage(ranked=page, skip=skip, limit=limit, total=len(filtered), weights=weights)
