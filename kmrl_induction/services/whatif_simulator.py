"""What-If Simulation Service - Re-derives fleet decisions under hypothetical rule overrides"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from kmrl_induction.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from kmrl_induction.models.trainset import (
    Decision,
    DecisionChange,
    DecisionCounts,
    EvaluatedTrainset,
    RuleOverrides,
    ScoredTrainset,
    SimulationResult,
    TrainsetSnapshot,
)
from kmrl_induction.services.conflict_detector import detect_conflicts
from kmrl_induction.services.rule_engine import decide
from kmrl_induction.services.scoring import rank_trainsets
from kmrl_induction.utils.explainability import build_explanation

logger = logging.getLogger(__name__)


def simulate_trainset(
    snapshot: TrainsetSnapshot,
    rules: RuleOverrides,
    checked_at: Optional[datetime] = None,
) -> EvaluatedTrainset:
    """Run the rule engine for one trainset and diagnose the candidate decision."""
    decision, reason = decide(snapshot, rules)
    candidate = snapshot.with_decision(decision, reason)

    # Conflicts are judged against the candidate, the explanation against the original attributes
    conflicts = detect_conflicts(candidate, detected_at=checked_at)
    explanation = build_explanation(snapshot, rules, decision, reason)

    return EvaluatedTrainset(
        **candidate.snapshot_fields(),
        conflicts=conflicts,
        explanation=explanation,
        last_conflict_check=checked_at,
    )


def count_decisions(trainsets: Iterable[ScoredTrainset]) -> DecisionCounts:
    """Aggregate decision counts for summary display."""
    counter = Counter(t.recommendation for t in trainsets)
    return DecisionCounts(**{d.value: counter.get(d, 0) for d in Decision})


def _decision_changes(
    originals: List[TrainsetSnapshot],
    ranked: List[ScoredTrainset],
) -> List[DecisionChange]:
    before = {t.id: t.recommendation for t in originals}
    changes: List[DecisionChange] = []
    for t in ranked:
        previous = before.get(t.id)
        if previous is not None and previous != t.recommendation:
            changes.append(DecisionChange(id=t.id, before=previous, after=t.recommendation, reason=t.reason))
    return changes


def simulate(
    snapshots: Iterable[TrainsetSnapshot],
    rules: Optional[RuleOverrides] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    checked_at: Optional[datetime] = None,
) -> SimulationResult:
    """
    Run a What-If simulation over the whole fleet.

    Args:
        snapshots: Current trainset snapshots (not modified)
        rules: Rule overrides describing the hypothesis
        weights: Scoring weights used to rank the simulated fleet
        checked_at: Timestamp stamped on every derived conflict

    Returns:
        SimulationResult with the full ranked fleet, decision counts and the
        trainsets whose decision differs from the persisted one. Nothing is
        persisted.
    """
    rules = rules or RuleOverrides()
    originals = list(snapshots)

    simulated = [simulate_trainset(s, rules, checked_at) for s in originals]
    ranked = rank_trainsets(simulated, weights)
    counts = count_decisions(ranked)
    changes = _decision_changes(originals, ranked)

    logger.info(
        f"Simulated {len(ranked)} trainsets with rules {rules.model_dump()}: "
        f"REVENUE={counts.REVENUE} STANDBY={counts.STANDBY} IBL={counts.IBL}, {len(changes)} changed"
    )

    return SimulationResult(rules=rules, results=ranked, counts=counts, changes=changes, weights=weights)
