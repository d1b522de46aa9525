# kmrl_induction/services/ml_suggestions.py
"""Rule-based induction suggestions.

Despite the name nothing is learned: the suggestion is the baseline rule
engine decision, and the confidence is derived from the same weighted score
used by the ranked induction list.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List

from kmrl_induction.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from kmrl_induction.models.trainset import Decision, MLSuggestion, MLSuggestionReport, TrainsetSnapshot
from kmrl_induction.services.rule_engine import BASELINE_RULES
from kmrl_induction.services.scoring import score_trainset
from kmrl_induction.services.whatif_simulator import simulate_trainset
from kmrl_induction.utils.explainability import summarize_explanation

logger = logging.getLogger(__name__)

MAX_REASONS = 4


def suggestion_confidence(decision: Decision, score: int) -> int:
    """Confidence 0-100, growing with the distance of the score from neutral."""
    if decision == Decision.IBL:
        raw = 60 + min(40, abs(min(score, 0)))
    elif decision == Decision.REVENUE:
        raw = 55 + min(45, max(score, 0))
    else:
        raw = 40 + min(30, abs(score))
    return max(0, min(100, int(round(raw))))


def suggest(snapshot: TrainsetSnapshot, weights: ScoringWeights = DEFAULT_WEIGHTS) -> MLSuggestion:
    evaluated = simulate_trainset(snapshot, BASELINE_RULES)
    scored = score_trainset(evaluated, weights)
    return MLSuggestion(
        trainset_id=snapshot.id,
        current_decision=snapshot.recommendation,
        suggested_decision=scored.recommendation,
        confidence=suggestion_confidence(scored.recommendation, scored.score),
        reasons=summarize_explanation(scored.explanation, MAX_REASONS) if scored.explanation else [],
        score=scored.score,
    )


def generate_suggestions(
    snapshots: Iterable[TrainsetSnapshot],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limit: int = 10,
    only_changed: bool = False,
    generated_at: datetime | None = None,
) -> MLSuggestionReport:
    """Suggest a decision per trainset, most confident first."""
    suggestions: List[MLSuggestion] = [suggest(s, weights) for s in snapshots]
    if only_changed:
        suggestions = [s for s in suggestions if s.suggested_decision != s.current_decision]
    suggestions = sorted(suggestions, key=lambda s: -s.confidence)[: max(limit, 0)]

    logger.info(f"Generated {len(suggestions)} induction suggestions (only_changed={only_changed})")
    return MLSuggestionReport(
        generated_at=generated_at or datetime.utcnow(),
        limit=limit,
        only_changed=only_changed,
        suggestions=suggestions,
    )
