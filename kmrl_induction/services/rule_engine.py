# kmrl_induction/services/rule_engine.py
"""Induction decision rules.

The baseline policy is a fixed sequence of steps, each of which may overwrite
the decision of the previous one. What-if toggles in RuleOverrides switch
individual steps on or off. Step order matters: a STANDBY trainset that is
eligible for both promotions keeps the branding reason, since the
low-mileage step only sees STANDBY.
"""
from __future__ import annotations

import logging
from typing import Tuple

from kmrl_induction.models.trainset import (
    BrandingPriority,
    CleaningStatus,
    Decision,
    RuleOverrides,
    TrainsetSnapshot,
)

logger = logging.getLogger(__name__)

LOW_MILEAGE_KM = 20000
HIGH_MILEAGE_KM = 50000

REASON_CRITICAL_FAILURE = "Critical system failure detected."
REASON_SYSTEM_WARNING = "System warning detected. Suitable for standby."
REASON_ALL_OPERATIONAL = "All systems operational."
REASON_JOB_CARD_OPEN = "Open job card requires attention."
REASON_CLEANING_OVERDUE = "Cleaning overdue. Hold for non-peak service."
REASON_BRANDING_PROMOTION = "Promoted to revenue: High branding priority override."
REASON_LOW_MILEAGE_PROMOTION = "Promoted to revenue: Low mileage priority."

BASELINE_RULES = RuleOverrides()


def decide(snapshot: TrainsetSnapshot, overrides: RuleOverrides = BASELINE_RULES) -> Tuple[Decision, str]:
    """Derive (decision, reason) for a trainset under the given rule overrides."""
    has_failure = snapshot.fitness.has_failure()

    # 1-3: fitness
    if has_failure:
        decision, reason = Decision.IBL, REASON_CRITICAL_FAILURE
    elif snapshot.fitness.has_warning():
        decision, reason = Decision.STANDBY, REASON_SYSTEM_WARNING
    else:
        decision, reason = Decision.REVENUE, REASON_ALL_OPERATIONAL

    # 4: open job card withdraws the trainset
    if snapshot.job_card_open and not overrides.ignore_job_cards:
        decision, reason = Decision.IBL, REASON_JOB_CARD_OPEN

    # 5: overdue cleaning only downgrades REVENUE
    if (
        snapshot.cleaning_status == CleaningStatus.OVERDUE
        and not overrides.ignore_cleaning
        and decision == Decision.REVENUE
    ):
        decision, reason = Decision.STANDBY, REASON_CLEANING_OVERDUE

    # 6 and 7 only promote STANDBY, never past a failure or an open job card
    promotable = not has_failure and not snapshot.job_card_open

    if (
        overrides.force_high_branding
        and snapshot.branding_priority == BrandingPriority.HIGH
        and decision == Decision.STANDBY
        and promotable
    ):
        decision, reason = Decision.REVENUE, REASON_BRANDING_PROMOTION

    if (
        overrides.prioritize_low_mileage
        and snapshot.mileage_km < LOW_MILEAGE_KM
        and decision == Decision.STANDBY
        and promotable
    ):
        decision, reason = Decision.REVENUE, REASON_LOW_MILEAGE_PROMOTION

    logger.debug(f"Rule engine: {snapshot.id} -> {decision.value} ({reason})")
    return decision, reason


def apply_rule_overrides(snapshot: TrainsetSnapshot, overrides: RuleOverrides = BASELINE_RULES) -> TrainsetSnapshot:
    """Return a copy of snapshot carrying the decision derived under overrides."""
    decision, reason = decide(snapshot, overrides)
    return snapshot.with_decision(decision, reason)
