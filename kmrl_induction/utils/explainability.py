# kmrl_induction/utils/explainability.py
from __future__ import annotations

from typing import List

from kmrl_induction.models.trainset import (
    BrandingPriority,
    CleaningStatus,
    Decision,
    DecisionExplanation,
    ExplanationItem,
    FitnessStatus,
    RuleOverrides,
    TrainsetSnapshot,
)
from kmrl_induction.services.rule_engine import HIGH_MILEAGE_KM, LOW_MILEAGE_KM

# (attribute, code prefix, label)
_SUBSYSTEMS = (
    ("rolling_stock", "FITNESS_RS", "Rolling Stock"),
    ("signalling", "FITNESS_SIG", "Signalling"),
    ("telecom", "FITNESS_TEL", "Telecom"),
)


def build_explanation(
    trainset: TrainsetSnapshot,
    rules: RuleOverrides,
    final_decision: Decision,
    final_reason: str,
) -> DecisionExplanation:
    """Explain a decision as blockers, warnings, promoters and overrides.

    Every rule is evaluated independently, so one trainset can show up in
    several lists. A REVENUE decision with blockers gets an explicit
    REVENUE_WITH_BLOCKERS override so a manually forced decision stays
    auditable.
    """
    blockers: List[ExplanationItem] = []
    warnings: List[ExplanationItem] = []
    promoters: List[ExplanationItem] = []
    overrides: List[ExplanationItem] = []

    # Fitness
    for attr, prefix, label in _SUBSYSTEMS:
        if getattr(trainset.fitness, attr).status == FitnessStatus.FAIL:
            blockers.append(ExplanationItem(code=f"{prefix}_FAIL", message=f"{label} fitness FAIL"))
    for attr, prefix, label in _SUBSYSTEMS:
        if getattr(trainset.fitness, attr).status == FitnessStatus.WARN:
            warnings.append(ExplanationItem(code=f"{prefix}_WARN", message=f"{label} fitness WARN"))

    # Job cards
    if trainset.job_card_open:
        if rules.ignore_job_cards:
            overrides.append(ExplanationItem(code="JOB_CARD_IGNORED", message="Job-card rule ignored (what-if)"))
        else:
            blockers.append(ExplanationItem(code="JOB_CARD_OPEN", message="Open job card present"))

    # Cleaning
    if trainset.cleaning_status == CleaningStatus.OVERDUE:
        if rules.ignore_cleaning:
            overrides.append(ExplanationItem(code="CLEANING_IGNORED", message="Cleaning rule ignored (what-if)"))
        else:
            warnings.append(ExplanationItem(code="CLEANING_OVERDUE", message="Cleaning overdue"))

    # Branding
    if trainset.branding_priority == BrandingPriority.HIGH:
        promoters.append(ExplanationItem(code="BRANDING_HIGH", message="High branding priority"))
        if rules.force_high_branding:
            overrides.append(ExplanationItem(code="BRANDING_FORCE", message="Branding priority forced (what-if)"))

    # Mileage
    if rules.prioritize_low_mileage and trainset.mileage_km < LOW_MILEAGE_KM:
        promoters.append(ExplanationItem(code="MILEAGE_LOW", message="Low mileage priority enabled"))
    if trainset.mileage_km > HIGH_MILEAGE_KM:
        warnings.append(ExplanationItem(code="MILEAGE_HIGH", message=f"High mileage ({trainset.mileage_km} km)"))

    if trainset.manual_override:
        overrides.append(ExplanationItem(code="MANUAL_OVERRIDE", message="Manual decision override applied"))

    if final_decision == Decision.REVENUE and blockers:
        overrides.append(
            ExplanationItem(
                code="REVENUE_WITH_BLOCKERS",
                message="Revenue decision despite blockers (review required)",
            )
        )

    return DecisionExplanation(
        blockers=blockers,
        warnings=warnings,
        promoters=promoters,
        overrides=overrides,
        final_reason=final_reason,
    )


def summarize_explanation(explanation: DecisionExplanation, limit: int = 4) -> List[str]:
    """Flatten an explanation into reason lines: final reason, blockers, warnings, promoters."""
    lines: List[str] = []
    if explanation.final_reason:
        lines.append(explanation.final_reason)
    for item in (*explanation.blockers, *explanation.warnings, *explanation.promoters):
        lines.append(item.message)
    return lines[:limit]
