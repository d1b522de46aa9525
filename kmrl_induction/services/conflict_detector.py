# kmrl_induction/services/conflict_detector.py
"""Derived conflict flags for a single trainset.

Conflicts are never stored as the source of truth; they are recomputed from the
snapshot on every read. The snapshot's recommendation is read as given, so the
simulator passes the candidate decision rather than the persisted one.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from kmrl_induction.models.trainset import (
    BrandingPriority,
    CleaningStatus,
    Conflict,
    ConflictType,
    Decision,
    FitnessStatus,
    Severity,
    TrainsetSnapshot,
)
from kmrl_induction.services.rule_engine import HIGH_MILEAGE_KM

logger = logging.getLogger(__name__)

SUBSYSTEM_LABELS = {
    "rolling_stock": "Rolling Stock",
    "signalling": "Signalling",
    "telecom": "Telecom",
}


def detect_conflicts(snapshot: TrainsetSnapshot, detected_at: Optional[datetime] = None) -> List[Conflict]:
    """Return conflicts in fixed order: certificates, branding, mileage, cleaning, stabling."""
    conflicts: List[Conflict] = []

    def flag(conflict_type: ConflictType, severity: Severity, message: str) -> None:
        conflicts.append(
            Conflict(type=conflict_type, severity=severity, message=message, detected_at=detected_at)
        )

    # Missing/expired certificates
    for attr, label in SUBSYSTEM_LABELS.items():
        if getattr(snapshot.fitness, attr).status == FitnessStatus.FAIL:
            flag(
                ConflictType.MISSING_CERTIFICATE,
                Severity.HIGH,
                f"{label} fitness certificate expired/invalid",
            )

    if snapshot.branding_priority == BrandingPriority.HIGH and snapshot.recommendation != Decision.REVENUE:
        flag(
            ConflictType.BRANDING_SLA_RISK,
            Severity.MEDIUM,
            "High branding priority train not in revenue service",
        )

    if snapshot.mileage_km > HIGH_MILEAGE_KM:
        flag(
            ConflictType.MILEAGE_IMBALANCE,
            Severity.MEDIUM,
            f"High mileage: {snapshot.mileage_km} km - consider maintenance rotation",
        )

    if snapshot.cleaning_status == CleaningStatus.OVERDUE and snapshot.recommendation == Decision.REVENUE:
        flag(
            ConflictType.CLEANING_CLASH,
            Severity.LOW,
            "Cleaning overdue but assigned to revenue service",
        )

    # No bay geometry is available; a manual override is flagged for a manual stabling check
    if snapshot.manual_override:
        flag(
            ConflictType.STABLING_CLASH,
            Severity.LOW,
            "Manual override - verify stabling arrangement",
        )

    if conflicts:
        logger.debug(f"Detected {len(conflicts)} conflicts for {snapshot.id}")
    return conflicts
