# kmrl_induction/core/scoring_config.py

# Centralized scoring weights for the induction ranking.
# Used by the scorer, the ML suggestion generator and the scoring config API so
# every call site ranks with the same table.
from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ScoringWeights(BaseModel):
    """Signed integer weight per score contribution. Keys double as the override whitelist."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    # Fitness, per subsystem
    fitness_pass: int = 10
    fitness_warn: int = -5
    fitness_fail: int = -20

    # Mileage bands (< 20000 km low, > 50000 km high)
    low_mileage: int = 8
    high_mileage: int = -6

    # Branding tier
    branding_high: int = 6
    branding_medium: int = 2
    branding_low: int = 0

    # Cleaning status
    cleaning_completed: int = 4
    cleaning_pending: int = 0
    cleaning_overdue: int = -4

    # Job card
    job_card_clear: int = 5
    job_card_open: int = -8

    # Penalties from diagnostics
    conflict_high_penalty: int = -25
    conflict_medium_penalty: int = -10
    conflict_low_penalty: int = -3
    explanation_blocker_penalty: int = -8
    explanation_warning_penalty: int = -2
    manual_override_penalty: int = -1

    def to_wire(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True)


DEFAULT_WEIGHTS = ScoringWeights()

# Accept both the wire name (fitnessPass) and the attribute name (fitness_pass)
WEIGHT_KEYS: Dict[str, str] = {}
for _name, _field in ScoringWeights.model_fields.items():
    WEIGHT_KEYS[_name] = _name
    WEIGHT_KEYS[_field.alias or _name] = _name


def _coerce_weight(value: Any) -> Optional[int]:
    """Return the integer weight for value, or None if it is not a usable weight."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, Real):
        return None
    number = float(value)
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def resolve_weights(
    base: Optional[ScoringWeights] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ScoringWeights:
    """Apply per-key weight overrides on top of base.

    Invalid entries (unknown key, non-numeric, non-finite or fractional value)
    are dropped one by one and the base value is kept for that key.
    """
    base = base or DEFAULT_WEIGHTS
    if not overrides:
        return base

    updates: Dict[str, int] = {}
    for key, raw in overrides.items():
        field = WEIGHT_KEYS.get(key)
        if field is None:
            logger.warning(f"Ignoring unknown scoring weight '{key}'")
            continue
        weight = _coerce_weight(raw)
        if weight is None:
            logger.warning(f"Ignoring invalid value for scoring weight '{key}': {raw!r}")
            continue
        updates[field] = weight

    if not updates:
        return base
    return base.model_copy(update=updates)


def weights_from_document(document: Optional[Mapping[str, Any]]) -> ScoringWeights:
    """Build weights from a persisted table, falling back to the baseline per key."""
    if not document:
        return DEFAULT_WEIGHTS
    return resolve_weights(DEFAULT_WEIGHTS, document)
