"""Scoring configuration API endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict, Optional
import logging

from pydantic import BaseModel, Field

from kmrl_induction.security import get_actor, get_induction_service, require_api_key
from kmrl_induction.services.induction_service import InductionService

router = APIRouter()
logger = logging.getLogger(__name__)


class ScoringConfigUpdate(BaseModel):
    weights: Dict[str, Any] = Field(..., description="Weight table, e.g. {'fitnessPass': 12, 'jobCardOpen': -10}")


@router.get("/scoring")
async def get_scoring_config(service: InductionService = Depends(get_induction_service)):
    """Persisted weight table, or the baseline when none is stored"""
    try:
        return await service.get_scoring_config()
    except Exception as e:
        logger.error(f"Get scoring config error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch scoring config")


@router.put("/scoring")
async def update_scoring_config(
    body: ScoringConfigUpdate,
    _auth=Depends(require_api_key),
    actor: Optional[str] = Depends(get_actor),
    service: InductionService = Depends(get_induction_service),
):
    """Replace the persisted weight table. Missing or invalid keys keep the baseline value."""
    try:
        return await service.update_scoring_config(body.weights, actor=actor)
    except Exception as e:
        logger.error(f"Update scoring config error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update scoring config")


@router.delete("/scoring")
async def reset_scoring_config(
    _auth=Depends(require_api_key),
    actor: Optional[str] = Depends(get_actor),
    service: InductionService = Depends(get_induction_service),
):
    """Reset to the baseline weight table"""
    try:
        return await service.reset_scoring_config(actor=actor)
    except Exception as e:
        logger.error(f"Reset scoring config error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to reset scoring config")
