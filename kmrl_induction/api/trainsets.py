from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
import logging

from kmrl_induction.config import settings
from kmrl_induction.models.trainset import DecisionUpdate, EngineModel, InductionFilters, RuleOverrides
from kmrl_induction.security import get_actor, get_induction_service, require_api_key
from kmrl_induction.services.induction_service import InductionService, TrainsetNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)

WEIGHT_PARAM_PREFIX = "w_"


class SimulationRequest(EngineModel):
    rules: RuleOverrides


def _clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(0, min(limit, maximum))


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


@router.get("/")
async def list_trainsets(service: InductionService = Depends(get_induction_service)):
    """List every trainset with its current conflicts and explanation"""
    try:
        evaluated = await service.list_with_diagnostics()
        return [t.to_wire() for t in evaluated]
    except Exception as e:
        logger.error(f"Error listing trainsets: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch trainsets")


@router.get("/conflicts")
async def list_conflicts(service: InductionService = Depends(get_induction_service)):
    """Conflicts across all trainsets (only trainsets with at least one conflict)"""
    try:
        conflicts = await service.list_conflicts()
        return {"conflicts": [c.to_wire() for c in conflicts]}
    except Exception as e:
        logger.error(f"Error fetching conflicts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch conflicts")


@router.get("/scored-induction")
async def scored_induction(
    request: Request,
    skip: int = 0,
    limit: Optional[int] = None,
    decision: Optional[str] = None,
    branding_priority: Optional[str] = Query(None, alias="brandingPriority"),
    cleaning_status: Optional[str] = Query(None, alias="cleaningStatus"),
    job_card_open: Optional[str] = Query(None, alias="jobCardOpen"),
    min_score: Optional[str] = Query(None, alias="minScore"),
    service: InductionService = Depends(get_induction_service),
):
    """Ranked induction list. Weight overrides are passed as w_<weightKey>=<number>."""
    try:
        weight_overrides = {
            key[len(WEIGHT_PARAM_PREFIX):]: value
            for key, value in request.query_params.items()
            if key.startswith(WEIGHT_PARAM_PREFIX)
        }
        filters = InductionFilters(
            decision=_blank_to_none(decision),
            branding_priority=_blank_to_none(branding_priority),
            cleaning_status=_blank_to_none(cleaning_status),
            job_card_open=_blank_to_none(job_card_open),
            min_score=_blank_to_none(min_score),
        )
        page = await service.scored_induction(
            weight_overrides=weight_overrides,
            filters=filters,
            skip=max(skip, 0),
            limit=_clamp_limit(limit, settings.scored_induction_default_limit, settings.scored_induction_max_limit),
        )
        return page.to_wire()
    except Exception as e:
        logger.error(f"Scored induction error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute scored induction")


@router.get("/ml-suggestions")
async def ml_suggestions(
    limit: Optional[int] = None,
    only_changed: bool = Query(False, alias="onlyChanged"),
    service: InductionService = Depends(get_induction_service),
):
    """Rule-based decision suggestions, most confident first"""
    try:
        report = await service.ml_suggestions(
            limit=_clamp_limit(limit, settings.ml_suggestion_default_limit, settings.ml_suggestion_max_limit),
            only_changed=only_changed,
        )
        return report.to_wire()
    except Exception as e:
        logger.error(f"ML suggestions error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate ML suggestions")


@router.get("/audit")
async def list_audit_logs(
    skip: int = 0,
    limit: Optional[int] = None,
    trainset_id: Optional[str] = Query(None, alias="trainsetId"),
    action: Optional[str] = None,
    _auth=Depends(require_api_key),
    service: InductionService = Depends(get_induction_service),
):
    """Audit logs, most recent first"""
    try:
        limit = _clamp_limit(limit, settings.audit_log_default_limit, settings.audit_log_max_limit)
        logs = await service.list_audit_logs(skip=max(skip, 0), limit=limit, trainset_id=trainset_id, action=action)
        return {
            "logs": [log.model_dump(by_alias=True, mode="json") for log in logs],
            "skip": max(skip, 0),
            "limit": limit,
        }
    except Exception as e:
        logger.error(f"List audit logs error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch audit logs")


@router.post("/simulate")
async def simulate(
    body: SimulationRequest,
    service: InductionService = Depends(get_induction_service),
):
    """What-if run over the whole fleet. Nothing is persisted."""
    try:
        result = await service.simulate(body.rules)
        return result.to_wire()
    except Exception as e:
        logger.error(f"Simulation error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Simulation failed")


@router.get("/{trainset_id}")
async def get_trainset(trainset_id: str, service: InductionService = Depends(get_induction_service)):
    """Single trainset with conflicts and explanation"""
    try:
        evaluated = await service.get_with_diagnostics(trainset_id)
        return evaluated.to_wire()
    except TrainsetNotFoundError:
        raise HTTPException(status_code=404, detail="Trainset not found")
    except Exception as e:
        logger.error(f"Error fetching trainset {trainset_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch trainset")


@router.get("/{trainset_id}/conflicts")
async def get_trainset_conflicts(trainset_id: str, service: InductionService = Depends(get_induction_service)):
    try:
        result = await service.get_conflicts(trainset_id)
        wire = result.to_wire()
        return {"conflicts": wire["conflicts"], "lastConflictCheck": wire["lastConflictCheck"]}
    except TrainsetNotFoundError:
        raise HTTPException(status_code=404, detail="Trainset not found")
    except Exception as e:
        logger.error(f"Error fetching conflicts for {trainset_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch conflicts")


@router.patch("/{trainset_id}")
async def update_trainset_decision(
    trainset_id: str,
    update: DecisionUpdate,
    _auth=Depends(require_api_key),
    actor: Optional[str] = Depends(get_actor),
    service: InductionService = Depends(get_induction_service),
):
    """Set a decision by hand and return the re-evaluated trainset"""
    try:
        evaluated = await service.update_decision(
            trainset_id,
            update.recommendation,
            manual_override=update.manual_override,
            actor=actor,
        )
        return evaluated.to_wire()
    except TrainsetNotFoundError:
        raise HTTPException(status_code=404, detail="Trainset not found")
    except Exception as e:
        logger.error(f"Error updating trainset {trainset_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update trainset")
