# kmrl_induction/security.py
from __future__ import annotations

from fastapi import Header, HTTPException, Request

from kmrl_induction.config import settings
from kmrl_induction.services.induction_service import InductionService


async def require_api_key(x_api_key: str | None = Header(default=None)):
    """Simple API key check, only enforced when API_KEY is configured"""
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True


async def get_actor(x_actor: str | None = Header(default=None)) -> str | None:
    """Identity recorded in audit logs (set by the upstream auth proxy)"""
    return x_actor


def get_induction_service(request: Request) -> InductionService:
    return request.app.state.induction_service


__all__ = [
    "require_api_key",
    "get_actor",
    "get_induction_service",
]
