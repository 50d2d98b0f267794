"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tms_shared import __version__

from tms_core.context import ContextRegistry

from tms_api.dependencies import get_registry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@router.get("/ready")
async def ready(registry: ContextRegistry = Depends(get_registry)) -> dict:
    return {"status": "ready", "sessions": len(registry)}
