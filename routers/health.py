# routers/health.py

import asyncio

from fastapi import APIRouter, Depends

from core.context import AppContext, get_context
from core.errors import HostelError
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + hostel table queries
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
async def health_db(ctx: AppContext = Depends(get_context)):
    """
    Verifies the document store is reachable.
    - Reports "not_configured" when URL + key are missing
    - Queries each hostel table once
    Safe for external health monitors (no auth required).
    """
    try:
        client = ctx.store.client()
    except HostelError as e:
        return {"service": "Supabase", "status": "not_configured", "detail": e.detail}

    status = await asyncio.to_thread(ping_supabase, client)
    return {
        "service": "Supabase",
        "status": status.get("status", "unknown"),
        "details": status,
    }


# -----------------------------------------------------
# GET /health/app
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    return {
        "service": "Hostel API",
        "status": "ok",
    }
