# routers/notice_board.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.config import settings
from core.context import AppContext, get_context
from services.aggregation import AggregationEngine


router = APIRouter(
    prefix="/notice-board",
    tags=["Public"],
)


# -----------------------------------------------------
# GET /notice-board
# Guest-readable maintenance board. NO AUTH.
# -----------------------------------------------------
@router.get("", summary="Public maintenance notice board")
async def notice_board(
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_ISSUE_LIMIT),
    ctx: AppContext = Depends(get_context),
):
    issues = await AggregationEngine(ctx.store).public_maintenance_board(limit)
    return {"issues": issues, "count": len(issues)}
