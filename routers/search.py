# routers/search.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.auth import get_current_user
from core.context import AppContext, get_context
from models.identity import Identity
from services.search import SearchEngine


router = APIRouter(
    prefix="/search",
    tags=["Search"],
)


# -----------------------------------------------------
# GET /search?query=&filter=
# filter: all | students | supervisors | hostel_wardens |
#         floor_wardens | floor_attendants | issues
# -----------------------------------------------------
@router.get("", summary="Search people and issues")
async def search(
    query: Optional[str] = Query(None),
    filter: Optional[str] = Query(None),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    results = await SearchEngine(ctx.store).search(current_user, query, filter)
    return {"results": results}
