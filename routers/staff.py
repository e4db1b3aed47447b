# routers/staff.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dependencies.auth import get_current_user
from core.context import AppContext, get_context
from models.identity import Identity
from services.directory import DirectoryService


router = APIRouter(
    prefix="/staff",
    tags=["Staff"],
)


# -----------------------------------------------------
# Helper: accept ?floorIds=a&floorIds=b and ?floorIds=a,b
# -----------------------------------------------------
def split_ids(values: Optional[List[str]]) -> List[str]:
    ids = []
    for value in values or []:
        ids.extend(part.strip() for part in value.split(",") if part.strip())
    return ids


# -----------------------------------------------------
# GET /staff?role=&floorIds=&hostelId=
# -----------------------------------------------------
@router.get("", summary="List staff of one role")
async def list_staff(
    role: Optional[str] = Query(None),
    floor_ids: Optional[List[str]] = Query(None, alias="floorIds"),
    hostel_id: Optional[str] = Query(None, alias="hostelId"),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    return await DirectoryService(ctx.store).list_staff(
        current_user,
        staff_role=role,
        floor_ids=split_ids(floor_ids),
        hostel_id=hostel_id or None,
    )
