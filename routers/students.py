# routers/students.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.auth import get_current_user
from core.config import settings
from core.context import AppContext, get_context
from core.utils import sanitize
from models.identity import Identity
from services.directory import DirectoryService


router = APIRouter(
    prefix="/students",
    tags=["Students"],
)


# -----------------------------------------------------
# GET /students?floorId=&hostelId=&page=&limit=
# -----------------------------------------------------
@router.get("", summary="List students in scope (paginated)")
async def list_students(
    floor_id: Optional[str] = Query(None, alias="floorId"),
    hostel_id: Optional[str] = Query(None, alias="hostelId"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_ISSUE_LIMIT),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    filters = sanitize({"floor_id": floor_id, "hostel_id": hostel_id})
    return await DirectoryService(ctx.store).list_students(
        current_user,
        page=page,
        limit=limit,
        **filters,
    )


# -----------------------------------------------------
# GET /students/roommates?hostelId=&roomId=
# -----------------------------------------------------
@router.get("/roommates", summary="Students sharing a room")
async def list_roommates(
    hostel_id: Optional[str] = Query(None, alias="hostelId"),
    room_id: Optional[str] = Query(None, alias="roomId"),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    filters = sanitize({"hostel_id": hostel_id, "room_id": room_id})
    roommates = await DirectoryService(ctx.store).list_roommates(current_user, **filters)
    return {"roommates": roommates}
