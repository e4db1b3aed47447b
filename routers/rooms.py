# routers/rooms.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from dependencies.auth import get_current_user
from core.context import AppContext, get_context
from models.identity import Identity
from services.rooms import RoomService


router = APIRouter(
    prefix="/rooms",
    tags=["Rooms"],
)


# -----------------------------------------------------
# GET /rooms?floorId=
# -----------------------------------------------------
@router.get("", summary="Rooms in scope with their images")
async def list_rooms(
    floor_id: Optional[str] = Query(None, alias="floorId"),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    rooms = await RoomService(ctx.store, ctx.blobs).list_rooms(current_user, floor_id or None)
    return {"rooms": rooms}


# -----------------------------------------------------
# GET /rooms/{room_id}/images
# -----------------------------------------------------
@router.get("/{room_id}/images", summary="Images of one room")
async def room_images(
    room_id: str = Path(...),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    return await RoomService(ctx.store, ctx.blobs).room_images(current_user, room_id)


# -----------------------------------------------------
# POST /rooms/{room_id}/images  (multipart)
# -----------------------------------------------------
@router.post("/{room_id}/images", status_code=201, summary="Upload a room image")
async def upload_room_image(
    room_id: str = Path(...),
    file: UploadFile = File(...),
    hostel_id: Optional[str] = Form(None, alias="hostelId"),
    floor_id: Optional[str] = Form(None, alias="floorId"),
    current_user: Identity = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    data = await file.read()
    return await RoomService(ctx.store, ctx.blobs).upload_room_image(
        current_user,
        room_id=room_id,
        hostel_id=hostel_id,
        floor_id=floor_id,
        data=data,
        content_type=file.content_type,
    )
