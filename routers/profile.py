# routers/profile.py

from fastapi import APIRouter, Depends

from dependencies.auth import requires_permission
from core.context import AppContext, get_context
from models.identity import Identity
from models.profile import ProfilePictureUpload, ProfileUpdate
from services.profiles import ProfileService


router = APIRouter(
    prefix="/profile",
    tags=["Profile"],
)


# -----------------------------------------------------
# PATCH /profile  {name?, email?, profilePictureUrl?}
# -----------------------------------------------------
@router.patch("", summary="Update own profile")
async def update_profile(
    payload: ProfileUpdate,
    current_user: Identity = Depends(requires_permission("profile:write")),
    ctx: AppContext = Depends(get_context),
):
    return await ProfileService(ctx.store, ctx.blobs).update_profile(
        current_user,
        name=payload.name,
        email=payload.email,
        profile_picture_url=payload.profile_picture_url,
    )


# -----------------------------------------------------
# POST /profile/picture  {image: base64 | data URI}
# -----------------------------------------------------
@router.post("/picture", summary="Upload own profile picture")
async def update_profile_picture(
    payload: ProfilePictureUpload,
    current_user: Identity = Depends(requires_permission("profile:write")),
    ctx: AppContext = Depends(get_context),
):
    return await ProfileService(ctx.store, ctx.blobs).update_profile_picture(current_user, payload.image)
