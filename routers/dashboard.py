# routers/dashboard.py

from fastapi import APIRouter, Depends

from dependencies.auth import requires_permission
from core.context import AppContext, get_context
from models.identity import Identity
from services.aggregation import AggregationEngine


router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


# -----------------------------------------------------
# GET /dashboard
# Payload shape depends on the caller's role:
#   student         -> student, issues, counts
#   chief_warden    -> hostels, staff, students, issues, counts
#   hostel roles    -> profile, hostel, floors, students, issues, counts
#   floor roles     -> profile, floors, rooms, students, issues, counts
# -----------------------------------------------------
@router.get("", summary="Role-shaped dashboard")
async def get_dashboard(
    current_user: Identity = Depends(requires_permission("dashboard:read")),
    ctx: AppContext = Depends(get_context),
):
    return await AggregationEngine(ctx.store).get_dashboard(current_user)
