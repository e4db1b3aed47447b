# routers/issues.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.auth import get_identity, requires_permission
from core.config import settings
from core.context import AppContext, get_context
from models.identity import Identity
from models.issue import IssueCreate, IssueSolvedUpdate
from services.aggregation import AggregationEngine
from services.issue_mutation import IssueMutationService


router = APIRouter(
    prefix="/issues",
    tags=["Issues"],
)


# -----------------------------------------------------
# POST /issues
# Any verified identity may submit; a student record is
# created on first submission. Staff roles are refused.
# -----------------------------------------------------
@router.post("", status_code=201, summary="Submit an issue")
async def create_issue(
    payload: IssueCreate,
    identity: Identity = Depends(get_identity),
    ctx: AppContext = Depends(get_context),
):
    issue = await IssueMutationService(ctx.store).submit_issue(
        identity,
        content=payload.content,
        issue_type=payload.type,
        category=payload.category,
        hostel_details=payload.hostel_details,
    )
    return {"issueId": issue.id, "message": "Issue submitted successfully"}


# -----------------------------------------------------
# GET /issues?status=pending|solved|all&type=&limit=&offset=
# -----------------------------------------------------
@router.get("", summary="List issues visible to the caller")
async def list_issues(
    status: Optional[str] = Query(None, description="pending | solved | all"),
    issue_type: Optional[str] = Query(None, alias="type", description="complaint | maintenance"),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_ISSUE_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: Identity = Depends(requires_permission("issues:read")),
    ctx: AppContext = Depends(get_context),
):
    return await AggregationEngine(ctx.store).list_issues(
        current_user,
        status=status,
        issue_type=issue_type,
        limit=limit,
        offset=offset,
    )


# -----------------------------------------------------
# PATCH /issues  {issueId, solved}
# -----------------------------------------------------
@router.patch("", summary="Mark an issue solved / unsolved")
async def set_issue_solved(
    payload: IssueSolvedUpdate,
    current_user: Identity = Depends(requires_permission("issues:resolve")),
    ctx: AppContext = Depends(get_context),
):
    return await IssueMutationService(ctx.store).set_solved(
        current_user,
        payload.issue_id,
        payload.solved,
    )
