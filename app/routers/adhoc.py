"""Adhoc router - API endpoints for adhoc goals."""
from fastapi import APIRouter, Depends, Query, status

from app.database import get_database
from app.models.actor import Actor
from app.models.goal import AdhocGoalCreate, AdhocWeek, Goal
from app.models.move import AdhocDayMoveRequest, AdhocWeekMoveRequest
from app.routers.deps import get_current_actor, to_http_error
from app.services.adhoc_service import AdhocService
from app.utils.errors import GoalServiceError


router = APIRouter(prefix="/adhoc", tags=["adhoc"])


@router.post("", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_adhoc_goal(
    goal: AdhocGoalCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Create an adhoc goal.

    - Children inherit week and domain from their parent
    - Nesting is limited to three levels below a top-level goal
    """
    try:
        return await AdhocService(db).create_adhoc_goal(actor, goal)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.get("", response_model=list[Goal])
async def list_adhoc_goals(
    year: int = Query(...),
    week_number: int = Query(..., ge=1, le=53),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """List adhoc goals of one week."""
    week = AdhocWeek(year=year, week_number=week_number)
    return await AdhocService(db).list_adhoc_goals_for_week(actor, week)


@router.post("/moves/week")
async def move_adhoc_goals_from_week(
    request: AdhocWeekMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Move the incomplete adhoc goals of one week to another week."""
    try:
        return await AdhocService(db).move_adhoc_goals_from_week(
            actor, request.from_, request.to, dry_run=request.dry_run
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/moves/day")
async def move_adhoc_goals_from_day(
    request: AdhocDayMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Move adhoc goals between days (every incomplete goal of the week moves)."""
    try:
        return await AdhocService(db).move_adhoc_goals_from_day(
            actor, request.from_, request.to, dry_run=request.dry_run
        )
    except GoalServiceError as e:
        raise to_http_error(e)
