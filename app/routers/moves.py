"""Move router - API endpoints for carrying goals across days, weeks and quarters."""
from fastapi import APIRouter, Depends, Query

from app.database import get_database
from app.models.actor import Actor
from app.models.goal import WeekPeriod
from app.models.move import (
    DayMoveRequest,
    PullWeekRequest,
    QuarterlyGoalMoveRequest,
    QuarterlyGoalMoveResult,
    QuarterMovePreview,
    QuarterMoveRequest,
    QuarterMoveResult,
    WeekMoveRequest,
    WeekOption,
    WeeklyGoalMoveRequest,
)
from app.routers.deps import get_current_actor, to_http_error
from app.services.day_move_service import DayMoveService
from app.services.quarter_migration_service import QuarterMigrationService
from app.services.week_move_service import WeekMoveService
from app.utils.errors import GoalServiceError


router = APIRouter(prefix="/moves", tags=["moves"])


@router.post("/week")
async def move_week(
    request: WeekMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Carry the incomplete goals of one week into another.

    - Dry run returns the preview only
    - Commit returns the counts together with the preview arrays
    """
    try:
        return await WeekMoveService(db).move_week(
            actor, request.from_, request.to, dry_run=request.dry_run
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/week/pull")
async def pull_from_last_non_empty_week(
    request: PullWeekRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Carry goals forward from the most recent earlier week that has any."""
    try:
        return await WeekMoveService(db).pull_from_last_non_empty_week(
            actor, request.to, dry_run=request.dry_run
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/weekly-goal/{goal_id}")
async def move_weekly_goal_to_week(
    goal_id: str,
    request: WeeklyGoalMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Move one weekly goal to another week of the same quarter.

    - Completed daily goals stay behind with the original goal
    - Moved daily goals land on Monday
    """
    try:
        return await WeekMoveService(db).move_weekly_goal_to_week(
            actor, goal_id, request.from_, request.to, dry_run=request.dry_run
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.get("/weeks", response_model=list[WeekOption])
async def list_available_weeks(
    year: int = Query(...),
    quarter: int = Query(..., ge=1, le=4),
    week_number: int = Query(..., ge=1, le=53),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """List the weeks of the current quarter as move targets."""
    current = WeekPeriod(year=year, quarter=quarter, week_number=week_number)
    return WeekMoveService(db).list_available_weeks(current)


@router.post("/day")
async def move_day(
    request: DayMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Move the daily goals of one day to another day."""
    try:
        return await DayMoveService(db).move_day(
            actor,
            request.from_,
            request.to,
            dry_run=request.dry_run,
            move_only_incomplete=request.move_only_incomplete,
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/quarter/preview", response_model=QuarterMovePreview)
async def preview_quarter_move(
    request: QuarterlyGoalMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """List the quarterly and adhoc goals a quarter move would carry."""
    try:
        return await QuarterMigrationService(db).preview_quarter_move(
            actor, request.from_, request.to
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/quarter", response_model=QuarterMoveResult)
async def move_quarter(
    request: QuarterMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Carry every incomplete quarterly goal into another quarter.

    - One goal failing does not stop the others; it shows up as an
      `error` entry in `results`
    """
    try:
        return await QuarterMigrationService(db).move_quarter(
            actor,
            request.from_,
            request.to,
            selected_quarterly_goal_ids=request.selected_quarterly_goal_ids,
            selected_adhoc_goal_ids=request.selected_adhoc_goal_ids,
        )
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/quarterly-goal/{goal_id}", response_model=QuarterlyGoalMoveResult)
async def move_quarterly_goal(
    goal_id: str,
    request: QuarterlyGoalMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Carry one quarterly goal into another quarter."""
    try:
        return await QuarterMigrationService(db).move_quarterly_goal(
            actor, goal_id, request.from_, request.to
        )
    except GoalServiceError as e:
        raise to_http_error(e)
