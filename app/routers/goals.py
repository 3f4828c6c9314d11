"""Goal router - API endpoints for goal creation, status and deletion."""
from fastapi import APIRouter, Depends, Query, status

from app.database import get_database
from app.models.actor import Actor
from app.models.goal import (
    DailyGoalCreate,
    FireStatus,
    Goal,
    GoalCompletionUpdate,
    GoalParentUpdate,
    GoalState,
    QuarterlyGoalCreate,
    QuarterlyStatusUpdate,
    WeeklyGoalCreate,
)
from app.routers.deps import get_current_actor, to_http_error
from app.services.deletion_service import DeletionService
from app.services.fire_service import FireService
from app.services.goal_service import GoalService
from app.utils.errors import GoalServiceError


router = APIRouter(prefix="/goals", tags=["goals"])


@router.post("/quarterly", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_quarterly_goal(
    goal: QuarterlyGoalCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Create a quarterly goal.

    - Seeds a state for every week of the quarter
    - Star/pin apply to the given week only
    """
    try:
        return await GoalService(db).create_quarterly_goal(actor, goal)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/weekly", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_weekly_goal(
    goal: WeeklyGoalCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Create a weekly goal under a quarterly goal."""
    try:
        return await GoalService(db).create_weekly_goal(actor, goal)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/daily", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_daily_goal(
    goal: DailyGoalCreate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Create a daily goal under a weekly goal."""
    try:
        return await GoalService(db).create_daily_goal(actor, goal)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.get("/fire", response_model=list[str])
async def list_fire_goals(
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """List ids of goals on fire."""
    return await FireService(db).list_fire_goals(actor)


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(
    goal_id: str,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Get a single goal."""
    try:
        return await GoalService(db).get_goal(actor, goal_id)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    dry_run: bool = Query(False, description="Only return the tree that would be deleted"),
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """
    Delete a goal with all of its descendants and states.

    - Returns the preview tree when `dry_run` is set
    - 404 if the goal does not exist, 403 if it belongs to someone else
    """
    try:
        return await DeletionService(db).delete_goal(actor, goal_id, dry_run=dry_run)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.patch("/{goal_id}/completion", response_model=Goal)
async def set_goal_completion(
    goal_id: str,
    update: GoalCompletionUpdate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Mark a goal complete or incomplete. Completing clears its fire flag."""
    try:
        return await GoalService(db).set_goal_completion(actor, goal_id, update.is_complete)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.patch("/{goal_id}/status", response_model=GoalState)
async def update_quarterly_goal_status(
    goal_id: str,
    update: QuarterlyStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Star or pin a quarterly goal for one week."""
    try:
        return await GoalService(db).update_quarterly_goal_status(actor, goal_id, update)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.patch("/{goal_id}/parent", response_model=Goal)
async def update_goal_parent(
    goal_id: str,
    update: GoalParentUpdate,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Move a weekly goal under another quarterly goal."""
    try:
        return await GoalService(db).update_goal_parent(actor, goal_id, update.parent_id)
    except GoalServiceError as e:
        raise to_http_error(e)


@router.post("/{goal_id}/fire", response_model=FireStatus)
async def toggle_fire_status(
    goal_id: str,
    actor: Actor = Depends(get_current_actor),
    db=Depends(get_database),
):
    """Toggle the fire flag of a goal."""
    try:
        return await FireService(db).toggle_fire_status(actor, goal_id)
    except GoalServiceError as e:
        raise to_http_error(e)
