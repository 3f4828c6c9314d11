"""Goal service - creation, completion, status and reparenting of goals."""
from datetime import datetime

from app.database import transaction
from app.models.actor import Actor
from app.models.goal import (
    DailyGoalCreate,
    Goal,
    GoalDepth,
    GoalState,
    QuarterlyGoalCreate,
    QuarterlyStatusUpdate,
    WeeklyGoalCreate,
)
from app.services.goal_store import GoalStore
from app.utils.calendar import weeks_of
from app.utils.errors import InvalidArgumentError
from app.utils.lineage import normalize_star_pin
from app.utils.path import SEPARATOR, child_path


def _require_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidArgumentError("Title is required")
    return title


def _require_depth(goal: Goal, depth: GoalDepth) -> None:
    if goal.depth != depth:
        raise InvalidArgumentError(
            f"Goal {goal.id} is a {goal.depth.name.lower()} goal, expected {depth.name.lower()}"
        )


class GoalService:
    """Service for handling goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def get_goal(self, actor: Actor, goal_id: str) -> Goal:
        """
        Get a single goal.

        Raises:
            NotFoundError: If goal not found
            UnauthorizedError: If goal belongs to another user
        """
        return await GoalStore(self.db).require_goal(actor, goal_id)

    async def create_quarterly_goal(self, actor: Actor, goal_create: QuarterlyGoalCreate) -> Goal:
        """
        Create a quarterly goal with a state for every week of its quarter.

        Star and pin flags are set on the state of `goal_create.week_number`
        only.

        Args:
            actor: Acting user
            goal_create: Goal creation data

        Returns:
            Created goal

        Raises:
            InvalidArgumentError: If the title is empty or the week is not
                part of the quarter
        """
        title = _require_title(goal_create.title)
        quarter_weeks = weeks_of(goal_create.year, goal_create.quarter)
        if goal_create.week_number not in quarter_weeks.weeks:
            raise InvalidArgumentError(
                f"Week {goal_create.week_number} is not part of "
                f"{goal_create.year}-Q{goal_create.quarter}"
            )
        is_starred, is_pinned = normalize_star_pin(goal_create.is_starred, goal_create.is_pinned)

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.insert_goal({
                "user_id": actor.user_id,
                "year": goal_create.year,
                "quarter": goal_create.quarter,
                "title": title,
                "details": goal_create.details,
                "in_path": SEPARATOR,
                "depth": GoalDepth.QUARTERLY,
            })
            for week in quarter_weeks.weeks:
                flagged = week == goal_create.week_number
                await store.insert_state({
                    "user_id": actor.user_id,
                    "goal_id": goal.id,
                    "year": goal.year,
                    "quarter": goal.quarter,
                    "week_number": week,
                    "is_starred": is_starred and flagged,
                    "is_pinned": is_pinned and flagged,
                })
            return goal

    async def create_weekly_goal(self, actor: Actor, goal_create: WeeklyGoalCreate) -> Goal:
        """
        Create a weekly goal under a quarterly goal, with a state for its week.

        Raises:
            NotFoundError: If the parent does not exist
            UnauthorizedError: If the parent belongs to another user
            InvalidArgumentError: If the parent is not a quarterly goal
        """
        title = _require_title(goal_create.title)

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            parent = await store.require_goal(actor, goal_create.parent_id)
            _require_depth(parent, GoalDepth.QUARTERLY)

            goal = await store.insert_goal({
                "user_id": actor.user_id,
                "year": parent.year,
                "quarter": parent.quarter,
                "title": title,
                "details": goal_create.details,
                "parent_id": parent.id,
                "in_path": child_path(parent.in_path, parent.id),
                "depth": GoalDepth.WEEKLY,
            })
            await store.insert_state({
                "user_id": actor.user_id,
                "goal_id": goal.id,
                "year": goal.year,
                "quarter": goal.quarter,
                "week_number": goal_create.week_number,
            })
            return goal

    async def create_daily_goal(self, actor: Actor, goal_create: DailyGoalCreate) -> Goal:
        """
        Create a daily goal under a weekly goal, assigned to one day.

        Raises:
            NotFoundError: If the parent does not exist
            UnauthorizedError: If the parent belongs to another user
            InvalidArgumentError: If the parent is not a weekly goal
        """
        title = _require_title(goal_create.title)

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            parent = await store.require_goal(actor, goal_create.parent_id)
            _require_depth(parent, GoalDepth.WEEKLY)

            goal = await store.insert_goal({
                "user_id": actor.user_id,
                "year": parent.year,
                "quarter": parent.quarter,
                "title": title,
                "details": goal_create.details,
                "parent_id": parent.id,
                "in_path": child_path(parent.in_path, parent.id),
                "depth": GoalDepth.DAILY,
            })
            await store.insert_state({
                "user_id": actor.user_id,
                "goal_id": goal.id,
                "year": goal.year,
                "quarter": goal.quarter,
                "week_number": goal_create.week_number,
                "daily": {"day_of_week": int(goal_create.day_of_week)},
            })
            return goal

    async def set_goal_completion(self, actor: Actor, goal_id: str, is_complete: bool) -> Goal:
        """
        Mark a goal complete or incomplete.

        Completing a goal clears its fire flag.
        """
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.require_goal(actor, goal_id)

            completed_at = datetime.utcnow() if is_complete else None
            await store.patch_goal(goal.id, {
                "is_complete": is_complete,
                "completed_at": completed_at,
            })
            if is_complete:
                await store.remove_fire_flags(actor.user_id, [goal.id])

            return goal.model_copy(update={"is_complete": is_complete, "completed_at": completed_at})

    async def update_quarterly_goal_status(
        self, actor: Actor, goal_id: str, status_update: QuarterlyStatusUpdate
    ) -> GoalState:
        """
        Set the star/pin flags of a quarterly goal for one week.

        Starring wins over pinning: a starred goal is stored unpinned.

        Raises:
            InvalidArgumentError: If the goal is not a quarterly goal
        """
        is_starred, is_pinned = normalize_star_pin(status_update.is_starred, status_update.is_pinned)

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.require_goal(actor, goal_id)
            _require_depth(goal, GoalDepth.QUARTERLY)

            state = await store.find_state(
                actor.user_id,
                goal.id,
                status_update.year,
                status_update.quarter,
                status_update.week_number,
            )
            if state is None:
                return await store.insert_state({
                    "user_id": actor.user_id,
                    "goal_id": goal.id,
                    "year": status_update.year,
                    "quarter": status_update.quarter,
                    "week_number": status_update.week_number,
                    "is_starred": is_starred,
                    "is_pinned": is_pinned,
                })

            await store.patch_state(state.id, {"is_starred": is_starred, "is_pinned": is_pinned})
            return state.model_copy(update={"is_starred": is_starred, "is_pinned": is_pinned})

    async def update_goal_parent(self, actor: Actor, goal_id: str, new_parent_id: str) -> Goal:
        """
        Move a weekly goal under another quarterly goal of the same quarter.

        The daily children follow; their paths are rewritten.

        Raises:
            InvalidArgumentError: If the goal is not weekly, the new parent is
                not quarterly, or the two are in different quarters
        """
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal, parent = await store.fan_out(
                store.require_goal(actor, goal_id),
                store.require_goal(actor, new_parent_id),
            )
            _require_depth(goal, GoalDepth.WEEKLY)
            _require_depth(parent, GoalDepth.QUARTERLY)
            if (goal.year, goal.quarter) != (parent.year, parent.quarter):
                raise InvalidArgumentError("New parent must be in the same quarter")

            descendants = await store.collect_subtree(goal)
            new_in_path = child_path(parent.in_path, parent.id)
            await store.patch_goal(goal.id, {
                "parent_id": parent.id,
                "in_path": new_in_path,
                "depth": GoalDepth.WEEKLY,
            })
            for child in descendants:
                await store.patch_goal(child.id, {
                    "in_path": child_path(new_in_path, goal.id),
                    "depth": child.depth,
                })

            return goal.model_copy(update={"parent_id": parent.id, "in_path": new_in_path})
