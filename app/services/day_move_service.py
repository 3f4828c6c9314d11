"""Day move service - move the daily goals of one day to another day."""
import logging
from typing import Union

from app.database import transaction
from app.models.actor import Actor
from app.models.goal import DayPeriod, Goal, GoalDepth, GoalState
from app.models.move import (
    DayInfo,
    DayMovePreview,
    DayMoveResult,
    DayTaskPreview,
    TaskGoalRef,
    TaskQuarterlyRef,
)
from app.services.goal_store import GoalStore
from app.utils.calendar import day_name
from app.utils.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


def _day_info(period: DayPeriod) -> DayInfo:
    return DayInfo(
        year=period.year,
        quarter=period.quarter,
        week_number=period.week_number,
        day_of_week=int(period.day_of_week),
        name=day_name(period.day_of_week),
    )


class DayMoveService:
    """Service for moving daily goals between days."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def _select_tasks(
        self,
        store: GoalStore,
        actor: Actor,
        from_: DayPeriod,
        move_only_incomplete: bool,
    ) -> list[tuple[GoalState, Goal, Goal, Goal, GoalState]]:
        """
        Collect the daily goals assigned to the source day.

        Tasks whose weekly or quarterly parent is missing, or owned by
        someone else, are skipped.

        Returns:
            (daily state, daily goal, weekly goal, quarterly goal,
            quarterly state in the source week or None) per task
        """
        states = await store.list_states_by_week(
            actor.user_id,
            from_.year,
            from_.quarter,
            from_.week_number,
            day_of_week=int(from_.day_of_week),
        )
        goals = await store.get_goals(state.goal_id for state in states)

        candidates = []
        for state in states:
            goal = goals.get(state.goal_id)
            if goal is None or goal.depth != GoalDepth.DAILY:
                continue
            if move_only_incomplete and goal.is_complete:
                continue
            candidates.append((state, goal))

        weekly_goals = await store.get_goals(goal.parent_id for _, goal in candidates if goal.parent_id)
        quarterly_goals = await store.get_goals(
            goal.parent_id for goal in weekly_goals.values() if goal.parent_id
        )
        quarterly_states = await store.list_states_for_goals(
            actor.user_id,
            quarterly_goals.keys(),
            from_.year,
            from_.quarter,
            from_.week_number,
        )
        quarterly_state_by_goal: dict[str, GoalState] = {}
        for state in quarterly_states:
            quarterly_state_by_goal.setdefault(state.goal_id, state)

        tasks = []
        for state, goal in candidates:
            weekly = weekly_goals.get(goal.parent_id) if goal.parent_id else None
            quarterly = quarterly_goals.get(weekly.parent_id) if weekly and weekly.parent_id else None
            if weekly is None or quarterly is None:
                logger.warning("Skipping daily goal %s: parent chain is incomplete", goal.id)
                continue
            if weekly.user_id != actor.user_id or quarterly.user_id != actor.user_id:
                continue
            tasks.append((state, goal, weekly, quarterly, quarterly_state_by_goal.get(quarterly.id)))
        return tasks

    async def move_day(
        self,
        actor: Actor,
        from_: DayPeriod,
        to: DayPeriod,
        dry_run: bool = False,
        move_only_incomplete: bool = True,
    ) -> Union[DayMovePreview, DayMoveResult]:
        """
        Move the daily goals of one day to another day.

        Within a week only the day changes. Across weeks the state is
        re-homed to the target week as well.

        Args:
            actor: Acting user
            from_: Source day
            to: Target day
            dry_run: Only compute the preview
            move_only_incomplete: Leave completed daily goals where they are

        Returns:
            Preview on dry run, otherwise the number of tasks moved

        Raises:
            InvalidArgumentError: If source and target are the same day
        """
        source_key = (from_.year, from_.quarter, from_.week_number, from_.day_of_week)
        if source_key == (to.year, to.quarter, to.week_number, to.day_of_week):
            raise InvalidArgumentError("Source and target day must differ")

        same_week = (from_.year, from_.quarter, from_.week_number) == (
            to.year,
            to.quarter,
            to.week_number,
        )

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            tasks = await self._select_tasks(store, actor, from_, move_only_incomplete)

            if dry_run:
                return DayMovePreview(
                    can_move=bool(tasks),
                    source_day=_day_info(from_),
                    target_day=_day_info(to),
                    tasks=[
                        DayTaskPreview(
                            id=state.id,
                            title=goal.title,
                            details=goal.details,
                            weekly_goal=TaskGoalRef(id=weekly.id, title=weekly.title),
                            quarterly_goal=TaskQuarterlyRef(
                                id=quarterly.id,
                                title=quarterly.title,
                                is_starred=quarterly_state.is_starred if quarterly_state else False,
                                is_pinned=quarterly_state.is_pinned if quarterly_state else False,
                            ),
                        )
                        for state, goal, weekly, quarterly, quarterly_state in tasks
                    ],
                )

            daily = {"day_of_week": int(to.day_of_week)}
            for state, *_ in tasks:
                if same_week:
                    await store.patch_state(state.id, {"daily": daily})
                else:
                    await store.patch_state(state.id, {
                        "year": to.year,
                        "quarter": to.quarter,
                        "week_number": to.week_number,
                        "daily": daily,
                    })

            return DayMoveResult(tasks_moved=len(tasks))
