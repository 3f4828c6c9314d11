"""Adhoc service - week-scoped goals outside the quarterly tree."""
import logging
from typing import Optional, Union

from app.config import settings
from app.database import transaction
from app.models.actor import Actor
from app.models.goal import AdhocDay, AdhocGoalCreate, AdhocWeek, Goal, GoalDepth
from app.models.move import AdhocGoalSummary, AdhocMovePreview, AdhocMoveResult
from app.services.goal_store import GoalStore
from app.utils.calendar import quarter_for_week
from app.utils.errors import InvalidArgumentError, NotFoundError
from app.utils.path import SEPARATOR, child_path

logger = logging.getLogger(__name__)

# Guards the parent walk against cycles in corrupted data
MAX_PARENT_WALK = 10


async def adhoc_depth(store: GoalStore, goal: Goal) -> int:
    """Number of adhoc ancestors above a goal (0 for a top-level adhoc goal)."""
    depth = 0
    current: Optional[Goal] = goal
    while current is not None and current.parent_id:
        depth += 1
        if depth > MAX_PARENT_WALK:
            break
        current = await store.get_goal(current.parent_id)
    return depth


class AdhocService:
    """Service for handling adhoc goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def create_adhoc_goal(self, actor: Actor, goal_create: AdhocGoalCreate) -> Goal:
        """
        Create an adhoc goal, optionally nested under another adhoc goal.

        A child takes its parent's week and, unless one is given, its
        domain.

        Args:
            actor: Acting user
            goal_create: Goal creation data

        Returns:
            Created goal

        Raises:
            InvalidArgumentError: If the title is empty, the week is out of
                range, the parent is not an owned adhoc goal or nesting is
                too deep
            NotFoundError: If the domain does not exist for the user
        """
        title = (goal_create.title or "").strip()
        if not title:
            raise InvalidArgumentError("Goal title cannot be empty")

        year = goal_create.year
        week_number = goal_create.week_number
        domain_id = goal_create.domain_id
        in_path = SEPARATOR

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)

            if goal_create.parent_id:
                parent = await store.get_goal(goal_create.parent_id)
                if parent is None or parent.user_id != actor.user_id or not parent.is_adhoc:
                    raise InvalidArgumentError("Parent goal not found or is not an adhoc goal")

                if await adhoc_depth(store, parent) >= settings.adhoc_max_depth:
                    raise InvalidArgumentError(
                        f"Maximum nesting depth ({settings.adhoc_max_depth} levels) exceeded"
                    )

                year = parent.year
                week_number = parent.adhoc.week_number
                domain_id = domain_id or parent.domain_id
                in_path = child_path(parent.in_path, parent.id)

            if week_number < 1 or week_number > 53:
                raise InvalidArgumentError("Week number must be between 1 and 53")

            if domain_id and not await store.domain_exists(actor.user_id, domain_id):
                raise NotFoundError("Domain not found or you do not have permission to use it")

            return await store.insert_goal({
                "user_id": actor.user_id,
                "year": year,
                "quarter": quarter_for_week(year, week_number),
                "title": title,
                "details": goal_create.details.strip() if goal_create.details else None,
                "domain_id": domain_id,
                "parent_id": goal_create.parent_id,
                "in_path": in_path,
                "depth": GoalDepth.ADHOC,
                "adhoc": {"week_number": week_number, "due_date": goal_create.due_date},
            })

    async def list_adhoc_goals_for_week(self, actor: Actor, week: AdhocWeek) -> list[Goal]:
        """List the user's adhoc goals of one week."""
        store = GoalStore(self.db)
        return await store.list_adhoc_goals(actor.user_id, week.year, [week.week_number])

    async def _move(
        self,
        actor: Actor,
        from_: Union[AdhocWeek, AdhocDay],
        to: Union[AdhocWeek, AdhocDay],
        dry_run: bool,
    ) -> Union[AdhocMovePreview, AdhocMoveResult]:
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goals = await store.list_adhoc_goals(
                actor.user_id, from_.year, [from_.week_number], is_complete=False
            )

            if dry_run:
                domain_names = await store.get_domain_names(
                    actor.user_id, [goal.domain_id for goal in goals if goal.domain_id]
                )
                return AdhocMovePreview(
                    can_move=bool(goals),
                    from_=from_,
                    to=to,
                    goals=[
                        AdhocGoalSummary(
                            id=goal.id,
                            title=goal.title,
                            week_number=goal.adhoc.week_number,
                            domain_id=goal.domain_id,
                            domain_name=domain_names.get(goal.domain_id) if goal.domain_id else None,
                        )
                        for goal in goals
                    ],
                )

            quarter = quarter_for_week(to.year, to.week_number)
            for goal in goals:
                await store.patch_goal(goal.id, {
                    "year": to.year,
                    "quarter": quarter,
                    "adhoc.week_number": to.week_number,
                })

            logger.info(
                "Moved %d adhoc goals from %s-W%s to %s-W%s",
                len(goals), from_.year, from_.week_number, to.year, to.week_number,
            )
            return AdhocMoveResult(goals_moved=len(goals))

    async def move_adhoc_goals_from_week(
        self, actor: Actor, from_: AdhocWeek, to: AdhocWeek, dry_run: bool = False
    ) -> Union[AdhocMovePreview, AdhocMoveResult]:
        """
        Move the incomplete adhoc goals of one week to another week.

        Raises:
            InvalidArgumentError: If source and target are the same week
        """
        if (from_.year, from_.week_number) == (to.year, to.week_number):
            raise InvalidArgumentError("Source and target week must differ")
        return await self._move(actor, from_, to, dry_run)

    async def move_adhoc_goals_from_day(
        self, actor: Actor, from_: AdhocDay, to: AdhocDay, dry_run: bool = False
    ) -> Union[AdhocMovePreview, AdhocMoveResult]:
        """
        Move adhoc goals from one day to another.

        Adhoc goals are week-level, so every incomplete goal of the source
        week moves; the days only show up in the preview.
        """
        return await self._move(actor, from_, to, dry_run)
