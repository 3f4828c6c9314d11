"""Quarter migration service - carry a quarter's unfinished goals into another quarter.

Each quarterly goal migrates in its own transaction. A failure is logged
and reported for that goal while the others go ahead.
"""
import logging
from typing import Optional

from app.database import transaction
from app.models.actor import Actor
from app.models.goal import Goal, GoalDepth, QuarterPeriod
from app.models.move import (
    AdhocGoalSummary,
    QuarterlyGoalMoveResult,
    QuarterlyGoalSummary,
    QuarterMoveError,
    QuarterMovePreview,
    QuarterMoveResult,
)
from app.services.goal_store import GoalStore
from app.utils.calendar import final_weeks_of, first_week_of, weeks_of
from app.utils.errors import InvalidArgumentError
from app.utils.lineage import dedupe_by_root, index_by_root, next_carry_over, normalize_star_pin, root_goal_id
from app.utils.path import SEPARATOR, child_path

logger = logging.getLogger(__name__)

DEFAULT_DAY_OF_WEEK = 1


def _check_distinct(from_: QuarterPeriod, to: QuarterPeriod) -> None:
    if (from_.year, from_.quarter) == (to.year, to.quarter):
        raise InvalidArgumentError("Source and target quarter must differ")


def _last_non_empty_week(weeks: list[int], state_weeks: set[int]) -> int:
    """Latest quarter week holding a state; the quarter's last week if none does."""
    for week in reversed(weeks):
        if week in state_weeks:
            return week
    return weeks[-1]


def _adhoc_summary(goal: Goal, domain_names: dict[str, str]) -> AdhocGoalSummary:
    return AdhocGoalSummary(
        id=goal.id,
        title=goal.title,
        week_number=goal.adhoc.week_number,
        day_of_week=goal.adhoc.day_of_week,
        domain_id=goal.domain_id,
        domain_name=domain_names.get(goal.domain_id) if goal.domain_id else None,
    )


class QuarterMigrationService:
    """Service for moving goals between quarters."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def move_quarterly_goal(
        self, actor: Actor, goal_id: str, from_: QuarterPeriod, to: QuarterPeriod
    ) -> QuarterlyGoalMoveResult:
        """
        Carry one quarterly goal and its unfinished work into another quarter.

        Args:
            actor: Acting user
            goal_id: Quarterly goal ID
            from_: Quarter the goal lives in
            to: Target quarter

        Returns:
            Counts of created and reused goals

        Raises:
            NotFoundError: If goal not found
            UnauthorizedError: If goal belongs to another user
            InvalidArgumentError: If the goal is not a quarterly goal of
                `from_`, or the quarters are equal
        """
        _check_distinct(from_, to)
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            return await self._migrate_quarterly_goal(store, actor, goal_id, from_, to)

    async def _migrate_quarterly_goal(
        self,
        store: GoalStore,
        actor: Actor,
        goal_id: str,
        from_: QuarterPeriod,
        to: QuarterPeriod,
    ) -> QuarterlyGoalMoveResult:
        user_id = actor.user_id
        goal = await store.require_goal(actor, goal_id)
        if goal.depth != GoalDepth.QUARTERLY:
            raise InvalidArgumentError(f"Goal {goal.id} is not a quarterly goal")
        if (goal.year, goal.quarter) != (from_.year, from_.quarter):
            raise InvalidArgumentError(
                f"Goal {goal.id} is not in {from_.year}-Q{from_.quarter}"
            )

        from_weeks = weeks_of(from_.year, from_.quarter)
        to_weeks = weeks_of(to.year, to.quarter)
        start_week = to_weeks.start_week

        weekly_children = [
            child
            for child in await store.list_children(user_id, goal.id, from_.year, from_.quarter)
            if child.depth == GoalDepth.WEEKLY
        ]
        weekly_states = await store.list_states_for_goals(
            user_id, [child.id for child in weekly_children], from_.year, from_.quarter
        )
        source_week = _last_non_empty_week(
            from_weeks.weeks, {state.week_number for state in weekly_states}
        )

        quarterly_state = await store.find_state(
            user_id, goal.id, from_.year, from_.quarter, source_week
        )
        is_starred, is_pinned = normalize_star_pin(
            quarterly_state.is_starred if quarterly_state else False,
            quarterly_state.is_pinned if quarterly_state else False,
        )

        target_quarterly, target_weekly, target_daily = await store.fan_out(
            store.list_goals_by_quarter(user_id, to.year, to.quarter, depth=GoalDepth.QUARTERLY),
            store.list_goals_by_quarter(user_id, to.year, to.quarter, depth=GoalDepth.WEEKLY),
            store.list_goals_by_quarter(user_id, to.year, to.quarter, depth=GoalDepth.DAILY),
        )

        result = QuarterlyGoalMoveResult(new_goal_id="")
        new_quarterly = index_by_root(target_quarterly).get(root_goal_id(goal))
        if new_quarterly is None:
            new_quarterly = await store.insert_goal({
                "user_id": user_id,
                "year": to.year,
                "quarter": to.quarter,
                "title": goal.title,
                "details": goal.details,
                "due_date": goal.due_date,
                "domain_id": goal.domain_id,
                "in_path": SEPARATOR,
                "depth": GoalDepth.QUARTERLY,
                "carry_over": next_carry_over(goal.id, goal.carry_over),
            })
            for week in to_weeks.weeks:
                await store.insert_state({
                    "user_id": user_id,
                    "goal_id": new_quarterly.id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "week_number": week,
                    "is_starred": is_starred and week == start_week,
                    "is_pinned": is_pinned and week == start_week,
                })
            result.quarterly_goal_was_created = True
        else:
            logger.info("Reusing quarterly goal %s for %s", new_quarterly.id, goal.id)
        result.new_goal_id = new_quarterly.id
        await store.transfer_fire_flag(user_id, goal.id, new_quarterly.id)

        # weekly goals of the last non-empty week
        in_source_week = {
            state.goal_id for state in weekly_states if state.week_number == source_week
        }
        weekly_to_move = dedupe_by_root(
            child
            for child in weekly_children
            if child.id in in_source_week and not child.is_complete
        )
        weekly_by_root = index_by_root(target_weekly)
        weekly_map: dict[str, Goal] = {}
        weekly_path = child_path(new_quarterly.in_path, new_quarterly.id)

        for weekly in weekly_to_move:
            existing = weekly_by_root.get(root_goal_id(weekly))
            if existing is not None and existing.parent_id == new_quarterly.id:
                weekly_map[weekly.id] = existing
                result.weekly_goals_reused += 1
                continue
            if existing is not None:
                logger.warning(
                    "Weekly goal %s was carried under quarterly goal %s, creating it under %s",
                    weekly.id, existing.parent_id, new_quarterly.id,
                )

            carry_over = next_carry_over(weekly.id, weekly.carry_over)
            new_weekly = await store.insert_goal({
                "user_id": user_id,
                "year": to.year,
                "quarter": to.quarter,
                "title": weekly.title,
                "details": weekly.details,
                "due_date": weekly.due_date,
                "domain_id": weekly.domain_id,
                "parent_id": new_quarterly.id,
                "in_path": weekly_path,
                "depth": GoalDepth.WEEKLY,
                "carry_over": carry_over,
            })
            await store.insert_state({
                "user_id": user_id,
                "goal_id": new_weekly.id,
                "year": to.year,
                "quarter": to.quarter,
                "week_number": start_week,
                "carry_over": carry_over,
            })
            await store.transfer_fire_flag(user_id, weekly.id, new_weekly.id)
            weekly_map[weekly.id] = new_weekly
            result.weekly_goals_migrated += 1

        # daily goals of the same week
        daily_children = await store.list_children_batch(
            user_id, [weekly.id for weekly in weekly_to_move], from_.year, from_.quarter
        )
        dailies = [
            child
            for children in daily_children.values()
            for child in children
            if child.depth == GoalDepth.DAILY
        ]
        daily_states = {}
        for state in await store.list_states_for_goals(
            user_id, [daily.id for daily in dailies], from_.year, from_.quarter, source_week
        ):
            daily_states.setdefault(state.goal_id, state)

        daily_to_move = dedupe_by_root(
            daily for daily in dailies if daily.id in daily_states and not daily.is_complete
        )
        daily_by_root = index_by_root(target_daily)

        for daily in daily_to_move:
            new_parent = weekly_map.get(daily.parent_id)
            if new_parent is None:
                logger.warning("Skipping daily goal %s: weekly parent was not migrated", daily.id)
                continue

            existing = daily_by_root.get(root_goal_id(daily))
            if existing is not None and existing.parent_id == new_parent.id:
                result.daily_goals_reused += 1
                continue
            if existing is not None:
                logger.warning(
                    "Daily goal %s was carried under weekly goal %s, creating it under %s",
                    daily.id, existing.parent_id, new_parent.id,
                )

            carry_over = next_carry_over(daily.id, daily.carry_over)
            new_daily = await store.insert_goal({
                "user_id": user_id,
                "year": to.year,
                "quarter": to.quarter,
                "title": daily.title,
                "details": daily.details,
                "due_date": daily.due_date,
                "domain_id": daily.domain_id,
                "parent_id": new_parent.id,
                "in_path": child_path(new_parent.in_path, new_parent.id),
                "depth": GoalDepth.DAILY,
                "carry_over": carry_over,
            })
            source_daily = daily_states[daily.id].daily
            await store.insert_state({
                "user_id": user_id,
                "goal_id": new_daily.id,
                "year": to.year,
                "quarter": to.quarter,
                "week_number": start_week,
                "daily": source_daily or {"day_of_week": DEFAULT_DAY_OF_WEEK},
                "carry_over": carry_over,
            })
            await store.transfer_fire_flag(user_id, daily.id, new_daily.id)
            result.daily_goals_migrated += 1

        logger.info(
            "Migrated quarterly goal %s to %s: %d/%d weekly migrated/reused, %d/%d daily migrated/reused",
            goal.id, new_quarterly.id,
            result.weekly_goals_migrated, result.weekly_goals_reused,
            result.daily_goals_migrated, result.daily_goals_reused,
        )
        return result

    async def move_quarter(
        self,
        actor: Actor,
        from_: QuarterPeriod,
        to: QuarterPeriod,
        selected_quarterly_goal_ids: Optional[list[str]] = None,
        selected_adhoc_goal_ids: Optional[list[str]] = None,
    ) -> QuarterMoveResult:
        """
        Carry every incomplete quarterly goal and adhoc goal into another quarter.

        Quarterly goals migrate one transaction each; a failing goal is
        recorded as an error entry and the rest continue. Adhoc goals are
        moved, not copied, to the first week of the target quarter.

        Args:
            actor: Acting user
            from_: Source quarter
            to: Target quarter
            selected_quarterly_goal_ids: Restrict to these quarterly goals
            selected_adhoc_goal_ids: Restrict to these adhoc goals

        Raises:
            InvalidArgumentError: If the quarters are equal
        """
        _check_distinct(from_, to)
        logger.info(
            "Moving quarter %s-Q%s to %s-Q%s for user %s",
            from_.year, from_.quarter, to.year, to.quarter, actor.user_id,
        )

        store = GoalStore(self.db)
        goals = await store.list_goals_by_quarter(
            actor.user_id, from_.year, from_.quarter, depth=GoalDepth.QUARTERLY, is_complete=False
        )
        if selected_quarterly_goal_ids is not None:
            selected = set(selected_quarterly_goal_ids)
            goals = [goal for goal in goals if goal.id in selected]

        results: list = []
        copied = 0
        for goal in goals:
            try:
                async with transaction(self.db) as session:
                    result = await self._migrate_quarterly_goal(
                        GoalStore(self.db, session), actor, goal.id, from_, to
                    )
                results.append(result)
                copied += 1
            except Exception as e:
                logger.exception("Failed to migrate quarterly goal %s", goal.id)
                results.append(QuarterMoveError(error=f"Failed to migrate goal: {e}"))

        adhoc_moved = await self._move_adhoc_goals(actor, from_, to, selected_adhoc_goal_ids)

        logger.info(
            "Quarter move finished: %d quarterly goals copied, %d adhoc goals moved, %d failed",
            copied, adhoc_moved, len(goals) - copied,
        )
        return QuarterMoveResult(
            quarterly_goals_copied=copied,
            adhoc_goals_moved=adhoc_moved,
            results=results,
        )

    async def _list_adhoc_goals(
        self,
        store: GoalStore,
        actor: Actor,
        from_: QuarterPeriod,
        selected_ids: Optional[list[str]] = None,
    ) -> list[Goal]:
        # a spill week number also exists in the neighbouring quarter, so
        # select by the stored quarter rather than by week number
        goals = await store.list_adhoc_goals_in_quarter(
            actor.user_id, from_.year, from_.quarter, is_complete=False
        )
        if selected_ids is not None:
            selected = set(selected_ids)
            goals = [goal for goal in goals if goal.id in selected]
        return goals

    async def _move_adhoc_goals(
        self,
        actor: Actor,
        from_: QuarterPeriod,
        to: QuarterPeriod,
        selected_ids: Optional[list[str]],
    ) -> int:
        first_week = first_week_of(to.year, to.quarter)
        try:
            async with transaction(self.db) as session:
                store = GoalStore(self.db, session)
                goals = await self._list_adhoc_goals(store, actor, from_, selected_ids)
                for goal in goals:
                    await store.patch_goal(goal.id, {
                        "year": first_week.year,
                        "quarter": to.quarter,
                        "adhoc.week_number": first_week.week_number,
                    })
                return len(goals)
        except Exception:
            logger.exception("Failed to move adhoc goals to %s-Q%s", to.year, to.quarter)
            return 0

    async def preview_quarter_move(
        self, actor: Actor, from_: QuarterPeriod, to: QuarterPeriod
    ) -> QuarterMovePreview:
        """
        List what `move_quarter` would carry over.

        Quarterly goals report the star/pin flags of the quarter's final
        week(s); adhoc goals report their domain.
        """
        _check_distinct(from_, to)
        store = GoalStore(self.db)

        goals, adhoc_goals = await store.fan_out(
            store.list_goals_by_quarter(
                actor.user_id, from_.year, from_.quarter, depth=GoalDepth.QUARTERLY, is_complete=False
            ),
            self._list_adhoc_goals(store, actor, from_),
        )
        final_weeks = {week.week_number for week in final_weeks_of(from_.year, from_.quarter)}
        states = await store.list_states_for_goals(
            actor.user_id, [goal.id for goal in goals], from_.year, from_.quarter
        )
        starred = {s.goal_id for s in states if s.week_number in final_weeks and s.is_starred}
        pinned = {s.goal_id for s in states if s.week_number in final_weeks and s.is_pinned}

        domain_names = await store.get_domain_names(
            actor.user_id, [goal.domain_id for goal in adhoc_goals if goal.domain_id]
        )

        quarterly_summaries = []
        for goal in goals:
            is_starred, is_pinned = normalize_star_pin(goal.id in starred, goal.id in pinned)
            quarterly_summaries.append(QuarterlyGoalSummary(
                id=goal.id, title=goal.title, is_starred=is_starred, is_pinned=is_pinned
            ))

        return QuarterMovePreview(
            quarterly_goals=quarterly_summaries,
            adhoc_goals=[_adhoc_summary(goal, domain_names) for goal in adhoc_goals],
        )
