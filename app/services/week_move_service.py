"""Week move service - carry incomplete goals from one week into another.

A move runs in two phases. Planning reads the source week and decides what
moves; it never writes, so a dry run returns its output as a preview.
Execution then creates or reuses the target goals, reparents the daily
children and applies the quarterly star/pin flags, all in one transaction.
"""
import logging
from typing import Optional, Union

from app.config import settings
from app.database import transaction
from app.models.actor import Actor
from app.models.goal import DayOfWeek, Goal, GoalDepth, GoalState, WeekPeriod, WeekPeriodWithDay
from app.models.move import (
    DailyGoalMove,
    DailyGoalToMovePreview,
    QuarterlyGoalToUpdate,
    QuarterlyGoalToUpdatePreview,
    WeekMovePlan,
    WeekMovePreview,
    WeekMoveResult,
    WeekOption,
    WeekStateToCopy,
    WeekStateToCopyPreview,
    WeeklyGoalMoveMode,
    WeeklyGoalMovePreview,
    WeeklyGoalMoveResult,
)
from app.services.goal_store import GoalStore
from app.utils.calendar import previous_week, weeks_of
from app.utils.errors import InvalidArgumentError
from app.utils.lineage import index_by_root, next_carry_over, normalize_star_pin, root_goal_id
from app.utils.path import SEPARATOR, child_path

logger = logging.getLogger(__name__)


def _newest_state_per_goal(entries: list[WeekStateToCopy]) -> list[WeekStateToCopy]:
    """Deduplicate weekly entries by goal id; the most recently created state wins."""
    unique: dict[str, WeekStateToCopy] = {}
    for entry in entries:
        current = unique.get(entry.goal.id)
        if current is None or _state_order(entry.state) > _state_order(current.state):
            unique[entry.goal.id] = entry
    return list(unique.values())


def _state_order(state: GoalState):
    return (state.created_at.timestamp() if state.created_at else 0.0, state.id)


class QuarterlyParentResolver:
    """
    Map source quarterly goals onto the target quarter.

    Within one quarter a quarterly goal is its own target. Across quarters
    the target is the goal of the same lineage in the target quarter, which
    is created (with a bumped carry-over) when none exists yet.
    """

    def __init__(
        self,
        store: GoalStore,
        actor: Actor,
        to: WeekPeriod,
        same_quarter: bool,
        target_states: dict[str, GoalState],
    ):
        self.store = store
        self.actor = actor
        self.to = to
        self.same_quarter = same_quarter
        self.target_states = target_states
        self._targets: dict[str, Goal] = {}
        self._by_root: Optional[dict[str, Goal]] = None

    async def resolve(self, source: Optional[Goal]) -> Optional[Goal]:
        if source is None or self.same_quarter:
            return source
        if source.id in self._targets:
            return self._targets[source.id]

        if self._by_root is None:
            candidates = await self.store.list_goals_by_quarter(
                self.actor.user_id, self.to.year, self.to.quarter, depth=GoalDepth.QUARTERLY
            )
            self._by_root = index_by_root(candidates)

        root = root_goal_id(source)
        target = self._by_root.get(root)
        if target is None:
            target = await self.store.insert_goal({
                "user_id": self.actor.user_id,
                "year": self.to.year,
                "quarter": self.to.quarter,
                "title": source.title,
                "details": source.details,
                "due_date": source.due_date,
                "domain_id": source.domain_id,
                "in_path": SEPARATOR,
                "depth": GoalDepth.QUARTERLY,
                "carry_over": next_carry_over(source.id, source.carry_over),
            })
            self.target_states[target.id] = await self.store.insert_state({
                "user_id": self.actor.user_id,
                "goal_id": target.id,
                "year": self.to.year,
                "quarter": self.to.quarter,
                "week_number": self.to.week_number,
            })
            await self.store.transfer_fire_flag(self.actor.user_id, source.id, target.id)
            self._by_root[root] = target
            logger.info("Created quarterly goal %s from %s in target quarter", target.id, source.id)

        self._targets[source.id] = target
        return target


class WeekMoveService:
    """Service for moving goals between weeks."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def plan_week_move(self, store: GoalStore, actor: Actor, from_: WeekPeriod) -> WeekMovePlan:
        """
        Classify the goals of a source week.

        Weekly goals are carried when they are incomplete or have at least
        one incomplete daily child in the week; those children travel with
        them. Quarterly goals that are starred or pinned in the week carry
        the flags forward when at least one of their weekly goals is still
        incomplete. Daily goals are never carried on their own.

        Args:
            store: Store bound to the running transaction
            actor: Acting user
            from_: Source week

        Returns:
            The move plan
        """
        states = await store.list_states_by_week(
            actor.user_id, from_.year, from_.quarter, from_.week_number
        )
        goals = await store.get_goals(state.goal_id for state in states)
        states_in_week = {state.goal_id for state in states}

        weekly: list[tuple[Goal, GoalState]] = []
        quarterly: list[tuple[Goal, GoalState]] = []
        for state in states:
            goal = goals.get(state.goal_id)
            if goal is None or goal.user_id != actor.user_id:
                continue
            if goal.depth == GoalDepth.WEEKLY:
                weekly.append((goal, state))
            elif goal.depth == GoalDepth.QUARTERLY:
                quarterly.append((goal, state))

        parent_ids = [goal.id for goal, _ in weekly] + [goal.id for goal, _ in quarterly]
        children, parents = await store.fan_out(
            store.list_children_batch(actor.user_id, parent_ids, from_.year, from_.quarter),
            store.get_goals(goal.parent_id for goal, _ in weekly if goal.parent_id),
        )
        # states come oldest first, so the newest state of a goal wins
        daily_states = {state.goal_id: state for state in states}

        plan = WeekMovePlan()
        for goal, state in weekly:
            incomplete_children = [
                child
                for child in children.get(goal.id, [])
                if child.depth == GoalDepth.DAILY
                and child.id in states_in_week
                and not child.is_complete
            ]
            if goal.is_complete and not incomplete_children:
                continue

            quarterly_goal = parents.get(goal.parent_id) if goal.parent_id else None
            plan.week_states_to_copy.append(WeekStateToCopy(
                goal=goal,
                state=state,
                carry_over=next_carry_over(goal.id, state.carry_over or goal.carry_over),
                quarterly_goal_id=goal.parent_id,
                daily_goals=[
                    DailyGoalMove(
                        goal=child,
                        state=daily_states[child.id],
                        weekly_goal=goal,
                        quarterly_goal=quarterly_goal,
                    )
                    for child in incomplete_children
                ],
            ))

        seen_quarterly: set[str] = set()
        for goal, state in quarterly:
            if goal.id in seen_quarterly or not (state.is_starred or state.is_pinned):
                continue
            has_incomplete_weekly = any(
                child.depth == GoalDepth.WEEKLY and not child.is_complete
                for child in children.get(goal.id, [])
            )
            if not has_incomplete_weekly:
                continue
            seen_quarterly.add(goal.id)
            is_starred, is_pinned = normalize_star_pin(state.is_starred, state.is_pinned)
            plan.quarterly_goals_to_update.append(
                QuarterlyGoalToUpdate(goal=goal, is_starred=is_starred, is_pinned=is_pinned)
            )

        return plan

    def build_preview(self, plan: WeekMovePlan, source: Optional[WeekPeriod] = None) -> WeekMovePreview:
        """Summarize a plan for the caller."""
        return WeekMovePreview(
            is_dry_run=True,
            can_pull=True,
            source=source,
            week_states_to_copy=[
                WeekStateToCopyPreview(
                    title=entry.goal.title,
                    carry_over=entry.carry_over,
                    daily_goals_count=len(entry.daily_goals),
                    quarterly_goal_id=entry.quarterly_goal_id,
                )
                for entry in plan.week_states_to_copy
            ],
            daily_goals_to_move=[
                DailyGoalToMovePreview(
                    id=daily.goal.id,
                    title=daily.goal.title,
                    weekly_goal_id=daily.weekly_goal.id,
                    weekly_goal_title=daily.weekly_goal.title,
                    quarterly_goal_id=daily.quarterly_goal.id if daily.quarterly_goal else None,
                    quarterly_goal_title=daily.quarterly_goal.title if daily.quarterly_goal else None,
                )
                for daily in plan.daily_goals_to_move
            ],
            quarterly_goals_to_update=[
                QuarterlyGoalToUpdatePreview(
                    id=update.goal.id,
                    title=update.goal.title,
                    is_starred=update.is_starred,
                    is_pinned=update.is_pinned,
                )
                for update in plan.quarterly_goals_to_update
            ],
        )

    async def execute_week_move(
        self,
        store: GoalStore,
        actor: Actor,
        plan: WeekMovePlan,
        from_: WeekPeriod,
        to: WeekPeriodWithDay,
    ) -> tuple[int, int, int]:
        """
        Apply a plan to the target week.

        Returns:
            (week_states_copied, daily_goals_moved, quarterly_goals_updated)
        """
        user_id = actor.user_id
        target_states = await store.list_states_by_week(user_id, to.year, to.quarter, to.week_number)
        target_goals = await store.get_goals(state.goal_id for state in target_states)
        weekly_by_root = index_by_root(
            goal for goal in target_goals.values() if goal.depth == GoalDepth.WEEKLY
        )
        state_by_goal: dict[str, GoalState] = {}
        for state in target_states:
            state_by_goal.setdefault(state.goal_id, state)

        same_quarter = (from_.year, from_.quarter) == (to.year, to.quarter)
        resolver = QuarterlyParentResolver(store, actor, to, same_quarter, state_by_goal)

        unique_entries = _newest_state_per_goal(plan.week_states_to_copy)
        source_parents = await store.get_goals(
            entry.quarterly_goal_id for entry in unique_entries if entry.quarterly_goal_id
        )

        copied = 0
        daily_goals_moved = 0
        for entry in unique_entries:
            root = entry.carry_over.from_goal.root_goal_id
            source_parent = source_parents.get(entry.quarterly_goal_id)
            if source_parent is None and not same_quarter:
                logger.warning(
                    "Skipping weekly goal %s: quarterly goal %s not found",
                    entry.goal.id, entry.quarterly_goal_id,
                )
                continue
            parent = await resolver.resolve(source_parent)

            target = weekly_by_root.get(root)
            if target is None:
                target = await store.insert_goal({
                    "user_id": user_id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "title": entry.goal.title,
                    "details": entry.goal.details,
                    "due_date": entry.goal.due_date,
                    "domain_id": entry.goal.domain_id,
                    "parent_id": parent.id if parent else entry.goal.parent_id,
                    "in_path": child_path(parent.in_path, parent.id) if parent else entry.goal.in_path,
                    "depth": GoalDepth.WEEKLY,
                    "carry_over": entry.carry_over,
                })
                weekly_by_root[root] = target

            if target.id not in state_by_goal:
                state_by_goal[target.id] = await store.insert_state({
                    "user_id": user_id,
                    "goal_id": target.id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "week_number": to.week_number,
                    "is_starred": False,
                    "is_pinned": False,
                    "carry_over": entry.carry_over,
                })

            copied += 1
            await store.transfer_fire_flag(user_id, entry.goal.id, target.id)

            daily_path = child_path(target.in_path, target.id)
            for daily in entry.daily_goals:
                await store.patch_goal(daily.goal.id, {
                    "parent_id": target.id,
                    "in_path": daily_path,
                    "depth": GoalDepth.DAILY,
                    "year": to.year,
                    "quarter": to.quarter,
                })
                await store.delete_states([daily.state.id])

                day_of_week = to.day_of_week
                if day_of_week is None and daily.state.daily is not None:
                    day_of_week = daily.state.daily.day_of_week
                await store.insert_state({
                    "user_id": user_id,
                    "goal_id": daily.goal.id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "week_number": to.week_number,
                    "daily": {"day_of_week": int(day_of_week)} if day_of_week else None,
                })
                daily_goals_moved += 1

        for update in plan.quarterly_goals_to_update:
            quarterly_goal = await resolver.resolve(update.goal)
            existing = state_by_goal.get(quarterly_goal.id)

            if existing is None:
                is_starred, is_pinned = normalize_star_pin(update.is_starred, update.is_pinned)
                state_by_goal[quarterly_goal.id] = await store.insert_state({
                    "user_id": user_id,
                    "goal_id": quarterly_goal.id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "week_number": to.week_number,
                    "is_starred": is_starred,
                    "is_pinned": is_pinned,
                })
                continue

            # an existing star in the target week wins over carried flags
            if existing.is_starred:
                is_starred, is_pinned = True, False
            else:
                is_starred, is_pinned = normalize_star_pin(update.is_starred, update.is_pinned)
            await store.patch_state(existing.id, {"is_starred": is_starred, "is_pinned": is_pinned})

        return copied, daily_goals_moved, len(plan.quarterly_goals_to_update)

    async def move_week(
        self,
        actor: Actor,
        from_: WeekPeriod,
        to: WeekPeriodWithDay,
        dry_run: bool = False,
    ) -> Union[WeekMovePreview, WeekMoveResult]:
        """
        Carry the incomplete goals of one week into another.

        Args:
            actor: Acting user
            from_: Source week
            to: Target week, optionally with the day moved daily goals land on
            dry_run: Only compute the preview

        Returns:
            Preview on dry run, otherwise the result counts with the preview

        Raises:
            InvalidArgumentError: If source and target are the same week
        """
        if (from_.year, from_.quarter, from_.week_number) == (to.year, to.quarter, to.week_number):
            raise InvalidArgumentError("Source and target week must differ")

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            plan = await self.plan_week_move(store, actor, from_)
            preview = self.build_preview(plan, source=from_)
            if dry_run:
                return preview
            return await self._commit(store, actor, plan, preview, from_, to)

    async def pull_from_last_non_empty_week(
        self,
        actor: Actor,
        to: WeekPeriodWithDay,
        dry_run: bool = False,
    ) -> Union[WeekMovePreview, WeekMoveResult]:
        """
        Carry goals forward from the most recent earlier week that has any.

        Walks back week by week, across quarter boundaries, up to
        `settings.last_week_search_limit` weeks.

        Returns:
            Preview or result; `can_pull` is False when no week qualifies
        """
        year, quarter, week_number = to.year, to.quarter, to.week_number

        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            for _ in range(settings.last_week_search_limit):
                year, quarter, week_number = previous_week(year, quarter, week_number)
                source = WeekPeriod(year=year, quarter=quarter, week_number=week_number)
                plan = await self.plan_week_move(store, actor, source)
                if plan.week_states_to_copy:
                    break
            else:
                return WeekMovePreview(is_dry_run=dry_run, can_pull=False)

            preview = self.build_preview(plan, source=source)
            if dry_run:
                return preview
            return await self._commit(store, actor, plan, preview, source, to)

    async def _commit(
        self,
        store: GoalStore,
        actor: Actor,
        plan: WeekMovePlan,
        preview: WeekMovePreview,
        from_: WeekPeriod,
        to: WeekPeriodWithDay,
    ) -> WeekMoveResult:
        copied, moved, updated = await self.execute_week_move(store, actor, plan, from_, to)
        logger.info(
            "Moved week %s-Q%s-W%s to %s-Q%s-W%s: %d weekly, %d daily, %d quarterly",
            from_.year, from_.quarter, from_.week_number,
            to.year, to.quarter, to.week_number,
            copied, moved, updated,
        )
        return WeekMoveResult(
            source=preview.source,
            week_states_to_copy=preview.week_states_to_copy,
            daily_goals_to_move=preview.daily_goals_to_move,
            quarterly_goals_to_update=preview.quarterly_goals_to_update,
            week_states_copied=copied,
            daily_goals_moved=moved,
            quarterly_goals_updated=updated,
        )

    async def move_weekly_goal_to_week(
        self,
        actor: Actor,
        goal_id: str,
        from_: WeekPeriod,
        to: WeekPeriod,
        dry_run: bool = False,
    ) -> Union[WeeklyGoalMovePreview, WeeklyGoalMoveResult]:
        """
        Move one weekly goal to another week of the same quarter.

        When none of its daily goals is complete the goal moves whole: it
        leaves every other week and all daily goals follow it. Otherwise it
        stays behind with the completed daily goals, and a carried copy in
        the target week takes the incomplete ones. A goal of the same
        lineage already in the target week is reused in both cases. Moved
        daily goals land on Monday.

        Args:
            actor: Acting user
            goal_id: Weekly goal ID
            from_: Week the goal is moved out of
            to: Target week
            dry_run: Only compute the preview

        Returns:
            Preview on dry run, otherwise the result with the target goal id

        Raises:
            NotFoundError: If goal not found
            UnauthorizedError: If goal belongs to another user
            InvalidArgumentError: If the goal is not a weekly goal of the
                source quarter, or the target is not another week of it
        """
        if (to.year, to.quarter) != (from_.year, from_.quarter):
            raise InvalidArgumentError("Target week must be in the same quarter")
        if to.week_number not in weeks_of(from_.year, from_.quarter).weeks:
            raise InvalidArgumentError(
                f"Target week {to.week_number} is not within quarter {from_.quarter}"
            )
        if to.week_number == from_.week_number:
            raise InvalidArgumentError("Source and target week must differ")

        user_id = actor.user_id
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.require_goal(actor, goal_id)
            if goal.depth != GoalDepth.WEEKLY:
                raise InvalidArgumentError("Only weekly goals can be moved to another week")
            if (goal.year, goal.quarter) != (from_.year, from_.quarter):
                raise InvalidArgumentError(
                    f"Goal {goal.id} is not in {from_.year}-Q{from_.quarter}"
                )

            children = [
                child
                for child in await store.list_children(user_id, goal.id, from_.year, from_.quarter)
                if child.depth == GoalDepth.DAILY
            ]
            if any(child.is_complete for child in children):
                mode = WeeklyGoalMoveMode.COPY_CHILDREN
                to_move = [child for child in children if not child.is_complete]
            else:
                mode = WeeklyGoalMoveMode.MOVE_ALL
                to_move = children

            parent = await store.get_goal(goal.parent_id) if goal.parent_id else None
            preview = WeeklyGoalMovePreview(
                goal_id=goal.id,
                title=goal.title,
                mode=mode,
                target_week=to,
                daily_goals_to_move=[
                    DailyGoalToMovePreview(
                        id=child.id,
                        title=child.title,
                        weekly_goal_id=goal.id,
                        weekly_goal_title=goal.title,
                        quarterly_goal_id=parent.id if parent else None,
                        quarterly_goal_title=parent.title if parent else None,
                    )
                    for child in to_move
                ],
            )
            if dry_run:
                return preview

            target_states = await store.list_states_by_week(
                user_id, to.year, to.quarter, to.week_number
            )
            in_target_week = {state.goal_id for state in target_states}
            target_goals = await store.get_goals(in_target_week)
            existing = index_by_root(
                other
                for other in target_goals.values()
                if other.depth == GoalDepth.WEEKLY and other.id != goal.id
            ).get(root_goal_id(goal))

            if mode == WeeklyGoalMoveMode.MOVE_ALL and existing is None:
                target = goal
                source_state = await store.find_state(
                    user_id, goal.id, from_.year, from_.quarter, from_.week_number
                )
                await store.delete_states_for_goals([goal.id])
                await store.insert_state({
                    "user_id": user_id,
                    "goal_id": goal.id,
                    "year": to.year,
                    "quarter": to.quarter,
                    "week_number": to.week_number,
                    "carry_over": source_state.carry_over if source_state else None,
                })
            else:
                target = existing
                if target is None:
                    target = await store.insert_goal({
                        "user_id": user_id,
                        "year": to.year,
                        "quarter": to.quarter,
                        "title": goal.title,
                        "details": goal.details,
                        "due_date": goal.due_date,
                        "domain_id": goal.domain_id,
                        "parent_id": goal.parent_id,
                        "in_path": goal.in_path,
                        "depth": GoalDepth.WEEKLY,
                        "carry_over": next_carry_over(goal.id, goal.carry_over),
                    })
                if target.id not in in_target_week:
                    await store.insert_state({
                        "user_id": user_id,
                        "goal_id": target.id,
                        "year": to.year,
                        "quarter": to.quarter,
                        "week_number": to.week_number,
                        "carry_over": target.carry_over,
                    })
                await store.transfer_fire_flag(user_id, goal.id, target.id)

            child_states: dict[str, GoalState] = {}
            for state in await store.list_states_for_goals(
                user_id, [child.id for child in to_move], from_.year, from_.quarter, from_.week_number
            ):
                child_states.setdefault(state.goal_id, state)

            daily_path = child_path(target.in_path, target.id)
            for child in to_move:
                if target.id != goal.id:
                    await store.patch_goal(child.id, {
                        "parent_id": target.id,
                        "in_path": daily_path,
                        "depth": GoalDepth.DAILY,
                    })
                state = child_states.get(child.id)
                if state is None:
                    await store.insert_state({
                        "user_id": user_id,
                        "goal_id": child.id,
                        "year": to.year,
                        "quarter": to.quarter,
                        "week_number": to.week_number,
                        "daily": {"day_of_week": DayOfWeek.MONDAY},
                    })
                else:
                    await store.patch_state(state.id, {
                        "week_number": to.week_number,
                        "daily": {"day_of_week": DayOfWeek.MONDAY},
                    })

            if mode == WeeklyGoalMoveMode.MOVE_ALL and target.id != goal.id:
                await store.delete_states_for_goals([goal.id])
                await store.delete_goals([goal.id])

            logger.info(
                "Moved weekly goal %s to week %s (%s) as %s: %d daily",
                goal.id, to.week_number, mode.value, target.id, len(to_move),
            )
            return WeeklyGoalMoveResult(
                **preview.model_dump(exclude={"is_dry_run"}),
                new_goal_id=target.id,
                daily_goals_moved=len(to_move),
            )

    def list_available_weeks(self, current: WeekPeriod) -> list[WeekOption]:
        """
        List the weeks of the current quarter as move targets.

        Labels mark the current week, the week after it and the past weeks.
        """
        weeks = weeks_of(current.year, current.quarter).weeks
        # compare positions, not numbers: a spill week 1 comes last in Q4
        if current.week_number in weeks:
            current_index = weeks.index(current.week_number)
            next_index = current_index + 1
        else:
            current_index = None
            next_index = sum(1 for week in weeks if week < current.week_number)

        options = []
        for index, week in enumerate(weeks):
            if index == current_index:
                suffix = " (current)"
            elif index == next_index:
                suffix = " (next)"
            elif index < next_index:
                suffix = " (past)"
            else:
                suffix = ""
            options.append(WeekOption(
                year=current.year,
                quarter=current.quarter,
                week_number=week,
                label=f"Week {week}{suffix}",
            ))
        return options
