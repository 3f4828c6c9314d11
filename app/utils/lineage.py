"""Lineage tracking for carried-over goals.

Every carry-over stores `{previous_goal_id, root_goal_id}`. The root id is
stable along an arbitrarily long chain and serves as the idempotency key:
a target period already holding a goal with the same root reuses it.
"""
from typing import Iterable, Optional

from app.models.goal import CarryOver, FromGoal, Goal


def root_goal_id(goal: Goal) -> str:
    """Root of a goal's lineage; a goal that was never carried is its own root."""
    if goal.carry_over is not None:
        return goal.carry_over.from_goal.root_goal_id
    return goal.id


def next_carry_over(goal_id: str, previous: Optional[CarryOver] = None) -> CarryOver:
    """
    Carry-over record for the next hop of a chain.

    Args:
        goal_id: Id of the goal being carried (becomes `previous_goal_id`)
        previous: The carried goal's own carry-over record, if any

    Returns:
        New record with `num_weeks` bumped and the root preserved

    Examples:
        >>> next_carry_over("a").from_goal.root_goal_id
        'a'
    """
    if previous is None:
        return CarryOver(
            num_weeks=1,
            from_goal=FromGoal(previous_goal_id=goal_id, root_goal_id=goal_id),
        )
    return CarryOver(
        num_weeks=previous.num_weeks + 1,
        from_goal=FromGoal(
            previous_goal_id=goal_id,
            root_goal_id=previous.from_goal.root_goal_id,
        ),
    )


def dedupe_by_root(goals: Iterable[Goal]) -> list[Goal]:
    """Keep the first goal of each lineage, preserving order."""
    seen: set[str] = set()
    unique = []
    for goal in goals:
        root = root_goal_id(goal)
        if root in seen:
            continue
        seen.add(root)
        unique.append(goal)
    return unique


def index_by_root(goals: Iterable[Goal]) -> dict[str, Goal]:
    """Map lineage root -> goal. The first goal seen for a root wins."""
    index: dict[str, Goal] = {}
    for goal in goals:
        index.setdefault(root_goal_id(goal), goal)
    return index


def normalize_star_pin(is_starred: bool, is_pinned: bool) -> tuple[bool, bool]:
    """A starred goal is never also pinned."""
    return is_starred, is_pinned and not is_starred
