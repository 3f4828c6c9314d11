"""Deletion service - cascade deletion of a goal subtree."""
import logging
from typing import Union

from app.database import transaction
from app.models.actor import Actor
from app.models.goal import Goal
from app.models.move import DeletionNode, DeletionPreview, DeletionResult, OrphanedStatesReport
from app.services.goal_store import GoalStore

logger = logging.getLogger(__name__)


def build_deletion_tree(
    root: Goal, descendants: list[Goal], weeks_by_goal: dict[str, list[int]]
) -> DeletionNode:
    """Arrange a goal and its descendants as a nested preview tree."""
    by_parent: dict[str, list[Goal]] = {}
    for goal in descendants:
        by_parent.setdefault(goal.parent_id, []).append(goal)

    def to_node(goal: Goal) -> DeletionNode:
        return DeletionNode(
            id=goal.id,
            title=goal.title,
            depth=int(goal.depth),
            children=[to_node(child) for child in by_parent.get(goal.id, [])],
            weeks=weeks_by_goal.get(goal.id) or None,
        )

    return to_node(root)


class DeletionService:
    """Service for deleting goals together with their descendants."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def delete_goal(
        self, actor: Actor, goal_id: str, dry_run: bool = False
    ) -> Union[DeletionPreview, DeletionResult]:
        """
        Delete a goal, its whole subtree and all of their states.

        Args:
            actor: Acting user
            goal_id: Goal ID
            dry_run: Only return the tree that would be deleted

        Returns:
            Preview tree on dry run, otherwise the deleted goal's id

        Raises:
            NotFoundError: If goal not found
            UnauthorizedError: If goal belongs to another user
        """
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.require_goal(actor, goal_id)
            descendants = [
                child
                for child in await store.collect_subtree(goal)
                if child.user_id == actor.user_id
            ]
            goal_ids = [goal.id] + [child.id for child in descendants]

            if dry_run:
                states = await store.list_states_for_goals(actor.user_id, goal_ids)
                weeks_by_goal: dict[str, set[int]] = {}
                for state in states:
                    weeks_by_goal.setdefault(state.goal_id, set()).add(state.week_number)
                tree = build_deletion_tree(
                    goal,
                    descendants,
                    {key: sorted(weeks) for key, weeks in weeks_by_goal.items()},
                )
                return DeletionPreview(is_dry_run=True, goals_to_delete=[tree])

            states_deleted = await store.delete_states_for_goals(goal_ids)
            goals_deleted = await store.delete_goals(goal_ids)
            await store.remove_fire_flags(actor.user_id, goal_ids)
            logger.info(
                "Deleted goal %s: %d goals, %d states", goal.id, goals_deleted, states_deleted
            )
            return DeletionResult(goal_id=goal.id)

    async def cleanup_orphaned_states(self, actor: Actor, dry_run: bool = True) -> OrphanedStatesReport:
        """
        Find (and unless `dry_run`, delete) states whose goal no longer exists.
        """
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            states = await store.list_states_for_user(actor.user_id)
            existing = await store.get_goals(state.goal_id for state in states)
            orphaned = [state.id for state in states if state.goal_id not in existing]

            if dry_run or not orphaned:
                return OrphanedStatesReport(is_dry_run=dry_run, orphaned_state_ids=orphaned)

            deleted = await store.delete_states(orphaned)
            logger.info("Deleted %d orphaned states for user %s", deleted, actor.user_id)
            return OrphanedStatesReport(
                is_dry_run=False, orphaned_state_ids=orphaned, deleted=deleted
            )
