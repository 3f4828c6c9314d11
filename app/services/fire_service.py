"""Fire service - urgent markers that follow goals through carry-over."""
from app.database import transaction
from app.models.actor import Actor
from app.models.goal import FireStatus
from app.services.goal_store import GoalStore


class FireService:
    """Service for handling fire flag operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db

    async def toggle_fire_status(self, actor: Actor, goal_id: str) -> FireStatus:
        """
        Flip the fire flag of a goal.

        Args:
            actor: Acting user
            goal_id: Goal ID

        Returns:
            The goal's fire status after the toggle

        Raises:
            NotFoundError: If goal not found
            UnauthorizedError: If goal belongs to another user
        """
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            goal = await store.require_goal(actor, goal_id)

            if await store.is_on_fire(actor.user_id, goal.id):
                await store.remove_fire_flags(actor.user_id, [goal.id])
                return FireStatus(goal_id=goal.id, is_on_fire=False)

            await store.add_fire_flag(actor.user_id, goal.id)
            return FireStatus(goal_id=goal.id, is_on_fire=True)

    async def list_fire_goals(self, actor: Actor) -> list[str]:
        """List ids of the user's goals currently on fire."""
        store = GoalStore(self.db)
        return await store.list_fire_goal_ids(actor.user_id)

    async def transfer_fire_flag(self, actor: Actor, old_goal_id: str, new_goal_id: str) -> bool:
        """Move a fire flag to a goal's carried-over copy."""
        async with transaction(self.db) as session:
            store = GoalStore(self.db, session)
            return await store.transfer_fire_flag(actor.user_id, old_goal_id, new_goal_id)
