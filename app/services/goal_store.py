"""Goal store - owner-checked access to goals, goal states and fire flags.

All carry-over services read and write through this class. It is bound to
an optional Motor session so every call made inside one `transaction()`
joins the same unit of work.
"""
import asyncio
from datetime import datetime
from enum import IntEnum
from typing import Any, Awaitable, Iterable, Optional

from bson import ObjectId

from app.database import DOMAINS, FIRE_GOALS, GOAL_STATES, GOALS
from app.models.actor import Actor
from app.models.goal import Goal, GoalDepth, GoalState
from app.utils.errors import NotFoundError, UnauthorizedError
from app.utils.path import child_path, subtree_query, validate_goal_path


def to_document(value):
    """Plain BSON-encodable copy of a value: models become dicts, enums become ints."""
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    if isinstance(value, dict):
        return {key: to_document(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_document(item) for item in value]
    if isinstance(value, IntEnum):
        return int(value)
    return value


def to_object_id(goal_id: str):
    """Stored `_id` for a goal id. Ids that are not ObjectIds are kept as strings."""
    if isinstance(goal_id, ObjectId):
        return goal_id
    if ObjectId.is_valid(goal_id):
        return ObjectId(goal_id)
    return goal_id


def require_owner(actor: Actor, goal: Goal) -> None:
    """
    Check that the acting user owns a goal.

    Raises:
        UnauthorizedError: If the goal belongs to someone else
    """
    if goal.user_id != actor.user_id:
        raise UnauthorizedError("Unauthorized")


class GoalStore:
    """Repository over the goals, goal_states and fire_goals collections."""

    def __init__(self, db, session=None):
        """Initialize store with database connection and optional session."""
        self.db = db
        self.session = session
        self.goals = db[GOALS]
        self.states = db[GOAL_STATES]
        self.fire_goals = db[FIRE_GOALS]
        self.domains = db[DOMAINS]

    def _opts(self) -> dict:
        if self.session is None:
            return {}
        return {"session": self.session}

    async def fan_out(self, *aws: Awaitable) -> list[Any]:
        """
        Await independent reads together.

        A Motor session must not be used by concurrent tasks, so inside a
        transaction the reads run one after another.
        """
        if self.session is None:
            return list(await asyncio.gather(*aws))
        return [await aw for aw in aws]

    # Conversion

    def _doc_to_goal(self, doc: dict) -> Goal:
        """Convert database document to Goal model."""
        return Goal.model_validate({**doc, "_id": str(doc["_id"])})

    def _doc_to_state(self, doc: dict) -> GoalState:
        """Convert database document to GoalState model."""
        return GoalState.model_validate({**doc, "_id": str(doc["_id"])})

    async def _find_goals(self, query: dict, sort: Optional[list] = None) -> list[Goal]:
        cursor = self.goals.find(query, **self._opts())
        if sort:
            cursor = cursor.sort(sort)
        docs = await cursor.to_list(length=None)
        return [self._doc_to_goal(doc) for doc in docs]

    async def _find_states(self, query: dict) -> list[GoalState]:
        cursor = self.states.find(query, **self._opts()).sort([("created_at", 1), ("_id", 1)])
        docs = await cursor.to_list(length=None)
        return [self._doc_to_state(doc) for doc in docs]

    # Goals

    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        """Get a goal by id, or None."""
        doc = await self.goals.find_one({"_id": to_object_id(goal_id)}, **self._opts())
        if doc is None:
            return None
        return self._doc_to_goal(doc)

    async def get_goals(self, goal_ids: Iterable[str]) -> dict[str, Goal]:
        """Get many goals by id, keyed by id. Missing ids are left out."""
        ids = list(dict.fromkeys(goal_ids))
        if not ids:
            return {}
        goals = await self._find_goals({"_id": {"$in": [to_object_id(i) for i in ids]}})
        return {goal.id: goal for goal in goals}

    async def require_goal(self, actor: Actor, goal_id: str) -> Goal:
        """
        Get a goal the acting user owns.

        Raises:
            NotFoundError: If the goal does not exist
            UnauthorizedError: If the goal belongs to someone else
        """
        goal = await self.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        require_owner(actor, goal)
        return goal

    async def list_goals_by_quarter(
        self,
        user_id: str,
        year: int,
        quarter: int,
        depth: Optional[GoalDepth] = None,
        is_complete: Optional[bool] = None,
    ) -> list[Goal]:
        """List goals of a (user, year, quarter) partition."""
        query: dict = {"user_id": user_id, "year": year, "quarter": quarter}
        if depth is not None:
            query["depth"] = int(depth)
        if is_complete is not None:
            query["is_complete"] = is_complete
        return await self._find_goals(query, sort=[("created_at", 1), ("_id", 1)])

    async def list_children(
        self,
        user_id: str,
        parent_id: str,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> list[Goal]:
        """List direct children of a goal."""
        batch = await self.list_children_batch(user_id, [parent_id], year, quarter)
        return batch.get(parent_id, [])

    async def list_children_batch(
        self,
        user_id: str,
        parent_ids: Iterable[str],
        year: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> dict[str, list[Goal]]:
        """List direct children of many goals in one query, keyed by parent id."""
        ids = list(dict.fromkeys(parent_ids))
        if not ids:
            return {}
        query: dict = {"user_id": user_id, "parent_id": {"$in": ids}}
        if year is not None:
            query["year"] = year
        if quarter is not None:
            query["quarter"] = quarter

        children: dict[str, list[Goal]] = {}
        for goal in await self._find_goals(query, sort=[("created_at", 1), ("_id", 1)]):
            children.setdefault(goal.parent_id, []).append(goal)
        return children

    async def collect_subtree(self, goal: Goal) -> list[Goal]:
        """All descendants of a goal within its (user, year, quarter) partition."""
        query = {
            "user_id": goal.user_id,
            "year": goal.year,
            "quarter": goal.quarter,
            **subtree_query(child_path(goal.in_path, goal.id)),
        }
        return await self._find_goals(query)

    async def insert_goal(self, fields: dict) -> Goal:
        """
        Insert a goal document.

        Raises:
            InvalidStateError: If a tree goal's `in_path` has the wrong shape
        """
        depth = fields["depth"]
        if depth != GoalDepth.ADHOC:
            validate_goal_path(int(depth), fields["in_path"])

        now = datetime.utcnow()
        doc = {
            "details": None,
            "due_date": None,
            "domain_id": None,
            "parent_id": None,
            "carry_over": None,
            "is_complete": False,
            "completed_at": None,
            "adhoc": None,
            **fields,
            "depth": int(depth),
            "created_at": now,
            "updated_at": now,
        }
        doc = to_document(doc)
        result = await self.goals.insert_one(doc, **self._opts())
        doc["_id"] = result.inserted_id
        return self._doc_to_goal(doc)

    async def patch_goal(self, goal_id: str, fields: dict) -> None:
        """Set fields on a goal."""
        if "in_path" in fields and "depth" in fields:
            validate_goal_path(int(fields["depth"]), fields["in_path"])
        await self.goals.update_one(
            {"_id": to_object_id(goal_id)},
            {"$set": {**to_document(fields), "updated_at": datetime.utcnow()}},
            **self._opts(),
        )

    async def delete_goals(self, goal_ids: Iterable[str]) -> int:
        ids = [to_object_id(i) for i in goal_ids]
        if not ids:
            return 0
        result = await self.goals.delete_many({"_id": {"$in": ids}}, **self._opts())
        return result.deleted_count

    async def list_adhoc_goals(
        self,
        user_id: str,
        year: int,
        week_numbers: Iterable[int],
        is_complete: Optional[bool] = None,
    ) -> list[Goal]:
        """List adhoc goals of an ISO week-year within the given weeks."""
        query: dict = {
            "user_id": user_id,
            "depth": int(GoalDepth.ADHOC),
            "year": year,
            "adhoc.week_number": {"$in": list(week_numbers)},
        }
        if is_complete is not None:
            query["is_complete"] = is_complete
        return await self._find_goals(query, sort=[("created_at", 1), ("_id", 1)])

    async def list_adhoc_goals_in_quarter(
        self,
        user_id: str,
        year: int,
        quarter: int,
        is_complete: Optional[bool] = None,
    ) -> list[Goal]:
        """
        List adhoc goals stored under a quarter.

        Adhoc goals carry the quarter their week's Thursday falls in, so a
        spill week shared by two quarters belongs to exactly one of them.
        """
        query: dict = {
            "user_id": user_id,
            "depth": int(GoalDepth.ADHOC),
            "year": year,
            "quarter": quarter,
        }
        if is_complete is not None:
            query["is_complete"] = is_complete
        return await self._find_goals(query, sort=[("created_at", 1), ("_id", 1)])

    # States

    async def list_states_by_week(
        self,
        user_id: str,
        year: int,
        quarter: int,
        week_number: int,
        day_of_week: Optional[int] = None,
    ) -> list[GoalState]:
        """List the states of one week, oldest first."""
        query: dict = {
            "user_id": user_id,
            "year": year,
            "quarter": quarter,
            "week_number": week_number,
        }
        if day_of_week is not None:
            query["daily.day_of_week"] = day_of_week
        return await self._find_states(query)

    async def list_states_for_goals(
        self,
        user_id: str,
        goal_ids: Iterable[str],
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        week_number: Optional[int] = None,
    ) -> list[GoalState]:
        """List the states of many goals, optionally narrowed to a period."""
        ids = list(dict.fromkeys(goal_ids))
        if not ids:
            return []
        query: dict = {"user_id": user_id, "goal_id": {"$in": ids}}
        if year is not None:
            query["year"] = year
        if quarter is not None:
            query["quarter"] = quarter
        if week_number is not None:
            query["week_number"] = week_number
        return await self._find_states(query)

    async def list_states_for_user(self, user_id: str) -> list[GoalState]:
        return await self._find_states({"user_id": user_id})

    async def find_state(
        self, user_id: str, goal_id: str, year: int, quarter: int, week_number: int
    ) -> Optional[GoalState]:
        """Get the oldest state of a goal in a week, or None."""
        states = await self.list_states_for_goals(user_id, [goal_id], year, quarter, week_number)
        return states[0] if states else None

    async def insert_state(self, fields: dict) -> GoalState:
        """Insert a goal state document."""
        doc = {
            "is_starred": False,
            "is_pinned": False,
            "daily": None,
            "carry_over": None,
            **fields,
            "created_at": datetime.utcnow(),
        }
        doc = to_document(doc)
        result = await self.states.insert_one(doc, **self._opts())
        doc["_id"] = result.inserted_id
        return self._doc_to_state(doc)

    async def patch_state(self, state_id: str, fields: dict) -> None:
        await self.states.update_one(
            {"_id": to_object_id(state_id)}, {"$set": to_document(fields)}, **self._opts()
        )

    async def delete_states(self, state_ids: Iterable[str]) -> int:
        ids = [to_object_id(i) for i in state_ids]
        if not ids:
            return 0
        result = await self.states.delete_many({"_id": {"$in": ids}}, **self._opts())
        return result.deleted_count

    async def delete_states_for_goals(self, goal_ids: Iterable[str]) -> int:
        ids = list(goal_ids)
        if not ids:
            return 0
        result = await self.states.delete_many({"goal_id": {"$in": ids}}, **self._opts())
        return result.deleted_count

    # Domains

    async def get_domain_names(self, user_id: str, domain_ids: Iterable[str]) -> dict[str, str]:
        """Map domain id -> name for the user's domains."""
        ids = [to_object_id(i) for i in dict.fromkeys(domain_ids) if i]
        if not ids:
            return {}
        cursor = self.domains.find({"_id": {"$in": ids}, "user_id": user_id}, **self._opts())
        docs = await cursor.to_list(length=None)
        return {str(doc["_id"]): doc.get("name", "") for doc in docs}

    async def domain_exists(self, user_id: str, domain_id: str) -> bool:
        doc = await self.domains.find_one(
            {"_id": to_object_id(domain_id), "user_id": user_id}, **self._opts()
        )
        return doc is not None

    # Fire flags

    async def is_on_fire(self, user_id: str, goal_id: str) -> bool:
        doc = await self.fire_goals.find_one(
            {"user_id": user_id, "goal_id": goal_id}, **self._opts()
        )
        return doc is not None

    async def add_fire_flag(self, user_id: str, goal_id: str) -> None:
        await self.fire_goals.update_one(
            {"user_id": user_id, "goal_id": goal_id},
            {"$setOnInsert": {"created_at": datetime.utcnow()}},
            upsert=True,
            **self._opts(),
        )

    async def remove_fire_flags(self, user_id: str, goal_ids: Iterable[str]) -> int:
        ids = list(goal_ids)
        if not ids:
            return 0
        result = await self.fire_goals.delete_many(
            {"user_id": user_id, "goal_id": {"$in": ids}}, **self._opts()
        )
        return result.deleted_count

    async def list_fire_goal_ids(self, user_id: str) -> list[str]:
        cursor = self.fire_goals.find({"user_id": user_id}, **self._opts()).sort("created_at", 1)
        docs = await cursor.to_list(length=None)
        return [doc["goal_id"] for doc in docs]

    async def transfer_fire_flag(self, user_id: str, old_goal_id: str, new_goal_id: str) -> bool:
        """
        Move a fire flag from one goal to another.

        Returns:
            True if the old goal was on fire
        """
        if old_goal_id == new_goal_id:
            return False
        if not await self.is_on_fire(user_id, old_goal_id):
            return False
        await self.remove_fire_flags(user_id, [old_goal_id])
        await self.add_fire_flag(user_id, new_goal_id)
        return True
