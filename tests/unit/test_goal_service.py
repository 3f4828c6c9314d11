"""Tests for GoalService and FireService."""
import pytest


@pytest.mark.asyncio
class TestGoalServiceCreate:
    """Tests for creating goals."""

    async def test_create_quarterly_goal_seeds_every_week(self, db, actor):
        """Test a quarterly goal gets a state for each week of its quarter."""
        from app.models.goal import GoalDepth, QuarterlyGoalCreate
        from app.services.goal_service import GoalService
        from app.services.goal_store import GoalStore

        goal = await GoalService(db).create_quarterly_goal(
            actor,
            QuarterlyGoalCreate(
                title="Launch product", year=2024, quarter=1, week_number=3,
                is_starred=True, is_pinned=True,
            ),
        )

        assert goal.depth == GoalDepth.QUARTERLY
        assert goal.in_path == "/"

        states = await GoalStore(db).list_states_for_goals(actor.user_id, [goal.id])
        assert sorted(state.week_number for state in states) == list(range(1, 14))
        flagged = [state for state in states if state.is_starred or state.is_pinned]
        assert len(flagged) == 1
        assert flagged[0].week_number == 3
        assert flagged[0].is_starred is True
        assert flagged[0].is_pinned is False

    async def test_create_quarterly_goal_week_outside_quarter(self, db, actor):
        """Test the flagged week must belong to the quarter."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.goal_service import GoalService
        from app.utils.errors import InvalidArgumentError

        with pytest.raises(InvalidArgumentError):
            await GoalService(db).create_quarterly_goal(
                actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=20)
            )

    async def test_create_goal_empty_title(self, db, actor):
        """Test a blank title is rejected."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.goal_service import GoalService
        from app.utils.errors import InvalidArgumentError

        with pytest.raises(InvalidArgumentError):
            await GoalService(db).create_quarterly_goal(
                actor, QuarterlyGoalCreate(title="   ", year=2024, quarter=1, week_number=1)
            )

    async def test_create_weekly_and_daily_goal(self, db, actor):
        """Test paths and states of weekly and daily goals."""
        from app.models.goal import DailyGoalCreate, QuarterlyGoalCreate, WeeklyGoalCreate
        from app.services.goal_service import GoalService
        from app.services.goal_store import GoalStore

        service = GoalService(db)
        quarterly = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )
        weekly = await service.create_weekly_goal(
            actor, WeeklyGoalCreate(title="W", parent_id=quarterly.id, week_number=2)
        )
        daily = await service.create_daily_goal(
            actor, DailyGoalCreate(title="D", parent_id=weekly.id, week_number=2, day_of_week=4)
        )

        assert weekly.in_path == f"/{quarterly.id}"
        assert daily.in_path == f"/{quarterly.id}/{weekly.id}"
        assert daily.year == 2024 and daily.quarter == 1

        state = await GoalStore(db).find_state(actor.user_id, daily.id, 2024, 1, 2)
        assert state.daily.day_of_week == 4

    async def test_weekly_goal_requires_quarterly_parent(self, db, actor):
        """Test a weekly goal cannot hang under another weekly goal."""
        from app.models.goal import QuarterlyGoalCreate, WeeklyGoalCreate
        from app.services.goal_service import GoalService
        from app.utils.errors import InvalidArgumentError

        service = GoalService(db)
        quarterly = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )
        weekly = await service.create_weekly_goal(
            actor, WeeklyGoalCreate(title="W", parent_id=quarterly.id, week_number=1)
        )

        with pytest.raises(InvalidArgumentError):
            await service.create_weekly_goal(
                actor, WeeklyGoalCreate(title="W2", parent_id=weekly.id, week_number=1)
            )

    async def test_create_under_foreign_parent(self, db, actor, other_actor):
        """Test another user's goal cannot be used as parent."""
        from app.models.goal import QuarterlyGoalCreate, WeeklyGoalCreate
        from app.services.goal_service import GoalService
        from app.utils.errors import UnauthorizedError

        service = GoalService(db)
        quarterly = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )

        with pytest.raises(UnauthorizedError):
            await service.create_weekly_goal(
                other_actor, WeeklyGoalCreate(title="W", parent_id=quarterly.id, week_number=1)
            )


@pytest.mark.asyncio
class TestGoalServiceUpdate:
    """Tests for updating goals."""

    async def test_completion_clears_fire_flag(self, db, actor):
        """Test completing a goal removes its fire flag."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.fire_service import FireService
        from app.services.goal_service import GoalService

        service = GoalService(db)
        fire = FireService(db)
        goal = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )
        await fire.toggle_fire_status(actor, goal.id)

        completed = await service.set_goal_completion(actor, goal.id, True)

        assert completed.is_complete is True
        assert completed.completed_at is not None
        assert await fire.list_fire_goals(actor) == []

    async def test_reopen_goal(self, db, actor):
        """Test marking a goal incomplete clears completed_at."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.goal_service import GoalService

        service = GoalService(db)
        goal = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )
        await service.set_goal_completion(actor, goal.id, True)
        await service.set_goal_completion(actor, goal.id, False)

        stored = await service.get_goal(actor, goal.id)
        assert stored.is_complete is False
        assert stored.completed_at is None

    async def test_status_star_wins_over_pin(self, db, actor):
        """Test starring and pinning at once stores starred only."""
        from app.models.goal import QuarterlyGoalCreate, QuarterlyStatusUpdate
        from app.services.goal_service import GoalService

        service = GoalService(db)
        goal = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )

        state = await service.update_quarterly_goal_status(
            actor,
            goal.id,
            QuarterlyStatusUpdate(year=2024, quarter=1, week_number=5, is_starred=True, is_pinned=True),
        )

        assert state.week_number == 5
        assert state.is_starred is True
        assert state.is_pinned is False

    async def test_update_goal_parent_rewrites_child_paths(self, db, actor):
        """Test reparenting moves the daily children along."""
        from app.models.goal import DailyGoalCreate, QuarterlyGoalCreate, WeeklyGoalCreate
        from app.services.goal_service import GoalService

        service = GoalService(db)
        first = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q1", year=2024, quarter=1, week_number=1)
        )
        second = await service.create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q2", year=2024, quarter=1, week_number=1)
        )
        weekly = await service.create_weekly_goal(
            actor, WeeklyGoalCreate(title="W", parent_id=first.id, week_number=1)
        )
        daily = await service.create_daily_goal(
            actor, DailyGoalCreate(title="D", parent_id=weekly.id, week_number=1, day_of_week=1)
        )

        moved = await service.update_goal_parent(actor, weekly.id, second.id)

        assert moved.parent_id == second.id
        assert moved.in_path == f"/{second.id}"
        stored_daily = await service.get_goal(actor, daily.id)
        assert stored_daily.in_path == f"/{second.id}/{weekly.id}"


@pytest.mark.asyncio
class TestFireService:
    """Tests for fire flags."""

    async def test_toggle_fire_status(self, db, actor):
        """Test toggling twice turns the flag on and off."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.fire_service import FireService
        from app.services.goal_service import GoalService

        goal = await GoalService(db).create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )
        fire = FireService(db)

        on = await fire.toggle_fire_status(actor, goal.id)
        assert on.is_on_fire is True
        assert await fire.list_fire_goals(actor) == [goal.id]

        off = await fire.toggle_fire_status(actor, goal.id)
        assert off.is_on_fire is False
        assert await fire.list_fire_goals(actor) == []

    async def test_toggle_fire_not_found(self, db, actor):
        """Test toggling a missing goal."""
        from bson import ObjectId
        from app.services.fire_service import FireService
        from app.utils.errors import NotFoundError

        with pytest.raises(NotFoundError):
            await FireService(db).toggle_fire_status(actor, str(ObjectId()))

    async def test_toggle_fire_unauthorized(self, db, actor, other_actor):
        """Test toggling another user's goal."""
        from app.models.goal import QuarterlyGoalCreate
        from app.services.fire_service import FireService
        from app.services.goal_service import GoalService
        from app.utils.errors import UnauthorizedError

        goal = await GoalService(db).create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )

        with pytest.raises(UnauthorizedError):
            await FireService(db).toggle_fire_status(other_actor, goal.id)

    async def test_transfer_fire_flag(self, db, actor):
        """Test a flag moves to the new id and is not duplicated."""
        from app.services.fire_service import FireService
        from app.services.goal_store import GoalStore

        await GoalStore(db).add_fire_flag(actor.user_id, "old")
        fire = FireService(db)

        assert await fire.transfer_fire_flag(actor, "old", "new") is True
        assert await fire.list_fire_goals(actor) == ["new"]
        assert await fire.transfer_fire_flag(actor, "old", "other") is False
