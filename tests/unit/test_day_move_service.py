"""Tests for DayMoveService."""
import pytest


async def seed_day(db, actor, days=(1,), week=1):
    """Quarterly -> weekly -> one daily goal per given day, all in `week` of 2024-Q1."""
    from app.models.goal import DailyGoalCreate, QuarterlyGoalCreate, WeeklyGoalCreate
    from app.services.goal_service import GoalService

    service = GoalService(db)
    quarterly = await service.create_quarterly_goal(
        actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=week, is_pinned=True)
    )
    weekly = await service.create_weekly_goal(
        actor, WeeklyGoalCreate(title="W", parent_id=quarterly.id, week_number=week)
    )
    dailies = []
    for day in days:
        dailies.append(await service.create_daily_goal(
            actor,
            DailyGoalCreate(title=f"D{day}", parent_id=weekly.id, week_number=week, day_of_week=day),
        ))
    return quarterly, weekly, dailies


def day(week_number, day_of_week, year=2024, quarter=1):
    from app.models.goal import DayPeriod

    return DayPeriod(year=year, quarter=quarter, week_number=week_number, day_of_week=day_of_week)


@pytest.mark.asyncio
class TestMoveDay:
    """Tests for moving daily goals between days."""

    async def test_move_within_week(self, db, actor):
        """Test only the day of the state changes."""
        from app.services.day_move_service import DayMoveService
        from app.services.goal_store import GoalStore

        quarterly, weekly, (monday, tuesday) = await seed_day(db, actor, days=(1, 2))

        result = await DayMoveService(db).move_day(actor, day(1, 1), day(1, 5))

        assert result.tasks_moved == 1
        store = GoalStore(db)
        moved = await store.find_state(actor.user_id, monday.id, 2024, 1, 1)
        assert moved.daily.day_of_week == 5
        untouched = await store.find_state(actor.user_id, tuesday.id, 2024, 1, 1)
        assert untouched.daily.day_of_week == 2

    async def test_move_across_weeks(self, db, actor):
        """Test the state is re-homed to the target week."""
        from app.services.day_move_service import DayMoveService
        from app.services.goal_store import GoalStore

        quarterly, weekly, (monday,) = await seed_day(db, actor)

        result = await DayMoveService(db).move_day(actor, day(1, 1), day(3, 2))

        assert result.tasks_moved == 1
        store = GoalStore(db)
        assert await store.find_state(actor.user_id, monday.id, 2024, 1, 1) is None
        state = await store.find_state(actor.user_id, monday.id, 2024, 1, 3)
        assert state.daily.day_of_week == 2

    async def test_completed_tasks_stay(self, db, actor):
        """Test completed daily goals are left alone by default."""
        from app.services.day_move_service import DayMoveService
        from app.services.goal_service import GoalService

        quarterly, weekly, (first, second) = await seed_day(db, actor, days=(1, 1))
        await GoalService(db).set_goal_completion(actor, first.id, True)

        service = DayMoveService(db)
        preview = await service.move_day(actor, day(1, 1), day(1, 2), dry_run=True)
        assert [task.title for task in preview.tasks] == ["D1"]
        assert len(preview.tasks) == 1

        result = await service.move_day(actor, day(1, 1), day(1, 2), move_only_incomplete=False)
        assert result.tasks_moved == 2

    async def test_dry_run_preview(self, db, actor):
        """Test the preview lists tasks with their parents and writes nothing."""
        from app.services.day_move_service import DayMoveService
        from app.services.goal_store import GoalStore

        quarterly, weekly, (monday,) = await seed_day(db, actor)
        state = await GoalStore(db).find_state(actor.user_id, monday.id, 2024, 1, 1)

        preview = await DayMoveService(db).move_day(actor, day(1, 1), day(1, 3), dry_run=True)

        assert preview.can_move is True
        assert preview.source_day.name == "Monday"
        assert preview.target_day.name == "Wednesday"
        task = preview.tasks[0]
        assert task.id == state.id
        assert task.weekly_goal.id == weekly.id
        assert task.quarterly_goal.id == quarterly.id
        assert task.quarterly_goal.is_pinned is True

        unchanged = await GoalStore(db).find_state(actor.user_id, monday.id, 2024, 1, 1)
        assert unchanged.daily.day_of_week == 1

    async def test_empty_day(self, db, actor):
        """Test an empty source day cannot be moved."""
        from app.services.day_move_service import DayMoveService

        preview = await DayMoveService(db).move_day(actor, day(1, 6), day(1, 7), dry_run=True)

        assert preview.can_move is False
        assert preview.tasks == []

    async def test_same_day_rejected(self, db, actor):
        """Test moving a day onto itself."""
        from app.services.day_move_service import DayMoveService
        from app.utils.errors import InvalidArgumentError

        with pytest.raises(InvalidArgumentError):
            await DayMoveService(db).move_day(actor, day(1, 1), day(1, 1))

    async def test_task_with_missing_parent_is_skipped(self, db, actor):
        """Test a daily goal whose weekly parent is gone is not moved."""
        from app.services.day_move_service import DayMoveService
        from app.services.goal_store import GoalStore

        quarterly, weekly, (monday,) = await seed_day(db, actor)
        await GoalStore(db).delete_goals([weekly.id])

        result = await DayMoveService(db).move_day(actor, day(1, 1), day(1, 2))

        assert result.tasks_moved == 0
