"""Tests for AdhocService."""
import pytest


async def create_domain(db, user_id="user123", name="Home"):
    result = await db["domains"].insert_one({"user_id": user_id, "name": name})
    return str(result.inserted_id)


@pytest.mark.asyncio
class TestCreateAdhocGoal:
    """Tests for creating adhoc goals."""

    async def test_create_top_level(self, db, actor):
        """Test a top-level adhoc goal."""
        from app.models.goal import AdhocGoalCreate, GoalDepth
        from app.services.adhoc_service import AdhocService

        goal = await AdhocService(db).create_adhoc_goal(
            actor, AdhocGoalCreate(title="  Renew passport ", year=2024, week_number=20)
        )

        assert goal.title == "Renew passport"
        assert goal.depth == GoalDepth.ADHOC
        assert goal.in_path == "/"
        assert goal.adhoc.week_number == 20
        assert goal.quarter == 2

    async def test_child_inherits_week_and_domain(self, db, actor):
        """Test a nested goal takes its parent's week and domain."""
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService

        domain_id = await create_domain(db)
        service = AdhocService(db)
        parent = await service.create_adhoc_goal(
            actor, AdhocGoalCreate(title="Garden", year=2024, week_number=10, domain_id=domain_id)
        )

        child = await service.create_adhoc_goal(
            actor,
            AdhocGoalCreate(title="Buy seeds", year=2024, week_number=40, parent_id=parent.id),
        )

        assert child.parent_id == parent.id
        assert child.adhoc.week_number == 10
        assert child.domain_id == domain_id
        assert child.in_path == f"/{parent.id}"

    async def test_nesting_limit(self, db, actor):
        """Test four levels are allowed and a fifth is refused."""
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import InvalidArgumentError

        service = AdhocService(db)
        parent_id = None
        for level in range(4):
            goal = await service.create_adhoc_goal(
                actor,
                AdhocGoalCreate(title=f"Level {level}", year=2024, week_number=8, parent_id=parent_id),
            )
            parent_id = goal.id

        with pytest.raises(InvalidArgumentError):
            await service.create_adhoc_goal(
                actor, AdhocGoalCreate(title="Too deep", year=2024, week_number=8, parent_id=parent_id)
            )

    async def test_parent_must_be_adhoc(self, db, actor):
        """Test a quarterly goal cannot parent an adhoc goal."""
        from app.models.goal import AdhocGoalCreate, QuarterlyGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.services.goal_service import GoalService
        from app.utils.errors import InvalidArgumentError

        quarterly = await GoalService(db).create_quarterly_goal(
            actor, QuarterlyGoalCreate(title="Q", year=2024, quarter=1, week_number=1)
        )

        with pytest.raises(InvalidArgumentError):
            await AdhocService(db).create_adhoc_goal(
                actor, AdhocGoalCreate(title="A", year=2024, week_number=1, parent_id=quarterly.id)
            )

    async def test_parent_of_other_user(self, db, actor, other_actor):
        """Test another user's adhoc goal cannot be a parent."""
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import InvalidArgumentError

        service = AdhocService(db)
        parent = await service.create_adhoc_goal(
            actor, AdhocGoalCreate(title="Mine", year=2024, week_number=1)
        )

        with pytest.raises(InvalidArgumentError):
            await service.create_adhoc_goal(
                other_actor, AdhocGoalCreate(title="Theirs", year=2024, week_number=1, parent_id=parent.id)
            )

    async def test_week_out_of_range(self, db, actor):
        """Test week numbers above 53 are refused."""
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import InvalidArgumentError

        with pytest.raises(InvalidArgumentError):
            await AdhocService(db).create_adhoc_goal(
                actor, AdhocGoalCreate(title="A", year=2024, week_number=54)
            )

    async def test_unknown_domain(self, db, actor):
        """Test a domain that does not exist is refused."""
        from bson import ObjectId
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import NotFoundError

        with pytest.raises(NotFoundError):
            await AdhocService(db).create_adhoc_goal(
                actor, AdhocGoalCreate(title="A", year=2024, week_number=1, domain_id=str(ObjectId()))
            )

    async def test_foreign_domain(self, db, actor):
        """Test another user's domain is refused."""
        from app.models.goal import AdhocGoalCreate
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import NotFoundError

        domain_id = await create_domain(db, user_id="intruder456")

        with pytest.raises(NotFoundError):
            await AdhocService(db).create_adhoc_goal(
                actor, AdhocGoalCreate(title="A", year=2024, week_number=1, domain_id=domain_id)
            )


@pytest.mark.asyncio
class TestMoveAdhocGoals:
    """Tests for moving adhoc goals between weeks and days."""

    async def test_move_week(self, db, actor):
        """Test open goals move and completed goals stay."""
        from app.models.goal import AdhocGoalCreate, AdhocWeek
        from app.services.adhoc_service import AdhocService
        from app.services.goal_service import GoalService

        service = AdhocService(db)
        open_goal = await service.create_adhoc_goal(
            actor, AdhocGoalCreate(title="Open", year=2024, week_number=13)
        )
        done_goal = await service.create_adhoc_goal(
            actor, AdhocGoalCreate(title="Done", year=2024, week_number=13)
        )
        await GoalService(db).set_goal_completion(actor, done_goal.id, True)

        result = await service.move_adhoc_goals_from_week(
            actor, AdhocWeek(year=2024, week_number=13), AdhocWeek(year=2024, week_number=14)
        )

        assert result.goals_moved == 1
        in_target = await service.list_adhoc_goals_for_week(actor, AdhocWeek(year=2024, week_number=14))
        assert [goal.id for goal in in_target] == [open_goal.id]
        assert in_target[0].quarter == 2

    async def test_move_week_dry_run(self, db, actor):
        """Test the preview lists goals with domain names."""
        from app.models.goal import AdhocGoalCreate, AdhocWeek
        from app.services.adhoc_service import AdhocService

        domain_id = await create_domain(db, name="Work")
        service = AdhocService(db)
        await service.create_adhoc_goal(
            actor, AdhocGoalCreate(title="Report", year=2024, week_number=5, domain_id=domain_id)
        )

        preview = await service.move_adhoc_goals_from_week(
            actor, AdhocWeek(year=2024, week_number=5), AdhocWeek(year=2024, week_number=6),
            dry_run=True,
        )

        assert preview.can_move is True
        assert preview.goals[0].domain_name == "Work"
        still_there = await service.list_adhoc_goals_for_week(actor, AdhocWeek(year=2024, week_number=5))
        assert len(still_there) == 1

    async def test_move_same_week_rejected(self, db, actor):
        """Test moving a week onto itself."""
        from app.models.goal import AdhocWeek
        from app.services.adhoc_service import AdhocService
        from app.utils.errors import InvalidArgumentError

        week = AdhocWeek(year=2024, week_number=5)

        with pytest.raises(InvalidArgumentError):
            await AdhocService(db).move_adhoc_goals_from_week(actor, week, week)

    async def test_move_day(self, db, actor):
        """Test a day move carries the week's open goals."""
        from app.models.goal import AdhocDay, AdhocGoalCreate
        from app.services.adhoc_service import AdhocService

        service = AdhocService(db)
        await service.create_adhoc_goal(actor, AdhocGoalCreate(title="A", year=2024, week_number=7))

        result = await service.move_adhoc_goals_from_day(
            actor,
            AdhocDay(year=2024, week_number=7, day_of_week=1),
            AdhocDay(year=2024, week_number=8, day_of_week=2),
        )

        assert result.goals_moved == 1
