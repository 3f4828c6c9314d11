"""Move plans, previews, requests and results."""
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from app.models.goal import (
    AdhocDay,
    AdhocWeek,
    CarryOver,
    DayPeriod,
    Goal,
    GoalState,
    QuarterPeriod,
    WeekPeriod,
    WeekPeriodWithDay,
)


# Week -> week plan (internal)


class DailyGoalMove(BaseModel):
    """A daily goal travelling with its weekly parent."""

    goal: Goal
    state: GoalState
    weekly_goal: Goal
    quarterly_goal: Optional[Goal] = None


class WeekStateToCopy(BaseModel):
    """A weekly goal selected for carry-over."""

    goal: Goal
    state: GoalState
    carry_over: CarryOver
    quarterly_goal_id: Optional[str] = None
    daily_goals: list[DailyGoalMove] = []


class QuarterlyGoalToUpdate(BaseModel):
    """Star/pin flags a quarterly goal carries into the target week."""

    goal: Goal
    is_starred: bool
    is_pinned: bool


class WeekMovePlan(BaseModel):
    """Read-only classification of one source week."""

    week_states_to_copy: list[WeekStateToCopy] = []
    quarterly_goals_to_update: list[QuarterlyGoalToUpdate] = []

    @property
    def daily_goals_to_move(self) -> list[DailyGoalMove]:
        return [daily for entry in self.week_states_to_copy for daily in entry.daily_goals]


# Week -> week API


class WeekStateToCopyPreview(BaseModel):
    title: str
    carry_over: CarryOver
    daily_goals_count: int
    quarterly_goal_id: Optional[str] = None


class DailyGoalToMovePreview(BaseModel):
    id: str
    title: str
    weekly_goal_id: str
    weekly_goal_title: str
    quarterly_goal_id: Optional[str] = None
    quarterly_goal_title: Optional[str] = None


class QuarterlyGoalToUpdatePreview(BaseModel):
    id: str
    title: str
    is_starred: bool
    is_pinned: bool


class WeekMovePreview(BaseModel):
    """What a week move would (or did) touch."""

    is_dry_run: bool = True
    can_pull: bool = True
    source: Optional[WeekPeriod] = None
    week_states_to_copy: list[WeekStateToCopyPreview] = []
    daily_goals_to_move: list[DailyGoalToMovePreview] = []
    quarterly_goals_to_update: list[QuarterlyGoalToUpdatePreview] = []


class WeekMoveResult(WeekMovePreview):
    """Counts of a committed week move, alongside the preview arrays."""

    is_dry_run: bool = False
    week_states_copied: int = 0
    daily_goals_moved: int = 0
    quarterly_goals_updated: int = 0


class WeekMoveRequest(BaseModel):
    from_: WeekPeriod = Field(alias="from")
    to: WeekPeriodWithDay
    dry_run: bool = False

    model_config = {"populate_by_name": True}


class PullWeekRequest(BaseModel):
    to: WeekPeriodWithDay
    dry_run: bool = False


class WeekOption(BaseModel):
    year: int
    quarter: int
    week_number: int
    label: str


# Single weekly goal -> week


class WeeklyGoalMoveMode(str, Enum):
    """How a weekly goal travels to another week."""

    MOVE_ALL = "move_all"
    COPY_CHILDREN = "copy_children"


class WeeklyGoalMovePreview(BaseModel):
    """What moving one weekly goal would (or did) touch."""

    is_dry_run: bool = True
    goal_id: str
    title: str
    mode: WeeklyGoalMoveMode
    target_week: WeekPeriod
    daily_goals_to_move: list[DailyGoalToMovePreview] = []


class WeeklyGoalMoveResult(WeeklyGoalMovePreview):
    is_dry_run: bool = False
    new_goal_id: str
    daily_goals_moved: int = 0


class WeeklyGoalMoveRequest(BaseModel):
    from_: WeekPeriod = Field(alias="from")
    to: WeekPeriod
    dry_run: bool = False

    model_config = {"populate_by_name": True}


# Day -> day


class DayInfo(BaseModel):
    year: int
    quarter: int
    week_number: int
    day_of_week: int
    name: str


class TaskGoalRef(BaseModel):
    id: str
    title: str


class TaskQuarterlyRef(TaskGoalRef):
    is_starred: bool = False
    is_pinned: bool = False


class DayTaskPreview(BaseModel):
    id: str
    title: str
    details: Optional[str] = None
    weekly_goal: TaskGoalRef
    quarterly_goal: TaskQuarterlyRef


class DayMovePreview(BaseModel):
    can_move: bool
    source_day: DayInfo
    target_day: DayInfo
    tasks: list[DayTaskPreview] = []


class DayMoveResult(BaseModel):
    tasks_moved: int


class DayMoveRequest(BaseModel):
    from_: DayPeriod = Field(alias="from")
    to: DayPeriod
    dry_run: bool = False
    move_only_incomplete: bool = True

    model_config = {"populate_by_name": True}


# Quarter -> quarter


class QuarterMoveRequest(BaseModel):
    from_: QuarterPeriod = Field(alias="from")
    to: QuarterPeriod
    selected_quarterly_goal_ids: Optional[list[str]] = None
    selected_adhoc_goal_ids: Optional[list[str]] = None

    model_config = {"populate_by_name": True}


class QuarterlyGoalMoveRequest(BaseModel):
    from_: QuarterPeriod = Field(alias="from")
    to: QuarterPeriod

    model_config = {"populate_by_name": True}


class QuarterlyGoalMoveResult(BaseModel):
    new_goal_id: str
    weekly_goals_migrated: int = 0
    weekly_goals_reused: int = 0
    daily_goals_migrated: int = 0
    daily_goals_reused: int = 0
    quarterly_goal_was_created: bool = False


class QuarterMoveError(BaseModel):
    error: str


class QuarterMoveResult(BaseModel):
    quarterly_goals_copied: int
    adhoc_goals_moved: int
    results: list[Union[QuarterlyGoalMoveResult, QuarterMoveError]] = []


class QuarterlyGoalSummary(BaseModel):
    id: str
    title: str
    is_starred: bool = False
    is_pinned: bool = False


class AdhocGoalSummary(BaseModel):
    id: str
    title: str
    week_number: int
    day_of_week: Optional[int] = None
    domain_id: Optional[str] = None
    domain_name: Optional[str] = None


class QuarterMovePreview(BaseModel):
    quarterly_goals: list[QuarterlyGoalSummary] = []
    adhoc_goals: list[AdhocGoalSummary] = []


# Deletion


class DeletionNode(BaseModel):
    """One goal of a deletion preview tree."""

    id: str = Field(alias="_id")
    title: str
    depth: int
    children: list["DeletionNode"] = []
    weeks: Optional[list[int]] = None

    model_config = {"populate_by_name": True}


class DeletionPreview(BaseModel):
    is_dry_run: bool = True
    goals_to_delete: list[DeletionNode] = []


class DeletionResult(BaseModel):
    goal_id: str


class OrphanedStatesReport(BaseModel):
    is_dry_run: bool
    orphaned_state_ids: list[str] = []
    deleted: int = 0


# Adhoc


class AdhocWeekMoveRequest(BaseModel):
    from_: AdhocWeek = Field(alias="from")
    to: AdhocWeek
    dry_run: bool = False

    model_config = {"populate_by_name": True}


class AdhocDayMoveRequest(BaseModel):
    from_: AdhocDay = Field(alias="from")
    to: AdhocDay
    dry_run: bool = False

    model_config = {"populate_by_name": True}


class AdhocMovePreview(BaseModel):
    can_move: bool
    from_: Union[AdhocDay, AdhocWeek] = Field(alias="from")
    to: Union[AdhocDay, AdhocWeek]
    goals: list[AdhocGoalSummary] = []

    model_config = {"populate_by_name": True}


class AdhocMoveResult(BaseModel):
    goals_moved: int
