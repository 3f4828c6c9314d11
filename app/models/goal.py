"""Goal, goal state and period model definitions."""
from datetime import datetime
from enum import IntEnum
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class GoalDepth(IntEnum):
    """Position of a goal in the tree. Adhoc goals live outside it."""

    ADHOC = -1
    QUARTERLY = 0
    WEEKLY = 1
    DAILY = 2


class DayOfWeek(IntEnum):
    """ISO day numbers."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class FromGoal(BaseModel):
    """Lineage pointers of a carried-over goal."""

    previous_goal_id: str
    root_goal_id: str


class CarryOver(BaseModel):
    """Carry-over record linking a goal to its predecessor and root."""

    type: Literal["week"] = "week"
    num_weeks: int
    from_goal: FromGoal


class AdhocFields(BaseModel):
    """Fields only adhoc goals carry."""

    week_number: int = Field(ge=1, le=53)
    day_of_week: Optional[DayOfWeek] = None
    due_date: Optional[datetime] = None


class Goal(BaseModel):
    """Full goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    year: int
    quarter: int
    title: str
    details: Optional[str] = None
    due_date: Optional[datetime] = None
    domain_id: Optional[str] = None
    parent_id: Optional[str] = None
    in_path: str
    depth: GoalDepth
    carry_over: Optional[CarryOver] = None
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    adhoc: Optional[AdhocFields] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_kind(self):
        # depth is the variant tag; adhoc fields travel with it
        if (self.depth == GoalDepth.ADHOC) != (self.adhoc is not None):
            raise ValueError("Adhoc fields must be present exactly on adhoc goals")
        return self

    @property
    def is_adhoc(self) -> bool:
        return self.depth == GoalDepth.ADHOC


class DailyState(BaseModel):
    """Day assignment of a daily goal within its week."""

    day_of_week: DayOfWeek
    date_timestamp: Optional[int] = None


class GoalState(BaseModel):
    """Per-week snapshot of a goal."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    goal_id: str
    year: int
    quarter: int
    week_number: int
    is_starred: bool = False
    is_pinned: bool = False
    daily: Optional[DailyState] = None
    carry_over: Optional[CarryOver] = None
    created_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class QuarterPeriod(BaseModel):
    """A (year, quarter) partition."""

    year: int
    quarter: int = Field(ge=1, le=4)


class WeekPeriod(QuarterPeriod):
    """A (year, quarter, week) partition."""

    week_number: int = Field(ge=1, le=53)


class WeekPeriodWithDay(WeekPeriod):
    """A week, optionally narrowed to the day moved daily goals should land on."""

    day_of_week: Optional[DayOfWeek] = None


class DayPeriod(WeekPeriod):
    """A single day of a week."""

    day_of_week: DayOfWeek


class AdhocWeek(BaseModel):
    """Adhoc partition: ISO week-year and week."""

    year: int
    week_number: int = Field(ge=1, le=53)


class AdhocDay(AdhocWeek):
    """Adhoc partition narrowed to a day."""

    day_of_week: DayOfWeek


class QuarterlyGoalCreate(BaseModel):
    """Quarterly goal creation model."""

    title: str
    details: Optional[str] = None
    year: int
    quarter: int = Field(ge=1, le=4)
    week_number: int = Field(ge=1, le=53)
    is_starred: bool = False
    is_pinned: bool = False


class WeeklyGoalCreate(BaseModel):
    """Weekly goal creation model."""

    title: str
    details: Optional[str] = None
    parent_id: str
    week_number: int = Field(ge=1, le=53)


class DailyGoalCreate(BaseModel):
    """Daily goal creation model."""

    title: str
    details: Optional[str] = None
    parent_id: str
    week_number: int = Field(ge=1, le=53)
    day_of_week: DayOfWeek


class AdhocGoalCreate(BaseModel):
    """Adhoc goal creation model."""

    title: str
    details: Optional[str] = None
    domain_id: Optional[str] = None
    year: int
    week_number: int
    due_date: Optional[datetime] = None
    parent_id: Optional[str] = None


class GoalCompletionUpdate(BaseModel):
    """Goal completion update model."""

    is_complete: bool


class QuarterlyStatusUpdate(BaseModel):
    """Star/pin update of a quarterly goal for one week."""

    year: int
    quarter: int = Field(ge=1, le=4)
    week_number: int = Field(ge=1, le=53)
    is_starred: bool = False
    is_pinned: bool = False


class GoalParentUpdate(BaseModel):
    """Weekly goal reparenting model."""

    parent_id: str


class FireStatus(BaseModel):
    """Fire flag state of a goal."""

    goal_id: str
    is_on_fire: bool
