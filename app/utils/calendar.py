"""Period calendar: ISO-8601 week and quarter arithmetic.

Week numbers, not dates, partition goal states, so everything here follows
ISO-8601 numbering (weeks start on Monday, week 1 holds the year's first
Thursday).
"""
from dataclasses import dataclass
from datetime import date, timedelta

from app.utils.errors import InvalidArgumentError

DAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


@dataclass(frozen=True)
class WeekRef:
    """An ISO week identified by its week-year."""

    week_number: int
    year: int


@dataclass(frozen=True)
class QuarterWeeks:
    """Week numbers belonging to a quarter, in calendar order."""

    weeks: list[int]
    start_week: int
    end_week: int


def _check_quarter(quarter: int) -> None:
    if quarter < 1 or quarter > 4:
        raise InvalidArgumentError("Quarter must be between 1 and 4")


def _thursday_of(day: date) -> date:
    return day + timedelta(days=3 - day.weekday())


def quarter_date_range(year: int, quarter: int) -> tuple[date, date]:
    """
    Get the first and last calendar day of a quarter.

    Examples:
        >>> quarter_date_range(2025, 1)
        (datetime.date(2025, 1, 1), datetime.date(2025, 3, 31))
    """
    _check_quarter(quarter)
    start = date(year, (quarter - 1) * 3 + 1, 1)
    if quarter == 4:
        end = date(year, 12, 31)
    else:
        end = date(year, quarter * 3 + 1, 1) - timedelta(days=1)
    return start, end


def weeks_of(year: int, quarter: int) -> QuarterWeeks:
    """
    Get the ISO week numbers of a quarter.

    A week belongs to the quarter when its Thursday does. At the year edges
    Q1 also keeps a leading week whose Thursday falls in the previous year
    and Q4 keeps the trailing week whose Thursday falls in the next year.

    Examples:
        >>> weeks_of(2025, 1).weeks
        [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13]
    """
    start, end = quarter_date_range(year, quarter)
    weeks: list[int] = []

    current = start
    while current <= end:
        thursday = _thursday_of(current)
        week_number = thursday.isocalendar()[1]
        if quarter == 1 and thursday.year < year:
            weeks.append(week_number)
        elif quarter == 4 and thursday.year > year:
            weeks.append(week_number)
        elif start <= thursday <= end:
            weeks.append(week_number)
        current += timedelta(weeks=1)

    return QuarterWeeks(weeks=weeks, start_week=weeks[0], end_week=weeks[-1])


def final_weeks_of(year: int, quarter: int) -> list[WeekRef]:
    """
    Get the final week(s) of a quarter.

    The first entry is the week holding the quarter's last Thursday. For Q4
    a second entry is added when December 31st already sits in week 1 of
    the next ISO year.

    Examples:
        >>> final_weeks_of(2025, 1)
        [WeekRef(week_number=13, year=2025)]
    """
    _, end = quarter_date_range(year, quarter)
    last_thursday = _thursday_of(end)
    if last_thursday > end:
        last_thursday -= timedelta(weeks=1)

    iso_year, iso_week, _ = last_thursday.isocalendar()
    result = [WeekRef(week_number=iso_week, year=iso_year)]

    if quarter == 4:
        spill_year, spill_week, _ = end.isocalendar()
        if spill_year > year:
            result.append(WeekRef(week_number=spill_week, year=spill_year))

    return result


def is_in_final_weeks(week_number: int, year: int, final_weeks: list[WeekRef]) -> bool:
    """Check whether a (week, year) pair is one of the given final weeks."""
    return any(w.week_number == week_number and w.year == year for w in final_weeks)


def first_week_of(year: int, quarter: int) -> WeekRef:
    """
    Get the first ISO week of a quarter (the week of its first Thursday).

    Examples:
        >>> first_week_of(2025, 2)
        WeekRef(week_number=14, year=2025)
    """
    start, _ = quarter_date_range(year, quarter)
    first_thursday = start + timedelta(days=(3 - start.weekday()) % 7)
    iso_year, iso_week, _ = first_thursday.isocalendar()
    return WeekRef(week_number=iso_week, year=iso_year)


def weeks_in_year(year: int) -> int:
    """Number of ISO weeks (52 or 53) in an ISO week-year."""
    return date(year, 12, 28).isocalendar()[1]


def iso_week_start(year: int, week_number: int) -> date:
    """Monday of an ISO week."""
    if week_number < 1 or week_number > weeks_in_year(year):
        raise InvalidArgumentError(f"Week {week_number} does not exist in {year}")
    return date.fromisocalendar(year, week_number, 1)


def quarter_for_week(year: int, week_number: int) -> int:
    """Quarter holding the Thursday of an ISO week."""
    thursday = iso_week_start(year, week_number) + timedelta(days=3)
    return (thursday.month - 1) // 3 + 1


def previous_quarter(year: int, quarter: int) -> tuple[int, int]:
    """Year and quarter before the given one."""
    _check_quarter(quarter)
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def next_quarter(year: int, quarter: int) -> tuple[int, int]:
    """Year and quarter after the given one."""
    _check_quarter(quarter)
    if quarter == 4:
        return year + 1, 1
    return year, quarter + 1


def previous_week(year: int, quarter: int, week_number: int) -> tuple[int, int, int]:
    """
    Step one week back within the quarter week lists.

    Crosses into the previous quarter when `week_number` is the first week
    of its quarter (or is not part of it at all). A spill week shared by
    both quarters is not visited twice.

    Examples:
        >>> previous_week(2025, 2, 14)
        (2025, 1, 13)
    """
    weeks = weeks_of(year, quarter).weeks
    if week_number in weeks:
        index = weeks.index(week_number)
        if index > 0:
            return year, quarter, weeks[index - 1]

    prev_year, prev_quarter = previous_quarter(year, quarter)
    prev_weeks = weeks_of(prev_year, prev_quarter).weeks
    if prev_weeks[-1] == week_number and len(prev_weeks) > 1:
        return prev_year, prev_quarter, prev_weeks[-2]
    return prev_year, prev_quarter, prev_weeks[-1]


def day_name(day_of_week: int) -> str:
    """Human-readable day name, Monday = 1."""
    return DAY_NAMES[day_of_week]
