"""Task-template recurrence rules.

A task template repeats in exactly one of five ways. In memory that is one of
the frozen dataclasses below; in the database it is ``repeat_enum`` plus a set
of nullable frequency columns, of which only the active variant's are filled.
Translation between the two happens only through :func:`to_columns` and
:func:`from_columns`.

Nothing here computes due dates. FMX interprets the exported settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union


class RepeatMode(str, Enum):
    NEVER = "NEVER"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class MonthlyMode(str, Enum):
    DAY_OF_MONTH = "DAY_OF_MONTH"
    DAY_OF_WEEK = "DAY_OF_WEEK"
    WEEKDAY_OF_MONTH = "WEEKDAY_OF_MONTH"
    WEEKEND_DAY_OF_MONTH = "WEEKEND_DAY_OF_MONTH"


class NextDueMode(str, Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"


WEEKDAY_COLUMNS = (
    "weekly_sun",
    "weekly_mon",
    "weekly_tues",
    "weekly_wed",
    "weekly_thur",
    "weekly_fri",
    "weekly_sat",
)

FREQUENCY_COLUMNS = (
    "daily_every_x_days",
    *WEEKDAY_COLUMNS,
    "weekly_every_x_weeks",
    "monthly_mode",
    "monthly_every_x_months",
    "yearly_every_x_years",
)

# column -> (min, max, message)
COUNT_RULES: dict[str, tuple[int, int, str]] = {
    "daily_every_x_days": (1, 365, "Daily frequency must be between 1 and 365 days"),
    "weekly_every_x_weeks": (1, 52, "Weekly frequency must be between 1 and 52 weeks"),
    "monthly_every_x_months": (1, 12, "Monthly frequency must be between 1 and 12 months"),
    "yearly_every_x_years": (1, 10, "Yearly frequency must be between 1 and 10 years"),
}

NO_WEEKDAY_MESSAGE = "At least one day of the week must be selected for weekly tasks"
MONTHLY_MODE_REQUIRED_MESSAGE = "Monthly mode is required for monthly tasks"
INVALID_MONTHLY_MODE_MESSAGE = "Invalid monthly mode"
INVALID_REPEAT_MESSAGE = "Invalid repeat frequency"


class RecurrenceError(ValueError):
    """Rejected recurrence input. ``field`` names the offending column."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass(frozen=True)
class Never:
    mode: ClassVar[RepeatMode] = RepeatMode.NEVER


@dataclass(frozen=True)
class Daily:
    every_x_days: int = 1
    mode: ClassVar[RepeatMode] = RepeatMode.DAILY


@dataclass(frozen=True)
class Weekly:
    sun: bool = False
    mon: bool = False
    tues: bool = False
    wed: bool = False
    thur: bool = False
    fri: bool = False
    sat: bool = False
    every_x_weeks: int = 1
    mode: ClassVar[RepeatMode] = RepeatMode.WEEKLY

    @property
    def days(self) -> tuple[bool, ...]:
        return (self.sun, self.mon, self.tues, self.wed, self.thur, self.fri, self.sat)


@dataclass(frozen=True)
class Monthly:
    monthly_mode: MonthlyMode = MonthlyMode.DAY_OF_MONTH
    every_x_months: int = 1
    mode: ClassVar[RepeatMode] = RepeatMode.MONTHLY


@dataclass(frozen=True)
class Yearly:
    every_x_years: int = 1
    mode: ClassVar[RepeatMode] = RepeatMode.YEARLY


Recurrence = Union[Never, Daily, Weekly, Monthly, Yearly]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "y", "yes", "on")
    return bool(value)


def parse_repeat_mode(value: Any) -> RepeatMode:
    if isinstance(value, RepeatMode):
        return value
    try:
        return RepeatMode(str(value or "").strip().upper())
    except ValueError:
        raise RecurrenceError("repeat_enum", INVALID_REPEAT_MESSAGE) from None


def _count(fields: Mapping[str, Any], column: str) -> int:
    lo, hi, message = COUNT_RULES[column]
    raw = fields.get(column)
    if _is_blank(raw):
        return 1
    value = _as_int(raw)
    if value is None or not lo <= value <= hi:
        raise RecurrenceError(column, message)
    return value


def _monthly_mode(raw: Any) -> MonthlyMode:
    if _is_blank(raw):
        raise RecurrenceError("monthly_mode", MONTHLY_MODE_REQUIRED_MESSAGE)
    try:
        return MonthlyMode(str(raw).strip().upper())
    except ValueError:
        raise RecurrenceError("monthly_mode", INVALID_MONTHLY_MODE_MESSAGE) from None


def parse_recurrence(repeat_enum: Any, fields: Mapping[str, Any]) -> Recurrence:
    """Validate candidate frequency fields for ``repeat_enum``.

    ``fields`` is keyed by column name (see ``FREQUENCY_COLUMNS``). Fields that
    do not belong to the chosen variant are ignored. An unset count defaults
    to 1; a supplied count outside its range raises :class:`RecurrenceError`.
    """
    mode = parse_repeat_mode(repeat_enum)

    if mode is RepeatMode.NEVER:
        return Never()

    if mode is RepeatMode.DAILY:
        return Daily(every_x_days=_count(fields, "daily_every_x_days"))

    if mode is RepeatMode.WEEKLY:
        days = [_as_flag(fields.get(col)) for col in WEEKDAY_COLUMNS]
        if not any(days):
            raise RecurrenceError("weekly_days", NO_WEEKDAY_MESSAGE)
        return Weekly(*days, every_x_weeks=_count(fields, "weekly_every_x_weeks"))

    if mode is RepeatMode.MONTHLY:
        return Monthly(
            monthly_mode=_monthly_mode(fields.get("monthly_mode")),
            every_x_months=_count(fields, "monthly_every_x_months"),
        )

    return Yearly(every_x_years=_count(fields, "yearly_every_x_years"))


def to_columns(recurrence: Recurrence) -> dict[str, Any]:
    """Flatten a recurrence into every frequency column, inactive ones None."""
    cols: dict[str, Any] = {col: None for col in FREQUENCY_COLUMNS}
    cols["repeat_enum"] = recurrence.mode.value

    if isinstance(recurrence, Daily):
        cols["daily_every_x_days"] = recurrence.every_x_days
    elif isinstance(recurrence, Weekly):
        for col, flag in zip(WEEKDAY_COLUMNS, recurrence.days):
            cols[col] = flag
        cols["weekly_every_x_weeks"] = recurrence.every_x_weeks
    elif isinstance(recurrence, Monthly):
        cols["monthly_mode"] = recurrence.monthly_mode.value
        cols["monthly_every_x_months"] = recurrence.every_x_months
    elif isinstance(recurrence, Yearly):
        cols["yearly_every_x_years"] = recurrence.every_x_years
    return cols


def _row_value(row: Any, column: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(column)
    return getattr(row, column, None)


def from_columns(repeat_enum: Any, row: Any) -> Recurrence:
    """Rebuild the in-memory variant from a stored row (ORM object or mapping).

    Raises :class:`RecurrenceError` when the stored columns do not form a valid
    rule. Use :func:`column_issues` to collect every problem instead.
    """
    fields = {col: _row_value(row, col) for col in FREQUENCY_COLUMNS}
    return parse_recurrence(repeat_enum, fields)


def column_issues(repeat_enum: Any, row: Any) -> list[tuple[str, str]]:
    """Re-check stored frequency columns without raising.

    Unlike :func:`parse_recurrence`, a missing count is an issue here: stored
    rows should carry the active variant's count explicitly. Returns
    ``(column, message)`` pairs; an empty list means the row is exportable.
    """
    if _is_blank(repeat_enum):
        return []  # reported separately as a missing repeat frequency
    try:
        mode = parse_repeat_mode(repeat_enum)
    except RecurrenceError as exc:
        return [(exc.field, exc.message)]

    issues: list[tuple[str, str]] = []

    def check_count(column: str) -> None:
        lo, hi, message = COUNT_RULES[column]
        value = _as_int(_row_value(row, column))
        if value is None or not lo <= value <= hi:
            issues.append((column, message))

    if mode is RepeatMode.DAILY:
        check_count("daily_every_x_days")
    elif mode is RepeatMode.WEEKLY:
        if not any(_as_flag(_row_value(row, col)) for col in WEEKDAY_COLUMNS):
            issues.append(("weekly_days", "Weekly frequency requires at least one day of the week to be selected"))
        check_count("weekly_every_x_weeks")
    elif mode is RepeatMode.MONTHLY:
        try:
            _monthly_mode(_row_value(row, "monthly_mode"))
        except RecurrenceError as exc:
            issues.append((exc.field, exc.message))
        check_count("monthly_every_x_months")
    elif mode is RepeatMode.YEARLY:
        check_count("yearly_every_x_years")
    return issues
