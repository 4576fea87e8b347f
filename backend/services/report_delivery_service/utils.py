"""
Cron helpers for scheduled report delivery.

Builds cron expressions from the frequency/time/day choices offered to
report authors, describes expressions in plain English for job listings,
and computes the next run of an expression in a job's timezone.

Example:
    ```python
    from services.report_delivery_service.utils import (
        build_cron_expression,
        describe_cron,
        next_run_time,
    )

    cron = build_cron_expression("weekly", "09:00", "monday")  # "0 9 * * 1"
    describe_cron(cron)  # "Weekly on Monday at 9:00 AM"
    next_run_time(cron, "Europe/Berlin")  # aware datetime in UTC
    ```
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

DAY_OF_WEEK = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}
DAY_NAMES = [name.capitalize() for name in DAY_OF_WEEK]
FREQUENCIES = ("daily", "weekly", "monthly", "quarterly")


def _parse_time(time_of_day: str) -> tuple[int, int]:
    try:
        hour_text, minute_text = time_of_day.strip().split(":", 1)
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError) as e:
        msg = f"Time must be formatted as HH:MM, got: {time_of_day!r}"
        raise ValueError(msg) from e
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        msg = f"Time out of range: {time_of_day!r}"
        raise ValueError(msg)
    return hour, minute


def build_cron_expression(
    frequency: str, time_of_day: str = "09:00", day: str | int | None = None
) -> str:
    """
    Build a 5-field cron expression from a delivery frequency.

    Args:
        frequency: One of "daily", "weekly", "monthly" or "quarterly".
        time_of_day: "HH:MM" in 24 hour format.
        day: Day of week name for weekly schedules (defaults to Monday),
            day of month (1-31) or "last" for monthly schedules (defaults
            to the 1st). Ignored for daily and quarterly schedules.

    Returns:
        Cron expression such as "0 9 * * 1".

    Raises:
        ValueError: If the frequency, time or day is not understood.
    """
    hour, minute = _parse_time(time_of_day)
    frequency = (frequency or "").strip().lower()

    if frequency == "daily":
        return f"{minute} {hour} * * *"
    if frequency == "weekly":
        day_of_week = DAY_OF_WEEK.get(str(day).strip().lower(), 1) if day is not None else 1
        return f"{minute} {hour} * * {day_of_week}"
    if frequency == "monthly":
        if day is None or str(day).strip() == "":
            return f"{minute} {hour} 1 * *"
        if str(day).strip().lower() == "last":
            return f"{minute} {hour} L * *"
        try:
            day_of_month = int(day)
        except ValueError as e:
            msg = f"Monthly day must be 1-31 or 'last', got: {day!r}"
            raise ValueError(msg) from e
        if not 1 <= day_of_month <= 31:
            msg = f"Monthly day must be 1-31 or 'last', got: {day!r}"
            raise ValueError(msg)
        return f"{minute} {hour} {day_of_month} * *"
    if frequency == "quarterly":
        return f"{minute} {hour} 1 */3 *"

    msg = f"Unsupported frequency {frequency!r}; expected one of {', '.join(FREQUENCIES)}"
    raise ValueError(msg)


def validate_cron(expression: str) -> bool:
    """Return True when expression is a valid 5-field cron expression."""
    if not expression or len(expression.split()) != 5:
        return False
    return croniter.is_valid(expression)


def validate_timezone(name: str) -> bool:
    """Return True when name is a known IANA timezone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def next_run_time(
    expression: str, tz_name: str = "UTC", after: datetime | None = None
) -> datetime:
    """
    Compute the next run of a cron expression.

    The expression is evaluated in the wall clock of tz_name, so
    "0 9 * * 1" in "America/New_York" fires at 09:00 New York time across
    DST changes.

    Args:
        expression: 5-field cron expression.
        tz_name: IANA timezone the expression is evaluated in.
        after: Reference time (aware, defaults to now). The result is
            strictly later than this instant.

    Returns:
        Timezone-aware datetime in UTC.
    """
    zone = ZoneInfo(tz_name)
    reference = after or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    iterator = croniter(expression, reference.astimezone(zone))
    upcoming = iterator.get_next(datetime)
    return upcoming.astimezone(timezone.utc)


def _format_time(hour: str, minute: str) -> str:
    hour_num, minute_num = int(hour), int(minute)
    suffix = "PM" if hour_num >= 12 else "AM"
    display_hour = 12 if hour_num % 12 == 0 else hour_num % 12
    return f"at {display_hour}:{minute_num:02d} {suffix}"


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def describe_cron(expression: str) -> str:
    """
    Describe a cron expression in plain English.

    Handles the shapes produced by build_cron_expression. Anything else is
    returned unchanged.

    Example:
        ```python
        describe_cron("0 0 * * *")   # "Daily at midnight"
        describe_cron("30 14 * * 5") # "Weekly on Friday at 2:30 PM"
        describe_cron("0 9 L * *")   # "Monthly on the last day at 9:00 AM"
        ```
    """
    fields = (expression or "").split()
    if len(fields) != 5:
        return "Invalid schedule"

    minute, hour, day_of_month, month, day_of_week = fields
    if expression.strip() == "0 0 * * *":
        return "Daily at midnight"

    if not (hour.isdigit() and minute.isdigit()):
        return expression
    time_text = _format_time(hour, minute)

    if day_of_month == "1" and month == "*/3" and day_of_week == "*":
        return f"Quarterly on the 1st {time_text}"
    if day_of_month == "L" and month == "*":
        return f"Monthly on the last day {time_text}"
    if day_of_month.isdigit() and month == "*" and day_of_week == "*":
        return f"Monthly on the {_ordinal(int(day_of_month))} {time_text}"
    if day_of_month == "*" and month == "*" and day_of_week.isdigit():
        index = int(day_of_week)
        day_name = DAY_NAMES[index % 7] if index <= 7 else day_of_week
        return f"Weekly on {day_name} {time_text}"
    if day_of_month == "*" and month == "*" and day_of_week == "*":
        return f"Daily {time_text}"
    return expression
