"""Logical calendar: accounting days start at the boundary hour instead of midnight."""

from __future__ import annotations

from datetime import date, datetime, timedelta

DAY_BOUNDARY_HOUR = 3


def logical_date(instant: datetime, boundary_hour: int = DAY_BOUNDARY_HOUR) -> date:
    local = instant.astimezone()
    if local.hour < boundary_hour:
        local -= timedelta(days=1)
    return local.date()


def logical_day_start(instant: datetime, boundary_hour: int = DAY_BOUNDARY_HOUR) -> datetime:
    day = logical_date(instant, boundary_hour)
    return datetime(day.year, day.month, day.day, boundary_hour).astimezone()


def logical_day_end(instant: datetime, boundary_hour: int = DAY_BOUNDARY_HOUR) -> datetime:
    return logical_day_start(instant, boundary_hour) + timedelta(hours=24)
