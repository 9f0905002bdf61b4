"""Shared fixtures and helpers for the nightcap test suite."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from nightcap.models import ConsumptionEvent, Habit, HabitType


# Monday 2025-01-06, midnight (naive local time)
BASE = datetime(2025, 1, 6)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def at(hour: float, minute: int = 0, day: int = 0) -> datetime:
    """Instant *day* days after BASE at hour:minute."""
    return BASE + timedelta(days=day, hours=hour, minutes=minute)


def day(n: int) -> date:
    """Calendar date *n* days after BASE."""
    return BASE.date() + timedelta(days=n)


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def make_event(
    hour: float,
    amount: float = 100.0,
    day: int = 0,
    minute: int = 0,
    drink_type=None,
) -> ConsumptionEvent:
    """A consumption event at the given hour of day *day*."""
    return ConsumptionEvent(at(hour, minute, day), amount, drink_type)


def make_habit(
    type: HabitType | str = HabitType.QUICK_CONSUMPTION,
    half_life: float = 5.0,
    threshold: float = 5.0,
    name: str = "Caffeine",
    unit: str = "mg",
    id: str | None = None,
) -> Habit:
    return Habit(
        name=name,
        type=HabitType(type),
        half_life_hours=half_life,
        threshold_percent=threshold,
        unit=unit,
        id=id,
    )


def daily(values: list[Any], start: int = 0) -> dict[date, Any]:
    """Map consecutive days (from day *start*) to *values*."""
    return {day(start + i): v for i, v in enumerate(values)}


# ---------------------------------------------------------------------------
# Storage payload
# ---------------------------------------------------------------------------


CAFFEINE_AMOUNTS = [50.0 + 10.0 * (i % 5) for i in range(14)]


def make_payload() -> dict[str, Any]:
    """A two-week export with a drug, a binary, a numeric and a sparse habit.

    Caffeine: one dose at 08:00 daily, bedtime 23:00, so each night's level
    is exactly dose / 8.  Sleep falls one minute per mg consumed.
    """
    habits = [
        {"id": "caffeine", "name": "Caffeine", "type": "quick_consumption",
         "halfLifeHours": 5, "thresholdPercent": 5, "unit": "mg"},
        {"id": "workout", "name": "Workout", "type": "binary"},
        {"id": "steps", "name": "Steps", "type": "numeric", "unit": "steps"},
        {"id": "meditation", "name": "Meditation", "type": "numeric", "unit": "min"},
    ]
    events = {
        "caffeine": [
            {"consumedAt": at(8, day=i).isoformat(), "amount": amount, "drinkType": "coffee"}
            for i, amount in enumerate(CAFFEINE_AMOUNTS)
        ],
    }
    logs = []
    for i in range(13):
        logs.append({"habit_id": "workout", "date": day(i).isoformat(),
                     "value": "yes" if i % 2 == 0 else "no"})
        logs.append({"habit_id": "steps", "date": day(i).isoformat(),
                     "numeric_value": 4000 + 500 * i})
    for i in range(3):
        logs.append({"habit_id": "meditation", "date": day(i).isoformat(), "value": "15"})

    sleep = [
        {"date": day(i).isoformat(),
         "total_sleep_minutes": 480 - CAFFEINE_AMOUNTS[i],
         "sleep_score": 70 + i}
        for i in range(14)
    ]
    return {"habits": habits, "events": events, "logs": logs,
            "sleep": sleep, "bedtime": "23:00:00"}


def write_json(path: Path, obj: Any) -> Path:
    with open(path, "w") as f:
        json.dump(obj, f)
    return path


@pytest.fixture
def payload_file(tmp_path: Path) -> Path:
    return write_json(tmp_path / "export.json", make_payload())
