"""Input records consumed by the engine.

The storage layer hands over plain dicts (JSON rows); the ``from_record``
constructors here turn them into immutable dataclasses and reject malformed
values up front.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from nightcap.config import settings
from nightcap.errors import InvalidParameter
from nightcap.options import DrinkType, parse_drink_type


def parse_instant(value: datetime | str) -> datetime:
    """Parse an ISO-8601 instant; a trailing ``Z`` is accepted as UTC."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidParameter(f"expected an ISO-8601 timestamp, got {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidParameter(f"malformed timestamp {value!r}") from e


def parse_day(value: date | datetime | str) -> date:
    """Parse a calendar date (``YYYY-MM-DD``)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise InvalidParameter(f"malformed date {value!r}") from e


def _first(record: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return default


class HabitType(str, Enum):
    BINARY = "binary"
    NUMERIC = "numeric"
    DRUG = "drug"
    QUICK_CONSUMPTION = "quick_consumption"
    TIME = "time"


@dataclass(frozen=True)
class ConsumptionEvent:
    """One logged intake of a substance."""

    consumed_at: datetime
    amount: float
    drink_type: DrinkType | None = None
    volume: float | None = None  # actual volume consumed, serving units

    def __post_init__(self) -> None:
        if not (math.isfinite(self.amount) and self.amount >= 0):
            raise InvalidParameter(f"amount must be a non-negative number, got {self.amount!r}")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ConsumptionEvent:
        consumed_at = _first(record, "consumedAt", "consumed_at")
        if consumed_at is None:
            raise InvalidParameter(f"consumption event without a timestamp: {record!r}")
        try:
            amount = float(_first(record, "amount", default=0.0))
        except (TypeError, ValueError) as e:
            raise InvalidParameter(f"non-numeric amount in {record!r}") from e
        volume = _first(record, "volume")
        return cls(
            consumed_at=parse_instant(consumed_at),
            amount=amount,
            drink_type=parse_drink_type(_first(record, "drinkType", "drink_type")),
            volume=float(volume) if volume is not None else None,
        )


@dataclass(frozen=True)
class Habit:
    """Substance profile and shape of a tracked habit."""

    name: str
    type: HabitType
    half_life_hours: float = 5.0
    threshold_percent: float = 5.0
    unit: str = "units"
    id: str | None = None

    def __post_init__(self) -> None:
        if not self.half_life_hours > 0:
            raise InvalidParameter(
                f"habit {self.name!r}: half_life_hours must be positive, got {self.half_life_hours!r}"
            )
        if not (0 < self.threshold_percent <= 100):
            raise InvalidParameter(
                f"habit {self.name!r}: threshold_percent must be in (0, 100], got {self.threshold_percent!r}"
            )

    @property
    def is_drug(self) -> bool:
        return self.type in (HabitType.DRUG, HabitType.QUICK_CONSUMPTION)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Habit:
        raw_type = _first(record, "type", default=HabitType.NUMERIC.value)
        try:
            habit_type = HabitType(raw_type)
        except ValueError as e:
            raise InvalidParameter(f"unknown habit type {raw_type!r}") from e

        half_life = _first(
            record, "halfLifeHours", "half_life_hours",
            default=settings.DEFAULT_HALF_LIFE_HOURS,
        )
        threshold = _first(
            record, "thresholdPercent", "drug_threshold_percent", "threshold_percent",
            default=settings.DEFAULT_THRESHOLD_PERCENT,
        )
        habit_id = _first(record, "id")
        return cls(
            name=str(_first(record, "name", default=habit_id or "habit")),
            type=habit_type,
            half_life_hours=float(half_life),
            threshold_percent=float(threshold),
            unit=str(_first(record, "unit", default="units")),
            id=str(habit_id) if habit_id is not None else None,
        )


@dataclass(frozen=True)
class DrugLevelSample:
    """Superposed substance level present at one instant."""

    time: datetime
    level: float


@dataclass(frozen=True)
class HabitLog:
    """A manual habit entry for one calendar day (raw, unvalidated value)."""

    date: date
    value: Any

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> HabitLog:
        value = _first(record, "numericValue", "numeric_value", "levelValue", "level_value", "value")
        return cls(date=parse_day(record["date"]), value=value)


@dataclass(frozen=True)
class SleepRecord:
    """One night's sleep metrics, keyed by the date the night is stored under."""

    date: date
    metrics: dict[str, Any] = field(default_factory=dict)

    def get(self, metric: str) -> Any:
        return self.metrics.get(metric)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SleepRecord:
        metrics = {k: v for k, v in record.items() if k != "date"}
        return cls(date=parse_day(record["date"]), metrics=metrics)
