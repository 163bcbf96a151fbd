from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Optional

from seeded_random import DEFAULT_SEED


STREAM_MODES = ("shared", "per_branch")
ENV_PREFIX = "BRANCH_SQI_"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class TrendRule:
    good: float
    bad: float
    higher_is_better: bool

    @property
    def lower(self) -> float:
        return min(self.good, self.bad)

    @property
    def upper(self) -> float:
        return max(self.good, self.bad)


# Labels describe the direction of the value itself: "up" above the upper
# threshold, "down" below the lower one.
TREND_RULES: Dict[str, TrendRule] = {
    "avg_queue_time": TrendRule(good=11.0, bad=14.0, higher_is_better=False),
    "sla_met": TrendRule(good=85.0, bad=75.0, higher_is_better=True),
    "ses_score": TrendRule(good=4.0, bad=3.5, higher_is_better=True),
}


def label_trend(metric: str, value: float) -> str:
    rule = TREND_RULES.get(metric)
    if rule is None:
        raise ValueError(f"No trend rule for metric: {metric}")
    if value > rule.upper:
        return "up"
    if value < rule.lower:
        return "down"
    return "stable"


def is_improvement(metric: str, change: float) -> Optional[bool]:
    rule = TREND_RULES.get(metric)
    if rule is None or change == 0:
        return None
    return (change > 0) == rule.higher_is_better


@dataclass(frozen=True)
class DatasetConfig:
    seed: int = DEFAULT_SEED
    start_date: date = date(2025, 7, 1)
    days: int = 180
    start_month: str = "2025-01"
    months: int = 12
    recent_window_days: int = 30
    comparison_window_days: int = 7
    stream: str = "shared"

    def __post_init__(self) -> None:
        if self.seed <= 0:
            raise ConfigError(f"seed must be positive, got {self.seed}")
        if self.days <= 0 or self.months <= 0:
            raise ConfigError("days and months must be positive.")
        if self.recent_window_days <= 0 or self.comparison_window_days <= 0:
            raise ConfigError("window sizes must be positive.")
        if self.stream not in STREAM_MODES:
            raise ConfigError(f"stream must be one of {STREAM_MODES}, got {self.stream!r}")
        _parse_month(self.start_month)

    @property
    def start_year_month(self) -> tuple[int, int]:
        return _parse_month(self.start_month)

    def with_overrides(self, **changes) -> "DatasetConfig":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls) -> "DatasetConfig":
        overrides = {
            "seed": _env_int("SEED"),
            "start_date": _env_date("START_DATE"),
            "days": _env_int("DAYS"),
            "start_month": os.getenv(ENV_PREFIX + "START_MONTH") or None,
            "months": _env_int("MONTHS"),
            "stream": os.getenv(ENV_PREFIX + "STREAM") or None,
        }
        return cls().with_overrides(**overrides)


def _parse_month(label: str) -> tuple[int, int]:
    try:
        year_str, month_str = str(label).split("-")
        year, month = int(year_str), int(month_str)
    except ValueError as exc:
        raise ConfigError(f"Month must look like YYYY-MM, got {label!r}") from exc
    if not 1 <= month <= 12:
        raise ConfigError(f"Month out of range in {label!r}")
    return year, month


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


def _env_date(name: str) -> Optional[date]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an ISO date, got {raw!r}") from exc
