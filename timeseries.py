from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from config import is_improvement
from scoring import window_dates
from synthesizer import DAILY_NUMERIC_FIELDS, DailyMetrics
from utils import as_frame, round_half_up, safe_div, series_mean


GRANULARITIES = ("daily", "weekly", "monthly")


@dataclass(frozen=True)
class PeriodComparison:
    current: float
    previous: float
    change: float
    change_percent: float
    improved: Optional[bool] = None


def week_key(iso_date: str) -> str:
    """``YYYY-W##`` bucket counted from January 1st.

    Week 1 runs from January 1st to the first Saturday; weeks then run
    Sunday to Saturday.
    """
    d = date.fromisoformat(iso_date)
    jan1 = date(d.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday = 0
    day_of_year = (d - jan1).days
    week = math.ceil((day_of_year + jan1_weekday + 1) / 7)
    return f"{d.year}-W{week:02d}"


def bucket_key(iso_date: str, granularity: str) -> str:
    if granularity == "daily":
        return iso_date
    if granularity == "weekly":
        return week_key(iso_date)
    if granularity == "monthly":
        return iso_date[:7]
    raise ValueError(f"Unknown granularity: {granularity!r}. Expected one of {GRANULARITIES}.")


def _check_metric(metric: str) -> None:
    if metric not in DAILY_NUMERIC_FIELDS:
        raise ValueError(f"Unknown daily metric: {metric!r}")


def _filter(daily, branch_ids: Sequence[str]) -> pd.DataFrame:
    df = as_frame(daily, DailyMetrics)
    return df[df["branch_id"].isin(list(branch_ids))]


def generate_time_series(
    daily, branch_ids: Sequence[str], metric: str, granularity: str = "daily"
) -> List[Dict[str, object]]:
    """Average ``metric`` per day / week / month bucket, oldest bucket first."""
    _check_metric(metric)
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity!r}. Expected one of {GRANULARITIES}.")

    filtered = _filter(daily, branch_ids)
    if filtered.empty:
        return []

    keys = filtered["date"].map(lambda d: bucket_key(d, granularity))
    means = filtered[metric].astype(float).groupby(keys).mean().sort_index()
    return [{"date": key, "value": round_half_up(value, 1)} for key, value in means.items()]


def aggregate_daily_trend(daily, branch_ids: Sequence[str], metric: str) -> List[Dict[str, object]]:
    return generate_time_series(daily, branch_ids, metric, granularity="daily")


def compute_period_comparison(
    daily, branch_ids: Sequence[str], metric: str, window_size: int = 7
) -> PeriodComparison:
    """Compare the mean of ``metric`` over the last ``window_size`` dates
    against the ``window_size`` dates before them.

    Empty windows average to 0 and ``change_percent`` is 0 whenever the
    previous average is 0.
    """
    _check_metric(metric)
    if window_size <= 0:
        raise ValueError(f"window_size must be positive, got {window_size}")

    filtered = _filter(daily, branch_ids)
    dates = list(filtered["date"].unique())
    current_dates = window_dates(dates, window_size)
    previous_dates = window_dates(dates, window_size, offset=1)

    current_avg = series_mean(filtered.loc[filtered["date"].isin(current_dates), metric])
    previous_avg = series_mean(filtered.loc[filtered["date"].isin(previous_dates), metric])

    change = current_avg - previous_avg
    change_percent = safe_div(change, previous_avg) * 100
    return PeriodComparison(
        current=round_half_up(current_avg, 1),
        previous=round_half_up(previous_avg, 1),
        change=round_half_up(change, 1),
        change_percent=round_half_up(change_percent, 1),
        improved=is_improvement(metric, change),
    )
