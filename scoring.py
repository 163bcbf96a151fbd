from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from aggregation import latest_monthly_slice
from hierarchy import Branch, Region
from synthesizer import DailyMetrics, MonthlyMetrics
from utils import as_frame, round_half_up, round_int, safe_div, series_mean

logger = logging.getLogger(__name__)


# SQI input name -> daily metric column
WINDOW_METRICS: Dict[str, str] = {
    "queue_time": "avg_queue_time",
    "sla_met": "sla_met",
    "service_spread": "service_spread",
    "failure_rate": "service_failure_rate",
    "service_time": "avg_service_time",
}

CHANGE_COLUMNS: Dict[str, str] = {
    "queue_time": "queue_change",
    "sla_met": "sla_change",
    "service_spread": "spread_change",
    "failure_rate": "failure_change",
    "service_time": "service_time_change",
}


def compute_sqi(queue_time, sla_met, service_spread, failure_rate, service_time, nps):
    """Service Quality Index: mean of six sub-scores, each normalised to 0-100.

    Accepts plain numbers (returns an ``int``) or equally sized numpy arrays /
    pandas Series (returns integer values of the same shape).
    """
    queue_score = np.clip(100 - (queue_time - 5) * 5, 0, 100)
    sla_score = np.clip(sla_met, 0, 100)
    spread_score = np.clip(100 - (service_spread - 2) * 12.5, 0, 100)
    failure_score = np.clip(100 - failure_rate * 6.67, 0, 100)
    service_time_score = np.clip(100 - (service_time - 4) * 16.67, 0, 100)
    nps_score = np.clip((nps + 100) / 2, 0, 100)

    total = queue_score + sla_score + spread_score + failure_score + service_time_score + nps_score
    score = round_half_up(total / 6.0)
    if np.ndim(score) == 0:
        return int(score)
    return score.astype(int)


def sqi_decline(current: float, previous: float) -> int:
    """Percentage drop from ``previous`` to ``current``; negative means improvement."""
    if previous > 0:
        return round_int((previous - current) / previous * 100)
    return 0


def percent_change(current: float, previous: float) -> int:
    return round_int(safe_div(current - previous, previous) * 100)


def window_dates(dates: Sequence[str], window_days: int, offset: int = 0) -> List[str]:
    """``window_days`` dates ending ``offset`` windows before the last date."""
    ordered = sorted(dates)
    end = len(ordered) - offset * window_days
    if end <= 0:
        return []
    return ordered[max(0, end - window_days):end]


def _window_means(subset: pd.DataFrame, dates: List[str]) -> Dict[str, float]:
    rows = subset[subset["date"].isin(dates)]
    return {name: series_mean(rows[col]) for name, col in WINDOW_METRICS.items()}


def score_window(daily: pd.DataFrame, monthly: pd.DataFrame, branch_ids: Sequence[str], window_days: int = 7) -> dict:
    """SQI for a set of branches over the current and previous window.

    Daily rows are filtered to ``branch_ids`` before the date windows are
    taken. NPS comes from the latest month (current) and the month before
    it (previous; falls back to the latest month when there is none).
    """
    subset = daily[daily["branch_id"].isin(list(branch_ids))]
    dates = list(subset["date"].unique())
    current = _window_means(subset, window_dates(dates, window_days))
    previous = _window_means(subset, window_dates(dates, window_days, offset=1))

    nps = series_mean(latest_monthly_slice(monthly, branch_ids)["nps_score"]) if not monthly.empty else 0.0
    prev_rows = latest_monthly_slice(monthly, branch_ids, offset=1) if not monthly.empty else monthly
    prev_nps = series_mean(prev_rows["nps_score"]) if not prev_rows.empty else nps

    sqi = compute_sqi(nps=nps, **current)
    prev_sqi = compute_sqi(nps=prev_nps, **previous)

    row = {name: round_half_up(value, 1) for name, value in current.items()}
    row["nps"] = round_int(nps)
    row["sqi"] = sqi
    row["prev_sqi"] = prev_sqi
    row["sqi_decline"] = sqi_decline(sqi, prev_sqi)
    for name, column in CHANGE_COLUMNS.items():
        row[column] = percent_change(current[name], previous[name])
    return row


def score_branches(branches: Sequence[Branch], daily, monthly, window_days: int = 7) -> pd.DataFrame:
    daily_df = as_frame(daily, DailyMetrics)
    monthly_df = as_frame(monthly, MonthlyMetrics)

    rows = []
    for branch in branches:
        row = {
            "branch_id": branch.id,
            "branch_code": branch.code,
            "branch_name": branch.name,
            "area_id": branch.area_id,
            "region_id": branch.region_id,
            "volume_class": branch.volume_class,
            "status": branch.status,
        }
        row.update(score_window(daily_df, monthly_df, [branch.id], window_days))
        if branch.coordinates is not None:
            row["longitude"] = branch.coordinates.longitude
            row["latitude"] = branch.coordinates.latitude
        rows.append(row)

    logger.debug("Scored %d branches over %d-day windows", len(rows), window_days)
    return pd.DataFrame(rows)


def score_areas(regions: Sequence[Region], daily, monthly, window_days: int = 7) -> pd.DataFrame:
    daily_df = as_frame(daily, DailyMetrics)
    monthly_df = as_frame(monthly, MonthlyMetrics)

    rows = []
    for region in regions:
        for area in region.areas:
            row = {
                "area_id": area.id,
                "area_name": area.name,
                "region_id": region.id,
                "region_name": region.name,
                "branch_count": len(area.branches),
            }
            row.update(score_window(daily_df, monthly_df, area.branch_ids, window_days))
            rows.append(row)

    logger.debug("Scored %d areas over %d-day windows", len(rows), window_days)
    return pd.DataFrame(rows)


def rank_by_sqi(scores: pd.DataFrame) -> pd.DataFrame:
    """Stable descending sort by SQI with a 1-based ``sqi_rank`` column."""
    if scores.empty:
        return scores.copy()
    out = scores.sort_values("sqi", ascending=False, kind="mergesort").reset_index(drop=True)
    out["sqi_rank"] = np.arange(1, len(out) + 1)
    return out


def intervention_list(scores: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
    """Rows whose SQI declined versus the previous window, worst first."""
    if scores.empty:
        return scores.copy()
    declining = scores[scores["sqi_decline"] > 0]
    return (
        declining.sort_values("sqi_decline", ascending=False, kind="mergesort")
        .head(limit)
        .reset_index(drop=True)
    )
