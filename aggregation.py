from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

import pandas as pd

from config import label_trend
from hierarchy import Area, Branch, Coordinate, Region, flatten_areas
from synthesizer import DailyMetrics, MonthlyMetrics
from utils import as_frame, round_half_up, round_int, safe_div, series_mean

logger = logging.getLogger(__name__)


DAILY_ROLLUP_FIELDS = [
    "avg_queue_time",
    "sla_met",
    "service_failure_rate",
    "service_spread",
    "avg_service_time",
]


@dataclass(frozen=True)
class AreaSummary:
    area_id: str
    area_name: str
    region_id: str
    region_name: str
    branch_count: int
    avg_queue_time: float
    sla_met: float
    service_failure_rate: float
    service_spread: float
    avg_service_time: float
    avg_transactions_per_branch: int
    ses_score: float
    nps_score: int
    queue_time_trend: str
    sla_trend: str
    perception_trend: str
    branches_improving: int
    branches_stagnant: int
    branches_declining: int
    percent_declining: int
    performance_rank: int = 0
    coordinates: Optional[Coordinate] = None


@dataclass(frozen=True)
class RegionSummary:
    region_id: str
    region_name: str
    area_count: int
    branch_count: int
    avg_queue_time: float
    sla_met: float
    service_failure_rate: float
    avg_transactions_per_branch: int
    ses_score: float
    nps_score: int
    queue_time_trend: str
    sla_trend: str
    perception_trend: str
    branches_improving: int
    branches_stagnant: int
    branches_declining: int
    performance_rank: int = 0


@dataclass(frozen=True)
class NetworkSummary:
    total_branches: int
    total_areas: int
    total_regions: int
    avg_queue_time: float
    avg_sla_met: float
    avg_service_failure_rate: float
    avg_ses: float
    avg_nps: int
    branches_improving: int
    branches_stagnant: int
    branches_declining: int


def status_counts(branches: Sequence[Branch]) -> Dict[str, int]:
    counts = {"Improving": 0, "Stagnant": 0, "Declining": 0}
    for branch in branches:
        counts[branch.status] = counts.get(branch.status, 0) + 1
    return counts


def recent_daily_slice(daily: pd.DataFrame, branch_ids: Sequence[str], window_days: int) -> pd.DataFrame:
    """Last ``window_days`` dates of each selected branch's history.

    Rows are restricted to ``branch_ids`` before anything else, then sorted
    by branch and date, so the window never mixes in other branches.
    """
    subset = daily[daily["branch_id"].isin(list(branch_ids))]
    if subset.empty:
        return subset
    subset = subset.sort_values(["branch_id", "date"], kind="mergesort")
    return subset.groupby("branch_id", sort=False).tail(window_days)


def latest_monthly_slice(monthly: pd.DataFrame, branch_ids: Sequence[str], offset: int = 0) -> pd.DataFrame:
    """One monthly row per branch: the latest month, or ``offset`` months before it."""
    subset = monthly[monthly["branch_id"].isin(list(branch_ids))]
    if subset.empty:
        return subset
    subset = subset.sort_values(["branch_id", "month"], kind="mergesort")
    return subset.groupby("branch_id", sort=False).nth(-(offset + 1))


def _summarize_area(
    area: Area, region: Region, daily: pd.DataFrame, monthly: pd.DataFrame, window_days: int
) -> AreaSummary:
    branch_ids = area.branch_ids
    branch_count = len(branch_ids)
    recent = recent_daily_slice(daily, branch_ids, window_days)
    latest = latest_monthly_slice(monthly, branch_ids)

    means = {col: series_mean(recent[col]) if not recent.empty else 0.0 for col in DAILY_ROLLUP_FIELDS}
    total_transactions = float(recent["total_transactions"].sum()) if not recent.empty else 0.0
    ses = series_mean(latest["ses_score"]) if not latest.empty else 0.0
    nps = series_mean(latest["nps_score"]) if not latest.empty else 0.0

    counts = status_counts(area.branches)
    return AreaSummary(
        area_id=area.id,
        area_name=area.name,
        region_id=region.id,
        region_name=region.name,
        branch_count=branch_count,
        avg_queue_time=round_half_up(means["avg_queue_time"], 1),
        sla_met=round_half_up(means["sla_met"], 1),
        service_failure_rate=round_half_up(means["service_failure_rate"], 1),
        service_spread=round_half_up(means["service_spread"], 1),
        avg_service_time=round_half_up(means["avg_service_time"], 1),
        avg_transactions_per_branch=round_int(safe_div(total_transactions, branch_count)),
        ses_score=round_half_up(ses, 2),
        nps_score=round_int(nps),
        queue_time_trend=label_trend("avg_queue_time", means["avg_queue_time"]),
        sla_trend=label_trend("sla_met", means["sla_met"]),
        perception_trend=label_trend("ses_score", ses),
        branches_improving=counts["Improving"],
        branches_stagnant=counts["Stagnant"],
        branches_declining=counts["Declining"],
        percent_declining=round_int(safe_div(counts["Declining"], branch_count) * 100),
        coordinates=area.coordinates,
    )


def aggregate_by_area(
    regions: Sequence[Region], daily, monthly, window_days: int = 30
) -> List[AreaSummary]:
    """Roll branch records up to one summary per area, ranked by SLA."""
    daily_df = as_frame(daily, DailyMetrics)
    monthly_df = as_frame(monthly, MonthlyMetrics)

    summaries: List[AreaSummary] = []
    for region in regions:
        for area in region.areas:
            summaries.append(_summarize_area(area, region, daily_df, monthly_df, window_days))

    ranked = sorted(summaries, key=lambda s: -s.sla_met)
    summaries = [replace(s, performance_rank=i + 1) for i, s in enumerate(ranked)]
    logger.debug("Aggregated %d area summaries", len(summaries))
    return summaries


def _weighted(values: List[float], weights: List[int]) -> float:
    return safe_div(sum(v * w for v, w in zip(values, weights)), sum(weights))


def aggregate_by_region(regions: Sequence[Region], area_summaries: Sequence[AreaSummary]) -> List[RegionSummary]:
    """Branch-count weighted roll-up of area summaries, in region order."""
    out: List[RegionSummary] = []
    for region in regions:
        areas = [a for a in area_summaries if a.region_id == region.id]
        weights = [a.branch_count for a in areas]
        branch_count = sum(len(a.branches) for a in region.areas)

        avg_queue = _weighted([a.avg_queue_time for a in areas], weights)
        sla = _weighted([a.sla_met for a in areas], weights)
        failure = _weighted([a.service_failure_rate for a in areas], weights)
        ses = _weighted([a.ses_score for a in areas], weights)
        nps = _weighted([a.nps_score for a in areas], weights)
        transactions = safe_div(sum(a.avg_transactions_per_branch for a in areas), len(areas))

        out.append(
            RegionSummary(
                region_id=region.id,
                region_name=region.name,
                area_count=len(region.areas),
                branch_count=branch_count,
                avg_queue_time=round_half_up(avg_queue, 1),
                sla_met=round_half_up(sla, 1),
                service_failure_rate=round_half_up(failure, 1),
                avg_transactions_per_branch=round_int(transactions),
                ses_score=round_half_up(ses, 2),
                nps_score=round_int(nps),
                queue_time_trend=label_trend("avg_queue_time", avg_queue),
                sla_trend=label_trend("sla_met", sla),
                perception_trend=label_trend("ses_score", ses),
                branches_improving=sum(a.branches_improving for a in areas),
                branches_stagnant=sum(a.branches_stagnant for a in areas),
                branches_declining=sum(a.branches_declining for a in areas),
            )
        )

    ranks = {s.region_id: i + 1 for i, s in enumerate(sorted(out, key=lambda s: -s.sla_met))}
    return [replace(s, performance_rank=ranks[s.region_id]) for s in out]


def summarize_network(regions: Sequence[Region], area_summaries: Sequence[AreaSummary]) -> NetworkSummary:
    branches = [b for r in regions for b in r.branches]
    counts = status_counts(branches)
    n = len(area_summaries)

    def area_mean(attr: str) -> float:
        return safe_div(sum(getattr(a, attr) for a in area_summaries), n)

    return NetworkSummary(
        total_branches=len(branches),
        total_areas=len(flatten_areas(list(regions))),
        total_regions=len(regions),
        avg_queue_time=round_half_up(area_mean("avg_queue_time"), 1),
        avg_sla_met=round_half_up(area_mean("sla_met"), 1),
        avg_service_failure_rate=round_half_up(area_mean("service_failure_rate"), 1),
        avg_ses=round_half_up(area_mean("ses_score"), 2),
        avg_nps=round_int(area_mean("nps_score")),
        branches_improving=counts["Improving"],
        branches_stagnant=counts["Stagnant"],
        branches_declining=counts["Declining"],
    )


def summaries_frame(summaries: Sequence) -> pd.DataFrame:
    rows = []
    for s in summaries:
        row = dict(vars(s))
        coords = row.pop("coordinates", None)
        if coords is not None:
            row["longitude"] = coords.longitude
            row["latitude"] = coords.latitude
        rows.append(row)
    return pd.DataFrame(rows)
