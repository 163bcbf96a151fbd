from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Sequence

import pandas as pd

from aggregation import AreaSummary, RegionSummary, aggregate_by_area, aggregate_by_region, summarize_network
from config import DatasetConfig
from hierarchy import VOLUME_CLASSES, Area, Branch, Region, build_hierarchy, flatten_areas, flatten_branches
from scoring import score_areas, score_branches
from seeded_random import SeededRandom
from synthesizer import DailyMetrics, MonthlyMetrics, date_labels, month_labels, synthesize_all
from timeseries import PeriodComparison, aggregate_daily_trend, compute_period_comparison, generate_time_series
from utils import as_frame

logger = logging.getLogger(__name__)


@dataclass
class Dataset:
    """Generated hierarchy, metric records and precomputed summaries.

    Treat every attribute as read-only. The query methods are pure and take
    their filters as arguments.
    """

    config: DatasetConfig
    regions: List[Region]
    branches: List[Branch]
    daily: List[DailyMetrics]
    monthly: List[MonthlyMetrics]
    area_summaries: List[AreaSummary] = field(default_factory=list)
    region_summaries: List[RegionSummary] = field(default_factory=list)
    _frames: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False, compare=False)

    @property
    def areas(self) -> List[Area]:
        return flatten_areas(self.regions)

    @property
    def dates(self) -> List[str]:
        return sorted({m.date for m in self.daily})

    @property
    def months(self) -> List[str]:
        return sorted({m.month for m in self.monthly})

    def _frame(self, name: str, records, record_type) -> pd.DataFrame:
        if name not in self._frames:
            self._frames[name] = as_frame(records, record_type)
        # callers get a copy so the cached frame stays untouched
        return self._frames[name].copy()

    def daily_frame(self) -> pd.DataFrame:
        return self._frame("daily", self.daily, DailyMetrics)

    def monthly_frame(self) -> pd.DataFrame:
        return self._frame("monthly", self.monthly, MonthlyMetrics)

    def branch_frame(self) -> pd.DataFrame:
        rows = []
        for b in self.branches:
            rows.append(
                {
                    "branch_id": b.id,
                    "code": b.code,
                    "name": b.name,
                    "area_id": b.area_id,
                    "region_id": b.region_id,
                    "volume_class": b.volume_class,
                    "status": b.status,
                    "longitude": b.coordinates.longitude if b.coordinates else None,
                    "latitude": b.coordinates.latitude if b.coordinates else None,
                }
            )
        return pd.DataFrame(rows)

    def select_branch_ids(
        self,
        region_id: Optional[str] = None,
        area_id: Optional[str] = None,
        branch_id: Optional[str] = None,
        volume_class: Optional[str] = None,
    ) -> List[str]:
        """Branch ids matching every filter that is set; no filters selects all."""
        if volume_class is not None and volume_class not in VOLUME_CLASSES:
            raise ValueError(f"Unknown volume class: {volume_class!r}")
        selected = []
        for b in self.branches:
            if region_id is not None and b.region_id != region_id:
                continue
            if area_id is not None and b.area_id != area_id:
                continue
            if branch_id is not None and b.id != branch_id:
                continue
            if volume_class is not None and b.volume_class != volume_class:
                continue
            selected.append(b.id)
        return selected

    def period_comparison(
        self, metric: str, branch_ids: Sequence[str], window_days: Optional[int] = None
    ) -> PeriodComparison:
        window = window_days or self.config.comparison_window_days
        return compute_period_comparison(self.daily_frame(), branch_ids, metric, window)

    def daily_trend(self, metric: str, branch_ids: Sequence[str]) -> List[dict]:
        return aggregate_daily_trend(self.daily_frame(), branch_ids, metric)

    def time_series(self, metric: str, branch_ids: Sequence[str], granularity: str = "daily") -> List[dict]:
        return generate_time_series(self.daily_frame(), branch_ids, metric, granularity)

    def branch_scores(self, branch_ids: Optional[Sequence[str]] = None, window_days: Optional[int] = None) -> pd.DataFrame:
        window = window_days or self.config.comparison_window_days
        wanted = set(branch_ids) if branch_ids is not None else None
        branches = [b for b in self.branches if wanted is None or b.id in wanted]
        return score_branches(branches, self.daily_frame(), self.monthly_frame(), window)

    def area_scores(self, region_id: Optional[str] = None, window_days: Optional[int] = None) -> pd.DataFrame:
        window = window_days or self.config.comparison_window_days
        regions = [r for r in self.regions if region_id is None or r.id == region_id]
        return score_areas(regions, self.daily_frame(), self.monthly_frame(), window)

    def network_summary(self):
        return summarize_network(self.regions, self.area_summaries)


def generate_dataset(config: Optional[DatasetConfig] = None) -> Dataset:
    """Generate the full dataset for ``config`` (defaults when omitted).

    One generator is seeded from ``config.seed`` and used for the hierarchy
    first, then for the metric records, so the output is identical on
    every run with the same config.
    """
    config = config or DatasetConfig()
    rng = SeededRandom(config.seed)

    regions = build_hierarchy(rng)
    branches = flatten_branches(regions)
    dates = date_labels(config.start_date, config.days)
    months = month_labels(*config.start_year_month, config.months)
    daily, monthly = synthesize_all(branches, dates, months, rng, stream=config.stream)

    dataset = Dataset(config=config, regions=regions, branches=branches, daily=daily, monthly=monthly)
    dataset.area_summaries = aggregate_by_area(
        regions, dataset.daily_frame(), dataset.monthly_frame(), window_days=config.recent_window_days
    )
    dataset.region_summaries = aggregate_by_region(regions, dataset.area_summaries)

    logger.info(
        "Generated dataset (seed=%d, stream=%s): %d regions, %d areas, %d branches, %d daily, %d monthly records",
        config.seed,
        config.stream,
        len(regions),
        len(dataset.areas),
        len(branches),
        len(daily),
        len(monthly),
    )
    return dataset


@lru_cache(maxsize=4)
def _cached_dataset(config: DatasetConfig) -> Dataset:
    return generate_dataset(config)


def load_dataset(config: Optional[DatasetConfig] = None) -> Dataset:
    """Process-wide dataset: generated once per config, then reused.

    Without an explicit config the ``BRANCH_SQI_*`` environment variables
    are read (see ``DatasetConfig.from_env``).
    """
    return _cached_dataset(config or DatasetConfig.from_env())
