from datetime import date

import pandas as pd
import pytest

from aggregation import (
    AreaSummary,
    aggregate_by_area,
    aggregate_by_region,
    latest_monthly_slice,
    recent_daily_slice,
    status_counts,
    summaries_frame,
    summarize_network,
)
from config import is_improvement, label_trend
from hierarchy import Area, Region
from seeded_random import SeededRandom
from synthesizer import date_labels, month_labels, synthesize_all
from tests.factories import make_branch, make_daily, make_monthly, make_region


def _area_summary(**overrides):
    values = dict(
        area_id="X-A1",
        area_name="X",
        region_id="X",
        region_name="Region X",
        branch_count=1,
        avg_queue_time=0.0,
        sla_met=0.0,
        service_failure_rate=0.0,
        service_spread=0.0,
        avg_service_time=0.0,
        avg_transactions_per_branch=0,
        ses_score=0.0,
        nps_score=0,
        queue_time_trend="stable",
        sla_trend="stable",
        perception_trend="stable",
        branches_improving=0,
        branches_stagnant=0,
        branches_declining=0,
        percent_declining=0,
    )
    values.update(overrides)
    return AreaSummary(**values)


def test_area_with_three_declining_of_ten():
    statuses = ["Declining"] * 3 + ["Improving"] * 4 + ["Stagnant"] * 3
    branches = [make_branch(f"T-A1-B{i + 1}", status=s) for i, s in enumerate(statuses)]
    region = make_region(branches)
    daily, monthly = synthesize_all(
        branches, date_labels(date(2025, 7, 1), 40), month_labels(2025, 1, 3), SeededRandom(7)
    )

    [summary] = aggregate_by_area([region], daily, monthly)
    assert summary.branch_count == 10
    assert summary.branches_declining == 3
    assert summary.branches_improving == 4
    assert summary.branches_stagnant == 3
    assert summary.percent_declining == 30
    assert summary.performance_rank == 1
    assert 2 <= summary.avg_queue_time <= 35
    assert 50 <= summary.sla_met <= 99


def test_recent_window_is_per_branch_and_date_sorted():
    # b1 has a long history, b2 a short one; records are interleaved and unsorted.
    records = []
    for day in range(10, 0, -1):
        records.append(make_daily("b1", f"2025-07-{day:02d}", avg_queue_time=float(day)))
    for day in (9, 10):
        records.append(make_daily("b2", f"2025-07-{day:02d}", avg_queue_time=100.0))
    records.append(make_daily("other", "2025-07-11", avg_queue_time=999.0))
    df = pd.DataFrame([vars(r) for r in records])

    recent = recent_daily_slice(df, ["b1", "b2"], window_days=3)
    assert sorted(recent.loc[recent["branch_id"] == "b1", "date"]) == ["2025-07-08", "2025-07-09", "2025-07-10"]
    assert sorted(recent.loc[recent["branch_id"] == "b2", "date"]) == ["2025-07-09", "2025-07-10"]
    assert "other" not in set(recent["branch_id"])


def test_area_means_use_only_the_recent_window():
    branch = make_branch("T-A1-B1")
    daily = [make_daily(branch.id, f"2025-07-{d:02d}", avg_queue_time=50.0, sla_met=10.0) for d in range(1, 11)]
    daily += [make_daily(branch.id, f"2025-07-{d:02d}", avg_queue_time=12.0, sla_met=80.0) for d in range(11, 16)]
    monthly = [make_monthly(branch.id, "2025-05", ses_score=3.0, nps_score=-10), make_monthly(branch.id, "2025-06", ses_score=4.5, nps_score=40)]

    [summary] = aggregate_by_area([make_region([branch])], daily, monthly, window_days=5)
    assert summary.avg_queue_time == 12.0
    assert summary.sla_met == 80.0
    assert summary.ses_score == 4.5
    assert summary.nps_score == 40
    assert summary.queue_time_trend == "stable"
    assert summary.sla_trend == "stable"
    assert summary.perception_trend == "up"


def test_latest_monthly_slice_offsets():
    rows = [make_monthly("b1", m, nps_score=i) for i, m in enumerate(["2025-03", "2025-01", "2025-02"])]
    df = pd.DataFrame([vars(r) for r in rows])
    assert list(latest_monthly_slice(df, ["b1"])["month"]) == ["2025-03"]
    assert list(latest_monthly_slice(df, ["b1"], offset=1)["month"]) == ["2025-02"]
    assert latest_monthly_slice(df, ["b1"], offset=5).empty


def test_empty_area_yields_zeros():
    region = Region(id="E", name="Empty", areas=(Area(id="E-A1", name="Nowhere", region_id="E", branches=()),))
    [summary] = aggregate_by_area([region], [], [])
    assert summary.branch_count == 0
    assert summary.avg_queue_time == 0.0
    assert summary.percent_declining == 0
    assert summary.avg_transactions_per_branch == 0

    [region_summary] = aggregate_by_region([region], [summary])
    assert region_summary.branch_count == 0
    assert region_summary.sla_met == 0.0


def test_area_ranking_is_descending_by_sla(dataset):
    summaries = dataset.area_summaries
    assert [s.performance_rank for s in summaries] == list(range(1, len(summaries) + 1))
    slas = [s.sla_met for s in summaries]
    assert slas == sorted(slas, reverse=True)


def test_status_counts_are_conserved(dataset):
    direct = status_counts(dataset.branches)
    areas = dataset.area_summaries
    assert sum(a.branches_improving for a in areas) == direct["Improving"]
    assert sum(a.branches_stagnant for a in areas) == direct["Stagnant"]
    assert sum(a.branches_declining for a in areas) == direct["Declining"]

    regions = dataset.region_summaries
    assert sum(r.branch_count for r in regions) == len(dataset.branches)
    assert sum(r.branches_declining for r in regions) == direct["Declining"]
    assert sum(a.branch_count for a in areas) == len(dataset.branches)


def test_region_weighted_by_branch_count():
    region = make_region([make_branch("X-A1-B1")], region_id="X", area_id="X-A1")
    region = Region(
        id="X",
        name="Region X",
        areas=region.areas + (Area(id="X-A2", name="Y", region_id="X", branches=tuple(make_branch(f"X-A2-B{i}") for i in range(3))),),
    )
    areas = [
        _area_summary(branch_count=1, avg_queue_time=20.0, sla_met=60.0, ses_score=3.0, nps_score=0, avg_transactions_per_branch=100, branches_declining=1),
        _area_summary(area_id="X-A2", branch_count=3, avg_queue_time=10.0, sla_met=90.0, ses_score=4.6, nps_score=40, avg_transactions_per_branch=300, branches_improving=3),
    ]
    [summary] = aggregate_by_region([region], areas)
    assert summary.branch_count == 4
    assert summary.area_count == 2
    assert summary.avg_queue_time == 12.5
    assert summary.sla_met == 82.5
    assert summary.ses_score == 4.2
    assert summary.nps_score == 30
    assert summary.avg_transactions_per_branch == 200
    assert (summary.branches_improving, summary.branches_declining) == (3, 1)
    assert summary.queue_time_trend == "stable"
    assert summary.sla_trend == "stable"
    assert summary.perception_trend == "up"
    assert summary.performance_rank == 1


def test_trend_labels():
    assert label_trend("avg_queue_time", 10.9) == "down"
    assert label_trend("avg_queue_time", 14.1) == "up"
    assert label_trend("avg_queue_time", 12) == "stable"
    assert label_trend("sla_met", 86) == "up"
    assert label_trend("sla_met", 74) == "down"
    assert label_trend("ses_score", 3.4) == "down"
    with pytest.raises(ValueError):
        label_trend("unknown", 1)


def test_improvement_direction():
    assert is_improvement("sla_met", 2.0) is True
    assert is_improvement("avg_queue_time", 2.0) is False
    assert is_improvement("avg_queue_time", -0.5) is True
    assert is_improvement("sla_met", 0) is None
    assert is_improvement("total_transactions", 10) is None


def test_network_summary(dataset):
    network = summarize_network(dataset.regions, dataset.area_summaries)
    assert network.total_regions == 4
    assert network.total_areas == 20
    assert network.total_branches == 254
    assert network.branches_improving + network.branches_stagnant + network.branches_declining == 254
    assert 2 <= network.avg_queue_time <= 35


def test_summaries_frame_flattens_coordinates(dataset):
    frame = summaries_frame(dataset.area_summaries)
    assert len(frame) == 20
    assert {"longitude", "latitude", "performance_rank"} <= set(frame.columns)
    assert "coordinates" not in frame.columns
