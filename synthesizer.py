from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, timedelta
from typing import Callable, Iterable, List, Tuple

from hierarchy import Branch
from seeded_random import SeededRandom
from utils import clamp, round_half_up, round_int

logger = logging.getLogger(__name__)


# Daily model
DAILY_VOLUME_MULTIPLIER = {"High": 1.5, "Medium": 1.0, "Low": 0.6}
DAILY_DRIFT = {"Improving": -0.002, "Stagnant": 0.0, "Declining": 0.003}
WEEKEND_FACTOR = 0.6
BASE_QUEUE_MINUTES = 12.0
QUEUE_BOUNDS = (2.0, 35.0)
SLA_BOUNDS = (50.0, 99.0)
FAILURE_BOUNDS = (1.0, 15.0)
P50_FACTOR = (0.7, 0.9)
P80_FACTOR = (1.2, 1.6)
BASE_TRANSACTIONS = {"High": 450, "Medium": 280, "Low": 150}
COUNTERS = {"High": 6, "Medium": 4, "Low": 2}
STAFF_PER_COUNTER = 1.5

# Monthly model
MONTHLY_VOLUME_MULTIPLIER = {"High": 1.3, "Medium": 1.0, "Low": 0.7}
MONTHLY_DRIFT = {"Improving": -0.05, "Stagnant": 0.0, "Declining": 0.08}
SES_BOUNDS = (2.5, 5.0)
NPS_BOUNDS = (-100, 100)
NSI_BOUNDS = (0, 100)
COMPLAINT_RANGES = {
    "complaints_queue_time": (2, 15),
    "complaints_staff_behavior": (1, 8),
    "complaints_system_issues": (0, 5),
    "complaints_product_info": (1, 6),
    "complaints_other": (0, 4),
}


@dataclass(frozen=True)
class DailyMetrics:
    date: str
    branch_id: str
    avg_queue_time: float
    sla_met: float
    queue_p50: float
    queue_p80: float
    queue_under_5: int
    queue_5_to_15: int
    queue_15_to_30: int
    queue_over_30: int
    cs_queue_time: float
    teller_queue_time: float
    service_failure_rate: float
    service_spread: float
    total_transactions: int
    transactions_per_counter: int
    transactions_per_staff: int
    avg_service_time: float
    utilisation_rate: int
    cash_transactions: int
    non_cash_transactions: int
    digital_eligible_offline: int


@dataclass(frozen=True)
class MonthlyMetrics:
    month: str
    branch_id: str
    avg_queue_time: float
    sla_met: float
    consistency_rate: float
    avg_transactions_per_day: int
    ses_score: float
    nps_score: int
    nsi_score: int
    complaints_queue_time: int
    complaints_staff_behavior: int
    complaints_system_issues: int
    complaints_product_info: int
    complaints_other: int
    external_review_score: float

    @property
    def total_complaints(self) -> int:
        return sum(getattr(self, name) for name in COMPLAINT_RANGES)


DAILY_NUMERIC_FIELDS = [
    f.name for f in fields(DailyMetrics) if f.name not in ("date", "branch_id")
]
MONTHLY_NUMERIC_FIELDS = [
    f.name for f in fields(MonthlyMetrics) if f.name not in ("month", "branch_id")
]


def _check_volume_class(branch: Branch) -> None:
    if branch.volume_class not in DAILY_VOLUME_MULTIPLIER:
        raise ValueError(f"Unknown volume class for {branch.id}: {branch.volume_class!r}")


def is_weekend(iso_date: str) -> bool:
    return date.fromisoformat(iso_date).weekday() >= 5


def synthesize_daily(branch: Branch, iso_date: str, day_index: int, rng: SeededRandom) -> DailyMetrics:
    _check_volume_class(branch)
    volume = DAILY_VOLUME_MULTIPLIER[branch.volume_class]
    drift = DAILY_DRIFT.get(branch.status, 0.0) * day_index
    weekday_factor = WEEKEND_FACTOR if is_weekend(iso_date) else 1.0

    base_queue = BASE_QUEUE_MINUTES + rng.gaussian(0, 3) + drift * 100
    avg_queue = clamp(base_queue * volume * weekday_factor, *QUEUE_BOUNDS)

    p50 = avg_queue * rng.range(*P50_FACTOR)
    p80 = avg_queue * rng.range(*P80_FACTOR)

    sla = clamp(100 - (avg_queue - 10) * 3 + rng.gaussian(0, 5), *SLA_BOUNDS)
    failure = clamp(5 + rng.gaussian(0, 3) + drift * 50, *FAILURE_BOUNDS)

    total = round_int(BASE_TRANSACTIONS[branch.volume_class] * weekday_factor * rng.range(0.8, 1.2))
    counters = COUNTERS[branch.volume_class]
    staff = counters * STAFF_PER_COUNTER

    return DailyMetrics(
        date=iso_date,
        branch_id=branch.id,
        avg_queue_time=round_half_up(avg_queue, 1),
        sla_met=round_half_up(sla, 1),
        queue_p50=round_half_up(p50, 1),
        queue_p80=round_half_up(p80, 1),
        queue_under_5=round_int(rng.range(0.1, 0.25) * 100),
        queue_5_to_15=round_int(rng.range(0.35, 0.5) * 100),
        queue_15_to_30=round_int(rng.range(0.15, 0.3) * 100),
        queue_over_30=round_int(rng.range(0.05, 0.15) * 100),
        cs_queue_time=round_half_up(avg_queue * rng.range(0.9, 1.1), 1),
        teller_queue_time=round_half_up(avg_queue * rng.range(0.8, 1.0), 1),
        service_failure_rate=round_half_up(failure, 1),
        service_spread=round_half_up(p80 - p50, 1),
        total_transactions=total,
        transactions_per_counter=round_int(total / counters),
        transactions_per_staff=round_int(total / staff),
        avg_service_time=round_half_up(rng.range(4, 8), 1),
        utilisation_rate=round_int(min(100.0, rng.range(60, 95))),
        cash_transactions=round_int(total * rng.range(0.3, 0.5)),
        non_cash_transactions=round_int(total * rng.range(0.5, 0.7)),
        digital_eligible_offline=round_int(total * rng.range(0.1, 0.25)),
    )


def synthesize_monthly(branch: Branch, month: str, month_index: int, rng: SeededRandom) -> MonthlyMetrics:
    _check_volume_class(branch)
    drift = MONTHLY_DRIFT.get(branch.status, 0.0) * month_index
    volume = MONTHLY_VOLUME_MULTIPLIER[branch.volume_class]

    # SES falls as queue time grows; NPS and NSI follow SES.
    base_queue = BASE_QUEUE_MINUTES + drift * 10
    ses_base = 4.2 - (base_queue - 10) * 0.05
    ses = clamp(ses_base + rng.gaussian(0, 0.2), *SES_BOUNDS)
    nps = round_int((ses - 3) * 50 + rng.gaussian(0, 15))
    nsi = round_int(70 + (ses - 3.5) * 20 + rng.gaussian(0, 5))

    complaints = {name: rng.int(low, high) for name, (low, high) in COMPLAINT_RANGES.items()}

    return MonthlyMetrics(
        month=month,
        branch_id=branch.id,
        avg_queue_time=round_half_up(base_queue * volume, 1),
        sla_met=round_half_up(85 - drift * 20, 1),
        consistency_rate=round_half_up(5 + drift * 8, 1),
        avg_transactions_per_day=round_int(250 * volume),
        ses_score=round_half_up(ses, 2),
        nps_score=int(clamp(nps, *NPS_BOUNDS)),
        nsi_score=int(clamp(nsi, *NSI_BOUNDS)),
        external_review_score=round_half_up(ses * 0.8 + rng.range(0.5, 1), 1),
        **complaints,
    )


def date_labels(start: date, days: int) -> List[str]:
    return [(start + timedelta(days=i)).isoformat() for i in range(days)]


def month_labels(start_year: int, start_month: int, count: int) -> List[str]:
    labels = []
    for i in range(count):
        offset = start_month - 1 + i
        labels.append(f"{start_year + offset // 12}-{offset % 12 + 1:02d}")
    return labels


def _synthesize(
    branches: Iterable[Branch],
    labels: List[str],
    make: Callable,
    stream_for: Callable[[Branch], SeededRandom],
) -> list:
    # Outer loop over branches, inner loop over periods.
    records = []
    for branch in branches:
        rng = stream_for(branch)
        for idx, label in enumerate(labels):
            records.append(make(branch, label, idx, rng))
    return records


def synthesize_all(
    branches: List[Branch],
    dates: List[str],
    months: List[str],
    rng: SeededRandom,
    stream: str = "shared",
) -> Tuple[List[DailyMetrics], List[MonthlyMetrics]]:
    """Generate every daily record, then every monthly record.

    ``stream="shared"`` threads ``rng`` through all branches in order.
    ``stream="per_branch"`` gives each branch its own sub-stream derived
    from ``rng``'s seed and the branch id, with separate daily and monthly
    streams, so a branch's records do not depend on any other branch.
    """
    if stream == "shared":
        daily = _synthesize(branches, dates, synthesize_daily, lambda b: rng)
        monthly = _synthesize(branches, months, synthesize_monthly, lambda b: rng)
    elif stream == "per_branch":
        daily = _synthesize(branches, dates, synthesize_daily, lambda b: rng.spawn(f"{b.id}/daily"))
        monthly = _synthesize(branches, months, synthesize_monthly, lambda b: rng.spawn(f"{b.id}/monthly"))
    else:
        raise ValueError(f"Unknown stream mode: {stream!r}")

    logger.debug("Synthesized %d daily and %d monthly records", len(daily), len(monthly))
    return daily, monthly
