#!/usr/bin/env python3
import argparse
import logging

from aggregation import summaries_frame
from config import DatasetConfig
from dataset import generate_dataset
from scoring import intervention_list, rank_by_sqi


AREA_COLS = [
    "performance_rank",
    "area_name",
    "region_name",
    "branch_count",
    "avg_queue_time",
    "sla_met",
    "service_failure_rate",
    "ses_score",
    "nps_score",
    "queue_time_trend",
    "sla_trend",
    "percent_declining",
]
REGION_COLS = [
    "performance_rank",
    "region_name",
    "area_count",
    "branch_count",
    "avg_queue_time",
    "sla_met",
    "ses_score",
    "nps_score",
    "branches_improving",
    "branches_stagnant",
    "branches_declining",
]
SCORE_COLS = ["sqi_rank", "area_name", "region_name", "sqi", "prev_sqi", "sqi_decline", "queue_change", "sla_change"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate the synthetic branch network and print its service-quality summaries.")
    parser.add_argument("--seed", type=int, default=None, help="Generator seed (default: BRANCH_SQI_SEED or 12345).")
    parser.add_argument("--window", type=int, default=7, help="Days per SQI comparison window.")
    parser.add_argument("--top", type=int, default=10, help="Rows to show in the intervention list.")
    parser.add_argument("--per-branch-streams", action="store_true", help="Give each branch its own random sub-stream.")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = DatasetConfig.from_env().with_overrides(
        seed=args.seed,
        comparison_window_days=args.window,
        stream="per_branch" if args.per_branch_streams else None,
    )
    dataset = generate_dataset(config)
    network = dataset.network_summary()

    print(f"Seed: {config.seed}")
    print(
        f"Regions: {network.total_regions}  Areas: {network.total_areas}  Branches: {network.total_branches}"
    )
    print(
        f"Avg queue: {network.avg_queue_time} min  SLA: {network.avg_sla_met}%  "
        f"Failure: {network.avg_service_failure_rate}%  SES: {network.avg_ses}  NPS: {network.avg_nps}"
    )
    print(
        f"Improving: {network.branches_improving}  Stagnant: {network.branches_stagnant}  "
        f"Declining: {network.branches_declining}"
    )

    print("\nRegion summary:")
    regions = summaries_frame(dataset.region_summaries).sort_values("performance_rank")
    print(regions[REGION_COLS].to_string(index=False))

    print("\nArea summary (ranked by SLA):")
    areas = summaries_frame(dataset.area_summaries)
    print(areas[AREA_COLS].to_string(index=False))

    scores = rank_by_sqi(dataset.area_scores())
    print("\nSQI ranking by area:")
    print(scores[SCORE_COLS].to_string(index=False))

    print(f"\nAreas needing intervention (SQI decline vs previous {config.comparison_window_days} days):")
    interventions = intervention_list(scores, limit=args.top)
    if interventions.empty:
        print("None")
    else:
        print(interventions[SCORE_COLS].to_string(index=False))


if __name__ == "__main__":
    main()
