#!/usr/bin/env python3
"""
Cross-Domain Insight Engine Demo: one collection cycle over sample providers.

Builds courier, warehousing and social commerce providers backed by
in-memory sample records, runs one cycle and prints the resulting insights
(or the full cycle report) as JSON.

The sample data is shaped so every rule fires at least once:
- P1001 trends on social commerce with low inventory (inventory risk)
- EU_WEST takes 70+ hours from order to doorstep (logistics bottleneck)
- APAC gets fast deliveries but poor satisfaction (experience gap)
- P1002 demand climbs while fulfillment efficiency falls (supply-chain risk)
- P1003 scores poorly end to end (end-to-end optimization)

Usage:
    python scripts/demo_run.py                      # Insights as JSON
    python scripts/demo_run.py --report             # Full cycle report
    python scripts/demo_run.py --fail-warehousing   # Fail-fast: no insights
    python scripts/demo_run.py --fail-warehousing --policy best_effort
"""

import argparse
import json
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from crossdomain.engine import InsightOrchestrator
from crossdomain.models import CollectionPolicy
from crossdomain.providers import get_provider
from crossdomain.utils import configure_logging

HISTORY_POINTS = 5


def _series(name: str, values: list[float], unit: str, start: datetime) -> list[dict]:
    """Raw records for one metric, one point per hour ending at the newest value."""
    return [
        {
            "metric_name": name,
            "metric_value": value,
            "metric_unit": unit,
            "timestamp": start + timedelta(hours=i),
        }
        for i, value in enumerate(values)
    ]


def courier_records(start: datetime) -> list[dict]:
    records = [
        {"metric_name": "delivery_time_EU_WEST", "metric_value": 40.0, "metric_unit": "HOURS", "region": "EU_WEST"},
        {"metric_name": "delivery_time_US_EAST", "metric_value": 18.0, "metric_unit": "HOURS", "region": "US_EAST"},
        {"metric_name": "delivery_time_APAC", "metric_value": 20.0, "metric_unit": "HOURS", "region": "APAC"},
        {"metric_name": "delivery_performance_APAC", "metric_value": 94.0, "metric_unit": "PERCENTAGE", "region": "APAC"},
        {"metric_name": "delivery_performance_US_EAST", "metric_value": 88.0, "metric_unit": "PERCENTAGE", "region": "US_EAST"},
    ]
    records += _series("delivery_time_P1002", [30.0, 30.0, 30.5, 30.5, 31.0], "HOURS", start)
    records += _series("delivery_time_P1003", [70.0, 72.0, 75.0, 78.0, 80.0], "HOURS", start)
    return records


def warehousing_records(start: datetime) -> list[dict]:
    records = [
        {"metric_name": "inventory_level_P1001", "metric_value": 12.0, "metric_unit": "PERCENTAGE"},
        {"metric_name": "inventory_level_P1002", "metric_value": 55.0, "metric_unit": "PERCENTAGE"},
        {"metric_name": "fulfillment_time_EU_WEST", "metric_value": 32.0, "metric_unit": "HOURS", "region": "EU_WEST"},
        {"metric_name": "fulfillment_time_US_EAST", "metric_value": 12.0, "metric_unit": "HOURS", "region": "US_EAST"},
        {"metric_name": "fulfillment_time_APAC", "metric_value": 14.0, "metric_unit": "HOURS", "region": "APAC"},
    ]
    records += _series("fulfillment_efficiency_P1002", [40.4, 40.3, 40.2, 40.1, 40.0], "PERCENTAGE", start)
    records += _series("fulfillment_efficiency_P1003", [85.0, 86.0, 88.0, 89.0, 90.0], "PERCENTAGE", start)
    return records


def social_commerce_records(start: datetime) -> list[dict]:
    records = [
        {"metric_name": "product_trend_score_P1001", "metric_value": 91.5, "metric_unit": "SCORE"},
        {"metric_name": "product_trend_score_P1002", "metric_value": 64.0, "metric_unit": "SCORE"},
        {"metric_name": "customer_satisfaction_APAC", "metric_value": 71.0, "metric_unit": "PERCENTAGE", "region": "APAC"},
        {"metric_name": "customer_satisfaction_US_EAST", "metric_value": 84.0, "metric_unit": "PERCENTAGE", "region": "US_EAST"},
    ]
    records += _series("order_volume_P1002", [99.4, 99.55, 99.7, 99.85, 100.0], "ORDERS", start)
    records += _series("order_volume_P1003", [0.0, 0.0, 0.0, 0.0, 0.0], "ORDERS", start)
    return records


def _unreachable_warehouse():
    raise ConnectionError("warehousing service unreachable")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run one cross-domain insight cycle over sample providers"
    )
    parser.add_argument(
        "--policy",
        choices=[p.value for p in CollectionPolicy],
        default=None,
        help="Provider failure policy (default: from settings)",
    )
    parser.add_argument(
        "--fail-warehousing",
        action="store_true",
        help="Make the warehousing provider raise to demonstrate failure handling",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-cycle provider deadline in seconds",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the full cycle report instead of the insight list",
    )
    return parser.parse_args()


def main():
    args = parse_args()
    configure_logging()

    start = datetime.utcnow() - timedelta(hours=HISTORY_POINTS)
    warehousing_source = (
        _unreachable_warehouse if args.fail_warehousing else warehousing_records(start)
    )

    courier = get_provider("courier_services", courier_records(start), source_service="courier-api")
    warehousing = get_provider("warehousing", warehousing_source, source_service="wms")
    social = get_provider("social_commerce", social_commerce_records(start), source_service="social-api")

    policy = CollectionPolicy(args.policy) if args.policy else None
    with InsightOrchestrator(
        courier,
        warehousing,
        social,
        policy=policy,
        provider_timeout_seconds=args.timeout,
    ) as orchestrator:
        if args.report:
            output = orchestrator.run_cycle().model_dump(mode="json")
        else:
            output = [i.model_dump(mode="json") for i in orchestrator.generate_insights()]

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
