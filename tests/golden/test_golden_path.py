"""
Golden Path (End-to-End) Tests for the Cross-Domain Insight Engine.

Each scenario runs a full cycle through real domain providers: raw records
in, typed metrics merged, rules evaluated, insights out. Fixed datasets make
the expected insights exact.
"""

from datetime import datetime, timedelta

import pytest

from crossdomain.engine import InsightOrchestrator
from crossdomain.engine.scorer import CompositeScorer
from crossdomain.engine.trend import TrendCalculator
from crossdomain.engine.extractor import MetricExtractor
from crossdomain.models.enums import CollectionPolicy, InsightType, Severity, SourceDomain
from crossdomain.providers import get_provider
from tests.conftest import FakeProvider, supply_chain_metrics

pytestmark = pytest.mark.golden

START = datetime(2024, 3, 1, 0, 0, 0)


def _hourly(name: str, values: list[float]) -> list[dict]:
    return [
        {"metric_name": name, "metric_value": v, "timestamp": START + timedelta(hours=i)}
        for i, v in enumerate(values)
    ]


def _providers(warehousing_source=None):
    courier = get_provider(
        "courier_services",
        [
            {"metric_name": "delivery_time_EU", "metric_value": 40.0, "metric_unit": "HOURS"},
            {"metric_name": "delivery_time_US", "metric_value": 18.0, "metric_unit": "HOURS"},
            {"metric_name": "delivery_performance_APAC", "metric_value": 94.0},
            {"metric_name": "delivery_time_APAC", "metric_value": 20.0},
        ]
        + _hourly("delivery_time_P2", [29.96, 29.98, 30.0]),
    )
    warehousing = get_provider(
        "warehousing",
        warehousing_source
        if warehousing_source is not None
        else [
            {"metric_name": "inventory_level_P1", "metric_value": 12.0},
            {"metric_name": "fulfillment_time_EU", "metric_value": 32.0},
            {"metric_name": "fulfillment_time_US", "metric_value": 12.0},
            {"metric_name": "fulfillment_time_APAC", "metric_value": 14.0},
        ]
        + _hourly("fulfillment_efficiency_P2", [40.16, 40.08, 40.0]),
    )
    social = get_provider(
        "social_commerce",
        [
            {"metric_name": "product_trend_score_P1", "metric_value": 91.5},
            {"metric_name": "customer_satisfaction_APAC", "metric_value": "71"},
        ]
        + _hourly("order_volume_P2", [99.7, 99.85, 100.0]),
    )
    return courier, warehousing, social


# ============================================================================
# Scenario 1: Healthy cycle produces every pairwise and triple-wise insight
# ============================================================================


def test_golden_full_cycle_insights():
    """
    Golden path: all providers answer.

    Expected:
    - P1 trending with 12% stock -> INVENTORY_RISK
    - EU 32h + 40h = 72h -> efficiency 66.7%, delivery bottleneck
    - APAC 94% performance vs 71% satisfaction -> CUSTOMER_EXPERIENCE_GAP
    - P2 orders +0.15/h, efficiency -0.08/h -> SUPPLY_CHAIN_RISK
    """
    with InsightOrchestrator(*_providers()) as orchestrator:
        insights = orchestrator.generate_insights()

    assert [i.type for i in insights] == [
        InsightType.INVENTORY_RISK,
        InsightType.LOGISTICS_BOTTLENECK,
        InsightType.CUSTOMER_EXPERIENCE_GAP,
        InsightType.SUPPLY_CHAIN_RISK,
    ]

    inventory, logistics, experience, supply_chain = insights
    assert inventory.related_metric_keys == ["product_trend_score_P1", "inventory_level_P1"]
    assert logistics.title == "Logistics Bottleneck in EU"
    assert logistics.metadata["bottleneck"] == "Delivery"
    assert "(66.7%)" in logistics.description
    assert experience.metadata["gap"] == pytest.approx(23.0)
    assert supply_chain.severity == Severity.HIGH
    assert supply_chain.source_domains == set(SourceDomain)


# ============================================================================
# Scenario 2: Reference supply-chain product scores 84.05 end to end
# ============================================================================


def test_golden_supply_chain_reference_score():
    """
    Golden path: series reproducing order {100, 0.15}, fulfillment
    {40, -0.08}, delivery {30, 0.02}.

    Supply-chain risk fires; the composite score is 84.05 so end-to-end
    optimization does not.
    """
    metrics = supply_chain_metrics("P1")
    extractor = MetricExtractor()
    calculator = TrendCalculator()
    order = calculator.compute_trends(extractor.extract_series(metrics, "order_volume_"))["P1"]
    fulfillment = calculator.compute_trends(
        extractor.extract_series(metrics, "fulfillment_efficiency_")
    )["P1"]
    delivery = calculator.compute_trends(extractor.extract_series(metrics, "delivery_time_"))["P1"]

    assert order.slope == pytest.approx(0.15)
    assert fulfillment.slope == pytest.approx(-0.08)
    assert delivery.slope == pytest.approx(0.02)
    assert CompositeScorer(clamp=False).score(order, fulfillment, delivery) == pytest.approx(84.05)

    with InsightOrchestrator(
        FakeProvider([m for m in metrics if m.source_domain == SourceDomain.COURIER_SERVICES]),
        FakeProvider([m for m in metrics if m.source_domain == SourceDomain.WAREHOUSING]),
        FakeProvider([m for m in metrics if m.source_domain == SourceDomain.SOCIAL_COMMERCE]),
    ) as orchestrator:
        insights = orchestrator.generate_insights()

    assert [i.type for i in insights] == [InsightType.SUPPLY_CHAIN_RISK]
    assert insights[0].related_metric_keys == [
        "order_volume_P1",
        "fulfillment_efficiency_P1",
        "delivery_time_P1",
    ]


# ============================================================================
# Scenario 3: Fail-fast discards the whole cycle
# ============================================================================


def test_golden_fail_fast_discards_cycle():
    """
    Golden path: warehousing fails under FAIL_FAST.

    Courier and social commerce answered, but none of their metrics survive
    and no insight is produced.
    """

    def unreachable():
        raise ConnectionError("warehousing service unreachable")

    courier, warehousing, social = _providers(warehousing_source=unreachable)
    with InsightOrchestrator(
        courier, warehousing, social, policy=CollectionPolicy.FAIL_FAST
    ) as orchestrator:
        merged = orchestrator.collect()
        insights = orchestrator.generate_insights()

    assert insights == []
    assert merged.metrics == []
    assert merged.by_domain == {}
    assert not any(m.source_domain == SourceDomain.COURIER_SERVICES for m in merged.metrics)
    assert not any(m.source_domain == SourceDomain.SOCIAL_COMMERCE for m in merged.metrics)
    assert merged.failed_domains == [SourceDomain.WAREHOUSING]
    assert courier.is_healthy() and social.is_healthy()
    assert not warehousing.is_healthy()


# ============================================================================
# Scenario 4: Best-effort keeps the courier/social correlations
# ============================================================================


def test_golden_best_effort_keeps_surviving_domains():
    """
    Golden path: warehousing fails under BEST_EFFORT.

    Only the courier x social commerce rule can still fire; the report marks
    the cycle incomplete.
    """

    def unreachable():
        raise ConnectionError("warehousing service unreachable")

    with InsightOrchestrator(
        *_providers(warehousing_source=unreachable), policy=CollectionPolicy.BEST_EFFORT
    ) as orchestrator:
        report = orchestrator.run_cycle()

    assert report.complete is False
    assert report.failed_domains == [SourceDomain.WAREHOUSING]
    assert [i.type for i in report.insights] == [InsightType.CUSTOMER_EXPERIENCE_GAP]
    assert report.regions == {}
