"""
Pytest configuration and shared fixtures for the Cross-Domain Insight Engine
test suite.

Provides model factories, fake providers with controllable behavior and
environment isolation for settings, reused across unit, property-based and
golden tests.
"""

import os
import threading
import time
from datetime import datetime, timedelta
from typing import Optional

import pytest

from crossdomain.config import get_settings
from crossdomain.models.enums import SourceDomain
from crossdomain.models.metrics import Metric, TrendSummary


BASE_TIME = datetime(2024, 3, 1, 12, 0, 0)


# ---------------------------------------------------------------------------
# Pydantic model factories
# ---------------------------------------------------------------------------


def make_metric(
    name: str = "inventory_level_P1",
    value: float = 50.0,
    source_domain: SourceDomain = SourceDomain.WAREHOUSING,
    timestamp: Optional[datetime] = None,
    **overrides,
) -> Metric:
    """Factory function for creating test Metric objects."""
    defaults = dict(
        name=name,
        value=value,
        unit="PERCENTAGE",
        source_domain=source_domain,
        source_service="test-service",
        timestamp=timestamp or BASE_TIME,
    )
    defaults.update(overrides)
    return Metric(**defaults)


def make_series(
    name: str,
    values: list[float],
    source_domain: SourceDomain = SourceDomain.SOCIAL_COMMERCE,
    start: datetime = BASE_TIME,
    step: timedelta = timedelta(hours=1),
) -> list[Metric]:
    """One metric per value, timestamps ascending from start."""
    return [
        make_metric(name=name, value=v, source_domain=source_domain, timestamp=start + step * i)
        for i, v in enumerate(values)
    ]


def make_trend(current_value: float = 0.0, slope: float = 0.0, **overrides) -> TrendSummary:
    """Factory function for creating test TrendSummary objects."""
    defaults = dict(current_value=current_value, slope=slope, data_point_count=2)
    defaults.update(overrides)
    return TrendSummary(**defaults)


def supply_chain_metrics(product_id: str = "P1") -> list[Metric]:
    """
    Three-domain series for one product reproducing the reference trends.

    order {current 100, slope 0.15}, fulfillment {40, -0.08},
    delivery {30, 0.02}: composite score 84.05.
    """
    return (
        make_series(
            f"order_volume_{product_id}",
            [99.7, 99.85, 100.0],
            source_domain=SourceDomain.SOCIAL_COMMERCE,
        )
        + make_series(
            f"fulfillment_efficiency_{product_id}",
            [40.16, 40.08, 40.0],
            source_domain=SourceDomain.WAREHOUSING,
        )
        + make_series(
            f"delivery_time_{product_id}",
            [29.96, 29.98, 30.0],
            source_domain=SourceDomain.COURIER_SERVICES,
        )
    )


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeProvider:
    """
    In-memory provider with controllable behavior.

    Records every call so tests can assert the orchestrator reached it.
    """

    def __init__(
        self,
        metrics: Optional[list[Metric]] = None,
        error: Optional[Exception] = None,
        delay: Optional[threading.Event] = None,
        sleep: float = 0.0,
    ):
        self.metrics = list(metrics or [])
        self.error = error
        self.delay = delay
        self.sleep = sleep
        self.calls = 0

    def collect_metrics(self) -> list[Metric]:
        self.calls += 1
        if self.delay is not None:
            self.delay.wait(timeout=5)
        if self.sleep:
            time.sleep(self.sleep)
        if self.error is not None:
            raise self.error
        return list(self.metrics)


class FailingProvider(FakeProvider):
    """Provider whose every call raises ConnectionError."""

    def __init__(self, message: str = "service unreachable"):
        super().__init__(error=ConnectionError(message))


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Strip CROSSDOMAIN_* env vars and reset the cached Settings."""
    for key in list(os.environ):
        if key.upper().startswith("CROSSDOMAIN_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reference_trends():
    """Order, fulfillment and delivery trends scoring exactly 84.05."""
    return (
        make_trend(current_value=100.0, slope=0.15),
        make_trend(current_value=40.0, slope=-0.08),
        make_trend(current_value=30.0, slope=0.02),
    )


@pytest.fixture
def courier_metrics():
    return [
        make_metric("delivery_time_R1", 30.0, SourceDomain.COURIER_SERVICES),
        make_metric("delivery_performance_R1", 95.0, SourceDomain.COURIER_SERVICES),
    ]


@pytest.fixture
def warehousing_metrics():
    return [
        make_metric("fulfillment_time_R1", 40.0, SourceDomain.WAREHOUSING),
        make_metric("inventory_level_P1", 12.0, SourceDomain.WAREHOUSING),
    ]


@pytest.fixture
def social_metrics():
    return [
        make_metric("product_trend_score_P1", 90.0, SourceDomain.SOCIAL_COMMERCE),
        make_metric("customer_satisfaction_R1", 70.0, SourceDomain.SOCIAL_COMMERCE),
    ]
