"""
Property-based tests using Hypothesis for the Cross-Domain Insight Engine.

These tests verify invariants of extraction, trend fitting, scoring and rule
evaluation across generated inputs.
"""

import math

import hypothesis.strategies as st
from hypothesis import assume, given, settings

from crossdomain.engine.extractor import MetricExtractor
from crossdomain.engine.rules import CorrelationRuleEngine
from crossdomain.engine.scorer import CompositeScorer
from crossdomain.engine.trend import TrendCalculator
from crossdomain.models.metrics import coerce_metric_value
from tests.conftest import make_metric, make_series, make_trend

keys = st.text(alphabet="ABCDEFGHJKLMNPQRSTUVWXYZ0123456789_", min_size=1, max_size=8)
finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)
percent = st.floats(min_value=0.0, max_value=100.0, allow_nan=False, allow_infinity=False)


# =============================================================================
# Extraction
# =============================================================================


@given(values=st.dictionaries(keys, finite, max_size=10), noise=st.dictionaries(keys, finite, max_size=5))
@settings(max_examples=100)
def test_prop_extract_returns_exactly_matching_keys(values, noise):
    """
    Invariant: extract() returns one entry per matching metric name, keyed by
    the suffix after the prefix, and ignores every other family.
    """
    metrics = [make_metric(f"inventory_level_{k}", v) for k, v in values.items()]
    metrics += [make_metric(f"fulfillment_time_{k}", v) for k, v in noise.items()]

    result = MetricExtractor().extract(metrics, "inventory_level_")

    assert result == values


@given(key=keys)
def test_prop_reconstruct_name_inverts_key(key):
    """Invariant: prefix + key round-trips through key_for()."""
    name = MetricExtractor.reconstruct_name("order_volume_", key)
    assert MetricExtractor.key_for(make_metric(name), "order_volume_") == key


# =============================================================================
# Trend fitting
# =============================================================================


@given(
    intercept=st.floats(min_value=-1000, max_value=1000, allow_nan=False),
    slope=st.floats(min_value=-100, max_value=100, allow_nan=False),
    n=st.integers(min_value=2, max_value=30),
)
@settings(max_examples=100)
def test_prop_slope_recovers_exact_line(intercept, slope, n):
    """Invariant: a perfectly linear series yields its own slope."""
    values = [intercept + slope * i for i in range(n)]
    fitted = TrendCalculator.compute_slope(values)
    assert fitted is not None
    assert math.isclose(fitted, slope, rel_tol=1e-6, abs_tol=1e-6)


@given(values=st.lists(finite, min_size=2, max_size=30))
@settings(max_examples=100)
def test_prop_slope_bounded_by_value_range(values):
    """
    Invariant: |slope| never exceeds the value range of the series, so the
    fit is always finite for finite input.
    """
    fitted = TrendCalculator.compute_slope(values)
    assert fitted is not None
    assert math.isfinite(fitted)
    spread = max(values) - min(values)
    assert abs(fitted) <= spread + 1e-6 * max(1.0, spread)


@given(values=st.lists(finite, min_size=2, max_size=20))
@settings(max_examples=50)
def test_prop_current_value_is_latest_point(values):
    """Invariant: current_value is the value with the newest timestamp."""
    series = make_series("order_volume_P1", values)
    trends = TrendCalculator().compute_trends({"P1": list(reversed(series))})
    assert trends["P1"].current_value == values[-1]


@given(value=st.one_of(finite, st.none(), st.text(max_size=5), st.booleans()))
def test_prop_coerced_value_is_finite(value):
    """Invariant: every raw value coerces to a finite float."""
    assert math.isfinite(coerce_metric_value(value))


# =============================================================================
# Scoring and rules
# =============================================================================


@given(
    order=finite,
    fulfillment=finite,
    delivery=finite,
    slopes=st.tuples(finite, finite, finite),
)
@settings(max_examples=100)
def test_prop_clamped_score_in_range(order, fulfillment, delivery, slopes):
    """Invariant: with clamping enabled the score is always in [0, 100]."""
    score = CompositeScorer(clamp=True).score(
        make_trend(order, slopes[0]),
        make_trend(fulfillment, slopes[1]),
        make_trend(delivery, slopes[2]),
    )
    assert 0.0 <= score <= 100.0


@given(trend_score=percent, inventory=percent)
@settings(max_examples=100)
def test_prop_inventory_rule_matches_thresholds(trend_score, inventory):
    """Invariant: inventory risk fires iff trend > 80 and inventory < 20."""
    insights = CorrelationRuleEngine().inventory_risk({"P1": trend_score}, {"P1": inventory})
    assert (len(insights) == 1) == (trend_score > 80.0 and inventory < 20.0)


@given(fulfillment=st.floats(min_value=0.1, max_value=500), delivery=st.floats(min_value=0.1, max_value=500))
@settings(max_examples=100)
def test_prop_region_shares_sum_to_hundred(fulfillment, delivery):
    """Invariant: fulfillment and delivery shares always sum to 100%."""
    result = CorrelationRuleEngine().correlate_regions({"R1": fulfillment}, {"R1": delivery})["R1"]
    assert math.isclose(
        result.fulfillment_share_percent + result.delivery_share_percent, 100.0, rel_tol=1e-9
    )


@given(
    performance=st.dictionaries(keys, percent, max_size=6),
    satisfaction=st.dictionaries(keys, percent, max_size=6),
)
@settings(max_examples=100)
def test_prop_rules_only_emit_joined_keys(performance, satisfaction):
    """Invariant: an insight is emitted only for keys present in both inputs."""
    assume(performance or satisfaction)
    insights = CorrelationRuleEngine().customer_experience_gap(performance, satisfaction)
    joined = performance.keys() & satisfaction.keys()
    for insight in insights:
        region = insight.metadata["region"]
        assert region in joined
    assert [i.metadata["region"] for i in insights] == sorted(
        i.metadata["region"] for i in insights
    )
