"""
Enumeration types for the Cross-Domain Insight Engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class SourceDomain(str, Enum):
    """
    Operational domains that produce metrics.

    Each domain is served by its own provider and collected independently.
    """

    COURIER_SERVICES = "COURIER_SERVICES"
    WAREHOUSING = "WAREHOUSING"
    SOCIAL_COMMERCE = "SOCIAL_COMMERCE"


class DataPointType(str, Enum):
    """How a metric value relates to time."""

    INSTANT = "INSTANT"
    CUMULATIVE = "CUMULATIVE"
    GAUGE = "GAUGE"
    DELTA = "DELTA"


class InsightType(str, Enum):
    """
    Classification of cross-domain insights.

    The rule engine emits the first five. The remaining members are part of
    the insight catalogue consumed by downstream sinks.
    """

    INVENTORY_RISK = "INVENTORY_RISK"
    LOGISTICS_BOTTLENECK = "LOGISTICS_BOTTLENECK"
    CUSTOMER_EXPERIENCE_GAP = "CUSTOMER_EXPERIENCE_GAP"
    SUPPLY_CHAIN_RISK = "SUPPLY_CHAIN_RISK"
    END_TO_END_OPTIMIZATION = "END_TO_END_OPTIMIZATION"
    PERFORMANCE_CORRELATION = "PERFORMANCE_CORRELATION"
    EFFICIENCY_OPPORTUNITY = "EFFICIENCY_OPPORTUNITY"
    DEMAND_SUPPLY_MISMATCH = "DEMAND_SUPPLY_MISMATCH"


class Severity(str, Enum):
    """
    Severity levels for insights.

    CRITICAL is reserved for downstream escalation and is never produced by
    the fixed rule set.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TrendDirection(str, Enum):
    """Direction of a fitted trend."""

    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


class CollectionPolicy(str, Enum):
    """
    What a provider failure does to a collection cycle.

    FAIL_FAST discards every result of the cycle when any provider fails.
    BEST_EFFORT merges the providers that succeeded and records the rest.
    """

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"
