"""
Pydantic v2 data models for the Cross-Domain Insight Engine.

Model Organization:
    - enums: Enumeration types for consistent classification
    - metrics: Metric observations, trend summaries, regional correlation
      results and merged collection output
    - insights: Insight emitted by the correlation rules

Usage:
    >>> from crossdomain.models import Metric, SourceDomain
    >>> metric = Metric(
    ...     name="inventory_level_P1",
    ...     value=12.0,
    ...     unit="PERCENTAGE",
    ...     source_domain=SourceDomain.WAREHOUSING,
    ... )
"""

from .enums import (
    CollectionPolicy,
    DataPointType,
    InsightType,
    Severity,
    SourceDomain,
    TrendDirection,
)
from .insights import Insight
from .metrics import (
    CorrelationResult,
    MergedMetrics,
    Metric,
    TrendSummary,
    coerce_metric_value,
)

__all__ = [
    "CollectionPolicy",
    "DataPointType",
    "InsightType",
    "Severity",
    "SourceDomain",
    "TrendDirection",
    "Insight",
    "CorrelationResult",
    "MergedMetrics",
    "Metric",
    "TrendSummary",
    "coerce_metric_value",
]
