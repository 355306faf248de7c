"""
Metric and trend models for the Cross-Domain Insight Engine.

A Metric is typed once, at the provider boundary. Everything derived from
metrics (trends, correlation results) lives for a single collection cycle.
"""

import math
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import DataPointType, SourceDomain, TrendDirection


def coerce_metric_value(value: Any) -> float:
    """
    Coerce a raw metric value to float.

    None, booleans, non-numeric strings, NaN and infinities all degrade to
    0.0 so one malformed entry cannot abort a whole cycle.

    Example:
        >>> coerce_metric_value("12.5")
        12.5
        >>> coerce_metric_value("n/a")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return result


class Metric(BaseModel):
    """
    A single metric observation from one domain.

    Attributes:
        name: Family prefix plus entity/region suffix (e.g. "inventory_level_P1")
        value: Observed value; malformed input is stored as 0.0
        unit: Unit of measurement (e.g. "PERCENTAGE", "HOURS")
        source_domain: Domain that produced the metric
        source_service: Label of the producing service
        region: Optional region label
        timestamp: When the value was observed
        point_type: How the value relates to time
        tags: Free-form tags from the source system
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Family prefix + entity/region suffix")
    value: float = Field(default=0.0, description="Observed value")
    unit: str = Field(default="", description="Unit of measurement")
    source_domain: SourceDomain = Field(description="Domain that produced the metric")
    source_service: str = Field(default="", description="Producing service label")
    region: Optional[str] = Field(default=None, description="Region label")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Observation time"
    )
    point_type: DataPointType = Field(
        default=DataPointType.INSTANT, description="Data point type"
    )
    tags: Optional[str] = Field(default=None, description="Source system tags")

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> float:
        """Degrade non-numeric values to 0.0 instead of failing."""
        return coerce_metric_value(v)


class TrendSummary(BaseModel):
    """
    Current value and least-squares slope of one metric series.

    Attributes:
        current_value: Value of the most recent point
        slope: OLS slope over the index-ordered series
        direction: INCREASING above +0.1, DECREASING below -0.1, else STABLE
        data_point_count: Number of points the slope was fitted on
        correlation: Pearson r between index and value, None when undefined
        historical_values: Values in timestamp order
    """

    model_config = ConfigDict(frozen=True)

    current_value: float
    slope: float
    direction: TrendDirection = TrendDirection.STABLE
    data_point_count: int = Field(default=0, ge=0)
    correlation: Optional[float] = None
    historical_values: list[float] = Field(default_factory=list)


class CorrelationResult(BaseModel):
    """
    Fulfillment-to-delivery efficiency for one region.

    Built only when both a fulfillment time and a delivery time exist for
    the region.
    """

    model_config = ConfigDict(frozen=True)

    region: str
    score: float = Field(description="48-hour target efficiency, percent")
    total_time: float = Field(description="Fulfillment + delivery time, hours")
    fulfillment_share_percent: float
    delivery_share_percent: float

    @property
    def bottleneck(self) -> str:
        """Stage contributing the larger share of total time."""
        if self.fulfillment_share_percent > self.delivery_share_percent:
            return "Fulfillment"
        return "Delivery"


class MergedMetrics(BaseModel):
    """
    Union of the metrics returned by all providers in one cycle.

    Attributes:
        cycle_id: Identifier of the collection cycle
        collected_at: When the join barrier was passed
        metrics: Concatenated metrics (courier, warehousing, social commerce)
        by_domain: Metrics grouped by the provider that returned them
        failed_domains: Domains whose provider call failed
        errors: Error message per failed domain
    """

    cycle_id: str = Field(default_factory=lambda: str(uuid4()))
    collected_at: datetime = Field(default_factory=datetime.utcnow)
    metrics: list[Metric] = Field(default_factory=list)
    by_domain: dict[SourceDomain, list[Metric]] = Field(default_factory=dict)
    failed_domains: list[SourceDomain] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True when every provider answered."""
        return not self.failed_domains

    def __len__(self) -> int:
        return len(self.metrics)
