"""
Insight models for the Cross-Domain Insight Engine.

Insights are created only by the correlation rule engine and are never
mutated afterwards. Persistence and serving happen outside the engine.
"""

from datetime import datetime
from typing import Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import InsightType, Severity, SourceDomain


class Insight(BaseModel):
    """
    A classified finding spanning two or more domains.

    Attributes:
        insight_id: Unique identifier for this insight
        type: Classification of the finding
        title: One-line summary
        description: Human-readable explanation with the triggering values
        severity: Business impact severity
        source_domains: Domains whose metrics were correlated
        timestamp: When the insight was generated
        related_metric_keys: Full names of the source metrics, in rule order
        recommended_actions: Suggested follow-ups for operators
        metadata: Numeric values that triggered the rule
    """

    model_config = ConfigDict(frozen=True)

    insight_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this insight",
    )
    type: InsightType = Field(description="Classification of the finding")
    title: str = Field(min_length=1, description="One-line summary")
    description: str = Field(description="Explanation with triggering values")
    severity: Severity = Field(description="Business impact severity")
    source_domains: frozenset[SourceDomain] = Field(
        description="Domains whose metrics were correlated"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the insight was generated",
    )
    related_metric_keys: list[str] = Field(
        default_factory=list, description="Full names of the source metrics"
    )
    recommended_actions: list[str] = Field(
        default_factory=list, description="Suggested follow-ups"
    )
    metadata: dict[str, Union[float, str]] = Field(
        default_factory=dict, description="Values that triggered the rule"
    )

    @field_validator("source_domains")
    @classmethod
    def validate_cross_domain(cls, v: frozenset[SourceDomain]) -> frozenset[SourceDomain]:
        """An insight must correlate at least two domains."""
        if len(v) < 2:
            raise ValueError("An insight must involve at least two source domains")
        return v
