"""
Base class for domain metric providers.

A provider is the boundary between a domain's loosely-typed metric records
and the engine. Records are converted to typed Metric objects exactly once,
here, so nothing downstream repeats runtime type checks.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from crossdomain.errors import ProviderError
from crossdomain.models.enums import DataPointType, SourceDomain
from crossdomain.models.metrics import Metric

from .communication import DomainCommunicationLogger

logger = structlog.get_logger()


class ProviderOutcome(BaseModel):
    """
    Result of one provider call: either a metric list or an error.

    Attributes:
        domain: Domain of the provider that was called
        metrics: Metrics returned on success
        error: Error message on failure
        error_type: Exception class name on failure
    """

    model_config = ConfigDict(frozen=True)

    domain: SourceDomain
    metrics: list[Metric] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, domain: SourceDomain, metrics: list[Metric]) -> "ProviderOutcome":
        return cls(domain=domain, metrics=metrics)

    @classmethod
    def failure(cls, domain: SourceDomain, exc: BaseException) -> "ProviderOutcome":
        return cls(domain=domain, error=str(exc), error_type=type(exc).__name__)


class BaseMetricProvider(ABC):
    """
    Abstract base class for domain metric providers.

    Subclasses implement fetch_records() to pull raw records from their
    domain. collect_metrics() wraps the fetch with communication logging,
    converts records to Metric objects and tracks collection timestamps.

    Attributes:
        domain: Domain served by this provider
        source_service: Default service label for records that carry none
        last_collection_timestamp: When collect_metrics() last succeeded
        last_data_update_timestamp: Newest metric timestamp seen so far
    """

    domain: SourceDomain

    # Accepted key aliases for raw records
    FIELD_ALIASES = {
        "name": ["name", "metric_name", "metricName", "metric_id", "metricId"],
        "value": ["value", "metric_value", "metricValue"],
        "unit": ["unit", "metric_unit", "metricUnit"],
        "source_service": ["source_service", "sourceService", "service"],
        "region": ["region"],
        "timestamp": ["timestamp", "collection_timestamp", "collectionTimestamp"],
        "point_type": ["point_type", "data_point_type", "dataPointType"],
        "tags": ["tags"],
    }

    def __init__(self, source_service: str = ""):
        """
        Initialize the provider.

        Args:
            source_service: Service label applied to records without one
        """
        self.source_service = source_service or self.domain.value.lower()
        self.last_collection_timestamp: Optional[datetime] = None
        self.last_data_update_timestamp: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.communication = DomainCommunicationLogger(self.domain.value)
        self.logger = logger.bind(provider=self.domain.value)

    @abstractmethod
    def fetch_records(self) -> Iterable[Any]:
        """
        Pull the current metric records from the domain.

        Records may be Metric instances or mappings using any of the keys in
        FIELD_ALIASES.

        Raises:
            Exception: Any failure to reach the domain
        """

    def collect_metrics(self) -> list[Metric]:
        """
        Collect all current metrics from the domain.

        Returns:
            Typed metrics for this collection

        Raises:
            ProviderError: If the domain could not be reached
        """
        correlation_id = self.communication.start(
            "MetricCollection", f"Collecting all metrics from {self.domain.value}"
        )
        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            try:
                records = list(self.fetch_records())
            except Exception as e:
                self.last_error = str(e)
                self.communication.failure(
                    correlation_id, f"Failed to collect metrics: {e}", e
                )
                raise ProviderError(self.domain.value, str(e), cause=e) from e

            metrics = self._to_metrics(records)
            self.last_error = None
            self.last_collection_timestamp = datetime.utcnow()
            if metrics:
                newest = max(m.timestamp for m in metrics)
                if (
                    self.last_data_update_timestamp is None
                    or newest > self.last_data_update_timestamp
                ):
                    self.last_data_update_timestamp = newest

            self.communication.success(
                correlation_id, f"Successfully collected {len(metrics)} metrics"
            )
        return metrics

    def collect_specific_metrics(self, metric_names: Iterable[str]) -> list[Metric]:
        """
        Collect only the metrics whose names are listed.

        Args:
            metric_names: Exact metric names to keep

        Returns:
            Matching metrics, in provider order
        """
        wanted = set(metric_names)
        return [m for m in self.collect_metrics() if m.name in wanted]

    def is_healthy(self) -> bool:
        """True unless the most recent collection failed."""
        return self.last_error is None

    def get_health_status(self) -> dict:
        """
        Health snapshot for monitoring surfaces.

        Returns:
            Dict with healthy flag, last timestamps and last error
        """
        return {
            "domain": self.domain.value,
            "healthy": self.is_healthy(),
            "last_collection_attempt": self.last_collection_timestamp,
            "last_data_update": self.last_data_update_timestamp,
            "last_error": self.last_error,
        }

    def _to_metrics(self, records: list[Any]) -> list[Metric]:
        metrics = []
        skipped = 0
        for record in records:
            metric = self._to_metric(record)
            if metric is None:
                skipped += 1
                continue
            metrics.append(metric)

        if skipped:
            self.logger.warning(
                "provider_records_skipped",
                skipped=skipped,
                total_records=len(records),
            )
        return metrics

    def _to_metric(self, record: Any) -> Optional[Metric]:
        """
        Convert one raw record to a Metric.

        Records without a usable name are skipped. Malformed values become
        0.0 via Metric's coercion.
        """
        if isinstance(record, Metric):
            return record
        if not isinstance(record, Mapping):
            self.logger.debug("provider_record_not_mapping", record_type=type(record).__name__)
            return None

        name = self._lookup(record, "name")
        if not name:
            return None

        raw_value = self._lookup(record, "value")
        try:
            float(raw_value)
        except (TypeError, ValueError):
            self.logger.debug("metric_value_coerced", metric=name, raw_value=repr(raw_value))

        fields: dict[str, Any] = {
            "name": str(name),
            "value": raw_value,
            "unit": str(self._lookup(record, "unit") or ""),
            "source_domain": self.domain,
            "source_service": str(self._lookup(record, "source_service") or self.source_service),
            "region": self._lookup(record, "region"),
            "point_type": self._lookup(record, "point_type") or DataPointType.INSTANT,
            "tags": self._lookup(record, "tags"),
        }
        timestamp = self._lookup(record, "timestamp")
        if timestamp is not None:
            fields["timestamp"] = timestamp

        try:
            return Metric(**fields)
        except ValidationError as e:
            self.logger.debug("provider_record_invalid", metric=name, error=str(e))
            return None

    def _lookup(self, record: Mapping, field: str) -> Any:
        for key in self.FIELD_ALIASES.get(field, [field]):
            if key in record and record[key] is not None:
                return record[key]
        return None
