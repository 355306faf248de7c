"""
Metric Extractor: pulls one metric family out of a flat metric list.

Metric names encode a family prefix and an entity or region key, e.g.
"inventory_level_P1001" is family "inventory_level_" with key "P1001".
Matching is a case-sensitive string prefix test; the key is whatever
follows the prefix.
"""

from collections import defaultdict
from collections.abc import Iterable
from typing import Optional

import structlog

from crossdomain.models.enums import SourceDomain
from crossdomain.models.metrics import Metric


class MetricExtractor:
    """
    Extracts keyed maps of one metric family.

    Example:
        >>> extractor = MetricExtractor()
        >>> levels = extractor.extract(metrics, "inventory_level_")
        >>> levels["P1001"]
        12.0
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    @staticmethod
    def matches(metric: Metric, prefix: str, domain: Optional[SourceDomain] = None) -> bool:
        """True if the metric belongs to the family (and to domain, when given)."""
        if domain is not None and metric.source_domain != domain:
            return False
        return metric.name.startswith(prefix)

    @staticmethod
    def key_for(metric: Metric, prefix: str) -> str:
        """Entity or region key of a metric already known to match prefix."""
        return metric.name[len(prefix):]

    @staticmethod
    def reconstruct_name(prefix: str, key: str) -> str:
        """Full metric name for a family key."""
        return prefix + key

    def extract(
        self,
        metrics: Iterable[Metric],
        prefix: str,
        domain: Optional[SourceDomain] = None,
    ) -> dict[str, float]:
        """
        Map each key of a family to its value.

        Duplicates within one cycle are not expected; if they occur the last
        one wins.

        Args:
            metrics: Flat metric list from one cycle
            prefix: Family prefix (e.g. "fulfillment_time_")
            domain: Only read metrics produced by this domain (default: any)

        Returns:
            Dict of key -> value
        """
        values: dict[str, float] = {}
        duplicates = 0
        for metric in metrics:
            if not self.matches(metric, prefix, domain):
                continue
            key = self.key_for(metric, prefix)
            if key in values:
                duplicates += 1
            values[key] = metric.value

        if duplicates:
            self.logger.debug(
                "duplicate_metric_keys", prefix=prefix, duplicates=duplicates
            )
        return values

    def extract_series(
        self,
        metrics: Iterable[Metric],
        prefix: str,
        domain: Optional[SourceDomain] = None,
    ) -> dict[str, list[Metric]]:
        """
        Group every metric of a family by key.

        Series are returned in input order; TrendCalculator sorts them.

        Args:
            metrics: Flat metric list from one cycle
            prefix: Family prefix (e.g. "order_volume_")
            domain: Only read metrics produced by this domain (default: any)

        Returns:
            Dict of key -> list of metrics
        """
        series: dict[str, list[Metric]] = defaultdict(list)
        for metric in metrics:
            if self.matches(metric, prefix, domain):
                series[self.key_for(metric, prefix)].append(metric)
        return dict(series)
