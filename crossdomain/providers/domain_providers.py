"""
Metric providers for the courier, warehousing and social commerce domains.

Each provider wraps a source that yields that domain's raw metric records:
either a zero-argument callable (an API client method, a query function) or
a fixed iterable of records. Conversion to typed metrics happens in
BaseMetricProvider.
"""

from collections.abc import Callable, Iterable
from typing import Any, Union

from crossdomain.models.enums import SourceDomain

from .base_provider import BaseMetricProvider

RecordSource = Union[Callable[[], Iterable[Any]], Iterable[Any]]


class SourceBackedProvider(BaseMetricProvider):
    """
    Provider that reads records from a callable or a fixed iterable.

    A fixed iterable is copied at construction so repeated collections see
    the same records.
    """

    def __init__(self, source: RecordSource, source_service: str = ""):
        super().__init__(source_service=source_service)
        if callable(source):
            self._source = source
        else:
            records = list(source)
            self._source = lambda: records

    def fetch_records(self) -> Iterable[Any]:
        return self._source()


class CourierServicesProvider(SourceBackedProvider):
    """
    Courier Services metrics.

    Families used by the correlation rules: delivery_time_<region|product>,
    delivery_performance_<region>.
    """

    domain = SourceDomain.COURIER_SERVICES


class WarehousingProvider(SourceBackedProvider):
    """
    Warehousing metrics.

    Families used by the correlation rules: inventory_level_<product>,
    fulfillment_time_<region>, fulfillment_efficiency_<product>.
    """

    domain = SourceDomain.WAREHOUSING


class SocialCommerceProvider(SourceBackedProvider):
    """
    Social Commerce metrics.

    Families used by the correlation rules: product_trend_score_<product>,
    customer_satisfaction_<region>, order_volume_<product>.
    """

    domain = SourceDomain.SOCIAL_COMMERCE
