"""
Domain metric providers.

Each provider serves one domain and converts its raw records into typed
Metric objects at the boundary.

Supported providers:
- CourierServicesProvider: delivery times and delivery performance
- WarehousingProvider: inventory levels, fulfillment times and efficiency
- SocialCommerceProvider: product trend scores, satisfaction, order volume

Usage:
    from crossdomain.providers import get_provider

    provider = get_provider("warehousing", source=fetch_warehouse_metrics)
    metrics = provider.collect_metrics()
"""

from typing import Type

from .base_provider import BaseMetricProvider, ProviderOutcome
from .communication import DomainCommunicationLogger
from .domain_providers import (
    CourierServicesProvider,
    RecordSource,
    SocialCommerceProvider,
    SourceBackedProvider,
    WarehousingProvider,
)

# Provider registry mapping source names to provider classes
PROVIDER_REGISTRY: dict[str, Type[SourceBackedProvider]] = {
    "courier_services": CourierServicesProvider,
    "warehousing": WarehousingProvider,
    "social_commerce": SocialCommerceProvider,
}


def get_provider(name: str, source: RecordSource, source_service: str = "") -> SourceBackedProvider:
    """
    Get provider instance by domain name.

    Args:
        name: Registry name (e.g. "warehousing")
        source: Callable or iterable yielding the domain's raw records
        source_service: Optional service label for records without one

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If name is not found in registry

    Example:
        >>> provider = get_provider("courier_services", source=[])
        >>> provider.collect_metrics()
        []
    """
    provider_class = PROVIDER_REGISTRY.get(name)
    if not provider_class:
        available = ", ".join(PROVIDER_REGISTRY.keys())
        raise ValueError(
            f"Unknown provider: '{name}'. Available providers: {available}"
        )
    return provider_class(source, source_service=source_service)


def list_providers() -> list[str]:
    """List all registered provider names."""
    return list(PROVIDER_REGISTRY.keys())


__all__ = [
    "BaseMetricProvider",
    "ProviderOutcome",
    "DomainCommunicationLogger",
    "SourceBackedProvider",
    "CourierServicesProvider",
    "WarehousingProvider",
    "SocialCommerceProvider",
    "RecordSource",
    "PROVIDER_REGISTRY",
    "get_provider",
    "list_providers",
]
