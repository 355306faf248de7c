"""
Exceptions raised by the collection phase.

Only provider failures are surfaced; malformed values, short series and
missing join partners are absorbed where they occur.
"""

from typing import Optional


class ProviderError(Exception):
    """A domain provider call failed."""

    def __init__(self, domain: str, message: str, cause: Optional[BaseException] = None):
        self.domain = domain
        self.cause = cause
        super().__init__(f"{domain}: {message}")


class ProviderTimeoutError(ProviderError):
    """A domain provider did not answer within its deadline."""


class CollectionError(Exception):
    """A collection cycle failed under the fail-fast policy."""

    def __init__(self, failed_domains: list[str], errors: dict[str, str]):
        self.failed_domains = failed_domains
        self.errors = errors
        super().__init__(
            f"Collection failed for {', '.join(failed_domains)}: "
            + "; ".join(f"{d}={msg}" for d, msg in errors.items())
        )
