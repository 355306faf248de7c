"""
Insight Orchestrator (collection cycle driver)

Runs one collection cycle per call: fans the three domain provider calls out
to a shared worker pool, waits for every call to finish (join barrier),
merges the results in a fixed domain order and hands the merged metrics to
the correlation rule engine.

Failure handling follows the configured CollectionPolicy:
    - FAIL_FAST: any provider failure fails the whole cycle and the metrics
      already returned by the other providers are discarded
    - BEST_EFFORT: successful provider lists are merged and failures are
      recorded on the MergedMetrics

Example:
    >>> with InsightOrchestrator(courier, warehousing, social) as orchestrator:
    ...     insights = orchestrator.generate_insights()
"""

import threading
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from crossdomain.config import get_settings
from crossdomain.errors import CollectionError, ProviderError, ProviderTimeoutError
from crossdomain.models.enums import CollectionPolicy, SourceDomain
from crossdomain.models.insights import Insight
from crossdomain.models.metrics import CorrelationResult, MergedMetrics, Metric
from crossdomain.providers.base_provider import ProviderOutcome

from .rules import DELIVERY_TIME, FULFILLMENT_TIME, CorrelationRuleEngine


class MetricProvider(Protocol):
    """Anything that can return the current metrics of one domain."""

    def collect_metrics(self) -> list[Metric]: ...


class CycleReport(BaseModel):
    """
    Outcome of one full cycle.

    Separates "no risk found" (complete=True, no insights) from "data was
    incomplete" (complete=False).
    """

    cycle_id: str
    collected_at: datetime
    complete: bool
    metric_count: int = Field(ge=0)
    metrics_by_domain: dict[SourceDomain, int] = Field(default_factory=dict)
    failed_domains: list[SourceDomain] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    regions: dict[str, CorrelationResult] = Field(default_factory=dict)
    insights: list[Insight] = Field(default_factory=list)


class InsightOrchestrator:
    """
    Drives provider fan-out, merge and rule evaluation.

    Attributes:
        providers: Domain -> provider, in merge order
        rule_engine: Rules applied to merged metrics
        policy: Provider failure policy
        provider_timeout_seconds: Deadline for each provider call, counted
            from when the call starts running (None waits indefinitely)
    """

    # Merge order of provider results
    DOMAIN_ORDER = (
        SourceDomain.COURIER_SERVICES,
        SourceDomain.WAREHOUSING,
        SourceDomain.SOCIAL_COMMERCE,
    )

    def __init__(
        self,
        courier: MetricProvider,
        warehousing: MetricProvider,
        social_commerce: MetricProvider,
        rule_engine: Optional[CorrelationRuleEngine] = None,
        policy: Optional[CollectionPolicy] = None,
        max_workers: Optional[int] = None,
        provider_timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            courier: Courier services provider
            warehousing: Warehousing provider
            social_commerce: Social commerce provider
            rule_engine: Rule engine (default: CorrelationRuleEngine())
            policy: Failure policy (default: settings.collection_policy)
            max_workers: Worker pool size (default: settings.max_workers)
            provider_timeout_seconds: Provider deadline
                (default: settings.provider_timeout_seconds)
        """
        settings = get_settings()

        self.providers: dict[SourceDomain, MetricProvider] = {
            SourceDomain.COURIER_SERVICES: courier,
            SourceDomain.WAREHOUSING: warehousing,
            SourceDomain.SOCIAL_COMMERCE: social_commerce,
        }
        self.rule_engine = rule_engine or CorrelationRuleEngine()
        self.policy = CollectionPolicy(policy or settings.collection_policy)
        self.provider_timeout_seconds = (
            provider_timeout_seconds
            if provider_timeout_seconds is not None
            else settings.provider_timeout_seconds
        )
        self.max_workers = max_workers or settings.max_workers
        if self.max_workers < len(self.providers):
            raise ValueError(
                f"max_workers must be at least {len(self.providers)} (one per provider)"
            )

        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="crossdomain-provider"
        )
        self._in_flight: dict[SourceDomain, Future] = {}
        self._closed = False
        self.logger = structlog.get_logger()

    def __enter__(self) -> "InsightOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Shut the worker pool down. Safe to call more than once."""
        if self._closed:
            return
        running = [d.value for d, f in self._in_flight.items() if not f.done()]
        if running:
            # Timed-out calls cannot be interrupted; their threads finish on their own.
            self.logger.warning("orchestrator_closed_with_running_calls", domains=running)
            self._executor.shutdown(wait=False, cancel_futures=True)
        else:
            self._executor.shutdown(wait=True, cancel_futures=True)
        self._closed = True
        self.logger.debug("orchestrator_closed")

    def collect(self, raise_on_failure: bool = False) -> MergedMetrics:
        """
        Collect metrics from all providers concurrently.

        Args:
            raise_on_failure: Raise CollectionError instead of returning an
                empty MergedMetrics when a FAIL_FAST cycle fails

        Returns:
            MergedMetrics with courier, warehousing and social commerce
            metrics concatenated in that order

        Raises:
            CollectionError: If raise_on_failure is set and the cycle failed
            RuntimeError: If the orchestrator has been closed
        """
        if self._closed:
            raise RuntimeError("InsightOrchestrator is closed")

        merged = MergedMetrics()
        with structlog.contextvars.bound_contextvars(cycle_id=merged.cycle_id):
            self.logger.info(
                "cycle_started",
                policy=self.policy.value,
                provider_timeout_seconds=self.provider_timeout_seconds,
            )

            outcomes = self._gather()

            failures = [o for o in outcomes if not o.ok]
            errors = {o.domain.value: o.error or "" for o in failures}
            failed_domains = [o.domain for o in failures]

            if failures and self.policy == CollectionPolicy.FAIL_FAST:
                discarded = sum(len(o.metrics) for o in outcomes if o.ok)
                self.logger.error(
                    "collection_failed",
                    failed_domains=list(errors),
                    errors=errors,
                    discarded_metrics=discarded,
                )
                if raise_on_failure:
                    raise CollectionError(list(errors), errors)
                return merged.model_copy(
                    update={"failed_domains": failed_domains, "errors": errors}
                )

            metrics: list[Metric] = []
            by_domain: dict[SourceDomain, list[Metric]] = {}
            for outcome in outcomes:
                if outcome.ok:
                    by_domain[outcome.domain] = outcome.metrics
                    metrics.extend(outcome.metrics)

            if failures:
                self.logger.warning(
                    "collection_partial",
                    failed_domains=list(errors),
                    errors=errors,
                    merged_metrics=len(metrics),
                )
            else:
                self.logger.info("collection_complete", merged_metrics=len(metrics))

        return merged.model_copy(
            update={
                "collected_at": datetime.utcnow(),
                "metrics": metrics,
                "by_domain": by_domain,
                "failed_domains": failed_domains,
                "errors": errors,
            }
        )

    def generate_insights(self, metrics: Optional[Sequence[Metric]] = None) -> list[Insight]:
        """
        Collect (unless metrics are given) and run every correlation rule.

        A failed FAIL_FAST cycle yields an empty list; provider failures are
        logged and never raised from here.

        Args:
            metrics: Pre-collected metrics to correlate instead of collecting

        Returns:
            Insights in fixed rule order
        """
        if metrics is None:
            merged = self.collect()
            if not merged.ok and self.policy == CollectionPolicy.FAIL_FAST:
                return []
            metrics = merged.metrics

        return self.rule_engine.evaluate(list(metrics))

    def run_cycle(self) -> CycleReport:
        """
        Run one cycle and report insights together with collection status.

        Returns:
            CycleReport with insights, per-domain counts, failures and
            per-region correlation results
        """
        merged = self.collect()
        failed_cycle = not merged.ok and self.policy == CollectionPolicy.FAIL_FAST

        insights: list[Insight] = []
        regions: dict[str, CorrelationResult] = {}
        if not failed_cycle:
            extract = self.rule_engine.extract_family
            regions = self.rule_engine.correlate_regions(
                extract(merged.metrics, FULFILLMENT_TIME),
                extract(merged.metrics, DELIVERY_TIME),
            )
            insights = self.rule_engine.evaluate(merged.metrics)

        report = CycleReport(
            cycle_id=merged.cycle_id,
            collected_at=merged.collected_at,
            complete=merged.ok,
            metric_count=len(merged),
            metrics_by_domain={d: len(m) for d, m in merged.by_domain.items()},
            failed_domains=merged.failed_domains,
            errors=merged.errors,
            regions=regions,
            insights=insights,
        )
        self.logger.info(
            "cycle_complete",
            cycle_id=report.cycle_id,
            complete=report.complete,
            metric_count=report.metric_count,
            insights=len(report.insights),
        )
        return report

    def _gather(self) -> list[ProviderOutcome]:
        """
        Submit every provider call, wait for all and return outcomes in merge
        order.

        A provider whose previous call is still running is not called again;
        it fails this cycle instead. Each deadline starts when the call starts
        running on a worker, not when it is queued.
        """
        context = structlog.contextvars.get_contextvars()
        outcomes: dict[SourceDomain, ProviderOutcome] = {}
        calls: dict[SourceDomain, tuple[Future, threading.Event, dict]] = {}

        for domain in self.DOMAIN_ORDER:
            previous = self._in_flight.get(domain)
            if previous is not None and not previous.done():
                self.logger.error("provider_still_running", domain=domain.value)
                outcomes[domain] = ProviderOutcome.failure(
                    domain,
                    ProviderTimeoutError(domain.value, "previous call is still running"),
                )
                continue

            started = threading.Event()
            start_time: dict = {}
            future = self._executor.submit(
                self._call_provider,
                domain,
                self.providers[domain],
                context,
                started,
                start_time,
            )
            self._in_flight[domain] = future
            calls[domain] = (future, started, start_time)

        timeout = self.provider_timeout_seconds
        for domain, (future, started, start_time) in calls.items():
            if timeout is None:
                outcomes[domain] = future.result()
                self._in_flight.pop(domain, None)
                continue

            if started.wait(timeout):
                remaining = start_time["at"] + timeout - time.monotonic()
                wait([future], timeout=max(0.0, remaining))

            if not future.done():
                future.cancel()
                self.logger.error(
                    "provider_timeout",
                    domain=domain.value,
                    timeout_seconds=timeout,
                )
                outcomes[domain] = ProviderOutcome.failure(
                    domain,
                    ProviderTimeoutError(domain.value, f"no response within {timeout}s"),
                )
                continue

            outcomes[domain] = future.result()
            self._in_flight.pop(domain, None)

        return [outcomes[domain] for domain in self.DOMAIN_ORDER]

    def _call_provider(
        self,
        domain: SourceDomain,
        provider: MetricProvider,
        context: dict,
        started: threading.Event,
        start_time: dict,
    ) -> ProviderOutcome:
        """Run one provider call on a worker thread; never raises."""
        start_time["at"] = time.monotonic()
        started.set()
        with structlog.contextvars.bound_contextvars(**{**context, "domain": domain.value}):
            try:
                metrics = list(provider.collect_metrics())
            except ProviderError as e:
                self.logger.error("provider_collection_failed", error=str(e))
                return ProviderOutcome.failure(domain, e)
            except Exception as e:
                error = ProviderError(domain.value, str(e), cause=e)
                self.logger.error(
                    "provider_collection_failed",
                    error=str(error),
                    error_type=type(e).__name__,
                )
                return ProviderOutcome.failure(domain, error)

            self.logger.info("provider_collection_complete", metric_count=len(metrics))
            return ProviderOutcome.success(domain, metrics)
