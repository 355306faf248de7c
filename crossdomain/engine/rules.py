"""
Correlation Rule Engine (cross-domain insight rules)

Applies a fixed set of threshold rules to metric families from different
domains and emits typed insights when a condition holds for a product or
region. Each family is read only from the domain that owns it (FAMILY_DOMAINS),
so a family emitted by the wrong provider never joins a rule. Every rule
inner-joins its inputs on the parsed key: a key missing from any input is
skipped silently.

Rule set:
    1. Inventory risk: trending product (social commerce) with low stock
       (warehousing)
    2. Logistics bottleneck: fulfillment + delivery time per region exceeds
       the 48-hour efficiency target
    3. Customer-experience gap: delivery performance (courier) well above
       customer satisfaction (social commerce) in a region
    4. Supply-chain risk: order volume rising while fulfillment efficiency
       falls for a product
    5. End-to-end optimization: composite order/fulfillment/delivery score
       below target for a product

Thresholds are class constants and are compared strictly: a value exactly
on a threshold never fires a rule.

Example:
    >>> engine = CorrelationRuleEngine()
    >>> insights = engine.evaluate(merged.metrics)
    >>> for insight in insights:
    ...     print(insight.type, insight.related_metric_keys)
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Callable, Optional

import structlog

from crossdomain.models.enums import InsightType, Severity, SourceDomain
from crossdomain.models.insights import Insight
from crossdomain.models.metrics import CorrelationResult, Metric, TrendSummary

from .extractor import MetricExtractor
from .scorer import CompositeScorer
from .trend import TrendCalculator

# Metric family prefixes
PRODUCT_TREND_SCORE = "product_trend_score_"
INVENTORY_LEVEL = "inventory_level_"
FULFILLMENT_TIME = "fulfillment_time_"
DELIVERY_TIME = "delivery_time_"
DELIVERY_PERFORMANCE = "delivery_performance_"
CUSTOMER_SATISFACTION = "customer_satisfaction_"
ORDER_VOLUME = "order_volume_"
FULFILLMENT_EFFICIENCY = "fulfillment_efficiency_"

# Domain each family is read from
FAMILY_DOMAINS = {
    PRODUCT_TREND_SCORE: SourceDomain.SOCIAL_COMMERCE,
    INVENTORY_LEVEL: SourceDomain.WAREHOUSING,
    FULFILLMENT_TIME: SourceDomain.WAREHOUSING,
    DELIVERY_TIME: SourceDomain.COURIER_SERVICES,
    DELIVERY_PERFORMANCE: SourceDomain.COURIER_SERVICES,
    CUSTOMER_SATISFACTION: SourceDomain.SOCIAL_COMMERCE,
    ORDER_VOLUME: SourceDomain.SOCIAL_COMMERCE,
    FULFILLMENT_EFFICIENCY: SourceDomain.WAREHOUSING,
}

ALL_DOMAINS = frozenset(
    {
        SourceDomain.SOCIAL_COMMERCE,
        SourceDomain.WAREHOUSING,
        SourceDomain.COURIER_SERVICES,
    }
)


class CorrelationRuleEngine:
    """
    Fixed set of pairwise and triple-wise correlation rules.

    Rule methods are pure: they read the extracted maps they are given and
    return new insights. evaluate() extracts every family once and runs the
    rules in a fixed order so output is deterministic.

    Attributes:
        extractor: Metric family extractor
        trend_calculator: Series trend fitter for the triple-wise rules
        scorer: End-to-end composite scorer
    """

    INVENTORY_TREND_SCORE_MIN = 80.0
    INVENTORY_LEVEL_MAX = 20.0

    TARGET_TOTAL_HOURS = 48.0
    LOGISTICS_EFFICIENCY_MIN = 70.0

    EXPERIENCE_GAP_MIN = 15.0

    ORDER_SLOPE_MIN = 0.1
    FULFILLMENT_SLOPE_MAX = -0.05

    END_TO_END_SCORE_MIN = 65.0

    RECOMMENDED_ACTIONS = {
        InsightType.INVENTORY_RISK: [
            "Expedite replenishment for the trending product",
            "Reallocate stock from low-demand warehouses",
            "Throttle social promotion until stock recovers",
        ],
        InsightType.LOGISTICS_BOTTLENECK: [
            "Review staffing and capacity at the bottleneck stage",
            "Rebalance carrier allocation for the region",
        ],
        InsightType.CUSTOMER_EXPERIENCE_GAP: [
            "Audit post-delivery experience (packaging, returns, support)",
            "Sample low-satisfaction reviews for recurring complaints",
        ],
        InsightType.SUPPLY_CHAIN_RISK: [
            "Increase fulfillment capacity ahead of demand",
            "Check supplier lead times for the product",
            "Alert courier partners to expected volume growth",
        ],
        InsightType.END_TO_END_OPTIMIZATION: [
            "Run a joint review with warehousing and courier operations",
            "Prioritize the weakest component score for improvement",
        ],
    }

    def __init__(
        self,
        extractor: Optional[MetricExtractor] = None,
        trend_calculator: Optional[TrendCalculator] = None,
        scorer: Optional[CompositeScorer] = None,
    ):
        self.extractor = extractor or MetricExtractor()
        self.trend_calculator = trend_calculator or TrendCalculator()
        self.scorer = scorer or CompositeScorer()
        self.logger = structlog.get_logger()

    @property
    def rule_names(self) -> list[str]:
        """Rule names in evaluation order."""
        return [
            "inventory_risk",
            "logistics_bottleneck",
            "customer_experience_gap",
            "supply_chain_risk",
            "end_to_end_optimization",
        ]

    def evaluate(
        self, metrics: Sequence[Metric], timestamp: Optional[datetime] = None
    ) -> list[Insight]:
        """
        Run every rule over one cycle's merged metrics.

        Args:
            metrics: Merged metrics from all domains
            timestamp: Insight timestamp (default: now)

        Returns:
            Concatenated insights in rule order
        """
        timestamp = timestamp or datetime.utcnow()
        extract = self.extract_family
        trends = self._trends

        order_trends = trends(metrics, ORDER_VOLUME)
        fulfillment_trends = trends(metrics, FULFILLMENT_EFFICIENCY)
        delivery_trends = trends(metrics, DELIVERY_TIME)

        rules: list[tuple[str, Callable[[], list[Insight]]]] = [
            (
                "inventory_risk",
                lambda: self.inventory_risk(
                    extract(metrics, PRODUCT_TREND_SCORE),
                    extract(metrics, INVENTORY_LEVEL),
                    timestamp,
                ),
            ),
            (
                "logistics_bottleneck",
                lambda: self.logistics_bottleneck(
                    extract(metrics, FULFILLMENT_TIME),
                    extract(metrics, DELIVERY_TIME),
                    timestamp,
                ),
            ),
            (
                "customer_experience_gap",
                lambda: self.customer_experience_gap(
                    extract(metrics, DELIVERY_PERFORMANCE),
                    extract(metrics, CUSTOMER_SATISFACTION),
                    timestamp,
                ),
            ),
            (
                "supply_chain_risk",
                lambda: self.supply_chain_risk(
                    order_trends, fulfillment_trends, delivery_trends, timestamp
                ),
            ),
            (
                "end_to_end_optimization",
                lambda: self.end_to_end_optimization(
                    order_trends, fulfillment_trends, delivery_trends, timestamp
                ),
            ),
        ]

        insights: list[Insight] = []
        for name, rule in rules:
            fired = rule()
            self.logger.debug("rule_evaluated", rule=name, insights=len(fired))
            insights.extend(fired)

        self.logger.info(
            "rule_evaluation_complete",
            metrics=len(metrics),
            insights=len(insights),
        )
        return insights

    # ------------------------------------------------------------------
    # Pairwise rules
    # ------------------------------------------------------------------

    def inventory_risk(
        self,
        trend_scores: dict[str, float],
        inventory_levels: dict[str, float],
        timestamp: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Trending products whose inventory is running low.

        Fires when trend score > 80.0 and inventory level < 20.0.

        Args:
            trend_scores: product id -> social trend score
            inventory_levels: product id -> inventory level (percent)
            timestamp: Insight timestamp (default: now)

        Returns:
            INVENTORY_RISK insights with HIGH severity
        """
        timestamp = timestamp or datetime.utcnow()
        insights = []
        for product_id in sorted(trend_scores.keys() & inventory_levels.keys()):
            trend_score = trend_scores[product_id]
            inventory_level = inventory_levels[product_id]

            if not (
                trend_score > self.INVENTORY_TREND_SCORE_MIN
                and inventory_level < self.INVENTORY_LEVEL_MAX
            ):
                continue

            insights.append(
                self._build_insight(
                    InsightType.INVENTORY_RISK,
                    title="Inventory Risk for Trending Product",
                    description=(
                        f"Product {product_id} is trending (score: {trend_score}) "
                        f"but has low inventory level ({inventory_level}%)"
                    ),
                    severity=Severity.HIGH,
                    source_domains={SourceDomain.SOCIAL_COMMERCE, SourceDomain.WAREHOUSING},
                    related=[
                        self.extractor.reconstruct_name(PRODUCT_TREND_SCORE, product_id),
                        self.extractor.reconstruct_name(INVENTORY_LEVEL, product_id),
                    ],
                    metadata={
                        "product_id": product_id,
                        "trend_score": trend_score,
                        "inventory_level": inventory_level,
                    },
                    timestamp=timestamp,
                )
            )
        return insights

    def correlate_regions(
        self,
        fulfillment_times: dict[str, float],
        delivery_times: dict[str, float],
    ) -> dict[str, CorrelationResult]:
        """
        Fulfillment-to-delivery efficiency per region.

        efficiency = 48.0 / (fulfillment + delivery) * 100.0

        Regions missing either time, or with a non-positive total, are
        skipped.

        Returns:
            Dict of region -> CorrelationResult, in sorted region order
        """
        results = {}
        for region in sorted(fulfillment_times.keys() & delivery_times.keys()):
            fulfillment_time = fulfillment_times[region]
            delivery_time = delivery_times[region]
            total_time = fulfillment_time + delivery_time
            if total_time <= 0:
                self.logger.debug("region_total_time_not_positive", region=region)
                continue

            results[region] = CorrelationResult(
                region=region,
                score=self.TARGET_TOTAL_HOURS / total_time * 100.0,
                total_time=total_time,
                fulfillment_share_percent=fulfillment_time / total_time * 100.0,
                delivery_share_percent=delivery_time / total_time * 100.0,
            )
        return results

    def logistics_bottleneck(
        self,
        fulfillment_times: dict[str, float],
        delivery_times: dict[str, float],
        timestamp: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Regions with poor order-to-delivery efficiency.

        Fires when the regional efficiency score < 70.0. The bottleneck is
        whichever stage takes the larger share of total time.

        Returns:
            LOGISTICS_BOTTLENECK insights with MEDIUM severity
        """
        timestamp = timestamp or datetime.utcnow()
        insights = []
        for region, result in self.correlate_regions(fulfillment_times, delivery_times).items():
            if not result.score < self.LOGISTICS_EFFICIENCY_MIN:
                continue

            bottleneck = result.bottleneck
            insights.append(
                self._build_insight(
                    InsightType.LOGISTICS_BOTTLENECK,
                    title=f"Logistics Bottleneck in {region}",
                    description=(
                        f"Region {region} has poor order-to-delivery efficiency "
                        f"({result.score:.1f}%). {bottleneck} is the primary bottleneck."
                    ),
                    severity=Severity.MEDIUM,
                    source_domains={SourceDomain.WAREHOUSING, SourceDomain.COURIER_SERVICES},
                    related=[
                        self.extractor.reconstruct_name(FULFILLMENT_TIME, region),
                        self.extractor.reconstruct_name(DELIVERY_TIME, region),
                    ],
                    metadata={
                        "region": region,
                        "efficiency_score": round(result.score, 4),
                        "total_time": result.total_time,
                        "fulfillment_share_percent": round(result.fulfillment_share_percent, 4),
                        "delivery_share_percent": round(result.delivery_share_percent, 4),
                        "bottleneck": bottleneck,
                    },
                    timestamp=timestamp,
                )
            )
        return insights

    def customer_experience_gap(
        self,
        delivery_performance: dict[str, float],
        customer_satisfaction: dict[str, float],
        timestamp: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Regions where good delivery does not translate into satisfaction.

        Fires when performance - satisfaction > 15.0.

        Returns:
            CUSTOMER_EXPERIENCE_GAP insights with MEDIUM severity
        """
        timestamp = timestamp or datetime.utcnow()
        insights = []
        for region in sorted(customer_satisfaction.keys() & delivery_performance.keys()):
            satisfaction_score = customer_satisfaction[region]
            performance_score = delivery_performance[region]
            gap = performance_score - satisfaction_score

            if not gap > self.EXPERIENCE_GAP_MIN:
                continue

            insights.append(
                self._build_insight(
                    InsightType.CUSTOMER_EXPERIENCE_GAP,
                    title=f"Delivery Impact on Customer Satisfaction in {region}",
                    description=(
                        f"Despite good delivery performance ({performance_score}%), "
                        f"customer satisfaction is lower ({satisfaction_score}%) in "
                        f"{region}, suggesting post-delivery issues."
                    ),
                    severity=Severity.MEDIUM,
                    source_domains={SourceDomain.COURIER_SERVICES, SourceDomain.SOCIAL_COMMERCE},
                    related=[
                        self.extractor.reconstruct_name(DELIVERY_PERFORMANCE, region),
                        self.extractor.reconstruct_name(CUSTOMER_SATISFACTION, region),
                    ],
                    metadata={
                        "region": region,
                        "delivery_performance": performance_score,
                        "customer_satisfaction": satisfaction_score,
                        "gap": round(gap, 4),
                    },
                    timestamp=timestamp,
                )
            )
        return insights

    # ------------------------------------------------------------------
    # Triple-wise rules (order / fulfillment / delivery trends per product)
    # ------------------------------------------------------------------

    def supply_chain_risk(
        self,
        order_trends: dict[str, TrendSummary],
        fulfillment_trends: dict[str, TrendSummary],
        delivery_trends: dict[str, TrendSummary],
        timestamp: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Products whose demand grows while fulfillment efficiency declines.

        Requires all three trends for a product. Fires when
        order slope > 0.1 and fulfillment slope < -0.05.

        Returns:
            SUPPLY_CHAIN_RISK insights with HIGH severity
        """
        timestamp = timestamp or datetime.utcnow()
        insights = []
        for product_id in self._joined_products(order_trends, fulfillment_trends, delivery_trends):
            order_trend = order_trends[product_id]
            fulfillment_trend = fulfillment_trends[product_id]

            if not (
                order_trend.slope > self.ORDER_SLOPE_MIN
                and fulfillment_trend.slope < self.FULFILLMENT_SLOPE_MAX
            ):
                continue

            insights.append(
                self._build_insight(
                    InsightType.SUPPLY_CHAIN_RISK,
                    title=f"Supply Chain Risk for Product {product_id}",
                    description=(
                        f"Order volume is increasing ({order_trend.slope * 100:.1f}%) "
                        f"but fulfillment efficiency is decreasing "
                        f"({fulfillment_trend.slope * 100:.1f}%) for product {product_id}"
                    ),
                    severity=Severity.HIGH,
                    source_domains=ALL_DOMAINS,
                    related=self._product_metric_names(product_id),
                    metadata={
                        "product_id": product_id,
                        "order_slope": order_trend.slope,
                        "fulfillment_slope": fulfillment_trend.slope,
                        "delivery_slope": delivery_trends[product_id].slope,
                    },
                    timestamp=timestamp,
                )
            )
        return insights

    def end_to_end_optimization(
        self,
        order_trends: dict[str, TrendSummary],
        fulfillment_trends: dict[str, TrendSummary],
        delivery_trends: dict[str, TrendSummary],
        timestamp: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Products with a poor end-to-end efficiency score.

        Requires all three trends for a product. Fires when the composite
        score < 65.0.

        Returns:
            END_TO_END_OPTIMIZATION insights with MEDIUM severity
        """
        timestamp = timestamp or datetime.utcnow()
        insights = []
        for product_id in self._joined_products(order_trends, fulfillment_trends, delivery_trends):
            order_trend = order_trends[product_id]
            fulfillment_trend = fulfillment_trends[product_id]
            delivery_trend = delivery_trends[product_id]

            e2e_score = self.scorer.score(order_trend, fulfillment_trend, delivery_trend)
            if not e2e_score < self.END_TO_END_SCORE_MIN:
                continue

            components = self.scorer.components(order_trend, fulfillment_trend, delivery_trend)
            insights.append(
                self._build_insight(
                    InsightType.END_TO_END_OPTIMIZATION,
                    title=f"End-to-End Optimization Needed for Product {product_id}",
                    description=(
                        f"Product {product_id} has poor end-to-end efficiency score "
                        f"({e2e_score:.1f}%). Optimization across all domains required."
                    ),
                    severity=Severity.MEDIUM,
                    source_domains=ALL_DOMAINS,
                    related=self._product_metric_names(product_id),
                    metadata={
                        "product_id": product_id,
                        "end_to_end_score": round(e2e_score, 4),
                        **{k: round(v, 4) for k, v in components.items()},
                    },
                    timestamp=timestamp,
                )
            )
        return insights

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def extract_family(self, metrics: Sequence[Metric], prefix: str) -> dict[str, float]:
        """Keyed values of one family, read only from the domain that owns it."""
        return self.extractor.extract(metrics, prefix, FAMILY_DOMAINS[prefix])

    def _trends(self, metrics: Sequence[Metric], prefix: str) -> dict[str, TrendSummary]:
        return self.trend_calculator.compute_trends(
            self.extractor.extract_series(metrics, prefix, FAMILY_DOMAINS[prefix])
        )

    @staticmethod
    def _joined_products(*trend_maps: dict[str, TrendSummary]) -> list[str]:
        keys = set(trend_maps[0])
        for trend_map in trend_maps[1:]:
            keys &= trend_map.keys()
        return sorted(keys)

    def _product_metric_names(self, product_id: str) -> list[str]:
        return [
            self.extractor.reconstruct_name(ORDER_VOLUME, product_id),
            self.extractor.reconstruct_name(FULFILLMENT_EFFICIENCY, product_id),
            self.extractor.reconstruct_name(DELIVERY_TIME, product_id),
        ]

    def _build_insight(
        self,
        insight_type: InsightType,
        title: str,
        description: str,
        severity: Severity,
        source_domains: Iterable[SourceDomain],
        related: list[str],
        metadata: dict,
        timestamp: datetime,
    ) -> Insight:
        self.logger.debug(
            "insight_fired",
            insight_type=insight_type.value,
            related_metrics=related,
        )
        return Insight(
            type=insight_type,
            title=title,
            description=description,
            severity=severity,
            source_domains=frozenset(source_domains),
            timestamp=timestamp,
            related_metric_keys=related,
            recommended_actions=list(self.RECOMMENDED_ACTIONS.get(insight_type, [])),
            metadata=metadata,
        )
