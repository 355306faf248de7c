"""
Composite Scorer: end-to-end efficiency of one product across domains.

Combines the order (social commerce), fulfillment (warehousing) and delivery
(courier) trends of a product into one weighted score on a nominal 0-100
scale. Component scores start from the current values and are then adjusted
by the trend slopes:

    order        = (100 if current > 0 else 0)       + slope * 50
    fulfillment  = 100 - min(current, 100)           - slope * 50
    delivery     = 100 - min(current / 2, 100)       - slope * 50
    score        = 0.30 * order + 0.35 * fulfillment + 0.35 * delivery

The result is not clamped unless clamping is enabled, so strongly trending
inputs can land outside [0, 100].
"""

from typing import Optional

from crossdomain.config import get_settings
from crossdomain.models.metrics import TrendSummary

ORDER_WEIGHT = 0.30
FULFILLMENT_WEIGHT = 0.35
DELIVERY_WEIGHT = 0.35
SLOPE_FACTOR = 50.0


class CompositeScorer:
    """
    Weighted end-to-end efficiency score.

    Attributes:
        clamp: Clamp the final score to [0, 100] (default: False)

    Example:
        >>> scorer = CompositeScorer()
        >>> scorer.score(order_trend, fulfillment_trend, delivery_trend)
        84.05
    """

    def __init__(self, clamp: Optional[bool] = None):
        if clamp is None:
            clamp = get_settings().clamp_composite_score
        self.clamp = clamp

    def components(
        self,
        order_trend: TrendSummary,
        fulfillment_trend: TrendSummary,
        delivery_trend: TrendSummary,
    ) -> dict[str, float]:
        """
        Slope-adjusted component scores before weighting.

        Returns:
            Dict with order_score, fulfillment_score and delivery_score
        """
        order_score = 100.0 if order_trend.current_value > 0 else 0.0
        fulfillment_score = 100.0 - min(fulfillment_trend.current_value, 100.0)
        delivery_score = 100.0 - min(delivery_trend.current_value / 2.0, 100.0)

        order_score += order_trend.slope * SLOPE_FACTOR
        fulfillment_score -= fulfillment_trend.slope * SLOPE_FACTOR
        delivery_score -= delivery_trend.slope * SLOPE_FACTOR

        return {
            "order_score": order_score,
            "fulfillment_score": fulfillment_score,
            "delivery_score": delivery_score,
        }

    def score(
        self,
        order_trend: TrendSummary,
        fulfillment_trend: TrendSummary,
        delivery_trend: TrendSummary,
    ) -> float:
        """
        End-to-end efficiency score for one product.

        Args:
            order_trend: Order volume trend (social commerce)
            fulfillment_trend: Fulfillment efficiency trend (warehousing)
            delivery_trend: Delivery time trend (courier services)

        Returns:
            Weighted score; unclamped unless self.clamp is set
        """
        parts = self.components(order_trend, fulfillment_trend, delivery_trend)
        total = (
            parts["order_score"] * ORDER_WEIGHT
            + parts["fulfillment_score"] * FULFILLMENT_WEIGHT
            + parts["delivery_score"] * DELIVERY_WEIGHT
        )
        if self.clamp:
            total = max(0.0, min(total, 100.0))
        return total
