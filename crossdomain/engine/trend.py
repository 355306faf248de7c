"""
Trend Calculator: least-squares slope over an ordered metric series.

The sample index 0..n-1 is the independent variable, so sampling cadence is
treated as uniform. Irregular gaps between timestamps are not weighted.

    slope = (n·Σxy − Σx·Σy) / (n·Σx² − (Σx)²)

A series with fewer than two points has no trend. A zero denominator or a
non-finite slope also yields no trend rather than a NaN/Inf signal.
"""

import math
import warnings
from collections.abc import Sequence
from typing import Optional

import numpy as np
import structlog
from scipy import stats

from crossdomain.models.enums import TrendDirection
from crossdomain.models.metrics import Metric, TrendSummary

# Slope beyond which a trend is reported as increasing/decreasing
DIRECTION_THRESHOLD = 0.1


class TrendCalculator:
    """
    Fits a simple linear regression to metric series.

    Attributes:
        min_points: Minimum series length for a trend (default: 2)
        direction_threshold: |slope| above which direction is not STABLE

    Example:
        >>> calc = TrendCalculator()
        >>> trend = calc.compute_trend(sorted_series)
        >>> if trend is not None:
        ...     print(trend.current_value, trend.slope)
    """

    def __init__(self, min_points: int = 2, direction_threshold: float = DIRECTION_THRESHOLD):
        if min_points < 2:
            raise ValueError("min_points must be at least 2")
        self.min_points = min_points
        self.direction_threshold = direction_threshold
        self.logger = structlog.get_logger()

    @staticmethod
    def sort_series(series: Sequence[Metric]) -> list[Metric]:
        """Sort ascending by timestamp (stable for equal timestamps)."""
        return sorted(series, key=lambda m: m.timestamp)

    @staticmethod
    def compute_slope(values: Sequence[float]) -> Optional[float]:
        """
        OLS slope of values against their index.

        Returns:
            Slope, or None if fewer than two values or the fit is degenerate
        """
        n = len(values)
        if n < 2:
            return None

        x = np.arange(n, dtype=np.float64)
        y = np.asarray(values, dtype=np.float64)

        sum_x = x.sum()
        sum_y = y.sum()
        sum_xy = (x * y).sum()
        sum_xx = (x * x).sum()

        denominator = n * sum_xx - sum_x * sum_x
        if denominator == 0:
            return None

        slope = float((n * sum_xy - sum_x * sum_y) / denominator)
        if not math.isfinite(slope):
            return None
        return slope

    def compute_trend(self, series: Sequence[Metric]) -> Optional[TrendSummary]:
        """
        Current value and slope of a series sorted by timestamp.

        Args:
            series: Metrics for one key, sorted ascending by timestamp

        Returns:
            TrendSummary, or None when no trend can be computed
        """
        if len(series) < self.min_points:
            return None

        values = [m.value for m in series]
        slope = self.compute_slope(values)
        if slope is None:
            self.logger.debug("trend_fit_degenerate", points=len(values))
            return None

        return TrendSummary(
            current_value=values[-1],
            slope=slope,
            direction=self._direction(slope),
            data_point_count=len(values),
            correlation=self._correlation(values),
            historical_values=values,
        )

    def compute_trends(
        self, series_by_key: dict[str, list[Metric]]
    ) -> dict[str, TrendSummary]:
        """
        Sort and fit every series, dropping keys without a trend.

        Args:
            series_by_key: Output of MetricExtractor.extract_series

        Returns:
            Dict of key -> TrendSummary
        """
        trends = {}
        dropped = 0
        for key, series in series_by_key.items():
            trend = self.compute_trend(self.sort_series(series))
            if trend is None:
                dropped += 1
                continue
            trends[key] = trend

        if dropped:
            self.logger.debug("trend_keys_dropped", dropped=dropped, kept=len(trends))
        return trends

    def _direction(self, slope: float) -> TrendDirection:
        if slope > self.direction_threshold:
            return TrendDirection.INCREASING
        if slope < -self.direction_threshold:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE

    @staticmethod
    def _correlation(values: list[float]) -> Optional[float]:
        """Pearson r between index and value; None for a constant series."""
        if len(set(values)) < 2:
            return None
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            result = stats.linregress(np.arange(len(values)), values)
        r_value = float(result.rvalue)
        if not math.isfinite(r_value):
            return None
        return round(r_value, 6)
