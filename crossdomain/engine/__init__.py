"""
Cross-domain correlation engine.

This package contains the cycle-scoped analytics that turn merged domain
metrics into insights:

- Extraction: metric families keyed by product or region
- Trends: least-squares slope over timestamp-ordered series
- Rules: pairwise and triple-wise threshold correlations
- Scoring: weighted end-to-end efficiency per product
- Orchestration: concurrent provider collection and rule evaluation
"""

__all__ = [
    "CompositeScorer",
    "CorrelationRuleEngine",
    "CycleReport",
    "InsightOrchestrator",
    "MetricExtractor",
    "TrendCalculator",
]

from crossdomain.engine.extractor import MetricExtractor
from crossdomain.engine.orchestrator import CycleReport, InsightOrchestrator
from crossdomain.engine.rules import CorrelationRuleEngine
from crossdomain.engine.scorer import CompositeScorer
from crossdomain.engine.trend import TrendCalculator
