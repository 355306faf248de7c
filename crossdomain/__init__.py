"""
Cross-Domain Metric Correlation & Insight Engine.

Collects metrics from the courier, warehousing and social commerce domains,
extracts per-entity trends, and applies correlation rules that classify
situations spanning two or more domains.

Subpackages:
    - models: Pydantic metric, trend and insight models
    - providers: Domain metric providers (typed boundary over raw records)
    - engine: Extraction, trend calculation, rules, scoring, orchestration
    - utils: Structured logging
"""

__version__ = "1.0.0"
