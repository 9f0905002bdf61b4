"""Statistical insight engine relating habits to sleep outcomes.

Modules:
    distribution -- five-number summaries and IQR outliers
    correlation  -- Pearson r and least-squares trend
    classifier   -- pairing, sufficiency gate and per-habit insights
"""

from nightcap.insights.distribution import summarize, DistributionSummary
from nightcap.insights.correlation import correlate, CorrelationResult
from nightcap.insights.classifier import (
    Insight,
    BinaryInsight,
    NumericalInsight,
    PlaceholderInsight,
    InsightReport,
    PairedData,
    pair_series,
    classify_habit,
    build_insights,
    SLEEP_METRICS,
    TIME_RANGES,
    date_range,
)

__all__ = [
    # distribution
    "summarize",
    "DistributionSummary",
    # correlation
    "correlate",
    "CorrelationResult",
    # classifier
    "Insight",
    "BinaryInsight",
    "NumericalInsight",
    "PlaceholderInsight",
    "InsightReport",
    "PairedData",
    "pair_series",
    "classify_habit",
    "build_insights",
    "SLEEP_METRICS",
    "TIME_RANGES",
    "date_range",
]
