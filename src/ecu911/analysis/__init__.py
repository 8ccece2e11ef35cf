"""Analysis layer: M/M/c queueing model and redistribution advisor."""

from ecu911.analysis.queueing import QueueAnalysis, analyze_queue_performance, erlang_c
from ecu911.analysis.redistribution import (
    CapacityAnalysis,
    RedistributionAnalyzer,
    RedistributionSuggestion,
    ValidationResult,
)

__all__ = [
    "QueueAnalysis",
    "analyze_queue_performance",
    "erlang_c",
    "CapacityAnalysis",
    "RedistributionAnalyzer",
    "RedistributionSuggestion",
    "ValidationResult",
]
