"""
Call Outcomes

Ingests recorded voice calls from the call platform and classifies each one
into a fixed outcome category, with a generative classifier backed by a
deterministic heuristic fallback.
"""

from .categories import CallCategory, list_categories
from .exceptions import DateRangeError, IngestionError
from .generative_classifier import GenerativeClassifier
from .heuristic_classifier import HeuristicClassifier
from .ingestor import ConversationIngestor
from .models import AnalysisResult, AnalysisStats, BatchAnalysis, CallRecord
from .orchestrator import BatchAnalysisOrchestrator, build_orchestrator, compute_stats

__all__ = [
    "AnalysisResult",
    "AnalysisStats",
    "BatchAnalysis",
    "BatchAnalysisOrchestrator",
    "CallCategory",
    "CallRecord",
    "ConversationIngestor",
    "DateRangeError",
    "GenerativeClassifier",
    "HeuristicClassifier",
    "IngestionError",
    "build_orchestrator",
    "compute_stats",
    "list_categories",
]
