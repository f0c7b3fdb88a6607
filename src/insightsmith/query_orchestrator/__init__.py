"""
Query Orchestrator Module

Public entry point that turns requests into responses.
"""

from .filters import FilterSnapshotProvider, StaticFilterProvider, merge_filters
from .orchestrator import BatchItemResult, HistoryEntry, QueryOrchestrator

__all__ = [
    "BatchItemResult",
    "FilterSnapshotProvider",
    "HistoryEntry",
    "QueryOrchestrator",
    "StaticFilterProvider",
    "merge_filters",
]
