"""
InsightSmith - query orchestration and retrieval-augmented SQL generation
for retail analytics.
"""

__version__ = "0.1.0"
