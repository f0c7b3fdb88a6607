"""Utility modules for InsightSmith."""
