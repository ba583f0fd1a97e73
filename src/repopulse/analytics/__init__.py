"""Commit history analytics."""

from repopulse.analytics.aggregator import AnalyticsAggregator, analyze_repository

__all__ = ["AnalyticsAggregator", "analyze_repository"]
