"""Insight views derived from stored weekly stats and prices."""

from hive_stats.insights.engine import InsightEngine

__all__ = ["InsightEngine"]
