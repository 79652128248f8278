"""
Analytics package: read-only rollups for dashboards.
"""

from finance_manager.analytics.aggregator import AnalyticsAggregator

__all__ = ["AnalyticsAggregator"]
