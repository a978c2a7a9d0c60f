"""hive_stats package.

Contains modules for reading raw post/comment activity from HiveSQL,
aggregating it into weekly activity-tier statistics, storing STEEM/HIVE daily
prices, and deriving insights (summary, year-over-year trend, price
correlation, tier distribution) for a Streamlit dashboard.

Architecture:
- HiveSQL → weekly aggregation → `weekly_stats` collection in MongoDB
- CryptoCompare → `price_history` collection in MongoDB
- Dask/pandas are used for the per-account weekly transforms
- Pydantic models validate stored rows and insight views
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
