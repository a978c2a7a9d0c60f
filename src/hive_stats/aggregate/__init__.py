"""Weekly aggregation of raw post/comment actions.

This package reduces a year's raw actions into per-account weekly totals,
classifies each account-week into an activity tier, and rolls those up into
one `WeeklyStats` row per week, ready to be upserted into MongoDB.
"""
