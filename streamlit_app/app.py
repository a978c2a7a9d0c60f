from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt

from hive_stats.config import get_settings
from hive_stats.db import get_client, get_db
from hive_stats.errors import InsufficientData
from hive_stats.insights.engine import InsightEngine
from hive_stats.store.price_series import PriceSeriesStore
from hive_stats.store.weekly_stats import WeeklyStatsStore

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="Hive Weekly Activity", layout="wide")
st.title("📊 Hive / Steem Weekly Activity Dashboard")

# =====================================================
# MongoDB connection
# =====================================================
settings = get_settings()

try:
    client = get_client(settings.mongo_uri, tls=settings.mongo_tls)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    db = get_db(client, settings.mongo_db)
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()

engine = InsightEngine(WeeklyStatsStore(db), PriceSeriesStore(db))


# =====================================================
# Helpers
# =====================================================
def kpi(label: str, value) -> None:
    """Display a simple KPI metric in the dashboard."""
    st.metric(label, value)


def weekly_frame() -> pd.DataFrame:
    """Weekly rows joined with prices as a DataFrame (empty if nothing stored)."""
    rows = engine.weekly_with_prices()
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame([r.model_dump() for r in rows])
    df["week_start"] = pd.to_datetime(df["week_start"])
    return df


df = weekly_frame()
if df.empty:
    st.warning("No weekly stats stored yet. Run `hive-stats stats` first.")
    st.stop()

# =====================================================
# SECTION 0: OVERVIEW
# =====================================================
st.header("📌 Overview")

try:
    summary = engine.summary()
except InsufficientData as exc:
    st.info(str(exc))
else:
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        kpi("Last complete week", f"{summary.last_complete_week_users:,}")
        st.caption(f"Week of {summary.last_complete_week_date}")
    with c2:
        kpi("Avg weekly users", f"{summary.avg_weekly_users:,.0f}")
    with c3:
        kpi("Peak weekly users", f"{summary.peak_weekly_users:,}")
        st.caption(f"Week of {summary.peak_week_date}")
    with c4:
        kpi("Posts + comments", f"{summary.total_posts + summary.total_comments:,}")

st.divider()

# =====================================================
# SECTION 1: USERS VS PRICE
# =====================================================
st.header("📈 Weekly Active Users vs Price")

years = sorted(df["year"].unique())
first, last = st.select_slider(
    "Years", options=years, value=(years[0], years[-1])
)
df_plot = df[(df["year"] >= first) & (df["year"] <= last)]

base = alt.Chart(df_plot).encode(x=alt.X("week_start:T", title="Week"))
users_line = base.mark_area(opacity=0.4).encode(
    y=alt.Y("total_users:Q", title="Weekly active users"),
    tooltip=["week_start:T", "total_users:Q", "avg_price:Q"],
)
price_line = base.mark_line(color="#e31337").encode(
    y=alt.Y("avg_price:Q", title="Avg price (USD)"),
)
st.altair_chart(
    alt.layer(users_line, price_line).resolve_scale(y="independent").properties(height=320),
    width="stretch",
)

corr = engine.correlation()
st.caption(
    f"Price/users correlation: **{corr.coefficient:.3f}**: {corr.description} "
    f"({corr.sample_size} priced weeks)"
)

st.divider()

# =====================================================
# SECTION 2: CONTENT VOLUME
# =====================================================
st.header("📝 Posts and Comments")

volume = df_plot.melt(
    id_vars=["week_start"],
    value_vars=["total_posts", "total_comments"],
    var_name="kind",
    value_name="count",
)
st.altair_chart(
    alt.Chart(volume)
    .mark_bar()
    .encode(
        x=alt.X("week_start:T", title="Week"),
        y=alt.Y("count:Q", title="Actions", stack=True),
        color=alt.Color("kind:N", title=None),
        tooltip=["week_start:T", "kind:N", "count:Q"],
    )
    .properties(height=280),
    width="stretch",
)

st.divider()

# =====================================================
# SECTION 3: ACTIVITY TIERS
# =====================================================
st.header("🧮 Activity Tiers")

tier_labels = {
    "ultra_active_users": "Ultra (50+)",
    "very_active_users": "Very (20-49)",
    "active_users": "Active (10-19)",
    "occasional_users": "Occasional (3-9)",
    "low_activity_users": "Low (1-2)",
}
tiers = df_plot.melt(
    id_vars=["week_start"],
    value_vars=list(tier_labels),
    var_name="tier",
    value_name="users",
)
tiers["tier"] = tiers["tier"].map(tier_labels)
st.altair_chart(
    alt.Chart(tiers)
    .mark_area()
    .encode(
        x=alt.X("week_start:T", title="Week"),
        y=alt.Y("users:Q", title="Users", stack=True),
        color=alt.Color("tier:N", title="Tier", sort=list(tier_labels.values())),
        tooltip=["week_start:T", "tier:N", "users:Q"],
    )
    .properties(height=280),
    width="stretch",
)

dist = engine.activity_distribution()
st.dataframe(
    pd.DataFrame(
        {
            "tier": list(tier_labels.values()),
            "share_pct": [
                dist.ultra_active,
                dist.very_active,
                dist.active,
                dist.occasional,
                dist.low_activity,
            ],
        }
    ),
    width="stretch",
)

st.divider()

# =====================================================
# SECTION 4: YEAR OVER YEAR
# =====================================================
st.header("📆 Year over Year")

yoy = pd.DataFrame([y.model_dump() for y in engine.year_over_year()])
yoy["avg_weekly_users"] = yoy["avg_weekly_users"].round(0).astype(int)
yoy["avg_price"] = pd.to_numeric(yoy["avg_price"], errors="coerce").round(4)
yoy["change_percent"] = pd.to_numeric(yoy["change_percent"], errors="coerce").round(1)
st.dataframe(yoy, width="stretch")
st.caption(
    "Average price is the mean of weekly averages (STEEM before 2020, HIVE from 2020)."
)

# =====================================================
# Footer
# =====================================================
st.caption("HiveSQL • CryptoCompare • MongoDB • Dask • Streamlit")
