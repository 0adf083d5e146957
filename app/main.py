"""
Streamlit Frontend for Expense Tracker

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every change goes through the tracker facade (validated and persisted)
3. Clear messages when something is rejected or fails
4. Summaries are recomputed on every render; nothing stale is shown

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date

import altair as alt
import streamlit as st

from expense_tracker.agents import InsightResponse, InsightStatus
from expense_tracker.audit import configure_logging
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models.expense import ExpenseCategory, Granularity, PeriodSummary
from expense_tracker.orchestrator import ExpenseTracker, create_tracker
from expense_tracker.validation import ExpenseValidationError


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

CHART_PALETTE = [
    "#1b9aaa",
    "#2e7d32",
    "#f4a261",
    "#e76f51",
    "#457b9d",
    "#f6c453",
    "#6c8ead",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_tracker() -> ExpenseTracker:
    """Get or create the tracker (one ledger per server process)."""
    configure_logging(get_settings().app.debug_mode)
    return create_tracker()


def main():
    """Main application entry point."""
    tracker = get_tracker()
    currency = get_settings().app.currency_symbol

    if "editing_id" not in st.session_state:
        st.session_state.editing_id = None
    if "insight" not in st.session_state:
        st.session_state.insight = None

    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown("---")
    granularity = st.sidebar.radio(
        "Summarize by:",
        list(Granularity),
        index=1,
        format_func=lambda g: g.value.title(),
    )
    reference = st.sidebar.date_input("Period containing", value=date.today())
    st.sidebar.markdown("---")
    render_settings_status()

    if tracker.last_persist_error:
        st.warning(
            "Your latest change is shown here but could not be saved to disk: "
            f"{tracker.last_persist_error}"
        )

    col_left, col_right = st.columns([3, 2])
    with col_left:
        render_add_form(tracker, currency)
        render_expense_list(tracker, currency)
    with col_right:
        summary = tracker.summary(granularity, reference)
        render_summary(summary, currency)
        render_insights(tracker, granularity, reference)


def render_add_form(tracker: ExpenseTracker, currency: str):
    """Render the add-expense form."""
    st.subheader("➕ Add Expense")
    with st.form("add_expense", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            amount = st.number_input(f"Amount ({currency}) *", min_value=0.0, step=1.0, format="%.2f")
        with col2:
            category = st.selectbox("Category *", options=list(ExpenseCategory), format_func=lambda c: c.value)
        with col3:
            spent_on = st.date_input("Date *", value=date.today())
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        try:
            tracker.add_expense({"amount": amount, "category": category, "date": spent_on})
        except ExpenseValidationError as e:
            st.error(f"Expense not added: {e}")
        else:
            st.success("Expense added")
            for message in tracker.last_warnings:
                st.warning(message)


def render_expense_list(tracker: ExpenseTracker, currency: str):
    """Render the newest-first list with edit and delete actions."""
    st.subheader("📋 Expenses")
    for message in st.session_state.pop("edit_warnings", []):
        st.warning(f"Saved with a warning: {message}")
    if not tracker.records:
        st.info("No expenses yet. Add your first one above.")
        return

    for record in tracker.records:
        if st.session_state.editing_id == record.id:
            render_edit_form(tracker, record, currency)
            continue

        col1, col2, col3, col4, col5 = st.columns([2, 2, 2, 1, 1])
        col1.write(record.date.strftime("%d %b %Y"))
        col2.write(record.category.value)
        col3.write(f"{currency}{record.amount:,.2f}")
        if col4.button("✏️", key=f"edit-{record.id}", help="Edit"):
            st.session_state.editing_id = record.id
            st.rerun()
        if col5.button("🗑️", key=f"delete-{record.id}", help="Delete"):
            tracker.delete_expense(record.id)
            st.rerun()


def render_edit_form(tracker: ExpenseTracker, record, currency: str):
    """Inline edit form for one record."""
    categories = list(ExpenseCategory)
    with st.form(f"edit-{record.id}"):
        col1, col2, col3 = st.columns(3)
        with col1:
            amount = st.number_input(
                f"Amount ({currency})",
                min_value=0.0,
                value=float(record.amount),
                step=1.0,
                format="%.2f",
            )
        with col2:
            category = st.selectbox(
                "Category",
                options=categories,
                index=categories.index(record.category),
                format_func=lambda c: c.value,
            )
        with col3:
            spent_on = st.date_input("Date", value=record.date)
        save_col, cancel_col = st.columns(2)
        saved = save_col.form_submit_button("Save", type="primary")
        cancelled = cancel_col.form_submit_button("Cancel")

    if saved:
        try:
            updated = tracker.update_expense(
                record.id, {"amount": amount, "category": category, "date": spent_on}
            )
        except ExpenseValidationError as e:
            st.error(f"Changes not saved: {e}")
            return
        if updated is None:
            st.warning("This expense no longer exists.")
        st.session_state.edit_warnings = tracker.last_warnings
        st.session_state.editing_id = None
        st.rerun()
    if cancelled:
        st.session_state.editing_id = None
        st.rerun()


def render_summary(summary: PeriodSummary, currency: str):
    """Render the period total and the category pie chart."""
    st.subheader(f"📊 {summary.label}")
    st.metric("Total spent", f"{currency}{summary.total:,.2f}")

    if summary.is_empty:
        st.info("No expenses in this period.")
        return

    data = [
        {
            "category": item.category.value,
            "amount": float(item.amount),
            "amount_label": f"{currency}{item.amount:,.2f}",
            "share_label": f"{summary.share_of(item):.0%}",
        }
        for item in summary.breakdown
    ]
    chart = alt.Chart(alt.Data(values=data)).mark_arc(
        innerRadius=0,
        stroke="#ffffff",
        strokeWidth=1,
    ).encode(
        theta=alt.Theta("amount:Q"),
        color=alt.Color(
            "category:N",
            scale=alt.Scale(range=CHART_PALETTE),
            legend=alt.Legend(orient="bottom", title=None),
        ),
        tooltip=[
            alt.Tooltip("category:N"),
            alt.Tooltip("amount_label:N"),
            alt.Tooltip("share_label:N"),
        ],
    ).properties(width=320, height=320)
    st.altair_chart(chart, use_container_width=True)


def render_insights(tracker: ExpenseTracker, granularity: Granularity, reference: date):
    """Render the analysis and tips buttons and the latest response."""
    st.subheader("🤖 Insights")
    busy = tracker.insights_busy
    col1, col2 = st.columns(2)

    if col1.button("Analyze spending", disabled=busy):
        with st.spinner("Analyzing your spending..."):
            st.session_state.insight = run_async(tracker.analyze(granularity, reference))
    if col2.button("Get saving tips", disabled=busy):
        with st.spinner("Thinking of tips..."):
            st.session_state.insight = run_async(tracker.tips(granularity, reference))

    insight: InsightResponse = st.session_state.insight
    if insight is None:
        return
    if insight.status == InsightStatus.OK:
        st.markdown(f"**{insight.kind.value.title()} for {insight.period_label}**")
        st.markdown(insight.text)
    elif insight.status == InsightStatus.FALLBACK:
        st.warning(insight.text)
    else:
        st.info(insight.text)


def render_settings_status():
    """Show which configuration sections are usable."""
    status = validate_all_settings()
    sections = [
        ("Storage", "storage"),
        ("Gemini (Insights)", "gemini"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.sidebar.success(f"✅ {name}")
        else:
            st.sidebar.error(f"❌ {name} - not configured")


if __name__ == "__main__":
    main()
