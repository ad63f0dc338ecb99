import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import datetime
from functools import partial

import streamlit as st
import pandas as pd
import plotly.express as px

from tracker.config import load_settings, configure_logging
from tracker.domain import CASH, CASHLESS, PAYMENT_TYPES
from tracker.entry import (
    reset_form,
    set_amount,
    set_auto_time,
    set_cashless_type,
    set_category,
    set_comment,
    set_expense_time,
    set_payment_type,
    submit_expense,
    utc_now,
)
from tracker.events import EventBus, collect_notifications
from tracker.formatting import (
    format_currency,
    format_day_header,
    format_expense_time,
    format_month_header,
    payment_badge,
)
from tracker.functional import category_icon, pipe
from tracker.grouping import local_time, monthly_totals, summarize
from tracker.listing import EMPTY_MESSAGE, ExpenseListing, confirm_prompt
from tracker.reference import ensure_form_options
from tracker.seed import load_seed, seed_database
from tracker.sql_gateway import SqlGateway, make_engine

st.set_page_config(page_title="Expense Tracker", page_icon="💰", layout="centered")

settings = load_settings()
configure_logging(settings.log_level)
tz = settings.tz


@st.cache_resource
def get_engine(database_url: str, seed_path: str):
    engine = make_engine(database_url)
    asyncio.run(seed_database(SqlGateway(engine), load_seed(seed_path)))
    return engine


if "gateway" not in st.session_state:
    st.session_state.gateway = SqlGateway(get_engine(settings.database_url, settings.seed_path))
    st.session_state.bus = EventBus()
    st.session_state.toasts = collect_notifications(st.session_state.bus)
    st.session_state.listing = ExpenseListing(st.session_state.gateway, st.session_state.bus)
    st.session_state.form = reset_form()
    st.session_state.form_gen = 0

gateway: SqlGateway = st.session_state.gateway
bus: EventBus = st.session_state.bus
listing: ExpenseListing = st.session_state.listing

# notifications queued by the previous run survive st.rerun()
for note in st.session_state.toasts:
    st.toast(note.message, icon="✅" if note.level == "success" else "⚠️")
st.session_state.toasts.clear()

# --- sidebar: session

st.sidebar.markdown("### 👤 Account")
user_id = asyncio.run(gateway.get_current_user())

if user_id is None:
    with st.sidebar.form("sign_in"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        signed = st.form_submit_button("Sign in")
    if signed:
        if asyncio.run(gateway.sign_in(email, password)):
            st.rerun()
        else:
            st.sidebar.error("Invalid email or password")
    st.title("💰 Expense Tracker")
    st.info("Sign in to record and review your expenses.")
    st.stop()

if st.sidebar.button("Sign out"):
    gateway.sign_out()
    listing.reset()
    st.session_state.pop("form_options", None)
    st.rerun()

menu = st.sidebar.radio("Menu", ["➕ Add Expense", "📋 Expenses"])

if menu == "➕ Add Expense":
    st.title("➕ Add New Expense")

    st.session_state.form_options = asyncio.run(
        ensure_form_options(gateway, bus, st.session_state.get("form_options"))
    )
    options = st.session_state.form_options
    form = st.session_state.form
    gen = st.session_state.form_gen

    icons = {c.name: c.icon for c in options.categories}

    auto_time = st.toggle("Automatic Time", value=form.is_auto_time, key=f"auto_{gen}")
    manual_time = form.expense_time
    if not auto_time:
        staged = local_time(form.expense_time, tz)
        col_d, col_t = st.columns(2)
        with col_d:
            picked_date = st.date_input("Date", value=staged.date(), key=f"date_{gen}")
        with col_t:
            picked_time = st.time_input("Time", value=staged.time().replace(second=0, microsecond=0), key=f"time_{gen}")
        manual_time = datetime.combine(picked_date, picked_time)

    category = st.selectbox(
        "Category",
        [c.name for c in options.categories],
        index=None,
        placeholder="Select category",
        format_func=lambda name: f"{icons.get(name, '')} {name}",
        key=f"category_{gen}",
    )
    payment_type = st.selectbox(
        "Payment Type",
        PAYMENT_TYPES,
        format_func=lambda p: "💵 Cash" if p == CASH else "💳 Cashless",
        key=f"payment_{gen}",
    )
    cashless_type = None
    if payment_type == CASHLESS:
        cashless_type = st.selectbox(
            "Cashless Type",
            [t.name for t in options.cashless_types],
            index=None,
            placeholder="Select cashless type",
            key=f"cashless_{gen}",
        )
    amount = st.number_input("Total Amount (IDR)", min_value=0, step=1000, value=0, key=f"amount_{gen}")
    if amount > 0:
        st.caption(format_currency(int(amount)))
    comment = st.text_area("Comment (Optional)", placeholder="Add a note about this expense...", key=f"comment_{gen}")

    form = pipe(
        form,
        partial(set_auto_time, is_auto_time=auto_time),
        partial(set_expense_time, expense_time=manual_time),
        partial(set_category, category=category or ""),
        partial(set_payment_type, payment_type=payment_type),
        partial(set_cashless_type, cashless_type=cashless_type),
        partial(set_amount, amount=int(amount)),
        partial(set_comment, comment=comment),
    )
    st.session_state.form = form

    if st.button("Add Expense", type="primary", use_container_width=True):
        outcome = asyncio.run(submit_expense(
            gateway, form, bus,
            display_tz=tz,
            active_categories=options.categories or None,
        ))
        st.session_state.form = outcome.form
        if outcome.result.is_right():
            st.session_state.form_gen += 1
            if listing.needs_refresh:
                asyncio.run(listing.refresh())
        st.rerun()

elif menu == "📋 Expenses":
    st.title("📋 Expenses")

    if listing.needs_refresh:
        asyncio.run(listing.refresh())
    if st.button("🔄 Refresh"):
        asyncio.run(listing.refresh())

    state = listing.state
    summary = summarize(state.expenses, utc_now(), tz)

    k1, k2, k3 = st.columns(3)
    with k1:
        st.metric("Total", format_currency(summary.grand_total))
        st.caption(f"Total from {summary.count} expenses")
    with k2:
        st.metric("This Month", format_currency(summary.month_total))
    with k3:
        st.metric("Today", format_currency(summary.day_total))

    if state.pending_delete is not None:
        question, cat_name, cat_amount = confirm_prompt(state.pending_delete)
        st.warning(f"{question}\n\n**{cat_name}** · {format_currency(cat_amount)}")
        c_yes, c_no = st.columns(2)
        if c_yes.button("Delete", type="primary", key="confirm_delete"):
            asyncio.run(listing.confirm_delete())
            st.rerun()
        if c_no.button("Cancel", key="cancel_delete"):
            listing.cancel_delete()
            st.rerun()

    if not summary.months:
        st.info(EMPTY_MESSAGE)
    else:
        df_month = pd.DataFrame(monthly_totals(summary), columns=["month", "total"])
        df_month["month"] = df_month["month"].map(format_month_header)
        fig = px.bar(df_month, x="month", y="total", labels={"month": "Month", "total": "Total (IDR)"},
                     title="Monthly spending", template="plotly_dark")
        st.plotly_chart(fig, use_container_width=True)

        for month in summary.months:
            st.subheader(format_month_header(month.key))
            st.caption(f"{month.count} expenses • {format_currency(month.total)}")
            for day in month.days:
                st.markdown(f"**{format_day_header(day.day)}** · {format_currency(day.total)}")
                for e in day.expenses:
                    c_icon, c_body, c_amount, c_del = st.columns([1, 6, 3, 1])
                    c_icon.markdown(f"### {category_icon(state.categories, e.category)}")
                    with c_body:
                        badges = payment_badge(e.payment_type)
                        if e.cashless_type:
                            badges += f" · {e.cashless_type}"
                        st.markdown(f"**{e.category}**  \n{badges}")
                        st.caption(f"🕒 {format_expense_time(e.expense_time, tz, e.is_auto_time)}")
                        if e.comment:
                            st.caption(f"💬 _{e.comment}_")
                    c_amount.markdown(f"**{format_currency(e.total_amount)}**")
                    if c_del.button("🗑", key=f"del_{e.id}"):
                        listing.request_delete(e)
                        st.rerun()
            st.divider()
