import sys
import os
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(ROOT)

import asyncio
import logging
from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from supabase import create_client

from dishdash.auth import OtpAuth, Session, SharedSecretAuth, sign_out
from dishdash.config import load_settings
from dishdash.domain import EXPENSE, INCOME, VEG
from dishdash.events import (
    event_bus,
    RECORD_SAVED,
    RECORD_DELETED,
    ACTION_FAILED,
    VALIDATION_FAILED,
)
from dishdash.filters import available_only, by_category, by_date_range, by_kind, by_month, by_name, select
from dishdash.functional import validate_dish_form, validate_transaction_form, validate_worker_form
from dishdash.loaders import load_menu, load_report_data, load_transactions_page, load_workers
from dishdash.log import configure_logging
from dishdash.reports import dashboard_stats, payroll_total, recent_transactions, revenue_split, veg_non_veg_sales, monthly_trends
from dishdash.repository import BackendError, SeedRepository, SupabaseRepository
from dishdash.services import ReportService
from dishdash.transforms import dishes_frame, transactions_frame, workers_frame

st.set_page_config(page_title="Dish Dash", page_icon="🍴", layout="wide")


def _secrets() -> dict:
    try:
        return dict(st.secrets)
    except Exception:
        # no secrets.toml, settings come from the environment
        return {}


settings = load_settings(_secrets())
configure_logging(settings.log_level)
logger = logging.getLogger("dishdash.app")

VEG_COLOR = "#16a34a"
NON_VEG_COLOR = "#dc2626"
INCOME_COLOR = "#22c55e"
EXPENSE_COLOR = "#ef4444"


@st.cache_resource
def get_client(url: str, key: str):
    return create_client(url, key)


@st.cache_resource
def get_seed_repository(path: str) -> SeedRepository:
    if not os.path.isabs(path):
        path = os.path.join(ROOT, path)
    logger.info("no Supabase credentials, serving demo data from %s", path)
    return SeedRepository.from_file(path)


if settings.demo_mode:
    repo = get_seed_repository(settings.seed_path)
    client = None
else:
    client = get_client(settings.supabase_url, settings.supabase_key)
    repo = SupabaseRepository(client)

secret_auth = SharedSecretAuth(settings.admin_secret)
otp_auth = OtpAuth(client, settings.phone_country_code) if client is not None else None

if "session" not in st.session_state:
    st.session_state.session = Session()
if "notices" not in st.session_state:
    st.session_state.notices = []


def money(value) -> str:
    return f"{settings.currency}{value:,.2f}"


def publish(name: str, payload: dict) -> None:
    for result in event_bus.publish(name, payload):
        if "notice" in result:
            st.session_state.notices.append(result)


def flush_notices() -> None:
    icons = {"success": "🎉", "error": "🚨", "warning": "⚠️"}
    for notice in st.session_state.notices:
        st.toast(notice["message"], icon=icons.get(notice["notice"]))
    st.session_state.notices = []


def fetch(coro, what: str, default):
    """Run a loader; on backend failure show a notice and render with ``default``."""
    try:
        return asyncio.run(coro)
    except BackendError as e:
        publish(ACTION_FAILED, {"action": f"load {what}", "error": str(e.cause or e)})
        return default


def perform(action: str, fn, *args) -> bool:
    try:
        fn(*args)
    except BackendError as e:
        publish(ACTION_FAILED, {"action": action, "error": str(e.cause or e)})
        return False
    return True


def confirm_delete(key: str, prompt: str) -> bool:
    """Two-step delete: first click arms, second click on Confirm returns True."""
    pending = st.session_state.get("pending_delete")
    if pending != key:
        return False
    st.warning(prompt)
    c1, c2 = st.columns(2)
    if c1.button("Yes, delete", key=f"confirm_{key}", type="primary"):
        st.session_state.pending_delete = None
        return True
    if c2.button("Cancel", key=f"cancel_{key}"):
        st.session_state.pending_delete = None
        st.rerun()
    return False


def numeric_frame(records: list, *cols: str) -> pd.DataFrame:
    df = pd.DataFrame(records)
    for col in cols:
        if col in df.columns:
            df[col] = df[col].astype(float)
    return df


def veg_pie(records: list, title: str):
    data = numeric_frame(records, "value")
    fig = px.pie(
        data,
        values="value",
        names="name",
        title=title,
        color="name",
        color_discrete_map={"Veg Items": VEG_COLOR, "Non-Veg Items": NON_VEG_COLOR},
    )
    fig.update_layout(height=320, margin=dict(t=40, b=10, l=10, r=10))
    return fig


def monthly_bar(records: list, title: str):
    fig = go.Figure()
    labels = [r["label"] for r in records]
    fig.add_trace(go.Bar(x=labels, y=[float(r["income"]) for r in records], name="Income", marker_color=INCOME_COLOR))
    fig.add_trace(go.Bar(x=labels, y=[float(r["expense"]) for r in records], name="Expenses", marker_color=EXPENSE_COLOR))
    fig.update_layout(title=title, barmode="group", height=320, margin=dict(t=40, b=10, l=10, r=10))
    return fig


flush_notices()
session: Session = st.session_state.session

# ---- login gate ----
if not session.signed_in:
    st.title("🍴 Dish Dash Login")
    if settings.auth_mode == "otp" and otp_auth is not None:
        if not session.otp_requested:
            with st.form("otp_phone_form"):
                phone = st.text_input("Phone Number", placeholder="9876543210")
                st.caption(f"Enter without country code (we'll add {settings.phone_country_code})")
                send = st.form_submit_button("Send OTP")
            if send:
                result = otp_auth.request_code(session, phone)
                if result.is_right():
                    st.session_state.session = result.get_or_else(session)
                    st.session_state.notices.append({"notice": "success", "message": "OTP sent, check your phone"})
                    st.rerun()
                else:
                    st.error(result.get_error()["message"])
        else:
            st.caption(f"Enter the OTP sent to {session.phone}")
            with st.form("otp_verify_form"):
                token = st.text_input("OTP", max_chars=6)
                verify = st.form_submit_button("Verify OTP")
            if verify:
                result = otp_auth.verify_code(session, token)
                if result.is_right():
                    st.session_state.session = result.get_or_else(session)
                    st.rerun()
                else:
                    st.error(result.get_error()["message"])
            if st.button("Change phone number"):
                st.session_state.session = Session()
                st.rerun()
    else:
        if settings.auth_mode == "otp":
            st.info("Phone sign-in needs Supabase credentials; using admin credentials instead.")
        with st.form("login_form"):
            credentials = st.text_input("Admin credentials", type="password")
            submitted = st.form_submit_button("Sign in")
        if submitted:
            result = secret_auth.sign_in(session, credentials)
            if result.is_right():
                st.session_state.session = result.get_or_else(session)
                st.rerun()
            else:
                st.error(result.get_error()["message"])
    st.stop()

# ---- sidebar ----
st.sidebar.markdown("### 🍴 Dish Dash")
if session.phone:
    st.sidebar.caption(f"Signed in as {session.phone}")
elif session.is_admin:
    st.sidebar.caption("Signed in as admin")
if settings.demo_mode:
    st.sidebar.info("Demo mode: changes are kept in memory only.")
if st.sidebar.button("Sign out"):
    st.session_state.session = otp_auth.sign_out(session) if otp_auth is not None else sign_out(session)
    st.rerun()

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🍽️ Menu", "💸 Transactions", "👷 Workers", "📊 Reports"]
)

if menu == "🏠 Dashboard":
    st.title("Welcome to Dish Dash! 🍴")
    st.caption("Your cozy restaurant management dashboard")

    transactions, dishes = fetch(load_report_data(repo), "dashboard data", ((), ()))
    stats = dashboard_stats(transactions, dishes)

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("💰 Total Income", money(stats["total_income"]))
    with k2:
        st.metric("💸 Total Expenses", money(stats["total_expenses"]))
    with k3:
        st.metric("📈 Profit", money(stats["profit"]))
    with k4:
        st.metric("🍽️ Total Dishes", stats["total_dishes"])

    v1, v2 = st.columns(2)
    with v1:
        st.metric("🌿 Veg Dishes", stats["veg_dishes"])
    with v2:
        st.metric("🍗 Non-Veg Dishes", stats["non_veg_dishes"])

    c1, c2 = st.columns(2)
    with c1:
        st.plotly_chart(veg_pie(veg_non_veg_sales(transactions), "Veg vs Non-Veg Sales"), use_container_width=True)
    with c2:
        st.plotly_chart(monthly_bar(monthly_trends(transactions)[-6:], "Monthly Overview"), use_container_width=True)

    st.subheader("⏰ Recent Transactions")
    recent = recent_transactions(transactions, 5)
    if recent:
        for t in recent:
            sign = "+" if t.kind == INCOME else "-"
            dish = ""
            if t.dish:
                dish = f" · {'🌿' if t.dish.kind == VEG else '🍗'} {t.dish.name}"
            st.markdown(
                f"{'💰' if t.kind == INCOME else '💸'} **{t.description}**{dish}  \n"
                f"{sign}{money(t.amount)} · {t.ts:%d %b %Y}"
            )
    else:
        st.info("No transactions yet. Start adding your first sale!")

elif menu == "🍽️ Menu":
    st.title("🍽️ Menu")

    dishes, categories = fetch(load_menu(repo), "menu data", ((), ()))
    category_names = {c.id: f"{c.icon} {c.name}".strip() for c in categories}

    editing_id = st.session_state.get("editing_dish")
    editing = next((d for d in dishes if d.id == editing_id), None)

    with st.expander("✏️ Edit Dish" if editing else "➕ Add New Dish", expanded=editing is not None):
        with st.form("dish_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                name = st.text_input("Dish Name", value=editing.name if editing else "")
                price = st.text_input("Price", value=str(editing.price) if editing else "")
                kind = st.selectbox(
                    "Type", ["veg", "non_veg"],
                    index=0 if not editing or editing.kind == VEG else 1,
                    format_func=lambda k: "🌿 Vegetarian" if k == VEG else "🍗 Non-Vegetarian",
                )
            with col2:
                options = [""] + [c.id for c in categories]
                current = editing.category_id if editing and editing.category_id in category_names else ""
                category_id = st.selectbox(
                    "Category", options,
                    index=options.index(current),
                    format_func=lambda cid: category_names.get(cid, "No category"),
                )
                is_available = st.checkbox("Available", value=editing.is_available if editing else True)
            description = st.text_area("Description", value=(editing.description or "") if editing else "")
            save = st.form_submit_button("Update Dish" if editing else "Add Dish")

        if editing and st.button("Cancel editing"):
            st.session_state.editing_dish = None
            st.rerun()

        if save:
            result = validate_dish_form({
                "name": name, "price": price, "type": kind, "category_id": category_id,
                "description": description, "is_available": is_available,
            }, categories)
            if result.is_left():
                publish(VALIDATION_FAILED, result.get_error())
                st.rerun()
            elif perform("save dish", repo.save_dish, result.get_or_else({}), editing.id if editing else None):
                publish(RECORD_SAVED, {"label": "Dish", "updated": editing is not None})
                st.session_state.editing_dish = None
                st.rerun()
            else:
                st.rerun()

    f1, f2 = st.columns([3, 2])
    with f1:
        term = st.text_input("🔍 Search dishes")
    with f2:
        selected_category = st.selectbox(
            "Category filter", ["all"] + [c.id for c in categories],
            format_func=lambda cid: "All Categories" if cid == "all" else category_names.get(cid, cid),
        )

    visible = list(select(dishes, by_name(term), by_category(selected_category)))
    st.caption(f"{len(visible)} of {len(dishes)} dishes · {sum(1 for _ in select(dishes, available_only))} available")

    for dish in visible:
        with st.container(border=True):
            c1, c2, c3 = st.columns([5, 2, 2])
            with c1:
                badge = "🌿 Veg" if dish.kind == VEG else "🍗 Non-Veg"
                category = f" · {dish.category.icon} {dish.category.name}" if dish.category else ""
                st.markdown(f"**{dish.name}** · {badge}{category}")
                if dish.description:
                    st.caption(dish.description)
            with c2:
                st.markdown(f"**{money(dish.price)}**")
                st.caption("Available" if dish.is_available else "Unavailable")
            with c3:
                if st.button("Edit", key=f"edit_{dish.id}"):
                    st.session_state.editing_dish = dish.id
                    st.rerun()
                if st.button("Delete", key=f"delete_{dish.id}"):
                    st.session_state.pending_delete = f"dish_{dish.id}"
                    st.rerun()
            if confirm_delete(f"dish_{dish.id}", f"Are you sure you want to delete {dish.name}?"):
                if perform("delete dish", repo.delete_dish, dish.id):
                    publish(RECORD_DELETED, {"label": "Dish"})
                st.rerun()

    if not visible:
        st.info("Try adjusting your filters" if dishes else "No dishes yet. Add your first dish!")
    else:
        st.download_button("⬇ Download Menu CSV", dishes_frame(tuple(visible)).to_csv(index=False), file_name="menu.csv")

elif menu == "💸 Transactions":
    st.title("💸 Transactions")

    transactions, dishes = fetch(load_transactions_page(repo), "transactions", ((), ()))
    split = revenue_split(transactions)

    s1, s2, s3 = st.columns(3)
    with s1:
        st.metric("💰 Total Income", money(split.income))
    with s2:
        st.metric("💸 Total Expenses", money(split.expense))
    with s3:
        st.metric("📈 Net Profit" if split.profit >= 0 else "📉 Net Profit", money(split.profit))

    with st.expander("➕ Add Transaction", expanded=False):
        kind = st.radio(
            "Transaction Type", [INCOME, EXPENSE], horizontal=True,
            format_func=lambda k: "💰 Income" if k == INCOME else "💸 Expense",
        )
        with st.form("transaction_form", clear_on_submit=True):
            amount = st.text_input(f"Amount ({settings.currency})", placeholder="0.00")
            description = st.text_area("Description", placeholder="What is this transaction for?")
            dish_id, quantity = "", 1
            if kind == INCOME:
                dish_options = [""] + [d.id for d in dishes]
                dish_labels = {d.id: f"{'🌿' if d.kind == VEG else '🍗'} {d.name} - {money(d.price)}" for d in dishes}
                dish_id = st.selectbox(
                    "Related Dish (Optional)", dish_options,
                    format_func=lambda did: dish_labels.get(did, "No specific dish"),
                )
                quantity = st.number_input("Quantity", min_value=1, value=1, step=1)
            add = st.form_submit_button("Add Transaction")

        if add:
            result = validate_transaction_form(
                {"type": kind, "amount": amount, "description": description, "dish_id": dish_id, "quantity": quantity},
                dishes,
            )
            if result.is_left():
                publish(VALIDATION_FAILED, result.get_error())
                st.rerun()
            elif perform("save transaction", repo.add_transaction, result.get_or_else({})):
                publish(RECORD_SAVED, {"label": "Income" if kind == INCOME else "Expense"})
                st.rerun()
            else:
                st.rerun()

    shown = st.radio(
        "Show", ["all", INCOME, EXPENSE], horizontal=True,
        format_func=lambda k: {"all": "All Transactions", INCOME: "💰 Income", EXPENSE: "💸 Expenses"}[k],
    )
    preds = [by_kind(shown)]
    if transactions:
        first = min(t.ts.date() for t in transactions)
        last = max(t.ts.date() for t in transactions)
        picked = st.date_input("Date range", value=(first, last))
        # a single date while the range picker is half filled
        if isinstance(picked, (tuple, list)) and len(picked) == 2:
            preds.append(by_date_range(*picked))
    filtered = tuple(select(transactions, *preds))

    st.subheader("📋 Transaction History")
    if filtered:
        for t in filtered:
            c1, c2 = st.columns([6, 1])
            with c1:
                sign = "+" if t.kind == INCOME else "-"
                dish = ""
                if t.dish:
                    qty = f" x{t.quantity}" if t.quantity and t.quantity > 1 else ""
                    dish = f" · {'🌿 Veg' if t.dish.kind == VEG else '🍗 Non-Veg'} {t.dish.name}{qty}"
                st.markdown(f"**{t.description}**{dish}  \n{sign}{money(t.amount)} · {t.ts:%d %b %Y, %H:%M}")
            with c2:
                if st.button("Delete", key=f"delete_tx_{t.id}"):
                    st.session_state.pending_delete = f"tx_{t.id}"
                    st.rerun()
            if confirm_delete(f"tx_{t.id}", "Are you sure you want to delete this transaction?"):
                if perform("delete transaction", repo.delete_transaction, t.id):
                    publish(RECORD_DELETED, {"label": "Transaction"})
                st.rerun()

        csv = transactions_frame(filtered).to_csv(index=False)
        st.download_button("⬇ Download CSV", csv, file_name="transactions.csv", mime="text/csv")
    else:
        st.info("No transactions found")

elif menu == "👷 Workers":
    st.title("👷 Workers")

    workers = fetch(load_workers(repo), "workers", ())

    if not session.is_admin:
        with st.expander("🔒 Unlock admin actions"):
            with st.form("admin_unlock"):
                credentials = st.text_input("Admin credentials", type="password")
                unlock = st.form_submit_button("Unlock")
            if unlock:
                result = secret_auth.sign_in(session, credentials)
                if result.is_right():
                    st.session_state.session = result.get_or_else(session)
                    st.rerun()
                else:
                    st.error(result.get_error()["message"])

    months = sorted({(w.effective_date.year, w.effective_date.month) for w in workers}, reverse=True)
    month = st.selectbox(
        "Effective month", [None] + months,
        format_func=lambda m: "All months" if m is None else date(m[0], m[1], 1).strftime("%B %Y"),
    )
    shown = tuple(select(workers, by_month(*month))) if month else workers

    m1, m2 = st.columns(2)
    with m1:
        st.metric("Workers", len(shown))
    with m2:
        st.metric("Total Payments", money(payroll_total(shown)))

    if session.is_admin:
        editing_id = st.session_state.get("editing_worker")
        editing = next((w for w in workers if w.id == editing_id), None)
        with st.form("worker_form", clear_on_submit=True):
            st.subheader("Edit Worker" if editing else "Add Worker")
            c1, c2 = st.columns(2)
            with c1:
                name = st.text_input("Name", value=editing.name if editing else "")
                designation = st.text_input("Designation", value=editing.designation if editing else "")
            with c2:
                payment = st.text_input("Payment", value=str(editing.payment) if editing else "")
                effective_date = st.date_input("Effective date", value=editing.effective_date if editing else date.today())
            save = st.form_submit_button("Update Worker" if editing else "Add Worker")

        if editing and st.button("Cancel editing"):
            st.session_state.editing_worker = None
            st.rerun()

        if save:
            result = validate_worker_form({
                "name": name, "designation": designation, "payment": payment, "effective_date": effective_date,
            })
            if result.is_left():
                publish(VALIDATION_FAILED, result.get_error())
                st.rerun()
            elif perform("save worker", repo.save_worker, result.get_or_else({}), editing.id if editing else None):
                publish(RECORD_SAVED, {"label": "Worker", "updated": editing is not None})
                st.session_state.editing_worker = None
                st.rerun()
            else:
                st.rerun()

    if shown:
        st.dataframe(workers_frame(shown), use_container_width=True, hide_index=True)
        if session.is_admin:
            for w in shown:
                c1, c2, c3 = st.columns([6, 1, 1])
                c1.markdown(f"**{w.name}** · {w.designation} · {money(w.payment)}")
                if c2.button("Edit", key=f"edit_w_{w.id}"):
                    st.session_state.editing_worker = w.id
                    st.rerun()
                if c3.button("Delete", key=f"delete_w_{w.id}"):
                    st.session_state.pending_delete = f"worker_{w.id}"
                    st.rerun()
                if confirm_delete(f"worker_{w.id}", f"Are you sure you want to delete {w.name}?"):
                    if perform("delete worker", repo.delete_worker, w.id):
                        publish(RECORD_DELETED, {"label": "Worker"})
                    st.rerun()
    else:
        st.info("No workers found")

elif menu == "📊 Reports":
    st.title("📊 Reports & Analytics")
    st.caption("Insights into your restaurant performance")

    transactions, dishes = fetch(load_report_data(repo), "report data", ((), ()))
    report = ReportService().build(transactions, dishes)["result"]

    st.plotly_chart(monthly_bar(report["monthly_trends"], "📈 Monthly Income vs Expenses"), use_container_width=True)

    c1, c2 = st.columns(2)
    with c1:
        st.plotly_chart(veg_pie(report["veg_non_veg_sales"], "🥘 Veg vs Non-Veg Revenue"), use_container_width=True)
        veg, non_veg = report["veg_non_veg_sales"]
        st.caption(f"🌿 Veg: {money(veg['value'])} ({veg['percentage']}%) · 🍗 Non-Veg: {money(non_veg['value'])} ({non_veg['percentage']}%)")
    with c2:
        daily = numeric_frame(report["daily_revenue"], "revenue")
        fig_daily = px.line(daily, x="label", y="revenue", markers=True, title="📅 Daily Revenue (Last 7 Days)")
        fig_daily.update_layout(height=320, margin=dict(t=40, b=10, l=10, r=10), xaxis_title=None)
        st.plotly_chart(fig_daily, use_container_width=True)

    c3, c4 = st.columns(2)
    with c3:
        st.subheader("🏆 Top Selling Dishes")
        if report["top_dishes"]:
            for rank, dish in enumerate(report["top_dishes"], start=1):
                badge = "🌿 Veg" if dish["type"] == VEG else "🍗 Non-Veg"
                st.markdown(f"**#{rank} {dish['name']}** · {badge} · {dish['quantity']} orders · **{money(dish['sales'])}**")
        else:
            st.info("No sales data available")
    with c4:
        st.subheader("📋 Category Breakdown")
        if report["category_breakdown"]:
            breakdown = pd.DataFrame(report["category_breakdown"]).rename(columns={
                "name": "Category", "dishes": "Dishes", "veg_count": "🌿 Veg", "non_veg_count": "🍗 Non-Veg",
            })
            st.dataframe(breakdown, use_container_width=True, hide_index=True)
        else:
            st.info("No categories found")
