"""
Order Operations Dashboard
Order stats, status categories and manual cost tracking over a Google Sheet of orders
"""

import queue
import logging
import streamlit as st
import pandas as pd
from datetime import datetime, timedelta, date
from typing import Dict, List, Optional, Tuple

from api_client import ApiError, DashboardApiClient, check_connection
from config import Settings, check_env_vars, configure_logging
from conversion import ConversionRateStore
from costing import CostLedger, PLATFORMS, PLATFORM_LABELS, format_cost
from data_loader import LoadResult, load_orders
from filters import FilterStore, OrderFilters
from metrics import (
    aggregate,
    calculate_kpis,
    cities_by_count,
    compute_totals,
    export_csv,
    filter_orders,
    order_stats,
    paginate,
    rows_to_dataframe,
    sort_orders,
    unique_values,
    VIEW_COLUMNS,
)
from sheet_client import GoogleSheetClient, fetch_published_sheet, get_google_creds
from status_config import CATEGORIES, StatusConfigStore
from storage import JsonFileStorage

logger = logging.getLogger(__name__)

# Brand Colors
DARK_NAVY = "#1f2a44"
ACCENT_BLUE = "#3b82f6"
LIGHT_BLUE = "#dbeafe"
WHITE = "#ffffff"
OFF_WHITE = "#f8fafc"

ROWS_PER_PAGE = 20

CATEGORY_LABELS = {
    "confirmation": "Confirmation",
    "delivery": "Delivery",
    "returned": "Returned",
    "inProcess": "In Process",
}

TIME_RANGES = ["All time", "Today", "Yesterday", "Last 7 days", "Last 30 days", "This month", "Custom"]

ORDER_COLUMNS = [
    ("order_date", "Order Date"),
    ("order_id", "Order ID"),
    ("product", "Product"),
    ("amount", "Amount"),
    ("quantity", "Quantity"),
    ("city", "City"),
    ("country", "Country"),
    ("source_traffic", "Source"),
    ("status", "Status"),
    ("agent", "Agent"),
]

# Page config
st.set_page_config(
    page_title="Order Ops Dashboard",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(f"""
<style>
    .main-header {{
        background: {DARK_NAVY};
        padding: 15px 20px;
        border-radius: 12px;
        margin-bottom: 15px;
        text-align: center;
    }}
    .main-header h1 {{
        color: {WHITE};
        margin: 0;
        font-size: 1.6em;
    }}
    .main-header p {{
        color: {LIGHT_BLUE};
        margin: 5px 0 0 0;
        font-size: 0.9em;
    }}
    .status-bar {{
        background: {LIGHT_BLUE};
        padding: 10px 15px;
        border-radius: 8px;
        border-left: 4px solid {ACCENT_BLUE};
        margin: 10px 0;
        font-size: 0.9em;
        color: #1a1a1a;
    }}
</style>
""", unsafe_allow_html=True)


def format_currency(value: float) -> str:
    return f"{value:,.2f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def resolve_time_range(preset: str, today: date) -> Tuple[Optional[date], Optional[date]]:
    """Start and end dates for a sidebar preset. "All time" and "Custom" return (None, None)."""
    if preset == "Today":
        return today, today
    if preset == "Yesterday":
        day = today - timedelta(days=1)
        return day, day
    if preset == "Last 7 days":
        return today - timedelta(days=6), today
    if preset == "Last 30 days":
        return today - timedelta(days=29), today
    if preset == "This month":
        return today.replace(day=1), today
    return None, None


# Session services

def get_settings() -> Settings:
    if "settings" not in st.session_state:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        st.session_state["settings"] = settings
    return st.session_state["settings"]


def get_services(settings: Settings) -> Dict:
    """Create the per-session stores once and keep them in session state."""
    if "services" in st.session_state:
        return st.session_state["services"]

    storage = JsonFileStorage(settings.state_file)
    errors: "queue.Queue[str]" = queue.Queue()
    client = DashboardApiClient(base_url=settings.api_url)

    services = {
        "storage": storage,
        "client": client,
        "errors": errors,
        "status_config": StatusConfigStore(storage),
        "filters": FilterStore(storage),
        "rates": ConversionRateStore(storage),
        "ledger": CostLedger(client, on_error=errors.put, delay=settings.cost_debounce_seconds),
    }
    st.session_state["services"] = services
    return services


def show_persistence_errors(errors: "queue.Queue[str]") -> None:
    """Debounced cost writes fail on timer threads; surface them on the next rerun."""
    while True:
        try:
            message = errors.get_nowait()
        except queue.Empty:
            return
        st.toast(message, icon="⚠️")


def fetch_raw_rows(settings: Settings, client: DashboardApiClient) -> List[dict]:
    if settings.data_source == "backend":
        return client.fetch_my_sheet_data()
    if settings.sheet_url:
        return fetch_published_sheet(settings.sheet_url)
    creds = get_google_creds(
        service_account_file=settings.service_account_file,
        client_secrets_file=settings.client_secrets_file,
        token_file=settings.token_file,
    )
    return GoogleSheetClient(settings.sheet_id, creds=creds).fetch_rows(settings.sheet_range)


def get_orders(settings: Settings, services: Dict) -> LoadResult:
    if "orders_result" not in st.session_state:
        with st.spinner("Loading orders..."):
            st.session_state["orders_result"] = load_orders(
                lambda: fetch_raw_rows(settings, services["client"]),
                services["rates"],
            )
            st.session_state["last_data_refresh"] = datetime.now()
    return st.session_state["orders_result"]


def load_costs(services: Dict) -> None:
    if st.session_state.get("costs_loaded"):
        return
    try:
        services["ledger"].load()
        st.session_state["costs_loaded"] = True
    except ApiError as e:
        st.warning(f"Could not load costs: {e.message}")


def clear_loaded_data() -> None:
    for k in ("orders_result", "costs_loaded"):
        st.session_state.pop(k, None)
    st.session_state["last_data_refresh"] = datetime.now()


# Sidebar

def _set_filter(store: FilterStore, key: str, value) -> None:
    current = getattr(store.filters, key)
    if value != current:
        store.update(key, value)


def _select_filter(store: FilterStore, label: str, key: str, options: List[str]) -> None:
    current = getattr(store.filters, key)
    choices = ["All"] + options
    if current and current not in options:
        choices.append(current)
    choice = st.selectbox(label, choices, index=choices.index(current) if current else 0, key=f"filter_{key}")
    _set_filter(store, key, "" if choice == "All" else choice)


def render_sidebar(store: FilterStore, orders) -> None:
    with st.sidebar:
        st.markdown("## Filters")
        filters = store.filters

        preset_index = TIME_RANGES.index(filters.time_range) if filters.time_range in TIME_RANGES else 0
        preset = st.selectbox("Date Range", TIME_RANGES, index=preset_index)
        _set_filter(store, "time_range", preset)

        if preset == "Custom":
            start = st.date_input("From", value=filters.start_date or date.today())
            use_end = st.checkbox("Set end date", value=filters.end_date is not None)
            end = st.date_input("To", value=filters.end_date or start) if use_end else None
        else:
            start, end = resolve_time_range(preset, date.today())
        _set_filter(store, "start_date", start)
        _set_filter(store, "end_date", end)

        _select_filter(store, "Product", "product", unique_values(orders, "product"))
        _select_filter(store, "City", "city", [city for city, _ in cities_by_count(orders)])
        _select_filter(store, "Country", "country", unique_values(orders, "country"))
        _select_filter(store, "Agent", "agent", unique_values(orders, "agent"))
        _select_filter(store, "Source", "source", unique_values(orders, "source_traffic"))

        if st.button("Reset Filters", use_container_width=True, disabled=not store.filters.has_active_filters):
            store.reset()
            for k in list(st.session_state.keys()):
                if k.startswith("filter_"):
                    del st.session_state[k]
            st.rerun()

        st.markdown("---")
        if st.button("Refresh Data", type="primary", use_container_width=True):
            clear_loaded_data()
            st.rerun()

        last_refresh = st.session_state.get('last_data_refresh')
        if last_refresh:
            st.caption(f"📅 Last refresh: {last_refresh.strftime('%d/%m/%Y %H:%M')}")


# Pages

def render_dashboard(orders, status_config: Dict[str, List[str]], filters: OrderFilters) -> None:
    scoped = filter_orders(orders, filters)
    kpis = calculate_kpis(scoped, status_config)

    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Total Orders", f"{kpis['total_orders']:,}")
    col2.metric("Revenue", format_currency(kpis["total_revenue"]))
    col3.metric("Avg Order Value", format_currency(kpis["average_order_value"]))
    col4.metric("Delivered", f"{kpis['delivered_orders']:,}")
    col5.metric("Delivery Rate", format_percent(kpis["delivery_rate"]))

    col_status, col_country = st.columns(2)
    with col_status:
        st.markdown("#### Status Breakdown")
        if kpis["status_breakdown"]:
            df = pd.DataFrame(kpis["status_breakdown"]).set_index("name")
            st.bar_chart(df["value"])
    with col_country:
        st.markdown("#### Top Countries")
        if kpis["top_countries"]:
            df = pd.DataFrame(kpis["top_countries"])
            df["percentage"] = df["percentage"].map(format_percent)
            df.columns = ["Country", "Orders", "Share"]
            st.dataframe(df, use_container_width=True, hide_index=True)

    rows = aggregate(scoped, OrderFilters(), status_config, "product")
    if rows:
        st.markdown("#### Leads by Product")
        chart = pd.DataFrame(
            {"Leads": [r.total_leads for r in rows[:10]], "Delivered": [r.delivery for r in rows[:10]]},
            index=[r.name for r in rows[:10]],
        )
        st.bar_chart(chart)


def render_orders(orders, status_config: Dict[str, List[str]], store: FilterStore, statuses: List[str]) -> None:
    filters = store.filters
    col_status, col_sort, col_dir = st.columns([2, 2, 1])
    with col_status:
        choices = ["All"] + statuses
        current = filters.status if filters.status in statuses else ""
        status = st.selectbox("Status", choices, index=choices.index(current) if current else 0)
        _set_filter(store, "status", "" if status == "All" else status)
    with col_sort:
        labels = dict(ORDER_COLUMNS)
        sort_field = st.selectbox("Sort by", list(labels), format_func=labels.get)
    with col_dir:
        direction = st.radio("Direction", ["desc", "asc"], horizontal=True)

    matching = sort_orders(filter_orders(orders, store.filters, apply_status=True), sort_field, direction)
    stats = order_stats(matching, status_config)
    col1, col2, col3 = st.columns(3)
    col1.metric("Orders", f"{len(matching):,}")
    col2.metric("Delivered Revenue", format_currency(stats["total_amount"]))
    col3.metric("Total Quantity", f"{stats['total_quantity']:,}")

    total_pages = max(1, -(-len(matching) // ROWS_PER_PAGE))
    page_num = st.number_input("Page", min_value=1, max_value=total_pages, value=1, key="orders_page")
    page = paginate(matching, int(page_num), ROWS_PER_PAGE)

    df = pd.DataFrame(
        [{label: getattr(o, attr) for attr, label in ORDER_COLUMNS} for o in page.items],
        columns=[label for _, label in ORDER_COLUMNS],
    )
    if not df.empty:
        df["Order Date"] = df["Order Date"].map(lambda d: d.strftime("%d/%m/%Y") if d else "")
    st.dataframe(df, use_container_width=True, hide_index=True)
    st.caption(f"Page {page.page} of {page.total_pages} ({page.total_items} orders)")


def render_stats_table(
    orders,
    status_config: Dict[str, List[str]],
    filters: OrderFilters,
    view: str,
    group_key: str,
    ledger: Optional[CostLedger] = None,
    exporter=None,
) -> None:
    columns = VIEW_COLUMNS[view]
    labels = {attr: header for attr, header, _ in columns}

    col_sort, col_dir = st.columns([3, 1])
    with col_sort:
        sort_field = st.selectbox("Sort by", list(labels), index=1, format_func=labels.get, key=f"{view}_sort")
    with col_dir:
        direction = st.radio("Direction", ["desc", "asc"], horizontal=True, key=f"{view}_dir")

    rows = aggregate(orders, filters, status_config, group_key, ledger=ledger, sort_field=sort_field, sort_direction=direction)
    if view == "city":
        rows = [r for r in rows if r.total_leads > 0]
    if not rows:
        st.info("No orders match the current filters")
        return

    totals = compute_totals(rows)
    total_pages = max(1, -(-len(rows) // ROWS_PER_PAGE))
    page_num = st.number_input("Page", min_value=1, max_value=total_pages, value=1, key=f"{view}_page")
    page = paginate(rows, int(page_num), ROWS_PER_PAGE)

    st.dataframe(rows_to_dataframe([totals] + page.items, view), use_container_width=True, hide_index=True)
    st.caption(f"Page {page.page} of {page.total_pages} ({page.total_items} rows)")

    col_csv, col_sheet = st.columns(2)
    with col_csv:
        st.download_button(
            "Download CSV",
            data=export_csv(rows, totals, view),
            file_name=f"{view}_stats_{date.today().isoformat()}.csv",
            mime="text/csv",
            key=f"{view}_csv",
        )
    if exporter is not None:
        with col_sheet:
            if st.button("Export to Google Sheets", key=f"{view}_sheet"):
                try:
                    url = exporter(rows_to_dataframe([totals] + rows, view))
                    st.success(f"Exported: {url}")
                except Exception as e:
                    logger.warning("Sheet export failed: %s", e)
                    st.error(f"Export failed: {e}")


def render_cost_editor(orders, status_config: Dict[str, List[str]], filters: OrderFilters, ledger: CostLedger) -> None:
    day = ledger.effective_date(filters)
    if filters.is_range:
        st.markdown(f"""
        <div class="status-bar">
            Ad costs are summed from {filters.start_date.strftime('%d/%m/%Y')} to {filters.end_date.strftime('%d/%m/%Y')}.
            Edits are saved to {day.strftime('%d/%m/%Y')}; the range total columns show the summed spend.
        </div>
        """, unsafe_allow_html=True)
    else:
        st.markdown(f'<div class="status-bar">Ad costs for {day.strftime("%d/%m/%Y")}</div>', unsafe_allow_html=True)

    products = [r.name for r in aggregate(orders, filters, status_config, "product", sort_field="name", sort_direction="asc")]
    if not products:
        st.info("No products match the current filters")
        return

    # In range mode the editable cells hold the end date's value, the totals sit beside them
    total_labels = {p: f"{PLATFORM_LABELS[p]} (range total)" for p in PLATFORMS}
    data = []
    for product in products:
        row = {"Product": product, "Cost Price": format_cost(ledger.get_product_cost(product))}
        for platform in PLATFORMS:
            row[PLATFORM_LABELS[platform]] = format_cost(ledger.ad_cost_on(day, product, platform))
            if filters.is_range:
                row[total_labels[platform]] = format_cost(ledger.get_ad_cost(product, platform, filters))
        data.append(row)
    original = pd.DataFrame(data)

    edited = st.data_editor(
        original,
        disabled=["Product"] + (list(total_labels.values()) if filters.is_range else []),
        hide_index=True,
        use_container_width=True,
        key=f"cost_editor_{day.isoformat()}_{filters.is_range}",
    )

    def cell(i: int, column: str) -> str:
        value = edited.at[i, column]
        return "" if value is None or pd.isna(value) else str(value).strip()

    for i, product in enumerate(products):
        if cell(i, "Cost Price") != original.at[i, "Cost Price"]:
            ledger.set_product_cost(product, cell(i, "Cost Price"))
        for platform in PLATFORMS:
            label = PLATFORM_LABELS[platform]
            if cell(i, label) != original.at[i, label]:
                ledger.set_ad_cost(product, platform, cell(i, label), filters)

    with st.expander("Danger zone"):
        confirm = st.checkbox("I understand this cannot be undone")
        col_product, col_ad = st.columns(2)
        with col_product:
            if st.button("Delete all product costs", disabled=not confirm):
                try:
                    ledger.delete_all_product_costs()
                    st.success("All product costs deleted")
                except ApiError as e:
                    st.error(e.message)
        with col_ad:
            if st.button("Delete all ad costs", disabled=not confirm):
                try:
                    ledger.delete_all_ad_costs()
                    st.success("All ad costs deleted")
                except ApiError as e:
                    st.error(e.message)


def render_settings(status_store: StatusConfigStore, rates: ConversionRateStore, orders) -> None:
    st.markdown("### Status Categories")
    known = status_store.known_statuses(orders)
    cols = st.columns(len(CATEGORIES))
    for col, category in zip(cols, CATEGORIES):
        with col:
            current = status_store.statuses_for(category)
            selected = st.multiselect(CATEGORY_LABELS[category], known, default=[s for s in current if s in known], key=f"cat_{category}")
            for status in set(selected) - set(current):
                status_store.update(category, status, True)
            for status in set(current) - set(selected):
                status_store.update(category, status, False)

    col_add, col_save, col_reset = st.columns([3, 1, 1])
    with col_add:
        name = st.text_input("Add custom status")
        if st.button("Add Status") and name:
            if status_store.add_custom_status(name, orders):
                st.success(f"Added status {name.strip()}")
            else:
                st.info("That status already exists")
    with col_save:
        if st.button("Save", type="primary", disabled=not status_store.dirty):
            status_store.save()
            st.toast("Status configuration saved", icon="✅")
    with col_reset:
        if st.button("Reset to defaults"):
            status_store.reset()
            for category in CATEGORIES:
                st.session_state.pop(f"cat_{category}", None)
            st.rerun()

    st.markdown("---")
    st.markdown("### Conversion Rates")
    st.caption("Rates apply to data loaded after the change. Refresh data to re-price orders.")

    col_default, col_default_btn = st.columns([3, 1])
    with col_default:
        default_rate = st.text_input("Default rate", value=str(rates.default_rate))
    with col_default_btn:
        if st.button("Set default"):
            try:
                rates.set_default_rate(default_rate)
                st.success("Default rate updated")
            except ValueError as e:
                st.error(str(e))

    col_country, col_rate, col_btn = st.columns([2, 2, 1])
    with col_country:
        country = st.selectbox("Country", unique_values(orders, "country") or [""])
    with col_rate:
        rate = st.text_input("Rate", value=str(rates.rate_for(country)))
    with col_btn:
        if st.button("Set rate"):
            try:
                rates.set_rate(country, rate)
                st.success(f"Rate for {country} updated")
            except ValueError as e:
                st.error(str(e))

    if rates.country_rates:
        st.dataframe(
            pd.DataFrame([{"Country": c, "Rate": r} for c, r in sorted(rates.country_rates.items())]),
            use_container_width=True,
            hide_index=True,
        )
        remove = st.selectbox("Remove rate", [""] + sorted(rates.country_rates))
        if remove and st.button("Remove"):
            rates.remove_rate(remove)
            st.rerun()


def render_account(client: DashboardApiClient) -> None:
    user = st.session_state.get("user", {})
    st.markdown(f"Signed in as **{user.get('email', '')}**")

    with st.form("sheet_url_form"):
        sheet_url = st.text_input("Google Sheet URL", value=user.get("sheetUrl", ""))
        if st.form_submit_button("Update Sheet"):
            try:
                client.update_sheet_url(sheet_url)
                st.session_state["user"] = client.get_profile()
                clear_loaded_data()
                st.success("Sheet URL updated")
            except (ApiError, ValueError) as e:
                st.error(getattr(e, "message", str(e)))

    with st.form("password_form"):
        current = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password")
        if st.form_submit_button("Change Password"):
            try:
                client.change_password(current, new)
                st.success("Password changed")
            except (ApiError, ValueError) as e:
                st.error(getattr(e, "message", str(e)))


def render_admin(client: DashboardApiClient) -> None:
    try:
        users = client.fetch_all_users()
    except ApiError as e:
        st.error(e.message)
        return

    st.markdown(f"### Users ({len(users)})")
    if users:
        df = pd.DataFrame(users)
        st.dataframe(df[[c for c in ("name", "email", "role", "isActive", "sheetUrl") if c in df.columns]], use_container_width=True, hide_index=True)

        by_label = {f"{u.get('email', '')} ({u.get('_id', u.get('id', ''))})": u for u in users}
        label = st.selectbox("Select user", list(by_label))
        user = by_label[label]
        user_id = user.get("_id") or user.get("id")

        with st.form("edit_user"):
            name = st.text_input("Name", value=user.get("name", ""))
            email = st.text_input("Email", value=user.get("email", ""))
            role = st.selectbox("Role", ["user", "admin"], index=1 if user.get("role") == "admin" else 0)
            sheet_url = st.text_input("Sheet URL", value=user.get("sheetUrl", ""))
            is_active = st.checkbox("Active", value=user["isActive"])
            if st.form_submit_button("Save User"):
                try:
                    client.update_user(user_id, {
                        "name": name, "email": email, "role": role,
                        "sheetUrl": sheet_url, "isActive": is_active,
                    })
                    st.success("User updated")
                except ApiError as e:
                    st.error(e.message)

        col_view, col_delete = st.columns(2)
        with col_view:
            if st.button("View user"):
                try:
                    details = client.fetch_user(user_id)
                except ApiError as e:
                    st.error(e.message)
                else:
                    st.json(details)
                    if details.get("sheetUrl"):
                        try:
                            data = client.fetch_user_sheet_data(user_id)
                            rows = data.get("data", data) if isinstance(data, dict) else data
                            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
                        except ApiError as e:
                            logger.warning("Sheet data for user %s failed: %s", user_id, e.message)
                            st.caption("Sheet data unavailable")
                    else:
                        st.caption("No sheet URL configured for this user")
        with col_delete:
            confirm = st.checkbox("Confirm delete")
            if st.button("Delete user", disabled=not confirm):
                try:
                    result = client.delete_user(user_id)
                    st.success(result.get("message") or "User deleted")
                except ApiError as e:
                    st.error(e.message)

    st.markdown("### Create User")
    with st.form("create_user"):
        name = st.text_input("Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        role = st.selectbox("Role", ["user", "admin"])
        sheet_url = st.text_input("Sheet URL")
        if st.form_submit_button("Create"):
            try:
                client.admin_signup({
                    "name": name, "email": email, "password": password,
                    "role": role, "sheetUrl": sheet_url,
                })
                st.success(f"Created {email}")
            except (ApiError, ValueError) as e:
                st.error(getattr(e, "message", str(e)))


def render_login(client: DashboardApiClient) -> None:
    st.markdown("### Sign in")
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Sign in", type="primary"):
            try:
                st.session_state["user"] = client.login(email, password)
                st.rerun()
            except ApiError as e:
                st.error(e.message)


def main():
    try:
        settings = get_settings()
    except ValueError as e:
        st.error(f"Invalid configuration: {e}")
        return

    env_ok, missing = check_env_vars(settings)
    if not env_ok:
        st.error(f"Missing environment variables: {', '.join(missing)}")
        return

    services = get_services(settings)
    client = services["client"]
    show_persistence_errors(services["errors"])

    st.markdown("""
    <div class="main-header">
        <h1>Order Operations Dashboard</h1>
        <p>Leads, confirmations, deliveries and costs by product and city</p>
    </div>
    """, unsafe_allow_html=True)

    backend = settings.data_source == "backend"
    if backend and not client.token:
        render_login(client)
        return

    if backend and "orders_result" not in st.session_state and not check_connection(client):
        client.logout()
        st.warning("Your session has expired. Please sign in again.")
        render_login(client)
        return

    result = get_orders(settings, services)
    if result.error:
        st.error(f"Failed to load orders: {result.error}")
    orders = result.orders

    filter_store = services["filters"]
    status_store = services["status_config"]
    ledger = services["ledger"]
    if backend:
        load_costs(services)

    render_sidebar(filter_store, orders)
    if backend:
        with st.sidebar:
            if st.button("Sign out", use_container_width=True):
                ledger.scheduler.flush()
                ledger.scheduler.shutdown()
                client.logout()
                st.session_state.clear()
                st.rerun()

    filters = filter_store.filters
    status_config = status_store.config

    exporter = None
    if settings.service_account_file or settings.client_secrets_file:
        def exporter(df):
            creds = get_google_creds(settings.service_account_file, settings.client_secrets_file, settings.token_file)
            return GoogleSheetClient(creds=creds).export_rows(df)

    tab_names = ["Dashboard", "Orders", "Product Stats", "City Stats", "Product Analysis", "Settings"]
    is_admin = backend and st.session_state.get("user", {}).get("role") == "admin"
    if backend:
        tab_names.append("Account")
    if is_admin:
        tab_names.append("Admin")
    tabs = dict(zip(tab_names, st.tabs(tab_names)))

    with tabs["Dashboard"]:
        render_dashboard(orders, status_config, filters)

    with tabs["Orders"]:
        render_orders(orders, status_config, filter_store, status_store.known_statuses(orders))

    with tabs["Product Stats"]:
        render_stats_table(orders, status_config, filters, "product", "product", exporter=exporter)

    with tabs["City Stats"]:
        render_stats_table(orders, status_config, filters, "city", "city", exporter=exporter)

    with tabs["Product Analysis"]:
        if backend:
            render_stats_table(orders, status_config, filters, "costs", "product", ledger=ledger, exporter=exporter)
            st.markdown("#### Edit Costs")
            render_cost_editor(orders, status_config, filters, ledger)
        else:
            st.info("Cost tracking needs the dashboard backend (DATA_SOURCE=backend)")

    with tabs["Settings"]:
        render_settings(status_store, services["rates"], orders)

    if "Account" in tabs:
        with tabs["Account"]:
            render_account(client)

    if "Admin" in tabs:
        with tabs["Admin"]:
            render_admin(client)


if __name__ == "__main__":
    main()
