"""
Metrics calculation module for order statistics.

Turns normalized orders plus the status configuration into per-product or
per-city rows, joins product rows against the cost ledger, and derives the
totals row, KPIs and exports shown on the dashboard pages.
"""

import math
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timedelta
from dataclasses import dataclass, fields as dataclass_fields
from collections import Counter
import pandas as pd

from fields import Order
from filters import OrderFilters
from status_config import classify_status

GROUP_KEYS = {
    "product": "product",
    "city": "city",
}

TEXT_SORT_FIELDS = {"name"}

# Columns whose totals are the plain column sum; the rest are ratios
# recomputed from those sums.
ADDITIVE_FIELDS = (
    "total_leads", "confirmation", "delivery", "returned", "in_process",
    "total_quantity", "total_amount", "ad_cost", "total_cost", "profit",
)


@dataclass
class StatsRow:
    """Aggregated metrics for one product or city."""
    name: str
    total_leads: int = 0
    confirmation: int = 0
    delivery: int = 0
    returned: int = 0
    in_process: int = 0
    confirmation_percent: float = 0.0
    delivery_percent: float = 0.0
    returned_percent: float = 0.0
    in_process_percent: float = 0.0
    total_quantity: int = 0
    avg_quantity_per_order: float = 0.0
    total_amount: float = 0.0  # delivered orders only
    selling_price: float = 0.0  # mean delivered amount

    # Cost join (product view only)
    ad_cost: float = 0.0
    cost_price: float = 0.0
    avg_cost: float = 0.0
    total_cost: float = 0.0
    profit: float = 0.0

    @property
    def total_orders(self) -> int:
        return self.total_leads


@dataclass
class Page:
    items: List[Any]
    page: int
    total_pages: int
    total_items: int


def safe_percent(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100 rounded to 2 places, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


def _safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def apply_rates(row: StatsRow) -> StatsRow:
    """
    Derive the percentage columns.

    Delivery and return rates are measured against confirmed orders, the
    confirmation and in-process rates against all leads.
    """
    row.confirmation_percent = safe_percent(row.confirmation, row.total_leads)
    row.delivery_percent = safe_percent(row.delivery, row.confirmation)
    row.returned_percent = safe_percent(row.returned, row.confirmation)
    row.in_process_percent = safe_percent(row.in_process, row.total_leads)
    row.avg_quantity_per_order = round(_safe_div(row.total_quantity, row.total_leads), 2)
    return row


def matches_filters(order: Order, filters: OrderFilters, apply_status: bool = False) -> bool:
    """
    Scope filter with AND semantics.

    The date range includes the start day and everything before the day
    after the end date. Orders without a parsable date are never excluded by
    the date range. The status filter only applies when apply_status is set
    (the orders table); aggregation always sees every status.
    """
    if filters.product and order.product != filters.product:
        return False
    if filters.city and order.city != filters.city:
        return False
    if filters.country and order.country != filters.country:
        return False
    if filters.agent and order.agent != filters.agent:
        return False
    if filters.source and order.source_traffic != filters.source:
        return False
    if apply_status and filters.status and order.status != filters.status:
        return False

    if order.order_date is not None:
        if filters.start_date and order.order_date < datetime.combine(filters.start_date, datetime.min.time()):
            return False
        if filters.end_date:
            day_after_end = datetime.combine(filters.end_date + timedelta(days=1), datetime.min.time())
            if order.order_date >= day_after_end:
                return False

    return True


def filter_orders(orders: List[Order], filters: OrderFilters, apply_status: bool = False) -> List[Order]:
    return [o for o in orders if matches_filters(o, filters, apply_status)]


def join_costs(row: StatsRow, ledger, filters: OrderFilters) -> StatsRow:
    """
    Attach ledger costs to a product row.

    avg_cost spreads the ad spend over the product's orders; total_cost adds
    that back per order plus the cost price per unit sold.
    """
    row.ad_cost = ledger.total_ad_cost(row.name, filters)
    row.cost_price = ledger.product_cost_value(row.name)
    row.avg_cost = _safe_div(row.ad_cost, row.total_orders)
    row.total_cost = row.avg_cost * row.total_orders + row.cost_price * row.total_quantity
    row.profit = row.total_amount - row.total_cost
    return row


def aggregate(
    orders: List[Order],
    filters: OrderFilters,
    status_config: Dict[str, List[str]],
    group_key: str = "product",
    ledger=None,
    sort_field: Optional[str] = "total_leads",
    sort_direction: str = "desc",
) -> List[StatsRow]:
    """
    Group filtered orders and compute per-group statistics.

    Counts and quantities cover every matching order; amounts and selling
    price cover only orders in the delivery category.

    Args:
        orders: Normalized orders (amounts already converted)
        filters: Active filter selection
        status_config: Category -> list of raw statuses
        group_key: "product" or "city"
        ledger: CostLedger to join against (product view only)
        sort_field: StatsRow attribute to sort by, or None to keep group order
        sort_direction: "asc" or "desc"

    Returns:
        List of StatsRow, one per non-empty group key
    """
    if group_key not in GROUP_KEYS:
        raise ValueError(f"Unknown group key: {group_key}")
    attr = GROUP_KEYS[group_key]

    groups: Dict[str, StatsRow] = {}
    delivered_amounts: Dict[str, List[float]] = {}

    for order in filter_orders(orders, filters):
        key = getattr(order, attr)
        if not key:
            continue

        row = groups.get(key)
        if row is None:
            row = groups[key] = StatsRow(name=key)
            delivered_amounts[key] = []

        row.total_leads += 1
        row.total_quantity += order.quantity

        membership = classify_status(order.status, status_config)
        if membership["confirmation"]:
            row.confirmation += 1
        if membership["delivery"]:
            row.delivery += 1
            delivered_amounts[key].append(order.amount)
        if membership["returned"]:
            row.returned += 1
        if membership["inProcess"]:
            row.in_process += 1

    rows = []
    for key, row in groups.items():
        amounts = delivered_amounts[key]
        row.total_amount = math.fsum(amounts)
        row.selling_price = _safe_div(row.total_amount, len(amounts))
        apply_rates(row)
        if ledger is not None and group_key == "product":
            join_costs(row, ledger, filters)
        rows.append(row)

    if sort_field:
        rows = sort_rows(rows, sort_field, sort_direction)
    return rows


def sort_rows(rows: List[StatsRow], sort_field: str, direction: str = "desc") -> List[StatsRow]:
    """Sort rows by a field. Text compares case-insensitively, numbers numerically."""
    valid = {f.name for f in dataclass_fields(StatsRow)}
    if sort_field not in valid:
        raise ValueError(f"Unknown sort field: {sort_field}")

    if sort_field in TEXT_SORT_FIELDS:
        key = lambda r: str(getattr(r, sort_field)).casefold()
    else:
        key = lambda r: getattr(r, sort_field)
    return sorted(rows, key=key, reverse=(direction == "desc"))


def compute_totals(rows: List[StatsRow]) -> StatsRow:
    """
    Build the TOTAL row from the per-group rows.

    Additive columns are column sums of the rows, not a fresh pass over the
    orders; ratio columns are recomputed from those sums.
    """
    totals = StatsRow(name="TOTAL")
    for name in ADDITIVE_FIELDS:
        values = [getattr(r, name) for r in rows]
        if name in ("total_amount", "ad_cost", "total_cost", "profit"):
            setattr(totals, name, math.fsum(values))
        else:
            setattr(totals, name, sum(values))

    apply_rates(totals)
    totals.selling_price = _safe_div(totals.total_amount, totals.delivery)
    totals.avg_cost = _safe_div(totals.ad_cost, totals.total_orders)
    return totals


def paginate(items: List[Any], page: int, per_page: int = 20) -> Page:
    """Slice one page out of items, clamping the page number into range."""
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = max(1, min(page, total_pages))
    start = (page - 1) * per_page
    return Page(
        items=items[start:start + per_page],
        page=page,
        total_pages=total_pages,
        total_items=len(items),
    )


# Orders table

ORDER_SORT_FIELDS = {
    "order_date", "order_id", "product", "amount", "quantity",
    "city", "country", "source_traffic", "status", "agent",
}


def sort_orders(orders: List[Order], sort_field: str = "order_date", direction: str = "desc") -> List[Order]:
    """
    Sort orders for the table view.

    Empty values sort first when ascending and last when descending.
    """
    if sort_field not in ORDER_SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {sort_field}")

    def key(order: Order) -> Tuple[int, Any]:
        value = getattr(order, sort_field)
        if value is None or value == "":
            return (0, "")
        if isinstance(value, str):
            return (1, value.casefold())
        return (1, value)

    return sorted(orders, key=key, reverse=(direction == "desc"))


def order_stats(orders: List[Order], status_config: Dict[str, List[str]]) -> Dict[str, Any]:
    """Delivered revenue, total quantity and per-status counts for a set of orders."""
    total_amount = math.fsum(
        o.amount for o in orders if classify_status(o.status, status_config)["delivery"]
    )
    return {
        "total_amount": total_amount,
        "total_quantity": sum(o.quantity for o in orders),
        "status_counts": dict(Counter(o.status or "Unknown" for o in orders)),
    }


def unique_values(orders: List[Order], attr: str) -> List[str]:
    """Sorted distinct non-empty values of an order attribute, for filter menus."""
    return sorted({getattr(o, attr) for o in orders if getattr(o, attr)})


def cities_by_count(orders: List[Order]) -> List[Tuple[str, int]]:
    counts = Counter(o.city for o in orders if o.city)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def calculate_kpis(orders: List[Order], status_config: Dict[str, List[str]]) -> Dict[str, Any]:
    """
    Calculate summary KPIs for the overview page.
    """
    if not orders:
        return {
            "total_orders": 0,
            "total_revenue": 0.0,
            "average_order_value": 0.0,
            "delivered_orders": 0,
            "delivery_rate": 0.0,
            "status_breakdown": [],
            "top_countries": [],
        }

    total_orders = len(orders)
    delivered = [o for o in orders if classify_status(o.status, status_config)["delivery"]]
    total_revenue = math.fsum(o.amount for o in delivered)

    status_counts = Counter(o.status or "Unknown" for o in orders)
    country_counts = Counter(o.country or "Unknown" for o in orders)

    return {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "average_order_value": total_revenue / total_orders,
        "delivered_orders": len(delivered),
        "delivery_rate": len(delivered) / total_orders * 100,
        "status_breakdown": [
            {"name": name, "value": count, "percentage": count / total_orders * 100}
            for name, count in status_counts.items()
        ],
        "top_countries": [
            {"name": name, "value": count, "percentage": count / total_orders * 100}
            for name, count in country_counts.most_common(5)
        ],
    }


# Tables and export

VIEW_COLUMNS = {
    "product": [
        ("name", "Product", "text"),
        ("total_leads", "Total Leads", "int"),
        ("confirmation", "Confirmed", "int"),
        ("delivery", "Delivery", "int"),
        ("confirmation_percent", "Confirmation %", "percent"),
        ("delivery_percent", "Delivery %", "percent"),
        ("returned", "Returned", "int"),
        ("returned_percent", "Returned %", "percent"),
        ("in_process", "In Process", "int"),
        ("in_process_percent", "In Process %", "percent"),
        ("avg_quantity_per_order", "Avg Qty/Order", "number"),
        ("selling_price", "AOV", "money"),
    ],
    "city": [
        ("name", "City", "text"),
        ("total_leads", "Total Leads", "int"),
        ("confirmation", "Confirmation", "int"),
        ("confirmation_percent", "Confirmation %", "percent"),
        ("delivery", "Delivery", "int"),
        ("delivery_percent", "Delivery %", "percent"),
        ("returned", "Returned", "int"),
        ("returned_percent", "Returned %", "percent"),
        ("in_process", "In Process", "int"),
        ("in_process_percent", "In Process %", "percent"),
    ],
    "costs": [
        ("name", "Product Name", "text"),
        ("total_leads", "Total Orders", "int"),
        ("total_quantity", "Total Quantity", "int"),
        ("selling_price", "Selling Price", "money"),
        ("total_amount", "Total Amount", "money"),
        ("ad_cost", "AD Cost", "money"),
        ("avg_cost", "Avg AD Cost/Order", "money"),
        ("cost_price", "Cost Price", "money"),
        ("total_cost", "Total Cost", "money"),
        ("profit", "Profit", "money"),
    ],
}


def rows_to_dataframe(rows: List[StatsRow], view: str = "product") -> pd.DataFrame:
    """
    Create a pandas DataFrame of raw values with display headers.
    """
    columns = VIEW_COLUMNS[view]
    data = [{header: getattr(r, attr) for attr, header, _ in columns} for r in rows]
    return pd.DataFrame(data, columns=[header for _, header, _ in columns])


def _format_cell(value: Any, kind: str) -> str:
    if kind == "money":
        return f"{value:.2f}"
    if kind == "percent":
        return f"{value:.2f}%"
    if kind == "number":
        return f"{value:.2f}"
    return str(value)


def export_csv(rows: List[StatsRow], totals: Optional[StatsRow] = None, view: str = "product") -> str:
    """
    CSV text with the header, the TOTAL row, then one row per group.

    Money columns are fixed to 2 decimals; percentages carry a % suffix.
    """
    columns = VIEW_COLUMNS[view]
    if totals is None:
        totals = compute_totals(rows)

    records = []
    for r in [totals] + list(rows):
        records.append({
            header: _format_cell(getattr(r, attr), kind)
            for attr, header, kind in columns
        })
    df = pd.DataFrame(records, columns=[header for _, header, _ in columns])
    return df.to_csv(index=False, lineterminator="\n")
