"""
Field resolution for raw sheet rows.

Sheet rows arrive as open-ended dicts whose column names vary between sheets.
Each logical field is resolved through an ordered list of known aliases.
"""

import math
import re
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime
from dataclasses import dataclass, field
from dateutil import parser as date_parser


AMOUNT_FIELDS = ["Cod Amount", "Order Value", "Price", "Total", "Amount", "Value", "Revenue"]
QUANTITY_FIELDS = ["Quantity", "Qty", "Count", "Units"]
PRODUCT_FIELDS = ["Product Name", "sku number", "product"]
STATUS_FIELDS = ["STATUS", "Status"]
ORDER_DATE_FIELDS = ["Order date", "Order Date", "Date"]
ORDER_ID_FIELDS = ["Order ID", "Order Id"]
CITY_FIELDS = ["City"]
COUNTRY_FIELDS = ["Country", "Receiver Country", "Receier Country", "Receier Country*"]
AGENT_FIELDS = ["Agent"]
SOURCE_FIELDS = ["Source Traffic"]

DEFAULT_AMOUNT = 0.0
DEFAULT_QUANTITY = 1

_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass
class Order:
    """A sheet row with its logical fields resolved."""
    order_id: str
    order_date: Optional[datetime]
    status: str
    amount: float
    quantity: int
    product: str
    city: str = ""
    country: str = ""
    agent: str = ""
    source_traffic: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


def matches_status(raw_status: Optional[str], allowed: Optional[Sequence[str]]) -> bool:
    """Exact, case-sensitive membership test. Empty statuses never match."""
    if not raw_status or not allowed:
        return False
    return raw_status in allowed


def _is_missing(value: Any) -> bool:
    if value is None or value == "":
        return True
    # pandas fills empty cells with NaN
    return isinstance(value, float) and math.isnan(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_amount(order: Dict[str, Any]) -> float:
    """
    Resolve the order amount from the first usable alias.

    Strings are cleaned of everything except digits and the decimal point
    ("1,250.00 MAD" -> 1250.0). An alias whose value cannot be parsed is
    skipped. Returns 0 when nothing usable is found.
    """
    for name in AMOUNT_FIELDS:
        value = order.get(name)
        if _is_missing(value):
            continue
        if _is_number(value):
            return value
        if isinstance(value, str):
            cleaned = re.sub(r"[^0-9.]", "", value)
            match = _LEADING_NUMBER.match(cleaned)
            if match:
                return float(match.group(0))

    return DEFAULT_AMOUNT


def extract_quantity(order: Dict[str, Any]) -> int:
    """
    Resolve the order quantity from the first usable alias.

    Strings keep digits only. Returns 1 when nothing usable is found: an order
    always represents at least one unit.
    """
    for name in QUANTITY_FIELDS:
        value = order.get(name)
        if _is_missing(value):
            continue
        if _is_number(value):
            return value
        if isinstance(value, str):
            cleaned = re.sub(r"[^0-9]", "", value)
            if cleaned:
                return int(cleaned)

    return DEFAULT_QUANTITY


def extract_text(order: Dict[str, Any], aliases: List[str]) -> str:
    """Return the first non-empty alias value as a trimmed string."""
    for name in aliases:
        value = order.get(name)
        if _is_missing(value):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def extract_product(order: Dict[str, Any]) -> str:
    return extract_text(order, PRODUCT_FIELDS)


def parse_order_date(value: Any) -> Optional[datetime]:
    """Parse a sheet date cell. Returns None when it cannot be parsed."""
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, TypeError, OverflowError):
            return None
    # compare everything as naive local dates
    return parsed.replace(tzinfo=None)


def normalize_order(row: Dict[str, Any]) -> Order:
    """Build an Order from a raw sheet row. Never raises on bad data."""
    order_date = None
    for name in ORDER_DATE_FIELDS:
        if not _is_missing(row.get(name)):
            order_date = parse_order_date(row.get(name))
            break

    return Order(
        order_id=extract_text(row, ORDER_ID_FIELDS),
        order_date=order_date,
        status=extract_text(row, STATUS_FIELDS),
        amount=extract_amount(row),
        quantity=extract_quantity(row),
        product=extract_product(row),
        city=extract_text(row, CITY_FIELDS),
        country=extract_text(row, COUNTRY_FIELDS),
        agent=extract_text(row, AGENT_FIELDS),
        source_traffic=extract_text(row, SOURCE_FIELDS),
        raw=row,
    )
