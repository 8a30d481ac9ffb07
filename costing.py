"""
Costing module: manually entered product and advertising costs.

Two independent maps are kept in memory and written back to the backend
through a per-key debounce:

    product_costs[product] -> cost price (date independent)
    ad_costs_by_date["YYYY-MM-DD"][product][platform] -> ad spend
"""

import re
import logging
from typing import Any, Callable, Dict, Iterator, Optional
from datetime import date, timedelta

from debounce import DebouncedScheduler, DEFAULT_DELAY_SECONDS
from filters import OrderFilters

logger = logging.getLogger(__name__)

PLATFORMS = ("fb", "tt", "google", "x", "snap")

PLATFORM_LABELS = {
    "fb": "Facebook",
    "tt": "TikTok",
    "google": "Google",
    "x": "X",
    "snap": "Snapchat",
}

_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def to_number(value: Any) -> float:
    """Numeric value of a stored cost. Blank or unparseable values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value).strip())
    return float(match.group(0)) if match else 0.0


def format_cost(value: Any) -> str:
    """Display text for a cost. Text is shown as entered; numbers drop a trailing .0 (15.0 -> "15")."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return f"{float(value):.2f}".rstrip("0").rstrip(".")


def date_key(day: date) -> str:
    return day.isoformat()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end, inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


class CostLedger:
    """
    In-memory cost ledger with optimistic writes.

    Every setter updates the in-memory map first, so a read straight after a
    write returns the new value, then schedules the backend call under its own
    debounce key. A failed backend call is reported through `on_error` and the
    in-memory value is kept.

    Args:
        backend: Object with get_costs, update_product_cost, update_ad_cost,
            delete_all_product_costs and delete_all_ad_costs
        scheduler: Debounce scheduler; one is created when omitted
        today: Returns the current date, used when no start date is selected
        on_error: Called with a user-facing message when persistence fails
    """

    def __init__(
        self,
        backend,
        scheduler: Optional[DebouncedScheduler] = None,
        today: Callable[[], date] = date.today,
        on_error: Optional[Callable[[str], None]] = None,
        delay: float = DEFAULT_DELAY_SECONDS,
    ):
        self.backend = backend
        self.today = today
        self.on_error = on_error
        self.scheduler = scheduler or DebouncedScheduler(delay=delay)
        if self.scheduler.on_error is None:
            self.scheduler.on_error = self._persist_failed

        self.product_costs: Dict[str, Any] = {}
        self.ad_costs_by_date: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def load(self) -> None:
        """Replace the in-memory maps with the backend's copy."""
        data = self.backend.get_costs() or {}
        product_costs = data.get("productCosts") or {}
        ad_costs = data.get("adCostsByDate") or {}
        self.product_costs = dict(product_costs)
        self.ad_costs_by_date = {
            day: {product: dict(platforms) for product, platforms in products.items()}
            for day, products in ad_costs.items()
        }
        logger.debug(
            "Loaded %d product costs and %d ad-cost days",
            len(self.product_costs), len(self.ad_costs_by_date),
        )

    def _persist_failed(self, key: str, error: Exception) -> None:
        message = f"Failed to save {key.replace('_', ' ', 1)}: {error}"
        if self.on_error:
            self.on_error(message)

    # Product costs

    def get_product_cost(self, product: str) -> Any:
        return self.product_costs.get(product, "")

    def product_cost_value(self, product: str) -> float:
        return to_number(self.get_product_cost(product))

    def set_product_cost(self, product: str, value: Any) -> None:
        self.product_costs[product] = value
        self.scheduler.schedule(
            f"product_{product}", self.backend.update_product_cost, product, value,
        )

    # Advertising costs

    def effective_date(self, filters: Optional[OrderFilters]) -> date:
        """Date a single-day read or write lands on."""
        if filters is not None and filters.is_range:
            return filters.end_date
        if filters is not None and filters.start_date is not None:
            return filters.start_date
        return self.today()

    def ad_cost_on(self, day: date, product: str, platform: str) -> Any:
        return self.ad_costs_by_date.get(date_key(day), {}).get(product, {}).get(platform, "")

    def get_ad_cost(self, product: str, platform: str, filters: Optional[OrderFilters] = None) -> Any:
        """
        Ad spend for a product on a platform.

        With a date range, the sum of every day in the range (missing days
        count as 0). Otherwise the stored value for the single effective date,
        or "" when nothing was entered for that day.
        """
        _check_platform(platform)
        if filters is not None and filters.is_range:
            return sum(
                to_number(self.ad_cost_on(day, product, platform))
                for day in iter_days(filters.start_date, filters.end_date)
            )
        return self.ad_cost_on(self.effective_date(filters), product, platform)

    def set_ad_cost(self, product: str, platform: str, value: Any, filters: Optional[OrderFilters] = None) -> None:
        """Write a single day's value. With a range the write lands on the end date."""
        _check_platform(platform)
        day = date_key(self.effective_date(filters))
        self.ad_costs_by_date.setdefault(day, {}).setdefault(product, {})[platform] = value
        self.scheduler.schedule(
            f"ad_{day}_{product}_{platform}",
            self.backend.update_ad_cost, day, product, platform, value,
        )

    def total_ad_cost(self, product: str, filters: Optional[OrderFilters] = None) -> float:
        """Ad spend across all platforms for the active filter."""
        return sum(to_number(self.get_ad_cost(product, p, filters)) for p in PLATFORMS)

    # Bulk deletes

    def _delete_all(self, prefix: str, remote_delete: Callable[[], Any]) -> None:
        taken = self.scheduler.take_prefix(prefix)
        try:
            remote_delete()
        except Exception:
            for key, job, args in taken:
                self.scheduler.schedule(key, job, *args)
            raise

    def delete_all_product_costs(self) -> None:
        """Clear every product cost remotely, then locally. Nothing changes on failure."""
        self._delete_all("product_", self.backend.delete_all_product_costs)
        self.product_costs = {}

    def delete_all_ad_costs(self) -> None:
        """Clear every ad cost remotely, then locally. Nothing changes on failure."""
        self._delete_all("ad_", self.backend.delete_all_ad_costs)
        self.ad_costs_by_date = {}


def _check_platform(platform: str) -> None:
    if platform not in PLATFORMS:
        raise ValueError(f"Unknown ad platform: {platform}")
