"""
Initial order load: fetch raw rows with retry, clean, normalize, convert currency.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from conversion import ConversionRateStore
from fields import Order, normalize_order
from sheet_client import clean_sheet_rows

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY_SECONDS = 1.0


@dataclass
class LoadResult:
    orders: List[Order] = field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def prepare_orders(rows: List[Dict[str, Any]], rates: Optional[ConversionRateStore] = None) -> List[Order]:
    """Normalize raw rows and convert each amount to the target currency exactly once."""
    rates = rates or ConversionRateStore()
    orders = []
    for row in clean_sheet_rows([r for r in rows if isinstance(r, dict)]):
        order = normalize_order(row)
        order.amount = rates.convert(order.amount, order.country)
        orders.append(order)
    return orders


def load_orders(
    fetch: Callable[[], List[Dict[str, Any]]],
    rates: Optional[ConversionRateStore] = None,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> LoadResult:
    """
    Fetch and prepare orders.

    One initial attempt plus up to `max_retries` retries, waiting base_delay,
    2*base_delay, 4*base_delay... between them. Never raises: once retries are
    exhausted the result carries no orders and the last error message.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            rows = fetch()
            break
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            if attempt > max_retries:
                logger.error("Order fetch failed after %d attempts: %s", attempt, message)
                return LoadResult(orders=[], error=message, attempts=attempt)
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("Order fetch failed (attempt %d), retrying in %.0fs: %s", attempt, delay, message)
            sleep(delay)

    orders = prepare_orders(rows or [], rates)
    logger.info("Loaded %d orders", len(orders))
    return LoadResult(orders=orders, attempts=attempt)
