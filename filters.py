"""
Shared filter selection used by every stats page.
"""

import logging
from typing import Any, Dict, Optional
from datetime import date, datetime
from dataclasses import dataclass, asdict, fields, replace

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

FILTERS_KEY = "filters"


@dataclass(frozen=True)
class OrderFilters:
    """Active filter selection. Empty strings and None mean "not filtered"."""
    time_range: str = "all"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = ""
    product: str = ""
    city: str = ""
    country: str = ""
    agent: str = ""
    source: str = ""

    @property
    def is_range(self) -> bool:
        """True when both ends of the date range are set."""
        return self.start_date is not None and self.end_date is not None

    @property
    def has_active_filters(self) -> bool:
        return any([
            self.start_date, self.end_date, self.status, self.product,
            self.city, self.country, self.agent, self.source,
        ])

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("start_date", "end_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


DEFAULT_FILTERS = OrderFilters()
FILTER_KEYS = tuple(f.name for f in fields(OrderFilters))


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(str(value)).date()


def _coerce(key: str, value: Any) -> Any:
    if key in ("start_date", "end_date"):
        return _to_date(value)
    return "" if value is None else str(value)


class FilterStore:
    """
    Holds the current OrderFilters and writes them to storage on every update.

    There is no separate save step: each update is persisted immediately.
    """

    def __init__(self, storage):
        self.storage = storage
        self.filters = self._load()

    def _load(self) -> OrderFilters:
        saved = self.storage.get(FILTERS_KEY)
        if not isinstance(saved, dict):
            return DEFAULT_FILTERS
        try:
            values = {k: _coerce(k, v) for k, v in saved.items() if k in FILTER_KEYS}
            return replace(DEFAULT_FILTERS, **values)
        except (ValueError, OverflowError) as e:
            logger.warning("Ignoring malformed saved filters: %s", e)
            return DEFAULT_FILTERS

    def update(self, key: str, value: Any) -> OrderFilters:
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter: {key}")
        self.filters = replace(self.filters, **{key: _coerce(key, value)})
        self.storage.set(FILTERS_KEY, self.filters.to_dict())
        return self.filters

    def reset(self) -> OrderFilters:
        self.filters = DEFAULT_FILTERS
        self.storage.set(FILTERS_KEY, self.filters.to_dict())
        return self.filters
