"""
Per-country currency conversion applied when sheet data is loaded.
"""

import math
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONVERSION_RATE = 1.0
RATES_KEY = "conversionRates"


def parse_rate(value) -> float:
    """Validate a user-entered rate. Raises ValueError for non-numeric or non-positive input."""
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise ValueError("Please enter a valid conversion rate")
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError("Please enter a valid conversion rate")
    return rate


class ConversionRateStore:
    """
    Multiplicative conversion rates keyed by country.

    Countries without an explicit rate use the default rate. Rates only affect
    data loaded after the change; already-loaded amounts are not re-priced.
    """

    def __init__(self, storage=None):
        self.storage = storage
        self.default_rate = DEFAULT_CONVERSION_RATE
        self.country_rates: Dict[str, float] = {}
        self._load()

    def _load(self) -> None:
        if self.storage is None:
            return
        saved = self.storage.get(RATES_KEY)
        if not isinstance(saved, dict):
            return
        try:
            self.default_rate = parse_rate(saved.get("default", DEFAULT_CONVERSION_RATE))
            self.country_rates = {
                str(country): parse_rate(rate)
                for country, rate in (saved.get("countries") or {}).items()
            }
        except (ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed saved conversion rates: %s", e)
            self.default_rate = DEFAULT_CONVERSION_RATE
            self.country_rates = {}

    def _persist(self) -> None:
        if self.storage is not None:
            self.storage.set(RATES_KEY, {
                "default": self.default_rate,
                "countries": dict(self.country_rates),
            })

    def rate_for(self, country: Optional[str]) -> float:
        if country and country in self.country_rates:
            return self.country_rates[country]
        return self.default_rate

    def convert(self, amount: float, country: Optional[str]) -> float:
        return round(amount * self.rate_for(country), 2)

    def set_rate(self, country: str, rate) -> None:
        country = (country or "").strip()
        if not country:
            raise ValueError("Country is required")
        self.country_rates[country] = parse_rate(rate)
        self._persist()

    def remove_rate(self, country: str) -> None:
        if self.country_rates.pop(country, None) is not None:
            self._persist()

    def set_default_rate(self, rate) -> None:
        self.default_rate = parse_rate(rate)
        self._persist()
