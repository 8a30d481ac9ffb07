"""
User-configurable mapping of raw order statuses to business categories.
"""

import logging
from typing import Dict, Iterable, List, Optional

from fields import Order, matches_status

logger = logging.getLogger(__name__)

CATEGORIES = ("confirmation", "delivery", "returned", "inProcess")

DEFAULT_STATUS_CONFIG: Dict[str, List[str]] = {
    "confirmation": ["Scheduled", "Awaiting Dispatch", "Delivered", "In Transit", "Returned"],
    "delivery": ["Delivered"],
    "returned": ["Returned"],
    "inProcess": ["Scheduled", "Awaiting Dispatch", "In Transit"],
}

CONFIG_KEY = "statusConfig"
CUSTOM_STATUSES_KEY = "customStatuses"


def classify_status(status: str, config: Dict[str, List[str]]) -> Dict[str, bool]:
    """Category membership of one raw status under the given mapping."""
    return {
        category: matches_status(status, config.get(category))
        for category in CATEGORIES
    }


def default_status_config() -> Dict[str, List[str]]:
    return {category: list(statuses) for category, statuses in DEFAULT_STATUS_CONFIG.items()}


class StatusConfigStore:
    """
    Holds the category -> status list mapping.

    Edits apply to the in-memory mapping immediately (so recomputed stats
    reflect them at once) but are only written to storage on save().
    Categories overlap freely: an order is tested against each one.
    """

    def __init__(self, storage):
        self.storage = storage
        self.config = default_status_config()
        self.custom_statuses: List[str] = []
        self.dirty = False
        self._load()

    def _load(self) -> None:
        saved = self.storage.get(CONFIG_KEY)
        if saved is not None:
            if isinstance(saved, dict):
                for category in CATEGORIES:
                    statuses = saved.get(category)
                    if isinstance(statuses, list):
                        self.config[category] = [str(s) for s in statuses]
            else:
                logger.warning("Ignoring malformed saved status config: %r", saved)

        custom = self.storage.get(CUSTOM_STATUSES_KEY)
        if isinstance(custom, list):
            self.custom_statuses = [str(s) for s in custom]

    def statuses_for(self, category: str) -> List[str]:
        self._check_category(category)
        return self.config[category]

    def classify(self, order: Order) -> Dict[str, bool]:
        """Test the order's raw status against every category."""
        return classify_status(order.status, self.config)

    def update(self, category: str, status: str, included: bool) -> None:
        """Add or remove a status in exactly one category."""
        self._check_category(category)
        statuses = self.config[category]
        if included and status not in statuses:
            statuses.append(status)
        elif not included:
            self.config[category] = [s for s in statuses if s != status]
        self.dirty = True

    def reset(self) -> None:
        """Restore the built-in categories. Custom status names are kept."""
        self.config = default_status_config()
        self.dirty = True

    def known_statuses(self, orders: Optional[Iterable[Order]] = None) -> List[str]:
        """Sorted set of statuses seen in orders, configured, or registered as custom."""
        known = set(self.custom_statuses)
        for statuses in self.config.values():
            known.update(statuses)
        for order in orders or []:
            if order.status:
                known.add(order.status)
        return sorted(known)

    def add_custom_status(self, name: str, orders: Optional[Iterable[Order]] = None) -> bool:
        """
        Register a status name so it can be assigned to categories.

        Returns False (and changes nothing) when the trimmed name is empty or
        already known. Registration does not assign any category.
        """
        name = (name or "").strip()
        if not name:
            return False
        if name in self.known_statuses(orders):
            logger.info("Status %r already exists", name)
            return False
        self.custom_statuses.append(name)
        self.dirty = True
        return True

    def save(self) -> None:
        self.storage.set(CONFIG_KEY, self.config)
        self.storage.set(CUSTOM_STATUSES_KEY, self.custom_statuses)
        self.dirty = False

    @staticmethod
    def _check_category(category: str) -> None:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown status category: {category}")
