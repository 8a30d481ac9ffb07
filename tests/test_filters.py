from datetime import date, datetime

import pytest

from filters import DEFAULT_FILTERS, FILTERS_KEY, FilterStore, OrderFilters
from storage import MemoryStorage


def test_defaults(storage):
    store = FilterStore(storage)
    assert store.filters == DEFAULT_FILTERS
    assert not store.filters.has_active_filters
    assert not store.filters.is_range


def test_update_persists_immediately(storage):
    store = FilterStore(storage)
    store.update("product", "Widget")
    assert storage.get(FILTERS_KEY)["product"] == "Widget"
    assert FilterStore(storage).filters.product == "Widget"


def test_dates_round_trip_through_storage(storage):
    store = FilterStore(storage)
    store.update("start_date", "2024-01-01")
    store.update("end_date", datetime(2024, 1, 31, 15, 0))
    assert storage.get(FILTERS_KEY)["start_date"] == "2024-01-01"

    reloaded = FilterStore(storage).filters
    assert reloaded.start_date == date(2024, 1, 1)
    assert reloaded.end_date == date(2024, 1, 31)
    assert reloaded.is_range


def test_range_needs_both_dates():
    assert not OrderFilters(start_date=date(2024, 1, 1)).is_range
    assert OrderFilters(start_date=date(2024, 1, 1), end_date=date(2024, 1, 1)).is_range


def test_clearing_a_value(storage):
    store = FilterStore(storage)
    store.update("city", "Rabat")
    store.update("city", None)
    assert store.filters.city == ""
    store.update("start_date", "")
    assert store.filters.start_date is None


def test_unknown_key_rejected(storage):
    store = FilterStore(storage)
    with pytest.raises(ValueError):
        store.update("colour", "red")
    assert storage.get(FILTERS_KEY) is None


def test_reset_persists_defaults(storage):
    store = FilterStore(storage)
    store.update("agent", "Sara")
    store.reset()
    assert store.filters == DEFAULT_FILTERS
    assert storage.get(FILTERS_KEY) == DEFAULT_FILTERS.to_dict()


def test_malformed_saved_filters_ignored():
    store = FilterStore(MemoryStorage({FILTERS_KEY: {"start_date": "not a date", "product": "X"}}))
    assert store.filters == DEFAULT_FILTERS


def test_unknown_saved_keys_dropped():
    store = FilterStore(MemoryStorage({FILTERS_KEY: {"legacy": 1, "country": "Spain"}}))
    assert store.filters.country == "Spain"
