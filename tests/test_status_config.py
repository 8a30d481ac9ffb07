import pytest

from conftest import make_order
from status_config import (
    CONFIG_KEY,
    CUSTOM_STATUSES_KEY,
    DEFAULT_STATUS_CONFIG,
    StatusConfigStore,
    classify_status,
)
from storage import MemoryStorage


def test_classify_categories_overlap(status_config):
    result = classify_status("Delivered", status_config)
    assert result == {"confirmation": True, "delivery": True, "returned": False, "inProcess": False}


def test_classify_unknown_status(status_config):
    assert not any(classify_status("Cancelled", status_config).values())


def test_defaults_when_nothing_saved(storage):
    store = StatusConfigStore(storage)
    assert store.config == DEFAULT_STATUS_CONFIG
    assert store.config is not DEFAULT_STATUS_CONFIG


def test_loads_saved_config():
    storage = MemoryStorage({
        CONFIG_KEY: {"delivery": ["Livré"]},
        CUSTOM_STATUSES_KEY: ["Livré"],
    })
    store = StatusConfigStore(storage)
    assert store.config["delivery"] == ["Livré"]
    assert store.config["returned"] == DEFAULT_STATUS_CONFIG["returned"]
    assert store.custom_statuses == ["Livré"]


def test_malformed_saved_config_ignored():
    store = StatusConfigStore(MemoryStorage({CONFIG_KEY: "broken"}))
    assert store.config == DEFAULT_STATUS_CONFIG


def test_update_touches_one_category(storage):
    store = StatusConfigStore(storage)
    store.update("delivery", "Delivered", False)
    assert "Delivered" not in store.config["delivery"]
    assert "Delivered" in store.config["confirmation"]
    assert store.classify(make_order(status="Delivered"))["delivery"] is False


def test_update_add_is_idempotent(storage):
    store = StatusConfigStore(storage)
    store.update("returned", "Refused", True)
    store.update("returned", "Refused", True)
    assert store.config["returned"].count("Refused") == 1


def test_update_unknown_category(storage):
    store = StatusConfigStore(storage)
    with pytest.raises(ValueError):
        store.update("shipped", "Delivered", True)


def test_edits_not_persisted_until_save(storage):
    store = StatusConfigStore(storage)
    store.update("delivery", "Shipped", True)
    assert store.dirty
    assert storage.get(CONFIG_KEY) is None

    store.save()
    assert not store.dirty
    assert "Shipped" in storage.get(CONFIG_KEY)["delivery"]
    assert StatusConfigStore(storage).config["delivery"] == ["Delivered", "Shipped"]


def test_reset_keeps_custom_statuses(storage):
    store = StatusConfigStore(storage)
    assert store.add_custom_status("Refused")
    store.update("returned", "Refused", True)
    store.reset()
    assert store.config == DEFAULT_STATUS_CONFIG
    assert store.custom_statuses == ["Refused"]
    assert "Refused" in store.known_statuses()


def test_add_custom_status_does_not_assign_category(storage):
    store = StatusConfigStore(storage)
    assert store.add_custom_status("  Refused ")
    assert store.custom_statuses == ["Refused"]
    assert all("Refused" not in statuses for statuses in store.config.values())


def test_add_custom_status_rejects_known(storage):
    store = StatusConfigStore(storage)
    assert not store.add_custom_status("Delivered")
    assert not store.add_custom_status("Cancelled", [make_order(status="Cancelled")])
    assert not store.add_custom_status("   ")
    assert store.custom_statuses == []


def test_known_statuses_sorted_union(storage):
    store = StatusConfigStore(storage)
    store.add_custom_status("Zed")
    known = store.known_statuses([make_order(status="Cancelled"), make_order(status="")])
    assert known == sorted(known)
    assert {"Zed", "Cancelled", "Delivered", "In Transit"} <= set(known)
    assert "" not in known
