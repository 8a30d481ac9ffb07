from datetime import datetime

import pytest

from fields import (
    AMOUNT_FIELDS,
    QUANTITY_FIELDS,
    extract_amount,
    extract_product,
    extract_quantity,
    matches_status,
    normalize_order,
    parse_order_date,
)


class TestMatchesStatus:
    def test_exact_membership(self):
        assert matches_status("Delivered", ["Delivered", "Returned"])

    def test_case_sensitive(self):
        assert not matches_status("delivered", ["Delivered"])

    def test_no_trimming_inside_classifier(self):
        assert not matches_status("Delivered ", ["Delivered"])

    @pytest.mark.parametrize("status", ["", None])
    def test_empty_status_never_matches(self, status):
        assert not matches_status(status, ["", "Delivered"])

    def test_missing_list_never_matches(self):
        assert not matches_status("Delivered", None)
        assert not matches_status("Delivered", [])


class TestExtractAmount:
    @pytest.mark.parametrize("alias", AMOUNT_FIELDS)
    def test_each_alias(self, alias):
        assert extract_amount({alias: "42.5"}) == 42.5

    def test_alias_priority(self):
        assert extract_amount({"Revenue": 5, "Cod Amount": 7}) == 7

    def test_currency_and_separators_stripped(self):
        assert extract_amount({"Price": "1,250.00 MAD"}) == 1250.0
        assert extract_amount({"Price": "$99"}) == 99.0

    def test_numbers_pass_through(self):
        assert extract_amount({"Total": 12}) == 12

    def test_unparseable_falls_through_to_next_alias(self):
        assert extract_amount({"Cod Amount": "n/a", "Order Value": "30"}) == 30.0

    def test_empty_and_none_skipped(self):
        assert extract_amount({"Cod Amount": "", "Order Value": None, "Price": "8"}) == 8.0

    def test_nan_skipped(self):
        assert extract_amount({"Cod Amount": float("nan"), "Price": 3}) == 3

    def test_defaults_to_zero(self):
        assert extract_amount({}) == 0
        assert extract_amount({"Cod Amount": "free"}) == 0


class TestExtractQuantity:
    @pytest.mark.parametrize("alias", QUANTITY_FIELDS)
    def test_each_alias(self, alias):
        assert extract_quantity({alias: "3"}) == 3

    def test_non_digits_stripped(self):
        assert extract_quantity({"Qty": "2 pcs"}) == 2

    def test_unparseable_falls_through(self):
        assert extract_quantity({"Quantity": "many", "Units": 4}) == 4

    def test_defaults_to_one(self):
        assert extract_quantity({}) == 1
        assert extract_quantity({"Quantity": "none"}) == 1


def test_extract_product_aliases():
    assert extract_product({"sku number": " SKU-1 "}) == "SKU-1"
    assert extract_product({"Product Name": "Widget", "product": "Other"}) == "Widget"
    assert extract_product({}) == ""


class TestParseOrderDate:
    def test_iso(self):
        assert parse_order_date("2024-01-02") == datetime(2024, 1, 2)

    def test_timezone_dropped(self):
        parsed = parse_order_date("2024-01-02T10:00:00Z")
        assert parsed.tzinfo is None
        assert parsed == datetime(2024, 1, 2, 10, 0)

    @pytest.mark.parametrize("value", ["", None, "not a date"])
    def test_unparseable(self, value):
        assert parse_order_date(value) is None


def test_normalize_order():
    row = {
        "Order ID": "A-1",
        "Order date": "2024-01-03",
        "STATUS": "  Delivered ",
        "Cod Amount": "150 MAD",
        "Qty": "2",
        "Product Name": "Widget",
        "City": "Rabat",
        "Receier Country*": "Morocco",
        "Agent": "Sara",
        "Source Traffic": "fb",
    }
    order = normalize_order(row)
    assert order.order_id == "A-1"
    assert order.order_date == datetime(2024, 1, 3)
    assert order.status == "Delivered"
    assert order.amount == 150.0
    assert order.quantity == 2
    assert order.product == "Widget"
    assert order.city == "Rabat"
    assert order.country == "Morocco"
    assert order.agent == "Sara"
    assert order.source_traffic == "fb"
    assert order.raw is row


def test_normalize_order_defaults():
    order = normalize_order({"Order ID": "x"})
    assert order.amount == 0
    assert order.quantity == 1
    assert order.order_date is None
    assert order.status == ""
