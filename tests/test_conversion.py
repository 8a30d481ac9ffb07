import pytest

from conversion import RATES_KEY, ConversionRateStore, parse_rate
from storage import MemoryStorage


def test_default_rate_is_one():
    rates = ConversionRateStore()
    assert rates.rate_for("Morocco") == 1.0
    assert rates.convert(12.345, "Morocco") == 12.35


def test_country_rate_overrides_default(storage):
    rates = ConversionRateStore(storage)
    rates.set_rate("Morocco", "0.1")
    rates.set_default_rate(2)
    assert rates.rate_for("Morocco") == 0.1
    assert rates.rate_for("Spain") == 2.0
    assert rates.rate_for("") == 2.0
    assert rates.convert(155, "Morocco") == 15.5


def test_rates_persist(storage):
    ConversionRateStore(storage).set_rate("Spain", 1.1)
    assert storage.get(RATES_KEY) == {"default": 1.0, "countries": {"Spain": 1.1}}
    assert ConversionRateStore(storage).rate_for("Spain") == 1.1


def test_remove_rate_falls_back_to_default(storage):
    rates = ConversionRateStore(storage)
    rates.set_rate("Spain", 3)
    rates.remove_rate("Spain")
    assert rates.rate_for("Spain") == 1.0
    assert storage.get(RATES_KEY)["countries"] == {}


@pytest.mark.parametrize("value", ["abc", "", None, "0", -1, "nan", "inf"])
def test_invalid_rates_rejected(value):
    with pytest.raises(ValueError, match="valid conversion rate"):
        parse_rate(value)


def test_invalid_rate_leaves_state_untouched(storage):
    rates = ConversionRateStore(storage)
    with pytest.raises(ValueError):
        rates.set_rate("Spain", "abc")
    assert rates.country_rates == {}
    assert storage.get(RATES_KEY) is None


def test_empty_country_rejected(storage):
    with pytest.raises(ValueError):
        ConversionRateStore(storage).set_rate("  ", 2)


def test_malformed_saved_rates_ignored():
    rates = ConversionRateStore(MemoryStorage({RATES_KEY: {"default": "x", "countries": {"A": 2}}}))
    assert rates.default_rate == 1.0
    assert rates.country_rates == {}
