from datetime import date, datetime

import pytest

from debounce import DebouncedScheduler
from fields import Order
from storage import MemoryStorage
from status_config import default_status_config


class FakeTimer:
    """Stand-in for threading.Timer that only fires when the test says so."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if not t.cancelled]

    def fire_all(self):
        for timer in list(self.timers):
            timer.fire()


class FakeCostBackend:
    """Records cost calls; set `fail` to make every write raise."""

    def __init__(self, costs=None):
        self.costs = costs or {"productCosts": {}, "adCostsByDate": {}}
        self.calls = []
        self.fail = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise self.fail

    def get_costs(self):
        return self.costs

    def update_product_cost(self, product, value):
        self._record("update_product_cost", product, value)

    def update_ad_cost(self, day, product, platform, value):
        self._record("update_ad_cost", day, product, platform, value)

    def delete_all_product_costs(self):
        self._record("delete_all_product_costs")

    def delete_all_ad_costs(self):
        self._record("delete_all_ad_costs")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def scheduler(timers):
    return DebouncedScheduler(delay=1.0, timer_factory=timers)


@pytest.fixture
def backend():
    return FakeCostBackend()


@pytest.fixture
def status_config():
    return default_status_config()


def make_order(product="A", status="Delivered", amount=100.0, quantity=1, city="Casablanca",
               country="Morocco", order_date=datetime(2024, 1, 1, 10, 0), **extra):
    return Order(
        order_id=extra.pop("order_id", "1"),
        order_date=order_date,
        status=status,
        amount=amount,
        quantity=quantity,
        product=product,
        city=city,
        country=country,
        agent=extra.pop("agent", ""),
        source_traffic=extra.pop("source_traffic", ""),
    )


@pytest.fixture
def sample_orders():
    return [
        make_order("A", "Delivered", 100.0, 2, order_date=datetime(2024, 1, 1, 9, 0)),
        make_order("A", "Delivered", 200.0, 1, order_date=datetime(2024, 1, 2, 9, 0)),
        make_order("A", "Returned", 50.0, 1, order_date=datetime(2024, 1, 3, 9, 0)),
        make_order("B", "Scheduled", 80.0, 3, city="Rabat", order_date=datetime(2024, 1, 2, 12, 0)),
        make_order("B", "Cancelled", 60.0, 1, city="Rabat", country="Spain", order_date=datetime(2024, 1, 5, 12, 0)),
    ]


@pytest.fixture
def today():
    return date(2024, 1, 10)
