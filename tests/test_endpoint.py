from __future__ import annotations

import pytest

from actor_monitor.errors import RegistrationError
from actor_monitor.monitor import endpoint
from actor_monitor.monitor.endpoint import (
    ManagementRegistry,
    ObjectName,
    PerformanceBean,
    PerformanceSnapshot,
)
from actor_monitor.utils.metrics import EventRateCounter


def _counter(*times: int) -> EventRateCounter:
    now = [0.0]
    counter = EventRateCounter(clock=lambda: now[0])
    for t in times:
        now[0] = t
        counter.record()
    return counter


def test_object_name_parse():
    name = ObjectName.parse("monitor:type=Performance")
    assert name.domain == "monitor"
    assert name.properties == {"type": "Performance"}
    assert str(name) == "monitor:type=Performance"
    assert ObjectName.parse("a:x=1,y=2") == ObjectName.parse("a:y=2,x=1")


@pytest.mark.parametrize(
    "text",
    ["", "monitor", "monitor:", ":type=x", "monitor:type", "monitor:type=", "m:a=1,a=2", "m:=v"],
)
def test_object_name_malformed(text):
    with pytest.raises(RegistrationError):
        ObjectName.parse(text)


def test_register_and_read_attribute():
    registry = ManagementRegistry()
    bean = PerformanceBean(_counter(100, 100, 100, 101))
    registry.register(bean, "monitor:type=Performance")
    assert registry.is_registered("monitor:type=Performance")
    assert registry.get("monitor:type=Performance") is bean
    assert registry.get_attribute("monitor:type=Performance", "MessagesPerSecond") == 2.0
    assert registry.names() == ["monitor:type=Performance"]
    assert registry.dump() == {"monitor:type=Performance": {"MessagesPerSecond": 2.0}}


def test_duplicate_registration_rejected():
    registry = ManagementRegistry()
    registry.register(PerformanceBean(_counter()), "monitor:type=Performance")
    with pytest.raises(RegistrationError):
        registry.register(PerformanceBean(_counter()), "monitor:type=Performance")


def test_non_bean_rejected():
    registry = ManagementRegistry()
    with pytest.raises(RegistrationError):
        registry.register(object(), "monitor:type=Performance")  # type: ignore[arg-type]


def test_unregister():
    registry = ManagementRegistry()
    registry.register(PerformanceBean(_counter()), "monitor:type=Performance")
    registry.unregister("monitor:type=Performance")
    assert not registry.is_registered("monitor:type=Performance")
    with pytest.raises(RegistrationError):
        registry.unregister("monitor:type=Performance")
    with pytest.raises(RegistrationError):
        registry.get("monitor:type=Performance")


def test_unknown_attribute():
    bean = PerformanceBean(_counter())
    with pytest.raises(AttributeError):
        bean.get_attribute("Nope")


def test_bean_rate_and_snapshot():
    bean = PerformanceBean(_counter(100, 100, 101))
    assert bean.get_current_rate() == 1
    assert bean.get_messages_per_second() == 1.0
    snap = bean.snapshot()
    assert isinstance(snap, PerformanceSnapshot)
    assert snap.buckets == 2
    assert snap.events == 3


def test_empty_bean_reports_zero():
    assert PerformanceBean(_counter()).get_messages_per_second() == 0.0


def test_start_uses_given_registry():
    registry = ManagementRegistry()
    bean = endpoint.start(_counter(), registry, "custom:type=Rate")
    assert registry.get("custom:type=Rate") is bean


def test_platform_registry_is_shared():
    assert endpoint.get_platform_registry() is endpoint.get_platform_registry()
