from __future__ import annotations

import re
from threading import RLock
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from actor_monitor.config import settings
from actor_monitor.errors import RegistrationError
from actor_monitor.utils.logging import get_logger
from actor_monitor.utils.metrics import EventRateCounter

log = get_logger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")


class ObjectName:
    """Endpoint address of the form ``domain:key=value[,key=value...]``."""

    def __init__(self, domain: str, properties: Dict[str, str]):
        self.domain = domain
        self.properties = dict(properties)

    @classmethod
    def parse(cls, text: str) -> "ObjectName":
        if not isinstance(text, str) or ":" not in text:
            raise RegistrationError(f"malformed object name: {text!r}")
        domain, _, rest = text.partition(":")
        if not domain or any(c in domain for c in ",=*?"):
            raise RegistrationError(f"malformed object name domain: {text!r}")
        if not rest:
            raise RegistrationError(f"object name has no key properties: {text!r}")
        properties: Dict[str, str] = {}
        for pair in rest.split(","):
            key, sep, value = pair.partition("=")
            if not sep or not _KEY_RE.match(key) or not value or any(c in value for c in ":=*?"):
                raise RegistrationError(f"malformed key property {pair!r} in {text!r}")
            if key in properties:
                raise RegistrationError(f"duplicate key {key!r} in {text!r}")
            properties[key] = value
        return cls(domain, properties)

    def __str__(self) -> str:
        props = ",".join(f"{k}={v}" for k, v in self.properties.items())
        return f"{self.domain}:{props}"

    def __repr__(self) -> str:
        return f"ObjectName({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectName):
            return NotImplemented
        # key order does not matter for identity
        return self.domain == other.domain and self.properties == other.properties

    def __hash__(self) -> int:
        return hash((self.domain, frozenset(self.properties.items())))


class ManagementBean:
    """Base class for registrable beans.

    Attributes are discovered from ``get_<snake_name>`` methods listed in
    ``ATTRIBUTES`` as ``CamelCaseName -> method name`` pairs.
    """

    ATTRIBUTES: Dict[str, str] = {}

    def attributes(self) -> Dict[str, Any]:
        return {name: self.get_attribute(name) for name in self.ATTRIBUTES}

    def get_attribute(self, name: str) -> Any:
        method = self.ATTRIBUTES.get(name)
        if method is None:
            raise AttributeError(f"{type(self).__name__} has no attribute {name!r}")
        return getattr(self, method)()


class PerformanceSnapshot(BaseModel):
    messages_per_second: float
    buckets: int
    events: int
    uptime_seconds: int


class PerformanceBean(ManagementBean):
    ATTRIBUTES = {"MessagesPerSecond": "get_messages_per_second"}

    def __init__(self, counter: EventRateCounter):
        self.counter = counter

    def get_messages_per_second(self) -> float:
        return float(self.counter.average())

    def get_current_rate(self) -> int | float:
        return self.counter.average()

    def snapshot(self) -> PerformanceSnapshot:
        return PerformanceSnapshot(**self.counter.snapshot())


class ManagementRegistry:
    def __init__(self) -> None:
        self._beans: Dict[ObjectName, ManagementBean] = {}
        self._lock = RLock()

    @staticmethod
    def _name(name: str | ObjectName) -> ObjectName:
        return name if isinstance(name, ObjectName) else ObjectName.parse(name)

    def register(self, bean: ManagementBean, name: str | ObjectName) -> ObjectName:
        object_name = self._name(name)
        if not isinstance(bean, ManagementBean):
            raise RegistrationError(f"{type(bean).__name__} is not a management bean")
        with self._lock:
            if object_name in self._beans:
                raise RegistrationError(f"instance already exists: {object_name}")
            self._beans[object_name] = bean
        log.info(
            "bean_registered",
            extra={"extra_fields": {"name": str(object_name), "bean": type(bean).__name__}},
        )
        return object_name

    def unregister(self, name: str | ObjectName) -> None:
        object_name = self._name(name)
        with self._lock:
            if self._beans.pop(object_name, None) is None:
                raise RegistrationError(f"instance not found: {object_name}")
        log.info("bean_unregistered", extra={"extra_fields": {"name": str(object_name)}})

    def is_registered(self, name: str | ObjectName) -> bool:
        with self._lock:
            return self._name(name) in self._beans

    def get(self, name: str | ObjectName) -> ManagementBean:
        object_name = self._name(name)
        with self._lock:
            bean = self._beans.get(object_name)
        if bean is None:
            raise RegistrationError(f"instance not found: {object_name}")
        return bean

    def get_attribute(self, name: str | ObjectName, attribute: str) -> Any:
        return self.get(name).get_attribute(attribute)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(str(n) for n in self._beans)

    def dump(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            items = list(self._beans.items())
        return {str(name): bean.attributes() for name, bean in sorted(items, key=lambda i: str(i[0]))}


_platform_registry: Optional[ManagementRegistry] = None
_platform_lock = RLock()


def get_platform_registry() -> ManagementRegistry:
    global _platform_registry
    with _platform_lock:
        if _platform_registry is None:
            _platform_registry = ManagementRegistry()
        return _platform_registry


def start(
    counter: EventRateCounter,
    registry: ManagementRegistry | None = None,
    name: str | None = None,
) -> PerformanceBean:
    """Register a ``PerformanceBean`` for ``counter``; raises ``RegistrationError``."""
    registry = registry if registry is not None else get_platform_registry()
    bean = PerformanceBean(counter)
    registry.register(bean, name or settings.MONITOR_OBJECT_NAME)
    return bean


__all__ = [
    "ObjectName",
    "ManagementBean",
    "PerformanceBean",
    "PerformanceSnapshot",
    "ManagementRegistry",
    "get_platform_registry",
    "start",
]
