from __future__ import annotations

import functools
import importlib
import inspect
from collections.abc import Callable
from threading import RLock
from typing import Any, Dict, Optional, Tuple

from actor_monitor.config import settings
from actor_monitor.errors import MonitorError, WeavingError
from actor_monitor.monitor import endpoint
from actor_monitor.monitor.endpoint import ManagementRegistry, PerformanceBean
from actor_monitor.utils.logging import get_logger
from actor_monitor.utils.metrics import EventRateCounter

log = get_logger(__name__)

Advice = Callable[[], None]

_WOVEN_ATTR = "__actor_monitor_woven__"
_woven: Dict[Tuple[int, str], "Weave"] = {}
_woven_lock = RLock()


class Pointcut:
    """A method on a class, addressed as ``module:Qualified.method``.

    With ``event`` set, only calls whose first positional argument (after
    ``self``) equals it are matched.
    """

    def __init__(self, owner: type, method: str, event: Any = None):
        if not inspect.isclass(owner):
            raise WeavingError(f"pointcut owner {owner!r} is not a class")
        if not callable(getattr(owner, method, None)):
            raise WeavingError(f"{owner.__qualname__} has no method {method!r}")
        self.owner = owner
        self.method = method
        self.event = event

    @classmethod
    def parse(cls, target_path: str, event: Any = None) -> "Pointcut":
        module_name, sep, qualname = target_path.partition(":")
        if not sep or not module_name or "." not in qualname:
            raise WeavingError(f"malformed pointcut {target_path!r}, expected module:Class.method")
        owner_path, _, method = qualname.rpartition(".")
        try:
            target: Any = importlib.import_module(module_name)
        except Exception as exc:  # relative names raise TypeError
            raise WeavingError(f"cannot import {module_name!r}: {exc}") from exc
        for part in owner_path.split("."):
            try:
                target = getattr(target, part)
            except AttributeError as exc:
                raise WeavingError(f"{target_path!r} does not resolve: {exc}") from exc
        return cls(target, method, event)

    def matches(self, args: Tuple[Any, ...]) -> bool:
        if self.event is None:
            return True
        return bool(args) and args[0] == self.event

    def __str__(self) -> str:
        return f"{self.owner.__module__}:{self.owner.__qualname__}.{self.method}"


class Weave:
    """Handle for a woven method; ``unweave`` puts the class back as it was."""

    def __init__(self, pointcut: Pointcut, own_entry: Any):
        self.pointcut = pointcut
        self.own_entry = own_entry
        self.active = True

    def unweave(self) -> None:
        with _woven_lock:
            if not self.active:
                return
            owner, method = self.pointcut.owner, self.pointcut.method
            if self.own_entry is not None:
                setattr(owner, method, self.own_entry)
            else:
                # method was inherited
                delattr(owner, method)
            _woven.pop((id(owner), method), None)
            self.active = False
        log.info("pointcut_unwoven", extra={"extra_fields": {"pointcut": str(self.pointcut)}})


def _before(func: Callable[..., Any], pointcut: Pointcut, advice: Advice) -> Callable[..., Any]:
    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            if pointcut.matches(args):
                advice()
            return await func(self, *args, **kwargs)

        wrapper: Callable[..., Any] = async_wrapper
    else:

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            if pointcut.matches(args):
                advice()
            return func(self, *args, **kwargs)

    setattr(wrapper, _WOVEN_ATTR, True)
    return wrapper


def weave(pointcut: Pointcut, advice: Advice) -> Weave:
    """Run ``advice`` before every matching call of the pointcut's method."""
    owner, method = pointcut.owner, pointcut.method
    with _woven_lock:
        current = getattr(owner, method)
        if getattr(current, _WOVEN_ATTR, False) or (id(owner), method) in _woven:
            raise WeavingError(f"{pointcut} is already woven")
        own_entry = owner.__dict__.get(method)
        if isinstance(own_entry, (staticmethod, classmethod)):
            raise WeavingError(f"{pointcut} is not an instance method")
        handle = Weave(pointcut, own_entry)
        setattr(owner, method, _before(current, pointcut, advice))
        _woven[(id(owner), method)] = handle
    log.info("pointcut_woven", extra={"extra_fields": {"pointcut": str(pointcut), "event": pointcut.event}})
    return handle


def monitored(counter: EventRateCounter) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator form: record one event per call of the wrapped dispatch entry."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                counter.record()
                return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            counter.record()
            return func(*args, **kwargs)

        return wrapper

    return decorator


class MonitorAspect:
    """Ties a counter to the management endpoint and an intercepted method."""

    def __init__(
        self,
        counter: EventRateCounter,
        registry: ManagementRegistry | None = None,
        object_name: str | None = None,
    ):
        self.counter = counter
        self.registry = registry if registry is not None else endpoint.get_platform_registry()
        self.object_name = object_name or settings.MONITOR_OBJECT_NAME
        self.bean: Optional[PerformanceBean] = None
        self.handle: Optional[Weave] = None

    @property
    def installed(self) -> bool:
        return self.handle is not None

    def record_event(self) -> None:
        self.counter.record()

    def get_current_rate(self) -> int | float:
        return self.counter.average()

    def install(self, pointcut: Pointcut | str, event: Any = None) -> bool:
        """Register the endpoint and weave the pointcut.

        Returns ``False`` and leaves the host unmonitored if either step fails.
        """
        if self.installed:
            log.warning("monitor_already_installed", extra={"extra_fields": {"name": self.object_name}})
            return True
        bean: Optional[PerformanceBean] = None
        try:
            bean = endpoint.start(self.counter, self.registry, self.object_name)
            if isinstance(pointcut, str):
                pointcut = Pointcut.parse(pointcut, event)
            self.handle = weave(pointcut, self.record_event)
        except MonitorError as exc:
            # roll back only what this call registered
            if bean is not None:
                self.registry.unregister(self.object_name)
            log.error(
                "monitor_install_failed",
                extra={"extra_fields": {"error": str(exc), "kind": exc.__class__.__name__}},
            )
            return False
        self.bean = bean
        log.info(
            "monitor_installed",
            extra={"extra_fields": {"pointcut": str(pointcut), "name": self.object_name}},
        )
        return True

    def uninstall(self) -> None:
        if self.handle is not None:
            self.handle.unweave()
            self.handle = None
        if self.bean is not None:
            self.registry.unregister(self.object_name)
            self.bean = None


__all__ = ["Pointcut", "Weave", "weave", "monitored", "MonitorAspect"]
