from __future__ import annotations


class MonitorError(Exception):
    """Base class for failures while setting up monitoring."""


class RegistrationError(MonitorError):
    """The management endpoint rejected or could not find a bean."""


class WeavingError(MonitorError):
    """A pointcut could not be resolved or woven."""


class ConfigurationError(MonitorError):
    """Settings cannot be turned into a working monitor."""


__all__ = ["MonitorError", "RegistrationError", "WeavingError", "ConfigurationError"]
