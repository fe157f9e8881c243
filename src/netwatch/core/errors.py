"""Exception hierarchy for netwatch."""


class NetwatchError(Exception):
    """Base class for all netwatch errors."""


class InvalidRequestError(NetwatchError, ValueError):
    """Caller supplied an invalid window, metric name or hour."""


class LiveSourceError(NetwatchError):
    """A live probe or capture source failed or returned unusable data."""


class MetricsLogError(NetwatchError):
    """The metrics log could not be read or written."""


class ConfigError(NetwatchError, ValueError):
    """An environment setting could not be parsed."""
