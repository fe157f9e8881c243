"""Runtime settings read from NETWATCH_* environment variables."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from netwatch.core.errors import ConfigError

ENV_PREFIX = "NETWATCH_"

LIVE_MODES = ("none", "probe", "capture")


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        log_path: SQLite file for the metrics log, or ":memory:".
        retention_hours: Age after which logged snapshots are pruned.
        live_mode: Which live source to use: none, probe or capture.
        live_timeout: Seconds before a live call counts as failed.
        probe_url: Base URL of the probe API (live_mode=probe).
        probe_api_key: Bearer token for the probe API.
        probe_retries: Retries on throttling and server errors.
        capture_command: Capture executable (live_mode=capture).
        capture_seconds: Capture window per request.
        cache_ttl: Seconds a live snapshot stays in the cache.
        cache_size: Interfaces kept in the cache.
        log_level: Level for the netwatch logger.
    """

    log_path: str = ":memory:"
    retention_hours: float = 24.0
    live_mode: str = "none"
    live_timeout: float = 4.0
    probe_url: str | None = None
    probe_api_key: str | None = None
    probe_retries: int = 2
    capture_command: str = "tshark"
    capture_seconds: int = 2
    cache_ttl: float = 30.0
    cache_size: int = 128
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.live_mode not in LIVE_MODES:
            raise ConfigError(
                f"live_mode must be one of {', '.join(LIVE_MODES)}, "
                f"got {self.live_mode!r}"
            )
        if self.live_mode == "probe" and not self.probe_url:
            raise ConfigError("live_mode=probe requires probe_url")
        for name in ("retention_hours", "live_timeout", "cache_ttl"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.cache_size <= 0 or self.capture_seconds <= 0:
            raise ConfigError("cache_size and capture_seconds must be positive")
        if self.probe_retries < 0:
            raise ConfigError("probe_retries must not be negative")

    @property
    def retention_seconds(self) -> float:
        return self.retention_hours * 3600

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment, falling back to defaults."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        def number(name: str, kind: type, default: float) -> float:
            raw = get(name)
            if raw is None:
                return default
            try:
                return kind(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_PREFIX}{name}={raw!r} is not a number"
                ) from exc

        defaults = cls()
        return cls(
            log_path=get("LOG_PATH") or defaults.log_path,
            retention_hours=number(
                "RETENTION_HOURS", float, defaults.retention_hours
            ),
            live_mode=(get("LIVE_MODE") or defaults.live_mode).lower(),
            live_timeout=number("LIVE_TIMEOUT", float, defaults.live_timeout),
            probe_url=get("PROBE_URL"),
            probe_api_key=get("PROBE_API_KEY"),
            probe_retries=int(number("PROBE_RETRIES", int, defaults.probe_retries)),
            capture_command=get("CAPTURE_COMMAND") or defaults.capture_command,
            capture_seconds=int(
                number("CAPTURE_SECONDS", int, defaults.capture_seconds)
            ),
            cache_ttl=number("CACHE_TTL", float, defaults.cache_ttl),
            cache_size=int(number("CACHE_SIZE", int, defaults.cache_size)),
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        )
