"""Time-of-day correlated synthetic values for network metrics."""

import math
import random
from collections.abc import Callable

from netwatch.core.errors import InvalidRequestError
from netwatch.core.models import PatternConfig, Shape

NoiseSource = Callable[[], float]

PACKET_LOSS_CAP = 5.0

PATTERNS: dict[str, PatternConfig] = {
    "packet_loss": PatternConfig(
        baseline=1.0,
        amplitude=1.5,
        noise_level=0.3,
        peak_hour=18,
        shape=Shape.SINE,
        upper_bound=PACKET_LOSS_CAP,
    ),
    "latency": PatternConfig(
        baseline=40.0, amplitude=30.0, noise_level=10.0, peak_hour=20
    ),
    # Throughput curves dip at peak usage
    "download_speed": PatternConfig(
        baseline=50.0,
        amplitude=40.0,
        noise_level=15.0,
        peak_hour=22,
        shape=Shape.COSINE,
    ),
    "upload_speed": PatternConfig(
        baseline=15.0,
        amplitude=10.0,
        noise_level=5.0,
        peak_hour=14,
        shape=Shape.COSINE,
    ),
}

DEFAULT_PATTERN = PATTERNS["latency"]


def uniform_noise() -> float:
    """Uniform noise in [-0.5, 0.5)."""
    return random.random() - 0.5


def zero_noise() -> float:
    """Noise source for fully deterministic curves."""
    return 0.0


def interface_seed(interface: str | None) -> int:
    """Derive a stable seed from an interface name (sum of character codes)."""
    if not interface:
        return 0
    return sum(ord(char) for char in interface)


def pattern_for(metric_name: str) -> PatternConfig:
    """Return the pattern for a metric, falling back to the latency profile."""
    return PATTERNS.get(metric_name, DEFAULT_PATTERN)


def seeded_pattern(config: PatternConfig, seed: int) -> PatternConfig:
    """Apply per-interface variation to a pattern. Seed 0 is the identity."""
    if seed <= 0:
        return config
    return PatternConfig(
        baseline=config.baseline + (seed % 10) / 10,
        amplitude=config.amplitude * (1 + (seed % 5) / 10),
        noise_level=config.noise_level,
        peak_hour=(config.peak_hour + seed % 3) % 24,
        shape=config.shape,
        upper_bound=config.upper_bound,
    )


def generate(
    metric_name: str,
    hour_of_day: int,
    seed: int = 0,
    *,
    noise: NoiseSource = uniform_noise,
) -> float:
    """Generate a synthetic value for a metric at an hour of day.

    Args:
        metric_name: One of the PATTERNS keys; unknown names use latency.
        hour_of_day: Integer hour, 0-23.
        seed: Non-negative seed, usually interface_seed(interface).
        noise: Zero-argument callable returning noise in [-0.5, 0.5).

    Returns:
        A finite, non-negative value, capped for packet loss.

    Raises:
        InvalidRequestError: If hour_of_day is outside 0-23 or seed < 0.
    """
    if not 0 <= hour_of_day <= 23:
        raise InvalidRequestError(f"hour_of_day must be 0-23, got {hour_of_day}")
    if seed < 0:
        raise InvalidRequestError(f"seed must be non-negative, got {seed}")

    config = seeded_pattern(pattern_for(metric_name), seed)
    hour_diff = (hour_of_day - config.peak_hour + 24) % 24
    normalized = hour_diff / 12
    if config.shape is Shape.SINE:
        pattern_value = math.sin(normalized * math.pi)
    else:
        pattern_value = math.cos(normalized * math.pi)

    value = config.baseline + pattern_value * config.amplitude
    value += noise() * config.noise_level
    if not math.isfinite(value):
        value = config.baseline
    value = max(0.0, value)
    if config.upper_bound is not None:
        value = min(value, config.upper_bound)
    return value
