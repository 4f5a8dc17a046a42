"""Short-horizon surcharge and overflow risk from pipe level history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

DEFAULT_MAX_SAMPLES = 512
_MIN_RISE_RATE = 1e-9


@dataclass(frozen=True)
class LevelSample:
    """A pipe level reading with the capacity it is compared against."""

    t_s: float
    level_m: float
    capacity_m: float


@dataclass(frozen=True)
class OverflowRisk:
    """Probability of surcharge within a forecast horizon."""

    horizon_s: float
    probability: float


@dataclass(frozen=True)
class OverflowPredictionConfig:
    """Settings for linear level projection."""

    min_samples: int
    horizon_seconds: float


@dataclass(frozen=True)
class OverflowPredictionResult:
    """Projected level and the fraction of capacity it represents."""

    probability: float = 0.0
    projected_level_m: float = 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class OverflowPredictor:
    """Keeps a bounded level history and extrapolates it linearly."""

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES) -> None:
        if max_samples < 0:
            raise ValueError("max_samples must not be negative")
        self._history: deque[LevelSample] = deque(maxlen=max_samples)

    def __len__(self) -> int:
        return len(self._history)

    @property
    def samples(self) -> tuple[LevelSample, ...]:
        """The retained samples, oldest first."""
        return tuple(self._history)

    def add_sample(self, sample: LevelSample) -> None:
        """Append a sample, dropping the oldest once the history is full."""
        self._history.append(sample)

    def _endpoints(self) -> tuple[LevelSample, LevelSample]:
        return self._history[0], self._history[-1]

    def estimate_risk(self, horizon_s: float) -> OverflowRisk:
        """Estimate the probability that the level reaches capacity within the horizon."""
        if len(self._history) < 2:
            return OverflowRisk(horizon_s, 0.0)
        first, last = self._endpoints()
        dt = last.t_s - first.t_s
        if dt <= 0.0:
            return OverflowRisk(horizon_s, 0.0)
        rise_rate = (last.level_m - first.level_m) / dt

        remaining = last.capacity_m - last.level_m
        if remaining <= 0.0:
            return OverflowRisk(horizon_s, 1.0)
        time_to_crown = remaining / max(rise_rate, _MIN_RISE_RATE)

        probability = 0.0
        if time_to_crown <= 0.0:
            probability = 1.0
        elif time_to_crown <= horizon_s:
            probability = _clamp((horizon_s - time_to_crown) / horizon_s, 0.0, 1.0)
        return OverflowRisk(horizon_s, probability)

    def predict(self, config: OverflowPredictionConfig) -> OverflowPredictionResult:
        """Project the level over the configured horizon and rate it against capacity."""
        if len(self._history) < config.min_samples or not self._history:
            return OverflowPredictionResult()
        first, last = self._endpoints()
        dt = last.t_s - first.t_s
        if dt <= 0.0:
            return OverflowPredictionResult(probability=0.0, projected_level_m=last.level_m)

        slope = (last.level_m - first.level_m) / dt
        projected = last.level_m + slope * config.horizon_seconds
        probability = 0.0
        if last.capacity_m > 0.0:
            probability = _clamp(projected / last.capacity_m, 0.0, 1.0)
        return OverflowPredictionResult(probability=probability, projected_level_m=projected)