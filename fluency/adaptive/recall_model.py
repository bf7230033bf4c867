"""
Recall Model - half-life forgetting curve.

Pure functions, no side effects.

Key concepts:
- Stability (S): modeled memory half-life in hours
- Recall (P): probability of a correct answer after t hours, P = 2^(-t/S)

At t = S the probability is exactly 0.5. Stability grows on correct
answers (faster answers and longer survived gaps grow it more) and decays
multiplicatively on wrong answers.
"""

from __future__ import annotations

import math

from .config import AdaptiveConfig

MS_PER_HOUR = 3_600_000

# Extra growth for a correct answer after a gap as long as the current
# half-life; shorter gaps get a proportional share.
SPACING_BONUS = 0.5

# A fast answer after a long gap means the true half-life is at least
# this multiple of the gap.
SELF_CORRECTION_FACTOR = 1.5


def _clamp(value: float, low: float, high: float) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def hours_between(earlier_ms: float | None, later_ms: float) -> float | None:
    """
    Hours elapsed between two epoch-millisecond timestamps.

    Returns:
        Elapsed hours (never negative), or None if earlier_ms is unknown
    """
    if earlier_ms is None:
        return None
    return max(0.0, (later_ms - earlier_ms) / MS_PER_HOUR)


def compute_ewma(old_ewma: float, new_time: float, alpha: float) -> float:
    """Blend a new response time into the rolling average."""
    return alpha * new_time + (1 - alpha) * old_ewma


def compute_recall(stability: float | None, elapsed_hours: float | None) -> float | None:
    """
    Predicted recall using the half-life model.

    Formula: P = 2^(-t/S)

    Args:
        stability: Half-life in hours (None for never-correct items)
        elapsed_hours: Hours since the last correct answer

    Returns:
        Probability in [0, 1], or None if stability is unknown
    """
    if stability is None or elapsed_hours is None:
        return None
    if stability <= 0:
        return 0.0
    if elapsed_hours <= 0:
        return 1.0
    return _clamp(math.pow(2, -elapsed_hours / stability), 0.0, 1.0)


def speed_factor(response_time_ms: float, cfg: AdaptiveConfig) -> float:
    """
    Map a response time onto a stability growth multiplier.

    min_time maps to speed_bonus_max, max_response_time maps to 0.5,
    linear in between.
    """
    span = cfg.max_response_time - cfg.min_time
    clamped = _clamp(response_time_ms, cfg.min_time, cfg.max_response_time)
    t = (cfg.max_response_time - clamped) / span if span > 0 else 0.5
    return 0.5 + t * (cfg.speed_bonus_max - 0.5)


def update_stability(
    old_stability: float | None,
    response_time_ms: float,
    elapsed_hours: float | None,
    cfg: AdaptiveConfig,
) -> float:
    """
    Compute new stability after a correct answer.

    - First correct answer: initial_stability.
    - Later answers: grow by stability_growth_base * speed_factor.
    - Spacing: a gap close to the current half-life adds up to
      SPACING_BONUS extra growth.
    - Self-correction: a fast answer after a long gap floors the new
      half-life at elapsed_hours * SELF_CORRECTION_FACTOR.

    Args:
        old_stability: Current half-life in hours (None if never correct)
        response_time_ms: Response time of this answer
        elapsed_hours: Hours since the previous correct answer
        cfg: Adaptive configuration

    Returns:
        New stability clamped to [0, max_stability]
    """
    if old_stability is None:
        return _clamp(cfg.initial_stability, 0.0, cfg.max_stability)

    old = _clamp(old_stability, 0.0, cfg.max_stability)
    new_stability = old * cfg.stability_growth_base * speed_factor(response_time_ms, cfg)

    if elapsed_hours is not None and elapsed_hours > 0:
        gap = min(elapsed_hours / old, 1.0) if old > 0 else 1.0
        new_stability *= 1 + SPACING_BONUS * gap

        if response_time_ms < cfg.self_correction_threshold:
            floor = min(elapsed_hours, cfg.max_stability) * SELF_CORRECTION_FACTOR
            new_stability = max(new_stability, floor)

    return _clamp(new_stability, 0.0, cfg.max_stability)


def compute_stability_after_wrong(
    old_stability: float | None,
    cfg: AdaptiveConfig,
) -> float | None:
    """
    Compute new stability after a wrong answer.

    Multiplicative decay: the item keeps part of its progress and the
    ratio new/old depends only on the config.

    Returns:
        Decayed stability, or None if stability was never established
    """
    if old_stability is None:
        return None
    decay = _clamp(cfg.stability_decay_on_wrong, 0.0, 1.0)
    return _clamp(old_stability * decay, 0.0, cfg.max_stability)
