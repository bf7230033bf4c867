"""
Adaptive Learner Configuration.

Frozen configuration values shared by the selector, the deadline tracker
and the recommendation engine. A config is never mutated: calibration and
per-item scaling build a new value with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

# Motor baseline the defaults were tuned against (ms)
REFERENCE_BASELINE_MS = 1000


@dataclass(frozen=True)
class AdaptiveConfig:
    """Configuration for the forgetting model and item selection."""

    min_time: float = 1000  # ms, fastest plausible response
    unseen_boost: float = 3.0  # selection weight for never-seen items
    ewma_alpha: float = 0.3
    max_stored_times: int = 10
    max_response_time: float = 9000  # ms, response clamp and deadline ceiling

    # Forgetting model
    initial_stability: float = 4.0  # hours, half-life after first correct answer
    max_stability: float = 336.0  # hours (14 days)
    stability_growth_base: float = 2.0  # multiplier on each correct answer
    stability_decay_on_wrong: float = 0.3  # multiplier on wrong answer
    recall_threshold: float = 0.5  # P(recall) below this = "due"
    expansion_threshold: float = 0.7  # mastered/seen ratio before suggesting new groups
    speed_bonus_max: float = 1.5  # fast answers grow stability up to this factor
    self_correction_threshold: float = 1500  # ms
    automaticity_target: float = 3000  # ms, speed score 0.5 at this EWMA
    automaticity_threshold: float = 0.8  # automaticity above this = mastered


@dataclass(frozen=True)
class DeadlineConfig:
    """Configuration for the per-item deadline staircase."""

    decrease_factor: float = 0.85  # after a correct answer
    increase_factor: float = 1.4  # after an incorrect answer or timeout
    min_deadline_margin: float = 1.3  # min_time * this = deadline floor
    ewma_multiplier: float = 2.0  # cold start from history
    headroom_multiplier: float = 1.5  # response-time anchored target
    max_drop_factor: float = 0.5  # never drop below this * current in one step


DEFAULT_CONFIG = AdaptiveConfig()
DEFAULT_DEADLINE_CONFIG = DeadlineConfig()


def scale_for_response_count(cfg: AdaptiveConfig, response_count: int) -> AdaptiveConfig:
    """
    Scale timing thresholds for items that need several physical responses.

    Args:
        cfg: Base configuration
        response_count: Expected number of responses for one question

    Returns:
        The same config when response_count <= 1, otherwise a scaled copy
    """
    if response_count <= 1:
        return cfg
    return replace(
        cfg,
        min_time=cfg.min_time * response_count,
        automaticity_target=cfg.automaticity_target * response_count,
        max_response_time=cfg.max_response_time * response_count,
        self_correction_threshold=cfg.self_correction_threshold * response_count,
    )


def derive_scaled_config(
    motor_baseline: float,
    base: AdaptiveConfig = DEFAULT_CONFIG,
) -> AdaptiveConfig:
    """
    Derive a personalized config from a measured motor baseline.

    The defaults assume a 1000ms baseline; every absolute timing
    threshold is rescaled by ``motor_baseline / 1000``.

    Args:
        motor_baseline: Median calibration tap time in ms
        base: Config to rescale

    Returns:
        New AdaptiveConfig with rescaled timing thresholds
    """
    scale = motor_baseline / REFERENCE_BASELINE_MS
    return replace(
        base,
        min_time=round(base.min_time * scale),
        automaticity_target=round(base.automaticity_target * scale),
        self_correction_threshold=round(base.self_correction_threshold * scale),
        max_response_time=round(base.max_response_time * scale),
    )
