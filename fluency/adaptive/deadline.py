"""
Per-item adaptive deadline staircase.

Each item keeps one persisted value: the time limit (ms) for its next
question. Correct answers tighten it, incorrect answers and timeouts
loosen it. Bounds:

    min_deadline = round(min_time * min_deadline_margin)
    max_deadline = max_response_time

Multi-response items scale min_time and max_response_time by their
response count before any of this applies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .config import DEFAULT_DEADLINE_CONFIG, AdaptiveConfig, DeadlineConfig, scale_for_response_count

if TYPE_CHECKING:
    from fluency.delivery.state_store import StorageAdapter


def deadline_bounds(adaptive_cfg: AdaptiveConfig, dl_cfg: DeadlineConfig) -> tuple[int, int]:
    """Return (min_deadline, max_deadline) in ms."""
    min_deadline = round(adaptive_cfg.min_time * dl_cfg.min_deadline_margin)
    max_deadline = round(adaptive_cfg.max_response_time)
    return min_deadline, max(min_deadline, max_deadline)


def _clamp(value: float, low: int, high: int) -> int:
    return round(max(low, min(high, value)))


def compute_initial_deadline(
    ewma: float | None,
    adaptive_cfg: AdaptiveConfig,
    dl_cfg: DeadlineConfig,
) -> int:
    """
    Compute the cold-start deadline for an item.

    - With history: ewma * ewma_multiplier (about twice the average speed)
    - Unseen: max_deadline (generous ceiling for first exposure)

    Returns:
        Deadline in ms, clamped to [min_deadline, max_deadline]
    """
    min_deadline, max_deadline = deadline_bounds(adaptive_cfg, dl_cfg)
    if ewma is None:
        return max_deadline
    return _clamp(ewma * dl_cfg.ewma_multiplier, min_deadline, max_deadline)


def adjust_deadline(
    current_deadline: float,
    correct: bool,
    adaptive_cfg: AdaptiveConfig,
    dl_cfg: DeadlineConfig,
    response_time_ms: float | None = None,
) -> int:
    """
    Adjust a deadline after an outcome.

    - Incorrect/timeout: current * increase_factor. The response time is
      ignored: a fast wrong answer never tightens the deadline.
    - Correct: the more aggressive of the staircase (current *
      decrease_factor) and the response-anchored target (response_time *
      headroom_multiplier), but never below current * max_drop_factor.

    Returns:
        New deadline in ms, clamped to [min_deadline, max_deadline]
    """
    min_deadline, max_deadline = deadline_bounds(adaptive_cfg, dl_cfg)

    if not correct:
        return _clamp(round(current_deadline * dl_cfg.increase_factor), min_deadline, max_deadline)

    target = current_deadline * dl_cfg.decrease_factor
    if response_time_ms is not None and response_time_ms > 0:
        anchored = response_time_ms * dl_cfg.headroom_multiplier
        target = min(target, anchored)

    floor = current_deadline * dl_cfg.max_drop_factor
    return _clamp(round(max(target, floor)), min_deadline, max_deadline)


class DeadlineTracker:
    """
    Manages per-item deadlines with persistence.

    ``get_deadline`` must be called before ``record_outcome`` for an item;
    it cold-starts and persists the deadline on first use.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        adaptive_config: AdaptiveConfig,
        deadline_config: DeadlineConfig = DEFAULT_DEADLINE_CONFIG,
    ):
        self.storage = storage
        self.adaptive_config = adaptive_config
        self.deadline_config = deadline_config

    def _scaled_config(self, response_count: int) -> AdaptiveConfig:
        return scale_for_response_count(self.adaptive_config, response_count)

    def get_deadline(self, item_id: str, ewma: float | None, response_count: int = 1) -> int:
        """
        Get the current deadline for an item.

        Args:
            item_id: The item identifier
            ewma: Rolling-average response time (None if unseen)
            response_count: Expected physical responses per question

        Returns:
            Persisted deadline if present, otherwise a fresh cold-start value
        """
        stored = self.storage.get_deadline(item_id)
        if stored is not None and stored > 0:
            return round(stored)
        initial = compute_initial_deadline(ewma, self._scaled_config(response_count), self.deadline_config)
        self.storage.save_deadline(item_id, initial)
        return initial

    def record_outcome(
        self,
        item_id: str,
        correct: bool,
        response_count: int = 1,
        response_time_ms: float | None = None,
    ) -> int | None:
        """
        Adjust and persist the deadline after an answer or timeout.

        Returns:
            The new deadline, or None if no deadline was stored (a caller
            sequencing bug: get_deadline was not called first)
        """
        current = self.storage.get_deadline(item_id)
        if current is None:
            logger.warning(f"record_outcome for {item_id} before get_deadline; ignoring")
            return None
        new_deadline = adjust_deadline(
            current,
            correct,
            self._scaled_config(response_count),
            self.deadline_config,
            response_time_ms,
        )
        self.storage.save_deadline(item_id, new_deadline)
        logger.debug(f"Deadline {item_id}: {current:.0f} -> {new_deadline}")
        return new_deadline

    def update_config(self, adaptive_config: AdaptiveConfig) -> None:
        """Swap the adaptive config reference (e.g. after calibration)."""
        self.adaptive_config = adaptive_config
