"""
Adaptive Selector.

Orchestrates the storage adapter and the recall/speed models:
- Records outcomes and updates per-item state
- Computes selection weights and picks the next item
- Aggregates per-group statistics for the recommendation engine

Selection favors items the learner is slower on or is likely to have
forgotten, with an exploration boost for unseen items. The item shown
last is never repeated immediately.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from loguru import logger

from .config import DEFAULT_CONFIG, AdaptiveConfig, scale_for_response_count
from .models import GroupRecommendation, ItemStats
from .recall_model import (
    compute_ewma,
    compute_recall,
    compute_stability_after_wrong,
    hours_between,
    update_stability,
)
from .speed_model import (
    compute_automaticity_for_display,
    compute_speed_score,
    compute_weight,
    select_weighted,
)

if TYPE_CHECKING:
    from fluency.delivery.state_store import StorageAdapter


def wall_clock_ms() -> float:
    """Current epoch time in milliseconds."""
    return time.time() * 1000


class AdaptiveSelector:
    """
    Per-item learner model backed by an injected storage adapter.

    The active config is a frozen value; ``update_config`` swaps it
    wholesale and never rewrites stored item state.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        config: AdaptiveConfig = DEFAULT_CONFIG,
        rng: Callable[[], float] = random.random,
        response_count_fn: Callable[[str], int] | None = None,
        clock: Callable[[], float] = wall_clock_ms,
    ):
        """
        Initialize the selector.

        Args:
            storage: Persistence for item stats and last selection
            config: Adaptive configuration
            rng: Source of draws in [0, 1)
            response_count_fn: Expected responses per item (default 1)
            clock: Epoch-millisecond clock
        """
        self.storage = storage
        self._config = config
        self._rng = rng
        self._response_count_fn = response_count_fn
        self._clock = clock

    # =========================================================================
    # Config
    # =========================================================================

    def get_config(self) -> AdaptiveConfig:
        return self._config

    def update_config(self, config: AdaptiveConfig) -> None:
        """Swap the active config (e.g. after calibration)."""
        self._config = config
        logger.debug(f"Adaptive config updated: min_time={config.min_time}")

    def response_count(self, item_id: str) -> int:
        if self._response_count_fn is None:
            return 1
        return max(1, int(self._response_count_fn(item_id)))

    def item_config(self, item_id: str) -> AdaptiveConfig:
        """Active config scaled for the item's response count."""
        return scale_for_response_count(self._config, self.response_count(item_id))

    # =========================================================================
    # Recording
    # =========================================================================

    def record_response(self, item_id: str, response_time_ms: float, correct: bool = True) -> None:
        """
        Record one answer and persist the updated stats.

        Args:
            item_id: The answered item
            response_time_ms: Time to answer
            correct: Whether the answer was correct
        """
        cfg = self.item_config(item_id)
        clamped = max(0.0, min(float(response_time_ms), cfg.max_response_time))
        existing = self.storage.get_stats(item_id)
        now = self._clock()

        if existing is None:
            ewma = clamped
            recent_times = [clamped]
            sample_count = 1
            stability = None
            last_correct_at = None
        else:
            ewma = compute_ewma(existing.ewma, clamped, self._config.ewma_alpha)
            recent_times = [*existing.recent_times, clamped][-self._config.max_stored_times :]
            sample_count = existing.sample_count + 1
            stability = existing.stability
            last_correct_at = existing.last_correct_at

        if correct:
            elapsed_hours = hours_between(last_correct_at, now)
            stability = update_stability(stability, clamped, elapsed_hours, cfg)
            last_correct_at = now
        else:
            stability = compute_stability_after_wrong(stability, cfg)

        self.storage.save_stats(
            item_id,
            ItemStats(
                ewma=ewma,
                recent_times=recent_times,
                sample_count=sample_count,
                last_seen=now,
                stability=stability,
                last_correct_at=last_correct_at,
            ),
        )

        logger.debug(
            f"Recorded {item_id}: {'correct' if correct else 'wrong'} in {clamped:.0f}ms, "
            f"ewma={ewma:.0f}, stability={stability}"
        )

    # =========================================================================
    # Selection
    # =========================================================================

    def get_weight(self, item_id: str) -> float:
        return compute_weight(self.storage.get_stats(item_id), self.item_config(item_id), self._clock())

    def select_next(self, candidates: Sequence[str]) -> str:
        """
        Pick the next item by weighted random choice.

        Args:
            candidates: Non-empty list of eligible item ids

        Returns:
            The chosen item id

        Raises:
            ValueError: If candidates is empty
        """
        if not candidates:
            raise ValueError("candidates cannot be empty")

        if len(candidates) == 1:
            selected = candidates[0]
        else:
            last = self.storage.get_last_selected()
            weights = [0.0 if item_id == last else self.get_weight(item_id) for item_id in candidates]
            selected = select_weighted(candidates, weights, self._rng())

        self.storage.set_last_selected(selected)
        return selected

    # =========================================================================
    # Projections
    # =========================================================================

    def get_stats(self, item_id: str) -> ItemStats | None:
        return self.storage.get_stats(item_id)

    def get_recall(self, item_id: str) -> float | None:
        """Current recall probability, decaying with wall-clock time."""
        stats = self.storage.get_stats(item_id)
        if stats is None or not stats.has_correct_answer:
            return None
        return compute_recall(stats.stability, hours_between(stats.last_correct_at, self._clock()))

    def get_speed_score(self, item_id: str) -> float | None:
        stats = self.storage.get_stats(item_id)
        if stats is None:
            return None
        return compute_speed_score(stats.ewma, self._config, self.response_count(item_id))

    def get_automaticity(self, item_id: str) -> float | None:
        """Recall x speed; 0 for seen items that were never answered correctly."""
        stats = self.storage.get_stats(item_id)
        if stats is None:
            return None
        return compute_automaticity_for_display(
            self.get_recall(item_id),
            self.get_speed_score(item_id),
            has_seen=True,
        )

    def is_mastered(self, item_id: str) -> bool:
        automaticity = self.get_automaticity(item_id)
        return automaticity is not None and automaticity > self._config.automaticity_threshold

    # =========================================================================
    # Aggregates
    # =========================================================================

    def get_string_recommendations(
        self,
        group_indices: Sequence[int],
        get_item_ids: Callable[[int], Sequence[str]],
    ) -> list[GroupRecommendation]:
        """
        Aggregate item counts per group.

        - mastered: automaticity above automaticity_threshold
        - unseen: no stats at all
        - due: seen but not mastered

        Args:
            group_indices: Groups to aggregate, in caller order
            get_item_ids: Maps a group index to its item ids

        Returns:
            One GroupRecommendation per group, in the same order
        """
        results = []
        for index in group_indices:
            due = unseen = mastered = 0
            for item_id in get_item_ids(index):
                if self.storage.get_stats(item_id) is None:
                    unseen += 1
                elif self.is_mastered(item_id):
                    mastered += 1
                else:
                    due += 1
            results.append(
                GroupRecommendation(
                    index=index,
                    due_count=due,
                    unseen_count=unseen,
                    mastered_count=mastered,
                    total_count=due + unseen + mastered,
                )
            )
        return results

    def check_all_mastered(self, item_ids: Sequence[str]) -> bool:
        """All items are currently retained (recall >= recall_threshold)."""
        for item_id in item_ids:
            recall = self.get_recall(item_id)
            if recall is None or recall < self._config.recall_threshold:
                return False
        return len(item_ids) > 0

    def check_all_automatic(self, item_ids: Sequence[str]) -> bool:
        """All items are both remembered and fast."""
        return len(item_ids) > 0 and all(self.is_mastered(item_id) for item_id in item_ids)

    def check_needs_review(self, item_ids: Sequence[str]) -> bool:
        """
        Check whether previously fluent material has decayed.

        True only when every item had high prior skill (at least two
        samples, a correct answer, speed score >= 0.5) and at least one
        item's recall has since dropped below recall_threshold.
        """
        if not item_ids:
            return False
        has_due = False
        for item_id in item_ids:
            stats = self.storage.get_stats(item_id)
            if stats is None or stats.last_correct_at is None or stats.sample_count < 2:
                return False
            speed = self.get_speed_score(item_id)
            if speed is None or speed < 0.5:
                return False
            recall = self.get_recall(item_id)
            if recall is not None and recall < self._config.recall_threshold:
                has_due = True
        return has_due
