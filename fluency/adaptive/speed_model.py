"""
Speed Model - response speed, automaticity and selection weights.

Pure functions. The speed score maps a rolling-average response time
onto [0, 1] with exponential decay:

    min_time            -> 1.0 (fully automatic)
    automaticity_target -> 0.5
    very slow           -> approaches 0

Automaticity = recall * speed: "do I know this without thinking?"
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from .config import AdaptiveConfig
from .models import ItemStats
from .recall_model import compute_recall, hours_between


def compute_speed_score(
    ewma_ms: float | None,
    cfg: AdaptiveConfig,
    response_count: int = 1,
) -> float | None:
    """
    Normalize a rolling-average response time into a speed score.

    For multi-response items the thresholds are scaled by response_count
    so the ratios stay the same.

    Args:
        ewma_ms: Rolling-average response time (None if unavailable)
        cfg: Adaptive configuration
        response_count: Expected physical responses per question

    Returns:
        Score in [0, 1], or None if ewma_ms is None
    """
    if ewma_ms is None:
        return None
    count = max(1, response_count)
    effective_min = cfg.min_time * count
    effective_target = cfg.automaticity_target * count
    if effective_target <= effective_min:
        return 1.0 if ewma_ms <= effective_min else 0.0
    k = math.log(2) / (effective_target - effective_min)
    score = math.exp(-k * max(0.0, ewma_ms - effective_min))
    return max(0.0, min(1.0, score))


def compute_automaticity(recall: float | None, speed_score: float | None) -> float | None:
    """Combine recall and speed; None if either signal is missing."""
    if recall is None or speed_score is None:
        return None
    return max(0.0, min(1.0, recall * speed_score))


def compute_automaticity_for_display(
    recall: float | None,
    speed_score: float | None,
    has_seen: bool,
) -> float | None:
    """
    Like compute_automaticity, but 0 for seen items with incomplete data.

    An attempted-but-never-correct item shows as "needs work" rather
    than "no data".
    """
    value = compute_automaticity(recall, speed_score)
    if value is None and has_seen:
        return 0.0
    return value


def compute_weight(stats: ItemStats | None, cfg: AdaptiveConfig, now_ms: float) -> float:
    """
    Compute the selection weight for an item.

    - Unseen items get unseen_boost.
    - Seen items get max(ewma, min_time) / min_time (slower = heavier),
      times 1 + (1 - recall) when recall is known.

    Args:
        stats: Stored stats (None if never seen)
        cfg: Adaptive configuration (already scaled for the item)
        now_ms: Current epoch time in ms

    Returns:
        Positive weight
    """
    if stats is None:
        return cfg.unseen_boost
    min_time = max(cfg.min_time, 1.0)
    speed_weight = max(stats.ewma, min_time) / min_time
    if stats.has_correct_answer:
        recall = compute_recall(stats.stability, hours_between(stats.last_correct_at, now_ms))
        if recall is not None:
            return speed_weight * (1 + (1 - recall))
    return speed_weight


def select_weighted(items: Sequence[str], weights: Sequence[float], rand: float) -> str:
    """
    Weighted random selection.

    Args:
        items: Candidate ids (non-empty)
        weights: Non-negative weights, one per item
        rand: Random draw in [0, 1), injected for deterministic tests

    Returns:
        The chosen item
    """
    total = sum(weights)
    if total <= 0:
        return items[min(int(rand * len(items)), len(items) - 1)]
    remaining = rand * total
    for item, weight in zip(items, weights):
        remaining -= weight
        if remaining < 0 or (remaining <= 0 and weight > 0):
            return item
    # Rounding left a sliver: fall back to the last item that can be chosen
    for item, weight in zip(reversed(items), reversed(weights)):
        if weight > 0:
            return item
    return items[-1]


def compute_median(values: Sequence[float]) -> float | None:
    """Median of a sequence (None if empty); does not mutate the input."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2
