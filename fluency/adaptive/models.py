"""
Data records for the adaptive learner model.

- ItemStats: per-item speed and memory state (persisted)
- GroupRecommendation: per-group aggregate fed to the recommendation engine
- RecommendationResult: which groups to highlight and enable
- CalibrationThreshold: labeled speed band derived from a motor baseline
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass
class ItemStats:
    """
    Speed and memory state for a single item.

    ``stability`` is None exactly when the item has never been
    answered correctly.
    """

    ewma: float  # rolling average response time (ms)
    recent_times: list[float] = field(default_factory=list)  # newest last
    sample_count: int = 0
    last_seen: float = 0  # epoch ms
    stability: float | None = None  # half-life in hours
    last_correct_at: float | None = None  # epoch ms

    @property
    def has_correct_answer(self) -> bool:
        """Whether recall can be estimated for this item."""
        return self.stability is not None and self.last_correct_at is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "ewma": self.ewma,
            "recent_times": list(self.recent_times),
            "sample_count": self.sample_count,
            "last_seen": self.last_seen,
            "stability": self.stability,
            "last_correct_at": self.last_correct_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ItemStats | None:
        """
        Build ItemStats from a persisted dictionary.

        Malformed records are treated as absent.

        Args:
            data: Decoded JSON value

        Returns:
            ItemStats, or None if the record is unusable
        """
        if not isinstance(data, dict):
            return None

        ewma = data.get("ewma")
        times = data.get("recent_times", [])
        sample_count = data.get("sample_count", 0)
        last_seen = data.get("last_seen", 0)
        stability = data.get("stability")
        last_correct_at = data.get("last_correct_at")

        if not _is_number(ewma) or ewma < 0:
            return None
        if not isinstance(times, list) or not all(_is_number(t) for t in times):
            return None
        if not _is_number(sample_count) or not _is_number(last_seen):
            return None
        if stability is not None and (not _is_number(stability) or stability < 0):
            return None
        if last_correct_at is not None and not _is_number(last_correct_at):
            return None

        return cls(
            ewma=float(ewma),
            recent_times=[float(t) for t in times],
            sample_count=int(sample_count),
            last_seen=float(last_seen),
            stability=None if stability is None else float(stability),
            last_correct_at=None if last_correct_at is None else float(last_correct_at),
        )


@dataclass(frozen=True)
class GroupRecommendation:
    """Aggregate item counts for one group (e.g. a string or distance group)."""

    index: int
    due_count: int
    unseen_count: int
    mastered_count: int
    total_count: int

    @property
    def pending_work(self) -> int:
        """Items that still need practice."""
        return self.due_count + self.unseen_count

    @property
    def is_started(self) -> bool:
        """At least one item in the group has been seen."""
        return self.unseen_count < self.total_count


@dataclass
class RecommendationResult:
    """Output of the consolidate-before-expanding heuristic."""

    recommended: set[int] = field(default_factory=set)  # advisory highlight
    enabled: set[int] | None = None  # groups the caller should activate
    consolidate_indices: list[int] = field(default_factory=list)
    consolidate_due_count: int = 0
    expand_index: int | None = None
    expand_new_count: int = 0


@dataclass(frozen=True)
class CalibrationThreshold:
    """A labeled response-time band shown after calibration."""

    label: str
    max_ms: int | None  # None = open-ended
    meaning: str
