"""
Core Mastery Module.

Display bands for learner-model projections, shared by the CLI tables:
- MasteryLevel: retention bands from an automaticity score
- SpeedLevel: speed bands from a response-time average and motor baseline
- merged_automaticity: average over several items (e.g. both directions)
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from fluency.adaptive.config import REFERENCE_BASELINE_MS


class MasteryLevel(str, Enum):
    """
    Retention band for an item's automaticity.

    Bands are strict lower bounds: 0.8 exactly is SOLID, not AUTOMATIC,
    matching the selector's is_mastered check.
    """

    NOT_SEEN = "not_seen"  # no data
    NEEDS_WORK = "needs_work"  # <= 20%
    FADING = "fading"  # > 20%
    GETTING_THERE = "getting_there"  # > 40%
    SOLID = "solid"  # > 60%
    AUTOMATIC = "automatic"  # > 80%

    @classmethod
    def from_automaticity(cls, automaticity: float | None) -> MasteryLevel:
        """
        Convert a 0-1 automaticity score to a level.

        Args:
            automaticity: Score between 0 and 1, or None if never seen

        Returns:
            Corresponding MasteryLevel
        """
        if automaticity is None:
            return cls.NOT_SEEN
        elif automaticity > 0.8:
            return cls.AUTOMATIC
        elif automaticity > 0.6:
            return cls.SOLID
        elif automaticity > 0.4:
            return cls.GETTING_THERE
        elif automaticity > 0.2:
            return cls.FADING
        else:
            return cls.NEEDS_WORK

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").capitalize()

    @property
    def emoji(self) -> str:
        """Status glyph for CLI display."""
        return {
            MasteryLevel.NOT_SEEN: "○",
            MasteryLevel.NEEDS_WORK: "◔",
            MasteryLevel.FADING: "◔",
            MasteryLevel.GETTING_THERE: "◑",
            MasteryLevel.SOLID: "◕",
            MasteryLevel.AUTOMATIC: "●",
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_SEEN: "dim",
            MasteryLevel.NEEDS_WORK: "red",
            MasteryLevel.FADING: "orange3",
            MasteryLevel.GETTING_THERE: "yellow",
            MasteryLevel.SOLID: "cyan",
            MasteryLevel.AUTOMATIC: "green",
        }[self]


class SpeedLevel(str, Enum):
    """Speed band for an average response time, relative to the motor baseline."""

    NOT_SEEN = "not_seen"
    VERY_SLOW = "very_slow"
    SLOW = "slow"
    DEVELOPING = "developing"
    GOOD = "good"
    AUTOMATIC = "automatic"

    @classmethod
    def from_ms(cls, ewma: float | None, baseline: float | None = None) -> SpeedLevel:
        if ewma is None:
            return cls.NOT_SEEN
        b = baseline or REFERENCE_BASELINE_MS
        if ewma < b * 1.5:
            return cls.AUTOMATIC
        if ewma < b * 3.0:
            return cls.GOOD
        if ewma < b * 4.5:
            return cls.DEVELOPING
        if ewma < b * 6.0:
            return cls.SLOW
        return cls.VERY_SLOW

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").capitalize()

    @property
    def color(self) -> str:
        return {
            SpeedLevel.NOT_SEEN: "dim",
            SpeedLevel.VERY_SLOW: "red",
            SpeedLevel.SLOW: "orange3",
            SpeedLevel.DEVELOPING: "yellow",
            SpeedLevel.GOOD: "cyan",
            SpeedLevel.AUTOMATIC: "green",
        }[self]


def merged_automaticity(values: Iterable[float | None]) -> float | None:
    """Mean of the known scores; None if no item has data."""
    known = [v for v in values if v is not None]
    if not known:
        return None
    return sum(known) / len(known)
