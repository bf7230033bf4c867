"""
Forgetting-model simulation tables.

Pure row builders for tuning the adaptive config: recall decay, stability
updates, selection weights, multi-session stability trajectories and the
automaticity grid. Rendering is left to the caller (see ``fluency
simulate``).
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import AdaptiveConfig
from .models import ItemStats
from .recall_model import MS_PER_HOUR, compute_recall, compute_stability_after_wrong, update_stability
from .speed_model import compute_automaticity, compute_speed_score, compute_weight

RECALL_STABILITIES = [("S=4h (new)", 4.0), ("S=16h", 16.0), ("S=96h (4d)", 96.0), ("S=672h (28d)", 672.0)]
RECALL_TIME_POINTS = [("1h", 1), ("4h", 4), ("12h", 12), ("1d", 24), ("3d", 72), ("7d", 168), ("30d", 720)]

EWMA_VALUES = [1000, 1500, 2000, 3000, 4500, 6000]
RECALL_VALUES = [1.0, 0.8, 0.5, 0.3, 0.1]


def fmt_recall(value: float | None) -> str:
    if value is None:
        return "-"
    if value < 0.005:
        return "~0"
    return f"{value:.2f}"


def fmt_hours(hours: float) -> str:
    if hours < 24:
        return f"{hours:.1f}h"
    return f"{hours / 24:.1f}d"


# =============================================================================
# Recall decay
# =============================================================================


def recall_decay_rows() -> list[list[str]]:
    """P(recall) for a few half-lives at increasing elapsed times."""
    return [
        [label, *(fmt_recall(compute_recall(stability, hours)) for _, hours in RECALL_TIME_POINTS)]
        for label, stability in RECALL_STABILITIES
    ]


# =============================================================================
# Stability updates
# =============================================================================


@dataclass(frozen=True)
class StabilityScenario:
    label: str
    old_stability: float | None
    response_time: float | None = None
    elapsed_hours: float | None = None
    wrong: bool = False


STABILITY_SCENARIOS = [
    StabilityScenario("First correct answer", None, 2000),
    StabilityScenario("2nd answer, medium speed", 4, 2500, 1),
    StabilityScenario("2nd answer, fast", 4, 1000, 1),
    StabilityScenario("2nd answer, slow", 4, 7000, 1),
    StabilityScenario("Daily practice, fast", 16, 1200, 24),
    StabilityScenario("Daily practice, medium", 16, 3000, 24),
    StabilityScenario("Daily practice, slow", 16, 6000, 24),
    StabilityScenario("Weekly review, fast", 96, 1000, 168),
    StabilityScenario("Weekly review, medium", 96, 3000, 168),
    StabilityScenario("Weekly review, slow", 96, 7000, 168),
    StabilityScenario("Monthly, fast (self-corr)", 96, 900, 720),
    StabilityScenario("Monthly, medium", 96, 3000, 720),
    StabilityScenario("Monthly, slow (struggled)", 96, 7000, 720),
    StabilityScenario("3mo away, fast (self-corr)", 96, 1000, 2160),
    StabilityScenario("3mo away, slow", 96, 7000, 2160),
    StabilityScenario("Wrong (high stability)", 96, wrong=True),
    StabilityScenario("Wrong (medium stability)", 16, wrong=True),
    StabilityScenario("Wrong (low stability)", 10, wrong=True),
]


def stability_update_rows(cfg: AdaptiveConfig) -> list[list[str]]:
    """How stability changes after correct and wrong answers."""
    rows = []
    for sc in STABILITY_SCENARIOS:
        if sc.wrong:
            new_s = compute_stability_after_wrong(sc.old_stability, cfg)
        else:
            new_s = update_stability(sc.old_stability, sc.response_time, sc.elapsed_hours, cfg)
        growth = f"{new_s / sc.old_stability:.2f}x" if sc.old_stability else "-"
        rows.append(
            [
                sc.label,
                "-" if sc.old_stability is None else fmt_hours(sc.old_stability),
                "-" if sc.response_time is None else f"{sc.response_time:.0f}ms",
                "-" if sc.elapsed_hours is None else fmt_hours(sc.elapsed_hours),
                fmt_hours(new_s),
                f"{new_s / 24:.1f}d",
                growth,
            ]
        )
    return rows


# =============================================================================
# Selection weights
# =============================================================================


WEIGHT_SCENARIOS = [
    # (label, ewma, stability, hours since last correct)
    ("Fast (1000ms), just answered", 1000, 4.0, 0.0),
    ("Medium (2500ms), just answered", 2500, 4.0, 0.0),
    ("Slow (5000ms), just answered", 5000, 4.0, 0.0),
    ("Fast (1000ms), recall~0.8", 1000, 4.0, 4 * 0.32),
    ("Fast (1000ms), recall~0.5", 1000, 4.0, 4.0),
    ("Fast (1000ms), recall~0.3", 1000, 4.0, 4 * 1.74),
    ("Slow (5000ms), recall~0.5", 5000, 4.0, 4.0),
    ("Slow (5000ms), recall~0.3", 5000, 4.0, 4 * 1.74),
    ("Fast (1000ms), no stability data", 1000, None, None),
    ("Slow (5000ms), no stability data", 5000, None, None),
]


def weight_rows(cfg: AdaptiveConfig, now_ms: float = 0.0) -> list[list[str]]:
    """Selection weight of typical item states, relative to an unseen item."""
    unseen = compute_weight(None, cfg, now_ms)
    rows = [["Unseen", "-", "-", "-", f"{unseen:.2f}", "-"]]
    for label, ewma, stability, hours_ago in WEIGHT_SCENARIOS:
        last_correct_at = None if hours_ago is None else now_ms - hours_ago * MS_PER_HOUR
        stats = ItemStats(
            ewma=ewma,
            recent_times=[ewma],
            sample_count=1,
            last_seen=now_ms,
            stability=stability,
            last_correct_at=last_correct_at,
        )
        speed_w = max(ewma, cfg.min_time) / cfg.min_time
        total = compute_weight(stats, cfg, now_ms)
        recall = compute_recall(stability, hours_ago)
        rows.append(
            [
                label,
                f"{speed_w:.2f}",
                "-" if recall is None else f"{recall:.2f}",
                "-" if recall is None else f"{1 + (1 - recall):.2f}",
                f"{total:.2f}",
                f"{total / unseen:.2f}x",
            ]
        )
    return rows


# =============================================================================
# Trajectories
# =============================================================================


TRAJECTORIES = [
    ("Daily, fast (1200ms)", 24, 1200),
    ("Daily, medium (3000ms)", 24, 3000),
    ("Daily, slow (6000ms)", 24, 6000),
    ("Every-other-day, fast", 48, 1200),
]


def stability_trajectory(
    cfg: AdaptiveConfig,
    interval_hours: float,
    response_time: float,
    sessions: int = 10,
) -> list[float]:
    """Stability after each of ``sessions`` correct answers spaced evenly."""
    stability: float | None = None
    result = []
    for _ in range(sessions):
        elapsed = None if stability is None else interval_hours
        stability = update_stability(stability, response_time, elapsed, cfg)
        result.append(stability)
    return result


# =============================================================================
# Automaticity
# =============================================================================


def speed_score_rows(cfg: AdaptiveConfig) -> list[list[str]]:
    return [[f"{ewma}ms", f"{compute_speed_score(ewma, cfg):.2f}"] for ewma in EWMA_VALUES]


def automaticity_rows(cfg: AdaptiveConfig) -> list[list[str]]:
    """Automaticity grid: one row per recall level, one column per EWMA."""
    return [
        [
            f"P={recall:.1f}",
            *(f"{compute_automaticity(recall, compute_speed_score(ewma, cfg)):.2f}" for ewma in EWMA_VALUES),
        ]
        for recall in RECALL_VALUES
    ]
