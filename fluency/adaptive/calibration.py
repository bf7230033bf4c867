"""
Motor-baseline calibration.

Measures raw tap speed with a short forced-choice sequence: one target is
highlighted per trial and the learner taps it as fast as possible. The
median latency (warmup trials excluded) becomes the motor baseline, which
rescales every absolute timing threshold in the adaptive config.

Abandoning a run discards its measurements; the previously stored
baseline (if any) stays in effect.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from loguru import logger

from .config import DEFAULT_CONFIG, AdaptiveConfig, derive_scaled_config
from .models import CalibrationThreshold
from .selector import wall_clock_ms
from .speed_model import compute_median

if TYPE_CHECKING:
    from fluency.delivery.state_store import StorageAdapter

    from .deadline import DeadlineTracker
    from .selector import AdaptiveSelector

TRIAL_COUNT = 10
# First taps are slow while the learner orients to the task
WARMUP_TRIALS = 2


def get_calibration_thresholds(baseline: float) -> list[CalibrationThreshold]:
    """Human-readable speed bands for a measured baseline."""
    return [
        CalibrationThreshold("Automatic", round(baseline * 1.5), "Fully memorized - instant recall"),
        CalibrationThreshold("Good", round(baseline * 3.0), "Solid recall, minor hesitation"),
        CalibrationThreshold("Developing", round(baseline * 4.5), "Working on it - needs practice"),
        CalibrationThreshold("Slow", round(baseline * 6.0), "Significant hesitation"),
        CalibrationThreshold("Very slow", None, "Not yet learned"),
    ]


def is_valid_baseline(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


class CalibrationRunner:
    """
    Runs one calibration sequence.

    Usage:
        runner = CalibrationRunner(["C", "D", "E"], on_complete=apply)
        target = runner.start()
        runner.press(target)  # repeated for each trial
    """

    def __init__(
        self,
        targets: Sequence[str],
        on_complete: Callable[[float | None], None],
        clock: Callable[[], float] = wall_clock_ms,
        rng: Callable[[], float] = random.random,
        trial_count: int = TRIAL_COUNT,
        warmup_trials: int = WARMUP_TRIALS,
    ):
        """
        Initialize a calibration run.

        Args:
            targets: Tappable controls (at least two)
            on_complete: Receives the median latency (None if nothing measured)
            clock: Epoch-millisecond clock
            rng: Source of draws in [0, 1)
            trial_count: Trials in the sequence
            warmup_trials: Leading trials excluded from the median

        Raises:
            ValueError: If fewer than two targets are given
        """
        if len(targets) < 2:
            raise ValueError("calibration needs at least two targets")
        self.targets = list(targets)
        self.on_complete = on_complete
        self.trial_count = trial_count
        self.warmup_trials = warmup_trials
        self._clock = clock
        self._rng = rng

        self.times: list[float] = []
        self.trial_index = 0
        self.current_target: str | None = None
        self.canceled = False
        self.completed = False
        self.median: float | None = None
        self._trial_start: float | None = None

    @property
    def is_running(self) -> bool:
        return self.current_target is not None

    @property
    def progress(self) -> tuple[int, int]:
        """(completed trials, total trials)."""
        return self.trial_index, self.trial_count

    def start(self) -> str | None:
        """Begin the first trial; returns the highlighted target."""
        if self.canceled or self.completed:
            return None
        return self._start_trial()

    def _start_trial(self) -> str | None:
        if self.trial_index >= self.trial_count:
            self._finish()
            return None
        previous = self.current_target
        choices = [t for t in self.targets if t != previous]
        self.current_target = choices[min(int(self._rng() * len(choices)), len(choices) - 1)]
        self._trial_start = self._clock()
        return self.current_target

    def press(self, target: str) -> bool:
        """
        Register a tap.

        Args:
            target: The control that was tapped

        Returns:
            True if it hit the highlighted target (the trial advanced)
        """
        if not self.is_running or target != self.current_target:
            return False

        elapsed = self._clock() - self._trial_start
        if self.trial_index >= self.warmup_trials:
            self.times.append(elapsed)
        self.trial_index += 1
        self._start_trial()
        return True

    def cancel(self) -> None:
        """Abandon the run; measurements are discarded and no callback fires."""
        if self.completed:
            return
        self.canceled = True
        self.current_target = None
        self._trial_start = None
        self.times.clear()
        logger.debug("Calibration canceled")

    def _finish(self) -> None:
        self.current_target = None
        self._trial_start = None
        self.completed = True
        self.median = compute_median(self.times)
        logger.debug(f"Calibration finished: median={self.median}")
        self.on_complete(self.median)


class MotorBaseline:
    """
    Loads, applies and persists the motor baseline for one provider.

    The provider groups quiz modes that share the same kind of input
    (e.g. on-screen buttons), so one calibration serves all of them.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        provider: str = "button",
        base_config: AdaptiveConfig = DEFAULT_CONFIG,
    ):
        self.storage = storage
        self.provider = provider
        self.base_config = base_config
        self.value: float | None = None

    def load(self) -> float | None:
        """Read the stored baseline; malformed values read as absent."""
        stored = self.storage.get_baseline(self.provider)
        self.value = stored if is_valid_baseline(stored) else None
        return self.value

    def scaled_config(self) -> AdaptiveConfig:
        """Adaptive config for the current baseline (defaults if none)."""
        if self.value is None:
            return self.base_config
        return derive_scaled_config(self.value, self.base_config)

    def restore(
        self,
        selector: AdaptiveSelector,
        deadline_tracker: DeadlineTracker | None = None,
    ) -> AdaptiveConfig:
        """Load the stored baseline and push the matching config."""
        self.load()
        cfg = self.scaled_config()
        selector.update_config(cfg)
        if deadline_tracker is not None:
            deadline_tracker.update_config(cfg)
        return cfg

    def apply(
        self,
        baseline: float,
        selector: AdaptiveSelector,
        deadline_tracker: DeadlineTracker | None = None,
    ) -> AdaptiveConfig:
        """
        Persist a freshly measured baseline and push the rescaled config.

        Args:
            baseline: Median tap latency in ms
            selector: Receives the new config
            deadline_tracker: Receives the new config, if given

        Returns:
            The applied AdaptiveConfig

        Raises:
            ValueError: If the baseline is not a positive finite number
        """
        if not is_valid_baseline(baseline):
            raise ValueError(f"invalid motor baseline: {baseline!r}")
        self.value = round(baseline)
        self.storage.save_baseline(self.provider, self.value)
        cfg = self.scaled_config()
        selector.update_config(cfg)
        if deadline_tracker is not None:
            deadline_tracker.update_config(cfg)
        logger.info(f"Motor baseline for {self.provider} set to {self.value}ms")
        return cfg
