"""
Drill session controller.

Connects a quiz mode to the learner model: picks questions with the
AdaptiveSelector, enforces per-question deadlines from the
DeadlineTracker, runs fixed-length rounds, and drives the pure
engine_state transitions. All timing goes through TimerSlots on one
event loop, so stopping a session cancels every pending callback.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from loguru import logger

from fluency.adaptive.calibration import TRIAL_COUNT, WARMUP_TRIALS, CalibrationRunner, MotorBaseline
from fluency.adaptive.deadline import DeadlineTracker
from fluency.adaptive.selector import AdaptiveSelector, wall_clock_ms
from fluency.config import Settings, get_settings

from .engine_state import (
    EnginePhase,
    EngineState,
    KeyAction,
    engine_calibrating,
    engine_calibration_intro,
    engine_calibration_results,
    engine_continue_round,
    engine_next_question,
    engine_round_complete,
    engine_round_timer_expired,
    engine_start,
    engine_stop,
    engine_submit_answer,
    engine_timed_out,
    engine_update_idle_message,
    engine_update_mastery_after_answer,
    engine_update_progress,
    initial_engine_state,
    route_key,
)
from .key_buffer import PendingKeyBuffer
from .state_store import StorageAdapter
from .timers import SupportsCallLater, TimerSlot

ROUND_DURATION_MS = 60000
AUTO_ADVANCE_MS = 1000
# Feedback stays visible this long before a finished round is shown
EXPIRED_FEEDBACK_MS = 600


@runtime_checkable
class QuizMode(Protocol):
    """What a drill needs from a concrete quiz (notes, intervals, ...)."""

    def get_enabled_items(self) -> Sequence[str]: ...

    def check_answer(self, item_id: str, answer: str) -> tuple[bool, str]:
        """Return (correct, correct_answer_text)."""
        ...


class DrillSession:
    """
    One learner's drill on one quiz mode.

    Usage:
        session = DrillSession(mode, selector, deadline_tracker=tracker)
        session.start()
        session.handle_key("C")
    """

    def __init__(
        self,
        mode: QuizMode,
        selector: AdaptiveSelector,
        deadline_tracker: DeadlineTracker | None = None,
        motor_baseline: MotorBaseline | None = None,
        calibration_targets: Sequence[str] = (),
        clock: Callable[[], float] = wall_clock_ms,
        rng: Callable[[], float] = random.random,
        loop: SupportsCallLater | None = None,
        round_duration_ms: float = ROUND_DURATION_MS,
        auto_advance_ms: float = AUTO_ADVANCE_MS,
        calibration_trials: int = TRIAL_COUNT,
        calibration_warmup_trials: int = WARMUP_TRIALS,
        on_change: Callable[[EngineState], None] | None = None,
    ):
        """
        Initialize the session.

        Args:
            mode: Provides items and answer checking
            selector: Learner model
            deadline_tracker: Per-question time limits (no limit if None)
            motor_baseline: Persisted reaction-speed baseline
            calibration_targets: Keys used for calibration trials
            clock: Epoch-millisecond clock
            rng: Draws for calibration target choice
            loop: Timer loop (the running asyncio loop if None)
            round_duration_ms: Length of one round
            auto_advance_ms: Delay before the next question after an answer
            calibration_trials: Trials per calibration run
            calibration_warmup_trials: Leading trials excluded from the median
            on_change: Called with the new state after every transition
        """
        self.mode = mode
        self.selector = selector
        self.deadline_tracker = deadline_tracker
        self.motor_baseline = motor_baseline
        self.calibration_targets = list(calibration_targets)
        self.round_duration_ms = round_duration_ms
        self.auto_advance_ms = auto_advance_ms
        self.calibration_trials = calibration_trials
        self.calibration_warmup_trials = calibration_warmup_trials
        self.on_change = on_change
        self._clock = clock
        self._rng = rng

        self._state = initial_engine_state()
        self._round_start: float | None = None
        self._deadline_ms: int | None = None
        self._calibration: CalibrationRunner | None = None
        self.calibration_target: str | None = None

        self._question_timer = TimerSlot("question", loop)
        self._round_timer = TimerSlot("round", loop)
        self._advance_timer = TimerSlot("auto-advance", loop)
        self._expired_timer = TimerSlot("round-expired", loop)
        self.key_buffer = PendingKeyBuffer(
            self.submit_answer,
            allow_accidentals=lambda: getattr(mode, "allow_accidentals", True),
            max_number=getattr(mode, "max_number", None),
            loop=loop,
        )

    @classmethod
    def from_settings(
        cls,
        mode: QuizMode,
        storage: StorageAdapter,
        settings: Settings | None = None,
        calibration_targets: Sequence[str] = (),
        provider: str = "button",
        clock: Callable[[], float] = wall_clock_ms,
        rng: Callable[[], float] = random.random,
        loop: SupportsCallLater | None = None,
        on_change: Callable[[EngineState], None] | None = None,
    ) -> DrillSession:
        """
        Build a session with its selector, deadline tracker and motor
        baseline configured from Settings.

        Args:
            mode: Provides items and answer checking
            storage: Learner-state persistence for this mode's namespace
            settings: Defaults to get_settings()
            calibration_targets: Keys used for calibration trials
            provider: Calibration provider whose baseline applies
            clock: Epoch-millisecond clock
            rng: Draws for item selection and calibration
            loop: Timer loop (the running asyncio loop if None)
            on_change: Called with the new state after every transition
        """
        settings = settings or get_settings()
        base_config = settings.adaptive_config()
        selector = AdaptiveSelector(
            storage,
            base_config,
            rng=rng,
            response_count_fn=getattr(mode, "get_expected_response_count", None),
            clock=clock,
        )
        return cls(
            mode,
            selector,
            deadline_tracker=DeadlineTracker(storage, base_config, settings.deadline_config()),
            motor_baseline=MotorBaseline(storage, provider, base_config),
            calibration_targets=calibration_targets,
            clock=clock,
            rng=rng,
            loop=loop,
            round_duration_ms=settings.round_duration_ms,
            auto_advance_ms=settings.auto_advance_ms,
            calibration_trials=settings.calibration_trials,
            calibration_warmup_trials=settings.calibration_warmup_trials,
            on_change=on_change,
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state.phase == EnginePhase.ACTIVE

    @property
    def current_deadline_ms(self) -> int | None:
        """Time limit of the open question, if any."""
        return self._deadline_ms

    def _set_state(self, state: EngineState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

    def _response_count(self, item_id: str) -> int:
        get_count = getattr(self.mode, "get_expected_response_count", None)
        if get_count is None:
            return 1
        return max(1, int(get_count(item_id)))

    def compute_progress(self) -> tuple[int, int]:
        """(mastered, total) over the mode's enabled items."""
        items = self.mode.get_enabled_items()
        mastered = sum(1 for item_id in items if self.selector.is_mastered(item_id))
        return mastered, len(items)

    # =========================================================================
    # Quiz lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the first round and present a question."""
        self.key_buffer.reset()
        state = engine_start(self._state, self._clock())
        mastered, total = self.compute_progress()
        self._set_state(engine_update_progress(state, mastered, total))
        logger.info(f"Drill started with {total} enabled items")
        self._start_round_timer()
        self.next_question()

    def next_question(self) -> None:
        """Advance to the next question, or end the round if its timer expired."""
        self._advance_timer.cancel()
        if self._state.round_timer_expired:
            self._transition_to_round_complete()
            return

        items = self.mode.get_enabled_items()
        if not items:
            logger.warning("No enabled items; nothing to ask")
            return

        item_id = self.selector.select_next(items)
        now = self._clock()
        self._set_state(engine_next_question(self._state, item_id, now))

        self._deadline_ms = None
        if self.deadline_tracker is not None:
            stats = self.selector.get_stats(item_id)
            self._deadline_ms = self.deadline_tracker.get_deadline(
                item_id,
                stats.ewma if stats is not None else None,
                self._response_count(item_id),
            )
            self._question_timer.schedule(self._deadline_ms, self._on_question_deadline, item_id)

    def submit_answer(self, answer: str) -> None:
        """Check and record an answer to the open question."""
        state = self._state
        if state.phase != EnginePhase.ACTIVE or state.answered or state.current_item_id is None:
            return

        self._question_timer.cancel()
        item_id = state.current_item_id
        response_time = self._clock() - state.question_start_time
        correct, correct_answer = self.mode.check_answer(item_id, answer)

        self.selector.record_response(item_id, response_time, correct)
        if self.deadline_tracker is not None:
            self.deadline_tracker.record_outcome(
                item_id, correct, self._response_count(item_id), response_time_ms=response_time
            )

        state = engine_submit_answer(state, correct, correct_answer, response_time)
        self._set_state(self._after_answer(state))

    def _on_question_deadline(self, item_id: str) -> None:
        state = self._state
        if state.phase != EnginePhase.ACTIVE or state.answered or state.current_item_id != item_id:
            return

        self.key_buffer.reset()
        # An empty answer is never correct; only the reveal text is used
        _, correct_answer = self.mode.check_answer(item_id, "")
        response_time = self._deadline_ms
        if response_time is None:
            response_time = self._clock() - state.question_start_time
        self.selector.record_response(item_id, response_time, False)
        if self.deadline_tracker is not None:
            self.deadline_tracker.record_outcome(item_id, False, self._response_count(item_id))
        logger.debug(f"Deadline passed for {item_id}")

        self._set_state(self._after_answer(engine_timed_out(state, correct_answer)))

    def _after_answer(self, state: EngineState) -> EngineState:
        items = self.mode.get_enabled_items()
        state = engine_update_mastery_after_answer(state, self.selector.check_all_automatic(items))
        mastered, total = self.compute_progress()
        state = engine_update_progress(state, mastered, total)

        if state.round_timer_expired:
            self._expired_timer.schedule(EXPIRED_FEEDBACK_MS, self._on_expired_feedback_done)
        else:
            self._advance_timer.schedule(self.auto_advance_ms, self._on_auto_advance)
        return state

    def _on_auto_advance(self) -> None:
        if self._state.phase == EnginePhase.ACTIVE and self._state.answered:
            self.next_question()

    def _on_expired_feedback_done(self) -> None:
        if self._state.phase == EnginePhase.ACTIVE:
            self._transition_to_round_complete()

    # =========================================================================
    # Rounds
    # =========================================================================

    def _start_round_timer(self) -> None:
        self._round_start = self._clock()
        self._round_timer.schedule(self.round_duration_ms, self._on_round_timer)

    def _on_round_timer(self) -> None:
        """Answered: end the round now. Mid-question: it is the last one."""
        if self._state.phase != EnginePhase.ACTIVE:
            return
        self._set_state(engine_round_timer_expired(self._state))
        if self._state.answered:
            self._transition_to_round_complete()

    def _transition_to_round_complete(self) -> None:
        duration = self._clock() - self._round_start if self._round_start is not None else 0
        self._cancel_question_timers()
        self._round_timer.cancel()
        self._round_start = None
        self._set_state(engine_round_complete(self._state, duration))
        logger.info(
            f"Round {self._state.round_number} complete: "
            f"{self._state.round_correct}/{self._state.round_answered} correct"
        )

    def continue_round(self) -> None:
        """Start another round after the round summary."""
        if self._state.phase != EnginePhase.ROUND_COMPLETE:
            return
        self._set_state(engine_continue_round(self._state))
        self._start_round_timer()
        self.next_question()

    def _cancel_question_timers(self) -> None:
        self._question_timer.cancel()
        self._advance_timer.cancel()
        self._expired_timer.cancel()
        self.key_buffer.reset()
        self._deadline_ms = None

    def stop(self) -> None:
        """Return to idle from any phase, cancelling timers and calibration."""
        self._cancel_question_timers()
        self._round_timer.cancel()
        self._round_start = None
        if self._calibration is not None:
            self._calibration.cancel()
            self._calibration = None
        self.calibration_target = None
        self._set_state(engine_stop(self._state))
        self.update_idle_message()

    def update_idle_message(self) -> None:
        if self._state.phase != EnginePhase.IDLE:
            return
        items = self.mode.get_enabled_items()
        self._set_state(
            engine_update_idle_message(
                self._state,
                self.selector.check_all_automatic(items),
                self.selector.check_needs_review(items),
            )
        )

    # =========================================================================
    # Calibration
    # =========================================================================

    def show_calibration_if_needed(self) -> bool:
        """Open the calibration intro when no baseline is stored yet."""
        if self.motor_baseline is None or self._state.phase != EnginePhase.IDLE:
            return False
        self.motor_baseline.restore(self.selector, self.deadline_tracker)
        if self.motor_baseline.value is not None:
            return False
        self.start_calibration()
        return True

    def start_calibration(self) -> None:
        self.key_buffer.reset()
        self._set_state(engine_calibration_intro(self._state))

    def begin_calibration_trials(self) -> None:
        """Leave the intro and run the trials; too few targets aborts to idle."""
        if len(self.calibration_targets) < 2:
            logger.warning("Calibration needs at least two targets; stopping")
            self.stop()
            return

        self._set_state(engine_calibrating(self._state))
        self._calibration = CalibrationRunner(
            self.calibration_targets,
            on_complete=self._on_calibration_complete,
            clock=self._clock,
            rng=self._rng,
            trial_count=self.calibration_trials,
            warmup_trials=self.calibration_warmup_trials,
        )
        self.calibration_target = self._calibration.start()

    def press_calibration(self, target: str) -> bool:
        """Register a calibration tap; True if it hit the highlighted target."""
        runner = self._calibration
        if runner is None or self._state.phase != EnginePhase.CALIBRATING:
            return False
        hit = runner.press(target)
        if hit and self._calibration is runner:
            self.calibration_target = runner.current_target
        return hit

    def _on_calibration_complete(self, median: float | None) -> None:
        self._calibration = None
        self.calibration_target = None
        if median is None or self.motor_baseline is None:
            self.stop()
            return
        try:
            self.motor_baseline.apply(median, self.selector, self.deadline_tracker)
        except ValueError as e:
            logger.warning(f"Discarding calibration result: {e}")
            self.stop()
            return
        self._set_state(engine_calibration_results(self._state, self.motor_baseline.value))

    def finish_calibration(self) -> None:
        """Leave the results screen."""
        self.stop()

    # =========================================================================
    # Input
    # =========================================================================

    def handle_key(self, key: str) -> KeyAction:
        """
        Dispatch one keystroke.

        Returns:
            The routed action (DELEGATE for answer input)
        """
        action = route_key(self._state, key)
        phase = self._state.phase

        if action == KeyAction.STOP:
            self.stop()
        elif action == KeyAction.NEXT:
            self.next_question()
        elif action == KeyAction.CONTINUE:
            self.continue_round()
        elif action == KeyAction.DELEGATE:
            self.key_buffer.handle_key(key)
        elif phase == EnginePhase.CALIBRATION_INTRO and key in (" ", "Enter"):
            self.begin_calibration_trials()
        elif phase == EnginePhase.CALIBRATING:
            self.press_calibration(key.upper())
        elif phase == EnginePhase.CALIBRATION_RESULTS and key in (" ", "Enter"):
            self.finish_calibration()
        return action
