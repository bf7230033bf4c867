"""
Session State Machine.

Pure state transitions for a drill session: no I/O, no timers, no clock
reads. Every transition returns a new frozen EngineState.

Phases:
    idle -> active <-> round-complete
    idle -> calibration-intro -> calibrating -> calibration-results
    any  -> idle (stop)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

CALIBRATION_INTRO_HINT = (
    "We'll measure your tap speed to set personalized targets. "
    "Tap each highlighted button as fast as you can - 10 taps total."
)
CALIBRATION_TRIAL_HINT = "Tap the highlighted button as fast as you can"
NEXT_HINT = "Tap anywhere or press Space for next"
MASTERED_TEXT = "Looks like you've got this!"
REVIEW_TEXT = "Time to review?"


class EnginePhase(str, Enum):
    """Screen phase of a drill session."""

    IDLE = "idle"
    ACTIVE = "active"
    ROUND_COMPLETE = "round-complete"
    CALIBRATION_INTRO = "calibration-intro"
    CALIBRATING = "calibrating"
    CALIBRATION_RESULTS = "calibration-results"

    @property
    def is_calibration(self) -> bool:
        return self in {
            EnginePhase.CALIBRATION_INTRO,
            EnginePhase.CALIBRATING,
            EnginePhase.CALIBRATION_RESULTS,
        }


class KeyAction(str, Enum):
    """What a keystroke should do in the current phase."""

    STOP = "stop"
    NEXT = "next"
    CONTINUE = "continue"
    DELEGATE = "delegate"  # mode-specific answer input
    IGNORE = "ignore"


@dataclass(frozen=True)
class EngineState:
    """Immutable snapshot of a drill session."""

    phase: EnginePhase = EnginePhase.IDLE
    current_item_id: str | None = None
    answered: bool = False
    question_start_time: float | None = None

    # Session tracking
    question_count: int = 0
    quiz_start_time: float | None = None

    # Round tracking
    round_number: int = 0
    round_answered: int = 0
    round_correct: int = 0
    round_timer_expired: bool = False
    round_response_times: tuple[float, ...] = ()
    round_duration_ms: float = 0

    # Progress tracking
    mastered_count: int = 0
    total_enabled_count: int = 0

    # Feedback
    feedback_text: str = ""
    feedback_class: str = "feedback"
    time_display_text: str = ""
    hint_text: str = ""

    # Mastery message
    mastery_text: str = ""
    show_mastery: bool = False

    # Calibration
    calibration_baseline: float | None = None

    # UI visibility
    quiz_active: bool = False
    answers_enabled: bool = False


def initial_engine_state() -> EngineState:
    """Create the canonical idle state."""
    return EngineState()


# =============================================================================
# Quiz transitions
# =============================================================================


def engine_start(state: EngineState, now_ms: float) -> EngineState:
    """Start the session (first round)."""
    return replace(
        state,
        phase=EnginePhase.ACTIVE,
        question_count=0,
        quiz_start_time=now_ms,
        quiz_active=True,
        show_mastery=False,
        round_number=1,
        round_answered=0,
        round_correct=0,
        round_timer_expired=False,
        round_response_times=(),
        round_duration_ms=0,
    )


def engine_next_question(state: EngineState, item_id: str, now_ms: float) -> EngineState:
    """Present the next question and clear per-question feedback."""
    return replace(
        state,
        current_item_id=item_id,
        answered=False,
        question_start_time=now_ms,
        question_count=state.question_count + 1,
        feedback_text="",
        feedback_class="feedback",
        time_display_text="",
        hint_text="",
        answers_enabled=True,
    )


def _format_seconds(ms: float) -> str:
    return f"{ms / 1000:.1f}s"


def engine_submit_answer(
    state: EngineState,
    correct: bool,
    correct_answer: str,
    response_time_ms: float | None = None,
) -> EngineState:
    """Record an answer: feedback, disabled controls, round tallies."""
    times = state.round_response_times
    if response_time_ms is not None:
        times = (*times, response_time_ms)
    return replace(
        state,
        answered=True,
        answers_enabled=False,
        feedback_text="Correct!" if correct else f"Incorrect - {correct_answer}",
        feedback_class="feedback correct" if correct else "feedback incorrect",
        time_display_text="" if response_time_ms is None else _format_seconds(response_time_ms),
        hint_text=NEXT_HINT,
        round_answered=state.round_answered + 1,
        round_correct=state.round_correct + (1 if correct else 0),
        round_response_times=times,
    )


def engine_timed_out(state: EngineState, correct_answer: str) -> EngineState:
    """The question deadline passed without an answer; counts as incorrect."""
    return replace(
        state,
        answered=True,
        answers_enabled=False,
        feedback_text=f"Time's up - {correct_answer}",
        feedback_class="feedback incorrect",
        time_display_text="",
        hint_text=NEXT_HINT,
        round_answered=state.round_answered + 1,
    )


def engine_round_timer_expired(state: EngineState) -> EngineState:
    """Flag the round timer; the current question can still be finished."""
    return replace(state, round_timer_expired=True)


def engine_round_complete(state: EngineState, round_duration_ms: float = 0) -> EngineState:
    """End the round and show its summary."""
    return replace(
        state,
        phase=EnginePhase.ROUND_COMPLETE,
        answered=False,
        answers_enabled=False,
        current_item_id=None,
        feedback_text="",
        feedback_class="feedback",
        hint_text="",
        round_duration_ms=round_duration_ms,
    )


def engine_continue_round(state: EngineState) -> EngineState:
    """Begin the next round; session totals are preserved."""
    return replace(
        state,
        phase=EnginePhase.ACTIVE,
        round_number=state.round_number + 1,
        round_answered=0,
        round_correct=0,
        round_timer_expired=False,
        round_response_times=(),
        round_duration_ms=0,
    )


# =============================================================================
# Calibration transitions
# =============================================================================


def engine_calibration_intro(state: EngineState, hint: str | None = None) -> EngineState:
    """Show the calibration explanation; answer controls stay disabled."""
    return replace(
        state,
        phase=EnginePhase.CALIBRATION_INTRO,
        show_mastery=False,
        quiz_active=True,
        answers_enabled=False,
        feedback_text="Quick Speed Check",
        feedback_class="feedback",
        hint_text=CALIBRATION_INTRO_HINT if hint is None else hint,
        time_display_text="",
        calibration_baseline=None,
    )


def engine_calibrating(state: EngineState, hint: str | None = None) -> EngineState:
    """Calibration trials are running; controls enabled for tapping."""
    return replace(
        state,
        phase=EnginePhase.CALIBRATING,
        answers_enabled=True,
        feedback_text="Speed check!",
        hint_text=CALIBRATION_TRIAL_HINT if hint is None else hint,
    )


def engine_calibration_results(state: EngineState, baseline: float) -> EngineState:
    """Calibration finished; show the measured baseline."""
    return replace(
        state,
        phase=EnginePhase.CALIBRATION_RESULTS,
        answers_enabled=False,
        feedback_text="Speed Check Complete",
        feedback_class="feedback",
        hint_text="",
        time_display_text="",
        calibration_baseline=baseline,
    )


def engine_stop(state: EngineState) -> EngineState:
    """Return to idle from any phase."""
    return initial_engine_state()


# =============================================================================
# Messages and progress
# =============================================================================


def engine_update_idle_message(state: EngineState, all_mastered: bool, needs_review: bool) -> EngineState:
    """Update the idle-screen mastery/review message; no-op outside idle."""
    if state.phase != EnginePhase.IDLE:
        return state
    if all_mastered:
        return replace(state, mastery_text=MASTERED_TEXT, show_mastery=True)
    if needs_review:
        return replace(state, mastery_text=REVIEW_TEXT, show_mastery=True)
    return replace(state, mastery_text="", show_mastery=False)


def engine_update_mastery_after_answer(state: EngineState, all_mastered: bool) -> EngineState:
    if all_mastered:
        return replace(state, mastery_text=MASTERED_TEXT, show_mastery=True)
    return replace(state, show_mastery=False)


def engine_update_progress(state: EngineState, mastered_count: int, total_enabled_count: int) -> EngineState:
    return replace(state, mastered_count=mastered_count, total_enabled_count=total_enabled_count)


# =============================================================================
# Key routing
# =============================================================================


def route_key(state: EngineState, key: str) -> KeyAction:
    """
    Map a keystroke to an action using only the phase and answered flag.

    - Escape stops everywhere except idle.
    - Space/Enter advance once answered, or continue after a round.
    - Other keys go to the mode while a question is open.
    """
    if state.phase == EnginePhase.IDLE:
        return KeyAction.IGNORE
    if key == "Escape":
        return KeyAction.STOP
    advance = key in (" ", "Enter")
    if state.phase == EnginePhase.ROUND_COMPLETE:
        return KeyAction.CONTINUE if advance else KeyAction.IGNORE
    if state.phase != EnginePhase.ACTIVE:
        return KeyAction.IGNORE
    if advance and state.answered:
        return KeyAction.NEXT
    if not state.answered:
        return KeyAction.DELEGATE
    return KeyAction.IGNORE
