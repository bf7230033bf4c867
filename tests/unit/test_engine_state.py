"""
Unit tests for the pure session state machine and key routing.
"""

import pytest

from fluency.delivery.engine_state import (
    MASTERED_TEXT,
    NEXT_HINT,
    REVIEW_TEXT,
    EnginePhase,
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

NOW = 1_700_000_000_000


def active_state():
    return engine_next_question(engine_start(initial_engine_state(), NOW), "C", NOW)


def answered_state():
    return engine_submit_answer(active_state(), True, "C", 1200)


REACHABLE = {
    "idle": initial_engine_state,
    "active": active_state,
    "answered": answered_state,
    "timed-out": lambda: engine_timed_out(active_state(), "C"),
    "round-expired": lambda: engine_round_timer_expired(answered_state()),
    "round-complete": lambda: engine_round_complete(answered_state(), 60000),
    "continued": lambda: engine_continue_round(engine_round_complete(answered_state())),
    "calibration-intro": lambda: engine_calibration_intro(initial_engine_state()),
    "calibrating": lambda: engine_calibrating(engine_calibration_intro(initial_engine_state())),
    "calibration-results": lambda: engine_calibration_results(
        engine_calibrating(engine_calibration_intro(initial_engine_state())), 850
    ),
    "with-progress": lambda: engine_update_progress(answered_state(), 3, 12),
}


class TestStop:
    @pytest.mark.parametrize("name", sorted(REACHABLE))
    def test_stop_is_true_reset(self, name):
        assert engine_stop(REACHABLE[name]()) == initial_engine_state()


class TestQuizTransitions:
    def test_start(self):
        state = engine_start(initial_engine_state(), NOW)
        assert state.phase == EnginePhase.ACTIVE
        assert state.quiz_active
        assert state.round_number == 1
        assert state.quiz_start_time == NOW
        assert state.question_count == 0

    def test_next_question_clears_feedback(self):
        state = engine_next_question(answered_state(), "D", NOW + 5000)
        assert state.current_item_id == "D"
        assert not state.answered
        assert state.answers_enabled
        assert state.feedback_text == ""
        assert state.question_count == 2
        assert state.question_start_time == NOW + 5000

    def test_submit_correct(self):
        state = answered_state()
        assert state.answered
        assert not state.answers_enabled
        assert state.feedback_text == "Correct!"
        assert state.feedback_class == "feedback correct"
        assert state.time_display_text == "1.2s"
        assert state.hint_text == NEXT_HINT
        assert (state.round_answered, state.round_correct) == (1, 1)
        assert state.round_response_times == (1200,)

    def test_submit_incorrect(self):
        state = engine_submit_answer(active_state(), False, "C#")
        assert state.feedback_text == "Incorrect - C#"
        assert state.feedback_class == "feedback incorrect"
        assert (state.round_answered, state.round_correct) == (1, 0)

    def test_timed_out_counts_as_answered_wrong(self):
        state = engine_timed_out(active_state(), "C")
        assert state.answered
        assert "C" in state.feedback_text
        assert (state.round_answered, state.round_correct) == (1, 0)

    def test_round_timer_only_flags(self):
        state = engine_round_timer_expired(active_state())
        assert state.round_timer_expired
        assert state.phase == EnginePhase.ACTIVE

    def test_round_boundary_keeps_session_totals(self):
        complete = engine_round_complete(answered_state(), 61000)
        assert complete.phase == EnginePhase.ROUND_COMPLETE
        assert complete.round_duration_ms == 61000
        assert complete.round_correct == 1

        state = engine_continue_round(complete)
        assert state.phase == EnginePhase.ACTIVE
        assert state.round_number == 2
        assert (state.round_answered, state.round_correct) == (0, 0)
        assert state.round_response_times == ()
        assert state.question_count == 1


class TestCalibrationTransitions:
    def test_intro_disables_answers(self):
        state = engine_calibration_intro(initial_engine_state())
        assert state.phase.is_calibration
        assert not state.answers_enabled

    def test_calibrating_enables_answers(self):
        state = engine_calibrating(engine_calibration_intro(initial_engine_state()))
        assert state.answers_enabled

    def test_results_carry_baseline(self):
        state = REACHABLE["calibration-results"]()
        assert state.calibration_baseline == 850
        assert not state.answers_enabled


class TestMessages:
    def test_idle_message(self):
        idle = initial_engine_state()
        assert engine_update_idle_message(idle, True, True).mastery_text == MASTERED_TEXT
        assert engine_update_idle_message(idle, False, True).mastery_text == REVIEW_TEXT
        assert not engine_update_idle_message(idle, False, False).show_mastery

    def test_idle_message_ignored_outside_idle(self):
        state = active_state()
        assert engine_update_idle_message(state, True, False) is state

    def test_mastery_after_answer(self):
        assert engine_update_mastery_after_answer(answered_state(), True).show_mastery
        assert not engine_update_mastery_after_answer(answered_state(), False).show_mastery


class TestRouteKey:
    def test_idle_ignores_everything(self):
        for key in ("Escape", " ", "Enter", "C"):
            assert route_key(initial_engine_state(), key) == KeyAction.IGNORE

    @pytest.mark.parametrize("name", ["active", "answered", "round-complete", "calibration-intro", "calibrating"])
    def test_escape_stops(self, name):
        assert route_key(REACHABLE[name](), "Escape") == KeyAction.STOP

    def test_unanswered_delegates(self):
        assert route_key(active_state(), "C") == KeyAction.DELEGATE
        assert route_key(active_state(), " ") == KeyAction.DELEGATE

    def test_answered_advances(self):
        assert route_key(answered_state(), " ") == KeyAction.NEXT
        assert route_key(answered_state(), "Enter") == KeyAction.NEXT
        assert route_key(answered_state(), "C") == KeyAction.IGNORE

    def test_round_complete_continues(self):
        state = REACHABLE["round-complete"]()
        assert route_key(state, " ") == KeyAction.CONTINUE
        assert route_key(state, "C") == KeyAction.IGNORE
