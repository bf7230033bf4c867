"""
Unit tests for DrillSession.

A tiny note-naming mode runs against the in-memory store; the FakeLoop
from conftest advances the shared clock and fires timers in order.
"""

import pytest

from fluency.adaptive.calibration import MotorBaseline
from fluency.adaptive.config import DEFAULT_CONFIG
from fluency.adaptive.deadline import DeadlineTracker
from fluency.config import Settings
from fluency.delivery.engine_state import EnginePhase, KeyAction, initial_engine_state
from fluency.delivery.session import DrillSession, QuizMode


class NoteMode:
    """Name the shown note."""

    def __init__(self, items=("C", "D", "E")):
        self.items = list(items)

    def get_enabled_items(self):
        return self.items

    def check_answer(self, item_id, answer):
        return answer == item_id, item_id


@pytest.fixture
def tracker(memory_store):
    return DeadlineTracker(memory_store, DEFAULT_CONFIG)


@pytest.fixture
def make_session(selector, tracker, memory_store, clock, fake_loop):
    def factory(**kwargs):
        kwargs.setdefault("deadline_tracker", tracker)
        kwargs.setdefault("motor_baseline", MotorBaseline(memory_store))
        kwargs.setdefault("calibration_targets", ["C", "D", "E"])
        return DrillSession(
            kwargs.pop("mode", NoteMode()),
            selector,
            clock=clock,
            rng=lambda: 0.0,
            loop=fake_loop,
            **kwargs,
        )

    return factory


def test_note_mode_satisfies_protocol():
    assert isinstance(NoteMode(), QuizMode)


class TestFromSettings:
    @pytest.fixture
    def settings(self):
        return Settings(
            _env_file=None,
            round_duration_ms=5000,
            auto_advance_ms=250,
            calibration_trials=4,
            deadline_decrease_factor=0.5,
            initial_stability=8.0,
        )

    @pytest.fixture
    def session(self, settings, memory_store, clock, fake_loop):
        return DrillSession.from_settings(
            NoteMode(),
            memory_store,
            settings,
            calibration_targets=["C", "D"],
            clock=clock,
            rng=lambda: 0.0,
            loop=fake_loop,
        )

    def test_components_use_settings(self, session):
        assert session.round_duration_ms == 5000
        assert session.auto_advance_ms == 250
        assert session.calibration_trials == 4
        assert session.selector.get_config().initial_stability == 8.0
        assert session.deadline_tracker.deadline_config.decrease_factor == 0.5
        assert session.motor_baseline.base_config.initial_stability == 8.0

    def test_timing_follows_settings(self, session, fake_loop, memory_store):
        session.start()
        fake_loop.advance(4000)
        session.submit_answer("C")

        # 9000 * 0.5 beats the anchored 4000 * 1.5; the default factor would give 6000
        assert memory_store.deadlines["C"] == 4500
        assert memory_store.stats["C"].stability == 8.0

        fake_loop.advance(250)
        assert session.state.question_count == 2

        fake_loop.advance(750)
        assert session.state.round_timer_expired


class TestQuestions:
    def test_start_presents_first_question(self, make_session):
        session = make_session()
        session.start()

        state = session.state
        assert state.phase == EnginePhase.ACTIVE
        assert state.current_item_id == "C"
        assert state.question_count == 1
        assert state.total_enabled_count == 3
        assert session.current_deadline_ms == DEFAULT_CONFIG.max_response_time

    def test_keyed_answer_after_accidental_window(self, make_session, fake_loop, memory_store):
        session = make_session()
        session.start()

        assert session.handle_key("c") == KeyAction.DELEGATE
        assert not session.state.answered
        fake_loop.advance(400)

        state = session.state
        assert state.answered
        assert state.feedback_text == "Correct!"
        assert state.round_response_times == (400,)
        assert state.mastered_count == 1
        assert memory_store.stats["C"].ewma == 400
        # anchored 400 * 1.5 is below the max-drop floor of 9000 * 0.5
        assert memory_store.deadlines["C"] == 4500

    def test_wrong_answer(self, make_session, memory_store):
        session = make_session()
        session.start()
        session.submit_answer("D")

        assert session.state.feedback_text == "Incorrect - C"
        assert memory_store.stats["C"].stability is None

    def test_auto_advance(self, make_session, fake_loop):
        session = make_session()
        session.start()
        session.submit_answer("C")

        fake_loop.advance(999)
        assert session.state.current_item_id == "C"
        fake_loop.advance(1)
        assert session.state.current_item_id == "D"
        assert session.state.question_count == 2

    def test_space_advances_early(self, make_session):
        session = make_session()
        session.start()
        session.submit_answer("C")

        assert session.handle_key(" ") == KeyAction.NEXT
        assert session.state.question_count == 2
        assert not session.state.answered

    def test_second_submit_is_ignored(self, make_session, memory_store):
        session = make_session()
        session.start()
        session.submit_answer("C")
        session.submit_answer("C")
        assert memory_store.stats["C"].sample_count == 1

    def test_question_deadline_times_out(self, make_session, fake_loop, memory_store):
        session = make_session()
        session.start()
        fake_loop.advance(DEFAULT_CONFIG.max_response_time)

        state = session.state
        assert state.answered
        assert state.feedback_text.startswith("Time's up")
        assert (state.round_answered, state.round_correct) == (1, 0)
        stats = memory_store.stats["C"]
        assert stats.sample_count == 1
        assert stats.stability is None
        assert memory_store.deadlines["C"] == DEFAULT_CONFIG.max_response_time

    def test_no_deadline_without_tracker(self, make_session, fake_loop):
        session = make_session(deadline_tracker=None, round_duration_ms=10**9)
        session.start()
        fake_loop.advance(60000)
        assert not session.state.answered
        assert session.current_deadline_ms is None

    def test_on_change_receives_states(self, make_session):
        seen = []
        session = make_session(on_change=seen.append)
        session.start()
        assert seen[-1] is session.state


class TestRounds:
    def test_expiry_mid_question_finishes_after_answer(self, make_session, fake_loop):
        session = make_session(deadline_tracker=None, round_duration_ms=3000)
        session.start()
        fake_loop.advance(3000)

        assert session.state.round_timer_expired
        assert session.state.phase == EnginePhase.ACTIVE

        session.submit_answer("C")
        fake_loop.advance(599)
        assert session.state.phase == EnginePhase.ACTIVE
        fake_loop.advance(1)

        state = session.state
        assert state.phase == EnginePhase.ROUND_COMPLETE
        assert state.round_duration_ms == 3600
        assert state.round_answered == 1

    def test_expiry_while_answered_ends_round_now(self, make_session, fake_loop):
        session = make_session(deadline_tracker=None, round_duration_ms=3000, auto_advance_ms=5000)
        session.start()
        fake_loop.advance(100)
        session.submit_answer("C")

        fake_loop.advance(2900)
        assert session.state.phase == EnginePhase.ROUND_COMPLETE
        assert fake_loop.pending == []

    def test_continue_starts_new_round(self, make_session, fake_loop):
        session = make_session(deadline_tracker=None, round_duration_ms=3000, auto_advance_ms=5000)
        session.start()
        session.submit_answer("C")
        fake_loop.advance(3000)

        assert session.handle_key("Enter") == KeyAction.CONTINUE
        state = session.state
        assert state.phase == EnginePhase.ACTIVE
        assert state.round_number == 2
        assert state.round_answered == 0
        assert state.current_item_id == "D"


class TestStop:
    def test_stop_cancels_everything(self, make_session, fake_loop, memory_store):
        session = make_session()
        session.start()
        session.handle_key("c")

        assert session.handle_key("Escape") == KeyAction.STOP
        assert session.state == initial_engine_state()
        assert fake_loop.pending == []

        fake_loop.advance(10**6)
        assert session.state == initial_engine_state()
        assert "C" not in memory_store.stats

    def test_idle_message_after_stop(self, make_session, fake_loop):
        session = make_session(mode=NoteMode(["C"]))
        session.start()
        session.submit_answer("C")
        session.stop()

        assert session.state.phase == EnginePhase.IDLE
        assert session.state.show_mastery


class TestCalibration:
    def test_full_calibration(self, make_session, clock, memory_store, selector, tracker):
        session = make_session(calibration_trials=4, calibration_warmup_trials=1)
        assert session.show_calibration_if_needed()
        assert session.state.phase == EnginePhase.CALIBRATION_INTRO

        session.handle_key(" ")
        assert session.state.phase == EnginePhase.CALIBRATING

        for _ in range(4):
            clock.advance(600)
            session.handle_key(session.calibration_target)

        state = session.state
        assert state.phase == EnginePhase.CALIBRATION_RESULTS
        assert state.calibration_baseline == 600
        assert memory_store.baselines["button"] == 600
        assert selector.get_config().min_time == 600
        assert tracker.adaptive_config.min_time == 600

        session.handle_key("Enter")
        assert session.state.phase == EnginePhase.IDLE

    def test_wrong_taps_do_not_advance(self, make_session):
        session = make_session()
        session.start_calibration()
        session.begin_calibration_trials()
        target = session.calibration_target
        wrong = next(t for t in ("C", "D", "E") if t != target)

        assert not session.press_calibration(wrong)
        assert session.calibration_target == target

    def test_abandon_keeps_prior_baseline(self, make_session, clock, memory_store):
        memory_store.baselines["button"] = 900
        session = make_session()
        session.start_calibration()
        session.begin_calibration_trials()
        clock.advance(400)
        session.handle_key(session.calibration_target)

        session.handle_key("Escape")

        assert session.state == initial_engine_state()
        assert memory_store.baselines["button"] == 900
        assert session.calibration_target is None

    def test_not_shown_when_baseline_stored(self, make_session, memory_store, selector):
        memory_store.baselines["button"] = 800
        session = make_session()
        assert not session.show_calibration_if_needed()
        assert session.state.phase == EnginePhase.IDLE
        assert selector.get_config().min_time == 800

    def test_too_few_targets_aborts(self, make_session):
        session = make_session(calibration_targets=["C"])
        session.start_calibration()
        session.begin_calibration_trials()
        assert session.state.phase == EnginePhase.IDLE
