"""
Unit tests for the adaptive deadline staircase and DeadlineTracker.
"""

from dataclasses import replace

import pytest

from fluency.adaptive.config import DEFAULT_CONFIG, DEFAULT_DEADLINE_CONFIG, scale_for_response_count
from fluency.adaptive.deadline import (
    DeadlineTracker,
    adjust_deadline,
    compute_initial_deadline,
    deadline_bounds,
)

CFG = DEFAULT_CONFIG
DL = DEFAULT_DEADLINE_CONFIG


@pytest.fixture
def tracker(memory_store):
    return DeadlineTracker(memory_store, CFG, DL)


class TestInitialDeadline:
    def test_unseen_gets_ceiling(self):
        assert compute_initial_deadline(None, CFG, DL) == CFG.max_response_time

    def test_twice_the_ewma(self):
        assert compute_initial_deadline(2000, CFG, DL) == 4000

    def test_clamped_low(self):
        assert compute_initial_deadline(100, CFG, DL) == round(CFG.min_time * DL.min_deadline_margin)

    def test_clamped_high(self):
        assert compute_initial_deadline(8000, CFG, DL) == CFG.max_response_time


class TestAdjustDeadline:
    def test_correct_uses_staircase(self):
        assert adjust_deadline(4000, True, CFG, DL) == 3400

    def test_incorrect_grows(self):
        assert adjust_deadline(3400, False, CFG, DL) == 4760

    def test_fast_correct_is_floored_by_max_drop(self):
        # anchored 2000 * 1.5 = 3000, floor 9000 * 0.5 = 4500
        assert adjust_deadline(9000, True, CFG, DL, 2000) == 4500

    def test_anchored_target_when_more_aggressive(self):
        # staircase 5100, anchored 3000 * 1.5 = 4500
        assert adjust_deadline(6000, True, CFG, DL, 3000) == 4500

    def test_response_time_ignored_when_wrong(self):
        assert adjust_deadline(4000, False, CFG, DL, 100) == adjust_deadline(4000, False, CFG, DL)

    @pytest.mark.parametrize("current", [1, 1300, 4000, 9000, 1e9])
    @pytest.mark.parametrize("correct", [True, False])
    @pytest.mark.parametrize("rt", [None, 0, 1, 2500, 1e9])
    def test_always_within_bounds(self, current, correct, rt):
        low, high = deadline_bounds(CFG, DL)
        assert low <= adjust_deadline(current, correct, CFG, DL, rt) <= high

    @pytest.mark.parametrize("current", [2000, 4000, 9000])
    @pytest.mark.parametrize("rt", [1, 500, 1500])
    def test_single_correct_never_drops_more_than_max_drop(self, current, rt):
        new = adjust_deadline(current, True, CFG, DL, rt)
        assert new >= round(current * DL.max_drop_factor)


class TestDeadlineTracker:
    def test_worked_example(self, tracker):
        assert tracker.get_deadline("C", 2000) == 4000
        assert tracker.record_outcome("C", True) == 3400
        assert tracker.record_outcome("C", False) == 4760
        assert tracker.get_deadline("C", 2000) == 4760

    def test_persisted_value_wins_over_new_ewma(self, tracker):
        first = tracker.get_deadline("C", 2000)
        assert tracker.get_deadline("C", 500) == first

    def test_cold_start_is_persisted(self, tracker, memory_store):
        tracker.get_deadline("C", None)
        assert memory_store.deadlines["C"] == CFG.max_response_time

    def test_record_before_get_is_noop(self, tracker, memory_store):
        assert tracker.record_outcome("C", True) is None
        assert "C" not in memory_store.deadlines

    def test_corrupt_deadline_is_recomputed(self, tracker, memory_store):
        memory_store.deadlines["C"] = "garbage"
        assert tracker.get_deadline("C", 2000) == 4000

    def test_response_count_scales_bounds(self, tracker):
        assert tracker.get_deadline("chord", None, response_count=3) == CFG.max_response_time * 3

    def test_response_count_scales_floor(self, tracker):
        # ewma 100 * 2 is far below the floor: 3 * min_time * 1.3
        assert tracker.get_deadline("chord", 100, response_count=3) == round(CFG.min_time * 3 * 1.3)

    def test_scaling_matches_selector(self, tracker):
        assert tracker._scaled_config(1) is CFG
        assert tracker._scaled_config(4) == scale_for_response_count(CFG, 4)

    def test_update_config(self, tracker):
        slower = replace(CFG, max_response_time=12000)
        tracker.update_config(slower)
        assert tracker.get_deadline("new", None) == 12000
