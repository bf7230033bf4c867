"""
Unit tests for the consolidate-before-expanding recommendation engine.

The selector is replaced by a stub returning fixed aggregates.
"""

import pytest

from fluency.adaptive.config import DEFAULT_CONFIG
from fluency.adaptive.models import GroupRecommendation
from fluency.adaptive.recommendations import compute_recommendations


def rec(index, due=0, unseen=0, mastered=0):
    return GroupRecommendation(
        index=index,
        due_count=due,
        unseen_count=unseen,
        mastered_count=mastered,
        total_count=due + unseen + mastered,
    )


class StubSelector:
    def __init__(self, recs):
        self.recs = recs

    def get_string_recommendations(self, group_indices, get_item_ids):
        return [r for r in self.recs if r.index in group_indices]


def run(recs, config=DEFAULT_CONFIG, sort_unstarted=None):
    selector = StubSelector(recs)
    return compute_recommendations(
        selector,
        [r.index for r in recs],
        lambda index: [],
        config,
        sort_unstarted=sort_unstarted,
    )


class TestFirstLaunch:
    def test_recommends_first_unstarted(self):
        result = run([rec(0, unseen=6), rec(1, unseen=6), rec(2, unseen=6)])
        assert result.recommended == {0}
        assert result.enabled == {0}
        assert result.expand_index == 0
        assert result.expand_new_count == 6

    def test_tie_break_ordering(self):
        result = run(
            [rec(0, unseen=6), rec(1, unseen=6), rec(2, unseen=6)],
            sort_unstarted=lambda r: -r.index,
        )
        assert result.recommended == {2}

    def test_no_groups(self):
        result = run([])
        assert result.recommended == set()
        assert result.enabled is None


class TestConsolidation:
    def test_groups_above_median_work(self):
        result = run([rec(0, due=5, mastered=1), rec(1, due=1, mastered=5), rec(2, due=3, mastered=3)])
        # Work sorted desc: 5, 3, 1 -> median 3
        assert result.recommended == {0}
        assert result.consolidate_indices == [0]
        assert result.consolidate_due_count == 5

    def test_equal_work_falls_back_to_busiest(self):
        result = run([rec(0, due=2, mastered=1), rec(1, due=2, mastered=1)])
        assert len(result.recommended) == 1
        assert result.consolidate_indices == [result.recommended.pop()]

    def test_unseen_items_count_as_work(self):
        result = run([rec(0, due=1, unseen=4, mastered=1), rec(1, due=2, mastered=4)])
        assert 0 in result.recommended

    @pytest.mark.parametrize(
        "recs",
        [
            [rec(0, due=1)],
            [rec(0, mastered=3), rec(1, mastered=3)],
            [rec(0, due=1, unseen=2), rec(1, unseen=5)],
            [rec(0, due=4), rec(1, due=4), rec(2, due=4), rec(3, unseen=2)],
        ],
    )
    def test_never_empty_when_data_exists(self, recs):
        assert run(recs).recommended


class TestExpansion:
    def test_expands_when_consolidated(self):
        # 8 of 10 seen items mastered (0.8 >= 0.7)
        result = run([rec(0, due=1, mastered=4), rec(1, due=1, mastered=4), rec(2, unseen=6)])
        assert result.expand_index == 2
        assert result.expand_new_count == 6
        assert 2 in result.enabled

    def test_no_expansion_below_threshold(self):
        result = run([rec(0, due=4, mastered=1), rec(1, unseen=6)])
        assert result.expand_index is None
        assert 1 not in result.recommended

    def test_threshold_is_inclusive(self):
        # exactly 7/10
        result = run([rec(0, due=3, mastered=7), rec(1, unseen=2)])
        assert result.expand_index == 1

    def test_nothing_to_expand_into(self):
        result = run([rec(0, mastered=10)])
        assert result.expand_index is None
        assert result.recommended == {0}
