"""
Group recommendations: consolidate before expanding.

Given per-group aggregates from the selector, decide which groups to
highlight (``recommended``) and which the caller should activate
(``enabled``):

1. Split groups into started (any item seen) and unstarted.
2. Nothing started: recommend the first unstarted group.
3. Otherwise recommend every started group whose pending work
   (due + unseen) exceeds the median; fall back to the single busiest
   group so something is always recommended.
4. If mastered/seen across started groups reaches expansion_threshold,
   also recommend the first unstarted group.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol

from .models import GroupRecommendation, RecommendationResult


class SupportsGroupAggregates(Protocol):
    def get_string_recommendations(
        self,
        group_indices: Sequence[int],
        get_item_ids: Callable[[int], Sequence[str]],
    ) -> list[GroupRecommendation]: ...


class SupportsExpansionThreshold(Protocol):
    expansion_threshold: float


def _first_unstarted(
    unstarted: list[GroupRecommendation],
    sort_unstarted: Callable[[GroupRecommendation], Any] | None,
) -> GroupRecommendation:
    if sort_unstarted is None:
        return unstarted[0]
    return sorted(unstarted, key=sort_unstarted)[0]


def compute_recommendations(
    selector: SupportsGroupAggregates,
    group_indices: Sequence[int],
    get_item_ids: Callable[[int], Sequence[str]],
    config: SupportsExpansionThreshold,
    sort_unstarted: Callable[[GroupRecommendation], Any] | None = None,
) -> RecommendationResult:
    """
    Compute which groups to recommend and enable.

    Args:
        selector: Provides per-group aggregates
        group_indices: All candidate groups
        get_item_ids: Maps a group index to its item ids
        config: Anything with an expansion_threshold (usually AdaptiveConfig)
        sort_unstarted: Sort key deciding which unstarted group comes first
            (natural order when None)

    Returns:
        RecommendationResult
    """
    recs = selector.get_string_recommendations(group_indices, get_item_ids)

    started = [r for r in recs if r.is_started]
    unstarted = [r for r in recs if not r.is_started]

    if not started:
        if not unstarted:
            return RecommendationResult()
        first = _first_unstarted(unstarted, sort_unstarted)
        return RecommendationResult(
            recommended={first.index},
            enabled={first.index},
            expand_index=first.index,
            expand_new_count=first.total_count,
        )

    total_seen = sum(r.mastered_count + r.due_count for r in started)
    total_mastered = sum(r.mastered_count for r in started)
    consolidated_ratio = total_mastered / total_seen if total_seen > 0 else 0.0

    started_by_work = sorted(started, key=lambda r: r.pending_work, reverse=True)
    median_work = started_by_work[len(started_by_work) // 2].pending_work

    result = RecommendationResult(enabled=set())
    for rec in started_by_work:
        if rec.pending_work > median_work:
            result.recommended.add(rec.index)
            result.enabled.add(rec.index)
            result.consolidate_indices.append(rec.index)
            result.consolidate_due_count += rec.pending_work

    if not result.enabled:
        busiest = started_by_work[0]
        result.recommended.add(busiest.index)
        result.enabled.add(busiest.index)
        result.consolidate_indices.append(busiest.index)
        result.consolidate_due_count += busiest.pending_work

    if consolidated_ratio >= config.expansion_threshold and unstarted:
        expand = _first_unstarted(unstarted, sort_unstarted)
        result.expand_index = expand.index
        result.expand_new_count = expand.total_count
        result.recommended.add(expand.index)
        result.enabled.add(expand.index)

    return result
