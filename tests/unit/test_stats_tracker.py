"""Unit tests for running trigger statistics"""

from datetime import datetime, timedelta

import pytest

from loretrigger.core.models import (
    InjectionAction,
    InjectionResult,
    InjectionType,
    PopularEntry,
    TriggerEntry,
    TriggerStats,
)
from loretrigger.pipeline.stats_tracker import POPULAR_LIMIT, StatsTracker

MORNING = datetime(2024, 5, 1, 9, 0, 0).timestamp()
EVENING = datetime(2024, 5, 1, 21, 0, 0).timestamp()
NEXT_DAY = (datetime(2024, 5, 1, 9, 0, 0) + timedelta(days=1)).timestamp()


def make_result(*entry_ids: str, duration: float = 10.0) -> InjectionResult:
    actions = [
        InjectionAction(
            type=InjectionType.TRIGGERED,
            entry_id=entry_id,
            entry=TriggerEntry(id=entry_id, comment=f"Title {entry_id}"),
        )
        for entry_id in entry_ids
    ]
    return InjectionResult(actions=actions, injected_count=len(actions), duration=duration)


class TestStatsTracker:
    """Test counters, averages and popularity"""

    def test_totals_accumulate(self) -> None:
        tracker = StatsTracker()
        stats = tracker.update(TriggerStats(), make_result("a", "b"), MORNING, MORNING)
        stats = tracker.update(stats, make_result("a"), MORNING, EVENING)

        assert stats.total_triggers == 3
        assert stats.today_triggers == 3

    def test_today_resets_on_new_day(self) -> None:
        tracker = StatsTracker()
        stats = tracker.update(TriggerStats(), make_result("a", "b"), MORNING, MORNING)
        stats = tracker.update(stats, make_result("c"), MORNING, NEXT_DAY)

        assert stats.total_triggers == 3
        assert stats.today_triggers == 1

    def test_average_response_time(self) -> None:
        """Average weighted by injected entries"""
        tracker = StatsTracker()
        stats = tracker.update(TriggerStats(), make_result("a", duration=10.0), MORNING, MORNING)
        assert stats.avg_response_time == pytest.approx(10.0)

        stats = tracker.update(stats, make_result("b", duration=20.0), MORNING, MORNING)
        assert stats.avg_response_time == pytest.approx(15.0)

    def test_empty_result_keeps_average(self) -> None:
        """No division by zero when nothing has been injected yet"""
        stats = StatsTracker().update(TriggerStats(), make_result(), MORNING, MORNING)
        assert stats.total_triggers == 0
        assert stats.avg_response_time == 0.0

    def test_popular_entries(self) -> None:
        tracker = StatsTracker()
        stats = tracker.update(TriggerStats(), make_result("a", "b"), MORNING, MORNING)
        stats = tracker.update(stats, make_result("b"), MORNING, MORNING)

        assert [(p.entry_id, p.trigger_count) for p in stats.popular_entries] == [("b", 2), ("a", 1)]
        assert stats.popular_entries[0].title == "Title b"

    def test_popular_truncated(self) -> None:
        existing = TriggerStats(popular_entries=[
            PopularEntry(entry_id=str(i), title=str(i), trigger_count=5) for i in range(POPULAR_LIMIT)
        ])
        stats = StatsTracker().update(existing, make_result("new"), MORNING, MORNING)

        assert len(stats.popular_entries) == POPULAR_LIMIT
        assert "new" not in [p.entry_id for p in stats.popular_entries]

    def test_input_not_mutated(self) -> None:
        tracker = StatsTracker()
        before = tracker.update(TriggerStats(), make_result("a"), MORNING, MORNING)
        tracker.update(before, make_result("a"), MORNING, MORNING)
        assert before.popular_entries[0].trigger_count == 1

    def test_reset(self) -> None:
        assert StatsTracker.reset() == TriggerStats()
