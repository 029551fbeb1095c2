"""Stats Tracker - running trigger counters, popularity and latency"""

from datetime import datetime
from typing import Dict

from loretrigger.core.models import InjectionResult, PopularEntry, TriggerStats

POPULAR_LIMIT = 10


class StatsTracker:
    """Pure updates: returns a new TriggerStats instead of mutating in place"""

    def update(
        self,
        stats: TriggerStats,
        result: InjectionResult,
        last_updated: float,
        now: float,
    ) -> TriggerStats:
        """
        Fold one pipeline result into the running stats.

        Args:
            stats: Current stats
            result: Result of the run just finished
            last_updated: Epoch seconds of the previous state update
            now: Epoch seconds of this update
        """
        injected = result.injected_count
        total = stats.total_triggers + injected

        if datetime.fromtimestamp(last_updated).date() != datetime.fromtimestamp(now).date():
            today = injected
        else:
            today = stats.today_triggers + injected

        if total > 0:
            avg = (stats.avg_response_time * (total - injected) + result.duration) / total
        else:
            avg = stats.avg_response_time

        return TriggerStats(
            total_triggers=total,
            today_triggers=today,
            popular_entries=self._update_popular(stats, result),
            avg_response_time=avg,
        )

    @staticmethod
    def _update_popular(stats: TriggerStats, result: InjectionResult) -> list[PopularEntry]:
        by_id: Dict[str, PopularEntry] = {
            p.entry_id: p.model_copy() for p in stats.popular_entries
        }
        for action in result.actions:
            title = action.entry.title if action.entry is not None else action.entry_id
            popular = by_id.get(action.entry_id)
            if popular is None:
                by_id[action.entry_id] = PopularEntry(
                    entry_id=action.entry_id, title=title, trigger_count=1
                )
            else:
                popular.trigger_count += 1

        # sorted() is stable: earlier entries win ties
        ranked = sorted(by_id.values(), key=lambda p: p.trigger_count, reverse=True)
        return ranked[:POPULAR_LIMIT]

    @staticmethod
    def reset() -> TriggerStats:
        return TriggerStats()
