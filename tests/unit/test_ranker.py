"""Unit tests for ranking and quotas"""

from loretrigger.core.config import MatchConfig
from loretrigger.core.models import InjectionType, Match, MatchType, SkipReason, TriggerEntry
from loretrigger.pipeline.ranker import rank, sort_matches


def make_match(entry_id: str, priority: int = 0, score: float = 0.8, category: str = "default") -> Match:
    entry = TriggerEntry(id=entry_id, primary_keys=[entry_id], priority=priority, category=category)
    return Match(entry=entry, matched_keyword=entry_id, match_type=MatchType.PRIMARY, score=score)


class TestSortMatches:
    def test_priority_then_score(self) -> None:
        matches = [
            make_match("low", priority=1, score=0.9),
            make_match("high", priority=5, score=0.1),
            make_match("mid", priority=1, score=1.0),
        ]
        assert [m.entry_id for m in sort_matches(matches)] == ["high", "mid", "low"]

    def test_stable_for_equal_keys(self) -> None:
        """Equal (priority, score) keeps input order"""
        matches = [make_match(str(i)) for i in range(5)]
        assert [m.entry_id for m in sort_matches(matches)] == ["0", "1", "2", "3", "4"]


class TestRank:
    """Test global cap, category cap and constants"""

    def test_global_cap(self) -> None:
        matches = [make_match(str(i), priority=i) for i in range(5)]
        actions, skipped = rank(matches, [], MatchConfig(max_inject_entries=2))

        assert [a.entry_id for a in actions] == ["4", "3"]
        assert {s.entry_id for s in skipped} == {"2", "1", "0"}
        assert all(s.reason == SkipReason.GLOBAL_CAP for s in skipped)

    def test_priority_beats_score_under_cap(self) -> None:
        """With a cap of one, the higher priority entry wins despite a lower score"""
        matches = [
            make_match("strong", priority=1, score=1.0),
            make_match("important", priority=9, score=0.2),
        ]
        actions, _ = rank(matches, [], MatchConfig(max_inject_entries=1))
        assert [a.entry_id for a in actions] == ["important"]

    def test_category_cap(self) -> None:
        """Lower ranked entries of a full category are dropped, not substituted"""
        matches = [
            make_match("e1", priority=9, category="episodic"),
            make_match("e2", priority=8, category="episodic"),
            make_match("t1", priority=7, category="trait"),
            make_match("e3", priority=6, category="episodic"),
        ]
        cfg = MatchConfig(max_per_category={"episodic": 1})
        actions, skipped = rank(matches, [], cfg)

        assert [a.entry_id for a in actions] == ["e1", "t1"]
        assert [(s.entry_id, s.reason) for s in skipped] == [
            ("e2", SkipReason.CATEGORY_CAP),
            ("e3", SkipReason.CATEGORY_CAP),
        ]

    def test_category_cap_applies_after_global_cap(self) -> None:
        matches = [
            make_match("e1", priority=3, category="episodic"),
            make_match("e2", priority=2, category="episodic"),
            make_match("g1", priority=1, category="goal"),
        ]
        cfg = MatchConfig(max_inject_entries=2, max_per_category={"episodic": 1})
        actions, _ = rank(matches, [], cfg)
        assert [a.entry_id for a in actions] == ["e1"]

    def test_constants_prepended_uncapped(self) -> None:
        constants = [TriggerEntry(id="c1", is_constant=True), TriggerEntry(id="c2", is_constant=True)]
        actions, _ = rank([make_match("t")], constants, MatchConfig(max_inject_entries=1))

        assert [a.entry_id for a in actions] == ["c1", "c2", "t"]
        assert actions[0].type == InjectionType.CONSTANT
        assert actions[0].temporary is False
        assert actions[0].duration_messages is None

    def test_triggered_action_fields(self) -> None:
        cfg = MatchConfig(triggered_duration_messages=3)
        actions, _ = rank([make_match("t", priority=4, score=0.8)], [], cfg)

        action = actions[0]
        assert action.type == InjectionType.TRIGGERED
        assert action.temporary is True
        assert action.duration_messages == 3
        assert action.priority == 4
        assert action.score == 0.8
        assert action.matched_keyword == "t"
        assert action.entry is not None

    def test_zero_cap(self) -> None:
        actions, skipped = rank([make_match("t")], [], MatchConfig(max_inject_entries=0))
        assert actions == []
        assert len(skipped) == 1
