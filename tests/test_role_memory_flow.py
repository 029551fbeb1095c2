"""
End-to-end tests for the two corpus flavours.
Role memories (category caps, temporal and emotional recall) and world books
(selective logic, scan depth, groups) run through one TriggerEngine.
"""

import time

import pytest

from loretrigger.adapters import ROLE_MEMORY_CATEGORY_CAPS, role_memory, worldbook
from loretrigger.core.config import InjectionConfig, MatchConfig
from loretrigger.core.models import ChatMessage, ConversationContext, MatchType, SkipReason
from loretrigger.pipeline.engine import TriggerEngine

NOW = time.time()
DAY_MS = 86_400_000


# ============================================================
# Fixtures
# ============================================================

def make_memory(mem_id, mem_type="episodic", keywords=("tea",), priority=50, **kw):
    record = {
        "id": mem_id,
        "type": mem_type,
        "content": f"memory {mem_id}",
        "keywords": list(keywords),
        "priority": priority,
        "timestamp": NOW * 1000,
    }
    record.update(kw)
    return role_memory.to_trigger_entry(record)


@pytest.fixture
def memory_engine():
    engine = TriggerEngine(
        config=MatchConfig(max_per_category=dict(ROLE_MEMORY_CATEGORY_CAPS)),
        injection_config=InjectionConfig(separate_by_type=True, show_keywords=False),
        clock=lambda: NOW,
    )
    return engine


# ============================================================
# Role memories
# ============================================================

class TestRoleMemories:

    @pytest.mark.asyncio
    async def test_category_caps(self, memory_engine):
        """Semantic memories are capped at two per message"""
        memory_engine.load_entries(
            [make_memory(f"s{i}", "semantic", priority=90 - i) for i in range(4)]
            + [make_memory("t0", "trait", priority=10)]
        )

        result = await memory_engine.process_message("more tea please")

        ids = [a.entry_id for a in result.triggered_actions]
        assert ids == ["s0", "s1", "t0"]
        capped = [s.entry_id for s in result.debug_info.skipped_entries if s.reason == SkipReason.CATEGORY_CAP]
        assert capped == ["s2", "s3"]

    @pytest.mark.asyncio
    async def test_grouped_rendering(self, memory_engine):
        memory_engine.load_entries([
            make_memory("e0", "episodic", priority=60),
            make_memory("g0", "goal", priority=40),
        ])

        result = await memory_engine.process_message("tea time")

        assert "### Episodic Memories" in result.triggered_content
        assert "### Goal Memories" in result.triggered_content
        assert result.triggered_content.index("Episodic") < result.triggered_content.index("Goal")

    @pytest.mark.asyncio
    async def test_temporal_recall(self, memory_engine):
        """Recent memories surface without a keyword hit when temporal scoring is on"""
        memory_engine.update_config(match={"enable_temporal": True, "relevance_threshold": 0.5})
        memory_engine.load_entries([
            make_memory("recent", timestamp=NOW * 1000 - DAY_MS, timeDecayFactor=0.1),
            make_memory("old", timestamp=NOW * 1000 - 30 * DAY_MS, timeDecayFactor=0.1),
        ])

        result = await memory_engine.process_message("how was your week?")

        assert [a.entry_id for a in result.triggered_actions] == ["recent"]
        assert result.triggered_actions[0].match_type == MatchType.TEMPORAL

    @pytest.mark.asyncio
    async def test_emotional_recall(self, memory_engine):
        memory_engine.update_config(match={"enable_emotional": True})
        memory_engine.load_entries([
            make_memory("sad", emotionalContext=["sad"], emotionalWeight=1.0),
            make_memory("happy", emotionalContext=["happy"], emotionalWeight=1.0),
        ])

        ctx = ConversationContext(
            current_message=ChatMessage(content="I feel low today"),
            emotional_state="sad",
        )
        result = await memory_engine.process_message("", context=ctx)

        assert [a.entry_id for a in result.triggered_actions] == ["sad"]


# ============================================================
# World books
# ============================================================

class TestWorldBook:

    @pytest.mark.asyncio
    async def test_selective_logic_and_any(self):
        """Selective entries need a secondary key too"""
        engine = TriggerEngine(clock=lambda: NOW)
        engine.load_entries(worldbook.to_trigger_entries([
            {"uid": 1, "key": ["dragon"], "keysecondary": ["fire"], "selective": True,
             "selectiveLogic": 0, "content": "Fire dragon"},
        ]))

        result = await engine.process_message("a dragon")
        assert result.triggered_actions == []

        result = await engine.process_message("a dragon breathing fire")
        assert [a.entry_id for a in result.triggered_actions] == ["1"]

    @pytest.mark.asyncio
    async def test_scan_depth(self):
        """Entries with a scan depth wait for enough conversation"""
        engine = TriggerEngine(clock=lambda: NOW)
        engine.load_entries(worldbook.to_trigger_entries([
            {"uid": 1, "key": ["dragon"], "scanDepth": 2, "content": "Deep lore"},
        ]))

        result = await engine.process_message("dragon", [ChatMessage(content="hi")])
        assert result.triggered_actions == []

        history = [ChatMessage(content="hi"), ChatMessage(role="assistant", content="hello")]
        result = await engine.process_message("dragon", history)
        assert [a.entry_id for a in result.triggered_actions] == ["1"]

    @pytest.mark.asyncio
    async def test_order_drives_priority(self):
        engine = TriggerEngine(config=MatchConfig(max_inject_entries=1), clock=lambda: NOW)
        engine.load_entries(worldbook.to_trigger_entries([
            {"uid": 1, "key": ["dragon"], "order": 10, "content": "Minor"},
            {"uid": 2, "key": ["dragon"], "order": 90, "content": "Major"},
        ]))

        result = await engine.process_message("dragon")
        assert [a.entry_id for a in result.triggered_actions] == ["2"]
