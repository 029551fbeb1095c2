"""Unit tests for entry adapters and repositories"""

import pytest

from loretrigger.adapters import (
    ROLE_MEMORY_CATEGORY_CAPS,
    EntryRepository,
    InMemoryEntryRepository,
    role_memory,
    worldbook,
)
from loretrigger.pipeline.validator import SELECTIVE_LOGIC_PREFIX


class TestWorldbookAdapter:
    """Test world-book record conversion"""

    def test_basic_fields(self) -> None:
        entry = worldbook.to_trigger_entry({
            "uid": 3,
            "key": ["dragon", "wyrm"],
            "keysecondary": "fire",
            "comment": "Dragons",
            "content": "Big lizards",
            "constant": False,
            "order": 100,
        })

        assert entry.id == "3"
        assert entry.primary_keys == ["dragon", "wyrm"]
        assert entry.secondary_keys == ["fire"]
        assert entry.comment == "Dragons"
        assert entry.priority == 100
        assert entry.category == worldbook.WORLDBOOK_CATEGORY
        assert entry.weight == 1.0
        assert entry.payload["uid"] == 3

    def test_display_index_fallback(self) -> None:
        entry = worldbook.to_trigger_entry({"uid": 1, "displayIndex": 7})
        assert entry.priority == 7

    def test_group_becomes_category_and_tag(self) -> None:
        entry = worldbook.to_trigger_entry({"uid": 1, "key": "x", "group": "Cities", "groupWeight": 50})

        assert entry.category == "Cities"
        assert entry.weight == pytest.approx(0.5)
        assert entry.selective_conditions[0].type == "tag"
        assert entry.selective_conditions[0].required is False

    def test_selective_logic_condition(self) -> None:
        entry = worldbook.to_trigger_entry({
            "uid": 1,
            "key": ["dragon"],
            "keysecondary": ["fire"],
            "selective": True,
            "selectiveLogic": 2,
        })
        condition = entry.selective_conditions[0]
        assert condition.type == "custom"
        assert condition.value == f"{SELECTIVE_LOGIC_PREFIX}2"
        assert condition.required is True

    def test_scan_depth_requirement(self) -> None:
        entry = worldbook.to_trigger_entry({"uid": 1, "key": "x", "scanDepth": 4})
        assert entry.context_requirements[0].type == "min_messages"
        assert entry.context_requirements[0].value == 4

    def test_depth_takes_precedence_over_scan_depth(self) -> None:
        entry = worldbook.to_trigger_entry({"uid": 1, "key": "x", "depth": 2, "scanDepth": 6})
        assert entry.context_requirements[0].value == 2

        entry = worldbook.to_trigger_entry({"uid": 1, "key": "x", "depth": 0, "scanDepth": 6})
        assert entry.context_requirements[0].value == 6

    def test_malformed_numbers_fall_back(self) -> None:
        """Unparsable metadata yields defaults instead of errors"""
        entry = worldbook.to_trigger_entry({"uid": 1, "order": "soon", "groupWeight": "heavy"})
        assert entry.priority == 0
        assert entry.weight == 1.0
        assert entry.is_matchable is False

    def test_missing_uid(self) -> None:
        with pytest.raises(ValueError):
            worldbook.to_trigger_entry({"key": "x"})

    def test_whole_book_skips_disabled(self) -> None:
        book = {
            "entries": {
                "0": {"uid": 0, "key": "a"},
                "1": {"uid": 1, "key": "b", "disable": True},
                "2": {"uid": 2, "key": "c"},
            }
        }
        entries = worldbook.to_trigger_entries(book)
        assert [e.id for e in entries] == ["0", "2"]

    def test_list_input(self) -> None:
        entries = worldbook.to_trigger_entries([{"uid": 5, "key": "a"}, "junk"])
        assert [e.id for e in entries] == ["5"]


class TestRoleMemoryAdapter:
    """Test role memory conversion"""

    def test_fields(self) -> None:
        entry = role_memory.to_trigger_entry({
            "id": "m1",
            "type": "trait",
            "content": "Likes tea",
            "keywords": ["tea"],
            "priority": 70,
            "isConstant": False,
            "timestamp": 1_700_000_000_000,
            "relevanceWeight": 0.9,
            "emotionalWeight": 0.4,
            "timeDecayFactor": 0.1,
            "relatedTopics": ["drinks"],
            "emotionalContext": ["calm"],
            "metadata": {"source": "chat"},
        })

        assert entry.category == "trait"
        assert entry.primary_keys == ["tea"]
        assert entry.secondary_keys == ["drinks"]
        assert entry.priority == 70
        assert entry.weight == pytest.approx(0.9)
        assert entry.timestamp == pytest.approx(1_700_000_000.0)
        assert entry.emotional_weight == pytest.approx(0.4)
        assert entry.time_decay_factor == pytest.approx(0.1)
        assert entry.emotional_context == ["calm"]
        assert entry.payload == {"source": "chat"}

    def test_defaults_for_sparse_record(self) -> None:
        entry = role_memory.to_trigger_entry({"id": "m2", "content": "x", "keywords": None})
        assert entry.category == "episodic"
        assert entry.is_matchable is False
        assert entry.timestamp is None

    def test_category_caps(self) -> None:
        assert ROLE_MEMORY_CATEGORY_CAPS == {"episodic": 3, "semantic": 2, "trait": 5, "goal": 3}


class TestInMemoryEntryRepository:
    def test_load_returns_copies(self) -> None:
        repo = InMemoryEntryRepository([{"id": "a"}])
        repo.add({"id": "b"})

        records = repo.load()
        records[0]["id"] = "changed"

        assert [r["id"] for r in repo.load()] == ["a", "b"]
        assert len(repo) == 2

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryEntryRepository(), EntryRepository)
