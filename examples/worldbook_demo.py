"""
Demo: World-book triggering and role memories

Shows constant lore always being present, keyword-triggered lore appearing
when the conversation mentions it, cooldowns suppressing repeats, and role
memories grouped by memory type under per-type caps.
"""

import asyncio

from loretrigger.adapters import ROLE_MEMORY_CATEGORY_CAPS, role_memory, worldbook
from loretrigger.core.config import InjectionConfig, MatchConfig
from loretrigger.core.models import ChatMessage
from loretrigger.pipeline.engine import TriggerEngine


WORLD_BOOK = {
    "entries": {
        "0": {
            "uid": 0,
            "comment": "The Kingdom of Eldoria",
            "key": ["Eldoria"],
            "constant": True,
            "content": "Eldoria is a mountain kingdom ruled by Queen Maren.",
        },
        "1": {
            "uid": 1,
            "comment": "The Ember Dragon",
            "key": ["dragon", "wyrm"],
            "order": 50,
            "content": "An ancient dragon sleeps beneath Mount Cinder.",
        },
        "2": {
            "uid": 2,
            "comment": "Mount Cinder",
            "key": ["Mount Cinder"],
            "order": 40,
            "content": "A dormant volcano north of the capital.",
        },
        "3": {
            "uid": 3,
            "comment": "Retired lore",
            "key": ["dragon"],
            "disable": True,
            "content": "This entry is disabled and never loads.",
        },
    }
}

ROLE_MEMORIES = [
    {"id": "m1", "type": "episodic", "keywords": ["tea"], "priority": 60,
     "content": "Shared tea with the user at the harbour."},
    {"id": "m2", "type": "trait", "keywords": ["tea"], "priority": 40,
     "content": "Prefers green tea over black."},
    {"id": "m3", "type": "goal", "keywords": ["harbour"], "priority": 30,
     "content": "Wants to open a tea shop by the harbour."},
]


async def demo_worldbook():
    print("=" * 80)
    print("WORLD-BOOK TRIGGER DEMO")
    print("=" * 80)
    print()

    engine = TriggerEngine(
        config=MatchConfig(injection_cooldown=60.0, max_recursive_depth=1),
    )
    engine.load_entries(worldbook.to_trigger_entries(WORLD_BOOK))

    print("=== Constant lore ===")
    print(engine.get_constant_content())
    print()

    history = [ChatMessage(role="assistant", content="Welcome, traveller.")]

    print("User: Tell me about the dragon")
    result = await engine.process_message("Tell me about the dragon", history)
    print(f"Injected {result.injected_count} entries in {result.duration:.2f}ms")
    print(f"Recursion passes: {result.debug_info.recursion_depth}")
    print(result.triggered_content)
    print()

    print("User: The dragon again?")
    result = await engine.process_message("The dragon again?", history)
    skipped = [(s.entry_id, s.reason.value) for s in result.debug_info.skipped_entries]
    print(f"Triggered: {[a.entry_id for a in result.triggered_actions]}")
    print(f"Skipped: {skipped}")
    print()


async def demo_role_memory():
    print("=" * 80)
    print("ROLE MEMORY DEMO")
    print("=" * 80)
    print()

    engine = TriggerEngine(
        config=MatchConfig(max_per_category=dict(ROLE_MEMORY_CATEGORY_CAPS)),
        injection_config=InjectionConfig(separate_by_type=True, show_source=True),
    )
    engine.load_entries(role_memory.to_trigger_entry(raw) for raw in ROLE_MEMORIES)

    print("User: Shall we get some tea at the harbour?")
    result = await engine.process_message("Shall we get some tea at the harbour?")
    print(result.full_content)
    print()

    stats = engine.get_state().stats
    print(f"Total triggers: {stats.total_triggers}")
    for popular in stats.popular_entries:
        print(f"  {popular.title}: {popular.trigger_count}")


async def main():
    await demo_worldbook()
    await demo_role_memory()


if __name__ == "__main__":
    asyncio.run(main())
