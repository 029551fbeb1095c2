"""
Injection Builder - renders chosen entries into prompt-ready text.

Each entry renders as:

    *2024-05-01 12:00:00*          (show_timestamps, when the entry has one)
    ## Title
    **Keywords:** a · b           (show_keywords)
    **Synonyms:** c · d
    body text
    *Source: Episodic Memories*   (show_source)

Constant and triggered sections are joined separately, then an optional
template combines them.
"""

import re
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from loguru import logger

from loretrigger.core.config import InjectionConfig
from loretrigger.core.models import (
    InjectionAction,
    InjectionResult,
    InjectionType,
    SkipReason,
    SkippedEntry,
    TriggerDebugInfo,
    TriggerEntry,
)

_IF_BLOCK = re.compile(r"\{\{#if\s+(\w+)\s*\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

EMPTY_BODY = "*(no details)*"


def render_entry(entry: TriggerEntry, cfg: InjectionConfig) -> str:
    """Render one entry as a markdown section"""
    parts: List[str] = []

    if cfg.show_timestamps and entry.timestamp is not None:
        stamp = datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        parts.append(f"*{stamp}*\n")

    parts.append(f"## {entry.title}\n\n")

    if cfg.show_keywords and (entry.primary_keys or entry.secondary_keys):
        if entry.primary_keys:
            parts.append(f"**Keywords:** {' · '.join(entry.primary_keys)}\n")
        if entry.secondary_keys:
            parts.append(f"**Synonyms:** {' · '.join(entry.secondary_keys)}\n")
        parts.append("\n")

    parts.append(entry.content if entry.content else EMPTY_BODY)

    if cfg.show_source:
        parts.append(f"\n\n*Source: {cfg.label_for(entry.category)}*")

    return "".join(parts)


def apply_template(template: str, values: Dict[str, str]) -> str:
    """
    Substitute {{name}} placeholders; unknown names become "".

    {{#if name}}...{{/if}} blocks survive only when values[name] is non-empty.
    """
    def keep_if(m: re.Match) -> str:
        return m.group(2) if values.get(m.group(1)) else ""

    rendered = _IF_BLOCK.sub(keep_if, template)
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), ""), rendered)


class InjectionBuilder:
    """Partitions actions by type and assembles an InjectionResult"""

    def build(
        self,
        actions: Sequence[InjectionAction],
        cfg: InjectionConfig,
        debug_info: Optional[TriggerDebugInfo] = None,
    ) -> InjectionResult:
        """
        Args:
            actions: Ranked actions (constants first)
            cfg: Rendering configuration
            debug_info: Diagnostics collected so far; length-budget drops are appended

        Returns:
            InjectionResult with rendered action contents (duration left at 0)
        """
        debug_info = debug_info or TriggerDebugInfo()

        rendered = [self._render(action, cfg) for action in actions]
        constants = [a for a in rendered if a.type == InjectionType.CONSTANT]
        triggered = [a for a in rendered if a.type == InjectionType.TRIGGERED]

        triggered_content = self._join_triggered(triggered, cfg)
        if cfg.max_total_length is not None:
            while triggered and len(triggered_content) > cfg.max_total_length:
                dropped = triggered.pop()
                debug_info.skipped_entries.append(
                    SkippedEntry(entry_id=dropped.entry_id, reason=SkipReason.LENGTH_BUDGET)
                )
                triggered_content = self._join_triggered(triggered, cfg)

        constant_content = cfg.separator.join(a.content for a in constants)
        content = "\n\n".join(c for c in (constant_content, triggered_content) if c)

        full_content = content
        if cfg.template:
            full_content = apply_template(
                cfg.template,
                {
                    "content": content,
                    "constantContent": constant_content,
                    "triggeredContent": triggered_content,
                },
            )

        final_actions = [*constants, *triggered]
        counts = Counter(a.match_type for a in triggered if a.match_type is not None)

        logger.debug(
            "Built injection: {constants} constant, {triggered} triggered, {chars} chars",
            constants=len(constants),
            triggered=len(triggered),
            chars=len(full_content),
        )

        return InjectionResult(
            actions=final_actions,
            constant_content=constant_content,
            triggered_content=triggered_content,
            full_content=full_content,
            injected_count=len(final_actions),
            skipped_count=len(debug_info.skipped_entries),
            match_type_counts=dict(counts),
            debug_info=debug_info,
        )

    @staticmethod
    def _render(action: InjectionAction, cfg: InjectionConfig) -> InjectionAction:
        if action.entry is None:
            return action
        return action.model_copy(update={"content": render_entry(action.entry, cfg)})

    @staticmethod
    def _join_triggered(actions: Sequence[InjectionAction], cfg: InjectionConfig) -> str:
        if not actions:
            return ""
        if not cfg.separate_by_type:
            return cfg.separator.join(a.content for a in actions)

        groups: Dict[str, List[str]] = {}
        for action in actions:
            groups.setdefault(action.category, []).append(action.content)

        sections = [
            f"### {cfg.label_for(category)}\n{cfg.separator.join(contents)}"
            for category, contents in groups.items()
        ]
        return "\n\n".join(sections)
