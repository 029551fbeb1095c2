"""Synonym dictionary used to widen entry keywords before matching"""

from typing import Dict, List, Optional

BASE_SYNONYMS: Dict[str, List[str]] = {
    "你好": ["您好", "hi", "hello", "哈喽"],
    "再见": ["拜拜", "bye", "goodbye", "回见"],
    "谢谢": ["感谢", "谢了", "thanks", "thank you"],
}


class SynonymDictionary:
    """
    Bidirectional synonym groups.

    A keyword expands to every other member of each group it belongs to,
    whether it is the head word or one of its synonyms.
    """

    def __init__(self, custom: Optional[Dict[str, List[str]]] = None):
        self._groups: Dict[str, List[str]] = {k: list(v) for k, v in BASE_SYNONYMS.items()}
        for word, synonyms in (custom or {}).items():
            self._groups[word] = list(synonyms)

        self._index: Dict[str, List[List[str]]] = {}
        for word, synonyms in self._groups.items():
            group = [word, *synonyms]
            for member in group:
                self._index.setdefault(member.casefold(), []).append(group)

    def __len__(self) -> int:
        return len(self._groups)

    def expand(self, keyword: str) -> List[str]:
        """Synonyms of keyword, excluding keyword itself, in dictionary order"""
        folded = keyword.casefold()
        seen = {folded}
        result = []
        for group in self._index.get(folded, []):
            for member in group:
                if member.casefold() not in seen:
                    seen.add(member.casefold())
                    result.append(member)
        return result
