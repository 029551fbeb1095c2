"""Entry sources"""

from typing import Any, Dict, Iterable, List, Protocol, runtime_checkable


@runtime_checkable
class EntryRepository(Protocol):
    """Anything that can hand the engine a list of raw entry records"""

    def load(self) -> List[Dict[str, Any]]:
        ...


class InMemoryEntryRepository:
    """Holds raw records in memory; useful for tests and embedding callers"""

    def __init__(self, records: Iterable[Dict[str, Any]] = ()):
        self._records: List[Dict[str, Any]] = [dict(r) for r in records]

    def add(self, record: Dict[str, Any]) -> None:
        self._records.append(dict(record))

    def load(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._records]

    def __len__(self) -> int:
        return len(self._records)
