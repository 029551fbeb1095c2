"""Adapters from external entry formats to TriggerEntry"""

from loretrigger.adapters import role_memory, worldbook
from loretrigger.adapters.repository import EntryRepository, InMemoryEntryRepository
from loretrigger.adapters.role_memory import ROLE_MEMORY_CATEGORY_CAPS
