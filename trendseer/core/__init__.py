from trendseer.core.history import ChatHistoryStore
from trendseer.core.memory import MemoryManager, MemorySummary, UserContext, consolidate_memories
from trendseer.core.router import determine_tools_to_use, fetch_real_time_data

__all__ = [
    "ChatHistoryStore",
    "MemoryManager",
    "MemorySummary",
    "UserContext",
    "consolidate_memories",
    "determine_tools_to_use",
    "fetch_real_time_data",
]
