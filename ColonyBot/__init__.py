"""
ColonyBot — a tick-driven colony controller.

Public API
----------
    from ColonyBot import ColonyBot, ColonyConfig
    from ColonyBot.world.snapshot import SnapshotWorld
    from ColonyBot.memory import MemoryStore
"""

from ColonyBot.colony_bot import ColonyBot
from ColonyBot.config import ColonyConfig

__all__ = ["ColonyBot", "ColonyConfig"]
