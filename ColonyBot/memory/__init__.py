"""
ColonyBot.memory — the persisted document and typed views over it.

Public API
----------
    from ColonyBot.memory import MemoryStore, UnitMemory, RoomMemory
"""

from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.memory.store import CREEPS, GLOBAL, ROOMS, MemoryField, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory

__all__ = [
    "CREEPS",
    "GLOBAL",
    "ROOMS",
    "MemoryField",
    "MemoryStore",
    "RoomMemory",
    "UnitMemory",
]
