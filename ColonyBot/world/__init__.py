"""
ColonyBot.world — the environment seen through two protocols.

Public API
----------
    from ColonyBot.world import WorldQuery, ActionPort, SnapshotWorld
    from ColonyBot.world.objects import Room, RoomPosition, Creep, Structure
    from ColonyBot.world.constants import ReturnCode, StructureType, BodyPart, Role
"""

from ColonyBot.world.protocol import ActionPort, WorldQuery
from ColonyBot.world.snapshot import SnapshotWorld

__all__ = [
    "ActionPort",
    "WorldQuery",
    "SnapshotWorld",
]
