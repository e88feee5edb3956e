"""
Game constants shared by every layer: enums for terrain, body parts,
structure types and primitive return codes, plus the numeric tables the
planners depend on.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, List


ROOM_SIZE = 50
ENERGY_REGEN_TIME = 300
HARVEST_POWER = 2
CREEP_SPAWN_TIME = 3        # ticks per body part
CREEP_LIFE_TIME = 1500


class Terrain(IntEnum):
    PLAIN = 0
    WALL  = 1
    SWAMP = 2


class BodyPart(str, Enum):
    MOVE          = "move"
    WORK          = "work"
    CARRY         = "carry"
    ATTACK        = "attack"
    RANGED_ATTACK = "ranged_attack"
    HEAL          = "heal"
    CLAIM         = "claim"
    TOUGH         = "tough"


BODYPART_COST: Dict[BodyPart, int] = {
    BodyPart.MOVE:          50,
    BodyPart.WORK:          100,
    BodyPart.CARRY:         50,
    BodyPart.ATTACK:        80,
    BodyPart.RANGED_ATTACK: 150,
    BodyPart.HEAL:          250,
    BodyPart.CLAIM:         600,
    BodyPart.TOUGH:         10,
}

CARRY_CAPACITY = 50


class StructureType(str, Enum):
    SPAWN        = "spawn"
    EXTENSION    = "extension"
    TOWER        = "tower"
    LINK         = "link"
    STORAGE      = "storage"
    CONTAINER    = "container"
    ROAD         = "road"
    CONTROLLER   = "controller"
    WALL         = "constructedWall"
    RAMPART      = "rampart"
    OBSERVER     = "observer"
    EXTRACTOR    = "extractor"
    TERMINAL     = "terminal"
    LAB          = "lab"
    POWER_SPAWN  = "powerSpawn"
    NUKER        = "nuker"
    FACTORY      = "factory"
    INVADER_CORE = "invaderCore"


# Structures a creep cannot stand on.
OBSTACLE_TYPES = frozenset({
    StructureType.SPAWN,
    StructureType.EXTENSION,
    StructureType.TOWER,
    StructureType.LINK,
    StructureType.STORAGE,
    StructureType.CONTROLLER,
    StructureType.WALL,
    StructureType.OBSERVER,
    StructureType.EXTRACTOR,
    StructureType.TERMINAL,
    StructureType.LAB,
    StructureType.POWER_SPAWN,
    StructureType.NUKER,
    StructureType.FACTORY,
    StructureType.INVADER_CORE,
})

# Construction sites are worked on in this order.
BUILD_PRIORITY: List[StructureType] = [
    StructureType.SPAWN,
    StructureType.TOWER,
    StructureType.STORAGE,
    StructureType.CONTAINER,
    StructureType.LINK,
    StructureType.EXTENSION,
    StructureType.ROAD,
    StructureType.WALL,
    StructureType.RAMPART,
    StructureType.EXTRACTOR,
    StructureType.OBSERVER,
    StructureType.POWER_SPAWN,
    StructureType.LAB,
    StructureType.TERMINAL,
    StructureType.NUKER,
    StructureType.FACTORY,
]

# Allowed structure count per controller level (index = level 0..8).
CONTROLLER_STRUCTURES: Dict[StructureType, List[int]] = {
    StructureType.SPAWN:     [0, 1, 1, 1, 1, 1, 1, 2, 3],
    StructureType.EXTENSION: [0, 0, 5, 10, 20, 30, 40, 50, 60],
    StructureType.TOWER:     [0, 0, 0, 1, 1, 2, 2, 3, 6],
    StructureType.STORAGE:   [0, 0, 0, 0, 1, 1, 1, 1, 1],
    StructureType.LINK:      [0, 0, 0, 0, 0, 2, 3, 4, 6],
    StructureType.OBSERVER:  [0, 0, 0, 0, 0, 0, 0, 0, 1],
}


class ReturnCode(IntEnum):
    """Status codes returned by every action primitive."""

    OK                   = 0
    NOT_OWNER            = -1
    NO_PATH              = -2
    NAME_EXISTS          = -3
    BUSY                 = -4
    NOT_FOUND            = -5
    NOT_ENOUGH_RESOURCES = -6
    INVALID_TARGET       = -7
    FULL                 = -8
    NOT_IN_RANGE         = -9
    INVALID_ARGS         = -10
    TIRED                = -11
    NO_BODYPART          = -12
    RCL_NOT_ENOUGH       = -14

    @classmethod
    def parse(cls, value) -> "ReturnCode":
        """Map an arbitrary stored value back onto a code (unknown -> INVALID_ARGS)."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.INVALID_ARGS


class Role(str, Enum):
    CARRIER    = "carrier"
    EXPLORER   = "explorer"
    HARVESTER  = "harvester"
    INFANTRY   = "infantry"
    RESERVER   = "reserver"
    TRANSFERER = "transferer"
    UPGRADER   = "upgrader"
    WORKER     = "worker"

    @property
    def initial(self) -> str:
        return self.value[0].upper()

    @classmethod
    def from_name(cls, creep_name: str) -> "Role | None":
        """Fallback used when a creep's memory lost its role field."""
        if not creep_name:
            return None
        for role in cls:
            if role.initial == creep_name[0].upper():
                return role
        return None


class Action(str, Enum):
    """Verbs a unit task can carry; each maps onto one primitive."""

    HARVEST  = "harvest"
    WITHDRAW = "withdraw"
    TRANSFER = "transfer"
    PICKUP   = "pickup"
    BUILD    = "build"
    REPAIR   = "repair"
    UPGRADE  = "upgrade"
    RESERVE  = "reserve"
    ATTACK   = "attack"
    HEAL     = "heal"
    MOVE     = "move"
    RECYCLE  = "recycle"
