"""
World entities as plain dataclasses.

These are the variants a task destination can take: a RoomPosition, or one
of Source, Structure (structure_type is the subtype tag), Creep, Resource,
Tombstone, Ruin and ConstructionSite. Everything is rebuilt from the world
snapshot each tick; nothing here survives between ticks.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import numpy as np

from ColonyBot.world.constants import (
    ROOM_SIZE,
    BodyPart,
    OBSTACLE_TYPES,
    StructureType,
    Terrain,
)


# ---------------------------------------------------------------------------
# Positions and stores
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RoomPosition:
    x: int
    y: int
    room_name: str

    def get_range_to(self, other: "RoomPosition") -> float:
        """Chebyshev distance inside one room; infinite across rooms."""
        if other.room_name != self.room_name:
            return math.inf
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def in_range_to(self, other: "RoomPosition", distance: int) -> bool:
        return self.get_range_to(other) <= distance

    def is_near_to(self, other: "RoomPosition") -> bool:
        return self.in_range_to(other, 1)

    def is_edge(self) -> bool:
        return self.x <= 0 or self.y <= 0 or self.x >= ROOM_SIZE - 1 or self.y >= ROOM_SIZE - 1

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "roomName": self.room_name}

    @classmethod
    def from_dict(cls, data) -> Optional["RoomPosition"]:
        """Parse a stored position; anything malformed yields None."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(int(data["x"]), int(data["y"]), str(data["roomName"]))
        except (KeyError, TypeError, ValueError):
            return None

    def __str__(self) -> str:
        return f"[{self.room_name} {self.x},{self.y}]"


@dataclass
class Store:
    energy: int = 0
    capacity: int = 0

    @property
    def free_capacity(self) -> int:
        return max(0, self.capacity - self.energy)

    @property
    def is_full(self) -> bool:
        return self.capacity > 0 and self.energy >= self.capacity

    @property
    def is_empty(self) -> bool:
        return self.energy <= 0

    @property
    def fill_ratio(self) -> float:
        return self.energy / self.capacity if self.capacity else 0.0


@dataclass
class Reservation:
    username: str
    ticks_to_end: int


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Creep:
    id: str
    name: str
    pos: RoomPosition
    body: List[BodyPart] = field(default_factory=list)
    store: Store = field(default_factory=Store)
    my: bool = True
    owner: str = ""
    hits: int = 100
    hits_max: int = 100
    ticks_to_live: Optional[int] = None
    fatigue: int = 0
    spawning: bool = False

    def active_parts(self, part: BodyPart) -> int:
        return sum(1 for p in self.body if p == part)

    def has_part(self, part: BodyPart) -> bool:
        return part in self.body


@dataclass
class Structure:
    id: str
    structure_type: StructureType
    pos: RoomPosition
    hits: int = 0
    hits_max: int = 0
    my: bool = False
    owner: Optional[str] = None
    store: Optional[Store] = None
    cooldown: int = 0
    spawning: Optional[str] = None
    # Controller-only fields.
    level: int = 0
    ticks_to_downgrade: Optional[int] = None
    reservation: Optional[Reservation] = None
    safe_mode: int = 0
    safe_mode_available: int = 0
    safe_mode_cooldown: int = 0

    @property
    def is_obstacle(self) -> bool:
        return self.structure_type in OBSTACLE_TYPES

    @property
    def needs_repair(self) -> bool:
        return self.hits_max > 0 and self.hits < self.hits_max


@dataclass
class Source:
    id: str
    pos: RoomPosition
    energy: int = 3000
    energy_capacity: int = 3000


@dataclass
class Resource:
    id: str
    pos: RoomPosition
    amount: int = 0
    resource_type: str = "energy"


@dataclass
class Tombstone:
    id: str
    pos: RoomPosition
    store: Store = field(default_factory=Store)


@dataclass
class Ruin:
    id: str
    pos: RoomPosition
    store: Store = field(default_factory=Store)


@dataclass
class ConstructionSite:
    id: str
    pos: RoomPosition
    structure_type: StructureType
    my: bool = True
    progress: int = 0
    progress_total: int = 1


GameObject = Union[Creep, Structure, Source, Resource, Tombstone, Ruin, ConstructionSite]


def energy_of(obj) -> int:
    """Energy held by any world object (0 when it has no store)."""
    if isinstance(obj, Resource):
        return obj.amount if obj.resource_type == "energy" else 0
    if isinstance(obj, Source):
        return obj.energy
    store = getattr(obj, "store", None)
    return store.energy if store is not None else 0


def free_capacity_of(obj) -> int:
    store = getattr(obj, "store", None)
    return store.free_capacity if store is not None else 0


# ---------------------------------------------------------------------------
# Room
# ---------------------------------------------------------------------------

def blank_terrain() -> np.ndarray:
    return np.full((ROOM_SIZE, ROOM_SIZE), Terrain.PLAIN, dtype=np.uint8)


@dataclass
class Room:
    name: str
    controller: Optional[Structure] = None
    energy_available: int = 0
    energy_capacity_available: int = 0
    # Indexed [y, x]
    terrain: np.ndarray = field(default_factory=blank_terrain)
    structures: List[Structure] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)
    construction_sites: List[ConstructionSite] = field(default_factory=list)
    dropped_resources: List[Resource] = field(default_factory=list)
    tombstones: List[Tombstone] = field(default_factory=list)
    ruins: List[Ruin] = field(default_factory=list)
    creeps: List[Creep] = field(default_factory=list)
    status: str = "normal"
    exits: Dict[str, str] = field(default_factory=dict)   # direction -> room name

    # ── Queries ──────────────────────────────────────────────────────────

    def terrain_at(self, x: int, y: int) -> Terrain:
        if not (0 <= x < ROOM_SIZE and 0 <= y < ROOM_SIZE):
            return Terrain.WALL
        return Terrain(int(self.terrain[y, x]))

    def my_creeps(self) -> List[Creep]:
        return [c for c in self.creeps if c.my]

    def hostile_creeps(self) -> List[Creep]:
        return [c for c in self.creeps if not c.my]

    def my_structures(self) -> List[Structure]:
        return [s for s in self.structures if s.my]

    def hostile_structures(self) -> List[Structure]:
        return [s for s in self.structures if s.owner is not None and not s.my]

    def structures_of(self, *types: StructureType) -> List[Structure]:
        return [s for s in self.structures if s.structure_type in types]

    @property
    def storage(self) -> Optional[Structure]:
        found = self.structures_of(StructureType.STORAGE)
        return found[0] if found else None

    @property
    def is_mine(self) -> bool:
        return self.controller is not None and self.controller.my

    def structures_at(self, pos: RoomPosition) -> List[Structure]:
        return [s for s in self.structures if s.pos == pos]

    def is_walkable(self, pos: RoomPosition) -> bool:
        if pos.room_name != self.name or self.terrain_at(pos.x, pos.y) == Terrain.WALL:
            return False
        return not any(s.is_obstacle for s in self.structures_at(pos))


def find_in_range(objects: Iterable, pos: RoomPosition, distance: int) -> list:
    """Filter any objects with a .pos to those within range of pos."""
    return [o for o in objects if o.pos.in_range_to(pos, distance)]
