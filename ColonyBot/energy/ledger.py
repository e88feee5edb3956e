"""
Energy Ledger — tick-scoped projection of every energy store in a room.

Each entry holds what an object has (``energy``) and what it can still
take (``free_capacity``) after subtracting the commitments that units have
already made against it.

Double-allocation guard
-----------------------
World stores do NOT change between the moment a unit picks a container and
the moment its withdraw actually lands, which can be several ticks later.
When N units resolve in the same tick they would all see the same energy and
all be routed to the same marginal pile.

Two mechanisms close that gap:
  1. When a room's snapshot is built, every live unit whose memory already
     holds a withdraw / pickup / transfer against an object in that room has
     its carry amount applied to the entry (in-flight commitments).
  2. After the snapshot is built it is never re-queried in the same tick.
     Task finders call reserve() / release() as they commit, so the next unit
     sees the adjusted figure.

The cache is reset the first time it is touched in a new tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ColonyBot.config import TaskConfig
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import CREEPS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.world.constants import Action, StructureType
from ColonyBot.world.objects import (
    Resource,
    Room,
    RoomPosition,
    Ruin,
    Source,
    Structure,
    Tombstone,
)
from ColonyBot.world.protocol import WorldQuery

log = get_logger()


# Kind tags for entries that are not structures.
DROPPED = "resource"
TOMBSTONE = "tombstone"
RUIN = "ruin"
SOURCE = "source"

STORE_STRUCTURES = frozenset({
    StructureType.CONTAINER,
    StructureType.STORAGE,
    StructureType.LINK,
    StructureType.TOWER,
    StructureType.SPAWN,
    StructureType.EXTENSION,
})


@dataclass
class EnergyEntry:
    id: str
    energy: int
    free_capacity: int
    capacity: int
    pos: RoomPosition
    kind: str

    @property
    def room_name(self) -> str:
        return self.pos.room_name


class EnergyLedger:
    """
    Per-room energy projection, rebuilt lazily once per tick.

    reserve(id, amount)  a consumer takes energy out (withdraw / pickup)
    release(id, amount)  a producer puts energy in (transfer)

    Both clamp to what is left and return the amount actually committed, so
    no sequence of calls can drive energy or free capacity below zero.
    """

    def __init__(self, world: WorldQuery, store: MemoryStore, config: TaskConfig | None = None):
        self.world = world
        self.store = store
        self.cfg = config or TaskConfig()
        self._rooms: Dict[str, Dict[str, EnergyEntry]] = {}
        self._room_of: Dict[str, str] = {}
        self._tick: int = -1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def snapshot(self, room_name: str) -> List[EnergyEntry]:
        return list(self._room_entries(room_name).values())

    def entry(self, object_id: str) -> Optional[EnergyEntry]:
        """Entry for any object, building its room's snapshot on first use."""
        self._refresh_tick()
        room_name = self._room_of.get(object_id)
        if room_name is None:
            obj = self.world.get_object_by_id(object_id)
            if obj is None:
                return None
            room_name = obj.pos.room_name
        return self._room_entries(room_name).get(object_id)

    def energy(self, object_id: str) -> int:
        found = self.entry(object_id)
        return found.energy if found is not None else 0

    def free_capacity(self, object_id: str) -> int:
        found = self.entry(object_id)
        return found.free_capacity if found is not None else 0

    def reserve(self, object_id: str, amount: int) -> int:
        found = self.entry(object_id)
        if found is None or amount <= 0:
            return 0
        return _take(found, amount)

    def release(self, object_id: str, amount: int) -> int:
        found = self.entry(object_id)
        if found is None or amount <= 0:
            return 0
        return _give(found, amount)

    def total(self, room_name: str, kinds: Iterable[str]) -> int:
        wanted = set(kinds)
        return sum(e.energy for e in self.snapshot(room_name) if e.kind in wanted)

    # ------------------------------------------------------------------
    # Snapshot construction
    # ------------------------------------------------------------------

    def _refresh_tick(self) -> None:
        if self.world.time != self._tick:
            self._rooms = {}
            self._room_of = {}
            self._tick = self.world.time

    def _room_entries(self, room_name: str) -> Dict[str, EnergyEntry]:
        self._refresh_tick()
        entries = self._rooms.get(room_name)
        if entries is None:
            room = self.world.get_room(room_name)
            entries = self._build(room) if room is not None else {}
            self._rooms[room_name] = entries
            for object_id in entries:
                self._room_of[object_id] = room_name
            self._apply_commitments(room_name, entries)
        return entries

    def _build(self, room: Room) -> Dict[str, EnergyEntry]:
        entries: Dict[str, EnergyEntry] = {}

        def add(entry: EnergyEntry) -> None:
            entries[entry.id] = entry

        for resource in room.dropped_resources:
            if resource.resource_type == "energy" and resource.amount > 0:
                add(_from_resource(resource))
        for holder, kind in [(t, TOMBSTONE) for t in room.tombstones] + \
                            [(r, RUIN) for r in room.ruins]:
            if holder.store.energy > 0:
                add(_from_holder(holder, kind))
        for structure in room.structures:
            if structure.structure_type in STORE_STRUCTURES and structure.store is not None:
                add(_from_structure(structure))
        for source in room.sources:
            add(_from_source(source))
        return entries

    def _apply_commitments(self, room_name: str, entries: Dict[str, EnergyEntry]) -> None:
        """Fold the plans already stored in unit memory into fresh entries."""
        for creep in self.world.my_creeps():
            data = self.store.get(CREEPS, creep.name)
            if not isinstance(data, dict):
                continue
            memory = UnitMemory(creep.name, data)
            target = memory.destination
            if not isinstance(target, str):
                continue
            found = entries.get(target)
            if found is None:
                continue
            if memory.action in (Action.WITHDRAW, Action.PICKUP):
                _take(found, creep.store.free_capacity)
            elif memory.action == Action.TRANSFER:
                _give(found, creep.store.energy)
        log.debug("energy snapshot %s: %d entries", room_name, len(entries), tick=self.world.time)


def _from_resource(resource: Resource) -> EnergyEntry:
    return EnergyEntry(resource.id, resource.amount, 0, 0, resource.pos, DROPPED)


def _from_holder(holder: Tombstone | Ruin, kind: str) -> EnergyEntry:
    return EnergyEntry(holder.id, holder.store.energy, 0, 0, holder.pos, kind)


def _from_structure(structure: Structure) -> EnergyEntry:
    store = structure.store
    return EnergyEntry(
        structure.id,
        store.energy,
        store.free_capacity,
        store.capacity,
        structure.pos,
        structure.structure_type.value,
    )


def _from_source(source: Source) -> EnergyEntry:
    return EnergyEntry(source.id, source.energy, 0, 0, source.pos, SOURCE)


def _take(entry: EnergyEntry, amount: int) -> int:
    taken = max(0, min(amount, entry.energy))
    entry.energy -= taken
    if entry.capacity > 0:
        entry.free_capacity = min(entry.capacity, entry.free_capacity + taken)
    return taken


def _give(entry: EnergyEntry, amount: int) -> int:
    given = max(0, min(amount, entry.free_capacity))
    entry.free_capacity -= given
    entry.energy += given
    return given
