"""
ColonyPlan — colony-wide facts refreshed every few ticks.

The plan is the expensive cross-room survey (which controllers to reserve,
which roles are missing) that does not have to be exact every tick. The
colony loop rebuilds it every ``plan_interval`` ticks or whenever CPU is
spare, persists it under ``Memory.global.plan`` and hands the loaded copy to
the task finders and the spawn planner in between.

Also here: the wipe-out check, which watches for the colony losing all its
units, all its spawns or a room, and logs the change once.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List, Optional

from ColonyBot.config import ColonyConfig
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import CREEPS, GLOBAL, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.rooms.room_status import should_harvest_room, should_reserve_room
from ColonyBot.world.protocol import WorldQuery

log = get_logger()

PLAN_KEY = "plan"


@dataclass
class ColonyPlan:
    controllers_to_reserve: List[str] = field(default_factory=list)
    need_harvesters: bool = False
    need_infantry: bool = False
    need_reservers: bool = False
    need_transferers: bool = False
    max_room_energy: int = 0
    max_room_energy_cap: int = 0
    min_ticks_to_downgrade: Optional[int] = None
    updated: int = 0

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, store: MemoryStore) -> None:
        store.set(GLOBAL, PLAN_KEY, asdict(self))

    @classmethod
    def load(cls, store: MemoryStore) -> Optional["ColonyPlan"]:
        data = store.get(GLOBAL, PLAN_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                controllers_to_reserve=[str(i) for i in data.get("controllers_to_reserve", [])],
                need_harvesters=bool(data.get("need_harvesters", False)),
                need_infantry=bool(data.get("need_infantry", False)),
                need_reservers=bool(data.get("need_reservers", False)),
                need_transferers=bool(data.get("need_transferers", False)),
                max_room_energy=int(data.get("max_room_energy", 0)),
                max_room_energy_cap=int(data.get("max_room_energy_cap", 0)),
                min_ticks_to_downgrade=(
                    int(data["min_ticks_to_downgrade"])
                    if data.get("min_ticks_to_downgrade") is not None else None
                ),
                updated=int(data.get("updated", 0)),
            )
        except (TypeError, ValueError):
            return None

    def is_due(self, now: int, interval: int) -> bool:
        return now - self.updated >= interval


# ---------------------------------------------------------------------------
# Surveys
# ---------------------------------------------------------------------------

def targeted_ids(world: WorldQuery, store: MemoryStore) -> set:
    """Entity ids some live unit currently has as its destination."""
    ids = set()
    for creep in world.my_creeps():
        data = store.get(CREEPS, creep.name)
        if isinstance(data, dict):
            destination = UnitMemory(creep.name, data).destination
            if isinstance(destination, str):
                ids.add(destination)
    return ids


def controllers_to_reserve(
    world: WorldQuery, store: MemoryStore, config: ColonyConfig
) -> List[str]:
    """Reservable, harvest-worthy controllers nobody is heading for, soonest-expiring first."""
    taken = targeted_ids(world, store)
    found = []
    for room in world.rooms():
        controller = room.controller
        if controller is None or controller.id in taken:
            continue
        if not should_reserve_room(store, room, world.username, config):
            continue
        if not should_harvest_room(world, store, room):
            continue
        ticks = controller.reservation.ticks_to_end if controller.reservation else 0
        found.append((ticks, controller.id))
    return [controller_id for _, controller_id in sorted(found)]


def min_ticks_to_downgrade(world: WorldQuery) -> Optional[int]:
    values = [
        room.controller.ticks_to_downgrade
        for room in world.rooms()
        if room.is_mine and room.controller.ticks_to_downgrade is not None
    ]
    return min(values) if values else None


# ---------------------------------------------------------------------------
# Wipe-out check
# ---------------------------------------------------------------------------

def check_wipe_out(world: WorldQuery, store: MemoryStore) -> bool:
    """Record have_creeps / have_spawns / owned_room_count; True when any changed."""
    have_creeps = bool(world.my_creeps())
    have_spawns = bool(world.my_spawns())
    owned_room_count = sum(1 for room in world.rooms() if room.is_mine)

    changed = (
        bool(store.get(GLOBAL, "haveCreeps", False)) != have_creeps
        or bool(store.get(GLOBAL, "haveSpawns", False)) != have_spawns
        or store.get(GLOBAL, "ownedRoomCount", 0) != owned_room_count
    )
    if changed:
        log.colony_event(
            "WIPE_OUT",
            f"creeps={have_creeps} spawns={have_spawns} rooms={owned_room_count}",
            tick=world.time,
        )
        store.set(GLOBAL, "haveCreeps", have_creeps)
        store.set(GLOBAL, "haveSpawns", have_spawns)
        store.set(GLOBAL, "ownedRoomCount", owned_room_count)
    return changed
