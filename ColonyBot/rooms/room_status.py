"""
Room status — who may go where, and per-room maintenance.

The predicates at the top are pure reads used by the spawn planner, the
colony plan and the task finders. RoomMaintenance is the per-room entry
point the colony loop calls once per tick: it refreshes the safety flags,
the can-operate flag, the energy ratio and (when CPU allows) the sticky
energy figures, spends a safe mode when key structures are badly damaged
under attack, and rebuilds the cached layout facts when the room's layout
signature changes.

Unknown rooms (never seen, so no RoomMemory yet) count as safe. Explorers
rely on that to enter rooms nobody has looked at.
"""

from __future__ import annotations

from typing import List, Optional

from ColonyBot.config import ColonyConfig
from ColonyBot.geometry.site_scoring import harvest_spots, upgrade_spots
from ColonyBot.logger import get_logger
from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.memory.store import GLOBAL, ROOMS, MemoryStore
from ColonyBot.world.constants import BODYPART_COST, BodyPart, ReturnCode, StructureType
from ColonyBot.world.objects import Creep, Room, Structure
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()

HOSTILE_COST_KEY = "hostileCreepCost"

# Own structures whose heavy damage is worth spending a safe mode on.
SAFE_MODE_PROTECTED = frozenset({
    StructureType.EXTENSION,
    StructureType.FACTORY,
    StructureType.LAB,
    StructureType.NUKER,
    StructureType.OBSERVER,
    StructureType.POWER_SPAWN,
    StructureType.SPAWN,
    StructureType.STORAGE,
    StructureType.TERMINAL,
    StructureType.TOWER,
})


# ---------------------------------------------------------------------------
# Threat predicates
# ---------------------------------------------------------------------------

def is_threat_to_room(creep: Creep) -> bool:
    return not creep.my and (
        creep.has_part(BodyPart.ATTACK)
        or creep.has_part(BodyPart.RANGED_ATTACK)
        or creep.has_part(BodyPart.CLAIM)
    )


def is_threat_to_creep(creep: Creep) -> bool:
    return not creep.my and (
        creep.has_part(BodyPart.ATTACK) or creep.has_part(BodyPart.RANGED_ATTACK)
    )


def room_memory(store: MemoryStore, room_name: str) -> RoomMemory:
    return RoomMemory(room_name, store.section(ROOMS, room_name))


def is_room_safe(store: MemoryStore, room_name: str) -> bool:
    return room_memory(store, room_name).safe_for_creeps is not False


# ---------------------------------------------------------------------------
# Ownership and reservation
# ---------------------------------------------------------------------------

def is_reservation_ok(controller: Structure, username: str, min_ticks: int = 2500) -> bool:
    if controller.my:
        return True
    reservation = controller.reservation
    if reservation is None or reservation.username != username:
        return False
    return reservation.ticks_to_end >= min_ticks


def is_reserved_by_others(controller: Structure, username: str) -> bool:
    reservation = controller.reservation
    return reservation is not None and reservation.username != username


def can_operate_in_room(room: Room, username: str) -> bool:
    controller = room.controller
    if controller is None or controller.my:
        return True
    if controller.reservation is not None and controller.reservation.username == username:
        return True
    if room.structures_of(StructureType.INVADER_CORE):
        return False
    return controller.owner is None and controller.reservation is None


def should_harvest_room(world: WorldQuery, store: MemoryStore, room: Room) -> bool:
    """Safe, and either mine or next to a room that is mine."""
    if not is_room_safe(store, room.name):
        return False
    if room.is_mine:
        return True
    for neighbour_name in world.exits(room.name).values():
        neighbour = world.get_room(neighbour_name)
        if neighbour is not None and neighbour.is_mine:
            return True
    return False


def should_harvest_room_name(world: WorldQuery, store: MemoryStore, room_name: str) -> bool:
    """should_harvest_room by name; exits resolve rooms not seen this tick."""
    room = world.get_room(room_name)
    if room is not None:
        return should_harvest_room(world, store, room)
    if not is_room_safe(store, room_name):
        return False
    for neighbour_name in world.exits(room_name).values():
        neighbour = world.get_room(neighbour_name)
        if neighbour is not None and neighbour.is_mine:
            return True
    return False


def should_reserve_room(
    store: MemoryStore, room: Room, username: str, config: ColonyConfig
) -> bool:
    controller = room.controller
    if controller is None or controller.owner is not None:
        return False
    if not is_room_safe(store, room.name):
        return False
    if is_reservation_ok(controller, username, config.rooms.reservation_ok_ticks):
        return False
    return not is_reserved_by_others(controller, username)


def room_score(world: WorldQuery, room: Room) -> float:
    """Sum over sources of 1 / path length to the controller."""
    if room.controller is None:
        return 0.0
    score = 0.0
    for source in room.sources:
        cost = world.path_distance(source.pos, room.controller.pos)
        if cost:
            score += 1.0 / cost
    return score


def layout_signature(room: Room) -> List[str]:
    return [
        str(len(room.structures)),
        str(len(room.construction_sites)),
        "hostile" if room.hostile_creeps() else "clear",
    ]


# ---------------------------------------------------------------------------
# Per-room maintenance
# ---------------------------------------------------------------------------

class RoomMaintenance:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        config: ColonyConfig | None = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.config = config or ColonyConfig()

    def run(self, room: Room, spare_cpu: bool = True) -> RoomMemory:
        memory = room_memory(self.store, room.name)
        self.update_hostiles(room, memory)
        if memory.claim_is_safe is False:
            self.activate_safe_mode_if_needed(room)
        self.refresh_layout_cache(room, memory)
        if memory.score is None or spare_cpu:
            memory.score = room_score(self.world, room)
        self.check_can_operate(room, memory)
        if spare_cpu:
            self.update_sticky_energy(room, memory)
        self.update_energy(room, memory)
        return memory

    # ------------------------------------------------------------------
    # Safety
    # ------------------------------------------------------------------

    def update_hostiles(self, room: Room, memory: RoomMemory) -> None:
        hostiles = room.hostile_creeps()
        if hostiles:
            self.store.set(GLOBAL, HOSTILE_COST_KEY, sum(BODYPART_COST[p] for p in hostiles[0].body))

        safe_mode = room.controller.safe_mode if room.controller is not None else 0
        protected = safe_mode > self.config.rooms.safe_mode_ticks
        memory.claim_is_safe = protected or not any(is_threat_to_room(h) for h in hostiles)
        armed_towers = [
            s for s in room.hostile_structures()
            if s.structure_type == StructureType.TOWER and s.store is not None and s.store.energy > 0
        ]
        memory.safe_for_creeps = protected or (
            not any(is_threat_to_creep(h) for h in hostiles) and not armed_towers
        )

        present = bool(hostiles)
        if memory.hostile_present != present:
            log.colony_event(
                "HOSTILES",
                f"{room.name} {'entered' if present else 'left'} ({len(hostiles)} units)",
                tick=self.world.time,
            )
            memory.hostile_present = present

    def check_can_operate(self, room: Room, memory: RoomMemory) -> None:
        value = can_operate_in_room(room, self.world.username)
        if memory.can_operate != value:
            log.colony_event(
                "CAN_OPERATE",
                f"{room.name} {memory.can_operate} -> {value}",
                tick=self.world.time,
            )
            memory.can_operate = value

    def activate_safe_mode_if_needed(self, room: Room) -> bool:
        """
        Activate safe mode when a key structure is below half its hits.

        Only one room can be in safe mode at a time, so the activation is
        kept for the highest-level room that still has one available.
        """
        controller = room.controller
        if controller is None or not controller.my:
            return False
        damaged = [
            s for s in room.my_structures()
            if s.structure_type in SAFE_MODE_PROTECTED and s.hits < s.hits_max / 2
        ]
        if not damaged:
            return False
        best_level = max(
            (
                r.controller.level for r in self.world.rooms()
                if r.is_mine and r.controller.safe_mode_available > 0
                and not r.controller.safe_mode_cooldown
            ),
            default=0,
        )
        if controller.level < best_level:
            return False
        outcome = self.actions.activate_safe_mode(controller)
        if outcome != ReturnCode.OK:
            log.debug("Safe mode in %s: %s", room.name, outcome.name, tick=self.world.time)
            return False
        log.colony_event(
            "SAFE_MODE",
            f"{room.name} activated ({damaged[0].structure_type.value} at {damaged[0].hits} hits)",
            tick=self.world.time,
        )
        return True

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------

    def update_energy(self, room: Room, memory: RoomMemory) -> None:
        if room.energy_capacity_available <= 0:
            return
        old_ratio = memory.energy_ratio
        ratio = room.energy_available / room.energy_capacity_available
        memory.energy_ratio = ratio
        memory.energy_ratio_delta = ratio - old_ratio
        if ratio - old_ratio > self.config.rooms.lacked_energy_delta or ratio >= 1:
            memory.lacked_energy_since = self.world.time

    def update_sticky_energy(self, room: Room, memory: RoomMemory) -> None:
        """Rate-limited running energy per store structure, plus raw delta."""
        rate = self.config.rooms.sticky_energy_rate
        previous = memory.sticky_energy
        values, deltas = {}, {}
        for structure in room.structures:
            if structure.store is None or structure.structure_type == StructureType.CONTROLLER:
                continue
            now = structure.store.energy
            then = previous.get(structure.id, 0.0)
            values[structure.id] = max(min(now, then + rate), then - rate)
            deltas[structure.id] = now - then
        memory.sticky_energy = values
        memory.sticky_energy_delta = deltas

    # ------------------------------------------------------------------
    # Layout cache
    # ------------------------------------------------------------------

    def refresh_layout_cache(self, room: Room, memory: RoomMemory) -> bool:
        """Recompute cached geometry when the layout signature changed."""
        signature = layout_signature(room)
        if memory.layout_signature == signature:
            return False
        memory.invalidate_layout()
        memory.layout_signature = signature
        memory.structure_count = len(room.structures)
        memory.construction_count = len(room.construction_sites)
        if room.controller is not None:
            memory.set_upgrade_spots(upgrade_spots(room, self.config.tasks.work_range))
        memory.set_harvest_spots(harvest_spots(room))
        memory.repair_target_ids = [
            s.id for s in room.structures
            if s.needs_repair and (s.my or s.owner is None)
        ]
        log.debug("layout cache refreshed for %s", room.name, tick=self.world.time)
        return True


def repair_work_remaining(room: Room, memory: Optional[RoomMemory] = None) -> bool:
    if memory is not None and memory.repair_target_ids:
        return True
    return any(s.needs_repair and (s.my or s.owner is None) for s in room.structures)
