"""
SpawnPlanner — decides which unit the colony produces next, and where.

Priority table
--------------
Rules are checked in order; the first need that a spawn point can serve
wins that spawn point for this tick. A need no spawn point can afford yet
stops the cascade so lower roles do not eat the energy it is waiting for.

  1. harvester   a harvestable source without a harvester that outlives
                 its own replacement time
  2. transferer  a storage with a link beside it and no transferer
  3. carrier     hauling demand (energy lying in containers, ruins,
                 tombstones and on the ground) rising over the trend window
                 and above the hauling floor
  4. infantry    hostile threat (armed hostile parts minus our towers)
                 rising over the trend window
  5. explorer    none alive and no observer to look around instead
  6. reserver    more reservable controllers than live reservers
  7. worker      an owned room with construction or repair work and no
                 worker of its own
  8. upgrader    an owned room with energy in storage and no upgrader

Spawn selection
---------------
Only idle spawns whose room holds enough energy qualify. With a target
position, spawns outside the target's room must be in a safe room and
within max_spawn_range (global range); the nearest wins, and among equally
near spawns the one with the least spare energy (cheapest fit).

Failure
-------
A command the spawn primitive rejects is logged and counted. The spawn is
not retried this tick; the next tick plans from scratch.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from ColonyBot.config import ColonyConfig
from ColonyBot.geometry.positions import global_range, positions_around_with_terrain_space
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import CREEPS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.rooms.plan import ColonyPlan, controllers_to_reserve, min_ticks_to_downgrade
from ColonyBot.rooms.room_status import (
    is_room_safe,
    repair_work_remaining,
    room_memory,
    should_harvest_room,
)
from ColonyBot.spawning.body import (
    body_cost,
    body_for,
    downscale_harvester,
    harvester_body,
)
from ColonyBot.spawning.trends import TrendTracker
from ColonyBot.tick_stats import TickStats
from ColonyBot.world.constants import (
    CREEP_SPAWN_TIME,
    Action,
    BodyPart,
    ReturnCode,
    Role,
    StructureType,
)
from ColonyBot.world.objects import Creep, Room, RoomPosition, Source, Structure
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()

HAULING = "hauling"
THREAT = "threat"

# Units this close to death no longer count towards a role's head count.
MIN_TICKS_TO_LIVE = 120

_HAULED_KINDS = (StructureType.CONTAINER,)
_THREAT_PARTS = (BodyPart.ATTACK, BodyPart.RANGED_ATTACK, BodyPart.HEAL)


# ── Requests and commands ─────────────────────────────────────────────────────

@dataclass
class SpawnRequest:
    """One unmet need: what to spawn, its initial memory and where it is needed."""
    role: Role
    body: Optional[List[BodyPart]]
    memory: Dict[str, object] = field(default_factory=dict)
    target_pos: Optional[RoomPosition] = None
    reason: str = ""


@dataclass
class SpawnCommand:
    spawn_id: str
    role: Role
    name: str
    body: List[BodyPart]
    memory: Dict[str, object]
    outcome: ReturnCode = ReturnCode.OK

    @property
    def accepted(self) -> bool:
        return self.outcome == ReturnCode.OK


# ── Planner ───────────────────────────────────────────────────────────────────

class SpawnPlanner:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        config: ColonyConfig | None = None,
        rng: Optional[random.Random] = None,
        stats: Optional[TickStats] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.config = config or ColonyConfig()
        self.cfg = self.config.spawning
        self.rng = rng or random.Random()
        self.stats = stats or TickStats()
        self.trends = TrendTracker(store, self.cfg.trend_window)
        self.plan: Optional[ColonyPlan] = None
        self._rules: List[Callable[[], Optional[SpawnRequest]]] = [
            self.need_harvester,
            self.need_transferer,
            self.need_carrier,
            self.need_infantry,
            self.need_explorer,
            self.need_reserver,
            self.need_worker,
            self.need_upgrader,
        ]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def plan_spawns(self) -> List[SpawnCommand]:
        """Evaluate the priority table; at most one command per spawn point."""
        commands: List[SpawnCommand] = []
        busy: Set[str] = {s.id for s in self.world.my_spawns() if s.spawning}
        issued_names: Set[str] = set()

        for rule in self._rules:
            if len(busy) >= len(self.world.my_spawns()):
                break
            request = rule()
            if request is None:
                continue
            spawn, body = self._fit(request, busy)
            if spawn is None or body is None:
                log.debug(
                    "Waiting to spawn %s (%s): no spawn fits",
                    request.role.value,
                    request.reason,
                    tick=self.world.time,
                )
                break
            command = self._issue(spawn, request, body, issued_names)
            busy.add(spawn.id)
            commands.append(command)
        return commands

    # ------------------------------------------------------------------
    # Rules (priority order)
    # ------------------------------------------------------------------

    def need_harvester(self) -> Optional[SpawnRequest]:
        source = self.source_to_harvest()
        if source is None:
            return None
        memory = {
            "role": Role.HARVESTER.value,
            "sourceId": source.id,
            "homeRoom": source.pos.room_name,
        }
        spot = self.harvest_pos(source)
        if spot is not None:
            memory["destination"] = spot.to_dict()
            memory["action"] = Action.MOVE.value
        return SpawnRequest(
            Role.HARVESTER, harvester_body(source), memory, source.pos,
            reason=f"source {source.id} unmanned",
        )

    def need_transferer(self) -> Optional[SpawnRequest]:
        pairs = self.storages_requiring_transferer()
        if not pairs:
            return None
        storage, link = pairs[0]
        memory = {
            "role": Role.TRANSFERER.value,
            "upstreamId": link.id,
            "downstreamId": storage.id,
            "homeRoom": storage.pos.room_name,
        }
        return SpawnRequest(Role.TRANSFERER, None, memory, storage.pos, reason=f"storage {storage.id}")

    def need_carrier(self) -> Optional[SpawnRequest]:
        if not self.trends.rising_above(HAULING, self.world.time, self.cfg.hauling_floor):
            return None
        return SpawnRequest(Role.CARRIER, None, {"role": Role.CARRIER.value}, reason="hauling demand rising")

    def need_infantry(self) -> Optional[SpawnRequest]:
        if not self.infantry_needed():
            return None
        target = self.threat_position()
        memory = {"role": Role.INFANTRY.value}
        if target is not None:
            memory["homeRoom"] = target.room_name
        return SpawnRequest(Role.INFANTRY, None, memory, target, reason="threat rising")

    def need_explorer(self) -> Optional[SpawnRequest]:
        if self.count_role(Role.EXPLORER, min_ticks_to_live=0) > 0:
            return None
        observers = [
            s for room in self.world.rooms()
            for s in room.structures_of(StructureType.OBSERVER) if s.my
        ]
        if observers:
            return None
        return SpawnRequest(Role.EXPLORER, None, {"role": Role.EXPLORER.value}, reason="no explorer")

    def need_reserver(self) -> Optional[SpawnRequest]:
        controllers = self._controllers_to_reserve()
        if len(controllers) <= self.count_role(Role.RESERVER):
            return None
        controller = self.world.get_object_by_id(controllers[0])
        if not isinstance(controller, Structure):
            return None
        memory = {
            "role": Role.RESERVER.value,
            "destination": controller.id,
            "action": Action.RESERVE.value,
            "homeRoom": controller.pos.room_name,
        }
        return SpawnRequest(Role.RESERVER, None, memory, controller.pos, reason=f"reserve {controller.id}")

    def need_worker(self) -> Optional[SpawnRequest]:
        for room in self._owned_rooms():
            if not room.construction_sites and not repair_work_remaining(
                room, room_memory(self.store, room.name)
            ):
                continue
            if self.count_role(Role.WORKER, home_room=room.name) > 0:
                continue
            memory = {"role": Role.WORKER.value, "homeRoom": room.name}
            return SpawnRequest(Role.WORKER, None, memory, self._room_anchor(room), reason=f"work in {room.name}")
        return None

    def need_upgrader(self) -> Optional[SpawnRequest]:
        for room in self._owned_rooms():
            storage = room.storage
            if storage is None or storage.store is None or storage.store.energy <= 0:
                continue
            if self.count_role(Role.UPGRADER, home_room=room.name) > 0:
                continue
            memory = {"role": Role.UPGRADER.value, "homeRoom": room.name}
            return SpawnRequest(Role.UPGRADER, None, memory, room.controller.pos, reason=f"storage in {room.name}")
        return None

    # ------------------------------------------------------------------
    # Surveys
    # ------------------------------------------------------------------

    def source_to_harvest(self) -> Optional[Source]:
        """The richest harvestable source without a lasting harvester."""
        sources = []
        for room in self.world.rooms():
            if not is_room_safe(self.store, room.name):
                continue
            if room_memory(self.store, room.name).can_operate is False:
                continue
            if not should_harvest_room(self.world, self.store, room):
                continue
            sources.extend(s for s in room.sources if not self.source_has_harvester(s))
        if not sources:
            return None
        return max(sources, key=lambda s: (s.energy + s.energy_capacity, s.id))

    def source_has_harvester(self, source: Source) -> bool:
        replace_after = len(harvester_body(source)) * CREEP_SPAWN_TIME + self.cfg.harvester_replace_margin
        for creep, memory in self._live_units():
            if memory.source_id != source.id:
                continue
            if creep.spawning or creep.ticks_to_live is None or creep.ticks_to_live > replace_after:
                return True
        return False

    def harvest_pos(self, source: Source) -> Optional[RoomPosition]:
        """Container tile first, then a tile next to a link, else the roomiest."""
        room = self.world.get_room(source.pos.room_name)
        if room is None:
            return None
        positions = positions_around_with_terrain_space(room, source.pos, 1, 1, 1, 1)
        positions = [p for p in positions if room.is_walkable(p)]
        containers = room.structures_of(StructureType.CONTAINER)
        links = room.structures_of(StructureType.LINK)
        for pos in positions:
            if any(c.pos == pos for c in containers):
                return pos
        for pos in positions:
            if any(link.pos.is_near_to(pos) for link in links):
                return pos
        return positions[0] if positions else None

    def storages_requiring_transferer(self) -> List[tuple]:
        """(storage, link) pairs in owned rooms with no transferer serving them."""
        served = {memory.downstream_id for _, memory in self._live_units() if memory.downstream_id}
        pairs = []
        for room in self._owned_rooms():
            storage = room.storage
            if storage is None or storage.id in served:
                continue
            links = [
                s for s in room.structures_of(StructureType.LINK)
                if s.my and s.pos.in_range_to(storage.pos, 2)
            ]
            if links:
                pairs.append((storage, links[0]))
        return pairs

    def hauling_demand(self) -> int:
        total = 0
        for room in self._operated_rooms():
            total += sum(r.amount for r in room.dropped_resources if r.resource_type == "energy")
            total += sum(t.store.energy for t in room.tombstones)
            total += sum(r.store.energy for r in room.ruins)
            total += sum(
                s.store.energy for s in room.structures_of(*_HAULED_KINDS) if s.store is not None
            )
        return total

    def threat_level(self) -> int:
        """Armed hostile body parts minus our defensive towers, summed per room."""
        total = 0
        for room in self._operated_rooms():
            parts = sum(
                creep.active_parts(part)
                for creep in room.hostile_creeps()
                for part in _THREAT_PARTS
            )
            towers = sum(1 for s in room.structures_of(StructureType.TOWER) if s.my)
            total += max(0, parts - towers)
        return total

    def threat_position(self) -> Optional[RoomPosition]:
        worst, worst_parts = None, 0
        for room in self._operated_rooms():
            hostiles = room.hostile_creeps()
            parts = sum(c.active_parts(p) for c in hostiles for p in _THREAT_PARTS)
            if hostiles and parts > worst_parts:
                worst, worst_parts = hostiles[0].pos, parts
        return worst

    def infantry_needed(self) -> bool:
        return self.threat_level() > 0 and self.trends.rising(THREAT, self.world.time)

    def count_role(
        self,
        role: Role,
        home_room: Optional[str] = None,
        min_ticks_to_live: int = MIN_TICKS_TO_LIVE,
    ) -> int:
        count = 0
        for creep, memory in self._live_units():
            if (memory.role or Role.from_name(creep.name)) != role:
                continue
            if home_room is not None and memory.home_room != home_room:
                continue
            if creep.ticks_to_live is not None and creep.ticks_to_live < min_ticks_to_live:
                continue
            count += 1
        return count

    # ------------------------------------------------------------------
    # Plan and trends
    # ------------------------------------------------------------------

    def build_plan(self) -> ColonyPlan:
        rooms = self.world.rooms()
        plan = ColonyPlan(
            controllers_to_reserve=controllers_to_reserve(self.world, self.store, self.config),
            need_harvesters=self.source_to_harvest() is not None,
            need_infantry=self.infantry_needed(),
            need_transferers=bool(self.storages_requiring_transferer()),
            max_room_energy=max((r.energy_available for r in rooms), default=0),
            max_room_energy_cap=max((r.energy_capacity_available for r in rooms), default=0),
            min_ticks_to_downgrade=min_ticks_to_downgrade(self.world),
            updated=self.world.time,
        )
        plan.need_reservers = len(plan.controllers_to_reserve) > self.count_role(Role.RESERVER)
        return plan

    def record_trends(self) -> None:
        """Take this tick's samples; called once at tick end."""
        now = self.world.time
        self.trends.record(HAULING, self.hauling_demand(), now)
        self.trends.record(THREAT, self.threat_level(), now)

    # ------------------------------------------------------------------
    # Spawn selection and issuing
    # ------------------------------------------------------------------

    def select_spawn(
        self,
        energy_required: int,
        target_pos: Optional[RoomPosition] = None,
        exclude: Set[str] = frozenset(),
    ) -> Optional[Structure]:
        candidates = []
        for spawn in self.world.my_spawns():
            if spawn.id in exclude or spawn.spawning:
                continue
            room = self.world.get_room(spawn.pos.room_name)
            if room is None or room.energy_available < energy_required:
                continue
            distance = 0.0
            if target_pos is not None:
                if spawn.pos.room_name != target_pos.room_name \
                        and not is_room_safe(self.store, spawn.pos.room_name):
                    continue
                distance = global_range(spawn.pos, target_pos)
                if distance > self.cfg.max_spawn_range:
                    continue
            candidates.append((distance, room.energy_available, spawn.id, spawn))
        if not candidates:
            return None
        return min(candidates, key=lambda c: c[:3])[3]

    def name_for(self, role: Role, taken: Set[str] = frozenset()) -> str:
        """Role initial, then random characters until the name is unused."""
        existing = {c.name for c in self.world.my_creeps()}
        existing.update(self.store.keys(CREEPS))
        existing.update(taken)
        name = role.initial
        while name in existing:
            name += self.rng.choice(self.cfg.name_alphabet)
        return name

    def _fit(self, request: SpawnRequest, busy: Set[str]):
        """Pick a spawn and the final body for request (None, None when nothing fits)."""
        if request.role == Role.HARVESTER:
            body = request.body
            while body is not None:
                spawn = self.select_spawn(body_cost(body), request.target_pos, busy)
                if spawn is not None:
                    return spawn, body
                body = downscale_harvester(body)
            return None, None

        budget = self._best_budget(request.target_pos, busy)
        if budget < self.cfg.min_spawn_energy:
            return None, None
        body = body_for(request.role, budget, self.rng, self.cfg.max_body_parts)
        if body is None or BodyPart.MOVE not in body:
            return None, None
        spawn = self.select_spawn(body_cost(body), request.target_pos, busy)
        return (spawn, body) if spawn is not None else (None, None)

    def _best_budget(self, target_pos: Optional[RoomPosition], busy: Set[str]) -> int:
        """Most energy any eligible spawn could put into one body right now."""
        best = 0
        for spawn in self.world.my_spawns():
            if spawn.id in busy or spawn.spawning:
                continue
            if target_pos is not None and global_range(spawn.pos, target_pos) > self.cfg.max_spawn_range:
                continue
            room = self.world.get_room(spawn.pos.room_name)
            if room is not None:
                best = max(best, room.energy_available)
        return best

    def _issue(
        self,
        spawn: Structure,
        request: SpawnRequest,
        body: List[BodyPart],
        issued_names: Set[str],
    ) -> SpawnCommand:
        name = self.name_for(request.role, issued_names)
        memory = dict(request.memory)
        memory.setdefault("role", request.role.value)
        memory.setdefault("homeRoom", spawn.pos.room_name)
        memory["pos"] = spawn.pos.to_dict()

        outcome = self.actions.spawn_creep(spawn, body, name, memory)
        command = SpawnCommand(spawn.id, request.role, name, list(body), memory, outcome)
        issued_names.add(name)
        if outcome == ReturnCode.OK:
            self.store.set(CREEPS, name, memory)
            self.stats.incr("spawns_issued")
            log.colony_event(
                "SPAWN",
                f"{spawn.id} -> {name} ({request.role.value}, {len(body)} parts, "
                f"{body_cost(body)} energy): {request.reason}",
                tick=self.world.time,
            )
        else:
            self.stats.incr("spawns_rejected")
            log.warning(
                "Spawn %s rejected %s (%s) with %s: %s",
                spawn.id,
                name,
                request.role.value,
                [p.value for p in body],
                outcome.name,
                tick=self.world.time,
            )
        return command

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _live_units(self):
        for creep in self.world.my_creeps():
            yield creep, UnitMemory(creep.name, self.store.section(CREEPS, creep.name))

    def _owned_rooms(self) -> List[Room]:
        return [room for room in self.world.rooms() if room.is_mine]

    def _operated_rooms(self) -> List[Room]:
        """Owned rooms and their visible neighbours."""
        owned = {room.name for room in self._owned_rooms()}
        return [
            room for room in self.world.rooms()
            if room.name in owned
            or owned.intersection(self.world.exits(room.name).values())
        ]

    def _controllers_to_reserve(self) -> List[str]:
        if self.plan is not None:
            return self.plan.controllers_to_reserve
        return controllers_to_reserve(self.world, self.store, self.config)

    def _room_anchor(self, room: Room) -> Optional[RoomPosition]:
        if room.controller is not None:
            return room.controller.pos
        return None
