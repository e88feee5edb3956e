"""
Concrete task finders and the per-role cascades.

Generic energy carriers (worker, carrier, upgrader)
---------------------------------------------------
  full        RepairInRange → BuildInRange         (no travel at all)
  empty       FetchEnergy
  otherwise   DeliverEnergy → UpgradeIfDowngrading → BuildAnywhere
              → RepairDamaged → UpgradeController

Dedicated roles bypass that cascade: harvesters stay bound to one source,
transferers shuttle one link into one storage, reservers pick the closest
reservable controller, explorers wander through safe exit rooms and
infantry engage the best-scored target. Transferers, reservers and spare
infantry with nothing left to do are walked back to a spawn and recycled.

Registration
------------
Call register_finders() once at start-up. It populates a FinderRegistry
(the module singleton by default) with every role's cascade.
"""

from __future__ import annotations

from typing import List, Optional

from ColonyBot.energy.ledger import DROPPED, RUIN, SOURCE, TOMBSTONE, EnergyEntry
from ColonyBot.geometry.positions import (
    accessible_positions_around,
    closest_by_range,
    global_range,
)
from ColonyBot.memory.store import CREEPS
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.rooms.room_status import is_room_safe, should_harvest_room_name
from ColonyBot.tasks.finder import FinderContext, FinderRegistry, TaskFinder, finder_registry
from ColonyBot.tasks.task import Task
from ColonyBot.world.constants import (
    BUILD_PRIORITY,
    Action,
    BodyPart,
    Role,
    StructureType,
)
from ColonyBot.world.objects import Creep, RoomPosition, Structure, find_in_range


ENERGY_CARRIERS = {Role.WORKER, Role.CARRIER, Role.UPGRADER}


def _has_work(ctx: FinderContext) -> bool:
    return ctx.creep.has_part(BodyPart.WORK)


def _build_rank(structure_type: StructureType) -> int:
    if structure_type in BUILD_PRIORITY:
        return BUILD_PRIORITY.index(structure_type) + 1
    return 100


# ---------------------------------------------------------------------------
# Work within range (full units)
# ---------------------------------------------------------------------------

class RepairInRange(TaskFinder):
    """
    Repair a damaged structure already within work range.

    Owned structures win over unowned ones (roads, containers); within each
    group the closest by path wins. Walls and ramparts are only topped up to
    the room's maxHitsToRepair so they cannot soak up a full load each time.
    """

    ROLES = {Role.WORKER}
    priority = 100

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.is_full and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        cap = ctx.room_memory(room.name).max_hits_to_repair
        damaged = [
            s for s in find_in_range(room.structures, ctx.creep.pos, ctx.config.tasks.work_range)
            if s.needs_repair
            and (s.my or s.owner is None)
            and (cap is None or s.hits < cap)
            and not ctx.is_blocked(s.id)
        ]
        target = ctx.closest_by_path(
            [s for s in damaged if s.my]
        ) or ctx.closest_by_path(
            [s for s in damaged if not s.my]
        )
        return Task(Action.REPAIR, target) if target is not None else None


class BuildInRange(TaskFinder):
    ROLES = {Role.WORKER}
    priority = 95

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.is_full and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        sites = [
            s for s in find_in_range(room.construction_sites, ctx.creep.pos, ctx.config.tasks.work_range)
            if s.my and not ctx.is_blocked(s.id)
        ]
        target = ctx.closest_by_path(sites, tie_break=lambda s: _build_rank(s.structure_type))
        return Task(Action.BUILD, target) if target is not None else None


# ---------------------------------------------------------------------------
# Energy acquisition
# ---------------------------------------------------------------------------

class FetchEnergy(TaskFinder):
    """
    Get energy from wherever the ledger says there is enough of it.

    Always eligible: dropped energy, tombstones, ruins, containers.
    Storage and links are eligible for workers and upgraders, and for
    carriers only while spawns and extensions are short of energy (so a
    carrier never shuttles storage back into storage). Sources are eligible
    for units with WORK parts.

    Candidates must hold at least min(free capacity, fraction × capacity).
    The chosen entry is decremented in the ledger right away.
    """

    ROLES = ENERGY_CARRIERS
    priority = 90

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.capacity > 0 and ctx.creep.store.is_empty

    def find(self, ctx: FinderContext) -> Optional[Task]:
        free = ctx.creep.store.free_capacity
        if free <= 0:
            return None
        min_amount = max(1, min(free, int(ctx.creep.store.capacity * ctx.config.tasks.min_transfer_fraction)))

        candidates: List[EnergyEntry] = []
        for room in self._rooms_to_search(ctx):
            candidates.extend(
                e for e in ctx.ledger.snapshot(room.name)
                if self._eligible(ctx, room, e) and e.energy >= min_amount and not ctx.is_blocked(e.id)
            )
        entry = ctx.pick(candidates)
        if entry is None:
            return None

        destination = ctx.world.get_object_by_id(entry.id)
        if destination is None:
            return None
        action = {DROPPED: Action.PICKUP, SOURCE: Action.HARVEST}.get(entry.kind, Action.WITHDRAW)
        # Harvesting is paced by WORK parts, not by the pile; it commits nothing.
        amount = 0 if action == Action.HARVEST else ctx.ledger.reserve(entry.id, free)
        return Task(action, destination, amount)

    def _rooms_to_search(self, ctx: FinderContext):
        rooms = []
        for room in ctx.world.rooms():
            if room.name != ctx.creep.pos.room_name and ctx.room_memory(room.name).safe_for_creeps is False:
                continue
            rooms.append(room)
        return rooms

    def _eligible(self, ctx: FinderContext, room, entry: EnergyEntry) -> bool:
        if entry.kind in (DROPPED, TOMBSTONE, RUIN, StructureType.CONTAINER.value):
            return True
        if entry.kind in (StructureType.STORAGE.value, StructureType.LINK.value):
            if ctx.role != Role.CARRIER:
                return True
            return room.energy_available < room.energy_capacity_available
        if entry.kind == SOURCE:
            return _has_work(ctx) and ctx.role != Role.CARRIER
        return False


class TopUpEnergy(FetchEnergy):
    """A half-loaded carrier with nowhere to deliver goes back for more."""

    ROLES = {Role.CARRIER}
    priority = 50

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.free_capacity > 0 and not ctx.creep.store.is_empty


# ---------------------------------------------------------------------------
# Energy delivery
# ---------------------------------------------------------------------------

class DeliverEnergy(TaskFinder):
    """
    Deliver to the highest-priority deficient consumer in the unit's room.

    Tiers, first non-empty wins:
      1. towers
      2. links that are not the downstream (storage) link, and storage when
         the room's spawns and extensions are already full
      3. spawns and extensions, closest first, earliest-filled on ties
      4. units waiting for a delivery
    """

    ROLES = {Role.CARRIER, Role.WORKER}
    priority = 80

    def __init__(self, include_storage: bool = True) -> None:
        self.include_storage = include_storage

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None or not room.is_mine:
            room = ctx.world.get_room(ctx.home_room_name)
        if room is None:
            return None

        def wants(s: Structure) -> bool:
            return s.my and ctx.ledger.free_capacity(s.id) > 0 and not ctx.is_blocked(s.id)

        storage = room.storage
        tiers = [
            [s for s in room.structures_of(StructureType.TOWER) if wants(s)],
            [
                s for s in room.structures_of(StructureType.LINK)
                if wants(s) and not (storage is not None and s.pos.in_range_to(storage.pos, 2))
            ],
            [s for s in room.structures_of(StructureType.SPAWN, StructureType.EXTENSION) if wants(s)],
        ]
        if self.include_storage and storage is not None and wants(storage) \
                and room.energy_available >= room.energy_capacity_available:
            tiers[1].append(storage)

        room_memory = ctx.room_memory(room.name)
        for index, tier in enumerate(tiers):
            if not tier:
                continue
            if index == 2:
                target = ctx.closest_by_path(tier, tie_break=lambda s: _fill_rank(room_memory, s.id))
            else:
                target = ctx.closest_by_path(tier)
            if target is not None:
                amount = ctx.ledger.release(target.id, ctx.creep.store.energy)
                return Task(Action.TRANSFER, target, amount)

        receiver = self._waiting_unit(ctx, room.name)
        if receiver is not None:
            UnitMemory(receiver.name, ctx.store.section(CREEPS, receiver.name)) \
                .awaiting_delivery_from = ctx.creep.name
            return Task(Action.TRANSFER, receiver, min(ctx.creep.store.energy, receiver.store.free_capacity))
        return None

    def _waiting_unit(self, ctx: FinderContext, room_name: str) -> Optional[Creep]:
        room = ctx.world.get_room(room_name)
        if room is None:
            return None
        waiting = []
        for other in room.my_creeps():
            if other.name == ctx.creep.name or other.spawning or ctx.is_blocked(other.id):
                continue
            memory = UnitMemory(other.name, ctx.store.section(CREEPS, other.name))
            if memory.role not in (Role.WORKER, Role.UPGRADER) or other.store.fill_ratio >= 0.5:
                continue
            promised = memory.awaiting_delivery_from
            if promised and promised != ctx.creep.name and _alive(ctx, promised):
                continue
            waiting.append(other)
        return ctx.closest_by_path(waiting)


def _fill_rank(room_memory, structure_id: str) -> int:
    rank = room_memory.fill_rank(structure_id)
    return rank if rank is not None else 10_000


def _alive(ctx: FinderContext, creep_name: str) -> bool:
    return any(c.name == creep_name for c in ctx.world.my_creeps())


# ---------------------------------------------------------------------------
# Controller and construction
# ---------------------------------------------------------------------------

class UpgradeIfDowngrading(TaskFinder):
    ROLES = {Role.WORKER}
    priority = 75

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0 and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        controller = room.controller if room is not None else None
        if controller is None or not controller.my or ctx.is_blocked(controller.id):
            return None
        ticks = controller.ticks_to_downgrade
        if ticks is None or ticks >= ctx.config.tasks.downgrade_ticks:
            return None
        return Task(Action.UPGRADE, controller)


class BuildAnywhere(TaskFinder):
    """Build in the unit's room; build priority first, then range."""

    ROLES = {Role.WORKER}
    priority = 70

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0 and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        sites = [s for s in room.construction_sites if s.my and not ctx.is_blocked(s.id)]
        if not sites:
            return None
        target = min(
            sites,
            key=lambda s: ctx.creep.pos.get_range_to(s.pos) + _build_rank(s.structure_type) * 50,
        )
        return Task(Action.BUILD, target)


class RepairDamaged(TaskFinder):
    """
    Walk to the weakest structure whose damage is worth the trip.

    Worth it: missing at least min_hits_to_repair, or below half health.
    Records maxHitsToRepair for the room so in-range repairs stop topping up
    structures that are already healthier than this target.
    """

    ROLES = {Role.WORKER}
    priority = 65

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0 and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        room_memory = ctx.room_memory(room.name)
        min_hits = ctx.config.tasks.min_hits_to_repair
        candidates = [
            s for s in self._candidates(ctx, room, room_memory)
            if (s.hits <= s.hits_max - min_hits or s.hits < s.hits_max / 2)
            and (s.my or s.owner is None)
            and not ctx.is_blocked(s.id)
        ]
        target = min(candidates, key=lambda s: s.hits) if candidates else None
        room_memory.max_hits_to_repair = min_hits + (target.hits if target is not None else 0)
        return Task(Action.REPAIR, target) if target is not None else None

    def _candidates(self, ctx, room, room_memory) -> List[Structure]:
        cached = [ctx.world.get_object_by_id(i) for i in room_memory.repair_target_ids]
        cached = [s for s in cached if isinstance(s, Structure) and s.needs_repair]
        if cached:
            return cached
        return [s for s in room.structures if s.needs_repair]


class UpgradeController(TaskFinder):
    ROLES = {Role.WORKER, Role.UPGRADER}
    priority = 60

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0 and _has_work(ctx)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        for room in (ctx.room, ctx.world.get_room(ctx.home_room_name)):
            controller = room.controller if room is not None else None
            if controller is not None and controller.my and not ctx.is_blocked(controller.id):
                return Task(Action.UPGRADE, controller)
        return None


# ---------------------------------------------------------------------------
# Dedicated roles
# ---------------------------------------------------------------------------

class HarvesterUnload(TaskFinder):
    """A harvester more than half full drops its load into an adjacent link."""

    ROLES = {Role.HARVESTER}
    priority = 110

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.fill_ratio > 0.5

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        links = [
            s for s in find_in_range(room.structures_of(StructureType.LINK), ctx.creep.pos, 1)
            if s.my and ctx.ledger.free_capacity(s.id) > 0 and not ctx.is_blocked(s.id)
        ]
        if not links:
            return None
        link = links[0]
        return Task(Action.TRANSFER, link, ctx.ledger.release(link.id, ctx.creep.store.energy))


class HarvestSource(TaskFinder):
    """Harvest the source this unit was bound to at spawn, for its whole life."""

    ROLES = {Role.HARVESTER}
    priority = 100

    def find(self, ctx: FinderContext) -> Optional[Task]:
        source_id = ctx.memory.source_id
        if not source_id:
            return None
        source = ctx.world.get_object_by_id(source_id)
        if source is None:
            return None
        return Task(Action.HARVEST, source)


class TransfererFetch(TaskFinder):
    ROLES = {Role.TRANSFERER}
    priority = 90

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.is_empty

    def find(self, ctx: FinderContext) -> Optional[Task]:
        upstream = ctx.world.get_object_by_id(ctx.memory.upstream_id or "")
        if not isinstance(upstream, Structure) or upstream.structure_type != StructureType.LINK:
            return None
        if ctx.ledger.energy(upstream.id) <= 0:
            return None
        return Task(Action.WITHDRAW, upstream, ctx.ledger.reserve(upstream.id, ctx.creep.store.free_capacity))


class TransfererDeliver(TaskFinder):
    ROLES = {Role.TRANSFERER}
    priority = 80

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.store.energy > 0

    def find(self, ctx: FinderContext) -> Optional[Task]:
        downstream = ctx.world.get_object_by_id(ctx.memory.downstream_id or "")
        if not isinstance(downstream, Structure) or downstream.structure_type != StructureType.STORAGE:
            return None
        if ctx.ledger.free_capacity(downstream.id) <= 0:
            return None
        return Task(Action.TRANSFER, downstream, ctx.ledger.release(downstream.id, ctx.creep.store.energy))


class ReserveController(TaskFinder):
    """Closest (global range) controller the colony plan flags as reservable."""

    ROLES = {Role.RESERVER}
    priority = 100

    def applies(self, ctx: FinderContext) -> bool:
        return ctx.creep.has_part(BodyPart.CLAIM)

    def find(self, ctx: FinderContext) -> Optional[Task]:
        if ctx.plan is None:
            return None
        controllers = [
            c for c in (ctx.world.get_object_by_id(i) for i in ctx.plan.controllers_to_reserve)
            if isinstance(c, Structure) and not ctx.is_blocked(c.id)
        ]
        target = closest_by_range(ctx.creep.pos, controllers)
        return Task(Action.RESERVE, target) if target is not None else None


class Explore(TaskFinder):
    """
    Head for the middle of a random neighbouring room.

    Candidates are exit rooms with the same map status as the current room
    that are harvestable (safe, and mine or bordering a room of mine) and
    not known to be off-limits. Arriving in the room clears the plan and
    the next exit is drawn.
    """

    ROLES = {Role.EXPLORER}
    priority = 100

    def find(self, ctx: FinderContext) -> Optional[Task]:
        here = ctx.creep.pos.room_name
        status = ctx.world.room_status(here)
        options = []
        for room_name in sorted(set(ctx.world.exits(here).values())):
            if ctx.world.room_status(room_name) != status:
                continue
            if not should_harvest_room_name(ctx.world, ctx.store, room_name):
                continue
            if ctx.room_memory(room_name).can_operate is False:
                continue
            options.append(room_name)
        if not options:
            return None
        return Task(Action.MOVE, RoomPosition(25, 25, ctx.rng.choice(options)))


class EngageTarget(TaskFinder):
    """
    Attack the best hostile in the room or heal a damaged friend.

    score = -range + 10 (hostile) or -10 (own) + HEAL parts on the target,
    so nearby hostile healers go first and friends are healed only when no
    hostile is anywhere close.
    """

    ROLES = {Role.INFANTRY}
    priority = 100

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        can_fight = ctx.creep.has_part(BodyPart.ATTACK) or ctx.creep.has_part(BodyPart.RANGED_ATTACK)
        can_heal = ctx.creep.has_part(BodyPart.HEAL)

        scored = []
        if can_fight:
            for hostile in room.hostile_creeps():
                scored.append((self._score(ctx, hostile, hostile=True), Action.ATTACK, hostile))
            for structure in room.hostile_structures():
                if structure.hits_max > 0:
                    scored.append((self._score(ctx, structure, hostile=True), Action.ATTACK, structure))
        if can_heal:
            for friend in room.my_creeps():
                if friend.hits < friend.hits_max:
                    scored.append((self._score(ctx, friend, hostile=False), Action.HEAL, friend))
        scored = [item for item in scored if not ctx.is_blocked(item[2].id)]
        if not scored:
            return None
        _, action, target = max(scored, key=lambda item: item[0])
        return Task(action, target)

    def _score(self, ctx: FinderContext, target, hostile: bool) -> float:
        score = -global_range(ctx.creep.pos, target.pos)
        score += 10 if hostile else -10
        if isinstance(target, Creep):
            score += target.active_parts(BodyPart.HEAL)
        return score


class RecycleUnit(TaskFinder):
    """
    Walk a unit with nothing left to do back to a spawn to be recycled.

    Transferers whose link or storage is gone, reservers with no controller
    left to reserve, and infantry with no target while another infantry
    unit is alive. The spawn is the closest one in the unit's room or in a
    safe room.
    """

    ROLES = {Role.TRANSFERER, Role.RESERVER, Role.INFANTRY}
    priority = 5

    def applies(self, ctx: FinderContext) -> bool:
        role = ctx.role
        if role == Role.TRANSFERER:
            return not self._transferer_targets_exist(ctx)
        if role == Role.INFANTRY:
            return _count_role(ctx, Role.INFANTRY) > 1
        return True

    def find(self, ctx: FinderContext) -> Optional[Task]:
        here = ctx.creep.pos.room_name
        spawns = [
            s for s in ctx.world.my_spawns()
            if s.pos.room_name == here or is_room_safe(ctx.store, s.pos.room_name)
        ]
        spawn = closest_by_range(ctx.creep.pos, spawns)
        return Task(Action.RECYCLE, spawn) if spawn is not None else None

    @staticmethod
    def _transferer_targets_exist(ctx: FinderContext) -> bool:
        upstream = ctx.world.get_object_by_id(ctx.memory.upstream_id or "")
        downstream = ctx.world.get_object_by_id(ctx.memory.downstream_id or "")
        return (
            isinstance(upstream, Structure) and upstream.structure_type == StructureType.LINK
            and isinstance(downstream, Structure)
            and downstream.structure_type == StructureType.STORAGE
        )


def _count_role(ctx: FinderContext, role: Role) -> int:
    count = 0
    for unit in ctx.world.my_creeps():
        memory = UnitMemory(unit.name, ctx.store.section(CREEPS, unit.name))
        if (memory.role or Role.from_name(unit.name)) == role:
            count += 1
    return count


class MoveRandomly(TaskFinder):
    """Last resort: walk to a random open tile a few steps away."""

    ROLES = {Role.INFANTRY, Role.EXPLORER}
    priority = 0

    def find(self, ctx: FinderContext) -> Optional[Task]:
        room = ctx.room
        if room is None:
            return None
        spots = accessible_positions_around(room, ctx.creep.pos, 2, 5, rng=ctx.rng)
        spots = [p for p in spots if not p.is_edge()]
        if not spots:
            return None
        return Task(Action.MOVE, spots[0])


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def register_finders(registry: FinderRegistry = finder_registry) -> FinderRegistry:
    """Populate registry with every role's cascade. Safe to call twice."""
    registry.register_many(
        Role.WORKER,
        RepairInRange(),
        BuildInRange(),
        FetchEnergy(),
        DeliverEnergy(include_storage=False),
        UpgradeIfDowngrading(),
        BuildAnywhere(),
        RepairDamaged(),
        UpgradeController(),
    )
    registry.register_many(Role.CARRIER, FetchEnergy(), DeliverEnergy(), TopUpEnergy())
    registry.register_many(Role.UPGRADER, FetchEnergy(), UpgradeController())
    registry.register_many(Role.TRANSFERER, TransfererFetch(), TransfererDeliver(), RecycleUnit())
    registry.register_many(Role.HARVESTER, HarvesterUnload(), HarvestSource())
    registry.register_many(Role.RESERVER, ReserveController(), RecycleUnit())
    registry.register_many(Role.EXPLORER, Explore(), MoveRandomly())
    registry.register_many(Role.INFANTRY, EngageTarget(), RecycleUnit(), MoveRandomly())
    return registry
