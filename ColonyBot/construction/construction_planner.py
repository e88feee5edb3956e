"""
ConstructionPlanner — decides what to build next in a room, and where.

Responsibility
--------------
Turns "what the controller level still allows" into construction sites.
Workers pick sites up through the build finders; this module only places
them. It runs from room maintenance when CPU is spare.

Lifecycle of a ConstructionOrder
--------------------------------
  PENDING  → queued by plan_room() for a missing structure
  PLACED   → create_construction_site() accepted it
  FAILED   → the primitive rejected the position (the next candidate in
             the queue is tried in the same tick)

Orders are not persisted: the queue is rebuilt from the room each time,
since the world snapshot already shows every site that was placed.

What gets queued, in build-priority order
-----------------------------------------
  - every structure type whose count (built + sites) is below what the
    controller level allows, on the best-scored suitable tile
  - a container beside each source that has none, in rooms we own or hold
    a good reservation on
  - roads on tiles the traffic map shows our units walking over a lot

Site budget
-----------
At most ``max_construction_sites_per_tick`` new sites per room per tick,
none once the colony holds MAX_SITES, and a room already holding its share
of MAX_SITES gets no more.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from ColonyBot.config import ColonyConfig
from ColonyBot.geometry.positions import positions_around_with_terrain_space
from ColonyBot.geometry.site_scoring import best_construction_sites
from ColonyBot.geometry.traffic_map import TrafficMap
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import ROOMS, MemoryStore
from ColonyBot.rooms.room_status import can_operate_in_room, is_reservation_ok
from ColonyBot.tick_stats import TickStats
from ColonyBot.world.constants import (
    BUILD_PRIORITY,
    CONTROLLER_STRUCTURES,
    ReturnCode,
    StructureType,
)
from ColonyBot.world.objects import Room, RoomPosition
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()

# The environment's per-player site limit.
MAX_SITES = 100

TRAFFIC_KEY = "traffic"


# ---------------------------------------------------------------------------
# Order state machine
# ---------------------------------------------------------------------------

class OrderStatus(Enum):
    PENDING = auto()
    PLACED  = auto()
    FAILED  = auto()


@dataclass
class ConstructionOrder:
    structure_type: StructureType
    pos: RoomPosition
    priority: int = 0          # lower = sooner; index into BUILD_PRIORITY
    reason: str = ""
    status: OrderStatus = OrderStatus.PENDING
    outcome: Optional[ReturnCode] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.structure_type.value} @ {self.pos} [{self.status.name}]"


class ConstructionQueue:
    """Pending orders for one room, deduplicated by position."""

    def __init__(self) -> None:
        self._orders: List[ConstructionOrder] = []

    def enqueue(self, order: ConstructionOrder) -> bool:
        """Add order unless another pending order already claims its tile."""
        for existing in self._orders:
            if existing.pos == order.pos and existing.status == OrderStatus.PENDING:
                return False
        self._orders.append(order)
        return True

    def pending(self) -> List[ConstructionOrder]:
        return sorted(
            (o for o in self._orders if o.status == OrderStatus.PENDING),
            key=lambda o: o.priority,
        )

    def __len__(self) -> int:
        return len(self._orders)


# ---------------------------------------------------------------------------
# Counting helpers
# ---------------------------------------------------------------------------

def structure_count(room: Room, structure_type: StructureType, include_sites: bool = True) -> int:
    count = sum(1 for s in room.structures_of(structure_type) if s.my)
    if include_sites:
        count += sum(
            1 for site in room.construction_sites
            if site.my and site.structure_type == structure_type
        )
    return count


def need_structure(room: Room, structure_type: StructureType) -> bool:
    """True while the controller level allows more of structure_type."""
    controller = room.controller
    if controller is None or (not controller.my and controller.owner):
        return False
    allowed = CONTROLLER_STRUCTURES.get(structure_type)
    if allowed is None:
        return False
    level = max(0, min(controller.level, len(allowed) - 1))
    return allowed[level] > structure_count(room, structure_type)


def _priority(structure_type: StructureType) -> int:
    if structure_type in BUILD_PRIORITY:
        return BUILD_PRIORITY.index(structure_type)
    return len(BUILD_PRIORITY)


def load_traffic(store: MemoryStore, room_name: str, config: ColonyConfig) -> TrafficMap:
    return TrafficMap.load(room_name, store.section(ROOMS, room_name).get(TRAFFIC_KEY), config.rooms)


def save_traffic(store: MemoryStore, traffic: TrafficMap) -> None:
    store.section(ROOMS, traffic.room_name)[TRAFFIC_KEY] = traffic.dump()


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class ConstructionPlanner:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        config: ColonyConfig | None = None,
        stats: Optional[TickStats] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.config = config or ColonyConfig()
        self.stats = stats or TickStats()

    def run(self, room: Room) -> List[ConstructionOrder]:
        """Queue and place this tick's sites for room; returns the placed orders."""
        if not self.has_site_budget(room):
            return []
        queue = self.plan_room(room)
        return self.place(queue, self.config.rooms.max_construction_sites_per_tick)

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def has_site_budget(self, room: Room) -> bool:
        all_sites = [s for r in self.world.rooms() for s in r.construction_sites if s.my]
        if len(all_sites) >= MAX_SITES:
            return False
        room_sites = sum(1 for s in room.construction_sites if s.my)
        share = MAX_SITES / max(1, len(self.world.rooms()))
        return not (room_sites >= 1 and room_sites >= share)

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def plan_room(self, room: Room) -> ConstructionQueue:
        queue = ConstructionQueue()
        controller = room.controller
        if controller is None:
            return queue

        if controller.my and can_operate_in_room(room, self.world.username):
            self._queue_controller_structures(room, queue)
        if controller.my or is_reservation_ok(
            controller, self.world.username, self.config.rooms.reservation_ok_ticks
        ):
            self._queue_source_containers(room, queue)
        if controller.my:
            self._queue_roads(room, queue)
        return queue

    def _queue_controller_structures(self, room: Room, queue: ConstructionQueue) -> None:
        wanted = [t for t in BUILD_PRIORITY if need_structure(room, t)]
        if not wanted:
            return
        taken = {o.pos for o in queue.pending()}
        sites = iter(pos for _, pos in best_construction_sites(room) if pos not in taken)
        for structure_type in wanted:
            pos = next(sites, None)
            if pos is None:
                break
            queue.enqueue(ConstructionOrder(
                structure_type, pos, _priority(structure_type),
                reason=f"level {room.controller.level} allows more",
            ))

    def _queue_source_containers(self, room: Room, queue: ConstructionQueue) -> None:
        containers = room.structures_of(StructureType.CONTAINER) + [
            s for s in room.construction_sites if s.structure_type == StructureType.CONTAINER
        ]
        for source in room.sources:
            if any(c.pos.is_near_to(source.pos) for c in containers):
                continue
            spots = [
                p for p in positions_around_with_terrain_space(room, source.pos, 1, 1, 1, 1)
                if room.is_walkable(p) and not room.structures_at(p)
            ]
            if spots:
                queue.enqueue(ConstructionOrder(
                    StructureType.CONTAINER, spots[0], _priority(StructureType.CONTAINER),
                    reason=f"source {source.id}",
                ))

    def _queue_roads(self, room: Room, queue: ConstructionQueue) -> None:
        traffic = load_traffic(self.store, room.name, self.config)
        for pos in traffic.road_candidates(room)[: self.config.rooms.max_construction_sites_per_tick]:
            queue.enqueue(ConstructionOrder(
                StructureType.ROAD, pos, _priority(StructureType.ROAD),
                reason=f"traffic {traffic.sample(pos):.1f}",
            ))

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place(self, queue: ConstructionQueue, limit: int) -> List[ConstructionOrder]:
        placed: List[ConstructionOrder] = []
        for order in queue.pending():
            if len(placed) >= limit:
                break
            outcome = self.actions.create_construction_site(order.pos, order.structure_type)
            order.outcome = outcome
            if outcome == ReturnCode.OK:
                order.status = OrderStatus.PLACED
                placed.append(order)
                self.stats.incr("sites_placed")
                log.colony_event("CONSTRUCTION", f"{order} ({order.reason})", tick=self.world.time)
            else:
                order.status = OrderStatus.FAILED
                log.debug(
                    "Construction site %s rejected: %s", order, outcome.name,
                    tick=self.world.time,
                )
        return placed

