"""
TowerControl — per-room tower targeting.

Targets, in order
-----------------
  1. the weakest hostile within the room's adaptive max range of any tower
  2. our most damaged creep in the room
  3. the most damaged structure below half its hits, only while the towers hold
     more than ``repair_energy_ratio`` of their capacity

Adaptive range
--------------
Tower damage falls off with distance, and a healer out at the edge can
out-heal it. When the last target's hits did not drop since last tick, the
max range shrinks by one so the towers stop wasting energy on it. Any full
tower resets the range to the default.
"""

from __future__ import annotations

from typing import List, Optional, Union

from ColonyBot.config import TowerConfig
from ColonyBot.logger import get_logger
from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.world.constants import ReturnCode, StructureType
from ColonyBot.world.objects import Creep, Room, Structure
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()

Target = Union[Creep, Structure]

# Structures above this share of their max hits are left to workers.
BADLY_DAMAGED_RATIO = 0.5


class TowerControl:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        config: TowerConfig | None = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.cfg = config or TowerConfig()

    def run(self, room: Room, memory: RoomMemory) -> Optional[Target]:
        """Point every tower with energy at one target; returns it."""
        self.adapt_range(memory)

        towers = self.towers_with_energy(room)
        if not towers:
            return None
        if any(t.store.is_full for t in towers):
            memory.tower_max_range = self.cfg.default_max_range

        target = self.hostile_target(room, towers, memory.tower_max_range)
        if target is not None:
            memory.tower_last_target = target.id
            memory.tower_last_target_hits = target.hits
            log.colony_event(
                "TOWERS",
                f"{room.name} {len(towers)} towers targeting {target.name} "
                f"{target.hits}/{target.hits_max} hits within range {memory.tower_max_range}",
                tick=self.world.time,
            )
            self._engage(towers, target, self.actions.tower_attack)
            return target

        target = self.heal_target(room)
        if target is not None:
            self._engage(towers, target, self.actions.tower_heal)
            return target

        if self.energy_ratio(towers) > self.cfg.repair_energy_ratio:
            target = self.repair_target(room)
            if target is not None:
                self._engage(towers, target, self.actions.tower_repair)
                return target
        return None

    # ------------------------------------------------------------------
    # Range
    # ------------------------------------------------------------------

    def adapt_range(self, memory: RoomMemory) -> int:
        if memory.tower_max_range is None:
            memory.tower_max_range = self.cfg.default_max_range
        elif memory.tower_last_target and memory.tower_last_target_hits is not None:
            last = self.world.get_object_by_id(memory.tower_last_target)
            if last is not None and last.hits >= memory.tower_last_target_hits:
                memory.tower_max_range = max(0, memory.tower_max_range - 1)
        return memory.tower_max_range

    # ------------------------------------------------------------------
    # Target selection
    # ------------------------------------------------------------------

    @staticmethod
    def towers_with_energy(room: Room) -> List[Structure]:
        return [
            s for s in room.structures_of(StructureType.TOWER)
            if s.my and s.store is not None and s.store.energy > 0
        ]

    @staticmethod
    def hostile_target(room: Room, towers: List[Structure], max_range: int) -> Optional[Creep]:
        in_range = [
            h for h in room.hostile_creeps()
            if any(h.pos.in_range_to(t.pos, max_range) for t in towers)
        ]
        if not in_range:
            return None
        return min(in_range, key=lambda h: (h.hits, h.id))

    @staticmethod
    def heal_target(room: Room) -> Optional[Creep]:
        damaged = [c for c in room.my_creeps() if c.hits < c.hits_max and not c.spawning]
        if not damaged:
            return None
        return min(damaged, key=lambda c: (c.hits / max(1, c.hits_max), c.name))

    @staticmethod
    def repair_target(room: Room) -> Optional[Structure]:
        damaged = [
            s for s in room.structures
            if s.needs_repair and (s.my or s.owner is None)
            and s.hits < s.hits_max * BADLY_DAMAGED_RATIO
        ]
        if not damaged:
            return None
        return min(damaged, key=lambda s: (s.hits / max(1, s.hits_max), s.id))

    @staticmethod
    def energy_ratio(towers: List[Structure]) -> float:
        capacity = sum(t.store.capacity for t in towers)
        if capacity <= 0:
            return 0.0
        return sum(t.store.energy for t in towers) / capacity

    def _engage(self, towers: List[Structure], target: Target, primitive) -> None:
        for tower in towers:
            outcome = primitive(tower, target)
            if outcome != ReturnCode.OK:
                log.debug(
                    "Tower %s on %s: %s",
                    tower.id,
                    getattr(target, "name", None) or target.id,
                    outcome.name,
                    tick=self.world.time,
                )
