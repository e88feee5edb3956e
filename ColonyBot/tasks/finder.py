"""
TaskFinder — one strategy for producing a Task, and the per-role registry.

Design principles
-----------------
- A finder answers one question ("is there something in repair range?",
  "where is the nearest energy?") and returns a Task or None.
- Finders never act. They read the world, the Energy Ledger and memory via
  FinderContext, and the only thing they mutate is the ledger (committing
  the energy their Task will move) or a receiver's awaitingDeliveryFrom.
- Finders declare role affinity via ROLES. The registry keeps each role's
  finders sorted by descending priority; the first finder whose applies()
  passes and whose find() returns a Task wins.

FinderContext
-------------
The per-unit blackboard assembled by the TaskSelector. Colony services
(world, ledger, store, config, rng, plan) plus the unit under decision.

    TaskSelector → builds FinderContext for one unit
    FinderRegistry.first_success(ctx) → iterates finders for ctx.role
    TaskFinder.find(ctx) → Task | None
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ColonyBot.config import ColonyConfig
from ColonyBot.energy.ledger import EnergyLedger
from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.memory.store import ROOMS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.tasks.task import Task
from ColonyBot.world.constants import Role
from ColonyBot.world.objects import Creep, Room, RoomPosition
from ColonyBot.world.protocol import WorldQuery

if TYPE_CHECKING:
    from ColonyBot.rooms.plan import ColonyPlan


# ---------------------------------------------------------------------------
# FinderContext: the selector-to-finder blackboard
# ---------------------------------------------------------------------------

@dataclass
class FinderContext:
    world: WorldQuery
    ledger: EnergyLedger
    store: MemoryStore
    config: ColonyConfig
    rng: random.Random
    creep: Creep
    memory: UnitMemory
    plan: Optional["ColonyPlan"] = None

    # ---- Runtime state (set by registry, read by selector for logging) ----
    finder_used: Optional[str] = None
    tried: List[str] = field(default_factory=list)

    @property
    def time(self) -> int:
        return self.world.time

    @property
    def role(self) -> Optional[Role]:
        return self.memory.role or Role.from_name(self.creep.name)

    @property
    def room(self) -> Optional[Room]:
        return self.world.get_room(self.creep.pos.room_name)

    @property
    def home_room_name(self) -> str:
        return self.memory.home_room or self.creep.pos.room_name

    def room_memory(self, room_name: str) -> RoomMemory:
        return RoomMemory(room_name, self.store.section(ROOMS, room_name))

    def is_blocked(self, object_id: str) -> bool:
        return self.memory.is_blocked(object_id)

    # ------------------------------------------------------------------
    # Distance helpers
    # ------------------------------------------------------------------

    def path_to(self, pos: RoomPosition) -> Optional[int]:
        if pos.room_name != self.creep.pos.room_name:
            return None
        return self.world.path_distance(self.creep.pos, pos)

    def closest_by_path(self, objects: Iterable, tie_break=None):
        """
        In-room object with the shortest path from the unit, or None.

        Unreachable objects are skipped. tie_break(obj) orders objects at
        equal path length (lower first).
        """
        best, best_key = None, None
        for obj in objects:
            distance = self.path_to(obj.pos)
            if distance is None:
                continue
            key = (distance, tie_break(obj) if tie_break else 0)
            if best_key is None or key < best_key:
                best, best_key = obj, key
        return best

    def pick(self, objects: Sequence):
        """
        Closest reachable by path inside the unit's room; otherwise a
        uniformly random object from the other rooms.
        """
        here = [o for o in objects if o.pos.room_name == self.creep.pos.room_name]
        found = self.closest_by_path(here)
        if found is not None:
            return found
        elsewhere = [o for o in objects if o.pos.room_name != self.creep.pos.room_name]
        return self.rng.choice(elsewhere) if elsewhere else None


# ---------------------------------------------------------------------------
# TaskFinder base class
# ---------------------------------------------------------------------------

class TaskFinder(ABC):
    """
    One way a unit can find work.

    Subclass and implement:
      - ROLES     — which roles this finder is registered for
      - priority  — higher priority finders are tried first
      - applies() — fast eligibility check (store state, body parts)
      - find()    — search for a target; return a Task or None
    """

    ROLES: Set[Role] = set()
    priority: int = 0

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def applies(self, ctx: FinderContext) -> bool:
        return True

    @abstractmethod
    def find(self, ctx: FinderContext) -> Optional[Task]:
        """Return a Task for ctx.creep, or None to fall through."""


# ---------------------------------------------------------------------------
# FinderRegistry
# ---------------------------------------------------------------------------

class FinderRegistry:
    """Per-role finder registry. Single-threaded; built once at start-up."""

    def __init__(self) -> None:
        # Role → [TaskFinder, ...] sorted by descending priority
        self._registry: Dict[Role, List[TaskFinder]] = defaultdict(list)

    def register(self, role: Role, finder: TaskFinder) -> None:
        """
        Register a finder for a role.

        A finder of the same class already registered for this role is
        replaced, so registering twice is harmless. A finder that declares
        ROLES can only be registered for one of them.
        """
        if finder.ROLES and role not in finder.ROLES:
            raise ValueError(f"{finder.name} does not serve role {role.value}")
        bucket = [f for f in self._registry[role] if type(f) is not type(finder)]
        bucket.append(finder)
        bucket.sort(key=lambda f: f.priority, reverse=True)
        self._registry[role] = bucket

    def register_many(self, role: Role, *finders: TaskFinder) -> None:
        for finder in finders:
            self.register(role, finder)

    def get(self, role: Optional[Role]) -> List[TaskFinder]:
        if role is None:
            return []
        return self._registry.get(role, [])

    def first_success(self, ctx: FinderContext) -> Optional[Tuple[TaskFinder, Task]]:
        """Run ctx.role's cascade; the first Task produced wins."""
        for finder in self.get(ctx.role):
            if not finder.applies(ctx):
                continue
            ctx.tried.append(finder.name)
            task = finder.find(ctx)
            if task is not None:
                ctx.finder_used = finder.name
                return finder, task
        return None

    def summary(self) -> str:
        """Human-readable registry listing (for start-up logs)."""
        lines = []
        for role, finders in sorted(self._registry.items(), key=lambda x: x[0].value):
            names = ", ".join(f"{f.name}(p={f.priority})" for f in finders)
            lines.append(f"  {role.value}: [{names}]")
        return "\n".join(lines) if lines else "  (empty)"


# ---------------------------------------------------------------------------
# Module-level singleton, populated by register_finders()
# ---------------------------------------------------------------------------
finder_registry = FinderRegistry()
