"""
TaskSelector — the per-unit "decide and act this tick" entry point.

Position in the tick
--------------------
    ColonyBot.run_tick()
        ↓  (units sorted by name)
    TaskSelector.select_and_execute(creep)
        ↓  resume the stored plan (continuity) or run the role's cascade
    ActionExecutor.act() → handle_outcome()
        ↓  FULL / NOT_ENOUGH_RESOURCES: one more decision this tick
    bookkeeping (position, room, fill state) for tomorrow's checks

The selector holds no per-unit state of its own; everything a unit needs
next tick is written to its UnitMemory section before returning.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Optional

from ColonyBot.config import ColonyConfig
from ColonyBot.energy.ledger import EnergyLedger
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import CREEPS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.tasks.continuity import fill_state_of, resolve_destination
from ColonyBot.tasks.executor import ActionExecutor
from ColonyBot.tasks.finder import FinderContext, FinderRegistry, finder_registry
from ColonyBot.tasks.task import Task
from ColonyBot.tick_stats import TickStats
from ColonyBot.world.constants import Action, ReturnCode, Role
from ColonyBot.world.objects import Creep
from ColonyBot.world.protocol import ActionPort, WorldQuery

if TYPE_CHECKING:
    from ColonyBot.rooms.plan import ColonyPlan

log = get_logger()

# One extra decision after FULL / NOT_ENOUGH_RESOURCES.
MAX_DECISIONS_PER_TICK = 2


class TaskSelector:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        ledger: EnergyLedger,
        config: ColonyConfig | None = None,
        rng: Optional[random.Random] = None,
        registry: Optional[FinderRegistry] = None,
        stats: Optional[TickStats] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.ledger = ledger
        self.config = config or ColonyConfig()
        self.rng = rng or random.Random()
        self.registry = registry or finder_registry
        self.stats = stats or TickStats()
        self.executor = ActionExecutor(world, actions, store, self.config.tasks, self.stats)
        self.plan: Optional["ColonyPlan"] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def memory_for(self, creep: Creep) -> UnitMemory:
        return UnitMemory(creep.name, self.store.section(CREEPS, creep.name))

    def select_and_execute(self, creep: Creep) -> Optional[Task]:
        """
        Decide and act for one unit.

        Returns the task acted on last, or None when the unit idled.
        """
        memory = self.memory_for(creep)
        if memory.role is None:
            role = Role.from_name(creep.name)
            memory.role = role.value if role is not None else None
        if memory.home_room is None:
            memory.home_room = creep.pos.room_name
        if creep.spawning:
            return None

        self.stats.incr("units")
        if not memory.is_well_formed:
            log.debug("Malformed plan for %s, resetting", creep.name, tick=self.world.time)
            memory.reset()

        self.executor.drop_deadlocked(creep, memory)

        if self._is_stuck(creep, memory):
            self._nudge(creep, memory)
            self._bookkeeping(creep, memory)
            return None

        task = self.current_task(creep, memory)
        acted: Optional[Task] = None
        for _ in range(MAX_DECISIONS_PER_TICK):
            if task is None:
                task = self.find_task(creep, memory)
                if task is None:
                    break
            self.executor.track_approach(creep, memory, task)
            code = self.executor.act(creep, task)
            acted = task
            if not self.executor.handle_outcome(creep, memory, task, code):
                break
            task = None

        if acted is None:
            self.stats.incr("idle")
            log.debug("No task for %s (%s)", creep.name, memory.role, tick=self.world.time)
        self._bookkeeping(creep, memory)
        return acted

    def current_task(self, creep: Creep, memory: UnitMemory) -> Optional[Task]:
        """The stored plan if it is still valid; otherwise reset it."""
        if not memory.has_plan:
            return None
        destination = resolve_destination(self.world, creep, memory)
        if destination is None:
            memory.reset()
            return None
        self.stats.incr("tasks_resumed")
        return Task(memory.action, destination)

    def find_task(self, creep: Creep, memory: UnitMemory) -> Optional[Task]:
        """Run the role's cascade and store the winner as the new plan."""
        ctx = FinderContext(
            world=self.world,
            ledger=self.ledger,
            store=self.store,
            config=self.config,
            rng=self.rng,
            creep=creep,
            memory=memory,
            plan=self.plan,
        )
        found = self.registry.first_success(ctx)
        if found is None:
            return None
        finder, task = found
        memory.set_task(task.action, task.ref, self.world.time)
        self.stats.incr("tasks_resolved")
        log.task(creep.name, task.action.value, str(task.ref), tick=self.world.time)
        log.debug("%s chose %s via %s", creep.name, task.describe(), finder.name, tick=self.world.time)
        return task

    # ------------------------------------------------------------------
    # Movement bookkeeping
    # ------------------------------------------------------------------

    def _is_stuck(self, creep: Creep, memory: UnitMemory) -> bool:
        """Trying to travel, yet no position change for stuck_ticks."""
        if not memory.has_plan:
            return False
        travelling = (
            memory.action == Action.MOVE
            or memory.last_action_outcome == ReturnCode.NOT_IN_RANGE
        )
        last_move = memory.last_move_time
        if not travelling or last_move is None:
            return False
        return self.world.time - last_move > self.config.tasks.stuck_ticks

    def _nudge(self, creep: Creep, memory: UnitMemory) -> None:
        log.debug("%s is stuck, nudging", creep.name, tick=self.world.time)
        memory.reset()
        self.actions.move_direction(creep, self.rng.randint(1, 8))
        memory.last_move_time = self.world.time

    def _bookkeeping(self, creep: Creep, memory: UnitMemory) -> None:
        previous = memory.last_pos
        if previous is None or previous != creep.pos:
            memory.last_move_time = self.world.time
        memory.last_pos = creep.pos
        memory.last_room = creep.pos.room_name
        memory.fill_state = fill_state_of(creep)
