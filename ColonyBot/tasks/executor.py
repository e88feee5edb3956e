"""
ActionExecutor — turns a Task into exactly one primitive call and applies
the recovery policy for whatever status code comes back.

Dispatch
--------
The table is keyed on (action, destination class). Structure destinations
are additionally guarded on structure_type (upgrade / reserve need a
controller, withdraw / transfer need a store, recycle needs a spawn). A
combination outside the table is a planning bug: it is logged and answered
with INVALID_ARGS, never raised.

Outcome policy
--------------
  OK                        stamp lastOkActionTime; transfers notify the
                            receiving unit / fill order; single-shot actions
                            (withdraw, pickup, transfer) drop the plan
  NOT_IN_RANGE              move toward the destination this same tick
  FULL, NOT_ENOUGH_RESOURCES drop the plan and re-decide this same tick
  NO_PATH                   drop the plan
  INVALID_TARGET            drop the plan and blacklist the target
  TIRED                     nothing
  INVALID_ARGS              drop the plan
  NOT_OWNER                 drop the plan and head for the nearest exit
  anything else             logged only

Deadlock
--------
A plan whose unit has neither got closer nor acted successfully for more
than deadlock_ticks is dropped and its target blacklisted.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple, Type

from ColonyBot.config import TaskConfig
from ColonyBot.geometry.positions import closest_exit, global_range
from ColonyBot.logger import get_logger
from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.memory.store import CREEPS, ROOMS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.tasks.task import SINGLE_SHOT_ACTIONS, Task
from ColonyBot.tick_stats import TickStats
from ColonyBot.world.constants import Action, BodyPart, ReturnCode, StructureType
from ColonyBot.world.objects import (
    ConstructionSite,
    Creep,
    Resource,
    RoomPosition,
    Ruin,
    Source,
    Structure,
    Tombstone,
)
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()


_CONTROLLER_ONLY = frozenset({StructureType.CONTROLLER})


class ActionExecutor:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        config: TaskConfig | None = None,
        stats: Optional[TickStats] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.cfg = config or TaskConfig()
        self.stats = stats or TickStats()
        self._dispatch: Dict[Tuple[Action, Type], Callable[[Creep, object], ReturnCode]] = {
            (Action.HARVEST, Source):            actions.harvest,
            (Action.WITHDRAW, Structure):        actions.withdraw,
            (Action.WITHDRAW, Tombstone):        actions.withdraw,
            (Action.WITHDRAW, Ruin):             actions.withdraw,
            (Action.PICKUP, Resource):           actions.pickup,
            (Action.TRANSFER, Structure):        actions.transfer,
            (Action.TRANSFER, Creep):            actions.transfer,
            (Action.BUILD, ConstructionSite):    actions.build,
            (Action.REPAIR, Structure):          actions.repair,
            (Action.UPGRADE, Structure):         actions.upgrade_controller,
            (Action.RESERVE, Structure):         actions.reserve_controller,
            (Action.ATTACK, Creep):              self._attack,
            (Action.ATTACK, Structure):          self._attack,
            (Action.HEAL, Creep):                actions.heal,
            (Action.MOVE, RoomPosition):         actions.move_to,
            (Action.RECYCLE, Structure):         self._recycle,
        }

    # ------------------------------------------------------------------
    # Acting
    # ------------------------------------------------------------------

    def act(self, creep: Creep, task: Task) -> ReturnCode:
        """Submit the single primitive implied by task."""
        handler = self._dispatch.get((task.action, type(task.destination)))
        if handler is None or not self._structure_fits(task):
            log.warning(
                "No primitive for %s on %s (unit %s)",
                task.action.value,
                type(task.destination).__name__,
                creep.name,
                tick=self.world.time,
            )
            return ReturnCode.INVALID_ARGS
        return handler(creep, task.destination)

    def _structure_fits(self, task: Task) -> bool:
        target = task.destination
        if not isinstance(target, Structure):
            return True
        if task.action in (Action.UPGRADE, Action.RESERVE):
            return target.structure_type in _CONTROLLER_ONLY
        if task.action in (Action.WITHDRAW, Action.TRANSFER):
            return target.store is not None
        if task.action == Action.RECYCLE:
            return target.structure_type == StructureType.SPAWN
        return True

    def _recycle(self, creep: Creep, spawn: Structure) -> ReturnCode:
        code = self.actions.recycle_creep(spawn, creep)
        if code == ReturnCode.OK:
            log.info("Recycled %s at %s", creep.name, spawn.id, tick=self.world.time)
            self.stats.incr("recycled")
        return code

    def _attack(self, creep: Creep, target) -> ReturnCode:
        """Melee when adjacent; ranged parts fire at range 3 regardless."""
        ranged = None
        if creep.has_part(BodyPart.RANGED_ATTACK):
            ranged = self.actions.ranged_attack(creep, target)
        if creep.has_part(BodyPart.ATTACK):
            return self.actions.attack(creep, target)
        return ranged if ranged is not None else ReturnCode.NO_BODYPART

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------

    def track_approach(self, creep: Creep, memory: UnitMemory, task: Task) -> None:
        """
        Stamp timeApproachedDestination when the unit beats its best range.

        rangeToDestination holds the closest range reached since the plan
        was set, so a unit bouncing between two tiles makes no progress.
        """
        distance = global_range(creep.pos, task.pos)
        if distance == float("inf"):
            return
        best = memory.range_to_destination
        if best is None or distance < best:
            memory.time_approached_destination = self.world.time
            memory.range_to_destination = int(distance)

    def is_deadlocked(self, memory: UnitMemory) -> bool:
        marks = [
            t for t in (
                memory.time_approached_destination,
                memory.last_ok_action_time,
                memory.destination_set_time,
            )
            if t is not None
        ]
        if not marks:
            return False
        return self.world.time - max(marks) > self.cfg.deadlock_ticks

    def drop_deadlocked(self, creep: Creep, memory: UnitMemory) -> bool:
        if not memory.has_plan or not self.is_deadlocked(memory):
            return False
        target = memory.destination
        log.info(
            "Deadlock: %s gave up on %s %s",
            creep.name,
            memory.action.value if memory.action else "-",
            target,
            tick=self.world.time,
        )
        memory.reset()
        if isinstance(target, str):
            self._block(memory, target)
        self.stats.incr("deadlocks")
        return True

    # ------------------------------------------------------------------
    # Outcome handling
    # ------------------------------------------------------------------

    def handle_outcome(
        self, creep: Creep, memory: UnitMemory, task: Task, code: ReturnCode
    ) -> bool:
        """
        Apply the recovery policy for code.

        Returns True when the caller should re-decide for this unit within
        the same tick.
        """
        now = self.world.time
        memory.last_action_outcome = code.value
        self.stats.outcome(code)
        log.task(creep.name, task.action.value, str(task.ref), tick=now, outcome=code.name)

        if code == ReturnCode.OK:
            if task.action != Action.MOVE:
                memory.last_ok_action_time = now
            if task.action == Action.TRANSFER:
                self._after_transfer(task)
            if task.action in SINGLE_SHOT_ACTIONS:
                memory.reset()
            return False

        if code == ReturnCode.NOT_IN_RANGE:
            moved = self.actions.move_to(creep, task.pos)
            if moved == ReturnCode.NO_PATH:
                memory.reset()
            return False

        if code in (ReturnCode.FULL, ReturnCode.NOT_ENOUGH_RESOURCES):
            memory.reset()
            return True

        if code == ReturnCode.NO_PATH:
            memory.reset()
            return False

        if code == ReturnCode.INVALID_TARGET:
            memory.reset()
            if isinstance(task.ref, str):
                self._block(memory, task.ref)
            return False

        if code == ReturnCode.TIRED:
            return False

        if code == ReturnCode.INVALID_ARGS:
            # Dispatch mismatch or bad call; the plan can never succeed.
            memory.reset()
            return False

        if code == ReturnCode.NOT_OWNER:
            memory.reset()
            room = self.world.get_room(creep.pos.room_name)
            exit_pos = closest_exit(room, creep.pos) if room is not None else None
            if exit_pos is not None:
                self.actions.move_to(creep, exit_pos)
            return False

        log.debug(
            "Unhandled outcome %s for %s (%s)",
            code.name,
            creep.name,
            task.describe(),
            tick=now,
        )
        return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _block(self, memory: UnitMemory, target_id: str) -> None:
        memory.block(target_id, self.cfg.blacklist_size)
        self.stats.incr("blocked")

    def _after_transfer(self, task: Task) -> None:
        target = task.destination
        if isinstance(target, Creep):
            receiver = UnitMemory(target.name, self.store.section(CREEPS, target.name))
            receiver.received_energy_time = self.world.time
            receiver.awaiting_delivery_from = None
            # The receiver reconsiders what to do with the energy.
            receiver.reset()
        elif isinstance(target, Structure) and target.structure_type in (
            StructureType.SPAWN, StructureType.EXTENSION
        ):
            room_name = target.pos.room_name
            RoomMemory(room_name, self.store.section(ROOMS, room_name)).record_fill(target.id)
