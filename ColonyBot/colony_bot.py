"""
ColonyBot — the per-tick colony loop.

One call to run_tick() is one simulation step:

    purge memory of dead units
    wipe-out check
    colony plan (reloaded, or rebuilt when due / CPU is spare)
    per room:   maintenance → towers → links → observers → construction (spare CPU)
    spawn planner
    per unit:   TaskSelector.select_and_execute  (sorted by name)
    traffic maps, trend samples, CPU bookkeeping, stats flush

Nothing survives in-process between ticks that is not also in the memory
store; the host may build a fresh ColonyBot every tick.
"""

from __future__ import annotations

import random
from typing import Optional

from ColonyBot.config import ColonyConfig
from ColonyBot.construction.construction_planner import (
    ConstructionPlanner,
    load_traffic,
    save_traffic,
)
from ColonyBot.energy.ledger import EnergyLedger
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import CREEPS, GLOBAL, MemoryStore
from ColonyBot.rooms.plan import ColonyPlan, check_wipe_out
from ColonyBot.rooms.room_status import RoomMaintenance
from ColonyBot.spawning.planner import SpawnPlanner
from ColonyBot.structures.links import LinkBalancer
from ColonyBot.structures.observers import ObserverControl
from ColonyBot.structures.towers import TowerControl
from ColonyBot.tasks.finder import FinderRegistry, finder_registry
from ColonyBot.tasks.finders import register_finders
from ColonyBot.tasks.task_selector import TaskSelector
from ColonyBot.tick_stats import TickStats
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()

CPU_USED_RATIO_KEY = "cpuUsedRatio"
MAX_TICK_LIMIT_KEY = "maxTickLimit"


class ColonyBot:
    """Wires the components together and runs them in tick order."""

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        store: MemoryStore,
        config: ColonyConfig | None = None,
        rng: Optional[random.Random] = None,
        registry: Optional[FinderRegistry] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.store = store
        self.config = config or ColonyConfig()
        self.rng = rng or random.Random()
        self.stats = TickStats()
        self.registry = register_finders(registry or finder_registry)
        log.debug("Finder registry:\n%s", self.registry.summary(), tick=world.time)

        self.ledger = EnergyLedger(world, store, self.config.tasks)
        self.maintenance = RoomMaintenance(world, actions, store, self.config)
        self.towers = TowerControl(world, actions, self.config.towers)
        self.links = LinkBalancer(world, actions, self.config.links)
        self.observers = ObserverControl(world, actions, self.rng)
        self.construction = ConstructionPlanner(world, actions, store, self.config, self.stats)
        self.spawner = SpawnPlanner(world, actions, store, self.config, self.rng, self.stats)
        self.selector = TaskSelector(
            world, actions, store, self.ledger, self.config, self.rng, self.registry, self.stats,
        )
        self.plan: Optional[ColonyPlan] = None

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def run_tick(self) -> None:
        tick = self.world.time
        self.stats.reset()

        self.purge_dead_units()
        check_wipe_out(self.world, self.store)
        spare_cpu = self.got_spare_cpu()
        self.plan = self.refresh_plan(spare_cpu)

        for room in sorted(self.world.rooms(), key=lambda r: r.name):
            memory = self.maintenance.run(room, spare_cpu)
            if room.is_mine:
                self.towers.run(room, memory)
                self.links.run(room)
                self.observers.run(room)
            if spare_cpu:
                self.construction.run(room)

        self.spawner.plan = self.plan
        self.spawner.plan_spawns()

        self.selector.plan = self.plan
        for creep in sorted(self.world.my_creeps(), key=lambda c: c.name):
            self.selector.select_and_execute(creep)

        self.update_traffic()
        self.spawner.record_trends()
        self.record_cpu()
        self.stats.flush(self.store, tick)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def purge_dead_units(self) -> int:
        """Drop memory of units that neither exist nor are being spawned."""
        alive = {c.name for c in self.world.my_creeps()}
        alive.update(s.spawning for s in self.world.my_spawns() if s.spawning)
        purged = 0
        for name in self.store.keys(CREEPS):
            if name not in alive:
                self.store.delete(CREEPS, name)
                purged += 1
        if purged:
            self.stats.incr("units_purged", purged)
        return purged

    def refresh_plan(self, spare_cpu: bool) -> ColonyPlan:
        plan = ColonyPlan.load(self.store)
        if plan is None or spare_cpu or plan.is_due(self.world.time, self.config.cpu.plan_interval):
            plan = self.spawner.build_plan()
            plan.save(self.store)
            self.stats.incr("plan_refreshed")
        return plan

    def update_traffic(self) -> None:
        for room in self.world.rooms():
            if not room.is_mine:
                continue
            traffic = load_traffic(self.store, room.name, self.config)
            traffic.update(room.my_creeps())
            save_traffic(self.store, traffic)

    # ------------------------------------------------------------------
    # CPU
    # ------------------------------------------------------------------

    def got_spare_cpu(self) -> bool:
        """Bucket not drained and last tick stayed under the spare-CPU ratio."""
        max_tick_limit = self.store.get(GLOBAL, MAX_TICK_LIMIT_KEY, 0) or 0
        used_ratio = self.store.get(GLOBAL, CPU_USED_RATIO_KEY, 0) or 0
        return (
            self.world.tick_limit >= max_tick_limit
            and used_ratio < self.config.cpu.spare_cpu_ratio
        )

    def record_cpu(self) -> None:
        used = self.world.cpu_used()
        self.stats.cpu_used = used
        limit = self.world.cpu_limit
        if limit > 0:
            self.store.set(GLOBAL, CPU_USED_RATIO_KEY, used / limit)
        max_tick_limit = self.store.get(GLOBAL, MAX_TICK_LIMIT_KEY, 0) or 0
        if self.world.tick_limit > max_tick_limit:
            self.store.set(GLOBAL, MAX_TICK_LIMIT_KEY, self.world.tick_limit)
