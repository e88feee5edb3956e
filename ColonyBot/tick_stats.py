"""
TickStats — per-tick diagnostic counters.

Counters are accumulated in-process during one tick and written into the
global memory namespace at tick end (``Memory.global.tickStats``), so the
host can read the last tick's numbers without parsing logs. The same
counters are emitted at DEBUG level through log.stats().

Tracked counters
----------------
  units               Units that went through the decision loop.
  tasks_resolved      Plans produced by the finder cascade.
  tasks_resumed       Stored plans that passed the continuity check.
  idle                Units for which no finder produced a task.
  deadlocks           Plans dropped by the deadlock timeout.
  blocked             Targets pushed onto a blacklist.
  outcome_<CODE>      One counter per primitive return code seen.
  spawns_issued       Spawn commands accepted by a spawn point.
  spawns_rejected     Spawn commands the primitive refused.
  sites_placed        Construction sites created.

Integration
-----------
    stats = TickStats()
    stats.incr("units")
    stats.outcome(ReturnCode.NOT_IN_RANGE)
    stats.flush(store, tick)        # once, at tick end
"""

from __future__ import annotations

from collections import Counter
from typing import Dict

from ColonyBot.logger import get_logger
from ColonyBot.memory.store import GLOBAL, MemoryStore
from ColonyBot.world.constants import ReturnCode

log = get_logger()


# ── Constants ──────────────────────────────────────────────────────────────────

STATS_KEY = "tickStats"


# ── Tracker ────────────────────────────────────────────────────────────────────

class TickStats:

    def __init__(self) -> None:
        self.counters: Counter = Counter()
        self.cpu_used: float = 0.0

    def incr(self, name: str, amount: int = 1) -> None:
        self.counters[name] += amount

    def outcome(self, code: ReturnCode) -> None:
        self.counters[f"outcome_{code.name}"] += 1

    def get(self, name: str) -> int:
        return self.counters.get(name, 0)

    def as_dict(self) -> Dict[str, float]:
        snapshot: Dict[str, float] = dict(self.counters)
        snapshot["cpu_used"] = round(self.cpu_used, 3)
        return snapshot

    def flush(self, store: MemoryStore, tick: int) -> None:
        """Write the counters into the global namespace and log them."""
        snapshot = self.as_dict()
        snapshot["tick"] = tick
        store.set(GLOBAL, STATS_KEY, snapshot)
        log.stats(self.counters, tick=tick)

    def reset(self) -> None:
        self.counters.clear()
        self.cpu_used = 0.0
