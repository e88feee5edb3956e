"""
TrendTracker — two-sample trends persisted in the global namespace.

Spawn decisions compare a demand figure now against the same figure one
window ago instead of reacting to the instantaneous value, so one noisy
tick never flips a decision. Samples are recorded once per tick (at tick
end) and pruned to what the window still needs.

Memory layout (``Memory.global.trends``)::

    {"hauling": [[tick, value], ...], "threat": [[tick, value], ...]}
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ColonyBot.memory.store import GLOBAL, MemoryStore

TRENDS_KEY = "trends"


class TrendTracker:

    def __init__(self, store: MemoryStore, window: int = 100) -> None:
        self.store = store
        self.window = window

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    def _all(self) -> dict:
        trends = self.store.get(GLOBAL, TRENDS_KEY)
        if not isinstance(trends, dict):
            trends = {}
            self.store.set(GLOBAL, TRENDS_KEY, trends)
        return trends

    def samples(self, name: str) -> List[Tuple[int, float]]:
        raw = self._all().get(name)
        if not isinstance(raw, list):
            return []
        parsed = []
        for item in raw:
            try:
                parsed.append((int(item[0]), float(item[1])))
            except (TypeError, ValueError, IndexError):
                continue
        return sorted(parsed)

    def record(self, name: str, value: float, time: int) -> None:
        kept = [s for s in self.samples(name) if s[0] != time]
        kept.append((time, float(value)))
        kept.sort()
        # Keep the newest sample at or before the window start, drop older.
        horizon = time - self.window
        older = [s for s in kept if s[0] <= horizon]
        kept = older[-1:] + [s for s in kept if s[0] > horizon]
        self._all()[name] = [[t, v] for t, v in kept]

    def value_at(self, name: str, time: int) -> Optional[float]:
        """Newest sample taken at or before time."""
        found = None
        for t, v in self.samples(name):
            if t > time:
                break
            found = v
        return found

    # ------------------------------------------------------------------
    # Trend queries
    # ------------------------------------------------------------------

    def rising(self, name: str, now: int) -> bool:
        """Sample at now - 1 is above the sample at now - window."""
        recent = self.value_at(name, now - 1)
        earlier = self.value_at(name, now - self.window)
        if recent is None or earlier is None:
            return False
        return recent > earlier

    def rising_above(self, name: str, now: int, floor: float) -> bool:
        recent = self.value_at(name, now - 1)
        return recent is not None and recent > floor and self.rising(name, now)
