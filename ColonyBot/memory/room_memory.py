"""
RoomMemory — cached, derived facts about one room.

Expensive geometry (upgrade spots, harvest spots, repair targets) is cached
here and only recomputed when the room's layout signature changes: a new
structure or construction site, or hostiles appearing / leaving. The rest
are running values that room maintenance refreshes each tick.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from ColonyBot.memory.store import MemoryField
from ColonyBot.world.objects import RoomPosition


def _positions(value) -> List[RoomPosition]:
    if not isinstance(value, list):
        raise TypeError("expected a list of positions")
    return [p for p in (RoomPosition.from_dict(v) for v in value) if p is not None]


def _str_list(value) -> List[str]:
    if not isinstance(value, list):
        raise TypeError("expected a list")
    return [str(v) for v in value]


def _number_map(value) -> Dict[str, float]:
    if not isinstance(value, dict):
        raise TypeError("expected a mapping")
    return {str(k): float(v) for k, v in value.items()}


class RoomMemory:
    # ── Cached layout facts ───────────────────────────────────────────────
    layout_signature        = MemoryField("layoutSignature", cast=_str_list)
    upgrade_spots           = MemoryField("upgradeSpots", default=list, cast=_positions)
    repair_target_ids       = MemoryField("repairTargetIds", default=list, cast=_str_list)
    hostile_present         = MemoryField("hostilePresent", default=False, cast=bool)
    structure_count         = MemoryField("structureCount", default=0, cast=int)
    construction_count      = MemoryField("constructionCount", default=0, cast=int)
    fill_order              = MemoryField("fillOrder", default=list, cast=_str_list)
    score                   = MemoryField("score", cast=float)
    max_hits_to_repair      = MemoryField("maxHitsToRepair", cast=int)

    # ── Status ────────────────────────────────────────────────────────────
    claim_is_safe           = MemoryField("claimIsSafe", cast=bool)
    safe_for_creeps         = MemoryField("safeForCreeps", cast=bool)
    can_operate             = MemoryField("canOperate", cast=bool)

    # ── Energy tracking ───────────────────────────────────────────────────
    energy_ratio            = MemoryField("energyRatio", default=0.0, cast=float)
    energy_ratio_delta      = MemoryField("energyRatioDelta", default=0.0, cast=float)
    lacked_energy_since     = MemoryField("lackedEnergySinceTime", cast=int)
    sticky_energy           = MemoryField("stickyEnergy", default=dict, cast=_number_map)
    sticky_energy_delta     = MemoryField("stickyEnergyDelta", default=dict, cast=_number_map)

    # ── Tower targeting ───────────────────────────────────────────────────
    tower_max_range         = MemoryField("towerMaxRange", cast=int)
    tower_last_target       = MemoryField("towerLastTarget", cast=str)
    tower_last_target_hits  = MemoryField("towerLastTargetHits", cast=int)

    def __init__(self, name: str, data: dict) -> None:
        self.name = name
        self.data = data

    def harvest_spots(self, source_id: str) -> List[RoomPosition]:
        spots = self.data.get("harvestSpots")
        if not isinstance(spots, dict):
            return []
        try:
            return _positions(spots.get(source_id, []))
        except TypeError:
            return []

    def set_harvest_spots(self, spots: Dict[str, List[RoomPosition]]) -> None:
        self.data["harvestSpots"] = {
            source_id: [p.to_dict() for p in positions]
            for source_id, positions in spots.items()
        }

    def set_upgrade_spots(self, spots: List[RoomPosition]) -> None:
        self.data["upgradeSpots"] = [p.to_dict() for p in spots]

    def invalidate_layout(self) -> None:
        for key in ("upgradeSpots", "harvestSpots", "repairTargetIds", "score"):
            self.data.pop(key, None)

    def record_fill(self, structure_id: str, limit: int = 100) -> None:
        """Append a spawn/extension to the fill order (first filled first used)."""
        order = [i for i in self.fill_order if i != structure_id]
        order.append(structure_id)
        self.data["fillOrder"] = order[-limit:]

    def fill_rank(self, structure_id: str) -> Optional[int]:
        order = self.fill_order
        return order.index(structure_id) if structure_id in order else None
