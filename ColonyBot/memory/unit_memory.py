"""
UnitMemory — typed view over one unit's section of the memory document.

This is the only state a unit carries from one tick to the next. The plan
is two fields, ``destination`` and ``action``; they are always written and
cleared together (set_task / reset), so a unit either has a whole plan or
none. Everything else is bookkeeping for staleness and deadlock detection.

Stored destination format: an entity id string, or a position dict
``{"x", "y", "roomName"}``.
"""

from __future__ import annotations

from typing import List, Optional, Union

from ColonyBot.memory.store import MemoryField
from ColonyBot.world.constants import Action, ReturnCode, Role
from ColonyBot.world.objects import RoomPosition


DestinationRef = Union[str, RoomPosition]

FULL = "full"
EMPTY = "empty"
PARTIAL = "partial"


def _ids(value) -> List[str]:
    if not isinstance(value, list):
        raise TypeError("expected a list of ids")
    return [str(v) for v in value]


class UnitMemory:
    role                        = MemoryField("role", cast=Role)
    action                      = MemoryField("action", cast=Action)
    last_action_outcome         = MemoryField("lastActionOutcome", cast=ReturnCode.parse)
    destination_set_time        = MemoryField("destinationSetTime", cast=int)
    time_approached_destination = MemoryField("timeApproachedDestination", cast=int)
    range_to_destination        = MemoryField("rangeToDestination", cast=int)
    last_ok_action_time         = MemoryField("lastOkActionTime", cast=int)
    last_move_time              = MemoryField("lastMoveTime", cast=int)
    last_blocked_ids            = MemoryField("lastBlockedIds", default=list, cast=_ids)
    source_id                   = MemoryField("sourceId", cast=str)
    awaiting_delivery_from      = MemoryField("awaitingDeliveryFrom", cast=str)
    received_energy_time        = MemoryField("receivedEnergyTime", cast=int)
    upstream_id                 = MemoryField("upstreamId", cast=str)
    downstream_id               = MemoryField("downstreamId", cast=str)
    home_room                   = MemoryField("homeRoom", cast=str)
    last_room                   = MemoryField("room", cast=str)
    fill_state                  = MemoryField("fillState", cast=str)
    last_action_name            = MemoryField("lastAction", cast=str)

    def __init__(self, name: str, data: dict) -> None:
        self.name = name
        self.data = data

    # ── Plan ──────────────────────────────────────────────────────────────

    @property
    def destination(self) -> Optional[DestinationRef]:
        value = self.data.get("destination")
        if isinstance(value, str) and value:
            return value
        return RoomPosition.from_dict(value)

    @property
    def has_plan(self) -> bool:
        return self.destination is not None and self.action is not None

    @property
    def is_well_formed(self) -> bool:
        """destination absent exactly when action absent."""
        return (self.destination is None) == (self.action is None)

    def set_task(self, action: Action, destination: DestinationRef, time: int) -> None:
        stored = destination.to_dict() if isinstance(destination, RoomPosition) else destination
        if self.data.get("destination") != stored or self.action != action:
            self.data["destinationSetTime"] = time
            self.data["timeApproachedDestination"] = time
            self.data.pop("rangeToDestination", None)
        self.data["destination"] = stored
        self.data["action"] = action.value

    def reset(self) -> None:
        """Drop the plan, keeping what it was for diagnostics."""
        if "destination" in self.data:
            self.data["lastDestination"] = self.data.pop("destination")
        if "action" in self.data:
            self.data["lastAction"] = self.data.pop("action")
        for key in ("destinationSetTime", "timeApproachedDestination", "rangeToDestination"):
            self.data.pop(key, None)

    @property
    def last_destination(self) -> Optional[DestinationRef]:
        value = self.data.get("lastDestination")
        if isinstance(value, str) and value:
            return value
        return RoomPosition.from_dict(value)

    # ── Blacklist ─────────────────────────────────────────────────────────

    def block(self, target_id: str, capacity: int) -> None:
        """Push target_id onto the ring, evicting the oldest beyond capacity."""
        blocked = [i for i in self.last_blocked_ids if i != target_id]
        blocked.append(target_id)
        self.data["lastBlockedIds"] = blocked[-capacity:] if capacity > 0 else []

    def is_blocked(self, target_id: Optional[str]) -> bool:
        return target_id is not None and target_id in self.last_blocked_ids

    # ── Position tracking ─────────────────────────────────────────────────

    @property
    def last_pos(self) -> Optional[RoomPosition]:
        return RoomPosition.from_dict(self.data.get("pos"))

    @last_pos.setter
    def last_pos(self, pos: RoomPosition) -> None:
        self.data["pos"] = pos.to_dict()
