"""
Task continuity — is yesterday's plan still worth following?

resolve_destination() rebuilds the stored destination and returns it, or
None when the plan must be dropped. It only reads; dropping the plan is the
caller's job through UnitMemory.reset(), which also keeps lastDestination /
lastAction for diagnostics. Calling it twice without a world change gives
the same answer both times.

Rules, in order:
  1. The unit has just become full or empty (relative to the fill state
     recorded last tick): priorities change the instant that happens.
  2. The stored id no longer resolves to an object (stale reference).
  3. The destination is a position the unit now stands on, and the action
     is not one that keeps working there.
  4. A repair target that no longer needs repair.
  5. The unit has just crossed into the destination's room: re-plan with
     in-room distances instead of the cross-room guess.
"""

from __future__ import annotations

from typing import Optional

from ColonyBot.memory.unit_memory import EMPTY, FULL, PARTIAL, UnitMemory
from ColonyBot.tasks.task import PRESENCE_ACTIONS, Destination, destination_pos, lookup
from ColonyBot.world.constants import Action
from ColonyBot.world.objects import Creep, RoomPosition, Structure
from ColonyBot.world.protocol import WorldQuery


def fill_state_of(creep: Creep) -> str:
    if creep.store.is_full:
        return FULL
    if creep.store.is_empty:
        return EMPTY
    return PARTIAL


def fill_state_flipped(creep: Creep, memory: UnitMemory) -> bool:
    recorded = memory.fill_state
    current = fill_state_of(creep)
    return recorded is not None and current != recorded and current in (FULL, EMPTY)


def resolve_destination(
    world: WorldQuery, creep: Creep, memory: UnitMemory
) -> Optional[Destination]:
    if not memory.has_plan:
        return None

    if fill_state_flipped(creep, memory):
        return None

    destination = lookup(world, memory.destination)
    if destination is None:
        return None

    action = memory.action
    if isinstance(destination, RoomPosition) and creep.pos == destination \
            and action not in PRESENCE_ACTIONS:
        return None

    if action == Action.REPAIR and not (
        isinstance(destination, Structure) and destination.needs_repair
    ):
        return None

    here = creep.pos.room_name
    if memory.last_room is not None and memory.last_room != here \
            and destination_pos(destination).room_name == here:
        return None

    return destination
