"""
Task — one action verb paired with one destination.

A Task is never persisted as an object. The engine folds it into the two
UnitMemory fields (``action``, ``destination``) and rebuilds it next tick
from the stored reference.

Destination is a closed union: a RoomPosition, or a world object whose
concrete class (plus ``structure_type`` for structures) decides which
primitive can act on it. The executor matches on that, never on which
attributes an object happens to have.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ColonyBot.memory.unit_memory import DestinationRef
from ColonyBot.world.constants import Action
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
from ColonyBot.world.protocol import WorldQuery


Destination = Union[
    RoomPosition, Source, Structure, Creep, Resource, Tombstone, Ruin, ConstructionSite
]

# Actions that keep the unit working at (or next to) its destination, so
# reaching the destination does not finish them.
PRESENCE_ACTIONS = frozenset({
    Action.BUILD,
    Action.REPAIR,
    Action.HARVEST,
    Action.UPGRADE,
    Action.RESERVE,
    Action.ATTACK,
    Action.HEAL,
})

# Actions that complete in a single successful primitive call.
SINGLE_SHOT_ACTIONS = frozenset({Action.TRANSFER, Action.WITHDRAW, Action.PICKUP})


@dataclass(frozen=True)
class Task:
    action: Action
    destination: Destination
    # Energy this task committed against the ledger (0 = none).
    amount: int = 0

    @property
    def ref(self) -> DestinationRef:
        return destination_ref(self.destination)

    @property
    def pos(self) -> RoomPosition:
        return destination_pos(self.destination)

    def describe(self) -> str:
        return f"{self.action.value} {describe_destination(self.destination)}"


def destination_ref(destination: Destination) -> DestinationRef:
    if isinstance(destination, RoomPosition):
        return destination
    return destination.id


def destination_pos(destination: Destination) -> RoomPosition:
    if isinstance(destination, RoomPosition):
        return destination
    return destination.pos


def describe_destination(destination: Optional[Destination]) -> str:
    if destination is None:
        return "-"
    if isinstance(destination, RoomPosition):
        return str(destination)
    if isinstance(destination, (Structure, ConstructionSite)):
        return f"{destination.structure_type.value}:{destination.id}"
    if isinstance(destination, Creep):
        return f"creep:{destination.name}"
    return f"{type(destination).__name__.lower()}:{destination.id}"


def lookup(world: WorldQuery, ref: Optional[DestinationRef]) -> Optional[Destination]:
    """Resolve a stored reference; a vanished object resolves to None."""
    if ref is None:
        return None
    if isinstance(ref, RoomPosition):
        return ref
    return world.get_object_by_id(ref)
