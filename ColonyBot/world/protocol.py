"""
The two seams between the controller and the environment.

WorldQuery is the read side: entity enumeration, ids, ranges, paths,
terrain and map topology. ActionPort is the write side: every primitive
submits one intent and answers with a ReturnCode. The controller never
touches the environment any other way, so any host (a live game bridge, a
replay, or SnapshotWorld in tests) can drive it.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ColonyBot.world.constants import BodyPart, ReturnCode, StructureType
from ColonyBot.world.objects import (
    ConstructionSite,
    Creep,
    GameObject,
    Resource,
    Room,
    RoomPosition,
    Source,
    Structure,
)


@runtime_checkable
class WorldQuery(Protocol):

    @property
    def time(self) -> int: ...

    @property
    def username(self) -> str: ...

    def get_object_by_id(self, object_id: str) -> Optional[GameObject]: ...

    def rooms(self) -> List[Room]: ...

    def get_room(self, room_name: str) -> Optional[Room]: ...

    def my_creeps(self) -> List[Creep]: ...

    def my_spawns(self) -> List[Structure]: ...

    def path_distance(self, origin: RoomPosition, goal: RoomPosition) -> Optional[int]:
        """Path length, or None when no path exists or it is not cheaply computable."""

    def exits(self, room_name: str) -> Dict[str, str]: ...

    def room_status(self, room_name: str) -> str: ...

    def cpu_used(self) -> float: ...

    @property
    def cpu_limit(self) -> float: ...

    @property
    def tick_limit(self) -> float: ...


@runtime_checkable
class ActionPort(Protocol):

    def move_to(self, creep: Creep, pos: RoomPosition) -> ReturnCode: ...

    def move_direction(self, creep: Creep, direction: int) -> ReturnCode: ...

    def harvest(self, creep: Creep, source: Source) -> ReturnCode: ...

    def withdraw(self, creep: Creep, target: GameObject) -> ReturnCode: ...

    def transfer(self, creep: Creep, target: GameObject) -> ReturnCode: ...

    def pickup(self, creep: Creep, resource: Resource) -> ReturnCode: ...

    def build(self, creep: Creep, site: ConstructionSite) -> ReturnCode: ...

    def repair(self, creep: Creep, structure: Structure) -> ReturnCode: ...

    def upgrade_controller(self, creep: Creep, controller: Structure) -> ReturnCode: ...

    def reserve_controller(self, creep: Creep, controller: Structure) -> ReturnCode: ...

    def attack(self, creep: Creep, target: GameObject) -> ReturnCode: ...

    def ranged_attack(self, creep: Creep, target: GameObject) -> ReturnCode: ...

    def heal(self, creep: Creep, target: Creep) -> ReturnCode: ...

    def spawn_creep(
        self, spawn: Structure, body: Sequence[BodyPart], name: str, memory: dict
    ) -> ReturnCode: ...

    def tower_attack(self, tower: Structure, target: GameObject) -> ReturnCode: ...

    def tower_heal(self, tower: Structure, target: Creep) -> ReturnCode: ...

    def tower_repair(self, tower: Structure, target: Structure) -> ReturnCode: ...

    def link_transfer(self, link: Structure, target: Structure) -> ReturnCode: ...

    def recycle_creep(self, spawn: Structure, creep: Creep) -> ReturnCode: ...

    def observe_room(self, observer: Structure, room_name: str) -> ReturnCode: ...

    def activate_safe_mode(self, controller: Structure) -> ReturnCode: ...

    def create_construction_site(
        self, pos: RoomPosition, structure_type: StructureType
    ) -> ReturnCode: ...
