"""
SnapshotWorld — an in-memory world built from one snapshot document.

Implements both WorldQuery and ActionPort over plain dataclasses. The host
runner loads it from JSON; tests build rooms programmatically. Primitives
validate the same preconditions the environment does (ownership, stores,
range, fatigue), apply their effect to the in-memory objects so later
decisions in the same tick see it, and record an intent for the host.

Path distances are only computed inside a single room (Chebyshev range);
across rooms they are reported as not cheaply computable (None). Targets
listed in ``unreachable`` always report no path.
"""

from __future__ import annotations

import json
from itertools import count
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

import numpy as np

from ColonyBot.errors import SnapshotError
from ColonyBot.world.constants import (
    BODYPART_COST,
    ROOM_SIZE,
    BodyPart,
    ReturnCode,
    StructureType,
    Terrain,
)
from ColonyBot.world.objects import (
    ConstructionSite,
    Creep,
    GameObject,
    Reservation,
    Resource,
    Room,
    RoomPosition,
    Ruin,
    Source,
    Store,
    Structure,
    Tombstone,
    blank_terrain,
)


_ACTION_RANGE = {
    "harvest": 1, "withdraw": 1, "transfer": 1, "pickup": 1,
    "build": 3, "repair": 3, "upgrade": 3, "reserve": 1,
    "attack": 1, "ranged_attack": 3, "heal": 1,
}

SAFE_MODE_DURATION = 20000


class SnapshotWorld:
    """World snapshot plus primitive executor for one tick."""

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        time: int = 1,
        username: str = "me",
        map_exits: Optional[Dict[str, Dict[str, str]]] = None,
        room_statuses: Optional[Dict[str, str]] = None,
        cpu_limit: float = 20.0,
        tick_limit: float = 500.0,
        cpu_used: float = 0.0,
    ) -> None:
        self._time = time
        self._username = username
        self._rooms: Dict[str, Room] = {room.name: room for room in rooms}
        self._map_exits = dict(map_exits or {})
        self._room_statuses = dict(room_statuses or {})
        self._cpu_limit = cpu_limit
        self._tick_limit = tick_limit
        self._cpu_used = cpu_used

        self.unreachable: Set[Union[str, RoomPosition]] = set()
        self.observed: Set[str] = set()
        self.intents: List[dict] = []
        self.spawned: Dict[str, dict] = {}
        self._site_ids = count(1)
        self._index: Dict[str, GameObject] = {}
        self.reindex()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def reindex(self) -> None:
        """Rebuild the id index after rooms or objects were added."""
        self._index = {}
        for room in self._rooms.values():
            objects: List[GameObject] = []
            objects.extend(room.structures)
            objects.extend(room.sources)
            objects.extend(room.construction_sites)
            objects.extend(room.dropped_resources)
            objects.extend(room.tombstones)
            objects.extend(room.ruins)
            objects.extend(room.creeps)
            if room.controller is not None and room.controller not in room.structures:
                objects.append(room.controller)
            for obj in objects:
                self._index[obj.id] = obj

    def add_room(self, room: Room) -> Room:
        self._rooms[room.name] = room
        self.reindex()
        return room

    def advance(self, ticks: int = 1) -> None:
        """Move the clock forward and clear per-tick intents."""
        self._time += ticks
        self.intents = []
        self.spawned = {}
        self.observed = set()

    # ------------------------------------------------------------------
    # WorldQuery
    # ------------------------------------------------------------------

    @property
    def time(self) -> int:
        return self._time

    @property
    def username(self) -> str:
        return self._username

    def get_object_by_id(self, object_id: str) -> Optional[GameObject]:
        if not isinstance(object_id, str):
            return None
        return self._index.get(object_id)

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def get_room(self, room_name: str) -> Optional[Room]:
        return self._rooms.get(room_name)

    def my_creeps(self) -> List[Creep]:
        return [c for room in self._rooms.values() for c in room.creeps if c.my]

    def my_spawns(self) -> List[Structure]:
        return [
            s for room in self._rooms.values()
            for s in room.structures
            if s.my and s.structure_type == StructureType.SPAWN
        ]

    def path_distance(self, origin: RoomPosition, goal: RoomPosition) -> Optional[int]:
        if goal in self.unreachable:
            return None
        for obj_id in self.unreachable:
            obj = self._index.get(obj_id) if isinstance(obj_id, str) else None
            if obj is not None and obj.pos == goal:
                return None
        if origin.room_name != goal.room_name:
            return None
        return int(origin.get_range_to(goal))

    def exits(self, room_name: str) -> Dict[str, str]:
        if room_name in self._map_exits:
            return dict(self._map_exits[room_name])
        room = self._rooms.get(room_name)
        return dict(room.exits) if room is not None else {}

    def room_status(self, room_name: str) -> str:
        if room_name in self._room_statuses:
            return self._room_statuses[room_name]
        room = self._rooms.get(room_name)
        return room.status if room is not None else "normal"

    def cpu_used(self) -> float:
        return self._cpu_used

    @property
    def cpu_limit(self) -> float:
        return self._cpu_limit

    @property
    def tick_limit(self) -> float:
        return self._tick_limit

    # ------------------------------------------------------------------
    # ActionPort
    # ------------------------------------------------------------------

    def move_to(self, creep: Creep, pos: RoomPosition) -> ReturnCode:
        if creep.spawning:
            return ReturnCode.BUSY
        if not creep.has_part(BodyPart.MOVE):
            return ReturnCode.NO_BODYPART
        if creep.fatigue > 0:
            return ReturnCode.TIRED
        if self.path_distance(creep.pos, pos) is None and creep.pos.room_name == pos.room_name:
            return ReturnCode.NO_PATH
        if pos in self.unreachable:
            return ReturnCode.NO_PATH
        self._record("move", creep, pos)
        return ReturnCode.OK

    def move_direction(self, creep: Creep, direction: int) -> ReturnCode:
        if creep.fatigue > 0:
            return ReturnCode.TIRED
        if not 1 <= direction <= 8:
            return ReturnCode.INVALID_ARGS
        self._record("move_direction", creep, None, direction=direction)
        return ReturnCode.OK

    def harvest(self, creep: Creep, source: Source) -> ReturnCode:
        if not isinstance(source, Source):
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(BodyPart.WORK):
            return ReturnCode.NO_BODYPART
        if not creep.pos.in_range_to(source.pos, _ACTION_RANGE["harvest"]):
            return ReturnCode.NOT_IN_RANGE
        if source.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        amount = min(creep.active_parts(BodyPart.WORK) * 2, source.energy)
        source.energy -= amount
        creep.store.energy = min(creep.store.capacity, creep.store.energy + amount)
        self._record("harvest", creep, source, amount=amount)
        return ReturnCode.OK

    def withdraw(self, creep: Creep, target: GameObject) -> ReturnCode:
        if not isinstance(target, (Structure, Tombstone, Ruin)) or target.store is None:
            return ReturnCode.INVALID_TARGET
        if isinstance(target, Structure) and target.owner is not None and not target.my:
            return ReturnCode.NOT_OWNER
        if creep.store.free_capacity <= 0:
            return ReturnCode.FULL
        if target.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if not creep.pos.in_range_to(target.pos, _ACTION_RANGE["withdraw"]):
            return ReturnCode.NOT_IN_RANGE
        amount = min(creep.store.free_capacity, target.store.energy)
        target.store.energy -= amount
        creep.store.energy += amount
        self._record("withdraw", creep, target, amount=amount)
        return ReturnCode.OK

    def transfer(self, creep: Creep, target: GameObject) -> ReturnCode:
        store = getattr(target, "store", None)
        if not isinstance(target, (Structure, Creep)) or store is None:
            return ReturnCode.INVALID_TARGET
        if creep.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if store.free_capacity <= 0:
            return ReturnCode.FULL
        if not creep.pos.in_range_to(target.pos, _ACTION_RANGE["transfer"]):
            return ReturnCode.NOT_IN_RANGE
        amount = min(creep.store.energy, store.free_capacity)
        creep.store.energy -= amount
        store.energy += amount
        if isinstance(target, Structure) and target.structure_type in (
            StructureType.SPAWN, StructureType.EXTENSION
        ):
            room = self._rooms.get(target.pos.room_name)
            if room is not None:
                room.energy_available += amount
        self._record("transfer", creep, target, amount=amount)
        return ReturnCode.OK

    def pickup(self, creep: Creep, resource: Resource) -> ReturnCode:
        if not isinstance(resource, Resource):
            return ReturnCode.INVALID_TARGET
        if creep.store.free_capacity <= 0:
            return ReturnCode.FULL
        if not creep.pos.in_range_to(resource.pos, _ACTION_RANGE["pickup"]):
            return ReturnCode.NOT_IN_RANGE
        amount = min(creep.store.free_capacity, resource.amount)
        resource.amount -= amount
        creep.store.energy += amount
        self._record("pickup", creep, resource, amount=amount)
        return ReturnCode.OK

    def build(self, creep: Creep, site: ConstructionSite) -> ReturnCode:
        if not isinstance(site, ConstructionSite):
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(BodyPart.WORK):
            return ReturnCode.NO_BODYPART
        if creep.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if not creep.pos.in_range_to(site.pos, _ACTION_RANGE["build"]):
            return ReturnCode.NOT_IN_RANGE
        spent = min(creep.store.energy, creep.active_parts(BodyPart.WORK) * 5)
        creep.store.energy -= spent
        site.progress += spent
        self._record("build", creep, site, amount=spent)
        return ReturnCode.OK

    def repair(self, creep: Creep, structure: Structure) -> ReturnCode:
        if not isinstance(structure, Structure) or structure.hits_max <= 0:
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(BodyPart.WORK):
            return ReturnCode.NO_BODYPART
        if creep.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if not creep.pos.in_range_to(structure.pos, _ACTION_RANGE["repair"]):
            return ReturnCode.NOT_IN_RANGE
        work = creep.active_parts(BodyPart.WORK)
        spent = min(creep.store.energy, work)
        creep.store.energy -= spent
        structure.hits = min(structure.hits_max, structure.hits + spent * 100)
        self._record("repair", creep, structure, amount=spent)
        return ReturnCode.OK

    def upgrade_controller(self, creep: Creep, controller: Structure) -> ReturnCode:
        if not _is_controller(controller):
            return ReturnCode.INVALID_TARGET
        if not controller.my:
            return ReturnCode.NOT_OWNER
        if not creep.has_part(BodyPart.WORK):
            return ReturnCode.NO_BODYPART
        if creep.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if not creep.pos.in_range_to(controller.pos, _ACTION_RANGE["upgrade"]):
            return ReturnCode.NOT_IN_RANGE
        spent = min(creep.store.energy, creep.active_parts(BodyPart.WORK))
        creep.store.energy -= spent
        self._record("upgrade", creep, controller, amount=spent)
        return ReturnCode.OK

    def reserve_controller(self, creep: Creep, controller: Structure) -> ReturnCode:
        if not _is_controller(controller) or controller.owner is not None:
            return ReturnCode.INVALID_TARGET
        reservation = controller.reservation
        if reservation is not None and reservation.username != self._username:
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(BodyPart.CLAIM):
            return ReturnCode.NO_BODYPART
        if not creep.pos.in_range_to(controller.pos, _ACTION_RANGE["reserve"]):
            return ReturnCode.NOT_IN_RANGE
        gained = creep.active_parts(BodyPart.CLAIM)
        if reservation is None:
            controller.reservation = Reservation(self._username, gained)
        else:
            reservation.ticks_to_end += gained
        self._record("reserve", creep, controller)
        return ReturnCode.OK

    def attack(self, creep: Creep, target: GameObject) -> ReturnCode:
        return self._damage(creep, target, BodyPart.ATTACK, 30, "attack")

    def ranged_attack(self, creep: Creep, target: GameObject) -> ReturnCode:
        return self._damage(creep, target, BodyPart.RANGED_ATTACK, 10, "ranged_attack")

    def heal(self, creep: Creep, target: Creep) -> ReturnCode:
        if not isinstance(target, Creep):
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(BodyPart.HEAL):
            return ReturnCode.NO_BODYPART
        if not creep.pos.in_range_to(target.pos, _ACTION_RANGE["heal"]):
            return ReturnCode.NOT_IN_RANGE
        target.hits = min(target.hits_max, target.hits + 12 * creep.active_parts(BodyPart.HEAL))
        self._record("heal", creep, target)
        return ReturnCode.OK

    def spawn_creep(
        self, spawn: Structure, body: Sequence[BodyPart], name: str, memory: dict
    ) -> ReturnCode:
        if spawn.structure_type != StructureType.SPAWN or not spawn.my:
            return ReturnCode.NOT_OWNER
        if spawn.spawning:
            return ReturnCode.BUSY
        if name in self.spawned or any(c.name == name for c in self.my_creeps()):
            return ReturnCode.NAME_EXISTS
        if not body or len(body) > 50 or any(not isinstance(p, BodyPart) for p in body):
            return ReturnCode.INVALID_ARGS
        room = self._rooms.get(spawn.pos.room_name)
        cost = sum(BODYPART_COST[p] for p in body)
        if room is None or cost > room.energy_available:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        room.energy_available -= cost
        spawn.spawning = name
        self.spawned[name] = dict(memory)
        self.intents.append({
            "intent": "spawn",
            "actor": spawn.id,
            "name": name,
            "body": [p.value for p in body],
        })
        return ReturnCode.OK

    def tower_attack(self, tower: Structure, target: GameObject) -> ReturnCode:
        return self._tower_action(tower, target, "tower_attack")

    def tower_heal(self, tower: Structure, target: Creep) -> ReturnCode:
        return self._tower_action(tower, target, "tower_heal")

    def tower_repair(self, tower: Structure, target: Structure) -> ReturnCode:
        return self._tower_action(tower, target, "tower_repair")

    def link_transfer(self, link: Structure, target: Structure) -> ReturnCode:
        if link.store is None or target.store is None:
            return ReturnCode.INVALID_TARGET
        if link.cooldown > 0:
            return ReturnCode.TIRED
        if link.store.energy <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if target.store.free_capacity <= 0:
            return ReturnCode.FULL
        amount = min(link.store.energy, target.store.free_capacity)
        link.store.energy -= amount
        target.store.energy += amount
        link.cooldown = int(link.pos.get_range_to(target.pos))
        self._record("link_transfer", link, target, amount=amount)
        return ReturnCode.OK

    def recycle_creep(self, spawn: Structure, creep: Creep) -> ReturnCode:
        if spawn.structure_type != StructureType.SPAWN:
            return ReturnCode.INVALID_TARGET
        if not spawn.my or not creep.my:
            return ReturnCode.NOT_OWNER
        if not creep.pos.in_range_to(spawn.pos, 1):
            return ReturnCode.NOT_IN_RANGE
        room = self._rooms.get(creep.pos.room_name)
        if room is not None and creep in room.creeps:
            room.creeps.remove(creep)
        self._index.pop(creep.id, None)
        self._record("recycle", spawn, creep)
        return ReturnCode.OK

    def observe_room(self, observer: Structure, room_name: str) -> ReturnCode:
        if observer.structure_type != StructureType.OBSERVER:
            return ReturnCode.INVALID_TARGET
        if not observer.my:
            return ReturnCode.NOT_OWNER
        if not room_name:
            return ReturnCode.INVALID_ARGS
        self.observed.add(room_name)
        self._record("observe", observer, None, room=room_name)
        return ReturnCode.OK

    def activate_safe_mode(self, controller: Structure) -> ReturnCode:
        if not _is_controller(controller):
            return ReturnCode.INVALID_TARGET
        if not controller.my:
            return ReturnCode.NOT_OWNER
        if controller.safe_mode_available <= 0:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if controller.safe_mode_cooldown > 0:
            return ReturnCode.TIRED
        if any(r.controller.safe_mode > 0 for r in self._rooms.values() if r.is_mine):
            return ReturnCode.BUSY
        controller.safe_mode = SAFE_MODE_DURATION
        controller.safe_mode_available -= 1
        self._record("activate_safe_mode", controller, None)
        return ReturnCode.OK

    def create_construction_site(
        self, pos: RoomPosition, structure_type: StructureType
    ) -> ReturnCode:
        room = self._rooms.get(pos.room_name)
        if room is None or room.terrain_at(pos.x, pos.y) == Terrain.WALL:
            return ReturnCode.INVALID_TARGET
        if room.structures_at(pos) or any(s.pos == pos for s in room.construction_sites):
            return ReturnCode.INVALID_TARGET
        site = ConstructionSite(
            id=f"site-{next(self._site_ids)}",
            pos=pos,
            structure_type=structure_type,
        )
        room.construction_sites.append(site)
        self._index[site.id] = site
        self.intents.append({
            "intent": "construction_site",
            "pos": pos.to_dict(),
            "structureType": structure_type.value,
        })
        return ReturnCode.OK

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _damage(self, creep, target, part, power, kind) -> ReturnCode:
        if not hasattr(target, "hits"):
            return ReturnCode.INVALID_TARGET
        if not creep.has_part(part):
            return ReturnCode.NO_BODYPART
        if not creep.pos.in_range_to(target.pos, _ACTION_RANGE[kind]):
            return ReturnCode.NOT_IN_RANGE
        target.hits = max(0, target.hits - power * creep.active_parts(part))
        self._record(kind, creep, target)
        return ReturnCode.OK

    def _tower_action(self, tower: Structure, target, kind: str) -> ReturnCode:
        if tower.structure_type != StructureType.TOWER or tower.store is None:
            return ReturnCode.INVALID_TARGET
        if tower.store.energy < 10:
            return ReturnCode.NOT_ENOUGH_RESOURCES
        if target is None or target.pos.room_name != tower.pos.room_name:
            return ReturnCode.INVALID_TARGET
        tower.store.energy -= 10
        if kind == "tower_attack":
            target.hits = max(0, target.hits - 150)
        elif kind == "tower_heal":
            target.hits = min(target.hits_max, target.hits + 100)
        else:
            target.hits = min(target.hits_max, target.hits + 200)
        self._record(kind, tower, target)
        return ReturnCode.OK

    def _record(self, kind: str, actor, target, **extra) -> None:
        intent = {
            "intent": kind,
            "actor": getattr(actor, "name", None) or actor.id,
            "target": _ref(target),
        }
        intent.update(extra)
        self.intents.append(intent)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, document: dict) -> "SnapshotWorld":
        if not isinstance(document, dict) or "rooms" not in document:
            raise SnapshotError("snapshot document needs a 'rooms' mapping")
        try:
            rooms = [
                _parse_room(name, data) for name, data in document["rooms"].items()
            ]
            cpu = document.get("cpu", {})
            map_data = document.get("map", {})
            return cls(
                rooms=rooms,
                time=int(document.get("time", 1)),
                username=str(document.get("username", "me")),
                map_exits={k: v.get("exits", {}) for k, v in map_data.items()},
                room_statuses={
                    k: v["status"] for k, v in map_data.items() if "status" in v
                },
                cpu_limit=float(cpu.get("limit", 20.0)),
                tick_limit=float(cpu.get("tickLimit", 500.0)),
                cpu_used=float(cpu.get("used", 0.0)),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SnapshotError(f"malformed snapshot: {exc}") from exc

    @classmethod
    def load_file(cls, path: Union[str, Path]) -> "SnapshotWorld":
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))


def _is_controller(obj) -> bool:
    return isinstance(obj, Structure) and obj.structure_type == StructureType.CONTROLLER


def _ref(target) -> Optional[Union[str, dict]]:
    if target is None:
        return None
    if isinstance(target, RoomPosition):
        return target.to_dict()
    return target.id


# ---------------------------------------------------------------------------
# Document parsing
# ---------------------------------------------------------------------------

def _pos(data: dict, room_name: str) -> RoomPosition:
    return RoomPosition(int(data["x"]), int(data["y"]), room_name)


def _store(data: Optional[dict]) -> Optional[Store]:
    if data is None:
        return None
    return Store(energy=int(data.get("energy", 0)), capacity=int(data.get("capacity", 0)))


def _parse_terrain(raw) -> np.ndarray:
    if raw is None:
        return blank_terrain()
    if len(raw) != ROOM_SIZE * ROOM_SIZE:
        raise SnapshotError("terrain string must hold 2500 cells")
    grid = np.array([int(ch) for ch in raw], dtype=np.uint8)
    return grid.reshape((ROOM_SIZE, ROOM_SIZE))


def _parse_structure(data: dict, room_name: str) -> Structure:
    reservation = data.get("reservation")
    return Structure(
        id=str(data["id"]),
        structure_type=StructureType(data["structureType"]),
        pos=_pos(data, room_name),
        hits=int(data.get("hits", 0)),
        hits_max=int(data.get("hitsMax", 0)),
        my=bool(data.get("my", False)),
        owner=data.get("owner"),
        store=_store(data.get("store")),
        cooldown=int(data.get("cooldown", 0)),
        spawning=data.get("spawning"),
        level=int(data.get("level", 0)),
        ticks_to_downgrade=data.get("ticksToDowngrade"),
        reservation=(
            Reservation(reservation["username"], int(reservation["ticksToEnd"]))
            if reservation else None
        ),
        safe_mode=int(data.get("safeMode", 0)),
        safe_mode_available=int(data.get("safeModeAvailable", 0)),
        safe_mode_cooldown=int(data.get("safeModeCooldown", 0)),
    )


def _parse_creep(data: dict, room_name: str) -> Creep:
    return Creep(
        id=str(data["id"]),
        name=str(data["name"]),
        pos=_pos(data, room_name),
        body=[BodyPart(p) for p in data.get("body", [])],
        store=_store(data.get("store")) or Store(),
        my=bool(data.get("my", True)),
        owner=str(data.get("owner", "")),
        hits=int(data.get("hits", 100)),
        hits_max=int(data.get("hitsMax", 100)),
        ticks_to_live=data.get("ticksToLive"),
        fatigue=int(data.get("fatigue", 0)),
        spawning=bool(data.get("spawning", False)),
    )


def _parse_room(name: str, data: dict) -> Room:
    controller_data = data.get("controller")
    controller = None
    if controller_data is not None:
        controller_data = dict(controller_data, structureType="controller")
        controller = _parse_structure(controller_data, name)
    structures = [_parse_structure(s, name) for s in data.get("structures", [])]
    if controller is not None:
        structures.append(controller)
    return Room(
        name=name,
        controller=controller,
        energy_available=int(data.get("energyAvailable", 0)),
        energy_capacity_available=int(data.get("energyCapacityAvailable", 0)),
        terrain=_parse_terrain(data.get("terrain")),
        structures=structures,
        sources=[
            Source(
                id=str(s["id"]),
                pos=_pos(s, name),
                energy=int(s.get("energy", 3000)),
                energy_capacity=int(s.get("energyCapacity", 3000)),
            )
            for s in data.get("sources", [])
        ],
        construction_sites=[
            ConstructionSite(
                id=str(s["id"]),
                pos=_pos(s, name),
                structure_type=StructureType(s["structureType"]),
                my=bool(s.get("my", True)),
                progress=int(s.get("progress", 0)),
                progress_total=int(s.get("progressTotal", 1)),
            )
            for s in data.get("constructionSites", [])
        ],
        dropped_resources=[
            Resource(
                id=str(r["id"]),
                pos=_pos(r, name),
                amount=int(r.get("amount", 0)),
                resource_type=str(r.get("resourceType", "energy")),
            )
            for r in data.get("resources", [])
        ],
        tombstones=[
            Tombstone(id=str(t["id"]), pos=_pos(t, name), store=_store(t.get("store")) or Store())
            for t in data.get("tombstones", [])
        ],
        ruins=[
            Ruin(id=str(r["id"]), pos=_pos(r, name), store=_store(r.get("store")) or Store())
            for r in data.get("ruins", [])
        ],
        creeps=[_parse_creep(c, name) for c in data.get("creeps", [])],
        status=str(data.get("status", "normal")),
        exits={str(k): str(v) for k, v in data.get("exits", {}).items()},
    )
