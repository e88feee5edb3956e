"""Small builders for hand-made rooms; the fixtures in conftest.py use them."""

from __future__ import annotations

from typing import List, Optional

from ColonyBot.world.constants import CARRY_CAPACITY, BodyPart, StructureType
from ColonyBot.world.objects import Creep, Room, RoomPosition, Store, Structure

ROOM = "W1N1"

MOVE, WORK, CARRY = BodyPart.MOVE, BodyPart.WORK, BodyPart.CARRY


def pos(x: int, y: int, room: str = ROOM) -> RoomPosition:
    return RoomPosition(x, y, room)


def controller(room: str = ROOM, level: int = 3, my: bool = True, **kwargs) -> Structure:
    owner = kwargs.pop("owner", "me" if my else None)
    return Structure(
        id=f"ctrl-{room}",
        structure_type=StructureType.CONTROLLER,
        pos=pos(25, 5, room),
        my=my,
        owner=owner,
        level=level,
        ticks_to_downgrade=kwargs.pop("ticks_to_downgrade", 20000),
        **kwargs,
    )


def structure(
    id: str,
    structure_type: StructureType,
    x: int,
    y: int,
    energy: Optional[int] = None,
    capacity: Optional[int] = None,
    room: str = ROOM,
    my: bool = True,
    hits: int = 1000,
    hits_max: int = 1000,
    **kwargs,
) -> Structure:
    store = Store(energy or 0, capacity) if capacity is not None else None
    owner = kwargs.pop("owner", "me" if my else None)
    return Structure(
        id=id,
        structure_type=structure_type,
        pos=pos(x, y, room),
        hits=hits,
        hits_max=hits_max,
        my=my,
        owner=owner,
        store=store,
        **kwargs,
    )


def spawn(id: str = "spawn-1", x: int = 20, y: int = 20, room: str = ROOM, **kwargs) -> Structure:
    return structure(id, StructureType.SPAWN, x, y, energy=300, capacity=300, room=room, **kwargs)


def creep(
    name: str,
    x: int,
    y: int,
    body: Optional[List[BodyPart]] = None,
    energy: int = 0,
    room: str = ROOM,
    my: bool = True,
    **kwargs,
) -> Creep:
    body = list(body) if body is not None else [WORK, CARRY, MOVE]
    capacity = body.count(CARRY) * CARRY_CAPACITY
    return Creep(
        id=f"id-{name}",
        name=name,
        pos=pos(x, y, room),
        body=body,
        store=Store(energy, capacity),
        my=my,
        owner="me" if my else "enemy",
        **kwargs,
    )


def owned_room(
    name: str = ROOM,
    level: int = 3,
    energy: int = 300,
    capacity: int = 300,
    with_spawn: bool = True,
) -> Room:
    """A room we own; the controller is listed among its structures."""
    ctrl = controller(name, level)
    room = Room(
        name=name,
        controller=ctrl,
        energy_available=energy,
        energy_capacity_available=capacity,
        structures=[ctrl],
    )
    if with_spawn:
        room.structures.append(spawn(f"spawn-{name}", room=name))
    return room
