"""
Position enumeration around a point, plus inter-room coordinates.

Everything here is a pure function of the room it is given. Callers that
want a random order pass their own ``random.Random`` so a tick stays
reproducible under a fixed seed.
"""

from __future__ import annotations

import math
import random
import re
from typing import Iterable, List, Optional, Tuple

from ColonyBot.world.constants import ROOM_SIZE, Terrain
from ColonyBot.world.objects import Room, RoomPosition


_ROOM_NAME = re.compile(r"^([WE])(\d+)([NS])(\d+)$")


# ---------------------------------------------------------------------------
# Inter-room coordinates
# ---------------------------------------------------------------------------

def global_coords(pos: RoomPosition) -> Optional[Tuple[int, int]]:
    """
    Map a room position onto one world-wide grid.

    E0 starts at x=0 and W0 ends at x=-1; likewise S0 / N0 on y. Returns
    None for a room name that does not follow the W/E N/S pattern.
    """
    match = _ROOM_NAME.match(pos.room_name)
    if match is None:
        return None
    we, wx, ns, ny = match.groups()
    room_x = int(wx) * ROOM_SIZE if we == "E" else (int(wx) + 1) * -ROOM_SIZE
    room_y = int(ny) * ROOM_SIZE if ns == "S" else (int(ny) + 1) * -ROOM_SIZE
    return room_x + pos.x, room_y + pos.y


def global_range(a: RoomPosition, b: RoomPosition) -> float:
    """Chebyshev range across rooms; infinite when either name is unparsable."""
    if a.room_name == b.room_name:
        return a.get_range_to(b)
    ga, gb = global_coords(a), global_coords(b)
    if ga is None or gb is None:
        return math.inf
    return max(abs(ga[0] - gb[0]), abs(ga[1] - gb[1]))


def closest_by_range(origin: RoomPosition, objects: Iterable):
    """Object with the smallest global range to origin, or None."""
    best, best_range = None, math.inf
    for obj in objects:
        r = global_range(origin, obj.pos)
        if r < best_range:
            best, best_range = obj, r
    return best


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------

def positions_around(
    origin: RoomPosition, range_min: int = 1, range_max: int = 1
) -> List[RoomPosition]:
    """Every in-bounds tile whose range to origin is within [range_min, range_max]."""
    found = []
    for x in range(max(0, origin.x - range_max), min(ROOM_SIZE - 1, origin.x + range_max) + 1):
        for y in range(max(0, origin.y - range_max), min(ROOM_SIZE - 1, origin.y + range_max) + 1):
            if max(abs(x - origin.x), abs(y - origin.y)) >= range_min:
                found.append(RoomPosition(x, y, origin.room_name))
    return found


def accessible_positions_around(
    room: Room,
    origin: RoomPosition,
    range_min: int = 1,
    range_max: int = 1,
    rng: Optional[random.Random] = None,
) -> List[RoomPosition]:
    """Walkable tiles around origin (no wall, no obstacle structure), shuffled."""
    found = [p for p in positions_around(origin, range_min, range_max) if room.is_walkable(p)]
    (rng or random).shuffle(found)
    return found


def surrounding_plains(
    room: Room,
    pos: RoomPosition,
    range_min: int = 1,
    range_max: int = 1,
    allow_swamp: bool = False,
) -> List[RoomPosition]:
    allowed = {Terrain.PLAIN, Terrain.SWAMP} if allow_swamp else {Terrain.PLAIN}
    return [
        p for p in positions_around(pos, range_min, range_max)
        if room.terrain_at(p.x, p.y) in allowed
    ]


def positions_around_with_terrain_space(
    room: Room,
    origin: RoomPosition,
    range_min: int,
    range_max: int,
    space_min: int = 1,
    space_max: int = 1,
) -> List[RoomPosition]:
    """
    Non-wall tiles around origin, roomiest first.

    A tile's room is counted over its own neighbourhood: each plain scores
    10, each swamp 1, and a plain tile gets another 100 so that standing on
    swamp is avoided whenever a plain is available.
    """
    scored = []
    for pos in positions_around(origin, range_min, range_max):
        own = room.terrain_at(pos.x, pos.y)
        if own == Terrain.WALL:
            continue
        plains = swamps = 0
        for near in positions_around(pos, space_min, space_max):
            terrain = room.terrain_at(near.x, near.y)
            if terrain == Terrain.PLAIN:
                plains += 1
            elif terrain == Terrain.SWAMP:
                swamps += 1
        score = swamps + plains * 10 + (100 if own == Terrain.PLAIN else 0)
        scored.append((score, pos))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [pos for _, pos in scored]


def pos_between(
    room: Room,
    pos1: RoomPosition,
    pos2: RoomPosition,
    rng: Optional[random.Random] = None,
) -> Optional[RoomPosition]:
    """
    A tile next to pos1 that is also next to pos2, cheapest terrain first.

    Ties between equally cheap tiles are broken randomly.
    """
    rng = rng or random
    candidates = [
        p for p in surrounding_plains(room, pos1, 1, 1, allow_swamp=True)
        if p.is_near_to(pos2) and room.is_walkable(p)
    ]
    if not candidates:
        return None

    def cost(p: RoomPosition) -> float:
        terrain_cost = 5 if room.terrain_at(p.x, p.y) == Terrain.SWAMP else 1
        return terrain_cost + rng.random()

    return min(candidates, key=cost)


def exit_positions(room: Room) -> List[RoomPosition]:
    """Non-wall edge tiles of the room."""
    last = ROOM_SIZE - 1
    edge = set()
    for i in range(ROOM_SIZE):
        edge.update({(i, 0), (i, last), (0, i), (last, i)})
    return [
        RoomPosition(x, y, room.name)
        for x, y in sorted(edge)
        if room.terrain_at(x, y) != Terrain.WALL
    ]


def closest_exit(room: Room, pos: RoomPosition) -> Optional[RoomPosition]:
    exits = exit_positions(room)
    if not exits:
        return None
    return min(exits, key=pos.get_range_to)
