"""
Site Scoring — construction suitability and work spots as 50x50 masks.

Grids are indexed [y, x] like room terrain. Keep-out zones and rings are
binary dilations of single-tile masks with a square structuring element,
which is exactly a Chebyshev range on the room grid.

Construction candidates follow a checkered pattern (x + y even) inside
4..45 so that every built tile keeps at least one walkable neighbour, and
stay 2 tiles clear of storage, controller, links and sources. Score:

    10 if a road is within range 1 else 5
    + walkable plain tiles within range 1 (the tile itself included)
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

import numpy as np
from scipy.ndimage import binary_dilation, convolve

from ColonyBot.world.constants import ROOM_SIZE, StructureType, Terrain
from ColonyBot.world.objects import Room, RoomPosition


SITE_MARGIN = 4
KEEP_OUT_RANGE = 2
KEEP_OUT_TYPES = (StructureType.STORAGE, StructureType.CONTROLLER, StructureType.LINK)


def _square(radius: int) -> np.ndarray:
    """Square structuring element: Chebyshev disk of the given radius."""
    return np.ones((2 * radius + 1, 2 * radius + 1), dtype=bool)


def point_mask(positions: Iterable[RoomPosition]) -> np.ndarray:
    mask = np.zeros((ROOM_SIZE, ROOM_SIZE), dtype=bool)
    for pos in positions:
        mask[pos.y, pos.x] = True
    return mask


def range_mask(positions: Iterable[RoomPosition], radius: int) -> np.ndarray:
    """Every tile within Chebyshev range `radius` of any of positions."""
    mask = point_mask(positions)
    if radius <= 0 or not mask.any():
        return mask
    return binary_dilation(mask, structure=_square(radius))


def ring_mask(center: RoomPosition, inner: int, outer: int) -> np.ndarray:
    """Tiles whose range to center lies in [inner, outer]."""
    outer_zone = range_mask([center], outer)
    if inner <= 0:
        return outer_zone
    return outer_zone & ~range_mask([center], inner - 1)


def walkable_mask(room: Room) -> np.ndarray:
    mask = room.terrain != int(Terrain.WALL)
    for structure in room.structures:
        if structure.is_obstacle:
            mask[structure.pos.y, structure.pos.x] = False
    return mask


def _mask_to_positions(mask: np.ndarray, room_name: str) -> List[RoomPosition]:
    ys, xs = np.nonzero(mask)
    return [RoomPosition(int(x), int(y), room_name) for y, x in zip(ys, xs)]


# ---------------------------------------------------------------------------
# Construction sites
# ---------------------------------------------------------------------------

def suitable_site_mask(room: Room) -> np.ndarray:
    yy, xx = np.mgrid[0:ROOM_SIZE, 0:ROOM_SIZE]
    mask = ((xx + yy) % 2 == 0)
    mask &= (xx >= SITE_MARGIN) & (xx <= ROOM_SIZE - 1 - SITE_MARGIN)
    mask &= (yy >= SITE_MARGIN) & (yy <= ROOM_SIZE - 1 - SITE_MARGIN)
    mask &= room.terrain != int(Terrain.WALL)

    occupied = [s.pos for s in room.structures] + [s.pos for s in room.construction_sites]
    mask &= ~point_mask(occupied)

    keep_out = [s.pos for s in room.structures if s.structure_type in KEEP_OUT_TYPES]
    keep_out += [s.pos for s in room.sources]
    mask &= ~range_mask(keep_out, KEEP_OUT_RANGE)
    return mask


def site_scores(room: Room) -> np.ndarray:
    """Score grid; unsuitable tiles hold -1."""
    near_road = range_mask((s.pos for s in room.structures_of(StructureType.ROAD)), 1)

    open_plain = (room.terrain == int(Terrain.PLAIN)) & walkable_mask(room)
    plains_near = convolve(open_plain.astype(np.int32), np.ones((3, 3), dtype=np.int32),
                           mode="constant", cval=0)

    scores = np.where(near_road, 10, 5) + plains_near
    return np.where(suitable_site_mask(room), scores, -1)


def best_construction_sites(room: Room, limit: int | None = None) -> List[Tuple[int, RoomPosition]]:
    """(score, position) for every suitable tile, best first."""
    scores = site_scores(room)
    ys, xs = np.nonzero(scores >= 0)
    order = np.argsort(-scores[ys, xs], kind="stable")
    if limit is not None:
        order = order[:limit]
    return [
        (int(scores[ys[i], xs[i]]), RoomPosition(int(xs[i]), int(ys[i]), room.name))
        for i in order
    ]


# ---------------------------------------------------------------------------
# Work spots
# ---------------------------------------------------------------------------

def upgrade_spots(room: Room, work_range: int = 3) -> List[RoomPosition]:
    """
    Walkable non-edge tiles in range of the controller but not next to it,
    closest to storage first when the room has one.
    """
    if room.controller is None:
        return []
    mask = ring_mask(room.controller.pos, 2, work_range) & walkable_mask(room)
    mask[0, :] = mask[-1, :] = mask[:, 0] = mask[:, -1] = False
    spots = _mask_to_positions(mask, room.name)
    anchor = room.storage.pos if room.storage is not None else room.controller.pos
    spots.sort(key=lambda p: (p.get_range_to(anchor), p.y, p.x))
    return spots


def harvest_spots(room: Room) -> dict:
    """Walkable tiles adjacent to each source, keyed by source id."""
    walkable = walkable_mask(room)
    return {
        source.id: _mask_to_positions(ring_mask(source.pos, 1, 1) & walkable, room.name)
        for source in room.sources
    }
