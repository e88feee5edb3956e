"""
Traffic Map — per-room heat grid of where our units walk.

The grid decays every tick and gains heat under each of our units. Tiles
that stay hot become road candidates for the construction planner. Nothing
in-process survives a tick, so the grid is stored sparsely in room memory
as ``[x, y, heat]`` triples and rebuilt as a 50x50 numpy array on load.
"""

from __future__ import annotations

from typing import Iterable, List

import numpy as np

from ColonyBot.config import RoomConfig
from ColonyBot.world.constants import ROOM_SIZE, Terrain
from ColonyBot.world.objects import Creep, Room, RoomPosition


MAX_HEAT = 10.0
MIN_STORED_HEAT = 0.05     # cooler cells are dropped from memory


class TrafficMap:
    """
    Heat grid for one room.
    Call update() once per tick during room maintenance.
    """

    def __init__(self, room_name: str, config: RoomConfig | None = None):
        self.room_name = room_name
        self.cfg = config or RoomConfig()
        # Indexed [y, x] like room terrain
        self.heat = np.zeros((ROOM_SIZE, ROOM_SIZE), dtype=np.float32)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, room_name: str, stored, config: RoomConfig | None = None) -> "TrafficMap":
        traffic = cls(room_name, config)
        if not isinstance(stored, list):
            return traffic
        for cell in stored:
            try:
                x, y, value = int(cell[0]), int(cell[1]), float(cell[2])
            except (TypeError, ValueError, IndexError):
                continue
            if 0 <= x < ROOM_SIZE and 0 <= y < ROOM_SIZE:
                traffic.heat[y, x] = min(MAX_HEAT, max(0.0, value))
        return traffic

    def dump(self) -> List[list]:
        ys, xs = np.nonzero(self.heat >= MIN_STORED_HEAT)
        return [
            [int(x), int(y), round(float(self.heat[y, x]), 3)]
            for y, x in zip(ys, xs)
        ]

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def update(self, creeps: Iterable[Creep]) -> None:
        """Decay the whole grid, then deposit heat under each of our units."""
        self.heat *= self.cfg.traffic_decay
        for creep in creeps:
            if not creep.my or creep.spawning or creep.pos.room_name != self.room_name:
                continue
            self.heat[creep.pos.y, creep.pos.x] = min(
                MAX_HEAT, self.heat[creep.pos.y, creep.pos.x] + 1.0
            )

    def sample(self, pos: RoomPosition) -> float:
        if pos.room_name != self.room_name:
            return 0.0
        return float(self.heat[pos.y, pos.x])

    def road_candidates(self, room: Room) -> List[RoomPosition]:
        """Hot, walkable, unbuilt tiles off the room edge, hottest first."""
        hot = self.heat >= self.cfg.road_traffic_threshold
        hot[0, :] = hot[-1, :] = hot[:, 0] = hot[:, -1] = False
        for structure in room.structures:
            hot[structure.pos.y, structure.pos.x] = False
        for site in room.construction_sites:
            hot[site.pos.y, site.pos.x] = False
        hot &= room.terrain != int(Terrain.WALL)

        ys, xs = np.nonzero(hot)
        order = np.argsort(-self.heat[ys, xs], kind="stable")
        return [RoomPosition(int(xs[i]), int(ys[i]), self.room_name) for i in order]
