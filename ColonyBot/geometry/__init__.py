"""
ColonyBot.geometry — pure geometry over rooms.

Public API
----------
    from ColonyBot.geometry import positions_around, TrafficMap, best_construction_sites
"""

from ColonyBot.geometry.positions import (
    accessible_positions_around,
    closest_by_range,
    closest_exit,
    exit_positions,
    global_coords,
    global_range,
    pos_between,
    positions_around,
    positions_around_with_terrain_space,
    surrounding_plains,
)
from ColonyBot.geometry.site_scoring import (
    best_construction_sites,
    harvest_spots,
    site_scores,
    upgrade_spots,
)
from ColonyBot.geometry.traffic_map import TrafficMap

__all__ = [
    "TrafficMap",
    "accessible_positions_around",
    "best_construction_sites",
    "closest_by_range",
    "closest_exit",
    "exit_positions",
    "global_coords",
    "global_range",
    "harvest_spots",
    "pos_between",
    "positions_around",
    "positions_around_with_terrain_space",
    "site_scores",
    "surrounding_plains",
    "upgrade_spots",
]
