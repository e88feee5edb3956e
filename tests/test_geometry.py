import random

import numpy as np
from numpy.testing import assert_allclose

from ColonyBot.config import RoomConfig
from ColonyBot.geometry.positions import (
    closest_exit,
    global_range,
    pos_between,
    positions_around,
    positions_around_with_terrain_space,
)
from ColonyBot.geometry.site_scoring import (
    SITE_MARGIN,
    best_construction_sites,
    harvest_spots,
    upgrade_spots,
)
from ColonyBot.geometry.traffic_map import MAX_HEAT, TrafficMap
from ColonyBot.world.constants import Terrain
from ColonyBot.world.objects import Room, Source

from tests.helpers import ROOM, creep, owned_room, pos


def test_positions_around_clips_to_the_room():
    corner = positions_around(pos(0, 0), 1, 1)
    assert sorted((p.x, p.y) for p in corner) == [(0, 1), (1, 0), (1, 1)]


def test_global_range_spans_rooms():
    assert global_range(pos(10, 10, "W1N1"), pos(10, 10, "W2N1")) == 50
    assert global_range(pos(10, 10, "W0N0"), pos(10, 10, "E0N0")) == 50
    assert global_range(pos(1, 1, "sim"), pos(1, 1, "W1N1")) == float("inf")


def test_terrain_space_skips_walls_and_prefers_plains():
    room = Room(name=ROOM)
    room.terrain[10, 11] = Terrain.WALL
    room.terrain[10, 9] = Terrain.SWAMP

    found = positions_around_with_terrain_space(room, pos(10, 10), 1, 1)

    assert pos(11, 10) not in found
    assert len(found) == 7
    assert found[-1] == pos(9, 10)


def test_pos_between_is_adjacent_to_both():
    room = Room(name=ROOM)
    between = pos_between(room, pos(10, 10), pos(12, 10), random.Random(1))
    assert between is not None
    assert between.is_near_to(pos(10, 10)) and between.is_near_to(pos(12, 10))


def test_pos_between_needs_a_common_neighbour():
    room = Room(name=ROOM)
    assert pos_between(room, pos(10, 10), pos(20, 10)) is None


def test_closest_exit_is_on_the_edge():
    room = Room(name=ROOM)
    found = closest_exit(room, pos(2, 25))
    assert found.x == 0
    assert found.get_range_to(pos(2, 25)) == 2


# ── Site scoring ──────────────────────────────────────────────────────────────

def test_construction_sites_keep_away_from_controller_and_edges():
    room = owned_room()
    sites = best_construction_sites(room)
    assert sites
    controller = room.controller.pos
    for score, site in sites:
        assert score >= 0
        assert (site.x + site.y) % 2 == 0
        assert SITE_MARGIN <= site.x <= 49 - SITE_MARGIN
        assert site.get_range_to(controller) > 2
        assert not room.structures_at(site)


def test_construction_sites_are_best_first():
    room = owned_room()
    scores = [score for score, _ in best_construction_sites(room, limit=20)]
    assert scores == sorted(scores, reverse=True)
    assert len(scores) == 20


def test_upgrade_spots_are_in_range_but_not_adjacent():
    room = owned_room()
    spots = upgrade_spots(room, 3)
    assert spots
    for spot in spots:
        assert 2 <= spot.get_range_to(room.controller.pos) <= 3


def test_harvest_spots_ring_the_source():
    room = owned_room()
    room.sources.append(Source("src", pos(30, 30)))
    room.terrain[31, 30] = Terrain.WALL
    spots = harvest_spots(room)["src"]
    assert len(spots) == 7
    assert pos(30, 31) not in spots


# ── Traffic map ───────────────────────────────────────────────────────────────

def test_traffic_heat_accumulates_and_decays():
    traffic = TrafficMap(ROOM, RoomConfig(traffic_decay=0.5))
    walker = creep("W", 10, 10)
    traffic.update([walker])
    traffic.update([walker])
    assert_allclose(traffic.sample(pos(10, 10)), 1.5)
    traffic.update([])
    assert_allclose(traffic.sample(pos(10, 10)), 0.75)


def test_traffic_heat_is_capped():
    traffic = TrafficMap(ROOM, RoomConfig(traffic_decay=1.0))
    walker = creep("W", 10, 10)
    for _ in range(20):
        traffic.update([walker])
    assert traffic.sample(pos(10, 10)) == MAX_HEAT


def test_traffic_ignores_hostiles_and_other_rooms():
    traffic = TrafficMap(ROOM)
    traffic.update([creep("H", 5, 5, my=False), creep("W", 5, 5, room="W2N1")])
    assert not np.any(traffic.heat)


def test_traffic_dump_and_load_agree():
    traffic = TrafficMap(ROOM)
    traffic.heat[7, 3] = 4.25
    restored = TrafficMap.load(ROOM, traffic.dump())
    assert_allclose(restored.heat, traffic.heat, atol=1e-3)


def test_road_candidates_are_hot_free_tiles():
    room = owned_room()
    traffic = TrafficMap(ROOM)
    traffic.heat[12, 12] = 5.0
    traffic.heat[13, 13] = 8.0
    traffic.heat[14, 14] = 1.0
    traffic.heat[20, 20] = 9.0   # under the spawn

    assert traffic.road_candidates(room) == [pos(13, 13), pos(12, 12)]
