import random

import pytest

from ColonyBot.memory.store import CREEPS, GLOBAL
from ColonyBot.spawning.body import (
    body_cost,
    body_for,
    carrier_body,
    downscale_harvester,
    harvester_body,
    infantry_body,
    part_ratio,
    worker_body,
)
from ColonyBot.spawning.planner import SpawnPlanner
from ColonyBot.spawning.trends import TRENDS_KEY, TrendTracker
from ColonyBot.world.constants import BodyPart, ReturnCode, Role, StructureType
from ColonyBot.world.objects import ConstructionSite, Source
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import CARRY, MOVE, ROOM, WORK, creep, owned_room, pos, spawn, structure


@pytest.fixture
def planner(world, store, config, rng):
    return SpawnPlanner(world, world, store, config, rng)


def _hauling_rising(store, now):
    store.set(GLOBAL, TRENDS_KEY, {"hauling": [[now - 100, 500], [now - 1, 2000]]})


# ── Bodies ────────────────────────────────────────────────────────────────────

def test_carrier_body_keeps_a_third_move():
    body = carrier_body(300)
    assert body == [CARRY, MOVE, CARRY, MOVE, CARRY, CARRY]
    assert body_cost(body) == 300


def test_ratio_bodies_respect_budget_and_part_limit():
    for energy in (200, 550, 1300, 12900):
        body = worker_body(energy)
        assert body_cost(body) <= energy
        assert len(body) <= 50
        assert part_ratio(body, MOVE) >= 0.3


def test_body_too_expensive_for_its_seed_is_none():
    assert worker_body(100) is None
    assert body_for(Role.EXPLORER, 49) is None
    assert body_for(Role.HARVESTER, 5000) is None


def test_harvester_drains_a_full_source():
    body = harvester_body(Source("src", pos(1, 1)))
    assert body.count(WORK) == 5
    assert body.count(CARRY) == 1
    assert body.count(MOVE) == 3


def test_harvester_downscale_drops_move_then_work():
    body = [CARRY, WORK, WORK, MOVE, MOVE]
    body = downscale_harvester(body)
    assert body.count(MOVE) == 1
    body = downscale_harvester(body)
    assert body.count(WORK) == 1
    assert downscale_harvester(body) is None


def test_infantry_body_is_trimmed_until_affordable():
    bodies = [infantry_body(1000, random.Random(seed)) for seed in range(10)]
    assert any(body is not None for body in bodies)
    for body in filter(None, bodies):
        assert body_cost(body) <= 1000
        assert MOVE in body
        assert BodyPart.ATTACK in body or BodyPart.RANGED_ATTACK in body


# ── Trends ────────────────────────────────────────────────────────────────────

def test_trend_compares_against_one_window_ago(store):
    trends = TrendTracker(store, window=100)
    trends.record("hauling", 500, 100)
    trends.record("hauling", 2000, 199)
    assert trends.rising("hauling", 200)
    assert trends.rising_above("hauling", 200, 1000)
    assert not trends.rising_above("hauling", 200, 5000)


def test_trend_prunes_samples_older_than_the_window(store):
    trends = TrendTracker(store, window=10)
    for tick in range(0, 40, 5):
        trends.record("threat", tick, tick)
    ticks = [t for t, _ in trends.samples("threat")]
    assert ticks[0] == 25
    assert ticks[-1] == 35


def test_trend_without_history_is_flat(store):
    assert not TrendTracker(store).rising("hauling", 50)


# ── Planner ───────────────────────────────────────────────────────────────────

def test_rising_hauling_demand_spawns_a_carrier(world, store, planner):
    _hauling_rising(store, world.time)

    commands = planner.plan_spawns()

    assert len(commands) == 1
    command = commands[0]
    assert command.role == Role.CARRIER
    assert command.outcome == ReturnCode.OK
    assert command.name == "C"
    assert store.get(CREEPS, "C")["role"] == "carrier"
    assert world.spawned["C"]["homeRoom"] == ROOM


def test_unmanned_source_comes_before_carriers(world, room, store, planner):
    room.sources.append(Source("src", pos(40, 40)))
    world.reindex()
    _hauling_rising(store, world.time)

    commands = planner.plan_spawns()

    assert [c.role for c in commands] == [Role.HARVESTER]
    body = commands[0].body
    assert body_cost(body) <= 300
    assert body.count(WORK) >= 1 and body.count(MOVE) >= 1
    memory = store.get(CREEPS, commands[0].name)
    assert memory["sourceId"] == "src"
    assert memory["action"] == "move"
    assert "destinationSetTime" not in memory


def test_harvester_with_long_life_covers_its_source(world, room, store, planner):
    room.sources.append(Source("src", pos(40, 40)))
    room.creeps.append(creep("H", 39, 39, body=[WORK, CARRY, MOVE], ticks_to_live=1000))
    world.reindex()
    store.set(CREEPS, "H", {"role": "harvester", "sourceId": "src"})

    assert planner.source_to_harvest() is None

    room.creeps[0].ticks_to_live = 10
    assert planner.source_to_harvest().id == "src"


def test_busy_spawn_blocks_everything(world, room, store, planner):
    room.structures[1].spawning = "X"
    _hauling_rising(store, world.time)

    assert planner.plan_spawns() == []


def test_unaffordable_need_blocks_lower_needs(world, room, store, planner):
    room.energy_available = 40
    _hauling_rising(store, world.time)

    assert planner.plan_spawns() == []
    assert world.intents == []


def test_explorer_is_wanted_without_observer(world, planner):
    request = planner.need_explorer()
    assert request.role == Role.EXPLORER


def test_worker_is_wanted_for_construction(world, room, planner):
    room.construction_sites.append(ConstructionSite("site-1", pos(30, 30), StructureType.EXTENSION))
    world.reindex()

    request = planner.need_worker()

    assert request.role == Role.WORKER
    assert request.memory["homeRoom"] == ROOM


def test_old_units_do_not_count(world, room, store, planner):
    room.creeps.append(creep("W", 10, 10, ticks_to_live=100))
    room.creeps.append(creep("WA", 11, 10, ticks_to_live=1000))
    world.reindex()
    assert planner.count_role(Role.WORKER) == 1
    assert planner.count_role(Role.WORKER, min_ticks_to_live=0) == 2


def test_names_start_with_the_role_initial_and_are_unique(world, room, store, planner):
    store.set(CREEPS, "W", {})
    room.creeps.append(creep("WA", 10, 10))
    world.reindex()

    name = planner.name_for(Role.WORKER, {"WB"})

    assert name.startswith("W")
    assert name not in {"W", "WA", "WB"}


def test_select_spawn_prefers_the_closest(store, config, rng):
    near_room = owned_room("W1N1")
    far_room = owned_room("W3N1")
    world = SnapshotWorld([near_room, far_room])
    planner = SpawnPlanner(world, world, store, config, rng)

    chosen = planner.select_spawn(200, pos(40, 10, "W2N1"))

    assert chosen.id == "spawn-W1N1"


def test_select_spawn_skips_poor_and_unsafe_rooms(store, config, rng):
    near_room = owned_room("W1N1", energy=100)
    far_room = owned_room("W3N1")
    world = SnapshotWorld([near_room, far_room])
    planner = SpawnPlanner(world, world, store, config, rng)

    assert planner.select_spawn(200, pos(10, 10, "W2N1")).id == "spawn-W3N1"

    store.section("rooms", "W3N1")["safeForCreeps"] = False
    assert planner.select_spawn(200, pos(10, 10, "W2N1")) is None
    assert planner.select_spawn(200, pos(10, 10, "W3N1")).id == "spawn-W3N1"


def test_select_spawn_respects_max_range(store, config, rng):
    world = SnapshotWorld([owned_room("W1N1")])
    planner = SpawnPlanner(world, world, store, config, rng)
    assert planner.select_spawn(100, pos(10, 10, "W9N1")) is None


def test_transferer_wanted_for_storage_with_a_link(world, room, planner):
    room.controller.level = 5
    room.structures.append(structure("store", StructureType.STORAGE, 30, 30, energy=0, capacity=1_000_000))
    room.structures.append(structure("link", StructureType.LINK, 31, 31, energy=0, capacity=800))
    world.reindex()

    request = planner.need_transferer()

    assert request.memory["upstreamId"] == "link"
    assert request.memory["downstreamId"] == "store"


def test_two_spawns_take_two_needs(store, config, rng):
    room = owned_room(energy=900, capacity=900)
    room.structures.append(spawn("spawn-2", 30, 30))
    room.sources.append(Source("src", pos(40, 40)))
    world = SnapshotWorld([room], time=300)
    _hauling_rising(store, world.time)
    planner = SpawnPlanner(world, world, store, config, rng)

    commands = planner.plan_spawns()

    assert [c.role for c in commands] == [Role.HARVESTER, Role.CARRIER]
    assert len({c.spawn_id for c in commands}) == 2
    assert len({c.name for c in commands}) == 2
