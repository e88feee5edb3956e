import pytest

from ColonyBot.construction.construction_planner import (
    MAX_SITES,
    TRAFFIC_KEY,
    ConstructionOrder,
    ConstructionPlanner,
    ConstructionQueue,
    OrderStatus,
    load_traffic,
    need_structure,
)
from ColonyBot.memory.store import ROOMS
from ColonyBot.world.constants import ReturnCode, StructureType
from ColonyBot.world.objects import ConstructionSite, Reservation, Room, Source
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import ROOM, controller, owned_room, pos, structure


@pytest.fixture
def planner(world, store, config):
    return ConstructionPlanner(world, world, store, config)


def _sites(room_name, count):
    return [
        ConstructionSite(f"site-{room_name}-{i}", pos(i % 48 + 1, i // 48 + 1, room_name), StructureType.ROAD)
        for i in range(count)
    ]


# ── What is needed ────────────────────────────────────────────────────────────

def test_need_structure_follows_the_controller_level(room):
    assert need_structure(room, StructureType.EXTENSION)
    assert need_structure(room, StructureType.TOWER)
    assert not need_structure(room, StructureType.SPAWN)
    assert not need_structure(room, StructureType.STORAGE)
    assert not need_structure(room, StructureType.ROAD)


def test_sites_count_towards_the_allowance(room):
    room.construction_sites.append(ConstructionSite("t", pos(30, 30), StructureType.TOWER))
    assert not need_structure(room, StructureType.TOWER)


def test_nothing_is_needed_in_foreign_rooms():
    taken = Room("W2N1", controller=controller("W2N1", level=8, my=False, owner="enemy"))
    assert not need_structure(taken, StructureType.EXTENSION)


# ── Queue ─────────────────────────────────────────────────────────────────────

def test_queue_keeps_one_pending_order_per_tile():
    queue = ConstructionQueue()
    assert queue.enqueue(ConstructionOrder(StructureType.EXTENSION, pos(10, 10), priority=5))
    assert not queue.enqueue(ConstructionOrder(StructureType.TOWER, pos(10, 10), priority=1))
    assert queue.enqueue(ConstructionOrder(StructureType.TOWER, pos(12, 12), priority=1))

    assert [o.structure_type for o in queue.pending()] == [StructureType.TOWER, StructureType.EXTENSION]


# ── Placement ─────────────────────────────────────────────────────────────────

def test_one_site_per_room_per_tick_highest_priority_first(world, room, planner):
    placed = planner.run(room)

    assert len(placed) == 1
    assert placed[0].structure_type == StructureType.TOWER
    assert placed[0].status == OrderStatus.PLACED
    assert [s.structure_type for s in room.construction_sites] == [StructureType.TOWER]


def test_rejected_order_falls_through_to_the_next(world, room, planner):
    on_spawn = ConstructionOrder(StructureType.TOWER, pos(20, 20), priority=1)
    free = ConstructionOrder(StructureType.EXTENSION, pos(30, 30), priority=5)
    queue = ConstructionQueue()
    queue.enqueue(on_spawn)
    queue.enqueue(free)

    assert planner.place(queue, 1) == [free]
    assert on_spawn.status == OrderStatus.FAILED
    assert on_spawn.outcome == ReturnCode.INVALID_TARGET


def test_no_sites_once_the_colony_holds_the_maximum(world, room, planner):
    room.construction_sites.extend(_sites(ROOM, MAX_SITES))
    assert not planner.has_site_budget(room)
    assert planner.run(room) == []


def test_a_room_holding_its_share_gets_no_more(store, config):
    busy, quiet = owned_room("W1N1"), owned_room("W2N1")
    world = SnapshotWorld([busy, quiet])
    planner = ConstructionPlanner(world, world, store, config)

    busy.construction_sites.extend(_sites("W1N1", MAX_SITES // 2))

    assert not planner.has_site_budget(busy)
    assert planner.has_site_budget(quiet)

    busy.construction_sites.pop()
    assert planner.has_site_budget(busy)


# ── Containers and roads ──────────────────────────────────────────────────────

def test_container_is_queued_beside_each_bare_source(store, config):
    room = owned_room(level=1)
    room.sources.append(Source("src", pos(40, 40)))
    world = SnapshotWorld([room])
    planner = ConstructionPlanner(world, world, store, config)

    orders = planner.plan_room(room).pending()

    assert [o.structure_type for o in orders] == [StructureType.CONTAINER]
    assert orders[0].pos.is_near_to(pos(40, 40))

    room.structures.append(structure("box", StructureType.CONTAINER, 41, 41, energy=0, capacity=2000))
    assert planner.plan_room(room).pending() == []


def test_reserved_rooms_get_source_containers_but_no_roads(store, config):
    home = owned_room()
    remote = Room("W2N1", controller=controller("W2N1", level=0, my=False))
    remote.controller.reservation = Reservation("me", 4000)
    remote.sources.append(Source("far-src", pos(10, 10, "W2N1")))
    world = SnapshotWorld([home, remote])
    store.section(ROOMS, "W2N1")[TRAFFIC_KEY] = [[30, 30, 9.0]]
    planner = ConstructionPlanner(world, world, store, config)

    orders = planner.plan_room(remote).pending()

    assert [o.structure_type for o in orders] == [StructureType.CONTAINER]


def test_roads_follow_the_traffic(store, config):
    room = owned_room(level=1)
    world = SnapshotWorld([room])
    store.section(ROOMS, ROOM)[TRAFFIC_KEY] = [[30, 30, 5.0], [31, 30, 2.0]]
    planner = ConstructionPlanner(world, world, store, config)

    placed = planner.run(room)

    assert [(o.structure_type, o.pos) for o in placed] == [(StructureType.ROAD, pos(30, 30))]
    assert load_traffic(store, ROOM, config).sample(pos(31, 30)) == pytest.approx(2.0)


def test_cold_rooms_get_no_roads(store, config):
    room = owned_room(level=1)
    world = SnapshotWorld([room])
    planner = ConstructionPlanner(world, world, store, config)

    assert planner.run(room) == []
