import pytest

from ColonyBot.memory.room_memory import RoomMemory
from ColonyBot.memory.store import ROOMS
from ColonyBot.structures import LinkBalancer, ObserverControl, TowerControl
from ColonyBot.world.constants import StructureType
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import ROOM, creep, structure


@pytest.fixture
def towers(world):
    return TowerControl(world, world)


@pytest.fixture
def links(world):
    return LinkBalancer(world, world)


@pytest.fixture
def room_memory(store):
    return RoomMemory(ROOM, store.section(ROOMS, ROOM))


def _add(world, room, *objects):
    for obj in objects:
        if hasattr(obj, "body"):
            room.creeps.append(obj)
        else:
            room.structures.append(obj)
    world.reindex()


# ── Towers ────────────────────────────────────────────────────────────────────

def test_towers_shoot_the_weakest_hostile(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=500, capacity=1000)
    sturdy = creep("A", 30, 25, my=False)
    frail = creep("B", 40, 25, my=False, hits=50)
    _add(world, room, tower, sturdy, frail)

    target = towers.run(room, room_memory)

    assert target is frail
    assert frail.hits == 0
    assert room_memory.tower_last_target == "id-B"
    assert room_memory.tower_last_target_hits == 50
    assert world.intents[-1]["intent"] == "tower_attack"


def test_hostiles_beyond_the_max_range_are_ignored(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 5, 25, energy=500, capacity=1000)
    far = creep("A", 45, 25, my=False)
    _add(world, room, tower, far)
    room_memory.tower_max_range = 10

    assert towers.run(room, room_memory) is None
    assert far.hits == 100


def test_towers_heal_our_units_when_no_hostiles(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=500, capacity=1000)
    hurt = creep("W", 22, 25, hits=40)
    _add(world, room, tower, hurt)

    assert towers.run(room, room_memory) is hurt
    assert hurt.hits == 100


def test_towers_repair_only_with_energy_to_spare(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=400, capacity=1000)
    road = structure("road", StructureType.ROAD, 21, 25, my=False, owner=None, hits=400, hits_max=1000)
    _add(world, room, tower, road)

    assert towers.run(room, room_memory) is None
    assert road.hits == 400

    tower.store.energy = 600
    assert towers.run(room, room_memory) is road
    assert road.hits == 600


def test_lightly_damaged_structures_are_left_to_workers(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=900, capacity=1000)
    road = structure("road", StructureType.ROAD, 21, 25, my=False, owner=None, hits=600, hits_max=1000)
    _add(world, room, tower, road)

    assert towers.run(room, room_memory) is None


def test_range_shrinks_while_the_target_does_not_lose_hits(world, room, towers, room_memory):
    healer = creep("H", 40, 40, my=False, hits=100)
    _add(world, room, healer)
    room_memory.tower_max_range = 30
    room_memory.tower_last_target = "id-H"
    room_memory.tower_last_target_hits = 100

    assert towers.adapt_range(room_memory) == 29

    room_memory.tower_last_target_hits = 150
    assert towers.adapt_range(room_memory) == 29


def test_a_full_tower_resets_the_range(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=1000, capacity=1000)
    _add(world, room, tower)
    room_memory.tower_max_range = 3

    towers.run(room, room_memory)

    assert room_memory.tower_max_range == 50


def test_empty_towers_do_nothing(world, room, towers, room_memory):
    tower = structure("tower", StructureType.TOWER, 20, 25, energy=0, capacity=1000)
    _add(world, room, tower, creep("A", 22, 25, my=False))

    assert towers.run(room, room_memory) is None
    assert world.intents == []


# ── Links ─────────────────────────────────────────────────────────────────────

def _storage():
    return structure("store", StructureType.STORAGE, 40, 40, energy=0, capacity=1_000_000)


def test_far_link_sends_toward_the_storage(world, room, links):
    far = structure("far", StructureType.LINK, 10, 10, energy=400, capacity=800)
    near = structure("near", StructureType.LINK, 39, 39, energy=0, capacity=800)
    _add(world, room, _storage(), near, far)

    assert links.run(room) == [("far", "near")]
    assert near.store.energy == 400
    assert far.cooldown > 0


def test_links_on_cooldown_wait(world, room, links):
    far = structure("far", StructureType.LINK, 10, 10, energy=400, capacity=800, cooldown=5)
    near = structure("near", StructureType.LINK, 39, 39, energy=0, capacity=800)
    _add(world, room, _storage(), near, far)

    assert links.run(room) == []


def test_nearly_full_downstream_link_passes_to_the_next(world, room, links):
    far = structure("far", StructureType.LINK, 10, 10, energy=400, capacity=800)
    mid = structure("mid", StructureType.LINK, 30, 30, energy=0, capacity=800)
    near = structure("near", StructureType.LINK, 39, 39, energy=720, capacity=800)
    _add(world, room, _storage(), near, mid, far)

    assert links.run(room) == [("far", "mid")]
    assert near.store.energy == 720


def test_links_idle_without_a_storage(world, room, links):
    far = structure("far", StructureType.LINK, 10, 10, energy=400, capacity=800)
    near = structure("near", StructureType.LINK, 39, 39, energy=0, capacity=800)
    _add(world, room, near, far)

    assert links.run(room) == []


# ── Observers ─────────────────────────────────────────────────────────────────

def _observed_world(room, map_exits):
    room.structures.append(structure("obs", StructureType.OBSERVER, 30, 30))
    return SnapshotWorld([room], map_exits=map_exits)


def test_observer_watches_an_unseen_exit_room(room, rng):
    world = _observed_world(room, {ROOM: {"3": "W2N1"}})

    assert ObserverControl(world, world, rng).run(room) == ["W2N1"]
    assert world.observed == {"W2N1"}


def test_observer_idles_when_every_neighbour_is_visible(room, rng):
    world = _observed_world(room, {ROOM: {}})

    assert ObserverControl(world, world, rng).run(room) == []
    assert world.intents == []


def test_foreign_observers_are_left_alone(room, rng):
    room.structures.append(structure("theirs", StructureType.OBSERVER, 31, 31, my=False, owner="enemy"))
    world = SnapshotWorld([room], map_exits={ROOM: {"3": "W2N1"}})

    assert ObserverControl(world, world, rng).run(room) == []
