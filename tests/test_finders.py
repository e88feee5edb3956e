import pytest

from ColonyBot.energy.ledger import EnergyLedger
from ColonyBot.memory.store import CREEPS, ROOMS
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.rooms.plan import ColonyPlan
from ColonyBot.tasks.finder import FinderContext, FinderRegistry
from ColonyBot.tasks.finders import (
    BuildAnywhere,
    DeliverEnergy,
    EngageTarget,
    Explore,
    FetchEnergy,
    HarvesterUnload,
    HarvestSource,
    RepairDamaged,
    RecycleUnit,
    RepairInRange,
    ReserveController,
    TopUpEnergy,
    TransfererDeliver,
    TransfererFetch,
    register_finders,
)
from ColonyBot.world.constants import Action, BodyPart, Role, StructureType
from ColonyBot.world.objects import ConstructionSite, Resource, Room, Source
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import CARRY, MOVE, ROOM, WORK, controller, creep, owned_room, pos, structure

HAULER = [CARRY, CARRY, MOVE]


def _place(world, room, *objects):
    for obj in objects:
        if hasattr(obj, "body"):
            room.creeps.append(obj)
        else:
            room.structures.append(obj)
    world.reindex()


@pytest.fixture
def registry():
    return register_finders(FinderRegistry())


# ── Worker cascade ────────────────────────────────────────────────────────────

def test_full_worker_repairs_what_is_in_range(world, room, make_ctx, registry):
    worker = creep("W", 10, 10, energy=50)
    tower = structure("tower", StructureType.TOWER, 12, 10, energy=0, capacity=1000, hits=1000, hits_max=3000)
    _place(world, room, worker, tower)

    ctx = make_ctx(worker, Role.WORKER)
    finder, task = registry.first_success(ctx)

    assert finder.name == "RepairInRange"
    assert task.action == Action.REPAIR
    assert task.destination is tower


def test_in_range_repair_prefers_owned_structures(world, room, make_ctx):
    worker = creep("W", 10, 10, energy=50)
    road = structure("road", StructureType.ROAD, 10, 11, my=False, owner=None, hits=100, hits_max=5000)
    tower = structure("tower", StructureType.TOWER, 13, 10, energy=0, capacity=1000, hits=2000, hits_max=3000)
    _place(world, room, worker, road, tower)

    task = RepairInRange().find(make_ctx(worker, Role.WORKER))

    assert task.destination is tower


def test_in_range_repair_ignores_hostile_structures(world, room, make_ctx):
    worker = creep("W", 10, 10, energy=50)
    enemy = structure("enemy", StructureType.TOWER, 11, 10, my=False, owner="enemy", hits=10, hits_max=3000)
    _place(world, room, worker, enemy)

    assert RepairInRange().find(make_ctx(worker, Role.WORKER)) is None


def test_worker_upgrades_a_controller_close_to_downgrade(world, room, make_ctx, registry):
    room.controller.ticks_to_downgrade = 1000
    worker = creep("W", 10, 10, body=[WORK, CARRY, CARRY, MOVE], energy=40)
    _place(world, room, worker)

    ctx = make_ctx(worker, Role.WORKER)
    finder, task = registry.first_success(ctx)

    assert finder.name == "UpgradeIfDowngrading"
    assert task.action == Action.UPGRADE
    assert "DeliverEnergy" in ctx.tried


# ── Fetching ──────────────────────────────────────────────────────────────────

def test_two_units_cannot_both_count_on_the_same_energy(world, room, make_ctx):
    container = structure("box", StructureType.CONTAINER, 30, 30, energy=50, capacity=2000)
    first = creep("C1", 28, 30, body=HAULER)
    second = creep("C2", 29, 31, body=HAULER)
    _place(world, room, container, first, second)

    task = FetchEnergy().find(make_ctx(first, Role.CARRIER))
    assert task.action == Action.WITHDRAW
    assert task.destination is container
    assert task.amount == 50

    assert FetchEnergy().find(make_ctx(second, Role.CARRIER)) is None


def test_fetch_skips_blacklisted_targets(world, room, make_ctx):
    container = structure("box", StructureType.CONTAINER, 30, 30, energy=500, capacity=2000)
    hauler = creep("C1", 28, 30, body=HAULER)
    _place(world, room, container, hauler)

    ctx = make_ctx(hauler, Role.CARRIER, lastBlockedIds=["box"])

    assert FetchEnergy().find(ctx) is None


def test_fetch_ignores_piles_below_half_a_load(world, room, make_ctx):
    room.dropped_resources.append(Resource("crumbs", pos(30, 30), amount=20))
    room.dropped_resources.append(Resource("pile", pos(35, 35), amount=60))
    hauler = creep("C1", 31, 31, body=HAULER)
    _place(world, room, hauler)

    task = FetchEnergy().find(make_ctx(hauler, Role.CARRIER))

    assert task.action == Action.PICKUP
    assert task.destination.id == "pile"


def test_carrier_uses_storage_only_while_spawns_are_short(world, room, make_ctx):
    storage = structure("store", StructureType.STORAGE, 30, 30, energy=5000, capacity=1_000_000)
    hauler = creep("C1", 31, 31, body=HAULER)
    _place(world, room, storage, hauler)

    assert FetchEnergy().find(make_ctx(hauler, Role.CARRIER)) is None

    room.energy_available = 100
    task = FetchEnergy().find(make_ctx(hauler, Role.CARRIER))
    assert task.destination is storage


def test_worker_harvests_when_nothing_is_lying_around(world, room, make_ctx):
    room.sources.append(Source("src", pos(40, 40)))
    worker = creep("W", 38, 38)
    _place(world, room, worker)

    task = FetchEnergy().find(make_ctx(worker, Role.WORKER))

    assert task.action == Action.HARVEST
    assert task.amount == 0


def test_top_up_is_for_half_loaded_carriers(world, room, make_ctx):
    hauler = creep("C1", 31, 31, body=HAULER, energy=30)
    _place(world, room, hauler)
    assert TopUpEnergy().applies(make_ctx(hauler, Role.CARRIER))
    hauler.store.energy = 0
    assert not TopUpEnergy().applies(make_ctx(hauler, Role.CARRIER))


# ── Delivery ──────────────────────────────────────────────────────────────────

def test_towers_are_served_before_spawns(world, room, make_ctx):
    room.structures[1].store.energy = 100
    tower = structure("tower", StructureType.TOWER, 22, 22, energy=100, capacity=1000)
    hauler = creep("C1", 21, 21, body=HAULER, energy=100)
    _place(world, room, tower, hauler)

    task = DeliverEnergy().find(make_ctx(hauler, Role.CARRIER))

    assert task.action == Action.TRANSFER
    assert task.destination is tower


def test_storage_only_takes_energy_once_spawns_are_full(world, room, make_ctx):
    storage = structure("store", StructureType.STORAGE, 30, 30, energy=0, capacity=1_000_000)
    hauler = creep("C1", 31, 31, body=HAULER, energy=100)
    _place(world, room, storage, hauler)

    assert DeliverEnergy().find(make_ctx(hauler, Role.CARRIER)).destination is storage
    assert DeliverEnergy(include_storage=False).find(make_ctx(hauler, Role.CARRIER)) is None


def test_waiting_worker_gets_a_delivery_and_is_marked(world, room, store, make_ctx):
    hauler = creep("C1", 31, 31, body=HAULER, energy=100)
    worker = creep("W", 33, 33, body=[WORK, CARRY, CARRY, MOVE])
    _place(world, room, hauler, worker)
    make_ctx(worker, Role.WORKER)

    task = DeliverEnergy().find(make_ctx(hauler, Role.CARRIER))

    assert task.destination is worker
    assert store.section(CREEPS, "W")["awaitingDeliveryFrom"] == "C1"


# ── Dedicated roles ───────────────────────────────────────────────────────────

def test_harvester_sticks_to_its_source(world, room, make_ctx):
    room.sources.append(Source("src", pos(40, 40)))
    harvester = creep("H", 39, 39, body=[WORK, WORK, CARRY, MOVE])
    _place(world, room, harvester)

    task = HarvestSource().find(make_ctx(harvester, Role.HARVESTER, sourceId="src"))

    assert task.action == Action.HARVEST
    assert task.destination.id == "src"


def test_reserver_heads_for_the_closest_planned_controller(store, config, rng):
    home = Room(name=ROOM, controller=controller(ROOM))
    home.structures.append(home.controller)
    near = Room(name="W2N1", controller=controller("W2N1", level=0, my=False))
    far = Room(name="W5N1", controller=controller("W5N1", level=0, my=False))
    reserver = creep("R", 10, 10, body=[BodyPart.CLAIM, MOVE])
    home.creeps.append(reserver)
    world = SnapshotWorld([home, near, far], time=50)

    plan = ColonyPlan(controllers_to_reserve=["ctrl-W5N1", "ctrl-W2N1"])
    ctx = FinderContext(
        world, EnergyLedger(world, store), store, config, rng, reserver,
        UnitMemory("R", store.section(CREEPS, "R")), plan,
    )

    task = ReserveController().find(ctx)

    assert task.action == Action.RESERVE
    assert task.destination.id == "ctrl-W2N1"


def test_explorer_avoids_unsafe_neighbours(store, config, rng):
    home = owned_room()
    explorer = creep("E", 25, 25, body=[MOVE])
    home.creeps.append(explorer)
    world = SnapshotWorld([home], map_exits={
        ROOM: {"1": "W1N2", "3": "W2N1"},
        "W1N2": {"5": ROOM},
        "W2N1": {"7": ROOM},
    })
    store.section(ROOMS, "W2N1")["safeForCreeps"] = False

    ctx = FinderContext(
        world, EnergyLedger(world, store), store, config, rng, explorer,
        UnitMemory("E", store.section(CREEPS, "E")),
    )
    for _ in range(5):
        task = Explore().find(ctx)
        assert task.destination == pos(25, 25, "W1N2")


def test_explorer_only_enters_rooms_next_to_the_colony(store, config, rng):
    away = Room(name="W3N1")
    explorer = creep("E", 25, 25, body=[MOVE], room="W3N1")
    away.creeps.append(explorer)
    world = SnapshotWorld([owned_room(), away], map_exits={
        "W3N1": {"3": "W4N1", "7": "W2N1"},
        "W2N1": {"3": "W3N1", "7": ROOM},
        "W4N1": {"3": "W5N1", "7": "W3N1"},
    })

    ctx = FinderContext(
        world, EnergyLedger(world, store), store, config, rng, explorer,
        UnitMemory("E", store.section(CREEPS, "E")),
    )
    picked = {Explore().find(ctx).destination.room_name for _ in range(40)}

    assert picked == {"W2N1"}


def test_harvester_unloads_into_an_adjacent_link(world, room, make_ctx):
    harvester = creep("H", 39, 39, body=[WORK, WORK, CARRY, MOVE], energy=40)
    link = structure("link", StructureType.LINK, 40, 38, energy=0, capacity=800)
    _place(world, room, harvester, link)

    task = HarvesterUnload().find(make_ctx(harvester, Role.HARVESTER))

    assert task.action == Action.TRANSFER
    assert task.destination is link
    assert task.amount == 40


def test_transferer_moves_energy_from_link_to_storage(world, room, make_ctx):
    link = structure("link", StructureType.LINK, 31, 31, energy=400, capacity=800)
    storage = structure("store", StructureType.STORAGE, 30, 30, energy=0, capacity=1_000_000)
    empty = creep("T", 30, 31, body=HAULER)
    loaded = creep("TA", 31, 30, body=HAULER, energy=100)
    _place(world, room, link, storage, empty, loaded)
    links = {"upstreamId": "link", "downstreamId": "store"}

    fetch = TransfererFetch().find(make_ctx(empty, Role.TRANSFERER, **links))
    deliver = TransfererDeliver().find(make_ctx(loaded, Role.TRANSFERER, **links))

    assert (fetch.action, fetch.destination, fetch.amount) == (Action.WITHDRAW, link, 100)
    assert (deliver.action, deliver.destination) == (Action.TRANSFER, storage)


def test_infantry_goes_for_nearby_healers_first(world, room, make_ctx):
    soldier = creep("I", 10, 10, body=[BodyPart.ATTACK, MOVE])
    brawler = creep("A", 20, 10, body=[BodyPart.ATTACK, MOVE], my=False)
    medic = creep("B", 22, 10, body=[BodyPart.HEAL] * 3 + [MOVE], my=False)
    _place(world, room, soldier, brawler, medic)

    task = EngageTarget().find(make_ctx(soldier, Role.INFANTRY))

    assert task.action == Action.ATTACK
    assert task.destination is medic


def test_build_priority_outweighs_distance(world, room, make_ctx):
    worker = creep("W", 10, 10, energy=50)
    room.construction_sites.append(ConstructionSite("ext", pos(12, 10), StructureType.EXTENSION))
    room.construction_sites.append(ConstructionSite("new-spawn", pos(30, 30), StructureType.SPAWN))
    _place(world, room, worker)

    task = BuildAnywhere().find(make_ctx(worker, Role.WORKER))

    assert task.destination.id == "new-spawn"


def test_repair_trip_is_only_for_badly_damaged_structures(world, room, store, make_ctx):
    worker = creep("W", 10, 10, energy=50)
    road = structure("road", StructureType.ROAD, 40, 40, my=False, owner=None, hits=100, hits_max=5000)
    scratched = structure("wall", StructureType.WALL, 41, 41, my=False, owner=None, hits=4900, hits_max=5000)
    _place(world, room, worker, road, scratched)

    task = RepairDamaged().find(make_ctx(worker, Role.WORKER))

    assert task.destination is road
    assert store.section(ROOMS, ROOM)["maxHitsToRepair"] == 20100


# ── Recycling ─────────────────────────────────────────────────────────────────

def test_transferer_without_its_link_walks_to_a_spawn(world, room, make_ctx, registry):
    storage = structure("store", StructureType.STORAGE, 30, 30, energy=0, capacity=1_000_000)
    transferer = creep("T", 30, 31, body=HAULER)
    _place(world, room, storage, transferer)

    ctx = make_ctx(transferer, Role.TRANSFERER, upstreamId="gone-link", downstreamId="store")
    finder, task = registry.first_success(ctx)

    assert finder.name == "RecycleUnit"
    assert task.action == Action.RECYCLE
    assert task.destination is room.structures[1]


def test_transferer_with_both_targets_is_kept(world, room, make_ctx):
    link = structure("link", StructureType.LINK, 31, 31, energy=0, capacity=800)
    storage = structure("store", StructureType.STORAGE, 30, 30, energy=0, capacity=1_000_000)
    transferer = creep("T", 30, 31, body=HAULER)
    _place(world, room, link, storage, transferer)

    ctx = make_ctx(transferer, Role.TRANSFERER, upstreamId="link", downstreamId="store")

    assert not RecycleUnit().applies(ctx)


def test_reserver_with_nothing_to_reserve_is_recycled(world, room, make_ctx, registry):
    reserver = creep("R", 10, 10, body=[BodyPart.CLAIM, MOVE])
    _place(world, room, reserver)

    ctx = make_ctx(reserver, Role.RESERVER, plan=ColonyPlan(controllers_to_reserve=[]))
    finder, task = registry.first_success(ctx)

    assert finder.name == "RecycleUnit"
    assert task.destination.structure_type == StructureType.SPAWN


def test_only_spare_infantry_is_recycled(world, room, make_ctx):
    soldier = creep("I", 10, 10, body=[BodyPart.ATTACK, MOVE])
    _place(world, room, soldier)
    ctx = make_ctx(soldier, Role.INFANTRY)

    assert not RecycleUnit().applies(ctx)

    _place(world, room, creep("I2", 40, 40, body=[BodyPart.ATTACK, MOVE]))

    assert RecycleUnit().applies(ctx)
    assert RecycleUnit().find(ctx).destination is room.structures[1]


def test_no_spawn_in_a_safe_room_means_no_recycling(store, config, rng):
    away = Room(name="W2N1")
    reserver = creep("R", 10, 10, body=[BodyPart.CLAIM, MOVE], room="W2N1")
    away.creeps.append(reserver)
    world = SnapshotWorld([owned_room(), away])
    store.section(ROOMS, ROOM)["safeForCreeps"] = False

    ctx = FinderContext(
        world, EnergyLedger(world, store), store, config, rng, reserver,
        UnitMemory("R", store.section(CREEPS, "R")),
    )

    assert RecycleUnit().find(ctx) is None


# ── Registry ──────────────────────────────────────────────────────────────────

def test_registering_twice_replaces_the_finder():
    registry = FinderRegistry()
    registry.register(Role.CARRIER, FetchEnergy())
    registry.register(Role.CARRIER, FetchEnergy())
    assert len(registry.get(Role.CARRIER)) == 1


def test_finder_cannot_serve_a_foreign_role():
    with pytest.raises(ValueError):
        FinderRegistry().register(Role.HARVESTER, FetchEnergy())


def test_cascade_is_ordered_by_priority(registry):
    priorities = [f.priority for f in registry.get(Role.WORKER)]
    assert priorities == sorted(priorities, reverse=True)
    assert registry.get(None) == []


def test_summary_lists_every_role(registry):
    summary = registry.summary()
    assert "transferer: [TransfererFetch(p=90)" in summary
    assert "RecycleUnit(p=5)" in summary
    assert FinderRegistry().summary() == "  (empty)"
