import pytest

from ColonyBot.memory.store import CREEPS
from ColonyBot.tasks.finder import FinderRegistry
from ColonyBot.tasks.finders import register_finders
from ColonyBot.tasks.task_selector import TaskSelector
from ColonyBot.world.constants import Action, StructureType

from tests.helpers import CARRY, MOVE, creep, pos, structure

HAULER = [CARRY, CARRY, MOVE]


@pytest.fixture
def selector(world, store, ledger, config, rng):
    return TaskSelector(world, world, store, ledger, config, rng, register_finders(FinderRegistry()))


def _add(world, room, *objects):
    for obj in objects:
        if hasattr(obj, "body"):
            room.creeps.append(obj)
        else:
            room.structures.append(obj)
    world.reindex()


def test_adjacent_withdraw_completes_in_one_tick(world, room, store, selector):
    box = structure("box", StructureType.CONTAINER, 11, 10, energy=500, capacity=2000)
    hauler = creep("C1", 10, 10, body=HAULER)
    _add(world, room, box, hauler)

    task = selector.select_and_execute(hauler)

    assert task.action == Action.WITHDRAW
    assert hauler.store.energy == 100
    memory = selector.memory_for(hauler)
    assert not memory.has_plan
    assert memory.role.value == "carrier"
    assert memory.fill_state == "full"


def test_distant_target_is_walked_to_and_remembered(world, room, selector):
    box = structure("box", StructureType.CONTAINER, 30, 30, energy=500, capacity=2000)
    hauler = creep("C1", 10, 10, body=HAULER)
    _add(world, room, box, hauler)

    selector.select_and_execute(hauler)

    memory = selector.memory_for(hauler)
    assert memory.destination == "box"
    assert memory.action == Action.WITHDRAW
    assert [i["intent"] for i in world.intents] == ["move"]


def test_full_target_gets_a_second_decision(world, room, store, selector):
    spawn = room.structures[1]
    tower = structure("tower", StructureType.TOWER, 22, 22, energy=0, capacity=1000)
    hauler = creep("C1", 21, 21, body=HAULER, energy=100)
    _add(world, room, tower, hauler)
    store.section(CREEPS, "C1").update({"role": "carrier", "destination": spawn.id, "action": "transfer"})

    task = selector.select_and_execute(hauler)

    assert task.destination is tower
    assert tower.store.energy == 100
    assert not selector.memory_for(hauler).has_plan


def test_half_a_plan_is_discarded(world, room, store, selector):
    walker = creep("E", 10, 10, body=[MOVE])
    _add(world, room, walker)
    store.section(CREEPS, "E")["destination"] = "somewhere"

    selector.select_and_execute(walker)

    memory = selector.memory_for(walker)
    assert memory.is_well_formed
    assert memory.destination != "somewhere"


def test_stuck_traveller_is_nudged(world, room, store, selector):
    walker = creep("E", 10, 10, body=[MOVE])
    _add(world, room, walker)
    store.section(CREEPS, "E").update({
        "role": "explorer",
        "destination": pos(30, 30).to_dict(),
        "action": "move",
        "destinationSetTime": world.time - 10,
        "lastMoveTime": world.time - 9,
        "pos": pos(10, 10).to_dict(),
    })

    assert selector.select_and_execute(walker) is None

    memory = selector.memory_for(walker)
    assert not memory.has_plan
    assert world.intents[-1]["intent"] == "move_direction"
    assert memory.last_move_time == world.time


def test_spawning_unit_only_gets_its_role(world, room, selector):
    hauler = creep("C1", 20, 21, body=HAULER, spawning=True)
    _add(world, room, hauler)

    assert selector.select_and_execute(hauler) is None

    memory = selector.memory_for(hauler)
    assert memory.role.value == "carrier"
    assert memory.home_room == room.name
    assert world.intents == []


def test_every_unit_ends_with_a_whole_plan_or_none(world, room, store, selector):
    box = structure("box", StructureType.CONTAINER, 30, 30, energy=120, capacity=2000)
    units = [
        creep("C1", 10, 10, body=HAULER),
        creep("C2", 12, 10, body=HAULER),
        creep("W", 28, 28, energy=50),
        creep("E", 5, 5, body=[MOVE]),
    ]
    _add(world, room, box, *units)

    for unit in units:
        selector.select_and_execute(unit)

    for unit in units:
        assert selector.memory_for(unit).is_well_formed
