import random

import pytest

from ColonyBot.config import ColonyConfig
from ColonyBot.energy.ledger import EnergyLedger
from ColonyBot.memory.store import CREEPS, MemoryStore
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.tasks.finder import FinderContext
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import owned_room


@pytest.fixture
def store():
    memory = MemoryStore()
    memory.load({})
    return memory


@pytest.fixture
def config():
    return ColonyConfig()


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def room():
    return owned_room()


@pytest.fixture
def world(room):
    return SnapshotWorld([room], time=100)


@pytest.fixture
def ledger(world, store, config):
    return EnergyLedger(world, store, config.tasks)


@pytest.fixture
def make_ctx(world, ledger, store, config, rng):
    """FinderContext for a unit, with its memory section seeded from data."""

    def build(unit, role=None, plan=None, **data):
        section = store.section(CREEPS, unit.name)
        if role is not None:
            section["role"] = role.value
        section.update(data)
        return FinderContext(
            world=world,
            ledger=ledger,
            store=store,
            config=config,
            rng=rng,
            creep=unit,
            memory=UnitMemory(unit.name, section),
            plan=plan,
        )

    return build
