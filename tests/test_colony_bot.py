import random

import pytest

from ColonyBot.colony_bot import CPU_USED_RATIO_KEY, MAX_TICK_LIMIT_KEY, ColonyBot
from ColonyBot.construction.construction_planner import TRAFFIC_KEY
from ColonyBot.memory.store import CREEPS, GLOBAL, ROOMS
from ColonyBot.memory.unit_memory import UnitMemory
from ColonyBot.rooms.plan import ColonyPlan
from ColonyBot.spawning.trends import TRENDS_KEY
from ColonyBot.tick_stats import STATS_KEY
from ColonyBot.world.objects import Source
from ColonyBot.world.snapshot import SnapshotWorld

from tests.helpers import CARRY, MOVE, ROOM, creep, owned_room, pos


@pytest.fixture
def bot(world, store, config):
    return ColonyBot(world, world, store, config, rng=random.Random(1))


def _colony(world, room):
    room.sources.append(Source("src", pos(40, 40)))
    room.creeps.extend([
        creep("W", 30, 30),
        creep("C1", 21, 21, body=[CARRY, CARRY, MOVE], energy=100),
        creep("E", 10, 10, body=[MOVE]),
    ])
    world.reindex()


def test_a_tick_leaves_every_unit_with_a_whole_plan_or_none(world, room, store, bot):
    _colony(world, room)

    for _ in range(3):
        bot.run_tick()
        for unit in world.my_creeps():
            assert UnitMemory(unit.name, store.section(CREEPS, unit.name)).is_well_formed
        world.advance()


def test_a_tick_flushes_stats_traffic_and_trends(world, room, store, bot):
    _colony(world, room)

    bot.run_tick()

    stats = store.get(GLOBAL, STATS_KEY)
    assert stats["tick"] == 100
    assert stats["units"] == 3
    assert store.section(ROOMS, ROOM)[TRAFFIC_KEY]
    assert "hauling" in store.get(GLOBAL, TRENDS_KEY)
    assert ColonyPlan.load(store).updated == 100


def test_memory_of_dead_units_is_purged_but_spawning_names_kept(world, room, store, bot):
    room.structures[1].spawning = "baby"
    store.set(CREEPS, "ghost", {"role": "worker"})
    store.set(CREEPS, "baby", {"role": "carrier"})

    assert bot.purge_dead_units() == 1
    assert list(store.keys(CREEPS)) == ["baby"]


# ── CPU ───────────────────────────────────────────────────────────────────────

def test_spare_cpu_needs_a_full_bucket_and_a_light_last_tick(store, bot):
    assert bot.got_spare_cpu()

    store.set(GLOBAL, CPU_USED_RATIO_KEY, 0.95)
    assert not bot.got_spare_cpu()

    store.set(GLOBAL, CPU_USED_RATIO_KEY, 0.5)
    store.set(GLOBAL, MAX_TICK_LIMIT_KEY, 1000)
    assert not bot.got_spare_cpu()


def test_cpu_use_is_recorded_for_the_next_tick(store, config):
    world = SnapshotWorld([owned_room()], cpu_used=10.0, cpu_limit=20.0, tick_limit=500.0)
    bot = ColonyBot(world, world, store, config, rng=random.Random(1))

    bot.record_cpu()

    assert store.get(GLOBAL, CPU_USED_RATIO_KEY) == pytest.approx(0.5)
    assert store.get(GLOBAL, MAX_TICK_LIMIT_KEY) == 500.0
    assert bot.stats.cpu_used == 10.0


# ── Plan refresh ──────────────────────────────────────────────────────────────

def test_plan_is_rebuilt_when_missing_due_or_cpu_is_spare(world, store, bot):
    first = bot.refresh_plan(spare_cpu=False)
    assert first.updated == 100
    assert bot.stats.get("plan_refreshed") == 1

    world.advance(5)
    assert bot.refresh_plan(spare_cpu=False).updated == 100
    assert bot.stats.get("plan_refreshed") == 1

    assert bot.refresh_plan(spare_cpu=True).updated == 105
    assert bot.stats.get("plan_refreshed") == 2

    world.advance(10)
    assert bot.refresh_plan(spare_cpu=False).updated == 115
