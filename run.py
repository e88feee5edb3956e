"""
Run script for ColonyBot using config.py settings.
"""

import json
import random
from pathlib import Path

from ColonyBot.colony_bot import ColonyBot
from ColonyBot.logger import get_logger
from ColonyBot.memory.store import MemoryStore
from ColonyBot.world.snapshot import SnapshotWorld
from config import INTENTS_PATH, MEMORY_PATH, RNG_SEED, SNAPSHOT_PATH, TICKS

log = get_logger()


def main():
    """Run the configured number of ticks against one snapshot"""

    log.info("=" * 50)
    log.info("ColonyBot tick runner")
    log.info("=" * 50)

    world = SnapshotWorld.load_file(SNAPSHOT_PATH)
    log.info("Snapshot: %s (tick %d, %d rooms)", SNAPSHOT_PATH, world.time, len(world.rooms()))

    store = MemoryStore()
    if not Path(MEMORY_PATH).exists():
        log.warning("Memory file not found: %s, starting from empty memory", MEMORY_PATH)
    store.load_file(MEMORY_PATH)

    bot = ColonyBot(world, world, store, rng=random.Random(RNG_SEED))
    intents = []
    for _ in range(max(1, TICKS)):
        bot.run_tick()
        intents.extend(world.intents)
        world.advance()

    Path(MEMORY_PATH).parent.mkdir(parents=True, exist_ok=True)
    store.save_file(MEMORY_PATH)
    Path(INTENTS_PATH).parent.mkdir(parents=True, exist_ok=True)
    Path(INTENTS_PATH).write_text(json.dumps(intents, indent=2))
    log.info("Wrote %d intents to %s", len(intents), INTENTS_PATH)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        log.info("Run stopped by user")
    except Exception as e:
        log.exception("Unexpected error in main: %s", e)
