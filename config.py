# ===== INPUT FILES =====
# The world snapshot the host exported for this tick (rooms, creeps,
# structures, terrain). See ColonyBot/world/snapshot.py for the layout.
SNAPSHOT_PATH = "data/snapshot.json"

# The persistent memory document. Created on the first run if missing and
# rewritten after every tick.
MEMORY_PATH = "data/memory.json"

# ===== OUTPUT FILES =====
# Primitive submissions recorded during the tick (moves, transfers, spawns,
# construction sites), written as a JSON list for the host to replay.
INTENTS_PATH = "data/intents.json"

# ===== RUN SETTINGS =====
# Number of ticks to run against the snapshot. Values above 1 replay the
# same snapshot with the clock advanced, which is only useful for smoke
# testing continuity and deadlock handling.
TICKS = 1

# Seed for tie-breaks, creep names and random moves.
# Set to None for a fresh seed every run.
RNG_SEED = None
