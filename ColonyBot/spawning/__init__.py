"""
ColonyBot.spawning — what to spawn, with which body, from which spawn.

Public API
----------
    from ColonyBot.spawning import SpawnPlanner, SpawnCommand, TrendTracker
    from ColonyBot.spawning.body import body_for, harvester_body
"""

from ColonyBot.spawning.body import body_cost, body_for, harvester_body
from ColonyBot.spawning.planner import SpawnCommand, SpawnPlanner, SpawnRequest
from ColonyBot.spawning.trends import TrendTracker

__all__ = [
    "SpawnCommand",
    "SpawnPlanner",
    "SpawnRequest",
    "TrendTracker",
    "body_cost",
    "body_for",
    "harvester_body",
]
