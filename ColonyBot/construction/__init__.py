"""
ColonyBot.construction — construction site planning.

Public API
----------
    from ColonyBot.construction import ConstructionPlanner, ConstructionQueue
"""

from ColonyBot.construction.construction_planner import (
    ConstructionOrder,
    ConstructionPlanner,
    ConstructionQueue,
    OrderStatus,
    load_traffic,
    need_structure,
    save_traffic,
)

__all__ = [
    "ConstructionOrder",
    "ConstructionPlanner",
    "ConstructionQueue",
    "OrderStatus",
    "load_traffic",
    "need_structure",
    "save_traffic",
]
