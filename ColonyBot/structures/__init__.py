"""
ColonyBot.structures — active control of towers, links and observers.

Public API
----------
    from ColonyBot.structures import TowerControl, LinkBalancer, ObserverControl
"""

from ColonyBot.structures.links import LinkBalancer
from ColonyBot.structures.observers import ObserverControl
from ColonyBot.structures.towers import TowerControl

__all__ = ["LinkBalancer", "ObserverControl", "TowerControl"]
