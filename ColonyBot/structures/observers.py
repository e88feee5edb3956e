"""
Observer control: give each own observer a room nobody can see.

Visible rooms are visited in random order and, for each, its exits in
random order; the first exit room without vision is observed. Vision
arrives next tick, so the room shows up in the snapshot and the colony plan
and room memory pick it up like any other room. The spawn planner stops
asking for explorers once an observer exists, so this is the colony's only
scouting from then on.
"""

from __future__ import annotations

import random
from typing import List, Optional, Set

from ColonyBot.logger import get_logger
from ColonyBot.world.constants import ReturnCode, StructureType
from ColonyBot.world.objects import Room, Structure
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()


class ObserverControl:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.rng = rng or random.Random()

    def run(self, room: Room) -> List[str]:
        """Observe one unseen room per own observer; returns the rooms chosen."""
        observed: List[str] = []
        for observer in room.structures_of(StructureType.OBSERVER):
            if not observer.my:
                continue
            target = self.pick_unseen_room(exclude=set(observed))
            if target is None:
                break
            if self.observe(observer, target):
                observed.append(target)
        return observed

    def pick_unseen_room(self, exclude: Set[str]) -> Optional[str]:
        visible = [r.name for r in self.world.rooms()]
        self.rng.shuffle(visible)
        for room_name in visible:
            exits = sorted(set(self.world.exits(room_name).values()))
            self.rng.shuffle(exits)
            for exit_name in exits:
                if exit_name not in exclude and self.world.get_room(exit_name) is None:
                    return exit_name
        return None

    def observe(self, observer: Structure, room_name: str) -> bool:
        outcome = self.actions.observe_room(observer, room_name)
        if outcome != ReturnCode.OK:
            log.debug("Observer %s -> %s: %s", observer.id, room_name, outcome.name, tick=self.world.time)
            return False
        log.debug("Observer %s watching %s", observer.id, room_name, tick=self.world.time)
        return True
