"""
Link balancing: push energy toward the room's energy consumer.

The downstream position is the storage. Links are ordered farthest-first
from it; an upstream pointer walks from the far end and a downstream
pointer from the near end. An upstream link with energy and no cooldown
sends to the current downstream link unless that one is already nearly
full, in which case the downstream pointer moves outward.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ColonyBot.config import LinkConfig
from ColonyBot.logger import get_logger
from ColonyBot.world.constants import ReturnCode, StructureType
from ColonyBot.world.objects import Room, RoomPosition, Structure
from ColonyBot.world.protocol import ActionPort, WorldQuery

log = get_logger()


def downstream_pos(room: Room) -> Optional[RoomPosition]:
    storage = room.storage
    return storage.pos if storage is not None else None


def sorted_links(room: Room, downstream: RoomPosition) -> List[Structure]:
    """Own links, farthest from downstream first."""
    links = [
        s for s in room.structures_of(StructureType.LINK)
        if s.my and s.store is not None
    ]
    return sorted(links, key=lambda link: (-link.pos.get_range_to(downstream), link.id))


class LinkBalancer:

    def __init__(
        self,
        world: WorldQuery,
        actions: ActionPort,
        config: LinkConfig | None = None,
    ) -> None:
        self.world = world
        self.actions = actions
        self.cfg = config or LinkConfig()

    def run(self, room: Room) -> List[Tuple[str, str]]:
        """Issue this tick's link transfers; returns (from_id, to_id) pairs sent."""
        downstream = downstream_pos(room)
        if downstream is None:
            return []
        links = sorted_links(room, downstream)

        sent = []
        upstream_index, downstream_index = 0, len(links) - 1
        while upstream_index < downstream_index:
            upstream = links[upstream_index]
            target = links[downstream_index]
            if upstream.store.energy < 1 or upstream.cooldown:
                upstream_index += 1
            elif target.store.fill_ratio >= self.cfg.downstream_fill_ratio:
                downstream_index -= 1
            else:
                outcome = self.actions.link_transfer(upstream, target)
                if outcome == ReturnCode.OK:
                    sent.append((upstream.id, target.id))
                else:
                    log.debug(
                        "Link %s -> %s: %s", upstream.id, target.id, outcome.name,
                        tick=self.world.time,
                    )
                upstream_index += 1
        return sent
