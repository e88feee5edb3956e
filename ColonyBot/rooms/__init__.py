"""
ColonyBot.rooms — room safety, per-room maintenance and the colony plan.

Public API
----------
    from ColonyBot.rooms import RoomMaintenance, ColonyPlan, check_wipe_out
"""

from ColonyBot.rooms.plan import ColonyPlan, check_wipe_out, controllers_to_reserve
from ColonyBot.rooms.room_status import (
    RoomMaintenance,
    can_operate_in_room,
    is_room_safe,
    should_harvest_room,
    should_harvest_room_name,
    should_reserve_room,
)

__all__ = [
    "ColonyPlan",
    "RoomMaintenance",
    "can_operate_in_room",
    "check_wipe_out",
    "controllers_to_reserve",
    "is_room_safe",
    "should_harvest_room",
    "should_harvest_room_name",
    "should_reserve_room",
]
