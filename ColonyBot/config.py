"""
Tunable constants for the colony controller.

Each concern gets its own dataclass so a component only receives the knobs
it uses; ColonyConfig bundles them for the host loop. Several values were
tuned empirically (deadlock threshold, minimum transfer fraction, trend
window) and are policy rather than contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TaskConfig:
    """Task resolution, continuity and outcome handling."""

    # Ticks without getting closer and without a successful action before a
    # plan is abandoned and its target blacklisted.
    deadlock_ticks: int = 25

    # Fetch candidates must hold at least this fraction of the unit's
    # capacity (capped at the unit's free capacity).
    min_transfer_fraction: float = 0.5

    # Capacity of the lastBlockedIds ring.
    blacklist_size: int = 2

    # Range of build / repair / upgrade actions; also the radius of the
    # travel-free repair and build searches.
    work_range: int = 3

    # Upgrade before delivering anywhere else when the controller is this
    # close to downgrading.
    downgrade_ticks: int = 5000

    # Structures damaged by less than this are not worth walking to.
    min_hits_to_repair: int = 20000

    # No position change for this many ticks counts as stuck.
    stuck_ticks: int = 8


@dataclass
class SpawnConfig:
    """Spawn planning and body composition."""

    trend_window: int = 100         # ticks between the two trend samples
    hauling_floor: int = 1000       # carrier demand must stay above this
    max_body_parts: int = 50        # hard ceiling imposed by the environment
    max_spawn_range: int = 100      # global range between spawn and target
    min_spawn_energy: int = 50
    # A harvester is considered replaced-in-time when it has more ticks to
    # live than its body takes to spawn plus this margin.
    harvester_replace_margin: int = 50
    name_alphabet: str = "ABCDEFHJKLMNPRTUVWXYZ234789"


@dataclass
class RoomConfig:
    """Room maintenance and status."""

    sticky_energy_rate: int = 20        # max change per update
    lacked_energy_delta: float = 0.004
    reservation_ok_ticks: int = 2500
    safe_mode_ticks: int = 300
    road_traffic_threshold: float = 3.0
    traffic_decay: float = 0.98
    max_construction_sites_per_tick: int = 1


@dataclass
class TowerConfig:
    default_max_range: int = 50
    # Towers only spend energy on repairs above this fill ratio.
    repair_energy_ratio: float = 0.5


@dataclass
class LinkConfig:
    downstream_fill_ratio: float = 0.9


@dataclass
class CpuConfig:
    spare_cpu_ratio: float = 0.9
    plan_interval: int = 10


@dataclass
class ColonyConfig:
    tasks: TaskConfig = field(default_factory=TaskConfig)
    spawning: SpawnConfig = field(default_factory=SpawnConfig)
    rooms: RoomConfig = field(default_factory=RoomConfig)
    towers: TowerConfig = field(default_factory=TowerConfig)
    links: LinkConfig = field(default_factory=LinkConfig)
    cpu: CpuConfig = field(default_factory=CpuConfig)
