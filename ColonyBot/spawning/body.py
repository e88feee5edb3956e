"""
Body composition per role.

Ratio bodies start from a small seed and grow one part at a time: the next
part is whichever part type is furthest below its target share, otherwise
the role's main part. Growth stops at the first part that no longer fits
the energy budget, or at the hard part ceiling.

Fixed bodies: the explorer is a single MOVE; infantry is a fixed loadout
trimmed at random until affordable and rejected if the trimming removed all
movement or all offense. Harvesters are sized to drain their source between
regenerations and are downscaled by the planner until some spawn fits them.
"""

from __future__ import annotations

import math
import random
from typing import Callable, Dict, List, Optional, Sequence

from ColonyBot.world.constants import (
    BODYPART_COST,
    ENERGY_REGEN_TIME,
    HARVEST_POWER,
    BodyPart,
    Role,
)
from ColonyBot.world.objects import Source

MOVE, WORK, CARRY = BodyPart.MOVE, BodyPart.WORK, BodyPart.CARRY
ATTACK, RANGED, HEAL, CLAIM = BodyPart.ATTACK, BodyPart.RANGED_ATTACK, BodyPart.HEAL, BodyPart.CLAIM

MAX_BODY_PARTS = 50

INFANTRY_TEMPLATE: List[BodyPart] = (
    [MOVE] * 20 + [ATTACK] * 10 + [RANGED] * 10 + [MOVE] * 5 + [HEAL] * 5
)

# A transferer never walks far; it only needs to empty a full link at once.
TRANSFERER_MAX_CARRY = 16


def body_cost(body: Sequence[BodyPart]) -> int:
    return sum(BODYPART_COST[part] for part in body)


def part_ratio(body: Sequence[BodyPart], part: BodyPart = MOVE) -> float:
    if not body:
        return 0.0
    return sum(1 for p in body if p == part) / len(body)


def _grow(
    seed: List[BodyPart],
    next_part: Callable[[List[BodyPart]], Optional[BodyPart]],
    energy: int,
    max_parts: int,
) -> Optional[List[BodyPart]]:
    body = list(seed)
    if body_cost(body) > energy:
        return None
    while len(body) < max_parts:
        part = next_part(body)
        if part is None or body_cost(body) + BODYPART_COST[part] > energy:
            break
        body.append(part)
    return body


# ── Ratio bodies ──────────────────────────────────────────────────────────────

def upgrader_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    def next_part(body):
        if part_ratio(body, MOVE) <= 0.2:
            return MOVE
        if part_ratio(body, CARRY) <= 0.1:
            return CARRY
        return WORK
    return _grow([WORK, CARRY, MOVE], next_part, energy, max_parts)


def worker_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    def next_part(body):
        if part_ratio(body, MOVE) <= 0.34:
            return MOVE
        if part_ratio(body, CARRY) <= 0.4:
            return CARRY
        return WORK
    return _grow([WORK, CARRY, MOVE], next_part, energy, max_parts)


def carrier_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    return _grow(
        [CARRY, MOVE],
        lambda body: MOVE if part_ratio(body, MOVE) <= 0.34 else CARRY,
        energy,
        max_parts,
    )


def reserver_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    return _grow(
        [CLAIM, MOVE],
        lambda body: MOVE if part_ratio(body, MOVE) <= 0.34 else CLAIM,
        energy,
        max_parts,
    )


def transferer_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    def next_part(body):
        return CARRY if body.count(CARRY) < TRANSFERER_MAX_CARRY else None
    return _grow([CARRY, MOVE], next_part, energy, max_parts)


def explorer_body(energy: int, max_parts: int = MAX_BODY_PARTS) -> Optional[List[BodyPart]]:
    return [MOVE] if energy >= BODYPART_COST[MOVE] and max_parts >= 1 else None


# ── Infantry ──────────────────────────────────────────────────────────────────

def infantry_body(
    energy: int,
    rng: Optional[random.Random] = None,
    max_parts: int = MAX_BODY_PARTS,
) -> Optional[List[BodyPart]]:
    """Fixed loadout with random parts removed until it is affordable."""
    rng = rng or random.Random()
    body = list(INFANTRY_TEMPLATE)
    while body and (body_cost(body) > energy or len(body) > max_parts):
        body.pop(rng.randrange(len(body)))
    if MOVE not in body:
        return None
    if ATTACK not in body and RANGED not in body:
        return None
    return body


# ── Harvester ─────────────────────────────────────────────────────────────────

def harvester_body(source: Source) -> List[BodyPart]:
    """One CARRY, enough WORK to drain the source per regeneration, 1/3 MOVE."""
    work_parts = int(source.energy_capacity / ENERGY_REGEN_TIME / HARVEST_POWER)
    body = [CARRY] + [WORK] * work_parts
    body += [MOVE] * math.ceil(len(body) / 2)
    return body


def downscale_harvester(body: Sequence[BodyPart]) -> Optional[List[BodyPart]]:
    """Drop one MOVE (keeping one), else one WORK (keeping one), else None."""
    smaller = list(body)
    if smaller.count(MOVE) > 1:
        smaller.remove(MOVE)
        return smaller
    if smaller.count(WORK) > 1:
        smaller.remove(WORK)
        return smaller
    return None


# ── Dispatch ──────────────────────────────────────────────────────────────────

_RATIO_BUILDERS: Dict[Role, Callable[..., Optional[List[BodyPart]]]] = {
    Role.CARRIER:    carrier_body,
    Role.EXPLORER:   explorer_body,
    Role.RESERVER:   reserver_body,
    Role.TRANSFERER: transferer_body,
    Role.UPGRADER:   upgrader_body,
    Role.WORKER:     worker_body,
}


def body_for(
    role: Role,
    energy: int,
    rng: Optional[random.Random] = None,
    max_parts: int = MAX_BODY_PARTS,
) -> Optional[List[BodyPart]]:
    """Body for any role except harvester (which is sized by its source)."""
    if role == Role.INFANTRY:
        return infantry_body(energy, rng, max_parts)
    builder = _RATIO_BUILDERS.get(role)
    if builder is None:
        return None
    return builder(energy, max_parts)
