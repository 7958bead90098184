"""Derive weighted entities from staking records.

One entity is produced per owner address. Its weight is the owner's raffle
power: every staked lord contributes ``tickets(rarity) * days_staked``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .types import Point, PositionedEntity, WeightedEntity

logger = logging.getLogger(__name__)

RARITY_TICKETS: Dict[str, int] = {
    "rare": 1,
    "epic": 2,
    "legendary": 4,
    "mystic": 8,
}
RARITIES: Tuple[str, ...] = ("rare", "epic", "legendary", "mystic")

# Relative ring radius (fraction of marker size) per rarity, innermost first.
MEMBER_RINGS: Tuple[Tuple[str, float], ...] = (
    ("mystic", 0.15),
    ("legendary", 0.30),
    ("epic", 0.45),
    ("rare", 0.60),
)


@dataclass(frozen=True)
class StakeRecord:
    token_id: str
    owner: str
    rarity: str
    species: str = ""
    is_staked: bool = True
    staking_days: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StakeRecord":
        days = data.get("staking_days", data.get("stakingDuration"))
        return cls(
            token_id=str(data["token_id"] if "token_id" in data else data["tokenId"]),
            owner=str(data["owner"]),
            rarity=str(data.get("rarity") or "").lower(),
            species=str(data.get("species") or data.get("specie") or "").lower(),
            is_staked=bool(data.get("is_staked", data.get("isStaked", True))),
            staking_days=float(days) if days is not None else None,
        )


def raffle_power(rarity: str, staking_days: Optional[float]) -> float:
    """Tickets for ``rarity`` multiplied by days staked; 0 without a duration."""

    if not staking_days or not math.isfinite(staking_days) or staking_days < 0:
        return 0.0
    return float(RARITY_TICKETS.get(rarity.lower(), 0) * staking_days)


def address_color(address: str) -> str:
    """Stable ``hsl()`` colour from a 32-bit rolling hash of ``address``."""

    value = 0
    for char in address:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    # Match the truncated remainder of the signed hash.
    hue = abs(int(math.fmod(value, 360)))
    return f"hsl({hue}, 70%, 60%)"


def build_entities(records: Iterable[StakeRecord]) -> List[WeightedEntity]:
    """Group staked records by lowercased owner into weighted entities.

    The result is ordered by descending raffle power, then address, ready to
    be passed to :func:`stakemap.layout.compute_layout`.
    """

    groups: Dict[str, Dict[str, Any]] = {}
    for record in records:
        if not record.is_staked:
            continue
        owner = record.owner.lower()
        group = groups.setdefault(
            owner,
            {"members": {rarity: [] for rarity in RARITIES}, "total": 0, "power": 0.0},
        )
        member = {"id": record.token_id, "species": record.species, "rarity": record.rarity}
        if record.rarity in group["members"]:
            group["members"][record.rarity].append(member)
        else:
            logger.warning("Lord %s has unknown rarity %r", record.token_id, record.rarity)
        group["total"] += 1
        group["power"] += raffle_power(record.rarity, record.staking_days)

    entities = [
        WeightedEntity(
            id=owner,
            weight=group["power"],
            payload={
                "address": owner,
                "members": group["members"],
                "total_members": group["total"],
                "color": address_color(owner),
            },
        )
        for owner, group in groups.items()
    ]
    entities.sort(key=lambda e: (-e.weight, e.id))
    logger.info("Built %d entities from staking records", len(entities))
    return entities


def _ring(members: List[Mapping[str, Any]], centre: Point, radius: float) -> Dict[str, Point]:
    count = len(members)
    out: Dict[str, Point] = {}
    for index, member in enumerate(members):
        angle = 2.0 * math.pi * index / count
        out[str(member["id"])] = Point(centre.x + radius * math.cos(angle), centre.y + radius * math.sin(angle))
    return out


def member_positions(entity: PositionedEntity, expanded: bool) -> Dict[str, Point]:
    """World positions of an entity's members inside its marker.

    Collapsed markers stack every member on the centre; expanded markers
    arrange them on concentric rings by rarity, rarest innermost.
    """

    members = entity.payload.get("members", {}) if entity.payload else {}
    positions: Dict[str, Point] = {}
    if not expanded:
        for rarity in RARITIES:
            for member in members.get(rarity, []):
                positions[str(member["id"])] = entity.position
        return positions
    for rarity, fraction in MEMBER_RINGS:
        group = members.get(rarity, [])
        if group:
            positions.update(_ring(group, entity.position, entity.size * fraction))
    return positions
