import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

SCALE_UP = "up"
SCALE_DOWN = "down"
DIRECTIONS = (SCALE_UP, SCALE_DOWN)

# Unit count a shared first unit is evaluated as.
SHARED_UNIT_EFFECTIVE_UNITS = 10


# -----------------------------------------------------------------------------
# Tier table
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Tier:
    name: str
    rank: int
    unit_allowance: int
    max_units: int
    ladder_ceiling: int
    shared_unit_allowance: Optional[int] = None


TIERS: Tuple[Tier, ...] = (
    Tier(
        name="S1",
        rank=0,
        unit_allowance=400_000,
        max_units=200,
        ladder_ceiling=9,
    ),
    Tier(
        name="S2",
        rank=1,
        unit_allowance=6_000_000,
        max_units=200,
        ladder_ceiling=9,
        shared_unit_allowance=400_000,
    ),
    Tier(
        name="S3",
        rank=2,
        unit_allowance=300_000_000,
        max_units=10,
        ladder_ceiling=10,
        shared_unit_allowance=6_000_000,
    ),
)

_TIERS_BY_NAME: Dict[str, Tier] = {tier.name: tier for tier in TIERS}


def get_tier(name: str) -> Tier:
    """Look up a tier by SKU name (case-insensitive)."""
    tier = _TIERS_BY_NAME.get((name or "").strip().upper())
    if tier is None:
        raise ValueError(f"Unsupported IoT Hub SKU: {name}")
    return tier


def next_tier(tier: Tier) -> Optional[Tier]:
    if tier.rank + 1 < len(TIERS):
        return TIERS[tier.rank + 1]
    return None


def previous_tier(tier: Tier) -> Optional[Tier]:
    if tier.rank > 0:
        return TIERS[tier.rank - 1]
    return None


@dataclass(frozen=True)
class Capacity:
    tier: Tier
    units: int

    def __post_init__(self):
        if not 1 <= self.units <= self.tier.max_units:
            raise ValueError(
                f"{self.tier.name} units must be between 1 and "
                f"{self.tier.max_units}, got {self.units}"
            )

    def __str__(self) -> str:
        return f"{self.tier.name}-{self.units}"


def _check_direction(direction: str) -> None:
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown scale direction: {direction}")


# -----------------------------------------------------------------------------
# Threshold evaluation
# -----------------------------------------------------------------------------
def get_sku_unit_threshold(
    tier: Tier, units: int, percent: int, direction: str
) -> int:
    """Return the daily message count that triggers scaling in `direction`.

    A unit count of 1 on a tier with a shared first unit is evaluated as
    10 units at the shared allowance. Scale-down measures against one unit
    less than the current capacity; scale-up measures against all of it.
    """
    _check_direction(direction)
    if not 0 <= percent <= 100:
        raise ValueError(f"percent must be between 0 and 100, got {percent}")
    Capacity(tier, units)  # range check

    allowance = tier.unit_allowance
    effective_units = units
    # Applied when scaling up too, so S2-1 and S3-1 hubs scale up at 4M and
    # 60M messages at 100%.
    if units == 1 and tier.shared_unit_allowance is not None:
        allowance = tier.shared_unit_allowance
        effective_units = SHARED_UNIT_EFFECTIVE_UNITS

    if direction == SCALE_DOWN:
        effective_units -= 1
    return allowance * effective_units * percent // 100


def should_scale(usage: int, limit: int, direction: str) -> bool:
    _check_direction(direction)
    if direction == SCALE_DOWN:
        return usage <= limit
    return usage >= limit


# -----------------------------------------------------------------------------
# Tier stepping
# -----------------------------------------------------------------------------
def get_scale_up_target(capacity: Capacity) -> Optional[Capacity]:
    # Any step past the ladder ceiling moves to the next tier, including hubs
    # provisioned above it and hubs already at max_units.
    tier, units = capacity.tier, capacity.units
    stepped = units + 1
    higher = next_tier(tier)
    if stepped > tier.ladder_ceiling and higher is not None:
        return Capacity(higher, 1)
    if stepped > tier.max_units:
        return None
    return Capacity(tier, stepped)


def get_scale_down_target(capacity: Capacity) -> Optional[Capacity]:
    tier, units = capacity.tier, capacity.units
    if units > 1:
        return Capacity(tier, units - 1)
    lower = previous_tier(tier)
    if lower is None:
        return None
    return Capacity(lower, lower.ladder_ceiling)


def get_scale_target(capacity: Capacity, direction: str) -> Optional[Capacity]:
    """Step one unit in `direction`, crossing tiers at the ladder ceiling.

    Returns None when the hub is already at the boundary for the direction.
    """
    _check_direction(direction)
    if direction == SCALE_UP:
        target = get_scale_up_target(capacity)
    else:
        target = get_scale_down_target(capacity)
    if target is not None and target.tier != capacity.tier:
        logging.info(
            "Crossing tier boundary: %s -> %s", capacity, target
        )
    return target
