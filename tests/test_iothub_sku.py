import pytest

import iothub_sku as sku
from iothub_sku import SCALE_DOWN, SCALE_UP, Capacity

S1 = sku.get_tier("S1")
S2 = sku.get_tier("S2")
S3 = sku.get_tier("S3")


def test_get_tier_is_case_insensitive():
    """Category: Tiers | Resolve SKU names regardless of case and padding."""
    assert sku.get_tier(" s2 ") is S2
    assert sku.next_tier(S1) is S2
    assert sku.previous_tier(S1) is None
    assert sku.next_tier(S3) is None


def test_get_tier_rejects_unknown_sku():
    """Category: Tiers | Reject SKUs outside the standard tiers."""
    with pytest.raises(ValueError, match="Unsupported IoT Hub SKU"):
        sku.get_tier("F1")


def test_capacity_rejects_units_outside_tier_range():
    """Category: Tiers | Unit count must stay within 1..max for the tier."""
    with pytest.raises(ValueError):
        Capacity(S1, 0)
    with pytest.raises(ValueError):
        Capacity(S3, 11)
    assert str(Capacity(S3, 10)) == "S3-10"


def test_threshold_scale_up_uses_full_units():
    """Category: Threshold | Scale-up limit is allowance x units x percent."""
    assert sku.get_sku_unit_threshold(S1, 199, 1, SCALE_UP) == 796_000
    assert sku.get_sku_unit_threshold(S2, 3, 50, SCALE_UP) == 9_000_000
    assert sku.get_sku_unit_threshold(S3, 2, 100, SCALE_UP) == 600_000_000


def test_threshold_scale_down_drops_one_unit():
    """Category: Threshold | Scale-down limit measures one unit less."""
    assert sku.get_sku_unit_threshold(S1, 5, 90, SCALE_DOWN) == 1_440_000
    assert sku.get_sku_unit_threshold(S1, 1, 90, SCALE_DOWN) == 0
    assert sku.get_sku_unit_threshold(S3, 4, 10, SCALE_DOWN) == 90_000_000


def test_threshold_shared_first_unit_in_both_directions():
    """Category: Threshold | One unit of S2/S3 counts as ten units of the tier below, scaling up as well as down."""
    assert sku.get_sku_unit_threshold(S2, 1, 90, SCALE_DOWN) == 3_240_000
    assert sku.get_sku_unit_threshold(S2, 1, 100, SCALE_UP) == 4_000_000
    assert sku.get_sku_unit_threshold(S3, 1, 50, SCALE_DOWN) == 27_000_000
    assert sku.get_sku_unit_threshold(S1, 1, 100, SCALE_UP) == 400_000


def test_threshold_rejects_bad_percent_and_direction():
    """Category: Threshold | Reject percentages outside 0..100 and unknown directions."""
    with pytest.raises(ValueError, match="percent"):
        sku.get_sku_unit_threshold(S1, 2, 101, SCALE_UP)
    with pytest.raises(ValueError, match="percent"):
        sku.get_sku_unit_threshold(S1, 2, -1, SCALE_DOWN)
    with pytest.raises(ValueError, match="direction"):
        sku.get_sku_unit_threshold(S1, 2, 50, "sideways")


@pytest.mark.parametrize("direction", [SCALE_UP, SCALE_DOWN])
@pytest.mark.parametrize("tier_name", ["S1", "S2", "S3"])
def test_threshold_monotonic_in_percent_and_units(tier_name, direction):
    """Category: Threshold | Limit never decreases as percent or units grow."""
    tier = sku.get_tier(tier_name)
    by_percent = [
        sku.get_sku_unit_threshold(tier, 2, percent, direction)
        for percent in range(0, 101, 5)
    ]
    assert by_percent == sorted(by_percent)
    assert min(by_percent) >= 0

    by_units = [
        sku.get_sku_unit_threshold(tier, units, 75, direction)
        for units in range(2, tier.max_units + 1)
    ]
    assert by_units == sorted(by_units)


def test_should_scale_at_exact_limit():
    """Category: Trigger | Usage equal to the limit triggers in both directions."""
    assert sku.should_scale(100, 100, SCALE_DOWN)
    assert sku.should_scale(100, 100, SCALE_UP)
    assert sku.should_scale(99, 100, SCALE_DOWN)
    assert not sku.should_scale(101, 100, SCALE_DOWN)
    assert not sku.should_scale(99, 100, SCALE_UP)


def test_scale_up_steps_within_tier():
    """Category: Stepper | Scale up adds one unit below the ladder ceiling."""
    assert sku.get_scale_target(Capacity(S1, 1), SCALE_UP) == Capacity(S1, 2)
    assert sku.get_scale_target(Capacity(S2, 8), SCALE_UP) == Capacity(S2, 9)


def test_scale_up_promotes_at_ladder_ceiling():
    """Category: Stepper | Scale up from nine units moves to the next tier at one unit."""
    assert sku.get_scale_target(Capacity(S1, 9), SCALE_UP) == Capacity(S2, 1)
    assert sku.get_scale_target(Capacity(S2, 9), SCALE_UP) == Capacity(S3, 1)


def test_scale_up_top_tier_boundary():
    """Category: Stepper | S3 grows to ten units and then cannot step."""
    assert sku.get_scale_target(Capacity(S3, 9), SCALE_UP) == Capacity(S3, 10)
    assert sku.get_scale_target(Capacity(S3, 10), SCALE_UP) is None


def test_scale_up_past_ladder_ceiling_promotes():
    """Category: Stepper | Hubs provisioned past nine units move to the next tier at one unit."""
    assert sku.get_scale_target(Capacity(S1, 150), SCALE_UP) == Capacity(S2, 1)
    assert sku.get_scale_target(Capacity(S2, 10), SCALE_UP) == Capacity(S3, 1)


@pytest.mark.parametrize("tier_name", ["S1", "S2", "S3"])
def test_scale_up_from_tier_maximum(tier_name):
    """Category: Stepper | At its maximum a tier promotes to the next at one unit, the top tier cannot step."""
    tier = sku.get_tier(tier_name)
    higher = sku.next_tier(tier)
    for units in {tier.ladder_ceiling, tier.max_units}:
        target = sku.get_scale_target(Capacity(tier, units), SCALE_UP)
        if higher is None:
            assert target is None
        else:
            assert target == Capacity(higher, 1)


def test_scale_down_steps_within_tier():
    """Category: Stepper | Scale down removes one unit above one."""
    assert sku.get_scale_target(Capacity(S1, 2), SCALE_DOWN) == Capacity(S1, 1)
    assert sku.get_scale_target(Capacity(S2, 150), SCALE_DOWN) == Capacity(S2, 149)


def test_scale_down_demotes_to_nine_units():
    """Category: Stepper | Scale down from one unit restarts the lower tier at nine."""
    assert sku.get_scale_target(Capacity(S2, 1), SCALE_DOWN) == Capacity(S1, 9)
    assert sku.get_scale_target(Capacity(S3, 1), SCALE_DOWN) == Capacity(S2, 9)


def test_scale_down_minimum_tier_is_noop():
    """Category: Stepper | S1 with one unit cannot step further down."""
    assert sku.get_scale_target(Capacity(S1, 1), SCALE_DOWN) is None
