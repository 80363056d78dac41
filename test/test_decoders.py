import pytest

from mc_rcon_tui.decoders import (
    CLOCK_FALLBACK,
    DecoderPolicy,
    decode_clock,
    decode_dimension,
    decode_food_level,
    decode_health,
    decode_held_item,
    decode_position,
    decode_roster,
    decode_tps,
    decode_version,
    decode_xp_level,
    decode_xp_progress,
    strip_control_sequences,
)
from mc_rcon_tui.errors import DecodeFailure, ErrorKind
from mc_rcon_tui.models import ItemStack, Vector3

# =============================================================================
# Roster
# =============================================================================


def test_roster_keeps_order_and_duplicates():
    assert decode_roster("There are 4 players online: a, b, b, c") == (
        "a",
        "b",
        "b",
        "c",
    )


def test_roster_splits_at_first_colon_only():
    assert decode_roster("Online: a, b:c") == ("a", "b:c")


@pytest.mark.parametrize(
    "raw",
    [
        "There are 0 of a max of 20 players online:",
        "There are 0 of a max of 20 players online:   ",
        "no colon in this reply",
        "",
    ],
)
def test_roster_empty_or_malformed_is_empty(raw):
    assert decode_roster(raw) == ()


def test_roster_drops_empty_tokens():
    assert decode_roster("online: Alice, , Bob ,") == ("Alice", "Bob")


# =============================================================================
# Clock
# =============================================================================


@pytest.mark.parametrize(
    "ticks, label",
    [
        (0, "06:00 AM"),
        (6000, "12:00 PM"),
        (13500, "07:30 PM"),
        (18000, "12:00 AM"),
        (23999, "05:59 AM"),
        (24000, "06:00 AM"),
        (30000, "12:00 PM"),
    ],
)
def test_clock_labels(ticks, label):
    assert decode_clock(f"The time is {ticks}") == label


def test_clock_falls_back_on_garbage():
    assert decode_clock("Unknown command") == CLOCK_FALLBACK


# =============================================================================
# TPS
# =============================================================================


def test_tps_strips_color_tokens():
    raw = "§6TPS from last 1m, 5m, 15m: §a20.0, §a19.8, §e19.5"
    assert decode_tps(raw) == (20.0, 19.8, 19.5)


def test_tps_accepts_integers():
    assert decode_tps("TPS: 20, 20, 19") == (20.0, 20.0, 19.0)


@pytest.mark.parametrize("raw", ["TPS: 20.0, 19.8", "no averages here", ""])
def test_tps_short_reply_is_zero(raw):
    assert decode_tps(raw) == (0.0, 0.0, 0.0)


# =============================================================================
# Version
# =============================================================================


def test_version_label():
    raw = "This server is running Paper version 1.21.10-115-main@abc (MC: 1.21.10)"
    assert decode_version(raw) == "Paper 1.21.10"


def test_version_unknown_shape_is_empty():
    assert decode_version("Unknown or incomplete command") == ""


# =============================================================================
# Strict decoders
# =============================================================================


def test_position():
    raw = "Alice has the following entity data: [12.5d, 64.0d, -8.25d]"
    assert decode_position(raw) == Vector3(12.5, 64.0, -8.25)


@pytest.mark.parametrize(
    "raw",
    [
        "[12.5, 64.0, -8.25]",
        "[12.5d, 64.0d]",
        "No entity was found",
    ],
)
def test_position_rejects_other_shapes(raw):
    with pytest.raises(DecodeFailure) as exc_info:
        decode_position(raw)
    assert exc_info.value.kind is ErrorKind.DECODE_FAILURE
    assert exc_info.value.raw == raw


def test_suffix_numbers():
    assert decode_health("Alice has the following entity data: 18.5f") == 18.5
    assert decode_xp_progress("Alice has the following entity data: 0.45f") == 0.45
    assert decode_food_level("Alice has the following entity data: 17") == 17
    assert decode_xp_level("Alice has the following entity data: 30") == 30


def test_suffix_int_rejects_float():
    with pytest.raises(DecodeFailure):
        decode_food_level("Alice has the following entity data: 18.5f")


def test_suffix_float_rejects_missing_number():
    with pytest.raises(DecodeFailure):
        decode_health("No entity was found")


def test_dimension():
    raw = 'Alice has the following entity data: "minecraft:the_nether"'
    assert decode_dimension(raw) == "the_nether"


def test_dimension_rejects_unquoted():
    with pytest.raises(DecodeFailure):
        decode_dimension("Alice has the following entity data: the_nether")


@pytest.mark.parametrize(
    "raw",
    ["Found no elements matching SelectedItem", "  {}  "],
)
def test_held_item_empty_sentinels(raw):
    assert decode_held_item(raw) == ItemStack(is_empty=True)


def test_held_item():
    item = decode_held_item('{id:"minecraft:diamond_sword", count:1}')
    assert item == ItemStack(id="minecraft:diamond_sword", count=1)
    assert not item.is_empty
    assert not item.has_extra_data


def test_held_item_requires_id_and_count():
    with pytest.raises(DecodeFailure):
        decode_held_item('{id:"minecraft:diamond_sword"}')
    with pytest.raises(DecodeFailure):
        decode_held_item("{count: 3}")


# =============================================================================
# Policy
# =============================================================================


@pytest.mark.parametrize(
    "decoder", [decode_roster, decode_clock, decode_tps, decode_version]
)
def test_tolerant_policy(decoder):
    assert decoder.policy is DecoderPolicy.TOLERANT


@pytest.mark.parametrize(
    "decoder",
    [
        decode_position,
        decode_health,
        decode_food_level,
        decode_xp_level,
        decode_xp_progress,
        decode_dimension,
        decode_held_item,
    ],
)
def test_strict_policy(decoder):
    assert decoder.policy is DecoderPolicy.STRICT


def test_strip_control_sequences():
    raw = "§cError\x1b[31m: bad\x1b[0m\x07 input\n\tnext"
    assert strip_control_sequences(raw) == "Error: bad input\n\tnext"
