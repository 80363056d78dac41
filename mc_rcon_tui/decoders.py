"""Decoders turning raw RCON replies into typed values.

Every decoder takes one reply string and declares one of two policies:

- TOLERANT decoders (roster, clock, TPS, version) feed ambient dashboard
  telemetry. A reply that does not match degrades to a default value so the
  render loop never stalls on odd server output.
- STRICT decoders (position, health, food, XP, dimension, held item) feed
  the player popup. A reply that does not match raises DecodeFailure, which
  aborts the detail cycle so the popup never shows silently wrong data.

The declared policy is exposed as ``decoder.policy``.
"""

import functools
import logging
import re
from enum import Enum
from typing import Callable, Tuple

from mc_rcon_tui.errors import DecodeFailure
from mc_rcon_tui.models import ItemStack, Vector3

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

CLOCK_FALLBACK = "00:00 AM"
TICKS_PER_DAY = 24000
TICKS_PER_HOUR = 1000

# Section-sign color tokens, e.g. "§a"
_COLOR_TOKEN = re.compile(r"§.", re.DOTALL)
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

_CLOCK = re.compile(r"The time is (\d+)")
_TPS_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_VERSION = re.compile(r"running\s+(\w+)\s+version\s+([\d.]*\d)")

_NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?"
_POSITION = re.compile(rf"\[({_NUMBER})d, ({_NUMBER})d, ({_NUMBER})d\]")
_SUFFIX_FLOAT = re.compile(rf"(?<![\w.\-])({_NUMBER})[fFdD]?\s*$")
_SUFFIX_INT = re.compile(r"(?<![\w.\-])(-?\d+)[bBsSlL]?\s*$")
_DIMENSION = re.compile(r'"minecraft:([^"]+)"')
_ITEM_ID = re.compile(r'id:\s*"([^"]+)"')
_ITEM_COUNT = re.compile(r"count:\s*(\d+)")

EMPTY_ITEM_SENTINELS = ("Found no elements matching SelectedItem", "{}")


class DecoderPolicy(Enum):
    """How a decoder reacts to a reply it cannot match."""

    TOLERANT = "tolerant"
    STRICT = "strict"


def tolerant(default: Callable[[], object]):
    """Mark a decoder tolerant: DecodeFailure degrades to ``default()``."""

    def decorate(func):
        @functools.wraps(func)
        def wrapper(raw: str):
            try:
                return func(raw)
            except DecodeFailure as e:
                logger.debug(f"{func.__name__} fell back to default: {e}")
                return default()

        wrapper.policy = DecoderPolicy.TOLERANT
        return wrapper

    return decorate


def strict(func):
    """Mark a decoder strict: DecodeFailure propagates to the caller."""
    func.policy = DecoderPolicy.STRICT
    return func


def strip_control_sequences(text: str) -> str:
    """Remove color tokens, ANSI escapes and non-printing control characters."""
    text = _COLOR_TOKEN.sub("", text)
    text = _ANSI_ESCAPE.sub("", text)
    return _CONTROL_CHARS.sub("", text)


# =============================================================================
# Tolerant decoders
# =============================================================================


@tolerant(default=tuple)
def decode_roster(raw: str) -> Tuple[str, ...]:
    """Decode ``"<prefix>: name1, name2, ..."`` into the ordered player names.

    A reply without a colon and a reply listing nobody both decode to an
    empty tuple; the two cases cannot be told apart. Duplicates are kept.
    """
    _, sep, listing = raw.partition(":")
    if not sep:
        raise DecodeFailure(raw, "'<prefix>: <names>'")
    names = (token.strip() for token in listing.split(","))
    return tuple(name for name in names if name)


@tolerant(default=lambda: CLOCK_FALLBACK)
def decode_clock(raw: str) -> str:
    """Decode a daytime tick reply into a 12-hour clock label.

    Tick 0 is 06:00 AM and every 1000 ticks is one hour; values past one
    full day wrap around.
    """
    match = _CLOCK.search(raw)
    if match is None:
        raise DecodeFailure(raw, "'The time is <ticks>'")
    ticks = int(match.group(1)) % TICKS_PER_DAY
    hour = (ticks // TICKS_PER_HOUR + 6) % 24
    minutes = (ticks % TICKS_PER_HOUR) * 60 // TICKS_PER_HOUR

    period = "AM" if hour < 12 else "PM"
    hour12 = hour - 12 if hour > 12 else hour
    if hour12 == 0:
        hour12 = 12
    return f"{hour12:02d}:{minutes:02d} {period}"


@tolerant(default=lambda: (0.0, 0.0, 0.0))
def decode_tps(raw: str) -> Tuple[float, float, float]:
    """Decode the 1m, 5m and 15m TPS averages that follow the first colon."""
    clean = _COLOR_TOKEN.sub("", raw)
    _, sep, values = clean.partition(":")
    numbers = _TPS_NUMBER.findall(values) if sep else []
    if len(numbers) < 3:
        raise DecodeFailure(raw, "three TPS averages after ':'")
    return float(numbers[0]), float(numbers[1]), float(numbers[2])


@tolerant(default=str)
def decode_version(raw: str) -> str:
    """Decode ``"... running Paper version 1.21.10-..."`` into ``"Paper 1.21.10"``."""
    match = _VERSION.search(strip_control_sequences(raw))
    if match is None:
        raise DecodeFailure(raw, "'running <type> version <x.y.z>'")
    return f"{match.group(1)} {match.group(2)}"


# =============================================================================
# Strict decoders
# =============================================================================


@strict
def decode_position(raw: str) -> Vector3:
    """Decode an entity ``Pos`` reply of the form ``[<x>d, <y>d, <z>d]``."""
    match = _POSITION.search(raw)
    if match is None:
        raise DecodeFailure(raw, "'[<x>d, <y>d, <z>d]'")
    x, y, z = (float(group) for group in match.groups())
    return Vector3(x, y, z)


@strict
def decode_suffix_float(raw: str) -> float:
    """Decode a trailing float, optionally suffixed with a type marker (``20.0f``)."""
    match = _SUFFIX_FLOAT.search(raw)
    if match is None:
        raise DecodeFailure(raw, "trailing float")
    return float(match.group(1))


@strict
def decode_suffix_int(raw: str) -> int:
    """Decode a trailing integer, optionally suffixed with a type marker."""
    match = _SUFFIX_INT.search(raw)
    if match is None:
        raise DecodeFailure(raw, "trailing integer")
    return int(match.group(1))


# Entity data fields sharing the numeric shapes above
decode_health = decode_suffix_float
decode_xp_progress = decode_suffix_float
decode_food_level = decode_suffix_int
decode_xp_level = decode_suffix_int


@strict
def decode_dimension(raw: str) -> str:
    """Decode a ``"minecraft:<dimension>"`` literal into the dimension name."""
    match = _DIMENSION.search(raw)
    if match is None:
        raise DecodeFailure(raw, "'\"minecraft:<dimension>\"'")
    return match.group(1)


@strict
def decode_held_item(raw: str) -> ItemStack:
    """Decode a ``SelectedItem`` reply.

    Both sentinel replies mean the hand is empty. Enchantments, custom names
    and component data are not decoded, so ``has_extra_data`` stays False.
    """
    text = raw.strip()
    if EMPTY_ITEM_SENTINELS[0] in text or text == EMPTY_ITEM_SENTINELS[1]:
        return ItemStack.empty()

    id_match = _ITEM_ID.search(text)
    count_match = _ITEM_COUNT.search(text)
    if id_match is None or count_match is None:
        raise DecodeFailure(raw, "item with 'id' and 'count'")
    return ItemStack(id=id_match.group(1), count=int(count_match.group(1)))
