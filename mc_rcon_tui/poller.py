"""Poll cycles: periodic server refresh and on-demand player detail fetches."""

import logging
from dataclasses import dataclass
from typing import Optional

from mc_rcon_tui.decoders import (
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
)
from mc_rcon_tui.models import PlayerSnapshot, ServerSnapshot, ServerStatus
from mc_rcon_tui.roster import RosterDiff, RosterTracker

logger = logging.getLogger(__name__)

# =============================================================================
# Command vocabulary
# =============================================================================

ROSTER_COMMAND = "list"
WORLD_TIME_COMMAND = "time query daytime"
PERFORMANCE_COMMAND = "tps"
VERSION_COMMAND = "version"

# (PlayerSnapshot field, entity data path, decoder), fetched in this order
DETAIL_FIELDS = (
    ("position", "Pos", decode_position),
    ("health", "Health", decode_health),
    ("food_level", "foodLevel", decode_food_level),
    ("xp_level", "XpLevel", decode_xp_level),
    ("xp_progress", "XpP", decode_xp_progress),
    ("dimension", "Dimension", decode_dimension),
    ("held_item", "SelectedItem", decode_held_item),
)


def entity_data_command(player: str, path: str) -> str:
    return f"data get entity {player} {path}"


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class PollResult:
    """A complete poll cycle, ready to be committed in one step."""

    snapshot: ServerSnapshot
    roster: RosterTracker
    diff: RosterDiff


@dataclass(frozen=True)
class DetailResult:
    """Outcome of a detail cycle for one player."""

    player: str
    online: bool
    snapshot: Optional[PlayerSnapshot] = None


# =============================================================================
# Poller
# =============================================================================


class Poller:
    """Issue the fixed refresh sequence and assemble a ServerSnapshot.

    The version label is requested once; a cycle that fails before it is
    decoded asks again on the next cycle. Errors propagate to the caller,
    which keeps the previously published snapshot.
    """

    def __init__(self, channel, status_probe=None):
        self.channel = channel
        self.status_probe = status_probe
        self._version_label: Optional[str] = None

    def poll(self, roster: RosterTracker) -> PollResult:
        players = decode_roster(self.channel.send(ROSTER_COMMAND))
        new_roster, roster_diff = roster.update(players)

        clock_label = decode_clock(self.channel.send(WORLD_TIME_COMMAND))
        tps = decode_tps(self.channel.send(PERFORMANCE_COMMAND))
        if self._version_label is None:
            self._version_label = decode_version(self.channel.send(VERSION_COMMAND))

        status = ServerStatus()
        if self.status_probe is not None:
            status = self.status_probe.probe()

        snapshot = ServerSnapshot(
            players=players,
            ping_ms=status.ping_ms,
            version_label=self._version_label or status.version_name,
            slots_label=status.slots_label if self.status_probe else "",
            motd=status.motd,
            clock_label=clock_label,
            tps=tps,
        )
        logger.debug(
            f"Poll cycle: {len(players)} online, +{len(roster_diff.joined)} "
            f"-{len(roster_diff.left)}"
        )
        return PollResult(snapshot=snapshot, roster=new_roster, diff=roster_diff)


# =============================================================================
# Detail Fetcher
# =============================================================================


class DetailFetcher:
    """Fetch and decode every popup field for one player.

    Steps short-circuit on the first failure and nothing is returned for a
    partially fetched player, so a snapshot is either complete or absent.
    """

    def __init__(self, channel):
        self.channel = channel

    def is_online(self, player: str) -> bool:
        return player in decode_roster(self.channel.send(ROSTER_COMMAND))

    def fetch(self, player: str) -> DetailResult:
        if not self.is_online(player):
            logger.info(f"{player} left before details were fetched")
            return DetailResult(player=player, online=False)

        values = {}
        for field_name, path, decoder in DETAIL_FIELDS:
            reply = self.channel.send(entity_data_command(player, path))
            values[field_name] = decoder(reply)
        return DetailResult(
            player=player, online=True, snapshot=PlayerSnapshot(name=player, **values)
        )

