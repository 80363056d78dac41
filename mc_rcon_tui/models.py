"""Typed values produced by the decoders and held by the console state."""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from mc_rcon_tui.errors import ConsoleError
from mc_rcon_tui.roster import RosterTracker

# =============================================================================
# Constants
# =============================================================================

# Poll cadence, in one-second ticks
DEFAULT_REFRESH_TICKS = 9

# Command field
COMMAND_CHAR_LIMIT = 200

# Smallest terminal the dashboard lays out in
MIN_WIDTH = 75
MIN_HEIGHT = 21

# Java edition names, optionally prefixed with "." by Bedrock bridges
PLAYER_NAME_PATTERN = re.compile(r"\.?\w{1,16}", re.ASCII)


# =============================================================================
# Telemetry
# =============================================================================


@dataclass(frozen=True)
class Vector3:
    """Position of an entity in world coordinates."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class ItemStack:
    """Item held in a player's selected hotbar slot."""

    id: str = ""
    count: int = 0
    is_empty: bool = False
    has_extra_data: bool = False

    @classmethod
    def empty(cls) -> "ItemStack":
        return cls(is_empty=True)


@dataclass(frozen=True)
class PlayerSnapshot:
    """Everything the player popup shows, fetched in one detail cycle."""

    name: str = ""
    position: Vector3 = field(default_factory=Vector3)
    health: float = 0.0
    food_level: int = 0
    xp_level: int = 0
    xp_progress: float = 0.0
    dimension: str = ""
    held_item: ItemStack = field(default_factory=ItemStack)


@dataclass(frozen=True)
class ServerSnapshot:
    """Server-wide state assembled by one successful poll cycle."""

    players: Tuple[str, ...] = ()
    ping_ms: int = 0
    version_label: str = ""
    slots_label: str = ""
    motd: str = ""
    clock_label: str = ""
    tps: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ServerStatus:
    """Result of a server-list status ping."""

    ping_ms: int = 0
    version_name: str = ""
    online: int = 0
    max_players: int = 0
    motd: str = ""

    @property
    def slots_label(self) -> str:
        return f"{self.online}/{self.max_players}"


@dataclass(frozen=True)
class LogEntry:
    """One line of the operator-facing log buffer."""

    timestamp: float
    text: str

    def formatted(self) -> str:
        """Return the entry as ``[HH:MM:SS] text`` in local time."""
        clock = time.strftime("%H:%M:%S", time.localtime(self.timestamp))
        return f"[{clock}] {self.text}"


# =============================================================================
# Console state
# =============================================================================


class Tab(Enum):
    """Dashboard tab holding keyboard focus."""

    PLAYERS = "players"
    COMMANDS = "cmds"

    def next(self) -> "Tab":
        """Return the tab after this one, wrapping around."""
        members = list(Tab)
        return members[(members.index(self) + 1) % len(members)]


class PlayerAction(Enum):
    """Actions offered by the player popup, each bound to one command."""

    KICK = ("kick", "dim")
    BAN = ("ban", "red")

    def __init__(self, label: str, accent: str):
        self.label = label
        self.accent = accent

    def build_command(self, player: str) -> str:
        """Return the command applying this action to ``player``.

        Raises ValueError when the name could smuggle extra arguments or
        another command into the substitution.
        """
        if not PLAYER_NAME_PATTERN.fullmatch(player):
            raise ValueError(
                f"refusing to {self.label} {player!r}: unexpected characters"
            )
        return f"{self.label} {player}"


DEFAULT_ACTIONS: Tuple[PlayerAction, ...] = (PlayerAction.KICK, PlayerAction.BAN)


@dataclass(frozen=True)
class PopupState:
    """Per-player detail popup; ``shown=False`` is the rest state."""

    shown: bool = False
    player: str = ""
    snapshot: PlayerSnapshot = field(default_factory=PlayerSnapshot)
    active_action_index: int = 0
    actions: Tuple[PlayerAction, ...] = DEFAULT_ACTIONS

    @property
    def selected_action(self) -> PlayerAction:
        return self.actions[self.active_action_index]


@dataclass(frozen=True)
class ConsoleState:
    """The single aggregate the event loop owns and the renderer reads."""

    snapshot: ServerSnapshot = field(default_factory=ServerSnapshot)
    roster: RosterTracker = field(default_factory=RosterTracker)
    active_tab: Tab = Tab.PLAYERS
    selected_player_index: int = 0
    popup: PopupState = field(default_factory=PopupState)
    command_input: str = ""
    log: Tuple[LogEntry, ...] = ()
    refresh_ticks: int = DEFAULT_REFRESH_TICKS
    ticks_until_refresh: int = DEFAULT_REFRESH_TICKS
    last_error: Optional[ConsoleError] = None
    width: int = 0
    height: int = 0
    ready: bool = False
    running: bool = True

    @classmethod
    def initial(
        cls,
        refresh_ticks: int = DEFAULT_REFRESH_TICKS,
        actions: Tuple[PlayerAction, ...] = DEFAULT_ACTIONS,
    ) -> "ConsoleState":
        return cls(
            refresh_ticks=refresh_ticks,
            ticks_until_refresh=refresh_ticks,
            popup=PopupState(actions=actions),
        )

    @property
    def players(self) -> Tuple[str, ...]:
        return self.roster.players

    @property
    def selected_player(self) -> Optional[str]:
        if not self.players:
            return None
        return self.players[self.selected_player_index]

    @property
    def input_focused(self) -> bool:
        """Return True while keystrokes are routed to the command field."""
        return self.active_tab is Tab.COMMANDS and not self.popup.shown

    @property
    def too_small(self) -> bool:
        return self.width < MIN_WIDTH or self.height < MIN_HEIGHT
