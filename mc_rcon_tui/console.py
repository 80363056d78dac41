"""Console state machine and the event loop that owns its state.

``transition(state, event)`` is pure: it returns the next ConsoleState and
the effects the loop must carry out. ConsoleRuntime executes those effects
against the channel, poller and detail fetcher and feeds each completion
back as an event before accepting the next external one, so transitions
never overlap.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Tuple

from mc_rcon_tui.decoders import strip_control_sequences
from mc_rcon_tui.errors import ChannelError, ConsoleError
from mc_rcon_tui.models import (
    COMMAND_CHAR_LIMIT,
    ConsoleState,
    LogEntry,
    PlayerSnapshot,
    PopupState,
    Tab,
)
from mc_rcon_tui.poller import DetailResult, PollResult

logger = logging.getLogger(__name__)

# =============================================================================
# Events
# =============================================================================


class Key(Enum):
    TAB = "tab"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    BACKSPACE = "backspace"
    ESCAPE = "esc"
    INTERRUPT = "ctrl+c"
    CLEAR_LOG = "ctrl+l"
    EXPORT = "ctrl+e"
    CHAR = "char"


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class KeyPress:
    key: Key
    char: str = ""


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class PollFinished:
    result: Optional[PollResult] = None
    error: Optional[ConsoleError] = None


@dataclass(frozen=True)
class DetailsFinished:
    player: str
    opening: bool = False
    result: Optional[DetailResult] = None
    error: Optional[ConsoleError] = None


@dataclass(frozen=True)
class CommandReplied:
    command: str
    reply: str
    error: Optional[ConsoleError] = None


@dataclass(frozen=True)
class ExportFinished:
    path: str = ""
    error: str = ""


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class RunPoll:
    pass


@dataclass(frozen=True)
class FetchDetails:
    player: str
    opening: bool = False


@dataclass(frozen=True)
class SendCommand:
    command: str


@dataclass(frozen=True)
class ExportSnapshot:
    pass


@dataclass(frozen=True)
class Quit:
    pass


NO_EFFECTS: tuple = ()

# Vim-style aliases used while the players list or popup has focus
_UP_CHARS = ("k",)
_DOWN_CHARS = ("j",)
_LEFT_CHARS = ("h",)
_RIGHT_CHARS = ("l",)


# =============================================================================
# Transition function
# =============================================================================


def append_log(state: ConsoleState, text: str, now: float) -> ConsoleState:
    """Return ``state`` with one log entry added, control sequences stripped."""
    entry = LogEntry(timestamp=now, text=strip_control_sequences(text))
    return replace(state, log=state.log + (entry,))


def transition(
    state: ConsoleState, event, clock: Callable[[], float] = time.time
) -> Tuple[ConsoleState, tuple]:
    """Return the state following ``event`` and the effects it requests.

    Every event is accepted in every state; events with nothing to do
    return the state unchanged and no effects.
    """
    if isinstance(event, Tick):
        return _on_tick(state)
    if isinstance(event, KeyPress):
        return _on_key(state, event, clock())
    if isinstance(event, Resize):
        return _on_resize(state, event)
    if isinstance(event, PollFinished):
        return _on_poll_finished(state, event, clock()), NO_EFFECTS
    if isinstance(event, DetailsFinished):
        return _on_details_finished(state, event, clock()), NO_EFFECTS
    if isinstance(event, CommandReplied):
        next_state = append_log(state, event.reply, clock())
        if event.error is not None:
            next_state = replace(next_state, last_error=event.error)
        return next_state, NO_EFFECTS
    if isinstance(event, ExportFinished):
        if event.error:
            text = f"Export failed: {event.error}"
        else:
            text = f"Snapshot saved to {event.path}"
        return append_log(state, text, clock()), NO_EFFECTS
    return state, NO_EFFECTS


def _on_tick(state: ConsoleState) -> Tuple[ConsoleState, tuple]:
    effects = []
    if state.popup.shown:
        effects.append(FetchDetails(state.popup.player))

    if state.ticks_until_refresh <= 0:
        effects.append(RunPoll())
        state = replace(state, ticks_until_refresh=state.refresh_ticks)
    else:
        state = replace(state, ticks_until_refresh=state.ticks_until_refresh - 1)
    return state, tuple(effects)


def _on_resize(state: ConsoleState, event: Resize) -> Tuple[ConsoleState, tuple]:
    first = not state.ready
    state = replace(state, width=event.width, height=event.height, ready=True)
    return state, (RunPoll(),) if first else NO_EFFECTS


def _on_key(
    state: ConsoleState, event: KeyPress, now: float
) -> Tuple[ConsoleState, tuple]:
    key = event.key

    if key in (Key.ESCAPE, Key.INTERRUPT):
        if state.popup.shown:
            return _close_popup(state), NO_EFFECTS
        return replace(state, running=False), (Quit(),)
    if key is Key.CLEAR_LOG:
        return replace(state, log=()), NO_EFFECTS
    if key is Key.EXPORT:
        return state, (ExportSnapshot(),)

    if state.popup.shown:
        return _on_popup_key(state, event, now)
    if key is Key.TAB:
        return replace(state, active_tab=state.active_tab.next()), NO_EFFECTS
    if state.active_tab is Tab.COMMANDS:
        return _on_command_key(state, event, now)
    return _on_players_key(state, event)


def _pressed(event: KeyPress, key: Key, chars: Tuple[str, ...]) -> bool:
    return event.key is key or (event.key is Key.CHAR and event.char in chars)


def _on_players_key(
    state: ConsoleState, event: KeyPress
) -> Tuple[ConsoleState, tuple]:
    count = len(state.players)
    if count == 0:
        return state, NO_EFFECTS

    step = 0
    if _pressed(event, Key.UP, _UP_CHARS):
        step = -1
    elif _pressed(event, Key.DOWN, _DOWN_CHARS):
        step = 1
    if step:
        index = (state.selected_player_index + step) % count
        return replace(state, selected_player_index=index), NO_EFFECTS

    if event.key is Key.ENTER:
        return state, (FetchDetails(state.selected_player, opening=True),)
    return state, NO_EFFECTS


def _on_popup_key(
    state: ConsoleState, event: KeyPress, now: float
) -> Tuple[ConsoleState, tuple]:
    popup = state.popup
    step = 0
    if _pressed(event, Key.LEFT, _LEFT_CHARS):
        step = -1
    elif _pressed(event, Key.RIGHT, _RIGHT_CHARS):
        step = 1
    if step:
        index = (popup.active_action_index + step) % len(popup.actions)
        popup = replace(popup, active_action_index=index)
        return replace(state, popup=popup), NO_EFFECTS

    if event.key is not Key.ENTER:
        return state, NO_EFFECTS

    action = popup.selected_action
    state = _close_popup(state)
    try:
        command = action.build_command(popup.player)
    except ValueError as e:
        return append_log(state, str(e), now), NO_EFFECTS
    return append_log(state, f"> {command}", now), (SendCommand(command),)


def _on_command_key(
    state: ConsoleState, event: KeyPress, now: float
) -> Tuple[ConsoleState, tuple]:
    if event.key is Key.ENTER:
        command = state.command_input
        if not command:
            return state, NO_EFFECTS
        state = append_log(state, f"> {command}", now)
        return replace(state, command_input=""), (SendCommand(command),)
    if event.key is Key.BACKSPACE:
        return replace(state, command_input=state.command_input[:-1]), NO_EFFECTS
    if event.key is Key.CHAR and event.char:
        text = (state.command_input + event.char)[:COMMAND_CHAR_LIMIT]
        return replace(state, command_input=text), NO_EFFECTS
    return state, NO_EFFECTS


def _close_popup(state: ConsoleState) -> ConsoleState:
    return replace(state, popup=replace(state.popup, shown=False))


def _on_poll_finished(
    state: ConsoleState, event: PollFinished, now: float
) -> ConsoleState:
    if event.error is not None:
        return replace(state, last_error=event.error)

    result = event.result
    for name in result.diff.joined:
        state = append_log(state, f"{name} joined the game", now)
    for name in result.diff.left:
        state = append_log(state, f"{name} left the game", now)

    count = len(result.roster)
    index = min(state.selected_player_index, count - 1) if count else 0
    return replace(
        state,
        snapshot=result.snapshot,
        roster=result.roster,
        selected_player_index=index,
        last_error=None,
    )


def _on_details_finished(
    state: ConsoleState, event: DetailsFinished, now: float
) -> ConsoleState:
    popup = state.popup
    if not event.opening and not (popup.shown and popup.player == event.player):
        # Popup closed or retargeted since the fetch was requested
        return state

    if event.error is not None:
        # An opening fetch that failed leaves the popup closed
        return replace(state, last_error=event.error)

    result = event.result
    if not result.online:
        state = replace(state, popup=replace(popup, shown=False))
        return append_log(state, f"{event.player} is no longer online", now)

    if event.opening:
        return replace(state, popup=_opened(popup, event.player, result.snapshot))
    return replace(state, popup=replace(popup, snapshot=result.snapshot))


def _opened(popup: PopupState, player: str, snapshot: PlayerSnapshot) -> PopupState:
    return replace(
        popup, shown=True, player=player, snapshot=snapshot, active_action_index=0
    )


# =============================================================================
# Event loop
# =============================================================================


class ConsoleRuntime:
    """Own the ConsoleState and run each event to completion.

    Effects are executed synchronously in the order they were requested;
    their completions are queued behind them and processed before
    ``dispatch`` returns.
    """

    def __init__(
        self,
        channel,
        poller,
        fetcher,
        state: Optional[ConsoleState] = None,
        exporter: Optional[Callable[[ConsoleState], str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.channel = channel
        self.poller = poller
        self.fetcher = fetcher
        self.state = state if state is not None else ConsoleState.initial()
        self.exporter = exporter
        self.clock = clock

    @property
    def running(self) -> bool:
        return self.state.running

    def dispatch(self, event) -> ConsoleState:
        pending = deque([event])
        while pending:
            current = pending.popleft()
            self.state, effects = transition(self.state, current, self.clock)
            for effect in effects:
                completion = self._execute(effect)
                if completion is not None:
                    pending.append(completion)
        return self.state

    def _execute(self, effect):
        if isinstance(effect, RunPoll):
            try:
                return PollFinished(result=self.poller.poll(self.state.roster))
            except ConsoleError as e:
                logger.warning(f"Poll cycle failed: {e}")
                return PollFinished(error=e)

        if isinstance(effect, FetchDetails):
            try:
                result = self.fetcher.fetch(effect.player)
            except ConsoleError as e:
                logger.warning(f"Detail fetch for {effect.player} failed: {e}")
                return DetailsFinished(effect.player, opening=effect.opening, error=e)
            return DetailsFinished(effect.player, opening=effect.opening, result=result)

        if isinstance(effect, SendCommand):
            try:
                return CommandReplied(effect.command, self.channel.send(effect.command))
            except ChannelError as e:
                logger.warning(f"Command failed: {e}")
                return CommandReplied(effect.command, "", error=e)

        if isinstance(effect, ExportSnapshot):
            if self.exporter is None:
                return ExportFinished(error="export is not available")
            try:
                return ExportFinished(path=self.exporter(self.state))
            except (OSError, ValueError) as e:
                logger.warning(f"Snapshot export failed: {e}")
                return ExportFinished(error=str(e))

        if isinstance(effect, Quit):
            logger.info("Quit requested")
        return None
