#!/usr/bin/env python3
"""
Minecraft RCON Console - A terminal admin console for Minecraft servers.

Uses curses (standard library) for the terminal interface.
Falls back to simple text mode when no TTY is available.

This tool provides a live view of:
- Server version, slots, ping, world time, TPS and MOTD
- Online players, with join/leave events in the log
- Per-player details (position, health, food, XP, dimension, held item)
- A free-form command line with the server's replies

Player actions (kick, ban) are run from the player popup.
"""

import argparse
import curses
import logging
import os
import shutil
import signal
import sys
import textwrap
import time
from typing import List, Optional

from mc_rcon_tui import __version__
from mc_rcon_tui.channel import (
    DEFAULT_RCON_PORT,
    DEFAULT_STATUS_PORT,
    DEFAULT_TIMEOUT,
    CommandChannel,
    StatusProbe,
)
from mc_rcon_tui.console import ConsoleRuntime, Key, KeyPress, Resize, Tick
from mc_rcon_tui.errors import ServerConnectionError
from mc_rcon_tui.export import export_snapshot
from mc_rcon_tui.models import (
    DEFAULT_REFRESH_TICKS,
    MIN_HEIGHT,
    MIN_WIDTH,
    ConsoleState,
    LogEntry,
    PlayerAction,
    PlayerSnapshot,
    Tab,
)
from mc_rcon_tui.poller import DetailFetcher, Poller

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# UI refresh
CURSES_REFRESH_MS = 200
TICK_INTERVAL = 1.0
SIMPLE_MODE_REFRESH_INTERVAL = 1.0

# Popup bars
MAX_HEALTH = 20.0
MAX_FOOD = 20
BAR_WIDTH = 20

# Fixed side column width in the dashboard
SIDE_PANEL_WIDTH = 28

KEY_HINTS = "[esc] Quit | [tab] Switch tabs | [ctrl+l] Clear logs | [ctrl+e] Export"
POPUP_HINTS = "[</>] Choose | [enter] Run | [esc] Close"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Raw key codes not exposed as curses constants
_KEY_TAB = 9
_KEY_ESCAPE = 27
_KEY_CTRL_C = 3
_KEY_CTRL_E = 5
_KEY_CTRL_L = 12
_ENTER_CODES = (10, 13, curses.KEY_ENTER)
_BACKSPACE_CODES = (8, 127, curses.KEY_BACKSPACE)
_ARROW_KEYS = {
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_LEFT: Key.LEFT,
    curses.KEY_RIGHT: Key.RIGHT,
}


# =============================================================================
# Formatting helpers
# =============================================================================


def translate_key(code: int) -> Optional[KeyPress]:
    """Map a curses ``getch`` code to a KeyPress, or None when it is unbound."""
    if code == _KEY_TAB:
        return KeyPress(Key.TAB)
    if code in _ENTER_CODES:
        return KeyPress(Key.ENTER)
    if code in _BACKSPACE_CODES:
        return KeyPress(Key.BACKSPACE)
    if code == _KEY_ESCAPE:
        return KeyPress(Key.ESCAPE)
    if code == _KEY_CTRL_C:
        return KeyPress(Key.INTERRUPT)
    if code == _KEY_CTRL_L:
        return KeyPress(Key.CLEAR_LOG)
    if code == _KEY_CTRL_E:
        return KeyPress(Key.EXPORT)
    if code in _ARROW_KEYS:
        return KeyPress(_ARROW_KEYS[code])
    if 32 <= code < 127:
        return KeyPress(Key.CHAR, chr(code))
    return None


def ascii_bar(fraction: float, width: int) -> str:
    """Render ``fraction`` (clamped to 0..1) as a ``#``/``-`` bar."""
    fraction = max(0.0, min(1.0, fraction))
    filled = int(round(fraction * width))
    return "#" * filled + "-" * (width - filled)


def format_tps(tps) -> str:
    return ", ".join(f"{value:.1f}" for value in tps)


def format_held_item(snapshot: PlayerSnapshot) -> str:
    item = snapshot.held_item
    if item.is_empty or not item.id:
        return "nothing"
    return f"{item.id} x{item.count}"


def wrap_log(entries: List[LogEntry], width: int) -> List[str]:
    """Word-wrap formatted log entries to ``width`` columns."""
    lines: List[str] = []
    for entry in entries:
        for part in entry.formatted().splitlines() or [""]:
            lines.extend(textwrap.wrap(part, max(1, width)) or [""])
    return lines


def render_text(state: ConsoleState) -> str:
    """Render the plain-text dashboard used by simple mode and ``--once``."""
    snapshot = state.snapshot
    lines = []
    lines.append("=" * 70)
    lines.append(f" MINECRAFT RCON CONSOLE v{__version__}")
    lines.append("=" * 70)

    lines.append("\n[SERVER]")
    lines.append(f"  Ver:   {snapshot.version_label or '---'}")
    lines.append(f"  Slots: {snapshot.slots_label or '---'}")
    lines.append(f"  Ping:  {snapshot.ping_ms}ms")
    lines.append(f"  Time:  {snapshot.clock_label or '---'}")
    lines.append(f"  TPS:   {format_tps(snapshot.tps)}")
    lines.append(f"  MOTD:  {snapshot.motd or '---'}")

    lines.append(f"\n[PLAYERS] ({len(state.players)})")
    if not state.players:
        lines.append("  No players online")
    for name in state.players:
        lines.append(f"  {name}")

    if state.log:
        lines.append("\n[LOG] (last 10)")
        for entry in state.log[-10:]:
            lines.append(f"  {entry.formatted()}")

    lines.append("\n" + "=" * 70)
    if state.last_error is not None:
        lines.append(f"Error: {state.last_error}")
    else:
        lines.append(f"Updated: {time.strftime('%H:%M:%S')}")
    return "\n".join(lines)


# =============================================================================
# TUI Display
# =============================================================================


class AdminTUI:
    """Curses-based TUI over a ConsoleRuntime."""

    # Color pair indices
    COLOR_OK = 1
    COLOR_WARN = 2
    COLOR_CRIT = 3
    COLOR_INFO = 4

    def __init__(self, runtime: ConsoleRuntime):
        self.runtime = runtime
        self.running = True
        self.stdscr = None
        self._interrupted = False

    @property
    def state(self) -> ConsoleState:
        return self.runtime.state

    def safe_addstr(self, y: int, x: int, text: str, attr=0):
        """Safely add string, handling screen boundaries."""
        if self.stdscr is None:
            return
        max_y, max_x = self.stdscr.getmaxyx()
        if y < 0 or y >= max_y or x < 0:
            return
        available = max_x - x - 1
        if available <= 0:
            return
        try:
            self.stdscr.addstr(y, x, text[:available], attr)
        except curses.error:
            pass

    def draw_box(self, y: int, x: int, h: int, w: int, title: str = "", attr=0):
        """Draw a box with optional title using ASCII characters."""
        self.safe_addstr(y, x, "+" + "-" * (w - 2) + "+", attr)
        if title:
            self.safe_addstr(y, x + 2, f" {title} ", curses.A_BOLD | attr)
        for i in range(1, h - 1):
            self.safe_addstr(y + i, x, "|", attr)
            self.safe_addstr(y + i, x + w - 1, "|", attr)
        self.safe_addstr(y + h - 1, x, "+" + "-" * (w - 2) + "+", attr)

    def focus_attr(self, focused: bool) -> int:
        if focused:
            return curses.color_pair(self.COLOR_INFO) | curses.A_BOLD
        return 0

    def tps_attr(self, tps: float) -> int:
        if tps >= 18.0:
            return curses.color_pair(self.COLOR_OK) | curses.A_BOLD
        elif tps >= 15.0:
            return curses.color_pair(self.COLOR_WARN) | curses.A_BOLD
        return curses.color_pair(self.COLOR_CRIT) | curses.A_BOLD

    def accent_attr(self, action: PlayerAction) -> int:
        if action.accent == "red":
            return curses.color_pair(self.COLOR_CRIT) | curses.A_BOLD
        return curses.A_DIM

    def draw_header(self, max_x: int):
        """Draw the title bar with the refresh countdown."""
        state = self.state
        left = f" v{__version__} | Minecraft RCON Console"
        right = f"Refresh in: {state.ticks_until_refresh}s "
        bar = left + right.rjust(max_x - len(left))
        self.safe_addstr(0, 0, bar, curses.A_REVERSE | curses.A_BOLD)

    def draw_info_panel(self, y: int, x: int, w: int, h: int):
        """Draw server-wide telemetry from the last poll cycle."""
        snapshot = self.state.snapshot
        self.draw_box(y, x, h, w, "Server")
        rows = [
            ("Ver", snapshot.version_label or "---"),
            ("Slots", snapshot.slots_label or "---"),
            ("Ping", f"{snapshot.ping_ms}ms"),
            ("Time", snapshot.clock_label or "---"),
            ("TPS", format_tps(snapshot.tps)),
            ("MOTD", snapshot.motd.replace("\n", " ") or "---"),
        ]
        for i, (label, value) in enumerate(rows[: h - 2]):
            row = y + 1 + i
            self.safe_addstr(row, x + 2, f"{label}:", curses.A_BOLD)
            attr = self.tps_attr(snapshot.tps[0]) if label == "TPS" else 0
            self.safe_addstr(row, x + 9, value[: w - 11], attr)

    def draw_players_panel(self, y: int, x: int, w: int, h: int):
        """Draw the roster with the current selection."""
        state = self.state
        focused = state.active_tab is Tab.PLAYERS and not state.popup.shown
        title = f"Players ({len(state.players)})"
        self.draw_box(y, x, h, w, title, self.focus_attr(focused))

        visible = h - 2
        if not state.players:
            self.safe_addstr(y + 1, x + 2, "No players online", curses.A_DIM)
            return

        start = max(0, state.selected_player_index - visible + 1)
        for i, name in enumerate(state.players[start : start + visible]):
            index = start + i
            selected = index == state.selected_player_index
            marker = ">" if selected else " "
            attr = curses.A_REVERSE if selected and focused else 0
            self.safe_addstr(y + 1 + i, x + 2, f"{marker} {name}"[: w - 4], attr)

    def draw_log_panel(self, y: int, x: int, w: int, h: int):
        """Draw the log buffer, newest line anchored to the bottom."""
        self.draw_box(y, x, h, w, "Log")
        visible = h - 2
        lines = wrap_log(self.state.log, w - 4)[-visible:] if visible > 0 else []
        offset = visible - len(lines)
        for i, line in enumerate(lines):
            self.safe_addstr(y + 1 + offset + i, x + 2, line)

    def draw_input(self, y: int, x: int, w: int):
        """Draw the command field."""
        state = self.state
        focused = state.input_focused
        self.draw_box(y, x, 3, w, "Command", self.focus_attr(focused))

        room = w - 6
        text = state.command_input[-room:] if room > 0 else ""
        if focused:
            self.safe_addstr(y + 1, x + 2, f"> {text}_")
        elif text:
            self.safe_addstr(y + 1, x + 2, f"> {text}", curses.A_DIM)
        else:
            self.safe_addstr(y + 1, x + 2, "[tab] to type a command", curses.A_DIM)

    def draw_footer(self, max_y: int, max_x: int):
        """Draw the last error, or the key hints when there is none."""
        error = self.state.last_error
        if error is not None:
            text = f" Error: {error} "
            attr = curses.color_pair(self.COLOR_CRIT) | curses.A_BOLD
        else:
            text = f" {KEY_HINTS} "
            attr = curses.A_REVERSE
        self.safe_addstr(max_y - 1, 0, text.ljust(max_x), attr)

    def draw_player_popup(self):
        """Draw a centered dialog with the selected player's details."""
        if self.stdscr is None:
            return
        max_y, max_x = self.stdscr.getmaxyx()
        popup = self.state.popup
        details = popup.snapshot

        box_w = min(max_x - 4, 56)
        box_h = 14
        box_y = max(0, max_y // 2 - box_h // 2)
        box_x = max(0, max_x // 2 - box_w // 2)

        # Clear the area behind the dialog
        for i in range(box_h):
            self.safe_addstr(box_y + i, box_x, " " * box_w)

        self.draw_box(box_y, box_x, box_h, box_w, f"Player: {popup.player}")

        pos = details.position
        progress = int(round(details.xp_progress * 100))
        rows = [
            ("Position", f"{pos.x:.1f}, {pos.y:.1f}, {pos.z:.1f}", 0),
            (
                "Health",
                f"[{ascii_bar(details.health / MAX_HEALTH, BAR_WIDTH)}] "
                f"{details.health:.1f}",
                curses.color_pair(self.COLOR_CRIT),
            ),
            (
                "Food",
                f"[{ascii_bar(details.food_level / MAX_FOOD, BAR_WIDTH)}] "
                f"{details.food_level}",
                curses.color_pair(self.COLOR_WARN),
            ),
            ("XP", f"Level {details.xp_level} ({progress}%)", 0),
            ("Dimension", details.dimension or "---", 0),
            ("Holding", format_held_item(details), 0),
        ]

        row = box_y + 2
        for label, value, attr in rows:
            self.safe_addstr(row, box_x + 3, f"{label}:", curses.A_BOLD)
            self.safe_addstr(row, box_x + 15, value[: box_w - 17], attr)
            row += 1

        row += 1
        col = box_x + 3
        for index, action in enumerate(popup.actions):
            label = f"[ {action.label} ]"
            attr = self.accent_attr(action)
            if index == popup.active_action_index:
                attr |= curses.A_REVERSE
            self.safe_addstr(row, col, label, attr)
            col += len(label) + 2

        self.safe_addstr(box_y + box_h - 2, box_x + 3, POPUP_HINTS, curses.A_DIM)

    def draw_too_small(self, max_y: int, max_x: int):
        text = f"Window too small ({max_x}x{max_y}, need {MIN_WIDTH}x{MIN_HEIGHT})"
        x = max(0, max_x // 2 - len(text) // 2)
        self.safe_addstr(max_y // 2, x, text, curses.color_pair(self.COLOR_WARN))

    def draw(self):
        """Lay out and draw every panel for the current state."""
        max_y, max_x = self.stdscr.getmaxyx()
        if self.state.too_small:
            self.draw_too_small(max_y, max_x)
            return

        self.draw_header(max_x)

        body_top = 1
        body_h = max_y - 2
        info_h = 8
        self.draw_info_panel(body_top, 0, SIDE_PANEL_WIDTH, info_h)
        self.draw_players_panel(
            body_top + info_h, 0, SIDE_PANEL_WIDTH, body_h - info_h
        )

        main_x = SIDE_PANEL_WIDTH
        main_w = max_x - SIDE_PANEL_WIDTH
        self.draw_log_panel(body_top, main_x, main_w, body_h - 3)
        self.draw_input(body_top + body_h - 3, main_x, main_w)

        self.draw_footer(max_y, max_x)

        if self.state.popup.shown:
            self.draw_player_popup()

    def _deliver_interrupt(self) -> bool:
        """Feed a pending SIGINT to the state machine as the interrupt key."""
        if not self._interrupted:
            return False
        self._interrupted = False
        self.runtime.dispatch(KeyPress(Key.INTERRUPT))
        return True

    def run_curses(self, stdscr):
        """Run the main curses loop."""
        self.stdscr = stdscr
        curses.curs_set(0)  # Hide cursor
        stdscr.nodelay(True)  # Non-blocking input
        stdscr.timeout(CURSES_REFRESH_MS)

        # Initialize color pairs
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(self.COLOR_OK, curses.COLOR_GREEN, -1)
        curses.init_pair(self.COLOR_WARN, curses.COLOR_YELLOW, -1)
        curses.init_pair(self.COLOR_CRIT, curses.COLOR_RED, -1)
        curses.init_pair(self.COLOR_INFO, curses.COLOR_CYAN, -1)

        # First resize marks the console ready and runs the initial poll
        max_y, max_x = stdscr.getmaxyx()
        self.runtime.dispatch(Resize(max_x, max_y))
        next_tick = time.monotonic() + TICK_INTERVAL

        while self.running and self.runtime.running:
            try:
                self._deliver_interrupt()

                # Use erase() instead of clear() to avoid screen flicker
                stdscr.erase()
                self.draw()
                stdscr.refresh()

                key = stdscr.getch()
                if key == curses.KEY_RESIZE:
                    max_y, max_x = stdscr.getmaxyx()
                    self.runtime.dispatch(Resize(max_x, max_y))
                elif key != -1:
                    press = translate_key(key)
                    if press is not None:
                        self.runtime.dispatch(press)

                now = time.monotonic()
                if now >= next_tick:
                    self.runtime.dispatch(Tick())
                    next_tick = now + TICK_INTERVAL

            except curses.error:
                pass

    def run_simple(self):
        """Run simple text output mode for non-TTY environments."""
        print("MINECRAFT RCON CONSOLE - Simple Mode (no TTY detected)")
        print("=" * 70)
        print("Press Ctrl+C to exit\n")

        size = shutil.get_terminal_size((MIN_WIDTH, MIN_HEIGHT))
        self.runtime.dispatch(Resize(size.columns, size.lines))

        last_render = ""
        while self.running and self.runtime.running:
            text = render_text(self.state)
            # Only reprint when something other than the clock line changed
            body = text.rsplit("\n", 1)[0]
            if body != last_render:
                print(text, flush=True)
                last_render = body

            time.sleep(SIMPLE_MODE_REFRESH_INTERVAL)
            if not self._deliver_interrupt():
                self.runtime.dispatch(Tick())

    def run_once(self) -> int:
        """Run one poll cycle, print the dashboard and return an exit status."""
        self.runtime.dispatch(Resize(MIN_WIDTH, MIN_HEIGHT))
        print(render_text(self.state))
        return 1 if self.state.last_error is not None else 0

    def run(self):
        """Run the TUI - uses curses if TTY available, otherwise simple text."""
        if os.isatty(sys.stdout.fileno()):
            # Esc should close the popup without the default one-second delay
            os.environ.setdefault("ESCDELAY", "25")
            try:
                curses.wrapper(self.run_curses)
            except curses.error as e:
                logger.warning(f"Curses error: {e}, falling back to simple mode")
                print(f"Curses error: {e}, falling back to simple mode")
                self.run_simple()
        else:
            self.run_simple()

    def interrupt(self):
        """Queue an interrupt key press; delivered on the next loop pass."""
        self._interrupted = True

    def stop(self):
        """Stop the TUI."""
        self.running = False


# =============================================================================
# Main
# =============================================================================


def _refresh_ticks(value: str) -> int:
    ticks = int(value)
    if ticks < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {ticks}")
    return ticks


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Minecraft RCON admin console")
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Server host name or address (default: localhost).",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_RCON_PORT,
        help=f"RCON port (default: {DEFAULT_RCON_PORT}).",
    )
    parser.add_argument(
        "--password",
        type=str,
        default=None,
        help="RCON password. Falls back to the RCON_PASSWORD environment variable.",
    )
    parser.add_argument(
        "--status-port",
        type=int,
        default=DEFAULT_STATUS_PORT,
        help=f"Server list ping port (default: {DEFAULT_STATUS_PORT}).",
    )
    parser.add_argument(
        "--no-status",
        action="store_true",
        default=False,
        help="Skip the server list ping; ping, slots and MOTD stay empty.",
    )
    parser.add_argument(
        "-r",
        "--refresh",
        type=_refresh_ticks,
        default=DEFAULT_REFRESH_TICKS,
        metavar="TICKS",
        help=f"Seconds between poll cycles (default: {DEFAULT_REFRESH_TICKS}).",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        metavar="SECS",
        help=f"Network timeout in seconds (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Write diagnostic logging to this file.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostic log level (default: INFO).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run one poll cycle, print the dashboard and exit.",
    )
    return parser.parse_args(argv)


def configure_logging(log_file: Optional[str], level: str = "INFO"):
    """Send diagnostic logging to ``log_file``; without one nothing is written."""
    if not log_file:
        return
    logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT)


def main(args=None):
    """Run the main entry point."""
    cli_args = parse_args(args)
    configure_logging(cli_args.log_file, cli_args.log_level)

    password = cli_args.password or os.environ.get("RCON_PASSWORD", "")
    if not password:
        print(
            "Error: no RCON password given (use --password or RCON_PASSWORD)",
            file=sys.stderr,
        )
        sys.exit(1)

    channel = CommandChannel(
        cli_args.host, password, port=cli_args.port, timeout=cli_args.timeout
    )
    try:
        channel.connect()
    except ServerConnectionError as e:
        logger.error(f"Startup failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    probe = None
    if not cli_args.no_status:
        probe = StatusProbe(
            cli_args.host, port=cli_args.status_port, timeout=cli_args.timeout
        )

    runtime = ConsoleRuntime(
        channel,
        Poller(channel, probe),
        DetailFetcher(channel),
        state=ConsoleState.initial(refresh_ticks=cli_args.refresh),
        exporter=export_snapshot,
    )
    tui = AdminTUI(runtime)
    logger.info(f"Console started for {channel.address} (refresh {cli_args.refresh}s)")

    try:
        if cli_args.once:
            sys.exit(tui.run_once())

        # SIGINT goes through the state machine so it can close the popup first
        def interrupt_handler(sig, frame):
            tui.interrupt()

        def terminate_handler(sig, frame):
            tui.stop()

        signal.signal(signal.SIGINT, interrupt_handler)
        signal.signal(signal.SIGTERM, terminate_handler)

        tui.run()
    finally:
        tui.stop()
        channel.close()


if __name__ == "__main__":
    main()
