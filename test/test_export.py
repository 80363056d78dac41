import os
import time
from dataclasses import replace

import yaml

from mc_rcon_tui.errors import ChannelError
from mc_rcon_tui.export import export_snapshot, snapshot_document
from mc_rcon_tui.models import (
    ConsoleState,
    LogEntry,
    PlayerSnapshot,
    ServerSnapshot,
    Vector3,
)
from mc_rcon_tui.roster import RosterTracker

EXPORTED_AT = time.mktime((2025, 3, 14, 15, 9, 26, 0, 0, -1))


def sample_state(**changes) -> ConsoleState:
    state = replace(
        ConsoleState.initial(),
        snapshot=ServerSnapshot(
            players=("Alice", "Bob"),
            ping_ms=42,
            version_label="Paper 1.21.10",
            slots_label="2/20",
            motd="A Minecraft Server",
            clock_label="12:00 PM",
            tps=(20.0, 19.5, 18.25),
        ),
        roster=RosterTracker(("Alice", "Bob")),
        log=(LogEntry(EXPORTED_AT, "Bob joined the game"),),
    )
    return replace(state, **changes)


def test_export_writes_timestamped_yaml(tmp_path):
    path = export_snapshot(sample_state(), directory=str(tmp_path), now=EXPORTED_AT)

    assert os.path.basename(path) == "rcon_snapshot_20250314_150926.yaml"
    with open(path) as f:
        document = yaml.safe_load(f)

    assert document["players"] == ["Alice", "Bob"]
    assert document["server"]["version"] == "Paper 1.21.10"
    assert document["server"]["tps"] == [20.0, 19.5, 18.25]
    assert document["log"] == ["[15:09:26] Bob joined the game"]
    assert document["last_error"] is None
    assert "player" not in document


def test_export_includes_open_popup_and_error():
    popup = replace(
        ConsoleState.initial().popup,
        shown=True,
        player="Alice",
        snapshot=PlayerSnapshot(name="Alice", position=Vector3(1.0, 64.0, -2.5)),
    )
    error = ChannelError("list", "timed out")
    document = snapshot_document(sample_state(popup=popup, last_error=error))

    assert document["player"]["name"] == "Alice"
    assert document["player"]["position"] == [1.0, 64.0, -2.5]
    assert document["player"]["held_item"]["is_empty"] is False
    assert document["last_error"] == "'list' failed: timed out"
