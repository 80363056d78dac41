"""Write the console state to a timestamped YAML file."""

import logging
import os
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

import yaml

from mc_rcon_tui.models import ConsoleState

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "rcon_snapshot_{ts}.yaml"


def snapshot_document(
    state: ConsoleState, now: Optional[float] = None
) -> Dict[str, Any]:
    """Build the plain-data document written by ``export_snapshot``."""
    now = time.time() if now is None else now
    snapshot = state.snapshot
    document: Dict[str, Any] = {
        "exported": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now)),
        "server": {
            "version": snapshot.version_label,
            "slots": snapshot.slots_label,
            "ping_ms": snapshot.ping_ms,
            "motd": snapshot.motd,
            "time": snapshot.clock_label,
            "tps": list(snapshot.tps),
        },
        "players": list(state.players),
        "last_error": str(state.last_error) if state.last_error else None,
        "log": [entry.formatted() for entry in state.log],
    }
    if state.popup.shown:
        details = asdict(state.popup.snapshot)
        details["position"] = [
            details["position"]["x"],
            details["position"]["y"],
            details["position"]["z"],
        ]
        document["player"] = details
    return document


def export_snapshot(
    state: ConsoleState, directory: str = ".", now: Optional[float] = None
) -> str:
    """Write ``state`` to ``rcon_snapshot_<timestamp>.yaml`` and return the path.

    OSError from the write propagates to the caller.
    """
    now = time.time() if now is None else now
    ts = time.strftime("%Y%m%d_%H%M%S", time.localtime(now))
    path = os.path.join(directory, SNAPSHOT_FILENAME.format(ts=ts))

    document = snapshot_document(state, now)
    with open(path, "w") as f:
        yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Snapshot saved to {path}")
    return path
