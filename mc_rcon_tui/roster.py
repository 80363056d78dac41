"""Roster tracking: join/leave detection across polling cycles."""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple


@dataclass(frozen=True)
class RosterDiff:
    """Players that appeared and disappeared between two roster replies."""

    joined: Tuple[str, ...] = ()
    left: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.joined or self.left)


def _unique(names: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    out: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            out.append(name)
    return tuple(out)


def diff(old: Sequence[str], new: Sequence[str]) -> RosterDiff:
    """Compare two rosters as sets.

    ``joined`` keeps the order of ``new`` and ``left`` the order of ``old``;
    repeated names are reported once.
    """
    old_set = set(old)
    new_set = set(new)
    return RosterDiff(
        joined=_unique(name for name in new if name not in old_set),
        left=_unique(name for name in old if name not in new_set),
    )


@dataclass(frozen=True)
class RosterTracker:
    """Last-known player list, replaced wholesale on every update."""

    players: Tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.players

    def __len__(self) -> int:
        return len(self.players)

    def update(self, new: Sequence[str]) -> Tuple["RosterTracker", RosterDiff]:
        """Return the tracker holding ``new`` and the diff from the current roster."""
        return RosterTracker(tuple(new)), diff(self.players, new)
