import pytest

from mc_rcon_tui.models import ServerStatus

ROSTER_REPLY = "There are 2 of a max of 20 players online: Alice, Bob"

SERVER_REPLIES = {
    "list": ROSTER_REPLY,
    "time query daytime": "The time is 6000",
    "tps": "§6TPS from last 1m, 5m, 15m: §a20.0, §a19.5, §a18.25",
    "version": (
        "This server is running Paper version 1.21.10-115-main@1a2b3c4 "
        "(MC: 1.21.10) (Implementing API version 1.21.10-R0.1-SNAPSHOT)"
    ),
}


def player_replies(name: str) -> dict:
    prefix = f"{name} has the following entity data: "
    return {
        f"data get entity {name} Pos": prefix + "[12.5d, 64.0d, -8.25d]",
        f"data get entity {name} Health": prefix + "18.5f",
        f"data get entity {name} foodLevel": prefix + "17",
        f"data get entity {name} XpLevel": prefix + "30",
        f"data get entity {name} XpP": prefix + "0.45f",
        f"data get entity {name} Dimension": prefix + '"minecraft:the_nether"',
        f"data get entity {name} SelectedItem": (
            prefix + '{count: 12, id: "minecraft:torch"}'
        ),
    }


class FakeChannel:
    """Scripted command channel; unknown commands reply with an empty string."""

    def __init__(self, replies=None):
        self.replies = dict(replies or {})
        self.sent = []

    def send(self, command: str) -> str:
        self.sent.append(command)
        reply = self.replies.get(command, "")
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeProbe:
    """Status probe returning a fixed status, or raising a fixed error."""

    def __init__(self, status=None, error=None):
        self.status = status or ServerStatus(
            ping_ms=42,
            version_name="Paper 1.21.10",
            online=2,
            max_players=20,
            motd="A Minecraft Server",
        )
        self.error = error
        self.calls = 0

    def probe(self) -> ServerStatus:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def channel():
    replies = dict(SERVER_REPLIES)
    replies.update(player_replies("Alice"))
    replies.update(player_replies("Bob"))
    return FakeChannel(replies)


@pytest.fixture
def probe():
    return FakeProbe()
