"""Error taxonomy shared by the channel, decoders and console state machine."""

from enum import Enum


class ErrorKind(Enum):
    """Category of a recorded console error."""

    CONNECTION = "connection"
    DECODE_FAILURE = "decode_failure"
    CHANNEL = "channel"


class ConsoleError(Exception):
    """Base class for every error a poll or fetch cycle may record."""

    kind = ErrorKind.CHANNEL


class ServerConnectionError(ConsoleError):
    """The RCON endpoint could not be reached or rejected the credential."""

    kind = ErrorKind.CONNECTION

    def __init__(self, address: str, reason: str):
        super().__init__(f"cannot connect to {address}: {reason}")
        self.address = address
        self.reason = reason


class ChannelError(ConsoleError):
    """Sending a command or receiving its reply failed."""

    kind = ErrorKind.CHANNEL

    def __init__(self, command: str, reason: str):
        super().__init__(f"{command!r} failed: {reason}")
        self.command = command
        self.reason = reason


class DecodeFailure(ConsoleError):
    """A strict decoder rejected a reply that did not match its shape."""

    kind = ErrorKind.DECODE_FAILURE

    def __init__(self, raw: str, expected: str):
        shown = raw if len(raw) <= 60 else raw[:57] + "..."
        super().__init__(f"expected {expected}, got {shown!r}")
        self.raw = raw
        self.expected = expected
