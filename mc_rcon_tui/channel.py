"""Command channel (RCON) and server-list status probe.

Both wrap third-party clients and translate their failures into the
console's error taxonomy, so nothing above this module sees library
exceptions.
"""

import logging
from typing import Optional

from mcrcon import MCRcon, MCRconException
from mcstatus import JavaServer

from mc_rcon_tui.errors import ChannelError, ServerConnectionError
from mc_rcon_tui.models import ServerStatus

logger = logging.getLogger(__name__)

DEFAULT_RCON_PORT = 25575
DEFAULT_STATUS_PORT = 25565
DEFAULT_TIMEOUT = 5


class CommandChannel:
    """One shared RCON connection with at most one outstanding request."""

    def __init__(
        self,
        host: str,
        password: str,
        port: int = DEFAULT_RCON_PORT,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.address = f"{host}:{port}"
        self._client = MCRcon(host, password, port=port, timeout=timeout)
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self):
        """Open the connection and authenticate.

        Raises ServerConnectionError when the endpoint is unreachable or the
        password is rejected.
        """
        try:
            self._client.connect()
        except (MCRconException, OSError) as e:
            raise ServerConnectionError(self.address, str(e) or type(e).__name__) from e
        self._connected = True
        logger.info(f"Connected to RCON at {self.address}")

    def send(self, command: str) -> str:
        """Send one command and return its textual reply."""
        if not self._connected:
            raise ChannelError(command, "channel is closed")
        try:
            reply = self._client.command(command)
        except (MCRconException, OSError, UnicodeDecodeError) as e:
            raise ChannelError(command, str(e) or type(e).__name__) from e
        logger.debug(f"{command!r} -> {reply!r}")
        return reply

    def close(self):
        if not self._connected:
            return
        self._connected = False
        try:
            self._client.disconnect()
        except OSError as e:
            logger.debug(f"Error while closing RCON connection: {e}")
        logger.info(f"Closed RCON connection to {self.address}")

    def __enter__(self) -> "CommandChannel":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class StatusProbe:
    """Server-list ping reporting latency, version, slots and MOTD."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_STATUS_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        # Without an explicit port the lookup also honours SRV records
        self.address = host if port == DEFAULT_STATUS_PORT else f"{host}:{port}"
        self.timeout = timeout
        self._server: Optional[JavaServer] = None

    def probe(self) -> ServerStatus:
        """Ping the server once.

        Raises ChannelError when the server cannot be reached or answers
        with something that is not a status response.
        """
        try:
            if self._server is None:
                self._server = JavaServer.lookup(self.address, timeout=self.timeout)
            status = self._server.status()
        except (OSError, ValueError) as e:
            raise ChannelError("status ping", str(e) or type(e).__name__) from e
        return ServerStatus(
            ping_ms=int(status.latency),
            version_name=status.version.name,
            online=status.players.online,
            max_players=status.players.max,
            motd=status.motd.to_plain(),
        )
