"""OSC adapter sending messages over a UDP datagram endpoint."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import Optional, Sequence, Tuple

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from ..core import OscArgument

LOGGER = logging.getLogger(__name__)


class DatagramBindError(RuntimeError):
    """Raised when the outbound UDP socket cannot be bound."""


class _SenderProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: "OscSender") -> None:
        self._owner = owner

    def datagram_received(self, data: bytes, addr) -> None:
        # Send-only endpoint
        pass

    def error_received(self, exc: Exception) -> None:
        LOGGER.warning(
            "OSC datagram to %s:%s reported an error: %s",
            self._owner.host,
            self._owner.port,
            exc,
        )
        self._owner.error_count += 1

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            LOGGER.warning("OSC socket closed with error: %s", exc)


def _is_multicast(host: str) -> bool:
    try:
        return ipaddress.ip_address(host).is_multicast
    except ValueError:
        return False


def build_message(address: str, args: Sequence[OscArgument]) -> bytes:
    """Encode ``address`` and ``args`` as an OSC 1.0 message."""

    builder = OscMessageBuilder(address=address)
    for value in args:
        builder.add_arg(value)
    return builder.build().dgram


class OscSender:
    """Fire-and-forget OSC sender bound to an ephemeral local port."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        local_host: str = "0.0.0.0",
        local_port: int = 0,
        multicast_ttl: int = 2,
    ) -> None:
        self.host = host
        self.port = port
        self.local_host = local_host
        self.local_port = local_port
        self.multicast_ttl = multicast_ttl
        self.error_count = 0

        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def is_open(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        if self._transport is None:
            return None
        sockname = self._transport.get_extra_info("sockname")
        return (sockname[0], sockname[1]) if sockname else None

    async def open(self) -> None:
        """Bind the local socket.

        Raises:
            DatagramBindError: If the local address cannot be bound.
        """
        if self.is_open:
            return

        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _SenderProtocol(self),
                local_addr=(self.local_host, self.local_port),
                family=socket.AF_INET,
            )
        except OSError as exc:
            raise DatagramBindError(
                f"Unable to bind OSC socket on {self.local_host}:{self.local_port}: {exc}"
            ) from exc

        if _is_multicast(self.host):
            sock = transport.get_extra_info("socket")
            if sock is not None:
                sock.setsockopt(
                    socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.multicast_ttl
                )

        self._transport = transport
        LOGGER.info(
            "OSC UDP port ready (local=%s:%s, remote=%s:%s)",
            *(self.local_address or (self.local_host, self.local_port)),
            self.host,
            self.port,
        )

    def send(self, address: str, args: Sequence[OscArgument]) -> bool:
        """Encode and hand one message to the OS socket buffer.

        Failures are logged and reported through the return value only.
        """
        LOGGER.info("Sending OSC: %s %s", address, list(args))

        transport = self._transport
        if transport is None or transport.is_closing():
            LOGGER.warning("OSC sender not open; dropping message for %s", address)
            return False

        try:
            datagram = build_message(address, args)
            transport.sendto(datagram, (self.host, self.port))
        except (BuildError, OSError, ValueError, TypeError) as exc:
            LOGGER.warning("Failed to send OSC message %s: %s", address, exc)
            return False
        return True

    async def close(self) -> None:
        transport = self._transport
        self._transport = None
        if transport is not None and not transport.is_closing():
            transport.close()
            await asyncio.sleep(0)
            LOGGER.info("OSC UDP port closed")
