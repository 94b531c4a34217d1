"""Fakes shared by the test modules."""

import asyncio
import json
from typing import Any, Callable, List, Optional, Tuple

from aiohttp import web
from pythonosc.osc_message import OscMessage

def open_frame(ping_interval: int = 25000, ping_timeout: int = 20000) -> str:
    return "0" + json.dumps(
        {
            "sid": "engine-sid",
            "upgrades": [],
            "pingInterval": ping_interval,
            "pingTimeout": ping_timeout,
            "maxPayload": 1000000,
        }
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.01)


class FakeRelay:
    """In-process Socket.IO relay speaking the websocket transport only."""

    def __init__(self) -> None:
        self.attempts = 0
        self.connections = 0
        self.frames: List[str] = []
        self.refuse_connect = False
        self.skip_open = False
        self.open_frame = open_frame()
        self.url = ""
        self._sockets: List[web.WebSocketResponse] = []

    def events(self, name: str) -> List[Any]:
        found = []
        for frame in self.frames:
            if not frame.startswith("42"):
                continue
            decoded = json.loads(frame[2:])
            if decoded[0] == name:
                found.append(decoded[1] if len(decoded) > 1 else None)
        return found

    @property
    def active(self) -> Optional[web.WebSocketResponse]:
        for ws in reversed(self._sockets):
            if not ws.closed:
                return ws
        return None

    async def emit(self, event: str, payload: Any) -> None:
        ws = self.active
        assert ws is not None, "no connected client"
        await ws.send_str("42" + json.dumps([event, payload]))

    async def send_raw(self, frame: str) -> None:
        ws = self.active
        assert ws is not None, "no connected client"
        await ws.send_str(frame)

    async def drop_clients(self) -> None:
        for ws in list(self._sockets):
            if not ws.closed:
                await ws.close()

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.attempts += 1
        assert request.query.get("EIO") == "4"
        assert request.query.get("transport") == "websocket"

        if self.skip_open:
            await ws.receive()
            return ws

        await ws.send_str(self.open_frame)
        connect = await ws.receive()
        self.frames.append(connect.data)

        if self.refuse_connect:
            await ws.send_str('44{"message":"not authorized"}')
            await ws.close()
            return ws

        self.connections += 1
        self._sockets.append(ws)
        await ws.send_str('40{"sid":"socket-%d"}' % self.connections)

        async for message in ws:
            if isinstance(message.data, str):
                self.frames.append(message.data)
        return ws


class UdpReceiver(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.queue: asyncio.Queue[Tuple[bytes, Any]] = asyncio.Queue()
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr) -> None:
        self.queue.put_nowait((data, addr))

    @property
    def port(self) -> int:
        assert self.transport is not None
        return self.transport.get_extra_info("sockname")[1]

    async def next_message(self, timeout: float = 1.0) -> OscMessage:
        data, _ = await asyncio.wait_for(self.queue.get(), timeout=timeout)
        return OscMessage(data)


class RecordingSink:
    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: List[Tuple[str, tuple]] = []

    def send(self, address: str, args) -> bool:
        self.sent.append((address, tuple(args)))
        return self.succeed


class RecordingEmitter:
    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.emitted: List[Tuple[str, Any]] = []

    async def emit(self, event: str, payload: Any) -> bool:
        self.emitted.append((event, payload))
        return self.succeed
