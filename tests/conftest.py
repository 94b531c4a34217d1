import asyncio

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from helpers import FakeRelay, UdpReceiver


@pytest_asyncio.fixture
async def relay_server():
    """Socket.IO relay running in-process on a random port."""
    relay = FakeRelay()
    app = web.Application()
    app.router.add_get("/socket.io/", relay.handler)

    server = TestServer(app)
    await server.start_server()
    relay.url = str(server.make_url("/"))
    try:
        yield relay
    finally:
        await relay.drop_clients()
        await server.close()


@pytest_asyncio.fixture
async def udp_receiver():
    """Loopback UDP socket collecting OSC datagrams."""
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        UdpReceiver, local_addr=("127.0.0.1", 0)
    )
    try:
        yield protocol
    finally:
        transport.close()
