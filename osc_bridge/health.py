"""Health reporting utilities for osc-bridge."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional

from aiohttp import web

LOGGER = logging.getLogger(__name__)

CounterProvider = Callable[[], Mapping[str, int]]


@dataclass(slots=True)
class ComponentStatus:
    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }


class HealthReporter:
    """Tracks component statuses and traffic counters for the running bridge.

    Everything runs on the event loop thread, so plain dict updates suffice.
    """

    def __init__(self) -> None:
        self._status: Dict[str, ComponentStatus] = {}
        self._bridge_state: Optional[ComponentStatus] = None
        self._counters: Dict[str, CounterProvider] = {}

    def update(self, name: str, healthy: bool, detail: Optional[str] = None) -> None:
        self._status[name] = ComponentStatus(name=name, healthy=healthy, detail=detail)

    def set_bridge_state(self, state: str, *, healthy: bool) -> None:
        self._bridge_state = ComponentStatus(name="bridge", healthy=healthy, detail=state)

    def add_counters(self, name: str, provider: CounterProvider) -> None:
        self._counters[name] = provider

    def snapshot(self) -> Dict[str, object]:
        components = [status.as_dict() for status in self._status.values()]

        healthy = all(item["healthy"] for item in components)
        if self._bridge_state is not None and not self._bridge_state.healthy:
            healthy = False

        payload: Dict[str, object] = {
            "status": "ok" if healthy else "degraded",
            "components": components,
        }
        if self._bridge_state is not None:
            payload["bridgeState"] = {
                "state": self._bridge_state.detail,
                "healthy": self._bridge_state.healthy,
                "updatedAt": self._bridge_state.updated_at.isoformat(
                    timespec="seconds"
                ),
            }
        if self._counters:
            payload["counters"] = {
                name: dict(provider()) for name, provider in self._counters.items()
            }
        return payload


class HealthServer:
    """Minimal HTTP server exposing `/healthz` for status checks."""

    def __init__(self, reporter: HealthReporter, host: str, port: int) -> None:
        self._reporter = reporter
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)

        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info(
            "Health endpoint listening on http://%s:%s/healthz", self._host, self._port
        )

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = self._reporter.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)
