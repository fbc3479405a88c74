"""HTTP collector that stores pings and simulates an unreliable server."""

import asyncio
import json
import logging
import sys

from aiohttp import web

from pingmon.config import DATA_PATH, CollectorSettings
from pingmon.failure_simulator import (
    FailureSimulator,
    Outcome,
    OutcomePolicy,
    SimulatedError,
    policy_from_name,
)
from pingmon.logging_config import configure_logging
from pingmon.models import PingData, ValidationError
from pingmon.statistics import CollectedStore

logger = logging.getLogger(__name__)


class CollectorServer:
    """Accepts PingData as POST JSON and keeps it in memory.

    Request flow:
    - Anything but POST /data is rejected with an empty 400
    - The body is buffered, validated and handed to the outcome policy
    - Any exception raised while handling becomes a 500 carrying its message
    - A HANG outcome never answers; the request is released when its client
      disconnects (with handler cancellation enabled) or the server shuts down

    All state is touched from the asyncio event loop only.
    """

    def __init__(
        self,
        policy: OutcomePolicy | None = None,
        store: CollectedStore | None = None,
    ):
        self.policy = policy if policy is not None else FailureSimulator()
        self.store = store if store is not None else CollectedStore()
        self._hung: set[asyncio.Future] = set()

    @property
    def hung_requests(self) -> int:
        return len(self._hung)

    def create_app(self) -> web.Application:
        """Build the aiohttp application serving this collector."""
        # Bodies are buffered whole, without a size cap
        app = web.Application(
            middlewares=[self._request_gate],
            client_max_size=sys.maxsize,
        )
        app.router.add_post(DATA_PATH, self.post_data)
        app.on_shutdown.append(self._on_shutdown)
        return app

    @web.middleware
    async def _request_gate(self, request: web.Request, handler):
        if request.method != "POST" or request.path_qs != DATA_PATH:
            logger.debug("Rejected request: %s %s", request.method, request.path_qs)
            return web.Response(status=400)

        try:
            return await handler(request)
        except Exception as e:
            logger.warning("Request failed: %s", e)
            return web.Response(status=500, text=str(e))

    async def post_data(self, request: web.Request) -> web.Response:
        """Validate one ping and let the outcome policy decide its fate."""
        if request.content_type != "application/json":
            raise ValidationError(
                "Expected Content-Type application/json, "
                f"got {request.headers.get('Content-Type')!r}"
            )

        body = await request.read()
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"Malformed JSON body: {e}") from e

        ping = PingData.from_payload(payload)
        outcome = self.policy.decide()

        if outcome is Outcome.ACCEPT:
            logger.info("Received ping %s", json.dumps(ping.to_payload()))
            self.store.append(ping)
            return web.Response(status=200, text="OK")

        if outcome is Outcome.ERROR:
            raise SimulatedError("Random internal error")

        logger.debug("Hanging request for pingId=%s", ping.ping_id)
        return await self._hang()

    async def _hang(self) -> web.Response:
        """Wait on a future nobody resolves; ends only by cancellation."""
        waiter = asyncio.get_running_loop().create_future()
        self._hung.add(waiter)
        try:
            return await waiter
        finally:
            self._hung.discard(waiter)

    def release_hung(self):
        """Cancel every hung request; their connections drop without a response."""
        if self._hung:
            logger.info("Dropping %d hung requests", len(self._hung))
        for waiter in list(self._hung):
            waiter.cancel()

    async def _on_shutdown(self, app: web.Application):
        self.release_hung()

    def print_statistics(self):
        summary = self.store.summary()
        print("Server ping statistics:", summary if summary is not None else "No data collected")


def main():
    """Run the collector until interrupted, then print its statistics."""
    configure_logging()

    try:
        settings = CollectorSettings.from_env()
        policy = policy_from_name(settings.outcome, seed=settings.seed)
    except ValueError as e:
        logger.error("Collector configuration invalid: %s", e)
        sys.exit(2)

    server = CollectorServer(policy=policy)
    logger.info("Server running at http://%s:%d/", settings.host, settings.port)

    try:
        web.run_app(
            server.create_app(),
            host=settings.host,
            port=settings.port,
            shutdown_timeout=0,
            handler_cancellation=True,
            print=None,
        )
    finally:
        server.print_statistics()


if __name__ == "__main__":
    main()
