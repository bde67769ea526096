"""
webserver.py - HTTP status endpoints.

Routes:
    GET /           liveness message
    GET /status     username, health, food, position, mining flag
    GET /inventory  [{name, count}, ...]

The bot runs on plain threads, so the aiohttp application gets its own
event loop on a daemon thread and lives for the whole process, across
reconnects. Handlers read whatever client is current at request time.
"""

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from aiohttp import web

if TYPE_CHECKING:
    from .controller import BotController

logger = logging.getLogger(__name__)


class StatusServer:
    """
    Small aiohttp server exposing bot status as JSON.

    Usage:
        server = StatusServer(controller, port=8000)
        server.start()
        ...
        server.stop()
    """

    def __init__(self, bot: "BotController", port: int = 8000, host: str = "0.0.0.0"):
        self.bot = bot
        self.port = port
        self.host = host
        self.app = web.Application()
        self.app.router.add_get("/", self.index_handler)
        self.app.router.add_get("/status", self.status_handler)
        self.app.router.add_get("/inventory", self.inventory_handler)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._runner: Optional[web.AppRunner] = None
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    # Client reads block on the game bridge, so they run in the loop's
    # default executor and never on the event loop thread.

    async def index_handler(self, request: web.Request) -> web.Response:
        return web.Response(text="Minecraft bot is running!")

    async def status_handler(self, request: web.Request) -> web.Response:
        try:
            status = await asyncio.get_running_loop().run_in_executor(None, self.status_snapshot)
            return web.json_response(status)
        except Exception as e:
            logger.error(f"Error getting /status: {e}", exc_info=True)
            return web.json_response(
                {"error": "Internal server error retrieving bot status."},
                status=500,
            )

    async def inventory_handler(self, request: web.Request) -> web.Response:
        try:
            items = await asyncio.get_running_loop().run_in_executor(None, self.inventory_snapshot)
            return web.json_response(items)
        except Exception as e:
            logger.error(f"Error getting /inventory: {e}", exc_info=True)
            return web.json_response(
                {"error": "Internal server error retrieving bot inventory."},
                status=500,
            )

    def status_snapshot(self) -> Dict[str, Any]:
        """Body of ``GET /status``."""
        client = self.bot.client
        connected = client is not None and client.is_connected()
        position = client.get_position() if connected else None
        return {
            "username": client.username if connected else "N/A",
            "health": _or_na(client.get_health()) if connected else "N/A",
            "food": _or_na(client.get_food()) if connected else "N/A",
            "position": position.to_dict() if position is not None else None,
            "isMining": self.bot.is_mining(),
        }

    def inventory_snapshot(self) -> List[Dict[str, Any]]:
        """Body of ``GET /inventory``."""
        client = self.bot.client
        items = client.get_inventory() if client is not None and client.is_connected() else []
        return [{"name": i.name, "count": i.count} for i in items]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, timeout: float = 5.0) -> bool:
        """
        Start serving on a background thread.

        Returns:
            True once listening; False if the port could not be bound
        """
        if self._thread is not None:
            return True
        self._thread = threading.Thread(target=self._serve, name="webserver", daemon=True)
        self._thread.start()
        self._started.wait(timeout)
        return self._runner is not None

    def _serve(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._start_site())
        except OSError as e:
            logger.error(f"Port {self.port} unavailable, web server not started: {e}")
            self._runner = None
            self._started.set()
            self._loop.close()
            return

        logger.info(f"Listening at http://localhost:{self.port}")
        self._started.set()
        self._loop.run_forever()
        self._loop.run_until_complete(self._runner.cleanup())
        self._loop.close()
        logger.info("Web server stopped")

    async def _start_site(self) -> None:
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    def stop(self) -> None:
        """Stop the server and wait for its thread."""
        if self._loop is None or self._thread is None:
            return
        if self._runner is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5.0)
        self._thread = None


def _or_na(value):
    return "N/A" if value is None else value
