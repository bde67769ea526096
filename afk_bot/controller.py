"""
controller.py - Bot lifecycle and module wiring.

This module implements the controller that:
- Creates the Minecraft client and reconnects after disconnects
- Sets up every bot module once the bot has spawned
- Tears module timers down when the connection ends
- Optionally connects only while the server is empty (player activity)
- Owns the process-wide status web server

States:
- IDLE: No bot connected, nothing scheduled
- CONNECTING: Client created, waiting for spawn
- RUNNING: Spawned, modules active
- RECONNECT_WAIT: Disconnected, reconnect scheduled
- STOPPED: Shut down
"""

import time
import logging
import threading
from typing import Callable, Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np

from integration.mc_client import MinecraftClient, ClientConfig
from integration.server_status import ServerStatus, get_player_status
from utils.config import Settings
from .activity import MovementArbiter
from .anti_afk import AntiAfkModule
from .auth import AuthModule
from .chat import ChatModule
from .commands import CommandHandler
from .mining import MiningModule
from .state import RuntimeState
from .tasks import TaskGroup
from .webserver import StatusServer

logger = logging.getLogger(__name__)


class BotState(Enum):
    """Controller states."""
    IDLE = auto()
    CONNECTING = auto()
    RUNNING = auto()
    RECONNECT_WAIT = auto()
    STOPPED = auto()


class ActivityAction(Enum):
    """What the player-activity poller should do."""
    START = auto()
    STOP = auto()
    NONE = auto()


def decide_activity(
    other_players: int,
    bot_running: bool,
    leave_when_player_joins: bool
) -> ActivityAction:
    """
    Decide whether the bot should be online given who else is.

    The bot joins an empty server. When other players are online it
    leaves if ``leave_when_player_joins`` is set, and otherwise makes
    sure it is connected anyway.
    """
    if other_players == 0:
        return ActivityAction.NONE if bot_running else ActivityAction.START
    if bot_running:
        return ActivityAction.STOP if leave_when_player_joins else ActivityAction.NONE
    return ActivityAction.NONE if leave_when_player_joins else ActivityAction.START


@dataclass
class BotSession:
    """Modules bound to one connected client."""
    client: MinecraftClient
    arbiter: MovementArbiter
    auth: AuthModule
    chat: ChatModule
    anti_afk: AntiAfkModule
    mining: MiningModule
    commands: CommandHandler

    def setup(self) -> None:
        self.auth.setup()
        self.chat.setup()
        self.anti_afk.setup()
        self.mining.setup()
        self.commands.setup()

    def teardown(self) -> None:
        self.auth.teardown()
        self.chat.teardown()
        self.anti_afk.teardown()
        self.mining.teardown()
        self.arbiter.cancel_current()


class BotController:
    """
    Top-level controller for the AFK bot.

    Usage:
        settings = Settings.from_file("settings.json")
        controller = BotController(settings)
        controller.run()
    """

    def __init__(
        self,
        settings: Settings,
        dry_run: bool = False,
        rng: Optional[np.random.Generator] = None,
        status_fetcher: Optional[Callable[[str, int], Optional[ServerStatus]]] = None
    ):
        """
        Initialize the bot controller.

        Args:
            settings: Bot settings
            dry_run: Simulate the game client instead of connecting
            rng: Random generator shared by the modules
            status_fetcher: Server ping used by player-activity mode
        """
        self.settings = settings
        self.dry_run = dry_run
        self.rng = rng if rng is not None else np.random.default_rng()
        self.status_fetcher = status_fetcher or self._fetch_status

        self.runtime_state = RuntimeState(settings.mining.state_file, settings.mining.enabled)

        self.client: Optional[MinecraftClient] = None
        self.session: Optional[BotSession] = None
        self.state = BotState.IDLE

        self._lock = threading.RLock()
        self._stop = threading.Event()
        self.timers = TaskGroup("controller")

        self.webserver: Optional[StatusServer] = None
        if settings.webserver_port:
            self.webserver = StatusServer(self, settings.webserver_port)

        # Runtime tracking
        self._start_time = time.time()
        self.reconnects = 0
        self._blocks_mined_previous_sessions = 0

        logger.info(f"BotController initialized (dry_run={dry_run})")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """
        Start the bot and block until interrupted.
        """
        server = self.settings.server
        logger.info("Starting AFK bot...")
        logger.info(f"Target: {server.ip}:{server.port} (version {server.version or 'auto'})")

        if self.webserver is not None:
            self.webserver.start()

        activity = self.settings.player_activity
        if activity.enabled:
            logger.info(f"Player activity control enabled, checking every "
                        f"{activity.check_interval:g}s")
            self.timers.every("player-activity", activity.check_interval, self.manage_activity)
            self.manage_activity()
        else:
            logger.info("Player activity control disabled, starting bot directly")
            self.start_bot()

        try:
            while not self._stop.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop timers, leave the server and stop the web server."""
        self._stop.set()
        self.timers.cancel_all()
        self.stop_bot()
        self._teardown_session()
        if self.webserver is not None:
            self.webserver.stop()
        self.state = BotState.STOPPED
        logger.info("Controller stopped")

    # ------------------------------------------------------------------
    # Bot lifecycle
    # ------------------------------------------------------------------

    def _make_client(self) -> MinecraftClient:
        config = ClientConfig(
            host=self.settings.server.ip,
            port=self.settings.server.port,
            username=self.settings.account.username,
            password=self.settings.account_password(),
            auth=self.settings.account.auth,
            version=self.settings.server.version,
            dry_run=self.dry_run,
        )
        return MinecraftClient(config)

    def start_bot(self) -> bool:
        """
        Create and connect a bot unless one already exists.

        Returns:
            True if a new bot was started
        """
        with self._lock:
            if self._stop.is_set() or self.client is not None:
                return False

            logger.info("Starting bot...")
            client = self._make_client()
            self.client = client
            self.state = BotState.CONNECTING

            client.on_event("spawn", lambda _: self._on_spawn(client))
            client.on_event("playerJoined", lambda name: self._on_player_joined(client, name))
            client.on_event("kicked", lambda reason: logger.warning(f"Kicked for reason: {reason}"))
            client.on_event("error", lambda err: logger.error(f"Bot error: {err}"))
            client.on_event("death", lambda _: self._on_death(client))
            client.on_event("end", lambda reason: self._on_end(client, reason))

        if client.connect():
            return True

        with self._lock:
            if self.client is client:
                self.client = None
        self._schedule_reconnect()
        return False

    def stop_bot(self) -> None:
        """Quit the current bot, if any."""
        client = self.client
        if client is None:
            return
        logger.info("Stopping bot...")
        client.quit()

    def _on_spawn(self, client: MinecraftClient) -> None:
        with self._lock:
            if client is not self.client:
                return
            if self.session is not None and self.session.client is client:
                logger.info(f"Respawned at {client.get_position()}")
                return

            logger.info("Bot spawned, setting up modules...")
            arbiter = MovementArbiter(client)
            mining = MiningModule(client, arbiter, self.settings.mining,
                                  self.runtime_state, self.rng)
            self.session = BotSession(
                client=client,
                arbiter=arbiter,
                auth=AuthModule(client, self.settings.auto_auth),
                chat=ChatModule(client, self.settings.chat_messages, self.settings.chat_log),
                anti_afk=AntiAfkModule(client, arbiter, self.settings.anti_afk,
                                       self.settings.position, self.rng),
                mining=mining,
                commands=CommandHandler(client, arbiter, mining, self._start_time),
            )
            self.session.setup()
            self.state = BotState.RUNNING
            logger.info("Modules setup complete")

    def _on_player_joined(self, client: MinecraftClient, username: str) -> None:
        if username == client.username:
            return
        logger.info(f"Player {username} joined the server")

        activity = self.settings.player_activity
        if activity.enabled and activity.leave_when_player_joins:
            logger.info("Leaving because a player joined")
            client.quit()

    def _on_death(self, client: MinecraftClient) -> None:
        logger.warning(f"Bot died and respawned at {client.get_position()}")
        session = self.session
        if session is not None and session.client is client:
            session.arbiter.cancel_current()

    def _on_end(self, client: MinecraftClient, reason: Optional[str]) -> None:
        with self._lock:
            if client is not self.client:
                return
            logger.info(f"Disconnected from server{f': {reason}' if reason else ''}")
            self._teardown_session()
            self.client = None
            self.state = BotState.IDLE
        self._schedule_reconnect()

    def _teardown_session(self) -> None:
        session = self.session
        if session is None:
            return
        session.teardown()
        self._blocks_mined_previous_sessions += session.mining.blocks_mined
        self.session = None

    def _schedule_reconnect(self) -> None:
        # Player-activity mode reconnects from its own poller
        if self._stop.is_set() or self.settings.player_activity.enabled:
            return
        if not self.settings.auto_reconnect:
            logger.info("Auto-reconnect disabled, staying offline")
            return

        delay = self.settings.auto_reconnect_delay
        logger.info(f"Reconnecting in {delay:g}s")
        self.reconnects += 1
        self.state = BotState.RECONNECT_WAIT
        self.timers.after("reconnect", delay, self.start_bot)

    # ------------------------------------------------------------------
    # Player activity
    # ------------------------------------------------------------------

    def _fetch_status(self, host: str, port: int) -> Optional[ServerStatus]:
        if self.dry_run:
            return ServerStatus(online=0)
        return get_player_status(host, port)

    def manage_activity(self) -> ActivityAction:
        """Poll the server once and start or stop the bot accordingly."""
        status = self.status_fetcher(self.settings.server.ip, self.settings.server.port)
        if status is None:
            logger.info("Could not retrieve player status. Retrying later.")
            return ActivityAction.NONE

        client = self.client
        running = client is not None
        others = status.other_players(
            self.settings.account.username,
            running and client.is_connected()
        )
        action = decide_activity(others, running,
                                 self.settings.player_activity.leave_when_player_joins)

        if action == ActivityAction.START:
            logger.info(f"{others} other player(s) online, starting bot")
            self.start_bot()
        elif action == ActivityAction.STOP:
            logger.info(f"{others} other player(s) online, stopping bot")
            self.stop_bot()
        else:
            logger.debug(f"{others} other player(s) online, bot running={running}")
        return action

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def is_mining(self) -> bool:
        session = self.session
        return session is not None and session.mining.is_mining

    def get_stats(self) -> Dict[str, Any]:
        """Get runtime statistics."""
        session = self.session
        mined = self._blocks_mined_previous_sessions
        if session is not None:
            mined += session.mining.blocks_mined
        return {
            "state": self.state.name,
            "runtime_minutes": (time.time() - self._start_time) / 60.0,
            "connected": self.client is not None and self.client.is_connected(),
            "reconnects": self.reconnects,
            "blocks_mined": mined,
        }
