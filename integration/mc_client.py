"""
mc_client.py - Minecraft client abstraction over the mineflayer bot.

This module provides a clean abstraction layer over the actual Minecraft
client library. The rest of the bot code interacts with this interface
rather than directly with the JavaScript objects.

Internally this drives mineflayer (plus mineflayer-pathfinder,
minecraft-data and vec3) through the ``javascript`` bridge package.
Protocol handling, the world model and path search all stay inside
mineflayer; this class only translates calls and events.

In ``dry_run`` mode the bridge is never loaded and the client simulates
a player in a small in-memory world (position, block cache, inventory,
other players). The CLI ``--dry-run`` flag and the test-suite use it.
"""

import os
import math
import time
import logging
import threading
from typing import Dict, List, Optional, Tuple, Any, Callable, Iterable
from dataclasses import dataclass
from enum import IntEnum

logger = logging.getLogger(__name__)


class ConnectionState(IntEnum):
    """Connection state for the Minecraft client."""
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    PLAYING = 3
    ERROR = 4


class ClientError(Exception):
    """An action delegated to the game client failed."""


class PathTimeoutError(ClientError):
    """The pathfinder did not reach its goal in time."""


@dataclass
class Position:
    """3D position in the world."""
    x: float
    y: float
    z: float

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def offset(self, dx: float, dy: float, dz: float) -> 'Position':
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def floored(self) -> 'Position':
        """Block coordinates containing this position."""
        return Position(math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def distance_to(self, other: 'Position') -> float:
        """Calculate Euclidean distance to another position."""
        return math.sqrt(
            (self.x - other.x) ** 2 +
            (self.y - other.y) ** 2 +
            (self.z - other.z) ** 2
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    def __str__(self) -> str:
        return f"({self.x:g}, {self.y:g}, {self.z:g})"


@dataclass
class Block:
    """Block information."""
    x: int
    y: int
    z: int
    name: str  # e.g. "stone", "air"

    @property
    def position(self) -> Position:
        return Position(self.x, self.y, self.z)

    @property
    def is_air(self) -> bool:
        return self.name in ("air", "cave_air", "void_air")


@dataclass
class Item:
    """Inventory item information."""
    name: str  # e.g. "cobblestone"
    count: int
    slot: int


@dataclass
class ChatMessage:
    """A chat line received from the server."""
    username: str
    message: str


@dataclass
class ClientConfig:
    """
    Configuration for the Minecraft client.

    The password can be left empty and supplied through an environment
    variable instead of the settings file.
    """
    host: str = "localhost"
    port: int = 25565
    username: str = "AfkBot"
    password: str = ""
    password_env_var: str = "MC_PASSWORD"
    auth: str = "offline"  # offline, microsoft or mojang
    version: Optional[str] = None  # None lets mineflayer auto-detect

    # Connection settings
    reconnect_attempts: int = 3
    reconnect_delay: float = 5.0
    reconnect_backoff: float = 1.5

    # Safety settings
    dry_run: bool = False

    # Simulated inventory size in dry-run mode (main inventory + hotbar)
    inventory_slots: int = 36

    def get_password(self) -> Optional[str]:
        """Get password from config, falling back to the environment."""
        return self.password or os.environ.get(self.password_env_var)


# Events forwarded from the mineflayer bot, with the argument extractor
# used to build the payload handed to Python handlers.
FORWARDED_EVENTS: Dict[str, Callable[..., Any]] = {
    "login": lambda *args: None,
    "spawn": lambda *args: None,
    "chat": lambda username, message, *rest: ChatMessage(str(username), str(message)),
    "playerJoined": lambda player, *rest: str(player.username),
    "kicked": lambda reason, *rest: str(reason),
    "error": lambda err, *rest: str(getattr(err, "message", err)),
    "death": lambda *args: None,
    "end": lambda reason=None, *rest: None if reason is None else str(reason),
    "goal_reached": lambda *args: None,
}


class MinecraftClient:
    """
    Abstraction over the mineflayer bot.

    This class provides a high-level interface for:
    - Connecting to servers and receiving game events
    - Sending chat messages and commands
    - Querying position, health, inventory and nearby blocks
    - Digging, equipping and using items
    - Handing goals to the pathfinder

    Usage:
        config = ClientConfig(host="localhost", username="AfkBot")
        client = MinecraftClient(config)
        client.on_event("spawn", lambda _: client.send_chat("hello"))
        client.connect()
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        """
        Initialize the Minecraft client.

        Args:
            config: Client configuration
        """
        self.config = config or ClientConfig()

        self._state = ConnectionState.DISCONNECTED

        # Bridge objects, only populated outside dry-run mode
        self._bot = None
        self._pathfinder = None
        self._vec3 = None
        self._mc_data = None

        # Simulated state for dry-run mode
        self._position: Optional[Position] = None
        self._health: float = 20.0
        self._food: float = 20.0
        self._yaw: float = 0.0
        self._pitch: float = 0.0
        self._inventory: List[Item] = []
        self._held_item: Optional[str] = None
        self._block_cache: Dict[Tuple[int, int, int], Block] = {}
        self._players: Dict[str, Position] = {}
        self._control_states: Dict[str, bool] = {}
        self._goal: Optional[Position] = None
        self.chat_log: List[str] = []

        self._event_handlers: Dict[str, List[Callable]] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """
        Connect to the Minecraft server.

        Returns:
            True if the bot was created, False otherwise
        """
        if self._state not in (ConnectionState.DISCONNECTED, ConnectionState.ERROR):
            logger.warning("Client already connected or connecting")
            return False

        self._state = ConnectionState.CONNECTING
        logger.info(f"Connecting to {self.config.host}:{self.config.port} "
                    f"as {self.config.username}...")

        if self.config.dry_run:
            logger.info("[DRY RUN] Simulating connection")
            self._state = ConnectionState.PLAYING
            if self._position is None:
                self._position = Position(0.5, 64, 0.5)
            self._emit_event("login", None)
            self._emit_event("spawn", None)
            return True

        attempts = 0
        delay = self.config.reconnect_delay

        while attempts < self.config.reconnect_attempts:
            try:
                logger.info(f"Connection attempt {attempts + 1}/{self.config.reconnect_attempts}")
                self._create_bot()
                self._state = ConnectionState.CONNECTED
                logger.info("Bot created, waiting for spawn")
                return True
            except Exception as e:
                logger.error(f"Connection failed: {e}")
                attempts += 1
                if attempts < self.config.reconnect_attempts:
                    logger.info(f"Retrying in {delay:.1f}s...")
                    time.sleep(delay)
                    delay *= self.config.reconnect_backoff

        self._state = ConnectionState.ERROR
        logger.error("Failed to connect after all attempts")
        return False

    def _create_bot(self) -> None:
        """Create the mineflayer bot and bind its events."""
        from javascript import require, On

        mineflayer = require("mineflayer")
        self._pathfinder = require("mineflayer-pathfinder")
        self._vec3 = require("vec3")

        options = {
            "host": self.config.host,
            "port": self.config.port,
            "username": self.config.username,
            "auth": self.config.auth,
            "hideErrors": False,
        }
        password = self.config.get_password()
        if password and self.config.auth != "offline":
            options["password"] = password
        if self.config.version:
            options["version"] = self.config.version

        self._bot = mineflayer.createBot(options)
        self._bot.loadPlugin(self._pathfinder.pathfinder)

        for event_name, extract in FORWARDED_EVENTS.items():
            self._bind_event(On, event_name, extract)

    def _bind_event(self, on: Callable, event_name: str, extract: Callable) -> None:
        bot = self._bot

        @on(bot, event_name)
        def forward(this, *args):
            if event_name == "spawn":
                self._on_spawn()
            elif event_name == "end":
                self._state = ConnectionState.DISCONNECTED
            self._emit_event(event_name, extract(*args))

    def _on_spawn(self) -> None:
        self._state = ConnectionState.PLAYING
        self._bot.settings.colorsEnabled = False
        self._mc_data = None
        movements = self._pathfinder.Movements(self._bot)
        self._bot.pathfinder.setMovements(movements)

    def disconnect(self) -> None:
        """Disconnect from the server."""
        self.quit()

    def quit(self) -> None:
        """Leave the server. The ``end`` event fires afterwards."""
        if self._state == ConnectionState.DISCONNECTED:
            return

        logger.info("Disconnecting...")

        if self.config.dry_run:
            logger.info("[DRY RUN] Simulating disconnection")
            self._state = ConnectionState.DISCONNECTED
            self._emit_event("end", "quit")
            return

        try:
            self._bot.quit()
        except Exception as e:
            logger.error(f"Error while quitting: {e}")
            self._state = ConnectionState.DISCONNECTED

    def is_connected(self) -> bool:
        """Check if client is connected and playing."""
        return self._state == ConnectionState.PLAYING

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def username(self) -> str:
        if self._bot is not None:
            return str(self._bot.username)
        return self.config.username

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_event(self, event_type: str, handler: Callable) -> None:
        """
        Register an event handler.

        Args:
            event_type: Event type (e.g., 'chat', 'spawn', 'end')
            handler: Callback taking one payload argument
        """
        with self._lock:
            self._event_handlers.setdefault(event_type, []).append(handler)

    def remove_handlers(self, event_type: Optional[str] = None) -> None:
        """Drop handlers for one event, or all of them."""
        with self._lock:
            if event_type is None:
                self._event_handlers.clear()
            else:
                self._event_handlers.pop(event_type, None)

    def _emit_event(self, event_type: str, data: Any) -> None:
        """Emit an event to registered handlers."""
        with self._lock:
            handlers = list(self._event_handlers.get(event_type, []))
        for handler in handlers:
            try:
                handler(data)
            except Exception as e:
                logger.error(f"Error in {event_type} handler: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def send_chat(self, message: str) -> bool:
        """
        Send a chat message or command.

        Args:
            message: Chat message or command (e.g., "/login secret")

        Returns:
            True if sent successfully
        """
        if not self.is_connected():
            logger.warning("Cannot send chat: not connected")
            return False

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would send chat: {message}")
            self.chat_log.append(message)
            return True

        try:
            self._bot.chat(message)
        except Exception as e:
            logger.error(f"Failed to send chat: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Player state
    # ------------------------------------------------------------------

    def get_position(self) -> Optional[Position]:
        """
        Get the current player position.

        Returns:
            Current position or None if not available
        """
        if self.config.dry_run:
            return self._position
        if self._bot is None or not self._bot.entity:
            return None
        pos = self._bot.entity.position
        return Position(float(pos.x), float(pos.y), float(pos.z))

    def get_health(self) -> Optional[float]:
        """Get current health (0-20)."""
        if self.config.dry_run:
            return self._health
        return None if self._bot is None else self._bot.health

    def get_food(self) -> Optional[float]:
        """Get current food level (0-20)."""
        if self.config.dry_run:
            return self._food
        return None if self._bot is None else self._bot.food

    def get_ping(self) -> Optional[int]:
        """Latency reported by the server for this player, in ms."""
        if self.config.dry_run:
            return 0
        if self._bot is None or not self._bot.player:
            return None
        return int(self._bot.player.ping)

    def get_inventory(self) -> List[Item]:
        """
        Get the non-empty inventory stacks.

        Returns:
            List of items
        """
        if self.config.dry_run:
            return list(self._inventory)
        if self._bot is None:
            return []
        return [
            Item(str(item.name), int(item.count), int(item.slot))
            for item in self._bot.inventory.items()
        ]

    def empty_slot_count(self) -> int:
        """Number of free inventory slots."""
        if self.config.dry_run:
            return max(self.config.inventory_slots - len(self._inventory), 0)
        if self._bot is None:
            return 0
        return int(self._bot.inventory.emptySlotCount())

    def get_player_position(self, username: str) -> Optional[Position]:
        """Position of another player, if their entity is in range."""
        if self.config.dry_run:
            return self._players.get(username)
        if self._bot is None:
            return None
        player = self._bot.players[username]
        if not player or not player.entity:
            return None
        pos = player.entity.position
        return Position(float(pos.x), float(pos.y), float(pos.z))

    # ------------------------------------------------------------------
    # World queries
    # ------------------------------------------------------------------

    def block_at(self, pos: Position) -> Optional[Block]:
        """
        Get the block at a position.

        Args:
            pos: Any position inside the block

        Returns:
            Block object or None if the chunk is not loaded
        """
        p = pos.floored()
        if self.config.dry_run:
            return self._block_cache.get((int(p.x), int(p.y), int(p.z)))

        js_block = self._js_block_at(p)
        if not js_block:
            return None
        return Block(int(js_block.position.x), int(js_block.position.y),
                     int(js_block.position.z), str(js_block.name))

    def find_block(self, names: Iterable[str], max_distance: int = 3) -> Optional[Block]:
        """Nearest block whose name is one of ``names``."""
        names = set(names)
        if self.config.dry_run:
            found = self._find_cached(names, max_distance)
            return found[0] if found else None

        ids = self._block_ids(names)
        if not ids:
            return None
        js_block = self._bot.findBlock({"matching": ids, "maxDistance": max_distance})
        if not js_block:
            return None
        return Block(int(js_block.position.x), int(js_block.position.y),
                     int(js_block.position.z), str(js_block.name))

    def find_blocks(
        self,
        name: str,
        max_distance: int = 64,
        count: int = 10
    ) -> List[Position]:
        """
        Positions of up to ``count`` blocks named ``name``, nearest first.

        Raises:
            ClientError: if the block name is unknown for this version
        """
        if self.config.dry_run:
            return [b.position for b in self._find_cached({name}, max_distance)[:count]]

        ids = self._block_ids({name})
        if not ids:
            raise ClientError(f"Unknown block type: {name}")
        positions = self._bot.findBlocks({
            "matching": ids[0],
            "maxDistance": max_distance,
            "count": count,
        })
        return [Position(int(p.x), int(p.y), int(p.z)) for p in positions]

    def _find_cached(self, names: set, max_distance: float) -> List[Block]:
        if self._position is None:
            return []
        center = self._position
        matches = [
            block for block in self._block_cache.values()
            if block.name in names
            and block.position.offset(0.5, 0.5, 0.5).distance_to(center) <= max_distance
        ]
        matches.sort(key=lambda b: b.position.distance_to(center))
        return matches

    def _block_ids(self, names: Iterable[str]) -> List[int]:
        if self._mc_data is None:
            from javascript import require
            self._mc_data = require("minecraft-data")(self._bot.version)
        ids = []
        for name in names:
            block_type = self._mc_data.blocksByName[name]
            if block_type:
                ids.append(int(block_type.id))
        return ids

    def _js_block_at(self, pos: Position):
        return self._bot.blockAt(self._vec3.Vec3(pos.x, pos.y, pos.z))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def set_control_state(self, control: str, state: bool) -> None:
        """Press or release a movement control (forward, jump, sneak...)."""
        if self.config.dry_run:
            self._control_states[control] = state
            return
        self._bot.setControlState(control, state)

    def clear_control_states(self) -> None:
        if self.config.dry_run:
            self._control_states.clear()
            return
        self._bot.clearControlStates()

    def get_control_state(self, control: str) -> bool:
        if self.config.dry_run:
            return self._control_states.get(control, False)
        return bool(self._bot.getControlState(control))

    def look(self, yaw: float, pitch: float) -> None:
        """Turn the head to an absolute yaw/pitch in radians."""
        if self.config.dry_run:
            self._yaw, self._pitch = yaw, pitch
            return
        self._bot.look(yaw, pitch, True)

    def dig(self, block: Block, timeout: float = 60.0) -> None:
        """
        Dig a block. Blocks until the block is broken.

        Raises:
            ClientError: if digging fails or the block is gone
        """
        if self.config.dry_run:
            key = (block.x, block.y, block.z)
            current = self._block_cache.get(key)
            if current is None or current.is_air:
                raise ClientError(f"No block to dig at {block.position}")
            self._block_cache[key] = Block(block.x, block.y, block.z, "air")
            self._add_item(current.name, 1)
            logger.info(f"[DRY RUN] Dug {current.name} at {block.position}")
            return

        try:
            js_block = self._js_block_at(block.position)
            if not js_block:
                raise ClientError(f"No block to dig at {block.position}")
            self._bot.dig(js_block, timeout=timeout)
        except ClientError:
            raise
        except Exception as e:
            raise ClientError(str(e)) from e

    def equip(self, item_name: str, destination: str = "hand") -> bool:
        """
        Equip the first inventory stack named ``item_name``.

        Returns:
            False if no such item is carried

        Raises:
            ClientError: if equipping fails
        """
        if self.config.dry_run:
            if not any(item.name == item_name for item in self._inventory):
                return False
            self._held_item = item_name
            return True

        try:
            for item in self._bot.inventory.items():
                if item.name == item_name:
                    self._bot.equip(item, destination)
                    return True
        except Exception as e:
            raise ClientError(str(e)) from e
        return False

    def equip_best_tool(self, block: Block) -> Optional[str]:
        """
        Equip the best carried tool for ``block``.

        Returns:
            Name of the tool in hand, or None when digging by hand
        """
        if self.config.dry_run:
            for item in self._inventory:
                if item.name.endswith("_pickaxe"):
                    self._held_item = item.name
                    return item.name
            return None

        try:
            js_block = self._js_block_at(block.position)
            tool = self._bot.pathfinder.bestHarvestTool(js_block) if js_block else None
            if not tool:
                return None
            held = self._bot.heldItem
            if not held or held.type != tool.type:
                self._bot.equip(tool, "hand")
            return str(tool.name)
        except Exception as e:
            raise ClientError(str(e)) from e

    def held_item(self) -> Optional[str]:
        if self.config.dry_run:
            return self._held_item
        held = self._bot.heldItem if self._bot is not None else None
        return str(held.name) if held else None

    def activate_item(self) -> None:
        """Use the held item (right-click in air)."""
        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would use {self._held_item}")
            return
        try:
            self._bot.activateItem()
        except Exception as e:
            raise ClientError(str(e)) from e

    def activate_block(self, block: Block) -> None:
        """Right-click a block."""
        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would activate {block.name} at {block.position}")
            return
        try:
            js_block = self._js_block_at(block.position)
            if js_block:
                self._bot.activateBlock(js_block)
        except Exception as e:
            raise ClientError(str(e)) from e

    def toss_all(self) -> int:
        """
        Drop every inventory stack.

        Returns:
            Number of stacks dropped
        """
        if self.config.dry_run:
            dropped = len(self._inventory)
            self._inventory.clear()
            self._held_item = None
            return dropped

        dropped = 0
        for item in self._bot.inventory.items():
            try:
                self._bot.tossStack(item)
                dropped += 1
            except Exception as e:
                logger.warning(f"Could not drop {item.name}: {e}")
        return dropped

    def wait_ticks(self, ticks: int) -> None:
        """Wait for a number of game ticks (20 per second)."""
        if self.config.dry_run or self._bot is None:
            time.sleep(ticks / 20.0)
            return
        self._bot.waitForTicks(ticks)

    # ------------------------------------------------------------------
    # Pathfinding
    # ------------------------------------------------------------------

    def set_goal_block(self, pos: Position) -> None:
        """Hand a stand-on-this-block goal to the pathfinder and return."""
        if self.config.dry_run:
            self._goal = pos
            return
        goal = self._pathfinder.goals.GoalBlock(int(pos.x), int(pos.y), int(pos.z))
        self._bot.pathfinder.setGoal(goal)

    def set_goal_near(self, pos: Position, distance: float = 1) -> None:
        """Hand a get-within-``distance`` goal to the pathfinder and return."""
        if self.config.dry_run:
            self._goal = pos
            return
        goal = self._pathfinder.goals.GoalNear(int(pos.x), int(pos.y), int(pos.z), distance)
        self._bot.pathfinder.setGoal(goal)

    def goto_near(self, pos: Position, distance: float = 1, timeout: float = 10.0) -> None:
        """
        Walk to within ``distance`` of a position, blocking until arrival.

        Raises:
            PathTimeoutError: if the goal was not reached within ``timeout``
            ClientError: if no path exists or the path was interrupted
        """
        if self.config.dry_run:
            self._simulate_arrival(pos)
            return
        goal = self._pathfinder.goals.GoalNear(int(pos.x), int(pos.y), int(pos.z), distance)
        self._goto(goal, timeout)

    def goto_block(self, pos: Position, timeout: float = 10.0) -> None:
        """Walk next to a block (GoalGetToBlock), blocking until arrival."""
        if self.config.dry_run:
            self._simulate_arrival(pos)
            return
        goal = self._pathfinder.goals.GoalGetToBlock(int(pos.x), int(pos.y), int(pos.z))
        self._goto(goal, timeout)

    def _goto(self, goal, timeout: float) -> None:
        try:
            self._bot.pathfinder.goto(goal, timeout=timeout)
        except Exception as e:
            message = str(e)
            if "timed out" in message.lower() or "timeout" in message.lower():
                self.stop_pathfinding()
                raise PathTimeoutError(f"Movement timed out after {timeout:g}s") from e
            raise ClientError(message) from e

    def _simulate_arrival(self, pos: Position) -> None:
        self._position = Position(pos.x + 0.5, pos.y, pos.z + 0.5)
        self._goal = None
        self._emit_event("goal_reached", None)

    def follow_player(self, username: str, distance: float = 2) -> bool:
        """
        Keep following a player until the goal is replaced or stopped.

        Returns:
            False if the player's entity is not visible
        """
        if self.config.dry_run:
            target = self._players.get(username)
            if target is None:
                return False
            self._goal = target
            return True

        player = self._bot.players[username]
        if not player or not player.entity:
            return False
        goal = self._pathfinder.goals.GoalFollow(player.entity, distance)
        self._bot.pathfinder.setGoal(goal, True)
        return True

    def stop_pathfinding(self) -> None:
        """Drop the current pathfinder goal and stop moving."""
        if self.config.dry_run:
            self._goal = None
            return
        if self._bot is None:
            return
        try:
            self._bot.pathfinder.stop()
            self._bot.pathfinder.setGoal(None)
        except Exception as e:
            logger.debug(f"Pathfinder stop failed: {e}")

    @property
    def goal(self) -> Optional[Position]:
        """Current dry-run goal, for inspection."""
        return self._goal

    # ------------------------------------------------------------------
    # Dry-run world editing
    # ------------------------------------------------------------------

    def set_block(self, x: int, y: int, z: int, name: str) -> None:
        """Place a block in the simulated world."""
        self._block_cache[(x, y, z)] = Block(x, y, z, name)

    def set_position(self, pos: Position) -> None:
        self._position = pos

    def add_player(self, username: str, pos: Position) -> None:
        self._players[username] = pos

    def _add_item(self, name: str, count: int) -> None:
        for item in self._inventory:
            if item.name == name and item.count < 64:
                item.count += count
                return
        used = {item.slot for item in self._inventory}
        free = [s for s in range(9, 9 + self.config.inventory_slots) if s not in used]
        if not free:
            logger.info(f"[DRY RUN] Inventory full, {name} left on the ground")
            return
        self._inventory.append(Item(name, count, free[0]))

    def give_item(self, name: str, count: int = 1) -> None:
        """Put items into the simulated inventory."""
        self._add_item(name, count)

    def simulate_chat(self, username: str, message: str) -> None:
        """Deliver a chat line as if the server had sent it."""
        self._emit_event("chat", ChatMessage(username, message))

    def simulate_event(self, event_type: str, data: Any = None) -> None:
        if event_type == "end":
            self._state = ConnectionState.DISCONNECTED
        self._emit_event(event_type, data)
