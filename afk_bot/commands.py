"""
commands.py - Chat command surface.

Other players control the bot by typing ``!<command> [args]`` in chat.
Every command replies through chat. Commands that move the bot take
COMMAND movement ownership, which interrupts anti-AFK wandering and
automatic mining, and run on a worker thread so the event thread that
delivered the chat line is never blocked.
"""

import time
import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from integration.mc_client import MinecraftClient, ClientError, ChatMessage, Position
from .activity import Activity, ActivityToken, MovementArbiter
from .mining import MiningModule

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "!"


def format_uptime(total_seconds: float) -> str:
    """
    Format a duration as ``1d 2h 3m 4s``.

    Zero units are left out, except that seconds are always shown when
    nothing else would be.
    """
    if total_seconds is None or total_seconds != total_seconds or total_seconds < 0:
        return "Invalid duration"

    seconds = int(total_seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if seconds > 0 or not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)


def parse_command(message: str, prefix: str = COMMAND_PREFIX) -> Optional[Tuple[str, List[str]]]:
    """
    Split a chat line into a lower-cased command and its arguments.

    Returns:
        (command, args), or None if the line is not a command
    """
    if not message.startswith(prefix):
        return None
    parts = message[len(prefix):].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


def parse_coordinates(args: List[str]) -> Optional[Position]:
    """Three integer block coordinates, or None."""
    if len(args) != 3:
        return None
    try:
        x, y, z = (int(float(a)) for a in args)
    except ValueError:
        return None
    return Position(x, y, z)


class CommandHandler:
    """
    Dispatches ``!`` chat commands.

    Usage:
        commands = CommandHandler(client, arbiter, mining, started_at)
        commands.setup()
    """

    FOLLOW_DISTANCE = 2
    GOTO_TIMEOUT = 60.0

    def __init__(
        self,
        client: MinecraftClient,
        arbiter: MovementArbiter,
        mining: MiningModule,
        started_at: Optional[float] = None,
        background: bool = True
    ):
        """
        Initialize the command handler.

        Args:
            client: Minecraft client
            arbiter: Movement ownership
            mining: Mining module for !mine and the toggles
            started_at: Process start time for !uptime
            background: Run movement commands on worker threads
        """
        self.client = client
        self.arbiter = arbiter
        self.mining = mining
        self.started_at = started_at if started_at is not None else time.time()
        self.background = background

        self.commands: Dict[str, Callable[[str, List[str]], None]] = {
            "status": self.cmd_status,
            "help": self.cmd_help,
            "uptime": self.cmd_uptime,
            "inventory": self.cmd_inventory,
            "follow": self.cmd_follow,
            "stopfollow": self.cmd_stop_follow,
            "goto": self.cmd_goto,
            "dropitems": self.cmd_drop_items,
            "mine": self.cmd_mine,
            "stopmine": self.cmd_stop_mine,
            "togglemining": self.cmd_toggle_mining,
            "miningstatus": self.cmd_mining_status,
            "ping": self.cmd_ping,
        }

    def setup(self) -> None:
        logger.info(f"Listening for chat commands starting with {COMMAND_PREFIX!r}")
        self.client.on_event("chat", self.handle_chat)

    def handle_chat(self, chat: ChatMessage) -> None:
        if chat.username == self.client.username:
            return
        parsed = parse_command(chat.message)
        if parsed is None:
            return
        command, args = parsed
        logger.info(f"Received command from {chat.username}: {command} {' '.join(args)}".rstrip())
        self.execute(chat.username, command, args)

    def execute(self, username: str, command: str, args: List[str]) -> None:
        handler = self.commands.get(command.lower())
        if handler is None:
            self.reply(f"Unknown command: {command}. Try !help for a list of commands.")
            return
        try:
            handler(username, args)
        except ClientError as e:
            logger.error(f"Command {command} failed: {e}")
            self.reply(f"Command {command} failed: {e}")

    def reply(self, message: str) -> None:
        self.client.send_chat(message)

    def _run(self, name: str, fn: Callable[[], None]) -> None:
        if not self.background:
            fn()
            return
        threading.Thread(target=fn, name=f"command:{name}", daemon=True).start()

    # ------------------------------------------------------------------
    # Information
    # ------------------------------------------------------------------

    def cmd_status(self, username: str, args: List[str]) -> None:
        health = self.client.get_health()
        food = self.client.get_food()
        self.reply(f"I'm online and running! Health: {_fmt(health)}, Food: {_fmt(food)}")

    def cmd_help(self, username: str, args: List[str]) -> None:
        names = ["status", "help", "uptime", "inventory", "follow [player]", "stopFollow",
                 "goto <x> <y> <z>", "dropitems", "mine <block>", "stopMine",
                 "toggleMining", "miningStatus", "ping"]
        self.reply("Available commands: " + ", ".join(f"!{n}" for n in names))

    def cmd_uptime(self, username: str, args: List[str]) -> None:
        self.reply(f"Bot uptime: {format_uptime(time.time() - self.started_at)}")

    def cmd_inventory(self, username: str, args: List[str]) -> None:
        items = self.client.get_inventory()
        if not items:
            self.reply("My inventory is empty.")
            return
        listing = ", ".join(f"{item.count} {item.name}" for item in items)
        self.reply(f"I have: {listing}")

    def cmd_ping(self, username: str, args: List[str]) -> None:
        ping = self.client.get_ping()
        self.reply("Pong!" if ping is None else f"Pong! {ping}ms")

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def cmd_follow(self, username: str, args: List[str]) -> None:
        target = args[0] if args else username
        if self.client.get_player_position(target) is None:
            self.reply(f"I can't see {target}.")
            return

        token = self.arbiter.try_acquire(Activity.COMMAND, f"follow {target}")
        if not self.client.follow_player(target, self.FOLLOW_DISTANCE):
            # entity left range between the check and the goal
            self.arbiter.release(token)
            self.reply(f"I can't see {target}.")
            return
        self.reply(f"Following {target}. Use !stopFollow to stop.")

    def cmd_stop_follow(self, username: str, args: List[str]) -> None:
        current = self.arbiter.current
        if current is None or not current.name.startswith("follow "):
            self.reply("I'm not following anyone.")
            return
        self.arbiter.cancel(Activity.COMMAND)
        self.reply("Stopped following.")

    def cmd_goto(self, username: str, args: List[str]) -> None:
        target = parse_coordinates(args)
        if target is None:
            self.reply("Usage: !goto <x> <y> <z>")
            return

        token = self.arbiter.try_acquire(Activity.COMMAND, f"goto {target}")
        self.reply(f"Going to {int(target.x)} {int(target.y)} {int(target.z)}.")
        self._run("goto", lambda: self._goto(target, token))

    def _goto(self, target: Position, token: ActivityToken) -> None:
        try:
            self.client.goto_near(target, 1, timeout=self.GOTO_TIMEOUT)
            if not token.cancelled:
                self.reply(f"Arrived at {int(target.x)} {int(target.y)} {int(target.z)}.")
        except ClientError as e:
            if not token.cancelled:
                logger.info(f"goto {target} failed: {e}")
                self.reply(f"Could not reach {int(target.x)} {int(target.y)} {int(target.z)}: {e}")
        finally:
            self.arbiter.release(token)

    def cmd_drop_items(self, username: str, args: List[str]) -> None:
        dropped = self.client.toss_all()
        if dropped == 0:
            self.reply("Nothing to drop.")
        else:
            self.reply(f"Dropped {dropped} stack(s).")

    # ------------------------------------------------------------------
    # Mining
    # ------------------------------------------------------------------

    def cmd_mine(self, username: str, args: List[str]) -> None:
        if len(args) != 1:
            self.reply("Usage: !mine <block>")
            return

        block_name = args[0].lower()
        token = self.arbiter.try_acquire(Activity.COMMAND, f"mine {block_name}")
        self._run("mine", lambda: self._mine(block_name, token))

    def _mine(self, block_name: str, token: ActivityToken) -> None:
        try:
            self.mining.mine_command(block_name, token, self.reply)
        finally:
            self.arbiter.release(token)

    def cmd_stop_mine(self, username: str, args: List[str]) -> None:
        current = self.arbiter.current
        if current is not None and current.name.startswith("mine "):
            self.arbiter.cancel(Activity.COMMAND)
            self.reply("Mining stopped.")
        elif self.arbiter.cancel(Activity.MINING) is not None:
            self.reply("Stopped the current mining cycle.")
        else:
            self.reply("I'm not mining right now.")

    def cmd_toggle_mining(self, username: str, args: List[str]) -> None:
        enabled = self.mining.toggle()
        self.reply(f"Automatic mining is now {'enabled' if enabled else 'disabled'}.")

    def cmd_mining_status(self, username: str, args: List[str]) -> None:
        self.reply(self.mining.status())


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{value:g}" if isinstance(value, float) else str(value)
