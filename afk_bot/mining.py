"""
mining.py - Automatic mining and the !mine command.

Two ways to mine:
- Automatic cycle: every ``interval`` seconds, pick a random nearby block
  from the configured list, dig it and walk to where it was.
- Command loop: ``!mine <block>`` keeps finding, walking to and digging
  the nearest block of one type until stopped, the inventory is full,
  or none are left.

The automatic cycle holds MINING movement ownership; the command loop
runs under a COMMAND token, so a user command always interrupts an
automatic cycle and never the other way round.
"""

import logging
import threading
from typing import Callable, Optional, Set, Tuple
from enum import Enum, auto

import numpy as np

from integration.mc_client import (
    MinecraftClient,
    ClientError,
    PathTimeoutError,
    Block,
)
from utils.config import MiningSettings
from .activity import Activity, ActivityToken, MovementArbiter
from .state import RuntimeState
from .tasks import TaskGroup

logger = logging.getLogger(__name__)


class CycleResult(Enum):
    """Outcome of one automatic mining cycle."""
    DISABLED = auto()
    BUSY = auto()
    INVENTORY_FULL = auto()
    NO_TARGET = auto()
    MINED = auto()
    INTERRUPTED = auto()
    FAILED = auto()


class MiningModule:
    """
    Mining for the AFK bot.

    Usage:
        mining = MiningModule(client, arbiter, settings.mining, state)
        mining.setup()
    """

    # Automatic cycle
    SEARCH_ATTEMPTS = 10
    Y_RANGE = 2
    MOVE_TIMEOUT = 10.0

    # !mine command loop
    COMMAND_SEARCH_RADIUS = 128
    COMMAND_SEARCH_ATTEMPTS = 20
    COMMAND_MOVE_TIMEOUT = 15.0

    # Never dig a block standing on one of these
    HAZARDS = {"air", "cave_air", "void_air", "water", "lava"}

    def __init__(
        self,
        client: MinecraftClient,
        arbiter: MovementArbiter,
        settings: MiningSettings,
        state: RuntimeState,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize the mining module.

        Args:
            client: Minecraft client
            arbiter: Movement ownership
            settings: mining section of the settings
            state: Persisted mining toggle
            rng: Random generator (seeded in tests)
        """
        self.client = client
        self.arbiter = arbiter
        self.settings = settings
        self.state = state
        self.rng = rng if rng is not None else np.random.default_rng()
        self.timers = TaskGroup("mining")
        self.blocks_mined = 0

        # Game ticks to wait between command-loop steps
        self.search_retry_ticks = 10
        self.error_pause_ticks = 20
        self.drop_pickup_ticks = 15

    # ------------------------------------------------------------------
    # Lifecycle and state
    # ------------------------------------------------------------------

    def setup(self) -> None:
        logger.info(f"Mining timer every {self.settings.interval:g}s "
                    f"(enabled={self.state.mining_enabled})")
        self.timers.every("cycle", self.settings.interval, self._tick)

    def teardown(self) -> None:
        self.timers.cancel_all()

    @property
    def enabled(self) -> bool:
        return self.state.mining_enabled

    @property
    def is_mining(self) -> bool:
        """True while an automatic cycle owns movement."""
        return self.arbiter.busy_with(Activity.MINING)

    def set_enabled(self, enabled: bool) -> None:
        self.state.set_mining_enabled(enabled)
        if not enabled:
            self.arbiter.cancel(Activity.MINING)
        logger.info(f"Automatic mining {'enabled' if enabled else 'disabled'}")

    def toggle(self) -> bool:
        """Flip automatic mining. Returns the new value."""
        enabled = self.state.toggle_mining()
        if not enabled:
            self.arbiter.cancel(Activity.MINING)
        logger.info(f"Automatic mining {'enabled' if enabled else 'disabled'}")
        return enabled

    # ------------------------------------------------------------------
    # Automatic cycle
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        if not self.state.mining_enabled or self.is_mining:
            return
        self.run_cycle()

    def run_cycle(self) -> CycleResult:
        """
        One attempt to locate, dig and walk to a nearby block.

        Returns:
            What happened, for logging and tests
        """
        if not self.state.mining_enabled:
            return CycleResult.DISABLED

        if self.arbiter.busy_with(Activity.COMMAND):
            logger.info("Skipping cycle: bot is busy with a user command")
            return CycleResult.BUSY

        token = self.arbiter.try_acquire(Activity.MINING, "mining cycle")
        if token is None:
            return CycleResult.BUSY

        logger.info("Starting mining cycle...")
        try:
            if self.client.empty_slot_count() == 0:
                logger.info("Inventory is full. Skipping mining cycle.")
                return CycleResult.INVENTORY_FULL

            target = self.find_target_block()
            if target is None:
                logger.info("No suitable block found nearby")
                return CycleResult.NO_TARGET

            logger.info(f"Found target block: {target.name} at {target.position}")
            self.client.dig(target)
            self.blocks_mined += 1
            logger.info(f"Successfully mined {target.name}")

            if token.cancelled:
                logger.info("Mining interrupted after digging, before moving")
                return CycleResult.INTERRUPTED

            try:
                self.client.goto_near(target.position, 1, timeout=self.MOVE_TIMEOUT)
                logger.info("Reached goal after mining")
            except PathTimeoutError:
                logger.info(f"Movement to {target.position} timed out after "
                            f"{self.MOVE_TIMEOUT:g}s")
            except ClientError as e:
                if token.cancelled:
                    logger.info("Mining interrupted while moving to the mined block")
                    return CycleResult.INTERRUPTED
                logger.warning(f"Could not move to {target.position} after mining: {e}")
            return CycleResult.MINED

        except ClientError as e:
            if token.cancelled:
                logger.info("Mining cycle interrupted")
                return CycleResult.INTERRUPTED
            logger.error(f"Error during mining cycle: {e}")
            return CycleResult.FAILED
        finally:
            self.arbiter.release(token)

    def find_target_block(self) -> Optional[Block]:
        """
        Pick a random block of a configured type near the bot.

        Tries up to SEARCH_ATTEMPTS random offsets within ``max_distance``
        horizontally and Y_RANGE vertically.
        """
        pos = self.client.get_position()
        if pos is None:
            return None

        origin = pos.floored()
        radius = self.settings.max_distance
        block_types = set(self.settings.block_types)

        for _ in range(self.SEARCH_ATTEMPTS):
            dx, dz = self.rng.integers(-radius, radius + 1, size=2)
            dy = self.rng.integers(-self.Y_RANGE, self.Y_RANGE + 1)
            candidate = origin.offset(int(dx), int(dy), int(dz))

            block = self.client.block_at(candidate)
            if block is None or block.is_air or block.name not in block_types:
                continue

            below = self.client.block_at(candidate.offset(0, -1, 0))
            if self.is_safe_ground(below):
                return block
            logger.info(f"Skipping {block.name} due to hazard below: "
                        f"{below.name if below else 'nothing'}")

        return None

    def is_safe_ground(self, block: Optional[Block]) -> bool:
        return block is not None and block.name not in self.HAZARDS

    # ------------------------------------------------------------------
    # !mine command
    # ------------------------------------------------------------------

    def mine_command(
        self,
        block_name: str,
        token: ActivityToken,
        reply: Callable[[str], None]
    ) -> int:
        """
        Mine ``block_name`` until cancelled, full, or none are left.

        Args:
            block_name: Block type to mine, e.g. "oak_log"
            token: COMMAND ownership token; cancelling it stops the loop
            reply: Sends progress to chat

        Returns:
            Number of blocks dug
        """
        logger.info(f"Mining {block_name} until inventory full or stopped")
        reply(f"Starting to mine {block_name}. Use !stopMine to cancel.")

        mined = 0
        skipped: Set[Tuple[int, int, int]] = set()
        try:
            while not token.cancelled:
                if self.client.empty_slot_count() == 0:
                    reply("Inventory full. Stopping mining operation.")
                    break

                target = self.find_specific_block(block_name, token.cancel_event, skipped)
                if token.cancelled:
                    break
                if target is None:
                    reply(f"No more {block_name} found nearby. Stopping mining.")
                    break

                key = (target.x, target.y, target.z)
                try:
                    self.client.goto_near(target.position, 1, timeout=self.COMMAND_MOVE_TIMEOUT)
                except PathTimeoutError:
                    if token.cancelled:
                        break
                    logger.info(f"Timeout reaching {target.position}, skipping this block")
                    reply("Timeout reaching block, trying next one.")
                    skipped.add(key)
                    self._pause(token, self.error_pause_ticks)
                    continue
                except ClientError as e:
                    if token.cancelled:
                        break
                    logger.info(f"Error pathfinding to {target.position}: {e}")
                    reply(f"Error moving to block: {e}. Trying next one.")
                    skipped.add(key)
                    self._pause(token, self.error_pause_ticks)
                    continue

                if token.cancelled:
                    break
                if self.client.empty_slot_count() == 0:
                    reply("Inventory full. Stopping mining operation.")
                    break

                try:
                    tool = self.client.equip_best_tool(target)
                    logger.info(f"Digging {target.name} with {tool or 'bare hands'}")
                    self.client.dig(target)
                except ClientError as e:
                    if token.cancelled:
                        break
                    logger.info(f"Error digging {block_name}: {e}")
                    reply(f"Error digging {block_name}: {e}.")
                    skipped.add(key)
                    self._pause(token, self.error_pause_ticks)
                    continue

                mined += 1
                self.blocks_mined += 1
                logger.info(f"Dug {block_name}, mined count: {mined}")
                self._pause(token, self.drop_pickup_ticks)

        except ClientError as e:
            logger.error(f"Mining command failed: {e}")
            reply(f"Cannot mine {block_name}: {e}")
        finally:
            logger.info(f"Mining command finished, mined {mined} {block_name}")

        return mined

    def find_specific_block(
        self,
        block_name: str,
        cancel: Optional[threading.Event] = None,
        skip: Optional[Set[Tuple[int, int, int]]] = None
    ) -> Optional[Block]:
        """
        Nearest ``block_name`` with solid ground below it.

        Raises:
            ClientError: if the block name is unknown
        """
        skip = skip or set()
        for attempt in range(self.COMMAND_SEARCH_ATTEMPTS):
            positions = self.client.find_blocks(
                block_name, max_distance=self.COMMAND_SEARCH_RADIUS, count=10
            )
            for pos in positions:
                if (int(pos.x), int(pos.y), int(pos.z)) in skip:
                    continue
                block = self.client.block_at(pos)
                if block is None or block.name != block_name:
                    continue
                below = self.client.block_at(pos.offset(0, -1, 0))
                if self.is_safe_ground(below):
                    return block
                logger.debug(f"Skipping {block_name} at {pos}: hazard below")

            if attempt + 1 < self.COMMAND_SEARCH_ATTEMPTS:
                delay = self.search_retry_ticks / 20.0
                if cancel is not None and cancel.wait(delay):
                    return None
                if cancel is None and delay > 0:
                    self.client.wait_ticks(self.search_retry_ticks)

        logger.info(f"No valid {block_name} found after "
                    f"{self.COMMAND_SEARCH_ATTEMPTS} attempts")
        return None

    def _pause(self, token: ActivityToken, ticks: int) -> None:
        if ticks > 0:
            token.cancel_event.wait(ticks / 20.0)

    def status(self) -> str:
        """One-line summary for chat."""
        enabled = "enabled" if self.enabled else "disabled"
        busy = "currently mining" if self.is_mining else "idle"
        return f"Automatic mining is {enabled} ({busy}). Blocks mined: {self.blocks_mined}"
