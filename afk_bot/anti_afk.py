"""
anti_afk.py - Idle-avoidance routines.

Servers kick players that stay still. Each routine below runs on its own
interval timer:
- movement: walk to a random block within a radius
- interaction: right-click a nearby block of a configured type
- jumping: jump with a configured probability
- rotation: look in a random direction
- fishing: cast a fishing rod and reel it back in

Movement goes through the MovementArbiter at the lowest priority, so a
mining cycle or a user command always wins over wandering.
"""

import math
import logging
import threading
from typing import Optional

import numpy as np

from integration.mc_client import MinecraftClient, ClientError, Position
from utils.config import AntiAfkSettings, PositionSettings
from .activity import Activity, ActivityToken, MovementArbiter
from .tasks import DelayedTask, TaskGroup

logger = logging.getLogger(__name__)


class AntiAfkModule:
    """
    Periodic anti-AFK behaviour.

    Usage:
        anti_afk = AntiAfkModule(client, arbiter, settings.anti_afk)
        anti_afk.setup()
        ...
        anti_afk.teardown()
    """

    JUMP_HOLD_SECONDS = 0.5
    FISHING_WAIT_RANGE = (5.0, 20.0)
    MOVE_TIMEOUT = 15.0
    POSITION_TIMEOUT = 60.0

    def __init__(
        self,
        client: MinecraftClient,
        arbiter: MovementArbiter,
        settings: AntiAfkSettings,
        position: Optional[PositionSettings] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize the anti-AFK module.

        Args:
            client: Minecraft client
            arbiter: Movement ownership
            settings: anti-afk section of the settings
            position: Optional fixed block to walk to after spawn
            rng: Random generator (seeded in tests)
        """
        self.client = client
        self.arbiter = arbiter
        self.settings = settings
        self.position = position
        self.rng = rng if rng is not None else np.random.default_rng()
        self.timers = TaskGroup("anti-afk")
        self._stop = threading.Event()
        self._position_token: Optional[ActivityToken] = None
        self._position_timer: Optional[DelayedTask] = None

    def setup(self) -> None:
        self._stop.clear()

        if self.position is not None and self.position.enabled:
            self.go_to_configured_position()

        if not self.settings.enabled:
            logger.info("Anti-AFK disabled in settings")
            return

        if self.settings.sneak:
            self.client.set_control_state("sneak", True)

        routines = [
            ("movement", self.settings.movement, self.wander),
            ("interaction", self.settings.interaction, self.interact),
            ("jumping", self.settings.jumping, self.jump),
            ("rotation", self.settings.rotation, self.rotate),
            ("fishing", self.settings.fishing, self.fish),
        ]
        for name, routine, fn in routines:
            if routine.enabled:
                logger.info(f"Anti-AFK {name} every {routine.interval:g}s")
                self.timers.every(name, routine.interval, fn)

    def teardown(self) -> None:
        self._stop.set()
        self.timers.cancel_all()

    def go_to_configured_position(self) -> bool:
        """
        Walk to the fixed position from the settings and stay there.

        Ownership is held until the goal is reached. A goal that is still
        unreached after POSITION_TIMEOUT seconds is dropped so wandering
        can resume.
        """
        pos = Position(self.position.x, self.position.y, self.position.z)
        token = self.arbiter.try_acquire(Activity.ANTI_AFK, "position goal",
                                         on_cancel=self._clear_position_goal)
        if token is None:
            return False

        logger.info(f"Moving to target location {pos}")
        self._position_token = token
        self.client.on_event("goal_reached", self._on_goal_reached)
        self.client.set_goal_block(pos)
        self._position_timer = self.timers.after(
            "position-timeout", self.POSITION_TIMEOUT, self._give_up_position
        )
        return True

    def _on_goal_reached(self, _data) -> None:
        token = self._position_token
        if token is not None and self.arbiter.release(token):
            logger.info(f"Arrived at the target location {self.client.get_position()}")
            self._clear_position_goal()

    def _give_up_position(self) -> None:
        token = self._position_token
        if token is None or not self.arbiter.release(token):
            return
        logger.warning(
            f"Target location not reached after {self.POSITION_TIMEOUT:g}s, giving up"
        )
        self._position_token = None
        self._position_timer = None
        self.client.stop_pathfinding()

    def _clear_position_goal(self) -> None:
        self._position_token = None
        timer = self._position_timer
        self._position_timer = None
        if timer is not None:
            timer.cancel()

    def wander(self) -> bool:
        """
        Walk to a random block within the movement radius.

        Returns:
            False if movement was owned by something else or failed
        """
        token = self.arbiter.try_acquire(Activity.ANTI_AFK, "anti-afk movement")
        if token is None:
            return False

        try:
            pos = self.client.get_position()
            if pos is None:
                return False

            radius = self.settings.movement.radius
            dx, dz = self.rng.integers(-radius, radius + 1, size=2)
            target = pos.floored().offset(int(dx), 0, int(dz))
            logger.info(f"Moving to {target}")
            self.client.goto_block(target, timeout=self.MOVE_TIMEOUT)
            return not token.cancelled
        except ClientError as e:
            logger.debug(f"Anti-AFK movement stopped: {e}")
            return False
        finally:
            self.arbiter.release(token)

    def interact(self) -> bool:
        """Right-click a nearby block of one of the configured types."""
        types = self.settings.interaction.nearby_block_types
        if not types:
            return False

        block = self.client.find_block(types, max_distance=3)
        if block is None:
            return False

        try:
            self.client.activate_block(block)
        except ClientError as e:
            logger.warning(f"Could not interact with {block.name}: {e}")
            return False
        return True

    def jump(self) -> bool:
        """Jump with the configured probability."""
        if self.rng.random() >= self.settings.jumping.probability:
            return False

        self.client.set_control_state("jump", True)
        self.timers.after("release-jump", self.JUMP_HOLD_SECONDS,
                          lambda: self.client.set_control_state("jump", False))
        return True

    def rotate(self) -> None:
        """Look in a random direction."""
        yaw = self.rng.uniform(-math.pi, math.pi)
        pitch = self.rng.uniform(-math.pi / 2, math.pi / 2)
        self.client.look(float(yaw), float(pitch))

    def fish(self) -> bool:
        """
        Cast, wait 5-20 seconds, reel in.

        Returns:
            True if a full cast/reel cycle completed
        """
        try:
            if not self.client.equip("fishing_rod", "hand"):
                logger.warning("No fishing rod in inventory")
                return False

            self.client.activate_item()
            wait = self.rng.uniform(*self.FISHING_WAIT_RANGE)
            if self._stop.wait(wait):
                return False
            self.client.activate_item()
            return True
        except ClientError as e:
            logger.error(f"Fishing error: {e}")
            return False
