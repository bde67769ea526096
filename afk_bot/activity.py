"""
activity.py - Ownership of the bot's movement.

Anti-AFK wandering, automatic mining and user commands all want to hand
goals to the pathfinder. Only one of them may own movement at a time:

    ANTI_AFK < MINING < COMMAND

A higher-ranked activity preempts a lower one, and a new user command
supersedes the previous command. Preempting cancels the old holder (its
cancel event is set and its cancel callback clears its timers) and drops
the pathfinder goal before the new holder receives its token.
"""

import logging
import threading
from typing import Callable, Optional
from enum import IntEnum

from integration.mc_client import MinecraftClient

logger = logging.getLogger(__name__)


class Activity(IntEnum):
    """Movement-owning activities, ordered by priority."""
    ANTI_AFK = 0
    MINING = 1
    COMMAND = 2


class ActivityToken:
    """Proof of movement ownership handed out by the arbiter."""

    def __init__(
        self,
        activity: Activity,
        name: str,
        on_cancel: Optional[Callable[[], None]] = None
    ):
        self.activity = activity
        self.name = name
        self.on_cancel = on_cancel
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"ActivityToken({self.activity.name}, {self.name!r}, {state})"


class MovementArbiter:
    """
    Single-owner lock over the pathfinder.

    Usage:
        token = arbiter.try_acquire(Activity.MINING, "mining cycle")
        if token is None:
            return  # something more important is moving the bot
        try:
            ...
        finally:
            arbiter.release(token)
    """

    def __init__(self, client: MinecraftClient):
        self.client = client
        self._lock = threading.Lock()
        self._holder: Optional[ActivityToken] = None

    @property
    def current(self) -> Optional[ActivityToken]:
        return self._holder

    def busy_with(self, activity: Activity) -> bool:
        holder = self._holder
        return holder is not None and holder.activity == activity

    def try_acquire(
        self,
        activity: Activity,
        name: str,
        on_cancel: Optional[Callable[[], None]] = None
    ) -> Optional[ActivityToken]:
        """
        Take movement ownership.

        Args:
            activity: Who is asking
            name: Label for logs and status replies
            on_cancel: Called if this token is later preempted or cancelled

        Returns:
            The new token, or None if a higher or equal activity holds it
        """
        with self._lock:
            holder = self._holder
            if holder is not None:
                if holder.activity > activity:
                    return None
                if holder.activity == activity and activity != Activity.COMMAND:
                    return None
            token = ActivityToken(activity, name, on_cancel)
            self._holder = token

        if holder is not None:
            logger.info(f"{name} preempts {holder.name}")
            self._cancel(holder)
        return token

    def release(self, token: ActivityToken) -> bool:
        """
        Give ownership back.

        Returns:
            False if the token had already been superseded
        """
        with self._lock:
            if self._holder is not token:
                return False
            self._holder = None
        return True

    def cancel_current(self) -> Optional[ActivityToken]:
        """Cancel whoever owns movement. Returns the cancelled token."""
        with self._lock:
            holder = self._holder
            self._holder = None
        if holder is not None:
            logger.info(f"Cancelling {holder.name}")
            self._cancel(holder)
        return holder

    def cancel(self, activity: Activity) -> Optional[ActivityToken]:
        """Cancel the holder only if it is ``activity``."""
        with self._lock:
            holder = self._holder
            if holder is None or holder.activity != activity:
                return None
            self._holder = None
        logger.info(f"Cancelling {holder.name}")
        self._cancel(holder)
        return holder

    def _cancel(self, token: ActivityToken) -> None:
        token.cancel_event.set()
        if token.on_cancel is not None:
            try:
                token.on_cancel()
            except Exception as e:
                logger.error(f"Cancel callback for {token.name} failed: {e}", exc_info=True)
        self.client.stop_pathfinding()
