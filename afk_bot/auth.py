"""
auth.py - Automatic /register and /login for auth-plugin servers.

Cracked servers usually run an auth plugin (AuthMe and friends) that
freezes new players until they register or log in with a password.
After spawning, this module sends both commands with a short delay so
server plugins have time to load, then watches chat for the result.
"""

import logging
import re
from typing import Optional, List, Tuple

from integration.mc_client import MinecraftClient, ChatMessage
from utils.config import AutoAuthSettings
from .tasks import TaskGroup

logger = logging.getLogger(__name__)


class AuthModule:
    """
    Sends /register and /login after spawn.

    Usage:
        auth = AuthModule(client, settings.auto_auth)
        auth.setup()
    """

    # Server replies, checked in order against the lower-cased message
    AUTH_PATTERNS: List[Tuple[str, str]] = [
        ("already_registered", r"already registered"),
        ("registered", r"successfully registered"),
        ("logged_in", r"successful(ly)? ?log(ged)? ?in|logged in successfully"),
        ("wrong_password", r"(wrong|invalid|incorrect) password"),
        ("not_registered", r"not registered"),
    ]

    def __init__(
        self,
        client: MinecraftClient,
        settings: AutoAuthSettings,
        register_delay: float = 1.0,
        login_delay: float = 2.0
    ):
        """
        Initialize the auth module.

        Args:
            client: Minecraft client for chat
            settings: auto-auth section of the settings
            register_delay: Seconds after spawn before /register
            login_delay: Seconds after spawn before /login
        """
        self.client = client
        self.settings = settings
        self.register_delay = register_delay
        self.login_delay = login_delay
        self.timers = TaskGroup("auth")
        self.last_result: Optional[str] = None

    def setup(self) -> bool:
        """
        Start the module for a freshly spawned bot.

        Returns:
            True if authentication commands were scheduled
        """
        if not self.settings.enabled:
            logger.info("Module disabled in settings")
            return False

        if not self.settings.password:
            logger.warning("Module enabled but no password provided. Cannot authenticate.")
            return False

        logger.info("Module enabled, attempting registration and login...")
        self.client.on_event("chat", self.handle_chat)

        password = self.settings.password
        self.timers.after("register", self.register_delay,
                          lambda: self.client.send_chat(f"/register {password} {password}"))
        self.timers.after("login", self.login_delay,
                          lambda: self.client.send_chat(f"/login {password}"))
        return True

    def teardown(self) -> None:
        self.timers.cancel_all()

    def handle_chat(self, chat: ChatMessage) -> None:
        result = self.classify(chat.message)
        if result is None:
            return
        self.last_result = result

        if result in ("wrong_password", "not_registered"):
            logger.error(f"Authentication problem ({result}): {chat.message}")
        else:
            logger.info(f"Authentication status: {result}")

    @classmethod
    def classify(cls, message: str) -> Optional[str]:
        """
        Map an auth plugin reply to a status name.

        Returns:
            One of the AUTH_PATTERNS names, or None for unrelated chat
        """
        lower = message.lower()
        for name, pattern in cls.AUTH_PATTERNS:
            if re.search(pattern, lower):
                return name
        return None
