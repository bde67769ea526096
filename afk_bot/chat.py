"""
chat.py - Scheduled chat messages and chat logging.
"""

import re
import logging
import threading

from integration.mc_client import MinecraftClient, ChatMessage
from utils.config import ChatMessagesSettings
from .tasks import TaskGroup

logger = logging.getLogger(__name__)

COLOR_CODE_RE = re.compile(r"§[0-9a-fk-or]", re.IGNORECASE)


def strip_color_codes(message: str) -> str:
    """Remove Minecraft § formatting codes."""
    return COLOR_CODE_RE.sub("", message)


class ChatModule:
    """
    Sends configured messages, once or on repeat, and logs incoming chat.

    Usage:
        chat = ChatModule(client, settings.chat_messages, log_chat=True)
        chat.setup()
    """

    def __init__(
        self,
        client: MinecraftClient,
        settings: ChatMessagesSettings,
        log_chat: bool = True
    ):
        self.client = client
        self.settings = settings
        self.log_chat = log_chat
        self.timers = TaskGroup("chat")
        self._index = 0
        self._index_lock = threading.Lock()

    def setup(self) -> None:
        if self.log_chat:
            self.client.on_event("chat", self.handle_chat)

        if not self.settings.enabled:
            logger.info("Chat messages disabled in settings")
            return

        messages = self.settings.messages
        if not messages:
            logger.warning("Chat messages enabled but the message list is empty")
            return

        if self.settings.repeat:
            logger.info(f"Repeating {len(messages)} message(s) every {self.settings.repeat_delay:g}s")
            self.timers.every("repeat", self.settings.repeat_delay, self.send_next)
        else:
            logger.info("Sending one-time messages")
            for message in messages:
                self.client.send_chat(message)

    def teardown(self) -> None:
        self.timers.cancel_all()

    def send_next(self) -> str:
        """Send the next message in the cycle and advance."""
        with self._index_lock:
            messages = self.settings.messages
            message = messages[self._index % len(messages)]
            self._index = (self._index + 1) % len(messages)
        logger.info(f"Sending repeating message: {message}")
        self.client.send_chat(message)
        return message

    def handle_chat(self, chat: ChatMessage) -> None:
        logger.info(f"<{chat.username}> {strip_color_codes(chat.message)}")
