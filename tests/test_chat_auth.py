"""
Tests for afk_bot/chat.py and afk_bot/auth.py
"""

import pytest

from utils.config import ChatMessagesSettings, AutoAuthSettings
from afk_bot.auth import AuthModule
from afk_bot.chat import ChatModule, strip_color_codes


# =============================================================================
# ChatModule Tests
# =============================================================================

class TestChatModule:
    """Tests for scheduled chat messages."""

    def test_one_time_messages(self, client):
        settings = ChatMessagesSettings(enabled=True, messages=["hello", "world"])
        chat = ChatModule(client, settings)
        chat.setup()
        assert client.chat_log == ["hello", "world"]
        assert len(chat.timers) == 0

    def test_repeat_cycles_messages(self, client):
        settings = ChatMessagesSettings(enabled=True, repeat=True, repeat_delay=60,
                                        messages=["a", "b"])
        chat = ChatModule(client, settings)
        chat.setup()
        try:
            assert client.chat_log == []
            assert len(chat.timers) == 1
            assert [chat.send_next() for _ in range(3)] == ["a", "b", "a"]
            assert client.chat_log == ["a", "b", "a"]
        finally:
            chat.teardown()

    def test_enabled_with_empty_list(self, client):
        chat = ChatModule(client, ChatMessagesSettings(enabled=True, repeat=True))
        chat.setup()
        assert client.chat_log == []
        assert len(chat.timers) == 0

    def test_disabled(self, client):
        chat = ChatModule(client, ChatMessagesSettings(enabled=False, messages=["x"]))
        chat.setup()
        assert client.chat_log == []

    def test_strip_color_codes(self):
        assert strip_color_codes("§aHello §l§cWorld") == "Hello World"
        assert strip_color_codes("plain") == "plain"


# =============================================================================
# AuthModule Tests
# =============================================================================

class TestAuthModule:
    """Tests for /register and /login."""

    @pytest.mark.parametrize("message,expected", [
        ("You are already registered!", "already_registered"),
        ("Successfully registered!", "registered"),
        ("Successful login!", "logged_in"),
        ("You have successfully logged in", "logged_in"),
        ("Logged in successfully.", "logged_in"),
        ("Wrong password!", "wrong_password"),
        ("Incorrect password, try again", "wrong_password"),
        ("This user is not registered", "not_registered"),
        ("Steve joined the game", None),
    ])
    def test_classify(self, message, expected):
        assert AuthModule.classify(message) == expected

    def test_disabled(self, client):
        auth = AuthModule(client, AutoAuthSettings(enabled=False, password="pw"))
        assert auth.setup() is False

    def test_missing_password(self, client):
        auth = AuthModule(client, AutoAuthSettings(enabled=True, password=""))
        assert auth.setup() is False

    def test_sends_register_and_login(self, client):
        auth = AuthModule(client, AutoAuthSettings(enabled=True, password="secret"),
                          register_delay=0.0, login_delay=0.0)
        assert auth.setup() is True
        for task in list(auth.timers.tasks):
            task.join(1.0)
        assert sorted(client.chat_log) == ["/login secret", "/register secret secret"]

    def test_records_server_reply(self, client):
        auth = AuthModule(client, AutoAuthSettings(enabled=True, password="secret"),
                          register_delay=30.0, login_delay=30.0)
        auth.setup()
        try:
            client.simulate_chat("Server", "Successfully registered!")
            assert auth.last_result == "registered"
        finally:
            auth.teardown()
