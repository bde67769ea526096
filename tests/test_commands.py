"""
Tests for afk_bot/commands.py

Commands are delivered as simulated chat lines and the replies read back
from the dry-run client's chat log.
"""

import time

import pytest

from integration.mc_client import Position
from afk_bot.activity import Activity
from afk_bot.commands import CommandHandler, format_uptime, parse_command, parse_coordinates
from afk_bot.mining import MiningModule


@pytest.fixture
def mining(client, arbiter, mining_settings, state, rng):
    m = MiningModule(client, arbiter, mining_settings, state, rng)
    m.search_retry_ticks = 0
    m.error_pause_ticks = 0
    m.drop_pickup_ticks = 0
    return m


@pytest.fixture
def commands(client, arbiter, mining):
    handler = CommandHandler(client, arbiter, mining, background=False)
    handler.setup()
    return handler


def say(client, message, username="Steve"):
    client.chat_log.clear()
    client.simulate_chat(username, message)
    return client.chat_log


# =============================================================================
# Helper Tests
# =============================================================================

class TestFormatUptime:
    """Tests for format_uptime."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (4, "4s"),
        (60, "1m"),
        (3600, "1h"),
        (3661, "1h 1m 1s"),
        (93784, "1d 2h 3m 4s"),
        (86400, "1d"),
        (59.9, "59s"),
    ])
    def test_format(self, seconds, expected):
        assert format_uptime(seconds) == expected

    def test_invalid(self):
        assert format_uptime(-1) == "Invalid duration"
        assert format_uptime(float("nan")) == "Invalid duration"


class TestParseCommand:
    """Tests for parse_command and parse_coordinates."""

    def test_command_is_lowercased(self):
        assert parse_command("!Goto 1 2 3") == ("goto", ["1", "2", "3"])

    def test_not_a_command(self):
        assert parse_command("hello there") is None
        assert parse_command("!") is None
        assert parse_command("!   ") is None

    def test_coordinates(self):
        assert parse_coordinates(["1.7", "64", "-3"]) == Position(1, 64, -3)
        assert parse_coordinates(["1", "2"]) is None
        assert parse_coordinates(["a", "b", "c"]) is None


# =============================================================================
# Information command Tests
# =============================================================================

class TestInfoCommands:
    """Tests for status, help, uptime, inventory and ping."""

    def test_status(self, client, commands):
        assert say(client, "!status") == ["I'm online and running! Health: 20, Food: 20"]

    def test_help_lists_commands(self, client, commands):
        reply = say(client, "!help")[0]
        assert reply.startswith("Available commands:")
        assert "!goto <x> <y> <z>" in reply
        assert "!toggleMining" in reply

    def test_uptime(self, client, commands):
        commands.started_at = time.time() - 3700
        assert say(client, "!uptime")[0].startswith("Bot uptime: 1h 1m")

    def test_inventory_empty(self, client, commands):
        assert say(client, "!inventory") == ["My inventory is empty."]

    def test_inventory_listing(self, client, commands):
        client.give_item("dirt", 3)
        client.give_item("stone", 1)
        assert say(client, "!inventory") == ["I have: 3 dirt, 1 stone"]

    def test_ping(self, client, commands):
        assert say(client, "!ping") == ["Pong! 0ms"]

    def test_unknown(self, client, commands):
        assert say(client, "!dance") == ["Unknown command: dance. Try !help for a list of commands."]

    def test_case_insensitive(self, client, commands):
        assert say(client, "!PING") == ["Pong! 0ms"]

    def test_ignores_own_messages(self, client, commands):
        assert say(client, "!status", username="AfkBot") == []

    def test_ignores_plain_chat(self, client, commands):
        assert say(client, "hello bot") == []


# =============================================================================
# Movement command Tests
# =============================================================================

class TestMovementCommands:
    """Tests for follow, stopFollow, goto and dropitems."""

    def test_follow_visible_player(self, client, arbiter, commands):
        client.add_player("Alex", Position(5, 64, 5))
        assert say(client, "!follow Alex") == ["Following Alex. Use !stopFollow to stop."]
        assert client.goal == Position(5, 64, 5)
        assert arbiter.busy_with(Activity.COMMAND)

    def test_follow_defaults_to_sender(self, client, commands):
        client.add_player("Steve", Position(1, 64, 1))
        assert say(client, "!follow") == ["Following Steve. Use !stopFollow to stop."]

    def test_follow_unseen_player(self, client, arbiter, commands):
        assert say(client, "!follow Ghost") == ["I can't see Ghost."]
        assert arbiter.current is None

    def test_follow_unseen_player_keeps_current_command(self, client, arbiter, commands):
        mine = arbiter.try_acquire(Activity.COMMAND, "mine stone")
        assert say(client, "!follow Ghost") == ["I can't see Ghost."]
        assert not mine.cancelled
        assert arbiter.current is mine

    def test_stop_follow(self, client, arbiter, commands):
        client.add_player("Alex", Position(5, 64, 5))
        say(client, "!follow Alex")
        assert say(client, "!stopFollow") == ["Stopped following."]
        assert client.goal is None
        assert arbiter.current is None

    def test_stop_follow_when_idle(self, client, commands):
        assert say(client, "!stopfollow") == ["I'm not following anyone."]

    def test_goto(self, client, arbiter, commands):
        assert say(client, "!goto 10 64 -5") == ["Going to 10 64 -5.", "Arrived at 10 64 -5."]
        assert client.get_position() == Position(10.5, 64, -4.5)
        assert arbiter.current is None

    def test_goto_usage(self, client, commands):
        assert say(client, "!goto 10 64") == ["Usage: !goto <x> <y> <z>"]
        assert say(client, "!goto a b c") == ["Usage: !goto <x> <y> <z>"]

    def test_goto_supersedes_follow(self, client, arbiter, commands):
        client.add_player("Alex", Position(5, 64, 5))
        say(client, "!follow Alex")
        follow = arbiter.current
        say(client, "!goto 1 64 1")
        assert follow.cancelled

    def test_goto_preempts_anti_afk(self, client, arbiter, commands):
        wander = arbiter.try_acquire(Activity.ANTI_AFK, "wander")
        say(client, "!goto 1 64 1")
        assert wander.cancelled

    def test_drop_items(self, client, commands):
        assert say(client, "!dropitems") == ["Nothing to drop."]
        client.give_item("dirt", 3)
        client.give_item("stone", 1)
        assert say(client, "!dropitems") == ["Dropped 2 stack(s)."]
        assert client.get_inventory() == []


# =============================================================================
# Mining command Tests
# =============================================================================

class TestMiningCommands:
    """Tests for mine, stopMine, toggleMining and miningStatus."""

    def test_mine_usage(self, client, commands):
        assert say(client, "!mine") == ["Usage: !mine <block>"]

    def test_mine_runs_loop(self, client, arbiter, commands):
        client.set_block(2, 64, 0, "coal_ore")
        replies = say(client, "!mine coal_ore")
        assert replies[0] == "Starting to mine coal_ore. Use !stopMine to cancel."
        assert replies[-1] == "No more coal_ore found nearby. Stopping mining."
        assert client.block_at(Position(2, 64, 0)).is_air
        assert arbiter.current is None

    def test_stop_mine_when_idle(self, client, commands):
        assert say(client, "!stopMine") == ["I'm not mining right now."]

    def test_stop_mine_cancels_cycle(self, client, arbiter, commands):
        token = arbiter.try_acquire(Activity.MINING, "mining cycle")
        assert say(client, "!stopMine") == ["Stopped the current mining cycle."]
        assert token.cancelled

    def test_stop_mine_cancels_command(self, client, arbiter, commands):
        token = arbiter.try_acquire(Activity.COMMAND, "mine stone")
        assert say(client, "!stopMine") == ["Mining stopped."]
        assert token.cancelled

    def test_toggle_mining(self, client, commands, state):
        assert say(client, "!toggleMining") == ["Automatic mining is now disabled."]
        assert state.mining_enabled is False
        assert say(client, "!toggleMining") == ["Automatic mining is now enabled."]

    def test_mining_status(self, client, commands):
        assert say(client, "!miningStatus") == [
            "Automatic mining is enabled (idle). Blocks mined: 0"
        ]
