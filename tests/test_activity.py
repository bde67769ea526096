"""
Tests for afk_bot/activity.py

Movement ownership: ANTI_AFK < MINING < COMMAND, commands supersede
commands, and preemption cancels the old holder.
"""

from integration.mc_client import Position
from afk_bot.activity import Activity


class TestMovementArbiter:
    """Tests for MovementArbiter."""

    def test_acquire_when_free(self, arbiter):
        token = arbiter.try_acquire(Activity.ANTI_AFK, "wander")
        assert token is not None
        assert arbiter.current is token
        assert arbiter.busy_with(Activity.ANTI_AFK)

    def test_lower_priority_is_refused(self, arbiter):
        arbiter.try_acquire(Activity.MINING, "mining cycle")
        assert arbiter.try_acquire(Activity.ANTI_AFK, "wander") is None
        assert arbiter.busy_with(Activity.MINING)

    def test_equal_priority_is_refused_for_background_work(self, arbiter):
        first = arbiter.try_acquire(Activity.MINING, "first")
        assert arbiter.try_acquire(Activity.MINING, "second") is None
        assert arbiter.current is first

    def test_higher_priority_preempts(self, client, arbiter):
        cancelled = []
        client.set_goal_block(Position(5, 64, 5))
        old = arbiter.try_acquire(Activity.ANTI_AFK, "wander",
                                  on_cancel=lambda: cancelled.append("wander"))

        new = arbiter.try_acquire(Activity.MINING, "mining cycle")
        assert new is not None
        assert old.cancelled
        assert cancelled == ["wander"]
        assert client.goal is None
        assert arbiter.current is new

    def test_command_supersedes_command(self, arbiter):
        follow = arbiter.try_acquire(Activity.COMMAND, "follow Steve")
        goto = arbiter.try_acquire(Activity.COMMAND, "goto (1, 2, 3)")
        assert goto is not None
        assert follow.cancelled
        assert arbiter.current is goto

    def test_release_of_superseded_token(self, arbiter):
        old = arbiter.try_acquire(Activity.ANTI_AFK, "wander")
        new = arbiter.try_acquire(Activity.COMMAND, "goto")
        assert arbiter.release(old) is False
        assert arbiter.current is new
        assert arbiter.release(new) is True
        assert arbiter.current is None

    def test_cancel_only_matching_activity(self, arbiter):
        token = arbiter.try_acquire(Activity.COMMAND, "follow Steve")
        assert arbiter.cancel(Activity.MINING) is None
        assert not token.cancelled
        assert arbiter.cancel(Activity.COMMAND) is token
        assert token.cancelled
        assert arbiter.current is None

    def test_cancel_current(self, arbiter):
        assert arbiter.cancel_current() is None
        token = arbiter.try_acquire(Activity.MINING, "mining cycle")
        assert arbiter.cancel_current() is token
        assert token.cancelled

    def test_failing_cancel_callback_is_contained(self, client, arbiter):
        def broken():
            raise RuntimeError("callback failed")

        arbiter.try_acquire(Activity.ANTI_AFK, "wander", on_cancel=broken)
        assert arbiter.try_acquire(Activity.COMMAND, "goto") is not None
