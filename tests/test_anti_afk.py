"""
Tests for afk_bot/anti_afk.py
"""

import math

import pytest

from integration.mc_client import Position
from utils.config import AntiAfkSettings, PositionSettings
from afk_bot.activity import Activity
from afk_bot.anti_afk import AntiAfkModule


@pytest.fixture
def afk_settings():
    s = AntiAfkSettings(enabled=True)
    s.movement.radius = 4
    s.interaction.nearby_block_types = ["lever"]
    s.jumping.probability = 1.0
    return s


@pytest.fixture
def anti_afk(client, arbiter, afk_settings, rng):
    module = AntiAfkModule(client, arbiter, afk_settings, rng=rng)
    yield module
    module.teardown()


class TestWander:
    """Tests for the movement routine."""

    def test_moves_within_radius(self, client, arbiter, anti_afk):
        assert anti_afk.wander() is True
        pos = client.get_position()
        assert abs(pos.x - 0.5) <= 4 and abs(pos.z - 0.5) <= 4
        assert pos.y == 64
        assert arbiter.current is None

    def test_yields_to_mining(self, client, arbiter, anti_afk):
        arbiter.try_acquire(Activity.MINING, "mining cycle")
        assert anti_afk.wander() is False
        assert client.get_position() == Position(0.5, 64, 0.5)


class TestInteract:
    """Tests for the interaction routine."""

    def test_activates_nearby_block(self, client, anti_afk):
        client.set_block(1, 64, 0, "lever")
        assert anti_afk.interact() is True

    def test_nothing_nearby(self, anti_afk):
        assert anti_afk.interact() is False

    def test_no_types_configured(self, client, anti_afk, afk_settings):
        client.set_block(1, 64, 0, "lever")
        afk_settings.interaction.nearby_block_types = []
        assert anti_afk.interact() is False


class TestJumpAndRotate:
    """Tests for the jumping and rotation routines."""

    def test_jump_always(self, client, anti_afk):
        assert anti_afk.jump() is True
        assert client.get_control_state("jump") is True

    def test_jump_never(self, client, anti_afk, afk_settings):
        afk_settings.jumping.probability = 0.0
        assert anti_afk.jump() is False
        assert client.get_control_state("jump") is False

    def test_jump_released_after_hold(self, client, anti_afk):
        anti_afk.JUMP_HOLD_SECONDS = 0.0
        assert anti_afk.jump() is True
        for task in list(anti_afk.timers.tasks):
            task.join(1.0)
        assert client.get_control_state("jump") is False

    def test_finished_jump_timers_are_dropped(self, anti_afk):
        anti_afk.JUMP_HOLD_SECONDS = 0.0
        for _ in range(200):
            anti_afk.jump()
        for task in list(anti_afk.timers.tasks):
            task.join(1.0)
        assert len(anti_afk.timers) == 0
        assert anti_afk.timers.tasks == []

    def test_rotate_in_range(self, client, anti_afk):
        for _ in range(20):
            anti_afk.rotate()
            assert -math.pi <= client._yaw <= math.pi
            assert -math.pi / 2 <= client._pitch <= math.pi / 2


class TestFish:
    """Tests for the fishing routine."""

    def test_without_rod(self, anti_afk):
        assert anti_afk.fish() is False

    def test_cast_and_reel(self, client, anti_afk):
        client.give_item("fishing_rod")
        anti_afk.FISHING_WAIT_RANGE = (0.0, 0.0)
        assert anti_afk.fish() is True
        assert client.held_item() == "fishing_rod"

    def test_teardown_interrupts_wait(self, client, anti_afk):
        client.give_item("fishing_rod")
        anti_afk.teardown()
        assert anti_afk.fish() is False


class TestSetup:
    """Tests for setup and the configured position."""

    def test_sneak_and_timers(self, client, anti_afk, afk_settings):
        afk_settings.sneak = True
        afk_settings.rotation.enabled = True
        afk_settings.jumping.enabled = True
        anti_afk.setup()
        assert client.get_control_state("sneak") is True
        assert len(anti_afk.timers) == 2

    def test_disabled(self, client, arbiter, rng):
        module = AntiAfkModule(client, arbiter, AntiAfkSettings(enabled=False), rng=rng)
        module.setup()
        assert len(module.timers) == 0
        assert client.get_control_state("sneak") is False

    def test_goes_to_configured_position(self, client, arbiter, afk_settings, rng):
        position = PositionSettings(enabled=True, x=10, y=64, z=-3)
        module = AntiAfkModule(client, arbiter, afk_settings, position=position, rng=rng)
        module.setup()
        try:
            assert client.goal == Position(10, 64, -3)
            assert arbiter.current.name == "position goal"

            timer = module._position_timer
            client.simulate_event("goal_reached")
            assert arbiter.current is None
            assert timer.cancelled
        finally:
            module.teardown()

    def test_gives_up_on_unreachable_position(self, client, arbiter, afk_settings, rng):
        position = PositionSettings(enabled=True, x=1000, y=5, z=1000)
        module = AntiAfkModule(client, arbiter, afk_settings, position=position, rng=rng)
        module.POSITION_TIMEOUT = 0.0
        try:
            assert module.go_to_configured_position() is True
            for task in list(module.timers.tasks):
                task.join(1.0)
            assert arbiter.current is None
            assert client.goal is None
            assert module.wander() is True
        finally:
            module.teardown()

    def test_preempted_position_goal(self, client, arbiter, afk_settings, rng):
        position = PositionSettings(enabled=True, x=10, y=64, z=-3)
        module = AntiAfkModule(client, arbiter, afk_settings, position=position, rng=rng)
        try:
            assert module.go_to_configured_position() is True
            timer = module._position_timer
            mining = arbiter.try_acquire(Activity.MINING, "mining cycle")
            assert timer.cancelled
            assert module._position_token is None

            client.simulate_event("goal_reached")
            assert arbiter.current is mining
        finally:
            module.teardown()
