"""
AFK Bot - Test Fixtures
=======================

Shared fixtures for all tests. The dry-run MinecraftClient stands in for
the game: it keeps a small block world, an inventory and a chat log.
"""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from integration.mc_client import MinecraftClient, ClientConfig
from utils.config import Settings, MiningSettings
from afk_bot.activity import MovementArbiter
from afk_bot.state import RuntimeState


@pytest.fixture
def client():
    """Connected dry-run client standing at (0.5, 64, 0.5) on a stone floor."""
    c = MinecraftClient(ClientConfig(username="AfkBot", dry_run=True))
    c.connect()
    for x in range(-6, 7):
        for z in range(-6, 7):
            c.set_block(x, 63, z, "stone")
    return c


@pytest.fixture
def arbiter(client):
    return MovementArbiter(client)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def state(tmp_path):
    return RuntimeState(str(tmp_path / "mining_state.json"), default_enabled=True)


@pytest.fixture
def mining_settings(tmp_path):
    return MiningSettings(
        enabled=True,
        interval=10.0,
        max_distance=3,
        block_types=["coal_ore"],
        state_file=str(tmp_path / "mining_state.json"),
    )


@pytest.fixture
def settings(tmp_path):
    s = Settings()
    s.mining.state_file = str(tmp_path / "mining_state.json")
    return s
