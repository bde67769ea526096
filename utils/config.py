"""
config.py - Configuration management for the AFK bot.

This module provides utilities for:
- Loading configuration from JSON/YAML files
- Mapping the settings file onto typed dataclasses
- Setting random seeds for reproducibility

The settings file keeps the key names and millisecond intervals of the
classic ``settings.json`` layout; they are converted to seconds here.
"""

import os
import json
import random
import logging
import numpy as np
import yaml
from typing import Dict, Optional, Any, List
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def set_seed(seed: int) -> None:
    """
    Set random seed for reproducibility.

    Sets seed for:
    - NumPy random
    - Python random

    Args:
        seed: Random seed value
    """
    np.random.seed(seed)
    random.seed(seed)

    # Set environment variable for any other libraries
    os.environ['PYTHONHASHSEED'] = str(seed)


def load_config(path: str) -> Optional[Dict]:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary, or None if missing or unreadable
    """
    if not os.path.exists(path):
        logger.error(f"Config file not found: {path}")
        return None

    try:
        with open(path, 'r') as f:
            if path.endswith('.yaml') or path.endswith('.yml'):
                return yaml.safe_load(f)
            return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Error loading config {path}: {e}")
        return None


def save_config(config: Dict, path: str) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration dictionary
        path: Path to save to
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if path.endswith('.yaml') or path.endswith('.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)


def _ms(value: Any, default_seconds: float) -> float:
    """Milliseconds from the settings file to seconds."""
    if value is None:
        return default_seconds
    return float(value) / 1000.0


@dataclass
class ServerSettings:
    ip: str = "localhost"
    port: int = 25565
    version: Optional[str] = None


@dataclass
class AccountSettings:
    username: str = "AfkBot"
    password: str = ""
    auth: str = "offline"


@dataclass
class PositionSettings:
    enabled: bool = False
    x: int = 0
    y: int = 0
    z: int = 0


@dataclass
class AutoAuthSettings:
    enabled: bool = False
    password: str = ""


@dataclass
class ChatMessagesSettings:
    enabled: bool = False
    repeat: bool = False
    repeat_delay: float = 60.0  # seconds
    messages: List[str] = field(default_factory=list)


@dataclass
class RoutineSettings:
    """One periodic anti-AFK routine."""
    enabled: bool = False
    interval: float = 5.0  # seconds


@dataclass
class MovementSettings(RoutineSettings):
    radius: int = 5


@dataclass
class InteractionSettings(RoutineSettings):
    nearby_block_types: List[str] = field(default_factory=list)


@dataclass
class JumpingSettings(RoutineSettings):
    probability: float = 0.5


@dataclass
class AntiAfkSettings:
    enabled: bool = False
    sneak: bool = False
    movement: MovementSettings = field(default_factory=MovementSettings)
    interaction: InteractionSettings = field(default_factory=InteractionSettings)
    jumping: JumpingSettings = field(default_factory=JumpingSettings)
    rotation: RoutineSettings = field(default_factory=RoutineSettings)
    fishing: RoutineSettings = field(default_factory=lambda: RoutineSettings(interval=30.0))


@dataclass
class PlayerActivitySettings:
    enabled: bool = False
    leave_when_player_joins: bool = False
    check_interval: float = 30.0  # seconds


@dataclass
class MiningSettings:
    enabled: bool = False
    interval: float = 10.0  # seconds
    max_distance: int = 5
    block_types: List[str] = field(default_factory=list)
    state_file: str = "mining_state.json"


@dataclass
class Settings:
    """
    Complete bot configuration.

    Usage:
        settings = Settings.from_file('settings.json')
        settings.server.ip = 'play.example.net'
    """
    server: ServerSettings = field(default_factory=ServerSettings)
    account: AccountSettings = field(default_factory=AccountSettings)
    position: PositionSettings = field(default_factory=PositionSettings)
    auto_auth: AutoAuthSettings = field(default_factory=AutoAuthSettings)
    chat_messages: ChatMessagesSettings = field(default_factory=ChatMessagesSettings)
    chat_log: bool = True
    anti_afk: AntiAfkSettings = field(default_factory=AntiAfkSettings)
    auto_reconnect: bool = True
    auto_reconnect_delay: float = 5.0  # seconds
    player_activity: PlayerActivitySettings = field(default_factory=PlayerActivitySettings)
    mining: MiningSettings = field(default_factory=MiningSettings)
    webserver_port: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Settings':
        """Build settings from a parsed settings file; missing keys keep defaults."""
        data = data or {}
        settings = cls()

        server = data.get('server', {})
        settings.server.ip = server.get('ip', settings.server.ip)
        settings.server.port = int(server.get('port', settings.server.port))
        settings.server.version = server.get('version') or None

        account = data.get('bot-account', {})
        settings.account.username = account.get('username', settings.account.username)
        settings.account.password = account.get('password') or ""
        settings.account.auth = account.get('type', settings.account.auth)

        position = data.get('position', {})
        settings.position = PositionSettings(
            enabled=bool(position.get('enabled', False)),
            x=int(position.get('x', 0)),
            y=int(position.get('y', 0)),
            z=int(position.get('z', 0)),
        )

        utils = data.get('utils', {})

        auth = utils.get('auto-auth', {})
        settings.auto_auth = AutoAuthSettings(
            enabled=bool(auth.get('enabled', False)),
            password=auth.get('password') or "",
        )

        chat = utils.get('chat-messages', {})
        settings.chat_messages = ChatMessagesSettings(
            enabled=bool(chat.get('enabled', False)),
            repeat=bool(chat.get('repeat', False)),
            repeat_delay=float(chat.get('repeat-delay') or 60),
            messages=list(chat.get('messages', [])),
        )
        settings.chat_log = bool(utils.get('chat-log', True))

        settings.anti_afk = _parse_anti_afk(utils.get('anti-afk', {}))

        settings.auto_reconnect = bool(utils.get('auto-reconnect', settings.auto_reconnect))
        # Older settings files spell the key "recconect"
        delay = utils.get('auto-reconnect-delay', utils.get('auto-recconect-delay'))
        settings.auto_reconnect_delay = _ms(delay, settings.auto_reconnect_delay)

        activity = utils.get('player-activity', {})
        settings.player_activity = PlayerActivitySettings(
            enabled=activity.get('enabled') is True,
            leave_when_player_joins=activity.get('leaveWhenPlayerJoins') is True,
            check_interval=float(activity.get('checkIntervalSeconds') or 30),
        )

        mining = data.get('mining', {})
        settings.mining = MiningSettings(
            enabled=bool(mining.get('enabled', False)),
            interval=_ms(mining.get('interval', mining.get('miningInterval')), 10.0),
            max_distance=int(mining.get('maxDistance') or 5),
            block_types=list(mining.get('blockTypes', [])),
            state_file=mining.get('stateFile', 'mining_state.json'),
        )

        webserver = data.get('webserver', {})
        port = webserver.get('port')
        settings.webserver_port = int(port) if port else None

        return settings

    @classmethod
    def from_file(cls, path: str) -> 'Settings':
        """Load settings from a JSON or YAML file."""
        return cls.from_dict(load_config(path))

    def account_password(self) -> str:
        """Account password, falling back to the MC_PASSWORD variable."""
        return self.account.password or os.environ.get('MC_PASSWORD', '')


def _parse_anti_afk(data: Dict[str, Any]) -> AntiAfkSettings:
    movement = data.get('movement', {})
    interaction = data.get('interaction', {})
    jumping = data.get('jumping', {})
    rotation = data.get('rotation', {})
    fishing = data.get('fishing', {})

    return AntiAfkSettings(
        enabled=bool(data.get('enabled', False)),
        sneak=bool(data.get('sneak', False)),
        movement=MovementSettings(
            enabled=bool(movement.get('enabled', False)),
            interval=_ms(movement.get('interval'), 5.0),
            radius=int(movement.get('radius', 5)),
        ),
        interaction=InteractionSettings(
            enabled=bool(interaction.get('enabled', False)),
            interval=_ms(interaction.get('interval'), 5.0),
            nearby_block_types=list(interaction.get('nearbyBlockTypes', [])),
        ),
        jumping=JumpingSettings(
            enabled=bool(jumping.get('enabled', False)),
            interval=_ms(jumping.get('interval'), 5.0),
            probability=float(jumping.get('probability', 0.5)),
        ),
        rotation=RoutineSettings(
            enabled=bool(rotation.get('enabled', False)),
            interval=_ms(rotation.get('interval'), 5.0),
        ),
        fishing=RoutineSettings(
            enabled=bool(fishing.get('enabled', False)),
            interval=_ms(fishing.get('interval'), 30.0),
        ),
    )
