"""
Integration module for the AFK bot.

This module provides integration with the external Minecraft client:
- MinecraftClient: Interface over the mineflayer bot
- get_player_status: Server list ping
"""

from .mc_client import (
    MinecraftClient,
    ClientConfig,
    ClientError,
    PathTimeoutError,
    Position,
    Block,
    Item,
    ChatMessage,
)
from .server_status import ServerStatus, get_player_status

__all__ = [
    'MinecraftClient',
    'ClientConfig',
    'ClientError',
    'PathTimeoutError',
    'Position',
    'Block',
    'Item',
    'ChatMessage',
    'ServerStatus',
    'get_player_status',
]
