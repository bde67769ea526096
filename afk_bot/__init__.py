"""
AFK Bot module for keeping a Minecraft account online.

This module provides the bot behaviour:
- Controller: Bot lifecycle, reconnects and player-activity mode
- MovementArbiter: Single owner of pathfinder goals
- AuthModule: /register and /login for auth plugins
- ChatModule: Scheduled messages and chat logging
- AntiAfkModule: Movement, interaction, jumping, rotation, fishing
- MiningModule: Automatic mining cycle and the !mine command
- CommandHandler: ! chat commands
- StatusServer: HTTP status endpoints

SAFETY NOTE:
This bot is intended to be used only where automation is explicitly
allowed by the server owner (e.g., your own worlds, private servers,
or servers that have given explicit permission). Do not use this in
violation of any server's terms of service.
"""

from .controller import BotController, BotState, ActivityAction, decide_activity
from .activity import Activity, ActivityToken, MovementArbiter
from .auth import AuthModule
from .chat import ChatModule
from .anti_afk import AntiAfkModule
from .mining import MiningModule, CycleResult
from .commands import CommandHandler
from .state import RuntimeState
from .tasks import IntervalTask, DelayedTask, TaskGroup
from .webserver import StatusServer

__all__ = [
    'BotController',
    'BotState',
    'ActivityAction',
    'decide_activity',
    'Activity',
    'ActivityToken',
    'MovementArbiter',
    'AuthModule',
    'ChatModule',
    'AntiAfkModule',
    'MiningModule',
    'CycleResult',
    'CommandHandler',
    'RuntimeState',
    'IntervalTask',
    'DelayedTask',
    'TaskGroup',
    'StatusServer',
]
