"""
Utilities module for the AFK bot.

This module provides common utilities:
- Configuration management
- Random seed management
"""

from .config import (
    set_seed,
    load_config,
    save_config,
    Settings,
)

__all__ = [
    'set_seed',
    'load_config',
    'save_config',
    'Settings',
]
