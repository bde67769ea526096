"""
state.py - Runtime flags that survive restarts.

Only the automatic-mining toggle is persisted. The file is small JSON:

    {"miningEnabled": true}
"""

import json
import logging
import threading
from typing import Optional
from pathlib import Path

from utils.config import save_config

logger = logging.getLogger(__name__)


class RuntimeState:
    """Persisted mining-enabled flag."""

    KEY = "miningEnabled"

    def __init__(self, path: str, default_enabled: bool = False):
        self.path = path
        self._lock = threading.Lock()
        self._mining_enabled = default_enabled

        stored = self._load()
        if stored is not None:
            self._mining_enabled = stored

    @property
    def mining_enabled(self) -> bool:
        return self._mining_enabled

    def set_mining_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._mining_enabled = enabled
            self._save()

    def toggle_mining(self) -> bool:
        """Flip and persist the flag. Returns the new value."""
        with self._lock:
            self._mining_enabled = not self._mining_enabled
            self._save()
            return self._mining_enabled

    def _load(self) -> Optional[bool]:
        if not Path(self.path).exists():
            return None
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

        value = data.get(self.KEY) if isinstance(data, dict) else None
        if not isinstance(value, bool):
            logger.warning(f"Ignoring state file {self.path}: no boolean {self.KEY}")
            return None
        logger.info(f"Loaded mining state from {self.path}: enabled={value}")
        return value

    def _save(self) -> None:
        try:
            save_config({self.KEY: self._mining_enabled}, self.path)
        except OSError as e:
            logger.error(f"Could not save state to {self.path}: {e}")
