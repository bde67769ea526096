"""
server_status.py - Server list ping without joining the game.

Used by the player-activity mode to see who is online before deciding
whether the bot should be connected. The ping itself is done by
minecraft-protocol through the ``javascript`` bridge.
"""

import logging
from typing import List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class ServerStatus:
    """Player information from a status ping."""
    online: int
    sample: List[str] = field(default_factory=list)  # player names

    def other_players(self, bot_username: str, bot_connected: bool) -> int:
        """
        Number of online players that are not the bot itself.

        The bot only counts as online when it is connected and its name is
        in the sample list the server returned.
        """
        if bot_connected and bot_username in self.sample:
            return max(self.online - 1, 0)
        return self.online


def get_player_status(
    host: str,
    port: int = 25565,
    timeout: float = 5.0
) -> Optional[ServerStatus]:
    """
    Ping a server for its player count.

    Args:
        host: Server address
        port: Server port
        timeout: Seconds to wait for the reply

    Returns:
        ServerStatus, or None if the server could not be reached
    """
    try:
        from javascript import require

        protocol = require("minecraft-protocol")
        response = protocol.ping(
            {"host": host, "port": port, "closeTimeout": int(timeout * 1000)},
            timeout=timeout
        )
        players = response.players
        sample = [str(p.name) for p in (players.sample or [])]
        return ServerStatus(online=int(players.online), sample=sample)
    except Exception as e:
        logger.error(f"Error getting server status: {e}", exc_info=True)
        return None
