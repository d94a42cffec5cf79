"""
Gamemaster - Live control panel coordinator for an escape-room experience.

Gamemaster tracks a fixed roster of mini-game stations, relays operator
commands to them, keeps dashboards up to date with the aggregate state and
automates cross-station reactions.
"""

__version__ = "0.1.0"
__author__ = "Gamemaster Contributors"
__license__ = "GPL-2.0"

from gamemaster.server import GamemasterServer

__all__ = ["GamemasterServer", "__version__"]
