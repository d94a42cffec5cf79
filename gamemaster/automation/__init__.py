"""
Cross-station automation for Gamemaster.

Rules react to what one station reports by commanding other stations.
"""

from gamemaster.automation.engine import AutomationEngine
from gamemaster.automation.rules import (
    CONNECT_RULES,
    EVENT_RULES,
    AudioCue,
    Command,
    DelayedCommand,
    Reaction,
    RuleContext,
)

__all__ = [
    "AudioCue",
    "AutomationEngine",
    "CONNECT_RULES",
    "Command",
    "DelayedCommand",
    "EVENT_RULES",
    "Reaction",
    "RuleContext",
]
