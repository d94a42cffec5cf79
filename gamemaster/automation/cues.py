"""
Playback duration estimates for audio cues.

Cue files are constant bitrate MP3s, so their length is estimated from the
file size alone instead of decoding them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BITRATE_KBPS = 128


def estimate_duration(size_bytes: int, bitrate_kbps: int = DEFAULT_BITRATE_KBPS) -> float:
    """
    Estimate playback duration in seconds from a file size.

    Args:
        size_bytes: File size in bytes.
        bitrate_kbps: Assumed constant bitrate in kilobits per second.
    """
    if size_bytes <= 0:
        return 0.0
    return (size_bytes * 8) / (bitrate_kbps * 1000)


async def media_duration(path: Path, bitrate_kbps: int = DEFAULT_BITRATE_KBPS) -> float:
    """
    Estimate the playback duration of a media file.

    The file is stat'ed off the event loop. A missing or unreadable file
    is logged and estimated at zero seconds.
    """
    try:
        stat = await asyncio.to_thread(path.stat)
    except OSError as e:
        logger.warning("Cannot estimate duration of %s: %s", path, e)
        return 0.0

    duration = estimate_duration(stat.st_size, bitrate_kbps)
    logger.debug("Estimated duration of %s: %.2fs", path.name, duration)
    return duration
