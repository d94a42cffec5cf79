"""
Socket.IO handler groups for Gamemaster.

Components:
- GameChannel: station register / state_update / event / disconnect
- AudioRelay: playback commands to the audio players
- SignalingRelay: WebRTC signaling pass-through
- CameraTracker: camera liveness and frame relay
"""

from gamemaster.channel.audio_relay import AudioRelay
from gamemaster.channel.cameras import CameraTracker
from gamemaster.channel.socketio_server import GameChannel, create_sio
from gamemaster.channel.webrtc_relay import SignalingRelay

__all__ = [
    "AudioRelay",
    "CameraTracker",
    "GameChannel",
    "SignalingRelay",
    "create_sio",
]
