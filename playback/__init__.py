"""
Playback module for SimulPlay.

Contains the player capability contract, the concrete players and the
synchronization controller.
"""

from .player_capability import PlayerCapability, PlaybackState, StateChange
from .sync_controller import SyncController, Leader

__all__ = ['PlayerCapability', 'PlaybackState', 'StateChange', 'SyncController', 'Leader']
