"""
Drift-correcting, echo-suppressing synchronization controller.

Keeps two independently clocked players perceptually in sync:

1. Drift correction: every tick (500ms by default) both positions are read;
   if they differ by more than the threshold (1.5s) the follower is seeked to
   the leader's position. The leader is never adjusted.

2. State mirroring: when either player reports PLAYING or PAUSED on its own,
   that player becomes the leader and the transition is issued on the other
   player.

Echo suppression:
    Every command the controller issues carries a fresh correlation id. A
    player reports that id back on the state change the command causes, and
    the controller discards exactly those notifications. Genuine changes
    (no id, or an id the controller is not waiting for) are always handled,
    even while another echo is still outstanding.

Example Usage:
    controller = SyncController(video_player, audio_player)
    controller.start()
    controller.play()
    ...
    controller.stop()
"""

import itertools
import logging
from collections import deque
from enum import Enum
from functools import partial
from typing import Deque, Dict, Optional, Tuple, Union

import pyglet

from playback.player_capability import PlayerCapability, PlaybackState, StateChange

logger = logging.getLogger(__name__)


class Leader(Enum):
    """Identity of a controlled player."""

    PLAYER_A = "a"
    PLAYER_B = "b"

    @property
    def other(self) -> 'Leader':
        return Leader.PLAYER_B if self is Leader.PLAYER_A else Leader.PLAYER_A


class SyncController:
    """
    Synchronizes exactly two PlayerCapability instances.

    All methods run on the main loop (pyglet clock). Commands are
    fire-and-forget; nothing here blocks or raises on player unavailability.
    """

    SYNC_INTERVAL_S = 0.5
    DRIFT_THRESHOLD_S = 1.5

    # Echo ids remembered per player; commands that cause no transition
    # produce no echo and age out of this window
    MAX_OUTSTANDING_ECHOES = 8

    def __init__(self, player_a: PlayerCapability, player_b: PlayerCapability,
                 interval_s: float = SYNC_INTERVAL_S,
                 drift_threshold_s: float = DRIFT_THRESHOLD_S,
                 default_leader: Union[Leader, str] = Leader.PLAYER_A,
                 clock=None):
        """
        Bind the controller to two players and register as their observer.

        Args:
            player_a: First player (conventionally the video source)
            player_b: Second player (conventionally the audio source)
            interval_s: Drift-correction tick interval in seconds
            drift_threshold_s: Drift tolerated before the follower is seeked
            default_leader: Leader until the first accepted notification
            clock: Clock to schedule the tick on (default: pyglet clock)

        Raises:
            ValueError: If the same player is passed twice or the leader is unknown
        """
        if player_a is player_b:
            raise ValueError("SyncController needs two distinct players")

        self._players: Dict[Leader, PlayerCapability] = {
            Leader.PLAYER_A: player_a,
            Leader.PLAYER_B: player_b,
        }
        self.interval_s = interval_s
        self.drift_threshold_s = drift_threshold_s
        self.clock = clock if clock is not None else pyglet.clock.get_default()

        self._leader = Leader(default_leader)
        self._running = False
        self._ids = itertools.count(1)
        self._outstanding: Dict[Leader, Deque[str]] = {
            key: deque(maxlen=self.MAX_OUTSTANDING_ECHOES) for key in Leader
        }

        # Single-subscriber registration: replaces any observer set earlier
        for key, player in self._players.items():
            player.set_state_observer(partial(self._on_state_change, key))

    # ==================== PROPERTIES ====================

    @property
    def players(self) -> Tuple[PlayerCapability, PlayerCapability]:
        return self._players[Leader.PLAYER_A], self._players[Leader.PLAYER_B]

    @property
    def leader(self) -> Leader:
        return self._leader

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def suppressing(self) -> bool:
        """True while at least one issued command has not been echoed yet."""
        return any(self._outstanding[key] for key in Leader)

    # ==================== LIFECYCLE ====================

    def start(self):
        """Begin the periodic drift-correction tick. No-op if already running."""
        if self._running:
            logger.debug("SyncController: start() while running, ignoring")
            return
        self.clock.schedule_interval(self._on_tick, self.interval_s)
        self._running = True
        logger.info(f"SyncController: Started (interval={self.interval_s * 1000:.0f}ms, "
                    f"threshold={self.drift_threshold_s:.2f}s)")

    def stop(self):
        """Cancel the tick. Safe to call repeatedly or before start()."""
        if not self._running:
            return
        self.clock.unschedule(self._on_tick)
        self._running = False
        logger.info("SyncController: Stopped")

    # ==================== USER COMMANDS ====================

    def play(self):
        """Play both players (A then B), regardless of the current leader."""
        for key in (Leader.PLAYER_A, Leader.PLAYER_B):
            self._issue(key, PlaybackState.PLAYING)

    def pause(self):
        """Pause both players (A then B), regardless of the current leader."""
        for key in (Leader.PLAYER_A, Leader.PLAYER_B):
            self._issue(key, PlaybackState.PAUSED)

    def seek_to(self, seconds: float):
        """Seek both players to the same absolute position in seconds."""
        for key in (Leader.PLAYER_A, Leader.PLAYER_B):
            self._players[key].seek_to(seconds)

    # ==================== DRIFT CORRECTION ====================

    def _on_tick(self, dt: float):
        self.sync_once()

    def sync_once(self) -> bool:
        """
        Run one drift-correction step.

        Returns:
            True if the follower was seeked, False if drift was within threshold
        """
        leader = self._leader
        leader_pos = self._players[leader].get_current_time()
        follower_pos = self._players[leader.other].get_current_time()

        drift = abs(leader_pos - follower_pos)
        if drift <= self.drift_threshold_s:
            return False

        logger.debug(f"SyncController: Drift {drift:.2f}s, seeking player "
                     f"{leader.other.value} to {leader_pos:.2f}s")
        self._players[leader.other].seek_to(leader_pos)
        return True

    # ==================== STATE MIRRORING ====================

    def _issue(self, key: Leader, state: PlaybackState):
        """Send a tagged play/pause to one player."""
        correlation_id = f"cmd-{next(self._ids)}"
        # Recorded before the call: an echo may arrive re-entrantly
        self._outstanding[key].append(correlation_id)
        player = self._players[key]
        if state == PlaybackState.PLAYING:
            player.play(correlation_id)
        else:
            player.pause(correlation_id)

    def _on_state_change(self, source: Leader, change: StateChange):
        """Observer registered on both players."""
        outstanding = self._outstanding[source]
        if change.correlation_id is not None and change.correlation_id in outstanding:
            outstanding.remove(change.correlation_id)
            logger.debug(f"SyncController: Discarded echo {change.correlation_id} "
                         f"({change.state.value}) from player {source.value}")
            return

        self._leader = source
        logger.info(f"SyncController: Player {source.value} -> {change.state.value}, now leader")

        if change.state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self._issue(source.other, change.state)

    def __repr__(self):
        return (
            f"SyncController("
            f"leader={self._leader.value}, "
            f"running={self._running}, "
            f"suppressing={self.suppressing})"
        )
