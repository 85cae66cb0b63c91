"""
Player capability contract for SimulPlay.

Every playback source the SyncController drives (video, Spotify, local audio)
implements PlayerCapability. The controller only ever talks to this interface
and never inspects the concrete player type.

Contract summary:
- open(window=None): readiness transition, no-op by default
- load(identifier): buffered while the player is not ready, last one wins
- play()/pause(): no-op when no underlying player exists yet
- seek_to(seconds): always seconds, adapters convert to their native unit
- get_current_time()/get_duration(): seconds, 0.0 when unknown, never raise
- get_state(): PlaybackState, synchronous
- set_state_observer(observer): single subscriber, replaces the previous one
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging

import pyglet

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    """Playback states reported by every player."""

    PLAYING = "playing"
    PAUSED = "paused"
    UNSTARTED = "unstarted"


@dataclass(frozen=True)
class StateChange:
    """
    A state-change notification emitted by a player.

    Attributes:
        state: The new playback state
        correlation_id: Identifier of the programmatic command that caused this
                        change, or None for changes the player made on its own
                        (user interaction, end of stream, remote control)
    """
    state: PlaybackState
    correlation_id: Optional[str] = None


StateObserver = Callable[[StateChange], None]


class PlayerCapability(ABC):
    """
    Abstract base class for controllable playback sources.

    Subclasses:
    - VideoPlayer: pyglet media player (seconds)
    - SpotifyPlayer: Spotify Web API device (milliseconds)
    - LocalAudioPlayer: sounddevice output stream (sample frames)

    The base class owns the single-subscriber observer registration and the
    PendingLoad buffer so that every adapter behaves identically there.
    """

    def __init__(self, name: str, clock=None):
        """
        Initialize player.

        Args:
            name: Human-readable player name (used in logs)
            clock: Clock used to deliver notifications on the main loop.
                   Defaults to the pyglet default clock.
        """
        self.name = name
        self.clock = clock if clock is not None else pyglet.clock.get_default()
        self._observer: Optional[StateObserver] = None
        self._pending_identifier: Optional[str] = None

    # ==================== OBSERVER REGISTRATION ====================

    def set_state_observer(self, observer: Optional[StateObserver]) -> None:
        """
        Register the single state-change observer.

        Registering again REPLACES the previous observer; there is no fan-out
        to multiple subscribers. Pass None to clear the registration.
        """
        if self._observer is not None and observer is not None:
            logger.debug(f"{self.name}: Replacing existing state observer")
        self._observer = observer

    def _notify(self, state: PlaybackState, correlation_id: Optional[str] = None) -> None:
        """Deliver a notification to the current observer (main loop only)."""
        observer = self._observer
        if observer is None:
            return
        observer(StateChange(state, correlation_id))

    def _notify_later(self, state: PlaybackState, correlation_id: Optional[str] = None) -> None:
        """
        Deliver a notification on the next clock tick.

        Notifications are never delivered re-entrantly from inside a command
        call, so the caller of play()/pause() has returned before it arrives.
        """
        def deliver(dt):
            self._notify(state, correlation_id)

        self.clock.schedule_once(deliver, 0)

    # ==================== PENDING LOAD ====================

    def load(self, identifier: str) -> None:
        """
        Begin preparing a content item.

        If the player is not ready yet the identifier is kept as the pending
        load (overwriting any earlier one) and applied on readiness.
        """
        if not self.is_ready():
            if self._pending_identifier is not None:
                logger.debug(f"{self.name}: Pending load '{self._pending_identifier}' "
                             f"replaced by '{identifier}'")
            self._pending_identifier = identifier
            logger.info(f"{self.name}: Not ready, buffering load of '{identifier}'")
            return

        self._load_now(identifier)

    @property
    def pending_identifier(self) -> Optional[str]:
        """Identifier waiting for readiness, if any."""
        return self._pending_identifier

    def _flush_pending_load(self) -> None:
        """Apply the buffered load exactly once. Call on the readiness transition."""
        identifier = self._pending_identifier
        self._pending_identifier = None
        if identifier is not None:
            logger.info(f"{self.name}: Ready, applying buffered load of '{identifier}'")
            self._load_now(identifier)

    # ==================== ADAPTER HOOKS ====================

    @abstractmethod
    def is_ready(self) -> bool:
        """True once the underlying player can accept a load."""
        pass

    @abstractmethod
    def _load_now(self, identifier: str) -> None:
        """Load immediately. Only called when is_ready() is True."""
        pass

    @abstractmethod
    def play(self, correlation_id: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def pause(self, correlation_id: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def seek_to(self, seconds: float) -> None:
        pass

    @abstractmethod
    def get_current_time(self) -> float:
        pass

    @abstractmethod
    def get_duration(self) -> float:
        pass

    @abstractmethod
    def get_state(self) -> PlaybackState:
        pass

    def open(self, window=None) -> None:
        """
        Drive the player through its readiness transition.

        Args:
            window: Window the player renders into, for players that render
        """
        pass

    def close(self):
        """Release underlying resources. Subclasses override as needed."""
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}', ready={self.is_ready()})"
