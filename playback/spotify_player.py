"""
SpotifyPlayer for SimulPlay.

Drives a Spotify Connect device through the Web API behind the
PlayerCapability contract. The Web API speaks milliseconds; this adapter
converts to and from seconds at its boundary.

Threading:
- HTTP calls run on a CommandWorker thread
- Results are applied on the pyglet main loop (worker.pump is scheduled there)
- State changes are detected by polling GET /me/player and by command acks
"""

import time
import logging
from typing import Callable, Optional

from core.command_worker import CommandWorker
from core.spotify_client import SpotifyWebClient, PlayerSnapshot
from playback.player_capability import PlayerCapability, PlaybackState

logger = logging.getLogger(__name__)

PUMP_INTERVAL_S = 0.05


class SpotifyPlayer(PlayerCapability):
    """
    Audio source backed by a Spotify Connect device.

    Readiness means a device id has been resolved. Loads issued before that
    are buffered and applied once the device is known.
    """

    def __init__(self, client: SpotifyWebClient, device_name: Optional[str] = "SimulPlay",
                 poll_interval_s: float = 1.0, name: str = "spotify", clock=None,
                 worker: Optional[CommandWorker] = None,
                 time_function: Callable[[], float] = time.monotonic):
        """
        Initialize Spotify player.

        Args:
            client: Web API client
            device_name: Connect device to control (falls back to the active device)
            poll_interval_s: Interval between playback state polls
            name: Player name used in logs
            clock: Main-loop clock (default: pyglet clock)
            worker: Background worker for HTTP calls
            time_function: Monotonic clock used for position estimates
        """
        super().__init__(name, clock)
        self.client = client
        self.device_name = device_name
        self.poll_interval_s = poll_interval_s
        self.worker = worker or CommandWorker(name)
        self._time = time_function

        self.device_id: Optional[str] = None
        self._resolving = False
        self._connected = False

        self._state = PlaybackState.UNSTARTED
        self._snapshot: Optional[PlayerSnapshot] = None
        self._snapshot_time = 0.0

        # Bumped on every command so that polls issued earlier are discarded
        self._command_seq = 0
        self._poll_in_flight = False

    # ==================== READINESS ====================

    def connect(self):
        """
        Start device resolution and background polling.

        Safe to call again; polling is only scheduled once.
        """
        if not self._connected:
            self._connected = True
            self.clock.schedule_interval(self.worker.pump, PUMP_INTERVAL_S)
            self.clock.schedule_interval(self._poll, self.poll_interval_s)
        self._resolve_device()

    def open(self, window=None) -> None:
        """Readiness hook: connect to the Web API (no window involved)."""
        self.connect()

    def _resolve_device(self):
        if self._resolving or self.device_id is not None:
            return
        self._resolving = True
        self.worker.submit(self.client.find_device_id, self.device_name, on_done=self._on_device)

    def _on_device(self, device_id, error):
        self._resolving = False
        if error is not None:
            logger.warning(f"{self.name}: Could not list Spotify devices: {error}")
            return
        if not device_id:
            logger.warning(f"{self.name}: Spotify device '{self.device_name}' not available yet")
            return

        self.device_id = device_id
        logger.info(f"{self.name}: Spotify player ready, device: {device_id}")
        self._flush_pending_load()

    def is_ready(self) -> bool:
        return self.device_id is not None

    def _load_now(self, identifier: str) -> None:
        self._command_seq += 1
        self._snapshot = PlayerSnapshot(is_playing=True, progress_ms=0, item_uri=identifier,
                                        device_id=self.device_id)
        self._snapshot_time = self._time()
        self.worker.submit(self.client.play_uri, identifier, self.device_id,
                           on_done=self._command_done('load', None))

    # ==================== COMMANDS ====================

    def play(self, correlation_id: Optional[str] = None) -> None:
        self._command(PlaybackState.PLAYING, correlation_id)

    def pause(self, correlation_id: Optional[str] = None) -> None:
        self._command(PlaybackState.PAUSED, correlation_id)

    def _command(self, target: PlaybackState, correlation_id: Optional[str]):
        if self.device_id is None:
            return

        self._command_seq += 1
        if target == PlaybackState.PLAYING:
            call, label = self.client.resume, 'play'
        else:
            call, label = self.client.pause, 'pause'
        self.worker.submit(call, self.device_id,
                           on_done=self._command_done(label, target, correlation_id))

    def _command_done(self, label: str, target: Optional[PlaybackState],
                      correlation_id: Optional[str] = None):
        """
        Build the acknowledgement callback for one command.

        The ack carries the id of its own command, so several tagged commands
        may be in flight at once. An ack that causes no transition emits nothing.
        """
        def on_done(result, error):
            if error is not None:
                logger.warning(f"{self.name}: Spotify {label} failed: {error}")
                return
            if target is not None:
                self._freeze_position()
                self._snapshot.is_playing = target == PlaybackState.PLAYING
                self._set_state(target, correlation_id)
        return on_done

    def seek_to(self, seconds: float) -> None:
        if self.device_id is None:
            return

        position_ms = max(0, int(round(seconds * 1000)))
        self._command_seq += 1
        self._freeze_position()
        self._snapshot.progress_ms = position_ms
        self.worker.submit(self.client.seek, position_ms, self.device_id,
                           on_done=self._command_done('seek', None))

    # ==================== POLLING ====================

    def _poll(self, dt: float = 0.0):
        """Clock callback: refresh the playback snapshot."""
        if self.device_id is None:
            self._resolve_device()
            return
        if self._poll_in_flight:
            return

        self._poll_in_flight = True
        seq = self._command_seq

        def on_snapshot(snapshot, error):
            self._poll_in_flight = False
            if error is not None:
                logger.warning(f"{self.name}: Spotify state poll failed: {error}")
                return
            if seq != self._command_seq:
                # A command was issued while this poll was in flight
                return
            self._apply_snapshot(snapshot)

        self.worker.submit(self.client.get_playback, on_done=on_snapshot)

    def _apply_snapshot(self, snapshot: Optional[PlayerSnapshot]):
        self._snapshot = snapshot
        self._snapshot_time = self._time()
        if snapshot is None:
            self._set_state(PlaybackState.UNSTARTED)
        elif snapshot.is_playing:
            self._set_state(PlaybackState.PLAYING)
        else:
            self._set_state(PlaybackState.PAUSED)

    def _set_state(self, state: PlaybackState, correlation_id: Optional[str] = None):
        """
        Record a state and notify on change. Main loop only.

        Transitions found by polling carry no id: they are never echoes.
        """
        if state == self._state:
            return
        self._state = state

        logger.debug(f"{self.name}: State -> {state.value}"
                     + (f" (echo of {correlation_id})" if correlation_id else ""))
        self._notify(state, correlation_id)

    # ==================== QUERIES ====================

    def _position_ms(self) -> float:
        snapshot = self._snapshot
        if snapshot is None:
            return 0.0
        position = float(snapshot.progress_ms)
        if snapshot.is_playing:
            position += (self._time() - self._snapshot_time) * 1000.0
        if snapshot.duration_ms > 0:
            position = min(position, float(snapshot.duration_ms))
        return position

    def _freeze_position(self):
        """Fold elapsed time into the snapshot so it can be edited in place."""
        if self._snapshot is None:
            self._snapshot = PlayerSnapshot(device_id=self.device_id)
        else:
            self._snapshot.progress_ms = int(self._position_ms())
        self._snapshot_time = self._time()

    def get_current_time(self) -> float:
        return self._position_ms() / 1000.0

    def get_duration(self) -> float:
        if self._snapshot is None:
            return 0.0
        return self._snapshot.duration_ms / 1000.0

    def get_state(self) -> PlaybackState:
        return self._state

    def close(self):
        """Stop polling and release the worker thread."""
        self.clock.unschedule(self._poll)
        self.clock.unschedule(self.worker.pump)
        self._connected = False
        self.worker.shutdown()
