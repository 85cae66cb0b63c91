"""
VideoPlayer for SimulPlay.

Wraps a pyglet media player behind the PlayerCapability contract.
Native time unit is seconds, so no conversion happens here.

Lifecycle:
    player = VideoPlayer()
    player.load("movie.mp4")        # buffered, pyglet player not created yet
    player.create_player(window)    # MAIN THREAD ONLY, applies buffered load
    player.play()
"""

import os
import logging
from typing import Callable, Optional

import pyglet

from playback.player_capability import PlayerCapability, PlaybackState

logger = logging.getLogger(__name__)


class VideoPlayer(PlayerCapability):
    """
    Video source backed by pyglet.media.Player.

    pyglet does not report play/pause transitions itself, so the adapter emits
    a notification whenever one of its commands actually changes the state,
    and PAUSED when the stream reaches its end.
    """

    def __init__(self, name: str = "video", clock=None,
                 loader: Optional[Callable] = None):
        """
        Initialize video player.

        Args:
            name: Player name used in logs
            clock: Clock used to deliver notifications (default: pyglet clock)
            loader: Callable turning a path into a pyglet media source
                    (default: pyglet.media.load)
        """
        super().__init__(name, clock)
        self.player = None
        self._loader = loader
        self._started = False
        self._at_end = False
        self.video_path: Optional[str] = None

    # ==================== READINESS ====================

    def create_player(self, window=None):
        """
        Create the pyglet media player (MAIN THREAD ONLY).

        Must run on the pyglet event loop thread because the video texture is
        bound to the window's OpenGL context.

        Args:
            window: Optional pyglet window whose context should be current
        """
        if window is not None:
            window.switch_to()
        self.attach(pyglet.media.Player())

    def open(self, window=None) -> None:
        """Readiness hook: create the media player in the given window."""
        self.create_player(window)

    def attach(self, media_player) -> None:
        """
        Readiness transition: adopt a created media player and flush the
        buffered load.
        """
        self.player = media_player
        self.player.push_handlers(on_eos=self._on_eos)
        logger.info(f"{self.name}: Media player ready")
        self._flush_pending_load()

    def is_ready(self) -> bool:
        return self.player is not None

    def _load_now(self, identifier: str) -> None:
        loader = self._loader if self._loader is not None else pyglet.media.load
        try:
            source = loader(identifier)
        except Exception as e:
            # Missing file or unsupported codec: the player stays on its current source
            logger.warning(f"{self.name}: Failed to load video source '{identifier}': {e}")
            return

        had_source = self.player.source is not None
        self.player.queue(source)
        if had_source:
            self.player.next_source()

        self.video_path = identifier
        self._started = False
        self._at_end = False
        logger.info(f"{self.name}: Loaded {os.path.basename(identifier)} "
                    f"(duration: {self.get_duration():.2f}s)")

    # ==================== COMMANDS ====================

    def play(self, correlation_id: Optional[str] = None) -> None:
        if self.player is None:
            return

        before = self.get_state()
        if self._at_end and self.player.source is not None:
            # Replay after end of stream starts from the beginning
            self.player.seek(0.0)
        self._at_end = False
        self.player.play()
        self._started = True
        if before != PlaybackState.PLAYING:
            self._notify_later(PlaybackState.PLAYING, correlation_id)

    def pause(self, correlation_id: Optional[str] = None) -> None:
        if self.player is None:
            return

        before = self.get_state()
        self.player.pause()
        if before == PlaybackState.PLAYING:
            self._notify_later(PlaybackState.PAUSED, correlation_id)

    def seek_to(self, seconds: float) -> None:
        if self.player is None or self.player.source is None:
            return
        self._at_end = False
        self.player.seek(max(0.0, seconds))

    def toggle(self) -> None:
        """Toggle this player alone, as a viewer clicking the video would."""
        if self.get_state() == PlaybackState.PLAYING:
            self.pause()
        else:
            self.play()

    # ==================== QUERIES ====================

    def get_current_time(self) -> float:
        if self.player is None:
            return 0.0
        return float(self.player.time or 0.0)

    def get_duration(self) -> float:
        if self.player is None or self.player.source is None:
            return 0.0
        return float(self.player.source.duration or 0.0)

    def get_state(self) -> PlaybackState:
        if self.player is None:
            return PlaybackState.UNSTARTED
        if self.player.playing:
            return PlaybackState.PLAYING
        if self._started:
            return PlaybackState.PAUSED
        return PlaybackState.UNSTARTED

    def get_texture(self):
        """
        Get current video texture for rendering.

        Returns:
            Pyglet texture or None
        """
        if self.player and self.player.source:
            return self.player.texture
        return None

    # ==================== EVENTS ====================

    def _on_eos(self):
        """
        pyglet event: the current source finished playing.

        Handled here so pyglet's default (advance to the next, empty, source)
        does not run; the source stays loaded for seeking and replay.
        """
        logger.info(f"{self.name}: End of stream")
        self.player.pause()
        self._at_end = True
        self._notify(PlaybackState.PAUSED)
        return pyglet.event.EVENT_HANDLED

    def close(self):
        """Release the pyglet media player."""
        if self.player is not None:
            self.player.pause()
            self.player.delete()
            self.player = None
            logger.info(f"{self.name}: Closed media player")
