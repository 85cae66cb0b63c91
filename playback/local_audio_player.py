"""
LocalAudioPlayer for SimulPlay.

Plays a local audio file on a chosen output device behind the
PlayerCapability contract. The file is decoded fully into memory on a
background thread (FFmpeg to an in-memory WAV, read with soundfile), then
streamed through a sounddevice OutputStream.

Native time unit is sample frames; seconds are converted at the boundary.
"""

import io
import threading
import logging
from typing import Callable, Optional, Tuple

import ffmpeg
import numpy as np
import soundfile as sf

from config.ffmpeg_config import get_ffmpeg_cmd, FFmpegNotFoundError
from core.command_worker import CommandWorker
from playback.player_capability import PlayerCapability, PlaybackState

logger = logging.getLogger(__name__)

EOS_CHECK_INTERVAL_S = 0.1


def decode_audio_file(path: str) -> Tuple[np.ndarray, int]:
    """
    Decode an audio file to float32 frames (BACKGROUND THREAD SAFE).

    Streams FFmpeg output straight to memory (no temporary files):
        -vn: skip any video stream
        -map 0:a:0: first audio stream only

    Falls back to reading the file with soundfile directly when FFmpeg is not
    installed (WAV/FLAC/OGG only).

    Returns:
        (frames x channels float32 array, samplerate)
    """
    try:
        cmd = get_ffmpeg_cmd()
    except FFmpegNotFoundError:
        logger.warning("FFmpeg not found, decoding with soundfile only")
        return sf.read(path, dtype='float32', always_2d=True)

    try:
        stdout, _ = (
            ffmpeg
            .input(path)
            .output('pipe:', format='wav', acodec='pcm_s16le', vn=None, map='0:a:0')
            .run(cmd=cmd, capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        error_msg = e.stderr.decode('utf-8', errors='replace') if e.stderr else str(e)
        raise RuntimeError(f"FFmpeg failed to decode audio: {error_msg}") from e

    return sf.read(io.BytesIO(stdout), dtype='float32', always_2d=True)


def _default_stream_factory(**kwargs):
    # PortAudio is loaded on first use, not at import time
    import sounddevice as sd
    return sd.OutputStream(**kwargs)


class LocalAudioPlayer(PlayerCapability):
    """
    Audio source for local files, routed to a specific output device.

    Features:
    - Decoding on a background thread via CommandWorker
    - The output stream runs continuously and writes silence while paused,
      so play/pause take effect on the next audio block
    - End of stream is reported as PAUSED on the main loop
    """

    def __init__(self, device_index: Optional[int] = None, blocksize: int = 1024,
                 name: str = "local-audio", clock=None,
                 worker: Optional[CommandWorker] = None,
                 decoder: Callable[[str], Tuple[np.ndarray, int]] = decode_audio_file,
                 stream_factory: Callable = _default_stream_factory):
        """
        Initialize local audio player.

        Args:
            device_index: sounddevice output device (None = system default)
            blocksize: Frames per audio callback
            name: Player name used in logs
            clock: Main-loop clock (default: pyglet clock)
            worker: Background worker used for decoding
            decoder: path -> (frames, samplerate)
            stream_factory: Creates the output stream (sounddevice.OutputStream)
        """
        super().__init__(name, clock)
        self.device_index = device_index
        self.blocksize = blocksize
        self.worker = worker or CommandWorker(name)
        self._decoder = decoder
        self._stream_factory = stream_factory

        self.audio_path: Optional[str] = None
        self.audio_data: Optional[np.ndarray] = None
        self.samplerate: Optional[int] = None
        self.stream = None

        self._opened = False
        self._state = PlaybackState.UNSTARTED

        # Shared with the audio callback thread
        self._lock = threading.Lock()
        self._frame = 0
        self._playing = False
        self._eos_pending = False

    # ==================== READINESS ====================

    def open(self, window=None):
        """
        Readiness transition: start delivering worker results and EOS checks on
        the main loop, then apply the buffered load. No window is used.
        """
        if self._opened:
            return
        self._opened = True
        self.clock.schedule_interval(self.worker.pump, EOS_CHECK_INTERVAL_S)
        self.clock.schedule_interval(self._check_eos, EOS_CHECK_INTERVAL_S)
        logger.info(f"{self.name}: Output ready (device {self.device_index})")
        self._flush_pending_load()

    def is_ready(self) -> bool:
        return self._opened

    def _load_now(self, identifier: str) -> None:
        logger.info(f"{self.name}: Decoding {identifier}")
        self.worker.submit(self._decoder, identifier,
                           on_done=lambda result, error: self._on_decoded(identifier, result, error))

    def _on_decoded(self, path: str, result, error):
        if error is not None:
            logger.warning(f"{self.name}: Could not decode {path}: {error}")
            return

        data, samplerate = result
        self._close_stream()
        with self._lock:
            self.audio_data = data
            self.samplerate = int(samplerate)
            self._frame = 0
            self._playing = False
            self._eos_pending = False
        self.audio_path = path
        self._state = PlaybackState.UNSTARTED

        try:
            self.stream = self._stream_factory(
                samplerate=self.samplerate,
                channels=data.shape[1],
                dtype='float32',
                device=self.device_index,
                blocksize=self.blocksize,
                callback=self._audio_callback
            )
            self.stream.start()
        except Exception as e:
            logger.warning(f"{self.name}: Could not open output device {self.device_index}: {e}")
            self.stream = None
            return

        logger.info(f"{self.name}: Loaded {path} ({self.get_duration():.2f}s @ {self.samplerate}Hz)")

    # ==================== AUDIO THREAD ====================

    def _audio_callback(self, outdata, frames, time_info, status):
        """sounddevice callback (AUDIO THREAD)."""
        if status:
            logger.debug(f"{self.name}: Stream status {status}")

        with self._lock:
            if not self._playing or self.audio_data is None:
                outdata.fill(0)
                return

            chunk = self.audio_data[self._frame:self._frame + frames]
            count = len(chunk)
            outdata[:count] = chunk
            if count < frames:
                outdata[count:] = 0
                self._playing = False
                self._eos_pending = True
            self._frame += count

    def _check_eos(self, dt: float = 0.0):
        """Clock callback: report end of stream on the main loop."""
        with self._lock:
            eos, self._eos_pending = self._eos_pending, False
        if eos and self._state == PlaybackState.PLAYING:
            logger.info(f"{self.name}: End of stream")
            self._state = PlaybackState.PAUSED
            self._notify(PlaybackState.PAUSED)

    # ==================== COMMANDS ====================

    def play(self, correlation_id: Optional[str] = None) -> None:
        if self.stream is None or self._state == PlaybackState.PLAYING:
            return
        with self._lock:
            if self._frame >= len(self.audio_data):
                self._frame = 0
            self._playing = True
        self._state = PlaybackState.PLAYING
        self._notify_later(PlaybackState.PLAYING, correlation_id)

    def pause(self, correlation_id: Optional[str] = None) -> None:
        if self.stream is None or self._state != PlaybackState.PLAYING:
            return
        with self._lock:
            self._playing = False
        self._state = PlaybackState.PAUSED
        self._notify_later(PlaybackState.PAUSED, correlation_id)

    def seek_to(self, seconds: float) -> None:
        if self.audio_data is None or not self.samplerate:
            return
        frame = int(round(seconds * self.samplerate))
        with self._lock:
            self._frame = min(max(0, frame), len(self.audio_data))

    # ==================== QUERIES ====================

    def get_current_time(self) -> float:
        if not self.samplerate:
            return 0.0
        return self._frame / self.samplerate

    def get_duration(self) -> float:
        if self.audio_data is None or not self.samplerate:
            return 0.0
        return len(self.audio_data) / self.samplerate

    def get_state(self) -> PlaybackState:
        return self._state

    # ==================== CLEANUP ====================

    def _close_stream(self):
        if self.stream is not None:
            try:
                self.stream.stop()
                self.stream.close()
            except Exception as e:
                logger.debug(f"{self.name}: Error closing stream: {e}")
            self.stream = None

    def close(self):
        """
        Stop output and release resources.

        The stream is closed before audio_data is cleared because the callback
        reads from that buffer on the audio thread.
        """
        self.clock.unschedule(self.worker.pump)
        self.clock.unschedule(self._check_eos)
        self._close_stream()
        with self._lock:
            self._playing = False
            self.audio_data = None
        self._opened = False
        self.worker.shutdown()
        logger.info(f"{self.name}: Closed")
