"""
SimulPlay Launcher

Plays a local video in a pyglet window while a second audio source (a Spotify
Connect device or a local audio file) is kept in sync with it.

Usage:
    python launcher.py --video clip.mp4 --track spotify:track:4uLU6hMCjMI75M1A2tKUQC
    python launcher.py --video clip.mp4 --track score.flac --audio-device 3

Keys:
    SPACE        play/pause both players
    LEFT/RIGHT   seek both players -/+ 10 seconds
    V            play/pause the video alone (the audio follows)
    ESC          quit
"""

import argparse
import logging
import sys

import pyglet
from pyglet.window import key

from core.identifiers import parse_media_path
from playback.builders import (load_app_settings, build_audio_player, build_controller,
                               audio_identifier)
from playback.player_capability import PlayerCapability, PlaybackState
from playback.sync_controller import SyncController
from playback.video_player import VideoPlayer

logger = logging.getLogger("simulplay")

SEEK_STEP_S = 10.0
STATUS_INTERVAL_S = 0.5


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='simulplay',
                                     description="Play a video and an audio source in sync.")
    parser.add_argument('--video', required=True, help="Video file path or file:// URL")
    parser.add_argument('--track', required=True,
                        help="Spotify URI/link or local audio file")
    parser.add_argument('--config', help="Settings JSON file")
    parser.add_argument('--audio-device', type=int, default=None,
                        help="Output device index for local audio")
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


class SimulPlayApp:
    """
    Window, key bindings and status line around one SyncController.

    The status line (window caption) is refreshed on the clock because the
    controller owns the players' single observer slot.
    """

    def __init__(self, window, video: VideoPlayer, audio: PlayerCapability,
                 controller: SyncController):
        self.window = window
        self.video = video
        self.audio = audio
        self.controller = controller
        self.window.push_handlers(on_draw=self.on_draw, on_key_press=self.on_key_press,
                                  on_close=self.on_close)

    def on_draw(self):
        self.window.clear()
        texture = self.video.get_texture()
        if texture is not None:
            texture.blit(0, 0, width=self.window.width, height=self.window.height)

    def on_key_press(self, symbol, modifiers):
        if symbol == key.SPACE:
            if self.video.get_state() == PlaybackState.PLAYING:
                self.controller.pause()
            else:
                self.controller.play()
        elif symbol == key.RIGHT:
            self.controller.seek_to(self.video.get_current_time() + SEEK_STEP_S)
        elif symbol == key.LEFT:
            self.controller.seek_to(max(0.0, self.video.get_current_time() - SEEK_STEP_S))
        elif symbol == key.V:
            self.video.toggle()
        elif symbol == key.ESCAPE:
            return self.on_close()

    def update_status(self, dt=0.0):
        self.window.set_caption(
            f"SimulPlay | video: {self.video.get_state().value} "
            f"{self.video.get_current_time():6.1f}s | "
            f"{self.audio.name}: {self.audio.get_state().value} "
            f"{self.audio.get_current_time():6.1f}s | "
            f"leader: {self.controller.leader.value}"
        )

    def on_close(self):
        self.controller.stop()
        pyglet.clock.unschedule(self.update_status)
        self.video.close()
        self.audio.close()
        self.window.close()
        pyglet.app.exit()
        return pyglet.event.EVENT_HANDLED


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    settings = load_app_settings(args.config)
    if args.audio_device is not None:
        settings.audio.device_index = args.audio_device

    window = pyglet.window.Window(640, 360, caption="SimulPlay", resizable=True)
    video = VideoPlayer()
    audio = build_audio_player(args.track, settings)
    controller = build_controller(video, audio, settings)
    app = SimulPlayApp(window, video, audio, controller)

    # Loads are buffered until each player becomes ready
    video.load(parse_media_path(args.video))
    audio.load(audio_identifier(args.track))
    video.open(window)
    audio.open()

    controller.start()
    controller.play()
    pyglet.clock.schedule_interval(app.update_status, STATUS_INTERVAL_S)

    logger.info("Ready. SPACE play/pause, LEFT/RIGHT seek, V toggle video, ESC quit.")
    pyglet.app.run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
