"""
Assembly helpers: turn settings and user identifiers into ready-to-open
players and a controller.
"""

import logging
from typing import Optional

from config.config_io import load_settings, apply_environment
from config.settings import AppSettings
from core.auth import TokenProvider, StaticTokenProvider, HttpTokenProvider
from core.identifiers import parse_media_path, parse_spotify_uri, is_spotify_uri
from core.spotify_client import SpotifyWebClient
from playback.local_audio_player import LocalAudioPlayer
from playback.player_capability import PlayerCapability
from playback.spotify_player import SpotifyPlayer
from playback.sync_controller import SyncController, Leader

logger = logging.getLogger(__name__)

LEADER_BY_NAME = {'video': Leader.PLAYER_A, 'audio': Leader.PLAYER_B}


def load_app_settings(path: Optional[str], environ=None) -> AppSettings:
    """Settings from file (if given and valid) plus environment overrides."""
    settings = None
    if path:
        settings = load_settings(path)
        if settings is None:
            logger.warning(f"Using default settings ({path} could not be loaded)")
    return apply_environment(settings or AppSettings(), environ)


def build_token_provider(settings: AppSettings) -> TokenProvider:
    spotify = settings.spotify
    if spotify.access_token:
        return StaticTokenProvider(spotify.access_token)
    if spotify.token_url:
        return HttpTokenProvider(spotify.token_url, timeout=spotify.timeout_s)
    logger.warning("No Spotify token configured (set SIMULPLAY_SPOTIFY_TOKEN or spotify.token_url)")
    return StaticTokenProvider(None)


def build_audio_player(track: str, settings: AppSettings, clock=None) -> PlayerCapability:
    """Spotify player for Spotify identifiers, local player for anything else."""
    if is_spotify_uri(track):
        client = SpotifyWebClient(build_token_provider(settings),
                                  api_base=settings.spotify.api_base,
                                  timeout=settings.spotify.timeout_s)
        return SpotifyPlayer(client,
                             device_name=settings.spotify.device_name,
                             poll_interval_s=settings.spotify.poll_interval_s,
                             clock=clock)
    return LocalAudioPlayer(device_index=settings.audio.device_index,
                            blocksize=settings.audio.blocksize,
                            clock=clock)


def audio_identifier(track: str) -> str:
    if is_spotify_uri(track):
        return parse_spotify_uri(track)
    return parse_media_path(track)


def build_controller(video: PlayerCapability, audio: PlayerCapability,
                     settings: AppSettings, clock=None) -> SyncController:
    return SyncController(video, audio,
                          interval_s=settings.sync.interval_s,
                          drift_threshold_s=settings.sync.drift_threshold_s,
                          default_leader=LEADER_BY_NAME[settings.sync.default_leader],
                          clock=clock)
