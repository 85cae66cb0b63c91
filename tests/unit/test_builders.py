"""
Unit tests for the assembly helpers used by the launcher.
"""

import json

import pytest

from config.settings import AppSettings, SyncSettings, SpotifySettings
from core.auth import StaticTokenProvider, HttpTokenProvider
from playback.builders import (load_app_settings, build_token_provider, build_audio_player,
                               audio_identifier, build_controller)
from playback.local_audio_player import LocalAudioPlayer
from playback.spotify_player import SpotifyPlayer
from playback.sync_controller import Leader


@pytest.fixture
def settings():
    return AppSettings()


@pytest.mark.unit
def test_load_app_settings_without_file_uses_defaults_and_env():
    settings = load_app_settings(None, environ={'SIMULPLAY_SPOTIFY_TOKEN': 'abc'})

    assert settings.sync == SyncSettings()
    assert settings.spotify.access_token == 'abc'


@pytest.mark.unit
def test_load_app_settings_from_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({'sync': {'drift_threshold_s': 0.8}}), encoding='utf-8')

    settings = load_app_settings(str(path), environ={})

    assert settings.sync.drift_threshold_s == 0.8


@pytest.mark.unit
def test_load_app_settings_bad_file_falls_back(tmp_path):
    settings = load_app_settings(str(tmp_path / "missing.json"), environ={})

    assert settings == AppSettings()


@pytest.mark.unit
def test_token_provider_prefers_static_token():
    settings = AppSettings(spotify=SpotifySettings(access_token="abc", token_url="http://x/token"))

    provider = build_token_provider(settings)

    assert isinstance(provider, StaticTokenProvider)
    assert provider.get_token() == "abc"


@pytest.mark.unit
def test_token_provider_uses_token_url():
    settings = AppSettings(spotify=SpotifySettings(token_url="http://localhost:5173/auth/token"))

    provider = build_token_provider(settings)

    assert isinstance(provider, HttpTokenProvider)
    assert provider.token_url == "http://localhost:5173/auth/token"


@pytest.mark.unit
def test_token_provider_without_configuration(settings):
    assert build_token_provider(settings).get_token() is None


@pytest.mark.unit
def test_spotify_track_builds_spotify_player(settings, fake_clock):
    player = build_audio_player("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC",
                                settings, clock=fake_clock)

    assert isinstance(player, SpotifyPlayer)
    assert player.device_name == "SimulPlay"
    assert player.clock is fake_clock
    player.close()


@pytest.mark.unit
def test_audio_file_builds_local_player(settings, fake_clock):
    settings.audio.device_index = 2

    player = build_audio_player("/music/score.flac", settings, clock=fake_clock)

    assert isinstance(player, LocalAudioPlayer)
    assert player.device_index == 2
    player.close()


@pytest.mark.unit
def test_audio_identifier_normalises_links_and_paths():
    assert audio_identifier("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=1") == \
        "spotify:track:4uLU6hMCjMI75M1A2tKUQC"
    assert audio_identifier("file:///music/My%20Song.flac") == "/music/My Song.flac"


@pytest.mark.unit
def test_build_controller_applies_sync_settings(video, audio, fake_clock):
    settings = AppSettings(sync=SyncSettings(interval_s=0.25, drift_threshold_s=0.5,
                                             default_leader='audio'))

    controller = build_controller(video, audio, settings, clock=fake_clock)

    assert controller.leader == Leader.PLAYER_B
    assert controller.interval_s == 0.25
    assert controller.drift_threshold_s == 0.5

