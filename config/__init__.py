"""
Configuration structures for SimulPlay.

Settings dataclasses, JSON settings I/O and external tool discovery.
"""

from .settings import AppSettings, SyncSettings, SpotifySettings, AudioSettings
from .config_io import load_settings, save_settings, apply_environment

__all__ = ['AppSettings', 'SyncSettings', 'SpotifySettings', 'AudioSettings',
           'load_settings', 'save_settings', 'apply_environment']
