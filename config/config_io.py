"""
Settings file I/O for SimulPlay.

Settings live in a JSON file; a few values can be overridden from the
environment so secrets need not be written to disk:

    SIMULPLAY_SPOTIFY_TOKEN   -> spotify.access_token
    SIMULPLAY_TOKEN_URL       -> spotify.token_url
    SIMULPLAY_AUDIO_DEVICE    -> audio.device_index
"""

import json
import os
import logging
from typing import Mapping, Optional

from config.settings import AppSettings

logger = logging.getLogger(__name__)


def save_settings(settings: AppSettings, filepath: str) -> bool:
    """
    Save settings to a JSON file.

    Args:
        settings: AppSettings object to save
        filepath: Path where JSON file should be saved

    Returns:
        True if successful, False otherwise
    """
    try:
        directory = os.path.dirname(filepath)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info(f"Settings saved to {filepath}")
        return True

    except (OSError, TypeError) as e:
        logger.error(f"Error saving settings to {filepath}: {e}")
        return False


def load_settings(filepath: str) -> Optional[AppSettings]:
    """
    Load settings from a JSON file.

    Returns:
        AppSettings object, or None if the file is missing, unreadable or invalid
    """
    if not os.path.exists(filepath):
        logger.warning(f"Settings file not found: {filepath}")
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        settings = AppSettings.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error loading settings from {filepath}: {e}")
        return None

    valid, errors = settings.validate()
    if not valid:
        for error in errors:
            logger.error(f"Invalid setting in {filepath}: {error}")
        return None

    logger.info(f"Settings loaded from {filepath}")
    return settings


def apply_environment(settings: AppSettings, environ: Optional[Mapping[str, str]] = None) -> AppSettings:
    """
    Apply SIMULPLAY_* environment overrides in place.

    Returns:
        The same settings object, for chaining
    """
    environ = os.environ if environ is None else environ

    token = environ.get('SIMULPLAY_SPOTIFY_TOKEN')
    if token:
        settings.spotify.access_token = token

    token_url = environ.get('SIMULPLAY_TOKEN_URL')
    if token_url:
        settings.spotify.token_url = token_url

    device = environ.get('SIMULPLAY_AUDIO_DEVICE')
    if device:
        try:
            settings.audio.device_index = int(device)
        except ValueError:
            logger.warning(f"Ignoring SIMULPLAY_AUDIO_DEVICE={device!r}: not an integer")

    return settings
