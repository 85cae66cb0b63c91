"""
Parsing of user-supplied media identifiers.

Video identifiers are local paths or file:// URLs. Audio identifiers are
either Spotify references (URI or open.spotify.com link) or local audio files.
"""

import os
import re
from typing import Optional
from urllib.parse import urlparse, unquote

_SPOTIFY_URL_RE = re.compile(r'open\.spotify\.com/(?:intl-[a-z]{2}/)?(track|album|playlist)/([A-Za-z0-9]+)')
_SPOTIFY_URI_RE = re.compile(r'^spotify:(track|album|playlist):([A-Za-z0-9]+)$')


def parse_media_path(value: str) -> str:
    """
    Normalize a local media identifier (video or audio file) to a filesystem path.

    Accepts plain paths (with ~ expansion) and file:// URLs.

    Example:
        >>> parse_media_path("file:///tmp/My%20Clip.mp4")
        '/tmp/My Clip.mp4'
    """
    value = value.strip()
    if value.startswith('file://'):
        return unquote(urlparse(value).path)
    return os.path.expanduser(value)


def parse_spotify_uri(value: str) -> str:
    """
    Convert an open.spotify.com link into a spotify: URI.

    Anything that is not a recognised link is returned stripped but otherwise
    unchanged (assumed to already be a URI).

    Example:
        >>> parse_spotify_uri("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=x")
        'spotify:track:4uLU6hMCjMI75M1A2tKUQC'
    """
    value = value.strip()
    match = _SPOTIFY_URL_RE.search(value)
    if match:
        return f"spotify:{match.group(1)}:{match.group(2)}"
    return value


def spotify_uri_kind(uri: str) -> Optional[str]:
    """Return 'track', 'album' or 'playlist' for a spotify: URI, else None."""
    match = _SPOTIFY_URI_RE.match(uri.strip())
    return match.group(1) if match else None


def is_spotify_uri(value: str) -> bool:
    """True if value (URI or link) refers to Spotify content."""
    return spotify_uri_kind(parse_spotify_uri(value)) is not None
