"""
Spotify Web API client for SimulPlay.

Thin blocking wrapper over the Player endpoints of the Web API. All calls are
expected to run on a CommandWorker thread, never on the pyglet main loop.

Endpoints used:
    GET  /me/player/devices     list Connect devices
    GET  /me/player             current playback snapshot (204 = nothing active)
    PUT  /me/player/play        start uris/context, or resume
    PUT  /me/player/pause       pause
    PUT  /me/player/seek        seek (position_ms)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from core.auth import TokenProvider
from core.identifiers import spotify_uri_kind

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.spotify.com/v1"


class SpotifyAPIError(Exception):
    """Raised when a Web API call fails (transport error, no token, non-2xx)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    def __str__(self):
        if self.status is None:
            return self.args[0]
        return f"HTTP {self.status}: {self.args[0]}"


@dataclass
class PlayerSnapshot:
    """
    Playback state as reported by GET /me/player.

    Attributes:
        is_playing: Whether the device is currently playing
        progress_ms: Position in the current item (milliseconds)
        duration_ms: Duration of the current item (milliseconds), 0 if unknown
        item_uri: URI of the current item, if any
        device_id: Device the snapshot belongs to, if any
    """
    is_playing: bool = False
    progress_ms: int = 0
    duration_ms: int = 0
    item_uri: Optional[str] = None
    device_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlayerSnapshot':
        item = data.get('item') or {}
        device = data.get('device') or {}
        return cls(
            is_playing=bool(data.get('is_playing', False)),
            progress_ms=int(data.get('progress_ms') or 0),
            duration_ms=int(item.get('duration_ms') or 0),
            item_uri=item.get('uri'),
            device_id=device.get('id')
        )


class SpotifyWebClient:
    """
    Blocking Spotify Web API client.

    Attributes:
        token_provider: Supplies the bearer token for each request
        api_base: Base URL of the Web API
        timeout: Socket timeout per request in seconds
    """

    def __init__(self, token_provider: TokenProvider, api_base: str = DEFAULT_API_BASE,
                 timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.token_provider = token_provider
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 body: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Perform one authenticated request.

        Returns:
            Decoded JSON body, or None for empty (204) responses

        Raises:
            SpotifyAPIError: On missing token, transport error or non-2xx status
        """
        token = self.token_provider.get_token()
        if not token:
            raise SpotifyAPIError("No Spotify access token available", status=401)

        url = f"{self.api_base}{path}"
        headers = {'Authorization': f"Bearer {token}"}
        params = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            response = self.session.request(method, url, params=params, json=body,
                                            headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise SpotifyAPIError(f"{method} {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            if not response.ok:
                raise SpotifyAPIError(f"{method} {path} failed", status=response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            error = data.get('error') if isinstance(data, dict) else None
            message = error.get('message') if isinstance(error, dict) else str(error or response.reason)
            raise SpotifyAPIError(message, status=response.status_code)

        logger.debug(f"{method} {path} -> {response.status_code}")
        return data

    # ==================== DEVICES ====================

    def get_devices(self) -> List[Dict[str, Any]]:
        """List available Connect devices."""
        data = self._request('GET', '/me/player/devices') or {}
        return data.get('devices', [])

    def find_device_id(self, device_name: Optional[str] = None) -> Optional[str]:
        """
        Resolve the device to control.

        Args:
            device_name: Preferred device name (case-insensitive). When None
                         or not found, the active device is used.

        Returns:
            Device id, or None if no usable device exists
        """
        devices = self.get_devices()
        if device_name:
            for device in devices:
                if (device.get('name') or '').lower() == device_name.lower():
                    return device.get('id')
        for device in devices:
            if device.get('is_active'):
                return device.get('id')
        return None

    # ==================== PLAYBACK ====================

    def get_playback(self) -> Optional[PlayerSnapshot]:
        """Current snapshot, or None when nothing is active."""
        data = self._request('GET', '/me/player')
        if not data:
            return None
        return PlayerSnapshot.from_dict(data)

    def play_uri(self, uri: str, device_id: Optional[str] = None) -> None:
        """
        Start playing a track, album or playlist URI from the beginning.

        Tracks are sent as "uris", albums/playlists as "context_uri".
        """
        if spotify_uri_kind(uri) == 'track':
            body = {'uris': [uri]}
        else:
            body = {'context_uri': uri}
        self._request('PUT', '/me/player/play', params={'device_id': device_id}, body=body)

    def resume(self, device_id: Optional[str] = None) -> None:
        self._request('PUT', '/me/player/play', params={'device_id': device_id})

    def pause(self, device_id: Optional[str] = None) -> None:
        self._request('PUT', '/me/player/pause', params={'device_id': device_id})

    def seek(self, position_ms: int, device_id: Optional[str] = None) -> None:
        self._request('PUT', '/me/player/seek',
                      params={'position_ms': int(position_ms), 'device_id': device_id})

    def __repr__(self):
        return f"SpotifyWebClient(api_base='{self.api_base}')"
