"""
Access-token providers for the Spotify Web API.

SimulPlay does not perform the OAuth authorization-code exchange itself. It
either receives a ready access token (config or environment) or asks a
token endpoint that already holds the session, e.g. a companion auth server
answering GET /auth/token with {"access_token": "..."}.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class TokenProvider(ABC):
    """Source of bearer tokens. get_token() returns None when unavailable."""

    @abstractmethod
    def get_token(self) -> Optional[str]:
        pass


class StaticTokenProvider(TokenProvider):
    """Token supplied up front (config file or SIMULPLAY_SPOTIFY_TOKEN)."""

    def __init__(self, token: Optional[str]):
        self.token = token or None

    def get_token(self) -> Optional[str]:
        return self.token

    def __repr__(self):
        return f"StaticTokenProvider(set={self.token is not None})"


class HttpTokenProvider(TokenProvider):
    """
    Fetches the current access token from a token endpoint.

    Every call hits the endpoint, so a refresh done server-side is picked up
    on the next request.
    """

    def __init__(self, token_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        """
        Args:
            token_url: Endpoint returning JSON {"access_token": "..."}
            timeout: Request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.token_url = token_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_token(self) -> Optional[str]:
        try:
            response = self.session.get(self.token_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Token endpoint unreachable ({self.token_url}): {e}")
            return None

        if not response.ok:
            logger.warning(f"Token endpoint returned HTTP {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Token endpoint returned invalid JSON")
            return None

        return data.get('access_token') or None

    def __repr__(self):
        return f"HttpTokenProvider(url='{self.token_url}')"
