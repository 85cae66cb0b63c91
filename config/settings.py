"""
Application settings for SimulPlay.

Settings are plain dataclasses grouped by concern and serialized to a nested
JSON document:

    {
        "sync":    {"interval_s": 0.5, "drift_threshold_s": 1.5, "default_leader": "video"},
        "spotify": {"device_name": "SimulPlay", "token_url": null, ...},
        "audio":   {"device_index": null, "blocksize": 1024}
    }
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional

LEADER_CHOICES = ('video', 'audio')


@dataclass
class SyncSettings:
    """
    Drift-correction and mirroring parameters.

    Attributes:
        interval_s: Drift-correction tick interval in seconds
        drift_threshold_s: Drift tolerated before the follower is seeked
        default_leader: Player treated as leader before any state change ('video' or 'audio')
    """
    interval_s: float = 0.5
    drift_threshold_s: float = 1.5
    default_leader: str = 'video'

    def validate(self) -> List[str]:
        errors = []
        if self.interval_s <= 0:
            errors.append("sync.interval_s must be positive")
        if self.drift_threshold_s < 0:
            errors.append("sync.drift_threshold_s must be non-negative")
        if self.default_leader not in LEADER_CHOICES:
            errors.append(f"sync.default_leader must be one of {', '.join(LEADER_CHOICES)}")
        return errors


@dataclass
class SpotifySettings:
    """
    Spotify Web API access.

    Attributes:
        api_base: Web API base URL
        access_token: Fixed bearer token (overridden by SIMULPLAY_SPOTIFY_TOKEN)
        token_url: Endpoint returning {"access_token": ...}; used when no fixed token
        device_name: Connect device to control (falls back to the active device)
        poll_interval_s: Interval between playback state polls
        timeout_s: HTTP timeout per request
    """
    api_base: str = "https://api.spotify.com/v1"
    access_token: Optional[str] = None
    token_url: Optional[str] = None
    device_name: Optional[str] = "SimulPlay"
    poll_interval_s: float = 1.0
    timeout_s: float = 5.0

    def validate(self) -> List[str]:
        errors = []
        if self.poll_interval_s <= 0:
            errors.append("spotify.poll_interval_s must be positive")
        if self.timeout_s <= 0:
            errors.append("spotify.timeout_s must be positive")
        return errors

    def __repr__(self):
        # Never print the token itself
        return (f"SpotifySettings(api_base='{self.api_base}', token_set={self.access_token is not None}, "
                f"token_url={self.token_url!r}, device_name={self.device_name!r})")


@dataclass
class AudioSettings:
    """
    Local audio output.

    Attributes:
        device_index: sounddevice output device index (None = system default)
        blocksize: Frames per audio callback
    """
    device_index: Optional[int] = None
    blocksize: int = 1024

    def validate(self) -> List[str]:
        errors = []
        if self.device_index is not None and self.device_index < 0:
            errors.append("audio.device_index must be non-negative")
        if self.blocksize <= 0:
            errors.append("audio.blocksize must be positive")
        return errors


@dataclass
class AppSettings:
    """Top-level settings object."""
    sync: SyncSettings = field(default_factory=SyncSettings)
    spotify: SpotifySettings = field(default_factory=SpotifySettings)
    audio: AudioSettings = field(default_factory=AudioSettings)

    def validate(self) -> tuple[bool, List[str]]:
        """
        Validate all settings.

        Returns:
            Tuple of (valid: bool, error_messages: List[str])
        """
        errors = self.sync.validate() + self.spotify.validate() + self.audio.validate()
        return (len(errors) == 0, errors)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'sync': asdict(self.sync),
            'spotify': asdict(self.spotify),
            'audio': asdict(self.audio)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AppSettings':
        """
        Create AppSettings from a dictionary.

        Missing sections and keys fall back to defaults; unknown keys are ignored.
        """
        return cls(
            sync=_section(SyncSettings, data.get('sync')),
            spotify=_section(SpotifySettings, data.get('spotify')),
            audio=_section(AudioSettings, data.get('audio'))
        )


def _section(section_cls, data: Optional[dict]):
    if not data:
        return section_cls()
    known = section_cls.__dataclass_fields__.keys()
    return section_cls(**{k: v for k, v in data.items() if k in known})
