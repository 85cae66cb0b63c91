"""
FFmpeg configuration for SimulPlay.

Locates the FFmpeg executable used to decode local audio files.
Priority: SIMULPLAY_FFMPEG environment variable -> local installation
(ffmpeg/bin/ under the project root) -> system PATH -> error

Usage:
    from config.ffmpeg_config import get_ffmpeg_cmd

    ffmpeg.input(path).output('pipe:', format='wav').run(cmd=get_ffmpeg_cmd())
"""

import os
import shutil
import sys
from pathlib import Path
from typing import Optional


class FFmpegNotFoundError(Exception):
    """Raised when FFmpeg executable cannot be found."""
    pass


def _get_project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _find_local_ffmpeg() -> Optional[str]:
    """Check the project-local ffmpeg/bin directory."""
    exe = 'ffmpeg.exe' if sys.platform == 'win32' else 'ffmpeg'
    path = _get_project_root() / 'ffmpeg' / 'bin' / exe
    return str(path) if path.exists() else None


def get_ffmpeg_cmd() -> str:
    """
    Get the FFmpeg executable path or command.

    Returns:
        str: Path to ffmpeg executable or command name

    Raises:
        FFmpegNotFoundError: If FFmpeg cannot be found
    """
    override = os.environ.get('SIMULPLAY_FFMPEG')
    if override:
        return override

    local = _find_local_ffmpeg()
    if local:
        return local

    system = shutil.which('ffmpeg')
    if system:
        return system

    raise FFmpegNotFoundError(
        "FFmpeg not found. Install FFmpeg and add it to PATH, place it at "
        f"{_get_project_root() / 'ffmpeg' / 'bin'}, or set SIMULPLAY_FFMPEG."
    )
