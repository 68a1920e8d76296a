"""Exceptions raised while probing, planning and transcoding."""

from pathlib import Path
from typing import Optional


class Ac3muxError(Exception):
    """Base class for ac3mux errors."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ProbeError(Ac3muxError):
    """File is unreadable or not a recognized container."""


class NoAudioStreams(Ac3muxError):
    """File has no audio streams. Not a failure, the file is skipped."""


class UnsupportedPath(Ac3muxError):
    """Path is neither a regular file nor a directory we may enter."""


class TranscodeError(Ac3muxError):
    """ffmpeg failed. The input file is left untouched."""

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message, path)
        self.returncode = returncode
        self.stderr = stderr
