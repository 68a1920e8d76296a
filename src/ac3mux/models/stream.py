"""Probed stream data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class StreamKind(Enum):
    """Stream kinds the planner cares about."""

    AUDIO = "audio"
    SUBTITLE = "subtitle"


@dataclass(frozen=True)
class StreamDescriptor:
    """One probed stream of a media container."""

    original_index: int  # Absolute stream index in the source container
    kind: StreamKind
    codec: str  # Codec name as reported by ffprobe (e.g., "aac", "ass")
    language: str = ""  # ISO 639-2 tag, empty when unknown
    channels: Optional[int] = None  # Audio only
    title: Optional[str] = None

    def __post_init__(self):
        if self.original_index < 0:
            raise ValueError(f"Stream index must be non-negative: {self.original_index}")

    def __str__(self) -> str:
        """Human-readable representation."""
        lang = self.language or "und"
        if self.kind == StreamKind.AUDIO:
            return f"#{self.original_index} {self.codec} {self.channels or '?'}ch [{lang}]"
        return f"#{self.original_index} {self.codec} [{lang}]"


@dataclass(frozen=True)
class ProbeResult:
    """Audio and subtitle streams of one file, each in probe order."""

    audio: tuple[StreamDescriptor, ...] = field(default_factory=tuple)
    subtitles: tuple[StreamDescriptor, ...] = field(default_factory=tuple)
