"""Stream plan data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ac3mux.models.stream import StreamKind


class TrackAction(Enum):
    """What happens to a kept stream."""

    COPY = "copy"
    CONVERT = "convert"


@dataclass(frozen=True)
class TrackDirective:
    """Output instruction for one kept source stream."""

    source_index: int  # original_index of the source stream
    output_index: int  # Position among output tracks of the same kind
    kind: StreamKind
    action: TrackAction
    language: str = ""
    target_codec: Optional[str] = None
    target_channels: Optional[int] = None
    target_bitrate_kbps: Optional[int] = None
    is_default: bool = False  # Audio only
    title: Optional[str] = None  # Audio only, set when converting

    def __post_init__(self):
        if self.action == TrackAction.COPY and (
            self.target_codec is not None
            or self.target_channels is not None
            or self.target_bitrate_kbps is not None
            or self.title is not None
        ):
            raise ValueError("Copy directives cannot carry encoding parameters")
        if self.action == TrackAction.CONVERT and not self.target_codec:
            raise ValueError("Convert directives need a target codec")
        if self.is_default and self.kind != StreamKind.AUDIO:
            raise ValueError("Only audio tracks can be marked default")

    @property
    def is_convert(self) -> bool:
        return self.action == TrackAction.CONVERT

    def __str__(self) -> str:
        """Human-readable representation."""
        prefix = "a" if self.kind == StreamKind.AUDIO else "s"
        default_marker = " [DEFAULT]" if self.is_default else ""
        if self.action == TrackAction.COPY:
            what = "copy"
        elif self.target_bitrate_kbps:
            what = (
                f"convert to {self.target_codec} "
                f"{self.target_channels}ch @ {self.target_bitrate_kbps}k"
            )
        else:
            what = f"convert to {self.target_codec}"
        lang = self.language or "und"
        return f"0:{self.source_index} -> {prefix}:{self.output_index} [{lang}] {what}{default_marker}"


@dataclass(frozen=True)
class StreamPlan:
    """Ordered audio and subtitle directives for one file."""

    audio: tuple[TrackDirective, ...] = field(default_factory=tuple)
    subtitles: tuple[TrackDirective, ...] = field(default_factory=tuple)

    @property
    def requires_transcode(self) -> bool:
        """True iff at least one directive converts its stream."""
        return any(d.is_convert for d in (*self.audio, *self.subtitles))

    @property
    def default_track(self) -> Optional[TrackDirective]:
        return next((d for d in self.audio if d.is_default), None)

    def describe(self) -> list[str]:
        """One diagnostic line per directive, audio first."""
        return [str(d) for d in (*self.audio, *self.subtitles)]
