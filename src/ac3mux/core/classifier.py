"""Per-stream keep/copy/convert decisions."""

from dataclasses import dataclass
from typing import Optional

from ac3mux.config import PlanSettings
from ac3mux.models.plan import TrackAction, TrackDirective
from ac3mux.models.stream import StreamDescriptor, StreamKind

TARGET_AUDIO_CODEC = "ac3"


@dataclass(frozen=True)
class ChannelProfile:
    """AC3 encoding parameters for one source channel layout."""

    channels: int
    bitrate_kbps: int
    label: str


CHANNEL_PROFILES = {
    1: ChannelProfile(1, 128, "1.0 @ 128k"),
    2: ChannelProfile(2, 224, "2.0 @ 224k"),
    3: ChannelProfile(3, 320, "3.0 @ 320k"),
    4: ChannelProfile(4, 448, "4.0 @ 448k"),
}

# Five or more source channels always become 5.1, the AC3 maximum
SURROUND_PROFILE = ChannelProfile(6, 640, "5.1 @ 640k")


def profile_for_channels(channels: Optional[int]) -> ChannelProfile:
    """Map a source channel count to its AC3 profile.

    Unknown channel counts get the surround profile.
    """
    return CHANNEL_PROFILES.get(channels or 0, SURROUND_PROFILE)


class StreamClassifier:
    """Decide what happens to a single audio or subtitle stream."""

    def __init__(self, settings: PlanSettings):
        """Initialize classifier.

        Args:
            settings: Frozen stream selection settings
        """
        self.settings = settings

    def accepts_language(self, language: str) -> bool:
        """Language filter. Empty tags never match."""
        return bool(language) and language in self.settings.accepted_languages

    def classify_audio(
        self, stream: StreamDescriptor, output_index: int, is_primary: bool = False
    ) -> Optional[TrackDirective]:
        """Classify one audio stream.

        Rules, in order:
        1. Language not accepted → dropped (None)
        2. Codec already in the pass-through set → copy
        3. Otherwise convert to AC3 using the channel profile table

        Args:
            stream: Probed audio stream
            output_index: Output audio index the directive will occupy
            is_primary: Mark the directive as the default track

        Returns:
            TrackDirective, or None if the stream is dropped
        """
        if stream.kind != StreamKind.AUDIO:
            raise ValueError(f"Not an audio stream: {stream}")

        if not self.accepts_language(stream.language):
            return None

        if stream.codec.lower() in self.settings.passthrough_codecs:
            return TrackDirective(
                source_index=stream.original_index,
                output_index=output_index,
                kind=StreamKind.AUDIO,
                action=TrackAction.COPY,
                language=stream.language,
                is_default=is_primary,
            )

        profile = profile_for_channels(stream.channels)
        return TrackDirective(
            source_index=stream.original_index,
            output_index=output_index,
            kind=StreamKind.AUDIO,
            action=TrackAction.CONVERT,
            language=stream.language,
            target_codec=TARGET_AUDIO_CODEC,
            target_channels=profile.channels,
            target_bitrate_kbps=profile.bitrate_kbps,
            is_default=is_primary,
            title=f"{stream.language} AC3 {profile.label}",
        )

    def classify_subtitle(self, stream: StreamDescriptor, output_index: int) -> TrackDirective:
        """Classify one subtitle stream. Subtitles are never dropped."""
        if stream.kind != StreamKind.SUBTITLE:
            raise ValueError(f"Not a subtitle stream: {stream}")

        if (
            self.settings.subtitle_conversion
            and stream.codec.lower() in self.settings.subtitle_convert_codecs
        ):
            return TrackDirective(
                source_index=stream.original_index,
                output_index=output_index,
                kind=StreamKind.SUBTITLE,
                action=TrackAction.CONVERT,
                language=stream.language,
                target_codec=self.settings.subtitle_target_codec,
            )

        return TrackDirective(
            source_index=stream.original_index,
            output_index=output_index,
            kind=StreamKind.SUBTITLE,
            action=TrackAction.COPY,
            language=stream.language,
        )
