"""Build a complete stream plan for one file."""

import dataclasses
from pathlib import Path
from typing import Optional

from ac3mux.config import PlanSettings
from ac3mux.core.classifier import StreamClassifier
from ac3mux.models.plan import StreamPlan, TrackDirective
from ac3mux.models.stream import ProbeResult
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)


class PlanBuilder:
    """Turn probed streams into ordered audio and subtitle directives."""

    def __init__(self, settings: PlanSettings):
        """Initialize plan builder.

        Args:
            settings: Frozen stream selection settings
        """
        self.settings = settings
        self.classifier = StreamClassifier(settings)

    def build(self, probe: ProbeResult, file_path: Optional[Path] = None) -> StreamPlan:
        """Build the stream plan for one file.

        Streams are visited in probe order. Output indices count accepted
        streams only, so the primary language track keeps its natural
        position. The first accepted track in the main language becomes
        the default; without one, the first accepted track does.

        Args:
            probe: Probed audio and subtitle streams
            file_path: Only used for log context

        Returns:
            StreamPlan for the file
        """
        file = str(file_path) if file_path else None

        audio: list[TrackDirective] = []
        primary_assigned = False

        for stream in probe.audio:
            is_primary = (
                not primary_assigned
                and bool(stream.language)
                and stream.language == self.settings.main_language
            )
            directive = self.classifier.classify_audio(
                stream, output_index=len(audio), is_primary=is_primary
            )

            if directive is None:
                logger.info(
                    "Dropping audio stream",
                    file=file,
                    stream_index=stream.original_index,
                    language=stream.language or "und",
                    codec=stream.codec,
                )
                continue

            primary_assigned = primary_assigned or is_primary
            audio.append(directive)

        if audio and not primary_assigned:
            logger.info(
                "Main language not found, first kept track becomes default",
                file=file,
                main_language=self.settings.main_language,
                stream_index=audio[0].source_index,
            )
            audio[0] = dataclasses.replace(audio[0], is_default=True)

        subtitles: list[TrackDirective] = []
        for stream in probe.subtitles:
            subtitles.append(
                self.classifier.classify_subtitle(stream, output_index=len(subtitles))
            )

        plan = StreamPlan(audio=tuple(audio), subtitles=tuple(subtitles))

        logger.debug(
            "Stream plan built",
            file=file,
            audio_kept=len(plan.audio),
            audio_dropped=len(probe.audio) - len(plan.audio),
            subtitles=len(plan.subtitles),
            requires_transcode=plan.requires_transcode,
        )

        return plan
