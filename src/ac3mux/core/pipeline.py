"""Processing pipeline orchestrator."""

import time
from pathlib import Path
from typing import Optional

from ac3mux.config import Config
from ac3mux.core.exceptions import NoAudioStreams, ProbeError, TranscodeError
from ac3mux.core.executor import FFmpegTranscoder, output_path_for, replace_original
from ac3mux.core.planner import PlanBuilder
from ac3mux.core.prober import FFprobeProber
from ac3mux.models.file import ProcessResult
from ac3mux.models.stream import ProbeResult
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)


class ProcessingPipeline:
    """Probe, plan and transcode a single file."""

    def __init__(
        self,
        config: Config,
        prober: Optional[FFprobeProber] = None,
        transcoder: Optional[FFmpegTranscoder] = None,
    ):
        """Initialize the pipeline with configuration.

        Args:
            config: Application configuration
            prober: Stream prober (defaults to ffprobe)
            transcoder: Transcode executor (defaults to ffmpeg, created on
                first use so planning works without ffmpeg installed)
        """
        self.config = config
        self.prober = prober or FFprobeProber(
            timeout_seconds=config.processing.probe_timeout_seconds
        )
        self.planner = PlanBuilder(config.plan_settings())
        self._transcoder = transcoder

    @property
    def transcoder(self) -> FFmpegTranscoder:
        if self._transcoder is None:
            self._transcoder = FFmpegTranscoder(
                timeout_seconds=self.config.processing.timeout_seconds
            )
        return self._transcoder

    async def _probe_audio(self, file_path: Path) -> ProbeResult:
        probe = await self.prober.probe(file_path)
        if not probe.audio:
            raise NoAudioStreams("No audio streams", file_path)
        return probe

    async def process(self, file_path: Path, overwrite: bool = False) -> ProcessResult:
        """Process a single file through the complete pipeline.

        Pipeline steps:
        1. Validation (regular file)
        2. Probe audio and subtitle streams
        3. Build the stream plan
        4. Skip when nothing needs converting
        5. Transcode into the suffixed output path
        6. Replace the input if overwrite was requested

        The input file is only ever replaced after ffmpeg succeeded.

        Args:
            file_path: Path to the file to process
            overwrite: Replace the input with the transcoded file

        Returns:
            ProcessResult with status and details
        """
        start_time = time.time()

        logger.info("Processing file", file=str(file_path))

        if not file_path.is_file():
            logger.error("Not a regular file", file=str(file_path))
            return ProcessResult(status="error", file_path=file_path, error="Not a regular file")

        try:
            probe = await self._probe_audio(file_path)
        except NoAudioStreams:
            logger.debug("No audio streams, nothing to do", file=str(file_path))
            return ProcessResult(status="skipped", file_path=file_path, reason="no_audio_streams")
        except ProbeError as e:
            logger.error("Probe failed, skipping file", file=str(file_path), error=str(e))
            return ProcessResult(status="error", file_path=file_path, error=str(e))

        plan = self.planner.build(probe, file_path)

        if not plan.audio:
            logger.info(
                "No audio stream in an accepted language",
                file=str(file_path),
                languages=[s.language or "und" for s in probe.audio],
            )
            return ProcessResult(
                status="skipped", file_path=file_path, plan=plan, reason="no_accepted_audio"
            )

        if not plan.requires_transcode:
            logger.info("All kept streams can be copied, leaving file untouched", file=str(file_path))
            return ProcessResult(
                status="skipped", file_path=file_path, plan=plan, reason="no_conversion_needed"
            )

        for line in plan.describe():
            logger.info("Planned track", file=str(file_path), track=line)

        output_path = output_path_for(file_path, self.config.output.suffix)

        if self.config.execution.dry_run:
            logger.info("DRY RUN: Would transcode", file=str(file_path), output=str(output_path))
            return ProcessResult(
                status="dry_run", file_path=file_path, output_path=output_path, plan=plan
            )

        try:
            await self.transcoder.transcode(file_path, output_path, plan)

            if overwrite:
                replace_original(output_path, file_path)
                output_path = file_path

        except TranscodeError as e:
            logger.error("Transcode failed, original left untouched", file=str(file_path), error=str(e))
            return ProcessResult(
                status="failed",
                file_path=file_path,
                plan=plan,
                reason="transcode_failed",
                error=str(e),
            )
        except (OSError, RuntimeError) as e:
            logger.exception("Pipeline error", file=str(file_path), error=str(e))
            return ProcessResult(status="error", file_path=file_path, plan=plan, error=str(e))

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "File processed successfully",
            file=str(file_path),
            output=str(output_path),
            audio_tracks=len(plan.audio),
            duration_ms=duration_ms,
        )

        return ProcessResult(
            status="success", file_path=file_path, output_path=output_path, plan=plan
        )
