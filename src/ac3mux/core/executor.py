"""Transcode executor driving ffmpeg."""

import asyncio
import contextlib
import shlex
import shutil
from pathlib import Path

from ac3mux.core.exceptions import TranscodeError
from ac3mux.models.plan import StreamPlan, TrackAction, TrackDirective
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)

# Text subtitles in MP4 have to be mov_text
_MP4_TEXT_SUBTITLE_CODEC = "mov_text"
_MP4_SUFFIXES = {".mp4", ".m4v", ".mov"}


def output_path_for(input_path: Path, suffix: str = "_transcoded") -> Path:
    """Derive the output path by inserting a suffix before the extension.

    Example:
        output_path_for(Path("/media/Movie.mkv"))
        # Returns: /media/Movie_transcoded.mkv
    """
    return input_path.with_name(f"{input_path.stem}{suffix}{input_path.suffix}")


def replace_original(output_path: Path, input_path: Path) -> None:
    """Atomically move a finished output over its input file."""
    logger.info("Replacing original with transcoded file", file=str(input_path), output=str(output_path))
    output_path.replace(input_path)


class FFmpegTranscoder:
    """Run ffmpeg for a stream plan.

    Video is always copied. Every audio and subtitle directive is mapped by
    its absolute source index, in plan order, so plan output indices are
    the output container's per-kind indices.

    Output is written only to ``output_path``; the input is never modified
    here. A failed, timed out or cancelled run removes the partial output.
    """

    def __init__(self, ffmpeg_path: str | None = None, timeout_seconds: int = 7200):
        """Initialize transcoder.

        Args:
            ffmpeg_path: ffmpeg executable (looked up in PATH if omitted)
            timeout_seconds: Maximum time for one ffmpeg run

        Raises:
            RuntimeError: If ffmpeg cannot be found
        """
        self.timeout_seconds = timeout_seconds
        self.ffmpeg_path = ffmpeg_path or shutil.which("ffmpeg")
        if not self.ffmpeg_path:
            raise RuntimeError("ffmpeg not found in PATH")

    def _audio_options(self, directive: TrackDirective) -> list[str]:
        i = directive.output_index
        if directive.action == TrackAction.COPY:
            options = [f"-c:a:{i}", "copy"]
        else:
            options = [
                f"-c:a:{i}",
                directive.target_codec,
                f"-ac:a:{i}",
                str(directive.target_channels),
                f"-b:a:{i}",
                f"{directive.target_bitrate_kbps}k",
                f"-metadata:s:a:{i}",
                f"title={directive.title}",
            ]
        options.extend([f"-disposition:a:{i}", "default" if directive.is_default else "0"])
        return options

    def _subtitle_options(self, directive: TrackDirective, output_path: Path) -> list[str]:
        i = directive.output_index
        if directive.action == TrackAction.COPY:
            return [f"-c:s:{i}", "copy"]

        codec = directive.target_codec
        if output_path.suffix.lower() in _MP4_SUFFIXES and codec in ("srt", "subrip"):
            codec = _MP4_TEXT_SUBTITLE_CODEC
        return [f"-c:s:{i}", codec]

    def build_command(self, input_path: Path, output_path: Path, plan: StreamPlan) -> list[str]:
        """Build the ffmpeg argument list for a plan.

        Args:
            input_path: Source media file
            output_path: Destination file
            plan: Stream plan to apply

        Returns:
            Command list for the subprocess
        """
        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostdin",
            "-loglevel",
            "warning",
            "-y",
            "-i",
            str(input_path),
            "-map",
            "0:v?",
        ]

        for directive in (*plan.audio, *plan.subtitles):
            cmd.extend(["-map", f"0:{directive.source_index}"])

        cmd.extend(["-c:v", "copy"])

        for directive in plan.audio:
            cmd.extend(self._audio_options(directive))

        for directive in plan.subtitles:
            cmd.extend(self._subtitle_options(directive, output_path))

        cmd.append(str(output_path))
        return cmd

    def _check_disk_space(self, input_path: Path, output_path: Path) -> None:
        """Require free space for at least one more copy of the input.

        Raises:
            TranscodeError: If the output filesystem is too full
        """
        required = input_path.stat().st_size
        available = shutil.disk_usage(output_path.parent).free

        if available < required:
            logger.error(
                "Insufficient disk space for transcode",
                file=str(input_path),
                required_mb=round(required / 1024 / 1024, 2),
                available_mb=round(available / 1024 / 1024, 2),
            )
            raise TranscodeError("Insufficient disk space", input_path)

    def _cleanup(self, output_path: Path) -> None:
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove partial output", file=str(output_path), error=str(e))

    async def transcode(self, input_path: Path, output_path: Path, plan: StreamPlan) -> None:
        """Run ffmpeg to write the planned output file.

        Args:
            input_path: Source media file
            output_path: Destination file, must differ from input_path
            plan: Stream plan to apply

        Raises:
            TranscodeError: If ffmpeg fails, times out or produces no output
        """
        if input_path.resolve() == output_path.resolve():
            raise TranscodeError("Output path must differ from input path", input_path)

        self._check_disk_space(input_path, output_path)

        cmd = self.build_command(input_path, output_path, plan)
        logger.info("Running ffmpeg", file=str(input_path), command=shlex.join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscodeError(f"Could not start ffmpeg: {e}", input_path) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            self._cleanup(output_path)
            logger.error("ffmpeg timeout", file=str(input_path), timeout=self.timeout_seconds)
            raise TranscodeError(
                f"ffmpeg timed out after {self.timeout_seconds}s", input_path
            ) from None
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            self._cleanup(output_path)
            logger.warning("ffmpeg cancelled", file=str(input_path))
            raise

        message = stderr.decode("utf-8", errors="replace").strip() if stderr else ""

        if proc.returncode != 0:
            self._cleanup(output_path)
            logger.error(
                "ffmpeg failed",
                file=str(input_path),
                returncode=proc.returncode,
                stderr=message[-500:],
            )
            raise TranscodeError(
                f"ffmpeg exited with code {proc.returncode}",
                input_path,
                returncode=proc.returncode,
                stderr=message,
            )

        if not output_path.exists() or output_path.stat().st_size == 0:
            self._cleanup(output_path)
            logger.error("ffmpeg produced no output", file=str(input_path))
            raise TranscodeError("ffmpeg produced no output", input_path)

        if message:
            logger.warning("ffmpeg warnings", file=str(input_path), stderr=message[-500:])

        logger.info(
            "Transcode complete",
            file=str(input_path),
            output=str(output_path),
            output_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
        )
