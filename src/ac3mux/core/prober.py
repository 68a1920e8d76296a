"""Stream probing using ffprobe."""

import asyncio
import contextlib
import json
from pathlib import Path
from typing import Any

from ac3mux.core.exceptions import ProbeError
from ac3mux.models.stream import ProbeResult, StreamDescriptor, StreamKind
from ac3mux.utils.language import normalize_language_code
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)

_KINDS = {"audio": StreamKind.AUDIO, "subtitle": StreamKind.SUBTITLE}


def parse_streams(data: dict[str, Any]) -> ProbeResult:
    """Convert ffprobe JSON output into stream descriptors.

    Video, data and attachment streams are ignored.

    Args:
        data: Parsed output of ``ffprobe -print_format json -show_streams``

    Returns:
        ProbeResult with audio and subtitle streams in probe order
    """
    audio = []
    subtitles = []

    for position, stream in enumerate(data.get("streams", [])):
        kind = _KINDS.get(stream.get("codec_type"))
        if kind is None:
            continue

        tags = stream.get("tags") or {}
        channels = stream.get("channels") if kind == StreamKind.AUDIO else None

        descriptor = StreamDescriptor(
            original_index=int(stream.get("index", position)),
            kind=kind,
            codec=(stream.get("codec_name") or "unknown").lower(),
            language=normalize_language_code(tags.get("language") or ""),
            channels=int(channels) if channels else None,
            title=tags.get("title"),
        )

        if kind == StreamKind.AUDIO:
            audio.append(descriptor)
        else:
            subtitles.append(descriptor)

    return ProbeResult(audio=tuple(audio), subtitles=tuple(subtitles))


class FFprobeProber:
    """Probe media files for audio and subtitle streams."""

    def __init__(self, ffprobe_path: str = "ffprobe", timeout_seconds: int = 30):
        """Initialize prober.

        Args:
            ffprobe_path: ffprobe executable
            timeout_seconds: Maximum time for one ffprobe call
        """
        self.ffprobe_path = ffprobe_path
        self.timeout_seconds = timeout_seconds

    def _build_command(self, file_path: Path) -> list[str]:
        return [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(file_path),
        ]

    async def probe(self, file_path: Path) -> ProbeResult:
        """Extract audio and subtitle streams from a media file.

        Args:
            file_path: Path to media file

        Returns:
            ProbeResult, possibly with no audio streams

        Raises:
            ProbeError: If the file is missing, unreadable or not a container
        """
        if not file_path.is_file():
            raise ProbeError(f"File not found: {file_path}", file_path)

        logger.debug("Probing streams", file=str(file_path))

        try:
            proc = await asyncio.create_subprocess_exec(
                *self._build_command(file_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"Could not start ffprobe: {e}", file_path) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.error("ffprobe timeout", file=str(file_path), timeout=self.timeout_seconds)
            raise ProbeError(
                f"ffprobe timed out after {self.timeout_seconds}s", file_path
            ) from None
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise

        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            logger.error(
                "ffprobe failed",
                file=str(file_path),
                returncode=proc.returncode,
                stderr=message[:500],
            )
            raise ProbeError(f"ffprobe failed: {message or proc.returncode}", file_path)

        try:
            data = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as e:
            logger.error("Failed to parse ffprobe output", file=str(file_path), error=str(e))
            raise ProbeError(f"Unparseable ffprobe output: {e}", file_path) from e

        result = parse_streams(data)

        logger.info(
            "Streams probed",
            file=str(file_path),
            audio=[str(s) for s in result.audio],
            subtitles=len(result.subtitles),
        )

        return result
