"""Download and automation manager triggers.

SABnzbd post-processing scripts and Sonarr/Radarr custom scripts pass
their input through environment variables:

- ``SAB_COMPLETE_DIR``: completed download directory
- ``sonarr_episodefile_path``: imported episode file
- ``radarr_moviefile_path``: imported movie file

Triggered runs always overwrite the original file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, MutableMapping, Optional

from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)

# SABnzbd runs scripts with a minimal PATH
SABNZBD_EXTRA_PATH = (
    "/opt/homebrew/bin",
    "/lsiopy/bin",
    "/usr/local/sbin",
    "/usr/local/bin",
    "/usr/sbin",
    "/usr/bin",
    "/sbin",
    "/bin",
)


@dataclass
class Trigger:
    """Input handed over by an automation system."""

    source: Literal["sabnzbd", "sonarr", "radarr"]
    paths: list[Path] = field(default_factory=list)
    recursive: bool = False
    overwrite: bool = True

    def __str__(self) -> str:
        return f"{self.source}: {', '.join(str(p) for p in self.paths)}"


def is_test_event(environ: Mapping[str, str] | None = None) -> bool:
    """Sonarr/Radarr send a 'Test' event without a file when a script is saved."""
    environ = os.environ if environ is None else environ
    return any(
        environ.get(var, "").lower() == "test" for var in ("sonarr_eventtype", "radarr_eventtype")
    )


def detect_trigger(environ: Mapping[str, str] | None = None) -> Optional[Trigger]:
    """Detect an automation trigger from environment variables.

    SABnzbd wins over Sonarr, Sonarr over Radarr. File triggers only count
    when the named file exists.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Trigger, or None for a manual run
    """
    environ = os.environ if environ is None else environ

    sab_dir = environ.get("SAB_COMPLETE_DIR")
    if sab_dir:
        logger.info("Processing completed download from SABnzbd", directory=sab_dir)
        # Releases may keep video files in subdirectories
        return Trigger(source="sabnzbd", paths=[Path(sab_dir)], recursive=True)

    for source, var in (("sonarr", "sonarr_episodefile_path"), ("radarr", "radarr_moviefile_path")):
        value = environ.get(var)
        if value and Path(value).is_file():
            logger.info(f"Processing file from {source.capitalize()}", file=value)
            return Trigger(source=source, paths=[Path(value)])

    return None


def extend_search_path(environ: MutableMapping[str, str] | None = None) -> None:
    """Append common binary directories to PATH so ffmpeg is found."""
    environ = os.environ if environ is None else environ
    current = [p for p in environ.get("PATH", "").split(os.pathsep) if p]
    extra = [p for p in SABNZBD_EXTRA_PATH if p not in current]
    environ["PATH"] = os.pathsep.join(current + extra)
