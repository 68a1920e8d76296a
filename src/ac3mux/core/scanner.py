"""File discovery for media files."""

from pathlib import Path
from typing import Iterable, Iterator

from ac3mux.core.exceptions import UnsupportedPath
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)


class FileScanner:
    """Walk paths depth-first and yield media files lazily."""

    SUPPORTED_EXTENSIONS = {".mkv", ".mp4"}

    def __init__(
        self, extensions: Iterable[str] | None = None, output_suffix: str | None = None
    ):
        """Initialize scanner.

        Args:
            extensions: File extensions to pick up inside directories
            output_suffix: Skip files whose stem ends with this suffix
                (outputs of an earlier run)
        """
        self.output_suffix = output_suffix
        if extensions is None:
            extensions = self.SUPPORTED_EXTENSIONS

        self.extensions = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions
        }

    def is_media_file(self, path: Path) -> bool:
        if not path.is_file() or path.suffix.lower() not in self.extensions:
            return False
        if self.output_suffix and path.stem.endswith(self.output_suffix):
            return False
        return True

    def walk(self, path: Path, recursive: bool = False) -> Iterator[Path]:
        """Yield candidate files below a path.

        A named file is yielded when it passes the same media filter as
        files found in directories. Directories are entered only when
        ``recursive`` is set; entries are visited in sorted order
        and symlinked directories are not followed, so the walk is finite
        and repeatable.

        Args:
            path: File or directory
            recursive: Descend into directories

        Raises:
            UnsupportedPath: If path is neither a media file nor a directory
                to descend into
        """
        if path.is_file():
            if not self.is_media_file(path):
                raise UnsupportedPath(f"Not a media file: {path}", path)
            yield path
            return

        if not path.is_dir():
            raise UnsupportedPath(f"Not a file or directory: {path}", path)

        if not recursive:
            raise UnsupportedPath(f"Skipping directory without recursion: {path}", path)

        logger.debug("Traversing directory", directory=str(path))
        yield from self._walk_dir(path)

    def _walk_dir(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.warning("Cannot read directory", directory=str(directory), error=str(e))
            return

        for entry in entries:
            if entry.is_dir():
                if entry.is_symlink():
                    logger.debug("Not following symlinked directory", directory=str(entry))
                    continue
                yield from self._walk_dir(entry)
            elif self.is_media_file(entry):
                yield entry

    def scan(self, paths: Iterable[Path], recursive: bool = False) -> Iterator[Path]:
        """Walk several paths, logging and skipping unsupported ones.

        Args:
            paths: Files and directories
            recursive: Descend into directories

        Yields:
            Candidate media files, each at most once
        """
        seen: set[Path] = set()

        for path in paths:
            try:
                for file in self.walk(path, recursive=recursive):
                    key = file.resolve()
                    if key in seen:
                        continue
                    seen.add(key)
                    yield file
            except UnsupportedPath as e:
                logger.warning("Skipping path", path=str(path), reason=str(e))

    def scan_cwd(self, directory: Path | None = None) -> Iterator[Path]:
        """Yield media files directly inside a directory (default: cwd)."""
        directory = directory or Path.cwd()
        for entry in sorted(directory.iterdir()):
            if self.is_media_file(entry):
                yield entry


class MediaWalk:
    """Restartable view over a scan: every iteration walks the paths anew."""

    def __init__(self, scanner: FileScanner, paths: Iterable[Path], recursive: bool = False):
        self.scanner = scanner
        self.paths = list(paths)
        self.recursive = recursive

    def __iter__(self) -> Iterator[Path]:
        return self.scanner.scan(self.paths, recursive=self.recursive)
