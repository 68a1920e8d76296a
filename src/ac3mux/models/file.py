"""Per-file processing result models."""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from ac3mux.models.plan import StreamPlan


@dataclass
class ProcessResult:
    """Result of processing a single file."""

    status: Literal["success", "skipped", "failed", "error", "dry_run"]
    file_path: Optional[Path] = None
    output_path: Optional[Path] = None  # Where the transcoded file ended up
    plan: Optional[StreamPlan] = None
    reason: Optional[str] = None  # Reason for skip/failure
    error: Optional[str] = None  # Error message if failed

    def __str__(self) -> str:
        """Human-readable representation."""
        name = self.file_path.name if self.file_path else "<unknown>"
        if self.status == "success":
            target = self.output_path.name if self.output_path else name
            return f"{name}: transcoded -> {target}"
        elif self.status == "skipped":
            return f"{name}: Skipped ({self.reason})"
        elif self.status == "dry_run":
            count = len(self.plan.audio) if self.plan else 0
            return f"{name}: Would transcode ({count} audio tracks, dry run)"
        else:
            return f"{name}: Failed ({self.error or self.reason})"
