"""Concurrent batch processing of many files."""

import asyncio
from pathlib import Path
from typing import Callable, Iterable, Optional

from ac3mux.core.pipeline import ProcessingPipeline
from ac3mux.models.file import ProcessResult
from ac3mux.utils.logger import get_logger

logger = get_logger(__name__)

ResultCallback = Callable[[int, ProcessResult], None]


class BatchRunner:
    """Run the pipeline over many files with bounded concurrency.

    Files are independent: a failure in one never stops the others.
    Each input path is processed at most once per run.
    """

    def __init__(self, pipeline: ProcessingPipeline, worker_count: int = 1):
        """Initialize batch runner.

        Args:
            pipeline: Per-file processing pipeline
            worker_count: Maximum number of files in flight
        """
        self.pipeline = pipeline
        self.worker_count = max(1, worker_count)

    async def _run_one(
        self,
        semaphore: asyncio.Semaphore,
        position: int,
        file_path: Path,
        overwrite: bool,
        on_result: Optional[ResultCallback],
    ) -> ProcessResult:
        async with semaphore:
            try:
                result = await self.pipeline.process(file_path, overwrite=overwrite)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unexpected error processing file", file=str(file_path))
                result = ProcessResult(status="error", file_path=file_path, error=str(e))

        if on_result is not None:
            on_result(position, result)
        return result

    async def run(
        self,
        files: Iterable[Path],
        overwrite: bool = False,
        on_result: Optional[ResultCallback] = None,
    ) -> list[ProcessResult]:
        """Process files and return their results in input order.

        Args:
            files: Files to process (may be a lazy iterator)
            overwrite: Replace inputs with their transcoded output
            on_result: Called with (position, result) as each file finishes

        Returns:
            One ProcessResult per distinct input file
        """
        semaphore = asyncio.Semaphore(self.worker_count)
        seen: set[Path] = set()
        tasks = []

        for file_path in files:
            key = file_path.resolve()
            if key in seen:
                logger.debug("Duplicate input ignored", file=str(file_path))
                continue
            seen.add(key)
            tasks.append(
                asyncio.create_task(
                    self._run_one(semaphore, len(tasks), file_path, overwrite, on_result)
                )
            )

        logger.info("Batch started", files=len(tasks), worker_count=self.worker_count)

        try:
            results = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            "Batch finished",
            files=len(results),
            failed=sum(1 for r in results if r.status in ("failed", "error")),
        )
        return list(results)
