"""Command-line interface for ac3mux."""

import asyncio
import sys
from pathlib import Path

import click

from ac3mux import __version__
from ac3mux.config import load_config
from ac3mux.core.exceptions import ProbeError
from ac3mux.core.pipeline import ProcessingPipeline
from ac3mux.core.runner import BatchRunner
from ac3mux.core.scanner import FileScanner, MediaWalk
from ac3mux.integrations import detect_trigger, extend_search_path, is_test_event
from ac3mux.models.file import ProcessResult
from ac3mux.utils.logger import get_logger, setup_logging

STATUS_STYLES = {
    "success": ("✓", "green"),
    "skipped": ("⊘", "yellow"),
    "dry_run": ("⊙", "cyan"),
    "failed": ("✗", "red"),
    "error": ("✗", "red"),
}


def _echo_result(result: ProcessResult, indent: str = "") -> None:
    symbol, color = STATUS_STYLES[result.status]
    click.secho(f"{indent}{symbol} {result}", fg=color, err=result.status in ("failed", "error"))


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """ac3mux - Re-encode audio tracks to AC3 and pick the default language.

    Without a command, runs 'process' on the current directory or on the
    file/directory handed over by SABnzbd, Sonarr or Radarr.
    """
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        setup_logging(cfg.logging)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        ctx.invoke(process)


@cli.command()
@click.option("--overwrite", "-o", is_flag=True, help="Replace original files with the result")
@click.option("--recursive", "-r", is_flag=True, help="Traverse subdirectories")
@click.option("--dry-run", is_flag=True, help="Show plans without running ffmpeg")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Files in parallel")
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.pass_context
def process(ctx, overwrite=False, recursive=False, dry_run=False, workers=None, paths=()):
    """Transcode audio tracks of media files.

    PATHS may be files or directories. Without PATHS, media files in the
    current directory are processed.
    """
    config = ctx.obj["config"]
    logger = get_logger(__name__)

    if dry_run:
        config.execution.dry_run = True
    if workers:
        config.processing.worker_count = workers

    scanner = FileScanner(config.output.extensions, output_suffix=config.output.suffix)

    trigger = detect_trigger()
    if trigger is not None:
        click.echo(f"Triggered by {trigger}")
        if trigger.source == "sabnzbd":
            extend_search_path()
        files = MediaWalk(scanner, trigger.paths, recursive=trigger.recursive)
        overwrite = trigger.overwrite
    elif is_test_event():
        click.echo("Test event received, nothing to do")
        sys.exit(0)
    elif paths:
        files = MediaWalk(scanner, list(paths), recursive=recursive)
    else:
        files = list(scanner.scan_cwd())

    if overwrite:
        click.secho("WARNING: original files will be overwritten", fg="yellow")
        logger.warning("Overwrite enabled")

    pipeline = ProcessingPipeline(config)
    runner = BatchRunner(pipeline, worker_count=config.processing.worker_count)

    results = asyncio.run(
        runner.run(files, overwrite=overwrite, on_result=lambda _, r: _echo_result(r, "  "))
    )

    if not results:
        click.secho("⊘ No media files found", fg="yellow")
        sys.exit(0)

    counts = {status: 0 for status in STATUS_STYLES}
    for result in results:
        counts[result.status] += 1

    click.echo("")
    click.echo("=" * 60)
    click.echo("Summary:")
    click.secho(f"  ✓ Success:  {counts['success']}", fg="green")
    click.secho(f"  ⊙ Dry run:  {counts['dry_run']}", fg="cyan")
    click.secho(f"  ⊘ Skipped:  {counts['skipped']}", fg="yellow")
    click.secho(f"  ✗ Failed:   {counts['failed']}", fg="red")
    click.secho(f"  ✗ Errors:   {counts['error']}", fg="red")
    click.echo(f"  Total:      {len(results)}")

    if counts["failed"] > 0 or counts["error"] > 0:
        # Download clients flag the whole job as failed on a non-zero exit
        if trigger is not None:
            logger.warning(
                "Some files were not transcoded",
                source=trigger.source,
                failed=counts["failed"],
                errors=counts["error"],
            )
            return
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def plan(ctx, file):
    """Show the stream plan for FILE without transcoding."""
    config = ctx.obj["config"]
    pipeline = ProcessingPipeline(config)

    try:
        probe = asyncio.run(pipeline.prober.probe(file))
    except ProbeError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    stream_plan = pipeline.planner.build(probe, file)

    click.echo(f"{file.name}")
    for stream in probe.audio:
        click.echo(f"  audio    {stream}")
    for stream in probe.subtitles:
        click.echo(f"  subtitle {stream}")
    click.echo("")

    if not stream_plan.audio:
        click.secho("⊘ No audio stream in an accepted language", fg="yellow")
    for line in stream_plan.describe():
        click.echo(f"  {line}")

    verdict = "yes" if stream_plan.requires_transcode and stream_plan.audio else "no"
    click.echo(f"Requires transcode: {verdict}")


@cli.command()
def version():
    """Show version information."""
    click.echo(f"ac3mux v{__version__}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
