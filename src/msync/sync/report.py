"""Human-readable run summaries.

This module provides:
- print_summary: Dispatches to the preview or the completion summary
- print_preview: Planned operations of a dry run
- print_completion: Results of a real run
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from msync.core.humanize import format_bytes, format_duration

if TYPE_CHECKING:
    from msync.sync.stats import StatsSnapshot

# Rough copy throughput used to estimate how long a previewed run would take
ESTIMATED_THROUGHPUT = 50 * 1024 * 1024


def _signed_bytes(num_bytes: int) -> str:
    if num_bytes < 0:
        return f"-{format_bytes(-num_bytes)}"
    return format_bytes(num_bytes)


def _print_errors(title: str, errors: tuple[str, ...]) -> None:
    click.echo(click.style(f"\n{title} ({len(errors)}):", fg="red"))
    for error in errors:
        click.echo(f"   • {error}")


def print_preview(snapshot: StatsSnapshot, elapsed: float) -> None:
    """Print the planned operations of a dry run."""
    click.echo("\n" + "=" * 60)
    click.echo("                    SYNC PREVIEW SUMMARY")
    click.echo("=" * 60)

    if snapshot.total_planned == 0:
        click.echo("* No changes needed - source and destination are in sync")
        click.echo(f"  Files checked: {snapshot.files_checked}")
        click.echo(f"  Analysis time: {format_duration(elapsed)}")
        if snapshot.has_errors:
            _print_errors("ISSUES FOUND", snapshot.errors)
        click.echo("=" * 60)
        return

    click.echo("PLANNED OPERATIONS:")
    click.echo("-" * 30)
    if snapshot.files_to_copy:
        click.echo(
            f"Files to copy:      {snapshot.files_to_copy} ({format_bytes(snapshot.bytes_to_copy)})"
        )
    if snapshot.dirs_to_create:
        click.echo(f"Directories to create: {snapshot.dirs_to_create}")
    if snapshot.files_to_delete:
        click.echo(
            f"Files to delete:    {snapshot.files_to_delete} "
            f"({format_bytes(snapshot.bytes_to_delete)})"
        )

    click.echo("-" * 30)
    click.echo("SUMMARY:")
    click.echo(f"   Total operations:   {snapshot.total_planned}")
    click.echo(f"   Files checked:      {snapshot.files_checked}")
    net = snapshot.bytes_to_copy - snapshot.bytes_to_delete
    click.echo(f"   Net data transfer:  {_signed_bytes(net)}")
    click.echo(f"   Analysis time:      {format_duration(elapsed)}")
    if snapshot.bytes_to_copy > 0:
        estimate = max(1.0, snapshot.bytes_to_copy / ESTIMATED_THROUGHPUT)
        click.echo(f"   Estimated sync time: {format_duration(estimate)}")

    if snapshot.has_errors:
        _print_errors("ISSUES FOUND", snapshot.errors)

    click.echo("=" * 60)
    click.echo("To execute these changes, run the same command without --dry-run")
    click.echo("=" * 60)


def print_completion(snapshot: StatsSnapshot, elapsed: float) -> None:
    """Print the results of a real run."""
    click.echo("\n" + "=" * 50)
    click.echo("            SYNCHRONIZATION COMPLETE")
    click.echo("=" * 50)

    click.echo("RESULTS:")
    click.echo(f"   Files checked:  {snapshot.files_checked}")
    click.echo(f"   Files copied:   {snapshot.files_copied}")
    click.echo(f"   Files deleted:  {snapshot.files_deleted}")
    click.echo(f"   Dirs created:   {snapshot.dirs_created}")
    click.echo(f"   Bytes copied:   {format_bytes(snapshot.bytes_copied)}")
    click.echo(f"   Bytes deleted:  {format_bytes(snapshot.bytes_deleted)}")
    click.echo(f"   Time elapsed:   {format_duration(elapsed)}")
    if elapsed > 0 and snapshot.bytes_copied > 0:
        throughput = int(snapshot.bytes_copied / elapsed)
        click.echo(f"   Throughput:     {format_bytes(throughput)}/s")

    if snapshot.has_errors:
        _print_errors("ERRORS", snapshot.errors)
    else:
        click.echo(click.style("\nSynchronization completed successfully!", fg="green"))

    click.echo("=" * 50)


def print_summary(snapshot: StatsSnapshot, elapsed: float, dry_run: bool) -> None:
    """Print the summary matching the kind of run."""
    if dry_run:
        print_preview(snapshot, elapsed)
    else:
        print_completion(snapshot, elapsed)
