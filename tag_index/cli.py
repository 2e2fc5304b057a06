"""
Builds a tag index for a Markdown journal.
Scans the file for #tags and rewrites the index section at its end; long runs
stop at their time budget and resume on the next invocation.
"""

from __future__ import annotations

from pathlib import Path

import click

from .checkpoint import FileCheckpointStore
from .config import ConfigError, build_config
from .engine import run_indexing
from .exceptions import DocumentError, TagIndexError
from .filesystem import get_max_file_size, normalize_filepath
from .logging import LOG_LEVELS, configure_logging
from .markdown import MarkdownDocument

__all__ = ["cli"]


@click.command()
@click.version_option(package_name="tag-index")
@click.option("--index-heading", help="Text of the heading that starts the index")
@click.option("--max-length", "max_text_length", type=int, help="Truncate captured text after this many characters")
@click.option("--gather-budget", type=float, help="Seconds to spend gathering before suspending")
@click.option("--write-budget", type=float, help="Seconds into the run after which writing suspends")
@click.option("--flush-every", type=int, help="Flush the document after this many appended elements")
@click.option("--checkpoint-dir", help="Directory for checkpoints, relative to the document")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Minimum log level written to stderr",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default="console",
    show_default=True,
    help="Log output format",
)
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
def cli(
    filepath: str,
    index_heading: str | None = None,
    max_text_length: int | None = None,
    gather_budget: float | None = None,
    write_budget: float | None = None,
    flush_every: int | None = None,
    checkpoint_dir: str | None = None,
    log_level: str = "WARNING",
    log_format: str = "console",
):
    """
    Entry point for building or resuming the tag index of a Markdown file.

    Args:
        filepath: Path to the Markdown file to index.
        index_heading: Override for the index heading text.
        max_text_length: Override for the truncation length.
        gather_budget: Override for the gathering time budget, in seconds.
        write_budget: Override for the writing time budget, in seconds.
        flush_every: Override for the flush batch size.
        checkpoint_dir: Override for the checkpoint directory.
        log_level: Minimum log level.
        log_format: ``console`` or ``json``.

    Raises:
        click.BadParameter: If the path or configuration overrides are invalid.
        click.ClickException: If the document cannot be read or written, or
            the checkpoint store fails.

    Examples:
        tag-index journal.md --gather-budget 60
    """
    configure_logging(level=log_level, json_format=log_format == "json")

    base_dir = Path.cwd().resolve()
    try:
        path = normalize_filepath(filepath, base_dir)
    except ValueError as error:
        raise click.BadParameter(str(error)) from error

    try:
        config = build_config(
            path.parent,
            index_heading=index_heading,
            max_text_length=max_text_length,
            gather_budget=gather_budget,
            write_budget=write_budget,
            flush_every=flush_every,
            checkpoint_dir=checkpoint_dir,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    try:
        max_file_size = get_max_file_size(default=config.max_file_size)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    try:
        document = MarkdownDocument(
            path, anchor_level=config.anchor_level, max_file_size=max_file_size
        )
    except DocumentError as error:
        raise click.ClickException(str(error)) from error

    store = FileCheckpointStore(path.parent / config.checkpoint_dir)

    try:
        outcome = run_indexing(document, store, config)
    except (TagIndexError, OSError) as error:
        raise click.ClickException(str(error)) from error

    if outcome.completed:
        click.echo(
            f"Index complete (tags: {outcome.tag_count}, entries: {outcome.entry_count})",
            err=True,
        )
    else:
        click.echo(
            f"Indexing suspended during {outcome.phase.value}; run again to resume",
            err=True,
        )


if __name__ == "__main__":
    cli()
