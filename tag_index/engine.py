"""Resumable indexing runs."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from .budget import Deadline
from .checkpoint import CheckpointStore, load_checkpoint
from .config import IndexConfig, validate_config
from .document import Document
from .models import Phase, RunState
from .scanner import scan_document
from .writer import write_index

logger = structlog.get_logger()


@dataclass
class RunOutcome:
    """Summary of one invocation of `run_indexing`.

    Attributes:
        phase: Phase the run is in after this invocation.
        resumed: Whether the invocation continued from a checkpoint.
        tag_count: Number of distinct tags collected so far.
        entry_count: Number of tag entries collected so far.
        removed_count: Number of stale index elements removed so far.
    """

    phase: Phase
    resumed: bool
    tag_count: int
    entry_count: int
    removed_count: int

    @property
    def completed(self) -> bool:
        return self.phase is Phase.COMPLETE


def _outcome(state: RunState, resumed: bool) -> RunOutcome:
    return RunOutcome(
        phase=state.phase,
        resumed=resumed,
        tag_count=len(state.tag_index),
        entry_count=state.entry_count,
        removed_count=state.removed_count,
    )


def _checkpoint(document: Document, store: CheckpointStore, state: RunState) -> None:
    # The document is flushed first so the checkpoint is newer than it.
    document.flush()
    store.save(document.document_id, state)


def run_indexing(
    document: Document,
    store: CheckpointStore,
    config: IndexConfig | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> RunOutcome:
    """Build or continue building the tag index of `document`.

    Resumes from a checkpoint when `store` holds one newer than the document,
    otherwise starts over. Gathering and writing both stop once their time
    budget is spent; the run state is then checkpointed and the call returns
    so it can be invoked again later. A completed run flushes the document and
    removes the checkpoint. Calling this repeatedly is always safe.

    Args:
        document: Document to index.
        store: Where run state is kept between invocations.
        config: Indexing configuration; defaults to `IndexConfig()`.
        clock: Monotonic clock in seconds used for the time budgets.

    Returns:
        RunOutcome: Where the run stands after this invocation.

    Raises:
        ConfigError: If the configuration fails validation.
        OSError: If the document or the store fails; the last checkpoint is
            left in place so a later invocation can retry.

    Examples:
        outcome = run_indexing(MarkdownDocument(path), FileCheckpointStore(path.parent / ".tag-index"))
    """
    config = config or IndexConfig()
    validate_config(config)
    deadline = Deadline(clock)
    log = logger.bind(document=document.document_id)

    state = load_checkpoint(store, document)
    resumed = state is not None
    if state is None:
        state = RunState()
        log.info("indexing_started", elements=len(document))

    if state.phase is Phase.GATHERING:
        if not scan_document(document, state, config, deadline):
            _checkpoint(document, store, state)
            return _outcome(state, resumed)
        log.info(
            "gathering_complete",
            tags=len(state.tag_index),
            entries=state.entry_count,
            removed=state.removed_count,
        )
        _checkpoint(document, store, state)

    if state.phase is Phase.WRITING:
        if not write_index(document, state, config, deadline):
            _checkpoint(document, store, state)
            return _outcome(state, resumed)

    document.flush()
    store.delete(document.document_id)
    log.info("index_written", tags=len(state.tag_index), entries=state.entry_count)
    return _outcome(state, resumed)
