"""Checkpoint storage for suspended indexing runs.

A checkpoint is the JSON form of a `RunState`, keyed by document identity.
Every store also reports when each checkpoint was last written so callers
can tell whether the document was edited after the run was suspended.
"""

from __future__ import annotations

import hashlib
import json
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import structlog

from .document import Document
from .exceptions import CorruptCheckpointError
from .filesystem import write_atomic
from .models import RunState

logger = structlog.get_logger()


class CheckpointStore(Protocol):
    """Key-value store for run state, keyed by document identity."""

    def load(self, document_id: str) -> RunState | None:
        """Return the saved state, or None when there is none.

        Raises:
            CorruptCheckpointError: If the saved state cannot be decoded.
        """
        ...

    def save(self, document_id: str, state: RunState) -> None: ...

    def delete(self, document_id: str) -> None: ...

    def modified_at(self, document_id: str) -> int | None:
        """Return when the checkpoint was last written, in nanoseconds."""
        ...


def encode_state(state: RunState) -> str:
    return json.dumps(state.to_dict(), ensure_ascii=False, separators=(",", ":"))


def decode_state(document_id: str, payload: str | bytes) -> RunState:
    """Decode a stored checkpoint.

    Raises:
        CorruptCheckpointError: If the payload is not a valid run state.
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise CorruptCheckpointError(document_id, f"invalid JSON ({error})") from error

    if not isinstance(data, dict):
        raise CorruptCheckpointError(document_id, "payload is not an object")

    try:
        return RunState.from_dict(data)
    except KeyError as error:
        raise CorruptCheckpointError(document_id, f"missing field {error}") from error
    except (TypeError, ValueError, AttributeError) as error:
        raise CorruptCheckpointError(document_id, str(error)) from error


class MemoryCheckpointStore:
    """Checkpoint store that keeps encoded checkpoints in a dictionary.

    Args:
        clock: Source of write timestamps in nanoseconds.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._blobs: dict[str, tuple[str, int]] = {}

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._blobs

    def load(self, document_id: str) -> RunState | None:
        stored = self._blobs.get(document_id)
        if stored is None:
            return None
        return decode_state(document_id, stored[0])

    def save(self, document_id: str, state: RunState) -> None:
        self._blobs[document_id] = (encode_state(state), self._clock())

    def delete(self, document_id: str) -> None:
        self._blobs.pop(document_id, None)

    def modified_at(self, document_id: str) -> int | None:
        stored = self._blobs.get(document_id)
        return None if stored is None else stored[1]

    def put_raw(self, document_id: str, payload: str) -> None:
        """Store a payload verbatim, bypassing encoding."""
        self._blobs[document_id] = (payload, self._clock())


class FileCheckpointStore:
    """Checkpoint store backed by one JSON file per document.

    Args:
        directory: Directory holding checkpoint files; created on first save.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, document_id: str) -> Path:
        digest = hashlib.sha256(document_id.encode("utf-8")).hexdigest()[:32]
        return self.directory / f"{digest}.json"

    def load(self, document_id: str) -> RunState | None:
        path = self.path_for(document_id)
        try:
            payload = path.read_bytes()
        except FileNotFoundError:
            return None
        return decode_state(document_id, payload)

    def save(self, document_id: str, state: RunState) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(document_id)
        write_atomic(path, encode_state(state))
        # File mtimes come from a coarse kernel clock; stamp the precise time so
        # the checkpoint orders after a document flushed moments earlier.
        stamp = time.time_ns()
        os.utime(path, ns=(stamp, stamp))
        logger.debug("checkpoint_saved", document=document_id, path=str(path))

    def delete(self, document_id: str) -> None:
        self.path_for(document_id).unlink(missing_ok=True)

    def modified_at(self, document_id: str) -> int | None:
        try:
            return os.stat(self.path_for(document_id)).st_mtime_ns
        except FileNotFoundError:
            return None


def load_checkpoint(store: CheckpointStore, document: Document) -> RunState | None:
    """Return a checkpoint that is safe to resume from.

    A checkpoint is honored only if it was written strictly after the document
    was last modified. Stale and corrupt checkpoints are deleted so the next
    save starts from a clean slate.

    Args:
        store: Store to read from.
        document: Document the checkpoint belongs to.

    Returns:
        RunState | None: State to resume, or None to start fresh.

    Raises:
        OSError: If the store cannot be read for reasons other than corruption.
    """
    document_id = document.document_id
    saved_at = store.modified_at(document_id)
    if saved_at is None:
        return None

    if saved_at <= document.modified_at:
        logger.info(
            "checkpoint_stale",
            document=document_id,
            checkpoint_at=saved_at,
            document_at=document.modified_at,
        )
        store.delete(document_id)
        return None

    try:
        state = store.load(document_id)
    except CorruptCheckpointError as error:
        logger.warning("checkpoint_corrupt", document=document_id, reason=error.reason)
        store.delete(document_id)
        return None

    if state is not None:
        logger.info("checkpoint_resumed", document=document_id, phase=state.phase.value)
    return state
