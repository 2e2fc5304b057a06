"""Package-specific exception types."""

from __future__ import annotations


class TagIndexError(Exception):
    """Base class for errors raised by tag-index."""


class CheckpointError(TagIndexError):
    """Raised when a checkpoint cannot be handled by the store."""


class CorruptCheckpointError(CheckpointError):
    """Raised when persisted run state cannot be decoded.

    Args:
        document_id: Identity of the document the checkpoint belongs to.
        reason: Short description of what failed to parse.
    """

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Corrupt checkpoint for {document_id}: {reason}")


class DocumentError(TagIndexError, IOError):
    """Raised when a document cannot be read, parsed, or safely written."""


class DocumentChangedError(DocumentError):
    """Raised when a document changed on disk while it was being indexed.

    Args:
        path: Location of the document that changed.
    """

    def __init__(self, path: object):
        self.path = path
        super().__init__(f"{path} changed during processing; refusing to overwrite.")
