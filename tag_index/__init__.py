"""
tag-index: resumable tag index builder for Markdown journals.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    tag-index journal.md

Library Usage:
    from pathlib import Path
    from tag_index import FileCheckpointStore, MarkdownDocument, run_indexing

    path = Path("journal.md").resolve()
    outcome = run_indexing(MarkdownDocument(path), FileCheckpointStore(path.parent / ".tag-index"))
    if not outcome.completed:
        ...  # call again later to resume
"""

from .budget import Deadline
from .checkpoint import CheckpointStore, FileCheckpointStore, MemoryCheckpointStore
from .config import ConfigError, IndexConfig
from .document import Document
from .engine import RunOutcome, run_indexing
from .exceptions import (
    CheckpointError,
    CorruptCheckpointError,
    DocumentChangedError,
    DocumentError,
    TagIndexError,
)
from .markdown import MarkdownDocument, parse_markdown, render_markdown
from .models import Image, ListItem, Paragraph, Phase, RunState, TagEntry
from .scanner import find_tags, scan_document
from .text import strip_tags, truncate
from .writer import write_index

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "run_indexing",
    "scan_document",
    "write_index",
    "find_tags",
    # Backends
    "Document",
    "MarkdownDocument",
    "CheckpointStore",
    "MemoryCheckpointStore",
    "FileCheckpointStore",
    "parse_markdown",
    "render_markdown",
    # Data models
    "Paragraph",
    "ListItem",
    "Image",
    "TagEntry",
    "RunState",
    "Phase",
    "RunOutcome",
    "IndexConfig",
    "Deadline",
    # Utilities
    "truncate",
    "strip_tags",
    # Exceptions
    "ConfigError",
    "TagIndexError",
    "CheckpointError",
    "CorruptCheckpointError",
    "DocumentError",
    "DocumentChangedError",
    # Version
    "__version__",
]
