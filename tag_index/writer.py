"""Index writing: the second phase of an indexing run."""

from __future__ import annotations

from dataclasses import replace

import structlog

from .budget import Deadline
from .config import IndexConfig
from .document import Document
from .models import Element, Image, ListItem, Paragraph, Phase, RunState, TagEntry
from .text import strip_tags, truncate

logger = structlog.get_logger()


class BatchedAppender:
    """Appends elements to a document, flushing every `flush_every` changes."""

    def __init__(self, document: Document, flush_every: int) -> None:
        self.document = document
        self.flush_every = flush_every
        self.changes = 0
        self._flushed_at = 0

    def append(self, element: Element) -> None:
        self.document.append(element)
        self.changes += 1
        if self.changes - self._flushed_at >= self.flush_every:
            self.document.flush()
            self._flushed_at = self.changes


def render_captured(element: Element, max_length: int) -> Element | None:
    """Prepare a captured element for the index.

    Text loses its tag markers and is truncated; headings become body
    paragraphs so they cannot break the index structure. Images are embedded
    as they are.

    Returns:
        Element | None: The element to emit, or None for unsupported kinds.
    """
    if isinstance(element, Image):
        return element
    if isinstance(element, Paragraph):
        return Paragraph(text=truncate(strip_tags(element.text), max_length))
    if isinstance(element, ListItem):
        return replace(element, text=truncate(strip_tags(element.text), max_length))
    return None


def write_entry(appender: BatchedAppender, entry: TagEntry, config: IndexConfig) -> None:
    link = appender.document.resolve_anchor(entry.anchor)
    appender.append(Paragraph(text=entry.anchor, bold=True, link=link))

    for element in entry.elements:
        rendered = render_captured(element, config.max_text_length)
        if rendered is None:
            logger.debug("element_skipped", tag=entry.tag, kind=type(element).__name__)
            continue
        appender.append(rendered)

    appender.append(Paragraph(text=""))


def write_index(
    document: Document, state: RunState, config: IndexConfig, deadline: Deadline
) -> bool:
    """Rebuild the index section from `state.tag_index`.

    Appends the index heading when the document has none, then one section per
    tag in `state.sorted_tags` order. Each section lists the tag's entries in
    the reverse of the order they were collected in. Progress is tracked with
    `state.tag_cursor` and `state.entry_cursor`, so a suspended run continues
    exactly where it stopped.

    Args:
        document: Document whose index region has already been cleared.
        state: Run state in the writing phase, advanced in place.
        config: Indexing configuration.
        deadline: Time budget of the current invocation.

    Returns:
        bool: True when every entry was written and `state` moved to the
        complete phase; False when writing was suspended.
    """
    appender = BatchedAppender(document, config.flush_every)
    document.register_headings(config.anchor_level)

    if not state.index_heading_created:
        appender.append(Paragraph(text=config.index_heading, heading=config.index_level))
        state.index_heading_created = True

    while state.tag_cursor < len(state.sorted_tags):
        tag = state.sorted_tags[state.tag_cursor]
        entries = list(reversed(state.tag_index.get(tag, [])))

        while state.entry_cursor < len(entries):
            # Checked before each entry, which includes the start of every tag.
            if deadline.should_suspend(config.write_budget):
                logger.info(
                    "writing_suspended",
                    document=document.document_id,
                    tag=tag,
                    entry=state.entry_cursor,
                    elapsed=round(deadline.elapsed(), 3),
                )
                return False

            if state.entry_cursor == 0:
                appender.append(Paragraph(text=tag, heading=config.tag_level))

            write_entry(appender, entries[state.entry_cursor], config)
            state.entry_cursor += 1
            deadline.mark_progress()

        state.tag_cursor += 1
        state.entry_cursor = 0

    state.phase = Phase.COMPLETE
    return True
