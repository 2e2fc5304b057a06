"""Tag gathering: the first phase of an indexing run."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from .budget import Deadline
from .config import IndexConfig
from .constants import SPAN_SEPARATOR, SPAN_SUFFIX_PATTERN, TAG_PATTERN
from .document import Document
from .models import Element, ListItem, Paragraph, PendingSpan, Phase, RunState, TagEntry

logger = structlog.get_logger()


@dataclass(frozen=True)
class TagMatch:
    """A tag found in text.

    Attributes:
        tag: Tag identity, the part of the token before the first ``_``.
        span: Number of following elements the tag also covers.
    """

    tag: str
    span: int = 0


def find_tags(text: str) -> list[TagMatch]:
    """Find every tag marker in `text`.

    A token ``#name_+N`` covers its own element and the next N elements. A
    suffix that is not ``+`` followed by a positive integer leaves the tag
    covering just its own element. Tokens whose identity is a bare ``#`` are
    ignored.

    Examples:
        find_tags("Met with Bob #people")  # [TagMatch("#people", 0)]
        find_tags("Big plan #goals_+2")  # [TagMatch("#goals", 2)]
        find_tags("#todo_+x")  # [TagMatch("#todo", 0)]
    """
    matches: list[TagMatch] = []
    for match in TAG_PATTERN.finditer(text):
        tag, separator, suffix = match.group(0).partition(SPAN_SEPARATOR)
        if tag == "#":
            continue

        span = 0
        if separator:
            suffix_match = SPAN_SUFFIX_PATTERN.fullmatch(suffix)
            if suffix_match:
                span = int(suffix_match.group(1))
            elif suffix.startswith("+"):
                logger.debug("span_suffix_ignored", token=match.group(0))

        matches.append(TagMatch(tag=tag, span=span))
    return matches


def element_text(element: Element) -> str | None:
    if isinstance(element, (Paragraph, ListItem)):
        return element.text
    return None


def _is_heading(element: Element, level: int) -> bool:
    return isinstance(element, Paragraph) and element.heading == level


def _add_entry(state: RunState, entry: TagEntry) -> None:
    state.tag_index.setdefault(entry.tag, []).append(entry)


def _feed_pending(state: RunState, element: Element) -> None:
    still_open: list[PendingSpan] = []
    for span in state.pending:
        span.entry.elements.append(element)
        span.remaining -= 1
        if span.remaining == 0:
            _add_entry(state, span.entry)
        else:
            still_open.append(span)
    state.pending = still_open


def _collect_tags(state: RunState, element: Element) -> None:
    text = element_text(element)
    if not text or state.last_anchor is None:
        return

    for match in find_tags(text):
        entry = TagEntry(tag=match.tag, anchor=state.last_anchor, elements=[element])
        if match.span:
            state.pending.append(PendingSpan(tag=match.tag, remaining=match.span, entry=entry))
        else:
            _add_entry(state, entry)


def _close_pending(state: RunState) -> None:
    """Finalize spans that ran out of elements before they were filled."""
    for span in state.pending:
        logger.debug("span_truncated", tag=span.tag, missing=span.remaining)
        _add_entry(state, span.entry)
    state.pending = []


def scan_document(
    document: Document, state: RunState, config: IndexConfig, deadline: Deadline
) -> bool:
    """Gather tagged content from `document` into `state.tag_index`.

    Walks the document from `state.scan_cursor`. Anchor headings are
    registered as they are passed; everything after the index heading is stale
    output from an earlier run and is removed. The walk stops early when the
    gathering budget is spent, but never while a multi-element span is still
    open, so a span is always captured within a single invocation.

    Args:
        document: Document to scan; stale index content is removed from it.
        state: Run state to advance in place.
        config: Indexing configuration.
        deadline: Time budget of the current invocation.

    Returns:
        bool: True when the whole document was scanned and `state` moved to the
        writing phase; False when the scan was suspended.
    """
    while state.scan_cursor < len(document):
        if not state.pending and deadline.should_suspend(config.gather_budget):
            logger.info(
                "gathering_suspended",
                document=document.document_id,
                cursor=state.scan_cursor,
                elapsed=round(deadline.elapsed(), 3),
            )
            return False

        element = document[state.scan_cursor]

        if state.in_index_region:
            document.remove(state.scan_cursor)
            state.removed_count += 1
            deadline.mark_progress()
            continue

        if _is_heading(element, config.index_level) and element.text == config.index_heading:
            _close_pending(state)
            state.in_index_region = True
            state.index_heading_created = True
            state.scan_cursor += 1
            deadline.mark_progress()
            continue

        if _is_heading(element, config.anchor_level) and element.text:
            document.register_anchor(element.text, state.scan_cursor)
            state.last_anchor = element.text

        if state.last_anchor is not None:
            _feed_pending(state, element)
            _collect_tags(state, element)

        state.scan_cursor += 1
        deadline.mark_progress()

    _close_pending(state)
    state.sorted_tags = sorted(state.tag_index)
    state.tag_cursor = 0
    state.entry_cursor = 0
    state.phase = Phase.WRITING
    return True
