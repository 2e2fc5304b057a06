"""In-memory document backend."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator

import structlog

from .models import Element, Paragraph
from .slugify import SlugAssigner

logger = structlog.get_logger()


class Document:
    """Ordered, mutable sequence of elements with named anchors.

    This is the backend the scanner and writer operate on. Subclasses decide
    where the elements come from and what `flush` persists; the base class
    keeps everything in memory.

    Anchors are bound as the scanner passes anchor headings, or all at once
    with `register_headings`. The writer does the latter before it starts, so
    a run that resumes in the writing phase on a freshly built document still
    links its entries.

    Args:
        document_id: Stable identity used to key checkpoints.
        elements: Initial content.
        clock: Source of modification timestamps in nanoseconds.
    """

    def __init__(
        self,
        document_id: str,
        elements: list[Element] | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.document_id = document_id
        self._elements: list[Element] = list(elements or [])
        self._anchors: dict[str, Element] = {}
        self._slugger: SlugAssigner | None = None
        self._slugs: dict[int, str] = {}
        self._clock = clock
        self._modified_at = clock()
        self._dirty = False

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, position: int) -> Element:
        return self._elements[position]

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements)

    @property
    def elements(self) -> list[Element]:
        """Snapshot of the current content."""
        return list(self._elements)

    @property
    def modified_at(self) -> int:
        """Timestamp of the last modification, in nanoseconds."""
        return self._modified_at

    @property
    def dirty(self) -> bool:
        """Whether there are modifications that have not been flushed."""
        return self._dirty

    def append(self, element: Element) -> None:
        self._elements.append(element)
        if self._slugger is not None:
            self._record_slug(element)
        self._touch()

    def remove(self, position: int) -> Element:
        element = self._elements.pop(position)
        self._slugger = None
        self._touch()
        return element

    def register_anchor(self, text: str, position: int) -> None:
        """Bind `text` to the paragraph at `position`, replacing any earlier binding."""
        element = self._elements[position]
        if not isinstance(element, Paragraph):
            raise TypeError(f"Anchors must be bound to paragraphs, not {type(element).__name__}")
        self._anchors[text] = element

    def register_headings(self, level: int) -> None:
        """Register every non-empty heading at `level` as an anchor named by its text.

        Later headings win over earlier ones with the same text, matching what
        registering them one by one in document order does.
        """
        for position, element in enumerate(self._elements):
            if isinstance(element, Paragraph) and element.heading == level and element.text:
                self.register_anchor(element.text, position)

    def resolve_anchor(self, text: str) -> str | None:
        """Return a link target for the anchor named `text`.

        Returns:
            str | None: ``#slug`` of the bound heading, or None when the anchor
            was never registered or its heading is no longer in the document.
        """
        target = self._anchors.get(text)
        if target is None:
            return None

        slug = self._heading_slugs().get(id(target))
        if slug is None:
            logger.debug("anchor_unresolved", document=self.document_id, anchor=text)
            return None
        return f"#{slug}"

    def _heading_slugs(self) -> dict[int, str]:
        # Slugs are assigned in document order, so appending never changes an
        # existing heading's slug; removals drop the cache.
        if self._slugger is None:
            self._slugger = SlugAssigner()
            self._slugs = {}
            for element in self._elements:
                self._record_slug(element)
        return self._slugs

    def _record_slug(self, element: Element) -> None:
        if isinstance(element, Paragraph) and element.heading is not None:
            slug = self._slugger.add(element.text)
            self._slugs.setdefault(id(element), slug)

    def flush(self) -> None:
        """Persist pending modifications. The in-memory backend only clears its dirty flag."""
        self._dirty = False

    def _touch(self) -> None:
        self._dirty = True
        self._modified_at = max(self._clock(), self._modified_at + 1)
