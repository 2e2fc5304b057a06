"""Data models for tag-index."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .constants import CHECKPOINT_VERSION


class Phase(Enum):
    """Phases of an indexing run.

    Attributes:
        GATHERING: Scanning the document and collecting tagged content.
        WRITING: Rebuilding the index section from the collected tags.
        COMPLETE: The index section is fully rebuilt.
    """

    GATHERING = "gathering"
    WRITING = "writing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Paragraph:
    """A paragraph or heading.

    Attributes:
        text: Visible text of the paragraph.
        heading: Heading level, or None for body text.
        bold: Whether the whole paragraph is rendered bold.
        link: Link target wrapping the whole paragraph, if any.
    """

    text: str
    heading: int | None = None
    bold: bool = False
    link: str | None = None


@dataclass(frozen=True)
class ListItem:
    """A single list item.

    Attributes:
        text: Visible text of the item.
        marker: Bullet or ordinal marker (``"-"``, ``"*"``, ``"1."``...).
        indent: Leading whitespace before the marker.
    """

    text: str
    marker: str = "-"
    indent: str = ""


@dataclass(frozen=True)
class Image:
    """An inline image.

    Attributes:
        source: Reference to the image payload (path or URL).
        alt: Alternative text.
        width: Display width in pixels, when known.
        height: Display height in pixels, when known.
    """

    source: str
    alt: str = ""
    width: int | None = None
    height: int | None = None


Element = Union[Paragraph, ListItem, Image]


@dataclass
class TagEntry:
    """One occurrence of a tag and the elements it covers.

    Attributes:
        tag: Tag identity, including the leading ``#``.
        anchor: Text of the heading the occurrence was found under.
        elements: Captured elements, in document order.
    """

    tag: str
    anchor: str
    elements: list[Element] = field(default_factory=list)


@dataclass
class PendingSpan:
    """A multi-element tag that is still absorbing elements.

    Attributes:
        tag: Tag identity.
        remaining: Number of elements still to capture.
        entry: Entry being filled.
    """

    tag: str
    remaining: int
    entry: TagEntry


@dataclass
class RunState:
    """State of an indexing run, persisted between invocations.

    Attributes:
        phase: Current phase.
        scan_cursor: Position of the next element to scan.
        removed_count: Number of stale index elements removed so far.
        last_anchor: Text of the most recent anchor heading, if any.
        in_index_region: Whether the scan has reached the index heading.
        index_heading_created: Whether the index heading exists for this run.
        tag_index: Collected entries per tag, in traversal order.
        pending: Spans still absorbing elements; empty at every checkpoint.
        sorted_tags: Tags in output order, set when gathering completes.
        tag_cursor: Index into `sorted_tags` of the tag being written.
        entry_cursor: Index of the next entry to write for the current tag.
    """

    phase: Phase = Phase.GATHERING
    scan_cursor: int = 0
    removed_count: int = 0
    last_anchor: str | None = None
    in_index_region: bool = False
    index_heading_created: bool = False
    tag_index: dict[str, list[TagEntry]] = field(default_factory=dict)
    pending: list[PendingSpan] = field(default_factory=list)
    sorted_tags: list[str] = field(default_factory=list)
    tag_cursor: int = 0
    entry_cursor: int = 0

    @property
    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.tag_index.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": CHECKPOINT_VERSION,
            "phase": self.phase.value,
            "scan_cursor": self.scan_cursor,
            "removed_count": self.removed_count,
            "last_anchor": self.last_anchor,
            "in_index_region": self.in_index_region,
            "index_heading_created": self.index_heading_created,
            "tag_index": {
                tag: [entry_to_dict(entry) for entry in entries]
                for tag, entries in self.tag_index.items()
            },
            "pending": [
                {"tag": span.tag, "remaining": span.remaining, "entry": entry_to_dict(span.entry)}
                for span in self.pending
            ],
            "sorted_tags": list(self.sorted_tags),
            "tag_cursor": self.tag_cursor,
            "entry_cursor": self.entry_cursor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunState:
        """Rebuild a `RunState` from `to_dict` output.

        Raises:
            ValueError: If the payload is from another format version.
            KeyError: If a required field is missing.
            TypeError: If a field has the wrong shape.
        """
        if data.get("version") != CHECKPOINT_VERSION:
            raise ValueError(f"unsupported checkpoint version {data.get('version')!r}")

        last_anchor = data["last_anchor"]
        if last_anchor is not None and not isinstance(last_anchor, str):
            raise TypeError("`last_anchor` must be a string")

        return cls(
            phase=Phase(data["phase"]),
            scan_cursor=_as_int(data["scan_cursor"], "scan_cursor"),
            removed_count=_as_int(data["removed_count"], "removed_count"),
            last_anchor=last_anchor,
            in_index_region=bool(data["in_index_region"]),
            index_heading_created=bool(data["index_heading_created"]),
            tag_index={
                str(tag): [entry_from_dict(entry) for entry in entries]
                for tag, entries in data["tag_index"].items()
            },
            pending=[
                PendingSpan(
                    tag=str(span["tag"]),
                    remaining=_as_int(span["remaining"], "remaining"),
                    entry=entry_from_dict(span["entry"]),
                )
                for span in data["pending"]
            ],
            sorted_tags=[str(tag) for tag in data["sorted_tags"]],
            tag_cursor=_as_int(data["tag_cursor"], "tag_cursor"),
            entry_cursor=_as_int(data["entry_cursor"], "entry_cursor"),
        )


def element_to_dict(element: Element) -> dict[str, Any]:
    if isinstance(element, Paragraph):
        return {
            "kind": "paragraph",
            "text": element.text,
            "heading": element.heading,
            "bold": element.bold,
            "link": element.link,
        }
    if isinstance(element, ListItem):
        return {
            "kind": "list_item",
            "text": element.text,
            "marker": element.marker,
            "indent": element.indent,
        }
    if isinstance(element, Image):
        return {
            "kind": "image",
            "source": element.source,
            "alt": element.alt,
            "width": element.width,
            "height": element.height,
        }
    raise TypeError(f"Unsupported element type: {type(element).__name__}")


def element_from_dict(data: dict[str, Any]) -> Element:
    kind = data["kind"]
    if kind == "paragraph":
        return Paragraph(
            text=str(data["text"]),
            heading=data.get("heading"),
            bold=bool(data.get("bold", False)),
            link=data.get("link"),
        )
    if kind == "list_item":
        return ListItem(
            text=str(data["text"]),
            marker=str(data.get("marker", "-")),
            indent=str(data.get("indent", "")),
        )
    if kind == "image":
        return Image(
            source=str(data["source"]),
            alt=str(data.get("alt", "")),
            width=data.get("width"),
            height=data.get("height"),
        )
    raise ValueError(f"unknown element kind {kind!r}")


def entry_to_dict(entry: TagEntry) -> dict[str, Any]:
    return {
        "tag": entry.tag,
        "anchor": entry.anchor,
        "elements": [element_to_dict(element) for element in entry.elements],
    }


def entry_from_dict(data: dict[str, Any]) -> TagEntry:
    return TagEntry(
        tag=str(data["tag"]),
        anchor=str(data["anchor"]),
        elements=[element_from_dict(element) for element in data["elements"]],
    )


def _as_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"`{name}` must be an integer")
    return value
