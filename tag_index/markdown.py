"""Markdown-backed documents.

A Markdown file maps onto the element model one line per element: ATX
headings become heading paragraphs, bullet and ordinal lines become list
items, lines that hold a single image become images, and every other line
(blank ones included) is a paragraph. Lines inside fenced code blocks are
always plain paragraphs. Rendering is the exact inverse of parsing, so
content outside the index section is written back untouched.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from .constants import (
    CLOSING_FENCE_MAX_INDENT,
    CODE_FENCE_PATTERN,
    DEFAULT_MAX_FILE_SIZE,
    HEADING_PATTERN,
    HTML_IMAGE_PATTERN,
    IMAGE_PATTERN,
    LIST_ITEM_PATTERN,
)
from .document import Document
from .exceptions import DocumentError
from .filesystem import ensure_file_unchanged, stat_regular_file, write_atomic
from .models import Element, Image, ListItem, Paragraph

logger = structlog.get_logger()


@dataclass
class _Fence:
    char: str
    length: int


def _leading_whitespace_columns(line: str) -> int:
    """Compute the column width of leading whitespace, with tabs every four columns."""
    columns = 0
    for character in line:
        if character == " ":
            columns += 1
            continue
        if character == "\t":
            columns += 4 - (columns % 4)
            continue
        break
    return columns


def _open_fence(line: str) -> _Fence | None:
    fence_match = CODE_FENCE_PATTERN.match(line)
    if not fence_match:
        return None
    if _leading_whitespace_columns(fence_match.group("indent") or "") > CLOSING_FENCE_MAX_INDENT:
        return None
    sequence = fence_match.group("fence")
    return _Fence(char=sequence[0], length=len(sequence))


def _closes_fence(fence: _Fence, line: str) -> bool:
    stripped_line = line.lstrip(" \t")
    if not stripped_line or stripped_line[0] != fence.char:
        return False

    run_length = len(stripped_line) - len(stripped_line.lstrip(fence.char))
    if run_length < fence.length:
        return False
    if stripped_line[run_length:].strip():
        return False
    return _leading_whitespace_columns(line) <= CLOSING_FENCE_MAX_INDENT


def parse_line(line: str) -> Element:
    """Classify a single Markdown line outside code blocks.

    Examples:
        parse_line("### Jan 1")  # Paragraph("Jan 1", heading=3)
        parse_line("  * milk")  # ListItem("milk", marker="*", indent="  ")
    """
    heading_match = HEADING_PATTERN.match(line)
    if heading_match:
        return Paragraph(text=heading_match.group(2), heading=len(heading_match.group(1)))

    image_match = IMAGE_PATTERN.match(line)
    if image_match:
        return Image(source=image_match.group("source"), alt=image_match.group("alt"))

    html_image_match = HTML_IMAGE_PATTERN.match(line)
    if html_image_match:
        width = html_image_match.group("width")
        height = html_image_match.group("height")
        if not width and not height:
            return Paragraph(text=line)
        return Image(
            source=html_image_match.group("source"),
            alt=html_image_match.group("alt"),
            width=int(width) if width else None,
            height=int(height) if height else None,
        )

    list_match = LIST_ITEM_PATTERN.match(line)
    if list_match:
        return ListItem(
            text=list_match.group("text"),
            marker=list_match.group("marker"),
            indent=list_match.group("indent"),
        )

    return Paragraph(text=line)


def parse_markdown(content: str) -> list[Element]:
    """Split Markdown content into elements, one per line.

    Lines end at ``\\n`` only; ``\\r\\n`` and a lone ``\\r`` are read as ``\\n``.
    Other characters that Unicode treats as line breaks stay inside their line,
    so rendering the elements gives back the same text.

    Args:
        content: Markdown text.

    Returns:
        list[Element]: Elements in document order.

    Examples:
        parse_markdown("### Jan 1\\nMet with Bob #people\\n")
    """
    elements: list[Element] = []
    fence: _Fence | None = None

    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines[-1] == "":
        lines.pop()

    for line in lines:
        if fence is not None:
            if _closes_fence(fence, line):
                fence = None
            elements.append(Paragraph(text=line))
            continue

        fence = _open_fence(line)
        if fence is not None:
            elements.append(Paragraph(text=line))
            continue

        elements.append(parse_line(line))

    return elements


def render_element(element: Element) -> str:
    """Render one element as a single Markdown line.

    Raises:
        TypeError: If the element type has no Markdown form.
    """
    if isinstance(element, Paragraph):
        if element.heading is not None:
            return f"{'#' * element.heading} {element.text}"
        text = element.text
        if element.link is not None:
            text = f"[{text}]({element.link})"
        if element.bold:
            text = f"**{text}**"
        return text

    if isinstance(element, ListItem):
        return f"{element.indent}{element.marker} {element.text}"

    if isinstance(element, Image):
        if element.width is None and element.height is None:
            return f"![{element.alt}]({element.source})"
        attributes = f'src="{element.source}" alt="{element.alt}"'
        if element.width is not None:
            attributes += f' width="{element.width}"'
        if element.height is not None:
            attributes += f' height="{element.height}"'
        return f"<img {attributes}>"

    raise TypeError(f"Unsupported element type: {type(element).__name__}")


def render_markdown(elements: list[Element], trailing_newline: bool = True) -> str:
    """Render elements back to Markdown text.

    Args:
        elements: Elements in document order.
        trailing_newline: Whether the text ends with a newline.

    Returns:
        str: Markdown text, one line per element.
    """
    if not elements:
        return ""
    text = "\n".join(render_element(element) for element in elements)
    return text + "\n" if trailing_newline else text


class MarkdownDocument(Document):
    """A `Document` loaded from and flushed back to a Markdown file.

    Headings at `anchor_level` are registered as anchors on load, since every
    Markdown heading is linkable by its slug.

    Args:
        path: Markdown file to index.
        anchor_level: Heading level of anchor headings.
        max_file_size: Refuse files larger than this many bytes.

    Raises:
        DocumentError: If the file cannot be read, decoded, or is too large.
    """

    def __init__(
        self,
        path: Path,
        anchor_level: int = 3,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        self.path = Path(path)
        try:
            content, loaded_stat = self._read(max_file_size)
        except UnicodeDecodeError as error:
            raise DocumentError(f"Invalid UTF-8 sequence in {self.path}: {error}") from error
        except DocumentError:
            raise
        except OSError as error:
            raise DocumentError(str(error)) from error

        self._stat: os.stat_result = loaded_stat
        self._trailing_newline = content.endswith("\n") or not content
        super().__init__(str(self.path), parse_markdown(content), clock=time.time_ns)
        self.register_headings(anchor_level)

        logger.debug("document_loaded", path=str(self.path), elements=len(self))

    def _read(self, max_file_size: int) -> tuple[str, os.stat_result]:
        initial_stat = stat_regular_file(self.path, max_size=max_file_size)
        with open(self.path, "r", encoding="UTF-8") as file:
            content = file.read()
        return content, ensure_file_unchanged(initial_stat, self.path)

    @property
    def modified_at(self) -> int:
        """Modification time of the file on disk, in nanoseconds."""
        return self._stat.st_mtime_ns

    def render(self) -> str:
        return render_markdown(self.elements, self._trailing_newline)

    def flush(self) -> None:
        """Write pending modifications to disk.

        Raises:
            DocumentChangedError: If the file was modified by someone else since
                it was loaded or last flushed.
        """
        if not self.dirty:
            return
        write_atomic(
            self.path, self.render(), expected_stat=self._stat, warn=self._warn_ownership
        )
        self._stat = stat_regular_file(self.path)
        super().flush()
        logger.debug("document_flushed", path=str(self.path), elements=len(self))

    def _warn_ownership(self, message: str) -> None:
        logger.warning("ownership_not_preserved", path=str(self.path), detail=message)
