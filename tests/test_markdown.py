from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from tag_index.exceptions import DocumentChangedError, DocumentError
from tag_index.markdown import (
    MarkdownDocument,
    parse_line,
    parse_markdown,
    render_element,
    render_markdown,
)
from tag_index.models import Image, ListItem, Paragraph


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("### Jan 1", Paragraph("Jan 1", heading=3)),
        ("# Tags", Paragraph("Tags", heading=1)),
        ("## ", Paragraph("", heading=2)),
        ("#people at the start", Paragraph("#people at the start")),
        ("####### too deep", Paragraph("####### too deep")),
        ("- milk", ListItem("milk")),
        ("  * eggs", ListItem("eggs", marker="*", indent="  ")),
        ("3. third", ListItem("third", marker="3.")),
        ("---", Paragraph("---")),
        ("![chart](img/chart.png)", Image("img/chart.png", alt="chart")),
        (
            '<img src="a.png" alt="A" width="40" height="30">',
            Image("a.png", alt="A", width=40, height=30),
        ),
        ('<img src="a.png" alt="A">', Paragraph('<img src="a.png" alt="A">')),
        ("", Paragraph("")),
    ],
)
def test_parse_line(line: str, expected):
    assert parse_line(line) == expected


def test_headings_inside_fenced_code_are_plain_paragraphs():
    elements = parse_markdown("```python\n# comment\n- not a list\n```\n### Jan 1\n")

    assert elements == [
        Paragraph("```python"),
        Paragraph("# comment"),
        Paragraph("- not a list"),
        Paragraph("```"),
        Paragraph("Jan 1", heading=3),
    ]


def test_fence_requires_matching_closer():
    elements = parse_markdown("~~~~\n~~~\n# still code\n~~~~\n# Heading\n")

    assert elements[2] == Paragraph("# still code")
    assert elements[4] == Paragraph("Heading", heading=1)


def test_render_is_inverse_of_parse():
    content = textwrap.dedent(
        """\
        # Journal
        ### Jan 1
        Met with Bob #people

          * nested item
        1) ordinal
        ![img](pic.png)
        <img src="b.png" alt="" width="10">
        ```
        # code
        ```
        ## Closing ##
        """
    )

    assert render_markdown(parse_markdown(content)) == content


@pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\x1e", "\x85", "\u2028", "\u2029"])
def test_only_newline_ends_a_line(separator: str):
    content = f"### Jan 1\nbefore{separator}after #t\nnext line\n"

    elements = parse_markdown(content)

    assert elements[1] == Paragraph(f"before{separator}after #t")
    assert len(elements) == 3
    assert render_markdown(elements) == content


def test_carriage_returns_are_read_as_newlines():
    assert parse_markdown("a\r\nb\rc\n") == [Paragraph("a"), Paragraph("b"), Paragraph("c")]



def test_render_without_trailing_newline():
    assert render_markdown([Paragraph("a"), Paragraph("b")], trailing_newline=False) == "a\nb"
    assert render_markdown([]) == ""


def test_render_bold_linked_paragraph():
    assert render_element(Paragraph("Jan 1", bold=True, link="#jan-1")) == "**[Jan 1](#jan-1)**"
    assert render_element(Paragraph("Jan 1", bold=True)) == "**Jan 1**"


def test_render_rejects_unknown_elements():
    with pytest.raises(TypeError):
        render_element(object())  # type: ignore[arg-type]


def test_markdown_document_registers_anchor_headings(tmp_path: Path):
    path = _write(
        tmp_path,
        "journal.md",
        """
        # Journal
        ### Jan 1
        ### Jan 2
        ### Jan 1
        """,
    )

    document = MarkdownDocument(path)

    assert document.document_id == str(path)
    assert len(document) == 4
    # The last heading registered under a name wins.
    assert document.resolve_anchor("Jan 1") == "#jan-1-1"
    assert document.resolve_anchor("Jan 2") == "#jan-2"
    assert document.resolve_anchor("Journal") is None


def test_markdown_document_flush_writes_file(tmp_path: Path):
    path = _write(tmp_path, "journal.md", "### Jan 1\n")
    document = MarkdownDocument(path)

    document.append(Paragraph("Tags", heading=1))
    document.flush()

    assert path.read_text(encoding="utf-8") == "### Jan 1\n# Tags\n"
    assert document.dirty is False
    assert document.modified_at == os.stat(path).st_mtime_ns


def test_markdown_document_keeps_missing_trailing_newline(tmp_path: Path):
    path = tmp_path / "journal.md"
    path.write_text("### Jan 1", encoding="utf-8")
    document = MarkdownDocument(path)

    document.append(Paragraph("note"))
    document.flush()

    assert path.read_text(encoding="utf-8") == "### Jan 1\nnote"


def test_markdown_document_flush_is_noop_when_clean(tmp_path: Path):
    path = _write(tmp_path, "journal.md", "### Jan 1\n")
    document = MarkdownDocument(path)
    os.utime(path, ns=(1_000_000_000, 1_000_000_000))
    document = MarkdownDocument(path)

    document.flush()

    assert os.stat(path).st_mtime_ns == 1_000_000_000


def test_markdown_document_refuses_to_overwrite_external_edits(tmp_path: Path):
    path = _write(tmp_path, "journal.md", "### Jan 1\n")
    document = MarkdownDocument(path)
    path.write_text("### Jan 1\nedited elsewhere\n", encoding="utf-8")

    document.append(Paragraph("Tags", heading=1))
    with pytest.raises(DocumentChangedError):
        document.flush()

    assert path.read_text(encoding="utf-8") == "### Jan 1\nedited elsewhere\n"


def test_markdown_document_rejects_invalid_utf8(tmp_path: Path):
    path = tmp_path / "journal.md"
    path.write_bytes(b"### Jan 1\n\xff\xfe\n")

    with pytest.raises(DocumentError, match="Invalid UTF-8"):
        MarkdownDocument(path)


def test_markdown_document_enforces_size_limit(tmp_path: Path):
    path = _write(tmp_path, "journal.md", "### Jan 1\n" * 10)

    with pytest.raises(DocumentError, match="maximum allowed size"):
        MarkdownDocument(path, max_file_size=5)


def test_markdown_document_missing_file(tmp_path: Path):
    with pytest.raises(DocumentError):
        MarkdownDocument(tmp_path / "missing.md")


def test_markdown_document_keeps_body_lines_with_unicode_breaks(tmp_path: Path):
    path = tmp_path / "journal.md"
    path.write_text("### Jan 1\nbefore\x0cafter #t\nnext line\n", encoding="utf-8")
    document = MarkdownDocument(path)

    assert len(document) == 3
    document.append(Paragraph("Tags", heading=1))
    document.flush()

    assert path.read_text(encoding="utf-8") == "### Jan 1\nbefore\x0cafter #t\nnext line\n# Tags\n"


def test_markdown_document_logs_lost_ownership(tmp_path: Path, monkeypatch):
    path = _write(tmp_path, "journal.md", "### Jan 1\n")
    document = MarkdownDocument(path)

    def _deny_chown(*_args):
        raise PermissionError("not allowed")

    monkeypatch.setattr(os, "chown", _deny_chown, raising=False)
    document.append(Paragraph("Tags", heading=1))
    with capture_logs() as logs:
        document.flush()

    assert path.read_text(encoding="utf-8") == "### Jan 1\n# Tags\n"
    warnings = [entry for entry in logs if entry["log_level"] == "warning"]
    assert [entry["event"] for entry in warnings] == ["ownership_not_preserved"]
    assert warnings[0]["path"] == str(path)
    assert "journal.md" in warnings[0]["detail"]
