from __future__ import annotations

import itertools
import re

from hypothesis import given, settings
from hypothesis import strategies as st

from tag_index.checkpoint import MemoryCheckpointStore
from tag_index.config import IndexConfig
from tag_index.constants import TRUNCATION_SUFFIX
from tag_index.document import Document
from tag_index.engine import run_indexing
from tag_index.markdown import parse_markdown, render_markdown
from tag_index.scanner import find_tags
from tag_index.text import strip_tags, truncate

SUFFIX_PATTERN = re.compile(re.escape(TRUNCATION_SUFFIX).replace(r"\{omitted\}", r"(\d+)") + "$")

LINES = [
    "### Jan 1",
    "### Jan 2",
    "### Jan 1",
    "Met with Bob #people",
    "Big plan #goals_+2",
    "Bad suffix #todo_+x",
    "two #people #shop",
    "- milk #shop",
    "  1. nested step",
    "![sunset](sunset.png)",
    "plain words in a longer sentence",
    "",
    "# Tags",
    "## #people",
    "**Jan 1**",
    "# Other",
]

journals = st.lists(st.sampled_from(LINES), max_size=25).map(lambda lines: "\n".join(lines) + "\n")


def _document(markdown: str, clock) -> Document:
    return Document("journal", parse_markdown(markdown), clock=clock)


def _run_to_completion(document, store, config, clock=None, limit=2000):
    kwargs = {} if clock is None else {"clock": clock}
    for _ in range(limit):
        outcome = run_indexing(document, store, config, **kwargs)
        if outcome.completed:
            return outcome
    raise AssertionError("indexing did not complete")


@given(st.text(), st.integers(min_value=1, max_value=40))
def test_truncate_keeps_a_prefix_and_counts_the_rest(text: str, max_length: int):
    result = truncate(text, max_length)

    if result == text:
        return

    match = SUFFIX_PATTERN.search(result)
    assert match is not None
    visible = result[: match.start()]
    assert visible
    assert len(visible) <= max_length
    assert text.startswith(visible)
    assert int(match.group(1)) == len(text) - len(visible)


@given(st.text(max_size=40), st.integers(min_value=40, max_value=80))
def test_truncate_leaves_short_text_alone(text: str, max_length: int):
    assert truncate(text, max_length) == text


@given(st.text())
def test_strip_tags_removes_every_tag(text: str):
    assert find_tags(strip_tags(text)) == []


@settings(max_examples=60, deadline=None)
@given(journals)
def test_split_runs_match_a_single_run(markdown: str):
    clock = itertools.count(1).__next__
    single = _document(markdown, clock)
    _run_to_completion(single, MemoryCheckpointStore(clock), IndexConfig())

    split = _document(markdown, clock)
    store = MemoryCheckpointStore(clock)
    config = IndexConfig(gather_budget=0, write_budget=0, flush_every=1)
    _run_to_completion(split, store, config, clock=itertools.count(0.0, 1.0).__next__)

    assert render_markdown(split.elements) == render_markdown(single.elements)
    assert "journal" not in store


@settings(max_examples=60, deadline=None)
@given(journals)
def test_indexing_is_idempotent(markdown: str):
    clock = itertools.count(1).__next__
    document = _document(markdown, clock)
    store = MemoryCheckpointStore(clock)

    _run_to_completion(document, store, IndexConfig())
    first = render_markdown(document.elements)
    _run_to_completion(document, store, IndexConfig())

    assert render_markdown(document.elements) == first


@settings(max_examples=60, deadline=None)
@given(journals)
def test_content_before_the_index_is_untouched(markdown: str):
    clock = itertools.count(1).__next__
    document = _document(markdown, clock)
    lines = markdown.splitlines()
    body = lines[: lines.index("# Tags")] if "# Tags" in lines else lines

    _run_to_completion(document, MemoryCheckpointStore(clock), IndexConfig())

    rendered = render_markdown(document.elements).splitlines()
    assert rendered[: len(body)] == body
    assert rendered[len(body)] == "# Tags"
