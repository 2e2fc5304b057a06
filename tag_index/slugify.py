"""GitHub-style heading slugs, used to turn anchors into in-document links."""

from __future__ import annotations

import re
import string
import unicodedata

# Hyphens and underscores survive; every other ASCII punctuation mark is dropped.
_PUNCTUATION = str.maketrans("", "", string.punctuation.replace("-", "").replace("_", ""))


def heading_slug(title: str) -> str:
    """Turn a heading text into the slug a Markdown renderer links it by.

    Unicode letters are kept (NFKC-normalized), text is casefolded, and
    whitespace runs become single hyphens.

    Returns:
        str: The slug, or ``"untitled"`` when nothing is left.

    Examples:
        heading_slug("Jan 1")  # "jan-1"
        heading_slug("Café & Co.")  # "café-co"
        heading_slug("   ")  # "untitled"
    """
    slug = unicodedata.normalize("NFKC", title).casefold().translate(_PUNCTUATION)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug or "untitled"


class SlugAssigner:
    """Hands out unique slugs to titles fed in document order.

    Duplicates follow GitHub's numbering, including cascading collisions (for
    example, ``"Header"``, ``"Header"``, ``"Header 1"`` yields ``header``,
    ``header-1``, ``header-1-1``). A slug never changes once assigned, so
    titles can be added one at a time as a document grows.
    """

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}  # next counter for each base slug
        self._used: set[str] = set()

    def add(self, title: str) -> str:
        base_slug = heading_slug(title)

        # First occurrence gets no suffix, then -1, -2, etc.
        count = self._counters.get(base_slug, 0)
        link = base_slug if count == 0 else f"{base_slug}-{count}"

        # A numbered title's base slug may already be taken by an earlier duplicate.
        while link in self._used:
            count += 1
            link = f"{base_slug}-{count}"

        self._counters[base_slug] = count + 1
        self._used.add(link)
        return link


def assign_slugs(titles: list[str]) -> list[str]:
    """Assign unique slugs to titles in document order.

    Examples:
        assign_slugs(["Jan 1", "Jan 1"])  # ["jan-1", "jan-1-1"]
    """
    assigner = SlugAssigner()
    return [assigner.add(title) for title in titles]

