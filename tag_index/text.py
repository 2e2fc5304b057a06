"""Text helpers for rendering captured content."""

from __future__ import annotations

from .constants import TAG_STRIP_PATTERN, TRUNCATION_SUFFIX


def truncate(text: str, max_length: int) -> str:
    """Shorten text at a word boundary and note how much was dropped.

    Text that fits is returned unchanged. Longer text is cut at the last
    whitespace at or before `max_length` and followed by a marker counting the
    omitted characters. When no whitespace precedes the cut, the text is
    returned unmodified rather than reduced to an empty fragment.

    Args:
        text: Text to shorten.
        max_length: Maximum number of visible characters to keep.

    Returns:
        str: The original text, or its visible prefix plus an omission marker.

    Examples:
        truncate("short", 10)  # "short"
        truncate("alpha beta gamma", 12)  # "alpha beta...[6 more characters...]"
        truncate("unbreakable", 4)  # "unbreakable"
    """
    if len(text) <= max_length:
        return text

    # A whitespace character sitting right at the cut is a valid boundary too.
    window = text[: max_length + 1]
    boundary = max(window.rfind(" "), window.rfind("\t"), window.rfind("\n"))
    if boundary <= 0:
        return text

    visible = text[:boundary].rstrip()
    if not visible:
        return text

    omitted = len(text) - len(visible)
    return visible + TRUNCATION_SUFFIX.format(omitted=omitted)


def strip_tags(text: str) -> str:
    """Remove tag markers from text.

    Args:
        text: Text that may contain ``#tag`` markers.

    Returns:
        str: Text without tags or the whitespace that preceded them.

    Examples:
        strip_tags("Met with Bob #people")  # "Met with Bob"
        strip_tags("#goals_+1 Big plan")  # "Big plan"
    """
    return TAG_STRIP_PATTERN.sub("", text).strip()
