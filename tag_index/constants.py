"""Constants used across the tag-index package."""

from __future__ import annotations

import re

from .config import IndexConfig

DEFAULT_CONFIG = IndexConfig()

# Tag syntax
# A tag is "#" followed by any run of non-whitespace characters.
TAG_PATTERN = re.compile(r"#\S+")
# Tag matches plus the whitespace in front of them, removed when rendering.
TAG_STRIP_PATTERN = re.compile(r"\s*#\S+")
SPAN_SEPARATOR = "_"
SPAN_SUFFIX_PATTERN = re.compile(r"\+(\d+)")

# Markdown patterns
HEADING_PATTERN = re.compile(r"^(#{1,6}) (.*)$")
CODE_FENCE_PATTERN = re.compile(r"^(?P<indent>\s{0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
CLOSING_FENCE_MAX_INDENT = 3
LIST_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?P<marker>[-*+]|\d{1,9}[.)]) (?P<text>.*)$")
IMAGE_PATTERN = re.compile(r'^!\[(?P<alt>[^\]]*)\]\((?P<source>[^\s)]+)\)$')
HTML_IMAGE_PATTERN = re.compile(
    r'^<img src="(?P<source>[^"]*)" alt="(?P<alt>[^"]*)"'
    r'(?: width="(?P<width>\d+)")?(?: height="(?P<height>\d+)")?>$'
)
MARKDOWN_EXTENSIONS = (".md", ".markdown")

# Truncation
TRUNCATION_SUFFIX = "...[{omitted} more characters...]"

# Checkpoint format
CHECKPOINT_VERSION = 1

# Limits and defaults
DEFAULT_MAX_FILE_SIZE = DEFAULT_CONFIG.max_file_size
