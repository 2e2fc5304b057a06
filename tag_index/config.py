"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import tomllib


@dataclass
class IndexConfig:
    """Configuration for building a tag index section.

    Attributes:
        index_heading: Text of the heading that starts the machine-owned index.
        index_level: Heading level of the index heading.
        anchor_level: Heading level whose paragraphs act as anchors ("dates").
        tag_level: Heading level used for each tag inside the index.
        max_text_length: Longest captured text copied into the index before
            truncation kicks in.
        gather_budget: Seconds an invocation may spend gathering tags before
            it checkpoints and returns.
        write_budget: Seconds, measured from the start of the invocation,
            after which the writer checkpoints and returns.
        flush_every: Number of appended elements after which the document is
            flushed.
        checkpoint_dir: Directory holding checkpoints, relative to the
            document's directory unless absolute.
        max_file_size: Maximum file size in bytes that will be processed.

    Examples:
        IndexConfig(index_heading="Index", gather_budget=60.0)
    """

    # Document structure
    index_heading: str = "Tags"
    index_level: int = 1
    anchor_level: int = 3
    tag_level: int = 2

    # Formatting
    max_text_length: int = 500

    # Time budgets
    gather_budget: float = 240.0
    write_budget: float = 300.0

    # Writing
    flush_every: int = 50

    # Storage and limits
    checkpoint_dir: str = ".tag-index"
    max_file_size: int = 10 * 1024 * 1024


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`flush_every` must be a positive integer")
    """


def load_config(search_path: Path) -> IndexConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.tag-index]`` table from `pyproject.toml` and the
    ``[tag-index]`` or ``[tool.tag-index]`` table from `.tag-index.toml` when
    present. Returns default values when no configuration is found. TOML files
    that cannot be read or decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        IndexConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If a table is present but is not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("journal"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "tag-index")]
        )
        if pyproject_config is not None:
            return pyproject_config

        dotfile_config = _load_from_file(
            current / ".tag-index.toml",
            table_paths=[("tag-index",), ("tool", "tag-index")],
        )
        if dotfile_config is not None:
            return dotfile_config

        parent = current.parent
        if parent == current:
            break
        current = parent

    return IndexConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> IndexConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> IndexConfig:
    table_display = ".".join(table_path)

    if raw_config is None:
        return IndexConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    # TOML keys are conventionally kebab-case; accept both spellings.
    normalized = {key.replace("-", "_"): value for key, value in raw_config.items()}

    try:
        return IndexConfig(**normalized)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def validate_config(config: IndexConfig) -> None:
    """Validate an `IndexConfig` instance.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigError: If heading levels are out of range or collide, the index
            heading is empty or blank, or numeric limits are invalid.

    Examples:
        validate_config(IndexConfig(tag_level=2))
    """
    _ensure_integers(
        {
            "index_level": config.index_level,
            "anchor_level": config.anchor_level,
            "tag_level": config.tag_level,
            "max_text_length": config.max_text_length,
            "flush_every": config.flush_every,
            "max_file_size": config.max_file_size,
        }
    )

    for key in ("index_level", "anchor_level", "tag_level"):
        level = getattr(config, key)
        if not 1 <= level <= 6:
            raise ConfigError(f"`{key}` must be between 1 and 6")
    if config.anchor_level == config.index_level:
        raise ConfigError("`anchor_level` must differ from `index_level`")
    if config.tag_level == config.anchor_level:
        raise ConfigError("`tag_level` must differ from `anchor_level`")

    if not isinstance(config.index_heading, str) or not config.index_heading.strip():
        raise ConfigError("`index_heading` must not be empty")
    if not isinstance(config.checkpoint_dir, str) or not config.checkpoint_dir:
        raise ConfigError("`checkpoint_dir` must not be empty")

    _ensure_positive(
        {
            "max_text_length": config.max_text_length,
            "flush_every": config.flush_every,
            "max_file_size": config.max_file_size,
        }
    )

    for key in ("gather_budget", "write_budget"):
        value = getattr(config, key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"`{key}` must be a number of seconds")
        if value < 0:
            raise ConfigError(f"`{key}` must not be negative")


def apply_overrides(config: IndexConfig, **overrides: object) -> IndexConfig:
    """Apply override values to an `IndexConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        IndexConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `IndexConfig`.

    Examples:
        updated = apply_overrides(config, index_heading="Index", flush_every=10)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> IndexConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        IndexConfig: Validated configuration ready for indexing.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), index_heading="Index")
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
