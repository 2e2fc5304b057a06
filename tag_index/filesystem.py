"""Filesystem helpers for tag-index."""

from __future__ import annotations

import os
import stat
import tempfile
from collections.abc import Callable
from pathlib import Path

from .constants import DEFAULT_MAX_FILE_SIZE, MARKDOWN_EXTENSIONS
from .exceptions import DocumentChangedError

MAX_FILE_SIZE_ENV_VAR = "TAG_INDEX_MAX_FILE_SIZE"


def get_max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Resolve the maximum allowed file size.

    Args:
        default: Fallback value in bytes when the environment variable is unset.

    Returns:
        int: Maximum allowed file size in bytes.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        os.environ["TAG_INDEX_MAX_FILE_SIZE"] = "204800"
        limit = get_max_file_size(default=102400)
    """
    env_value = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if env_value is None:
        return default

    try:
        max_size = int(env_value)
    except ValueError as error:
        error_message = (
            f"Invalid value for {MAX_FILE_SIZE_ENV_VAR}: {env_value} (expected positive integer)"
        )
        raise ValueError(error_message) from error

    if max_size <= 0:
        error_message = f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {max_size}."
        raise ValueError(error_message)

    return max_size


def contains_symlink(path: Path) -> bool:
    """Check whether a path or any parent directory is a symlink.

    Args:
        path: Path to inspect.

    Returns:
        bool: True when a symlink is encountered, otherwise False.
    """
    for candidate in (path, *path.parents):
        try:
            if candidate.is_symlink():
                return True
        except OSError:
            continue
    return False


def normalize_filepath(raw_path: str, base_dir: Path) -> Path:
    """Resolve and validate a Markdown filepath under a base directory.

    Args:
        raw_path: User-supplied path to a Markdown file (absolute or relative).
        base_dir: Working directory that constrains allowed paths.

    Returns:
        Path: Absolute path to the Markdown file.

    Raises:
        ValueError: If the path does not exist, is outside `base_dir`, uses an
            unsupported extension, or traverses a symlink.

    Examples:
        normalize_filepath("journal.md", Path.cwd())
    """
    path = Path(raw_path).expanduser()

    if contains_symlink(path):
        error_message = f"Symlinks are not supported for security reasons: {path}"
        raise ValueError(error_message)

    try:
        resolved = path.resolve(strict=True)
    except FileNotFoundError as error:
        error_message = f"{path} does not exist."
        raise ValueError(error_message) from error
    except OSError as error:
        error_message = f"Error resolving {path}: {error}"
        raise ValueError(error_message) from error

    if not resolved.is_file():
        error_message = f"{resolved} is not a regular file."
        raise ValueError(error_message)

    try:
        resolved.relative_to(base_dir)
    except ValueError as error:
        error_message = f"{resolved} is outside of the working directory {base_dir}."
        raise ValueError(error_message) from error

    if resolved.suffix.lower() not in MARKDOWN_EXTENSIONS:
        error_message = f"{resolved} is not a Markdown file.\n"
        error_message += f"Supported extensions are: {', '.join(MARKDOWN_EXTENSIONS)}"
        raise ValueError(error_message)

    return resolved


def stat_regular_file(filepath: Path, max_size: int | None = None) -> os.stat_result:
    """Stat a file without following symlinks, refusing anything but a regular file.

    Args:
        filepath: Path to the file.
        max_size: When given, refuse files larger than this many bytes.

    Returns:
        os.stat_result: Metadata used later to detect concurrent edits.

    Raises:
        IOError: If the path is inaccessible, a symlink, not a regular file,
            or larger than `max_size`.
    """
    try:
        stat_result = os.stat(filepath, follow_symlinks=False)
    except OSError as error:
        raise IOError(f"Error accessing {filepath}: {error}") from error

    if stat.S_ISLNK(stat_result.st_mode):
        raise IOError(f"Symlinks are not supported: {filepath}.")
    if not stat.S_ISREG(stat_result.st_mode):
        raise IOError(f"{filepath} is not a regular file.")
    if max_size is not None and stat_result.st_size > max_size:
        raise IOError(f"{filepath} exceeds the maximum allowed size of {max_size} bytes.")

    return stat_result


def _fingerprint(stat_result: os.stat_result) -> tuple:
    return (
        getattr(stat_result, "st_ino", None),
        getattr(stat_result, "st_dev", None),
        stat_result.st_size,
        stat_result.st_mtime_ns,
    )


def ensure_file_unchanged(expected_stat: os.stat_result, filepath: Path) -> os.stat_result:
    """Check that a file still matches an earlier snapshot.

    Args:
        expected_stat: Stat captured when the file was last read or written.
        filepath: Path to the file being monitored.

    Returns:
        os.stat_result: The current stat of the file.

    Raises:
        DocumentChangedError: If inode, device, size, or modification time differ.
        IOError: If the file can no longer be inspected.
    """
    current_stat = stat_regular_file(filepath)
    if _fingerprint(expected_stat) != _fingerprint(current_stat):
        raise DocumentChangedError(filepath)
    return current_stat


def write_atomic(
    filepath: Path,
    content: str,
    expected_stat: os.stat_result | None = None,
    warn: Callable[[str], None] | None = None,
):
    """Replace a file's content atomically.

    The content is written to a temporary file in the same directory, synced,
    and moved over `filepath`. When `expected_stat` is given, permissions and
    ownership are carried over and the write is refused if the file changed
    since that snapshot.

    Args:
        filepath: File to write.
        content: Complete new content.
        expected_stat: Stat of the file as last seen, or None for a new file.
        warn: Optional callback for non-fatal warnings (e.g., ownership preservation).

    Raises:
        DocumentChangedError: If the file changed after `expected_stat` was taken.
        IOError: If the file cannot be written.
    """
    if expected_stat is not None:
        ensure_file_unchanged(expected_stat, filepath)

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", encoding="UTF-8", delete=False, dir=filepath.parent
        ) as tmp_file:
            temp_path = Path(tmp_file.name)
            tmp_file.write(content)

            tmp_file.flush()
            os.fsync(tmp_file.fileno())

            if expected_stat is not None:
                os.chmod(tmp_file.name, stat.S_IMODE(expected_stat.st_mode))
                uid = getattr(expected_stat, "st_uid", None)
                gid = getattr(expected_stat, "st_gid", None)
                # Ownership can only be kept with elevated privileges.
                if uid is not None and gid is not None and hasattr(os, "chown"):
                    try:
                        os.chown(tmp_file.name, uid, gid)
                    except PermissionError:
                        if warn is not None:
                            warn(f"could not preserve ownership of {filepath.name}")

        os.replace(temp_path, filepath)
    finally:
        if temp_path is not None:
            try:
                Path(temp_path).unlink(missing_ok=True)
            except OSError:
                pass
