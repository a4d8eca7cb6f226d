"""Path resolution and the cd containment policy"""

import os
import stat

from .errors import InvalidInput


def resolve(base: str, path: str) -> str:
    """
    Resolve a relative or absolute path to an absolute path

    Args:
        base: Absolute directory that relative paths are joined to
        path: User supplied path (may start with ~)

    Returns:
        Normalized absolute path
    """
    if not path:
        return os.path.normpath(base)

    path = os.path.expanduser(path)

    # Already absolute
    if os.path.isabs(path):
        return os.path.normpath(path)

    # Relative path - join with base and collapse . and ..
    return os.path.normpath(os.path.join(base, path))


def is_root(path: str) -> bool:
    """True when path is its own filesystem root"""
    path = os.path.normpath(path)
    return os.path.dirname(path) == path


def parent_of(path: str) -> str:
    """Parent directory of path; the root is its own parent"""
    return os.path.dirname(os.path.normpath(path))


def is_within(path: str, ancestor: str) -> bool:
    """True when path is ancestor itself or lies below it (symlinks resolved)"""
    real_path = os.path.normcase(os.path.realpath(path))
    real_ancestor = os.path.normcase(os.path.realpath(ancestor))
    try:
        return os.path.commonpath([real_path, real_ancestor]) == real_ancestor
    except ValueError:
        # Different drives on Windows
        return False


def check_cd_target(target: str, home: str) -> None:
    """
    Validate a cd target against the containment policy

    The target must be an existing directory that is the home directory,
    a descendant of it, or the filesystem root.

    Raises:
        InvalidInput: if the target cannot be entered
    """
    try:
        info = os.stat(target)
    except OSError as e:
        raise InvalidInput(f"{target}: {e.strerror or e}") from e
    if not stat.S_ISDIR(info.st_mode):
        raise InvalidInput(f"not a directory: {target}")

    if is_root(target):
        return
    if not is_within(target, home):
        raise InvalidInput(f"outside of home directory: {target}")
