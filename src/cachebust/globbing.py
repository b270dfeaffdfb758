"""Glob selection of source files.

Patterns use the ``pathlib`` dialect: ``*`` and ``?`` stay inside one path
segment, ``**`` spans any number of segments, and a leading ``!`` negates a
pattern. Patterns are matched relative to a literal root directory, so glob
characters inside the base path itself are never interpreted. Results come
back in a stable sorted order because folder fingerprints depend on
enumeration order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath

GLOB_CHARS = frozenset("*?[")


def select_files(patterns: Sequence[str], base_dir: Path) -> list[Path]:
    """Expand ``patterns`` against ``base_dir`` into existing files.

    Positive patterns contribute their matches in declaration order; any file
    matched by a ``!`` pattern is dropped.
    """
    excluded: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded.update(_expand(pattern[1:], base_dir))

    selected: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            continue
        for path in _expand(pattern, base_dir):
            if path in seen or path in excluded:
                continue
            seen.add(path)
            selected.append(path)
    return selected


def select_folder_files(
    folder: Path,
    include: Sequence[str],
    exclude: Sequence[str],
) -> list[Path]:
    """Files of ``folder`` filtered by include/exclude sets.

    Include and exclude patterns match at any depth below ``folder``. With no
    include patterns only the folder's own ``*.*`` files are taken.
    """
    if include:
        candidates = glob_files(folder, [f"**/{pattern}" for pattern in include])
    else:
        candidates = glob_files(folder, ["*.*"])
    if exclude:
        excluded = set(glob_files(folder, [f"**/{pattern}" for pattern in exclude]))
        candidates = [path for path in candidates if path not in excluded]
    return candidates


def glob_files(root: Path, patterns: Iterable[str]) -> list[Path]:
    """Files under ``root`` matching any of the relative ``patterns``, sorted."""
    if not root.is_dir():
        return []
    found = {path for pattern in patterns for path in root.glob(pattern) if path.is_file()}
    return sorted(found, key=lambda path: path.relative_to(root).as_posix())


def _expand(pattern: str, base_dir: Path) -> list[Path]:
    root, relative = _split(pattern, base_dir)
    literal = root / relative if relative else root
    if literal.is_file():
        return [literal]
    if not GLOB_CHARS.intersection(relative):
        return []
    return glob_files(root, [relative])


def _split(pattern: str, base_dir: Path) -> tuple[Path, str]:
    """Literal root directory plus the remainder of ``pattern`` relative to it."""
    if not PurePosixPath(pattern).is_absolute():
        return base_dir, pattern
    prefix = base_dir.as_posix().rstrip("/") + "/"
    if pattern.startswith(prefix):
        return base_dir, pattern[len(prefix) :]

    # Outside the base: the root stops at the first segment with glob syntax.
    parts = PurePosixPath(pattern).parts
    for index, part in enumerate(parts):
        if GLOB_CHARS.intersection(part):
            return Path(*parts[:index]), "/".join(parts[index:])
    return Path(pattern), ""
