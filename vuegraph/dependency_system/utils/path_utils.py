# utils/path_utils.py

"""
Import specifier resolution against an in-memory project snapshot.

Everything here is string algebra over POSIX-style file keys; the real
filesystem is never consulted.
"""

import logging
import posixpath
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PATH_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("~~/", "src/"),
    ("~/", "src/"),
    ("@/", "src/"),
)
DEFAULT_RESOLVE_SUFFIXES: Tuple[str, ...] = ("", ".ts", ".vue", ".js", "/index.ts")


def normalize_path(path: str) -> str:
    """Normalizes separators to forward slashes and strips a leading ``./``."""
    if not path:
        return ""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def get_file_name(file_path: str) -> str:
    return posixpath.basename(normalize_path(file_path))


def get_file_stem(file_path: str) -> str:
    """File name without its last extension (``src/App.vue`` -> ``App``)."""
    name = get_file_name(file_path)
    stem, _ext = posixpath.splitext(name)
    return stem or name


def get_extension(file_path: str) -> str:
    return posixpath.splitext(get_file_name(file_path))[1].lower()


def _apply_segments(base_segments: List[str], specifier: str) -> List[str]:
    segments = list(base_segments)
    for part in specifier.split("/"):
        if part == "..":
            if segments:
                segments.pop()
        elif part in (".", ""):
            continue
        else:
            segments.append(part)
    return segments


def resolve_path(
    current_file: str,
    specifier: str,
    aliases: Optional[Iterable[Tuple[str, str]]] = None,
) -> str:
    """
    Resolves an import specifier written in ``current_file`` to a logical project path.

    Alias prefixes are substituted first, then relative specifiers are applied
    segment by segment against the current file's directory. Anything else
    (bare package names, absolute paths) is returned unchanged.
    """
    specifier = specifier.replace("\\", "/")
    for prefix, target in aliases if aliases is not None else DEFAULT_PATH_ALIASES:
        if specifier.startswith(prefix):
            return target + specifier[len(prefix):]

    if specifier.startswith("."):
        directory = posixpath.dirname(normalize_path(current_file))
        base_segments = [s for s in directory.split("/") if s]
        return "/".join(_apply_segments(base_segments, specifier))

    return specifier


def find_file_in_project(
    files: Mapping[str, str],
    resolved: str,
    resolve_suffixes: Sequence[str] = DEFAULT_RESOLVE_SUFFIXES,
) -> Optional[str]:
    """Returns the first project key matching ``resolved`` plus one of the resolve suffixes."""
    if not resolved:
        return None
    for suffix in resolve_suffixes:
        candidate = f"{resolved}{suffix}"
        if candidate in files:
            return candidate
    logger.debug(f"No project file found for '{resolved}'")
    return None


def resolve_import(
    files: Mapping[str, str],
    current_file: str,
    specifier: str,
    aliases: Optional[Iterable[Tuple[str, str]]] = None,
    resolve_suffixes: Sequence[str] = DEFAULT_RESOLVE_SUFFIXES,
) -> Optional[str]:
    """Resolves and looks up in one step; None for external or missing modules."""
    resolved = resolve_path(current_file, specifier, aliases)
    return find_file_in_project(files, resolved, resolve_suffixes)
