"""
.gitignore heuristics for exported secret files.

Writing plaintext secrets into a git working tree is the easiest way to leak
them, so exports check whether the target file is covered by the repository's
top-level ``.gitignore`` and can add it.

Only the repository-root ``.gitignore`` is consulted; nested ignore files,
``.git/info/exclude`` and global excludes are not.
"""

import logging
from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"


def find_repo_root(path: Union[str, Path]) -> Optional[Path]:
    """Nearest directory at or above path that contains ``.git``."""
    current = Path(path).expanduser().resolve()
    if not current.is_dir():
        current = current.parent
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def _read_patterns(gitignore: Path) -> List[str]:
    try:
        return gitignore.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return []


def _pattern_matches(pattern: str, parts: Tuple[str, ...]) -> bool:
    dir_only = pattern.endswith("/")
    pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/") or "/" in pattern
    pattern = pattern.lstrip("/")
    if not pattern:
        return False

    # A match on a directory ignores everything below it; dir-only patterns
    # never match the file itself.
    last = len(parts) - 1 if dir_only else len(parts)
    if anchored:
        return any(fnmatchcase("/".join(parts[:i + 1]), pattern) for i in range(last))
    return any(fnmatchcase(parts[i], pattern) for i in range(last))


def is_ignored(path: Union[str, Path]) -> bool:
    """Whether the repository-root .gitignore covers path (False outside a repo)."""
    target = Path(path).expanduser().resolve()
    root = find_repo_root(target.parent)
    if root is None:
        return False

    parts = target.relative_to(root).parts
    ignored = False
    for raw in _read_patterns(root / GITIGNORE):
        line = raw.rstrip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        if line.startswith("\\"):
            line = line[1:]
        if _pattern_matches(line, parts):
            ignored = not negate
    return ignored


def ensure_ignored(path: Union[str, Path]) -> bool:
    """
    Append path to the repository-root .gitignore unless already covered.

    Returns:
        True if .gitignore was modified
    """
    target = Path(path).expanduser().resolve()
    root = find_repo_root(target.parent)
    if root is None or is_ignored(target):
        return False

    entry = "/" + target.relative_to(root).as_posix()
    gitignore = root / GITIGNORE
    existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with open(gitignore, "a", encoding="utf-8") as f:
        f.write(f"{prefix}{entry}\n")

    logger.info("Added %s to %s", entry, gitignore)
    return True
