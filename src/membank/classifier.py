"""File classification - decides how each memory-bank file is updated."""
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Generator, NamedTuple
from .models import FileCategory
from .config import USER_DATA_FILES, SYSTEM_FILES, SYSTEM_DIRS, SMART_DIRS


class Rule(NamedTuple):
    """A single classification rule.

    ``names`` match a file at the memory-bank root exactly; ``prefixes`` match
    any path below the named directory.
    """

    category: FileCategory
    names: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()


# Evaluated in order; first match wins.
RULES: tuple[Rule, ...] = (
    Rule(FileCategory.NEVER_UPDATE, names=tuple(USER_DATA_FILES)),
    Rule(FileCategory.ALWAYS_UPDATE, names=tuple(SYSTEM_FILES), prefixes=tuple(SYSTEM_DIRS)),
    Rule(FileCategory.SMART_UPDATE, prefixes=tuple(SMART_DIRS)),
)

MANAGED_CATEGORIES = (FileCategory.ALWAYS_UPDATE, FileCategory.SMART_UPDATE)


def normalize_path(path: str | Path) -> str:
    """Normalize a relative path to forward slashes without a leading './'."""
    text = str(path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text.strip("/")


def is_safe_path(path: str | Path) -> bool:
    """False for absolute paths and paths with a '..' segment."""
    text = str(path).replace("\\", "/")
    if text.startswith("/") or PureWindowsPath(text).drive:
        return False
    return ".." not in text.split("/")


def _under(path: str, prefix: str) -> bool:
    return path.startswith(prefix.rstrip("/") + "/")


def classify(path: str | Path) -> FileCategory:
    """Classify a path relative to the memory-bank root.

    Paths matching no rule are user-added files and are left untouched,
    so they classify as NEVER_UPDATE, as do paths that could leave the
    memory-bank root.
    """
    if not is_safe_path(path):
        return FileCategory.NEVER_UPDATE
    rel = normalize_path(path)

    for rule in RULES:
        if rel in rule.names:
            return rule.category
        if any(_under(rel, prefix) for prefix in rule.prefixes):
            return rule.category

    return FileCategory.NEVER_UPDATE


def is_managed(path: str | Path) -> bool:
    """True for files an update may write (system and smart-update files)."""
    return classify(path) in MANAGED_CATEGORIES


def _is_hidden(rel: PurePosixPath) -> bool:
    return any(part.startswith(".") for part in rel.parts)


def iter_files(root: Path) -> Generator[tuple[str, FileCategory], None, None]:
    """Yield (relative path, category) for every file under root.

    Dot-prefixed files and directories (.membank, .git, ...) are skipped.
    """
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel = PurePosixPath(path.relative_to(root).as_posix())
        if _is_hidden(rel):
            continue
        yield str(rel), classify(str(rel))


def iter_managed_files(root: Path) -> Generator[tuple[str, FileCategory], None, None]:
    """Yield (relative path, category) for system and smart-update files only."""
    for rel, category in iter_files(root):
        if category in MANAGED_CATEGORIES:
            yield rel, category


def classify_tree(root: Path) -> dict[FileCategory, list[str]]:
    """Group every file under root by category."""
    grouped: dict[FileCategory, list[str]] = {category: [] for category in FileCategory}
    for rel, category in iter_files(root):
        grouped[category].append(rel)
    return grouped
