from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import DocumentReadError, RootNotFoundError
from .schema import Document, DocumentError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md", ".mdc", ".markdown", ".txt")

# Directories that never hold rule documents worth linting.
IGNORED_DIR_NAMES = frozenset(
    {
        ".git",
        "node_modules",
        ".venv",
        "venv",
        "__pycache__",
        ".idea",
        ".vscode",
        "dist",
        "build",
        ".next",
    }
)

_FRONTMATTER_DELIMITER = "---"


def slugify(text: str) -> str:
    """Lowercase `text` and collapse non-alphanumeric runs into single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return slug.strip("-")


def _parse_scalar(raw: str) -> object:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.lstrip("-").isdigit():
        return int(value)
    return value


def split_frontmatter(text: str) -> tuple[dict[str, object], str, int]:
    """Separate a leading `---` block of `key: value` lines from the body.

    Returns:
        Tuple of `(metadata, body, consumed_line_count)`. Text without a closed
        front-matter block is returned untouched with empty metadata.
    """
    lines = text.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return {}, text, 0

    for end in range(1, len(lines)):
        if lines[end].strip() == _FRONTMATTER_DELIMITER:
            break
    else:
        return {}, text, 0

    metadata: dict[str, object] = {}
    for line in lines[1:end]:
        if not line.strip() or line.lstrip().startswith("#") or ":" not in line:
            continue
        key, _, raw_value = line.partition(":")
        metadata[key.strip()] = _parse_scalar(raw_value)

    consumed = end + 1
    return metadata, "\n".join(lines[consumed:]), consumed


def detect_topic(relative_path: str, metadata: dict[str, object]) -> str:
    """Pick a document topic from front matter, else from the file stem."""
    declared = metadata.get("topic")
    if isinstance(declared, str) and declared.strip():
        return slugify(declared)
    return slugify(Path(relative_path).stem) or "untitled"


def read_document(path: str | Path, root: str | Path, index: int = 0) -> Document:
    """Read one rule document from disk.

    Args:
        path: File to read.
        root: Lint root; the document path is stored relative to it.
        index: Position of the document in load order.

    Returns:
        The loaded document with front matter split off.

    Raises:
        DocumentReadError: The file cannot be read or is not valid UTF-8.
    """
    file_path = Path(path)
    try:
        relative_path = file_path.relative_to(root).as_posix()
    except ValueError:
        relative_path = file_path.as_posix()

    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        raise DocumentReadError(relative_path, f"cannot read file ({exc.strerror or exc})") from exc
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DocumentReadError(relative_path, f"not valid UTF-8 text ({exc.reason} at byte {exc.start})") from exc

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    metadata, body, consumed = split_frontmatter(text)
    return Document(
        path=relative_path,
        text=body,
        topic=detect_topic(relative_path, metadata),
        index=index,
        metadata=metadata,
        body_offset=consumed,
    )


def _candidate_files(
    root: Path,
    extensions: frozenset[str],
    ignored_dirs: frozenset[str],
    errors: list[DocumentError] | None = None,
) -> list[Path]:
    def _on_walk_error(exc: OSError) -> None:
        try:
            relative_dir = Path(exc.filename).relative_to(root).as_posix()
        except (TypeError, ValueError):
            relative_dir = str(exc.filename)
        message = f"cannot list directory ({exc.strerror or exc})"
        logger.warning("Skipping unreadable directory %s: %s", relative_dir, message)
        if errors is not None:
            errors.append(DocumentError(path=relative_dir, kind="io", message=message))

    candidates: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_walk_error):
        dirnames[:] = [name for name in dirnames if name not in ignored_dirs]
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.suffix.lower() in extensions and path.is_file():
                candidates.append(path)
    return sorted(candidates, key=lambda candidate: candidate.relative_to(root).as_posix())


def iter_documents(
    root: str | Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    *,
    ignored_dirs: Iterable[str] = IGNORED_DIR_NAMES,
    errors: list[DocumentError] | None = None,
) -> Iterator[Document]:
    """Lazily load every rule document under `root` in sorted path order.

    The root is validated when this function is called, before iteration
    starts. Unreadable files are logged, recorded in `errors` when given, and
    skipped. Subdirectories that cannot be listed are handled the same way.

    Raises:
        RootNotFoundError: `root` is missing, not a directory, or unreadable.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise RootNotFoundError(f"lint root does not exist or is not a directory: {root_path}")

    normalized = frozenset(
        extension.lower() if extension.startswith(".") else f".{extension.lower()}" for extension in extensions
    )
    try:
        with os.scandir(root_path):
            pass
    except OSError as exc:
        raise RootNotFoundError(f"cannot list lint root {root_path}: {exc.strerror or exc}") from exc
    files = _candidate_files(root_path, normalized, frozenset(ignored_dirs), errors)

    def _generate() -> Iterator[Document]:
        index = 0
        for file_path in files:
            try:
                document = read_document(file_path, root_path, index=index)
            except DocumentReadError as exc:
                logger.warning("Skipping unreadable document %s: %s", exc.path, exc.message)
                if errors is not None:
                    errors.append(DocumentError(path=exc.path, kind="io", message=exc.message))
                continue
            index += 1
            yield document

    return _generate()
