from __future__ import annotations

import logging
import re

from .errors import ParseError
from .schema import CodeBlock, Document, Section

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
FENCE_OPEN_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*([^`]*?)[ \t]*$")


def _is_fence_close(line: str, fence: str) -> bool:
    stripped = line.strip()
    return (
        len(line) - len(line.lstrip(" ")) <= 3
        and len(stripped) >= len(fence)
        and set(stripped) == {fence[0]}
    )


def parse_sections(document: Document) -> list[Section]:
    """Split a document into ordered, non-overlapping headed sections.

    Heading-like lines inside fenced code blocks are kept as code and never
    open a section. Text before the first heading becomes a depth-0 section
    only when it is not blank.

    Args:
        document: Loaded rule document.

    Returns:
        Sections in source order.

    Raises:
        ParseError: A fenced code block is never closed.
    """
    sections: list[Section] = []
    ancestors: list[tuple[int, str]] = []
    current = Section(doc_path=document.path, heading="", depth=0, line=document.body_offset + 1)

    fence: str | None = None
    fence_language = ""
    fence_line = 0
    fence_lines: list[str] = []

    def _commit(section: Section) -> None:
        if section.depth == 0 and not section.code_blocks and not any(line.strip() for line in section.body_lines):
            return
        sections.append(section)

    for offset, line in enumerate(document.text.split("\n"), start=1):
        line_number = document.body_offset + offset

        if fence is not None:
            if _is_fence_close(line, fence):
                current.code_blocks.append(
                    CodeBlock(language=fence_language, content="\n".join(fence_lines), line=fence_line)
                )
                fence = None
                fence_lines = []
            else:
                fence_lines.append(line)
            continue

        fence_match = FENCE_OPEN_PATTERN.match(line)
        if fence_match:
            fence = fence_match.group(1)
            info = fence_match.group(2).split()
            fence_language = info[0] if info else ""
            fence_line = line_number
            continue

        heading_match = HEADING_PATTERN.match(line)
        if heading_match:
            _commit(current)
            depth = len(heading_match.group(1))
            heading = (heading_match.group(2) or "").strip()
            while ancestors and ancestors[-1][0] >= depth:
                ancestors.pop()
            ancestors.append((depth, heading))
            current = Section(
                doc_path=document.path,
                heading=heading,
                depth=depth,
                line=line_number,
                heading_path=tuple(title for _, title in ancestors),
            )
            continue

        current.body_lines.append(line)

    if fence is not None:
        raise ParseError(document.path, fence_line, f"unterminated fenced code block opened with {fence!r}")

    _commit(current)
    logger.debug("Parsed %d sections from %s", len(sections), document.path)
    return sections
