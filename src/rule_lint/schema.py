from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Directive(str, Enum):
    """Strength and polarity of a single extracted directive."""

    REQUIRE = "REQUIRE"
    FORBID = "FORBID"
    RECOMMEND = "RECOMMEND"
    DISCOURAGE = "DISCOURAGE"

    @property
    def polarity(self) -> int:
        return 1 if self in (Directive.REQUIRE, Directive.RECOMMEND) else -1


@dataclass(slots=True)
class Document:
    """Rule document loaded from disk, identified by its root-relative path."""

    path: str
    text: str
    topic: str
    index: int = 0
    metadata: dict[str, object] = field(default_factory=dict)
    body_offset: int = 0


@dataclass(slots=True)
class CodeBlock:
    """Fenced code block captured verbatim from a section."""

    language: str
    content: str
    line: int


@dataclass(slots=True)
class Section:
    """Headed span of a document; sections never overlap."""

    doc_path: str
    heading: str
    depth: int
    line: int
    body_lines: list[str] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    heading_path: tuple[str, ...] = ()


@dataclass(slots=True)
class RuleRecord:
    """Directive extracted from one statement of a section."""

    doc_path: str
    doc_index: int
    heading: str
    line: int
    topic: str
    directive: Directive
    marker: str
    statement: str
    position: int = 0


@dataclass(slots=True)
class ConflictFinding:
    """Pair of rules on the same topic whose directives contradict."""

    topic: str
    first: RuleRecord
    second: RuleRecord
    explanation: str


@dataclass(slots=True)
class DocumentError:
    """Per-document failure collected during a run."""

    path: str
    kind: str
    message: str
    line: int | None = None


@dataclass(slots=True)
class ExtractionResult:
    rules: list[RuleRecord] = field(default_factory=list)
    skipped: int = 0


@dataclass(slots=True)
class LintResult:
    """Complete output of one lint run, consumed by the reporting layer."""

    root: str
    documents: int = 0
    sections: int = 0
    rules: list[RuleRecord] = field(default_factory=list)
    skipped: int = 0
    findings: list[ConflictFinding] = field(default_factory=list)
    errors: list[DocumentError] = field(default_factory=list)
