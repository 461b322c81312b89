from __future__ import annotations

from collections.abc import Iterable
from functools import partial
import logging
from pathlib import Path

from opentelemetry import trace

from .conflicts import detect_conflicts
from .errors import ParseError
from .extraction import extract_document_rules
from .loader import DEFAULT_EXTENSIONS, iter_documents
from .schema import ConflictFinding, Document, DocumentError, ExtractionResult, LintResult, RuleRecord, Section
from .sections import parse_sections
from .tracing import (
    ATTR_DOCUMENTS,
    ATTR_ERRORS,
    ATTR_FINDINGS,
    ATTR_ROOT,
    ATTR_RULES,
    get_tracer,
    traced_stage,
)

logger = logging.getLogger(__name__)

ParsedDocument = tuple[Document, list[Section]]


def load_stage(root: Path, extensions: Iterable[str], errors: list[DocumentError]) -> list[Document]:
    """Load every document under `root`, recording unreadable files in `errors`."""
    return list(iter_documents(root, extensions, errors=errors))


def parse_stage(documents: list[Document], errors: list[DocumentError]) -> list[ParsedDocument]:
    """Parse each document, excluding those that fail from later stages."""
    parsed: list[ParsedDocument] = []
    for document in documents:
        try:
            sections = parse_sections(document)
        except ParseError as exc:
            logger.warning("Excluding %s from analysis: line %d: %s", exc.path, exc.line, exc.message)
            errors.append(DocumentError(path=exc.path, kind="parse", message=exc.message, line=exc.line))
            continue
        parsed.append((document, sections))
    return parsed


def extract_stage(parsed: list[ParsedDocument]) -> ExtractionResult:
    combined = ExtractionResult()
    for document, sections in parsed:
        partial_result = extract_document_rules(sections, doc_index=document.index)
        combined.rules.extend(partial_result.rules)
        combined.skipped += partial_result.skipped
    return combined


def detect_stage(rules: list[RuleRecord], cross_strength: bool = False) -> list[ConflictFinding]:
    return detect_conflicts(rules, cross_strength=cross_strength)


def run_lint(
    root: str | Path,
    *,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    cross_strength: bool = False,
    tracer: trace.Tracer | None = None,
) -> LintResult:
    """Run Load -> Parse -> Extract -> Detect over every rule document under `root`.

    Each stage consumes the complete output of the previous one. Per-document
    failures are collected into the result instead of aborting the run.

    Args:
        root: Directory tree holding rule documents.
        extensions: File suffixes treated as rule documents.
        cross_strength: Also flag REQUIRE/DISCOURAGE and RECOMMEND/FORBID pairs.
        tracer: Tracer for stage spans; defaults to the configured provider's.

    Returns:
        Aggregated lint result ready for reporting.

    Raises:
        RootNotFoundError: `root` is missing or unreadable.
    """
    tracer = tracer or get_tracer("rule-lint")
    root_path = Path(root)
    errors: list[DocumentError] = []

    with tracer.start_as_current_span("rule-lint") as span:
        span.set_attribute(ATTR_ROOT, str(root))

        documents = traced_stage(
            "rule-lint.load", partial(load_stage, extensions=tuple(extensions), errors=errors), tracer
        )(root_path)
        parsed = traced_stage("rule-lint.parse", partial(parse_stage, errors=errors), tracer)(documents)
        extraction = traced_stage("rule-lint.extract", extract_stage, tracer)(parsed)
        findings = traced_stage(
            "rule-lint.detect", partial(detect_stage, cross_strength=cross_strength), tracer
        )(extraction.rules)

        span.set_attribute(ATTR_DOCUMENTS, len(documents))
        span.set_attribute(ATTR_RULES, len(extraction.rules))
        span.set_attribute(ATTR_FINDINGS, len(findings))
        span.set_attribute(ATTR_ERRORS, len(errors))

    logger.info(
        "Linted %d documents: %d rules, %d skipped statements, %d conflicts, %d errors",
        len(documents),
        len(extraction.rules),
        extraction.skipped,
        len(findings),
        len(errors),
    )
    return LintResult(
        root=str(root),
        documents=len(documents),
        sections=sum(len(sections) for _, sections in parsed),
        rules=extraction.rules,
        skipped=extraction.skipped,
        findings=findings,
        errors=errors,
    )
