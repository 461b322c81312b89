from __future__ import annotations

from dataclasses import asdict
from itertools import groupby
import json

from .schema import ConflictFinding, LintResult, RuleRecord

EXIT_OK = 0
EXIT_CONFLICTS = 1
EXIT_DOCUMENT_ERRORS = 2


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _location(record: RuleRecord) -> str:
    heading = record.heading or "(preamble)"
    return f"{record.doc_path}:{record.line} ({heading})"


def exit_code(result: LintResult) -> int:
    """Document errors take precedence over conflicts."""
    if result.errors:
        return EXIT_DOCUMENT_ERRORS
    if result.findings:
        return EXIT_CONFLICTS
    return EXIT_OK


def _render_finding(finding: ConflictFinding) -> list[str]:
    lines: list[str] = []
    for record in (finding.first, finding.second):
        lines.append(f"  {record.directive.value} [{record.marker}] at {_location(record)}")
        lines.append(f"    > {record.statement}")
    lines.append(f"  => {finding.explanation}")
    return lines


def render_report(result: LintResult) -> str:
    """Render the human-readable summary printed on standard output.

    Findings are grouped by topic key in the order the detector produced them,
    and nothing run-specific (timestamps, absolute paths) is included, so an
    unchanged corpus always renders the same text.
    """
    lines = [
        "rule-lint: "
        + ", ".join(
            [
                _plural(result.documents, "document"),
                _plural(result.sections, "section"),
                _plural(len(result.rules), "rule"),
                _plural(result.skipped, "skipped statement"),
            ]
        )
    ]

    if not result.rules:
        lines.append("no rules found")
    elif not result.findings:
        lines.append("no conflicts found")
    else:
        topics = {finding.topic for finding in result.findings}
        lines.append(f"{_plural(len(result.findings), 'conflict')} in {_plural(len(topics), 'topic')}")
        for topic, group in groupby(result.findings, key=lambda finding: finding.topic):
            lines.append("")
            lines.append(f"[{topic}]")
            for finding in group:
                lines.extend(_render_finding(finding))

    if result.errors:
        lines.append("")
        lines.append(f"{_plural(len(result.errors), 'document')} failed to load or parse")
    return "\n".join(lines) + "\n"


def render_errors(result: LintResult) -> str:
    """Render one line per document error, for standard error."""
    lines = []
    for error in result.errors:
        location = error.path if error.line is None else f"{error.path}:{error.line}"
        lines.append(f"{location}: {error.kind} error: {error.message}")
    return "\n".join(lines) + "\n" if lines else ""


def _record_payload(record: RuleRecord) -> dict:
    payload = asdict(record)
    payload["directive"] = record.directive.value
    return payload


def render_json(result: LintResult) -> str:
    payload = {
        "root": result.root,
        "summary": {
            "documents": result.documents,
            "sections": result.sections,
            "rules": len(result.rules),
            "skipped": result.skipped,
            "conflicts": len(result.findings),
            "errors": len(result.errors),
        },
        "findings": [
            {
                "topic": finding.topic,
                "explanation": finding.explanation,
                "first": _record_payload(finding.first),
                "second": _record_payload(finding.second),
            }
            for finding in result.findings
        ],
        "errors": [asdict(error) for error in result.errors],
        "exit_code": exit_code(result),
    }
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"
