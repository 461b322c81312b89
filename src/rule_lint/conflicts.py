from __future__ import annotations

import logging
from collections import defaultdict
from itertools import combinations

from .schema import ConflictFinding, Directive, RuleRecord

logger = logging.getLogger(__name__)

CONFLICTING_PAIRS = frozenset(
    {
        frozenset({Directive.REQUIRE, Directive.FORBID}),
        frozenset({Directive.RECOMMEND, Directive.DISCOURAGE}),
    }
)

CROSS_STRENGTH_PAIRS = frozenset(
    {
        frozenset({Directive.REQUIRE, Directive.DISCOURAGE}),
        frozenset({Directive.RECOMMEND, Directive.FORBID}),
    }
)


def _load_order(record: RuleRecord) -> tuple[int, int]:
    return record.doc_index, record.position


def is_conflict(first: Directive, second: Directive, *, cross_strength: bool = False) -> bool:
    """Return True when the two directive strengths contradict each other."""
    pair = frozenset({first, second})
    if pair in CONFLICTING_PAIRS:
        return True
    return cross_strength and pair in CROSS_STRENGTH_PAIRS


def detect_conflicts(records: list[RuleRecord], *, cross_strength: bool = False) -> list[ConflictFinding]:
    """Report every pair of rules on the same topic with contradicting directives.

    Each unordered pair is checked once, so (A, B) and (B, A) never both appear.

    Args:
        records: Rule records from all documents.
        cross_strength: Also treat REQUIRE/DISCOURAGE and RECOMMEND/FORBID as
            conflicts.

    Returns:
        Findings sorted by topic key, then by the load order of both records.
    """
    grouped: dict[str, list[RuleRecord]] = defaultdict(list)
    for record in records:
        grouped[record.topic].append(record)

    findings: list[ConflictFinding] = []
    for topic in sorted(grouped):
        group = sorted(grouped[topic], key=_load_order)
        if len(group) < 2:
            continue
        for first, second in combinations(group, 2):
            if not is_conflict(first.directive, second.directive, cross_strength=cross_strength):
                continue
            findings.append(
                ConflictFinding(
                    topic=topic,
                    first=first,
                    second=second,
                    explanation=(
                        f"{first.directive.value} ({first.marker!r}) contradicts "
                        f"{second.directive.value} ({second.marker!r}) on topic {topic!r}"
                    ),
                )
            )

    findings.sort(key=lambda finding: (finding.topic, _load_order(finding.first), _load_order(finding.second)))
    logger.info("Detected %d conflicts across %d topics", len(findings), len(grouped))
    return findings
