"""Heuristic extraction of directive statements from parsed sections.

A statement is one bullet item, one table row, or one sentence of paragraph
text. It becomes a rule when it contains a directive marker ("always",
"never", "must", "do not", "should", "avoid" and their negated forms) and a
topic key can be found near that marker. Everything else is counted as
skipped; extraction is best-effort and never raises on odd input.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .schema import Directive, ExtractionResult, RuleRecord, Section

logger = logging.getLogger(__name__)

SINGLE_MARKERS: dict[str, Directive] = {
    "always": Directive.REQUIRE,
    "must": Directive.REQUIRE,
    "never": Directive.FORBID,
    "should": Directive.RECOMMEND,
    "avoid": Directive.DISCOURAGE,
}

PAIRED_MARKERS: dict[tuple[str, str], Directive] = {
    ("do", "not"): Directive.FORBID,
    ("must", "not"): Directive.FORBID,
    ("must", "never"): Directive.FORBID,
    ("must", "always"): Directive.REQUIRE,
    ("should", "not"): Directive.DISCOURAGE,
    ("should", "never"): Directive.DISCOURAGE,
    ("should", "always"): Directive.RECOMMEND,
    # "avoid" after another marker narrows or inverts it.
    ("always", "avoid"): Directive.FORBID,
    ("must", "avoid"): Directive.FORBID,
    ("should", "avoid"): Directive.DISCOURAGE,
    ("never", "avoid"): Directive.REQUIRE,
}

# Topic keys and the words/phrases that identify them. Phrases are written in
# the normalised (lowercase, singular) token form produced by `tokenize`.
TOPIC_LEXICON: dict[str, tuple[str, ...]] = {
    "secrets": (
        "api key",
        "secret key",
        "private key",
        "access key",
        "secret",
        "secrets",
        "credential",
        "password",
        "token",
        "hardcode",
        "hardcoded",
    ),
    "cors": ("cors", "cross origin", "allowed origin", "origin"),
    "routing": ("route", "router", "routing", "app router", "pages router", "endpoint", "api route"),
    "typing": ("type", "typing", "type hint", "annotation", "typescript", "interface", "mypy", "strict mode"),
    "testing": ("test", "testing", "unit test", "pytest", "jest", "vitest", "coverage", "playwright"),
    "logging": ("log", "logging", "logger", "console.log", "print statement"),
    "error-handling": ("error", "exception", "error handling", "except", "catch", "traceback"),
    "styling": ("css", "tailwind", "style", "styling", "class name", "color", "inline style"),
    "state-management": ("state", "global state", "redux", "zustand", "usestate", "context provider"),
    "database": ("database", "sql", "raw sql", "query", "orm", "migration", "sqlalchemy", "prisma"),
    "authentication": ("auth", "authentication", "login", "session", "jwt", "oauth"),
    "validation": ("validation", "validate", "pydantic", "zod", "schema", "input", "user input"),
    "dependencies": ("dependency", "package", "library", "npm", "pip", "lockfile"),
    "deployment": ("deploy", "deployment", "vercel", "docker", "production", "ci"),
    "git": ("git", "commit", "branch", "push", "pull request", "merge", "force push"),
    "documentation": ("documentation", "docstring", "comment", "readme", "jsdoc", "docs"),
    "environment": ("env", "environment variable", "dotenv", "config", "configuration", "settings"),
    "async": ("async", "await", "asyncio", "promise", "blocking call", "concurrency"),
    "components": ("component", "server component", "client component", "hook", "prop", "jsx", "tsx"),
    "formatting": ("format", "formatting", "prettier", "eslint", "ruff", "black", "lint", "indentation"),
}

# Lexicon terms that usually appear as the verb of a directive rather than its
# object; they only decide the topic when no noun term is present.
VERB_TERMS = frozenset(
    {
        "commit",
        "push",
        "merge",
        "deploy",
        "validate",
        "log",
        "test",
        "style",
        "route",
        "type",
        "format",
        "lint",
        "hardcode",
        "hardcoded",
    }
)

STOP_WORDS = frozenset(
    """
    a an the to of for in on at by with from into onto about and or but nor so yet
    be is are was were been being it its this that these those there here
    you your yours we our us they their them he she his her i me my
    any all each every some other another more most less least only just even
    not no if when while where than then as also instead again once
    always never must should do does did avoid can could may might will would shall
    very too such same own new old good bad better best
    """.split()
)

IMPERATIVE_VERBS = frozenset(
    """
    use using used write add create make keep put run call prefer include ensure
    follow check expose store set rely mix leave return handle import
    export install update remove delete edit modify change place define declare
    pass send skip ignore trust allow disable enable introduce rewrite refactor
    know need want have get let try apply implement mention reference assume
    """.split()
)

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:[._][a-z0-9]+)*")
_CONTRACTION_PATTERN = re.compile(r"\b(do|must|should)n['’]t\b", re.IGNORECASE)
_BULLET_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")
_TABLE_SEPARATOR_PATTERN = re.compile(r"^\s*\|?[\s:|-]+\|?\s*$")
_SENTENCE_SPLIT_PATTERN = re.compile(r"(?<=[.!?])\s+")
_EMPHASIS_PATTERN = re.compile(r"\*\*|__|[*`]")
_QUOTE_PATTERN = re.compile(r"^\s*(?:>\s?)+")
_CHECKBOX_PATTERN = re.compile(r"^\[[ xX]\]\s*")


def _build_phrase_index() -> tuple[dict[tuple[str, ...], str], frozenset[str], int]:
    index: dict[tuple[str, ...], str] = {}
    for topic, phrases in TOPIC_LEXICON.items():
        for phrase in phrases:
            index.setdefault(tuple(phrase.split()), topic)
    known = frozenset(token for phrase in index for token in phrase)
    return index, known, max(len(phrase) for phrase in index)


_PHRASE_INDEX, KNOWN_TERMS, _MAX_PHRASE_TOKENS = _build_phrase_index()


@dataclass(slots=True)
class _Marker:
    start: int
    end: int
    text: str
    directive: Directive


@dataclass(slots=True)
class _TermMatch:
    start: int
    end: int
    topic: str
    is_verb: bool


def singularize(token: str) -> str:
    if len(token) <= 3 or not token.isalpha():
        return token
    if token in KNOWN_TERMS or token in STOP_WORDS or token in IMPERATIVE_VERBS:
        return token
    if token.endswith("ies"):
        return token[:-3] + "y"
    if token.endswith(("sses", "shes", "ches", "xes")):
        return token[:-2]
    if token.endswith("s") and not token.endswith(("ss", "us", "is")):
        return token[:-1]
    return token


def tokenize(text: str) -> list[str]:
    """Lowercase, expand negative contractions, and singularise word tokens."""
    expanded = _CONTRACTION_PATTERN.sub(lambda match: f"{match.group(1)} not", text)
    return [singularize(token) for token in _TOKEN_PATTERN.findall(expanded.lower())]


def find_markers(tokens: list[str]) -> list[_Marker]:
    markers: list[_Marker] = []
    idx = 0
    while idx < len(tokens):
        pair = (tokens[idx], tokens[idx + 1]) if idx + 1 < len(tokens) else None
        if pair in PAIRED_MARKERS:
            markers.append(_Marker(idx, idx + 2, " ".join(pair), PAIRED_MARKERS[pair]))
            idx += 2
            continue
        if tokens[idx] in SINGLE_MARKERS:
            markers.append(_Marker(idx, idx + 1, tokens[idx], SINGLE_MARKERS[tokens[idx]]))
        idx += 1
    return markers


def _term_matches(tokens: list[str]) -> list[_TermMatch]:
    matches: list[_TermMatch] = []
    idx = 0
    while idx < len(tokens):
        for length in range(min(_MAX_PHRASE_TOKENS, len(tokens) - idx), 0, -1):
            phrase = tuple(tokens[idx : idx + length])
            topic = _PHRASE_INDEX.get(phrase)
            if topic is not None:
                is_verb = length == 1 and phrase[0] in VERB_TERMS
                matches.append(_TermMatch(idx, idx + length, topic, is_verb))
                idx += length
                break
        else:
            idx += 1
    return matches


def resolve_topic(tokens: list[str], marker_start: int, marker_end: int) -> str | None:
    """Return the topic key nearest to the marker span, or None.

    Noun terms win over verb terms, matches after the marker win over matches
    before it, and closer matches win over farther ones.
    """
    ranked: list[tuple[int, int, int, str]] = []
    for match in _term_matches(tokens):
        if match.start >= marker_end:
            ranked.append((int(match.is_verb), 0, match.start - marker_end, match.topic))
        elif match.end <= marker_start:
            ranked.append((int(match.is_verb), 1, marker_start - match.end, match.topic))
    if ranked:
        return min(ranked)[3]

    for token in tokens[marker_end:]:
        if len(token) < 3 or not token.isalpha():
            continue
        if token in STOP_WORDS or token in IMPERATIVE_VERBS:
            continue
        return token
    return None


def _clean(text: str) -> str:
    text = _QUOTE_PATTERN.sub("", text)
    text = _CHECKBOX_PATTERN.sub("", text.strip())
    return " ".join(_EMPHASIS_PATTERN.sub("", text).split())


def iter_statements(lines: Iterable[str]) -> Iterator[str]:
    """Yield candidate statements from a section's body lines.

    Bullet items (with indented continuation lines) and table rows are one
    statement each; other text is grouped into paragraphs and split into
    sentences.
    """
    paragraph: list[str] = []
    bullet: list[str] | None = None

    def _flush_paragraph() -> Iterator[str]:
        if paragraph:
            joined = _clean(" ".join(paragraph))
            paragraph.clear()
            for sentence in _SENTENCE_SPLIT_PATTERN.split(joined):
                if sentence.strip():
                    yield sentence.strip()

    def _flush_bullet() -> Iterator[str]:
        nonlocal bullet
        if bullet:
            statement = _clean(" ".join(bullet))
            if statement:
                yield statement
        bullet = None

    for raw_line in lines:
        line = _QUOTE_PATTERN.sub("", raw_line.rstrip())
        if not line.strip():
            yield from _flush_bullet()
            yield from _flush_paragraph()
            continue

        bullet_match = _BULLET_PATTERN.match(line)
        if bullet_match:
            yield from _flush_paragraph()
            yield from _flush_bullet()
            bullet = [bullet_match.group(1)]
            continue

        if line.lstrip().startswith("|"):
            yield from _flush_bullet()
            yield from _flush_paragraph()
            if not _TABLE_SEPARATOR_PATTERN.match(line):
                cells = [cell.strip() for cell in line.strip().strip("|").split("|")]
                row = _clean(" ".join(cell for cell in cells if cell))
                if row:
                    yield row
            continue

        if bullet is not None and line[:1] in (" ", "\t"):
            bullet.append(line.strip())
            continue

        yield from _flush_bullet()
        paragraph.append(line.strip())

    yield from _flush_bullet()
    yield from _flush_paragraph()


def extract_rules(section: Section, doc_index: int = 0, start_position: int = 0) -> ExtractionResult:
    """Extract directive rule records from one section.

    Args:
        section: Parsed section to scan.
        doc_index: Load-order index of the section's document.
        start_position: Sequence number assigned to the first extracted rule.

    Returns:
        Extracted rules plus the number of candidate statements skipped.
    """
    result = ExtractionResult()
    for statement in iter_statements(section.body_lines):
        if not any(char.isalpha() for char in statement):
            continue

        tokens = tokenize(statement)
        markers = find_markers(tokens)
        if not markers:
            result.skipped += 1
            continue
        if len({marker.directive.polarity for marker in markers}) > 1:
            logger.debug("Skipping ambiguous statement in %s: %r", section.doc_path, statement)
            result.skipped += 1
            continue

        marker = markers[0]
        topic = resolve_topic(tokens, marker.start, marker.end)
        if topic is None:
            logger.debug("Skipping statement without topic in %s: %r", section.doc_path, statement)
            result.skipped += 1
            continue

        result.rules.append(
            RuleRecord(
                doc_path=section.doc_path,
                doc_index=doc_index,
                heading=" > ".join(section.heading_path) or section.heading,
                line=section.line,
                topic=topic,
                directive=marker.directive,
                marker=marker.text,
                statement=statement,
                position=start_position + len(result.rules),
            )
        )
    return result


def extract_document_rules(sections: Iterable[Section], doc_index: int = 0) -> ExtractionResult:
    """Extract rules from every section of one document, numbering them in order."""
    combined = ExtractionResult()
    for section in sections:
        partial = extract_rules(section, doc_index=doc_index, start_position=len(combined.rules))
        combined.rules.extend(partial.rules)
        combined.skipped += partial.skipped
    return combined
