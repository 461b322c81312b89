"""Tests for extraction.py — statement splitting, markers, topic keys."""
from __future__ import annotations

import pytest

from rule_lint.extraction import (
    extract_document_rules,
    extract_rules,
    find_markers,
    iter_statements,
    resolve_topic,
    singularize,
    tokenize,
)
from rule_lint.schema import CodeBlock, Directive, RuleRecord, Section


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _section(*lines: str, heading: str = "Rules") -> Section:
    return Section(
        doc_path="rules.md",
        heading=heading,
        depth=1,
        line=1,
        body_lines=list(lines),
        heading_path=(heading,),
    )


def _single_rule(line: str) -> RuleRecord:
    result = extract_rules(_section(line))
    assert len(result.rules) == 1, result
    return result.rules[0]


# ---------------------------------------------------------------------------
# tokenize / singularize
# ---------------------------------------------------------------------------

class TestTokenize:
    def test_lowercases_and_singularises(self):
        assert tokenize("Never hardcode API keys") == ["never", "hardcode", "api", "key"]

    def test_expands_negative_contractions(self):
        assert tokenize("Don't log tokens")[:2] == ["do", "not"]
        assert tokenize("You mustn’t push")[1:3] == ["must", "not"]

    def test_keeps_dotted_identifiers(self):
        assert "console.log" in tokenize("Avoid console.log in production")

    def test_marker_words_are_not_singularised(self):
        assert tokenize("always")[0] == "always"

    @pytest.mark.parametrize(
        ("word", "expected"),
        [("keys", "key"), ("queries", "query"), ("classes", "class"), ("cors", "cors"), ("process", "process")],
    )
    def test_singularize(self, word, expected):
        assert singularize(word) == expected


# ---------------------------------------------------------------------------
# find_markers
# ---------------------------------------------------------------------------

class TestFindMarkers:
    @pytest.mark.parametrize(
        ("text", "directive", "marker"),
        [
            ("always use strict mode", Directive.REQUIRE, "always"),
            ("you must add tests", Directive.REQUIRE, "must"),
            ("never commit secrets", Directive.FORBID, "never"),
            ("do not commit secrets", Directive.FORBID, "do not"),
            ("you must not commit secrets", Directive.FORBID, "must not"),
            ("you must never commit secrets", Directive.FORBID, "must never"),
            ("you should add tests", Directive.RECOMMEND, "should"),
            ("avoid global state", Directive.DISCOURAGE, "avoid"),
            ("you should not use globals", Directive.DISCOURAGE, "should not"),
            ("always avoid raw sql", Directive.FORBID, "always avoid"),
            ("you must avoid raw sql", Directive.FORBID, "must avoid"),
            ("you should avoid global state", Directive.DISCOURAGE, "should avoid"),
            ("never avoid writing tests", Directive.REQUIRE, "never avoid"),
        ],
    )
    def test_marker_table(self, text, directive, marker):
        markers = find_markers(tokenize(text))
        assert markers[0].directive is directive
        assert markers[0].text == marker

    def test_no_markers(self):
        assert find_markers(tokenize("This project uses Next.js")) == []

    def test_marker_must_be_whole_word(self):
        assert find_markers(tokenize("Nevertheless, shoulder the load")) == []


# ---------------------------------------------------------------------------
# resolve_topic
# ---------------------------------------------------------------------------

class TestResolveTopic:
    def test_phrase_after_marker(self):
        tokens = tokenize("Never hardcode API keys")
        assert resolve_topic(tokens, 0, 1) == "secrets"

    def test_noun_beats_nearer_verb_term(self):
        tokens = tokenize("Do not commit secrets to git")
        assert resolve_topic(tokens, 0, 2) == "secrets"

    def test_falls_back_to_term_before_marker(self):
        tokens = tokenize("API keys must never be printed")
        assert resolve_topic(tokens, 2, 4) == "secrets"

    def test_fallback_to_first_content_word(self):
        tokens = tokenize("Always prefer composition")
        assert resolve_topic(tokens, 0, 1) == "composition"

    def test_no_topic(self):
        tokens = tokenize("Always do it")
        assert resolve_topic(tokens, 0, 1) is None


# ---------------------------------------------------------------------------
# iter_statements
# ---------------------------------------------------------------------------

class TestIterStatements:
    def test_bullets_are_single_statements(self):
        statements = list(iter_statements(["- First rule. Still first.", "* Second", "1. Third"]))
        assert statements == ["First rule. Still first.", "Second", "Third"]

    def test_bullet_continuation_lines_are_folded(self):
        assert list(iter_statements(["- Never expose", "  API keys in logs"])) == ["Never expose API keys in logs"]

    def test_paragraph_split_into_sentences(self):
        statements = list(iter_statements(["You must use pydantic models. Never log", "passwords! Other text."]))
        assert statements == ["You must use pydantic models.", "Never log passwords!", "Other text."]

    def test_table_rows(self):
        lines = ["| Rule | Note |", "|---|:---:|", "| Never use raw SQL | security |"]
        assert list(iter_statements(lines)) == ["Rule Note", "Never use raw SQL security"]

    def test_markdown_decoration_is_stripped(self):
        assert list(iter_statements(["> - [ ] **Never** hardcode `API keys`"])) == ["Never hardcode API keys"]

    def test_blank_lines_separate_paragraphs(self):
        assert list(iter_statements(["first part", "", "second part"])) == ["first part", "second part"]


# ---------------------------------------------------------------------------
# extract_rules
# ---------------------------------------------------------------------------

class TestExtractRules:
    def test_forbid_rule(self):
        rule = _single_rule("- Never hardcode API keys")
        assert rule.topic == "secrets"
        assert rule.directive is Directive.FORBID
        assert rule.marker == "never"
        assert rule.statement == "Never hardcode API keys"

    def test_require_rule(self):
        rule = _single_rule("- Always hardcode API keys for speed")
        assert rule.topic == "secrets"
        assert rule.directive is Directive.REQUIRE

    def test_recommend_rule(self):
        rule = _single_rule("- You should use TypeScript strict mode")
        assert rule.topic == "typing"
        assert rule.directive is Directive.RECOMMEND

    def test_discourage_rule(self):
        rule = _single_rule("- Avoid inline styles")
        assert rule.topic == "styling"
        assert rule.directive is Directive.DISCOURAGE

    def test_contraction_rule(self):
        rule = _single_rule("- Don't use inline styles")
        assert rule.directive is Directive.FORBID
        assert rule.marker == "do not"

    def test_checkbox_bullet(self):
        rule = _single_rule("- [ ] Always write tests")
        assert rule.topic == "testing"

    def test_table_rule(self):
        result = extract_rules(_section("| Rule | Note |", "|---|---|", "| Never use raw SQL | security |"))
        assert [r.topic for r in result.rules] == ["database"]
        assert result.skipped == 1

    def test_markerless_statement_is_skipped(self):
        result = extract_rules(_section("This project uses Next.js."))
        assert result.rules == []
        assert result.skipped == 1

    def test_mixed_polarity_statement_is_skipped(self):
        result = extract_rules(_section("- Always validate input, never trust clients"))
        assert result.rules == []
        assert result.skipped == 1

    def test_same_polarity_uses_first_marker(self):
        rule = _single_rule("- You must always add tests and should document them")
        assert rule.directive is Directive.REQUIRE
        assert rule.marker == "must always"

    @pytest.mark.parametrize(
        ("line", "directive", "topic"),
        [
            ("- Always avoid hardcoding API keys", Directive.FORBID, "secrets"),
            ("- You must avoid raw SQL queries", Directive.FORBID, "database"),
            ("- You should avoid global state", Directive.DISCOURAGE, "state-management"),
            ("- Never avoid writing tests", Directive.REQUIRE, "testing"),
        ],
    )
    def test_avoid_combined_with_another_marker(self, line, directive, topic):
        rule = _single_rule(line)
        assert (rule.directive, rule.topic) == (directive, topic)

    def test_hardcode_alone_resolves_to_secrets(self):
        assert _single_rule("- Never hardcode URLs").topic == "secrets"

    def test_statement_without_topic_is_skipped(self):
        result = extract_rules(_section("- Always do it"))
        assert result.rules == []
        assert result.skipped == 1

    def test_paragraph_sentences(self):
        result = extract_rules(_section("You must use pydantic models. Never log passwords! Other text here."))
        assert [(r.topic, r.directive) for r in result.rules] == [
            ("validation", Directive.REQUIRE),
            ("secrets", Directive.FORBID),
        ]
        assert result.skipped == 1

    def test_symbol_only_statements_are_not_counted(self):
        result = extract_rules(_section("- ---", "- 42"))
        assert result.skipped == 0

    def test_record_metadata(self):
        section = Section(
            doc_path="python-workflow.md",
            heading="Secrets",
            depth=2,
            line=7,
            body_lines=["- Never hardcode API keys"],
            heading_path=("Workflow", "Secrets"),
        )
        rule = extract_rules(section, doc_index=3, start_position=10).rules[0]
        assert rule.doc_path == "python-workflow.md"
        assert rule.doc_index == 3
        assert rule.heading == "Workflow > Secrets"
        assert rule.line == 7
        assert rule.position == 10

    def test_fenced_code_is_ignored(self):
        section = _section("Intro.")
        section.code_blocks = [CodeBlock(language="md", content="- Never hardcode API keys", line=2)]
        result = extract_rules(section)
        assert result.rules == []
        assert result.skipped == 1

    def test_preamble_heading_is_empty(self):
        section = Section(doc_path="a.md", heading="", depth=0, line=1, body_lines=["- Never hardcode API keys"])
        assert extract_rules(section).rules[0].heading == ""


class TestExtractDocumentRules:
    def test_positions_continue_across_sections(self, sample_section):
        second = _section("- Avoid inline styles", heading="Styling")
        result = extract_document_rules([sample_section, second], doc_index=2)
        assert [r.position for r in result.rules] == [0, 1, 2]
        assert {r.doc_index for r in result.rules} == {2}

    def test_skips_are_summed(self):
        result = extract_document_rules([_section("Plain text."), _section("More plain text.")])
        assert result.skipped == 2
