"""Linter that finds contradicting directives across agent rule documents."""

from .pipeline import run_lint
from .schema import ConflictFinding, Directive, Document, LintResult, RuleRecord, Section

__all__ = ["run_lint", "Document", "Section", "RuleRecord", "Directive", "ConflictFinding", "LintResult"]
