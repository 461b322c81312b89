"""Shared pytest fixtures for rule_lint unit tests."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from rule_lint.schema import Directive, Document, RuleRecord, Section

CONFLICTING_RULES = {
    "a.md": "# Rules\n- Never hardcode API keys\n",
    "b.md": "# Rules\n- Always hardcode API keys for speed\n",
}


@pytest.fixture()
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Return a helper that writes `{relative_path: text}` under a fresh root."""

    def _write(files: dict[str, str]) -> Path:
        root = tmp_path / "rules"
        root.mkdir(exist_ok=True)
        for relative_path, text in files.items():
            target = root / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return root

    return _write


@pytest.fixture()
def unlistable_dir(monkeypatch) -> Callable[[str], None]:
    """Make `os.walk` report a permission error for every directory named `name`."""
    real_walk = os.walk

    def _install(name: str) -> None:
        def _walk(top, topdown=True, onerror=None, followlinks=False):
            for dirpath, dirnames, filenames in real_walk(top, topdown, onerror, followlinks):
                if Path(dirpath).name == name:
                    onerror(PermissionError(13, "Permission denied", dirpath))
                    dirnames[:] = []
                    continue
                yield dirpath, dirnames, filenames

        monkeypatch.setattr(os, "walk", _walk)

    return _install


@pytest.fixture()
def conflicting_tree(write_tree) -> Path:
    return write_tree(CONFLICTING_RULES)


@pytest.fixture()
def sample_document() -> Document:
    return Document(
        path="typescript-rules.md",
        text=(
            "# TypeScript Rules\n"
            "Guidance for the web app.\n"
            "## Secrets\n"
            "- Never hardcode API keys\n"
            "- Store credentials in environment variables\n"
            "## Styling\n"
            "- Avoid inline styles\n"
        ),
        topic="typescript-rules",
    )


@pytest.fixture()
def sample_section() -> Section:
    return Section(
        doc_path="python-workflow.md",
        heading="Secrets",
        depth=2,
        line=5,
        body_lines=["- Never hardcode API keys", "- Always write tests"],
        heading_path=("Python Workflow", "Secrets"),
    )


@pytest.fixture()
def make_record() -> Callable[..., RuleRecord]:
    def _make(
        directive: Directive,
        topic: str = "secrets",
        doc_index: int = 0,
        position: int = 0,
        doc_path: str | None = None,
        statement: str = "statement",
    ) -> RuleRecord:
        return RuleRecord(
            doc_path=doc_path or f"doc-{doc_index}.md",
            doc_index=doc_index,
            heading="Rules",
            line=1,
            topic=topic,
            directive=directive,
            marker=directive.value.lower(),
            statement=statement,
            position=position,
        )

    return _make
