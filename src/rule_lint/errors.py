from __future__ import annotations


class RuleLintError(Exception):
    """Base class for all rule-lint failures."""


class RootNotFoundError(RuleLintError, OSError):
    """Lint root is missing, not a directory, or cannot be listed."""


class DocumentReadError(RuleLintError, OSError):
    """A single rule document could not be read or decoded as text."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ParseError(RuleLintError):
    """A document's structure could not be parsed (e.g. unterminated fence)."""

    def __init__(self, path: str, line: int, message: str) -> None:
        super().__init__(f"{path}:{line}: {message}")
        self.path = path
        self.line = line
        self.message = message
