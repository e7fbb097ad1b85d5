"""
Exception types for the loot database pipeline.

Only ConfigurationError (and its subclasses) aborts a build. The other
exceptions are raised inside per-file, per-rule or per-key functions and
are converted into validation issues at the stage boundary.
"""

from pathlib import Path
from typing import Optional


class LootDbError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigurationError(LootDbError):
    """Raised when the build cannot produce any valid snapshot."""
    pass


class CorpusError(ConfigurationError):
    """Raised when a mandatory reference table file is absent."""
    pass


class RecoverableParseError(LootDbError):
    """A template file or a single rule could not be parsed."""

    def __init__(
        self, source: Path, message: str, rule_index: Optional[int] = None
    ):
        self.source = source
        self.rule_index = rule_index
        location = f"{source.name}" if rule_index is None else f"{source.name} rule #{rule_index}"
        super().__init__(f"{location}: {message}")


class OverrideFormatError(LootDbError):
    """An override/correction file or one of its keys is malformed."""

    def __init__(self, source: Path, message: str, key: Optional[str] = None):
        self.source = source
        self.key = key
        location = source.name if key is None else f"{source.name} key {key!r}"
        super().__init__(f"{location}: {message}")


class SnapshotFormatError(LootDbError):
    """An existing snapshot file cannot be read back."""

    def __init__(self, source: Path, message: str, line_number: Optional[int] = None):
        self.source = source
        self.line_number = line_number
        location = source.name if line_number is None else f"{source.name} line {line_number}"
        super().__init__(f"{location}: {message}")
