"""
Build statistics collected while the pipeline runs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ..database.models import Severity, TypeCounts, ValidationIssue


@dataclass
class BuildStatistics:
    """Counters shown in the summary and stored in the master index."""
    files_processed: int = 0
    files_failed: int = 0
    rules_seen: int = 0
    template_count: int = 0
    overrides_applied: int = 0
    corrections_applied: int = 0
    duplicates_found: int = 0
    warnings: int = 0
    errors: int = 0
    counts: Dict[str, TypeCounts] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> float:
        """Wall-clock duration in seconds, 0 while unfinished."""
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def count_issues(self, issues: Iterable[ValidationIssue]) -> None:
        """Recount warning, error and duplicate totals from scratch."""
        self.warnings = 0
        self.errors = 0
        self.duplicates_found = 0
        for issue in issues:
            if issue.severity is Severity.ERROR:
                self.errors += 1
            else:
                self.warnings += 1
            if issue.category in ("duplicate-name", "duplicate-rule", "conflicting-name"):
                self.duplicates_found += 1

    def to_dict(self) -> Dict[str, Any]:
        """Deterministic part of the statistics, without wall-clock times."""
        return {
            "filesProcessed": self.files_processed,
            "filesFailed": self.files_failed,
            "rulesSeen": self.rules_seen,
            "templateCount": self.template_count,
            "overridesApplied": self.overrides_applied,
            "correctionsApplied": self.corrections_applied,
            "duplicatesFound": self.duplicates_found,
            "warnings": self.warnings,
            "errors": self.errors,
            "entities": {name: counts.to_dict() for name, counts in self.counts.items()},
        }
