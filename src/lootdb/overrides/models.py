"""
Data models for operator-maintained overrides and corrections.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class OverrideRecord:
    """Operator-authored replacement for an entity's metadata.

    Applying an override replaces every field of the template payload.
    """
    id: int
    name: str
    description: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    notes: Optional[str] = None


@dataclass(frozen=True)
class CorrectionRecord:
    """Operator-authored relabelling of an already named entity.

    Attributes:
        corrected_name: Name to use instead of the current one
        original_name: Name the operator expected to replace (informational)
        reason: Short reason code, e.g. 'duplicate-name'
        explanation: Free-form text kept in the record notes
    """
    id: int
    corrected_name: str
    original_name: Optional[str] = None
    reason: Optional[str] = None
    explanation: Optional[str] = None


@dataclass
class OverrideSet:
    """All overrides and corrections loaded for one entity type.

    The declared content version and last-modified stamp are informational
    only; they never take part in conflict resolution.
    """
    entity_type: str
    overrides: Dict[int, OverrideRecord] = field(default_factory=dict)
    corrections: Dict[int, CorrectionRecord] = field(default_factory=dict)
    content_version: Optional[str] = None
    last_modified: Optional[str] = None
    sources: List[Path] = field(default_factory=list)
