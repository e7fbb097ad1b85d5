"""
Data models for the assembled loot database.

Contains the entity record, validation issue and snapshot structures that
flow between the merge, validation, snapshot and index stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TypeAlias


class Provenance(Enum):
    """Which source produced the final state of a record."""
    TEMPLATE_DISCOVERED = "template-discovered"
    OVERRIDE_APPLIED = "override-applied"
    CORRECTION_APPLIED = "correction-applied"


class Severity(Enum):
    """Severity of a validation issue; only affects logging and counts."""
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class EntityRecord:
    """One discovered or placeholder entry for an affix, unique or set item.

    A record without a name is a placeholder: the id exists in the
    templates but has not been identified yet.
    """
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    notes: Optional[str] = None
    provenance: Provenance = Provenance.TEMPLATE_DISCOVERED

    @property
    def missing(self) -> bool:
        """True when the id has not been discovered yet."""
        return self.name is None

    @property
    def tags(self) -> List[str]:
        """Explicit tags from the enrichment properties."""
        return _string_list(self.properties.get("tags"))

    @property
    def mechanics(self) -> List[str]:
        """Explicit mechanic labels from the enrichment properties."""
        return _string_list(self.properties.get("mechanics"))


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [str(item) for item in value if item]  # type: ignore[union-attr]
    return []


EntityMap: TypeAlias = Dict[int, EntityRecord]
"""Maps id -> record within one entity type namespace."""

ReferenceTable: TypeAlias = Dict[int, str]
"""Maps code -> display label for a reference table."""


@dataclass(frozen=True)
class ValidationIssue:
    """A classified data-quality finding. Never fatal to the build."""
    severity: Severity
    entity_type: Optional[str]
    ids: Tuple[int, ...]
    message: str
    category: str
    source: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return self.message

    @classmethod
    def warning(
        cls,
        category: str,
        message: str,
        entity_type: Optional[str] = None,
        ids: Tuple[int, ...] = (),
        source: Optional[str] = None,
    ) -> "ValidationIssue":
        return cls(Severity.WARNING, entity_type, ids, message, category, source)

    @classmethod
    def error(
        cls,
        category: str,
        message: str,
        entity_type: Optional[str] = None,
        ids: Tuple[int, ...] = (),
        source: Optional[str] = None,
    ) -> "ValidationIssue":
        return cls(Severity.ERROR, entity_type, ids, message, category, source)


@dataclass(frozen=True)
class TypeCounts:
    """Discovered vs missing counts for one entity type."""
    total: int
    discovered: int
    missing: int

    @property
    def completion(self) -> int:
        """Discovered share in whole percent."""
        if self.total == 0:
            return 0
        return round(self.discovered / self.total * 100)

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "discovered": self.discovered,
            "missing": self.missing,
        }


@dataclass(frozen=True)
class SnapshotMetadata:
    """Header of the canonical snapshot file."""
    format_version: str
    content_version: str
    build_date: str
    counts: Dict[str, TypeCounts]
    reference_counts: Dict[str, int]
    overrides_applied: int
    corrections_applied: int

    @property
    def discovered(self) -> int:
        return sum(counts.discovered for counts in self.counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formatVersion": self.format_version,
            "contentVersion": self.content_version,
            "buildDate": self.build_date,
            "counts": {name: counts.to_dict() for name, counts in self.counts.items()},
            "references": dict(self.reference_counts),
            "overridesApplied": self.overrides_applied,
            "correctionsApplied": self.corrections_applied,
            "discovered": self.discovered,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnapshotMetadata":
        counts = {
            str(name): TypeCounts(
                total=int(value.get("total", 0)),
                discovered=int(value.get("discovered", 0)),
                missing=int(value.get("missing", 0)),
            )
            for name, value in (data.get("counts") or {}).items()
        }
        return cls(
            format_version=str(data.get("formatVersion", "")),
            content_version=str(data.get("contentVersion", "")),
            build_date=str(data.get("buildDate", "")),
            counts=counts,
            reference_counts={
                str(name): int(count)
                for name, count in (data.get("references") or {}).items()
            },
            overrides_applied=int(data.get("overridesApplied", 0)),
            corrections_applied=int(data.get("correctionsApplied", 0)),
        )


@dataclass
class DatabaseSnapshot:
    """The full build artifact: header, reference tables and sorted entities.

    Attributes:
        metadata: Snapshot header
        references: table name -> code -> label
        entities: entity type -> records sorted ascending by id
        record_keys: entity type -> id key used on snapshot lines
        reference_keys: table name -> code key used on snapshot lines
    """
    metadata: SnapshotMetadata
    references: Dict[str, ReferenceTable]
    entities: Dict[str, List[EntityRecord]]
    record_keys: Dict[str, str]
    reference_keys: Dict[str, str]

    def entity_types(self) -> List[str]:
        return list(self.entities.keys())

    def get_record(self, entity_type: str, entity_id: int) -> Optional[EntityRecord]:
        """Linear lookup; use the identifier index for repeated access."""
        for record in self.entities.get(entity_type, []):
            if record.id == entity_id:
                return record
        return None
