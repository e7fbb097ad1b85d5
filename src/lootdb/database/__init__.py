"""
Assembled loot database: models, merge, validation, snapshot and indexes.
"""

from .models import (
    DatabaseSnapshot,
    EntityMap,
    EntityRecord,
    Provenance,
    ReferenceTable,
    Severity,
    SnapshotMetadata,
    TypeCounts,
    ValidationIssue,
)
from .merge import MergeEngine, MergeOutcome, apply_corrections, apply_overrides, apply_slots, base_records
from .validator import Validator
from .snapshot import (
    FORMAT_VERSION,
    SNAPSHOT_FILE,
    SnapshotAssembler,
    format_build_date,
    read_snapshot,
    serialize_snapshot,
    write_snapshot,
)
from .indexes import DatabaseIndexes, IndexBuilder, record_mechanics, record_tags
from .info import describe_snapshot

__all__ = [
    "DatabaseIndexes",
    "DatabaseSnapshot",
    "EntityMap",
    "EntityRecord",
    "IndexBuilder",
    "MergeEngine",
    "MergeOutcome",
    "Provenance",
    "ReferenceTable",
    "Severity",
    "SnapshotAssembler",
    "SnapshotMetadata",
    "TypeCounts",
    "ValidationIssue",
    "Validator",
    "FORMAT_VERSION",
    "SNAPSHOT_FILE",
    "apply_corrections",
    "apply_overrides",
    "apply_slots",
    "base_records",
    "describe_snapshot",
    "format_build_date",
    "read_snapshot",
    "record_mechanics",
    "record_tags",
    "serialize_snapshot",
    "write_snapshot",
]
