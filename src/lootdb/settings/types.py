"""
Configuration type definitions for the loot database builder.

The pipeline itself only ever sees a BuildConfig; the QSettings-backed
AppSettings facade is responsible for producing one.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class ConfigVersion(Enum):
    """Configuration version for migration support."""
    V1_0 = "1.0"
    CURRENT = V1_0


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ConditionKind(Enum):
    """Which structured condition block carries the id of a filled rule."""
    AFFIX = "affix"
    UNIQUE = "unique"


@dataclass(frozen=True)
class EntityTypeConfig:
    """One expected entity type and how its templates are laid out.

    Attributes:
        name: Namespace name, also the override file stem (e.g. 'affixes')
        subdir: Template subdirectory under the template root
        placeholder_label: Word used in skeleton labels ('Affix' -> 'Affix ID: 12')
        condition_kind: Condition block holding the id of filled rules
        record_key: Key used for the id on snapshot lines ('affix')
        active: Inactive types are skipped entirely
    """
    name: str
    subdir: str
    placeholder_label: str
    condition_kind: ConditionKind
    record_key: str
    active: bool = True


@dataclass(frozen=True)
class ReferenceTableConfig:
    """A mandatory id -> label reference table (colors, sounds, beams)."""
    name: str
    file_name: str
    code_field: str
    record_key: str


DEFAULT_CONTENT_VERSION = "1.3.0.4"
DEFAULT_MASTER_TEMPLATE = "MasterTemplate1.xml"
DEFAULT_MAX_WORKERS = 8
DEFAULT_SUMMARY_PREVIEW = 3

DEFAULT_ENTITY_TYPES: Tuple[EntityTypeConfig, ...] = (
    EntityTypeConfig("affixes", "affixes", "Affix", ConditionKind.AFFIX, "affix"),
    EntityTypeConfig("uniques", "uniques", "Unique", ConditionKind.UNIQUE, "unique"),
    EntityTypeConfig("sets", "sets", "Set", ConditionKind.UNIQUE, "set"),
)

DEFAULT_REFERENCE_TABLES: Tuple[ReferenceTableConfig, ...] = (
    ReferenceTableConfig("colors", "Colors.xml", "color", "color"),
    ReferenceTableConfig("sounds", "Sounds.xml", "SoundId", "sound"),
    ReferenceTableConfig("beams", "MapIcon_LootBeam.xml", "BeamId", "beam"),
)

DEFAULT_TAG_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("Minion", "Damage"),
    ("Critical", "Damage"),
    ("Elemental", "Resistance"),
    ("Health", "Regen"),
    ("Idol", "Minion"),
)


@dataclass(frozen=True)
class BuildConfig:
    """Everything one build needs to know, with no access to QSettings."""
    template_root: Path
    override_root: Path
    output_dir: Path
    content_version: str = DEFAULT_CONTENT_VERSION
    entity_types: Tuple[EntityTypeConfig, ...] = DEFAULT_ENTITY_TYPES
    reference_tables: Tuple[ReferenceTableConfig, ...] = DEFAULT_REFERENCE_TABLES
    master_template: Optional[str] = DEFAULT_MASTER_TEMPLATE
    max_workers: int = DEFAULT_MAX_WORKERS
    tag_pairs: Tuple[Tuple[str, str], ...] = DEFAULT_TAG_PAIRS
    summary_preview: int = DEFAULT_SUMMARY_PREVIEW
    # Fixed metadata timestamp; None means "newest source modification time"
    build_timestamp: Optional[datetime] = None

    def active_entity_types(self) -> List[EntityTypeConfig]:
        """Return entity types that take part in this build, in declared order."""
        return [entity for entity in self.entity_types if entity.active]

    def entity_type(self, name: str) -> EntityTypeConfig:
        """Return the config of an entity type by name."""
        for entity in self.entity_types:
            if entity.name == name:
                return entity
        raise KeyError(f"Unknown entity type: {name}")

    def with_changes(self, **changes: object) -> "BuildConfig":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)  # type: ignore[arg-type]
