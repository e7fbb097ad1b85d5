"""
Settings package for the loot database builder.

Persistent configuration is stored with Qt's QSettings; a build runs on
the immutable BuildConfig produced from it.

Usage:
    from lootdb.settings import AppSettings

    settings = AppSettings()
    result = settings.validate()
    config = settings.build_config()
"""

from .core import AppSettings
from .types import (
    BuildConfig,
    ConditionKind,
    ConfigVersion,
    EntityTypeConfig,
    ReferenceTableConfig,
    ValidationResult,
    DEFAULT_CONTENT_VERSION,
    DEFAULT_ENTITY_TYPES,
    DEFAULT_REFERENCE_TABLES,
)
from .entity_types import EntityTypeSettings
from .build import BuildSettings

__all__ = [
    "AppSettings",
    "BuildConfig",
    "BuildSettings",
    "ConditionKind",
    "ConfigVersion",
    "EntityTypeConfig",
    "EntityTypeSettings",
    "ReferenceTableConfig",
    "ValidationResult",
    "DEFAULT_CONTENT_VERSION",
    "DEFAULT_ENTITY_TYPES",
    "DEFAULT_REFERENCE_TABLES",
]
