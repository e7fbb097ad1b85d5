"""
Entity type settings for the loot database builder.

Which entity types a build expects is an explicit, persisted decision
rather than a side effect of which template directories happen to exist.
"""

from dataclasses import replace
from typing import List, Tuple, TYPE_CHECKING, cast

from .types import DEFAULT_ENTITY_TYPES, EntityTypeConfig

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

KNOWN_ENTITY_TYPES = [entity.name for entity in DEFAULT_ENTITY_TYPES]


class EntityTypeSettings:
    """Manages the list of active entity types and their template subdirs."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_list(self, key: str, default: List[str] | None = None) -> List[str]:
        """Type-safe list retrieval from settings."""
        if default is None:
            default = []
        value = self.settings.value(key, default)
        if isinstance(value, list):
            return [
                str(item) if item is not None else ""
                for item in cast(list[object], value)
            ]
        # INI storage hands back single-element lists as plain strings
        if isinstance(value, str):
            return [value] if value else []
        return default

    @property
    def active_types(self) -> List[str]:
        """Get list of active entity types in build order."""
        return self._get_list("entities/active", KNOWN_ENTITY_TYPES.copy())

    @active_types.setter
    def active_types(self, value: List[str]) -> None:
        self.settings.setValue("entities/active", value)
        self.settings.sync()

    def activate(self, name: str) -> None:
        """Add an entity type to the active list if not already present."""
        active = self.active_types
        if name not in active:
            active.append(name)
            self.active_types = active

    def deactivate(self, name: str) -> None:
        """Remove an entity type from the active list."""
        active = self.active_types
        if name in active:
            active.remove(name)
            self.active_types = active

    def is_active(self, name: str) -> bool:
        """Check if an entity type is active."""
        return name in self.active_types

    def get_subdir(self, name: str) -> str:
        """Get the template subdirectory for an entity type."""
        default = next(
            (entity.subdir for entity in DEFAULT_ENTITY_TYPES if entity.name == name),
            name,
        )
        value = self.settings.value(f"entities/{name}/subdir", default)
        return str(value) if value else default

    def set_subdir(self, name: str, subdir: str) -> None:
        """Set the template subdirectory for an entity type."""
        self.settings.setValue(f"entities/{name}/subdir", subdir)
        self.settings.sync()

    def to_configs(self) -> Tuple[EntityTypeConfig, ...]:
        """Return every known entity type with its persisted subdir and active flag."""
        active = set(self.active_types)
        return tuple(
            replace(
                entity,
                subdir=self.get_subdir(entity.name),
                active=entity.name in active,
            )
            for entity in DEFAULT_ENTITY_TYPES
        )
