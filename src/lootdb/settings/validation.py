"""
Settings validation system for the loot database builder.
"""

import logging
from typing import List, TYPE_CHECKING

from .entity_types import KNOWN_ENTITY_TYPES
from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        errors: List[str] = []
        warnings: List[str] = []

        template_root = self.settings.template_root
        if not template_root.exists():
            errors.append(f"Template directory does not exist: {template_root}")
        elif not template_root.is_dir():
            errors.append(f"Template path is not a directory: {template_root}")

        override_root = self.settings.override_root
        if not override_root.exists():
            warnings.append(
                f"Override directory does not exist, no overrides will apply: {override_root}"
            )

        output_dir = self.settings.output_dir
        if output_dir.exists() and not output_dir.is_dir():
            errors.append(f"Output path is not a directory: {output_dir}")
        elif not output_dir.exists() and not output_dir.parent.exists():
            warnings.append(f"Output directory parent does not exist: {output_dir.parent}")

        active = self.settings.entity_types.active_types
        if not active:
            warnings.append("No entity types are active, snapshot will hold reference tables only")
        for name in active:
            if name not in KNOWN_ENTITY_TYPES:
                warnings.append(f"Unknown entity type in active list: {name}")

        if self.settings.build.max_workers < 1:
            errors.append(f"Invalid worker count: {self.settings.build.max_workers}")

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
