"""
Core settings management for the loot database builder.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QSettings

from .types import BuildConfig, ConfigVersion, ValidationResult
from .validation import SettingsValidator
from .paths import PathSettings
from .logging import LoggingSettings
from .entity_types import EntityTypeSettings
from .build import BuildSettings

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Configuration management using QSettings.

    Provides type-safe access to persisted settings and turns them into
    the immutable BuildConfig the pipeline runs on.
    """

    def __init__(
        self, profile: str = "default", settings_file: Optional[Path] = None
    ):
        """Initialize settings for a profile.

        Args:
            profile: Settings profile name (default: "default")
            settings_file: Optional INI file to use instead of the native store
        """
        if settings_file is not None:
            self.settings = QSettings(str(settings_file), QSettings.Format.IniFormat)
        else:
            self.settings = QSettings("lootdb", "lootdb")
        self.profile = profile

        # Hierarchy: lootdb/lootdb/<profile>/...
        self.settings.beginGroup(profile)

        self._validator = SettingsValidator(self)
        self._paths = PathSettings(self.settings)
        self._logging = LoggingSettings(self.settings)
        self._entity_types = EntityTypeSettings(self.settings)
        self._build = BuildSettings(self.settings)

        self._ensure_version()

        logger.debug(
            f"Settings initialized for profile '{profile}', stored at: {self.settings.fileName()}"
        )

    def _ensure_version(self) -> None:
        """Initialize the configuration version on first run."""
        current_version = str(self.settings.value("app/version", "") or "")
        if not current_version:
            self.settings.setValue("app/version", ConfigVersion.CURRENT.value)
            self.settings.sync()
            logger.info("First run detected, initializing configuration")
        elif current_version != ConfigVersion.CURRENT.value:
            logger.warning(
                f"Unknown configuration version {current_version}, "
                f"expected {ConfigVersion.CURRENT.value}"
            )

    # === SUBSYSTEM ACCESS ===

    @property
    def paths(self) -> PathSettings:
        """Access path settings subsystem."""
        return self._paths

    @property
    def logging(self) -> LoggingSettings:
        """Access logging settings subsystem."""
        return self._logging

    @property
    def entity_types(self) -> EntityTypeSettings:
        """Access entity type settings subsystem."""
        return self._entity_types

    @property
    def build(self) -> BuildSettings:
        """Access build settings subsystem."""
        return self._build

    @property
    def version(self) -> str:
        """Get configuration version."""
        value = self.settings.value("app/version", ConfigVersion.CURRENT.value)
        return str(value) if value is not None else ConfigVersion.CURRENT.value

    # === PATH SETTINGS (DELEGATED) ===

    @property
    def template_root(self) -> Path:
        return self._paths.template_root

    @template_root.setter
    def template_root(self, value: Optional[Path]) -> None:
        self._paths.template_root = value

    @property
    def override_root(self) -> Path:
        return self._paths.override_root

    @override_root.setter
    def override_root(self, value: Optional[Path]) -> None:
        self._paths.override_root = value

    @property
    def output_dir(self) -> Path:
        return self._paths.output_dir

    @output_dir.setter
    def output_dir(self, value: Optional[Path]) -> None:
        self._paths.output_dir = value

    # === LOGGING SETTINGS (DELEGATED) ===

    @property
    def console_logging(self) -> bool:
        return self._logging.console_logging

    @property
    def console_log_level(self) -> str:
        return self._logging.console_log_level

    @property
    def console_use_colors(self) -> bool:
        return self._logging.console_use_colors

    @property
    def file_logging(self) -> bool:
        return self._logging.file_logging

    @property
    def log_file_path(self) -> str:
        return self._logging.log_file_path

    # === VALIDATION ===

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        return self._validator.validate()

    def get_settings_file_path(self) -> str:
        """Get path to the settings storage (file or registry key)."""
        return self.settings.fileName()

    # === BUILD CONFIG ===

    def build_config(
        self,
        content_version: Optional[str] = None,
        build_timestamp: Optional[datetime] = None,
    ) -> BuildConfig:
        """Snapshot the current settings into an immutable BuildConfig.

        Args:
            content_version: Overrides the persisted content version for this build
            build_timestamp: Fixed metadata timestamp (default: newest source mtime)
        """
        return BuildConfig(
            template_root=self.template_root,
            override_root=self.override_root,
            output_dir=self.output_dir,
            content_version=content_version or self._build.content_version,
            entity_types=self._entity_types.to_configs(),
            max_workers=max(1, self._build.max_workers),
            tag_pairs=self._build.tag_pairs,
            summary_preview=self._build.summary_preview,
            build_timestamp=build_timestamp,
        )
