"""
Path-related settings for the loot database builder.
"""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

DEFAULT_TEMPLATE_DIR = "TemplateFilters"
DEFAULT_OVERRIDE_DIR = "Overrides"
DEFAULT_OUTPUT_DIR = "Data"


class PathSettings:
    """Manages input and output directory settings."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_path(self, key: str, default: str) -> Path:
        """Type-safe path retrieval; empty values fall back to default."""
        value = self.settings.value(key, "")
        path_str = str(value) if value is not None else ""
        return Path(path_str) if path_str else Path(default)

    def _set_path(self, key: str, value: Path | None) -> None:
        self.settings.setValue(key, str(value) if value else "")
        self.settings.sync()

    @property
    def template_root(self) -> Path:
        """Root directory holding reference tables and per-type template dirs."""
        return self._get_path("paths/templates", DEFAULT_TEMPLATE_DIR)

    @template_root.setter
    def template_root(self, value: Path | None) -> None:
        self._set_path("paths/templates", value)

    @property
    def override_root(self) -> Path:
        """Root directory holding override and correction files."""
        return self._get_path("paths/overrides", DEFAULT_OVERRIDE_DIR)

    @override_root.setter
    def override_root(self, value: Path | None) -> None:
        self._set_path("paths/overrides", value)

    @property
    def output_dir(self) -> Path:
        """Directory receiving the snapshot, indexes and reports."""
        return self._get_path("paths/output", DEFAULT_OUTPUT_DIR)

    @output_dir.setter
    def output_dir(self, value: Path | None) -> None:
        self._set_path("paths/output", value)
