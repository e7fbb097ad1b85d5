"""
Build-related settings for the loot database builder.
"""

import logging
from typing import List, Tuple, TYPE_CHECKING, cast

from .types import (
    DEFAULT_CONTENT_VERSION,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SUMMARY_PREVIEW,
    DEFAULT_TAG_PAIRS,
)

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)


class BuildSettings:
    """Manages content version, worker pool size and index declarations."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_int(self, key: str, default: int) -> int:
        """Type-safe integer retrieval from settings."""
        value = self.settings.value(key, default)
        try:
            return int(str(value)) if value is not None else default
        except (ValueError, TypeError):
            return default

    @property
    def content_version(self) -> str:
        """Game content version written into the snapshot header."""
        value = self.settings.value("build/content_version", DEFAULT_CONTENT_VERSION)
        return str(value) if value else DEFAULT_CONTENT_VERSION

    @content_version.setter
    def content_version(self, value: str) -> None:
        self.settings.setValue("build/content_version", value)
        self.settings.sync()

    @property
    def max_workers(self) -> int:
        """Size of the template extraction thread pool."""
        return self._get_int("build/max_workers", DEFAULT_MAX_WORKERS)

    @max_workers.setter
    def max_workers(self, value: int) -> None:
        if value > 0:
            self.settings.setValue("build/max_workers", value)
            self.settings.sync()
        else:
            logger.warning(
                f"Invalid worker count: {value}, keeping current: {self.max_workers}"
            )

    @property
    def summary_preview(self) -> int:
        """Number of warnings/errors listed inline in the build summary."""
        return self._get_int("build/summary_preview", DEFAULT_SUMMARY_PREVIEW)

    @summary_preview.setter
    def summary_preview(self, value: int) -> None:
        self.settings.setValue("build/summary_preview", max(0, value))
        self.settings.sync()

    @property
    def tag_pairs(self) -> Tuple[Tuple[str, str], ...]:
        """Tag pairs whose intersections are precomputed in the tag index."""
        default = [f"{a}+{b}" for a, b in DEFAULT_TAG_PAIRS]
        value = self.settings.value("build/tag_pairs", default)
        if isinstance(value, str):
            raw: List[str] = [value] if value else []
        elif isinstance(value, list):
            raw = [str(item) for item in cast(list[object], value)]
        else:
            raw = default

        pairs: List[Tuple[str, str]] = []
        for item in raw:
            left, sep, right = item.partition("+")
            if not sep or not left.strip() or not right.strip():
                logger.warning(f"Ignoring malformed tag pair: {item!r}")
                continue
            pairs.append((left.strip(), right.strip()))
        return tuple(pairs)

    @tag_pairs.setter
    def tag_pairs(self, value: List[Tuple[str, str]]) -> None:
        self.settings.setValue("build/tag_pairs", [f"{a}+{b}" for a, b in value])
        self.settings.sync()
