"""
lootdb: game database builder for loot filter templates

Assembles affix, unique and set item data from loot filter templates and
operator overrides into a versioned snapshot with lookup indexes.
"""

__version__ = "0.1.0"
__author__ = "lootdb Contributors"

from .build import BuildOrchestrator, BuildResult, BuildState
from .database import DatabaseSnapshot, EntityRecord, IndexBuilder, read_snapshot
from .settings import AppSettings, BuildConfig
from .utils.logging_config import setup_logging

__all__ = [
    # Build
    "BuildOrchestrator",
    "BuildResult",
    "BuildState",
    # Configuration
    "AppSettings",
    "BuildConfig",
    "setup_logging",
    # Data
    "DatabaseSnapshot",
    "EntityRecord",
    "IndexBuilder",
    "read_snapshot",
]
