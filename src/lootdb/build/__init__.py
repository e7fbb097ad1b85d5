"""
Build orchestration: pipeline stages, reports and staged publishing.
"""

from .orchestrator import BuildOrchestrator, BuildResult, BuildState, newest_mtime
from .reports import (
    BUILD_LOG_FILE,
    INDEXES_DIR,
    MASTER_INDEX_FILE,
    SUMMARY_FILE,
    VALIDATION_REPORT_FILE,
    VERSION_FILE,
    render_summary,
    render_validation_report,
)
from .stats import BuildStatistics

__all__ = [
    "BuildOrchestrator",
    "BuildResult",
    "BuildState",
    "BuildStatistics",
    "newest_mtime",
    "render_summary",
    "render_validation_report",
    "BUILD_LOG_FILE",
    "INDEXES_DIR",
    "MASTER_INDEX_FILE",
    "SUMMARY_FILE",
    "VALIDATION_REPORT_FILE",
    "VERSION_FILE",
]
