"""
Utility modules for the loot database builder.
"""

from .logging_config import (
    BuildLogFormatter,
    ColoredFormatter,
    CSVFormatter,
    create_build_log_handler,
    setup_logging,
)

__all__ = [
    "BuildLogFormatter",
    "ColoredFormatter",
    "CSVFormatter",
    "create_build_log_handler",
    "setup_logging",
]
