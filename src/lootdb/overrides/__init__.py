"""
Operator-maintained overrides and corrections.
"""

from .models import CorrectionRecord, OverrideRecord, OverrideSet
from .store import OverrideStore, correction_file, override_file

__all__ = [
    "CorrectionRecord",
    "OverrideRecord",
    "OverrideSet",
    "OverrideStore",
    "correction_file",
    "override_file",
]
