"""
Human-readable and JSON side artifacts of a build.

Renders the build summary, the validation report, the version file and
the master index.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence

import orjson

from ..database.models import DatabaseSnapshot, ValidationIssue
from ..database.snapshot import format_build_date
from .stats import BuildStatistics

SUMMARY_FILE = "database-summary.txt"
VALIDATION_REPORT_FILE = "validation-report.txt"
VERSION_FILE = "database-version.json"
MASTER_INDEX_FILE = "database-index.json"
BUILD_LOG_FILE = "build.log"
INDEXES_DIR = "indexes"


def write_json(path: Path, document: Dict[str, Any]) -> Path:
    """Write a JSON document with stable two-space indentation."""
    path.write_bytes(orjson.dumps(document, option=orjson.OPT_INDENT_2) + b"\n")
    return path


def _preview(title: str, issues: Sequence[ValidationIssue], limit: int) -> List[str]:
    lines = [f"{title}: {len(issues)}"]
    for issue in issues[:limit]:
        lines.append(f"  - {issue.message}")
    if len(issues) > limit:
        lines.append(f"  ... and {len(issues) - limit} more (see {BUILD_LOG_FILE})")
    return lines


def render_summary(
    snapshot: DatabaseSnapshot,
    stats: BuildStatistics,
    issues: Sequence[ValidationIssue],
    preview: int = 3,
) -> str:
    """Render the operator-facing build summary.

    Args:
        snapshot: Assembled snapshot
        stats: Build statistics
        issues: Every issue of the build, in collection order
        preview: Number of errors and warnings listed inline
    """
    meta = snapshot.metadata
    built_at = format_build_date(stats.finished_at) if stats.finished_at else "unknown"

    lines = [
        "Loot Database Build Summary",
        "===========================",
        f"Content version: {meta.content_version}",
        f"Sources dated:   {meta.build_date}",
        f"Built at:        {built_at} ({stats.duration:.2f}s)",
        "",
        f"Files processed:     {stats.files_processed} ({stats.files_failed} failed)",
        f"Rules seen:          {stats.rules_seen}",
        f"Overrides applied:   {stats.overrides_applied}",
        f"Corrections applied: {stats.corrections_applied}",
        f"Duplicates found:    {stats.duplicates_found}",
        "",
        "Entities:",
    ]
    for entity_type, counts in meta.counts.items():
        lines.append(
            f"  {entity_type}: {counts.discovered}/{counts.total} discovered "
            f"({counts.completion}%), {counts.missing} missing"
        )
    lines.append("Reference tables:")
    for table_name, count in meta.reference_counts.items():
        lines.append(f"  {table_name}: {count}")

    errors = [issue for issue in issues if issue.is_error]
    warnings = [issue for issue in issues if not issue.is_error]
    lines.append("")
    lines.extend(_preview("Errors", errors, preview))
    lines.extend(_preview("Warnings", warnings, preview))
    lines.append("")
    lines.append(f"Full log: see {BUILD_LOG_FILE}")
    return "\n".join(lines) + "\n"


def render_validation_report(
    snapshot: DatabaseSnapshot, issues: Sequence[ValidationIssue]
) -> str:
    """Issues grouped per entity type, with totals."""
    groups: Dict[str, List[ValidationIssue]] = {name: [] for name in snapshot.entity_types()}
    general: List[ValidationIssue] = []
    for issue in issues:
        if issue.entity_type in groups:
            groups[issue.entity_type].append(issue)
        else:
            general.append(issue)

    errors = sum(1 for issue in issues if issue.is_error)
    lines = [
        "Validation Report",
        "=================",
        f"Content version: {snapshot.metadata.content_version}",
        f"Total issues: {len(issues)} ({errors} errors, {len(issues) - errors} warnings)",
    ]

    sections = list(groups.items())
    if general:
        sections.append(("general", general))
    for name, group in sections:
        lines.append("")
        lines.append(f"[{name}] {len(group)} issues")
        for issue in group:
            lines.append(f"  {issue.severity.value.upper():7} {issue.category}: {issue.message}")

    return "\n".join(lines) + "\n"


def version_document(
    snapshot: DatabaseSnapshot,
    built_at: datetime,
    template_count: int,
    database_file: str,
) -> Dict[str, Any]:
    meta = snapshot.metadata
    return {
        "contentVersion": meta.content_version,
        "formatVersion": meta.format_version,
        "buildDate": meta.build_date,
        "builtAt": format_build_date(built_at),
        "templateCount": template_count,
        "databaseFile": database_file,
        "format": "jsonl",
    }


def master_index_document(
    snapshot: DatabaseSnapshot,
    stats: BuildStatistics,
    database_file: str,
    index_files: Sequence[str],
) -> Dict[str, Any]:
    """Entry point for consumers: versions, statistics and published indexes."""
    meta = snapshot.metadata
    return {
        "contentVersion": meta.content_version,
        "formatVersion": meta.format_version,
        "buildDate": meta.build_date,
        "databaseFile": database_file,
        "indexes": [f"{INDEXES_DIR}/{name}" for name in index_files],
        "statistics": stats.to_dict(),
    }
