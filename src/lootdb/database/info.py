"""
Human-readable report about an existing snapshot.
"""

from typing import Iterable, List, Tuple

from .models import DatabaseSnapshot

MAX_RANGES_SHOWN = 10


def compress_ranges(ids: Iterable[int]) -> List[Tuple[int, int]]:
    """Collapse ids into inclusive (start, end) runs.

    >>> compress_ranges([1, 2, 3, 7, 9, 10])
    [(1, 3), (7, 7), (9, 10)]
    """
    runs: List[Tuple[int, int]] = []
    for entity_id in sorted(set(ids)):
        if runs and entity_id == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], entity_id)
        else:
            runs.append((entity_id, entity_id))
    return runs


def format_ranges(runs: List[Tuple[int, int]], limit: int = MAX_RANGES_SHOWN) -> str:
    if not runs:
        return "none"
    parts = [str(start) if start == end else f"{start}-{end}" for start, end in runs[:limit]]
    if len(runs) > limit:
        parts.append(f"... ({len(runs) - limit} more)")
    return ", ".join(parts)


def find_gaps(ids: Iterable[int]) -> List[Tuple[int, int]]:
    """Ids absent from the snapshot between the lowest and highest known id."""
    runs = compress_ranges(ids)
    return [(previous[1] + 1, current[0] - 1) for previous, current in zip(runs, runs[1:])]


def describe_snapshot(snapshot: DatabaseSnapshot) -> str:
    """Render versions, counts, completion, id ranges and gaps."""
    meta = snapshot.metadata
    lines = [
        "Loot Database Info",
        "==================",
        f"Content version: {meta.content_version}",
        f"Format version:  {meta.format_version}",
        f"Build date:      {meta.build_date}",
        f"Overrides applied:   {meta.overrides_applied}",
        f"Corrections applied: {meta.corrections_applied}",
        "",
        "Reference tables:",
    ]
    for table_name, table in snapshot.references.items():
        lines.append(f"  {table_name}: {len(table)}")

    for entity_type, records in snapshot.entities.items():
        counts = meta.counts.get(entity_type)
        ids = [record.id for record in records]
        missing = [record.id for record in records if record.missing]
        lines.append("")
        lines.append(f"{entity_type}:")
        if counts is not None:
            lines.append(
                f"  total {counts.total}, discovered {counts.discovered}, "
                f"missing {counts.missing} ({counts.completion}% complete)"
            )
        if ids:
            lines.append(f"  id range: {min(ids)}-{max(ids)}")
        lines.append(f"  undiscovered ids: {format_ranges(compress_ranges(missing))}")
        lines.append(f"  gaps: {format_ranges(find_gaps(ids))}")

    return "\n".join(lines) + "\n"
