"""
Single-threaded reduction of per-file extraction results.

Per-file results arrive in whatever order the worker pool finishes them;
the reducer always walks them in sorted path order so that the merged
candidate map is a pure function of the corpus.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple, TypeAlias

from ..database.models import ValidationIssue
from .models import Discovered, ExtractionResult

logger = logging.getLogger(__name__)

CandidateMap: TypeAlias = Dict[int, Optional[str]]
"""Maps id -> discovered name, or None for ids only seen as skeletons."""


def reduce_results(
    entity_type: str, results: Iterable[ExtractionResult]
) -> Tuple[CandidateMap, List[ValidationIssue]]:
    """Merge per-file entries of one entity type into a candidate map.

    Rules across files:
      * a skeleton never overwrites a known id
      * a discovered name replaces a skeleton-only id
      * conflicting discovered names keep the first (sorted file order)
        and produce a 'conflicting-name' warning
    """
    candidates: CandidateMap = {}
    origins: Dict[int, str] = {}
    issues: List[ValidationIssue] = []

    for result in sorted(results, key=lambda r: str(r.source)):
        file_name = result.source.name
        for entry in result.entries:
            if entry.id not in candidates:
                candidates[entry.id] = entry.name if isinstance(entry, Discovered) else None
                origins[entry.id] = file_name
                continue

            if not isinstance(entry, Discovered):
                logger.debug(f"{entity_type} ID {entry.id} repeated in {file_name}")
                continue

            current = candidates[entry.id]
            if current is None:
                candidates[entry.id] = entry.name
                origins[entry.id] = file_name
            elif current != entry.name:
                message = (
                    f"{entity_type} ID {entry.id} named \"{current}\" in {origins[entry.id]} "
                    f"and \"{entry.name}\" in {file_name}; keeping \"{current}\""
                )
                logger.warning(message)
                issues.append(
                    ValidationIssue.warning(
                        "conflicting-name",
                        message,
                        entity_type=entity_type,
                        ids=(entry.id,),
                        source=str(result.source),
                    )
                )

    return candidates, issues
