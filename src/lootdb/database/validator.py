"""
Validator: classifies data-quality issues in merged record maps.

The validator never mutates records and nothing it reports stops a build.
"""

import logging
from typing import Collection, Dict, List, Optional, Tuple

from ..overrides.models import OverrideSet
from .merge import SLOT_PROPERTY
from .models import EntityMap, Severity, ValidationIssue

AMBIGUOUS_MARKERS = ("Unknown", "???")


class Validator:
    """Runs duplicate, ambiguity and structural scans on one entity type."""

    def __init__(self, ambiguous_markers: Tuple[str, ...] = AMBIGUOUS_MARKERS):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.ambiguous_markers = ambiguous_markers

    def validate(
        self,
        entity_type: str,
        records: EntityMap,
        template_ids: Collection[int],
        override_set: Optional[OverrideSet] = None,
    ) -> List[ValidationIssue]:
        """Run every scan and return the issues found, in scan order."""
        issues: List[ValidationIssue] = []
        issues.extend(self.find_duplicate_names(entity_type, records))
        issues.extend(self.find_ambiguous_names(entity_type, records))
        if override_set is not None:
            issues.extend(
                self.find_unmatched_references(entity_type, records, template_ids, override_set)
            )

        for issue in issues:
            level = logging.ERROR if issue.severity is Severity.ERROR else logging.WARNING
            self.logger.log(level, issue.message)

        self.logger.info(f"Validated {entity_type}: {len(issues)} issues")
        return issues

    def find_duplicate_names(
        self, entity_type: str, records: EntityMap
    ) -> List[ValidationIssue]:
        """One warning per extra id sharing a name with a lower id.

        Names are compared within their slot, so an idol affix and an item
        affix may share a label.
        """
        by_name: Dict[Tuple[str, Optional[str]], List[int]] = {}
        for entity_id in sorted(records):
            record = records[entity_id]
            if record.name is None:
                continue
            slot = record.properties.get(SLOT_PROPERTY)
            key = (record.name, str(slot) if slot is not None else None)
            by_name.setdefault(key, []).append(entity_id)

        issues: List[ValidationIssue] = []
        for (name, slot), ids in by_name.items():
            first = ids[0]
            for extra in ids[1:]:
                where = f" ({slot})" if slot else ""
                issues.append(
                    ValidationIssue.warning(
                        "duplicate-name",
                        f"{entity_type} IDs {first} and {extra} share the name \"{name}\"{where}",
                        entity_type=entity_type,
                        ids=(first, extra),
                    )
                )
        return issues

    def find_ambiguous_names(
        self, entity_type: str, records: EntityMap
    ) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for entity_id, record in sorted(records.items()):
            if record.name is None:
                continue
            if any(marker in record.name for marker in self.ambiguous_markers):
                issues.append(
                    ValidationIssue.warning(
                        "ambiguous-name",
                        f"{entity_type} ID {entity_id} has an ambiguous name \"{record.name}\"",
                        entity_type=entity_type,
                        ids=(entity_id,),
                    )
                )
        return issues

    def find_unmatched_references(
        self,
        entity_type: str,
        records: EntityMap,
        template_ids: Collection[int],
        override_set: OverrideSet,
    ) -> List[ValidationIssue]:
        """Overrides for ids no template has, and corrections that could not apply."""
        known = set(template_ids)
        issues: List[ValidationIssue] = []

        for entity_id in sorted(override_set.overrides):
            if entity_id not in known:
                issues.append(
                    ValidationIssue.warning(
                        "unmatched-override",
                        f"{entity_type} override for ID {entity_id} matches no template rule",
                        entity_type=entity_type,
                        ids=(entity_id,),
                    )
                )

        for entity_id in sorted(override_set.corrections):
            record = records.get(entity_id)
            if record is None:
                reason = "ID does not exist"
            elif record.name is None:
                reason = "ID has no name yet"
            else:
                continue
            issues.append(
                ValidationIssue.warning(
                    "unmatched-correction",
                    f"{entity_type} correction for ID {entity_id} ignored: {reason}",
                    entity_type=entity_type,
                    ids=(entity_id,),
                )
            )

        return issues
