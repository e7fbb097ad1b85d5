"""
Merge engine: combines template candidates with overrides and corrections.

Precedence per id:
  1. template candidate (discovered name, or a missing placeholder)
  2. override, replacing every field outright
  3. correction, renaming an entity that already has a name
Every step is a pure function returning a new map, so reapplying the same
override or correction set to a merged map yields the same map.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional, Tuple

from ..overrides.models import CorrectionRecord, OverrideRecord, OverrideSet
from .models import EntityMap, EntityRecord, Provenance

logger = logging.getLogger(__name__)

SLOT_PROPERTY = "slot"


@dataclass(frozen=True)
class MergeOutcome:
    """Merged records of one entity type plus application counters."""
    entity_type: str
    records: EntityMap
    overrides_applied: int = 0
    corrections_applied: int = 0


def base_records(candidates: Mapping[int, Optional[str]]) -> EntityMap:
    """Turn a candidate map into template-discovered records."""
    return {
        entity_id: EntityRecord(id=entity_id, name=name)
        for entity_id, name in sorted(candidates.items())
    }


def apply_overrides(
    records: EntityMap, overrides: Mapping[int, OverrideRecord]
) -> Tuple[EntityMap, int]:
    """Apply overrides on top of a record map.

    Overrides may introduce ids no template has seen yet; the validator
    reports those separately.

    Returns:
        (new record map, number of overrides applied)
    """
    merged = dict(records)
    for entity_id, override in sorted(overrides.items()):
        merged[entity_id] = EntityRecord(
            id=entity_id,
            name=override.name,
            description=override.description,
            properties=dict(override.properties),
            notes=override.notes,
            provenance=Provenance.OVERRIDE_APPLIED,
        )
    return merged, len(overrides)


def _correction_note(record: EntityRecord, correction: CorrectionRecord) -> str:
    note = f"[{correction.reason or 'correction'}]"
    if correction.explanation:
        note += f" {correction.explanation}"
    return f"{note} (was: {record.name})"


def apply_corrections(
    records: EntityMap, corrections: Mapping[int, CorrectionRecord]
) -> Tuple[EntityMap, int]:
    """Apply corrections to named records only.

    A correction never creates an id and never names a placeholder. A
    record already carrying the corrected name is left untouched.

    Returns:
        (new record map, number of corrections that changed a record)
    """
    merged = dict(records)
    applied = 0
    for entity_id, correction in sorted(corrections.items()):
        record = merged.get(entity_id)
        if record is None or record.name is None:
            continue
        if record.name == correction.corrected_name:
            continue

        if correction.original_name and correction.original_name != record.name:
            logger.debug(
                f"Correction for ID {entity_id} expected \"{correction.original_name}\", "
                f"found \"{record.name}\""
            )

        note = _correction_note(record, correction)
        merged[entity_id] = replace(
            record,
            name=correction.corrected_name,
            notes=f"{record.notes}; {note}" if record.notes else note,
            provenance=Provenance.CORRECTION_APPLIED,
        )
        applied += 1
    return merged, applied


def apply_slots(records: EntityMap, slots: Mapping[int, str]) -> EntityMap:
    """Record the equipment slot of named affixes that do not declare one."""
    merged = dict(records)
    for entity_id, slot in slots.items():
        record = merged.get(entity_id)
        if record is None or record.missing or SLOT_PROPERTY in record.properties:
            continue
        properties = dict(record.properties)
        properties[SLOT_PROPERTY] = slot
        merged[entity_id] = replace(record, properties=properties)
    return merged


class MergeEngine:
    """Produces the final per-type record maps."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def merge(
        self,
        entity_type: str,
        candidates: Mapping[int, Optional[str]],
        override_set: Optional[OverrideSet] = None,
        slots: Optional[Mapping[int, str]] = None,
    ) -> MergeOutcome:
        """Merge one entity type.

        Args:
            entity_type: Namespace being merged
            candidates: id -> discovered name (None for placeholders)
            override_set: Overrides and corrections for this type
            slots: Affix id -> slot classification, if any

        Returns:
            MergeOutcome with records sorted by id
        """
        records = base_records(candidates)
        overrides_applied = 0
        corrections_applied = 0

        if override_set is not None:
            records, overrides_applied = apply_overrides(records, override_set.overrides)
            records, corrections_applied = apply_corrections(
                records, override_set.corrections
            )

        if slots:
            records = apply_slots(records, slots)

        records = dict(sorted(records.items()))
        discovered = sum(1 for record in records.values() if not record.missing)
        self.logger.info(
            f"Merged {entity_type}: {len(records)} ids, {discovered} named, "
            f"{overrides_applied} overrides, {corrections_applied} corrections"
        )

        return MergeOutcome(
            entity_type=entity_type,
            records=records,
            overrides_applied=overrides_applied,
            corrections_applied=corrections_applied,
        )

    def merge_all(
        self,
        candidates: Mapping[str, Mapping[int, Optional[str]]],
        override_sets: Mapping[str, OverrideSet],
        slots: Optional[Mapping[str, Mapping[int, str]]] = None,
    ) -> Dict[str, MergeOutcome]:
        """Merge every entity type present in the candidate maps."""
        slots = slots or {}
        return {
            entity_type: self.merge(
                entity_type,
                type_candidates,
                override_sets.get(entity_type),
                slots.get(entity_type),
            )
            for entity_type, type_candidates in candidates.items()
        }
