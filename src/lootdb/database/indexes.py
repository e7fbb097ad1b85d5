"""
Index builder for the assembled snapshot.

Produces three derived lookups:
  * identifier index: entity type -> id -> record
  * tag index: tag -> entity type -> ids, plus declared tag-pair intersections
  * mechanic index: mechanic -> entity type -> ids, and the reverse mapping

Tags and mechanics come from the records' enrichment properties and from
keyword matching on names. Every index can be rendered on its own, so a
failure in one never affects the others.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from .merge import SLOT_PROPERTY
from .models import DatabaseSnapshot, EntityRecord
from .snapshot import canonical

ID_LOOKUP_FILE = "id-lookup.json"
TAGS_INDEX_FILE = "tags-index.json"
MECHANICS_INDEX_FILE = "mechanics-index.json"


def _keywords(*words: str) -> Pattern[str]:
    # Prefix match on word starts: 'resist' also matches 'Resistances'
    return re.compile(r"\b(?:" + "|".join(re.escape(word) for word in words) + ")", re.IGNORECASE)


TAG_KEYWORDS: Dict[str, Pattern[str]] = {
    "Armour": _keywords("armour", "armor"),
    "Bleed": _keywords("bleed"),
    "Block": _keywords("block"),
    "Cold": _keywords("cold", "freeze", "frost", "chill"),
    "Critical": _keywords("critical"),
    "Damage": _keywords("damage"),
    "Dodge": _keywords("dodge"),
    "Elemental": _keywords("elemental"),
    "Fire": _keywords("fire", "ignite", "burn"),
    "Health": _keywords("health"),
    "Lightning": _keywords("lightning", "shock"),
    "Mana": _keywords("mana"),
    "Minion": _keywords("minion", "companion", "summon"),
    "Necrotic": _keywords("necrotic"),
    "Physical": _keywords("physical"),
    "Poison": _keywords("poison"),
    "Regen": _keywords("regen"),
    "Resistance": _keywords("resist"),
    "Speed": _keywords("speed", "haste"),
    "Void": _keywords("void"),
    "Ward": _keywords("ward"),
}

SLOT_TAGS: Dict[str, str] = {"idol": "Idol"}

DAMAGE_TYPE_MECHANICS: Dict[str, Pattern[str]] = {
    "Bleed": TAG_KEYWORDS["Bleed"],
    "Cold": TAG_KEYWORDS["Cold"],
    "Fire": TAG_KEYWORDS["Fire"],
    "Lightning": TAG_KEYWORDS["Lightning"],
    "Necrotic": TAG_KEYWORDS["Necrotic"],
    "Physical": TAG_KEYWORDS["Physical"],
    "Poison": TAG_KEYWORDS["Poison"],
    "Void": TAG_KEYWORDS["Void"],
}

MECHANIC_HIERARCHY: Dict[str, Tuple[str, ...]] = {
    "Damage Over Time": ("Bleed", "Poison"),
    "Elemental": ("Cold", "Fire", "Lightning"),
}

TypedIds = Dict[str, List[int]]
"""entity type -> ascending ids"""


def _parents(mechanic: str) -> List[str]:
    return [parent for parent, children in MECHANIC_HIERARCHY.items() if mechanic in children]


def record_tags(record: EntityRecord) -> List[str]:
    """Explicit tags plus tags derived from the name and slot, sorted."""
    if record.missing:
        return []
    tags: Set[str] = set(record.tags)
    name = record.name or ""
    tags.update(tag for tag, pattern in TAG_KEYWORDS.items() if pattern.search(name))
    slot_tag = SLOT_TAGS.get(str(record.properties.get(SLOT_PROPERTY, "")).lower())
    if slot_tag:
        tags.add(slot_tag)
    return sorted(tags)


def record_mechanics(record: EntityRecord) -> List[str]:
    """Explicit mechanics plus damage types from the name, with parents rolled up."""
    if record.missing:
        return []
    mechanics: Set[str] = set(record.mechanics)
    name = record.name or ""
    mechanics.update(
        mechanic for mechanic, pattern in DAMAGE_TYPE_MECHANICS.items() if pattern.search(name)
    )
    for mechanic in list(mechanics):
        mechanics.update(_parents(mechanic))
    return sorted(mechanics)


def _invert(
    snapshot: DatabaseSnapshot, labels: Callable[[EntityRecord], List[str]]
) -> Dict[str, TypedIds]:
    inverted: Dict[str, TypedIds] = {}
    for entity_type, records in snapshot.entities.items():
        for record in records:
            for label in labels(record):
                inverted.setdefault(label, {}).setdefault(entity_type, []).append(record.id)
    return {
        label: {entity_type: sorted(ids) for entity_type, ids in sorted(by_type.items())}
        for label, by_type in sorted(inverted.items())
    }


def _pair_key(pair: Tuple[str, str]) -> str:
    return f"{pair[0]}+{pair[1]}"


@dataclass
class DatabaseIndexes:
    """In-memory indexes with O(1) identifier lookup."""
    identifiers: Dict[str, Dict[int, EntityRecord]] = field(default_factory=dict)
    by_tag: Dict[str, TypedIds] = field(default_factory=dict)
    combined_tags: Dict[str, TypedIds] = field(default_factory=dict)
    by_mechanic: Dict[str, TypedIds] = field(default_factory=dict)
    entity_mechanics: Dict[str, Dict[int, List[str]]] = field(default_factory=dict)

    def lookup(self, entity_type: str, entity_id: int) -> Optional[EntityRecord]:
        return self.identifiers.get(entity_type, {}).get(entity_id)

    def ids_with_tag(self, tag: str, entity_type: str) -> List[int]:
        return list(self.by_tag.get(tag, {}).get(entity_type, []))

    def ids_with_mechanic(self, mechanic: str, entity_type: str) -> List[int]:
        return list(self.by_mechanic.get(mechanic, {}).get(entity_type, []))


class IndexBuilder:
    """Builds identifier, tag and mechanic indexes from a snapshot."""

    def __init__(self, tag_pairs: Sequence[Tuple[str, str]] = ()):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.tag_pairs = tuple(tag_pairs)

    def build_identifiers(self, snapshot: DatabaseSnapshot) -> Dict[str, Dict[int, EntityRecord]]:
        return {
            entity_type: {record.id: record for record in records}
            for entity_type, records in snapshot.entities.items()
        }

    def build_tags(self, snapshot: DatabaseSnapshot) -> Tuple[Dict[str, TypedIds], Dict[str, TypedIds]]:
        """Tag -> ids, and intersections for the declared tag pairs only."""
        by_tag = _invert(snapshot, record_tags)

        combined: Dict[str, TypedIds] = {}
        for pair in self.tag_pairs:
            first = by_tag.get(pair[0], {})
            second = by_tag.get(pair[1], {})
            intersection: TypedIds = {}
            for entity_type in sorted(set(first) & set(second)):
                ids = sorted(set(first[entity_type]) & set(second[entity_type]))
                if ids:
                    intersection[entity_type] = ids
            combined[_pair_key(pair)] = intersection

        self.logger.debug(f"Tag index: {len(by_tag)} tags, {len(combined)} combinations")
        return by_tag, combined

    def build_mechanics(
        self, snapshot: DatabaseSnapshot
    ) -> Tuple[Dict[str, TypedIds], Dict[str, Dict[int, List[str]]]]:
        """Mechanic -> ids, and entity -> mechanics."""
        by_mechanic = _invert(snapshot, record_mechanics)

        entity_mechanics: Dict[str, Dict[int, List[str]]] = {}
        for entity_type, records in snapshot.entities.items():
            mapping: Dict[int, List[str]] = {}
            for record in records:
                mechanics = record_mechanics(record)
                if mechanics:
                    mapping[record.id] = mechanics
            if mapping:
                entity_mechanics[entity_type] = mapping

        self.logger.debug(f"Mechanic index: {len(by_mechanic)} mechanics")
        return by_mechanic, entity_mechanics

    def build(self, snapshot: DatabaseSnapshot) -> DatabaseIndexes:
        """Build all indexes in memory."""
        by_tag, combined = self.build_tags(snapshot)
        by_mechanic, entity_mechanics = self.build_mechanics(snapshot)
        return DatabaseIndexes(
            identifiers=self.build_identifiers(snapshot),
            by_tag=by_tag,
            combined_tags=combined,
            by_mechanic=by_mechanic,
            entity_mechanics=entity_mechanics,
        )

    # JSON documents written to the indexes directory

    def identifier_document(self, snapshot: DatabaseSnapshot) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        for entity_type, by_id in self.build_identifiers(snapshot).items():
            document[entity_type] = {
                str(entity_id): _record_document(record)
                for entity_id, record in sorted(by_id.items())
            }
        return document

    def tags_document(self, snapshot: DatabaseSnapshot) -> Dict[str, Any]:
        by_tag, combined = self.build_tags(snapshot)
        return {"byTag": by_tag, "combinedTags": combined}

    def mechanics_document(self, snapshot: DatabaseSnapshot) -> Dict[str, Any]:
        by_mechanic, entity_mechanics = self.build_mechanics(snapshot)
        return {
            "byMechanic": by_mechanic,
            "entityToMechanics": {
                entity_type: {str(entity_id): mechanics for entity_id, mechanics in sorted(mapping.items())}
                for entity_type, mapping in entity_mechanics.items()
            },
            "mechanicHierarchy": {
                parent: list(children) for parent, children in sorted(MECHANIC_HIERARCHY.items())
            },
        }

    def renderers(self) -> Iterable[Tuple[str, Callable[[DatabaseSnapshot], Dict[str, Any]]]]:
        """(file name, document builder) for every published index."""
        return (
            (ID_LOOKUP_FILE, self.identifier_document),
            (TAGS_INDEX_FILE, self.tags_document),
            (MECHANICS_INDEX_FILE, self.mechanics_document),
        )


def _record_document(record: EntityRecord) -> Dict[str, Any]:
    if record.missing:
        return {"id": record.id, "missing": True}
    document: Dict[str, Any] = {"id": record.id, "name": record.name}
    if record.description is not None:
        document["description"] = record.description
    if record.properties:
        document["properties"] = canonical(record.properties)
    if record.notes is not None:
        document["notes"] = record.notes
    document["provenance"] = record.provenance.value
    return document
