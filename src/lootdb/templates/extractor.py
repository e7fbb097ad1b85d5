"""
Rule extraction for loot-filter template files.

Template files are XML loot filters (``<ItemFilter><rules><Rule>``). Each
rule is turned into a tagged parse result once, here:

* ``Skeleton`` - the label still reads ``<Type> ID: <n>``
* ``Discovered`` - the label was replaced by a tester; the id comes from
  the rule's structured condition block instead.

Malformed rules and files are reported as issues and skipped; nothing in
this module aborts a build.
"""

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..database.models import ValidationIssue
from ..errors import RecoverableParseError
from ..settings.types import ConditionKind, EntityTypeConfig, ReferenceTableConfig
from .models import Discovered, ExtractionResult, ReferenceExtraction, RuleEntry, Skeleton

logger = logging.getLogger(__name__)

IDOL_AFFIXES_LABEL = "All Affixes for Idols"
ITEM_AFFIXES_LABEL = "All Affixes for Items"


def load_rules(path: Path) -> List[ET.Element]:
    """Parse a loot-filter file and return its rule elements.

    Raises:
        RecoverableParseError: If the file is not a readable ItemFilter document
    """
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise RecoverableParseError(path, f"invalid XML: {e}") from e
    except OSError as e:
        raise RecoverableParseError(path, f"cannot read file: {e}") from e

    root = tree.getroot()
    if root.tag != "ItemFilter":
        raise RecoverableParseError(path, f"expected <ItemFilter> root, found <{root.tag}>")

    rules = root.find("rules")
    if rules is None:
        raise RecoverableParseError(path, "missing <rules> element")
    return rules.findall("Rule")


def _parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    text = text.strip()
    if not re.fullmatch(r"\d+", text, re.ASCII):
        return None
    return int(text)


class RuleExtractor:
    """Extracts (id, optional name) candidates from one entity type's templates."""

    def __init__(self, entity: EntityTypeConfig):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.entity = entity
        self._placeholder = re.compile(
            rf"^\s*{re.escape(entity.placeholder_label)}\s+ID:\s*(\d+)\s*$",
            re.IGNORECASE | re.ASCII,
        )

    def classify(self, rule: ET.Element, source: Path, rule_index: int) -> Optional[RuleEntry]:
        """Turn one rule into a Skeleton or Discovered entry.

        Returns None for rules without a label.

        Raises:
            RecoverableParseError: If a filled rule carries no usable id
        """
        label = (rule.findtext("nameOverride") or "").strip()
        if not label:
            return None

        match = self._placeholder.match(label)
        if match:
            return Skeleton(id=int(match.group(1)), rule_index=rule_index)

        if self.entity.condition_kind is ConditionKind.AFFIX:
            entity_id = self._affix_condition_id(rule, source, rule_index)
        else:
            entity_id = self._unique_condition_id(rule, source, rule_index)
        return Discovered(id=entity_id, name=label, rule_index=rule_index)

    @staticmethod
    def _affix_condition_id(rule: ET.Element, source: Path, rule_index: int) -> int:
        for condition in rule.findall("conditions/Condition"):
            affixes = condition.find("affixes")
            if affixes is None:
                continue
            values = affixes.findall("int")
            if len(values) != 1:
                raise RecoverableParseError(
                    source,
                    f"affix condition lists {len(values)} ids, expected exactly one",
                    rule_index,
                )
            entity_id = _parse_int(values[0].text)
            if entity_id is None:
                raise RecoverableParseError(
                    source, f"affix id is not a non-negative integer: {values[0].text!r}", rule_index
                )
            return entity_id
        raise RecoverableParseError(source, "no affix condition found", rule_index)

    @staticmethod
    def _unique_condition_id(rule: ET.Element, source: Path, rule_index: int) -> int:
        for condition in rule.findall("conditions/Condition"):
            unique_id = condition.findtext("Uniques/UniqueId")
            if unique_id is None:
                continue
            entity_id = _parse_int(unique_id)
            if entity_id is None:
                raise RecoverableParseError(
                    source, f"unique id is not a non-negative integer: {unique_id!r}", rule_index
                )
            return entity_id
        raise RecoverableParseError(source, "no unique condition found", rule_index)

    def extract_file(self, path: Path) -> ExtractionResult:
        """Extract every rule of one template file.

        Within the file the first entry for an id wins; a later rule naming
        the same id differently produces a warning citing both names. A
        discovered name still replaces an earlier skeleton of the same id.
        """
        type_name = self.entity.name
        try:
            rules = load_rules(path)
        except RecoverableParseError as e:
            self.logger.error(f"Skipping {type_name} template: {e}")
            return ExtractionResult(
                source=path,
                entity_type=type_name,
                issues=(
                    ValidationIssue.error(
                        "parse-error", str(e), entity_type=type_name, source=str(path)
                    ),
                ),
                failed=True,
            )

        entries: Dict[int, RuleEntry] = {}
        issues: List[ValidationIssue] = []

        for rule_index, rule in enumerate(rules):
            try:
                entry = self.classify(rule, path, rule_index)
            except RecoverableParseError as e:
                self.logger.error(f"Skipping rule: {e}")
                issues.append(
                    ValidationIssue.error(
                        "parse-error", str(e), entity_type=type_name, source=str(path)
                    )
                )
                continue

            if entry is None:
                self.logger.debug(f"{path.name} rule #{rule_index} has no label - ignored")
                continue

            existing = entries.get(entry.id)
            if existing is None:
                entries[entry.id] = entry
                if isinstance(entry, Discovered):
                    self.logger.debug(
                        f"Discovered {type_name} ID {entry.id}: \"{entry.name}\" in {path.name}"
                    )
                continue

            if isinstance(entry, Skeleton):
                continue
            if isinstance(existing, Skeleton):
                entries[entry.id] = entry
                continue
            if existing.name != entry.name:
                message = (
                    f"{path.name}: {type_name} ID {entry.id} named \"{existing.name}\" "
                    f"(rule #{existing.rule_index}) and \"{entry.name}\" "
                    f"(rule #{entry.rule_index}); keeping \"{existing.name}\""
                )
                self.logger.warning(message)
                issues.append(
                    ValidationIssue.warning(
                        "duplicate-rule",
                        message,
                        entity_type=type_name,
                        ids=(entry.id,),
                        source=str(path),
                    )
                )

        return ExtractionResult(
            source=path,
            entity_type=type_name,
            entries=tuple(entries.values()),
            issues=tuple(issues),
            rule_count=len(rules),
        )


def extract_reference_table(path: Path, table: ReferenceTableConfig) -> ReferenceExtraction:
    """Read a code -> label reference table (colors, sounds, beams)."""
    try:
        rules = load_rules(path)
    except RecoverableParseError as e:
        logger.error(f"Reference table {table.name} unreadable: {e}")
        return ReferenceExtraction(
            table=table.name,
            source=path,
            issues=(
                ValidationIssue.error(
                    "parse-error", str(e), entity_type=table.name, source=str(path)
                ),
            ),
            failed=True,
        )

    entries: Dict[int, str] = {}
    issues: List[ValidationIssue] = []

    for rule_index, rule in enumerate(rules):
        label = (rule.findtext("nameOverride") or "").strip()
        code = _parse_int(rule.findtext(table.code_field))
        if not label or code is None:
            error = RecoverableParseError(
                path, f"rule needs <nameOverride> and integer <{table.code_field}>", rule_index
            )
            logger.error(f"Skipping reference rule: {error}")
            issues.append(
                ValidationIssue.error(
                    "parse-error", str(error), entity_type=table.name, source=str(path)
                )
            )
            continue

        if code in entries:
            if entries[code] != label:
                message = (
                    f"{path.name}: {table.record_key} {code} labelled \"{entries[code]}\" "
                    f"and \"{label}\"; keeping \"{entries[code]}\""
                )
                logger.warning(message)
                issues.append(
                    ValidationIssue.warning(
                        "duplicate-reference",
                        message,
                        entity_type=table.name,
                        ids=(code,),
                        source=str(path),
                    )
                )
            continue
        entries[code] = label

    return ReferenceExtraction(
        table=table.name, source=path, entries=entries, issues=tuple(issues)
    )


def extract_slot_mapping(path: Path) -> Tuple[Dict[int, str], List[ValidationIssue]]:
    """Read idol/item affix classification from the master template.

    Returns:
        (affix id -> 'idol' | 'item', issues)
    """
    try:
        rules = load_rules(path)
    except RecoverableParseError as e:
        logger.error(f"Master template unreadable: {e}")
        return {}, [
            ValidationIssue.error("parse-error", str(e), entity_type="affixes", source=str(path))
        ]

    slots: Dict[int, str] = {}
    for rule in rules:
        label = (rule.findtext("nameOverride") or "").strip()
        if label == IDOL_AFFIXES_LABEL:
            slot = "idol"
        elif label == ITEM_AFFIXES_LABEL:
            slot = "item"
        else:
            continue
        for value in rule.findall("conditions/Condition/affixes/int"):
            affix_id = _parse_int(value.text)
            if affix_id is not None:
                slots.setdefault(affix_id, slot)

    idol_count = sum(1 for slot in slots.values() if slot == "idol")
    logger.info(
        f"Loaded {idol_count} idol affix IDs and {len(slots) - idol_count} item affix IDs"
    )
    return slots, []
