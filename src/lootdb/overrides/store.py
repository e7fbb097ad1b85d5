"""
Override and correction store.

Loads ``<type>.json`` (overrides, plus an optional legacy ``corrections``
section) and ``<type>.corrections.json`` from the override root. A
missing file simply means no records of that kind. Malformed files are
skipped whole; malformed keys or records are skipped one by one.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, cast

import orjson

from ..database.models import ValidationIssue
from ..errors import OverrideFormatError
from .models import CorrectionRecord, OverrideRecord, OverrideSet

OVERRIDE_FILE_SUFFIX = ".json"
CORRECTION_FILE_SUFFIX = ".corrections.json"


def override_file(root: Path, entity_type: str) -> Path:
    return root / f"{entity_type}{OVERRIDE_FILE_SUFFIX}"


def correction_file(root: Path, entity_type: str) -> Path:
    return root / f"{entity_type}{CORRECTION_FILE_SUFFIX}"


def _parse_key(key: str, source: Path) -> int:
    """Parse an override key as a non-negative integer id."""
    text = str(key).strip()
    if not re.fullmatch(r"\d+", text, re.ASCII):
        raise OverrideFormatError(source, "key is not an integer id", key=str(key))
    return int(text)


def _optional_str(value: Any, what: str, source: Path, key: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise OverrideFormatError(source, f"'{what}' must be a string", key=key)
    return value


def _required_str(value: Any, what: str, source: Path, key: str) -> str:
    text = _optional_str(value, what, source, key)
    if not text or not text.strip():
        raise OverrideFormatError(source, f"'{what}' is required", key=key)
    return text


class OverrideStore:
    """Loads override and correction records keyed by id, per entity type."""

    def __init__(self, override_root: Path):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.override_root = Path(override_root)

    def source_files(self, entity_types: Iterable[str]) -> List[Path]:
        """Existing override/correction files, for timestamp checks."""
        files: List[Path] = []
        for entity_type in entity_types:
            for path in (
                override_file(self.override_root, entity_type),
                correction_file(self.override_root, entity_type),
            ):
                if path.is_file():
                    files.append(path)
        return files

    def load(self, entity_type: str) -> Tuple[OverrideSet, List[ValidationIssue]]:
        """Load overrides and corrections for one entity type.

        Returns:
            (override set, issues found while loading)
        """
        result = OverrideSet(entity_type=entity_type)
        issues: List[ValidationIssue] = []

        main_path = override_file(self.override_root, entity_type)
        main_data = self._read_document(main_path, entity_type, issues)
        if main_data is not None:
            result.sources.append(main_path)
            result.content_version = self._informational(main_data, "version")
            result.last_modified = self._informational(main_data, "lastModified")
            self._load_overrides(main_data, main_path, result, issues)
            # Legacy layout: corrections kept next to the overrides
            self._load_corrections(main_data, main_path, result, issues, replace=False)

        corrections_path = correction_file(self.override_root, entity_type)
        corrections_data = self._read_document(corrections_path, entity_type, issues)
        if corrections_data is not None:
            result.sources.append(corrections_path)
            if result.content_version is None:
                result.content_version = self._informational(corrections_data, "version")
            if result.last_modified is None:
                result.last_modified = self._informational(corrections_data, "lastModified")
            self._load_corrections(corrections_data, corrections_path, result, issues, replace=True)

        if result.sources:
            self.logger.info(
                f"Loaded {len(result.overrides)} overrides and "
                f"{len(result.corrections)} corrections for {entity_type}"
                + (f" (content version {result.content_version})" if result.content_version else "")
            )
        else:
            self.logger.debug(f"No override files for {entity_type}")

        return result, issues

    def load_all(
        self, entity_types: Iterable[str]
    ) -> Tuple[Dict[str, OverrideSet], List[ValidationIssue]]:
        """Load override sets for several entity types."""
        sets: Dict[str, OverrideSet] = {}
        issues: List[ValidationIssue] = []
        for entity_type in entity_types:
            sets[entity_type], type_issues = self.load(entity_type)
            issues.extend(type_issues)
        return sets, issues

    @staticmethod
    def _informational(data: Dict[str, Any], key: str) -> Optional[str]:
        value = data.get(key)
        return str(value) if value is not None else None

    def _read_document(
        self, path: Path, entity_type: str, issues: List[ValidationIssue]
    ) -> Optional[Dict[str, Any]]:
        """Read a JSON object document; None when absent or malformed."""
        if not path.is_file():
            return None
        try:
            try:
                with path.open("rb") as f:
                    data = orjson.loads(f.read())
            except orjson.JSONDecodeError as e:
                raise OverrideFormatError(path, f"invalid JSON: {e}") from e
            except OSError as e:
                raise OverrideFormatError(path, f"cannot read file: {e}") from e
            if not isinstance(data, dict):
                raise OverrideFormatError(path, "top level must be a JSON object")
        except OverrideFormatError as e:
            self.logger.error(f"Skipping override file: {e}")
            issues.append(
                ValidationIssue.error(
                    "override-format", str(e), entity_type=entity_type, source=str(path)
                )
            )
            return None
        return cast(Dict[str, Any], data)

    def _section(
        self, data: Dict[str, Any], name: str, path: Path, entity_type: str,
        issues: List[ValidationIssue],
    ) -> Dict[str, Any]:
        section = data.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            error = OverrideFormatError(path, f"'{name}' must be a JSON object")
            self.logger.error(f"Skipping section: {error}")
            issues.append(
                ValidationIssue.error(
                    "override-format", str(error), entity_type=entity_type, source=str(path)
                )
            )
            return {}
        return cast(Dict[str, Any], section)

    def _load_overrides(
        self, data: Dict[str, Any], path: Path, result: OverrideSet,
        issues: List[ValidationIssue],
    ) -> None:
        entity_type = result.entity_type
        for key, value in self._section(data, "overrides", path, entity_type, issues).items():
            try:
                record = self._parse_override(key, value, path)
            except OverrideFormatError as e:
                self.logger.error(f"Skipping override: {e}")
                issues.append(
                    ValidationIssue.error(
                        "override-format", str(e), entity_type=entity_type, source=str(path)
                    )
                )
                continue
            result.overrides[record.id] = record

    def _load_corrections(
        self, data: Dict[str, Any], path: Path, result: OverrideSet,
        issues: List[ValidationIssue], replace: bool,
    ) -> None:
        entity_type = result.entity_type
        for key, value in self._section(data, "corrections", path, entity_type, issues).items():
            try:
                record = self._parse_correction(key, value, path)
            except OverrideFormatError as e:
                self.logger.error(f"Skipping correction: {e}")
                issues.append(
                    ValidationIssue.error(
                        "override-format", str(e), entity_type=entity_type, source=str(path)
                    )
                )
                continue

            if record.id in result.corrections and replace:
                message = (
                    f"{entity_type} ID {record.id} corrected in both {path.name} and "
                    f"{entity_type}{OVERRIDE_FILE_SUFFIX}; using {path.name}"
                )
                self.logger.warning(message)
                issues.append(
                    ValidationIssue.warning(
                        "override-format",
                        message,
                        entity_type=entity_type,
                        ids=(record.id,),
                        source=str(path),
                    )
                )
            result.corrections[record.id] = record

    @staticmethod
    def _parse_override(key: str, value: Any, path: Path) -> OverrideRecord:
        entity_id = _parse_key(key, path)
        if not isinstance(value, dict):
            raise OverrideFormatError(path, "override must be a JSON object", key=key)
        record = cast(Dict[str, Any], value)

        properties = record.get("properties")
        if properties is None:
            properties = {}
        elif not isinstance(properties, dict):
            raise OverrideFormatError(path, "'properties' must be a JSON object", key=key)

        return OverrideRecord(
            id=entity_id,
            name=_required_str(record.get("name"), "name", path, key),
            description=_optional_str(record.get("description"), "description", path, key),
            properties=cast(Dict[str, Any], properties),
            notes=_optional_str(record.get("notes"), "notes", path, key),
        )

    @staticmethod
    def _parse_correction(key: str, value: Any, path: Path) -> CorrectionRecord:
        entity_id = _parse_key(key, path)
        if not isinstance(value, dict):
            raise OverrideFormatError(path, "correction must be a JSON object", key=key)
        record = cast(Dict[str, Any], value)

        return CorrectionRecord(
            id=entity_id,
            corrected_name=_required_str(record.get("correctedName"), "correctedName", path, key),
            original_name=_optional_str(record.get("originalName"), "originalName", path, key),
            reason=_optional_str(record.get("reason"), "reason", path, key),
            explanation=_optional_str(record.get("explanation"), "explanation", path, key),
        )
