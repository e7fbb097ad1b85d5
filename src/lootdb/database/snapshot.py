"""
Snapshot assembler, serializer and reader.

The canonical snapshot is a line-oriented JSON file: comment lines, one
metadata line, one line per reference entry and one line per entity, with
blank lines between sections. Identical inputs always serialize to
identical bytes.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, cast

import orjson

from ..errors import SnapshotFormatError
from ..settings.types import (
    DEFAULT_ENTITY_TYPES,
    DEFAULT_REFERENCE_TABLES,
    BuildConfig,
)
from .models import (
    DatabaseSnapshot,
    EntityMap,
    EntityRecord,
    Provenance,
    ReferenceTable,
    SnapshotMetadata,
    TypeCounts,
)

FORMAT_VERSION = "1"
SNAPSHOT_FILE = "game-database.jsonl"


def format_build_date(moment: datetime) -> str:
    """UTC ISO-8601 timestamp with second precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def canonical(value: Any) -> Any:
    """Return value with every nested dict key-sorted."""
    if isinstance(value, dict):
        items = cast(Dict[Any, Any], value)
        return {str(key): canonical(items[key]) for key in sorted(items, key=str)}
    if isinstance(value, (list, tuple)):
        return [canonical(item) for item in cast(Iterable[Any], value)]
    return value


class SnapshotAssembler:
    """Builds a DatabaseSnapshot from merged maps and reference tables."""

    def __init__(self, config: BuildConfig):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config

    def assemble(
        self,
        references: Mapping[str, ReferenceTable],
        records: Mapping[str, EntityMap],
        build_date: str,
        overrides_applied: int = 0,
        corrections_applied: int = 0,
    ) -> DatabaseSnapshot:
        """Assemble the snapshot; entity lists come out sorted by id."""
        entities: Dict[str, List[EntityRecord]] = {}
        counts: Dict[str, TypeCounts] = {}

        for entity in self.config.active_entity_types():
            type_records = records.get(entity.name, {})
            ordered = [type_records[entity_id] for entity_id in sorted(type_records)]
            discovered = sum(1 for record in ordered if not record.missing)
            entities[entity.name] = ordered
            counts[entity.name] = TypeCounts(
                total=len(ordered),
                discovered=discovered,
                missing=len(ordered) - discovered,
            )

        reference_tables = {
            table.name: dict(sorted(references.get(table.name, {}).items()))
            for table in self.config.reference_tables
        }

        metadata = SnapshotMetadata(
            format_version=FORMAT_VERSION,
            content_version=self.config.content_version,
            build_date=build_date,
            counts=counts,
            reference_counts={name: len(table) for name, table in reference_tables.items()},
            overrides_applied=overrides_applied,
            corrections_applied=corrections_applied,
        )

        self.logger.info(
            f"Assembled snapshot: {metadata.discovered} discovered of "
            f"{sum(c.total for c in counts.values())} entities"
        )

        return DatabaseSnapshot(
            metadata=metadata,
            references=reference_tables,
            entities=entities,
            record_keys={
                entity.name: entity.record_key for entity in self.config.active_entity_types()
            },
            reference_keys={
                table.name: table.record_key for table in self.config.reference_tables
            },
        )


def record_line(record_key: str, record: EntityRecord) -> Dict[str, Any]:
    """JSON object written for one entity."""
    if record.missing:
        return {record_key: record.id, "missing": True}

    line: Dict[str, Any] = {record_key: record.id, "name": record.name}
    if record.description is not None:
        line["desc"] = record.description
    if record.properties:
        line["props"] = canonical(record.properties)
    if record.notes is not None:
        line["notes"] = record.notes
    line["provenance"] = record.provenance.value
    return line


def serialize_snapshot(snapshot: DatabaseSnapshot) -> bytes:
    """Render the snapshot in its canonical line-oriented form."""
    meta = snapshot.metadata
    header = meta.to_dict()
    header["recordKeys"] = dict(snapshot.record_keys)
    header["referenceKeys"] = dict(snapshot.reference_keys)

    lines: List[str] = [
        "# Loot filter game database",
        f"# Format version {meta.format_version}, content version {meta.content_version}",
        f"# Built from sources dated {meta.build_date}",
        orjson.dumps({"meta": header}).decode("utf-8"),
    ]

    for table_name, table in snapshot.references.items():
        key = snapshot.reference_keys[table_name]
        lines.append("")
        lines.append(f"# {table_name}: {len(table)}")
        for code, label in table.items():
            lines.append(orjson.dumps({key: code, "name": label}).decode("utf-8"))

    for entity_type, records in snapshot.entities.items():
        key = snapshot.record_keys[entity_type]
        counts = meta.counts[entity_type]
        lines.append("")
        lines.append(
            f"# {entity_type}: discovered {counts.discovered}, "
            f"missing {counts.missing}, total {counts.total}"
        )
        for record in records:
            lines.append(orjson.dumps(record_line(key, record)).decode("utf-8"))

    return ("\n".join(lines) + "\n").encode("utf-8")


def write_snapshot(snapshot: DatabaseSnapshot, path: Path) -> Path:
    path.write_bytes(serialize_snapshot(snapshot))
    return path


def _record_from_line(key: str, data: Dict[str, Any], path: Path, line_number: int) -> EntityRecord:
    entity_id = data.get(key)
    if not isinstance(entity_id, int) or isinstance(entity_id, bool):
        raise SnapshotFormatError(path, f"'{key}' must be an integer", line_number)
    if data.get("missing"):
        return EntityRecord(id=entity_id)

    try:
        provenance = Provenance(data.get("provenance", Provenance.TEMPLATE_DISCOVERED.value))
    except ValueError as e:
        raise SnapshotFormatError(path, str(e), line_number) from e

    return EntityRecord(
        id=entity_id,
        name=data.get("name"),
        description=data.get("desc"),
        properties=dict(data.get("props") or {}),
        notes=data.get("notes"),
        provenance=provenance,
    )


def read_snapshot(path: Path, config: Optional[BuildConfig] = None) -> DatabaseSnapshot:
    """Parse a snapshot file back into a DatabaseSnapshot.

    Record keys are taken from the metadata line; older files without them
    fall back to the configured (or default) entity types and tables.

    Raises:
        SnapshotFormatError: If the file cannot be read or is malformed
    """
    try:
        content = path.read_bytes()
    except OSError as e:
        raise SnapshotFormatError(path, f"cannot read file: {e}") from e

    metadata: Optional[SnapshotMetadata] = None
    record_types: Dict[str, str] = {}
    reference_types: Dict[str, str] = {}
    entities: Dict[str, List[EntityRecord]] = {}
    references: Dict[str, ReferenceTable] = {}

    for line_number, raw in enumerate(content.decode("utf-8").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            raise SnapshotFormatError(path, f"invalid JSON: {e}", line_number) from e
        if not isinstance(data, dict) or not data:
            raise SnapshotFormatError(path, "expected a JSON object", line_number)
        data = cast(Dict[str, Any], data)

        if "meta" in data:
            header = data["meta"]
            if not isinstance(header, dict):
                raise SnapshotFormatError(path, "'meta' must be a JSON object", line_number)
            header = cast(Dict[str, Any], header)
            metadata = SnapshotMetadata.from_dict(header)
            record_types = _key_lookup(header.get("recordKeys"), config, entities=True)
            reference_types = _key_lookup(header.get("referenceKeys"), config, entities=False)
            entities = {name: [] for name in metadata.counts}
            references = {name: {} for name in metadata.reference_counts}
            continue

        if metadata is None:
            raise SnapshotFormatError(path, "record before metadata line", line_number)

        key = next(iter(data))
        if key in record_types:
            entity_type = record_types[key]
            entities.setdefault(entity_type, []).append(
                _record_from_line(key, data, path, line_number)
            )
        elif key in reference_types:
            code = data[key]
            if not isinstance(code, int) or isinstance(code, bool):
                raise SnapshotFormatError(path, f"'{key}' must be an integer", line_number)
            references.setdefault(reference_types[key], {})[code] = str(data.get("name", ""))
        else:
            raise SnapshotFormatError(path, f"unknown record key '{key}'", line_number)

    if metadata is None:
        raise SnapshotFormatError(path, "metadata line not found")

    return DatabaseSnapshot(
        metadata=metadata,
        references=references,
        entities=entities,
        record_keys={name: key for key, name in record_types.items()},
        reference_keys={name: key for key, name in reference_types.items()},
    )


def _key_lookup(
    declared: Any, config: Optional[BuildConfig], entities: bool
) -> Dict[str, str]:
    """Map line key -> type/table name."""
    if isinstance(declared, dict):
        return {str(key): str(name) for name, key in cast(Dict[str, Any], declared).items()}
    if entities:
        types = config.entity_types if config else DEFAULT_ENTITY_TYPES
        return {entity.record_key: entity.name for entity in types}
    tables = config.reference_tables if config else DEFAULT_REFERENCE_TABLES
    return {table.record_key: table.name for table in tables}
