"""Shared fixtures: small template corpora and override files in tmp_path."""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import orjson
import pytest

from lootdb.settings.types import BuildConfig

XSI = "http://www.w3.org/2001/XMLSchema-instance"


class CorpusWriter:
    """Writes loot-filter XML files the way the game exports them."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def document(rules: Iterable[str]) -> str:
        body = "\n".join(rules)
        return (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            f'<ItemFilter xmlns:i="{XSI}">\n'
            "  <name>Template</name>\n"
            f"  <rules>\n{body}\n  </rules>\n"
            "</ItemFilter>\n"
        )

    @staticmethod
    def affix_rule(label: str, *affix_ids: int) -> str:
        ids = "".join(f"<int>{affix_id}</int>" for affix_id in affix_ids)
        return (
            "    <Rule>\n"
            "      <type>SHOW</type>\n"
            '      <conditions><Condition i:type="AffixCondition">'
            f"<affixes>{ids}</affixes><comparsion>ANY</comparsion>"
            "</Condition></conditions>\n"
            f"      <nameOverride>{label}</nameOverride>\n"
            "    </Rule>"
        )

    @staticmethod
    def unique_rule(label: str, unique_id: int) -> str:
        return (
            "    <Rule>\n"
            "      <type>SHOW</type>\n"
            '      <conditions><Condition i:type="UniqueModifiersCondition">'
            f"<Uniques><UniqueId>{unique_id}</UniqueId></Uniques>"
            "</Condition></conditions>\n"
            f"      <nameOverride>{label}</nameOverride>\n"
            "    </Rule>"
        )

    @staticmethod
    def reference_rule(label: str, field: str, code: int) -> str:
        return (
            "    <Rule>\n"
            f"      <{field}>{code}</{field}>\n"
            f"      <nameOverride>{label}</nameOverride>\n"
            "    </Rule>"
        )

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def write_rules(self, relative: str, rules: List[str]) -> Path:
        return self.write(relative, self.document(rules))

    def write_references(
        self,
        colors: Optional[Dict[int, str]] = None,
        sounds: Optional[Dict[int, str]] = None,
        beams: Optional[Dict[int, str]] = None,
    ) -> None:
        tables = (
            ("Colors.xml", "color", colors if colors is not None else {0: "White", 7: "Red"}),
            ("Sounds.xml", "SoundId", sounds if sounds is not None else {1: "Default"}),
            ("MapIcon_LootBeam.xml", "BeamId", beams if beams is not None else {2: "Unique"}),
        )
        for file_name, field, entries in tables:
            self.write_rules(
                file_name,
                [self.reference_rule(label, field, code) for code, label in entries.items()],
            )

    def write_master(self, idol: Iterable[int] = (), item: Iterable[int] = ()) -> Path:
        return self.write_rules(
            "MasterTemplate1.xml",
            [
                self.affix_rule("All Affixes for Idols", *idol),
                self.affix_rule("All Affixes for Items", *item),
            ],
        )


class OverrideWriter:
    """Writes override and correction JSON files."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def write_overrides(
        self, entity_type: str, overrides: Dict[str, Any], **extra: Any
    ) -> Path:
        document = {"version": "1.3.0.4", "lastModified": "2025-01-01", "overrides": overrides}
        document.update(extra)
        path = self.root / f"{entity_type}.json"
        path.write_bytes(orjson.dumps(document))
        return path

    def write_corrections(self, entity_type: str, corrections: Dict[str, Any]) -> Path:
        document = {"version": "1.3.0.4", "lastModified": "2025-01-01", "corrections": corrections}
        path = self.root / f"{entity_type}.corrections.json"
        path.write_bytes(orjson.dumps(document))
        return path


@pytest.fixture
def corpus(tmp_path: Path) -> CorpusWriter:
    """Template root with the three mandatory reference tables."""
    writer = CorpusWriter(tmp_path / "TemplateFilters")
    writer.write_references()
    return writer


@pytest.fixture
def overrides(tmp_path: Path) -> OverrideWriter:
    return OverrideWriter(tmp_path / "Overrides")


@pytest.fixture
def build_config(tmp_path: Path, corpus: CorpusWriter, overrides: OverrideWriter) -> BuildConfig:
    return BuildConfig(
        template_root=corpus.root,
        override_root=overrides.root,
        output_dir=tmp_path / "Data",
        max_workers=2,
    )
