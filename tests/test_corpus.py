"""Tests for corpus discovery and parallel extraction."""

import pytest

from lootdb.errors import ConfigurationError, CorpusError
from lootdb.settings.types import EntityTypeConfig
from lootdb.templates import TemplateCorpusLoader, TemplateExtractionService


class TestCorpusLoader:
    """Test template corpus discovery."""

    def test_lists_templates_per_type_sorted(self, corpus, build_config) -> None:
        """Test template files are found per type in sorted order."""
        corpus.write_rules("affixes/b.xml", [])
        corpus.write_rules("affixes/a.xml", [])
        corpus.write("affixes/readme.txt", "not a template")

        layout = TemplateCorpusLoader(build_config).load()

        assert [path.name for path in layout.type_files["affixes"]] == ["a.xml", "b.xml"]
        assert set(layout.reference_files) == {"colors", "sounds", "beams"}

    def test_missing_type_directory_is_tolerated(self, corpus, build_config, caplog) -> None:
        """Test an absent subdirectory yields zero templates and a warning."""
        corpus.write_rules("affixes/a.xml", [])

        layout = TemplateCorpusLoader(build_config).load()

        assert layout.type_files["uniques"] == []
        assert "uniques" in layout.missing_types
        assert any("uniques" in record.message for record in caplog.records)

    def test_missing_reference_table_raises(self, corpus, build_config) -> None:
        """Test reference tables are mandatory."""
        (corpus.root / "Sounds.xml").unlink()

        with pytest.raises(CorpusError, match="sounds"):
            TemplateCorpusLoader(build_config).load()

    def test_missing_root_raises(self, build_config, tmp_path) -> None:
        """Test a non-existent template root is a configuration error."""
        config = build_config.with_changes(template_root=tmp_path / "nowhere")

        with pytest.raises(ConfigurationError):
            TemplateCorpusLoader(config).load()

    def test_inactive_type_is_skipped(self, corpus, build_config) -> None:
        """Test inactive entity types are not listed at all."""
        corpus.write_rules("sets/s.xml", [])
        types = tuple(
            EntityTypeConfig(e.name, e.subdir, e.placeholder_label, e.condition_kind, e.record_key,
                             active=e.name != "sets")
            for e in build_config.entity_types
        )

        layout = TemplateCorpusLoader(build_config.with_changes(entity_types=types)).load()

        assert "sets" not in layout.type_files
        assert "sets" not in layout.missing_types

    def test_master_template_is_optional(self, corpus, build_config) -> None:
        """Test the master template is picked up only when present."""
        assert TemplateCorpusLoader(build_config).load().master_template is None

        corpus.write_master(idol=[1])
        assert TemplateCorpusLoader(build_config).load().master_template is not None


class TestExtractionService:
    """Test extraction over a whole corpus."""

    def test_extracts_candidates_and_counts(self, corpus, build_config) -> None:
        """Test several files are parsed and reduced per type."""
        corpus.write_rules(
            "affixes/a.xml",
            [corpus.affix_rule("Affix ID: 0", 0), corpus.affix_rule("Health", 1)],
        )
        corpus.write_rules("affixes/b.xml", [corpus.affix_rule("Affix ID: 2", 2)])
        corpus.write_rules("uniques/u.xml", [corpus.unique_rule("Unique ID: 5", 5)])
        corpus.write_master(idol=[2])

        layout = TemplateCorpusLoader(build_config).load()
        extraction = TemplateExtractionService(build_config).run(layout)

        assert extraction.candidates["affixes"] == {0: None, 1: "Health", 2: None}
        assert extraction.candidates["uniques"] == {5: None}
        assert extraction.candidates["sets"] == {}
        assert extraction.references["colors"] == {0: "White", 7: "Red"}
        assert extraction.slots == {2: "idol"}
        # 3 reference tables, master template and 3 templates
        assert extraction.files_processed == 7
        assert extraction.files_failed == 0
        assert extraction.rules_seen == 4

    def test_bad_file_does_not_abort(self, corpus, build_config) -> None:
        """Test one broken template only fails itself."""
        corpus.write("affixes/a.xml", "garbage")
        corpus.write_rules("affixes/b.xml", [corpus.affix_rule("Health", 1)])

        layout = TemplateCorpusLoader(build_config).load()
        extraction = TemplateExtractionService(build_config).run(layout)

        assert extraction.candidates["affixes"] == {1: "Health"}
        assert extraction.files_failed == 1
        assert [issue.category for issue in extraction.issues] == ["parse-error"]

    def test_all_reference_tables_empty_is_fatal(self, corpus, build_config) -> None:
        """Test empty reference tables abort extraction."""
        corpus.write_references(colors={}, sounds={}, beams={})

        layout = TemplateCorpusLoader(build_config).load()

        with pytest.raises(ConfigurationError, match="entirely absent"):
            TemplateExtractionService(build_config).run(layout)
