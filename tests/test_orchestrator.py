"""Tests for the build orchestrator: states, skip logic and published output."""

import os
import time

import orjson
import pytest

from lootdb.build import (
    BUILD_LOG_FILE,
    MASTER_INDEX_FILE,
    SUMMARY_FILE,
    VALIDATION_REPORT_FILE,
    VERSION_FILE,
    BuildOrchestrator,
    BuildState,
)
from lootdb.database import SNAPSHOT_FILE, IndexBuilder, read_snapshot

INDEX_FILES = ("id-lookup.json", "tags-index.json", "mechanics-index.json")


@pytest.fixture
def populated(corpus, overrides, build_config):
    """A small corpus with overrides, duplicates and a placeholder."""
    corpus.write_rules(
        "affixes/a.xml",
        [
            corpus.affix_rule("Affix ID: 140", 140),
            corpus.affix_rule("Health", 100),
            corpus.affix_rule("Health", 200),
            corpus.affix_rule("Affix ID: 7", 7),
        ],
    )
    corpus.write_rules("uniques/u.xml", [corpus.unique_rule("Bastion of Honour", 1)])
    corpus.write_master(idol=[140], item=[100, 200])
    overrides.write_overrides("affixes", {"140": {"name": "+# to Minion Damage"}})
    return build_config


def age_sources(config, seconds: float = 60) -> None:
    """Move every source file's mtime into the past."""
    past = time.time() - seconds
    for root in (config.template_root, config.override_root):
        for path in root.rglob("*"):
            if path.is_file():
                os.utime(path, (past, past))


class TestBuild:
    """Test a complete build."""

    def test_example_scenario(self, populated) -> None:
        """Test placeholder 140 named by override is exposed under affixes[140]."""
        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.DONE
        record = result.snapshot.get_record("affixes", 140)
        assert record.name == "+# to Minion Damage"
        assert record.provenance.value == "override-applied"

        lookup = orjson.loads((populated.output_dir / "indexes" / "id-lookup.json").read_bytes())
        assert lookup["affixes"]["140"]["name"] == "+# to Minion Damage"
        assert IndexBuilder().build(result.snapshot).lookup("affixes", 140) == record

    def test_publishes_all_artifacts(self, populated) -> None:
        """Test every artifact lands in the output directory and staging is gone."""
        result = BuildOrchestrator(populated).run()
        output = populated.output_dir

        for name in (SNAPSHOT_FILE, VERSION_FILE, MASTER_INDEX_FILE, SUMMARY_FILE,
                     VALIDATION_REPORT_FILE, BUILD_LOG_FILE):
            assert (output / name).is_file(), name
        for name in INDEX_FILES:
            assert (output / "indexes" / name).is_file(), name
        assert not list(output.glob(".staging-*"))
        assert result.output_files[-1] == output / SNAPSHOT_FILE

    def test_completeness_and_duplicates(self, populated) -> None:
        """Test every template id is present and the duplicate pair is reported."""
        result = BuildOrchestrator(populated).run()

        snapshot = read_snapshot(populated.output_dir / SNAPSHOT_FILE)
        assert [record.id for record in snapshot.entities["affixes"]] == [7, 100, 140, 200]
        assert snapshot.get_record("affixes", 7).missing

        duplicates = [issue for issue in result.issues if issue.category == "duplicate-name"]
        assert [issue.ids for issue in duplicates] == [(100, 200)]
        assert result.stats.duplicates_found == 1
        assert result.stats.overrides_applied == 1

    def test_summary_and_version_file(self, populated) -> None:
        """Test the summary text and version document."""
        result = BuildOrchestrator(populated).run()
        output = populated.output_dir

        summary = (output / SUMMARY_FILE).read_text(encoding="utf-8")
        assert summary == result.summary
        assert "Overrides applied:   1" in summary
        assert "affixes: 3/4 discovered (75%), 1 missing" in summary
        assert f"see {BUILD_LOG_FILE}" in summary

        version = orjson.loads((output / VERSION_FILE).read_bytes())
        assert version["contentVersion"] == "1.3.0.4"
        assert version["templateCount"] == 2
        assert version["databaseFile"] == SNAPSHOT_FILE
        assert version["format"] == "jsonl"

    def test_build_log_captures_warnings(self, populated) -> None:
        """Test the build log records the duplicate warning."""
        BuildOrchestrator(populated).run()

        log = (populated.output_dir / BUILD_LOG_FILE).read_text(encoding="utf-8")
        assert "share the name \"Health\"" in log

    def test_rebuild_is_byte_identical(self, populated) -> None:
        """Test unchanged inputs give identical snapshot and index bytes."""
        BuildOrchestrator(populated).run()
        output = populated.output_dir
        first = {
            name: (output / name).read_bytes()
            for name in [SNAPSHOT_FILE, MASTER_INDEX_FILE] + [f"indexes/{n}" for n in INDEX_FILES]
        }

        result = BuildOrchestrator(populated).run(force=True)

        assert result.state is BuildState.DONE
        for name, content in first.items():
            assert (output / name).read_bytes() == content, name

    def test_bad_template_does_not_fail_build(self, populated, corpus) -> None:
        """Test a broken file is reported but the build completes."""
        corpus.write("affixes/zz-broken.xml", "<ItemFilter>")

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.DONE
        assert result.stats.files_failed == 1
        assert any(issue.category == "parse-error" for issue in result.issues)

    def test_malformed_override_key_does_not_fail_build(self, populated, overrides) -> None:
        """Test a non-ASCII digit key is reported while the build completes."""
        overrides.write_overrides(
            "affixes",
            {"²": {"name": "Superscript"}, "140": {"name": "+# to Minion Damage"}},
        )

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.DONE
        assert result.snapshot.get_record("affixes", 140).name == "+# to Minion Damage"
        assert any(issue.category == "override-format" for issue in result.issues)


class TestSkipLogic:
    """Test up-to-date detection."""

    def test_unchanged_sources_skip(self, populated) -> None:
        """Test a second non-forced run is skipped without touching output."""
        age_sources(populated)
        BuildOrchestrator(populated).run()
        snapshot_path = populated.output_dir / SNAPSHOT_FILE
        before = snapshot_path.stat().st_mtime_ns

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.SKIPPED
        assert result.snapshot is None
        assert snapshot_path.stat().st_mtime_ns == before

    def test_changed_source_rebuilds(self, populated, overrides) -> None:
        """Test a newer override file triggers a rebuild."""
        age_sources(populated)
        BuildOrchestrator(populated).run()
        future = time.time() + 60
        path = overrides.write_overrides("affixes", {"7": {"name": "Cold Damage"}})
        os.utime(path, (future, future))

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.DONE
        assert result.snapshot.get_record("affixes", 7).name == "Cold Damage"

    def test_force_always_rebuilds(self, populated) -> None:
        """Test forced runs ignore timestamps."""
        age_sources(populated)
        BuildOrchestrator(populated).run()

        assert BuildOrchestrator(populated).run(force=True).state is BuildState.DONE

    def test_content_version_change_rebuilds(self, populated) -> None:
        """Test a different content version is never considered up to date."""
        age_sources(populated)
        BuildOrchestrator(populated).run()

        result = BuildOrchestrator(populated.with_changes(content_version="1.4.0")).run()

        assert result.state is BuildState.DONE
        assert result.snapshot.metadata.content_version == "1.4.0"


class TestFailures:
    """Test the Failed state and single-use orchestrators."""

    def test_missing_reference_table_fails_without_output(self, populated, corpus) -> None:
        """Test a missing reference table writes nothing."""
        (corpus.root / "Colors.xml").unlink()

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.FAILED
        assert "colors" in result.error
        assert not populated.output_dir.exists()

    def test_empty_reference_tables_fail_and_clean_staging(self, populated, corpus) -> None:
        """Test the staging directory is removed when the build fails."""
        corpus.write_references(colors={}, sounds={}, beams={})

        result = BuildOrchestrator(populated).run()

        assert result.state is BuildState.FAILED
        assert not list(populated.output_dir.glob(".staging-*"))
        assert not (populated.output_dir / SNAPSHOT_FILE).exists()

    def test_unwritable_output_fails(self, populated, tmp_path) -> None:
        """Test an output path blocked by a file is a configuration failure."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        result = BuildOrchestrator(populated.with_changes(output_dir=blocker / "Data")).run()

        assert result.state is BuildState.FAILED

    def test_orchestrator_runs_once(self, populated) -> None:
        """Test a second run on the same instance is refused."""
        orchestrator = BuildOrchestrator(populated)
        orchestrator.run()

        assert orchestrator.state is BuildState.DONE
        with pytest.raises(RuntimeError):
            orchestrator.run()

    def test_failing_index_is_non_fatal(self, populated, monkeypatch) -> None:
        """Test an index failure removes that index only."""
        BuildOrchestrator(populated).run()
        stale = populated.output_dir / "indexes" / "tags-index.json"
        assert stale.exists()

        def explode(self, snapshot):
            raise ValueError("boom")

        monkeypatch.setattr(IndexBuilder, "tags_document", explode)
        result = BuildOrchestrator(populated).run(force=True)

        assert result.state is BuildState.DONE
        assert result.failed_indexes == ["tags-index.json"]
        assert not stale.exists()
        assert (populated.output_dir / "indexes" / "id-lookup.json").exists()
        assert any(issue.category == "index-error" for issue in result.issues)
        master = orjson.loads((populated.output_dir / MASTER_INDEX_FILE).read_bytes())
        assert "indexes/tags-index.json" not in master["indexes"]
