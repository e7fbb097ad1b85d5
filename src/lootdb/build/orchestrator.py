"""
Build orchestrator for the loot database.

Runs the pipeline stages in order and publishes the artifacts:

    Idle -> Building -> Done | Skipped | Failed

Only ConfigurationError moves a build to Failed; every other problem is
collected as a ValidationIssue and reported in the summary. Artifacts are
written to a staging directory inside the output directory and moved
into place one by one, the snapshot last.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import orjson

from ..database.indexes import IndexBuilder
from ..database.merge import MergeEngine
from ..database.models import DatabaseSnapshot, ValidationIssue
from ..database.snapshot import SNAPSHOT_FILE, SnapshotAssembler, format_build_date, write_snapshot
from ..database.validator import Validator
from ..errors import ConfigurationError
from ..overrides.store import OverrideStore
from ..settings.types import BuildConfig, ConditionKind
from ..templates.corpus import TemplateCorpusLoader
from ..templates.models import CorpusLayout
from ..templates.service import TemplateExtractionService
from ..utils.logging_config import PROJECT_LOGGER, create_build_log_handler
from .reports import (
    BUILD_LOG_FILE,
    INDEXES_DIR,
    MASTER_INDEX_FILE,
    SUMMARY_FILE,
    VALIDATION_REPORT_FILE,
    VERSION_FILE,
    master_index_document,
    render_summary,
    render_validation_report,
    version_document,
    write_json,
)
from .stats import BuildStatistics

STAGING_PREFIX = ".staging-"


class BuildState(Enum):
    IDLE = "idle"
    BUILDING = "building"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


TERMINAL_STATES = (BuildState.DONE, BuildState.SKIPPED, BuildState.FAILED)


@dataclass
class BuildResult:
    """Outcome of one orchestrator run."""
    state: BuildState
    stats: BuildStatistics = field(default_factory=BuildStatistics)
    issues: List[ValidationIssue] = field(default_factory=list)
    snapshot: Optional[DatabaseSnapshot] = None
    output_files: List[Path] = field(default_factory=list)
    failed_indexes: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state in (BuildState.DONE, BuildState.SKIPPED)


def newest_mtime(paths: Iterable[Path]) -> float:
    """Newest modification time among existing files, 0 if none."""
    newest = 0.0
    for path in paths:
        try:
            newest = max(newest, path.stat().st_mtime)
        except FileNotFoundError:
            continue
    return newest


class BuildOrchestrator:
    """Runs one build of the loot database.

    An orchestrator instance handles a single invocation; Skipped and
    Failed are terminal and never retried automatically.
    """

    def __init__(self, config: BuildConfig):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config
        self._state = BuildState.IDLE

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def snapshot_path(self) -> Path:
        return self.config.output_dir / SNAPSHOT_FILE

    @property
    def version_path(self) -> Path:
        return self.config.output_dir / VERSION_FILE

    def run(self, force: bool = False) -> BuildResult:
        """Run the build.

        Args:
            force: Rebuild even when the snapshot is newer than every source

        Returns:
            BuildResult in a terminal state

        Raises:
            RuntimeError: If this orchestrator already ran
        """
        if self._state is not BuildState.IDLE:
            raise RuntimeError(f"Orchestrator already ran (state: {self._state.value})")

        self._state = BuildState.BUILDING
        stats = BuildStatistics(started_at=datetime.now(timezone.utc))
        result = BuildResult(state=BuildState.BUILDING, stats=stats)
        self.logger.info(
            f"Building loot database {self.config.content_version} "
            f"from {self.config.template_root}" + (" (forced)" if force else "")
        )

        try:
            layout = TemplateCorpusLoader(self.config).load()
            store = OverrideStore(self.config.override_root)
            active = [entity.name for entity in self.config.active_entity_types()]
            sources = layout.all_files() + store.source_files(active)

            if not force and self.is_up_to_date(sources):
                self.logger.info("Snapshot is newer than every source, skipping build")
                return self._finish(result, BuildState.SKIPPED)

            self._build(layout, store, sources, result)
        except ConfigurationError as e:
            self.logger.error(f"Build failed: {e}")
            result.error = str(e)
            return self._finish(result, BuildState.FAILED)
        except Exception:
            self._state = BuildState.FAILED
            raise

        return self._finish(result, BuildState.DONE)

    def _finish(self, result: BuildResult, state: BuildState) -> BuildResult:
        self._state = state
        result.state = state
        if result.stats.finished_at is None:
            result.stats.finished_at = datetime.now(timezone.utc)
        self.logger.info(f"Build {state.value} in {result.stats.duration:.2f}s")
        return result

    def read_version_file(self) -> Optional[Dict[str, Any]]:
        """Published version file, or None if absent or unreadable."""
        try:
            data = orjson.loads(self.version_path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            self.logger.debug(f"No usable version file: {e}")
            return None
        return data if isinstance(data, dict) else None

    def is_up_to_date(self, sources: Iterable[Path]) -> bool:
        """True if the published snapshot matches the content version and
        no source changed after it was written."""
        if not self.snapshot_path.is_file():
            return False

        version = self.read_version_file()
        if version is None or version.get("contentVersion") != self.config.content_version:
            self.logger.info("Content version changed or unknown, rebuilding")
            return False

        return newest_mtime(sources) <= self.snapshot_path.stat().st_mtime

    def _build_date(self, sources: Iterable[Path]) -> str:
        if self.config.build_timestamp is not None:
            return format_build_date(self.config.build_timestamp)
        return format_build_date(
            datetime.fromtimestamp(newest_mtime(sources), tz=timezone.utc)
        )

    def _create_staging(self) -> Path:
        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self.config.output_dir))
        except OSError as e:
            raise ConfigurationError(
                f"Output directory is not writable: {self.config.output_dir} ({e})"
            ) from e

    def _build(
        self,
        layout: CorpusLayout,
        store: OverrideStore,
        sources: List[Path],
        result: BuildResult,
    ) -> None:
        staging = self._create_staging()
        project_logger = logging.getLogger(PROJECT_LOGGER)
        previous_level = project_logger.level
        try:
            handler = create_build_log_handler(staging / BUILD_LOG_FILE)
            project_logger.addHandler(handler)
            if project_logger.getEffectiveLevel() > logging.DEBUG:
                project_logger.setLevel(logging.DEBUG)
            try:
                self._run_stages(layout, store, sources, staging, result)
            finally:
                project_logger.removeHandler(handler)
                project_logger.setLevel(previous_level)
                handler.close()

            self._publish(staging, result)
        except OSError as e:
            raise ConfigurationError(f"Cannot write build output: {e}") from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _run_stages(
        self,
        layout: CorpusLayout,
        store: OverrideStore,
        sources: List[Path],
        staging: Path,
        result: BuildResult,
    ) -> None:
        config = self.config
        stats = result.stats
        issues = result.issues

        extraction = TemplateExtractionService(config).run(layout)
        issues.extend(extraction.issues)
        stats.files_processed = extraction.files_processed
        stats.files_failed = extraction.files_failed
        stats.rules_seen = extraction.rules_seen
        stats.template_count = layout.template_count

        active = config.active_entity_types()
        override_sets, override_issues = store.load_all(entity.name for entity in active)
        issues.extend(override_issues)

        slots: Mapping[str, Mapping[int, str]] = {
            entity.name: extraction.slots
            for entity in active
            if entity.condition_kind is ConditionKind.AFFIX
        }
        outcomes = MergeEngine().merge_all(extraction.candidates, override_sets, slots)

        validator = Validator()
        for entity in active:
            outcome = outcomes[entity.name]
            issues.extend(
                validator.validate(
                    entity.name,
                    outcome.records,
                    extraction.candidates.get(entity.name, {}).keys(),
                    override_sets.get(entity.name),
                )
            )

        stats.overrides_applied = sum(o.overrides_applied for o in outcomes.values())
        stats.corrections_applied = sum(o.corrections_applied for o in outcomes.values())

        snapshot = SnapshotAssembler(config).assemble(
            extraction.references,
            {name: outcome.records for name, outcome in outcomes.items()},
            build_date=self._build_date(sources),
            overrides_applied=stats.overrides_applied,
            corrections_applied=stats.corrections_applied,
        )
        result.snapshot = snapshot
        stats.counts = dict(snapshot.metadata.counts)

        write_snapshot(snapshot, staging / SNAPSHOT_FILE)
        written_indexes = self._write_indexes(snapshot, staging / INDEXES_DIR, result)

        stats.count_issues(issues)
        stats.finished_at = datetime.now(timezone.utc)

        (staging / VALIDATION_REPORT_FILE).write_text(
            render_validation_report(snapshot, issues), encoding="utf-8"
        )
        result.summary = render_summary(snapshot, stats, issues, config.summary_preview)
        (staging / SUMMARY_FILE).write_text(result.summary, encoding="utf-8")
        write_json(
            staging / MASTER_INDEX_FILE,
            master_index_document(snapshot, stats, SNAPSHOT_FILE, written_indexes),
        )
        write_json(
            staging / VERSION_FILE,
            version_document(snapshot, stats.finished_at, stats.template_count, SNAPSHOT_FILE),
        )

        self.logger.info(
            f"Build complete: {snapshot.metadata.discovered} discovered, "
            f"{stats.errors} errors, {stats.warnings} warnings"
        )

    def _write_indexes(
        self, snapshot: DatabaseSnapshot, directory: Path, result: BuildResult
    ) -> List[str]:
        """Write every index; a failing index is reported and left out."""
        directory.mkdir()
        written: List[str] = []
        for file_name, render in IndexBuilder(self.config.tag_pairs).renderers():
            try:
                write_json(directory / file_name, render(snapshot))
            except Exception as e:
                self.logger.exception(f"Index {file_name} could not be built")
                result.failed_indexes.append(file_name)
                result.issues.append(
                    ValidationIssue.error(
                        "index-error", f"Index {file_name} could not be built: {e}"
                    )
                )
                continue
            written.append(file_name)
        return written

    def _publish(self, staging: Path, result: BuildResult) -> None:
        """Move staged artifacts into the output directory, snapshot last."""
        output = self.config.output_dir
        indexes_dir = output / INDEXES_DIR
        indexes_dir.mkdir(exist_ok=True)

        for file_name in result.failed_indexes:
            stale = indexes_dir / file_name
            if stale.exists():
                stale.unlink()
                self.logger.warning(f"Removed stale index {stale}")

        staged_indexes = sorted((staging / INDEXES_DIR).iterdir())
        ordered = [(path, indexes_dir / path.name) for path in staged_indexes]
        for file_name in (
            VALIDATION_REPORT_FILE,
            SUMMARY_FILE,
            BUILD_LOG_FILE,
            MASTER_INDEX_FILE,
            VERSION_FILE,
            SNAPSHOT_FILE,
        ):
            ordered.append((staging / file_name, output / file_name))

        for source, target in ordered:
            os.replace(source, target)
            result.output_files.append(target)

        self.logger.debug(f"Published {len(ordered)} files to {output}")
