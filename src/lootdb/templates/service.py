"""
Template extraction service.

Runs the rule extractor over the whole corpus, parsing files of each
entity type in parallel with a bounded thread pool, and reduces the
per-file results into one candidate map per type.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from ..database.models import ReferenceTable, ValidationIssue
from ..errors import ConfigurationError
from ..settings.types import BuildConfig, EntityTypeConfig
from .extractor import RuleExtractor, extract_reference_table, extract_slot_mapping
from .models import CorpusLayout, ExtractionResult
from .reducer import CandidateMap, reduce_results


@dataclass
class CorpusExtraction:
    """Everything read out of the template corpus."""
    references: Dict[str, ReferenceTable] = field(default_factory=dict)
    candidates: Dict[str, CandidateMap] = field(default_factory=dict)
    slots: Dict[int, str] = field(default_factory=dict)
    issues: List[ValidationIssue] = field(default_factory=list)
    files_processed: int = 0
    files_failed: int = 0
    rules_seen: int = 0


class TemplateExtractionService:
    """Extracts reference tables and entity candidates from a corpus layout."""

    def __init__(self, config: BuildConfig):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config

    def run(self, layout: CorpusLayout) -> CorpusExtraction:
        """Extract the whole corpus.

        Raises:
            ConfigurationError: If no reference table could be read at all
        """
        extraction = CorpusExtraction()

        self._extract_references(layout, extraction)

        if layout.master_template is not None:
            extraction.slots, slot_issues = extract_slot_mapping(layout.master_template)
            extraction.issues.extend(slot_issues)
            extraction.files_processed += 1

        for entity in self.config.active_entity_types():
            files = layout.type_files.get(entity.name, [])
            results = self._extract_type(entity, files)

            for result in results:
                extraction.files_processed += 1
                extraction.rules_seen += result.rule_count
                if result.failed:
                    extraction.files_failed += 1
                extraction.issues.extend(result.issues)

            candidates, reduce_issues = reduce_results(entity.name, results)
            extraction.candidates[entity.name] = candidates
            extraction.issues.extend(reduce_issues)

            discovered = sum(1 for name in candidates.values() if name is not None)
            self.logger.info(
                f"Parsed {len(files)} {entity.name} templates: "
                f"{len(candidates)} ids, {discovered} discovered"
            )

        return extraction

    def _extract_references(self, layout: CorpusLayout, extraction: CorpusExtraction) -> None:
        for table in self.config.reference_tables:
            path = layout.reference_files[table.name]
            result = extract_reference_table(path, table)
            extraction.files_processed += 1
            if result.failed:
                extraction.files_failed += 1
            extraction.issues.extend(result.issues)
            extraction.references[table.name] = dict(sorted(result.entries.items()))
            self.logger.info(f"Parsed {path.name}: {len(result.entries)} {table.name}")

        if not any(extraction.references.values()):
            raise ConfigurationError(
                "Reference tables are entirely absent: no color, sound or beam entry could be read"
            )

    def _extract_type(
        self, entity: EntityTypeConfig, files: List[Path]
    ) -> List[ExtractionResult]:
        """Extract template files of one type in parallel.

        Each worker only builds its own per-file result; merging happens
        afterwards in reduce_results.
        """
        if not files:
            return []

        extractor = RuleExtractor(entity)
        results: List[ExtractionResult] = []

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            future_to_file = {
                executor.submit(extractor.extract_file, path): path for path in files
            }

            for future in as_completed(future_to_file):
                path = future_to_file[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    self.logger.exception(f"Unexpected failure extracting {path}")
                    results.append(
                        ExtractionResult(
                            source=path,
                            entity_type=entity.name,
                            issues=(
                                ValidationIssue.error(
                                    "parse-error",
                                    f"{path.name}: unexpected extraction failure: {e}",
                                    entity_type=entity.name,
                                    source=str(path),
                                ),
                            ),
                            failed=True,
                        )
                    )

        return results
