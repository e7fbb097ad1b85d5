"""
Parse results produced by the template corpus loader and rule extractor.

Every rule is classified exactly once into a tagged variant (Skeleton or
Discovered); later stages never re-inspect label strings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, TypeAlias, Union

from ..database.models import ValidationIssue


@dataclass(frozen=True)
class Skeleton:
    """A rule whose label still matches the generated '<Type> ID: <n>' pattern."""
    id: int
    rule_index: int


@dataclass(frozen=True)
class Discovered:
    """A rule relabelled by a tester; the label is the discovered name."""
    id: int
    name: str
    rule_index: int


RuleEntry: TypeAlias = Union[Skeleton, Discovered]


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting one entity template file.

    Entries are already de-duplicated within the file (first wins) and
    keep file order. A failed file has no entries and one error issue.
    """
    source: Path
    entity_type: str
    entries: Tuple[RuleEntry, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()
    rule_count: int = 0
    failed: bool = False


@dataclass(frozen=True)
class ReferenceExtraction:
    """Outcome of extracting one reference table file."""
    table: str
    source: Path
    entries: Dict[int, str] = field(default_factory=dict)
    issues: Tuple[ValidationIssue, ...] = ()
    failed: bool = False


@dataclass
class CorpusLayout:
    """Template files discovered under the template root.

    Attributes:
        reference_files: table name -> reference table file
        type_files: entity type -> sorted template files
        master_template: optional affix slot mapping file
        missing_types: active entity types whose directory does not exist
    """
    template_root: Path
    reference_files: Dict[str, Path] = field(default_factory=dict)
    type_files: Dict[str, List[Path]] = field(default_factory=dict)
    master_template: Optional[Path] = None
    missing_types: List[str] = field(default_factory=list)

    def all_files(self) -> List[Path]:
        """Every source file of the corpus, for timestamp checks."""
        files = list(self.reference_files.values())
        for paths in self.type_files.values():
            files.extend(paths)
        if self.master_template is not None:
            files.append(self.master_template)
        return files

    @property
    def template_count(self) -> int:
        return sum(len(paths) for paths in self.type_files.values())
