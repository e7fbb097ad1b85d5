"""
Template corpus handling for the loot database builder.

Discovers template and reference files, classifies every rule into a
Skeleton or Discovered entry, and reduces per-file results into one
candidate map per entity type.
"""

from .corpus import TemplateCorpusLoader
from .extractor import RuleExtractor, extract_reference_table, extract_slot_mapping, load_rules
from .models import (
    CorpusLayout,
    Discovered,
    ExtractionResult,
    ReferenceExtraction,
    RuleEntry,
    Skeleton,
)
from .reducer import CandidateMap, reduce_results
from .service import CorpusExtraction, TemplateExtractionService

__all__ = [
    "TemplateCorpusLoader",
    "TemplateExtractionService",
    "RuleExtractor",
    "extract_reference_table",
    "extract_slot_mapping",
    "load_rules",
    "reduce_results",
    "CandidateMap",
    "CorpusExtraction",
    "CorpusLayout",
    "Discovered",
    "ExtractionResult",
    "ReferenceExtraction",
    "RuleEntry",
    "Skeleton",
]
