"""
Activity Ingestion Module.

Turns raw provider records and block-explorer CSV exports into one
normalized, deduplicated activity timeline, with relay hops (A -> X -> B)
collapsed into single transfers.
"""

from activity_ingestion.classifier import classify_method, classify_transaction
from activity_ingestion.collapse import (
    DEFAULT_AMOUNT_TOLERANCE,
    DEFAULT_WINDOW,
    collapse_pass_through,
)
from activity_ingestion.csv_importer import import_tabular, split_csv_line
from activity_ingestion.merge import merge_activities
from activity_ingestion.models import Activity, ActivityType, sort_newest_first
from activity_ingestion.normalizer import normalize, normalize_records
from activity_ingestion.numbers import parse_decimal
from activity_ingestion.pipeline import ActivityPipeline, PipelineConfig, TimelineResult


__version__ = "1.0.0"

__all__ = [
    "Activity",
    "ActivityType",
    "ActivityPipeline",
    "PipelineConfig",
    "TimelineResult",
    "DEFAULT_AMOUNT_TOLERANCE",
    "DEFAULT_WINDOW",
    "classify_method",
    "classify_transaction",
    "collapse_pass_through",
    "import_tabular",
    "merge_activities",
    "normalize",
    "normalize_records",
    "parse_decimal",
    "sort_newest_first",
    "split_csv_line",
]
