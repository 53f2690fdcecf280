"""Export module - assignment sets → relational tables."""

from bridgepool.export.indexes import ADDITIONAL_INDEXES, create_additional_indexes
from bridgepool.export.models import EXPORT_TABLES, Assignment, AssignmentFile
from bridgepool.export.ops import ExportSummary, export_assignments, published_datetime
from bridgepool.export.store import Store, StoreWriter

__all__ = [
    "ADDITIONAL_INDEXES",
    "create_additional_indexes",
    "EXPORT_TABLES",
    "Assignment",
    "AssignmentFile",
    "ExportSummary",
    "export_assignments",
    "published_datetime",
    "Store",
    "StoreWriter",
]
