"""Incremental sync stages."""

from pr_heatmap.sync.backfill import BackfillEngine, BackfillResult
from pr_heatmap.sync.diffs import DiffEnrichmentEngine, DiffSyncResult, find_pending_prs

__all__ = [
    "BackfillEngine",
    "BackfillResult",
    "DiffEnrichmentEngine",
    "DiffSyncResult",
    "find_pending_prs",
]
