"""MongoDB access for mapping and diff documents."""

from pr_heatmap.store.diffs import DiffStore
from pr_heatmap.store.mappings import MappingStore
from pr_heatmap.store.mongo import connect

__all__ = ["DiffStore", "MappingStore", "connect"]
