"""Job hierarchy: tree construction and relative reference resolution."""

from lineage.hierarchy.resolver import resolve_path, resolve_reference, resolve_tree
from lineage.hierarchy.tree import JobNode, JobTree, build_tree, parse_hierarchy_path

__all__ = [
    "JobNode",
    "JobTree",
    "build_tree",
    "parse_hierarchy_path",
    "resolve_path",
    "resolve_reference",
    "resolve_tree",
]
