"""Lineage linking: downstream edges and lineage graph queries."""

from lineage.linking.linker import (
    DanglingReference,
    LineageGraph,
    LineageNode,
    dedupe_edges,
    link_lineage,
)

__all__ = [
    "DanglingReference",
    "LineageGraph",
    "LineageNode",
    "dedupe_edges",
    "link_lineage",
]
