"""End-to-end lineage pipeline.

job records -> build_tree -> resolve_tree -> link_lineage -> group_builds
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from lineage.grouping.ranking import DEFAULT_MAX_BUILDS, BuildGroup, group_builds
from lineage.hierarchy.resolver import resolve_tree
from lineage.hierarchy.tree import build_tree
from lineage.linking.linker import DanglingReference, LineageGraph, link_lineage
from lineage.model import JobRecord


@dataclass
class PipelineResult:
    """Everything the rendering side needs."""

    graph: LineageGraph
    groups: list[BuildGroup] = field(default_factory=list)

    @property
    def warnings(self) -> list[DanglingReference]:
        return self.graph.warnings


def run_pipeline(
    records: Iterable[JobRecord],
    max_builds: int | None = DEFAULT_MAX_BUILDS,
    require_signal: bool = True,
) -> PipelineResult:
    """Build, resolve, link and group a snapshot of job records.

    Raises:
        LineageError: If the hierarchy or a reference in it is malformed.
            Nothing is returned in that case.
    """
    tree = build_tree(records)
    resolved = resolve_tree(tree)
    graph = link_lineage(resolved)
    groups = group_builds(
        graph, max_builds=max_builds, require_signal=require_signal
    )
    return PipelineResult(graph=graph, groups=groups)
