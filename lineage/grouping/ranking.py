"""Grouping of builds per job and ordering of groups for presentation.

Builds of a job are shown newest first. Job groups are ordered by a
recursive complexity score so that jobs with many tests and rich downstream
fan-out come first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from lineage.linking.linker import LineageGraph
from lineage.model import Build, BuildKey, HierarchyPath

# Number of most recent builds kept per job group
DEFAULT_MAX_BUILDS = 10


@dataclass
class BuildGroup:
    """Most recent builds of one job, ready to be rendered."""

    path: HierarchyPath
    builds: list[Build] = field(default_factory=list)
    complexity: int = 0

    @property
    def keys(self) -> list[BuildKey]:
        return [(self.path, build.iteration) for build in self.builds]


def sort_builds(builds: Iterable[Build]) -> list[Build]:
    """Sort builds by iteration, most recent first."""
    return sorted(builds, key=lambda b: b.iteration, reverse=True)


def has_signal(
    graph: LineageGraph,
    key: BuildKey,
    _route: frozenset[BuildKey] = frozenset(),
) -> bool:
    """Whether a build or anything it triggered produced test results."""
    build = graph.build(*key)
    if build is None or key in _route:
        return False
    if build.tests:
        return True
    route = _route | {key}
    return any(has_signal(graph, edge.key, route) for edge in build.downstream)


def complexity(
    graph: LineageGraph,
    keys: list[BuildKey],
    _route: frozenset[BuildKey] = frozenset(),
) -> int:
    """Recursive interestingness score of a set of builds.

    The score is the sum, over the builds, of their test count plus the
    complexity of their downstream builds, multiplied by the number of
    builds in the set.
    """
    total = 0
    for key in keys:
        build = graph.build(*key)
        if build is None or key in _route:
            continue
        downstream = [edge.key for edge in build.downstream]
        total += len(build.tests) + complexity(graph, downstream, _route | {key})
    return total * len(keys)


def group_builds(
    graph: LineageGraph,
    max_builds: int | None = DEFAULT_MAX_BUILDS,
    require_signal: bool = True,
    roots_only: bool = True,
) -> list[BuildGroup]:
    """Partition builds by owning job and order the groups.

    Args:
        graph: Linked lineage graph.
        max_builds: Keep only this many most recent builds per job (None
            keeps all).
        require_signal: Drop builds with no tests anywhere in their
            downstream closure.
        roots_only: Only group builds that head a lineage chain; triggered
            builds are reachable through their trigger instead.

    Returns:
        Non-empty groups, ordered by descending complexity of their build
        set. Ties keep tree order.
    """
    if roots_only:
        candidates = graph.root_builds()
    else:
        candidates = list(graph.tree.iter_builds())

    by_job: dict[HierarchyPath, list[Build]] = {}
    for node, build in candidates:
        if require_signal and not has_signal(graph, (node.path, build.iteration)):
            continue
        by_job.setdefault(node.path, []).append(build)

    groups: list[BuildGroup] = []
    for path, builds in by_job.items():
        recent = sort_builds(builds)
        if max_builds is not None:
            recent = recent[:max_builds]
        group = BuildGroup(path=path, builds=recent)
        group.complexity = complexity(graph, group.keys)
        groups.append(group)

    return sorted(groups, key=lambda g: g.complexity, reverse=True)
