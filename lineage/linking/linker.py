"""Lineage graph construction from resolved upstream references.

Every build names at most one upstream build. The linker inverts that
relation into DownstreamEdge sets on the triggering builds, and provides
LineageGraph for querying the result in either direction.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from typing import Iterable

from lineage.hierarchy.tree import JobNode, JobTree
from lineage.model import (
    Build,
    BuildKey,
    DownstreamEdge,
    HierarchyPath,
    ResolvedReference,
    format_path,
)


@dataclass(frozen=True)
class DanglingReference:
    """An upstream reference whose target build does not exist."""

    source_path: HierarchyPath
    source_iteration: int
    target_path: HierarchyPath
    target_iteration: int

    def describe(self) -> str:
        return (
            f"build '{format_path(self.source_path)}[{self.source_iteration}]' "
            f"relies on non-existent "
            f"'{format_path(self.target_path)}[{self.target_iteration}]'"
        )


@dataclass
class LineageNode:
    """A build and everything it triggered, for recursive rendering."""

    path: HierarchyPath
    build: Build
    children: list[LineageNode] = field(default_factory=list)

    def walk(self) -> Iterable[LineageNode]:
        yield self
        for child in self.children:
            yield from child.walk()


def dedupe_edges(edges: Iterable[DownstreamEdge]) -> tuple[DownstreamEdge, ...]:
    """Drop repeated edges, keeping the first occurrence of each target."""
    seen: set[BuildKey] = set()
    result: list[DownstreamEdge] = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        result.append(edge)
    return tuple(result)


class LineageGraph:
    """Job tree whose builds carry their downstream edges.

    Builds are indexed by (path, iteration) so lookups in either direction
    do not rescan the tree.
    """

    def __init__(
        self,
        tree: JobTree,
        warnings: list[DanglingReference] | None = None,
    ) -> None:
        self.tree = tree
        self.warnings: list[DanglingReference] = list(warnings or [])
        self._index: dict[BuildKey, Build] = {
            (node.path, build.iteration): build
            for node, build in tree.iter_builds()
        }

    def build(self, path: HierarchyPath, iteration: int) -> Build | None:
        """Get a build by owning job path and iteration."""
        return self._index.get((tuple(path), iteration))

    def downstream_of(self, path: HierarchyPath, iteration: int) -> list[Build]:
        """Get the builds directly triggered by a build."""
        build = self.build(path, iteration)
        if build is None:
            return []
        return [self._index[edge.key] for edge in build.downstream]

    def upstream_of(self, path: HierarchyPath, iteration: int) -> Build | None:
        """Get the build that triggered a build.

        Returns None for top-of-chain builds and for dangling references.
        """
        build = self.build(path, iteration)
        if build is None or not isinstance(build.upstream, ResolvedReference):
            return None
        return self._index.get(build.upstream.key)

    def lineage(self, path: HierarchyPath, iteration: int) -> LineageNode | None:
        """Gather the whole tree of builds triggered, directly or not, by a build.

        A build already on the current route is not expanded a second time.
        """
        return self._gather((tuple(path), iteration), frozenset())

    def _gather(
        self, key: BuildKey, route: frozenset[BuildKey]
    ) -> LineageNode | None:
        build = self._index.get(key)
        if build is None:
            return None
        node = LineageNode(path=key[0], build=build)
        route = route | {key}
        for edge in build.downstream:
            if edge.key in route:
                continue
            child = self._gather(edge.key, route)
            if child is not None:
                node.children.append(child)
        return node

    def root_builds(self) -> list[tuple[JobNode, Build]]:
        """Builds heading a lineage chain.

        A build heads a chain when it has no upstream or its upstream is
        dangling.
        """
        roots: list[tuple[JobNode, Build]] = []
        for node, build in self.tree.iter_builds():
            if self.upstream_of(node.path, build.iteration) is None:
                roots.append((node, build))
        return roots


def link_lineage(tree: JobTree) -> LineageGraph:
    """Attach downstream edges to every build of a resolved tree.

    Args:
        tree: Tree whose upstream references have all been resolved.

    Returns:
        A LineageGraph over a new tree. References to builds that do not
        exist are reported on stderr, recorded in ``warnings`` and skipped.

    Raises:
        TypeError: If a build still carries an unresolved reference.
    """
    existing: set[BuildKey] = {
        (node.path, build.iteration) for node, build in tree.iter_builds()
    }

    matches: dict[BuildKey, list[DownstreamEdge]] = {}
    warnings: list[DanglingReference] = []
    for node, build in tree.iter_builds():
        upstream = build.upstream
        if upstream is None:
            continue
        if not isinstance(upstream, ResolvedReference):
            raise TypeError(
                f"build '{format_path(node.path)}[{build.iteration}]' has an "
                f"unresolved upstream reference; run resolve_tree first"
            )
        if upstream.key not in existing:
            dangling = DanglingReference(
                source_path=node.path,
                source_iteration=build.iteration,
                target_path=upstream.path,
                target_iteration=upstream.iteration,
            )
            print(f"lineage: warning: {dangling.describe()}", file=sys.stderr)
            warnings.append(dangling)
            continue
        matches.setdefault(upstream.key, []).append(
            DownstreamEdge(path=node.path, iteration=build.iteration)
        )

    def attach(node: JobNode, build: Build) -> Build:
        edges = matches.get((node.path, build.iteration))
        if not edges:
            return replace(build, downstream=())
        return replace(build, downstream=dedupe_edges(edges))

    return LineageGraph(tree.map_builds(attach), warnings)
