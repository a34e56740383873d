"""Resolution of relative upstream references against the job tree.

A build's upstream reference is written relative to the folder the owning
job lives in: resolution starts at the owning node's parent, ".." moves one
level up and any other component descends into the named child.
"""

from __future__ import annotations

from dataclasses import replace

from lineage.errors import NoParentError, UnknownChildError
from lineage.hierarchy.tree import JobNode, JobTree
from lineage.model import (
    PARENT_MARKER,
    Build,
    HierarchyPath,
    RelativeReference,
    ResolvedReference,
)


def resolve_path(
    start: JobNode,
    components: tuple[str, ...],
    owner: JobNode,
    iteration: int,
) -> HierarchyPath:
    """Walk ``components`` from ``start`` and return the absolute path reached.

    Args:
        start: Node the walk begins at.
        components: Relative steps, names or "..".
        owner: Job owning the build being resolved (for diagnostics).
        iteration: Iteration of the build being resolved (for diagnostics).

    Raises:
        NoParentError: If ".." is taken at the root.
        UnknownChildError: If a named child does not exist.
    """
    node = start
    for component in components:
        if component == PARENT_MARKER:
            if node.parent is None:
                raise NoParentError(owner.path, iteration, components)
            node = node.parent
            continue
        child = node.child(component)
        if child is None:
            raise UnknownChildError(
                owner.path,
                iteration,
                components,
                component,
                node.path,
                node.child_names(),
            )
        node = child
    return node.path


def resolve_reference(
    owner: JobNode, build: Build
) -> ResolvedReference | None:
    """Resolve the upstream reference of ``build`` owned by ``owner``.

    Builds without upstream resolve to None; already resolved references
    are returned unchanged.
    """
    upstream = build.upstream
    if upstream is None or isinstance(upstream, ResolvedReference):
        return upstream
    assert isinstance(upstream, RelativeReference)

    start = owner.parent if owner.parent is not None else owner
    path = resolve_path(start, upstream.components, owner, build.iteration)
    return ResolvedReference(path=path, iteration=upstream.iteration)


def resolve_tree(tree: JobTree) -> JobTree:
    """Return a new tree with every build's upstream resolved to an absolute path.

    Raises:
        NoParentError: See resolve_path.
        UnknownChildError: See resolve_path.
    """

    def resolve(node: JobNode, build: Build) -> Build:
        if build.upstream is None:
            return build
        return replace(build, upstream=resolve_reference(node, build))

    return tree.map_builds(resolve)
