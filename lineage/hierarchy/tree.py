"""Job hierarchy tree built from flat job records.

Provides JobNode (one job with its builds and children) and JobTree (the
rooted hierarchy with lookup and copy-on-transform helpers), plus the
path parsing that turns a Jenkins directory layout into a hierarchy path.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from lineage.errors import DuplicateJobError, MalformedPathError
from lineage.model import Build, HierarchyPath, JobRecord

# Directory name Jenkins uses for the container of nested jobs
CONTAINER_MARKER = "jobs"

_SEPARATORS = re.compile(r"[\\/]")


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class JobNode:
    """A job in the hierarchy.

    The root of a JobTree is a synthetic node with an empty name and path
    and no builds. ``parent`` is a lookup back-reference only; children are
    owned by their parent's ``children`` list.
    """

    name: str
    path: HierarchyPath
    builds: dict[int, Build] = field(default_factory=dict)
    children: list[JobNode] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    parent: JobNode | None = field(default=None, repr=False)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def child(self, name: str) -> JobNode | None:
        """Return the direct child called ``name``, if any."""
        for child in self.children:
            if child.name == name:
                return child
        return None

    def child_names(self) -> list[str]:
        return [child.name for child in self.children]

    def walk(self) -> Iterator[JobNode]:
        """Yield this node and all descendants, depth-first, parents first."""
        yield self
        for child in self.children:
            yield from child.walk()


class JobTree:
    """Rooted job hierarchy.

    Trees are never modified after construction; ``map_builds`` returns a
    new tree so each pipeline stage can be tested on plain input/output.
    """

    def __init__(self, root: JobNode) -> None:
        self.root = root

    def nodes(self) -> Iterator[JobNode]:
        """Yield every non-root node, parents before children."""
        for child in self.root.children:
            yield from child.walk()

    def find(self, path: Iterable[str]) -> JobNode | None:
        """Look up a node by absolute hierarchy path (empty path is the root)."""
        node: JobNode | None = self.root
        for name in path:
            assert node is not None
            node = node.child(name)
            if node is None:
                return None
        return node

    def iter_builds(self) -> Iterator[tuple[JobNode, Build]]:
        """Yield (node, build) for every build, iteration ascending per job."""
        for node in self.nodes():
            for iteration in sorted(node.builds):
                yield node, node.builds[iteration]

    def map_builds(
        self, fn: Callable[[JobNode, Build], Build]
    ) -> JobTree:
        """Return a copy of the tree with every build replaced by ``fn(node, build)``.

        Node ids, names and paths are preserved; ``fn`` sees the node of the
        input tree.
        """

        def copy(node: JobNode, parent: JobNode | None) -> JobNode:
            new = JobNode(
                name=node.name,
                path=node.path,
                builds={it: fn(node, b) for it, b in node.builds.items()},
                id=node.id,
                parent=parent,
            )
            new.children = [copy(child, new) for child in node.children]
            return new

        root = JobNode(name="", path=(), id=self.root.id)
        root.children = [copy(child, root) for child in self.root.children]
        return JobTree(root)


def parse_hierarchy_path(relative_dir: str) -> HierarchyPath:
    """Convert a job directory relative to the CI home into a hierarchy path.

    Nested jobs live at ``jobs/<name>/jobs/<name>/...``; the ``jobs``
    container markers are stripped.

    Args:
        relative_dir: Directory of the job, relative to the home directory.
            Either separator is accepted.

    Returns:
        The job's hierarchy path.

    Raises:
        MalformedPathError: If the segments do not alternate between the
            container marker and a job name.
    """
    segments = _SEPARATORS.split(relative_dir.strip("/\\"))
    if segments == [""]:
        raise MalformedPathError(relative_dir, "empty path")
    if len(segments) % 2 != 0:
        raise MalformedPathError(
            relative_dir, f"expected '{CONTAINER_MARKER}/<name>' pairs"
        )

    path: list[str] = []
    for marker, name in zip(segments[::2], segments[1::2]):
        if marker != CONTAINER_MARKER:
            raise MalformedPathError(
                relative_dir, f"expected '{CONTAINER_MARKER}', got '{marker}'"
            )
        if not name:
            raise MalformedPathError(relative_dir, "empty job name")
        path.append(name)
    return tuple(path)


def build_tree(records: Iterable[JobRecord]) -> JobTree:
    """Build the job hierarchy from flat job records.

    Records are partitioned by the first path component. A record whose
    path is exactly that component becomes the node; the remaining records
    sharing the component are stripped of it and built recursively as the
    node's children.

    Args:
        records: Job records with absolute hierarchy paths.

    Returns:
        A JobTree rooted at a synthetic node.

    Raises:
        MalformedPathError: If a record has an empty path.
        DuplicateJobError: If two records share a path.
    """
    records = list(records)
    seen: set[HierarchyPath] = set()
    for record in records:
        if not record.path:
            raise MalformedPathError("", "empty path")
        if record.path in seen:
            raise DuplicateJobError(record.path)
        seen.add(record.path)

    root = JobNode(name="", path=())
    # Pair every record with its path relative to the level being built
    pending = [(record.path, record) for record in records]
    root.children = _build_level(pending, root)
    return JobTree(root)


def _build_level(
    pending: list[tuple[HierarchyPath, JobRecord]],
    parent: JobNode,
) -> list[JobNode]:
    groups: dict[str, list[tuple[HierarchyPath, JobRecord]]] = {}
    for relative, record in pending:
        groups.setdefault(relative[0], []).append((relative, record))

    nodes: list[JobNode] = []
    for name in sorted(groups):
        own = [record for relative, record in groups[name] if len(relative) == 1]
        descendants = [
            (relative[1:], record)
            for relative, record in groups[name]
            if len(relative) > 1
        ]
        node = JobNode(
            name=name,
            path=parent.path + (name,),
            builds=dict(own[0].builds) if own else {},
            parent=parent,
        )
        node.children = _build_level(descendants, node)
        nodes.append(node)
    return nodes
