"""Error types raised by the lineage pipeline.

Everything deriving from LineageError is fatal: the job hierarchy itself is
inconsistent and no partial result is produced. Dangling upstream
references are not errors; see ``lineage.linking.linker.DanglingReference``.
"""

from __future__ import annotations

from lineage.model import HierarchyPath, format_path


class LineageError(ValueError):
    """Base class for fatal hierarchy errors."""


class MalformedPathError(LineageError):
    """A hierarchy path could not be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed job path '{path}': {reason}")


class DuplicateJobError(LineageError):
    """Two job records share the same hierarchy path."""

    def __init__(self, path: HierarchyPath) -> None:
        self.path = path
        super().__init__(f"Duplicate job path: {format_path(path)}")


class ResolutionError(LineageError):
    """Base for failures while resolving a build's upstream reference."""

    def __init__(
        self,
        owner: HierarchyPath,
        iteration: int,
        components: tuple[str, ...],
        message: str,
    ) -> None:
        self.owner = owner
        self.iteration = iteration
        self.components = components
        super().__init__(
            f"build '{format_path(owner)}[{iteration}]' upstream "
            f"'{'/'.join(components)}': {message}"
        )


class NoParentError(ResolutionError):
    """A '..' step was taken at the tree root."""

    def __init__(
        self,
        owner: HierarchyPath,
        iteration: int,
        components: tuple[str, ...],
    ) -> None:
        super().__init__(
            owner, iteration, components, "'..' goes above the root job"
        )


class UnknownChildError(ResolutionError):
    """A named step does not match any child of the current node."""

    def __init__(
        self,
        owner: HierarchyPath,
        iteration: int,
        components: tuple[str, ...],
        name: str,
        at: HierarchyPath,
        available: list[str],
    ) -> None:
        self.name = name
        self.at = at
        self.available = available
        super().__init__(
            owner,
            iteration,
            components,
            f"'{name}' not found under '{format_path(at)}', "
            f"available: {available}",
        )


class IngestError(LineageError):
    """A CI file could not be read or does not have the expected shape."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read '{path}': {reason}")
