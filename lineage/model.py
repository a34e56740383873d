"""Data structures shared by every stage of the lineage pipeline.

A JobRecord is what ingestion produces: a hierarchy path plus the builds
found for that job. Builds start out with a RelativeReference upstream,
get a ResolvedReference once the resolver has run, and receive their
DownstreamEdge set from the linker.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Union

HierarchyPath = tuple[str, ...]
BuildKey = tuple[HierarchyPath, int]

PARENT_MARKER = ".."

# Valid outcome values
TEST_OUTCOMES = frozenset({"success", "skipped", "failed"})
BUILD_OUTCOMES = frozenset({"success", "aborted", "failed"})


def format_path(path: HierarchyPath) -> str:
    """Render a hierarchy path for diagnostics ("A/B/C", "<root>" if empty)."""
    if not path:
        return "<root>"
    return "/".join(path)


@dataclass(frozen=True)
class TestError:
    """Failure details attached to a failed test case."""

    details: str
    stack_trace: str


@dataclass(frozen=True)
class TestCase:
    """A single test case result from a build."""

    name: str
    duration: float
    outcome: str  # success, skipped, failed
    error: TestError | None = None

    def __post_init__(self) -> None:
        if self.outcome not in TEST_OUTCOMES:
            raise ValueError(f"Unknown test outcome: {self.outcome!r}")
        if (self.outcome == "failed") != (self.error is not None):
            raise ValueError(
                f"Test case {self.name!r}: error details are required for "
                f"failed tests and only for failed tests"
            )


@dataclass(frozen=True)
class RelativeReference:
    """Upstream pointer as recorded by the CI server.

    The components are relative to the owning job's parent and may contain
    ".." parent markers.
    """

    components: tuple[str, ...]
    iteration: int


@dataclass(frozen=True)
class ResolvedReference:
    """Upstream pointer after resolution against the job tree."""

    path: HierarchyPath
    iteration: int

    @property
    def key(self) -> BuildKey:
        return (self.path, self.iteration)


Reference = Union[RelativeReference, ResolvedReference]


@dataclass(frozen=True)
class DownstreamEdge:
    """Records that the owning build triggered build ``iteration`` of ``path``."""

    path: HierarchyPath
    iteration: int

    @property
    def key(self) -> BuildKey:
        return (self.path, self.iteration)


@dataclass(frozen=True)
class Build:
    """One iteration of a job.

    ``iteration`` is only unique within the owning job.
    """

    iteration: int
    outcome: str  # success, aborted, failed
    tests: tuple[TestCase, ...] = ()
    upstream: Reference | None = None
    downstream: tuple[DownstreamEdge, ...] = ()
    timestamp: datetime.datetime | None = None

    def __post_init__(self) -> None:
        if self.outcome not in BUILD_OUTCOMES:
            raise ValueError(f"Unknown build outcome: {self.outcome!r}")


@dataclass
class JobRecord:
    """A flat job as read from storage: hierarchy path and its builds."""

    path: HierarchyPath
    builds: dict[int, Build] = field(default_factory=dict)
