"""Grouping of builds per job and interestingness ranking."""

from lineage.grouping.ranking import BuildGroup, complexity, group_builds, has_signal, sort_builds

__all__ = [
    "BuildGroup",
    "complexity",
    "group_builds",
    "has_signal",
    "sort_builds",
]
