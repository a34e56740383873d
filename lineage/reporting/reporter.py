"""Report generation for lineage results.

Generates YAML (or JSON) reports listing the ordered build groups, each
build's resolved upstream and downstream edges, and the dangling references
found while linking.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from lineage.model import Build, ResolvedReference, format_path
from lineage.pipeline import PipelineResult


class Reporter:
    """Collects a pipeline result and generates structured reports."""

    def __init__(self) -> None:
        self.result: PipelineResult | None = None
        self.source: str | None = None

    def set_result(self, result: PipelineResult) -> None:
        """Set the pipeline result to report on.

        Args:
            result: Output of run_pipeline().
        """
        self.result = result

    def set_source(self, source: str) -> None:
        """Set the location the job records were read from.

        Args:
            source: CI home directory.
        """
        self.source = source

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for YAML or
            JSON serialization.

        Raises:
            ValueError: If no result has been set.
        """
        if self.result is None:
            raise ValueError("No pipeline result set")

        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()
        report: dict[str, Any] = {
            "generated_at": now,
            "summary": self._compute_summary(),
        }
        if self.source:
            report["source"] = self.source

        report["groups"] = [
            {
                "job": format_path(group.path),
                "complexity": group.complexity,
                "builds": [self._build_entry(b) for b in group.builds],
            }
            for group in self.result.groups
        ]
        report["warnings"] = [
            {
                "job": format_path(w.source_path),
                "iteration": w.source_iteration,
                "missing_job": format_path(w.target_path),
                "missing_iteration": w.target_iteration,
            }
            for w in self.result.warnings
        ]
        return {"report": report}

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file.

        Args:
            path: File path to write the YAML report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

    def write_json(self, path: Path) -> None:
        """Write the report as a JSON file.

        Args:
            path: File path to write the JSON report to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)
            f.write("\n")

    def _compute_summary(self) -> dict[str, Any]:
        assert self.result is not None
        graph = self.result.graph
        jobs = 0
        builds = 0
        edges = 0
        tests = 0
        failed_tests = 0
        for node in graph.tree.nodes():
            jobs += 1
            for build in node.builds.values():
                builds += 1
                edges += len(build.downstream)
                tests += len(build.tests)
                failed_tests += sum(1 for t in build.tests if t.outcome == "failed")
        return {
            "jobs": jobs,
            "builds": builds,
            "downstream_edges": edges,
            "dangling_references": len(self.result.warnings),
            "groups": len(self.result.groups),
            "tests": tests,
            "failed_tests": failed_tests,
        }

    @staticmethod
    def _build_entry(build: Build) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "iteration": build.iteration,
            "outcome": build.outcome,
        }
        if build.timestamp is not None:
            entry["timestamp"] = build.timestamp.isoformat()
        entry["tests"] = {
            "total": len(build.tests),
            "failed": sum(1 for t in build.tests if t.outcome == "failed"),
            "skipped": sum(1 for t in build.tests if t.outcome == "skipped"),
        }
        if isinstance(build.upstream, ResolvedReference):
            entry["upstream"] = {
                "job": format_path(build.upstream.path),
                "iteration": build.upstream.iteration,
            }
        if build.downstream:
            entry["downstream"] = [
                {"job": format_path(edge.path), "iteration": edge.iteration}
                for edge in build.downstream
            ]
        return entry
