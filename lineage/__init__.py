"""Build lineage for CI job hierarchies: job tree, upstream resolution and downstream linking."""

from lineage.pipeline import PipelineResult, run_pipeline

__all__ = ["PipelineResult", "run_pipeline"]
