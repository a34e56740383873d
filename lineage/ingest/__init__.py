"""Job record ingestion from a Jenkins home directory."""

from lineage.ingest.jenkins import (
    discover_job_dirs,
    load_jobs,
    parse_build_xml,
    parse_job_dir,
    parse_junit_result_xml,
)

__all__ = [
    "discover_job_dirs",
    "load_jobs",
    "parse_build_xml",
    "parse_job_dir",
    "parse_junit_result_xml",
]
