"""Entry point for the lineage report generator.

Reads a Jenkins home directory, links every build to the builds it
triggered and renders the most interesting job groups as static HTML.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from lineage.config import LineageConfig
from lineage.errors import LineageError
from lineage.hierarchy.tree import CONTAINER_MARKER
from lineage.ingest.jenkins import load_jobs
from lineage.pipeline import run_pipeline
from lineage.reporting.html_reporter import write_html_report
from lineage.reporting.reporter import Reporter


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Build lineage report - links CI builds to the builds they triggered"
    )
    parser.add_argument(
        "jenkins_home",
        type=Path,
        help="Jenkins home directory (the one containing jobs/)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("out"),
        help="Directory to write the HTML report to (default: out)",
    )
    parser.add_argument(
        "--skip",
        type=str,
        default=None,
        help="Comma-separated job names to ignore (default: Discontinued)",
    )
    parser.add_argument(
        "--max-builds",
        type=int,
        default=None,
        help="Most recent builds shown per job (default: 10)",
    )
    parser.add_argument(
        "--include-silent",
        action="store_true",
        default=False,
        help="Also show builds with no tests anywhere in their lineage",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the .lineage_config JSON file",
    )
    parser.add_argument(
        "--yaml-report",
        type=Path,
        default=None,
        help="Path to write a YAML lineage report",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    config = LineageConfig(args.config_file)
    config.set_config(
        max_builds=args.max_builds,
        skip=args.skip.split(",") if args.skip is not None else None,
        require_signal=False if args.include_silent else None,
    )

    if not (args.jenkins_home / CONTAINER_MARKER).is_dir():
        print(
            f"Error: expected '{args.jenkins_home}' to have a "
            f"{CONTAINER_MARKER}/ folder\n"
            "  hint: specify the Jenkins user working directory",
            file=sys.stderr,
        )
        return 1

    try:
        records = load_jobs(
            args.jenkins_home,
            skip=config.skip,
            max_parallel=config.max_parallel,
        )
        result = run_pipeline(
            records,
            max_builds=config.max_builds,
            require_signal=config.require_signal,
        )
    except LineageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result.warnings:
        print(
            f"{len(result.warnings)} upstream reference(s) could not be linked",
            file=sys.stderr,
        )

    write_html_report(result, args.output, config.root_path_prefix)

    if args.yaml_report:
        reporter = Reporter()
        reporter.set_source(str(args.jenkins_home))
        reporter.set_result(result)
        reporter.write_yaml(args.yaml_report)

    print(f"rendered to '{args.output}'", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
