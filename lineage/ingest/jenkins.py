"""Read job records from a Jenkins home directory.

Jobs live at ``jobs/<name>/config.xml``, folders nest further jobs under
their own ``jobs/`` directory, and every build of a job is stored as
``builds/<iteration>/build.xml`` with an optional ``junitResult.xml`` next
to it. Only the fields needed for lineage are extracted.
"""

from __future__ import annotations

import datetime
import re
import sys
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator

from lineage.errors import IngestError
from lineage.hierarchy.tree import CONTAINER_MARKER, parse_hierarchy_path
from lineage.model import (
    Build,
    JobRecord,
    RelativeReference,
    TestCase,
    TestError,
)

CONFIG_FILE = "config.xml"
BUILD_FILE = "build.xml"
JUNIT_FILE = "junitResult.xml"

# Jenkins result names mapped onto build outcomes
RESULT_OUTCOMES: dict[str, str] = {
    "SUCCESS": "success",
    "UNSTABLE": "failed",
    "FAILURE": "failed",
    "ABORTED": "aborted",
    "NOT_BUILT": "aborted",
}

BUILD_ROOT_TAGS = frozenset({"build", "matrix-build"})
UPSTREAM_CAUSE_TAG = "hudson.model.Cause_-UpstreamCause"

_SEPARATORS = re.compile(r"[\\/]")

# Numeric character references; XML 1.1 allows C0 controls that expat rejects
_CHAR_REF = re.compile(r"&#(x[0-9a-fA-F]+|[0-9]+);")
_XML10_CONTROLS = frozenset({0x9, 0xA, 0xD})


def _text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None:
        return None
    return (child.text or "").strip()


def _replace_control_ref(match: re.Match[str]) -> str:
    ref = match.group(1)
    code = int(ref[1:], 16) if ref.startswith("x") else int(ref)
    if code < 0x20 and code not in _XML10_CONTROLS:
        return "\ufffd"
    return match.group(0)


def _parse_xml(text: str, source: str) -> ET.Element:
    """Parse a Jenkins XML file.

    Jenkins writes XML 1.1 and stores control characters (ANSI color codes
    in test output, for one) as character references. Expat only accepts
    XML 1.0, so those references are replaced by U+FFFD first.
    """
    text = _CHAR_REF.sub(_replace_control_ref, text)
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise IngestError(source, f"invalid XML: {e}") from e


def parse_build_xml(
    text: str, iteration: int, source: str = BUILD_FILE
) -> Build | None:
    """Parse the contents of a ``build.xml`` file.

    Args:
        text: File contents.
        iteration: Build number taken from the directory name.
        source: File name used in error messages.

    Returns:
        The build without tests, or None if the build has no result yet
        (still running when the snapshot was taken).

    Raises:
        IngestError: If the document is not a build record or carries an
            unknown result.
    """
    root = _parse_xml(text, source)
    if root.tag not in BUILD_ROOT_TAGS:
        raise IngestError(
            source, f"expected one of {sorted(BUILD_ROOT_TAGS)}, got '{root.tag}'"
        )

    result = _text(root, "result")
    if not result:
        return None
    if result not in RESULT_OUTCOMES:
        raise IngestError(source, f"unknown build result '{result}'")

    upstream: RelativeReference | None = None
    for cause in root.iter(UPSTREAM_CAUSE_TAG):
        project = _text(cause, "upstreamProject")
        build_number = _text(cause, "upstreamBuild")
        if not project or not build_number:
            raise IngestError(source, "upstream cause without project or build")
        try:
            upstream_iteration = int(build_number)
        except ValueError as e:
            raise IngestError(
                source, f"upstream build '{build_number}' is not a number"
            ) from e
        components = tuple(c for c in _SEPARATORS.split(project) if c)
        upstream = RelativeReference(components, upstream_iteration)
        break

    timestamp: datetime.datetime | None = None
    millis = _text(root, "timestamp")
    if millis and millis.isdigit():
        try:
            timestamp = datetime.datetime.fromtimestamp(
                int(millis) / 1000, tz=datetime.timezone.utc
            )
        except (OverflowError, OSError, ValueError):
            print(
                f"ingest: ignoring out-of-range timestamp '{millis}' in {source}",
                file=sys.stderr,
            )

    return Build(
        iteration=iteration,
        outcome=RESULT_OUTCOMES[result],
        upstream=upstream,
        timestamp=timestamp,
    )


def parse_junit_result_xml(text: str, source: str = JUNIT_FILE) -> list[TestCase]:
    """Parse the test cases of a ``junitResult.xml`` file.

    Cases from every suite are returned in document order.
    """
    root = _parse_xml(text, source)
    cases: list[TestCase] = []
    for case in root.iter("case"):
        name = _text(case, "testName") or ""
        try:
            duration = float(_text(case, "duration") or 0)
        except ValueError:
            duration = 0.0

        details = case.find("errorDetails")
        stack_trace = case.find("errorStackTrace")
        if (_text(case, "skipped") or "").lower() == "true":
            cases.append(TestCase(name=name, duration=duration, outcome="skipped"))
        elif details is not None or stack_trace is not None:
            error = TestError(
                details=(details.text or "") if details is not None else "",
                stack_trace=(stack_trace.text or "") if stack_trace is not None else "",
            )
            cases.append(
                TestCase(name=name, duration=duration, outcome="failed", error=error)
            )
        else:
            cases.append(TestCase(name=name, duration=duration, outcome="success"))
    return cases


def discover_job_dirs(home: Path, skip: Iterable[str] = ()) -> list[Path]:
    """Find every job directory below ``home/jobs``.

    A job directory is ``jobs/<name>`` containing a ``config.xml``. Jobs
    named in ``skip`` are ignored together with everything nested in them.
    """
    skipped = set(skip)
    return list(_walk_container(home / CONTAINER_MARKER, skipped))


def _walk_container(container: Path, skipped: set[str]) -> Iterator[Path]:
    if not container.is_dir():
        return
    for job_dir in sorted(container.iterdir()):
        # Symlinked jobs are not followed
        if job_dir.is_symlink() or not job_dir.is_dir() or job_dir.name in skipped:
            continue
        if (job_dir / CONFIG_FILE).is_file():
            yield job_dir
        yield from _walk_container(job_dir / CONTAINER_MARKER, skipped)


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise IngestError(str(path), e.strerror or str(e)) from e


def parse_job_dir(home: Path, job_dir: Path) -> JobRecord:
    """Read one job directory into a JobRecord.

    Raises:
        MalformedPathError: If the directory is not laid out as
            ``jobs/<name>/jobs/<name>...`` below ``home``.
        IngestError: If a build file cannot be parsed.
    """
    path = parse_hierarchy_path(job_dir.relative_to(home).as_posix())
    record = JobRecord(path=path)

    builds_dir = job_dir / "builds"
    if not builds_dir.is_dir():
        return record

    for build_dir in sorted(builds_dir.iterdir()):
        # Jenkins keeps symlinks such as lastSuccessfulBuild next to the builds
        if not build_dir.name.isdigit() or build_dir.is_symlink():
            continue
        build_file = build_dir / BUILD_FILE
        if not build_file.is_file():
            continue

        iteration = int(build_dir.name)
        build = parse_build_xml(_read(build_file), iteration, str(build_file))
        if build is None:
            print(f"ingest: skipping {build_file}: no result", file=sys.stderr)
            continue

        junit_file = build_dir / JUNIT_FILE
        if junit_file.is_file():
            tests = parse_junit_result_xml(_read(junit_file), str(junit_file))
            build = replace(build, tests=tuple(tests))
        record.builds[iteration] = build

    return record


def load_jobs(
    home: Path,
    skip: Iterable[str] = (),
    max_parallel: int | None = None,
) -> list[JobRecord]:
    """Read every job record of a Jenkins home.

    Job directories are independent and parsed concurrently; the result
    follows discovery order.

    Args:
        home: Jenkins home directory (the one containing ``jobs/``).
        skip: Job names to ignore, including their nested jobs.
        max_parallel: Worker threads (None = executor default).
    """
    job_dirs = discover_job_dirs(home, skip)
    with ThreadPoolExecutor(max_workers=max_parallel) as pool:
        return list(pool.map(lambda d: parse_job_dir(home, d), job_dirs))
