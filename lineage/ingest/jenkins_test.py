"""Tests for reading job records from a Jenkins home directory."""

from __future__ import annotations

import datetime
import tempfile
from pathlib import Path

import pytest

from lineage.errors import IngestError
from lineage.ingest.jenkins import (
    discover_job_dirs,
    load_jobs,
    parse_build_xml,
    parse_job_dir,
    parse_junit_result_xml,
)
from lineage.model import RelativeReference, TestError

# ---------------------------------------------------------------------------
# Sample XML fragments for tests
# ---------------------------------------------------------------------------

BUILD_XML = """\
<?xml version='1.1' encoding='UTF-8'?>
<build>
  <actions>
    <hudson.model.CauseAction>
      <causeBag class="linked-hash-map">
        <entry>
          <hudson.model.Cause_-UpstreamCause>
            <upstreamProject>nightly/../deploy</upstreamProject>
            <upstreamUrl>job/nightly/job/deploy/</upstreamUrl>
            <upstreamBuild>12</upstreamBuild>
          </hudson.model.Cause_-UpstreamCause>
          <int>1</int>
        </entry>
      </causeBag>
    </hudson.model.CauseAction>
  </actions>
  <number>3</number>
  <result>UNSTABLE</result>
  <timestamp>1700000000000</timestamp>
</build>"""

MATRIX_BUILD_XML = """\
<?xml version='1.1' encoding='UTF-8'?>
<matrix-build>
  <actions>
    <hudson.model.CauseAction>
      <causeBag class="linked-hash-map">
        <entry>
          <hudson.model.Cause_-UserIdCause/>
          <int>1</int>
        </entry>
      </causeBag>
    </hudson.model.CauseAction>
  </actions>
  <result>SUCCESS</result>
</matrix-build>"""

RUNNING_BUILD_XML = """\
<?xml version='1.1' encoding='UTF-8'?>
<build>
  <actions/>
</build>"""

JUNIT_XML = """\
<?xml version='1.1' encoding='UTF-8'?>
<result plugin="junit@1.0">
  <suites>
    <suite>
      <name>suite_a</name>
      <duration>1.5</duration>
      <cases>
        <case>
          <duration>0.25</duration>
          <className>pkg.A</className>
          <testName>test_ok</testName>
          <skipped>false</skipped>
          <failedSince>0</failedSince>
        </case>
        <case>
          <duration>0.5</duration>
          <className>pkg.A</className>
          <testName>test_broken</testName>
          <skipped>false</skipped>
          <errorStackTrace>Traceback...</errorStackTrace>
          <errorDetails>assert 1 == 2</errorDetails>
          <failedSince>3</failedSince>
        </case>
      </cases>
    </suite>
    <suite>
      <name>suite_b</name>
      <duration>0</duration>
      <cases>
        <case>
          <duration>0</duration>
          <testName>test_later</testName>
          <skipped>true</skipped>
        </case>
      </cases>
    </suite>
  </suites>
</result>"""


def _build_xml(result: str, upstream: str | None = None, upstream_build: int = 1) -> str:
    cause = ""
    if upstream is not None:
        cause = (
            "<hudson.model.Cause_-UpstreamCause>"
            f"<upstreamProject>{upstream}</upstreamProject>"
            f"<upstreamBuild>{upstream_build}</upstreamBuild>"
            "</hudson.model.Cause_-UpstreamCause>"
        )
    return (
        "<?xml version='1.1' encoding='UTF-8'?>"
        "<build><actions><hudson.model.CauseAction><causeBag><entry>"
        f"{cause}"
        "</entry></causeBag></hudson.model.CauseAction></actions>"
        f"<result>{result}</result></build>"
    )


def _make_job(home: Path, path: str, builds: dict[int, str] | None = None) -> Path:
    """Create jobs/<a>/jobs/<b>... with a config.xml and build files."""
    job_dir = home
    for name in path.split("/"):
        job_dir = job_dir / "jobs" / name
    job_dir.mkdir(parents=True, exist_ok=True)
    (job_dir / "config.xml").write_text("<project/>")
    for iteration, text in (builds or {}).items():
        build_dir = job_dir / "builds" / str(iteration)
        build_dir.mkdir(parents=True)
        (build_dir / "build.xml").write_text(text)
    return job_dir


class TestParseBuildXml:
    """Tests for parse_build_xml()."""

    def test_upstream_cause(self):
        build = parse_build_xml(BUILD_XML, 3)
        assert build.iteration == 3
        assert build.upstream == RelativeReference(("nightly", "..", "deploy"), 12)

    def test_result_mapping(self):
        assert parse_build_xml(BUILD_XML, 3).outcome == "failed"
        assert parse_build_xml(_build_xml("SUCCESS"), 1).outcome == "success"
        assert parse_build_xml(_build_xml("FAILURE"), 1).outcome == "failed"
        assert parse_build_xml(_build_xml("ABORTED"), 1).outcome == "aborted"
        assert parse_build_xml(_build_xml("NOT_BUILT"), 1).outcome == "aborted"

    def test_timestamp(self):
        build = parse_build_xml(BUILD_XML, 3)
        assert build.timestamp == datetime.datetime(
            2023, 11, 14, 22, 13, 20, tzinfo=datetime.timezone.utc
        )

    def test_matrix_build_without_upstream(self):
        build = parse_build_xml(MATRIX_BUILD_XML, 1)
        assert build.outcome == "success"
        assert build.upstream is None
        assert build.timestamp is None

    def test_backslash_project(self):
        build = parse_build_xml(_build_xml("SUCCESS", "..\\A", 4), 1)
        assert build.upstream == RelativeReference(("..", "A"), 4)

    def test_running_build(self):
        assert parse_build_xml(RUNNING_BUILD_XML, 1) is None

    def test_unknown_result(self):
        with pytest.raises(IngestError, match="unknown build result"):
            parse_build_xml(_build_xml("EXPLODED"), 1)

    def test_wrong_root(self):
        with pytest.raises(IngestError, match="got 'project'"):
            parse_build_xml("<project/>", 1)

    def test_invalid_xml(self):
        with pytest.raises(IngestError, match="invalid XML"):
            parse_build_xml("<build>", 1, "jobs/A/builds/1/build.xml")

    def test_out_of_range_timestamp(self, capsys):
        text = _build_xml("SUCCESS").replace(
            "</build>", "<timestamp>" + "9" * 400 + "</timestamp></build>"
        )
        build = parse_build_xml(text, 1)
        assert build.outcome == "success"
        assert build.timestamp is None
        assert "out-of-range timestamp" in capsys.readouterr().err

    def test_non_numeric_upstream_build(self):
        text = _build_xml("SUCCESS").replace(
            "<entry>",
            "<entry><hudson.model.Cause_-UpstreamCause>"
            "<upstreamProject>A</upstreamProject><upstreamBuild>x</upstreamBuild>"
            "</hudson.model.Cause_-UpstreamCause>",
        )
        with pytest.raises(IngestError, match="not a number"):
            parse_build_xml(text, 1)


class TestParseJunitResultXml:
    """Tests for parse_junit_result_xml()."""

    def test_all_suites(self):
        cases = parse_junit_result_xml(JUNIT_XML)
        assert [c.name for c in cases] == ["test_ok", "test_broken", "test_later"]

    def test_outcomes(self):
        ok, broken, later = parse_junit_result_xml(JUNIT_XML)
        assert ok.outcome == "success"
        assert ok.error is None
        assert ok.duration == 0.25
        assert broken.outcome == "failed"
        assert broken.error == TestError(details="assert 1 == 2", stack_trace="Traceback...")
        assert later.outcome == "skipped"

    def test_stack_trace_only_is_failure(self):
        text = (
            "<result><suites><suite><cases><case>"
            "<testName>t</testName><errorStackTrace>boom</errorStackTrace>"
            "</case></cases></suite></suites></result>"
        )
        (case,) = parse_junit_result_xml(text)
        assert case.outcome == "failed"
        assert case.error.details == ""
        assert case.error.stack_trace == "boom"

    def test_no_cases(self):
        assert parse_junit_result_xml("<result><suites/></result>") == []

    def test_control_character_references(self):
        """ANSI color codes stored as XML 1.1 references do not abort parsing."""
        text = (
            "<?xml version='1.1' encoding='UTF-8'?>"
            "<result><suites><suite><cases><case>"
            "<testName>t</testName>"
            "<errorDetails>&#x1b;[31mboom&#x1b;[0m&#27;</errorDetails>"
            "<errorStackTrace>line&#10;next&#x9;tab</errorStackTrace>"
            "</case></cases></suite></suites></result>"
        )
        (case,) = parse_junit_result_xml(text)
        assert case.outcome == "failed"
        assert case.error.details == "\ufffd[31mboom\ufffd[0m\ufffd"
        assert case.error.stack_trace == "line\nnext\ttab"

    def test_malformed_xml_still_rejected(self):
        with pytest.raises(IngestError, match="invalid XML"):
            parse_junit_result_xml("<result>&#x1b;<suites></result>")


class TestDiscoverJobDirs:
    """Tests for discover_job_dirs()."""

    def test_nested_jobs(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            _make_job(home, "A")
            _make_job(home, "A/B")
            _make_job(home, "C")
            found = [d.relative_to(home).as_posix() for d in discover_job_dirs(home)]
            assert found == ["jobs/A", "jobs/A/jobs/B", "jobs/C"]

    def test_skip_subtree(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            _make_job(home, "Discontinued")
            _make_job(home, "Discontinued/Old")
            _make_job(home, "Live")
            found = [d.name for d in discover_job_dirs(home, ["Discontinued"])]
            assert found == ["Live"]

    def test_directory_without_config_ignored(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            (home / "jobs" / "stray").mkdir(parents=True)
            _make_job(home, "A")
            assert [d.name for d in discover_job_dirs(home)] == ["A"]

    def test_symlinked_jobs_not_followed(self):
        """Aliases and loops made of symlinks are skipped."""
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            job_dir = _make_job(home, "A")
            (home / "jobs" / "Alias").symlink_to(job_dir, target_is_directory=True)
            (job_dir / "jobs").mkdir()
            (job_dir / "jobs" / "Loop").symlink_to(job_dir, target_is_directory=True)

            found = [d.relative_to(home).as_posix() for d in discover_job_dirs(home)]
            assert found == ["jobs/A"]

    def test_no_jobs_folder(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert discover_job_dirs(Path(tmpdir)) == []


class TestParseJobDir:
    """Tests for parse_job_dir()."""

    def test_builds_and_tests(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            job_dir = _make_job(home, "A/B", {
                1: _build_xml("SUCCESS"),
                2: _build_xml("FAILURE", "../A", 7),
            })
            (job_dir / "builds" / "2" / "junitResult.xml").write_text(JUNIT_XML)

            record = parse_job_dir(home, job_dir)
            assert record.path == ("A", "B")
            assert sorted(record.builds) == [1, 2]
            assert record.builds[1].tests == ()
            assert len(record.builds[2].tests) == 3
            assert record.builds[2].upstream == RelativeReference(("..", "A"), 7)

    def test_non_numeric_build_dirs_ignored(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            job_dir = _make_job(home, "A", {4: _build_xml("SUCCESS")})
            (job_dir / "builds" / "legacyIds").mkdir()
            (job_dir / "builds" / "permalinks").write_text("lastSuccessfulBuild 4\n")
            record = parse_job_dir(home, job_dir)
            assert list(record.builds) == [4]

    def test_running_build_skipped(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            job_dir = _make_job(home, "A", {1: _build_xml("SUCCESS"), 2: RUNNING_BUILD_XML})
            record = parse_job_dir(home, job_dir)
            assert list(record.builds) == [1]
            assert "no result" in capsys.readouterr().err

    def test_job_without_builds(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            record = parse_job_dir(home, _make_job(home, "A"))
            assert record.builds == {}


class TestLoadJobs:
    """Tests for load_jobs()."""

    def test_discovery_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            _make_job(home, "B", {1: _build_xml("SUCCESS")})
            _make_job(home, "A", {1: _build_xml("SUCCESS")})
            _make_job(home, "A/C")
            records = load_jobs(home, max_parallel=2)
            assert [r.path for r in records] == [("A",), ("A", "C"), ("B",)]

    def test_error_propagates(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            home = Path(tmpdir)
            _make_job(home, "A", {1: "<build"})
            with pytest.raises(IngestError):
                load_jobs(home)
