"""Unit tests for the reference resolver."""

from __future__ import annotations

import pytest

from lineage.errors import NoParentError, UnknownChildError
from lineage.hierarchy.resolver import resolve_path, resolve_reference, resolve_tree
from lineage.hierarchy.tree import build_tree
from lineage.model import Build, JobRecord, RelativeReference, ResolvedReference


def _build(iteration: int, upstream: str | None = None, upstream_iteration: int = 1) -> Build:
    ref = None
    if upstream is not None:
        ref = RelativeReference(tuple(upstream.split("/")), upstream_iteration)
    return Build(iteration=iteration, outcome="success", upstream=ref)


def _record(path: str, *builds: Build) -> JobRecord:
    return JobRecord(path=tuple(path.split("/")), builds={b.iteration: b for b in builds})


def _tree(*records: JobRecord):
    return build_tree(records)


class TestResolvePath:
    """Tests for the directory-style walk."""

    def test_named_steps(self):
        tree = _tree(_record("A"), _record("A/B"), _record("A/B/C"))
        a = tree.find(("A",))
        assert resolve_path(tree.root, ("A", "B", "C"), a, 1) == ("A", "B", "C")

    def test_parent_steps(self):
        tree = _tree(_record("A"), _record("A/B"), _record("A/B/C"))
        c = tree.find(("A", "B", "C"))
        assert resolve_path(c, ("..", ".."), c, 1) == ("A",)

    def test_mixed_steps(self):
        tree = _tree(_record("A"), _record("A/B"), _record("A/D"))
        b = tree.find(("A", "B"))
        assert resolve_path(b, ("..", "D"), b, 1) == ("A", "D")

    def test_no_steps_returns_start(self):
        """An empty step list leaves the path unchanged."""
        tree = _tree(_record("A"), _record("A/B"))
        b = tree.find(("A", "B"))
        assert resolve_path(b, (), b, 1) == ("A", "B")

    def test_parent_of_root(self):
        tree = _tree(_record("A"))
        a = tree.find(("A",))
        with pytest.raises(NoParentError):
            resolve_path(tree.root, ("..",), a, 4)

    def test_unknown_child_lists_available(self):
        tree = _tree(_record("A"), _record("A/B"), _record("A/C"))
        a = tree.find(("A",))
        with pytest.raises(UnknownChildError) as excinfo:
            resolve_path(a, ("Z",), a, 7)
        err = excinfo.value
        assert err.name == "Z"
        assert err.at == ("A",)
        assert err.available == ["B", "C"]
        assert "['B', 'C']" in str(err)


class TestResolveReference:
    """Tests for resolve_reference()."""

    def test_sibling_reference(self):
        """References start at the owning job's parent."""
        tree = _tree(_record("A"), _record("A/B", _build(2, "C")), _record("A/C"))
        b = tree.find(("A", "B"))
        resolved = resolve_reference(b, b.builds[2])
        assert resolved == ResolvedReference(("A", "C"), 1)

    def test_top_level_reference(self):
        tree = _tree(_record("X"), _record("Y", _build(1, "X", 8)))
        y = tree.find(("Y",))
        assert resolve_reference(y, y.builds[1]) == ResolvedReference(("X",), 8)

    def test_parent_marker_reference(self):
        """Job A/B pointing at ../A resolves to A."""
        tree = _tree(_record("A"), _record("A/B", _build(2, "../A", 5)))
        b = tree.find(("A", "B"))
        assert resolve_reference(b, b.builds[2]) == ResolvedReference(("A",), 5)

    def test_no_upstream(self):
        tree = _tree(_record("A", _build(1)))
        a = tree.find(("A",))
        assert resolve_reference(a, a.builds[1]) is None

    def test_already_resolved_is_unchanged(self):
        tree = _tree(_record("A"), _record("A/B"))
        b = tree.find(("A", "B"))
        ref = ResolvedReference(("A",), 3)
        build = Build(iteration=1, outcome="success", upstream=ref)
        assert resolve_reference(b, build) is ref

    def test_grandparent_of_top_level_job(self):
        """Two '..' steps from a job directly under the root have no target."""
        tree = _tree(_record("A", _build(1, "../../X")), _record("X"))
        a = tree.find(("A",))
        with pytest.raises(NoParentError) as excinfo:
            resolve_reference(a, a.builds[1])
        assert excinfo.value.owner == ("A",)
        assert excinfo.value.iteration == 1
        assert "A[1]" in str(excinfo.value)

    def test_unknown_child_reports_build(self):
        tree = _tree(_record("A"), _record("A/B", _build(9, "missing")))
        b = tree.find(("A", "B"))
        with pytest.raises(UnknownChildError) as excinfo:
            resolve_reference(b, b.builds[9])
        assert excinfo.value.owner == ("A", "B")
        assert excinfo.value.iteration == 9
        assert "A/B[9]" in str(excinfo.value)

    def test_resolution_ignores_build_contents(self):
        tree = _tree(_record("A", _build(1)), _record("A/B"))
        b = tree.find(("A", "B"))
        failed = Build(iteration=3, outcome="failed", upstream=RelativeReference(("..", "A"), 1))
        ok = Build(iteration=4, outcome="success", upstream=RelativeReference(("..", "A"), 1))
        assert resolve_reference(b, failed).path == resolve_reference(b, ok).path


class TestResolveTree:
    """Tests for resolve_tree()."""

    def test_all_references_resolved(self):
        tree = _tree(
            _record("A", _build(5)),
            _record("A/B", _build(2, "../A", 5)),
            _record("A/B/C", _build(1, "../B", 2)),
        )
        resolved = resolve_tree(tree)
        assert resolved.find(("A",)).builds[5].upstream is None
        assert resolved.find(("A", "B")).builds[2].upstream == ResolvedReference(("A",), 5)
        assert resolved.find(("A", "B", "C")).builds[1].upstream == ResolvedReference(("A", "B"), 2)

    def test_input_tree_unchanged(self):
        tree = _tree(_record("A", _build(5)), _record("A/B", _build(2, "../A", 5)))
        resolve_tree(tree)
        upstream = tree.find(("A", "B")).builds[2].upstream
        assert isinstance(upstream, RelativeReference)

    def test_deterministic(self):
        tree = _tree(_record("A", _build(5)), _record("A/B", _build(2, "../A", 5)))
        first = resolve_tree(tree)
        second = resolve_tree(tree)
        assert [b for _, b in first.iter_builds()] == [b for _, b in second.iter_builds()]

    def test_fatal_error_propagates(self):
        tree = _tree(_record("A", _build(1, "../../X")))
        with pytest.raises(NoParentError):
            resolve_tree(tree)
