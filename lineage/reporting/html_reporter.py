"""HTML report generation from lineage results.

Writes one self-contained page per build group and an index page linking
them. A group page is a table with one column per build and one row per
test, gathering the tests of the build and of every build it triggered.
"""

from __future__ import annotations

import html
import sys
from pathlib import Path

from lineage.grouping.ranking import BuildGroup
from lineage.linking.linker import LineageGraph
from lineage.model import Build, HierarchyPath, TestCase, format_path
from lineage.pipeline import PipelineResult

# Test outcome color mapping
STATUS_COLORS: dict[str, str] = {
    "success": "#90EE90",
    "failed": "#FFB6C1",
    "skipped": "#D3D3D3",
}

# Test outcome display labels
STATUS_LABELS: dict[str, str] = {
    "success": "PASSED",
    "failed": "FAILED",
    "skipped": "SKIPPED",
}

_CSS = """\
body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    padding: 20px;
    background: #f5f5f5;
    color: #333;
}
table {
    border-collapse: collapse;
    background: #fff;
    box-shadow: 0 1px 3px rgba(0,0,0,0.1);
}
th, td {
    border: 1px solid #ddd;
    padding: 4px 8px;
    font-size: 13px;
    text-align: left;
}
tr.job-row td {
    font-weight: 600;
    background: #f4f6f9;
}
.test-result {
    display: inline-block;
    padding: 1px 6px;
    border-radius: 4px;
    font-size: 11px;
    font-weight: 600;
}
.job-toggle {
    cursor: pointer;
    user-select: none;
}
"""

# Test rows start collapsed; clicking a job row toggles the rows tagged
# with its data-job
_COLLAPSE_JS = """\
(function() {
    var expanded = {};

    function setRows(job, visible) {
        var rows = document.querySelectorAll("tr[data-job]");
        for (var i = 0; i < rows.length; i++) {
            if (rows[i].getAttribute("data-job") === job) {
                rows[i].style.display = visible ? "" : "none";
            }
        }
    }

    var toggles = document.querySelectorAll(".job-toggle");
    for (var i = 0; i < toggles.length; i++) {
        (function(toggle) {
            var job = toggle.getAttribute("data-job");
            var label = toggle.textContent;
            toggle.textContent = "[+] " + label;
            setRows(job, false);
            toggle.addEventListener("click", function() {
                expanded[job] = !expanded[job];
                toggle.textContent = (expanded[job] ? "[-] " : "[+] ") + label;
                setRows(job, expanded[job]);
            });
        })(toggles[i]);
    }
})();
"""

TestRow = tuple[HierarchyPath, str]


def page_name(path: HierarchyPath) -> str:
    """Display and directory name of a job's page."""
    return ".".join(path)


def assign_page_names(paths: list[HierarchyPath]) -> dict[HierarchyPath, str]:
    """Give every job path its own page directory.

    Dotted names are not unique (``("a.b",)`` and ``("a", "b")`` both give
    ``a.b``); later paths that collide get a ``~N`` suffix.
    """
    names: dict[HierarchyPath, str] = {}
    taken: set[str] = set()
    for path in paths:
        if path in names:
            continue
        base = page_name(path)
        name = base
        n = 1
        while name in taken:
            n += 1
            name = f"{base}~{n}"
        if name != base:
            print(
                f"html: page '{base}' already used, writing "
                f"'{format_path(path)}' to '{name}'",
                file=sys.stderr,
            )
        taken.add(name)
        names[path] = name
    return names


def _page(title: str, body: str, script: str = "") -> str:
    script_tag = f"<script>\n{script}</script>\n" if script else ""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n'
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>\n{_CSS}</style>\n"
        f"</head>\n<body>\n{body}\n{script_tag}</body>\n</html>\n"
    )


def _result_cell(outcome: str, info: str = "") -> str:
    color = STATUS_COLORS.get(outcome, "#FFFFFF")
    label = STATUS_LABELS.get(outcome, outcome.upper())
    title = f' title="{html.escape(info)}"' if info else ""
    return (
        f'<span class="test-result" style="background:{color}"{title}>'
        f"{html.escape(label)}</span>"
    )


def aggregate_outcome(tests: list[TestCase]) -> str:
    """Combined outcome of several tests.

    All skipped gives skipped, any failure gives failed, otherwise success.
    """
    if all(t.outcome == "skipped" for t in tests):
        return "skipped"
    if any(t.outcome == "failed" for t in tests):
        return "failed"
    return "success"


def gather_tests(graph: LineageGraph, path: HierarchyPath, build: Build) -> dict[TestRow, TestCase]:
    """Collect tests of a build and of every build it triggered.

    Returns a mapping of (job path, test name) to test case; the first
    occurrence wins when the same test shows up twice.
    """
    gathered: dict[TestRow, TestCase] = {}
    root = graph.lineage(path, build.iteration)
    if root is None:
        return gathered
    for node in root.walk():
        for test in node.build.tests:
            gathered.setdefault((node.path, test.name), test)
    return gathered


def _format_date(build: Build) -> str:
    if build.timestamp is None:
        return ""
    ts = build.timestamp
    return f", {ts.day}/{ts.month}-{ts.year}"


def generate_group_html(group: BuildGroup, graph: LineageGraph) -> str:
    """Render the page of one build group."""
    columns = [gather_tests(graph, group.path, b) for b in group.builds]

    rows: list[TestRow] = []
    seen: set[TestRow] = set()
    for column in columns:
        for row in column:
            if row not in seen:
                seen.add(row)
                rows.append(row)
    rows.sort(key=lambda r: r[0])

    parts: list[str] = ["<table>", "<thead><tr>"]
    parts.append(f"<th>{html.escape(page_name(group.path))}</th>")
    for build in group.builds:
        parts.append(
            f'<th scope="col">Build {build.iteration}'
            f"{html.escape(_format_date(build))}</th>"
        )
    parts.append("</tr></thead>")
    parts.append("<tbody>")

    current_job: HierarchyPath | None = None
    for job, test_name in rows:
        data_job = html.escape(format_path(job))
        if job != current_job:
            current_job = job
            parts.append(
                f'<tr class="job-row"><td><span class="job-toggle" '
                f'data-job="{data_job}">{html.escape(page_name(job))}</span></td>'
            )
            for column in columns:
                related = [t for (j, _), t in column.items() if j == job]
                cell = _result_cell(aggregate_outcome(related)) if related else ""
                parts.append(f"<td>{cell}</td>")
            parts.append("</tr>")

        parts.append(
            f'<tr class="test-row" data-job="{data_job}">'
            f"<td>.... {html.escape(test_name)}</td>"
        )
        for column in columns:
            test = column.get((job, test_name))
            if test is None:
                parts.append("<td></td>")
                continue
            info = test.error.details if test.error is not None else ""
            parts.append(f"<td>{_result_cell(test.outcome, info)}</td>")
        parts.append("</tr>")

    parts.append("</tbody>")
    parts.append("</table>")
    return _page(
        f"Test results: {page_name(group.path)}", "\n".join(parts), _COLLAPSE_JS
    )


def generate_index_html(
    groups: list[BuildGroup],
    root_path_prefix: str = "/",
    names: dict[HierarchyPath, str] | None = None,
) -> str:
    """Render the index page linking every group, in group order.

    ``names`` maps job paths to page directories (default: assign_page_names).
    """
    if names is None:
        names = assign_page_names([group.path for group in groups])
    links = []
    for group in groups:
        href = html.escape(f"{root_path_prefix}{names[group.path]}/")
        label = html.escape(page_name(group.path))
        links.append(f'<li><a href="{href}">{label}</a></li>')
    return _page("Test results", f"<ul>{''.join(links)}</ul>")


def write_html_report(
    result: PipelineResult,
    dest: Path,
    root_path_prefix: str = "/",
) -> None:
    """Write the index page and one page per build group.

    Args:
        result: Output of run_pipeline().
        dest: Output directory, created if needed.
        root_path_prefix: URL prefix under which ``dest`` is served.
    """
    dest.mkdir(parents=True, exist_ok=True)
    (dest / ".gitignore").write_text("*\n")
    names = assign_page_names([group.path for group in result.groups])
    for group in result.groups:
        page = dest / names[group.path] / "index.html"
        page.parent.mkdir(parents=True, exist_ok=True)
        page.write_text(generate_group_html(group, result.graph), encoding="utf-8")
    (dest / "index.html").write_text(
        generate_index_html(result.groups, root_path_prefix, names),
        encoding="utf-8",
    )
