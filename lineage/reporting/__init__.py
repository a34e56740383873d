"""Lineage reporting: YAML and HTML report generation."""

from lineage.reporting.html_reporter import (
    assign_page_names,
    generate_group_html,
    generate_index_html,
    write_html_report,
)
from lineage.reporting.reporter import Reporter

__all__ = [
    "Reporter",
    "assign_page_names",
    "generate_group_html",
    "generate_index_html",
    "write_html_report",
]
