"""HTML and JSON coverage report generation."""

from fuzzscope.reports.generator import (
    HTML_REPORT_NAME,
    JSON_REPORT_NAME,
    ReportGenerator,
    generate_report,
)

__all__ = ["HTML_REPORT_NAME", "JSON_REPORT_NAME", "ReportGenerator", "generate_report"]
