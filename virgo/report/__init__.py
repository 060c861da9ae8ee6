# File: virgo/report/__init__.py
"""virgo.report: report writers used by the CLI."""

from virgo.report.json_report import render_json, summarize

__all__ = ["render_json", "summarize"]
