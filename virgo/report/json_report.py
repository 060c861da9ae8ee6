# virgo/report/json_report.py

"""
JSON report for a fetch run.

Serializes a list of Result objects together with a short summary.
"""
from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List

from virgo.fetcher.models import Result


def summarize(results: Iterable[Result]) -> Dict[str, Any]:
    """Count results by outcome, HTTP status and error type."""
    total = ok = 0
    statuses: Counter[str] = Counter()
    errors: Counter[str] = Counter()
    for result in results:
        total += 1
        if result.ok:
            ok += 1
            statuses[str(result.status)] += 1
        else:
            errors[type(result.error).__name__] += 1
    return {
        "total": total,
        "ok": ok,
        "failed": total - ok,
        "statuses": dict(sorted(statuses.items())),
        "errors": dict(sorted(errors.items())),
    }


def render_json(
    results: List[Result],
    output_path: Path | str,
    *,
    pretty: bool = False,
    include_body: bool = False,
) -> Path:
    """
    Save *results* as a JSON report at *output_path*.

    :param results: Results of one run, in any order
    :param output_path: path of the JSON file
    :return: Path of the saved file

    Example:
    ```python
    from virgo.report.json_report import render_json
    report_path = render_json(results, 'reports/run.json', pretty=True)
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "summary": summarize(results),
        "results": [r.to_dict(include_body=include_body) for r in results],
    }

    with output.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    return output
