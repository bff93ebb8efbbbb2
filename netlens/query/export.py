from __future__ import annotations

import csv
import io
from typing import Any

from netlens.models.query import QueryResult


def _cell(value: Any) -> Any:
    return "" if value is None else value


def result_rows(result: QueryResult) -> tuple[list[str], list[list[Any]]]:
    """Header and rows for tabular export, in the result's own row order.

    Grouped rows win when present; otherwise the time series is exported.
    """
    if result.grouped:
        header = list(result.columns)
        return header, [[_cell(row.get(c)) for c in header] for row in result.grouped]

    header = list(result.columns) or ["time", "value", "latency"]
    rows: list[list[Any]] = []
    for point in result.time_series:
        base = {"time": point.time, "value": point.value, "latency": point.latency, **point.extra}
        rows.append([_cell(base.get(c)) for c in header])
    return header, rows


def result_to_csv(result: QueryResult) -> str:
    header, rows = result_rows(result)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()
