from __future__ import annotations

from netlens.models.query import QueryResult, QuerySummary, TimeSeriesPoint
from netlens.query.export import result_to_csv

SUMMARY = QuerySummary(
    total_count=3, avg_latency=0, start="2024-05-01T10:00:00Z", end="2024-05-01T12:00:00Z"
)


def test_grouped_rows_keep_order_and_quote_commas() -> None:
    result = QueryResult(
        time_series=[],
        grouped=[
            {"location": "DC-North, rack 2", "count": 2},
            {"location": "DC-South", "count": 1},
        ],
        summary=SUMMARY,
        columns=["location", "count"],
        group_by="location",
    )
    assert result_to_csv(result) == 'location,count\n"DC-North, rack 2",2\nDC-South,1\n'


def test_time_series_export_includes_extra_columns() -> None:
    result = QueryResult(
        time_series=[
            TimeSeriesPoint(time="2024-05-01T10:00:00Z", value=2, latency=15.5, extra={"bytes": 30}),
            TimeSeriesPoint(time="2024-05-01T11:00:00Z", value=0, latency=None, extra={"bytes": 0}),
        ],
        grouped=[],
        summary=SUMMARY,
        columns=["time", "value", "latency", "bytes"],
    )
    assert result_to_csv(result).splitlines() == [
        "time,value,latency,bytes",
        "2024-05-01T10:00:00Z,2,15.5,30",
        "2024-05-01T11:00:00Z,0,,0",
    ]
