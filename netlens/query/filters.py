from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from netlens.models.query import FilterCondition, FilterOperator
from netlens.models.telemetry import TelemetryRecord
from netlens.query.fields import FieldResolver

_FIELD = r"(?P<field>[A-Za-z_][\w.]*)"
_BETWEEN_RE = re.compile(
    rf"^\s*{_FIELD}\s+BETWEEN\s+(?P<low>\S+)\s+AND\s+(?P<high>\S+)\s*$", re.IGNORECASE
)
_IN_RE = re.compile(rf"^\s*{_FIELD}\s+IN\s*\((?P<items>.*)\)\s*$", re.IGNORECASE)
_LIKE_RE = re.compile(rf"^\s*{_FIELD}\s+LIKE\s+(?P<value>.+?)\s*$", re.IGNORECASE)
_COMPARE_RE = re.compile(rf"^\s*{_FIELD}\s*(?P<op>==|!=|<>|>=|<=|=|>|<)\s*(?P<value>.+?)\s*$")
_IN_ITEM_RE = re.compile(r"\"([^\"]*)\"|'([^']*)'|([^,\s]+)")

_OPERATOR_ALIASES: dict[str, FilterOperator] = {
    "==": FilterOperator.EQ,
    "<>": FilterOperator.NE,
    "eq": FilterOperator.EQ,
    "ne": FilterOperator.NE,
    "gt": FilterOperator.GT,
    "gte": FilterOperator.GE,
    "ge": FilterOperator.GE,
    "lt": FilterOperator.LT,
    "lte": FilterOperator.LE,
    "le": FilterOperator.LE,
}


def parse_literal(text: str) -> Any:
    value = text.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def _invalid(expression: str) -> FilterCondition:
    return FilterCondition(field="", operator=None, expression=expression)


def parse_filter(expression: str) -> FilterCondition:
    """Parse a textual WHERE condition; unparseable text never matches."""
    text = expression.strip()

    match = _BETWEEN_RE.match(text)
    if match:
        low = parse_literal(match.group("low"))
        high = parse_literal(match.group("high"))
        if _as_number(low) is None or _as_number(high) is None:
            return _invalid(expression)
        return FilterCondition(
            field=match.group("field"),
            operator=FilterOperator.BETWEEN,
            values=(low, high),
            expression=expression,
        )

    match = _IN_RE.match(text)
    if match:
        items = tuple(
            parse_literal(bare) if bare else dq or sq
            for dq, sq, bare in _IN_ITEM_RE.findall(match.group("items"))
        )
        if not items:
            return _invalid(expression)
        return FilterCondition(
            field=match.group("field"),
            operator=FilterOperator.IN,
            values=items,
            expression=expression,
        )

    match = _LIKE_RE.match(text)
    if match:
        pattern = parse_literal(match.group("value"))
        return FilterCondition(
            field=match.group("field"),
            operator=FilterOperator.LIKE,
            values=(str(pattern),),
            expression=expression,
        )

    match = _COMPARE_RE.match(text)
    if match:
        op = match.group("op")
        return FilterCondition(
            field=match.group("field"),
            operator=_OPERATOR_ALIASES.get(op) or FilterOperator(op),
            values=(parse_literal(match.group("value")),),
            expression=expression,
        )

    return _invalid(expression)


def condition_from_parts(field: str, operator: str, value: Any) -> FilterCondition:
    """Build a condition from a structured ``{field, operator, value}`` filter."""
    expression = f"{field} {operator} {value!r}"
    op_text = operator.strip()
    op = _OPERATOR_ALIASES.get(op_text.lower())
    if op is None:
        try:
            op = FilterOperator(op_text.upper())
        except ValueError:
            return _invalid(expression)
    if not field.strip():
        return _invalid(expression)

    if op in (FilterOperator.IN, FilterOperator.BETWEEN):
        if not isinstance(value, (list, tuple)):
            return _invalid(expression)
        values = tuple(value)
        if op is FilterOperator.BETWEEN and (
            len(values) != 2 or any(_as_number(v) is None for v in values)
        ):
            return _invalid(expression)
        if not values:
            return _invalid(expression)
    else:
        values = (value,)
    return FilterCondition(field=field.strip(), operator=op, values=values, expression=expression)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _equals(actual: Any, expected: Any) -> bool:
    a = _as_number(actual)
    b = _as_number(expected)
    if a is not None and b is not None:
        return a == b
    return str(actual) == str(expected)


def _like(actual: Any, pattern: str) -> bool:
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern
    )
    return re.fullmatch(regex, str(actual), re.DOTALL) is not None


def matches(record: TelemetryRecord, condition: FilterCondition, resolver: FieldResolver) -> bool:
    if not condition.is_valid:
        return False
    actual = resolver.value(record, condition.field)
    if actual is None:
        return False

    op = condition.operator
    values = condition.values
    if op is FilterOperator.EQ:
        return _equals(actual, values[0])
    if op is FilterOperator.NE:
        return not _equals(actual, values[0])
    if op is FilterOperator.IN:
        return any(_equals(actual, v) for v in values)
    if op is FilterOperator.LIKE:
        return _like(actual, str(values[0]))

    number = _as_number(actual)
    if number is None:
        return False
    if op is FilterOperator.BETWEEN:
        return float(values[0]) <= number <= float(values[1])

    bound = _as_number(values[0])
    if bound is None:
        return False
    if op is FilterOperator.GT:
        return number > bound
    if op is FilterOperator.GE:
        return number >= bound
    if op is FilterOperator.LT:
        return number < bound
    if op is FilterOperator.LE:
        return number <= bound
    return False


def matches_all(
    record: TelemetryRecord,
    conditions: Sequence[FilterCondition],
    resolver: FieldResolver,
) -> bool:
    return all(matches(record, c, resolver) for c in conditions)


def apply_filters(
    records: Iterable[TelemetryRecord],
    conditions: Sequence[FilterCondition],
    resolver: FieldResolver,
) -> list[TelemetryRecord]:
    return [r for r in records if matches_all(r, conditions, resolver)]
