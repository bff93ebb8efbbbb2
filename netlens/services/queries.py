from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from netlens.models.query import FilterCondition, OrderBy, QueryDescriptor, QueryResult
from netlens.query.evaluator import QueryEvaluator
from netlens.query.export import result_to_csv
from netlens.query.presets import get_preset, preset_descriptor
from netlens.repositories.base import RecordStore


class QueryService:
    def __init__(
        self,
        *,
        store: RecordStore,
        evaluator: QueryEvaluator,
        default_limit: int = 1000,
        max_limit: int = 100_000,
    ) -> None:
        self._store = store
        self._evaluator = evaluator
        self._default_limit = default_limit
        self._max_limit = max_limit

    def _bounded(self, descriptor: QueryDescriptor) -> QueryDescriptor:
        limit = descriptor.limit if descriptor.limit is not None else self._default_limit
        limit = min(limit, self._max_limit)
        if limit == descriptor.limit:
            return descriptor
        return dataclasses.replace(descriptor, limit=limit)

    def run(self, descriptor: QueryDescriptor) -> QueryResult:
        return self._evaluator.evaluate(self._bounded(descriptor), self._store)

    def run_preset(
        self,
        preset_id: str,
        *,
        time_range: str | None = None,
        filters: Sequence[FilterCondition] = (),
        group_by: str | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
    ) -> QueryResult:
        descriptor = preset_descriptor(
            get_preset(preset_id),
            time_range=time_range,
            filters=filters,
            group_by=group_by,
            order_by=order_by,
            limit=limit,
        )
        return self.run(descriptor)

    def export_csv(self, descriptor: QueryDescriptor) -> str:
        return result_to_csv(self.run(descriptor))
