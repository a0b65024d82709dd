from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from perfboard.config.schemas import Standards
from perfboard.core.aggregation import (
    AggregationEngine,
    ChartPoint,
    Classification,
    DerivedMetrics,
    MergedRecord,
    SortState,
    SummaryStats,
)
from perfboard.core.entries import Entry


@dataclass
class DashboardQuery:
    name: str = ""
    date: date | str | None = None
    sort: SortState | None = None


@dataclass
class DashboardRow:
    record: MergedRecord
    metrics: DerivedMetrics
    classification: Classification


@dataclass
class DashboardView:
    rows: list[DashboardRow]
    summary: SummaryStats
    bar_chart: list[ChartPoint]
    cr_attainment: list[ChartPoint]
    suggestions: list[str] = field(default_factory=list)

    @property
    def records(self) -> list[MergedRecord]:
        return [row.record for row in self.rows]


def build_dashboard(
    entries: Iterable[Entry],
    query: DashboardQuery | None = None,
    standards: Standards | None = None,
    engine: AggregationEngine | None = None,
) -> DashboardView:
    query = query or DashboardQuery()
    standards = standards or Standards()
    engine = engine or AggregationEngine()

    merged = engine.merge(entries)
    filtered = engine.filter(merged, name_query=query.name, date_query=query.date)
    summary = engine.summarize(filtered)

    ordered = filtered
    if query.sort is not None:
        ordered = engine.sort(filtered, query.sort.key, query.sort.direction)

    rows = [
        DashboardRow(
            record=record,
            metrics=engine.derive_metrics(record),
            classification=engine.classify(record, standards),
        )
        for record in ordered
    ]
    return DashboardView(
        rows=rows,
        summary=summary,
        bar_chart=engine.bar_chart(summary),
        cr_attainment=engine.cr_attainment(filtered, standards),
        suggestions=engine.name_suggestions(merged, query.name),
    )
