from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable

from perfboard.config.schemas import Standards
from perfboard.core.entries import NUMERIC_FIELDS, Entry


class MergedRecord(Entry):
    """All entries sharing one (name, date) pair, numeric fields summed."""


class SortKey(str, Enum):
    NAME = "name"
    DATE = "date"
    WEBSITES = "websites"
    ORDERS = "orders"
    MAIN_PRODUCTS = "mainProducts"
    AC_COUNT = "acCount"
    TBT_AMOUNT = "tbtAmount"
    CR = "cr"
    AC = "ac"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    key: SortKey
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class DerivedMetrics:
    cr: float
    ac_ratio: float


@dataclass(frozen=True)
class Classification:
    cr_met: bool
    ac_met: bool
    amount_met: bool


@dataclass(frozen=True)
class SummaryStats:
    total_users: int = 0
    total_websites: int = 0
    total_orders: int = 0
    total_main_products: int = 0
    total_ac: int = 0
    total_amount: float = 0.0
    avg_cr: float = 0.0
    avg_ac: float = 0.0
    avg_amount: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass(frozen=True)
class ChartPoint:
    key: str
    value: float


class AggregationEngine:
    def merge(self, entries: Iterable[Entry]) -> list[MergedRecord]:
        merged: dict[tuple[str, date], MergedRecord] = {}
        for entry in entries:
            current = merged.get(entry.key)
            if current is None:
                merged[entry.key] = MergedRecord(**entry.model_dump())
                continue
            merged[entry.key] = current.model_copy(
                update={field: getattr(current, field) + getattr(entry, field) for field in NUMERIC_FIELDS}
            )
        return list(merged.values())

    @staticmethod
    def filter(
        records: Iterable[Entry],
        name_query: str | None = None,
        date_query: date | str | None = None,
    ) -> list[Entry]:
        result = list(records)
        if date_query:
            wanted = date_query if isinstance(date_query, str) else date_query.isoformat()
            result = [record for record in result if record.date.isoformat() == wanted]
        if name_query:
            needle = name_query.lower()
            result = [record for record in result if needle in record.name.lower()]
        return result

    @staticmethod
    def derive_metrics(record: Entry) -> DerivedMetrics:
        cr = record.orders / record.websites * 100 if record.websites > 0 else 0.0
        ac_ratio = record.ac_count / record.main_products * 100 if record.main_products > 0 else 0.0
        return DerivedMetrics(cr=cr, ac_ratio=ac_ratio)

    def sort(
        self,
        records: Iterable[Entry],
        key: SortKey | str | None,
        direction: SortDirection | str = SortDirection.ASC,
    ) -> list[Entry]:
        if key is None:
            return list(records)
        value_of = self._sort_value(SortKey(key))
        descending = SortDirection(direction) == SortDirection.DESC
        return sorted(records, key=value_of, reverse=descending)

    @staticmethod
    def next_sort(current: SortState | None, key: SortKey | str) -> SortState:
        selected = SortKey(key)
        if current is not None and current.key == selected:
            flipped = SortDirection.DESC if current.direction == SortDirection.ASC else SortDirection.ASC
            return SortState(key=selected, direction=flipped)
        return SortState(key=selected)

    def summarize(self, records: Iterable[Entry]) -> SummaryStats:
        items = list(records)
        count = len(items)
        metrics = [self.derive_metrics(record) for record in items]
        total_amount = sum((record.tbt_amount for record in items), 0.0)
        divisor = max(count, 1)
        return SummaryStats(
            total_users=count,
            total_websites=sum(record.websites for record in items),
            total_orders=sum(record.orders for record in items),
            total_main_products=sum(record.main_products for record in items),
            total_ac=sum(record.ac_count for record in items),
            total_amount=total_amount,
            avg_cr=sum((item.cr for item in metrics), 0.0) / divisor,
            avg_ac=sum((item.ac_ratio for item in metrics), 0.0) / divisor,
            avg_amount=total_amount / divisor,
        )

    def classify(self, record: Entry, standards: Standards) -> Classification:
        metrics = self.derive_metrics(record)
        return Classification(
            cr_met=metrics.cr >= standards.cr,
            ac_met=metrics.ac_ratio >= standards.ac,
            amount_met=record.tbt_amount >= standards.tbt,
        )

    @staticmethod
    def bar_chart(summary: SummaryStats) -> list[ChartPoint]:
        return [
            ChartPoint("websites", summary.total_websites),
            ChartPoint("orders", summary.total_orders),
            ChartPoint("mainProducts", summary.total_main_products),
            ChartPoint("acCount", summary.total_ac),
        ]

    def cr_attainment(self, records: Iterable[Entry], standards: Standards) -> list[ChartPoint]:
        met = 0
        missed = 0
        for record in records:
            if self.derive_metrics(record).cr >= standards.cr:
                met += 1
            else:
                missed += 1
        return [ChartPoint("met", met), ChartPoint("missed", missed)]

    @staticmethod
    def entry_breakdown(entry: Entry) -> list[ChartPoint]:
        return [
            ChartPoint("websites", entry.websites),
            ChartPoint("orders", entry.orders),
            ChartPoint("mainProducts", entry.main_products),
            ChartPoint("acCount", entry.ac_count),
        ]

    def conversion_split(self, entry: Entry) -> list[ChartPoint]:
        cr = self.derive_metrics(entry).cr
        return [ChartPoint("converted", cr), ChartPoint("unconverted", 100 - cr)]

    @staticmethod
    def name_suggestions(records: Iterable[Entry], query: str = "") -> list[str]:
        needle = query.lower()
        names = dict.fromkeys(record.name for record in records)
        return [name for name in names if needle in name.lower()]

    def _sort_value(self, key: SortKey) -> Callable[[Entry], Any]:
        if key == SortKey.CR:
            return lambda record: self.derive_metrics(record).cr
        if key == SortKey.AC:
            return lambda record: self.derive_metrics(record).ac_ratio
        field_name = {
            SortKey.NAME: "name",
            SortKey.DATE: "date",
            SortKey.WEBSITES: "websites",
            SortKey.ORDERS: "orders",
            SortKey.MAIN_PRODUCTS: "main_products",
            SortKey.AC_COUNT: "ac_count",
            SortKey.TBT_AMOUNT: "tbt_amount",
        }[key]
        return lambda record: getattr(record, field_name)
