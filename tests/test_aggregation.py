from datetime import date

import pytest

from perfboard.config.schemas import Standards
from perfboard.core.aggregation import AggregationEngine, SortDirection, SortKey, SortState
from perfboard.core.entries import Entry


def _entry(name: str, day: str = "2024-01-01", **fields) -> Entry:
    return Entry(name=name, date=date.fromisoformat(day), **fields)


def test_merge_sums_numeric_fields_for_same_name_and_date() -> None:
    engine = AggregationEngine()
    merged = engine.merge(
        [
            _entry("A", websites=100, orders=20, main_products=4, ac_count=1, tbt_amount=500),
            _entry("A", websites=50, orders=10, main_products=6, ac_count=4, tbt_amount=250.5),
        ]
    )

    assert len(merged) == 1
    record = merged[0]
    assert (record.name, record.date) == ("A", date(2024, 1, 1))
    assert record.websites == 150
    assert record.orders == 30
    assert record.main_products == 10
    assert record.ac_count == 5
    assert record.tbt_amount == pytest.approx(750.5)
    assert engine.derive_metrics(record).cr == pytest.approx(20.0)


def test_merge_keeps_first_seen_order_and_counts_distinct_keys() -> None:
    engine = AggregationEngine()
    entries = [
        _entry("B", "2024-01-02", websites=1),
        _entry("A", "2024-01-01", websites=1),
        _entry("B", "2024-01-02", websites=1),
        _entry("B", "2024-01-03", websites=1),
        _entry("a", "2024-01-01", websites=1),
    ]

    merged = engine.merge(entries)

    assert [(r.name, r.date.isoformat()) for r in merged] == [
        ("B", "2024-01-02"),
        ("A", "2024-01-01"),
        ("B", "2024-01-03"),
        ("a", "2024-01-01"),
    ]
    assert merged[0].websites == 2


def test_merge_is_order_independent_and_leaves_inputs_untouched() -> None:
    engine = AggregationEngine()
    entries = [
        _entry("A", orders=3, tbt_amount=1.5),
        _entry("A", orders=7, tbt_amount=2.5),
        _entry("A", orders=11, tbt_amount=4.0),
    ]

    forward = engine.merge(entries)[0]
    backward = engine.merge(list(reversed(entries)))[0]

    assert forward.orders == backward.orders == 21
    assert forward.tbt_amount == backward.tbt_amount == pytest.approx(8.0)
    assert [entry.orders for entry in entries] == [3, 7, 11]


def test_derive_metrics_returns_zero_without_opportunities() -> None:
    engine = AggregationEngine()

    metrics = engine.derive_metrics(_entry("A", websites=0, orders=12, main_products=0, ac_count=9))

    assert metrics.cr == 0
    assert metrics.ac_ratio == 0


def test_derive_metrics_computes_percentages() -> None:
    metrics = AggregationEngine.derive_metrics(_entry("A", websites=4, orders=1, main_products=8, ac_count=2))

    assert metrics.cr == pytest.approx(25.0)
    assert metrics.ac_ratio == pytest.approx(25.0)


def test_filter_by_date_and_name_composes_and_preserves_order() -> None:
    engine = AggregationEngine()
    records = [
        _entry("Alice", "2024-01-01"),
        _entry("Bob", "2024-01-01"),
        _entry("alicia", "2024-01-01"),
        _entry("Alice", "2024-01-02"),
    ]

    by_name = engine.filter(records, name_query="ALI")
    both = engine.filter(records, name_query="ali", date_query="2024-01-01")
    by_date_object = engine.filter(records, date_query=date(2024, 1, 2))

    assert [r.name for r in by_name] == ["Alice", "alicia", "Alice"]
    assert [(r.name, r.date.isoformat()) for r in both] == [("Alice", "2024-01-01"), ("alicia", "2024-01-01")]
    assert [(r.name, r.date.isoformat()) for r in by_date_object] == [("Alice", "2024-01-02")]


def test_filter_without_queries_keeps_everything_and_is_idempotent() -> None:
    engine = AggregationEngine()
    records = [_entry("Alice"), _entry("Bob", "2024-02-01")]

    assert engine.filter(records, name_query="", date_query=None) == records

    once = engine.filter(records, name_query="b", date_query="2024-02-01")
    twice = engine.filter(once, name_query="b", date_query="2024-02-01")
    assert once == twice


def test_sort_descending_is_exact_reverse_without_ties() -> None:
    engine = AggregationEngine()
    records = [_entry("A", websites=5), _entry("B", websites=1), _entry("C", websites=9)]

    ascending = engine.sort(records, SortKey.WEBSITES, SortDirection.ASC)
    descending = engine.sort(records, "websites", "desc")

    assert [r.name for r in ascending] == ["B", "A", "C"]
    assert descending == list(reversed(ascending))


def test_sort_by_text_and_derived_keys() -> None:
    engine = AggregationEngine()
    records = [
        _entry("carol", websites=10, orders=5),
        _entry("alice", websites=10, orders=1),
        _entry("bob", websites=0, orders=4),
    ]

    assert [r.name for r in engine.sort(records, "name")] == ["alice", "bob", "carol"]
    assert [r.name for r in engine.sort(records, "cr", "desc")] == ["carol", "alice", "bob"]


def test_sort_without_key_returns_input_order() -> None:
    engine = AggregationEngine()
    records = [_entry("B"), _entry("A")]

    assert engine.sort(records, None) == records


def test_sort_rejects_unknown_key() -> None:
    with pytest.raises(ValueError):
        AggregationEngine().sort([_entry("A")], "salary")


def test_next_sort_flips_active_key_and_resets_new_key() -> None:
    first = AggregationEngine.next_sort(None, "orders")
    flipped = AggregationEngine.next_sort(first, SortKey.ORDERS)
    back = AggregationEngine.next_sort(flipped, "orders")
    other = AggregationEngine.next_sort(flipped, "name")

    assert first == SortState(SortKey.ORDERS, SortDirection.ASC)
    assert flipped.direction == SortDirection.DESC
    assert back.direction == SortDirection.ASC
    assert other == SortState(SortKey.NAME, SortDirection.ASC)


def test_summarize_empty_set_is_all_zero() -> None:
    summary = AggregationEngine().summarize([])

    assert summary.as_dict() == {
        "total_users": 0,
        "total_websites": 0,
        "total_orders": 0,
        "total_main_products": 0,
        "total_ac": 0,
        "total_amount": 0.0,
        "avg_cr": 0.0,
        "avg_ac": 0.0,
        "avg_amount": 0.0,
    }


def test_summarize_averages_per_record_metrics() -> None:
    engine = AggregationEngine()
    summary = engine.summarize(
        [
            _entry("A", websites=10, orders=5, main_products=4, ac_count=1, tbt_amount=300),
            _entry("B", websites=0, orders=3, main_products=2, ac_count=2, tbt_amount=100),
        ]
    )

    assert summary.total_users == 2
    assert summary.total_websites == 10
    assert summary.total_orders == 8
    assert summary.total_main_products == 6
    assert summary.total_ac == 3
    assert summary.total_amount == pytest.approx(400)
    assert summary.avg_cr == pytest.approx(25.0)
    assert summary.avg_ac == pytest.approx(62.5)
    assert summary.avg_amount == pytest.approx(200)


def test_classify_is_inclusive_at_the_threshold() -> None:
    engine = AggregationEngine()
    standards = Standards(cr=25, ac=50, tbt=1000)

    below = engine.classify(_entry("A", websites=100, orders=20, main_products=3, ac_count=1, tbt_amount=999.99), standards)
    exact = engine.classify(_entry("B", websites=4, orders=1, main_products=2, ac_count=1, tbt_amount=1000), standards)

    assert below.cr_met is False
    assert below.ac_met is False
    assert below.amount_met is False
    assert exact.cr_met is True
    assert exact.ac_met is True
    assert exact.amount_met is True


def test_classify_against_default_cr_standard() -> None:
    engine = AggregationEngine()

    result = engine.classify(_entry("A", websites=150, orders=30), Standards(cr=30))

    assert result.cr_met is False


def test_chart_projections() -> None:
    engine = AggregationEngine()
    records = [
        _entry("A", websites=10, orders=5, main_products=2, ac_count=1),
        _entry("B", websites=10, orders=1, main_products=1, ac_count=1),
    ]
    summary = engine.summarize(records)

    assert [(p.key, p.value) for p in engine.bar_chart(summary)] == [
        ("websites", 20),
        ("orders", 6),
        ("mainProducts", 3),
        ("acCount", 2),
    ]
    assert [(p.key, p.value) for p in engine.cr_attainment(records, Standards(cr=30))] == [("met", 1), ("missed", 1)]

    split = engine.conversion_split(records[0])
    assert [p.key for p in split] == ["converted", "unconverted"]
    assert split[0].value + split[1].value == pytest.approx(100)
    assert [p.value for p in engine.entry_breakdown(records[1])] == [10, 1, 1, 1]


def test_name_suggestions_are_distinct_and_case_insensitive() -> None:
    records = [_entry("Alice"), _entry("Bob"), _entry("Alice", "2024-01-02"), _entry("malika")]

    assert AggregationEngine.name_suggestions(records) == ["Alice", "Bob", "malika"]
    assert AggregationEngine.name_suggestions(records, "ALI") == ["Alice", "malika"]
