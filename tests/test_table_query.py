# tests/test_table_query.py

import pytest

from core.errors import UnknownFilterError
from core.filter_sort import QueryContext
from core.table_query import (
    AlphaBucket,
    TableQueryEngine,
    build_alpha_index,
    paginate,
    total_pages,
)
from models.roster import Roster
from models.student import Student


@pytest.fixture
def engine():
    return TableQueryEngine()


@pytest.fixture
def context(sample_roster, sample_store, sample_form):
    return QueryContext(sample_roster, sample_store, sample_form)


def test_query_sorts_by_last_name_case_insensitively(engine, context):
    rows = engine.query("none", "last_name", context)

    # smith and Smith tie; they keep user name order
    assert [row.id for row in rows] == ["s004", "s001", "s002", "s003"]


def test_query_descending_keeps_ties_in_order(engine, context):
    rows = engine.query("none", "last_name", context, desc=True)

    assert [row.id for row in rows] == ["s002", "s003", "s001", "s004"]


def test_query_is_repeatable(engine, context):
    first = [row.id for row in engine.query("none", None, context)]
    second = [row.id for row in engine.query("none", "", context)]

    assert first == second


def test_query_unknown_filter_raises(engine, context):
    with pytest.raises(UnknownFilterError):
        engine.query("released", "last_name", context)


def test_rows_join_form_records(engine, context, sample_store, sample_form):
    q1, q2 = sample_form.items
    record = sample_store.upsert_grade_entry_student(sample_form, "s001")
    sample_store.save_grade(sample_store.upsert_grade(record, q1.id), 8)
    sample_store.set_released(record, True)

    rows = {row.id: row for row in engine.query("none", "last_name", context)}

    assert rows["s001"].released
    assert rows["s001"].grade_for(q1.id) == 8.0
    assert rows["s001"].grade_for(q2.id) is None
    assert rows["s001"].total_mark == 8.0
    assert not rows["s002"].released
    assert rows["s002"].grade_entry_student is None
    assert rows["s002"].total_mark == 0.0


@pytest.mark.parametrize(
    "count, size, expected",
    [(0, 15, 1), (1, 15, 1), (15, 15, 1), (16, 15, 2), (31, 15, 3)],
)
def test_total_pages(count, size, expected):
    assert total_pages(count, size) == expected


def test_paginate(engine, context):
    rows = engine.query("none", "last_name", context)

    page = paginate(rows, 3, 2)

    assert [row.id for row in page.rows] == ["s003"]
    assert page.total_count == 4
    assert page.total_pages == 2


def test_paginate_past_last_page_is_empty(engine, context):
    rows = engine.query("none", "last_name", context)

    page = paginate(rows, 15, 3)

    assert page.rows == []
    assert page.total_pages == 1


@pytest.mark.parametrize("size, number", [(0, 1), (15, 0), (-1, 1)])
def test_paginate_rejects_non_positive_arguments(size, number):
    with pytest.raises(ValueError):
        paginate([], size, number)


def test_alpha_index_has_one_entry_per_page(engine, context):
    rows = engine.query("none", "last_name", context)

    assert build_alpha_index(rows, 2, 2) == [AlphaBucket("A", 1), AlphaBucket("S", 2)]
    assert build_alpha_index(rows, 1, 4) == [
        AlphaBucket("A", 1),
        AlphaBucket("D", 2),
        AlphaBucket("S", 3),
        AlphaBucket("S", 4),
    ]


def test_alpha_index_for_empty_table():
    assert build_alpha_index([], 15, total_pages(0, 15)) == [AlphaBucket("", 1)]


def test_alpha_index_over_many_pages(sample_store, sample_form, engine):
    last_names = ["Adams", "Baker", "Chen", "Diaz", "Evans", "Fox"]
    roster = Roster(
        [
            Student(f"s{i:03d}", f"user{i:03d}", "First", last_names[i // 5])
            for i in range(30)
        ]
    )
    rows = engine.query("none", "last_name", QueryContext(roster, sample_store, sample_form))

    page = paginate(rows, 15, 1)
    index = build_alpha_index(rows, 15, page.total_pages, engine.sort_key("last_name"))

    assert page.total_pages == 2
    assert [bucket.letter for bucket in index] == ["A", "D"]
    assert AlphaBucket.from_dict(index[1].to_dict()) == index[1]
