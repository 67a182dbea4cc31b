# tests/test_grade_entry_form.py

import datetime

import pytest

from models.grade_entry_form import GradeEntryForm


@pytest.fixture
def form():
    form = GradeEntryForm("f001", "Quiz 1")
    form.add_item("Part A", 5)
    form.add_item("Part B", 15)
    return form


def test_items_keep_creation_order(form):
    assert [item.name for item in form.items] == ["Part A", "Part B"]
    assert form.out_of_total == 20.0


def test_find_item_by_name_is_case_insensitive(form):
    assert form.find_item_by_name("part a").name == "Part A"
    assert form.find_item_by_name("Part C") is None


def test_add_item_rejects_duplicate_name(form):
    with pytest.raises(ValueError):
        form.add_item("PART A", 3)


@pytest.mark.parametrize("name", ["user_name", "Last_Name", " FIRST_NAME "])
def test_add_item_rejects_csv_identity_column_name(form, name):
    with pytest.raises(ValueError):
        form.add_item(name, 3)

    assert [item.name for item in form.items] == ["Part A", "Part B"]


def test_apply_attributes_updates_properties(form):
    part_a = form.find_item_by_name("Part A")

    form.apply_attributes(
        {
            "short_identifier": "Quiz One",
            "description": "First quiz",
            "date": "2025-09-01",
            "grade_entry_items": [
                {"id": part_a.id, "name": "Part A", "out_of": 10},
                {"name": "Part C", "out_of": 5},
            ],
        }
    )

    assert form.short_identifier == "Quiz One"
    assert form.description == "First quiz"
    assert form.date == datetime.date(2025, 9, 1)
    assert [item.name for item in form.items] == ["Part A", "Part B", "Part C"]
    assert form.find_item(part_a.id).out_of == 10.0


def test_rejected_attributes_leave_form_unchanged(form):
    before = form.to_dict()

    with pytest.raises(ValueError):
        form.apply_attributes(
            {
                "short_identifier": "Quiz One",
                "grade_entry_items": [{"name": "part b", "out_of": 5}],
            }
        )

    assert form.to_dict() == before


@pytest.mark.parametrize(
    "attributes",
    [
        {"short_identifier": "  "},
        {"date": "01/09/2025"},
        {"grade_entry_items": [{"id": "missing", "name": "X", "out_of": 1}]},
        {"grade_entry_items": [{"name": "", "out_of": 1}]},
        {"grade_entry_items": [{"name": "last_name", "out_of": 1}]},
        {"colour": "blue"},
    ],
)
def test_invalid_attributes_raise_value_error(form, attributes):
    with pytest.raises(ValueError):
        form.apply_attributes(attributes)


def test_non_numeric_out_of_raises_type_error(form):
    with pytest.raises(TypeError):
        form.apply_attributes({"grade_entry_items": [{"name": "Part C", "out_of": "x"}]})


def test_form_dict_round_trip(form):
    form.apply_attributes({"date": datetime.date(2025, 9, 1), "message": "Good luck"})

    restored = GradeEntryForm.from_dict(form.to_dict())

    assert restored.to_dict() == form.to_dict()
    assert restored.date == datetime.date(2025, 9, 1)
