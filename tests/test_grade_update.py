# tests/test_grade_update.py

import pytest

from core.grade_update import GradeUpdateService
from core.response import ErrorCode
from models.roster import Roster


@pytest.fixture
def items(sample_form):
    return sample_form.items


def test_set_grade_returns_total(grade_update_service, sample_form, items):
    q1, q2 = items

    first = grade_update_service.set_grade(sample_form, "s001", q1.id, "7")
    second = grade_update_service.set_grade(sample_form, "s001", q2.id, 12.5)

    assert first.success
    assert first.data["saved"]
    assert first.data["total_mark"] == 7.0
    assert second.data["total_mark"] == 19.5
    assert second.data["grade"].value == 12.5


def test_set_grade_is_idempotent(grade_update_service, sample_form, sample_store, items):
    q1 = items[0]

    grade_update_service.set_grade(sample_form, "s001", q1.id, 7)
    response = grade_update_service.set_grade(sample_form, "s001", q1.id, 7)

    assert response.data["total_mark"] == 7.0
    record = sample_store.find_grade_entry_student(sample_form, "s001")
    assert len(sample_store.grades_for(record)) == 1


def test_blank_value_clears_grade(grade_update_service, sample_form, items):
    q1 = items[0]
    grade_update_service.set_grade(sample_form, "s001", q1.id, 7)

    response = grade_update_service.set_grade(sample_form, "s001", q1.id, "")

    assert response.success
    assert response.data["grade"].value is None
    assert response.data["total_mark"] == 0.0


@pytest.mark.parametrize("value", ["seven", -3, "inf"])
def test_invalid_value_keeps_previous_grade(grade_update_service, sample_form, items, value):
    q1 = items[0]
    grade_update_service.set_grade(sample_form, "s001", q1.id, 7)

    response = grade_update_service.set_grade(sample_form, "s001", q1.id, value)

    assert not response.success
    assert response.error is ErrorCode.GRADE_SAVE_FAILED
    assert not response.data["saved"]
    assert response.data["total_mark"] == 7.0
    assert response.data["grade"].value == 7.0


def test_unknown_student(grade_update_service, sample_form, items):
    response = grade_update_service.set_grade(sample_form, "s999", items[0].id, 5)

    assert response.error is ErrorCode.NOT_FOUND
    assert response.status_code == 404


def test_unknown_item(grade_update_service, sample_form, sample_store):
    response = grade_update_service.set_grade(sample_form, "s001", "missing", 5)

    assert response.error is ErrorCode.NOT_FOUND
    assert sample_store.find_grade_entry_student(sample_form, "s001") is None


def test_persistence_failure_keeps_previous_grade(
    sample_students, persisted_store, persisted_form, failing_save, monkeypatch
):
    service = GradeUpdateService(Roster(sample_students), persisted_store)
    q1 = persisted_form.items[0]
    service.set_grade(persisted_form, "s001", q1.id, 4)

    monkeypatch.setattr(persisted_store, "save", failing_save)
    response = service.set_grade(persisted_form, "s001", q1.id, 9)

    assert response.error is ErrorCode.PERSISTENCE_FAILURE
    assert response.status_code == 500
    assert not response.data["saved"]
    assert response.data["total_mark"] == 4.0
