# tests/test_grade_entry_forms.py

import pytest

from core import config
from core.grade_entry_forms import GradeEntryForms, TableParams
from core.response import ErrorCode
from core.table_query import AlphaBucket


@pytest.fixture
def forms(sample_roster, sample_store, sample_session, audit_logger):
    return GradeEntryForms(sample_roster, sample_store, sample_session, audit_logger)


def flash_keys(session):
    return [flash.key for flash in session.consume_flashes()]


# === form properties ===


def test_new_form_flashes_success(forms, sample_session):
    response = forms.new_form(
        {"short_identifier": "Final", "grade_entry_items": [{"name": "Essay", "out_of": 50}]}
    )

    assert response.success
    assert response.data["record"].out_of_total == 50.0
    assert flash_keys(sample_session) == ["grade_entry_forms.create.success"]


def test_rejected_new_form_does_not_flash(forms, sample_session):
    response = forms.new_form({"short_identifier": ""})

    assert response.error is ErrorCode.INVALID_FIELD_VALUE
    assert flash_keys(sample_session) == []


def test_edit_form_flashes_success(forms, sample_form, sample_session):
    response = forms.edit_form(sample_form.id, {"description": "Updated"})

    assert response.data["record"].description == "Updated"
    assert flash_keys(sample_session) == ["grade_entry_forms.edit.success"]


# === grades table ===


def test_table_params_defaults():
    params = TableParams.from_request({})

    assert params.filter_name == "none"
    assert params.sort_by == "last_name"
    assert not params.desc
    assert params.page == 1
    assert params.per_page == config.DEFAULT_PER_PAGE
    assert not params.update_alpha_index


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"per_page": "30"}, 30),
        ({"per_page": "7"}, config.DEFAULT_PER_PAGE),
        ({"per_page": "lots"}, config.DEFAULT_PER_PAGE),
        ({"per_page": None}, config.DEFAULT_PER_PAGE),
    ],
)
def test_table_params_per_page(raw, expected):
    assert TableParams.from_request(raw).per_page == expected


def test_table_params_from_request():
    params = TableParams.from_request(
        {"sort_by": "grade", "desc": "true", "page": "0", "alpha_category": "M"}
    )

    assert params.sort_by == "last_name"
    assert params.desc
    assert params.page == 1
    assert params.alpha_category == "M"


def test_grades_builds_default_view(forms, sample_form):
    response = forms.grades(sample_form.id)

    view = response.data["view"]
    assert [row.id for row in view["students"]] == ["s004", "s001", "s002", "s003"]
    assert view["students_total"] == 4
    assert view["total_pages"] == 1
    assert view["current_page"] == 1
    assert view["per_page"] == config.DEFAULT_PER_PAGE
    assert view["per_pages"] == [15, 30, 50, 100, 150]
    assert view["filters"] == {"none": "Show All"}
    assert view["filter"] == "none"
    assert view["sort_by"] == "last_name"
    assert not view["desc"]
    assert view["alpha_pagination_options"] == [AlphaBucket("A", 1)]
    assert view["alpha_category"] == "A"
    assert not view["alpha_index_stale"]


def test_cached_alpha_index_is_reused_until_refreshed(forms, sample_form):
    forms.grades(sample_form.id)

    reused = forms.g_table_paginate(
        sample_form.id, {"desc": "true", "alpha_category": "A"}
    ).data["view"]

    assert [row.id for row in reused["students"]] == ["s002", "s003", "s001", "s004"]
    assert reused["alpha_pagination_options"] == [AlphaBucket("A", 1)]
    assert reused["alpha_category"] == "A"
    assert reused["alpha_index_stale"]

    refreshed = forms.g_table_paginate(
        sample_form.id, {"desc": "true", "update_alpha_index": "true"}
    ).data["view"]

    assert refreshed["alpha_pagination_options"] == [AlphaBucket("S", 1)]
    assert refreshed["alpha_category"] == "S"
    assert not refreshed["alpha_index_stale"]


def test_first_paginate_builds_alpha_index(forms, sample_form):
    view = forms.g_table_paginate(sample_form.id, {"page": "2"}).data["view"]

    assert view["students"] == []
    assert view["current_page"] == 2
    assert view["alpha_pagination_options"] == [AlphaBucket("A", 1)]


def test_paginate_unknown_filter(forms, sample_form):
    response = forms.g_table_paginate(sample_form.id, {"filter": "released"})

    assert response.error is ErrorCode.UNKNOWN_FILTER


def test_paginate_unknown_form(forms):
    response = forms.g_table_paginate("missing", {})

    assert response.error is ErrorCode.NOT_FOUND


# === grade edits ===


def test_update_grade(forms, sample_form):
    q2 = sample_form.find_item_by_name("Q2")

    response = forms.update_grade(sample_form.id, "s003", q2.id, "17")

    assert response.data["total_mark"] == 17.0
    assert forms.grades(sample_form.id).data["view"]["students"][3].total_mark == 17.0


# === release ===


def test_release_flashes_count(forms, sample_form, sample_session):
    response = forms.update_grade_entry_students(
        sample_form.id,
        {"ap_select_full": "true", "filter": "none", "release_results": "Release"},
    )

    assert response.data["changed_count"] == 4
    flashes = sample_session.consume_flashes()
    assert [f.key for f in flashes] == ["grade_entry_forms.grades.successfully_changed"]
    assert flashes[0].params == {"num_changed": 4}


def test_unrelease_explicit_students(forms, sample_form, sample_store):
    forms.update_grade_entry_students(
        sample_form.id, {"students": ["s001", "s002"], "release_results": "Release"}
    )

    response = forms.update_grade_entry_students(
        sample_form.id, {"students": ["s002"], "unrelease_results": "Unrelease"}
    )

    assert response.data["changed_count"] == 1
    assert sample_store.find_grade_entry_student(sample_form, "s001").is_released
    assert not sample_store.find_grade_entry_student(sample_form, "s002").is_released


def test_release_single_student_id(forms, sample_form, sample_store):
    response = forms.update_grade_entry_students(
        sample_form.id, {"students": "s001", "release_results": "Release"}
    )

    assert response.success
    assert response.data["changed_count"] == 1
    assert sample_store.find_grade_entry_student(sample_form, "s001").is_released
    assert sample_store.find_grade_entry_student(sample_form, "s002") is None


@pytest.mark.parametrize(
    "params",
    [
        {"students": ["s001"]},
        {"students": ["s001"], "release_results": "1", "unrelease_results": "1"},
    ],
)
def test_release_requires_exactly_one_action(forms, sample_form, sample_session, params):
    response = forms.update_grade_entry_students(sample_form.id, params)

    assert response.error is ErrorCode.NO_ACTION_SPECIFIED
    assert flash_keys(sample_session) == ["grade_entry_forms.grades.errors"]


def test_release_without_students_flashes_errors(forms, sample_form, sample_session):
    forms.update_grade_entry_students(sample_form.id, {"release_results": "Release"})

    flashes = sample_session.consume_flashes()
    assert [f.key for f in flashes] == ["grade_entry_forms.grades.errors"]
    assert flashes[0].params == {"errors": ["You must select at least one student."]}


# === CSV ===


def test_csv_download(forms, sample_form):
    response = forms.csv_download(sample_form.id)

    assert response.data["filename"] == "Midterm_grades_report.csv"
    assert response.data["media_type"] == "application/vnd.ms-excel"
    assert response.data["disposition"] == 'attachment; filename="Midterm_grades_report.csv"'
    assert response.data["content"].startswith(b"user_name,last_name,first_name,Q1,Q2\r\n")


def test_csv_upload_flashes_results(forms, sample_form, sample_session):
    content = b"user_name,Q1,Q2\njdoe,1,2\nnobody,3,4\n"

    response = forms.csv_upload(sample_form.id, content)

    assert response.error is ErrorCode.CSV_ROW_INVALID
    flashes = sample_session.consume_flashes()
    assert [f.key for f in flashes] == [
        "csv_invalid_lines",
        "grade_entry_forms.csv.upload_success",
    ]
    assert flashes[0].params == {"num_invalid_lines": 1, "invalid_lines": ["nobody,3,4"]}
    assert flashes[1].params == {"num_updates": 2}


def test_csv_upload_rejected_file(forms, sample_form, sample_session):
    response = forms.csv_upload(sample_form.id, b"user_name,Q9\njdoe,1\n")

    assert response.error is ErrorCode.INVALID_INPUT
    assert flash_keys(sample_session) == ["grade_entry_forms.csv.upload_failed"]


def test_csv_upload_without_file(forms, sample_form, sample_session):
    response = forms.csv_upload(sample_form.id, b"")

    assert response.error is ErrorCode.MISSING_REQUIRED_FIELD
    assert flash_keys(sample_session) == []


# === students ===


def test_student_interface_hides_unreleased_marks(forms, sample_form):
    forms.update_grade(sample_form.id, "s001", sample_form.items[0].id, 8)

    response = forms.student_interface(sample_form.id, "s001")

    assert response.success
    assert not response.data["released"]
    assert "grades" not in response.data


def test_student_interface_shows_released_marks(forms, sample_form):
    q1, q2 = sample_form.items
    forms.update_grade(sample_form.id, "s001", q1.id, 8)
    forms.update_grade_entry_students(
        sample_form.id, {"students": ["s001"], "release_results": "Release"}
    )

    response = forms.student_interface(sample_form.id, "s001")

    assert response.data["released"]
    assert response.data["grades"] == [
        {"item_id": q1.id, "name": "Q1", "out_of": 10.0, "value": 8.0},
        {"item_id": q2.id, "name": "Q2", "out_of": 20.0, "value": None},
    ]
    assert response.data["total_mark"] == 8.0
    assert response.data["out_of_total"] == 30.0


def test_student_interface_unknown_student(forms, sample_form):
    response = forms.student_interface(sample_form.id, "s999")

    assert response.error is ErrorCode.NOT_FOUND


# === loading ===


def test_from_data_dir(sample_roster, sample_session, tmp_path):
    sample_roster.save(str(tmp_path))

    response = GradeEntryForms.from_data_dir(sample_session, str(tmp_path))
    forms = response.data["forms"]
    created = forms.new_form({"short_identifier": "Final"}).data["record"]

    reloaded = GradeEntryForms.from_data_dir(sample_session, str(tmp_path)).data["forms"]

    assert reloaded.form_store.find_form_by_uuid(created.id).success


def test_from_data_dir_requires_roster(sample_session, tmp_path):
    response = GradeEntryForms.from_data_dir(sample_session, str(tmp_path))

    assert response.error is ErrorCode.PERSISTENCE_FAILURE


def test_from_data_dir_requires_directory(sample_session):
    response = GradeEntryForms.from_data_dir(sample_session, None)

    assert response.error is ErrorCode.MISSING_REQUIRED_FIELD
