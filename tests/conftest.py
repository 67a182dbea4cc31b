# tests/conftest.py

import pytest

from core.audit import AuditLogger
from core.grade_update import GradeUpdateService
from core.release import ReleaseBatchService
from core.response import ErrorCode, Response
from core.session import Session
from models.form_store import FormStore
from models.roster import Roster
from models.student import Student


@pytest.fixture
def failing_save():
    def save(save_dir_path=None):
        return Response.fail(
            detail="Failed to write data to disk: disk full",
            error=ErrorCode.PERSISTENCE_FAILURE,
        )

    return save


@pytest.fixture
def sample_student():
    return Student("s001", "jdoe", "Jane", "Doe")


@pytest.fixture
def sample_students():
    # show-all order (user name): asmith, bsmith, cadams, jdoe
    # last name order: Adams, Doe, smith, Smith
    return [
        Student("s001", "jdoe", "Jane", "Doe"),
        Student("s002", "asmith", "Alan", "smith"),
        Student("s003", "bsmith", "Beth", "Smith"),
        Student("s004", "cadams", "Carl", "Adams"),
        Student("s005", "hbaker", "Hana", "Baker", hidden=True),
    ]


@pytest.fixture
def sample_roster(sample_students):
    return Roster(sample_students)


@pytest.fixture
def sample_store():
    return FormStore()


@pytest.fixture
def persisted_store(tmp_path):
    return FormStore(str(tmp_path))


def create_midterm(store):
    response = store.create_form(
        {
            "short_identifier": "Midterm",
            "description": "Midterm exam",
            "date": "2025-10-15",
            "grade_entry_items": [
                {"name": "Q1", "out_of": 10},
                {"name": "Q2", "out_of": 20},
            ],
        }
    )
    assert response.success, response.detail
    return response.data["record"]


@pytest.fixture
def sample_form(sample_store):
    return create_midterm(sample_store)


@pytest.fixture
def persisted_form(persisted_store):
    return create_midterm(persisted_store)


@pytest.fixture
def sample_session():
    return Session()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def grade_update_service(sample_roster, sample_store):
    return GradeUpdateService(sample_roster, sample_store)


@pytest.fixture
def release_service(sample_roster, sample_store, audit_logger):
    return ReleaseBatchService(sample_roster, sample_store, audit_logger)
