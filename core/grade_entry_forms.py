# core/grade_entry_forms.py

"""
Request-facing operations for grade entry forms.

`GradeEntryForms` accepts plain request parameters (strings, lists, bytes), calls the query,
grade update, release, and CSV services, and reports outcomes two ways: the returned `Response`
carries view-model fields, and the `Session` receives flash messages keyed for translation by
the surrounding application.

Flash message keys:
    - "grade_entry_forms.create.success" / "grade_entry_forms.edit.success"
    - "grade_entry_forms.grades.successfully_changed" (num_changed)
    - "grade_entry_forms.grades.errors" (errors)
    - "grade_entry_forms.csv.upload_success" (num_updates)
    - "csv_invalid_lines" (num_invalid_lines, invalid_lines)
    - "grade_entry_forms.csv.upload_failed" (detail)
"""

from __future__ import annotations

import os
from typing import Any

import core.formatters as formatters
from core import config
from core.audit import AuditLogger
from core.csv_grades import CsvGradeExporter, CsvGradeImporter, csv_filename
from core.errors import UnknownFilterError
from core.filter_sort import DEFAULT_REGISTRY, FilterSortRegistry, QueryContext
from core.grade_update import GradeUpdateService
from core.release import ReleaseBatchService, ReleaseSelection
from core.response import ErrorCode, Response
from core.session import AlphaIndexCache, AlphaIndexKey, Session
from core.table_query import TableQueryEngine, build_alpha_index, paginate
from core.utils import parse_bool
from models.form_store import FORMS_FILE, FormStore
from models.grade_entry_form import GradeEntryForm
from models.roster import Roster


class TableParams:
    """Grades table query parameters, normalized from a raw request."""

    def __init__(
        self,
        filter_name: str = config.DEFAULT_FILTER,
        sort_by: str = config.DEFAULT_SORT,
        desc: bool = False,
        page: int = 1,
        per_page: int = config.DEFAULT_PER_PAGE,
        update_alpha_index: bool = False,
        alpha_category: str | None = None,
    ):
        self.filter_name = filter_name
        self.sort_by = sort_by
        self.desc = desc
        self.page = page
        self.per_page = per_page
        self.update_alpha_index = update_alpha_index
        self.alpha_category = alpha_category

    @classmethod
    def from_request(
        cls, params: dict[str, Any], registry: FilterSortRegistry = DEFAULT_REGISTRY
    ) -> TableParams:
        """
        Builds parameters from a request mapping.

        Blank values take their defaults, an unknown sort falls back to the registry default, a
        page that is not a positive integer becomes 1, and a per-page size that is not one of the
        registry's sizes becomes the configured default. The filter name is kept as given so an
        unknown filter can be reported.
        """
        filter_name = str(params.get("filter") or "").strip() or config.DEFAULT_FILTER
        sort_by = registry.resolve_sort_name(
            str(params.get("sort_by") or "").strip() or None
        ).value

        page = _positive_int(params.get("page"), 1)
        per_page = _positive_int(params.get("per_page"), config.DEFAULT_PER_PAGE)
        if per_page not in registry.per_pages:
            per_page = config.DEFAULT_PER_PAGE

        alpha_category = params.get("alpha_category")

        return cls(
            filter_name=filter_name,
            sort_by=sort_by,
            desc=parse_bool(params.get("desc")),
            page=page,
            per_page=per_page,
            update_alpha_index=parse_bool(params.get("update_alpha_index")),
            alpha_category=str(alpha_category) if alpha_category is not None else None,
        )

    def alpha_index_key(self) -> AlphaIndexKey:
        return AlphaIndexKey(self.filter_name, self.sort_by, self.desc, self.per_page)


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


class GradeEntryForms:

    def __init__(
        self,
        roster: Roster,
        form_store: FormStore,
        session: Session,
        audit_logger: AuditLogger | None = None,
        registry: FilterSortRegistry = DEFAULT_REGISTRY,
    ):
        self._roster = roster
        self._form_store = form_store
        self._session = session
        self._registry = registry
        self._engine = TableQueryEngine(registry)
        self._alpha_cache = AlphaIndexCache(session)
        self._grade_updates = GradeUpdateService(roster, form_store)
        self._releases = ReleaseBatchService(
            roster, form_store, audit_logger or AuditLogger(), registry
        )
        self._importer = CsvGradeImporter(roster, form_store)
        self._exporter = CsvGradeExporter(roster, form_store, self._engine)

    @classmethod
    def from_data_dir(
        cls,
        session: Session,
        data_dir: str | None = config.DATA_DIR,
        audit_logger: AuditLogger | None = None,
    ) -> Response:
        """
        Loads the roster and form store saved in `data_dir` and binds them to a new instance.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if both stores were loaded.
                - error (ErrorCode | str | None):
                    - `ErrorCode.MISSING_REQUIRED_FIELD` if no data directory is configured.
                    - Any error from `Roster.load()` or `FormStore.load()`.
                - data (dict | None):
                    - On success, "forms" (GradeEntryForms): The bound instance.

        Notes:
            - `students.json` must exist. A directory without saved forms starts an empty form
              store that writes to `data_dir`.
        """
        if data_dir is None:
            return Response.fail(
                detail="No data directory configured (set GRADEBOOK_DATA_DIR).",
                error=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        roster_response = Roster.load(data_dir)

        if not roster_response.success:
            return roster_response

        if os.path.exists(os.path.join(data_dir, FORMS_FILE)):
            store_response = FormStore.load(data_dir)

            if not store_response.success:
                return store_response

            form_store = store_response.data["store"]
        else:
            form_store = FormStore(data_dir)

        return Response.succeed(
            data={
                "forms": cls(
                    roster_response.data["roster"], form_store, session, audit_logger
                )
            }
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def form_store(self) -> FormStore:
        return self._form_store

    # === form properties ===

    def new_form(self, attributes: dict[str, Any]) -> Response:
        response = self._form_store.create_form(attributes)

        if response.success:
            self._session.flash("success", "grade_entry_forms.create.success")

        return response

    def edit_form(self, form_id: str, attributes: dict[str, Any]) -> Response:
        response = self._form_store.update_form(form_id, attributes)

        if response.success:
            self._session.flash("success", "grade_entry_forms.edit.success")

        return response

    # === grades table ===

    def grades(self, form_id: str) -> Response:
        """
        Builds the default grades table view and caches a fresh alphabetical index.

        Returns:
            Response: On success, data["view"] holds the view-model (see `g_table_paginate()`).
        """
        return self.g_table_paginate(form_id, {"update_alpha_index": True})

    def g_table_paginate(self, form_id: str, params: dict[str, Any]) -> Response:
        """
        Builds one page of the grades table.

        Args:
            form_id (str): The form being viewed.
            params (dict[str, Any]): Raw request parameters: "filter", "sort_by", "desc", "page",
                "per_page", "update_alpha_index", and "alpha_category".

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if the view was built.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NOT_FOUND` if the form does not exist.
                    - `ErrorCode.UNKNOWN_FILTER` if the filter is not registered.
                - data (dict | None):
                    - On success, "view" (dict) with the keys "students" (this page's rows),
                      "students_total", "total_pages", "current_page", "per_page", "per_pages",
                      "filters", "filter", "sort_by", "desc", "alpha_pagination_options",
                      "alpha_category", and "alpha_index_stale".

        Notes:
            - The alphabetical index is rebuilt only when "update_alpha_index" is true or when none
              is cached for this form yet. Otherwise the cached index is reused even if it was built
              for other parameters ("alpha_index_stale" is then True), and "alpha_category" is taken
              from the request.
        """
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        form = form_response.data["record"]
        table_params = TableParams.from_request(params, self._registry)

        try:
            rows = self._engine.query(
                table_params.filter_name,
                table_params.sort_by,
                QueryContext(self._roster, self._form_store, form),
                desc=table_params.desc,
            )

        except UnknownFilterError as e:
            return Response.fail(detail=str(e), error=ErrorCode.UNKNOWN_FILTER)

        page = paginate(rows, table_params.per_page, table_params.page)
        key = table_params.alpha_index_key()
        cached = self._alpha_cache.lookup(form.id)

        if table_params.update_alpha_index or cached is None:
            alpha_index = build_alpha_index(
                rows,
                table_params.per_page,
                page.total_pages,
                self._engine.sort_key(table_params.sort_by),
            )
            self._alpha_cache.refresh(form.id, key, alpha_index)
            alpha_category = alpha_index[0].letter
        else:
            alpha_index = cached[1]
            alpha_category = table_params.alpha_category

        view = {
            "students": page.rows,
            "students_total": page.total_count,
            "total_pages": page.total_pages,
            "current_page": table_params.page,
            "per_page": table_params.per_page,
            "per_pages": list(self._registry.per_pages),
            "filters": self._registry.filter_labels(),
            "filter": table_params.filter_name,
            "sort_by": table_params.sort_by,
            "desc": table_params.desc,
            "alpha_pagination_options": alpha_index,
            "alpha_category": alpha_category,
            "alpha_index_stale": self._alpha_cache.is_stale(form.id, key),
        }

        return Response.succeed(data={"form": form, "view": view})

    # === grade edits ===

    def update_grade(
        self, form_id: str, student_id: str, grade_entry_item_id: str, updated_grade: Any
    ) -> Response:
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        return self._grade_updates.set_grade(
            form_response.data["record"], student_id, grade_entry_item_id, updated_grade
        )

    # === release ===

    def update_grade_entry_students(
        self, form_id: str, params: dict[str, Any]
    ) -> Response:
        """
        Releases or unreleases marks for a full-select filter or an explicit list of students.

        Args:
            params (dict[str, Any]): Either "ap_select_full" (true) with "filter", or "students"
                (a list of student IDs); plus exactly one of "release_results" / "unrelease_results".

        Returns:
            Response: The `ReleaseBatchService.set_release()` response, or `ErrorCode.NOT_FOUND`
            for an unknown form.

        Notes:
            - Flashes "grade_entry_forms.grades.successfully_changed" when any record changed, and
              "grade_entry_forms.grades.errors" with the error list when there are errors.
        """
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        if parse_bool(params.get("ap_select_full")):
            selection = ReleaseSelection.full(params.get("filter"))
        else:
            selection = ReleaseSelection.explicit(params.get("students"))

        release = _is_present(params.get("release_results"))
        unrelease = _is_present(params.get("unrelease_results"))
        released = release if release != unrelease else None

        response = self._releases.set_release(
            form_response.data["record"], selection, released
        )

        num_changed = response.data["changed_count"]
        if num_changed > 0:
            self._session.flash(
                "success",
                "grade_entry_forms.grades.successfully_changed",
                num_changed=num_changed,
            )

        if response.data["errors"]:
            self._session.flash(
                "errors",
                "grade_entry_forms.grades.errors",
                errors=list(response.data["errors"]),
            )

        return response

    # === CSV ===

    def csv_download(self, form_id: str) -> Response:
        """
        Produces the CSV grades report for download.

        Returns:
            Response: On success, data holds "content" (bytes), "filename", "media_type", and
            "disposition"; `ErrorCode.NOT_FOUND` for an unknown form.
        """
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        form = form_response.data["record"]
        filename = csv_filename(form)

        return Response.succeed(
            data={
                "content": self._exporter.export_csv(form),
                "filename": filename,
                "media_type": config.CSV_MEDIA_TYPE,
                "disposition": formatters.format_content_disposition(filename),
            }
        )

    def csv_upload(self, form_id: str, grades_file: bytes | None) -> Response:
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        if not grades_file:
            return Response.fail(
                detail="No grades file was uploaded.",
                error=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        response = self._importer.import_csv(grades_file, form_response.data["record"])

        invalid_lines = response.data["invalid_lines"]
        if invalid_lines:
            self._session.flash(
                "error",
                "csv_invalid_lines",
                num_invalid_lines=len(invalid_lines),
                invalid_lines=[line.content for line in invalid_lines],
            )

        if response.error in (ErrorCode.INVALID_INPUT, ErrorCode.PERSISTENCE_FAILURE):
            self._session.flash(
                "error", "grade_entry_forms.csv.upload_failed", detail=response.detail
            )

        num_updates = response.data["num_updates"]
        if num_updates > 0:
            self._session.flash(
                "upload_notice",
                "grade_entry_forms.csv.upload_success",
                num_updates=num_updates,
            )

        return response

    # === students ===

    def student_interface(self, form_id: str, student_id: str) -> Response:
        """
        Returns a student's own marks for a form, but only once they have been released.

        Returns:
            Response: On success, data holds "form", "released" (bool), and, when released,
            "grades" (a list of dicts with "item_id", "name", "out_of", "value"), "total_mark",
            and "out_of_total". `ErrorCode.NOT_FOUND` for an unknown form or student.
        """
        form_response = self._form_store.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        student_response = self._roster.find_student_by_uuid(student_id)

        if not student_response.success:
            return student_response

        form: GradeEntryForm = form_response.data["record"]
        record = self._form_store.find_grade_entry_student(form, student_id)

        if record is None or not record.is_released:
            return Response.succeed(data={"form": form, "released": False})

        grades = self._form_store.grades_for(record)

        return Response.succeed(
            data={
                "form": form,
                "released": True,
                "grades": [
                    {
                        "item_id": item.id,
                        "name": item.name,
                        "out_of": item.out_of,
                        "value": grades[item.id].value if item.id in grades else None,
                    }
                    for item in form.items
                ],
                "total_mark": self._form_store.calculate_total_mark(form, student_id),
                "out_of_total": form.out_of_total,
            }
        )


def _is_present(value: Any) -> bool:
    return value is not None and value is not False
