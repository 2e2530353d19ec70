"""Student record management utilities.

This module provides CRUD, search and bulk upsert over student grade
records. Uniqueness of (student_id, course_code) is enforced by the
database; the pre-checks here only produce friendlier errors.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deptrecords.core.database import is_unique_violation
from deptrecords.core.exceptions import DuplicateKeyError, NotFoundError, RecordsApiError
from deptrecords.models.student_record import StudentRecordModel
from deptrecords.schemas.common import Page, Pagination
from deptrecords.schemas.student_record import (
    StudentRecord,
    StudentRecordCreate,
    StudentRecordUpdate,
)
from deptrecords.schemas.user import Identity
from deptrecords.utils.converters import model_to_record
from deptrecords.utils.query import (
    build_order_by,
    contains_literal,
    normalize_paging,
    paginate,
)
from deptrecords.utils.validators import ensure_valid, parse_payload, validate_student_record

logger = logging.getLogger(__name__)

DUPLICATE_RECORD_MESSAGE = "A record for this student and course already exists"

# Filters matched as case-insensitive literal substrings
TEXT_FILTERS = {
    "courseCode": StudentRecordModel.course_code,
    "studentId": StudentRecordModel.student_id,
    "studentName": StudentRecordModel.student_name,
    "instructor": StudentRecordModel.instructor,
}

# Filters matched exactly
EXACT_FILTERS = {
    "grade": StudentRecordModel.grade,
    "yearCompleted": StudentRecordModel.year_completed,
    "semester": StudentRecordModel.semester,
}

SORTABLE_FIELDS = {
    "studentId": StudentRecordModel.student_id,
    "studentName": StudentRecordModel.student_name,
    "courseCode": StudentRecordModel.course_code,
    "courseName": StudentRecordModel.course_name,
    "grade": StudentRecordModel.grade,
    "numericGrade": StudentRecordModel.numeric_grade,
    "instructor": StudentRecordModel.instructor,
    "yearCompleted": StudentRecordModel.year_completed,
    "semester": StudentRecordModel.semester,
    "createdAt": StudentRecordModel.created_at,
    "updatedAt": StudentRecordModel.updated_at,
}

DEFAULT_ORDER = (
    StudentRecordModel.year_completed.desc(),
    StudentRecordModel.semester.asc(),
)


def _duplicate_error(student_id: str, course_code: str) -> DuplicateKeyError:
    return DuplicateKeyError(
        "studentId+courseCode",
        f"{student_id}/{course_code}",
        message=DUPLICATE_RECORD_MESSAGE,
    )


class RecordManager:
    """Manages student grade records using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize RecordManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    # --- Queries ---

    def _get_model(self, record_id: str) -> StudentRecordModel:
        model = (
            self.db.query(StudentRecordModel)
            .filter(StudentRecordModel.record_id == record_id)
            .first()
        )
        if not model:
            raise NotFoundError("Student record", record_id)
        return model

    def _find_by_key(
        self, student_id: str, course_code: str, exclude_id: Optional[str] = None
    ) -> Optional[StudentRecordModel]:
        query = self.db.query(StudentRecordModel).filter(
            StudentRecordModel.student_id == student_id,
            StudentRecordModel.course_code == course_code,
        )
        if exclude_id:
            query = query.filter(StudentRecordModel.record_id != exclude_id)
        return query.first()

    def list_records(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        """List records matching the filters, one page at a time.

        Args:
            filters: Any of courseCode, studentId, studentName, instructor
                (literal, case-insensitive substring), grade, yearCompleted,
                semester (exact). Empty values are ignored.
            sort_field: Record field to sort by; defaults to yearCompleted
                desc then semester asc.
            sort_direction: 'asc' or 'desc'.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Page of StudentRecord with pagination info and total count.
        """
        page, limit = normalize_paging(page, limit)
        query = self.db.query(StudentRecordModel)

        for key, value in (filters or {}).items():
            if value is None or value == "":
                continue
            if key in TEXT_FILTERS:
                query = query.filter(contains_literal(TEXT_FILTERS[key], str(value)))
            elif key in EXACT_FILTERS:
                query = query.filter(EXACT_FILTERS[key] == value)

        total = query.count()
        order_by = build_order_by(SORTABLE_FIELDS, sort_field, sort_direction, DEFAULT_ORDER)
        models = paginate(query.order_by(*order_by), page, limit).all()

        return Page(
            items=[model_to_record(m) for m in models],
            total=total,
            pagination=Pagination.build(page, limit, total),
        )

    def _find_sorted(self, *criteria) -> List[StudentRecord]:
        models = (
            self.db.query(StudentRecordModel)
            .filter(*criteria)
            .order_by(*DEFAULT_ORDER)
            .all()
        )
        return [model_to_record(m) for m in models]

    def get_by_course(self, course_code: str) -> List[StudentRecord]:
        return self._find_sorted(StudentRecordModel.course_code == course_code)

    def get_by_student(self, student_id: str) -> List[StudentRecord]:
        return self._find_sorted(StudentRecordModel.student_id == student_id)

    def get_by_instructor(self, instructor: str) -> List[StudentRecord]:
        return self._find_sorted(StudentRecordModel.instructor == instructor)

    def get_record(self, record_id: str) -> StudentRecord:
        """Get a record by id.

        Raises:
            NotFoundError: If the record does not exist.
        """
        return model_to_record(self._get_model(record_id))

    # --- Mutations ---

    def _commit(self, student_id: str, course_code: str) -> None:
        """Commit, mapping a unique-constraint failure to DuplicateKeyError."""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                raise
            # Lost a race with a concurrent writer of the same pair
            raise _duplicate_error(student_id, course_code) from e

    def _insert(self, data: StudentRecordCreate, editor: Optional[Identity]) -> StudentRecordModel:
        if self._find_by_key(data.student_id, data.course_code):
            raise _duplicate_error(data.student_id, data.course_code)

        model = StudentRecordModel(
            **data.model_dump(),
            updated_by=editor.user_id if editor else None,
        )
        self.db.add(model)
        self._commit(data.student_id, data.course_code)
        self.db.refresh(model)
        return model

    def _apply_update(
        self,
        model: StudentRecordModel,
        changes: Dict[str, Any],
        editor: Optional[Identity],
    ) -> StudentRecordModel:
        student_id = changes.get("student_id", model.student_id)
        course_code = changes.get("course_code", model.course_code)
        if (student_id, course_code) != (model.student_id, model.course_code):
            if self._find_by_key(student_id, course_code, exclude_id=model.record_id):
                raise _duplicate_error(student_id, course_code)

        for field, value in changes.items():
            setattr(model, field, value)
        if editor:
            model.updated_by = editor.user_id

        self._commit(student_id, course_code)
        self.db.refresh(model)
        return model

    def create_record(
        self, payload: Mapping[str, Any], editor: Optional[Identity] = None
    ) -> StudentRecord:
        """Create a new record, applying defaults for omitted optional fields.

        Args:
            payload: Raw request body (camelCase keys).
            editor: The caller, stored as updatedBy.

        Returns:
            The created StudentRecord.

        Raises:
            ValidationError: If the payload breaks any field rule.
            DuplicateKeyError: If the (studentId, courseCode) pair exists.
        """
        ensure_valid(validate_student_record, payload)
        data = parse_payload(StudentRecordCreate, payload)
        model = self._insert(data, editor)
        logger.info(
            "Created student record %s (%s/%s)",
            model.record_id,
            model.student_id,
            model.course_code,
        )
        return model_to_record(model)

    def update_record(
        self,
        record_id: str,
        payload: Mapping[str, Any],
        editor: Optional[Identity] = None,
    ) -> StudentRecord:
        """Update the fields present in the payload.

        Fields absent from the payload are left unchanged; present fields are
        written even when falsy (e.g. a numericGrade of 0).

        Raises:
            NotFoundError: If the record does not exist.
            ValidationError: If a supplied field breaks a rule.
            DuplicateKeyError: If the new (studentId, courseCode) belongs to
                another record.
        """
        model = self._get_model(record_id)
        ensure_valid(validate_student_record, payload, partial=True)
        changes = parse_payload(StudentRecordUpdate, payload).model_dump(exclude_unset=True)
        model = self._apply_update(model, changes, editor)
        logger.info("Updated student record %s", record_id)
        return model_to_record(model)

    def delete_record(self, record_id: str) -> None:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        model = self._get_model(record_id)
        self.db.delete(model)
        self.db.commit()
        logger.info("Deleted student record %s", record_id)

    def delete_all_records(self) -> int:
        """Delete every record.

        Returns:
            Number of records deleted.
        """
        deleted = self.db.query(StudentRecordModel).delete(synchronize_session=False)
        self.db.commit()
        logger.warning("Deleted all student records (%d)", deleted)
        return deleted

    def _upsert_one(self, item: Any, editor: Optional[Identity]) -> Dict[str, Any]:
        if not isinstance(item, Mapping):
            ensure_valid(validate_student_record, item)
        existing = None
        if item.get("studentId") is not None and item.get("courseCode") is not None:
            existing = self._find_by_key(
                str(item["studentId"]).strip(), str(item["courseCode"]).strip()
            )

        if existing:
            ensure_valid(validate_student_record, item, partial=True)
            changes = parse_payload(StudentRecordUpdate, item).model_dump(exclude_unset=True)
            model = self._apply_update(existing, changes, editor)
            status = "updated"
        else:
            ensure_valid(validate_student_record, item)
            model = self._insert(parse_payload(StudentRecordCreate, item), editor)
            status = "created"

        return {
            "studentId": model.student_id,
            "courseCode": model.course_code,
            "status": status,
            "id": model.record_id,
        }

    def bulk_upsert(
        self, items: List[Any], editor: Optional[Identity] = None
    ) -> Dict[str, Any]:
        """Create or update each item independently.

        Each item is looked up by (studentId, courseCode), then updated or
        created and committed on its own. A failing item is recorded and the
        loop moves on; earlier items stay committed.

        Args:
            items: Raw record payloads.
            editor: The caller, stored as updatedBy.

        Returns:
            Dictionary with created/updated/errors counts and per-item details.
        """
        results: Dict[str, Any] = {"created": 0, "updated": 0, "errors": 0, "details": []}

        for item in items:
            try:
                detail = self._upsert_one(item, editor)
            except RecordsApiError as e:
                self.db.rollback()
                detail = self._error_detail(item, e.message, getattr(e, "errors", None))
            except Exception as e:
                self.db.rollback()
                logger.exception("Unexpected error while upserting record")
                detail = self._error_detail(item, str(e))
            else:
                results[detail["status"]] += 1

            if detail["status"] == "error":
                results["errors"] += 1
            results["details"].append(detail)

        logger.info(
            "Bulk upsert processed %d records: %d created, %d updated, %d errors",
            len(items),
            results["created"],
            results["updated"],
            results["errors"],
        )
        return results

    @staticmethod
    def _error_detail(
        item: Any, message: str, errors: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        source = item if isinstance(item, Mapping) else {}
        detail = {
            "studentId": source.get("studentId") or "Unknown",
            "courseCode": source.get("courseCode") or "Unknown",
            "status": "error",
            "error": message,
        }
        if errors:
            detail["errors"] = errors
        return detail
