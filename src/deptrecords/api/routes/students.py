"""Student record routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from deptrecords.api.responses import client_ip, ok
from deptrecords.api.routes.auth import require
from deptrecords.config import API_PREFIX, SEMESTER_ALIASES
from deptrecords.core.dependencies import ActivityRecorderDep, RecordManagerDep
from deptrecords.schemas.user import Identity
from deptrecords.utils.permissions import Operation
from deptrecords.utils.validators import ensure_valid, validate_bulk_upload

router = APIRouter(prefix=f"{API_PREFIX}/students", tags=["Students"])

can_read = require(Operation.READ)
can_write = require(Operation.WRITE_RECORD)
is_admin = require(Operation.ADMIN)


def _listing(records: list) -> dict:
    return ok([r.to_response() for r in records], count=len(records))


@router.get("", summary="List student records")
def list_records(
    record_manager: RecordManagerDep,
    course_code: Optional[str] = Query(None, alias="courseCode"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    student_name: Optional[str] = Query(None, alias="studentName"),
    instructor: Optional[str] = Query(None),
    grade: Optional[str] = Query(None),
    year_completed: Optional[int] = Query(None, alias="yearCompleted"),
    semester: Optional[str] = Query(None),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_direction: Optional[str] = Query(None, alias="sortDirection"),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    identity: Optional[Identity] = Depends(can_read),
) -> dict:
    """Search records with optional filters, sorting and paging.

    Text filters (courseCode, studentId, studentName, instructor) match as
    case-insensitive substrings taken literally; grade, yearCompleted and
    semester match exactly.
    """
    if semester:
        semester = SEMESTER_ALIASES.get(semester.strip(), semester.strip())
    filters = {
        "courseCode": course_code,
        "studentId": student_id,
        "studentName": student_name,
        "instructor": instructor,
        "grade": grade,
        "yearCompleted": year_completed,
        "semester": semester,
    }
    result = record_manager.list_records(filters, sort_field, sort_direction, page, limit)
    return result.envelope()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a student record")
def create_record(
    request: Request,
    record_manager: RecordManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(can_write),
) -> dict:
    record = record_manager.create_record(payload, identity)
    recorder.record(
        "CREATE_RECORD",
        identity,
        details={
            "recordId": record.id,
            "studentId": record.student_id,
            "courseCode": record.course_code,
        },
        ip_address=client_ip(request),
    )
    return ok(record.to_response(), "Student record created successfully")


@router.get("/course/{course_code}", summary="Records for a course")
def get_by_course(
    course_code: str,
    record_manager: RecordManagerDep,
    identity: Optional[Identity] = Depends(can_read),
) -> dict:
    return _listing(record_manager.get_by_course(course_code))


@router.get("/student/{student_id}", summary="Records for a student")
def get_by_student(
    student_id: str,
    record_manager: RecordManagerDep,
    identity: Optional[Identity] = Depends(can_read),
) -> dict:
    return _listing(record_manager.get_by_student(student_id))


@router.get("/instructor/{instructor}", summary="Records taught by an instructor")
def get_by_instructor(
    instructor: str,
    record_manager: RecordManagerDep,
    identity: Optional[Identity] = Depends(can_read),
) -> dict:
    return _listing(record_manager.get_by_instructor(instructor))


@router.post("/bulk-upload", summary="Create or update many records")
def bulk_upload(
    request: Request,
    record_manager: RecordManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(can_write),
) -> dict:
    """Upsert each item of ``records`` by (studentId, courseCode).

    Items are processed independently; one bad item does not stop the rest.
    The per-item outcome is reported in ``data.details``.
    """
    ensure_valid(validate_bulk_upload, payload)
    records = payload["records"]
    results = record_manager.bulk_upsert(records, identity)
    recorder.record(
        "BULK_UPLOAD",
        identity,
        details={
            "total": len(records),
            "created": results["created"],
            "updated": results["updated"],
            "errors": results["errors"],
        },
        ip_address=client_ip(request),
    )
    message = (
        f"Processed {len(records)} records: {results['created']} created, "
        f"{results['updated']} updated, {results['errors']} errors"
    )
    return ok(results, message)


@router.delete("/all", summary="Delete every student record")
def delete_all_records(
    request: Request,
    record_manager: RecordManagerDep,
    recorder: ActivityRecorderDep,
    identity: Identity = Depends(is_admin),
) -> dict:
    deleted = record_manager.delete_all_records()
    recorder.record(
        "DELETE_ALL_RECORDS",
        identity,
        details={"deletedCount": deleted},
        ip_address=client_ip(request),
    )
    return ok({"deletedCount": deleted}, f"Deleted {deleted} student records")


@router.get("/{record_id}", summary="Get a student record")
def get_record(
    record_id: str,
    record_manager: RecordManagerDep,
    identity: Optional[Identity] = Depends(can_read),
) -> dict:
    return ok(record_manager.get_record(record_id).to_response())


@router.put("/{record_id}", summary="Update a student record")
def update_record(
    record_id: str,
    request: Request,
    record_manager: RecordManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(can_write),
) -> dict:
    """Update only the fields present in the body."""
    record = record_manager.update_record(record_id, payload, identity)
    recorder.record(
        "UPDATE_RECORD",
        identity,
        details={
            "recordId": record.id,
            "studentId": record.student_id,
            "courseCode": record.course_code,
            "updatedFields": sorted(payload.keys()),
        },
        ip_address=client_ip(request),
    )
    return ok(record.to_response(), "Student record updated successfully")


@router.delete("/{record_id}", summary="Delete a student record")
def delete_record(
    record_id: str,
    request: Request,
    record_manager: RecordManagerDep,
    recorder: ActivityRecorderDep,
    identity: Identity = Depends(is_admin),
) -> dict:
    record = record_manager.get_record(record_id)
    record_manager.delete_record(record_id)
    recorder.record(
        "DELETE_RECORD",
        identity,
        details={
            "recordId": record_id,
            "studentId": record.student_id,
            "courseCode": record.course_code,
        },
        ip_address=client_ip(request),
    )
    return ok(message="Student record deleted successfully")
