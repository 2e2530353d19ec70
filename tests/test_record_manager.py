import pytest
from sqlalchemy.exc import IntegrityError

from deptrecords.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from deptrecords.schemas.user import Identity
from deptrecords.utils.record_manager import RecordManager
from deptrecords.utils.timeutils import current_year

EDITOR = Identity(user_id="b" * 24, username="chairman", user_type="chairman")


@pytest.fixture
def manager(db_session):
    return RecordManager(db_session)


def _record(**overrides):
    data = {
        "studentId": "S001",
        "studentName": "Jane Doe",
        "courseCode": "PHY101",
        "grade": "A",
    }
    data.update(overrides)
    return data


def test_create_applies_defaults(manager):
    record = manager.create_record(_record(), EDITOR)

    fetched = manager.get_record(record.id)
    assert fetched.student_id == "S001"
    assert fetched.numeric_grade == 70
    assert fetched.instructor == "Unknown"
    assert fetched.semester == "First"
    assert fetched.year_completed == current_year()
    assert fetched.updated_by == EDITOR.user_id


def test_create_normalizes_semester_alias_and_numeric_id(manager):
    record = manager.create_record(_record(studentId=20230001, semester="2"))

    assert record.student_id == "20230001"
    assert record.semester == "Second"


def test_create_duplicate_pair_rejected(manager):
    manager.create_record(_record())

    with pytest.raises(DuplicateKeyError) as exc_info:
        manager.create_record(_record(grade="B"))

    assert exc_info.value.message == "A record for this student and course already exists"
    assert manager.list_records().total == 1


def test_create_invalid_payload(manager):
    with pytest.raises(ValidationError) as exc_info:
        manager.create_record({"studentId": "S001"})

    assert "Grade is required" in exc_info.value.errors


def test_get_missing_record(manager):
    with pytest.raises(NotFoundError):
        manager.get_record("0" * 24)


def test_update_writes_only_present_fields(manager):
    record = manager.create_record(_record(numericGrade=88, instructor="Dr. Kollie"))

    updated = manager.update_record(record.id, {"numericGrade": 0}, EDITOR)

    assert updated.numeric_grade == 0
    assert updated.instructor == "Dr. Kollie"
    assert updated.grade == "A"


def test_update_into_existing_pair_rejected(manager):
    manager.create_record(_record())
    other = manager.create_record(_record(courseCode="PHY102"))

    with pytest.raises(DuplicateKeyError):
        manager.update_record(other.id, {"courseCode": "PHY101"})


def test_update_missing_record(manager):
    with pytest.raises(NotFoundError):
        manager.update_record("0" * 24, {"grade": "B"})


def test_delete_and_delete_all(manager):
    first = manager.create_record(_record())
    manager.create_record(_record(studentId="S002"))
    manager.create_record(_record(studentId="S003"))

    manager.delete_record(first.id)
    with pytest.raises(NotFoundError):
        manager.get_record(first.id)

    assert manager.delete_all_records() == 2
    assert manager.list_records().total == 0


def test_text_filters_match_literally(manager):
    manager.create_record(_record(studentId="S001", studentName="Liam O'Brien"))
    manager.create_record(_record(studentId="S002", studentName="Ann Obrien"))
    manager.create_record(_record(studentId="S003", courseCode="A+B"))
    manager.create_record(_record(studentId="S004", courseCode="AAB"))
    manager.create_record(_record(studentId="S005", courseCode="MTH_1"))
    manager.create_record(_record(studentId="S006", courseCode="MTHX1"))

    by_name = manager.list_records({"studentName": "o'brien"})
    assert [r.student_id for r in by_name.items] == ["S001"]

    by_course = manager.list_records({"courseCode": "A+B"})
    assert [r.student_id for r in by_course.items] == ["S003"]

    by_underscore = manager.list_records({"courseCode": "_"})
    assert [r.student_id for r in by_underscore.items] == ["S005"]


def test_exact_filters_and_default_order(manager):
    manager.create_record(_record(studentId="S1", yearCompleted=2020, semester="Second"))
    manager.create_record(_record(studentId="S2", yearCompleted=2022, semester="Second"))
    manager.create_record(_record(studentId="S3", yearCompleted=2022, semester="First"))

    page = manager.list_records()
    assert [r.student_id for r in page.items] == ["S3", "S2", "S1"]

    only_2022 = manager.list_records({"yearCompleted": 2022})
    assert only_2022.total == 2

    second = manager.list_records({"semester": "Second"})
    assert {r.student_id for r in second.items} == {"S1", "S2"}


def test_sort_and_paging(manager):
    for i in range(5):
        manager.create_record(_record(studentId=f"S{i}", numericGrade=50 + i))

    page = manager.list_records(sort_field="numericGrade", sort_direction="desc", page=2, limit=2)

    assert page.total == 5
    assert [r.numeric_grade for r in page.items] == [52, 51]
    assert page.pagination.total_pages == 3


def test_exact_lookups(manager):
    manager.create_record(_record(studentId="S1", courseCode="PHY101", instructor="Dr. Kollie"))
    manager.create_record(_record(studentId="S1", courseCode="PHY1011", instructor="Dr. Kollie"))
    manager.create_record(_record(studentId="S2", courseCode="PHY101", instructor="Dr. Sirleaf"))

    assert len(manager.get_by_course("PHY101")) == 2
    assert len(manager.get_by_student("S1")) == 2
    assert len(manager.get_by_instructor("Dr. Sirleaf")) == 1
    assert manager.get_by_course("phy101") == []


def test_bulk_upsert_isolates_failures(manager):
    results = manager.bulk_upsert(
        [
            _record(studentId="S1"),
            {"studentId": "S2", "grade": "B"},
            _record(studentId="S3"),
        ],
        EDITOR,
    )

    assert results["created"] == 2
    assert results["updated"] == 0
    assert results["errors"] == 1
    statuses = [d["status"] for d in results["details"]]
    assert statuses == ["created", "error", "created"]
    assert "Student name is required" in results["details"][1]["errors"]
    assert manager.list_records().total == 2


def test_bulk_upsert_updates_existing_pair(manager):
    existing = manager.create_record(_record(grade="C", numericGrade=71))

    results = manager.bulk_upsert([{"studentId": "S001", "courseCode": "PHY101", "grade": "B"}])

    assert results["updated"] == 1
    assert results["details"][0]["id"] == existing.id
    updated = manager.get_record(existing.id)
    assert updated.grade == "B"
    assert updated.numeric_grade == 71


def test_bulk_upsert_non_object_item(manager):
    results = manager.bulk_upsert(["garbage", _record()])

    assert results["errors"] == 1
    assert results["created"] == 1
    assert results["details"][0]["studentId"] == "Unknown"


def test_instructor_filter_is_literal(manager):
    manager.create_record(_record(studentId="S1", instructor="A+B"))
    manager.create_record(_record(studentId="S2", instructor="AAB"))
    manager.create_record(_record(studentId="S3", instructor="A%B"))

    page = manager.list_records({"instructor": "a+b"})
    assert [r.student_id for r in page.items] == ["S1"]

    page = manager.list_records({"instructor": "%"})
    assert [r.student_id for r in page.items] == ["S3"]


@pytest.mark.parametrize(
    "changes",
    [
        {"numericGrade": ""},
        {"yearCompleted": ""},
        {"numericGrade": None},
        {"yearCompleted": None},
        {"semester": None},
        {"instructor": None},
        {"semester": "  "},
    ],
)
def test_update_blank_defaulted_field_keeps_stored_value(manager, changes):
    record = manager.create_record(
        _record(numericGrade=88, instructor="Dr. Kollie", yearCompleted=2021, semester="Second")
    )

    updated = manager.update_record(record.id, changes, EDITOR)

    assert updated.numeric_grade == 88
    assert updated.instructor == "Dr. Kollie"
    assert updated.year_completed == 2021
    assert updated.semester == "Second"


def test_create_null_defaulted_fields_take_defaults(manager):
    record = manager.create_record(
        _record(numericGrade=None, instructor=None, yearCompleted="", semester=None)
    )

    assert record.numeric_grade == 70
    assert record.instructor == "Unknown"
    assert record.year_completed == current_year()
    assert record.semester == "First"


def test_bulk_upsert_null_defaulted_field_keeps_stored_value(manager):
    manager.create_record(_record(numericGrade=88))

    results = manager.bulk_upsert([_record(grade="B", numericGrade=None)], EDITOR)

    assert results["updated"] == 1
    assert results["errors"] == 0
    stored = manager.get_by_student("S001")[0]
    assert stored.grade == "B"
    assert stored.numeric_grade == 88


def test_concurrent_duplicate_caught_by_unique_index(manager, monkeypatch):
    # Both writers pass the lookup before either commits
    monkeypatch.setattr(RecordManager, "_find_by_key", lambda self, *args, **kwargs: None)
    manager.create_record(_record())

    with pytest.raises(DuplicateKeyError) as exc_info:
        manager.create_record(_record(grade="B"))

    assert exc_info.value.message == "A record for this student and course already exists"
    assert manager.list_records().total == 1


def test_non_unique_integrity_error_propagates(manager, db_session, monkeypatch):
    record = manager.create_record(_record())

    def fail_commit():
        raise IntegrityError(
            "UPDATE student_records", {}, Exception("NOT NULL constraint failed: grade")
        )

    monkeypatch.setattr(db_session, "commit", fail_commit)

    with pytest.raises(IntegrityError):
        manager.update_record(record.id, {"grade": "B"})
