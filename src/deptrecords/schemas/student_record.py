"""Student record schema definitions.

Request models coerce already-validated payloads into canonical types;
:mod:`deptrecords.utils.validators` reports rule violations beforehand.
"""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from deptrecords.config import (
    DEFAULT_INSTRUCTOR,
    DEFAULT_NUMERIC_GRADE,
    DEFAULT_SEMESTER,
    SEMESTER_ALIASES,
)
from deptrecords.schemas.base import CamelModel
from deptrecords.utils.timeutils import current_year


def _normalize_semester(value: Any) -> Any:
    if value is None:
        return value
    text = str(value).strip()
    return SEMESTER_ALIASES.get(text, text)


Semester = Annotated[str, BeforeValidator(_normalize_semester)]

DEFAULTED_FIELDS = frozenset(
    {
        "numericGrade", "numeric_grade",
        "instructor",
        "yearCompleted", "year_completed",
        "semester",
    }
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class StudentRecordUpdate(CamelModel):
    """Partial update. Only fields present in the payload are written."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    student_id: Optional[str] = None
    student_name: Optional[str] = None
    course_code: Optional[str] = None
    course_name: Optional[str] = None
    grade: Optional[str] = None
    numeric_grade: Optional[float] = None
    instructor: Optional[str] = None
    year_completed: Optional[int] = None
    semester: Optional[Semester] = None
    session: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_defaulted(cls, data: Any) -> Any:
        # A null or empty value for a defaulted field means "not supplied":
        # updates keep the stored value, creates take the default
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if key not in DEFAULTED_FIELDS or not _is_blank(value)
        }


class StudentRecordCreate(StudentRecordUpdate):
    """New record. Omitted optional fields take department defaults."""

    student_id: str
    student_name: str
    course_code: str
    grade: str
    numeric_grade: float = DEFAULT_NUMERIC_GRADE
    instructor: str = DEFAULT_INSTRUCTOR
    year_completed: int = Field(default_factory=current_year)
    semester: Semester = DEFAULT_SEMESTER


class StudentRecord(CamelModel):
    """Outward view of a stored record."""

    id: str
    student_id: str
    student_name: str
    course_code: str
    course_name: Optional[str] = None
    grade: str
    numeric_grade: float
    instructor: str
    year_completed: int
    semester: str
    session: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
