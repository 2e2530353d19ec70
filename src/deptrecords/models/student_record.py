"""Student grade record database model."""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, UniqueConstraint

from .base import Base, new_id, utcnow


class StudentRecordModel(Base):
    """One grade entry for a student in a course."""

    __tablename__ = "student_records"
    __table_args__ = (
        # At most one record per student per course
        UniqueConstraint(
            "student_id",
            "course_code",
            name="uq_student_records_student_course",
        ),
        Index("ix_student_records_year_semester", "year_completed", "semester"),
    )

    record_id = Column(String(24), primary_key=True, index=True, default=new_id)
    student_id = Column(String, nullable=False, index=True)
    student_name = Column(String, nullable=False)
    course_code = Column(String, nullable=False, index=True)
    course_name = Column(String, nullable=True)
    grade = Column(String, nullable=False)
    numeric_grade = Column(Float, nullable=False)
    instructor = Column(String, nullable=False)
    year_completed = Column(Integer, nullable=False)
    semester = Column(String, nullable=False)
    session = Column(String, nullable=True)
    # Non-owning back-reference to the last editor (users.user_id)
    updated_by = Column(String(24), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
