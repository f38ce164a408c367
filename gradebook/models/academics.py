from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Boolean, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from gradebook.database import Base

PERIOD_CHECK = (
    "period IN ('p1', 'p2', 'p3', 'p4', 'p5', 'p6', 'exam_s1', 'exam_s2', "
    "'semester1', 'semester2', 'yearly')"
)

# Assessment Type model
class AssessmentType(Base):
    __tablename__ = "assessment_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    max_points = Column(Numeric(6, 2), nullable=False, default=100)
    display_order = Column(Integer, nullable=False, default=0)
    department_id = Column(Integer, ForeignKey("departments.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("max_points > 0", name="check_max_points_positive"),
    )

    # Relationships
    grades = relationship("StudentGrade", back_populates="assessment_type")

# Student Grade model
class StudentGrade(Base):
    __tablename__ = "student_grades"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    class_subject_id = Column(Integer, ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False)
    assessment_type_id = Column(Integer, ForeignKey("assessment_types.id", ondelete="CASCADE"), nullable=False)
    period = Column(String(20), nullable=False)
    score = Column(Numeric(6, 2), nullable=False)
    max_score = Column(Numeric(6, 2), nullable=False)
    is_locked = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "student_id", "class_subject_id", "period", "assessment_type_id",
            name="uq_student_grade_entry"
        ),
        CheckConstraint("score >= 0 AND score <= max_score", name="check_score_range"),
        CheckConstraint("max_score > 0", name="check_grade_max_positive"),
        CheckConstraint(PERIOD_CHECK, name="check_grade_period"),
    )

    # Relationships
    student = relationship("Student", back_populates="grades")
    class_subject = relationship("ClassSubject", back_populates="grades")
    assessment_type = relationship("AssessmentType", back_populates="grades")

# Stored per-period total and class rank
class StudentPeriodTotal(Base):
    __tablename__ = "student_period_totals"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    class_subject_id = Column(Integer, ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False)
    period = Column(String(20), nullable=False)
    total_score = Column(Numeric(8, 2), nullable=False, default=0)
    class_rank = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(PERIOD_CHECK, name="check_total_period"),
    )

    # Relationships
    student = relationship("Student", back_populates="period_totals")

# Stored semester/yearly averages and class rank
class StudentYearlyTotal(Base):
    __tablename__ = "student_yearly_totals"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    class_subject_id = Column(Integer, ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False)
    semester1_avg = Column(Numeric(6, 2))
    semester2_avg = Column(Numeric(6, 2))
    yearly_avg = Column(Numeric(6, 2))
    class_rank = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    student = relationship("Student", back_populates="yearly_totals")
