from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from gradebook.database import Base

# Teacher model
class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    classes = relationship("Class", back_populates="teacher")
    class_subjects = relationship("ClassSubject", back_populates="teacher")
    sponsored_classes = relationship("Class", secondary="sponsor_class_assignments", viewonly=True)

# Student model
class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    date_of_birth = Column(DateTime)
    photo_url = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    class_ = relationship("Class", back_populates="students")
    department = relationship("Department", back_populates="students")
    grades = relationship("StudentGrade", back_populates="student")
    period_totals = relationship("StudentPeriodTotal", back_populates="student")
    yearly_totals = relationship("StudentYearlyTotal", back_populates="student")
