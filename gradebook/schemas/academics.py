from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gradebook.schemas.grading import Period, is_composite


# Student Grade schemas
class StudentGradeBase(BaseModel):
    student_id: int
    class_subject_id: int
    assessment_type_id: int
    period: Period
    score: float = Field(..., ge=0)
    max_score: float = Field(..., gt=0)
    is_locked: bool = False

    @field_validator('period')
    @classmethod
    def period_is_stored(cls, v):
        if is_composite(v):
            raise ValueError('grades are entered per period, not per semester or year')
        return v

    @model_validator(mode='after')
    def score_within_max(self):
        if self.score > self.max_score:
            raise ValueError('score must not exceed max_score')
        return self


class StudentGradeEntry(StudentGradeBase):
    # Ids sent back by clients are ignored, rows are matched on
    # (student_id, class_subject_id, period, assessment_type_id)
    id: Optional[int] = None


class StudentGradeInDB(StudentGradeBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Dashboard schema
class DashboardStats(BaseModel):
    total_students: int
    total_classes: int
    current_year: str
