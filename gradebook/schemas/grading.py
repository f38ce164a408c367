from typing import Optional, List, Dict, Set
from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator

from gradebook.exceptions import InvalidRecord


class Period(str, Enum):
    p1 = "p1"
    p2 = "p2"
    p3 = "p3"
    p4 = "p4"
    p5 = "p5"
    p6 = "p6"
    exam_s1 = "exam_s1"
    exam_s2 = "exam_s2"
    semester1 = "semester1"
    semester2 = "semester2"
    yearly = "yearly"


# Canonical order of the trend series
TREND_PERIODS = [Period.p1, Period.p2, Period.p3, Period.p4, Period.p5, Period.p6]

SEMESTER_PERIODS = {
    Period.semester1: [Period.p1, Period.p2, Period.p3, Period.exam_s1],
    Period.semester2: [Period.p4, Period.p5, Period.p6, Period.exam_s2],
}
SEMESTER_PERIODS[Period.yearly] = SEMESTER_PERIODS[Period.semester1] + SEMESTER_PERIODS[Period.semester2]


def is_composite(period: Period) -> bool:
    return Period(period) in SEMESTER_PERIODS


def expand_period(period: Period) -> List[Period]:
    """Return the stored periods a (possibly composite) period is made of."""
    period = Period(period)
    return list(SEMESTER_PERIODS.get(period, [period]))


# Grade record as handed to the aggregation functions
class GradeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: int
    subject_offering_id: int
    assessment_type_id: int
    period: Period
    score: float
    max_score: float
    locked: bool = False
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    assessment_name: Optional[str] = None

    @model_validator(mode="after")
    def check_score_range(self):
        if self.max_score <= 0:
            raise InvalidRecord(
                f"max_score must be positive, got {self.max_score}",
                student_id=self.student_id, score=self.score, max_score=self.max_score,
            )
        if self.score < 0 or self.score > self.max_score:
            raise InvalidRecord(
                f"score {self.score} is outside 0..{self.max_score}",
                student_id=self.student_id, score=self.score, max_score=self.max_score,
            )
        return self


class SubjectAggregate(BaseModel):
    subject_offering_id: int
    subject_name: str
    subject_code: str
    total_score: float
    total_max: float
    percentage: Optional[int] = None


class StudentPeriodSummary(BaseModel):
    student_id: int
    period: Period
    subject_aggregates: List[SubjectAggregate]
    overall_average: Optional[int] = None


# Ranking schemas
class RankedStudent(BaseModel):
    student_id: int
    overall_score: float
    rank: int


class TopStudent(BaseModel):
    student_id: int
    name: str
    class_name: str
    average: int


class StoredRanking(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_score: Optional[float] = None
    class_rank: Optional[int] = None


# Classification schemas
class RiskFlag(BaseModel):
    student_id: int
    failing_subject_count: int


class Classification(BaseModel):
    passing: Set[int] = set()
    failing: Set[int] = set()
    at_risk: List[RiskFlag] = []


class PassFailSummary(BaseModel):
    total_students: int
    passing_students: int
    failing_students: int
    pass_rate: int
    fail_rate: int


class AtRiskStudent(RiskFlag):
    name: str
    class_name: str


# Trend schemas
class TrendPoint(BaseModel):
    period_label: str
    average_percentage: float


class ClassPerformance(BaseModel):
    class_id: int
    class_name: str
    average: float


# Report schemas
class AssessmentLine(BaseModel):
    assessment_type_id: int
    name: str
    score: float
    max_score: float
    incomplete: bool


class ReportSubjectLine(SubjectAggregate):
    grade: Optional[str] = None
    has_incomplete: bool = False
    assessments: List[AssessmentLine] = []


class StudentReport(StudentPeriodSummary):
    subject_aggregates: List[ReportSubjectLine]
    total_score: Optional[float] = None
    rank: Optional[int] = None
    rank_label: Optional[str] = None
    class_size: Optional[int] = None
    rank_position: Optional[str] = None
    overall_grade: Optional[str] = None
    has_incomplete: bool = False


class SemesterPeriodCell(BaseModel):
    score: float
    max_score: float
    percentage: Optional[float] = None
    incomplete: bool = False


class SemesterSubjectLine(BaseModel):
    subject_offering_id: int
    subject_name: str
    subject_code: str
    periods: Dict[Period, SemesterPeriodCell]
    semester_average: Optional[float] = None
    grade: Optional[str] = None
    has_incomplete: bool = False


class SemesterReport(BaseModel):
    student_id: int
    period: Period
    subjects: List[SemesterSubjectLine]
    overall_average: Optional[float] = None
    rank: Optional[int] = None
    rank_label: Optional[str] = None
    class_size: Optional[int] = None
    rank_position: Optional[str] = None
    has_incomplete: bool = False


# Lookup rows returned by the data access layer
class StudentRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    class_id: Optional[int] = None
    class_name: Optional[str] = None
