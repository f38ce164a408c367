from typing import Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from gradebook.exceptions import LockedGradeError
from gradebook.models import StudentGrade
from gradebook.schemas.grading import GradeRecord, Period, StoredRanking, StudentRef


def make_record(student_id, subject_id, score, max_score=100, period=Period.p1, assessment_type_id=1,
                subject_name=None, subject_code=None, assessment_name=None, locked=False):
    return GradeRecord(
        student_id=student_id,
        subject_offering_id=subject_id,
        assessment_type_id=assessment_type_id,
        period=period,
        score=score,
        max_score=max_score,
        locked=locked,
        subject_name=subject_name or f"Subject {subject_id}",
        subject_code=subject_code or f"S{subject_id}",
        assessment_name=assessment_name,
    )


class FakeGradeRepository:
    """In-memory stand-in for GradeRepository."""

    def __init__(self):
        self.records: List[GradeRecord] = []
        self.students: List[StudentRef] = []
        self.classes: Dict[int, str] = {}
        self.teacher_classes: Dict[int, List[int]] = {}
        self.stored_rankings: Dict[tuple, StoredRanking] = {}
        self.yearly_rankings: Dict[tuple, StoredRanking] = {}
        self.current_year: Optional[str] = None
        self.grades: List[StudentGrade] = []

    def _student_class(self, student_id):
        return next((s.class_id for s in self.students if s.id == student_id), None)

    async def fetch_grade_records(self, period, student_ids=None, class_ids=None, subject_offering_ids=None):
        periods = {Period(period)} if isinstance(period, (str, Period)) else {Period(p) for p in period}
        return [
            r for r in self.records
            if r.period in periods
            and (student_ids is None or r.student_id in student_ids)
            and (class_ids is None or self._student_class(r.student_id) in class_ids)
            and (subject_offering_ids is None or r.subject_offering_id in subject_offering_ids)
        ]

    async def fetch_students_in_classes(self, class_ids=None):
        return [s for s in self.students if class_ids is None or s.class_id in class_ids]

    async def fetch_student(self, student_id):
        return next((s for s in self.students if s.id == student_id), None)

    async def fetch_stored_ranking(self, student_id, period):
        return self.stored_rankings.get((student_id, Period(period)))

    async def fetch_yearly_ranking(self, student_id, period=Period.yearly):
        return self.yearly_rankings.get((student_id, Period(period)))

    async def fetch_teacher_class_ids(self, teacher_id):
        return list(self.teacher_classes.get(teacher_id, []))

    async def fetch_classes(self, class_ids=None):
        return {i: n for i, n in self.classes.items() if class_ids is None or i in class_ids}

    async def count_students(self, class_ids=None):
        return len(await self.fetch_students_in_classes(class_ids))

    async def count_classes(self):
        return len(self.classes)

    async def current_academic_year(self):
        return self.current_year

    async def fetch_grades_for_entry(self, class_subject_id, period):
        return [g for g in self.grades if g.class_subject_id == class_subject_id and g.period == Period(period).value]

    async def save_grades(self, entries: Sequence):
        saved = []
        for entry in entries:
            grade = next((
                g for g in self.grades
                if (g.student_id, g.class_subject_id, g.period, g.assessment_type_id)
                == (entry.student_id, entry.class_subject_id, entry.period.value, entry.assessment_type_id)
            ), None)
            if grade is not None and grade.is_locked:
                raise LockedGradeError(entry.student_id, entry.class_subject_id,
                                       entry.assessment_type_id, entry.period.value)
            if grade is None:
                grade = StudentGrade(
                    id=len(self.grades) + 1,
                    student_id=entry.student_id,
                    class_subject_id=entry.class_subject_id,
                    assessment_type_id=entry.assessment_type_id,
                    period=entry.period.value,
                )
                self.grades.append(grade)
            grade.score = entry.score
            grade.max_score = entry.max_score
            grade.is_locked = entry.is_locked
            saved.append(grade)
        return saved


@pytest.fixture
def grade_record():
    return make_record


@pytest.fixture
def repo():
    return FakeGradeRepository()


@pytest.fixture
def client(repo):
    from gradebook.main import app
    from gradebook.services.repository import get_grade_repository

    app.dependency_overrides[get_grade_repository] = lambda: repo
    # Not used as a context manager, so the startup hook never touches a database
    yield TestClient(app)
    app.dependency_overrides.clear()
