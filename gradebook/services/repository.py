import logging
from typing import Dict, List, Optional, Sequence, Union

from fastapi import Depends
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gradebook.database import get_db
from gradebook.exceptions import LockedGradeError
from gradebook.models.academics import AssessmentType, StudentGrade, StudentPeriodTotal, StudentYearlyTotal
from gradebook.models.schools import AcademicYear, Class, ClassSubject, SponsorClassAssignment, Subject
from gradebook.models.users import Student
from gradebook.schemas.academics import StudentGradeEntry
from gradebook.schemas.grading import GradeRecord, Period, StoredRanking, StudentRef

logger = logging.getLogger(__name__)

YEARLY_AVERAGE_COLUMNS = {
    Period.semester1: StudentYearlyTotal.semester1_avg,
    Period.semester2: StudentYearlyTotal.semester2_avg,
    Period.yearly: StudentYearlyTotal.yearly_avg,
}


class GradeRepository:
    """
    Read access to grades, rosters and stored rankings.

    Rows are turned into validated GradeRecord values here, so the grading
    functions never see raw database rows.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_grade_records(
        self,
        period: Union[Period, Sequence[Period]],
        student_ids: Optional[Sequence[int]] = None,
        class_ids: Optional[Sequence[int]] = None,
        subject_offering_ids: Optional[Sequence[int]] = None,
    ) -> List[GradeRecord]:
        periods = [period] if isinstance(period, (str, Period)) else list(period)

        query = (
            select(StudentGrade, Subject.name, Subject.code, AssessmentType.name)
            .join(ClassSubject, ClassSubject.id == StudentGrade.class_subject_id)
            .join(Subject, Subject.id == ClassSubject.subject_id)
            .outerjoin(AssessmentType, AssessmentType.id == StudentGrade.assessment_type_id)
            .where(StudentGrade.period.in_([Period(p).value for p in periods]))
        )
        if student_ids is not None:
            query = query.where(StudentGrade.student_id.in_(student_ids))
        if class_ids is not None:
            query = query.join(Student, Student.id == StudentGrade.student_id).where(Student.class_id.in_(class_ids))
        if subject_offering_ids is not None:
            query = query.where(StudentGrade.class_subject_id.in_(subject_offering_ids))

        result = await self.db.execute(query.order_by(StudentGrade.id))
        records = [
            GradeRecord(
                student_id=grade.student_id,
                subject_offering_id=grade.class_subject_id,
                assessment_type_id=grade.assessment_type_id,
                period=grade.period,
                score=float(grade.score),
                max_score=float(grade.max_score),
                locked=bool(grade.is_locked),
                subject_name=subject_name,
                subject_code=subject_code,
                assessment_name=assessment_name,
            )
            for grade, subject_name, subject_code, assessment_name in result.all()
        ]
        logger.debug(f"Fetched {len(records)} grade records for periods {[Period(p).value for p in periods]}")
        return records

    async def fetch_students_in_classes(self, class_ids: Optional[Sequence[int]] = None) -> List[StudentRef]:
        query = select(Student.id, Student.full_name, Student.class_id, Class.name).outerjoin(
            Class, Class.id == Student.class_id
        )
        if class_ids is not None:
            query = query.where(Student.class_id.in_(class_ids))

        result = await self.db.execute(query.order_by(Student.full_name))
        return [
            StudentRef(id=student_id, name=full_name, class_id=class_id, class_name=class_name)
            for student_id, full_name, class_id, class_name in result.all()
        ]

    async def fetch_student(self, student_id: int) -> Optional[StudentRef]:
        result = await self.db.execute(
            select(Student.id, Student.full_name, Student.class_id, Class.name)
            .outerjoin(Class, Class.id == Student.class_id)
            .where(Student.id == student_id)
        )
        row = result.first()
        if row is None:
            return None
        return StudentRef(id=row[0], name=row[1], class_id=row[2], class_name=row[3])

    async def fetch_stored_ranking(self, student_id: int, period: Period) -> Optional[StoredRanking]:
        """
        Stored total and class rank of a student for one period.

        Totals are kept per subject offering; the total score is their sum
        and the rank comes from the most recently updated row carrying one.
        """
        result = await self.db.execute(
            select(StudentPeriodTotal).where(
                and_(
                    StudentPeriodTotal.student_id == student_id,
                    StudentPeriodTotal.period == Period(period).value,
                )
            ).order_by(StudentPeriodTotal.updated_at.desc(), StudentPeriodTotal.id.desc())
        )
        totals = result.scalars().all()
        if not totals:
            return None

        class_rank = next((row.class_rank for row in totals if row.class_rank is not None), None)
        return StoredRanking(
            total_score=sum(float(row.total_score or 0) for row in totals),
            class_rank=class_rank,
        )

    async def fetch_yearly_ranking(self, student_id: int, period: Period = Period.yearly) -> Optional[StoredRanking]:
        average_column = YEARLY_AVERAGE_COLUMNS[Period(period)]
        result = await self.db.execute(
            select(average_column, StudentYearlyTotal.class_rank)
            .where(StudentYearlyTotal.student_id == student_id)
            .order_by(StudentYearlyTotal.updated_at.desc())
        )
        row = result.first()
        if row is None:
            return None
        average, class_rank = row
        return StoredRanking(
            total_score=float(average) if average is not None else None,
            class_rank=class_rank,
        )

    async def fetch_teacher_class_ids(self, teacher_id: int) -> List[int]:
        """Classes a teacher teaches or sponsors, without duplicates."""
        taught = await self.db.execute(select(Class.id).where(Class.teacher_id == teacher_id))
        sponsored = await self.db.execute(
            select(SponsorClassAssignment.class_id).where(SponsorClassAssignment.teacher_id == teacher_id)
        )

        class_ids: List[int] = []
        for class_id in list(taught.scalars().all()) + list(sponsored.scalars().all()):
            if class_id not in class_ids:
                class_ids.append(class_id)
        return class_ids

    async def fetch_classes(self, class_ids: Optional[Sequence[int]] = None) -> Dict[int, str]:
        query = select(Class.id, Class.name)
        if class_ids is not None:
            query = query.where(Class.id.in_(class_ids))
        result = await self.db.execute(query)
        return {class_id: name for class_id, name in result.all()}

    async def count_students(self, class_ids: Optional[Sequence[int]] = None) -> int:
        query = select(func.count(Student.id))
        if class_ids is not None:
            query = query.where(Student.class_id.in_(class_ids))
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_classes(self) -> int:
        result = await self.db.execute(select(func.count(Class.id)))
        return result.scalar() or 0

    async def current_academic_year(self) -> Optional[str]:
        result = await self.db.execute(select(AcademicYear.year_name).where(AcademicYear.is_current.is_(True)))
        return result.scalars().first()

    async def fetch_grades_for_entry(self, class_subject_id: int, period: Period) -> List[StudentGrade]:
        result = await self.db.execute(
            select(StudentGrade)
            .where(
                and_(
                    StudentGrade.class_subject_id == class_subject_id,
                    StudentGrade.period == Period(period).value,
                )
            )
            .order_by(StudentGrade.created_at.desc())
        )
        return list(result.scalars().all())

    async def save_grades(self, entries: Sequence[StudentGradeEntry]) -> List[StudentGrade]:
        """
        Insert or update grades keyed on
        (student_id, class_subject_id, period, assessment_type_id).

        Raises:
            LockedGradeError: If one of the targeted grades is locked; nothing
                is written in that case
        """
        saved = []
        for entry in entries:
            result = await self.db.execute(
                select(StudentGrade).where(
                    and_(
                        StudentGrade.student_id == entry.student_id,
                        StudentGrade.class_subject_id == entry.class_subject_id,
                        StudentGrade.period == entry.period.value,
                        StudentGrade.assessment_type_id == entry.assessment_type_id,
                    )
                )
            )
            grade = result.scalars().first()

            if grade is None:
                grade = StudentGrade(
                    student_id=entry.student_id,
                    class_subject_id=entry.class_subject_id,
                    assessment_type_id=entry.assessment_type_id,
                    period=entry.period.value,
                )
                self.db.add(grade)
            elif grade.is_locked:
                await self.db.rollback()
                raise LockedGradeError(
                    entry.student_id, entry.class_subject_id, entry.assessment_type_id, entry.period.value
                )

            grade.score = entry.score
            grade.max_score = entry.max_score
            grade.is_locked = entry.is_locked
            saved.append(grade)

        await self.db.commit()
        for grade in saved:
            await self.db.refresh(grade)
        logger.info(f"Saved {len(saved)} grades")
        return saved


async def get_grade_repository(db: AsyncSession = Depends(get_db)) -> GradeRepository:
    return GradeRepository(db)
