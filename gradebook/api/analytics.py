from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Path, Query

from gradebook.config import settings
from gradebook.schemas.grading import (
    AtRiskStudent, ClassPerformance, GradeRecord, PassFailSummary, Period,
    RankedStudent, TopStudent, TrendPoint, TREND_PERIODS, expand_period,
)
from gradebook.services.aggregation import GROUP_BY_STUDENT, aggregate, subject_aggregates_by_student
from gradebook.services.classification import classify, pass_fail_summary
from gradebook.services.ranking import rank_class, top_students
from gradebook.services.repository import GradeRepository, get_grade_repository
from gradebook.services.trends import class_performance, compose_trend

router = APIRouter()


async def resolve_class_scope(repo: GradeRepository, teacher_id: Optional[int]) -> Optional[List[int]]:
    """
    Class ids a request is limited to.

    None means the whole school; an empty list means a teacher without classes.
    """
    if teacher_id is None:
        return None
    return await repo.fetch_teacher_class_ids(teacher_id)


def _classify(records: List[GradeRecord]):
    return classify(
        subject_aggregates_by_student(records),
        pass_percentage=settings.PASS_PERCENTAGE,
        at_risk_subjects=settings.AT_RISK_FAILING_SUBJECTS,
    )


@router.get("/analytics/pass-fail", response_model=PassFailSummary)
async def get_pass_fail_summary(
    period: Period = Query(...),
    teacher_id: Optional[int] = Query(None, gt=0),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Share of students passing and failing a period.
    """
    class_ids = await resolve_class_scope(repo, teacher_id)
    if class_ids is None:
        total_students = await repo.count_students()
        records = await repo.fetch_grade_records(period)
    else:
        students = await repo.fetch_students_in_classes(class_ids) if class_ids else []
        total_students = len(students)
        records = await repo.fetch_grade_records(period, student_ids=[s.id for s in students]) if students else []

    return pass_fail_summary(_classify(records), total_students)


@router.get("/analytics/top-students", response_model=List[TopStudent])
async def get_top_students(
    period: Period = Query(...),
    limit: int = Query(settings.TOP_STUDENTS_LIMIT, gt=0, le=100),
    teacher_id: Optional[int] = Query(None, gt=0),
    repo: GradeRepository = Depends(get_grade_repository),
):
    class_ids = await resolve_class_scope(repo, teacher_id)
    if class_ids == []:
        return []

    students = await repo.fetch_students_in_classes(class_ids)
    if not students:
        return []
    records = await repo.fetch_grade_records(
        period, student_ids=[s.id for s in students] if class_ids is not None else None
    )

    totals = aggregate(records, GROUP_BY_STUDENT)
    return top_students(totals, {s.id: s for s in students}, limit=limit)


@router.get("/analytics/at-risk", response_model=List[AtRiskStudent])
async def get_at_risk_students(
    period: Period = Query(...),
    teacher_id: Optional[int] = Query(None, gt=0),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Students failing too many subjects in a period, most failures first.
    """
    class_ids = await resolve_class_scope(repo, teacher_id)
    if class_ids == []:
        return []

    students = {s.id: s for s in await repo.fetch_students_in_classes(class_ids)}
    if not students:
        return []
    records = await repo.fetch_grade_records(
        period, student_ids=list(students) if class_ids is not None else None
    )

    flagged = []
    for flag in _classify(records).at_risk:
        student = students.get(flag.student_id)
        flagged.append(AtRiskStudent(
            student_id=flag.student_id,
            failing_subject_count=flag.failing_subject_count,
            name=student.name if student else "Unknown",
            class_name=(student.class_name if student else None) or "N/A",
        ))
    return flagged


@router.get("/analytics/class-performance", response_model=List[ClassPerformance])
async def get_class_performance(
    period: Period = Query(...),
    teacher_id: Optional[int] = Query(None, gt=0),
    repo: GradeRepository = Depends(get_grade_repository),
):
    class_ids = await resolve_class_scope(repo, teacher_id)
    if class_ids == []:
        return []

    class_names = await repo.fetch_classes(class_ids)
    students = await repo.fetch_students_in_classes(class_ids)
    if not students:
        return []
    records = await repo.fetch_grade_records(
        period, student_ids=[s.id for s in students] if class_ids is not None else None
    )

    return class_performance(records, {s.id: s.class_id for s in students}, class_names)


@router.get("/analytics/trend", response_model=List[TrendPoint])
async def get_performance_trend(
    teacher_id: Optional[int] = Query(None, gt=0),
    class_id: Optional[int] = Query(None, gt=0),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Pooled average for each of the six grading periods.
    """
    class_ids = await resolve_class_scope(repo, teacher_id)
    if class_id is not None:
        class_ids = [c for c in class_ids if c == class_id] if class_ids is not None else [class_id]
    if class_ids == []:
        return []

    student_ids = None
    if class_ids is not None:
        student_ids = [s.id for s in await repo.fetch_students_in_classes(class_ids)]
        if not student_ids:
            return []

    records = await repo.fetch_grade_records(TREND_PERIODS, student_ids=student_ids)
    records_by_period: Dict[Period, List[GradeRecord]] = {}
    for record in records:
        records_by_period.setdefault(record.period, []).append(record)

    return compose_trend(TREND_PERIODS, records_by_period)


@router.get("/classes/{class_id}/ranking", response_model=List[RankedStudent])
async def get_class_ranking(
    class_id: int = Path(..., gt=0),
    period: Period = Query(...),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Dense ranking of a class for a period, computed from the raw grades.
    """
    records = await repo.fetch_grade_records(expand_period(period), class_ids=[class_id])
    return rank_class(records)
