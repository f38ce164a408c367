import logging
from typing import Union
from fastapi import APIRouter, Depends, HTTPException, status, Query, Path

from gradebook.schemas.grading import Period, SemesterReport, StudentReport, expand_period, is_composite
from gradebook.services.reports import assemble_report, assemble_semester_report
from gradebook.services.repository import GradeRepository, get_grade_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/reports/students/{student_id}", response_model=Union[StudentReport, SemesterReport])
async def get_student_report(
    student_id: int = Path(..., gt=0),
    period: Period = Query(...),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Report card of a student for a period, a semester or the whole year.
    """
    student = await repo.fetch_student(student_id)
    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found"
        )

    class_size = await repo.count_students([student.class_id]) if student.class_id else None

    if is_composite(period):
        records = await repo.fetch_grade_records(expand_period(period), student_ids=[student_id])
        stored_ranking = await repo.fetch_yearly_ranking(student_id, period)
        return assemble_semester_report(
            student_id, period, records,
            stored_ranking=stored_ranking,
            class_size=class_size,
        )

    records = await repo.fetch_grade_records(period, student_ids=[student_id])
    stored_ranking = await repo.fetch_stored_ranking(student_id, period)

    # Without a stored rank the class is ranked from its raw grades
    class_records = None
    if (stored_ranking is None or stored_ranking.class_rank is None) and student.class_id:
        logger.debug(f"No stored rank for student {student_id} in {period.value}, ranking class {student.class_id}")
        class_records = await repo.fetch_grade_records(period, class_ids=[student.class_id])

    return assemble_report(
        student_id, period, records,
        stored_ranking=stored_ranking,
        class_records=class_records,
        class_size=class_size,
    )
