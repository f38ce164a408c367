import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query, Body, Request

from gradebook.exceptions import LockedGradeError
from gradebook.middleware.logging import request_id
from gradebook.schemas.academics import StudentGradeEntry, StudentGradeInDB
from gradebook.schemas.grading import Period
from gradebook.services.repository import GradeRepository, get_grade_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/grades", response_model=List[StudentGradeInDB])
async def get_grades(
    class_subject_id: int = Query(..., gt=0),
    period: Period = Query(...),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Grades entered for one subject offering and period, newest first.
    """
    return await repo.fetch_grades_for_entry(class_subject_id, period)


@router.put("/grades", response_model=List[StudentGradeInDB])
async def save_grades(
    request: Request,
    grades: List[StudentGradeEntry] = Body(...),
    repo: GradeRepository = Depends(get_grade_repository),
):
    """
    Create or update a batch of grades.

    Rows are matched on student, subject offering, period and assessment
    type. A batch touching a locked grade is rejected as a whole.
    """
    if not grades:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No grades provided"
        )

    try:
        return await repo.save_grades(grades)
    except LockedGradeError as e:
        logger.warning(f"Rejected grade batch: {str(e)} [request_id: {request_id(request)}]")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
