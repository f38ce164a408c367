from fastapi import APIRouter, Depends

from gradebook.schemas.academics import DashboardStats
from gradebook.services.repository import GradeRepository, get_grade_repository

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStats)
async def get_dashboard_stats(repo: GradeRepository = Depends(get_grade_repository)):
    return DashboardStats(
        total_students=await repo.count_students(),
        total_classes=await repo.count_classes(),
        current_year=await repo.current_academic_year() or "N/A",
    )
