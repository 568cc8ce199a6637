"""
Admin Routes

GET /admin/job/applied-jobs?roll= - Applications of any alumni
GET /admin/eligibility?roll=&job_id= - Eligibility verdict with reason
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query

from alumni_portal.core.auth import get_current_admin
from alumni_portal.api.dependencies import (
    get_alumni_repository, get_application_repository, get_job_repository,
    get_evaluator, get_history_reader
)
from alumni_portal.services.eligibility import EligibilityEvaluator
from alumni_portal.services.history import ApplicationHistoryReader
from alumni_portal.services.repository import AlumniRepository, ApplicationRepository, JobRepository
from alumni_portal.schemas.schemas import AppliedJobResponse, EligibilityResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/job/applied-jobs", response_model=List[AppliedJobResponse])
async def get_applied_jobs(
    roll: str = Query(..., description="Roll number of the alumni"),
    admin: dict = Depends(get_current_admin),
    reader: ApplicationHistoryReader = Depends(get_history_reader)
):
    """Applications of the alumni with this roll. Empty if not found or not approved."""
    return reader.get_applications(roll)


@router.get("/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    roll: str = Query(...),
    job_id: int = Query(...),
    admin: dict = Depends(get_current_admin),
    alumni_repo: AlumniRepository = Depends(get_alumni_repository),
    jobs_repo: JobRepository = Depends(get_job_repository),
    applications_repo: ApplicationRepository = Depends(get_application_repository),
    evaluator: EligibilityEvaluator = Depends(get_evaluator)
):
    """
    Eligibility of an alumni for a job, with the rejection reason.

    job_status is deliberately not checked, so admins get an answer for
    ongoing / closed jobs too.
    """
    found = alumni_repo.find_by_roll(roll)
    if not found:
        raise HTTPException(status_code=404, detail="Alumni not found")
    alumni = alumni_repo.get_alumni(found["alumni_id"])

    job = jobs_repo.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    selected = applications_repo.get_selected_applications(alumni.id)
    result = evaluator.check(alumni, job, selected)

    return EligibilityResponse(
        roll=roll, job_id=job_id, eligible=result.eligible,
        reason=result.reason.value if result.reason else None
    )
