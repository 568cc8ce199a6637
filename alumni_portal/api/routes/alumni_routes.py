"""
Alumni Routes

GET /alumni/me - Get own profile
GET /alumni/jobs - List open jobs the alumni is eligible for
POST /alumni/jobs/{job_id}/apply - Apply to a job
GET /alumni/applied-jobs - Get own applications (any status)
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import IntegrityError

from alumni_portal.core.auth import get_current_alumni
from alumni_portal.api.dependencies import (
    get_application_repository, get_job_repository, get_evaluator, get_history_reader
)
from alumni_portal.services.eligibility import EligibilityEvaluator
from alumni_portal.services.history import ApplicationHistoryReader
from alumni_portal.services.repository import ApplicationRepository, JobRepository
from alumni_portal.schemas.schemas import (
    AlumniRecord, AlumniProfileResponse, JobResponse, JobListResponse,
    AppliedJobResponse, MessageResponse, JobStatus
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alumni", tags=["Alumni"])


@router.get("/me", response_model=AlumniProfileResponse)
async def get_profile(alumni: AlumniRecord = Depends(get_current_alumni)):
    """Get current alumni's profile."""
    return AlumniProfileResponse(
        alumni_id=alumni.id, roll=alumni.roll, name=alumni.name,
        course=alumni.course.name if alumni.course else None,
        registered_for=alumni.registered_for.value if alumni.registered_for else None,
        X_marks=alumni.X_marks, XII_marks=alumni.XII_marks, cpi=alumni.cpi,
        category=alumni.category, gender=alumni.gender, pwd=alumni.pwd,
        placed_status=alumni.placed_status.value if alumni.placed_status else None,
        internship_status=alumni.internship_status, approved=alumni.approved.value
    )


@router.get("/jobs", response_model=JobListResponse)
async def list_eligible_jobs(
    alumni: AlumniRecord = Depends(get_current_alumni),
    jobs_repo: JobRepository = Depends(get_job_repository),
    applications_repo: ApplicationRepository = Depends(get_application_repository),
    evaluator: EligibilityEvaluator = Depends(get_evaluator)
):
    """List open jobs the current alumni can apply to."""
    jobs = jobs_repo.list_jobs(JobStatus.open.value)

    # One snapshot of selections for every job in the listing
    selected = applications_repo.get_selected_applications(alumni.id)
    eligible = evaluator.eligible_jobs(alumni, jobs, selected)

    return JobListResponse(
        jobs=[JobResponse.from_record(job) for job in eligible],
        total=len(eligible)
    )


@router.post("/jobs/{job_id}/apply", response_model=MessageResponse, status_code=201)
async def apply_to_job(
    job_id: int,
    alumni: AlumniRecord = Depends(get_current_alumni),
    jobs_repo: JobRepository = Depends(get_job_repository),
    applications_repo: ApplicationRepository = Depends(get_application_repository),
    evaluator: EligibilityEvaluator = Depends(get_evaluator)
):
    """Apply to a job. Job must be open and the alumni eligible."""
    job = jobs_repo.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.job_status != JobStatus.open:
        raise HTTPException(status_code=400, detail="Job is not accepting applications")

    selected = applications_repo.get_selected_applications(alumni.id)
    result = evaluator.check(alumni, job, selected)
    if not result:
        raise HTTPException(status_code=400, detail=f"Not eligible for this job: {result.reason.value}")

    try:
        application_id = applications_repo.create_application(alumni.id, job_id)
    except IntegrityError:
        # UNIQUE (alumni_id, job_id): a concurrent apply got there first
        logger.info("Duplicate application by alumni %s to job %s", alumni.roll, job_id)
        raise HTTPException(status_code=400, detail="Not eligible for this job: already_applied")
    logger.info("Alumni %s applied to job %s (application %s)", alumni.roll, job_id, application_id)

    return MessageResponse(message="Application submitted successfully")


@router.get("/applied-jobs", response_model=List[AppliedJobResponse])
async def get_applied_jobs(
    alumni: AlumniRecord = Depends(get_current_alumni),
    reader: ApplicationHistoryReader = Depends(get_history_reader)
):
    """Get all applications of the current alumni, regardless of status."""
    return reader.get_applications(alumni.roll)
