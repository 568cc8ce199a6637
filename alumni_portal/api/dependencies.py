"""
FastAPI dependency providers for repositories and services.

Routes take these through Depends() so tests can swap them with
app.dependency_overrides.
"""

from alumni_portal.core.config import get_settings
from alumni_portal.services.eligibility import EligibilityEvaluator, PlacementPolicy
from alumni_portal.services.history import ApplicationHistoryReader
from alumni_portal.services.repository import (
    AlumniRepository, ApplicationRepository, JobRepository
)


def get_alumni_repository() -> AlumniRepository:
    return AlumniRepository()


def get_application_repository() -> ApplicationRepository:
    return ApplicationRepository()


def get_job_repository() -> JobRepository:
    return JobRepository()


def get_evaluator() -> EligibilityEvaluator:
    return EligibilityEvaluator(
        ApplicationRepository(),
        policy=PlacementPolicy.from_settings(get_settings())
    )


def get_history_reader() -> ApplicationHistoryReader:
    return ApplicationHistoryReader(AlumniRepository(), ApplicationRepository())
