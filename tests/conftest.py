from datetime import datetime, timedelta, timezone

import pytest

from alumni_portal.schemas.schemas import (
    AlumniRecord, JobRecord, ApplicationRecord, Course
)
from alumni_portal.services.eligibility import EligibilityEvaluator

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def days(n: int) -> datetime:
    """NOW shifted by ``n`` days."""
    return NOW + timedelta(days=n)


class FakeApplications:
    """In-memory stand-in for the two reads the evaluator performs."""

    def __init__(self, applied_job_ids=(), a1_application_dates=()):
        self.applied_job_ids = set(applied_job_ids)
        self.a1_application_dates = list(a1_application_dates)
        self.count_calls = []

    def find_application_by(self, alumni_id, job_id):
        if job_id in self.applied_job_ids:
            return {"application_id": 1, "alumni_id": alumni_id, "job_id": job_id}
        return None

    def count_A1_applications(self, alumni_id, created_after):
        self.count_calls.append(created_after)
        if created_after is None:
            return 0
        return sum(1 for created in self.a1_application_dates if created > created_after)


def make_alumni(**overrides) -> AlumniRecord:
    data = dict(
        id=7, roll="190430", name="Asha", X_marks=90, XII_marks=88, cpi=8.4,
        registered_for="FTE", category="normal", pwd=False, gender="female",
        course=Course(id=2, name="B.Tech CSE"), approved="approved",
    )
    data.update(overrides)
    return AlumniRecord(**data)


_job_ids = iter(range(100, 10_000))


def make_job(**overrides) -> JobRecord:
    data = dict(
        id=next(_job_ids), company_name="Acme", job_title="SDE",
        approval_status="approved", job_status="open",
        min_X_marks=60, min_XII_marks=60, min_cpi=6.0,
        category="FTE", classification="A1",
    )
    data.update(overrides)
    return JobRecord(**data)


_application_ids = iter(range(1, 10_000))


def selected(job: JobRecord, created_at: datetime = None) -> ApplicationRecord:
    return ApplicationRecord(
        id=next(_application_ids), alumni_id=7, status="selected",
        created_at=created_at or days(-30), job=job
    )


@pytest.fixture
def lookup():
    return FakeApplications()


@pytest.fixture
def evaluator(lookup):
    return EligibilityEvaluator(lookup, clock=lambda: NOW)
