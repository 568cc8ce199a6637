"""
Repositories - PostgreSQL reads/writes for alumni, jobs and applications.

Each repository returns fully populated records (course, job, company
joined in SQL) so the eligibility core never has to fetch anything itself.

Tables used:
- alumni (alumni_id, user_id, roll, name, course_id, registered_for, ...)
- courses (course_id, course_name)
- companies (company_id, company_name)
- jobs (job_id, company_id, job_title, approval_status, job_status, ...)
- applications (application_id, alumni_id, job_id, status, created_at)
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from alumni_portal.db.postgres import execute_raw_sql, get_db_session
from alumni_portal.schemas.schemas import (
    AlumniRecord, JobRecord, ApplicationRecord, AppliedJobResponse, Course
)
from sqlalchemy import text

logger = logging.getLogger(__name__)


class MalformedJobError(ValueError):
    """A jobs row that cannot be turned into a JobRecord (e.g. bad eligible_courses)."""

    def __init__(self, job_id, errors: str):
        super().__init__(f"Job {job_id} has malformed data: {errors}")
        self.job_id = job_id


_JOB_COLUMNS = """
    j.job_id, j.job_title, c.company_name, j.approval_status, j.job_status,
    j.min_X_marks, j.min_XII_marks, j.min_cpi, j.category, j.classification,
    j.eligible_courses, j.only_for_ews, j.only_for_pwd, j.only_for_female,
    j.start_date, j.last_date
"""

_ALUMNI_COLUMNS = """
    a.alumni_id, a.roll, a.name, a.X_marks, a.XII_marks, a.cpi, a.registered_for,
    a.category, a.pwd, a.gender, a.course_id, co.course_name,
    a.placed_status, a.placed_status_updated, a.internship_status, a.approved
"""


def job_from_row(row: dict) -> JobRecord:
    # Postgres folds unquoted column names to lower case
    col = row.get

    try:
        return _build_job(col)
    except ValidationError as e:
        raise MalformedJobError(col("job_id"), str(e)) from e


def _build_job(col) -> JobRecord:
    return JobRecord(
        id=col("job_id"),
        job_title=col("job_title"),
        company_name=col("company_name"),
        approval_status=col("approval_status"),
        job_status=col("job_status"),
        min_X_marks=col("min_x_marks") or 0,
        min_XII_marks=col("min_xii_marks") or 0,
        min_cpi=col("min_cpi") or 0,
        category=col("category"),
        classification=col("classification"),
        eligible_courses=col("eligible_courses"),
        only_for_ews=bool(col("only_for_ews")),
        only_for_pwd=bool(col("only_for_pwd")),
        only_for_female=bool(col("only_for_female")),
        start_date=col("start_date"),
        last_date=col("last_date"),
    )


def alumni_from_row(row: dict) -> AlumniRecord:
    course = None
    if row.get("course_id") is not None:
        course = Course(id=row["course_id"], name=row.get("course_name"))

    return AlumniRecord(
        id=row["alumni_id"], roll=row["roll"], name=row.get("name"),
        X_marks=row.get("x_marks"), XII_marks=row.get("xii_marks"), cpi=row.get("cpi"),
        registered_for=row.get("registered_for"),
        category=row.get("category") or "normal",
        pwd=bool(row.get("pwd")),
        gender=(row.get("gender") or "").strip().lower() or None,
        course=course,
        placed_status=row.get("placed_status"),
        placed_status_updated=row.get("placed_status_updated"),
        internship_status=bool(row.get("internship_status")),
        approved=row.get("approved") or "pending",
    )


class ApplicationRepository:
    """Application reads/writes. Also serves as the evaluator's lookup."""

    def find_application_by(self, alumni_id: int, job_id: int) -> Optional[dict]:
        results = execute_raw_sql("""
            SELECT application_id, alumni_id, job_id, status, created_at
            FROM applications WHERE alumni_id = :aid AND job_id = :jid
            LIMIT 1
        """, {"aid": alumni_id, "jid": job_id})
        return results[0] if results else None

    def count_A1_applications(self, alumni_id: int, created_after: Optional[datetime]) -> int:
        """A1 applications created strictly after ``created_after``."""
        if created_after is None:
            return 0

        with get_db_session() as db:
            result = db.execute(
                text("""
                    SELECT COUNT(*) FROM applications ap
                    JOIN jobs j ON ap.job_id = j.job_id
                    WHERE ap.alumni_id = :aid AND j.classification = 'A1'
                      AND ap.created_at > :after
                """),
                {"aid": alumni_id, "after": created_after}
            )
            return result.scalar() or 0

    def get_selected_applications(self, alumni_id: int) -> List[ApplicationRecord]:
        """Every selected application of this alumni, any category."""
        results = execute_raw_sql(f"""
            SELECT ap.application_id, ap.alumni_id, ap.status, ap.created_at, {_JOB_COLUMNS}
            FROM applications ap
            JOIN jobs j ON ap.job_id = j.job_id
            LEFT JOIN companies c ON j.company_id = c.company_id
            WHERE ap.alumni_id = :aid AND ap.status = 'selected'
            ORDER BY ap.created_at
        """, {"aid": alumni_id})

        return [
            ApplicationRecord(
                id=r["application_id"], alumni_id=r["alumni_id"], status=r["status"],
                created_at=r["created_at"], job=job_from_row(r)
            ) for r in results
        ]

    def create_application(self, alumni_id: int, job_id: int) -> int:
        with get_db_session() as db:
            result = db.execute(
                text("""
                    INSERT INTO applications (alumni_id, job_id, status)
                    VALUES (:aid, :jid, 'applied')
                    RETURNING application_id
                """),
                {"aid": alumni_id, "jid": job_id}
            )
            return result.fetchone()[0]

    def list_applications(self, alumni_id: int) -> List[AppliedJobResponse]:
        """All applications of this alumni, regardless of status, with job and company."""
        results = execute_raw_sql("""
            SELECT ap.application_id, ap.alumni_id, al.roll, ap.status, ap.created_at,
                   j.job_id, j.job_title, j.category, j.classification, j.job_status, j.jaf,
                   c.company_id, c.company_name
            FROM applications ap
            JOIN alumni al ON ap.alumni_id = al.alumni_id
            JOIN jobs j ON ap.job_id = j.job_id
            LEFT JOIN companies c ON j.company_id = c.company_id
            WHERE ap.alumni_id = :aid ORDER BY ap.created_at DESC
        """, {"aid": alumni_id})

        return [
            AppliedJobResponse(
                application_id=r["application_id"], alumni_id=r["alumni_id"], roll=r["roll"],
                status=r["status"], created_at=r["created_at"],
                job_id=r["job_id"], job_title=r["job_title"],
                company_id=r["company_id"], company_name=r["company_name"],
                category=r["category"], classification=r["classification"] or "none",
                job_status=r["job_status"], jaf=r["jaf"]
            ) for r in results
        ]


class AlumniRepository:

    def find_by_roll(self, roll: str) -> Optional[dict]:
        """Only id and approval state."""
        results = execute_raw_sql(
            "SELECT alumni_id, approved FROM alumni WHERE roll = :roll",
            {"roll": roll}
        )
        return results[0] if results else None

    def get_alumni(self, alumni_id: int) -> Optional[AlumniRecord]:
        results = execute_raw_sql(f"""
            SELECT {_ALUMNI_COLUMNS}
            FROM alumni a LEFT JOIN courses co ON a.course_id = co.course_id
            WHERE a.alumni_id = :id
        """, {"id": alumni_id})
        return alumni_from_row(results[0]) if results else None

    def get_alumni_by_user(self, user_id: int) -> Optional[AlumniRecord]:
        results = execute_raw_sql(f"""
            SELECT {_ALUMNI_COLUMNS}
            FROM alumni a LEFT JOIN courses co ON a.course_id = co.course_id
            WHERE a.user_id = :uid
        """, {"uid": user_id})
        return alumni_from_row(results[0]) if results else None


class JobRepository:

    def get_job(self, job_id: int) -> Optional[JobRecord]:
        results = execute_raw_sql(f"""
            SELECT {_JOB_COLUMNS}
            FROM jobs j LEFT JOIN companies c ON j.company_id = c.company_id
            WHERE j.job_id = :jid
        """, {"jid": job_id})
        return job_from_row(results[0]) if results else None

    def list_jobs(self, job_status: str = "open") -> List[JobRecord]:
        results = execute_raw_sql(f"""
            SELECT {_JOB_COLUMNS}
            FROM jobs j LEFT JOIN companies c ON j.company_id = c.company_id
            WHERE j.job_status = :status
            ORDER BY j.job_id DESC
        """, {"status": job_status})
        jobs = []
        for r in results:
            # One bad row must not take the whole listing down
            try:
                jobs.append(job_from_row(r))
            except MalformedJobError as e:
                logger.warning("Skipping job %s in listing: %s", e.job_id, e)
        return jobs
