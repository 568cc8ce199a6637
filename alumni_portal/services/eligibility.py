"""
Job Eligibility Service

Decides whether an alumni may apply to a job.

CHECK ORDER (first failing check wins):
1. Job approved by admin
2. X / XII / CPI at or above the job minimums
3. Job category matches the category the alumni registered for
4. Reservation flags (EWS / PWD / female only)
5. Alumni's course listed in job.eligible_courses (empty = all courses)
6. Application window (start_date / last_date)
7. Not already applied to this job
8. Internship: at most one internship selection
9. FTE: placement-tier rules (below)

PLACEMENT TIERS (FTE only), ranked X > A1 > A2 > none:
- X jobs are always open once checks 1-8 pass
- Selected in A1 or X (on or off campus) => out of FTE placement
- Selected in A2 => no second A2, and at most 3 new A1 applications
  created after the A2 selection date
- At most 2 offers in total
- At most one "none" selection, same shape as the internship rule

The caller must check job_status == "open" itself. Admins need an answer
for closed jobs too, so the evaluator never looks at it.

All rejections are ordinary results carrying an IneligibleReason.
Only malformed alumni records raise (InvalidInputError).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Union

from alumni_portal.schemas.schemas import (
    AlumniRecord, JobRecord, ApplicationRecord,
    JobCategory, Classification, PlacedStatus, ApprovalStatus
)

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Mandatory alumni fields missing. Signals a caller bug, never recovered."""


# ============================================================
# PLACEMENT TIER MODEL
# ============================================================

class Tier(IntEnum):
    """FTE classification as a totally ordered tier."""
    NONE = 0
    A2 = 1
    A1 = 2
    X = 3

    @classmethod
    def of(cls, classification: Classification) -> "Tier":
        return _TIER_BY_CLASSIFICATION[Classification(classification)]


_TIER_BY_CLASSIFICATION = {
    Classification.none: Tier.NONE,
    Classification.A2: Tier.A2,
    Classification.A1: Tier.A1,
    Classification.X: Tier.X,
}

_TIER_BY_PLACED_STATUS = {
    PlacedStatus.placed_a2: Tier.A2,
    PlacedStatus.placed_a1: Tier.A1,
    PlacedStatus.placed_x: Tier.X,
}


class SelectionSource(str, Enum):
    on_campus = "on_campus"      # a selected application on this portal
    off_campus = "off_campus"    # placed_status declared on the alumni record


@dataclass(frozen=True)
class SelectionRecord:
    tier: Tier
    source: SelectionSource
    selected_at: Optional[datetime]


def earliest_selection(records: Sequence[SelectionRecord], tier: Tier) -> Optional[datetime]:
    """Earliest known selection date at ``tier`` across both sources."""
    dates = [r.selected_at for r in records if r.tier == tier and r.selected_at is not None]
    return min(dates) if dates else None


class TierRule(str, Enum):
    BYPASS = "bypass"        # eligible outright, offer cap not applied
    OPEN = "open"            # subject to the offer cap only
    CLOSED = "closed"        # already placed in A1 or X
    A2_TAKEN = "a2_taken"    # one A2 selection per alumni
    A1_QUOTA = "a1_quota"    # limited A1 applications after A2, then offer cap


# (current tier, target tier) -> rule. current is None without any selection.
TIER_TRANSITIONS: Dict[Optional[Tier], Dict[Tier, TierRule]] = {
    None: {
        Tier.NONE: TierRule.OPEN, Tier.A2: TierRule.OPEN,
        Tier.A1: TierRule.OPEN, Tier.X: TierRule.BYPASS,
    },
    Tier.NONE: {
        Tier.NONE: TierRule.OPEN, Tier.A2: TierRule.OPEN,
        Tier.A1: TierRule.OPEN, Tier.X: TierRule.BYPASS,
    },
    Tier.A2: {
        Tier.NONE: TierRule.A1_QUOTA, Tier.A2: TierRule.A2_TAKEN,
        Tier.A1: TierRule.A1_QUOTA, Tier.X: TierRule.BYPASS,
    },
    Tier.A1: {
        Tier.NONE: TierRule.CLOSED, Tier.A2: TierRule.CLOSED,
        Tier.A1: TierRule.CLOSED, Tier.X: TierRule.BYPASS,
    },
    Tier.X: {
        Tier.NONE: TierRule.CLOSED, Tier.A2: TierRule.CLOSED,
        Tier.A1: TierRule.CLOSED, Tier.X: TierRule.BYPASS,
    },
}


# ============================================================
# RESULTS
# ============================================================

class IneligibleReason(str, Enum):
    job_not_approved = "job_not_approved"
    x_marks_insufficient = "x_marks_insufficient"
    xii_marks_insufficient = "xii_marks_insufficient"
    cpi_insufficient = "cpi_insufficient"
    category_mismatch = "category_mismatch"
    only_for_ews = "only_for_ews"
    only_for_pwd = "only_for_pwd"
    only_for_female = "only_for_female"
    course_not_eligible = "course_not_eligible"
    not_started = "not_started"
    deadline_passed = "deadline_passed"
    already_applied = "already_applied"
    internship_already_selected = "internship_already_selected"
    fte_none_already_selected = "fte_none_already_selected"
    placed_a1_or_x = "placed_a1_or_x"
    a2_already_selected = "a2_already_selected"
    a1_quota_exhausted = "a1_quota_exhausted"
    offer_cap_reached = "offer_cap_reached"


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: Optional[IneligibleReason] = None

    def __bool__(self) -> bool:
        return self.eligible


ELIGIBLE = EligibilityResult(eligible=True)

_TIER_REJECTIONS = {
    TierRule.CLOSED: IneligibleReason.placed_a1_or_x,
    TierRule.A2_TAKEN: IneligibleReason.a2_already_selected,
}


@dataclass(frozen=True)
class PlacementPolicy:
    max_offers: int = 2
    max_new_a1_after_a2: int = 3

    @classmethod
    def from_settings(cls, settings) -> "PlacementPolicy":
        return cls(
            max_offers=settings.max_offers,
            max_new_a1_after_a2=settings.max_new_a1_after_a2
        )


class ApplicationLookup(Protocol):
    """The two reads the evaluator needs, both scoped to one alumni."""

    def find_application_by(self, alumni_id: int, job_id: int) -> Optional[dict]:
        ...

    def count_A1_applications(self, alumni_id: int, created_after: Optional[datetime]) -> int:
        ...


# ============================================================
# HELPERS
# ============================================================

def parse_timestamp(value: Union[datetime, str, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime (naive = UTC).

    Raises ValueError for malformed strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def placement_history(alumni: AlumniRecord, selected_applications: Sequence[ApplicationRecord]) -> List[SelectionRecord]:
    """Merge on-campus selections and the off-campus placed_status into one list."""
    records = [
        SelectionRecord(
            tier=Tier.of(appl.job.classification),
            source=SelectionSource.on_campus,
            selected_at=parse_timestamp(appl.created_at)
        )
        for appl in selected_applications
    ]

    if alumni.placed_status is not None:
        try:
            placed_at = parse_timestamp(alumni.placed_status_updated)
        except ValueError:
            logger.warning(
                "Alumni %s has malformed placed_status_updated: %r",
                alumni.id, alumni.placed_status_updated
            )
            placed_at = None
        records.append(SelectionRecord(
            tier=_TIER_BY_PLACED_STATUS[alumni.placed_status],
            source=SelectionSource.off_campus,
            selected_at=placed_at
        ))

    return records


def _slot_taken(selected_applications: Sequence[ApplicationRecord], category: JobCategory,
                classification: Optional[Classification] = None) -> bool:
    for appl in selected_applications:
        if appl.job.category != category:
            continue
        if classification is None or appl.job.classification == classification:
            return True
    return False


# ============================================================
# EVALUATOR
# ============================================================

class EligibilityEvaluator:
    """
    Stateless eligibility decision function.

    Usage:
        evaluator = EligibilityEvaluator(ApplicationRepository())
        evaluator.evaluate(alumni, job, selected_applications)  # -> bool
        evaluator.check(alumni, job, selected_applications)     # -> EligibilityResult

    ``selected_applications`` must hold EVERY application for which the
    alumni was selected, any category, with the job attached.
    """

    def __init__(
        self,
        lookup: ApplicationLookup,
        policy: Optional[PlacementPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.lookup = lookup
        self.policy = policy or PlacementPolicy()
        self.clock = clock or _utc_now

    def evaluate(self, alumni: AlumniRecord, job: JobRecord,
                 selected_applications: Sequence[ApplicationRecord]) -> bool:
        return self.check(alumni, job, selected_applications).eligible

    def eligible_jobs(self, alumni: AlumniRecord, jobs: Sequence[JobRecord],
                      selected_applications: Sequence[ApplicationRecord]) -> List[JobRecord]:
        """Filter ``jobs`` against a single snapshot of selections, keeping order."""
        snapshot = tuple(selected_applications)
        return [job for job in jobs if self.check(alumni, job, snapshot)]

    def check(self, alumni: AlumniRecord, job: JobRecord,
              selected_applications: Sequence[ApplicationRecord]) -> EligibilityResult:
        self._validate(alumni)

        for step in (self._check_job, self._check_qualification, self._check_window):
            reason = step(alumni, job)
            if reason is not None:
                return self._reject(alumni, job, reason)

        if self.lookup.find_application_by(alumni.id, job.id) is not None:
            return self._reject(alumni, job, IneligibleReason.already_applied)

        if job.category == JobCategory.internship:
            if alumni.internship_status or _slot_taken(selected_applications, JobCategory.internship):
                return self._reject(alumni, job, IneligibleReason.internship_already_selected)

        if job.category == JobCategory.fte:
            reason = self._check_tiers(alumni, job, selected_applications)
            if reason is not None:
                return self._reject(alumni, job, reason)

        return ELIGIBLE

    # ------------------------------------------------------------

    @staticmethod
    def _validate(alumni: AlumniRecord) -> None:
        missing = [
            field for field in ("id", "X_marks", "XII_marks", "cpi", "registered_for")
            if getattr(alumni, field, None) is None
        ]
        if missing:
            raise InvalidInputError(
                f"Mandatory alumni fields missing or null: {', '.join(missing)} "
                f"(alumni={alumni.id}, roll={alumni.roll})"
            )

    @staticmethod
    def _check_job(alumni: AlumniRecord, job: JobRecord) -> Optional[IneligibleReason]:
        if job.approval_status != ApprovalStatus.approved:
            return IneligibleReason.job_not_approved
        return None

    @staticmethod
    def _check_qualification(alumni: AlumniRecord, job: JobRecord) -> Optional[IneligibleReason]:
        if job.min_X_marks > alumni.X_marks:
            return IneligibleReason.x_marks_insufficient
        if job.min_XII_marks > alumni.XII_marks:
            return IneligibleReason.xii_marks_insufficient
        if job.min_cpi > alumni.cpi:
            return IneligibleReason.cpi_insufficient
        if job.category != alumni.registered_for:
            return IneligibleReason.category_mismatch

        if job.only_for_ews and alumni.category != "ews":
            return IneligibleReason.only_for_ews
        if job.only_for_pwd and not alumni.pwd:
            return IneligibleReason.only_for_pwd
        if job.only_for_female and alumni.gender != "female":
            return IneligibleReason.only_for_female

        if job.eligible_courses:
            course_id = alumni.course.id if alumni.course else None
            if course_id not in job.eligible_courses:
                return IneligibleReason.course_not_eligible
        return None

    def _check_window(self, alumni: AlumniRecord, job: JobRecord) -> Optional[IneligibleReason]:
        now = self.clock()
        start_date = self._job_date(job, "start_date")
        if start_date is not None and start_date > now:
            return IneligibleReason.not_started

        last_date = self._job_date(job, "last_date")
        if last_date is not None and last_date < now:
            return IneligibleReason.deadline_passed
        return None

    @staticmethod
    def _job_date(job: JobRecord, field: str) -> Optional[datetime]:
        # Malformed dates pass the window check
        try:
            return parse_timestamp(getattr(job, field))
        except ValueError:
            logger.warning(
                "Job %s %s is not a valid date: %r",
                job.id, field, getattr(job, field)
            )
            return None

    def _check_tiers(self, alumni: AlumniRecord, job: JobRecord,
                     selected_applications: Sequence[ApplicationRecord]) -> Optional[IneligibleReason]:
        if job.classification == Classification.none:
            if alumni.internship_status or _slot_taken(selected_applications, JobCategory.fte, Classification.none):
                return IneligibleReason.fte_none_already_selected

        history = placement_history(alumni, selected_applications)
        current = max((r.tier for r in history), default=None)
        rule = TIER_TRANSITIONS[current][Tier.of(job.classification)]

        if rule == TierRule.BYPASS:
            return None
        if rule in _TIER_REJECTIONS:
            return _TIER_REJECTIONS[rule]

        if rule == TierRule.A1_QUOTA:
            a2_selected_at = earliest_selection(history, Tier.A2)
            new_a1 = 0
            if a2_selected_at is not None:
                new_a1 = self.lookup.count_A1_applications(alumni.id, a2_selected_at)
            if new_a1 >= self.policy.max_new_a1_after_a2:
                return IneligibleReason.a1_quota_exhausted

        if len(selected_applications) >= self.policy.max_offers:
            return IneligibleReason.offer_cap_reached
        return None

    @staticmethod
    def _reject(alumni: AlumniRecord, job: JobRecord, reason: IneligibleReason) -> EligibilityResult:
        logger.debug("Ineligible reason: %s (alumni=%s, job=%s)", reason.value, alumni.id, job.id)
        return EligibilityResult(eligible=False, reason=reason)
