import logging

import pytest

from alumni_portal.services.eligibility import (
    EligibilityEvaluator, IneligibleReason, InvalidInputError, PlacementPolicy,
    Tier, TierRule, TIER_TRANSITIONS, SelectionSource, placement_history
)
from conftest import NOW, FakeApplications, days, make_alumni, make_job, selected


# ------------------------------------------------------------
# Input validation
# ------------------------------------------------------------

@pytest.mark.parametrize("field", ["id", "X_marks", "XII_marks", "cpi", "registered_for"])
def test_missing_mandatory_field_raises(evaluator, field):
    alumni = make_alumni(**{field: None})
    with pytest.raises(InvalidInputError, match=field):
        evaluator.evaluate(alumni, make_job(), [])


def test_validation_happens_before_job_checks(evaluator):
    # Even an unapproved job does not hide a malformed alumni record
    with pytest.raises(InvalidInputError):
        evaluator.evaluate(make_alumni(cpi=None), make_job(approval_status="pending"), [])


# ------------------------------------------------------------
# Basic checks
# ------------------------------------------------------------

@pytest.mark.parametrize("status", ["pending", "rejected"])
def test_unapproved_job_is_never_eligible(evaluator, status):
    result = evaluator.check(make_alumni(), make_job(approval_status=status), [])
    assert result.eligible is False
    assert result.reason == IneligibleReason.job_not_approved


def test_job_status_is_not_checked(evaluator):
    # Admins rely on getting a verdict for closed jobs
    assert evaluator.evaluate(make_alumni(), make_job(job_status="results_declared"), [])


def test_marks_equal_to_minimum_pass(evaluator):
    alumni = make_alumni(X_marks=75, XII_marks=70, cpi=7.5)
    job = make_job(min_X_marks=75, min_XII_marks=70, min_cpi=7.5)
    assert evaluator.evaluate(alumni, job, [])


def test_xii_marks_below_minimum(evaluator):
    alumni = make_alumni(X_marks=80, XII_marks=70)
    job = make_job(min_X_marks=75, min_XII_marks=75)
    result = evaluator.check(alumni, job, [])
    assert not result
    assert result.reason == IneligibleReason.xii_marks_insufficient


@pytest.mark.parametrize("overrides, reason", [
    ({"X_marks": 59}, IneligibleReason.x_marks_insufficient),
    ({"cpi": 5.99}, IneligibleReason.cpi_insufficient),
    ({"registered_for": "Internship"}, IneligibleReason.category_mismatch),
])
def test_qualification_failures(evaluator, overrides, reason):
    assert evaluator.check(make_alumni(**overrides), make_job(), []).reason == reason


def test_first_failing_check_wins(evaluator):
    alumni = make_alumni(X_marks=10, cpi=1.0, registered_for="Internship")
    assert evaluator.check(alumni, make_job(), []).reason == IneligibleReason.x_marks_insufficient


@pytest.mark.parametrize("flag, alumni_overrides, reason", [
    ("only_for_ews", {"category": "normal"}, IneligibleReason.only_for_ews),
    ("only_for_pwd", {"pwd": False}, IneligibleReason.only_for_pwd),
    ("only_for_female", {"gender": "male"}, IneligibleReason.only_for_female),
])
def test_reservation_flags_reject(evaluator, flag, alumni_overrides, reason):
    result = evaluator.check(make_alumni(**alumni_overrides), make_job(**{flag: True}), [])
    assert result.reason == reason


@pytest.mark.parametrize("flag, alumni_overrides", [
    ("only_for_ews", {"category": "ews"}),
    ("only_for_pwd", {"pwd": True}),
    ("only_for_female", {"gender": "female"}),
])
def test_reservation_flags_admit(evaluator, flag, alumni_overrides):
    assert evaluator.evaluate(make_alumni(**alumni_overrides), make_job(**{flag: True}), [])


@pytest.mark.parametrize("gender", ["Female", "FEMALE", None])
def test_female_only_matches_exact_value(evaluator, gender):
    result = evaluator.check(make_alumni(gender=gender), make_job(only_for_female=True), [])
    assert result.reason == IneligibleReason.only_for_female


# ------------------------------------------------------------
# Courses
# ------------------------------------------------------------

@pytest.mark.parametrize("courses", [None, "", "   "])
def test_empty_course_list_admits_everyone(evaluator, courses):
    assert evaluator.evaluate(make_alumni(course=None), make_job(eligible_courses=courses), [])


def test_listed_course_is_admitted(evaluator):
    assert evaluator.evaluate(make_alumni(), make_job(eligible_courses=" 1, 2 ,5"), [])


def test_unlisted_course_is_rejected(evaluator):
    result = evaluator.check(make_alumni(), make_job(eligible_courses="1,3"), [])
    assert result.reason == IneligibleReason.course_not_eligible


def test_alumni_without_course_rejected_by_course_list(evaluator):
    result = evaluator.check(make_alumni(course=None), make_job(eligible_courses="2"), [])
    assert result.reason == IneligibleReason.course_not_eligible


# ------------------------------------------------------------
# Application window
# ------------------------------------------------------------

def test_job_not_started(evaluator):
    result = evaluator.check(make_alumni(), make_job(start_date=days(1)), [])
    assert result.reason == IneligibleReason.not_started


def test_job_deadline_passed(evaluator):
    result = evaluator.check(make_alumni(), make_job(last_date="2024-05-31T12:00:00Z"), [])
    assert result.reason == IneligibleReason.deadline_passed


def test_job_inside_window(evaluator):
    job = make_job(start_date="2024-05-01T00:00:00.000Z", last_date=days(3))
    assert evaluator.evaluate(make_alumni(), job, [])


def test_naive_dates_are_read_as_utc(evaluator):
    job = make_job(last_date="2024-06-01T11:59:00")
    assert evaluator.check(make_alumni(), job, []).reason == IneligibleReason.deadline_passed


@pytest.mark.parametrize("dates", [
    {"start_date": "next tuesday"},
    {"last_date": "31/31/2024"},
])
def test_malformed_dates_fail_open_with_warning(evaluator, caplog, dates):
    with caplog.at_level(logging.WARNING, logger="alumni_portal.services.eligibility"):
        assert evaluator.evaluate(make_alumni(), make_job(**dates), [])
    field, value = next(iter(dates.items()))
    assert f"{field} is not a valid date: '{value}'" in caplog.text
    other = "last_date" if field == "start_date" else "start_date"
    assert other not in caplog.text


def test_malformed_start_date_still_checks_last_date(evaluator):
    job = make_job(start_date="garbage", last_date=days(-1))
    assert evaluator.check(make_alumni(), job, []).reason == IneligibleReason.deadline_passed


# ------------------------------------------------------------
# Duplicate application
# ------------------------------------------------------------

def test_already_applied():
    job = make_job()
    evaluator = EligibilityEvaluator(FakeApplications(applied_job_ids=[job.id]), clock=lambda: NOW)
    assert evaluator.check(make_alumni(), job, []).reason == IneligibleReason.already_applied


# ------------------------------------------------------------
# Internship exclusivity
# ------------------------------------------------------------

def internship(**overrides):
    return make_job(category="Internship", classification="none", **overrides)


@pytest.mark.parametrize("job_overrides", [
    {},
    {"min_cpi": 0, "eligible_courses": "2"},
    {"only_for_female": True, "last_date": days(10)},
])
def test_one_internship_selection_blocks_all_other_internships(evaluator, job_overrides):
    alumni = make_alumni(registered_for="Internship")
    history = [selected(internship())]
    result = evaluator.check(alumni, internship(**job_overrides), history)
    assert result.reason == IneligibleReason.internship_already_selected


def test_off_campus_internship_blocks_internships(evaluator):
    alumni = make_alumni(registered_for="Internship", internship_status=True)
    assert evaluator.check(alumni, internship(), []).reason == IneligibleReason.internship_already_selected


def test_fte_selection_does_not_block_internship(evaluator):
    alumni = make_alumni(registered_for="Internship")
    assert evaluator.evaluate(alumni, internship(), [selected(make_job(classification="A1"))])


# ------------------------------------------------------------
# FTE tiers
# ------------------------------------------------------------

def test_fresh_alumni_eligible_for_a1(evaluator):
    assert evaluator.evaluate(make_alumni(), make_job(classification="A1"), [])


def test_one_fte_none_selection(evaluator):
    history = [selected(make_job(classification="none"))]
    result = evaluator.check(make_alumni(), make_job(classification="none"), history)
    assert result.reason == IneligibleReason.fte_none_already_selected

    # Higher tiers stay open
    assert evaluator.evaluate(make_alumni(), make_job(classification="A1"), history)


def test_internship_status_blocks_fte_none(evaluator):
    result = evaluator.check(make_alumni(internship_status=True), make_job(classification="none"), [])
    assert result.reason == IneligibleReason.fte_none_already_selected


@pytest.mark.parametrize("target", ["none", "A2", "A1"])
@pytest.mark.parametrize("placed", [
    {"placed_status": "placed_a1"},
    {"placed_status": "placed_x"},
    {"history": "A1"},
    {"history": "X"},
])
def test_placed_in_a1_or_x_closes_fte(evaluator, lookup, target, placed):
    history = []
    alumni = make_alumni()
    if "placed_status" in placed:
        alumni = make_alumni(placed_status=placed["placed_status"], placed_status_updated=days(-5))
    else:
        history = [selected(make_job(classification=placed["history"]))]

    result = evaluator.check(alumni, make_job(classification=target), history)
    assert result.reason == IneligibleReason.placed_a1_or_x
    assert lookup.count_calls == []


def test_x_job_bypasses_tier_rules(evaluator, lookup):
    history = [selected(make_job(classification="A1"))]
    assert evaluator.evaluate(make_alumni(), make_job(classification="X"), history)


def test_x_job_bypasses_offer_cap(evaluator, lookup):
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated=days(-40))
    history = [
        selected(make_job(classification="A2"), days(-20)),
        selected(make_job(classification="none"), days(-10)),
    ]
    assert evaluator.evaluate(alumni, make_job(classification="X"), history)
    assert lookup.count_calls == []


def test_x_job_still_subject_to_basic_checks(evaluator):
    result = evaluator.check(make_alumni(cpi=5), make_job(classification="X", min_cpi=7), [])
    assert result.reason == IneligibleReason.cpi_insufficient


def test_second_a2_rejected(evaluator):
    history = [selected(make_job(classification="A2"))]
    result = evaluator.check(make_alumni(), make_job(classification="A2"), history)
    assert result.reason == IneligibleReason.a2_already_selected


def test_off_campus_a2_blocks_a2(evaluator):
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated="2024-04-01T00:00:00Z")
    result = evaluator.check(alumni, make_job(classification="A2"), [])
    assert result.reason == IneligibleReason.a2_already_selected


@pytest.mark.parametrize("prior_a1, eligible", [(0, True), (2, True), (3, False), (5, False)])
def test_a1_applications_after_a2_are_limited(prior_a1, eligible):
    a2_date = days(-30)
    lookup = FakeApplications(a1_application_dates=[days(-29 + i) for i in range(prior_a1)])
    evaluator = EligibilityEvaluator(lookup, clock=lambda: NOW)
    history = [selected(make_job(classification="A2"), a2_date)]

    result = evaluator.check(make_alumni(), make_job(classification="A1"), history)
    assert result.eligible is eligible
    if not eligible:
        assert result.reason == IneligibleReason.a1_quota_exhausted
    assert lookup.count_calls == [a2_date]


def test_a1_applications_at_or_before_a2_date_do_not_count():
    a2_date = days(-30)
    lookup = FakeApplications(a1_application_dates=[days(-60), days(-31), a2_date, days(-1), days(-2)])
    evaluator = EligibilityEvaluator(lookup, clock=lambda: NOW)
    history = [selected(make_job(classification="A2"), a2_date)]

    assert evaluator.evaluate(make_alumni(), make_job(classification="A1"), history)


def test_a1_quota_also_applies_to_fte_none_jobs():
    lookup = FakeApplications(a1_application_dates=[days(-3), days(-2), days(-1)])
    evaluator = EligibilityEvaluator(lookup, clock=lambda: NOW)
    history = [selected(make_job(classification="A2"), days(-10))]

    result = evaluator.check(make_alumni(), make_job(classification="none"), history)
    assert result.reason == IneligibleReason.a1_quota_exhausted


def test_earlier_off_campus_a2_date_wins():
    lookup = FakeApplications(a1_application_dates=[days(-15), days(-14), days(-13)])
    evaluator = EligibilityEvaluator(lookup, clock=lambda: NOW)
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated=days(-20))
    history = [selected(make_job(classification="A2"), days(-10))]

    result = evaluator.check(alumni, make_job(classification="A1"), history)
    assert result.reason == IneligibleReason.a1_quota_exhausted
    assert lookup.count_calls == [days(-20)]


def test_earlier_on_campus_a2_date_wins():
    lookup = FakeApplications()
    evaluator = EligibilityEvaluator(lookup, clock=lambda: NOW)
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated="2024-05-22T12:00:00+00:00")
    history = [selected(make_job(classification="A2"), days(-25))]

    evaluator.evaluate(alumni, make_job(classification="A1"), history)
    assert lookup.count_calls == [days(-25)]


def test_off_campus_a2_without_readable_date_counts_nothing(evaluator, lookup):
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated="sometime in May")
    assert evaluator.evaluate(alumni, make_job(classification="A1"), [])
    assert lookup.count_calls == []


def test_a1_count_not_read_without_a2(evaluator, lookup):
    evaluator.evaluate(make_alumni(), make_job(classification="A1"), [selected(make_job(classification="none"))])
    evaluator.evaluate(make_alumni(registered_for="Internship"), internship(), [])
    assert lookup.count_calls == []


# ------------------------------------------------------------
# Offer cap
# ------------------------------------------------------------

def test_two_offers_block_every_further_fte_job(evaluator):
    history = [
        selected(internship()),
        selected(make_job(classification="none")),
    ]
    for classification in ("A1", "A2"):
        result = evaluator.check(make_alumni(), make_job(classification=classification), history)
        assert result.reason == IneligibleReason.offer_cap_reached


def test_offer_cap_applies_after_a1_quota(evaluator):
    history = [
        selected(make_job(classification="A2"), days(-20)),
        selected(make_job(classification="none"), days(-10)),
    ]
    result = evaluator.check(make_alumni(), make_job(classification="A1"), history)
    assert result.reason == IneligibleReason.offer_cap_reached


def test_offer_cap_comes_from_policy(lookup):
    evaluator = EligibilityEvaluator(lookup, policy=PlacementPolicy(max_offers=3), clock=lambda: NOW)
    history = [
        selected(internship()),
        selected(make_job(classification="none")),
    ]
    assert evaluator.evaluate(make_alumni(), make_job(classification="A1"), history)


def test_one_offer_leaves_room(evaluator):
    history = [selected(make_job(classification="none"))]
    assert evaluator.evaluate(make_alumni(), make_job(classification="A2"), history)


# ------------------------------------------------------------
# Tier model
# ------------------------------------------------------------

def test_tiers_are_totally_ordered():
    assert Tier.X > Tier.A1 > Tier.A2 > Tier.NONE


def test_transition_table_is_complete():
    for current in (None, *Tier):
        assert set(TIER_TRANSITIONS[current]) == set(Tier)
        assert TIER_TRANSITIONS[current][Tier.X] == TierRule.BYPASS


def test_placement_history_tags_sources():
    alumni = make_alumni(placed_status="placed_a2", placed_status_updated=days(-3))
    records = placement_history(alumni, [selected(make_job(classification="none"), days(-9))])

    assert [(r.tier, r.source) for r in records] == [
        (Tier.NONE, SelectionSource.on_campus),
        (Tier.A2, SelectionSource.off_campus),
    ]
    assert records[1].selected_at == days(-3)


# ------------------------------------------------------------
# Determinism / bulk
# ------------------------------------------------------------

def test_same_inputs_same_verdict(evaluator):
    alumni = make_alumni()
    job = make_job(classification="A2")
    history = [selected(make_job(classification="none"))]
    first = evaluator.check(alumni, job, history)
    assert evaluator.check(alumni, job, history) == first


def test_eligible_jobs_filters_in_order(evaluator):
    open_a1 = make_job(classification="A1")
    closed = make_job(approval_status="pending")
    x_job = make_job(classification="X")
    not_started = make_job(start_date=days(2))

    jobs = [open_a1, closed, x_job, not_started]
    assert evaluator.eligible_jobs(make_alumni(), jobs, []) == [open_a1, x_job]


def test_rejections_are_logged_at_debug(evaluator, caplog):
    with caplog.at_level(logging.DEBUG, logger="alumni_portal.services.eligibility"):
        evaluator.evaluate(make_alumni(), make_job(approval_status="pending"), [])
    assert "Ineligible reason: job_not_approved" in caplog.text
