from __future__ import annotations

import pytest
from django.contrib.auth.models import User
from django.db.models import Sum

from courses.errors import (
    DuplicateSubmission,
    EvaluationsClosed,
    InvalidInput,
    NotEnrolled,
    NotFound,
    RatingOutOfRange,
)
from courses.models_evaluation import Evaluation, RatingAggregate


@pytest.fixture
def course_id(ledger, administrator, student):
    cid = ledger.create_course(administrator, "Operating Systems")
    ledger.enrol(administrator, cid, student)
    return cid


def _assert_untouched(ledger, course_id):
    assert not Evaluation.objects.filter(course_id=course_id).exists()
    assert ledger.evaluation_count(course_id) == 0
    assert ledger.average_rating(course_id) == 0


@pytest.mark.django_db
def test_submit_then_duplicate_keeps_aggregate(ledger, administrator, student):
    course_id = ledger.create_course(administrator, "Intro")
    assert course_id == 1
    course = ledger.get_course(course_id)
    assert course.accepting_evaluations is True
    assert course.instructor_id == administrator.pk

    ledger.enrol(administrator, course_id, student)
    evaluation = ledger.submit_evaluation(student, course_id, 5, "Great")
    assert evaluation.rating == 5
    assert ledger.evaluation_count(1) == 1
    assert ledger.average_rating(1) == 5

    with pytest.raises(DuplicateSubmission):
        ledger.submit_evaluation(student, course_id, 1, "Changed my mind")
    assert ledger.evaluation_count(1) == 1
    assert ledger.average_rating(1) == 5
    assert ledger.get_evaluation(course_id, student).commentary == "Great"


@pytest.mark.django_db
def test_closed_course_rejects_submission(ledger, administrator, course_id, student):
    ledger.set_acceptance_status(administrator, course_id, False)
    with pytest.raises(EvaluationsClosed):
        ledger.submit_evaluation(student, course_id, 4, "Fine")
    _assert_untouched(ledger, course_id)


@pytest.mark.django_db
@pytest.mark.parametrize("rating", [0, 6, -1, True, "5", 4.0, None])
def test_rating_out_of_range_touches_nothing(ledger, course_id, student, rating):
    with pytest.raises(RatingOutOfRange):
        ledger.submit_evaluation(student, course_id, rating, "Fine")
    _assert_untouched(ledger, course_id)


@pytest.mark.django_db
def test_missing_course(ledger, student):
    with pytest.raises(NotFound):
        ledger.submit_evaluation(student, 12, 3, "Where?")


@pytest.mark.django_db
def test_not_enrolled(ledger, administrator, course_id):
    outsider = User.objects.create_user(username="outsider", password="pw")
    with pytest.raises(NotEnrolled):
        ledger.submit_evaluation(outsider, course_id, 3, "Sneaky")
    _assert_untouched(ledger, course_id)


@pytest.mark.django_db
@pytest.mark.parametrize("commentary", ["", "c" * 501, None])
def test_commentary_length_is_validated(ledger, course_id, student, commentary):
    with pytest.raises(InvalidInput):
        ledger.submit_evaluation(student, course_id, 3, commentary)
    _assert_untouched(ledger, course_id)


@pytest.mark.django_db
def test_commentary_at_maximum_length(ledger, course_id, student):
    ledger.submit_evaluation(student, course_id, 3, "c" * 500)
    assert ledger.evaluation_count(course_id) == 1


@pytest.mark.django_db
def test_closed_wins_over_not_enrolled(ledger, administrator, course_id):
    outsider = User.objects.create_user(username="late", password="pw")
    ledger.set_acceptance_status(administrator, course_id, False)
    with pytest.raises(EvaluationsClosed):
        ledger.submit_evaluation(outsider, course_id, 9, "")


@pytest.mark.django_db
def test_not_enrolled_wins_over_bad_rating(ledger, course_id):
    outsider = User.objects.create_user(username="late", password="pw")
    with pytest.raises(NotEnrolled):
        ledger.submit_evaluation(outsider, course_id, 9, "")


@pytest.mark.django_db
def test_bad_rating_wins_over_duplicate(ledger, course_id, student):
    ledger.submit_evaluation(student, course_id, 4, "First")
    with pytest.raises(RatingOutOfRange):
        ledger.submit_evaluation(student, course_id, 6, "Second")


@pytest.mark.django_db
def test_duplicate_wins_over_bad_commentary(ledger, course_id, student):
    ledger.submit_evaluation(student, course_id, 4, "First")
    with pytest.raises(DuplicateSubmission):
        ledger.submit_evaluation(student, course_id, 4, "")


@pytest.mark.django_db
def test_aggregate_matches_evaluations(ledger, administrator, course_id, student):
    ratings = {student: 5}
    for index, rating in enumerate([4, 4, 1]):
        other = User.objects.create_user(username=f"peer{index}", password="pw")
        ledger.enrol(administrator, course_id, other)
        ratings[other] = rating
    for who, rating in ratings.items():
        ledger.submit_evaluation(who, course_id, rating, "ok")

    stored = Evaluation.objects.filter(course_id=course_id)
    total = stored.aggregate(total=Sum("rating"))["total"]
    aggregate = RatingAggregate.objects.get(course_id=course_id)
    assert aggregate.evaluation_count == stored.count() == 4
    assert aggregate.rating_sum == total == 14
    # Floor division, not rounding: 14 / 4 == 3.5
    assert ledger.average_rating(course_id) == 3
    assert ledger.evaluation_count(course_id) == 4


@pytest.mark.django_db
def test_aggregates_are_per_course(ledger, administrator, course_id, student):
    second = ledger.create_course(administrator, "Second")
    ledger.enrol(administrator, second, student)
    ledger.submit_evaluation(student, course_id, 2, "meh")
    ledger.submit_evaluation(student, second, 5, "great")
    assert ledger.average_rating(course_id) == 2
    assert ledger.average_rating(second) == 5


@pytest.mark.django_db
def test_aggregate_created_lazily_when_missing(ledger, course_id, student):
    RatingAggregate.objects.filter(course_id=course_id).delete()
    assert ledger.evaluation_count(course_id) == 0
    assert ledger.average_rating(course_id) == 0

    ledger.submit_evaluation(student, course_id, 3, "ok")
    aggregate = RatingAggregate.objects.get(course_id=course_id)
    assert (aggregate.rating_sum, aggregate.evaluation_count) == (3, 1)


@pytest.mark.django_db
def test_failed_aggregate_write_rolls_back_evaluation(ledger, course_id, student, monkeypatch):
    RatingAggregate.objects.filter(course_id=course_id).delete()

    def boom(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(RatingAggregate.objects, "create", boom)
    with pytest.raises(RuntimeError):
        ledger.submit_evaluation(student, course_id, 5, "lost")
    assert ledger.get_evaluation(course_id, student) is None


@pytest.mark.django_db
def test_closing_later_keeps_past_evaluations(ledger, administrator, course_id, student):
    ledger.submit_evaluation(student, course_id, 4, "Solid")
    ledger.set_acceptance_status(administrator, course_id, False)
    evaluation = ledger.get_evaluation(course_id, student)
    assert evaluation.rating == 4
    assert evaluation.submitted_at is not None
    assert ledger.evaluation_count(course_id) == 1


@pytest.mark.django_db
def test_get_evaluation_missing_returns_none(ledger, course_id, student):
    assert ledger.get_evaluation(course_id, student) is None
    assert ledger.get_evaluation(404, student) is None


@pytest.mark.django_db
def test_statistics_for_unknown_course_are_zero(ledger):
    assert ledger.average_rating(77) == 0
    assert ledger.evaluation_count(77) == 0
