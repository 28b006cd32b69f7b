from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from django.contrib.auth.models import User
from django.db import connection
from django.db.models import Sum

from courses.errors import LedgerError
from courses.models import Course
from courses.models_evaluation import Evaluation, RatingAggregate


def _run_together(workers, func):
    """Start `func(index)` in `workers` threads at once; return the results.

    Each result is the return value, or the error code of a LedgerError.
    """
    barrier = threading.Barrier(workers)

    def call(index):
        try:
            barrier.wait()
            return func(index)
        except LedgerError as exc:
            return exc.code
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(call, range(workers)))


@pytest.mark.django_db(transaction=True)
def test_concurrent_course_creation_issues_gapless_ids(ledger, administrator):
    workers = 8
    ids = _run_together(workers, lambda i: ledger.create_course(administrator, f"Course {i}"))

    assert sorted(ids) == list(range(1, workers + 1))
    assert ledger.last_issued_course_id() == workers
    assert sorted(Course.objects.values_list("id", flat=True)) == list(range(1, workers + 1))
    assert RatingAggregate.objects.count() == workers


@pytest.mark.django_db(transaction=True)
def test_concurrent_submissions_keep_aggregate_consistent(ledger, administrator):
    course_id = ledger.create_course(administrator, "Busy")
    students = [User.objects.create_user(username=f"crowd{i}", password="pw") for i in range(6)]
    for s in students:
        ledger.enrol(administrator, course_id, s)

    # Every student submits twice at the same time; one of each pair must lose
    attempts = [(s, 1 + i % 5) for i, s in enumerate(students)] * 2
    results = _run_together(
        len(attempts),
        lambda i: ledger.submit_evaluation(attempts[i][0], course_id, attempts[i][1], "ok").rating,
    )

    assert results.count("duplicate_submission") == len(students)
    stored = Evaluation.objects.filter(course_id=course_id)
    assert stored.count() == len(students)
    assert ledger.evaluation_count(course_id) == stored.count()
    aggregate = RatingAggregate.objects.get(course_id=course_id)
    assert aggregate.rating_sum == stored.aggregate(total=Sum("rating"))["total"]
    assert ledger.average_rating(course_id) == aggregate.rating_sum // aggregate.evaluation_count
