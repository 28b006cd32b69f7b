"""Course catalogue and enrolment registry models.

Defines the `Course` record, the `CourseSequence` counter that issues
course ids, and the `Enrolment` eligibility flag linking students to
courses. Rows here are written only through `courses.ledger`; nothing is
ever deleted, so related stores reference courses with PROTECT.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models

from .limits import MAX_NAME_LENGTH


class CourseSequence(models.Model):
    """Singleton row holding the last issued course id.

    The row doubles as the ledger's global lock: mutations take it with
    ``select_for_update()`` before reading any other store.
    """

    SINGLETON_PK = 1

    last_issued = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:  # pragma: no cover
        return f"CourseSequence<{self.last_issued}>"


class Course(models.Model):
    """A catalogue entry with a name, an instructor and an acceptance flag."""

    # Issued from CourseSequence, never auto-incremented by the database
    id = models.PositiveIntegerField(primary_key=True)
    name = models.CharField(max_length=MAX_NAME_LENGTH)
    instructor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="instructed_courses"
    )
    accepting_evaluations = models.BooleanField(default=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.id}: {self.name}"


class Enrolment(models.Model):
    """Per (course, student) eligibility flag.

    Upserted by the ledger; there is no revocation path.
    """

    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="enrolments")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="enrolments")
    is_enrolled = models.BooleanField(default=True)

    class Meta:
        unique_together = ("course", "student")
        ordering = ["course_id", "student_id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.student_id}->{self.course_id}"


# Registered here so Django discovers the evaluation models with this app
from .models_evaluation import Evaluation, RatingAggregate  # noqa: E402,F401
