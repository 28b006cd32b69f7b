"""Evaluation store and rating aggregates."""
from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from .limits import MAX_COMMENTARY_LENGTH, MAX_RATING, MIN_RATING


class Evaluation(models.Model):
    """A single student's immutable rating and commentary for a course."""

    course = models.ForeignKey("courses.Course", on_delete=models.PROTECT, related_name="evaluations")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="evaluations")
    rating = models.PositiveSmallIntegerField()
    commentary = models.TextField(max_length=MAX_COMMENTARY_LENGTH)
    submitted_at = models.DateTimeField()

    class Meta:
        unique_together = ("course", "student")
        ordering = ["course_id", "submitted_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__gte=MIN_RATING) & Q(rating__lte=MAX_RATING),
                name="evaluation_rating_in_range",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.course_id}:{self.student_id}={self.rating}"


class RatingAggregate(models.Model):
    """Running rating sum and count for one course.

    `rating_sum` and `evaluation_count` are only ever incremented together,
    inside the same transaction that inserts an `Evaluation`.
    """

    course = models.OneToOneField(
        "courses.Course", on_delete=models.PROTECT, primary_key=True, related_name="rating_aggregate"
    )
    rating_sum = models.PositiveIntegerField(default=0)
    evaluation_count = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.course_id}: {self.rating_sum}/{self.evaluation_count}"

    @property
    def average(self) -> int:
        """Floor of the mean rating; 0 when nothing was submitted."""
        if self.evaluation_count <= 0:
            return 0
        return self.rating_sum // self.evaluation_count
