"""Transactional operations over the evaluation ledger.

`EvaluationLedger` is the only writer of the course catalogue, the
enrolment registry, the evaluation store and the rating aggregates. Each
mutation validates every precondition before its first write and runs
inside one critical section spanning all four stores:

- a process-wide re-entrant lock,
- a database transaction (`transaction.atomic`),
- a row lock on the `CourseSequence` singleton, taken first.

Failures raise a `LedgerError` subclass; the enclosing transaction then
rolls back, so no partial effect is ever observable.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.signals import setting_changed
from django.db import transaction
from django.db.models import F
from django.dispatch import receiver
from django.utils import timezone

from .access import AccessControl
from .errors import (
    DuplicateSubmission,
    EvaluationsClosed,
    InvalidInput,
    LedgerError,
    NotEnrolled,
    NotFound,
    PermissionDenied,
    RatingOutOfRange,
)
from .limits import MAX_COMMENTARY_LENGTH, MAX_NAME_LENGTH, MAX_RATING, MIN_RATING
from .models import Course, CourseSequence, Enrolment
from .models_evaluation import Evaluation, RatingAggregate

logger = logging.getLogger(__name__)

_LEDGER_LOCK = threading.RLock()


def _pk(identity):
    return getattr(identity, "pk", None)


class EvaluationLedger:
    """Public operations of the course evaluation ledger.

    The administrator identity is captured at construction and used for
    every authorisation decision made by this instance.
    """

    # Mirror the schema; see courses.limits
    max_name_length = MAX_NAME_LENGTH
    max_commentary_length = MAX_COMMENTARY_LENGTH
    min_rating = MIN_RATING
    max_rating = MAX_RATING

    def __init__(self, administrator=None):
        self.access = AccessControl(administrator)

    @property
    def administrator(self):
        return self.access.administrator

    # Access control

    def is_admin(self, caller) -> bool:
        return self.access.is_admin(caller)

    def is_instructor_of(self, caller, course_id: int) -> bool:
        return self.access.is_instructor_of(caller, course_id)

    def can_manage_course(self, caller, course_id: int) -> bool:
        return self.access.can_manage_course(caller, course_id)

    # Internals

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[CourseSequence]:
        try:
            with _LEDGER_LOCK, transaction.atomic():
                sequence, _ = CourseSequence.objects.select_for_update().get_or_create(
                    pk=CourseSequence.SINGLETON_PK
                )
                yield sequence
        except LedgerError as exc:
            logger.debug("%s rejected: %s (%s)", operation, exc.code, exc.message)
            raise

    def _require_course(self, course_id: int) -> Course:
        course = self.get_course(course_id)
        if course is None:
            raise NotFound(f"Course {course_id} does not exist.")
        return course

    def _check_text(self, value, max_length: int, label: str) -> None:
        if not isinstance(value, str) or not 1 <= len(value) <= max_length:
            raise InvalidInput(f"{label} must be between 1 and {max_length} characters.")

    def _is_valid_rating(self, rating) -> bool:
        if isinstance(rating, bool) or not isinstance(rating, int):
            return False
        return self.min_rating <= rating <= self.max_rating

    # Course catalogue

    def create_course(self, caller, name: str) -> int:
        """Create a course owned by the administrator and return its id.

        The id is the sequence's last issued value plus one. The creator
        becomes the instructor and the course starts accepting evaluations.
        """
        with self._mutation("create_course") as sequence:
            if not self.is_admin(caller):
                raise PermissionDenied("Only the administrator can create courses.")
            self._check_text(name, self.max_name_length, "Course name")
            course_id = sequence.last_issued + 1
            course = Course.objects.create(
                id=course_id, name=name, instructor=caller, accepting_evaluations=True
            )
            RatingAggregate.objects.create(course=course)
            sequence.last_issued = course_id
            sequence.save(update_fields=["last_issued"])
        logger.info("Course %s created by %s", course_id, _pk(caller))
        return course_id

    def reassign_instructor(self, caller, course_id: int, new_instructor) -> Course:
        """Replace a course's instructor (administrator only)."""
        with self._mutation("reassign_instructor"):
            course = self._require_course(course_id)
            if not self.is_admin(caller):
                raise PermissionDenied("Only the administrator can reassign instructors.")
            if _pk(new_instructor) is None:
                raise InvalidInput("Instructor must be a registered user.")
            course.instructor = new_instructor
            course.save(update_fields=["instructor"])
        logger.info("Course %s reassigned to instructor %s", course_id, _pk(new_instructor))
        return course

    def set_acceptance_status(self, caller, course_id: int, accepting: bool) -> Course:
        with self._mutation("set_acceptance_status"):
            course = self._require_course(course_id)
            if not self.can_manage_course(caller, course_id):
                raise PermissionDenied("Only the administrator or the instructor can manage this course.")
            course.accepting_evaluations = bool(accepting)
            course.save(update_fields=["accepting_evaluations"])
        logger.info("Course %s accepting evaluations: %s", course_id, course.accepting_evaluations)
        return course

    def get_course(self, course_id: int) -> Course | None:
        return Course.objects.filter(pk=course_id).first()

    def last_issued_course_id(self) -> int:
        """Last id handed out by `create_course`, 0 before the first course."""
        value = (
            CourseSequence.objects.filter(pk=CourseSequence.SINGLETON_PK)
            .values_list("last_issued", flat=True)
            .first()
        )
        return value or 0

    # Enrolment registry

    def enrol(self, caller, course_id: int, student) -> Enrolment:
        """Mark `student` as enrolled; re-enrolling succeeds silently."""
        with self._mutation("enrol"):
            course = self._require_course(course_id)
            if not self.can_manage_course(caller, course_id):
                raise PermissionDenied("Only the administrator or the instructor can enrol students.")
            if _pk(student) is None:
                raise InvalidInput("Student must be a registered user.")
            enrolment, created = Enrolment.objects.update_or_create(
                course=course, student=student, defaults={"is_enrolled": True}
            )
        if created:
            logger.info("Student %s enrolled in course %s", _pk(student), course_id)
        return enrolment

    def is_enrolled(self, course_id: int, student) -> bool:
        student_pk = _pk(student)
        if student_pk is None:
            return False
        return Enrolment.objects.filter(course_id=course_id, student_id=student_pk, is_enrolled=True).exists()

    # Evaluations and aggregates

    def get_evaluation(self, course_id: int, student) -> Evaluation | None:
        student_pk = _pk(student)
        if student_pk is None:
            return None
        return Evaluation.objects.filter(course_id=course_id, student_id=student_pk).first()

    def submit_evaluation(self, caller, course_id: int, rating: int, commentary: str) -> Evaluation:
        """Record the caller's evaluation and fold it into the course aggregate.

        Checks run in a fixed order and the first failure wins:
        course exists, course accepting, caller enrolled, rating in range,
        no earlier evaluation, commentary length. The evaluation insert and
        the aggregate increment commit together.
        """
        with self._mutation("submit_evaluation"):
            course = self._require_course(course_id)
            if not course.accepting_evaluations:
                raise EvaluationsClosed()
            if not self.is_enrolled(course.pk, caller):
                raise NotEnrolled()
            if not self._is_valid_rating(rating):
                raise RatingOutOfRange(f"Rating must be an integer between {self.min_rating} and {self.max_rating}.")
            if Evaluation.objects.filter(course=course, student_id=_pk(caller)).exists():
                raise DuplicateSubmission()
            self._check_text(commentary, self.max_commentary_length, "Commentary")

            evaluation = Evaluation.objects.create(
                course=course,
                student=caller,
                rating=rating,
                commentary=commentary,
                submitted_at=timezone.now(),
            )
            updated = RatingAggregate.objects.filter(course=course).update(
                rating_sum=F("rating_sum") + rating,
                evaluation_count=F("evaluation_count") + 1,
            )
            if not updated:
                RatingAggregate.objects.create(course=course, rating_sum=rating, evaluation_count=1)
        logger.info("Evaluation recorded for course %s by %s", course_id, _pk(caller))
        return evaluation

    def _aggregate(self, course_id: int) -> RatingAggregate | None:
        return RatingAggregate.objects.filter(course_id=course_id).first()

    def average_rating(self, course_id: int) -> int:
        """Integer floor of the mean rating, 0 when there is nothing to average."""
        aggregate = self._aggregate(course_id)
        return aggregate.average if aggregate else 0

    def evaluation_count(self, course_id: int) -> int:
        aggregate = self._aggregate(course_id)
        return aggregate.evaluation_count if aggregate else 0


_default_ledger: EvaluationLedger | None = None


def default_ledger() -> EvaluationLedger:
    """Ledger configured from settings.

    `COURSEVAL_ADMINISTRATOR` names the administrator by username. The
    ledger is cached once that user resolves; until then every call looks
    the user up again, so an administrator account created after startup
    takes effect without a restart. An unset username means no caller is
    an administrator.
    """
    global _default_ledger
    with _LEDGER_LOCK:
        if _default_ledger is not None:
            return _default_ledger
        username = getattr(settings, "COURSEVAL_ADMINISTRATOR", "")
        administrator = None
        if username:
            User = get_user_model()
            administrator = User.objects.filter(**{User.USERNAME_FIELD: username}).first()
        ledger = EvaluationLedger(administrator)
        if administrator is None and username:
            logger.warning("No ledger administrator resolved for %r yet; course creation is disabled.", username)
            return ledger
        _default_ledger = ledger
        return ledger


def reset_default_ledger() -> None:
    global _default_ledger
    with _LEDGER_LOCK:
        _default_ledger = None


@receiver(setting_changed)
def _reset_default_ledger(*, setting, **kwargs):
    if setting.startswith("COURSEVAL_"):
        reset_default_ledger()
