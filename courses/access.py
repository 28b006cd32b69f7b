"""Role checks for ledger operations.

Pure predicates over the course catalogue. The administrator is fixed
when an `AccessControl` is constructed and cannot be changed afterwards.
"""
from __future__ import annotations

from typing import Any

from .models import Course


def _same_identity(left: Any, right: Any) -> bool:
    # Unsaved or anonymous users have no pk and never match anyone
    if left is None or right is None:
        return False
    left_pk = getattr(left, "pk", None)
    right_pk = getattr(right, "pk", None)
    return left_pk is not None and left_pk == right_pk


class AccessControl:
    """Answer "is the caller privileged" questions for a single administrator."""

    def __init__(self, administrator=None):
        self._administrator = administrator

    @property
    def administrator(self):
        return self._administrator

    def is_admin(self, caller) -> bool:
        return _same_identity(caller, self._administrator)

    def is_instructor_of(self, caller, course_id: int) -> bool:
        """True when the course exists and `caller` is its instructor.

        A missing course is simply "not the instructor", not an error.
        """
        instructor_id = (
            Course.objects.filter(pk=course_id).values_list("instructor_id", flat=True).first()
        )
        if instructor_id is None:
            return False
        caller_pk = getattr(caller, "pk", None)
        return caller_pk is not None and caller_pk == instructor_id

    def can_manage_course(self, caller, course_id: int) -> bool:
        return self.is_admin(caller) or self.is_instructor_of(caller, course_id)
