"""Read-only admin views of the ledger stores.

All writes go through `courses.ledger` so the aggregate invariants cannot
be bypassed from the admin site.
"""
from django.contrib import admin

from .models import Course, CourseSequence, Enrolment
from .models_evaluation import Evaluation, RatingAggregate


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Course)
class CourseAdmin(ReadOnlyAdmin):
    list_display = ("id", "name", "instructor", "accepting_evaluations")
    list_filter = ("accepting_evaluations",)
    search_fields = ("name", "instructor__username")


@admin.register(Enrolment)
class EnrolmentAdmin(ReadOnlyAdmin):
    list_display = ("course", "student", "is_enrolled")
    list_filter = ("is_enrolled",)
    search_fields = ("course__name", "student__username")


@admin.register(Evaluation)
class EvaluationAdmin(ReadOnlyAdmin):
    list_display = ("course", "student", "rating", "submitted_at")
    list_filter = ("rating",)
    search_fields = ("course__name", "student__username")


@admin.register(RatingAggregate)
class RatingAggregateAdmin(ReadOnlyAdmin):
    list_display = ("course", "rating_sum", "evaluation_count", "average")


@admin.register(CourseSequence)
class CourseSequenceAdmin(ReadOnlyAdmin):
    list_display = ("last_issued",)
