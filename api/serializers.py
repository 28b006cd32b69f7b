"""Serializers for REST API v1.

Input serializers pass request values through untouched; the ledger owns
every business rule (lengths, rating range, ordering of checks), so a
malformed value never masks a missing course or a permission failure.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from courses.models import Course, Enrolment
from courses.models_evaluation import Evaluation

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username")


class CourseSerializer(serializers.ModelSerializer):
    instructor = UserSerializer(read_only=True)
    average_rating = serializers.SerializerMethodField()
    evaluation_count = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = ("id", "name", "instructor", "accepting_evaluations", "average_rating", "evaluation_count")
        read_only_fields = fields

    def _ledger(self):
        return self.context["ledger"]

    def get_average_rating(self, obj) -> int:
        return self._ledger().average_rating(obj.pk)

    def get_evaluation_count(self, obj) -> int:
        return self._ledger().evaluation_count(obj.pk)


class CourseCreateSerializer(serializers.Serializer):
    # Raw values: the ledger validates them in its own check order
    name = serializers.JSONField(required=False, allow_null=True)


class InstructorSerializer(serializers.Serializer):
    instructor = serializers.JSONField(required=False, allow_null=True, help_text="User id of the new instructor.")


class AcceptanceSerializer(serializers.Serializer):
    accepting = serializers.BooleanField()


class EnrolSerializer(serializers.Serializer):
    student = serializers.JSONField(required=False, allow_null=True, help_text="User id of the student.")


class EnrolmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Enrolment
        fields = ("course", "student", "is_enrolled")
        read_only_fields = fields


class EvaluationCreateSerializer(serializers.Serializer):
    rating = serializers.JSONField(required=False, allow_null=True)
    commentary = serializers.JSONField(required=False, allow_null=True)


class EvaluationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Evaluation
        fields = ("course", "student", "rating", "commentary", "submitted_at")
        read_only_fields = fields
