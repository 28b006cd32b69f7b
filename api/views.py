"""REST API v1 over the evaluation ledger.

Every endpoint is a thin adapter: it hands request values to the ledger
unchanged, passes `request.user` as the caller identity and lets the
ledger decide, so errors surface in the ledger's check order.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from courses.errors import NotFound
from courses.ledger import default_ledger
from .permissions import IsAuthenticatedOrReadOnly
from .serializers import (
    AcceptanceSerializer,
    CourseCreateSerializer,
    CourseSerializer,
    EnrolmentSerializer,
    EnrolSerializer,
    EvaluationCreateSerializer,
    EvaluationSerializer,
    InstructorSerializer,
)

User = get_user_model()


def _user_or_none(value):
    """Resolve a user id from request data; anything else maps to None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if not isinstance(value, int):
        return None
    return User.objects.filter(pk=value).first()


EnrolmentStatusSerializer = inline_serializer(
    name="EnrolmentStatus",
    fields={
        "course": serializers.IntegerField(),
        "student": serializers.IntegerField(),
        "is_enrolled": serializers.BooleanField(),
    },
)

StatisticsSerializer = inline_serializer(
    name="CourseStatistics",
    fields={
        "course": serializers.IntegerField(),
        "average_rating": serializers.IntegerField(),
        "evaluation_count": serializers.IntegerField(),
    },
)

RolesSerializer = inline_serializer(
    name="CallerRoles",
    fields={
        "is_admin": serializers.BooleanField(),
        "is_instructor": serializers.BooleanField(),
        "can_manage": serializers.BooleanField(),
    },
)


class CourseViewSet(viewsets.ViewSet):
    """Course catalogue, enrolments and evaluations keyed by course id."""

    permission_classes = [IsAuthenticatedOrReadOnly]
    lookup_value_regex = r"\d+"

    def get_ledger(self):
        return default_ledger()

    def _serialize_course(self, course):
        return CourseSerializer(course, context={"request": self.request, "ledger": self.get_ledger()}).data

    @extend_schema(request=CourseCreateSerializer, responses={201: CourseSerializer})
    def create(self, request):
        payload = CourseCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ledger = self.get_ledger()
        course_id = ledger.create_course(request.user, payload.validated_data.get("name"))
        return Response(self._serialize_course(ledger.get_course(course_id)), status=status.HTTP_201_CREATED)

    @extend_schema(responses=CourseSerializer)
    def retrieve(self, request, pk=None):
        course = self.get_ledger().get_course(int(pk))
        if course is None:
            raise NotFound(f"Course {pk} does not exist.")
        return Response(self._serialize_course(course))

    @extend_schema(request=InstructorSerializer, responses=CourseSerializer)
    @action(detail=True, methods=["post"])
    def instructor(self, request, pk=None):
        payload = InstructorSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        course = self.get_ledger().reassign_instructor(
            request.user, int(pk), _user_or_none(payload.validated_data.get("instructor"))
        )
        return Response(self._serialize_course(course))

    @extend_schema(request=AcceptanceSerializer, responses=CourseSerializer)
    @action(detail=True, methods=["post"])
    def acceptance(self, request, pk=None):
        payload = AcceptanceSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        course = self.get_ledger().set_acceptance_status(request.user, int(pk), payload.validated_data["accepting"])
        return Response(self._serialize_course(course))

    @extend_schema(request=EnrolSerializer, responses=EnrolmentSerializer)
    @action(detail=True, methods=["post"], url_path="enrolments")
    def enrol(self, request, pk=None):
        payload = EnrolSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        enrolment = self.get_ledger().enrol(
            request.user, int(pk), _user_or_none(payload.validated_data.get("student"))
        )
        return Response(EnrolmentSerializer(enrolment).data)

    @extend_schema(responses=EnrolmentStatusSerializer)
    @action(detail=True, methods=["get"], url_path=r"enrolments/(?P<user_id>\d+)")
    def enrolment(self, request, pk=None, user_id=None):
        student = User.objects.filter(pk=int(user_id)).first()
        enrolled = self.get_ledger().is_enrolled(int(pk), student)
        return Response({"course": int(pk), "student": int(user_id), "is_enrolled": enrolled})

    @extend_schema(request=EvaluationCreateSerializer, responses={201: EvaluationSerializer})
    @action(detail=True, methods=["post"], url_path="evaluations")
    def evaluate(self, request, pk=None):
        payload = EvaluationCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        evaluation = self.get_ledger().submit_evaluation(
            request.user,
            int(pk),
            payload.validated_data.get("rating"),
            payload.validated_data.get("commentary"),
        )
        return Response(EvaluationSerializer(evaluation).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=EvaluationSerializer)
    @action(detail=True, methods=["get"], url_path=r"evaluations/(?P<user_id>\d+)")
    def evaluation(self, request, pk=None, user_id=None):
        student = User.objects.filter(pk=int(user_id)).first()
        evaluation = self.get_ledger().get_evaluation(int(pk), student)
        if evaluation is None:
            return Response({"detail": "No evaluation recorded."}, status=status.HTTP_404_NOT_FOUND)
        return Response(EvaluationSerializer(evaluation).data)

    @extend_schema(responses=StatisticsSerializer)
    @action(detail=True, methods=["get"])
    def statistics(self, request, pk=None):
        ledger = self.get_ledger()
        return Response({
            "course": int(pk),
            "average_rating": ledger.average_rating(int(pk)),
            "evaluation_count": ledger.evaluation_count(int(pk)),
        })

    @extend_schema(responses=RolesSerializer)
    @action(detail=True, methods=["get"])
    def roles(self, request, pk=None):
        """Roles held by the requesting user for this course."""
        ledger = self.get_ledger()
        return Response({
            "is_admin": ledger.is_admin(request.user),
            "is_instructor": ledger.is_instructor_of(request.user, int(pk)),
            "can_manage": ledger.can_manage_course(request.user, int(pk)),
        })
