from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import permissions, status
from rest_framework.throttling import ScopedRateThrottle

from .exceptions import PartialResponseError
from .serializers import (
    SavePartialSerializer, SaveResultSerializer, ResumeStateSerializer,
    ResumeByCodeSerializer, CodeMatchSerializer, CompletePartialSerializer,
    SweepRequestSerializer,
)
from .services import (
    SaveInput, save_partial, resume_by_token, resume_by_code, complete_partial, sweep_expired,
)


def _error_response(exc: PartialResponseError) -> Response:
    return Response({"detail": exc.detail, "code": exc.code}, status=exc.status_code)


def _client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


class SavePartialView(APIView):
    """
    Save progress.
    Without resume_token -> create a new saved session (201) and email the resume
    link when an email is given. With resume_token -> overwrite that session (200).
    """
    # Public to allow anonymous respondents
    permission_classes = []

    def post(self, request):
        ser = SavePartialSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        try:
            result = save_partial(
                SaveInput(
                    survey_id=data["survey_id"],
                    answers=data["answers"],
                    current_page_index=data["current_page_index"],
                    last_question_id=data.get("last_question_id") or None,
                    email=data.get("email") or None,
                    name=(data.get("name") or "").strip() or None,
                    resume_token=(data.get("resume_token") or "").strip() or None,
                ),
                ip_address=_client_ip(request),
                user_agent=request.META.get("HTTP_USER_AGENT"),
            )
        except PartialResponseError as e:
            return _error_response(e)
        code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
        return Response(SaveResultSerializer(result).data, status=code)


class ResumeByTokenView(APIView):
    """
    Return the survey definition, saved answers and cursor for a resume link.
    """
    permission_classes = []

    def get(self, request, token: str):
        try:
            state = resume_by_token(token)
        except PartialResponseError as e:
            return _error_response(e)
        return Response(ResumeStateSerializer(state).data, status=status.HTTP_200_OK)


class ResumeByCodeView(APIView):
    """
    Exchange a 6-character resume code for the resume token and link.
    """
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "partial_resume"

    def post(self, request):
        ser = ResumeByCodeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            match = resume_by_code(ser.validated_data["survey_id"], ser.validated_data["code"])
        except PartialResponseError as e:
            return _error_response(e)
        return Response(CodeMatchSerializer(match).data, status=status.HTTP_200_OK)


class CompletePartialView(APIView):
    """
    Submit the final answers for a saved session, creating the permanent response.
    """
    permission_classes = []

    def post(self, request, token: str):
        ser = CompletePartialSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            response = complete_partial(token, ser.validated_data["final_answers"])
        except PartialResponseError as e:
            return _error_response(e)
        return Response(
            {"response_id": response.id, "detail": "Survey completed successfully"},
            status=status.HTTP_201_CREATED,
        )


class SweepExpiredView(APIView):
    """
    Operator endpoint: expire overdue sessions and purge old expired ones.
    """
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):
        ser = SweepRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = sweep_expired(retention_days=ser.validated_data.get("retention_days"))
        return Response(
            {"expired_count": result.expired_count, "deleted_count": result.deleted_count},
            status=status.HTTP_200_OK,
        )
