"""Translate ledger errors into API responses."""
from __future__ import annotations

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from courses.errors import LedgerError


def ledger_exception_handler(exc, context):
    """Render `LedgerError` as ``{"detail", "code"}`` with its status code.

    Anything else falls through to DRF's default handler.
    """
    if isinstance(exc, LedgerError):
        return Response({"detail": exc.message, "code": exc.code}, status=exc.status_code)
    return drf_exception_handler(exc, context)
