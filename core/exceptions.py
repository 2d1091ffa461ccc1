"""
Domain error taxonomy and the unified API exception handler.

Services raise the plain exceptions below so they can be exercised
without an HTTP harness; :func:`api_exception_handler` (wired as DRF's
``EXCEPTION_HANDLER``) turns them and DRF's own exceptions into the
``{'ok': False, 'error': {...}}`` envelope.
"""
from __future__ import annotations

import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainError(Exception):
    code = 'domain_error'
    status_code = 400

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(DomainError):
    """Bad or missing input; never retried automatically."""
    code = 'validation_error'
    status_code = 400


class NotFoundError(DomainError):
    code = 'not_found'
    status_code = 404


class ForbiddenError(DomainError):
    """Caller is authenticated but may not touch this object."""
    code = 'permission_denied'
    status_code = 403


class ConflictError(DomainError):
    """A concurrent update could not be applied; the whole operation may be retried."""
    code = 'conflict'
    status_code = 409
    retryable = True


class StorageError(DomainError):
    """Transaction or connection failure in the persistent store."""
    code = 'storage_error'
    status_code = 503
    retryable = True


def _error_body(code: str, message, field: str | None = None) -> dict:
    error = {'code': code, 'message': message}
    if field:
        error['field'] = field
    return {'ok': False, 'error': error}


def api_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        body = _error_body(exc.code, exc.message, exc.field)
        headers = {'Retry-After': '1'} if getattr(exc, 'retryable', False) else None
        return Response(body, status=exc.status_code, headers=headers)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("Unhandled error in %s", context.get('view').__class__.__name__ if context else 'view')
        return Response(_error_body('server_error', 'Internal server error'), status=500)

    if isinstance(exc, drf_exceptions.ValidationError):
        code = ValidationError.code
    else:
        code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    headers = {k: resp[k] for k in ('WWW-Authenticate', 'Retry-After') if resp.has_header(k)}
    return Response(_error_body(code, detail), status=resp.status_code, headers=headers or None)
