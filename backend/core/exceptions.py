"""
Service-layer exceptions and the DRF exception handler that renders them.

Every error leaving the API has the same flat shape: {"error": "<message>"},
with an optional "details" mapping for field validation problems.
"""
import logging
from functools import wraps

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service (data-access) operations."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self):
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return Response(payload, status=self.status_code)


class NotFoundError(ServiceError):
    """Raised when the requested object does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailed(ServiceError):
    """Raised when input is rejected by a business rule."""
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    """Raised when a uniqueness rule (e.g. slug) would be violated."""
    status_code = status.HTTP_400_BAD_REQUEST


class ServiceUnavailable(ServiceError):
    """Raised when an external collaborator is not configured."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def api_exception_handler(exc, context):
    """Render ServiceError and DRF errors as {"error": ...} responses."""
    if isinstance(exc, ServiceError):
        return exc.to_response()

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and 'detail' in data and len(data) == 1:
        response.data = {'error': str(data['detail'])}
    elif not (isinstance(data, dict) and 'error' in data):
        response.data = {'error': 'Invalid request', 'details': data}
    return response


def reports_failure(actions):
    """
    Decorator for function views: unexpected exceptions become a logged
    500 {"error": "Failed to <action>"} response.

    `actions` is either one action string or a {method: action} mapping.
    ServiceError, DRF exceptions and Http404 keep propagating to the
    exception handler.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except (ServiceError, APIException, Http404):
                raise
            except Exception as e:
                action = actions.get(request.method, 'process request') if isinstance(actions, dict) else actions
                logger.error(f"Failed to {action}: {str(e)}", exc_info=True)
                return Response({'error': f'Failed to {action}'},
                                status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return wrapper
    return decorator
