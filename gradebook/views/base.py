import json
import logging
from functools import wraps

from django.http import JsonResponse

from ..exceptions import GradebookError

logger = logging.getLogger(__name__)

# HTTP status for each error code; anything unlisted is a 400
ERROR_STATUS = {
    'not_found': 404,
    'movement_conflict': 409,
    'grading_configuration': 422,
}


class MalformedRequest(Exception):
    """Request body or parameters are missing or unreadable."""


def is_school_admin(user):
    """Check if user is a school admin or superuser."""
    return user.is_superuser or getattr(user, 'is_school_admin', False)


def is_class_teacher(user, class_obj):
    """Check if user is the class teacher of a class."""
    return class_obj is not None and class_obj.class_teacher_id == user.pk


def forbidden():
    return JsonResponse(
        {'status': 'error', 'error': {'code': 'forbidden', 'message': "You don't have permission to do this."}},
        status=403
    )


def admin_required(view_func):
    """Decorator to require school admin or superuser; JSON 403 otherwise."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not is_school_admin(request.user):
            return forbidden()
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def error_response(error):
    """Map a GradebookError to a JSON error response."""
    status = ERROR_STATUS.get(error.code, 400)
    return JsonResponse({'status': 'error', 'error': error.to_dict()}, status=status)


def json_view(view_func):
    """
    Turn malformed input into a 400 and gradebook errors into their
    mapped status codes.
    """
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except MalformedRequest as e:
            return JsonResponse(
                {'status': 'error', 'error': {'code': 'bad_request', 'message': str(e)}},
                status=400
            )
        except GradebookError as e:
            logger.info(f"{view_func.__name__}: {e}")
            return error_response(e)
    return _wrapped_view


def parse_json_body(request):
    """Decode a JSON object body."""
    try:
        payload = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise MalformedRequest('Invalid JSON')
    if not isinstance(payload, dict):
        raise MalformedRequest('Expected a JSON object')
    return payload


def require_fields(data, *names):
    """Return the named values from a dict-like, failing on any that are missing."""
    values = []
    for name in names:
        value = data.get(name)
        if value in (None, ''):
            raise MalformedRequest(f'Missing field: {name}')
        values.append(value)
    return values
