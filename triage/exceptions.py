from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class QueueConflict(APIException):
    """Queue-number assignment kept colliding with concurrent insertions."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Queue number is being assigned concurrently, please retry.'
    default_code = 'queue_conflict'


class InvalidTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
