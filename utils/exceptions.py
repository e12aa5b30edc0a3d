"""
API error types and the exception handler that renders them.

Single-message errors are returned as ``{"error": "..."}``; field validation
errors as ``{"errors": [{"msg": "...", "path": "field"}]}``.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler


class MissingField(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Required fields are missing.'
    default_code = 'missing_field'


class InvalidFormat(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid ID format'
    default_code = 'invalid_format'


class BusinessRuleViolation(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request violates a business rule.'
    default_code = 'business_rule_violation'


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


def flatten_errors(detail, path=''):
    """Turn nested serializer errors into a flat list of {msg, path}."""
    if isinstance(detail, dict):
        errors = []
        for field, value in detail.items():
            errors.extend(flatten_errors(value, f'{path}.{field}' if path else str(field)))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                # Nested item errors (e.g. availableDates[1]); empty dicts mean "no error".
                errors.extend(flatten_errors(value, f'{path}.{index}' if path else str(index)))
            else:
                errors.append({'msg': str(value), 'path': path or 'non_field_errors'})
        return errors
    return [{'msg': str(detail), 'path': path or 'non_field_errors'}]


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        response.data = {'errors': flatten_errors(response.data)}
    elif isinstance(response.data, dict) and 'detail' in response.data:
        response.data = {'error': str(response.data['detail'])}
    return response
