"""
API Utilities Module

FLOW OVERVIEW
- APIRequestValidator
  • validate_json_request → parse/validate JSON and return (ok, data, error).
  • validate_request_size → enforce the configured request body limit.
  • validate_points_payload → turn a JSON points array into TimeSeriesDataPoint objects.
  • validate_decimation_options → build DecimationOptions from a JSON body.

- APIResponseFormatter
  • format_success_response → {success: true, data: ...}.
  • format_validation_error_response → collected field errors with suggestions.
  • format_server_error_response → consistent unexpected error payload.

- APIRateLimiter
  • check_rate_limit(client_ip) → per-minute counter with simple in-app cleanup.

- get_client_ip() → X-Forwarded-For aware remote address.
"""

import time
import logging
from typing import Dict, Any, List, Tuple, Optional
from flask import request, current_app

from .decimation import DecimationError, DecimationOptions, TimeSeriesDataPoint, ALGORITHMS
from .validators import QueryValidator

DEFAULT_MAX_REQUEST_BYTES = 5 * 1024 * 1024
DEFAULT_RATE_LIMIT_PER_MINUTE = 100
MAX_PAYLOAD_POINTS = 200000

TIMESERIES_SUGGESTIONS = [
    'Ensure dates are in ISO format (YYYY-MM-DDTHH:mm:ssZ)',
    'Verify sensor IDs are comma-separated',
    'Check that interval is one of: minute, hour, day, week',
    'Ensure max_points is between 10 and 10000'
]


def get_client_ip() -> str:
    return request.environ.get('HTTP_X_FORWARDED_FOR', request.environ.get('REMOTE_ADDR', 'unknown'))


class APIRequestValidator:
    """Handles common request validation logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate_json_request(self, client_ip: str = None) -> Tuple[bool, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Validate and parse JSON request.

        Args:
            client_ip: Client IP for logging

        Returns:
            Tuple of (is_valid, data, error_response)
        """
        try:
            data = request.get_json(force=True)
        except Exception as e:
            self.logger.warning(f"Invalid JSON from {client_ip}: {str(e)}")
            return False, None, {
                'success': False,
                'error_code': 'INVALID_JSON',
                'message': 'Invalid JSON format. Request must be valid JSON.'
            }

        if not data:
            self.logger.warning(f"Empty request body from {client_ip}")
            return False, None, {
                'success': False,
                'error_code': 'MISSING_JSON',
                'message': 'Invalid request format. JSON payload required.'
            }

        if not isinstance(data, dict):
            self.logger.warning(f"Invalid data type from {client_ip}: {type(data)}")
            return False, None, {
                'success': False,
                'error_code': 'INVALID_DATA_TYPE',
                'message': 'Request data must be a JSON object.'
            }

        return True, data, None

    def validate_request_size(self, client_ip: str = None) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Validate request size limits.

        Args:
            client_ip: Client IP for logging

        Returns:
            Tuple of (is_valid, error_response)
        """
        limit = current_app.config.get('MAX_REQUEST_BYTES', DEFAULT_MAX_REQUEST_BYTES)
        content_length = request.content_length or 0
        if content_length > limit:
            self.logger.warning(f"Large request blocked from {client_ip}: {content_length} bytes")
            return False, {
                'success': False,
                'error_code': 'REQUEST_TOO_LARGE',
                'message': f'Request too large. Maximum {limit} bytes allowed.'
            }

        return True, None

    def validate_points_payload(self, data: Dict[str, Any], client_ip: str = None) -> Tuple[bool, Optional[List[TimeSeriesDataPoint]], Optional[Dict[str, Any]]]:
        """
        Extract the points array from a decimation request.

        Args:
            data: Request data dictionary
            client_ip: Client IP for logging

        Returns:
            Tuple of (is_valid, points, error_response)
        """
        raw_points = data.get('data')
        if not isinstance(raw_points, list):
            return False, None, {
                'success': False,
                'error_code': 'MISSING_DATA',
                'message': 'Request must include a "data" array of points.'
            }

        if len(raw_points) > MAX_PAYLOAD_POINTS:
            self.logger.warning(f"Too many points from {client_ip}: {len(raw_points)}")
            return False, None, {
                'success': False,
                'error_code': 'TOO_MANY_POINTS',
                'message': f'At most {MAX_PAYLOAD_POINTS} points can be decimated per request.'
            }

        try:
            points = [TimeSeriesDataPoint.from_dict(raw) for raw in raw_points]
        except DecimationError as e:
            return False, None, {
                'success': False,
                'error_code': 'INVALID_POINT',
                'message': str(e)
            }

        return True, points, None

    def validate_decimation_options(self, data: Dict[str, Any]) -> Tuple[bool, Optional[DecimationOptions], Optional[Dict[str, Any]]]:
        """Build DecimationOptions from max_points/algorithm/preserve_* fields."""
        errors = []

        max_points_result = QueryValidator.validate_max_points(
            data.get('max_points', current_app.config.get('DEFAULT_MAX_POINTS', 1000)))
        if not max_points_result.is_valid:
            errors.append(self._field_error('max_points', max_points_result))

        algorithm = data.get('algorithm', current_app.config.get('DEFAULT_DECIMATION_ALGORITHM', 'lttb'))
        algorithm_result = QueryValidator.validate_algorithm(algorithm)
        if not algorithm_result.is_valid:
            errors.append(self._field_error('algorithm', algorithm_result))

        flags = {}
        for flag, default in (('preserve_anomalies', True), ('preserve_edges', False)):
            value = data.get(flag, default)
            if not isinstance(value, bool):
                errors.append({'field': flag, 'message': f'{flag} must be true or false', 'code': 'invalid_type'})
            flags[flag] = value

        if errors:
            return False, None, response_formatter.format_validation_error_response(errors, suggestions=[
                f"Use one of the algorithms: {', '.join(ALGORITHMS)}",
                'Ensure max_points is between 10 and 10000',
                'Send preserve_anomalies and preserve_edges as JSON booleans'
            ])

        options = DecimationOptions(
            max_points=max_points_result.sanitized_value,
            algorithm=algorithm_result.sanitized_value,
            preserve_anomalies=flags['preserve_anomalies'],
            preserve_edges=flags['preserve_edges']
        )
        return True, options, None

    @staticmethod
    def _field_error(field: str, result) -> Dict[str, str]:
        return {'field': field, 'message': result.error_message, 'code': result.error_code}


class APIResponseFormatter:
    """Handles common response formatting logic."""

    @staticmethod
    def format_success_response(data: Any, **extra) -> Dict[str, Any]:
        """Format successful response."""
        response = {
            'success': True,
            'data': data
        }
        response.update(extra)
        return response

    @staticmethod
    def format_validation_error_response(validation_errors: List[Dict[str, str]],
                                         message: str = 'Please check your request parameters and try again',
                                         suggestions: Optional[List[str]] = None) -> Dict[str, Any]:
        """Format a 400 payload carrying every failed field."""
        response = {
            'success': False,
            'error_code': 'VALIDATION_ERROR',
            'error': 'Invalid query parameters',
            'message': message,
            'validation_errors': validation_errors
        }
        if suggestions:
            response['suggestions'] = suggestions
        return response

    @staticmethod
    def format_server_error_response(error_code: str = 'INTERNAL_SERVER_ERROR',
                                     message: str = 'Internal server error. Please try again later.',
                                     request_id: str = None) -> Dict[str, Any]:
        """Format server error response."""
        response = {
            'success': False,
            'error_code': error_code,
            'message': message,
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())
        }

        if request_id:
            response['request_id'] = request_id

        return response


class APIRateLimiter:
    """Handles rate limiting logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def check_rate_limit(self, client_ip: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Check rate limiting for client IP.

        Args:
            client_ip: Client IP address

        Returns:
            Tuple of (is_allowed, error_response)
        """
        if not hasattr(current_app, 'request_counts'):
            current_app.request_counts = {}

        limit = current_app.config.get('RATE_LIMIT_PER_MINUTE', DEFAULT_RATE_LIMIT_PER_MINUTE)
        current_minute = int(time.time()) // 60
        minute_key = f"{client_ip}_{current_minute}"

        counts = current_app.request_counts
        counts[minute_key] = counts.get(minute_key, 0) + 1

        # Clean old entries (older than 5 minutes)
        old_keys = [k for k in counts.keys() if int(k.rsplit('_', 1)[-1]) < current_minute - 5]
        for old_key in old_keys:
            del counts[old_key]

        if counts[minute_key] > limit:
            self.logger.warning(f"Rate limit exceeded for {client_ip}: {counts[minute_key]} requests")
            return False, {
                'success': False,
                'error_code': 'RATE_LIMIT_EXCEEDED',
                'message': f'Rate limit exceeded. Maximum {limit} requests per minute.',
                'retry_after': 60
            }

        return True, None


# Global instances
request_validator = APIRequestValidator()
response_formatter = APIResponseFormatter()
rate_limiter = APIRateLimiter()
