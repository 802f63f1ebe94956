#!/usr/bin/env python3
"""
Unit tests for the API utilities module
"""

import pytest
from buildingpulse.utils.api_utils import (
    APIRequestValidator, APIResponseFormatter, APIRateLimiter,
    request_validator, response_formatter, rate_limiter, get_client_ip
)


class TestAPIRequestValidator:
    """Test the APIRequestValidator class."""

    def test_validate_json_request_valid(self, app):
        """Test validating a valid JSON request."""
        with app.test_request_context(json={'test': 'data'}):
            validator = APIRequestValidator()
            is_valid, data, error = validator.validate_json_request('127.0.0.1')

            assert is_valid is True
            assert data == {'test': 'data'}
            assert error is None

    def test_validate_json_request_invalid_json(self, app):
        """Test validating an invalid JSON request."""
        with app.test_request_context(data='invalid json', content_type='application/json'):
            validator = APIRequestValidator()
            is_valid, data, error = validator.validate_json_request('127.0.0.1')

            assert is_valid is False
            assert data is None
            assert error['error_code'] == 'INVALID_JSON'

    def test_validate_json_request_invalid_type(self, app):
        """Test validating a request with invalid data type."""
        with app.test_request_context(json=[1, 2, 3]):
            validator = APIRequestValidator()
            is_valid, data, error = validator.validate_json_request('127.0.0.1')

            assert is_valid is False
            assert error['error_code'] == 'INVALID_DATA_TYPE'

    def test_validate_request_size(self, app):
        """Test the configurable body size limit."""
        app.config['MAX_REQUEST_BYTES'] = 10
        with app.test_request_context(data='x' * 11, content_type='application/json'):
            is_valid, error = request_validator.validate_request_size('127.0.0.1')
            assert is_valid is False
            assert error['error_code'] == 'REQUEST_TOO_LARGE'

        with app.test_request_context(data='x' * 10, content_type='application/json'):
            is_valid, error = request_validator.validate_request_size('127.0.0.1')
            assert is_valid is True
            assert error is None

    def test_validate_points_payload(self):
        """Test converting a JSON points array."""
        data = {'data': [
            {'timestamp': '2024-01-01T00:00:00Z', 'value': 1, 'sensor_id': 'S1'},
            {'timestamp': '2024-01-01T00:01:00Z', 'value': 2, 'sensor_id': 'S1', 'status': 'error'},
        ]}
        is_valid, points, error = request_validator.validate_points_payload(data, '127.0.0.1')

        assert is_valid is True
        assert error is None
        assert [p.value for p in points] == [1.0, 2.0]
        assert points[1].status == 'error'

    def test_validate_points_payload_missing(self):
        is_valid, points, error = request_validator.validate_points_payload({'points': []})
        assert is_valid is False
        assert error['error_code'] == 'MISSING_DATA'

    def test_validate_points_payload_bad_point(self):
        data = {'data': [{'timestamp': 'soon', 'value': 1}]}
        is_valid, points, error = request_validator.validate_points_payload(data)
        assert is_valid is False
        assert error['error_code'] == 'INVALID_POINT'

    def test_validate_decimation_options_defaults(self, app):
        with app.app_context():
            is_valid, options, error = request_validator.validate_decimation_options({})

            assert is_valid is True
            assert options.max_points == 1000
            assert options.algorithm == 'lttb'
            assert options.preserve_anomalies is True
            assert options.preserve_edges is False

    @pytest.mark.parametrize('flag', ['preserve_anomalies', 'preserve_edges'])
    def test_validate_decimation_options_rejects_non_boolean_flags(self, app, flag):
        with app.app_context():
            is_valid, options, error = request_validator.validate_decimation_options({flag: 'false'})

            assert is_valid is False
            assert options is None
            assert error['validation_errors'] == [
                {'field': flag, 'message': f'{flag} must be true or false', 'code': 'invalid_type'}]

    def test_validate_decimation_options_boolean_flags(self, app):
        with app.app_context():
            is_valid, options, error = request_validator.validate_decimation_options(
                {'preserve_anomalies': False, 'preserve_edges': True})

            assert is_valid is True
            assert options.preserve_anomalies is False
            assert options.preserve_edges is True

    def test_validate_decimation_options_errors(self, app):
        with app.app_context():
            is_valid, options, error = request_validator.validate_decimation_options(
                {'max_points': 5, 'algorithm': 'fancy'})

            assert is_valid is False
            assert options is None
            fields = {entry['field'] for entry in error['validation_errors']}
            assert fields == {'max_points', 'algorithm'}


class TestAPIResponseFormatter:
    """Test the APIResponseFormatter class."""

    def test_format_success_response(self):
        response = APIResponseFormatter.format_success_response({'a': 1}, upgrade_prompt=None)
        assert response == {'success': True, 'data': {'a': 1}, 'upgrade_prompt': None}

    def test_format_validation_error_response(self):
        errors = [{'field': 'max_points', 'message': 'too small', 'code': 'too_small'}]
        response = response_formatter.format_validation_error_response(errors, suggestions=['try 100'])

        assert response['success'] is False
        assert response['error_code'] == 'VALIDATION_ERROR'
        assert response['validation_errors'] == errors
        assert response['suggestions'] == ['try 100']

    def test_format_server_error_response(self):
        response = response_formatter.format_server_error_response(request_id='req-1')
        assert response['error_code'] == 'INTERNAL_SERVER_ERROR'
        assert response['request_id'] == 'req-1'
        assert response['timestamp'].endswith('Z')


class TestAPIRateLimiter:
    """Test the APIRateLimiter class."""

    def test_allows_under_limit(self, app):
        with app.app_context():
            limiter = APIRateLimiter()
            for _ in range(5):
                is_allowed, error = limiter.check_rate_limit('10.0.0.1')
                assert is_allowed is True
                assert error is None

    def test_blocks_over_limit(self, app):
        app.config['RATE_LIMIT_PER_MINUTE'] = 3
        with app.app_context():
            results = [rate_limiter.check_rate_limit('10.0.0.2')[0] for _ in range(4)]
            assert results == [True, True, True, False]

            # Other clients are unaffected
            assert rate_limiter.check_rate_limit('10.0.0.3')[0] is True

    def test_error_payload(self, app):
        app.config['RATE_LIMIT_PER_MINUTE'] = 0
        with app.app_context():
            is_allowed, error = rate_limiter.check_rate_limit('10.0.0.4')
            assert is_allowed is False
            assert error['error_code'] == 'RATE_LIMIT_EXCEEDED'
            assert error['retry_after'] == 60


def test_get_client_ip_prefers_forwarded_header(app):
    with app.test_request_context(environ_base={'REMOTE_ADDR': '1.2.3.4', 'HTTP_X_FORWARDED_FOR': '5.6.7.8'}):
        assert get_client_ip() == '5.6.7.8'
    with app.test_request_context(environ_base={'REMOTE_ADDR': '1.2.3.4'}):
        assert get_client_ip() == '1.2.3.4'
