"""
API Routes

FLOW OVERVIEW
- /api/v1/data/timeseries [GET]
  • Validate chart query, generate multi-sensor series, decimate each series to its
    share of max_points, return series plus metadata and timing headers.
- /api/decimate [POST]
  • Decimate a client-supplied points array with the requested options.
- /api/decimate/benchmark [POST]
  • Run every algorithm over the supplied points and report timings.
- /api/status, /api/metrics
  • Service status and Prometheus exposition.
"""

import os
import time
from datetime import datetime, timedelta, timezone
from flask import Blueprint, jsonify, request, current_app, Response

from ..utils.prom_metrics import metrics_latest, CONTENT_TYPE_LATEST
from ..utils.api_utils import (
    request_validator, response_formatter, rate_limiter, get_client_ip, TIMESERIES_SUGGESTIONS
)
from ..utils.validators import QueryValidator
from ..utils.decimation import (
    DecimationOptions, decimate_time_series_data, benchmark_decimation, algorithm_for_budget
)
from ..utils.series_generator import series_generator, INTERVALS

api_bp = Blueprint('api', __name__)

DEFAULT_SENSOR_IDS = 'SENSOR_001,SENSOR_002,SENSOR_003'


def _field_error(field, result):
    return {'field': field, 'message': result.error_message, 'code': result.error_code}


def _parse_timeseries_params(args):
    """
    Validate the chart query string.

    Returns:
        Tuple of (params, validation_errors); params is None when any field failed
    """
    errors = []
    now = datetime.now(timezone.utc)
    config = current_app.config

    sensor_result = QueryValidator.validate_sensor_ids(args.get('sensor_ids') or DEFAULT_SENSOR_IDS)
    if not sensor_result.is_valid:
        errors.append(_field_error('sensor_ids', sensor_result))

    start_raw = args.get('start_date')
    end_raw = args.get('end_date')
    start_result = QueryValidator.validate_date(start_raw) if start_raw else None
    end_result = QueryValidator.validate_date(end_raw) if end_raw else None
    if start_result is not None and not start_result.is_valid:
        errors.append(_field_error('start_date', start_result))
    if end_result is not None and not end_result.is_valid:
        errors.append(_field_error('end_date', end_result))

    interval_result = QueryValidator.validate_interval(args.get('interval') or 'hour')
    if not interval_result.is_valid:
        errors.append(_field_error('interval', interval_result))

    max_points_result = QueryValidator.validate_max_points(
        args.get('max_points') or config.get('DEFAULT_MAX_POINTS', 1000))
    if not max_points_result.is_valid:
        errors.append(_field_error('max_points', max_points_result))

    aggregation_result = QueryValidator.validate_aggregation(args.get('aggregation') or 'avg')
    if not aggregation_result.is_valid:
        errors.append(_field_error('aggregation', aggregation_result))

    algorithm_result = QueryValidator.validate_algorithm(
        args.get('algorithm') or config.get('DEFAULT_DECIMATION_ALGORITHM', 'lttb'))
    if not algorithm_result.is_valid:
        errors.append(_field_error('algorithm', algorithm_result))

    equipment_result = QueryValidator.validate_equipment_types(args.get('equipment_types'))
    if not equipment_result.is_valid:
        errors.append(_field_error('equipment_types', equipment_result))

    floors_result = QueryValidator.validate_floor_numbers(args.get('floor_numbers'))
    if not floors_result.is_valid:
        errors.append(_field_error('floor_numbers', floors_result))

    if errors:
        return None, errors

    start = start_result.sanitized_value if start_result else now - timedelta(hours=24)
    end = end_result.sanitized_value if end_result else now
    range_result = QueryValidator.validate_date_range(start, end)
    if not range_result.is_valid:
        return None, [_field_error('date_range', range_result)]

    return {
        'sensor_ids': sensor_result.sanitized_value,
        'start_date': start,
        'end_date': end,
        'interval': interval_result.sanitized_value,
        'max_points': max_points_result.sanitized_value,
        'aggregation': aggregation_result.sanitized_value,
        'algorithm': algorithm_result.sanitized_value,
        'equipment_types': equipment_result.sanitized_value,
        'floor_numbers': floors_result.sanitized_value,
    }, []


@api_bp.route('/status')
def api_status():
    """API status endpoint"""
    return jsonify({
        'status': 'operational',
        'version': '1.0.0',
        'environment': os.getenv('FLASK_ENV', 'development')
    })


@api_bp.route('/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    output = metrics_latest()
    return Response(output, mimetype=CONTENT_TYPE_LATEST)


@api_bp.route('/v1/data/timeseries', methods=['GET'])
def get_timeseries():
    """
    Multi-sensor time-series data optimized for chart display.

    Query parameters:
    - sensor_ids: Comma-separated sensor IDs (default: SENSOR_001,SENSOR_002,SENSOR_003)
    - start_date / end_date: ISO-8601 window (default: last 24 hours)
    - interval: minute, hour, day, week (default: hour)
    - max_points: Total display points across all series, 10..10000 (default: 1000)
    - aggregation: avg, sum, min, max (default: avg)
    - algorithm: lttb, minmax, simple, adaptive (default: lttb)
    - equipment_types: Comma-separated equipment filter
    - floor_numbers: Comma-separated floor filter
    """
    client_ip = get_client_ip()

    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    params, errors = _parse_timeseries_params(request.args)
    if errors:
        return jsonify(response_formatter.format_validation_error_response(
            errors, suggestions=TIMESERIES_SUGGESTIONS)), 400

    try:
        started = time.perf_counter()

        series = series_generator.generate_multi_sensor_series(
            params['sensor_ids'],
            params['start_date'],
            params['end_date'],
            interval=params['interval'],
            max_points=params['max_points'],
            equipment_types=params['equipment_types'],
            floor_numbers=params['floor_numbers']
        )

        per_series_budget = max(params['max_points'] // max(len(series), 1), 1)
        algorithm = algorithm_for_budget(params['algorithm'], per_series_budget)
        original_points = 0
        server_decimated = False
        for entry in series:
            result = decimate_time_series_data(entry['data'], DecimationOptions(
                max_points=per_series_budget,
                algorithm=algorithm,
                preserve_anomalies=True,
                preserve_edges=True
            ))
            original_points += result.original_length
            server_decimated = server_decimated or result.decimated_length < result.original_length
            entry['data'] = [point.to_dict() for point in result.data]

        query_time_ms = int((time.perf_counter() - started) * 1000)
        total_points = sum(len(entry['data']) for entry in series)

        # Points the window would hold at the requested interval before any reduction
        raw_estimate = ((params['end_date'] - params['start_date']) // INTERVALS[params['interval']]) * len(series)
        decimated = server_decimated or total_points < raw_estimate

        current_app.logger.info(
            f"Timeseries: {len(series)} series, {total_points}/{raw_estimate} points, {query_time_ms}ms")

        payload = response_formatter.format_success_response({
            'series': series,
            'metadata': {
                'total_points': total_points,
                'original_points': original_points,
                'decimated': decimated,
                'query_time_ms': query_time_ms,
                'cache_hit': False,
                'algorithm': algorithm,
                'aggregation': params['aggregation'],
                'interval': params['interval'],
                'date_range': {
                    'start': params['start_date'].isoformat(),
                    'end': params['end_date'].isoformat()
                }
            }
        })

        response = jsonify(payload)
        response.headers['Cache-Control'] = f"public, max-age={current_app.config.get('CACHE_MAX_AGE', 300)}"
        response.headers['X-Response-Time'] = f'{query_time_ms}ms'
        response.headers['X-Total-Points'] = str(total_points)
        response.headers['X-Decimated'] = str(decimated).lower()
        return response

    except Exception as e:
        current_app.logger.error(f"Error in timeseries endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response(
            message='Failed to fetch time series data')), 500


@api_bp.route('/decimate', methods=['POST'])
def decimate_points():
    """
    Decimate a client-supplied series.

    Expects JSON payload with:
    - data: Array of {timestamp, value, sensor_id, status} (required)
    - max_points: Target point count (default: DEFAULT_MAX_POINTS)
    - algorithm: lttb, minmax, simple, adaptive (default: DEFAULT_DECIMATION_ALGORITHM)
    - preserve_anomalies: Weight non-normal points in LTTB (default: true)
    - preserve_edges: Pin the first and last input points (default: false)
    """
    client_ip = get_client_ip()

    is_valid_size, size_error = request_validator.validate_request_size(client_ip)
    if not is_valid_size:
        return jsonify(size_error), 413

    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    is_valid_json, data, json_error = request_validator.validate_json_request(client_ip)
    if not is_valid_json:
        return jsonify(json_error), 400

    is_valid_points, points, points_error = request_validator.validate_points_payload(data, client_ip)
    if not is_valid_points:
        return jsonify(points_error), 400

    is_valid_options, options, options_error = request_validator.validate_decimation_options(data)
    if not is_valid_options:
        return jsonify(options_error), 400

    try:
        result = decimate_time_series_data(points, options)
        return jsonify(response_formatter.format_success_response(result.to_dict())), 200
    except Exception as e:
        current_app.logger.error(f"Error in decimate endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response()), 500


@api_bp.route('/decimate/benchmark', methods=['POST'])
def benchmark_points():
    """Time every decimation algorithm against the supplied points."""
    client_ip = get_client_ip()

    is_valid_size, size_error = request_validator.validate_request_size(client_ip)
    if not is_valid_size:
        return jsonify(size_error), 413

    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    is_valid_json, data, json_error = request_validator.validate_json_request(client_ip)
    if not is_valid_json:
        return jsonify(json_error), 400

    is_valid_points, points, points_error = request_validator.validate_points_payload(data, client_ip)
    if not is_valid_points:
        return jsonify(points_error), 400

    is_valid_options, options, options_error = request_validator.validate_decimation_options(data)
    if not is_valid_options:
        return jsonify(options_error), 400

    try:
        results = benchmark_decimation(points, options.max_points)
        return jsonify(response_formatter.format_success_response({
            'original_length': len(points),
            'max_points': options.max_points,
            'results': results
        })), 200
    except Exception as e:
        current_app.logger.error(f"Error in benchmark endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response()), 500
