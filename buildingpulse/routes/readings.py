"""
Readings Routes

FLOW OVERVIEW
- /api/readings/timeseries [GET]
  • Paginated persisted readings with date/sensor/floor/equipment filters.
- /api/readings/chart [GET]
  • Persisted readings for a set of sensors, grouped per sensor and decimated for display.
- /api/readings/summary [GET]
  • Totals, per-equipment statistics and status breakdown over persisted readings.
- /api/readings/patterns [GET]
  • Recurring failure patterns with confidence and estimated cost impact.
"""

import math
from datetime import datetime, timedelta, timezone
from flask import Blueprint, jsonify, request, current_app

from ..models import SensorReading, Sensor
from ..utils.api_utils import response_formatter, rate_limiter, get_client_ip
from ..utils.validators import QueryValidator
from ..utils.decimation import DecimationOptions, decimate_time_series_data, algorithm_for_budget
from ..utils.pattern_detection import pattern_detector
from ..utils.series_generator import EQUIPMENT_TYPES, unit_for, SENSOR_COLORS

readings_bp = Blueprint('readings', __name__)

MAX_PATTERN_READINGS = 10000
MAX_CHART_READINGS = 200000


def _to_naive_utc(moment):
    """Readings are stored as naive UTC."""
    return moment.astimezone(timezone.utc).replace(tzinfo=None) if moment else None


def _parse_date_param(name):
    """
    Parse an optional ISO date query parameter.

    Returns:
        Tuple of (datetime_or_None, error_dict_or_None)
    """
    raw = request.args.get(name)
    if not raw:
        return None, None
    result = QueryValidator.validate_date(raw)
    if not result.is_valid:
        return None, {'field': name, 'message': result.error_message, 'code': result.error_code}
    return result.sanitized_value, None


def _parse_equipment_type():
    equipment_type = request.args.get('equipment_type')
    if not equipment_type:
        return None, None
    if equipment_type not in EQUIPMENT_TYPES:
        return None, {
            'field': 'equipment_type',
            'message': f"equipment_type must be one of: {', '.join(EQUIPMENT_TYPES)}",
            'code': 'invalid_enum_value'
        }
    return equipment_type, None


def _validation_error(errors):
    return jsonify(response_formatter.format_validation_error_response(errors)), 400


@readings_bp.route('/timeseries', methods=['GET'])
def get_readings_timeseries():
    """
    Get persisted sensor readings.

    Query parameters:
    - start_date / end_date: ISO-8601 window filters
    - sensor_id: Filter by sensor
    - floor_number: Filter by floor
    - equipment_type: Filter by equipment type
    - limit: Number of readings to return (default: 100, range 1..1000)
    - offset: Number of readings to skip (default: 0)
    """
    client_ip = get_client_ip()
    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    start_date, start_error = _parse_date_param('start_date')
    end_date, end_error = _parse_date_param('end_date')
    equipment_type, equipment_error = _parse_equipment_type()
    errors = [error for error in (start_error, end_error, equipment_error) if error]
    if errors:
        return _validation_error(errors)

    floor_number = QueryValidator.parse_int_param(request.args.get('floor_number'))
    limit = QueryValidator.parse_int_param(request.args.get('limit'), default=100, minimum=1, maximum=1000)
    offset = QueryValidator.parse_int_param(request.args.get('offset'), default=0, minimum=0)
    sensor_id = request.args.get('sensor_id') or None

    filters = {
        'start_date': _to_naive_utc(start_date),
        'end_date': _to_naive_utc(end_date),
        'sensor_id': sensor_id,
        'floor_number': floor_number,
        'equipment_type': equipment_type
    }

    try:
        readings = SensorReading.query_readings(limit=limit, offset=offset, **filters)
        total_count = SensorReading.count_readings(**filters)

        response = jsonify(response_formatter.format_success_response({
            'data': [reading.to_dict() for reading in readings],
            'total_count': total_count,
            'date_range': {
                'start': start_date.isoformat() if start_date else None,
                'end': end_date.isoformat() if end_date else None
            },
            'pagination': {
                'page': offset // limit + 1,
                'limit': limit,
                'offset': offset,
                'total_pages': math.ceil(total_count / limit)
            }
        }))
        response.headers['Cache-Control'] = 'public, s-maxage=300'
        return response

    except Exception as e:
        current_app.logger.error(f"Error in readings timeseries endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response(
            message='Failed to fetch time series data')), 500


@readings_bp.route('/chart', methods=['GET'])
def get_readings_chart():
    """
    Persisted readings shaped as decimated chart series.

    Query parameters:
    - sensor_ids: Comma-separated sensor IDs (required)
    - start_date / end_date: ISO-8601 window (default: last 24 hours)
    - max_points: Total display points across all series (default: DEFAULT_MAX_POINTS)
    - algorithm: lttb, minmax, simple, adaptive (default: DEFAULT_DECIMATION_ALGORITHM)
    """
    client_ip = get_client_ip()
    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    errors = []
    sensor_result = QueryValidator.validate_sensor_ids(request.args.get('sensor_ids'))
    if not sensor_result.is_valid:
        errors.append({'field': 'sensor_ids', 'message': sensor_result.error_message,
                       'code': sensor_result.error_code})

    max_points_result = QueryValidator.validate_max_points(
        request.args.get('max_points') or current_app.config.get('DEFAULT_MAX_POINTS', 1000))
    if not max_points_result.is_valid:
        errors.append({'field': 'max_points', 'message': max_points_result.error_message,
                       'code': max_points_result.error_code})

    algorithm_result = QueryValidator.validate_algorithm(
        request.args.get('algorithm') or current_app.config.get('DEFAULT_DECIMATION_ALGORITHM', 'lttb'))
    if not algorithm_result.is_valid:
        errors.append({'field': 'algorithm', 'message': algorithm_result.error_message,
                       'code': algorithm_result.error_code})

    start_date, start_error = _parse_date_param('start_date')
    end_date, end_error = _parse_date_param('end_date')
    errors.extend(error for error in (start_error, end_error) if error)
    if errors:
        return _validation_error(errors)

    now = datetime.now(timezone.utc)
    start_date = start_date or now - timedelta(hours=24)
    end_date = end_date or now
    range_result = QueryValidator.validate_date_range(start_date, end_date)
    if not range_result.is_valid:
        return _validation_error([{'field': 'date_range', 'message': range_result.error_message,
                                   'code': range_result.error_code}])

    try:
        sensor_ids = sensor_result.sanitized_value
        budget = max(max_points_result.sanitized_value // len(sensor_ids), 1)
        algorithm = algorithm_for_budget(algorithm_result.sanitized_value, budget)
        sensors = {sensor.sensor_id: sensor for sensor in
                   Sensor.query.filter(Sensor.sensor_id.in_(sensor_ids)).all()}

        series = []
        total_points = 0
        original_points = 0
        for index, sensor_id in enumerate(sensor_ids):
            readings = SensorReading.query_readings(
                start_date=_to_naive_utc(start_date),
                end_date=_to_naive_utc(end_date),
                sensor_id=sensor_id,
                limit=MAX_CHART_READINGS
            )
            if not readings:
                continue

            result = decimate_time_series_data(
                [reading.to_data_point() for reading in readings],
                DecimationOptions(max_points=budget, algorithm=algorithm,
                                  preserve_anomalies=True, preserve_edges=True)
            )
            original_points += result.original_length
            total_points += result.decimated_length

            sensor = sensors.get(sensor_id)
            equipment_type = sensor.equipment_type if sensor else readings[0].equipment_type
            series.append({
                'sensor_id': sensor_id,
                'equipment_type': equipment_type,
                'floor_number': sensor.floor_number if sensor else readings[0].floor_number,
                'unit': sensor.unit if sensor else unit_for(equipment_type),
                'color': SENSOR_COLORS[index % len(SENSOR_COLORS)],
                'data': [point.to_dict() for point in result.data]
            })

        return jsonify(response_formatter.format_success_response({
            'series': series,
            'metadata': {
                'total_points': total_points,
                'original_points': original_points,
                'decimated': total_points < original_points,
                'algorithm': algorithm,
                'cache_hit': False
            }
        }))

    except Exception as e:
        current_app.logger.error(f"Error in readings chart endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response(
            message='Failed to build chart data')), 500


@readings_bp.route('/summary', methods=['GET'])
def get_readings_summary():
    """
    Dashboard metrics over persisted readings.

    Query parameters:
    - start_date / end_date: Optional ISO-8601 window
    """
    client_ip = get_client_ip()
    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    start_date, start_error = _parse_date_param('start_date')
    end_date, end_error = _parse_date_param('end_date')
    errors = [error for error in (start_error, end_error) if error]
    if errors:
        return _validation_error(errors)

    try:
        summary = SensorReading.get_summary(_to_naive_utc(start_date), _to_naive_utc(end_date))
        summary['registered_sensors'] = Sensor.query.count()
        summary['online_sensors'] = Sensor.query.filter_by(status='online').count()
        return jsonify(response_formatter.format_success_response(summary))

    except Exception as e:
        current_app.logger.error(f"Unexpected error in summary endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response(
            message='An unexpected error occurred')), 500


@readings_bp.route('/patterns', methods=['GET'])
def get_readings_patterns():
    """
    Detected failure patterns.

    Query parameters:
    - start_date / end_date: ISO-8601 window (default: last 7 days)
    - min_confidence: Minimum confidence 0..1 (default: 0.7)
    - equipment_type: Filter by equipment type
    - floor_number: Filter by floor
    """
    client_ip = get_client_ip()
    is_allowed, rate_error = rate_limiter.check_rate_limit(client_ip)
    if not is_allowed:
        return jsonify(rate_error), 429

    start_date, start_error = _parse_date_param('start_date')
    end_date, end_error = _parse_date_param('end_date')
    equipment_type, equipment_error = _parse_equipment_type()
    errors = [error for error in (start_error, end_error, equipment_error) if error]
    if errors:
        return _validation_error(errors)

    now = datetime.now(timezone.utc)
    start_date = start_date or now - timedelta(days=7)
    end_date = end_date or now
    min_confidence = QueryValidator.parse_float_param(
        request.args.get('min_confidence'), default=0.7, minimum=0.0, maximum=1.0)
    floor_number = QueryValidator.parse_int_param(request.args.get('floor_number'))

    try:
        readings = SensorReading.query_readings(
            start_date=_to_naive_utc(start_date),
            end_date=_to_naive_utc(end_date),
            floor_number=floor_number,
            equipment_type=equipment_type,
            limit=MAX_PATTERN_READINGS
        )
        result = pattern_detector.detect_patterns(readings, min_confidence=min_confidence)

        response = jsonify(response_formatter.format_success_response(
            result.to_dict(start_date.isoformat(), end_date.isoformat())))
        response.headers['Cache-Control'] = 'public, s-maxage=300, stale-while-revalidate=600'
        return response

    except Exception as e:
        current_app.logger.error(f"Unexpected error in patterns endpoint: {str(e)}", exc_info=True)
        return jsonify(response_formatter.format_server_error_response(
            message='An unexpected error occurred during pattern analysis')), 500
