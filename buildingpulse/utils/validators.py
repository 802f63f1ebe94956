"""
Query Parameter Validation

FLOW OVERVIEW
- validate_date(value)
  • ISO-8601 parsing ('Z' suffix accepted); returns an aware UTC datetime.
- validate_date_range(start, end)
  • Start strictly before end, span no larger than MAX_RANGE_DAYS.
- validate_sensor_ids / validate_equipment_types / validate_floor_numbers
  • Comma-separated lists, checked item by item.
- validate_choice(value, choices, field)
  • interval, aggregation and algorithm enums.
- validate_max_points(value)
  • Integer within MIN_MAX_POINTS..MAX_MAX_POINTS.
- parse_int_param / parse_float_param
  • Lenient numeric parsing with defaults and clamping.

Every validator returns a ValidationResult instead of raising so route
handlers can collect all problems into one response.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence

from .decimation import ALGORITHMS
from .series_generator import EQUIPMENT_TYPES, INTERVALS, FLOOR_COUNT


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Any = None
    error_code: Optional[str] = None


class QueryValidator:
    """Validation of chart and readings query parameters"""

    SENSOR_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')

    MAX_SENSOR_IDS = 50
    MIN_MAX_POINTS = 10
    MAX_MAX_POINTS = 10000
    MAX_RANGE_DAYS = 365

    AGGREGATIONS = ('avg', 'sum', 'min', 'max')

    @classmethod
    def validate_date(cls, value: str) -> ValidationResult:
        """
        Parse an ISO-8601 date or datetime.

        Args:
            value: Raw query string value

        Returns:
            ValidationResult whose sanitized_value is an aware UTC datetime
        """
        if not value or not isinstance(value, str):
            return ValidationResult(False, "Date must be a non-empty string", error_code='invalid_date')

        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            # Offsets at the calendar edges overflow when shifted to UTC
            parsed = parsed.astimezone(timezone.utc)
        except (ValueError, OverflowError):
            return ValidationResult(False, "Invalid date format. Use ISO 8601 format", error_code='invalid_date')

        return ValidationResult(True, sanitized_value=parsed)

    @classmethod
    def validate_date_range(cls, start: datetime, end: datetime) -> ValidationResult:
        """Check ordering and maximum span of a date range"""
        if start >= end:
            return ValidationResult(False, "Start date must be before end date", error_code='invalid_range')

        if end - start > timedelta(days=cls.MAX_RANGE_DAYS):
            return ValidationResult(False, "Date range cannot exceed 1 year", error_code='range_too_large')

        return ValidationResult(True, sanitized_value=(start, end))

    @classmethod
    def validate_sensor_ids(cls, value: str) -> ValidationResult:
        """Comma-separated sensor IDs, empty items dropped"""
        sensor_ids = cls._split_list(value)
        if not sensor_ids:
            return ValidationResult(False, "At least one sensor ID is required", error_code='missing_sensors')

        if len(sensor_ids) > cls.MAX_SENSOR_IDS:
            return ValidationResult(False, f"Too many sensor IDs (max {cls.MAX_SENSOR_IDS})",
                                    error_code='too_many_sensors')

        for sensor_id in sensor_ids:
            if not cls.SENSOR_ID_PATTERN.match(sensor_id):
                return ValidationResult(False, f"Invalid sensor ID: {sensor_id}", error_code='invalid_sensor_id')

        return ValidationResult(True, sanitized_value=sensor_ids)

    @classmethod
    def validate_equipment_types(cls, value: Optional[str]) -> ValidationResult:
        """Comma-separated equipment types; empty means no filter"""
        equipment_types = cls._split_list(value)
        for equipment_type in equipment_types:
            if equipment_type not in EQUIPMENT_TYPES:
                return ValidationResult(False, f"Invalid equipment type: {equipment_type}",
                                        error_code='invalid_equipment_type')
        return ValidationResult(True, sanitized_value=equipment_types)

    @classmethod
    def validate_floor_numbers(cls, value: Optional[str]) -> ValidationResult:
        """Comma-separated floor numbers; non-numeric items are ignored"""
        floors = []
        for item in cls._split_list(value):
            try:
                floor = int(item)
            except ValueError:
                continue
            if not 1 <= floor <= FLOOR_COUNT:
                return ValidationResult(False, f"Floor number must be between 1 and {FLOOR_COUNT}",
                                        error_code='invalid_floor')
            floors.append(floor)
        return ValidationResult(True, sanitized_value=floors)

    @classmethod
    def validate_choice(cls, value: str, choices: Sequence[str], field: str) -> ValidationResult:
        if value not in choices:
            return ValidationResult(False, f"{field} must be one of: {', '.join(choices)}",
                                    error_code='invalid_enum_value')
        return ValidationResult(True, sanitized_value=value)

    @classmethod
    def validate_interval(cls, value: str) -> ValidationResult:
        return cls.validate_choice(value, tuple(INTERVALS), 'interval')

    @classmethod
    def validate_aggregation(cls, value: str) -> ValidationResult:
        return cls.validate_choice(value, cls.AGGREGATIONS, 'aggregation')

    @classmethod
    def validate_algorithm(cls, value: str) -> ValidationResult:
        return cls.validate_choice(value, ALGORITHMS, 'algorithm')

    @classmethod
    def validate_max_points(cls, value: Any) -> ValidationResult:
        """Integer between MIN_MAX_POINTS and MAX_MAX_POINTS"""
        try:
            max_points = int(value)
        except (TypeError, ValueError):
            return ValidationResult(False, "max_points must be an integer", error_code='invalid_type')

        if max_points < cls.MIN_MAX_POINTS:
            return ValidationResult(False, f"max_points must be at least {cls.MIN_MAX_POINTS}",
                                    error_code='too_small')
        if max_points > cls.MAX_MAX_POINTS:
            return ValidationResult(False, f"max_points must be at most {cls.MAX_MAX_POINTS}",
                                    error_code='too_big')
        return ValidationResult(True, sanitized_value=max_points)

    @classmethod
    def parse_int_param(cls, value: Optional[str], default: Optional[int] = None,
                        minimum: Optional[int] = None, maximum: Optional[int] = None) -> Optional[int]:
        """Parse an integer query param, falling back to default and clamping to bounds"""
        if not value:
            parsed = default
        else:
            try:
                parsed = int(value)
            except ValueError:
                parsed = default

        if parsed is None:
            return None
        if minimum is not None:
            parsed = max(parsed, minimum)
        if maximum is not None:
            parsed = min(parsed, maximum)
        return parsed

    @classmethod
    def parse_float_param(cls, value: Optional[str], default: float = 0.0,
                          minimum: Optional[float] = None, maximum: Optional[float] = None) -> float:
        """Parse a float query param, falling back to default and clamping to bounds"""
        try:
            parsed = float(value) if value else default
        except ValueError:
            parsed = default

        if parsed != parsed:  # NaN
            parsed = default
        if minimum is not None:
            parsed = max(parsed, minimum)
        if maximum is not None:
            parsed = min(parsed, maximum)
        return parsed

    @staticmethod
    def _split_list(value: Optional[str]) -> List[str]:
        if not value:
            return []
        return [item.strip() for item in value.split(',') if item.strip()]


# Convenience functions for common validations
def validate_date(value: str) -> ValidationResult:
    """Validate an ISO-8601 date"""
    return QueryValidator.validate_date(value)


def validate_date_range(start: datetime, end: datetime) -> ValidationResult:
    """Validate a date range"""
    return QueryValidator.validate_date_range(start, end)


def validate_sensor_ids(value: str) -> ValidationResult:
    """Validate a comma-separated sensor ID list"""
    return QueryValidator.validate_sensor_ids(value)


def validate_max_points(value: Any) -> ValidationResult:
    """Validate a max_points value"""
    return QueryValidator.validate_max_points(value)
