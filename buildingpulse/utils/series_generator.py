"""
Building Energy Series Generator

FLOW OVERVIEW
- generate_multi_sensor_series(sensor_ids, start, end, interval, max_points, equipment_types, floor_numbers)
  • Resolve equipment type and floor per sensor, apply equipment/floor filters.
  • Widen the step when the range would yield more points per sensor than the budget allows.
  • Emit one series per sensor with daily, seasonal and floor patterns plus noise.
- generate_readings(...)
  • Same values shaped as database rows (used by the seeding script).

Values model a 7-floor Bangkok office building: HVAC and general power dominate,
water is reported in L/min and everything else in kWh.
"""

import random
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Sequence

from .decimation import TimeSeriesDataPoint

EQUIPMENT_MAPPING = {
    'SENSOR_001': 'HVAC',
    'SENSOR_002': 'Lighting',
    'SENSOR_003': 'Power',
    'SENSOR_004': 'Water',
    'SENSOR_005': 'Security',
    'SENSOR_006': 'HVAC',
    'SENSOR_007': 'Lighting',
    'SENSOR_008': 'Power',
}

EQUIPMENT_TYPES = ('HVAC', 'Lighting', 'Power', 'Water', 'Security')

FLOOR_COUNT = 7

SENSOR_COLORS = [
    '#3B82F6', '#10B981', '#F59E0B', '#EF4444', '#8B5CF6',
    '#06B6D4', '#84CC16', '#F97316', '#EC4899', '#6366F1',
    '#14B8A6', '#F59E0B', '#8B5CF6', '#EF4444', '#10B981'
]

INTERVALS = {
    'minute': timedelta(minutes=1),
    'hour': timedelta(hours=1),
    'day': timedelta(days=1),
    'week': timedelta(weeks=1),
}

BASE_VALUES = {
    'HVAC': 850,      # kWh, major consumer
    'Lighting': 120,
    'Power': 2400,    # general power, highest consumption
    'Water': 45,      # L/min
    'Security': 25,
}

DAILY_PATTERNS = {
    'HVAC': [
        0.6, 0.5, 0.5, 0.5, 0.6, 0.7, 0.8, 0.9,
        1.0, 1.1, 1.2, 1.3, 1.3, 1.2, 1.2, 1.1,
        1.0, 0.9, 0.8, 0.7, 0.6, 0.5, 0.5, 0.5,
    ],
    'Lighting': [
        0.3, 0.2, 0.2, 0.2, 0.3, 0.5, 0.8, 1.0,
        1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0,
        1.0, 1.2, 1.4, 1.2, 0.8, 0.6, 0.4, 0.3,
    ],
    'Power': [
        0.4, 0.3, 0.3, 0.3, 0.4, 0.6, 0.8, 1.0,
        1.2, 1.3, 1.4, 1.4, 1.3, 1.2, 1.1, 1.0,
        0.9, 0.8, 0.7, 0.6, 0.5, 0.4, 0.4, 0.4,
    ],
    'Water': [
        0.2, 0.1, 0.1, 0.1, 0.3, 0.6, 0.8, 1.0,
        1.2, 1.1, 1.0, 1.3, 1.4, 1.0, 0.9, 0.8,
        0.7, 0.6, 0.4, 0.3, 0.2, 0.1, 0.1, 0.1,
    ],
}

# (error_high, error_low, warning_high, warning_low) on value / base
STATUS_THRESHOLDS = {
    'HVAC': (1.6, 0.4, 1.3, 0.6),
    'Power': (1.8, 0.2, 1.4, 0.5),
}
DEFAULT_STATUS_THRESHOLDS = (1.5, 0.3, 1.2, 0.7)


def equipment_type_for(sensor_id: str) -> str:
    return EQUIPMENT_MAPPING.get(sensor_id, 'Unknown')


def base_value_for(equipment_type: str) -> float:
    return BASE_VALUES.get(equipment_type, 100)


def unit_for(equipment_type: str) -> str:
    return 'L/min' if equipment_type == 'Water' else 'kWh'


def daily_multiplier(equipment_type: str, hour: int) -> float:
    pattern = DAILY_PATTERNS.get(equipment_type)
    if pattern is None:
        return 1.0
    return pattern[hour]


def seasonal_factor(moment: datetime) -> float:
    """Bangkok seasons: hot (Mar-May), wet (Jun-Oct), cool (rest)."""
    if 3 <= moment.month <= 5:
        return 1.3
    if 6 <= moment.month <= 10:
        return 1.1
    return 0.9


def floor_for_index(index: int) -> int:
    return index % FLOOR_COUNT + 1


def status_for_value(equipment_type: str, value: float, base_value: float) -> str:
    ratio = value / base_value
    error_high, error_low, warning_high, warning_low = STATUS_THRESHOLDS.get(
        equipment_type, DEFAULT_STATUS_THRESHOLDS)

    if ratio > error_high or ratio < error_low:
        return 'error'
    if ratio > warning_high or ratio < warning_low:
        return 'warning'
    return 'normal'


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z."""
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f'{moment.microsecond // 1000:03d}Z'


class SeriesGenerator:
    """Produces realistic multi-sensor building-energy series."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.logger = logging.getLogger(__name__)
        self.rng = rng or random.Random()

    def sample_value(self, equipment_type: str, floor_number: int, moment: datetime) -> float:
        """One reading with daily pattern, season, floor offset and ±7.5% noise."""
        noise = (self.rng.random() - 0.5) * 0.15
        value = (base_value_for(equipment_type)
                 * daily_multiplier(equipment_type, moment.hour)
                 * seasonal_factor(moment)
                 * (1 + noise))
        value *= 1 + (floor_number - 4) * 0.05
        return round(value, 2)

    def resolve_step(self, start: datetime, end: datetime, interval: str,
                     max_points: int, sensor_count: int) -> timedelta:
        """Interval step, widened so each sensor stays within its share of max_points."""
        step = INTERVALS.get(interval, INTERVALS['hour'])
        time_range = end - start
        max_per_sensor = max(max_points // max(sensor_count, 1), 1)

        if time_range // step > max_per_sensor:
            step = time_range / max_per_sensor
            self.logger.debug(f"Widened step to {step} for {sensor_count} sensors")
        return step

    def generate_multi_sensor_series(self, sensor_ids: Sequence[str], start: datetime, end: datetime,
                                     interval: str = 'hour', max_points: int = 1000,
                                     equipment_types: Optional[Sequence[str]] = None,
                                     floor_numbers: Optional[Sequence[int]] = None) -> List[Dict[str, Any]]:
        """
        Build chart series for each requested sensor.

        Args:
            sensor_ids: Sensors to generate, order decides floor and colour
            start: Inclusive start of the window
            end: Exclusive end of the window
            interval: minute, hour, day or week
            max_points: Total point budget across all sensors
            equipment_types: Keep only these equipment types (empty keeps all)
            floor_numbers: Keep only these floors (empty keeps all)

        Returns:
            List of series dicts with sensor metadata and TimeSeriesDataPoint lists
        """
        equipment_types = list(equipment_types or [])
        floor_numbers = list(floor_numbers or [])
        step = self.resolve_step(start, end, interval, max_points, len(sensor_ids))

        series = []
        for index, sensor_id in enumerate(sensor_ids):
            equipment_type = equipment_type_for(sensor_id)
            floor_number = floor_for_index(index)

            if equipment_types and equipment_type not in equipment_types:
                continue
            if floor_numbers and floor_number not in floor_numbers:
                continue

            base_value = base_value_for(equipment_type)
            data = []
            current = start
            while current < end:
                value = self.sample_value(equipment_type, floor_number, current)
                data.append(TimeSeriesDataPoint(
                    timestamp=format_timestamp(current),
                    value=value,
                    sensor_id=sensor_id,
                    status=status_for_value(equipment_type, value, base_value),
                ))
                current += step

            series.append({
                'sensor_id': sensor_id,
                'equipment_type': equipment_type,
                'floor_number': floor_number,
                'unit': unit_for(equipment_type),
                'color': SENSOR_COLORS[index % len(SENSOR_COLORS)],
                'data': data,
            })

        return series

    def generate_readings(self, sensor_ids: Sequence[str], start: datetime, end: datetime,
                          step: timedelta) -> List[Dict[str, Any]]:
        """Rows ready for SensorReading(**row), one per sensor per step."""
        readings = []
        for index, sensor_id in enumerate(sensor_ids):
            equipment_type = equipment_type_for(sensor_id)
            floor_number = floor_for_index(index)
            base_value = base_value_for(equipment_type)

            current = start
            while current < end:
                value = self.sample_value(equipment_type, floor_number, current)
                readings.append({
                    'timestamp': current,
                    'sensor_id': sensor_id,
                    'floor_number': floor_number,
                    'equipment_type': equipment_type,
                    'reading_value': value,
                    'unit': unit_for(equipment_type),
                    'status': status_for_value(equipment_type, value, base_value),
                })
                current += step
        return readings


# Global instance
series_generator = SeriesGenerator()
