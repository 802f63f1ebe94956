#!/usr/bin/env python3
"""
Unit tests for the building energy series generator
"""

import random
import pytest
from datetime import datetime, timedelta, timezone
from buildingpulse.utils.series_generator import (
    SeriesGenerator, equipment_type_for, base_value_for, unit_for, seasonal_factor,
    status_for_value, daily_multiplier, floor_for_index, format_timestamp, SENSOR_COLORS
)

START = datetime(2024, 4, 1, tzinfo=timezone.utc)


class TestEquipmentModel:
    """Test the static equipment model helpers."""

    def test_equipment_mapping(self):
        assert equipment_type_for('SENSOR_001') == 'HVAC'
        assert equipment_type_for('SENSOR_004') == 'Water'
        assert equipment_type_for('SENSOR_999') == 'Unknown'

    def test_base_values_and_units(self):
        assert base_value_for('Power') == 2400
        assert base_value_for('Unknown') == 100
        assert unit_for('Water') == 'L/min'
        assert unit_for('HVAC') == 'kWh'

    def test_seasonal_factor(self):
        assert seasonal_factor(datetime(2024, 4, 15)) == 1.3
        assert seasonal_factor(datetime(2024, 8, 15)) == 1.1
        assert seasonal_factor(datetime(2024, 12, 15)) == 0.9

    def test_daily_multiplier(self):
        assert daily_multiplier('HVAC', 11) == 1.3
        assert daily_multiplier('Security', 3) == 1.0
        assert daily_multiplier('Unknown', 20) == 1.0

    def test_floor_for_index_wraps_at_seven(self):
        assert [floor_for_index(i) for i in range(8)] == [1, 2, 3, 4, 5, 6, 7, 1]

    @pytest.mark.parametrize('equipment_type,value,expected', [
        ('HVAC', 850, 'normal'),
        ('HVAC', 850 * 1.4, 'warning'),
        ('HVAC', 850 * 1.7, 'error'),
        ('HVAC', 850 * 0.3, 'error'),
        ('Power', 2400 * 1.5, 'warning'),
        ('Power', 2400 * 1.7, 'warning'),
        ('Power', 2400 * 1.9, 'error'),
        ('Lighting', 120 * 1.3, 'warning'),
        ('Lighting', 120 * 0.2, 'error'),
    ])
    def test_status_thresholds(self, equipment_type, value, expected):
        assert status_for_value(equipment_type, value, base_value_for(equipment_type)) == expected

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678000)) == '2024-01-02T03:04:05.678Z'


class TestSeriesGenerator:
    """Test multi-sensor series generation."""

    def test_hourly_day_without_widening(self):
        generator = SeriesGenerator(rng=random.Random(1))
        series = generator.generate_multi_sensor_series(
            ['SENSOR_001', 'SENSOR_002'], START, START + timedelta(days=1), 'hour', 1000)

        assert len(series) == 2
        assert [len(s['data']) for s in series] == [24, 24]
        assert series[0]['equipment_type'] == 'HVAC'
        assert series[0]['floor_number'] == 1
        assert series[1]['floor_number'] == 2
        assert series[1]['color'] == SENSOR_COLORS[1]
        assert series[0]['data'][0].timestamp == '2024-04-01T00:00:00.000Z'

    def test_step_widens_to_fit_budget(self):
        generator = SeriesGenerator(rng=random.Random(1))
        series = generator.generate_multi_sensor_series(
            ['SENSOR_001', 'SENSOR_003'], START, START + timedelta(days=30), 'hour', 100)

        # 720 hourly points per sensor squeezed into 100 // 2 = 50
        assert [len(s['data']) for s in series] == [50, 50]

    def test_filters(self):
        generator = SeriesGenerator(rng=random.Random(1))
        end = START + timedelta(hours=6)

        by_equipment = generator.generate_multi_sensor_series(
            ['SENSOR_001', 'SENSOR_002', 'SENSOR_006'], START, end, equipment_types=['HVAC'])
        assert [s['sensor_id'] for s in by_equipment] == ['SENSOR_001', 'SENSOR_006']

        by_floor = generator.generate_multi_sensor_series(
            ['SENSOR_001', 'SENSOR_002', 'SENSOR_003'], START, end, floor_numbers=[2])
        assert [s['sensor_id'] for s in by_floor] == ['SENSOR_002']

    def test_seeded_output_is_reproducible(self):
        end = START + timedelta(hours=12)
        first = SeriesGenerator(rng=random.Random(7)).generate_multi_sensor_series(['SENSOR_001'], START, end)
        second = SeriesGenerator(rng=random.Random(7)).generate_multi_sensor_series(['SENSOR_001'], START, end)
        assert first[0]['data'] == second[0]['data']

    def test_values_stay_within_noise_band(self):
        generator = SeriesGenerator(rng=random.Random(3))
        moment = datetime(2024, 4, 1, 11)
        # HVAC floor 4: base 850 * hour-11 1.3 * hot season 1.3, no floor offset
        expected = 850 * 1.3 * 1.3
        for _ in range(200):
            value = generator.sample_value('HVAC', 4, moment)
            assert expected * 0.925 - 0.01 <= value <= expected * 1.075 + 0.01

    def test_generate_readings_rows(self):
        generator = SeriesGenerator(rng=random.Random(5))
        naive_start = datetime(2024, 1, 1)
        rows = generator.generate_readings(['SENSOR_004'], naive_start, naive_start + timedelta(hours=3),
                                           timedelta(hours=1))

        assert len(rows) == 3
        assert rows[0]['unit'] == 'L/min'
        assert rows[0]['equipment_type'] == 'Water'
        assert rows[2]['timestamp'] == naive_start + timedelta(hours=2)
        assert rows[0]['status'] in ('normal', 'warning', 'error')
