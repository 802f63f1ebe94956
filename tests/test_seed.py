"""
Tests for the database seeding command.
"""

import random
from datetime import timedelta
from unittest.mock import patch

from buildingpulse.models import Sensor, SensorReading
from buildingpulse.seed import seed_readings, register_sensors, build_parser, main
from conftest import SEED_START, TEST_CONFIG


def test_seed_readings_registers_sensors(db_session):
    count = seed_readings(['SENSOR_001', 'SENSOR_005'], SEED_START, SEED_START + timedelta(hours=6),
                          timedelta(minutes=30), rng=random.Random(1))

    assert count == 24
    assert SensorReading.query.count() == 24

    security = Sensor.query.filter_by(sensor_id='SENSOR_005').one()
    assert security.equipment_type == 'Security'
    assert security.floor_number == 2
    assert security.last_reading == SEED_START + timedelta(hours=5, minutes=30)


def test_register_sensors_is_idempotent(db_session):
    assert register_sensors(['SENSOR_001', 'SENSOR_002']) == 2
    assert register_sensors(['SENSOR_001', 'SENSOR_003']) == 1
    assert Sensor.query.count() == 3


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.days == 7
    assert args.step_minutes == 60
    assert 'SENSOR_008' in args.sensors


def test_main_rejects_non_positive_window():
    assert main(['--days', '0']) == 1


def test_main_seeds_database():
    from buildingpulse import create_app
    app = create_app(TEST_CONFIG)

    with patch('buildingpulse.seed.create_app', return_value=app):
        assert main(['--sensors', 'SENSOR_001', '--days', '1', '--step-minutes', '60', '--seed', '3']) == 0

    with app.app_context():
        assert SensorReading.query.count() == 24
