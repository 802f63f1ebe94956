"""
Test configuration and shared fixtures for BuildingPulse tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files
- Common test utilities
"""

import random
import pytest
from datetime import datetime, timedelta
from buildingpulse import create_app
from buildingpulse.models import db, Sensor, SensorReading
from buildingpulse.utils.decimation import TimeSeriesDataPoint
from buildingpulse.utils.series_generator import format_timestamp


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'RATE_LIMIT_PER_MINUTE': 1000,
    'DEFAULT_MAX_POINTS': 1000,
    'DEFAULT_DECIMATION_ALGORITHM': 'lttb'
}

SEED_START = datetime(2024, 1, 1)


def make_points(count, values=None, statuses=None, start=SEED_START, step=timedelta(minutes=1),
                sensor_id='SENSOR_001'):
    """Build a list of TimeSeriesDataPoint one step apart."""
    points = []
    for i in range(count):
        points.append(TimeSeriesDataPoint(
            timestamp=format_timestamp(start + i * step),
            value=float(values[i]) if values is not None else float(i % 17),
            sensor_id=sensor_id,
            status=statuses[i] if statuses is not None else 'normal'
        ))
    return points


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    return app


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def test_sensor(db_session):
    """Create a registered HVAC sensor."""
    sensor = Sensor(
        sensor_id='SENSOR_001',
        equipment_type='HVAC',
        floor_number=1,
        location='Floor 1 - HVAC',
        unit='kWh',
        status='online'
    )
    db_session.add(sensor)
    db_session.commit()
    return sensor


@pytest.fixture
def seeded_readings(db_session):
    """Two days of hourly readings for three sensors, reproducible."""
    from buildingpulse.seed import seed_readings
    count = seed_readings(
        ['SENSOR_001', 'SENSOR_002', 'SENSOR_004'],
        SEED_START,
        SEED_START + timedelta(days=2),
        timedelta(hours=1),
        rng=random.Random(42)
    )
    return count


@pytest.fixture
def failing_readings(db_session):
    """SENSOR_001 (HVAC) with every other reading in error, SENSOR_003 (Power) healthy."""
    for i in range(20):
        SensorReading.create_reading(
            sensor_id='SENSOR_001',
            reading_value=850.0 if i % 2 == 0 else 1500.0,
            timestamp=SEED_START + timedelta(hours=i),
            floor_number=1,
            equipment_type='HVAC',
            unit='kWh',
            status='normal' if i % 2 == 0 else 'error'
        )
        SensorReading.create_reading(
            sensor_id='SENSOR_003',
            reading_value=2400.0,
            timestamp=SEED_START + timedelta(hours=i),
            floor_number=3,
            equipment_type='Power',
            unit='kWh',
            status='normal'
        )
    db_session.commit()
