"""
Database Models Package

FLOW OVERVIEW
- Centralizes SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, Sensor, SensorReading.
"""

from .database import db
from .sensor import Sensor
from .sensor_reading import SensorReading

__all__ = [
    'db',
    'Sensor',
    'SensorReading'
]
