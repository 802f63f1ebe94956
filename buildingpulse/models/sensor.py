"""
Sensor Model

This module contains the Sensor model describing installed building sensors.
"""

from datetime import datetime
from .database import db


class Sensor(db.Model):
    """Sensor metadata: where it is installed and what it measures"""
    __tablename__ = 'sensors'

    id = db.Column(db.Integer, primary_key=True)
    sensor_id = db.Column(db.String(64), unique=True, nullable=False)
    equipment_type = db.Column(db.String(32), nullable=False)
    floor_number = db.Column(db.Integer, nullable=False)
    location = db.Column(db.String(120))
    unit = db.Column(db.String(16), nullable=False, default='kWh')
    status = db.Column(db.String(20), default='online')  # online, offline, maintenance
    last_reading = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Sensor {self.sensor_id}: {self.equipment_type} floor {self.floor_number}>'

    def is_online(self):
        """Check if sensor is reporting"""
        return self.status == 'online'

    def touch(self, timestamp):
        """Record the timestamp of the latest reading"""
        if self.last_reading is None or timestamp > self.last_reading:
            self.last_reading = timestamp

    def to_dict(self):
        return {
            'sensor_id': self.sensor_id,
            'equipment_type': self.equipment_type,
            'floor_number': self.floor_number,
            'location': self.location,
            'unit': self.unit,
            'status': self.status,
            'last_reading': self.last_reading.isoformat() if self.last_reading else None,
        }
