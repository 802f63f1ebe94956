"""
Sensor Reading Model

FLOW OVERVIEW
- Persists one timestamped value per sensor with its equipment context and status.
- create_reading: helper to add a reading and bump the owning sensor's last_reading.
- Query helpers: filtered window with pagination, total count, and aggregate summary.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Index, func
from .database import db
from ..utils.decimation import TimeSeriesDataPoint
from ..utils.series_generator import format_timestamp


class SensorReading(db.Model):
    """Model for storing raw sensor readings."""

    __tablename__ = 'sensor_readings'

    # Primary key
    id = Column(Integer, primary_key=True)

    # Reading time (naive UTC)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Sensor context (denormalized for filter queries without joins)
    sensor_id = Column(String(64), nullable=False, index=True)
    floor_number = Column(Integer, nullable=False)
    equipment_type = Column(String(32), nullable=False)

    # Measurement
    reading_value = Column(Float, nullable=False)
    unit = Column(String(16), nullable=False, default='kWh')
    status = Column(String(20), nullable=False, default='normal')  # normal, warning, error

    # Indexes for efficient querying
    __table_args__ = (
        Index('idx_sensor_readings_sensor_timestamp', 'sensor_id', 'timestamp'),
        Index('idx_sensor_readings_timestamp', 'timestamp'),
        Index('idx_sensor_readings_equipment', 'equipment_type'),
    )

    def __repr__(self):
        return f'<SensorReading {self.id}: {self.sensor_id}={self.reading_value} at {self.timestamp}>'

    def to_dict(self):
        """Convert reading to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'timestamp': format_timestamp(self.timestamp) if self.timestamp else None,
            'sensor_id': self.sensor_id,
            'floor_number': self.floor_number,
            'equipment_type': self.equipment_type,
            'reading_value': self.reading_value,
            'unit': self.unit,
            'status': self.status
        }

    def to_data_point(self):
        """Chart representation of this reading."""
        return TimeSeriesDataPoint(
            timestamp=format_timestamp(self.timestamp),
            value=self.reading_value,
            sensor_id=self.sensor_id,
            status=self.status
        )

    @classmethod
    def create_reading(cls, sensor_id, reading_value, timestamp=None, floor_number=None,
                       equipment_type=None, unit=None, status='normal'):
        """Create a new reading, filling sensor context from the Sensor row when known."""
        from .sensor import Sensor

        sensor = Sensor.query.filter_by(sensor_id=sensor_id).first()
        timestamp = timestamp or datetime.utcnow()

        reading = cls(
            timestamp=timestamp,
            sensor_id=sensor_id,
            floor_number=floor_number if floor_number is not None else (sensor.floor_number if sensor else 0),
            equipment_type=equipment_type or (sensor.equipment_type if sensor else 'Unknown'),
            reading_value=reading_value,
            unit=unit or (sensor.unit if sensor else 'kWh'),
            status=status
        )
        db.session.add(reading)
        if sensor:
            sensor.touch(timestamp)
        return reading

    @classmethod
    def _filtered_query(cls, start_date=None, end_date=None, sensor_id=None,
                        floor_number=None, equipment_type=None):
        query = cls.query

        if start_date:
            query = query.filter(cls.timestamp >= start_date)
        if end_date:
            query = query.filter(cls.timestamp <= end_date)
        if sensor_id:
            query = query.filter(cls.sensor_id == sensor_id)
        if floor_number is not None:
            query = query.filter(cls.floor_number == floor_number)
        if equipment_type:
            query = query.filter(cls.equipment_type == equipment_type)

        return query

    @classmethod
    def query_readings(cls, start_date=None, end_date=None, sensor_id=None, floor_number=None,
                       equipment_type=None, limit=100, offset=0):
        """Get readings in chronological order with optional filtering."""
        query = cls._filtered_query(start_date, end_date, sensor_id, floor_number, equipment_type)
        return query.order_by(cls.timestamp.asc(), cls.id.asc()).offset(offset).limit(limit).all()

    @classmethod
    def count_readings(cls, start_date=None, end_date=None, sensor_id=None, floor_number=None,
                       equipment_type=None):
        """Count readings matching the same filters as query_readings."""
        return cls._filtered_query(start_date, end_date, sensor_id, floor_number, equipment_type).count()

    @classmethod
    def get_summary(cls, start_date=None, end_date=None):
        """Aggregate statistics over the readings in a window."""
        base = cls._filtered_query(start_date, end_date)

        total_readings = base.count()
        if not total_readings:
            return {
                'total_readings': 0,
                'active_sensors': 0,
                'date_range': {'start': None, 'end': None},
                'equipment': [],
                'status_breakdown': {'normal': 0, 'warning': 0, 'error': 0},
                'anomaly_rate': 0
            }

        window = base.with_entities(
            func.min(cls.timestamp),
            func.max(cls.timestamp),
            func.count(func.distinct(cls.sensor_id))
        ).one()
        first_reading, last_reading, active_sensors = window

        equipment_rows = base.with_entities(
            cls.equipment_type,
            cls.unit,
            func.count(cls.id),
            func.avg(cls.reading_value),
            func.min(cls.reading_value),
            func.max(cls.reading_value)
        ).group_by(cls.equipment_type, cls.unit).order_by(cls.equipment_type).all()

        status_rows = base.with_entities(cls.status, func.count(cls.id)).group_by(cls.status).all()
        status_breakdown = {'normal': 0, 'warning': 0, 'error': 0}
        for status, count in status_rows:
            status_breakdown[status] = count

        anomalies = total_readings - status_breakdown.get('normal', 0)

        return {
            'total_readings': total_readings,
            'active_sensors': active_sensors,
            'date_range': {
                'start': format_timestamp(first_reading),
                'end': format_timestamp(last_reading)
            },
            'equipment': [
                {
                    'equipment_type': equipment_type,
                    'unit': unit,
                    'reading_count': count,
                    'avg_value': round(avg_value, 2),
                    'min_value': min_value,
                    'max_value': max_value
                }
                for equipment_type, unit, count, avg_value, min_value, max_value in equipment_rows
            ],
            'status_breakdown': status_breakdown,
            'anomaly_rate': round(anomalies / total_readings, 4)
        }
