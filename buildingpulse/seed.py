#!/usr/bin/env python3
"""
Seed the database with synthetic building-energy readings.

Registers the requested sensors and writes one reading per sensor per step
over the chosen window, using the same value model as the chart API.

Usage:
    python -m buildingpulse.seed --days 7 --step-minutes 15
    python -m buildingpulse.seed --sensors SENSOR_001,SENSOR_004 --seed 42
"""

import sys
import random
import logging
import argparse
from datetime import datetime, timedelta

from . import create_app
from .models import db, Sensor, SensorReading
from .utils.series_generator import (
    SeriesGenerator, EQUIPMENT_MAPPING, equipment_type_for, floor_for_index, unit_for
)

logger = logging.getLogger(__name__)

BATCH_SIZE = 5000


def register_sensors(sensor_ids):
    """Create Sensor rows for IDs that are not registered yet."""
    created = 0
    for index, sensor_id in enumerate(sensor_ids):
        if Sensor.query.filter_by(sensor_id=sensor_id).first():
            continue
        equipment_type = equipment_type_for(sensor_id)
        floor_number = floor_for_index(index)
        db.session.add(Sensor(
            sensor_id=sensor_id,
            equipment_type=equipment_type,
            floor_number=floor_number,
            location=f'Floor {floor_number} - {equipment_type}',
            unit=unit_for(equipment_type),
            status='online'
        ))
        created += 1
    db.session.commit()
    return created


def seed_readings(sensor_ids, start, end, step, rng=None):
    """
    Generate and persist readings. Must run inside an app context.

    Returns:
        Number of readings written
    """
    register_sensors(sensor_ids)
    generator = SeriesGenerator(rng=rng)
    rows = generator.generate_readings(sensor_ids, start, end, step)

    for offset in range(0, len(rows), BATCH_SIZE):
        db.session.bulk_insert_mappings(SensorReading, rows[offset:offset + BATCH_SIZE])
        db.session.commit()

    last_by_sensor = {}
    for row in rows:
        last_by_sensor[row['sensor_id']] = max(row['timestamp'], last_by_sensor.get(row['sensor_id'], row['timestamp']))
    for sensor in Sensor.query.filter(Sensor.sensor_id.in_(list(last_by_sensor))).all():
        sensor.touch(last_by_sensor[sensor.sensor_id])
    db.session.commit()

    logger.info(f"Seeded {len(rows)} readings for {len(sensor_ids)} sensors")
    return len(rows)


def build_parser():
    parser = argparse.ArgumentParser(description='Seed synthetic sensor readings')
    parser.add_argument('--sensors', default=','.join(EQUIPMENT_MAPPING),
                        help='Comma-separated sensor IDs (default: all known sensors)')
    parser.add_argument('--days', type=int, default=7, help='Days of history ending now')
    parser.add_argument('--step-minutes', type=int, default=60, help='Minutes between readings')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.days < 1 or args.step_minutes < 1:
        logger.error("--days and --step-minutes must be positive")
        return 1

    sensor_ids = [s.strip() for s in args.sensors.split(',') if s.strip()]
    end = datetime.utcnow().replace(second=0, microsecond=0)
    start = end - timedelta(days=args.days)

    app = create_app()
    with app.app_context():
        db.create_all()
        count = seed_readings(sensor_ids, start, end, timedelta(minutes=args.step_minutes),
                              rng=random.Random(args.seed))
    print(f"📊 Seeded {count} readings for {len(sensor_ids)} sensors")
    return 0


if __name__ == '__main__':
    sys.exit(main())
